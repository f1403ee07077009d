"""Main FastAPI application"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from issuerelay.api import links, webhooks
from issuerelay.config import settings
from issuerelay.models.base import SessionLocal, init_db
from issuerelay.services.context import build_context
from issuerelay.services.routers import build_routers

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(context=None, webhook_secrets=None) -> FastAPI:
    """Build the application; tests pass a ready ``SyncContext`` with fake clients."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events"""
        # Startup
        logger.info("Starting issue relay service")
        if app.state.context is None:
            init_db()
            app.state.context = build_context(settings, SessionLocal)
        app.state.routers = build_routers(app.state.context)
        yield
        # Shutdown
        logger.info("Stopping issue relay service")
        for client in (app.state.context.github, app.state.context.jira):
            close = getattr(client, "close", None)
            if close:
                close()

    app = FastAPI(
        title="Issue Relay",
        description="Bidirectional issue sync between GitHub and Jira",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = context
    app.state.webhook_secrets = (
        webhook_secrets
        if webhook_secrets is not None
        else {"a": settings.github_webhook_secret, "b": settings.jira_webhook_secret}
    )

    # Include API routers
    app.include_router(webhooks.router)
    app.include_router(links.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "service": "Issue Relay"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "issuerelay.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
