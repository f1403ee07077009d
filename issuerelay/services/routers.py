"""Router registry: webhook path suffix -> event router"""

from typing import Dict

from issuerelay.services.dispatcher import WebhookDispatcher
from issuerelay.services.github_router import GitHubEventRouter
from issuerelay.services.jira_router import JiraEventRouter


def build_routers(ctx) -> Dict[str, WebhookDispatcher]:
    """``a`` receives GitHub deliveries, ``b`` receives Jira deliveries."""
    return {
        "a": GitHubEventRouter(ctx),
        "b": JiraEventRouter(ctx),
    }
