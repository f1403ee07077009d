"""Webhook receivers: /webhook/a (GitHub) and /webhook/b (Jira)"""

import json
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request

from issuerelay.payloads import parse_github_event, parse_jira_event
from issuerelay.security import SIGNATURE_HEADERS, signature_matches
from issuerelay.services.errors import PayloadError, TrackerAPIError
from issuerelay.services.outcome import SyncOutcome, SyncResult, outcome_for_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])

DELIVERY_HEADERS = {
    "a": "X-GitHub-Delivery",
    "b": "X-Atlassian-Webhook-Identifier",
}


def _secret_for(request: Request, system: str):
    return request.app.state.webhook_secrets.get(system)


def _signature_header(request: Request):
    for name in SIGNATURE_HEADERS:
        value = request.headers.get(name)
        if value:
            return value
    return None


def _parse(system: str, request: Request, payload):
    if system == "a":
        return parse_github_event(request.headers.get("X-GitHub-Event"), payload)
    return parse_jira_event(payload)


def _respond(result: SyncResult) -> JSONResponse:
    return JSONResponse(result.as_dict(), status_code=result.status_code)


async def _handle(system: str, request: Request) -> JSONResponse:
    state = request.app.state
    ctx, dispatcher = state.context, state.routers[system]

    body = await request.body()
    if not signature_matches(_secret_for(request, system), body, _signature_header(request)):
        logger.warning(f"Rejected webhook {system}: signature mismatch")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    delivery_id = request.headers.get(DELIVERY_HEADERS[system])
    if ctx.deliveries.seen(delivery_id):
        logger.info(f"Delivery {delivery_id} already processed, skipping")
        result = SyncResult.terminal("redelivery", SyncOutcome.NOOP, f"delivery {delivery_id} already processed")
        return _respond(result)

    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.warning(f"Webhook {system}: body is not JSON: {e}")
        return _respond(SyncResult.terminal("decode", SyncOutcome.BAD_REQUEST, "body is not valid JSON"))

    action = "unknown"
    try:
        event = _parse(system, request, payload)
        action = dispatcher.describe(event)
        result = await run_in_threadpool(dispatcher.dispatch, event)
    except (PayloadError, TrackerAPIError) as e:
        logger.error(f"Webhook {system} ({action}) failed: {e}")
        result = SyncResult.terminal(action, outcome_for_error(e), str(e))
    except Exception as e:
        logger.exception(f"Webhook {system} ({action}) failed unexpectedly")
        result = SyncResult.terminal(action, outcome_for_error(e), str(e))

    if result.status_code == 202:
        ctx.deliveries.record(delivery_id)
    logger.info(f"Webhook {system} ({result.action}) -> {result.as_dict()['status']}")
    return _respond(result)


@router.post("/a")
async def github_webhook(request: Request):
    """Receive a GitHub ``issues`` / ``issue_comment`` delivery"""
    return await _handle("a", request)


@router.post("/b")
async def jira_webhook(request: Request):
    """Receive a Jira issue / comment delivery"""
    return await _handle("b", request)
