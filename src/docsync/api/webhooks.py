"""GitHub webhook endpoints."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from ..schemas.github_webhooks import PullRequestEvent, ReviewCommentEvent, ReviewThreadEvent
from ..services.sessions import SessionManager
from ..utils.github_auth import verify_webhook_signature
from .sessions import get_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/github")
async def github_webhook(
    request: Request,
    x_github_event: str = Header(..., alias="X-GitHub-Event"),
    x_hub_signature_256: str = Header(..., alias="X-Hub-Signature-256"),
    manager: SessionManager = Depends(get_manager),
) -> dict:
    """
    GitHub webhook endpoint, an extra inbound sync trigger next to polling.

    Handles: pull_request, pull_request_review_comment, pull_request_review_thread
    """
    body = await request.body()

    # Verify signature
    if not verify_webhook_signature(body, x_hub_signature_256):
        raise HTTPException(status_code=401, detail="Invalid signature")

    payload = await request.json()

    match x_github_event:
        case "pull_request":
            event = PullRequestEvent(**payload)
            if event.action not in ("opened", "reopened", "synchronize"):
                return {"status": "ignored", "event": x_github_event}
            refreshed = 0
            for session in manager.for_repository(event.repository.full_name):
                if session.state.current_branch == event.pull_request.head.ref:
                    await session.detect_pull_request()
                    refreshed += 1
            logger.info(
                f"PR {event.repository.full_name}#{event.number} {event.action}: "
                f"refreshed {refreshed} sessions"
            )
            return {"status": "processed", "sessions": refreshed}

        case "pull_request_review_comment" | "pull_request_review_thread":
            if x_github_event == "pull_request_review_comment":
                event = ReviewCommentEvent(**payload)
            else:
                event = ReviewThreadEvent(**payload)
            triggered = 0
            for session in manager.for_repository(event.repository.full_name):
                pr = session.active_pr
                if pr is not None and pr.number == event.pull_request.number:
                    if session.poller.trigger("webhook") is not None:
                        triggered += 1
            return {"status": "queued", "sessions": triggered}

        case "ping":
            return {"status": "pong"}

        case _:
            return {"status": "ignored", "event": x_github_event}
