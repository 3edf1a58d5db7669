"""Webhook intake endpoint for chat-bot candidate applications."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from candidate_sync.adapters.crm import CRMError
from candidate_sync.api.health import ATTACHMENTS, ERRORS, WEBHOOK_DURATION, WEBHOOK_REQUESTS
from candidate_sync.config import settings
from candidate_sync.middleware.auth import verify_webhook_secret
from candidate_sync.schemas.webhook import (
    CandidateWebhookPayload, WebhookErrorResponse, WebhookResponse, WebhookStatusResponse,
)
from candidate_sync.services.attachments import EMPTY
from candidate_sync.services.pipeline import CandidateSyncPipeline

import structlog

logger = structlog.get_logger()
router = APIRouter(tags=["webhooks"])


def get_pipeline() -> CandidateSyncPipeline:
    return CandidateSyncPipeline.from_settings(settings)


@router.get("/webhook", response_model=WebhookStatusResponse)
async def webhook_status():
    """Static status for uptime checks and bot configuration screens."""
    return WebhookStatusResponse(
        status="Webhook endpoint is active",
        url=f"{settings.public_base_url.rstrip('/')}/webhook",
        method="POST",
        timestamp=datetime.utcnow().isoformat(),
    )


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={500: {"model": WebhookErrorResponse}},
    dependencies=[Depends(verify_webhook_secret)],
)
async def receive_candidate(
    body: dict[str, Any] = Body(...),
    pipeline: CandidateSyncPipeline = Depends(get_pipeline),
):
    """Sync a candidate application into Bitrix24 as a Contact + Deal."""
    try:
        payload = CandidateWebhookPayload.model_validate(body)
        with WEBHOOK_DURATION.time():
            result = await pipeline.process(payload)
    except Exception as e:
        logger.error("webhook_processing_failed", error=str(e), error_type=type(e).__name__)
        WEBHOOK_REQUESTS.labels(outcome="error").inc()
        ERRORS.labels(type="crm" if isinstance(e, CRMError) else "pipeline").inc()
        error = WebhookErrorResponse(
            message="Error processing contact or deal",
            error=str(e),
            request_body=body,
        )
        return JSONResponse(status_code=500, content=error.model_dump(by_alias=True))

    WEBHOOK_REQUESTS.labels(outcome="ok").inc()
    for resolved in result.attachments.values():
        if resolved.status != EMPTY:
            ATTACHMENTS.labels(result=resolved.status).inc()

    return WebhookResponse(
        message=result.message,
        contact_id=result.contact_id,
        deal_id=result.deal_id,
    )
