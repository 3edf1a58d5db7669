"""Health check and metrics endpoints."""

from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text

from candidate_sync.config import settings
from candidate_sync.database import async_session
from candidate_sync.schemas.common import HealthResponse

router = APIRouter(tags=["health"])

# Prometheus metrics
WEBHOOK_REQUESTS = Counter("webhook_requests_total", "Total webhook requests", ["outcome"])
WEBHOOK_DURATION = Histogram("webhook_duration_seconds", "Webhook processing duration")
ATTACHMENTS = Counter("attachments_total", "Attachment resolutions", ["result"])
ERRORS = Counter("errors_total", "Total errors", ["type"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    db_status = "ok"

    try:
        async with async_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        db_status = "error"

    return HealthResponse(
        status="healthy" if db_status == "ok" else "degraded",
        db=db_status,
        telegram="configured" if settings.telegram_bot_token else "not_configured",
        bitrix="configured" if settings.bitrix_webhook_url else "not_configured",
    )


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
