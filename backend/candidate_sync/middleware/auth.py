"""Webhook authentication - optional shared secret header."""

import hmac

from fastapi import Header, HTTPException

from candidate_sync.config import settings


async def verify_webhook_secret(
    x_webhook_secret: str = Header(None, description="Shared secret, required when configured"),
) -> None:
    """Reject the call when a secret is configured and the header does not match."""
    if not settings.webhook_secret:
        return
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, settings.webhook_secret):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")
