"""FastAPI application entry point."""

import structlog
from fastapi import FastAPI

from candidate_sync.config import settings
from candidate_sync.api import health, webhooks, files

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(0),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
)

app = FastAPI(
    title=settings.app_name,
    description="Chat-bot candidate applications to Bitrix24 contacts and deals",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Webhook and file URLs are handed to third parties, so they stay unprefixed
app.include_router(webhooks.router)
app.include_router(files.router)
app.include_router(health.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }
