"""Common response schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str = "1.0.0"
    db: str
    telegram: str
    bitrix: str


class NotFoundResponse(BaseModel):
    success: bool = False
    error: str
