"""Webhook payload schemas."""

import json
from typing import Any, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from candidate_sync.services.normalization import clean_form_value, sanitize_from_bom

logger = structlog.get_logger()

REQUIRED_FIELDS = ("full_name_uzbek", "phone_number_uzbek", "position_uz")
ATTACHMENT_FIELDS = ("resume", "diploma", "phase2_q_1", "phase2_q_2", "phase2_q_3")


class CandidateWebhookPayload(BaseModel):
    """Candidate application as posted by the chat-bot form.

    Every field is optional; `missing_required_fields` reports what the CRM
    record will lack. Unknown keys are kept as extras.
    """

    model_config = ConfigDict(extra="allow")

    full_name_uzbek: Optional[str] = None
    phone_number_uzbek: Optional[str] = None
    age_uzbek: Optional[str] = None
    city_uzbek: Optional[str] = None
    degree: Optional[str] = None
    position_uz: Optional[str] = None
    username: Optional[str] = None
    resume: Optional[str] = None
    diploma: Optional[str] = None
    phase2_q_1: Optional[str] = None
    phase2_q_2: Optional[str] = None
    phase2_q_3: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _clean_keys(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {sanitize_from_bom(k) if isinstance(k, str) else k: v for k, v in data.items()}
        return data

    @field_validator("*", mode="before")
    @classmethod
    def _clean_values(cls, value: Any, info: ValidationInfo) -> Any:
        if isinstance(value, (dict, list)):
            # Form builders occasionally send arrays or objects; keep them as text
            logger.warning("webhook_field_coerced", field=info.field_name, type=type(value).__name__)
            value = json.dumps(value, ensure_ascii=False)
        return clean_form_value(value)

    def missing_required_fields(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if not getattr(self, name)]


class WebhookResponse(BaseModel):
    """Successful webhook processing result."""
    message: str
    contact_id: str = Field(serialization_alias="contactId")
    deal_id: str = Field(serialization_alias="dealId")


class WebhookErrorResponse(BaseModel):
    message: str
    error: str
    request_body: Any = Field(default=None, serialization_alias="requestBody")


class WebhookStatusResponse(BaseModel):
    status: str
    url: str
    method: str
    timestamp: str
