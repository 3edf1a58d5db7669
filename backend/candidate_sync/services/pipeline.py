"""Candidate webhook -> Bitrix24 sync pipeline.

Pipeline:
1. Validate payload (missing required fields are logged, not rejected)
2. Normalize phone and text fields
3. Resolve file-bearing fields to permanent URLs
4. Build the contact field set
5. Upsert contact (lookup by phone)
6. Upsert deal linked to the contact
"""

import base64
import time
from dataclasses import dataclass, field

import structlog

from candidate_sync.adapters.crm import BitrixClient
from candidate_sync.adapters.telegram import TelegramFileClient
from candidate_sync.config import Settings, settings as default_settings
from candidate_sync.schemas.webhook import ATTACHMENT_FIELDS, CandidateWebhookPayload
from candidate_sync.services.attachments import STORED, AttachmentResolver, ResolvedAttachment
from candidate_sync.services.file_storage import DatabaseFileStore
from candidate_sync.services.normalization import extract_inner_text_from_html_link, normalize_phone

logger = structlog.get_logger()

SUCCESS_MESSAGE = "Contact and Deal created in Bitrix24"


@dataclass
class SyncResult:
    message: str
    contact_id: str
    deal_id: str
    contact_created: bool = False
    deal_created: bool = False
    missing_fields: list[str] = field(default_factory=list)
    attachments: dict[str, ResolvedAttachment] = field(default_factory=dict)


class CandidateSyncPipeline:
    def __init__(
        self,
        crm: BitrixClient,
        resolver: AttachmentResolver,
        settings: Settings = default_settings,
    ):
        self.crm = crm
        self.resolver = resolver
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "CandidateSyncPipeline":
        telegram = TelegramFileClient(
            settings.telegram_bot_token,
            api_base=settings.telegram_api_base,
            metadata_timeout=settings.telegram_metadata_timeout,
            download_timeout=settings.telegram_download_timeout,
        )
        resolver = AttachmentResolver(
            telegram,
            DatabaseFileStore(),
            settings.public_base_url,
            keep_content=settings.crm_attach_file_bytes,
        )
        crm = BitrixClient(settings.bitrix_webhook_url, timeout=settings.bitrix_timeout)
        return cls(crm, resolver, settings)

    async def process(self, payload: CandidateWebhookPayload) -> SyncResult:
        start_time = time.time()

        # --- Step 1: Validate ---
        missing = payload.missing_required_fields()
        if missing:
            logger.warning("webhook_missing_required_fields", missing=missing)

        # --- Step 2: Normalize ---
        phone = normalize_phone(payload.phone_number_uzbek)
        logger.info(
            "webhook_candidate_received",
            full_name=payload.full_name_uzbek,
            phone_raw=payload.phone_number_uzbek,
            phone=phone,
            position=payload.position_uz,
        )

        # --- Step 3: Attachments ---
        attachments = await self.resolver.resolve_many(
            {name: getattr(payload, name) for name in ATTACHMENT_FIELDS}
        )

        # --- Step 4: Contact fields ---
        contact_fields = self.build_contact_fields(payload, phone, attachments)

        # --- Step 5: Contact upsert ---
        contact_id, contact_created = await self._upsert_contact(phone, contact_fields)

        if contact_created and self.settings.crm_verify_phone and phone:
            await self.crm.ensure_contact_phone(contact_id, phone)

        # --- Step 6: Deal upsert ---
        deal_fields = self.build_deal_fields(payload, contact_id)
        deal_id, deal_created = await self._upsert_deal(contact_id, deal_fields)

        logger.info(
            "webhook_processed",
            contact_id=contact_id,
            deal_id=deal_id,
            contact_created=contact_created,
            deal_created=deal_created,
            duration=round(time.time() - start_time, 3),
        )
        return SyncResult(
            message=SUCCESS_MESSAGE,
            contact_id=contact_id,
            deal_id=deal_id,
            contact_created=contact_created,
            deal_created=deal_created,
            missing_fields=missing,
            attachments=attachments,
        )

    def build_contact_fields(
        self,
        payload: CandidateWebhookPayload,
        phone: str,
        attachments: dict[str, ResolvedAttachment],
    ) -> dict:
        codes = self.settings.bitrix_fields
        age = payload.age_uzbek or ""

        fields = {
            codes.name: payload.full_name_uzbek or "",
            codes.position: payload.position_uz or "",
            codes.city: payload.city_uzbek or "",
            codes.degree: payload.degree or "",
            codes.username: extract_inner_text_from_html_link(payload.username),
            codes.age: age,
        }

        if phone:
            fields[codes.phone] = [{"VALUE": phone, "VALUE_TYPE": "MOBILE"}]
            fields[codes.phone_backup] = phone

        for name in ("resume", "diploma"):
            resolved = attachments.get(name)
            if resolved and resolved.is_file:
                fields[getattr(codes, name)] = self._crm_file_value(resolved)

        for name in ("phase2_q_1", "phase2_q_2", "phase2_q_3"):
            resolved = attachments.get(name)
            if not resolved or not resolved.value:
                continue
            fields[getattr(codes, name)] = resolved.value
            text_code = getattr(codes, f"{name}_text")
            if text_code:
                fields[text_code] = f"Voice answer: {resolved.value}" if resolved.is_file else resolved.value

        comments = []
        for name, label in (("resume", "Resume"), ("diploma", "Diploma")):
            resolved = attachments.get(name)
            if resolved and resolved.value:
                comments.append(f"{label}: {resolved.value}")
        for index, name in enumerate(("phase2_q_1", "phase2_q_2", "phase2_q_3"), start=1):
            resolved = attachments.get(name)
            if resolved and resolved.is_file:
                comments.append(f"Answer {index}: {resolved.value}")
        if age:
            comments.append(f"The Age is {age}")
        if comments:
            fields[codes.comments] = "\n".join(comments)

        return fields

    def build_deal_fields(self, payload: CandidateWebhookPayload, contact_id: str) -> dict:
        deal = self.settings.bitrix_deal
        return {
            "TITLE": f"{deal.title_prefix} - {payload.full_name_uzbek or ''}".strip(),
            "CATEGORY_ID": deal.category_id,
            "STATUS_ID": deal.status_id,
            "UTM_SOURCE": deal.utm_source,
            "CONTACT_ID": contact_id,
            self.settings.bitrix_fields.username: extract_inner_text_from_html_link(payload.username),
        }

    def _crm_file_value(self, resolved: ResolvedAttachment):
        if self.settings.crm_attach_file_bytes and resolved.status == STORED and resolved.content:
            return {"fileData": [resolved.filename, base64.b64encode(resolved.content).decode("ascii")]}
        return resolved.value

    async def _upsert_contact(self, phone: str, fields: dict) -> tuple[str, bool]:
        lookup = await self.crm.find_contact_by_phone(phone)
        if lookup.error and self.settings.crm_lookup_failure_policy == "abort":
            raise lookup.error

        if lookup.found:
            logger.info("crm_existing_contact_found", contact_id=lookup.id)
            return await self.crm.update_contact(lookup.id, fields), False
        return await self.crm.add_contact(fields), True

    async def _upsert_deal(self, contact_id: str, fields: dict) -> tuple[str, bool]:
        lookup = await self.crm.find_deal_by_contact(contact_id, self.settings.bitrix_deal.category_id)
        if lookup.error and self.settings.crm_lookup_failure_policy == "abort":
            raise lookup.error

        if lookup.found:
            return await self.crm.update_deal(lookup.id, fields), False
        return await self.crm.add_deal(fields), True


async def process_webhook_data(
    data: dict | CandidateWebhookPayload,
    pipeline: CandidateSyncPipeline | None = None,
) -> SyncResult:
    """Run one submission through a pipeline built from the global settings."""
    payload = data if isinstance(data, CandidateWebhookPayload) else CandidateWebhookPayload.model_validate(data)
    pipeline = pipeline or CandidateSyncPipeline.from_settings()
    return await pipeline.process(payload)
