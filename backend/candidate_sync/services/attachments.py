"""Attachment resolution - Telegram file IDs to permanent file URLs.

Each file-bearing form field is resolved on its own:
1. Values that do not look like a Telegram file_id pass through as text
2. getFile -> download -> stored_files row -> {public_base_url}/files/{id}
3. On failure, fall back to a direct (token-bearing, short-lived) Telegram URL
"""

import asyncio
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError

from candidate_sync.adapters.telegram import AttachmentResolutionError, TelegramFileClient
from candidate_sync.services.file_storage import (
    DatabaseFileStore, build_public_file_url, build_stored_filename, guess_mimetype,
)
from candidate_sync.services.normalization import is_telegram_file_id

logger = structlog.get_logger()

# Resolution outcomes
EMPTY = "empty"
TEXT = "text"
STORED = "stored"
FALLBACK = "fallback"
UNRESOLVED = "unresolved"  # file_id kept as-is, no bot token configured


@dataclass
class ResolvedAttachment:
    field: str
    original: str | None
    value: str | None
    status: str
    stored_file_id: int | None = None
    filename: str | None = None
    content: bytes | None = None
    error: str | None = None

    @property
    def is_file(self) -> bool:
        return self.status in (STORED, FALLBACK, UNRESOLVED)


class AttachmentResolver:
    def __init__(
        self,
        telegram: TelegramFileClient,
        store: DatabaseFileStore,
        public_base_url: str,
        keep_content: bool = False,
    ):
        self._telegram = telegram
        self._store = store
        self._public_base_url = public_base_url
        self._keep_content = keep_content

    async def resolve_many(self, values: dict[str, str | None]) -> dict[str, ResolvedAttachment]:
        """Resolve several fields concurrently. Never raises for a single field's failure."""
        fields = list(values)
        results = await asyncio.gather(*(self.resolve(f, values[f]) for f in fields))
        return dict(zip(fields, results))

    async def resolve(self, field: str, value: str | None) -> ResolvedAttachment:
        if not value:
            return ResolvedAttachment(field=field, original=value, value=None, status=EMPTY)

        if not is_telegram_file_id(value):
            return ResolvedAttachment(field=field, original=value, value=value, status=TEXT)

        if not self._telegram.is_configured:
            logger.warning("attachment_unresolved_no_bot_token", field=field)
            return ResolvedAttachment(field=field, original=value, value=value, status=UNRESOLVED)

        try:
            tg_file = await self._telegram.get_file(value)
            content = await self._telegram.download(tg_file)
        except AttachmentResolutionError as e:
            return self._fallback(field, value, e)

        filename = build_stored_filename(field, tg_file.file_path)
        mimetype = guess_mimetype(tg_file.file_path)
        try:
            file_id = await self._store.save(filename, mimetype, content, telegram_file_id=value)
        except (SQLAlchemyError, OSError) as e:
            return self._fallback(
                field, value,
                AttachmentResolutionError(f"storage failed: {type(e).__name__}", value, tg_file.file_path),
            )

        url = build_public_file_url(self._public_base_url, file_id)
        logger.info("attachment_stored", field=field, file_id=file_id, mimetype=mimetype, url=url)
        return ResolvedAttachment(
            field=field,
            original=value,
            value=url,
            status=STORED,
            stored_file_id=file_id,
            filename=filename,
            content=content if self._keep_content else None,
        )

    def _fallback(self, field: str, value: str, error: AttachmentResolutionError) -> ResolvedAttachment:
        if error.file_path:
            url = self._telegram.file_url(error.file_path)
        else:
            url = self._telegram.get_file_url(value)
        logger.warning("attachment_fallback_url", field=field, reason=error.reason)
        return ResolvedAttachment(field=field, original=value, value=url, status=FALLBACK, error=error.reason)
