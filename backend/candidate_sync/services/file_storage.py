"""Durable file storage in the stored_files table."""

import uuid
from datetime import date
from pathlib import PurePosixPath

import structlog
from sqlalchemy import select

from candidate_sync.database import async_session
from candidate_sync.models.stored_file import StoredFile

logger = structlog.get_logger()

MIME_TYPES = {
    ".ogg": "audio/ogg",
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}
DEFAULT_MIME_TYPE = "application/octet-stream"


def guess_mimetype(file_path: str) -> str:
    """MIME type from the file extension, octet-stream when unknown."""
    return MIME_TYPES.get(PurePosixPath(file_path).suffix.lower(), DEFAULT_MIME_TYPE)


def build_stored_filename(field_name: str, file_path: str) -> str:
    """e.g. resume_2025-07-16_1a2b3c4d.pdf"""
    suffix = PurePosixPath(file_path).suffix
    return f"{field_name}_{date.today().isoformat()}_{uuid.uuid4().hex[:8]}{suffix}"


def build_public_file_url(base_url: str, file_id: int) -> str:
    return f"{base_url.rstrip('/')}/files/{file_id}"


class DatabaseFileStore:
    """Writes and reads StoredFile rows using its own short-lived sessions."""

    def __init__(self, session_factory=async_session):
        self._session_factory = session_factory

    async def save(
        self,
        filename: str,
        mimetype: str,
        data: bytes,
        telegram_file_id: str | None = None,
    ) -> int:
        async with self._session_factory() as session:
            stored = StoredFile(
                filename=filename,
                mimetype=mimetype,
                size=len(data),
                data=data,
                telegram_file_id=telegram_file_id,
            )
            session.add(stored)
            await session.flush()
            file_id = stored.id
            await session.commit()

        logger.info("stored_file_created", file_id=file_id, filename=filename, size=len(data))
        return file_id

    async def get(self, file_id: int) -> StoredFile | None:
        async with self._session_factory() as session:
            result = await session.execute(select(StoredFile).where(StoredFile.id == file_id))
            return result.scalar_one_or_none()
