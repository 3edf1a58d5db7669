"""Telegram Bot API adapter - file metadata lookup and download."""

from dataclasses import dataclass
from urllib.parse import quote

import httpx
import structlog

logger = structlog.get_logger()

TELEGRAM_API_BASE = "https://api.telegram.org"


class AttachmentResolutionError(Exception):
    """A Telegram file could not be fetched. Recoverable per field."""

    def __init__(self, reason: str, file_id: str, file_path: str | None = None):
        self.reason = reason
        self.file_id = file_id
        self.file_path = file_path
        super().__init__(reason)


@dataclass
class TelegramFile:
    file_id: str
    file_path: str
    file_size: int = 0


class TelegramFileClient:
    """Fetches bot-hosted files by file_id."""

    def __init__(
        self,
        bot_token: str,
        api_base: str = TELEGRAM_API_BASE,
        metadata_timeout: float = 3.0,
        download_timeout: float | None = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._bot_token = bot_token
        self._api_base = api_base.rstrip("/")
        self._metadata_timeout = metadata_timeout
        self._download_timeout = download_timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._bot_token)

    def file_url(self, file_path: str) -> str:
        """Direct download URL. Embeds the bot token and expires after about an hour."""
        return f"{self._api_base}/file/bot{self._bot_token}/{quote(file_path)}"

    def get_file_url(self, file_id: str) -> str:
        """getFile link for a file_id; redeemable later for a fresh file_path."""
        return f"{self._api_base}/bot{self._bot_token}/getFile?file_id={quote(file_id)}"

    async def get_file(self, file_id: str) -> TelegramFile:
        """Call getFile and return the file_path for a file_id."""
        try:
            async with httpx.AsyncClient(timeout=self._metadata_timeout, transport=self._transport) as client:
                resp = await client.get(
                    f"{self._api_base}/bot{self._bot_token}/getFile",
                    params={"file_id": file_id},
                )
        except httpx.HTTPError as e:
            raise AttachmentResolutionError(f"getFile request failed: {type(e).__name__}", file_id) from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        result = data.get("result")
        if not isinstance(result, dict):
            result = {}
        if resp.status_code != 200 or not data.get("ok") or not result.get("file_path"):
            description = data.get("description") or f"HTTP {resp.status_code}"
            raise AttachmentResolutionError(f"getFile rejected: {description}", file_id)

        return TelegramFile(
            file_id=file_id,
            file_path=result["file_path"],
            file_size=result.get("file_size") or 0,
        )

    async def download(self, tg_file: TelegramFile) -> bytes:
        """Download the bytes of a file resolved by get_file."""
        try:
            async with httpx.AsyncClient(timeout=self._download_timeout, transport=self._transport) as client:
                resp = await client.get(self.file_url(tg_file.file_path))
                resp.raise_for_status()
                content = resp.content
        except httpx.HTTPError as e:
            raise AttachmentResolutionError(
                f"download failed: {type(e).__name__}", tg_file.file_id, tg_file.file_path,
            ) from e

        logger.info("telegram_file_downloaded", file_path=tg_file.file_path, size=len(content))
        return content
