"""Shared fixtures: in-memory Bitrix24, Telegram Bot API and file store fakes."""

import json

import httpx
import pytest

from candidate_sync.adapters.crm import BitrixClient
from candidate_sync.adapters.telegram import TelegramFileClient
from candidate_sync.config import Settings
from candidate_sync.services.attachments import AttachmentResolver
from candidate_sync.services.pipeline import CandidateSyncPipeline

BOT_TOKEN = "123456:TEST-TOKEN"
BITRIX_URL = "https://portal.bitrix24.kz/rest/1/secret"
PUBLIC_BASE_URL = "https://career.example.uz"


class FakeBitrix:
    """Keeps contacts/deals in dicts and answers the REST methods the client uses."""

    def __init__(self):
        self.contacts: dict[str, dict] = {}
        self.deals: dict[str, dict] = {}
        self.calls: list[str] = []
        self.failing: set[str] = set()
        self._next_id = 100

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        self.calls.append(method)
        if method in self.failing:
            return httpx.Response(503, json={"error": "QUERY_LIMIT_EXCEEDED", "error_description": "Too many requests"})

        params = request.url.params
        data = json.loads(request.content) if request.content else {}

        if method == "crm.contact.list":
            phone = params.get("filter[PHONE]")
            ids = [
                {"ID": cid} for cid, fields in self.contacts.items()
                if any(p["VALUE"] == phone for p in fields.get("PHONE", []))
            ]
            return httpx.Response(200, json={"result": ids, "total": len(ids)})
        if method == "crm.contact.add":
            cid = self._new_id()
            self.contacts[cid] = dict(data["fields"])
            return httpx.Response(200, json={"result": int(cid)})
        if method == "crm.contact.update":
            self.contacts[str(data["id"])].update(data["fields"])
            return httpx.Response(200, json={"result": True})
        if method == "crm.contact.get":
            return httpx.Response(200, json={"result": {"ID": params.get("id"), **self.contacts[params.get("id")]}})
        if method == "crm.deal.list":
            contact_id = params.get("filter[CONTACT_ID]")
            ids = sorted(
                (did for did, fields in self.deals.items() if str(fields["CONTACT_ID"]) == contact_id),
                key=int, reverse=True,
            )
            return httpx.Response(200, json={"result": [{"ID": did} for did in ids]})
        if method == "crm.deal.add":
            did = self._new_id()
            self.deals[did] = dict(data["fields"])
            return httpx.Response(200, json={"result": int(did)})
        if method == "crm.deal.update":
            self.deals[str(data["id"])].update(data["fields"])
            return httpx.Response(200, json={"result": True})
        return httpx.Response(400, json={"error": "ERROR_METHOD_NOT_FOUND"})


class FakeTelegram:
    """getFile + file download for a fixed set of known file_ids."""

    def __init__(self):
        self.files: dict[str, tuple[str, bytes]] = {}
        self.broken_downloads: set[str] = set()
        self.requests: list[str] = []

    def add(self, file_id: str, file_path: str, content: bytes):
        self.files[file_id] = (file_path, content)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if path == f"/bot{BOT_TOKEN}/getFile":
            file_id = request.url.params.get("file_id")
            if file_id not in self.files:
                return httpx.Response(400, json={"ok": False, "error_code": 400, "description": "Bad Request: invalid file_id"})
            file_path, content = self.files[file_id]
            return httpx.Response(200, json={
                "ok": True,
                "result": {"file_id": file_id, "file_size": len(content), "file_path": file_path},
            })
        prefix = f"/file/bot{BOT_TOKEN}/"
        if path.startswith(prefix):
            file_path = path[len(prefix):]
            if file_path in self.broken_downloads:
                return httpx.Response(502)
            for stored_path, content in self.files.values():
                if stored_path == file_path:
                    return httpx.Response(200, content=content)
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})


class InMemoryFileStore:
    def __init__(self):
        self.files: dict[int, dict] = {}

    async def save(self, filename, mimetype, data, telegram_file_id=None) -> int:
        file_id = len(self.files) + 1
        self.files[file_id] = {
            "filename": filename, "mimetype": mimetype, "data": data, "telegram_file_id": telegram_file_id,
        }
        return file_id


@pytest.fixture
def test_settings():
    return Settings(
        telegram_bot_token=BOT_TOKEN,
        bitrix_webhook_url=BITRIX_URL,
        public_base_url=PUBLIC_BASE_URL,
    )


@pytest.fixture
def fake_bitrix():
    return FakeBitrix()


@pytest.fixture
def fake_telegram():
    return FakeTelegram()


@pytest.fixture
def file_store():
    return InMemoryFileStore()


@pytest.fixture
def telegram_client(fake_telegram):
    return TelegramFileClient(BOT_TOKEN, transport=httpx.MockTransport(fake_telegram.handler))


@pytest.fixture
def bitrix_client(fake_bitrix):
    return BitrixClient(BITRIX_URL, transport=httpx.MockTransport(fake_bitrix.handler))


@pytest.fixture
def resolver(telegram_client, file_store):
    return AttachmentResolver(telegram_client, file_store, PUBLIC_BASE_URL)


@pytest.fixture
def make_pipeline(bitrix_client, telegram_client, file_store, test_settings):
    def _make(settings=None):
        settings = settings or test_settings
        resolver = AttachmentResolver(
            telegram_client, file_store, settings.public_base_url,
            keep_content=settings.crm_attach_file_bytes,
        )
        return CandidateSyncPipeline(bitrix_client, resolver, settings)
    return _make
