"""CRM adapter - Bitrix24 REST via inbound webhook URL."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class CRMError(Exception):
    def __init__(self, method: str, reason: str, status_code: int | None = None):
        self.method = method
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{method}: {reason}")


class CRMLookupError(CRMError):
    """A list/search call failed. Callers decide whether that means 'not found'."""


@dataclass
class LookupOutcome:
    id: str | None = None
    error: CRMLookupError | None = None

    @property
    def found(self) -> bool:
        return self.id is not None


class BitrixClient:
    """Thin async client for the crm.contact.* and crm.deal.* methods."""

    def __init__(
        self,
        base_url: str,
        timeout: float | None = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    async def _call(self, http_method: str, method: str, **kwargs) -> Any:
        """Invoke a REST method and return its `result`."""
        if not self._base_url:
            raise CRMError(method, "Bitrix24 webhook URL is not configured")

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.request(http_method, f"{self._base_url}/{method}.json", **kwargs)
        except httpx.HTTPError as e:
            raise CRMError(method, f"{type(e).__name__}: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if resp.status_code >= 400 or "error" in data:
            reason = data.get("error_description") or data.get("error") or f"HTTP {resp.status_code}"
            raise CRMError(method, reason, status_code=resp.status_code)
        return data.get("result")

    async def _first_id(self, method: str, params: dict) -> LookupOutcome:
        try:
            result = await self._call("GET", method, params=params)
            if result and not (isinstance(result, list) and isinstance(result[0], dict) and "ID" in result[0]):
                raise CRMError(method, "unexpected list result")
        except CRMError as e:
            logger.warning("crm_lookup_failed", method=method, error=e.reason)
            return LookupOutcome(error=CRMLookupError(e.method, e.reason, e.status_code))
        if result:
            return LookupOutcome(id=str(result[0]["ID"]))
        return LookupOutcome()

    async def _write(self, method: str, payload: dict) -> Any:
        """POST a write call; a missing or false `result` is a failure."""
        result = await self._call("POST", method, json=payload)
        if not result:
            raise CRMError(method, "missing result")
        return result

    async def find_contact_by_phone(self, phone: str) -> LookupOutcome:
        if not phone:
            return LookupOutcome()
        return await self._first_id("crm.contact.list", {"filter[PHONE]": phone, "select[]": "ID"})

    async def find_deal_by_contact(self, contact_id: str, category_id: str | None = None) -> LookupOutcome:
        if not contact_id:
            return LookupOutcome()
        params = {"filter[CONTACT_ID]": contact_id, "select[]": "ID", "order[ID]": "DESC"}
        if category_id:
            params["filter[CATEGORY_ID]"] = category_id
        return await self._first_id("crm.deal.list", params)

    async def get_contact(self, contact_id: str) -> dict:
        result = await self._call("GET", "crm.contact.get", params={"id": contact_id})
        return result if isinstance(result, dict) else {}

    async def add_contact(self, fields: dict) -> str:
        result = await self._write("crm.contact.add", {"fields": fields})
        logger.info("crm_contact_created", contact_id=result)
        return str(result)

    async def update_contact(self, contact_id: str, fields: dict) -> str:
        await self._write("crm.contact.update", {"id": contact_id, "fields": fields})
        logger.info("crm_contact_updated", contact_id=contact_id)
        return contact_id

    async def add_deal(self, fields: dict) -> str:
        result = await self._write(
            "crm.deal.add", {"fields": fields, "params": {"REGISTER_SONET_EVENT": "Y"}},
        )
        logger.info("crm_deal_created", deal_id=result)
        return str(result)

    async def update_deal(self, deal_id: str, fields: dict) -> str:
        await self._write(
            "crm.deal.update", {"id": deal_id, "fields": fields, "params": {"REGISTER_SONET_EVENT": "Y"}},
        )
        logger.info("crm_deal_updated", deal_id=deal_id)
        return deal_id

    async def ensure_contact_phone(self, contact_id: str, phone: str) -> bool:
        """Re-send the PHONE multifield if Bitrix dropped it on create.

        Returns True when the phone is present afterwards.
        """
        if not contact_id or not phone:
            return False
        try:
            contact = await self.get_contact(contact_id)
            if contact.get("PHONE"):
                return True
            logger.info("crm_contact_phone_missing", contact_id=contact_id)
            await self.update_contact(contact_id, {"PHONE": [{"VALUE": phone, "VALUE_TYPE": "MOBILE"}]})
            return True
        except CRMError as e:
            logger.error("crm_contact_phone_fix_failed", contact_id=contact_id, error=e.reason)
            return False
