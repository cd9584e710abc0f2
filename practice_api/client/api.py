"""
Async client for the Scheduling Service.

Every call unwraps the ``{"success": ..., "data": ...}`` envelope. Non-2xx
answers become ServiceError carrying the server's own message when it sent
one; requests that never complete become NetworkError. Nothing is retried.
"""

import logging
from typing import Any, Optional

import httpx

from ..config import API_BASE_URL, API_TIMEOUT_SECONDS
from ..errors import NetworkError, ServiceError
from ..domain.recurring.types import PreviewResult

logger = logging.getLogger(__name__)


def extract_error_message(response: httpx.Response, fallback: str) -> str:
    """Prefer ``error.message``, then ``message``, then ``detail``"""
    try:
        body = response.json()
    except ValueError:
        return fallback
    if not isinstance(body, dict):
        return fallback

    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if body.get("message"):
        return str(body["message"])
    if isinstance(body.get("detail"), str) and body["detail"]:
        return body["detail"]
    return fallback


class SchedulingClient:
    """Client for the recurring-appointment, waitlist and directory endpoints"""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = API_TIMEOUT_SECONDS,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, headers=headers, transport=transport
        )

    async def __aenter__(self) -> "SchedulingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        fallback: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.RequestError as e:
            logger.error(f"❌ {method} {path} failed before a response arrived: {e}")
            raise NetworkError(fallback) from e

        if response.is_error:
            message = extract_error_message(response, fallback)
            logger.warning(f"⚠️ {method} {path} returned {response.status_code}: {message}")
            raise ServiceError(message, status_code=response.status_code)

        body = response.json()
        return body.get("data") if isinstance(body, dict) else body

    # ------------------------------------------------------------------
    # Recurring appointments
    # ------------------------------------------------------------------

    async def preview(self, payload: dict) -> PreviewResult:
        data = await self._request(
            "POST",
            "/recurring-appointments/preview",
            "Failed to preview appointments",
            json=payload,
        )
        return PreviewResult.from_dict(data or {})

    async def create_with_resolution(self, payload: dict) -> dict:
        return await self._request(
            "POST",
            "/recurring-appointments/with-resolution",
            "Failed to create recurring appointment",
            json=payload,
        )

    async def create(self, payload: dict) -> dict:
        return await self._request(
            "POST",
            "/recurring-appointments",
            "Failed to create recurring appointment",
            json=payload,
        )

    async def generate_appointments(self, series_id: int, count: int = 5) -> dict:
        return await self._request(
            "POST",
            f"/recurring-appointments/{series_id}/generate",
            "Failed to generate appointments",
            json={"count": count},
        )

    # ------------------------------------------------------------------
    # Waitlist
    # ------------------------------------------------------------------

    async def create_waitlist_entry(self, payload: dict) -> dict:
        data = await self._request("POST", "/waitlist", "Failed to add to waitlist", json=payload)
        return (data or {}).get("waitlistEntry", {})

    async def update_waitlist_entry(self, entry_id: int, updates: dict) -> dict:
        data = await self._request(
            "PUT", f"/waitlist/{entry_id}", "Failed to update waitlist entry", json=updates
        )
        return (data or {}).get("waitlistEntry", {})

    async def convert_waitlist_entry(self, entry_id: int, appointment: dict) -> dict:
        """Returns both the new ``appointment`` and the updated ``waitlistEntry``"""
        return await self._request(
            "POST",
            f"/waitlist/{entry_id}/convert-to-appointment",
            "Failed to convert waitlist entry to appointment",
            json=appointment,
        )

    # ------------------------------------------------------------------
    # Directory
    # ------------------------------------------------------------------

    async def search_patients(self, search: str = "", page: int = 1, limit: int = 10) -> dict:
        return await self._search("/patients", "Failed to search patients", search, page, limit)

    async def search_providers(self, search: str = "", page: int = 1, limit: int = 10) -> dict:
        return await self._search("/providers", "Failed to search providers", search, page, limit)

    async def search_appointment_types(
        self, search: str = "", page: int = 1, limit: int = 10
    ) -> dict:
        return await self._search(
            "/appointment-types", "Failed to search appointment types", search, page, limit
        )

    async def _search(self, path: str, fallback: str, search: str, page: int, limit: int) -> dict:
        params: dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        return await self._request("GET", path, fallback, params=params)
