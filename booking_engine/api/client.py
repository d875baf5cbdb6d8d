"""
Async HTTP client for the remote booking backend.

Every request carries a bearer token from an injected provider. Transport
failures become NetworkError, non-2xx responses become ServerRejectedError
(AuthenticationError for 401/403, ConflictError for 409). Nothing here
retries: callers decide whether a failure degrades or surfaces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from booking_engine.config import ApiConfig
from booking_engine.errors import (
    AuthenticationError,
    ConflictError,
    MalformedResponseError,
    NetworkError,
    ServerRejectedError,
)
from booking_engine.schemas.booking_schema import BookingDraft, BookingRecord, Cleaner

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]


class CatalogResource(str, Enum):
    """Catalog collections that share list/add/edit/delete endpoints."""
    SERVICE_AREAS = "service-areas"
    SERVICE_TYPES = "service-types"
    SERVICE_FREQUENCIES = "service-frequencies"
    SERVICE_OPTIONS = "service-options"


@dataclass(frozen=True)
class ProofOfPayment:
    """An uploaded proof-of-payment artifact."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


class BackendClient:
    """Thin async wrapper around the booking backend's REST endpoints."""

    def __init__(
        self,
        config: ApiConfig,
        token_provider: Optional[TokenProvider] = None,
        on_unauthorized: Optional[Callable[[], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._token_provider = token_provider or (lambda: config.token or None)
        self._on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_sec,
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def _headers(self) -> dict[str, str]:
        token = self._token_provider()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(
                method, path, headers=self._headers(), **kwargs
            )
        except httpx.HTTPError as e:
            logger.error("Backend unreachable: %s %s (%s)", method, path, e)
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if response.status_code in (401, 403):
            logger.warning("Backend refused credentials for %s %s", method, path)
            if self._on_unauthorized is not None:
                self._on_unauthorized()
            raise AuthenticationError(response.status_code, _detail(response))
        if response.status_code == 409:
            raise ConflictError(response.status_code, _detail(response))
        if response.is_error:
            logger.error(
                "Backend rejected %s %s with %s", method, path, response.status_code
            )
            raise ServerRejectedError(response.status_code, _detail(response))

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    async def list_resource(
        self, resource: CatalogResource, params: Optional[dict[str, str]] = None
    ) -> list[dict[str, Any]]:
        path = f"/{resource.value}"
        data = await self._request("GET", path, params=params)
        if data is None:
            return []
        if not isinstance(data, list):
            raise MalformedResponseError(path, f"expected a list, got {type(data).__name__}")
        return data

    async def add_resource(self, resource: CatalogResource, payload: dict[str, Any]) -> Any:
        return await self._request("POST", f"/{resource.value}", json=payload)

    async def edit_resource(
        self, resource: CatalogResource, entry_id: str, payload: dict[str, Any]
    ) -> Any:
        return await self._request("POST", f"/{resource.value}/edit/{entry_id}", json=payload)

    async def delete_resource(self, resource: CatalogResource, entry_id: str) -> Any:
        return await self._request("POST", f"/{resource.value}/delete/{entry_id}")

    # ------------------------------------------------------------------ #
    # Bookings
    # ------------------------------------------------------------------ #

    async def list_bookings(self) -> list[BookingRecord]:
        data = await self._request("GET", "/bookings")
        return [BookingRecord.model_validate(item) for item in data or []]

    async def list_assigned_bookings(self, cleaner_id: str) -> list[BookingRecord]:
        data = await self._request(
            "GET", "/bookings/assigned", params={"cleanerId": cleaner_id}
        )
        return [BookingRecord.model_validate(item) for item in data or []]

    async def get_booking(self, booking_id: str) -> BookingRecord:
        data = await self._request("GET", f"/bookings/{booking_id}")
        return BookingRecord.model_validate(data)

    async def create_booking(self, draft: BookingDraft, total_price: float) -> BookingRecord:
        payload = draft.model_dump(mode="json", by_alias=True)
        payload["totalPrice"] = total_price
        data = await self._request("POST", "/bookings", json=payload)
        return BookingRecord.model_validate(data)

    async def assign_booking(self, booking_id: str, cleaner_id: str) -> Any:
        return await self._request(
            "POST", f"/bookings/{booking_id}/assign", json={"cleanerId": cleaner_id}
        )

    async def mark_paid(self, booking_id: str, proof: ProofOfPayment) -> Any:
        files = {"proofOfPayment": (proof.filename, proof.content, proof.content_type)}
        return await self._request("POST", f"/bookings/{booking_id}/mark-paid", files=files)

    async def complete_booking(self, booking_id: str) -> Any:
        return await self._request("POST", f"/bookings/{booking_id}/complete")

    async def cancel_booking(self, booking_id: str) -> Any:
        return await self._request("POST", f"/bookings/{booking_id}/cancel")

    # ------------------------------------------------------------------ #
    # Cleaners and calendar
    # ------------------------------------------------------------------ #

    async def list_cleaners(self) -> list[Cleaner]:
        data = await self._request("GET", "/cleaners")
        return [Cleaner.model_validate(item) for item in data or []]

    async def get_blocked_dates(self) -> list[date]:
        path = "/calendar/blocked-dates"
        data = await self._request("GET", path) or {}
        try:
            return [date.fromisoformat(value[:10]) for value in data.get("dates", [])]
        except (AttributeError, TypeError, ValueError) as e:
            raise MalformedResponseError(path, str(e)) from e

    async def replace_blocked_dates(self, dates: list[date]) -> Any:
        payload = {"dates": [d.isoformat() for d in dates]}
        return await self._request("POST", "/calendar/blocked-dates", json=payload)

    async def free_blocked_date(self, day: date) -> Any:
        return await self._request(
            "DELETE", "/calendar/blocked-dates", json={"date": day.isoformat()}
        )


def _detail(response: httpx.Response) -> Optional[str]:
    """Extract the server's message from an error response, if any."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        return body.get("message") or body.get("detail")
    return None
