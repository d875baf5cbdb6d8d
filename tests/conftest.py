"""Shared test fixtures and helpers."""

import asyncio
import json
from datetime import date, datetime
from typing import Any, Optional
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

from booking_engine.api.client import BackendClient
from booking_engine.config import ApiConfig, AppConfig, BookingRulesConfig, PricingConfig
from booking_engine.schemas.booking_schema import BookingRecord, BookingStatus
from booking_engine.schemas.catalog_schema import (
    ServiceArea,
    ServiceFrequency,
    ServiceOption,
    ServiceType,
)
from booking_engine.tools.availability import CalendarAvailabilityManager
from booking_engine.tools.booking import BookingLifecycleManager
from booking_engine.tools.catalog import CatalogCache
from booking_engine.tools.service_areas import PostalCodeResult
from booking_engine.wizard.session import BookingWizard

BASE_URL = "http://testserver/api"
TODAY = date(2030, 6, 10)

CATALOG_RESOURCES = ("service-areas", "service-types", "service-frequencies", "service-options")


def seed_catalog() -> dict[str, list[dict[str, Any]]]:
    """Live catalog in backend wire format."""
    return {
        "service-areas": [
            {"id": "area-1", "postalCode": "12345", "areaName": "Downtown"},
            {"id": "area-2", "postalCode": "67890", "areaName": "Riverside"},
        ],
        "service-types": [
            {"id": "standard", "name": "Standard Clean", "description": "", "basePrice": 100},
            {"id": "deep", "name": "Deep Clean", "description": "", "basePrice": 180},
        ],
        "service-frequencies": [
            {"id": "once", "label": "One Time", "discountPercentage": 0},
            {"id": "weekly", "label": "Weekly", "discountPercentage": 15},
        ],
        "service-options": [
            {"id": "fridge", "name": "Fridge", "pricePerUnit": 20, "serviceTypeId": "standard"},
            {"id": "windows", "name": "Windows", "pricePerUnit": 15, "serviceTypeId": "standard"},
            {"id": "carpet", "name": "Carpet", "pricePerUnit": 35, "serviceTypeId": "deep"},
        ],
    }


class ScriptedPostalCheck:
    """Postal check whose calls finish in the order the test releases them."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}

    async def __call__(self, code: str) -> PostalCodeResult:
        self.calls.append(code)
        gate = self.gates.setdefault(code, asyncio.Event())
        await gate.wait()
        return PostalCodeResult(is_valid=code == "12345", area_name="Downtown" if code == "12345" else None)

    def release(self, code: str) -> None:
        self.gates.setdefault(code, asyncio.Event()).set()


class FakeBackend:
    """In-memory stand-in for the booking REST backend."""

    def __init__(self) -> None:
        self.catalog = seed_catalog()
        self.bookings: dict[str, dict[str, Any]] = {}
        self.cleaners: list[dict[str, Any]] = [
            {"id": "c-1", "firstName": "Ana", "lastName": "Lopez", "email": "ana@example.com", "status": "available"},
            {"id": "c-2", "firstName": "Ben", "lastName": "Okafor", "email": "ben@example.com", "status": "Available"},
            {"id": "c-3", "firstName": "Cy", "lastName": "Moss", "email": "cy@example.com", "status": "inactive"},
        ]
        self.blocked: list[str] = []
        self.requests: list[tuple[str, str]] = []
        self.bodies: list[Any] = []
        self.headers: list[httpx.Headers] = []
        self.offline = False
        self.failures: dict[tuple[str, str], int] = {}
        self._next_id = 1

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def fail(self, method: str, path: str, status_code: int) -> None:
        self.failures[(method, path)] = status_code

    def add_booking(self, record: BookingRecord) -> None:
        self.bookings[record.booking_id] = record.model_dump(mode="json", by_alias=True)

    def calls(self, method: Optional[str] = None) -> list[tuple[str, str]]:
        return [r for r in self.requests if method is None or r[0] == method]

    def _new_id(self, prefix: str) -> str:
        value = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return value

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = unquote(request.url.path)
        if path.startswith("/api"):
            path = path[len("/api"):]
        method = request.method
        self.requests.append((method, path))
        self.headers.append(request.headers)
        content_type = request.headers.get("content-type", "")
        body: Any = None
        if request.content and content_type.startswith("application/json"):
            body = json.loads(request.content)
        self.bodies.append(body)

        if self.offline:
            raise httpx.ConnectError("backend offline", request=request)
        if (method, path) in self.failures:
            return httpx.Response(self.failures[(method, path)], json={"message": "rejected by test"})

        parts = [p for p in path.split("/") if p]
        if parts and parts[0] in CATALOG_RESOURCES:
            return self._catalog_route(method, parts, body)
        if parts and parts[0] == "bookings":
            return self._booking_route(method, parts, body, request, content_type)
        if parts == ["cleaners"] and method == "GET":
            return httpx.Response(200, json=self.cleaners)
        if parts == ["calendar", "blocked-dates"]:
            return self._calendar_route(method, body)
        return httpx.Response(404, json={"message": "not found"})

    def _catalog_route(self, method: str, parts: list[str], body: Any) -> httpx.Response:
        items = self.catalog[parts[0]]
        if method == "GET" and len(parts) == 1:
            return httpx.Response(200, json=items)
        if method == "POST" and len(parts) == 1:
            item = {**body, "id": self._new_id(parts[0])}
            items.append(item)
            return httpx.Response(201, json=item)
        if method == "POST" and len(parts) == 3 and parts[1] == "edit":
            for i, item in enumerate(items):
                if item["id"] == parts[2]:
                    items[i] = {**item, **body, "id": parts[2]}
                    return httpx.Response(200, json=items[i])
            return httpx.Response(404, json={"message": "not found"})
        if method == "POST" and len(parts) == 3 and parts[1] == "delete":
            self.catalog[parts[0]] = [i for i in items if i["id"] != parts[2]]
            return httpx.Response(204)
        return httpx.Response(405)

    def _booking_route(
        self, method: str, parts: list[str], body: Any, request: httpx.Request, content_type: str
    ) -> httpx.Response:
        if method == "GET" and parts == ["bookings"]:
            return httpx.Response(200, json=list(self.bookings.values()))
        if method == "GET" and parts == ["bookings", "assigned"]:
            cleaner_id = request.url.params.get("cleanerId")
            return httpx.Response(200, json=[
                b for b in self.bookings.values() if b.get("assignedCleanerId") == cleaner_id
            ])
        if method == "POST" and parts == ["bookings"]:
            booking_id = self._new_id("bk")
            record = {
                **body,
                "bookingId": booking_id,
                "status": "pending",
                "createdAt": "2030-06-10T09:00:00",
            }
            self.bookings[booking_id] = record
            return httpx.Response(201, json=record)

        booking = self.bookings.get(parts[1]) if len(parts) > 1 else None
        if booking is None:
            return httpx.Response(404, json={"message": "booking not found"})
        if method == "GET" and len(parts) == 2:
            return httpx.Response(200, json=booking)
        action = parts[2] if len(parts) == 3 else None
        if method == "POST" and action == "assign":
            booking.update(status="assigned", assignedCleanerId=body["cleanerId"])
            return httpx.Response(200, json=booking)
        if method == "POST" and action == "mark-paid":
            if not content_type.startswith("multipart/form-data") or b"proofOfPayment" not in request.content:
                return httpx.Response(400, json={"message": "proof of payment missing"})
            booking.update(status="paid", proofOfPaymentUrl=f"/uploads/{parts[1]}.pdf")
            return httpx.Response(200, json={"proofOfPaymentUrl": booking["proofOfPaymentUrl"]})
        if method == "POST" and action == "complete":
            booking["status"] = "completed"
            return httpx.Response(200, json=booking)
        if method == "POST" and action == "cancel":
            booking["status"] = "cancelled"
            return httpx.Response(200, json=booking)
        return httpx.Response(405)

    def _calendar_route(self, method: str, body: Any) -> httpx.Response:
        if method == "GET":
            return httpx.Response(200, json={"dates": list(self.blocked)})
        if method == "POST":
            self.blocked = list(body["dates"])
            return httpx.Response(200, json={"dates": self.blocked})
        if method == "DELETE":
            self.blocked = [d for d in self.blocked if d[:10] != body["date"]]
            return httpx.Response(200, json={"dates": self.blocked})
        return httpx.Response(405)


def make_config(**booking_overrides: Any) -> AppConfig:
    return AppConfig(
        api=ApiConfig(base_url=BASE_URL, timeout_sec=5.0, token="test-token"),
        pricing=PricingConfig(tax_rate=0.10, currency="USD"),
        booking=BookingRulesConfig(
            postal_debounce_ms=booking_overrides.pop("postal_debounce_ms", 0),
            max_custom_text_length=booking_overrides.pop("max_custom_text_length", 500),
            min_phone_digits=booking_overrides.pop("min_phone_digits", 10),
            max_phone_digits=booking_overrides.pop("max_phone_digits", 15),
        ),
        log_level="DEBUG",
        app_name="test-engine",
    )


def make_record(
    booking_id: str = "bk-100",
    status: BookingStatus = BookingStatus.PENDING,
    cleaner_id: Optional[str] = None,
    scheduled_at: Optional[datetime] = datetime(2030, 6, 20, 10, 0),
    created_at: datetime = datetime(2030, 6, 1, 8, 0),
    total_price: float = 154.0,
    first_name: str = "Jane",
    last_name: str = "Doe",
    street: str = "1 Main St",
    city: str = "Springfield",
    postal_code: str = "12345",
    proof_url: Optional[str] = None,
) -> BookingRecord:
    """Helper to create a BookingRecord with sensible defaults."""
    return BookingRecord(
        booking_id=booking_id,
        status=status,
        total_price=total_price,
        assigned_cleaner_id=cleaner_id,
        proof_of_payment_url=proof_url,
        created_at=created_at,
        scheduled_at=scheduled_at,
        postal_code=postal_code,
        service_type_id="standard",
        frequency_id="weekly",
        contact={"first_name": first_name, "last_name": last_name,
                 "email": "jane@example.com", "phone": "555-010-9999"},
        address={"street": street, "city": city, "postal_code": postal_code},
    )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def client(backend, config):
    client = BackendClient(config.api, transport=backend.transport)
    yield client
    await client.aclose()


@pytest.fixture
def catalog(client):
    return CatalogCache(client)


@pytest.fixture
def availability(client):
    return CalendarAvailabilityManager(client)


@pytest.fixture
def lifecycle(client):
    return BookingLifecycleManager(client)


@pytest.fixture
def wizard(client, catalog, availability, config):
    return BookingWizard(
        client,
        catalog,
        availability,
        pricing=config.pricing,
        rules=config.booking,
        clock=lambda: TODAY,
        session_id="WIZ-test",
    )


@pytest.fixture
def service_types():
    return [ServiceType.model_validate(i) for i in seed_catalog()["service-types"]]


@pytest.fixture
def frequencies():
    return [ServiceFrequency.model_validate(i) for i in seed_catalog()["service-frequencies"]]


@pytest.fixture
def options():
    return [ServiceOption.model_validate(i) for i in seed_catalog()["service-options"]]


@pytest.fixture
def service_areas():
    return [ServiceArea.model_validate(i) for i in seed_catalog()["service-areas"]]
