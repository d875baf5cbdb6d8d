"""
Service catalog cache with an offline fallback dataset.

The cache holds service areas, service types, frequencies and add-on
options fetched from the backend. When a fetch fails it keeps the last
good copy; if there has never been one it serves the hardcoded catalog
below and raises the ``using_fallback`` flag so the UI can warn the user.
Nothing is retried automatically: callers invoke ``refresh()`` explicitly.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import pydantic

from booking_engine.api.client import BackendClient, CatalogResource
from booking_engine.errors import (
    MalformedResponseError,
    NetworkError,
    ServerRejectedError,
    ValidationError,
)
from booking_engine.schemas.catalog_schema import (
    ServiceArea,
    ServiceFrequency,
    ServiceOption,
    ServiceType,
)

logger = logging.getLogger(__name__)

CatalogEntry = Union[ServiceArea, ServiceType, ServiceFrequency, ServiceOption]

FALLBACK_SERVICE_AREAS: list[ServiceArea] = [
    ServiceArea(id="downtown-fallback", postal_code="12345", area_name="Downtown"),
    ServiceArea(id="uptown-fallback", postal_code="54321", area_name="Uptown"),
]

FALLBACK_SERVICE_TYPES: list[ServiceType] = [
    ServiceType(
        id="residential-fallback",
        name="Residential Cleaning",
        description="Professional home cleaning service",
        base_price=120,
    ),
    ServiceType(
        id="commercial-fallback",
        name="Commercial Cleaning",
        description="Office and business cleaning",
        base_price=200,
    ),
    ServiceType(
        id="airbnb-fallback",
        name="Airbnb Cleaning",
        description="Turnover cleaning for short-term rentals",
        base_price=150,
    ),
]

FALLBACK_FREQUENCIES: list[ServiceFrequency] = [
    ServiceFrequency(id="one-time-fallback", label="One Time", discount_percentage=0),
    ServiceFrequency(id="weekly-fallback", label="Weekly", discount_percentage=15),
    ServiceFrequency(id="monthly-fallback", label="Monthly", discount_percentage=10),
]

FALLBACK_OPTIONS: list[ServiceOption] = [
    ServiceOption(id="bedroom-residential-fallback", name="Extra Bedroom",
                  service_type_id="residential-fallback", price_per_unit=20),
    ServiceOption(id="bathroom-residential-fallback", name="Extra Bathroom",
                  service_type_id="residential-fallback", price_per_unit=25),
    ServiceOption(id="window-residential-fallback", name="Window Washing",
                  service_type_id="residential-fallback", price_per_unit=15),
    ServiceOption(id="oven-residential-fallback", name="Oven Deep Clean",
                  service_type_id="residential-fallback", price_per_unit=30),
    ServiceOption(id="fridge-residential-fallback", name="Refrigerator Clean",
                  service_type_id="residential-fallback", price_per_unit=25),
    ServiceOption(id="conference-commercial-fallback", name="Conference Room",
                  service_type_id="commercial-fallback", price_per_unit=40),
    ServiceOption(id="window-commercial-fallback", name="Window Washing",
                  service_type_id="commercial-fallback", price_per_unit=20),
    ServiceOption(id="carpet-commercial-fallback", name="Carpet Cleaning",
                  service_type_id="commercial-fallback", price_per_unit=35),
    ServiceOption(id="laundry-airbnb-fallback", name="Laundry Service",
                  service_type_id="airbnb-fallback", price_per_unit=20),
    ServiceOption(id="restocking-airbnb-fallback", name="Amenity Restocking",
                  service_type_id="airbnb-fallback", price_per_unit=15),
    ServiceOption(id="deep-clean-airbnb-fallback", name="Deep Clean",
                  service_type_id="airbnb-fallback", price_per_unit=50),
]

_MODELS: dict[CatalogResource, type] = {
    CatalogResource.SERVICE_AREAS: ServiceArea,
    CatalogResource.SERVICE_TYPES: ServiceType,
    CatalogResource.SERVICE_FREQUENCIES: ServiceFrequency,
    CatalogResource.SERVICE_OPTIONS: ServiceOption,
}


@dataclass(frozen=True)
class CatalogSnapshot:
    """One consistent view of the catalog."""

    service_areas: list[ServiceArea] = field(default_factory=list)
    service_types: list[ServiceType] = field(default_factory=list)
    frequencies: list[ServiceFrequency] = field(default_factory=list)
    options: list[ServiceOption] = field(default_factory=list)


FALLBACK_CATALOG = CatalogSnapshot(
    service_areas=FALLBACK_SERVICE_AREAS,
    service_types=FALLBACK_SERVICE_TYPES,
    frequencies=FALLBACK_FREQUENCIES,
    options=FALLBACK_OPTIONS,
)

_EMPTY_CATALOG = CatalogSnapshot()


def validate_catalog_entry(entry: CatalogEntry) -> dict[str, str]:
    """Check a catalog entry before it is written to the backend.

    Returns a field-keyed error map; empty when the entry is acceptable.
    """
    errors: dict[str, str] = {}
    if isinstance(entry, ServiceArea):
        if not entry.postal_code.strip():
            errors["postal_code"] = "Postal code is required"
        if not entry.area_name.strip():
            errors["area_name"] = "Area name is required"
    elif isinstance(entry, ServiceType):
        if not entry.name.strip():
            errors["name"] = "Service name is required"
        if entry.base_price < 0:
            errors["base_price"] = "Price cannot be negative"
    elif isinstance(entry, ServiceFrequency):
        if not entry.label.strip():
            errors["label"] = "Frequency name is required"
        if not 0 <= entry.discount_percentage <= 100:
            errors["discount_percentage"] = "Discount must be between 0 and 100"
    elif isinstance(entry, ServiceOption):
        if not entry.name.strip():
            errors["name"] = "Option name is required"
        if not entry.service_type_id.strip():
            errors["service_type_id"] = "Service type is required"
        if entry.price_per_unit < 0:
            errors["price_per_unit"] = "Price cannot be negative"
    return errors


def _resource_for(entry: CatalogEntry) -> CatalogResource:
    for resource, model in _MODELS.items():
        if isinstance(entry, model):
            return resource
    raise TypeError(f"Not a catalog entry: {type(entry).__name__}")


class CatalogCache:
    """
    In-memory catalog with last-good and fallback degradation.

    ``load()`` never raises for read failures: it degrades and flags
    ``offline`` instead. Admin writes (``add``/``update``/``delete``)
    propagate every failure to the caller.
    """

    def __init__(self, client: BackendClient) -> None:
        self._client = client
        self._snapshot: Optional[CatalogSnapshot] = None
        self._has_live_data = False
        self.offline = False
        self.using_fallback = False

    @property
    def snapshot(self) -> CatalogSnapshot:
        """Current catalog; empty until the first load."""
        return self._snapshot or _EMPTY_CATALOG

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def service_areas(self) -> list[ServiceArea]:
        return self.snapshot.service_areas

    @property
    def service_types(self) -> list[ServiceType]:
        return self.snapshot.service_types

    @property
    def frequencies(self) -> list[ServiceFrequency]:
        return self.snapshot.frequencies

    @property
    def options(self) -> list[ServiceOption]:
        return self.snapshot.options

    async def load(self) -> CatalogSnapshot:
        """Fetch the whole catalog, degrading to cached or fallback data on failure."""
        try:
            fetched = {
                resource: await self._client.list_resource(resource)
                for resource in CatalogResource
            }
            snapshot = CatalogSnapshot(
                service_areas=[ServiceArea.model_validate(i) for i in fetched[CatalogResource.SERVICE_AREAS]],
                service_types=[ServiceType.model_validate(i) for i in fetched[CatalogResource.SERVICE_TYPES]],
                frequencies=[ServiceFrequency.model_validate(i) for i in fetched[CatalogResource.SERVICE_FREQUENCIES]],
                options=[ServiceOption.model_validate(i) for i in fetched[CatalogResource.SERVICE_OPTIONS]],
            )
        except (
            NetworkError, ServerRejectedError, MalformedResponseError, pydantic.ValidationError,
        ) as e:
            self.offline = True
            if self._has_live_data:
                logger.warning("Catalog refresh failed, keeping last good copy: %s", e)
            else:
                logger.warning("Catalog unavailable, serving fallback catalog: %s", e)
                self._snapshot = FALLBACK_CATALOG
                self.using_fallback = True
            return self.snapshot

        self._snapshot = snapshot
        self._has_live_data = True
        self.offline = False
        self.using_fallback = False
        logger.info(
            "Catalog loaded: %d areas, %d service types, %d frequencies, %d options",
            len(snapshot.service_areas), len(snapshot.service_types),
            len(snapshot.frequencies), len(snapshot.options),
        )
        return snapshot

    async def refresh(self) -> CatalogSnapshot:
        """Explicit re-fetch, e.g. from a manual refresh action."""
        return await self.load()

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_service_type(self, service_type_id: str) -> Optional[ServiceType]:
        return next((st for st in self.service_types if st.id == service_type_id), None)

    def get_frequency(self, frequency_id: str) -> Optional[ServiceFrequency]:
        return next((f for f in self.frequencies if f.id == frequency_id), None)

    def get_option(self, option_id: str) -> Optional[ServiceOption]:
        return next((o for o in self.options if o.id == option_id), None)

    def options_for(self, service_type_id: str) -> list[ServiceOption]:
        """Add-ons available for one service type."""
        return [o for o in self.options if o.service_type_id == service_type_id]

    # ------------------------------------------------------------------ #
    # Admin writes
    # ------------------------------------------------------------------ #

    async def add(self, entry: CatalogEntry) -> None:
        """Create a catalog entry. The backend assigns its id."""
        resource = self._checked_resource(entry)
        payload = entry.model_dump(mode="json", by_alias=True, exclude={"id"})
        await self._client.add_resource(resource, payload)
        logger.info("Catalog entry added to %s", resource.value)
        await self.refresh()

    async def update(self, entry: CatalogEntry) -> None:
        resource = self._checked_resource(entry)
        payload = entry.model_dump(mode="json", by_alias=True)
        await self._client.edit_resource(resource, entry.id, payload)
        logger.info("Catalog entry %s updated in %s", entry.id, resource.value)
        await self.refresh()

    async def delete(self, resource: CatalogResource, entry_id: str) -> None:
        await self._client.delete_resource(resource, entry_id)
        logger.info("Catalog entry %s deleted from %s", entry_id, resource.value)
        await self.refresh()

    def _checked_resource(self, entry: CatalogEntry) -> CatalogResource:
        errors = validate_catalog_entry(entry)
        if errors:
            logger.debug("Catalog entry rejected: %s", errors)
            raise ValidationError(errors)
        return _resource_for(entry)


def describe_catalog(snapshot: CatalogSnapshot) -> list[dict[str, Any]]:
    """Return service types with their frequencies and add-ons, for listings."""
    return [
        {
            "id": st.id,
            "name": st.name,
            "base_price": st.base_price,
            "options": [
                {"id": o.id, "name": o.name, "price_per_unit": o.price_per_unit}
                for o in snapshot.options
                if o.service_type_id == st.id
            ],
        }
        for st in snapshot.service_types
    ]
