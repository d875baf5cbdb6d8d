"""Service catalog data models: areas, service types, frequencies and add-ons."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CatalogModel(BaseModel):
    """Base for catalog entries. Wire format uses camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ServiceArea(CatalogModel):
    """A postal code this business will service, with a human-readable name."""
    id: str
    postal_code: str
    area_name: str


class ServiceType(CatalogModel):
    id: str
    name: str
    description: str = ""
    base_price: float


class ServiceFrequency(CatalogModel):
    """Recurrence cadence with a discount applied to the base price only.

    Values read from the backend are not range-checked here; see
    ``tools.catalog.validate_catalog_entry`` for write-side checks.
    """
    id: str
    label: str
    discount_percentage: float = 0.0


class ServiceOption(CatalogModel):
    """Priced add-on scoped to one service type."""
    id: str
    name: str
    price_per_unit: float
    service_type_id: str
