"""Lookup ports (abstract interfaces) for catalogue, household and vendor data.

The ingestor resolves products and households through these ports so the
source of that data can be swapped without touching the pipeline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ProductRecord:
    """Catalogue data needed to price and describe an order line."""

    product_id: str
    name: str
    price: float
    household_price: float | None = None
    sku: str | None = None
    unit: str | None = None
    subcategory: str | None = None

    def price_for(self, household_id: str | None) -> float:
        if household_id and self.household_price is not None:
            return self.household_price
        return self.price


@dataclass(frozen=True)
class HouseholdRecord:
    """Denormalized household details copied onto an order."""

    household_id: str
    name: str
    code: str | None = None
    lead_name: str | None = None
    lead_phone: str | None = None

    def snapshot(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "lead_name": self.lead_name,
            "lead_phone": self.lead_phone,
        }


@dataclass(frozen=True)
class VendorRecord:
    """Vendor details shown on purchase orders and delivery notes."""

    vendor_id: str
    name: str
    name_hebrew: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None

    def snapshot(self) -> dict:
        return {
            "vendor_id": self.vendor_id,
            "name": self.name,
            "name_hebrew": self.name_hebrew,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
        }


class CatalogueLookup(ABC):
    @abstractmethod
    def get_products(self, product_ids: list[str]) -> dict[str, ProductRecord]:
        """Return records keyed by product id. Unknown ids are simply absent."""
        ...


class HouseholdLookup(ABC):
    @abstractmethod
    def get_household(self, household_id: str) -> HouseholdRecord | None:
        """Return the household, or None when it does not exist."""
        ...


class VendorLookup(ABC):
    @abstractmethod
    def get_vendor(self, vendor_id: str) -> VendorRecord | None:
        """Return the vendor, or None when it does not exist."""
        ...
