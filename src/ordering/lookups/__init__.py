"""Lookup registry.

Provides get_/set_/reset_ accessors for the catalogue, household and vendor
lookups. Defaults read from the ordering domain's own repositories.
"""

from ordering.lookups.port import CatalogueLookup, HouseholdLookup, VendorLookup
from ordering.lookups.store_adapter import StoreCatalogueLookup, StoreHouseholdLookup, StoreVendorLookup

_catalogue: CatalogueLookup | None = None
_households: HouseholdLookup | None = None
_vendors: VendorLookup | None = None


def get_catalogue() -> CatalogueLookup:
    global _catalogue
    if _catalogue is None:
        _catalogue = StoreCatalogueLookup()
    return _catalogue


def set_catalogue(lookup: CatalogueLookup) -> None:
    """Override the catalogue lookup (useful for tests)."""
    global _catalogue
    _catalogue = lookup


def get_households() -> HouseholdLookup:
    global _households
    if _households is None:
        _households = StoreHouseholdLookup()
    return _households


def set_households(lookup: HouseholdLookup) -> None:
    """Override the household lookup (useful for tests)."""
    global _households
    _households = lookup


def get_vendors() -> VendorLookup:
    global _vendors
    if _vendors is None:
        _vendors = StoreVendorLookup()
    return _vendors


def set_vendors(lookup: VendorLookup) -> None:
    """Override the vendor lookup (useful for tests)."""
    global _vendors
    _vendors = lookup


def reset_lookups() -> None:
    """Reset every lookup to its default."""
    global _catalogue, _households, _vendors
    _catalogue = None
    _households = None
    _vendors = None
