"""Lookup adapters backed by the ordering domain's own repositories."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.catalogue.product import Product
from ordering.household.household import Household
from ordering.lookups.port import (
    CatalogueLookup,
    HouseholdLookup,
    HouseholdRecord,
    ProductRecord,
    VendorLookup,
    VendorRecord,
)
from ordering.vendor.vendor import Vendor


class StoreCatalogueLookup(CatalogueLookup):
    def get_products(self, product_ids: list[str]) -> dict[str, ProductRecord]:
        repo = current_domain.repository_for(Product)
        records = {}
        for product_id in dict.fromkeys(product_ids):
            try:
                product = repo.get(product_id)
            except ObjectNotFoundError:
                continue
            records[product_id] = ProductRecord(
                product_id=str(product.id),
                name=product.name,
                price=product.price,
                household_price=product.household_price,
                sku=product.sku,
                unit=product.unit,
                subcategory=product.subcategory,
            )
        return records


class StoreHouseholdLookup(HouseholdLookup):
    def get_household(self, household_id: str) -> HouseholdRecord | None:
        try:
            household = current_domain.repository_for(Household).get(household_id)
        except ObjectNotFoundError:
            return None
        return HouseholdRecord(
            household_id=str(household.id),
            name=household.name,
            code=household.code,
            lead_name=household.lead_name,
            lead_phone=household.lead_phone,
        )


class StoreVendorLookup(VendorLookup):
    def get_vendor(self, vendor_id: str) -> VendorRecord | None:
        try:
            vendor = current_domain.repository_for(Vendor).get(vendor_id)
        except ObjectNotFoundError:
            return None
        return VendorRecord(
            vendor_id=str(vendor.id),
            name=vendor.name,
            name_hebrew=vendor.name_hebrew,
            contact_email=vendor.contact_email,
            contact_phone=vendor.contact_phone,
        )
