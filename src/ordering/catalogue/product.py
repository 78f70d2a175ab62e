"""Product aggregate — the catalogue record an order line is priced from.

Catalogue management lives elsewhere; the ordering context keeps the
fields it needs to resolve checkout items.
"""

from protean.fields import Boolean, Float, Identifier, String

from ordering.domain import ordering


@ordering.aggregate
class Product:
    name = String(required=True, max_length=255)
    sku = String(max_length=100)
    unit = String(max_length=50)
    subcategory = String(max_length=100)
    quantity_in_unit = String(max_length=50)
    vendor_id = Identifier()
    price = Float(required=True, min_value=0.0)
    household_price = Float(min_value=0.0)
    is_active = Boolean(default=True)
