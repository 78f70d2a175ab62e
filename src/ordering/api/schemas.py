"""Pydantic API schemas for the Ordering domain.

These are the external API contracts — separate from domain commands.
The API layer translates between these schemas and the lifecycle services.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class RecordItemFulfillmentRequest(BaseModel):
    actual_quantity: float | None = Field(default=None, ge=0)
    available: bool = True
    substitute_product_id: str | None = None
    substitute_product_name: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "actual_quantity": 1.5,
                    "available": True,
                    "substitute_product_id": None,
                    "substitute_product_name": None,
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class UpdateDeliveryTimeRequest(BaseModel):
    delivery_time: str = Field(min_length=1)

    model_config = {"json_schema_extra": {"examples": [{"delivery_time": "2025-03-04 10:00-12:00"}]}}


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class IngestionResponse(BaseModel):
    status: str
    order_id: str | None = None
    order_number: str | None = None


class TransitionResponse(BaseModel):
    order_id: str
    status: str
    follow_up_order_id: str | None = None
    follow_up_order_number: str | None = None


class ItemFulfillmentResponse(BaseModel):
    order_id: str
    item_id: str
    total_amount: float


class OrderItemResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str | None = None
    sku: str | None = None
    unit: str | None = None
    quantity: float
    actual_quantity: float | None = None
    price: float
    substitute_product_id: str | None = None
    substitute_product_name: str | None = None
    modified: bool
    shopped: bool
    available: bool


class TotalsResponse(BaseModel):
    items_total: float
    delivery_fee: float
    total_amount: float


class DeliveryResponse(BaseModel):
    time: str | None = None
    phone: str | None = None
    notes: str | None = None
    address: str | None = None
    entrance_code: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_session_id: str | None = None
    user_email: str | None = None
    vendor_id: str
    household_id: str | None = None
    household_name: str | None = None
    picker_id: str | None = None
    picker_name: str | None = None
    is_paid: bool
    origin_order_id: str | None = None
    origin_order_number: str | None = None
    items: list[OrderItemResponse]
    totals: TotalsResponse
    delivery: DeliveryResponse | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class DrainResponse(BaseModel):
    attempted: int
    succeeded: int
    failed: int
