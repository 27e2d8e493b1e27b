from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CreateOrderRequest(BaseModel):
    customerId: str = Field(min_length=1, max_length=64)
    productId: str = Field(min_length=1, max_length=64)
    quantity: int = Field(default=1, ge=1, le=1000)


class CustomerSnapshot(BaseModel):
    """Customer details as they were when the order was placed."""

    model_config = ConfigDict(frozen=True)

    email: str
    name: str


class ProductSnapshot(BaseModel):
    """Product details as they were when the order was placed."""

    model_config = ConfigDict(frozen=True)

    name: str
    sku: str
    price: float


class OrderSnapshot(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_id: str
    order_id: str
    product_id: str
    quantity: int
    amount: float
    total_amount: float
    currency: Literal["NGN", "USD", "EUR", "GBP"]
    order_status: str
    payment_status: str
    created_at: datetime
