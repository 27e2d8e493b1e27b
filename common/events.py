"""
Wire format of the completed-transaction event that travels from the payment
service to the transaction worker over RabbitMQ.
"""

from datetime import datetime
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Currency = Literal["NGN", "USD", "EUR", "GBP"]


class TransactionEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_id: str = Field(min_length=1)
    order_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    amount: float = Field(ge=0)
    currency: Currency = "NGN"
    transaction_reference: str = Field(min_length=1)
    payment_status: str
    payment_method: str = "card"
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_message(cls, body: bytes) -> "TransactionEvent":
        """Raises pydantic.ValidationError for bodies that are not a valid event."""
        return cls.model_validate_json(body)
