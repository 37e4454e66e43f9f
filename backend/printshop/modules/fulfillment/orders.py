"""
Order submission structures for the print-on-demand supplier.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, field_validator

from printshop.core.errors import InvalidNameError


class Address(BaseModel):
    """Postal address as collected by the payment form."""

    line1: str = ""
    line2: str | None = None
    city: str = ""
    country: str = ""
    postal_code: str = ""
    state: str = ""

    @field_validator("line1", "city", "country", "postal_code", "state", mode="before")
    @classmethod
    def _none_as_empty(cls, value: str | None) -> str:
        return "" if value is None else value


class Recipient(BaseModel):
    """Who the parcel goes to."""

    name: str = ""
    address: Address = Address()
    email: str | None = None

    def split_name(self) -> tuple[str, str]:
        """First token is the first name, the remainder the last name."""
        first, _, last = self.name.strip().partition(" ")
        return first, last.strip()


@dataclass
class LineItem:
    sku: str
    quantity: int = 1

    def to_payload(self) -> dict[str, Any]:
        return {"sku": self.sku, "quantity": self.quantity}


@dataclass
class ShippingAddress:
    first_name: str
    last_name: str
    country: str
    region: str
    address1: str
    address2: str | None
    city: str
    zip: str
    email: str | None = None

    @classmethod
    def from_recipient(cls, recipient: Recipient) -> "ShippingAddress":
        first_name, last_name = recipient.split_name()
        if not first_name:
            raise InvalidNameError("invalid customer name")

        address = recipient.address
        return cls(
            first_name=first_name,
            last_name=last_name,
            country=address.country,
            region=address.state,
            address1=address.line1,
            address2=address.line2,
            city=address.city,
            zip=address.postal_code,
            email=recipient.email,
        )

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "country": self.country,
            "region": self.region,
            "address1": self.address1,
            "address2": self.address2 or "",
            "city": self.city,
            "zip": self.zip,
        }
        if self.email:
            payload["email"] = self.email
        return payload


@dataclass
class OrderSubmission:
    """Body of a supplier order or shipping quote request."""

    line_items: list[LineItem]
    address_to: ShippingAddress
    label: str | None = None
    shipping_method: int = 1
    send_shipping_notification: bool = True
    extra: dict[str, Any] = field(default_factory=dict)

    def to_shipping_payload(self) -> dict[str, Any]:
        return {
            "line_items": [item.to_payload() for item in self.line_items],
            "address_to": self.address_to.to_payload(),
        }

    def to_order_payload(self) -> dict[str, Any]:
        payload = self.to_shipping_payload()
        payload.update(
            shipping_method=self.shipping_method,
            send_shipping_notification=self.send_shipping_notification,
            **self.extra,
        )
        if self.label:
            payload["label"] = self.label
            payload["external_id"] = self.label
        return payload
