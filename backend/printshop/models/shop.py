"""
Shop models for cart and checkout persistence.

Includes:
- Shopping carts (one per browser session)
- Cart items
- Order labels (human-visible order numbers)
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printshop.core.database import Base


class ShoppingCart(Base):
    """Cart owned by a session token."""

    __tablename__ = "shopping_cart"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_token: Mapped[str] = mapped_column(
        "session_id", String(64), unique=True, nullable=False
    )
    # Empty string until checkout starts
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), default="")

    # Relationships
    items: Mapped[list["CartItem"]] = relationship(
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CartItem.id",
    )
    order_labels: Mapped[list["OrderLabel"]] = relationship(
        back_populates="cart",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def has_payment_intent(self) -> bool:
        return bool(self.payment_intent_id)

    def __repr__(self) -> str:
        return f"<ShoppingCart {self.id}>"


class CartItem(Base):
    """One physical unit in a cart."""

    __tablename__ = "cart_item"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    shopping_cart_id: Mapped[int] = mapped_column(
        ForeignKey("shopping_cart.id", ondelete="CASCADE"), nullable=False
    )
    item_kind: Mapped[str] = mapped_column("item", String(50), nullable=False)
    size: Mapped[str] = mapped_column(String(10), nullable=False)
    color: Mapped[str] = mapped_column(String(50), nullable=False)

    # Relationships
    cart: Mapped["ShoppingCart"] = relationship(back_populates="items")

    def matches(self, item_kind: str, size: str, color: str) -> bool:
        """Structural equality on the (kind, size, color) triple."""
        return (
            self.item_kind == item_kind
            and self.size == size
            and self.color == color
        )

    def __repr__(self) -> str:
        return f"<CartItem {self.item_kind}/{self.size}/{self.color}>"


class OrderLabel(Base):
    """Append-only counter that numbers submitted orders."""

    __tablename__ = "order_label"
    # Labels are never reused, even after a cart row is deleted
    __table_args__ = {"sqlite_autoincrement": True}

    label: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    shopping_cart_id: Mapped[int] = mapped_column(
        ForeignKey("shopping_cart.id", ondelete="CASCADE"), nullable=False
    )

    # Relationships
    cart: Mapped["ShoppingCart"] = relationship(back_populates="order_labels")

    @property
    def reference(self) -> str:
        """Zero-padded label shown to the customer."""
        return format_order_label(self.label)

    def __repr__(self) -> str:
        return f"<OrderLabel {self.reference}>"


def format_order_label(label: int) -> str:
    return f"{label:05d}"
