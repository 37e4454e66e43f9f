"""
Catalog - configured item kinds, sizes and colors.

Prices, SKUs and display fields are derived from the (kind, size, color)
triple; nothing here is stored.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from loguru import logger

from printshop.core.config import CatalogItemConfig, Settings
from printshop.core.errors import InvalidItemError
from printshop.models.shop import CartItem

CURRENCY_SYMBOLS = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
    "cad": "$",
    "aud": "$",
}


@dataclass(frozen=True)
class ItemSelection:
    """A (kind, size, color) triple as sent by the browser."""

    item_kind: str
    size: str
    color: str


class Catalog:
    """
    Allowed catalog values plus derived SKU/display details.

    Usage:
        catalog = Catalog.from_settings(settings)
        catalog.validate(ItemSelection("tshirt", "m", "black"))
        catalog.sku("tshirt", "m", "black")  # PRINTSHOP_T_M_BL
    """

    def __init__(
        self,
        items: dict[str, CatalogItemConfig],
        sizes: Iterable[str],
        colors: Iterable[str],
        brand: str = "",
        sku_prefix: str = "",
        currency: str = "usd",
    ) -> None:
        self.items = dict(items)
        self.sizes = list(sizes)
        self.colors = list(colors)
        self.brand = brand
        self.sku_prefix = sku_prefix
        self.currency = currency.lower()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Catalog":
        return cls(
            items=settings.catalog_items,
            sizes=settings.catalog_sizes,
            colors=settings.catalog_colors,
            brand=settings.catalog_brand,
            sku_prefix=settings.sku_prefix,
            currency=settings.shop_currency,
        )

    # ==================== Validation ====================

    def validate(self, selection: ItemSelection) -> ItemSelection:
        """Reject any value outside the configured sets."""
        if (
            selection.item_kind not in self.items
            or selection.size not in self.sizes
            or selection.color not in self.colors
        ):
            logger.warning(f"Rejected item outside catalog: {selection}")
            raise InvalidItemError(
                f"invalid item {selection.item_kind}/{selection.size}/{selection.color}"
            )
        return selection

    # ==================== Pricing ====================

    def entry(self, item_kind: str) -> CatalogItemConfig:
        """
        Configured entry for an item kind.

        Raises:
            InvalidItemError: Kind no longer in the catalog
        """
        try:
            return self.items[item_kind]
        except KeyError as e:
            raise InvalidItemError(f"invalid item {item_kind}") from e

    def price(self, item_kind: str) -> int:
        """Unit price in minor units."""
        return self.entry(item_kind).price

    def order_amount(self, items: Iterable[CartItem]) -> int:
        """Sum of unit prices; one unit per cart row."""
        return sum(self.price(item.item_kind) for item in items)

    def format_price(self, amount: int) -> str:
        """Short display price, e.g. 3000 -> "$30", 2550 -> "$25.50"."""
        symbol = CURRENCY_SYMBOLS.get(self.currency, "")
        whole, cents = divmod(amount, 100)
        if cents:
            return f"{symbol}{whole}.{cents:02d}"
        return f"{symbol}{whole}"

    # ==================== Derived fields ====================

    def sku(self, item_kind: str, size: str, color: str) -> str:
        """
        Supplier SKU for a triple.

        Format: {prefix}_{kind code}_{SIZE}_{first two letters of color}
        e.g. PRINTSHOP_S_S_BL for a small black sweatshirt.
        """
        code = self.entry(item_kind).sku_code
        parts = [code, size.upper(), color[:2].upper()]
        if self.sku_prefix:
            parts.insert(0, self.sku_prefix)
        return "_".join(parts)

    def display(self, item: CartItem) -> dict[str, Any]:
        """Cart page representation of a stored item."""
        entry = self.entry(item.item_kind)
        name = f"{self.brand} {entry.name}" if self.brand else entry.name
        return {
            "id": item.item_kind,
            "size": item.size.upper(),
            "color": item.color.title(),
            "sku": self.sku(item.item_kind, item.size, item.color),
            "display": {
                "name": name,
                "imgsrc": f"{item.item_kind}_{item.color}",
                "price": self.format_price(entry.price),
            },
        }


def to_decimal_string(amount: int) -> str:
    """Minor units as a two-decimal string, e.g. 3850 -> "38.50"."""
    return str((Decimal(amount) / 100).quantize(Decimal("0.01")))
