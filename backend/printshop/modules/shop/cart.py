"""
Cart Service - shopping cart operations keyed by session token.
"""

from typing import Any

from loguru import logger

from printshop.core.errors import CartFullError, InvalidItemError, NotExistsError
from printshop.models.shop import CartItem
from printshop.modules.shop.catalog import Catalog, ItemSelection
from printshop.modules.shop.store import CartStore


class CartService:
    """
    Shopping cart service on top of the cart store.

    Carts are created lazily on the first add. Reads on a session without a
    cart behave like an empty cart.

    Usage:
        carts = CartService(store, catalog)
        await carts.add_item(token, ItemSelection("tshirt", "m", "black"))
        items = await carts.get_items(token)
    """

    def __init__(
        self,
        store: CartStore,
        catalog: Catalog,
        max_items: int = 8,
        atomic_limit: bool = False,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.max_items = max_items
        self.atomic_limit = atomic_limit

    async def get_items(self, session_token: str) -> list[CartItem]:
        """Items in the session's cart, empty if there is no cart."""
        try:
            return await self.store.get_items_by_session(session_token)
        except NotExistsError:
            return []

    async def count(self, session_token: str) -> int:
        return len(await self.get_items(session_token))

    async def retrieve(self, session_token: str) -> list[dict[str, Any]]:
        """
        Cart page payload: stored items with derived display fields.

        Rows whose kind was dropped from the catalog are left out.
        """
        rows = []
        for item in await self.get_items(session_token):
            try:
                rows.append(self.catalog.display(item))
            except InvalidItemError as e:
                logger.warning(f"Skipping cart item {item.id}: {e}")
        return rows

    async def add_item(self, session_token: str, selection: ItemSelection) -> int:
        """
        Add one unit of a catalog item.

        Returns:
            New cart item id

        Raises:
            InvalidItemError: Triple outside the catalog
            CartFullError: Cart already holds ``max_items`` items
        """
        self.catalog.validate(selection)
        cart = await self.store.get_or_create_cart(session_token)

        if self.atomic_limit:
            item_id = await self.store.add_item_within_limit(
                cart.id,
                selection.item_kind,
                selection.size,
                selection.color,
                self.max_items,
            )
        else:
            count = await self.store.count_items(cart.id)
            if count >= self.max_items:
                raise CartFullError(
                    f"cart {cart.id} already holds {self.max_items} items"
                )
            item_id = await self.store.add_item(
                cart.id, selection.item_kind, selection.size, selection.color
            )

        logger.debug(f"Added {selection} to cart {cart.id}")
        return item_id

    async def remove_item(self, session_token: str, selection: ItemSelection) -> None:
        """
        Remove one unit matching the triple.

        Raises:
            NotExistsError: No cart, or no matching item
        """
        cart = await self.store.get_cart_by_session(session_token)
        await self.store.remove_item(
            cart.id, selection.item_kind, selection.size, selection.color
        )
        logger.debug(f"Removed {selection} from cart {cart.id}")

    async def total(self, session_token: str) -> int:
        """Cart total in minor units, without shipping."""
        return self.catalog.order_amount(await self.get_items(session_token))
