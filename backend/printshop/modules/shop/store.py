"""
Cart Store - carts, cart items and order labels in the relational store.

Every public method is its own short unit of work: one session, committed
before returning. Multi-step flows (count then insert, lookup then update)
are therefore sequences of independent statements; the unique constraint on
the session token is the only hard concurrency guard.
"""

from loguru import logger
from sqlalchemy import delete, func, insert, literal, select, update
from sqlalchemy.exc import IntegrityError

from printshop.core.database import Database
from printshop.core.errors import (
    CartFullError,
    DeleteFailedError,
    DuplicateError,
    NotExistsError,
    StoreError,
    UpdateFailedError,
)
from printshop.models.shop import CartItem, OrderLabel, ShoppingCart


def _is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "unique" in message or "duplicate key" in message


class CartStore:
    """
    Persistence for shopping carts.

    Usage:
        store = CartStore(database)
        cart = await store.get_or_create_cart(session_token)
        await store.add_item(cart.id, "tshirt", "m", "black")
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    # ==================== Carts ====================

    async def create_cart(self, session_token: str) -> ShoppingCart:
        """Insert a cart with no payment intent."""
        cart = ShoppingCart(session_token=session_token, payment_intent_id="")
        async with self.database.session() as session:
            session.add(cart)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if _is_unique_violation(e):
                    raise DuplicateError("shopping cart already exists") from e
                raise StoreError(f"could not create cart: {e.orig}") from e
        return cart

    async def get_cart_by_session(self, session_token: str) -> ShoppingCart:
        return await self._get_cart(ShoppingCart.session_token == session_token)

    async def get_cart_by_payment_intent(self, payment_intent_id: str) -> ShoppingCart:
        if not payment_intent_id:
            raise NotExistsError("no payment intent id given")
        return await self._get_cart(
            ShoppingCart.payment_intent_id == payment_intent_id
        )

    async def _get_cart(self, condition) -> ShoppingCart:
        async with self.database.session() as session:
            result = await session.execute(select(ShoppingCart).where(condition))
            cart = result.scalar_one_or_none()
        if cart is None:
            raise NotExistsError("shopping cart does not exist")
        return cart

    async def get_or_create_cart(self, session_token: str) -> ShoppingCart:
        """
        Read the session's cart, creating it on first use.

        Two requests racing on a never-seen token both miss the read; the
        loser's insert hits the unique constraint and is retried as a read.
        """
        try:
            return await self.get_cart_by_session(session_token)
        except NotExistsError:
            pass

        try:
            cart = await self.create_cart(session_token)
            logger.info(f"Created shopping cart {cart.id}")
            return cart
        except DuplicateError:
            logger.debug("Concurrent cart creation, reading existing cart")
            return await self.get_cart_by_session(session_token)

    async def update_session_token(self, old_token: str, new_token: str) -> None:
        """
        Move a cart to a new session token.

        The update is conditional on the old token still being current, so a
        concurrent rotation makes this one fail instead of overwriting it.
        """
        cart = await self.get_cart_by_session(old_token)
        await self._update_cart(
            cart.id,
            {ShoppingCart.session_token: new_token},
            ShoppingCart.session_token == old_token,
        )

    async def update_payment_intent(
        self,
        session_token: str,
        payment_intent_id: str,
    ) -> None:
        cart = await self.get_cart_by_session(session_token)
        await self._update_cart(
            cart.id, {ShoppingCart.payment_intent_id: payment_intent_id}
        )

    async def _update_cart(self, cart_id: int, values: dict, *conditions) -> None:
        statement = (
            update(ShoppingCart)
            .where(ShoppingCart.id == cart_id, *conditions)
            .values(values)
        )
        async with self.database.session() as session:
            try:
                result = await session.execute(statement)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if _is_unique_violation(e):
                    raise DuplicateError("session token already in use") from e
                raise StoreError(f"could not update cart: {e.orig}") from e

        if result.rowcount == 0:
            raise UpdateFailedError(f"update of cart {cart_id} failed")

    # ==================== Items ====================

    async def get_items(self, cart_id: int) -> list[CartItem]:
        """Items of a cart in insertion order."""
        async with self.database.session() as session:
            result = await session.execute(
                select(CartItem)
                .where(CartItem.shopping_cart_id == cart_id)
                .order_by(CartItem.id)
            )
            return list(result.scalars().all())

    async def get_items_by_session(self, session_token: str) -> list[CartItem]:
        cart = await self.get_cart_by_session(session_token)
        return await self.get_items(cart.id)

    async def count_items(self, cart_id: int) -> int:
        async with self.database.session() as session:
            result = await session.execute(
                select(func.count())
                .select_from(CartItem)
                .where(CartItem.shopping_cart_id == cart_id)
            )
            return result.scalar_one()

    async def add_item(
        self,
        cart_id: int,
        item_kind: str,
        size: str,
        color: str,
    ) -> int:
        """Insert one item row; the caller enforces the cart limit."""
        item = CartItem(
            shopping_cart_id=cart_id,
            item_kind=item_kind,
            size=size,
            color=color,
        )
        async with self.database.session() as session:
            session.add(item)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if _is_unique_violation(e):
                    raise DuplicateError("cart item already exists") from e
                raise StoreError(f"could not add item: {e.orig}") from e
        return item.id

    async def add_item_within_limit(
        self,
        cart_id: int,
        item_kind: str,
        size: str,
        color: str,
        limit: int,
    ) -> int:
        """
        Insert one item row only if the cart holds fewer than ``limit`` rows.

        Count and insert are a single INSERT ... SELECT statement, so two
        concurrent adds cannot both squeeze past the limit.
        """
        current = (
            select(func.count())
            .select_from(CartItem)
            .where(CartItem.shopping_cart_id == cart_id)
            .scalar_subquery()
        )
        source = select(
            literal(cart_id),
            literal(item_kind),
            literal(size),
            literal(color),
        ).where(current < limit)
        table = CartItem.__table__
        statement = insert(table).from_select(
            [table.c.shopping_cart_id, table.c.item, table.c.size, table.c.color],
            source,
        )

        async with self.database.session() as session:
            try:
                result = await session.execute(statement)
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise StoreError(f"could not add item: {e.orig}") from e

        if result.rowcount == 0:
            raise CartFullError(f"cart {cart_id} already holds {limit} items")
        return result.lastrowid

    async def remove_item(
        self,
        cart_id: int,
        item_kind: str,
        size: str,
        color: str,
    ) -> None:
        """Delete the first item matching the triple; duplicates keep the rest."""
        items = await self.get_items(cart_id)
        match = next(
            (item for item in items if item.matches(item_kind, size, color)),
            None,
        )
        if match is None:
            raise NotExistsError(f"{item_kind}/{size}/{color} is not in the cart")

        async with self.database.session() as session:
            result = await session.execute(
                delete(CartItem).where(CartItem.id == match.id)
            )
            await session.commit()

        if result.rowcount == 0:
            raise DeleteFailedError(f"delete of cart item {match.id} failed")

    # ==================== Order labels ====================

    async def create_order_label(self, cart_id: int) -> int:
        """Allocate the next global order label for a cart."""
        label = OrderLabel(shopping_cart_id=cart_id)
        async with self.database.session() as session:
            session.add(label)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if _is_unique_violation(e):
                    raise DuplicateError("order label already exists") from e
                raise StoreError(f"could not create order label: {e.orig}") from e
        return label.label

    async def get_order_labels(self, cart_id: int) -> list[int]:
        async with self.database.session() as session:
            result = await session.execute(
                select(OrderLabel.label)
                .where(OrderLabel.shopping_cart_id == cart_id)
                .order_by(OrderLabel.label)
            )
            return list(result.scalars().all())
