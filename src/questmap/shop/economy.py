"""Shop economy: purchases and redemption.

Balance and stock are the hot shared counters. Both are changed only with
guarded UPDATEs (``... WHERE balance >= :price`` / ``... WHERE stock > 0``)
whose affected-row count is checked inside the same transaction, so two
concurrent buys can never overspend or oversell.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import joinedload

from questmap.database import LedgerStore
from questmap.db.models import PURCHASE_PENDING, PURCHASE_REDEEMED, Purchase, ShopItem, User
from questmap.errors import AlreadyRedeemed, InsufficientBalance, NotFound, OutOfStock
from questmap.shop.schemas import InventoryItemResponse, RedeemResponse

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_purchase_token() -> str:
    """128-bit random redemption token."""
    return str(uuid.uuid4())


class EconomyEngine:
    """Atomic buy and redeem over the ledger store."""

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

    async def list_items(self) -> list[ShopItem]:
        async with self.store.session() as db:
            result = await db.execute(select(ShopItem).order_by(ShopItem.id))
            return list(result.scalars().all())

    async def buy(self, user_id: int, item_id: int, contact_email: str = "") -> str:
        """Debit the price, take one unit of stock and record a pending purchase.

        Returns the purchase token. All three writes commit together or not
        at all.
        """
        async with self.store.transaction() as db:
            user = await db.get(User, user_id)
            if user is None:
                raise NotFound("User", user_id)
            item = await db.get(ShopItem, item_id)
            if item is None:
                raise NotFound("Item", item_id)

            price = item.price
            if user.balance < price:
                raise InsufficientBalance()
            if item.stock <= 0:
                raise OutOfStock()

            debit = await db.execute(
                update(User)
                .where(User.id == user_id, User.balance >= price)
                .values(balance=User.balance - price)
                .execution_options(synchronize_session=False)
            )
            if debit.rowcount != 1:
                raise InsufficientBalance()

            take = await db.execute(
                update(ShopItem)
                .where(ShopItem.id == item_id, ShopItem.stock > 0)
                .values(stock=ShopItem.stock - 1)
                .execution_options(synchronize_session=False)
            )
            if take.rowcount != 1:
                raise OutOfStock()

            token = new_purchase_token()
            db.add(Purchase(
                user_id=user_id,
                item_id=item_id,
                purchase_id=token,
                status=PURCHASE_PENDING,
                email=contact_email,
                purchased_at=self.clock(),
            ))

        logger.info("User %s bought item %s for %d points (purchase %s)", user_id, item_id, price, token)
        return token

    async def redeem(self, purchase_id: str) -> RedeemResponse:
        """Mark a pending purchase as redeemed. A second attempt fails."""
        async with self.store.transaction() as db:
            result = await db.execute(
                select(Purchase)
                .options(joinedload(Purchase.item), joinedload(Purchase.user))
                .where(Purchase.purchase_id == purchase_id)
            )
            purchase = result.scalar_one_or_none()
            if purchase is None:
                raise NotFound("Purchase", purchase_id)
            if purchase.status == PURCHASE_REDEEMED:
                raise AlreadyRedeemed()

            transition = await db.execute(
                update(Purchase)
                .where(Purchase.id == purchase.id, Purchase.status == PURCHASE_PENDING)
                .values(status=PURCHASE_REDEEMED, redeemed_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            if transition.rowcount != 1:
                raise AlreadyRedeemed()

            item_name = purchase.item.name
            user_name = purchase.user.display_name

        logger.info("Purchase %s redeemed (%s for %s)", purchase_id, item_name, user_name)
        return RedeemResponse(success=True, item=item_name, user=user_name)

    async def inventory(self, user_id: int) -> list[InventoryItemResponse]:
        """The user's purchases, newest first."""
        async with self.store.session() as db:
            result = await db.execute(
                select(Purchase)
                .options(joinedload(Purchase.item))
                .where(Purchase.user_id == user_id)
                .order_by(Purchase.purchased_at.desc(), Purchase.id.desc())
            )
            purchases = result.scalars().all()

        return [
            InventoryItemResponse(
                id=p.id,
                item_id=p.item_id,
                item_name=p.item.name,
                purchase_id=p.purchase_id,
                status=p.status,
                purchased_at=p.purchased_at,
                redeemed_at=p.redeemed_at,
            )
            for p in purchases
        ]
