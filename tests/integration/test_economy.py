"""EconomyEngine: atomic buy and single redemption."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select

from questmap.db.models import PURCHASE_PENDING, PURCHASE_REDEEMED, Purchase, ShopItem, User
from questmap.errors import AlreadyRedeemed, InsufficientBalance, NotFound, OutOfStock, TransactionFailure
from questmap.shop.economy import EconomyEngine


async def _snapshot(store, user_id: int, item_id: int) -> tuple[int, int, int]:
    """(balance, stock, purchase rows) in one read."""
    async with store.session() as db:
        user = await db.get(User, user_id)
        item = await db.get(ShopItem, item_id)
        purchases = (
            await db.execute(select(func.count(Purchase.id)).where(Purchase.user_id == user_id))
        ).scalar_one()
    return user.balance, item.stock, purchases


class TestBuy:
    @pytest.mark.asyncio
    async def test_successful_buy_debits_and_records(self, store, clock, make_user, make_item):
        user = await make_user(balance=1000)
        item = await make_item(price=600, stock=3)

        token = await EconomyEngine(store, clock=clock).buy(user.id, item.id, "me@example.com")

        assert len(token) == 36
        assert await _snapshot(store, user.id, item.id) == (400, 2, 1)
        async with store.session() as db:
            purchase = (await db.execute(select(Purchase).where(Purchase.purchase_id == token))).scalar_one()
        assert purchase.status == PURCHASE_PENDING
        assert purchase.email == "me@example.com"

    @pytest.mark.asyncio
    async def test_token_comes_from_purchase_token_generator(self, store, clock, make_user, make_item, monkeypatch):
        monkeypatch.setattr("questmap.shop.economy.new_purchase_token", lambda: "fixed-token-0001")
        user = await make_user(balance=1000)
        item = await make_item(price=100)

        token = await EconomyEngine(store, clock=clock).buy(user.id, item.id)

        assert token == "fixed-token-0001"
        async with store.session() as db:
            stored = (await db.execute(select(Purchase.purchase_id))).scalar_one()
        assert stored == "fixed-token-0001"

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, store, clock, make_user, make_item):
        user = await make_user(balance=1000)
        item = await make_item(price=100, stock=5)
        economy = EconomyEngine(store, clock=clock)
        tokens = {await economy.buy(user.id, item.id) for _ in range(3)}
        assert len(tokens) == 3

    @pytest.mark.asyncio
    async def test_insufficient_balance_writes_nothing(self, store, clock, make_user, make_item):
        user = await make_user(balance=599)
        item = await make_item(price=600, stock=3)

        with pytest.raises(InsufficientBalance):
            await EconomyEngine(store, clock=clock).buy(user.id, item.id)

        assert await _snapshot(store, user.id, item.id) == (599, 3, 0)

    @pytest.mark.asyncio
    async def test_out_of_stock_writes_nothing(self, store, clock, make_user, make_item):
        user = await make_user(balance=1000)
        item = await make_item(price=600, stock=0)

        with pytest.raises(OutOfStock):
            await EconomyEngine(store, clock=clock).buy(user.id, item.id)

        assert await _snapshot(store, user.id, item.id) == (1000, 0, 0)

    @pytest.mark.asyncio
    async def test_exact_balance_reaches_zero(self, store, clock, make_user, make_item):
        user = await make_user(balance=600)
        item = await make_item(price=600, stock=1)
        await EconomyEngine(store, clock=clock).buy(user.id, item.id)
        assert await _snapshot(store, user.id, item.id) == (0, 0, 1)

    @pytest.mark.asyncio
    async def test_unknown_item_or_user(self, store, clock, make_user, make_item):
        user = await make_user(balance=1000)
        item = await make_item()
        economy = EconomyEngine(store, clock=clock)
        with pytest.raises(NotFound):
            await economy.buy(user.id, 999)
        with pytest.raises(NotFound):
            await economy.buy(999, item.id)

    @pytest.mark.asyncio
    async def test_two_concurrent_buys_with_exact_balance(self, store, clock, make_user, make_item):
        user = await make_user(balance=600)
        item = await make_item(price=600, stock=5)
        economy = EconomyEngine(store, clock=clock)

        results = await asyncio.gather(
            economy.buy(user.id, item.id),
            economy.buy(user.id, item.id),
            return_exceptions=True,
        )

        succeeded = [r for r in results if isinstance(r, str)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], (InsufficientBalance, TransactionFailure))
        assert await _snapshot(store, user.id, item.id) == (0, 4, 1)


class TestRedeem:
    @pytest.mark.asyncio
    async def test_redeem_once(self, store, clock, make_user, make_item):
        user = await make_user(username="ivan", balance=1000)
        item = await make_item(name="Mug", price=600)
        economy = EconomyEngine(store, clock=clock)
        token = await economy.buy(user.id, item.id)

        result = await economy.redeem(token)

        assert result.success is True
        assert result.item == "Mug"
        assert result.user == "Ivan"
        async with store.session() as db:
            purchase = (await db.execute(select(Purchase).where(Purchase.purchase_id == token))).scalar_one()
        assert purchase.status == PURCHASE_REDEEMED
        assert purchase.redeemed_at is not None

    @pytest.mark.asyncio
    async def test_second_redeem_fails(self, store, clock, make_user, make_item):
        user = await make_user(balance=1000)
        item = await make_item()
        economy = EconomyEngine(store, clock=clock)
        token = await economy.buy(user.id, item.id)
        await economy.redeem(token)

        with pytest.raises(AlreadyRedeemed):
            await economy.redeem(token)

    @pytest.mark.asyncio
    async def test_unknown_token(self, store, clock):
        with pytest.raises(NotFound):
            await EconomyEngine(store, clock=clock).redeem("no-such-token")


class TestInventory:
    @pytest.mark.asyncio
    async def test_lists_own_purchases_newest_first(self, store, clock, make_user, make_item):
        from datetime import timedelta

        user = await make_user(balance=2000)
        other = await make_user(username="other", balance=2000)
        mug = await make_item(name="Mug", price=100)
        cap = await make_item(name="Cap", price=100)
        economy = EconomyEngine(store, clock=clock)

        await economy.buy(user.id, mug.id)
        clock.now += timedelta(minutes=5)
        await economy.buy(user.id, cap.id)
        await economy.buy(other.id, cap.id)

        inventory = await economy.inventory(user.id)
        assert [entry.item_name for entry in inventory] == ["Cap", "Mug"]
        assert all(entry.status == PURCHASE_PENDING for entry in inventory)


class TestLastUnitRace:
    """Both buyers pass the pre-check; the guarded stock UPDATE decides, and the
    loser's debit is rolled back with it."""

    @pytest.mark.asyncio
    async def test_two_buyers_for_one_unit(self, store, clock, make_user, make_item):
        alice = await make_user(username="alice", balance=1000)
        bob = await make_user(username="bob", balance=1000)
        item = await make_item(price=600, stock=1)
        economy = EconomyEngine(store, clock=clock)

        results = await asyncio.gather(
            economy.buy(alice.id, item.id),
            economy.buy(bob.id, item.id),
            return_exceptions=True,
        )

        winners = [u for u, r in zip((alice, bob), results) if isinstance(r, str)]
        losers = [(u, r) for u, r in zip((alice, bob), results) if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        loser, error = losers[0]
        assert isinstance(error, (OutOfStock, TransactionFailure))

        winner_balance, stock, winner_purchases = await _snapshot(store, winners[0].id, item.id)
        loser_balance, _, loser_purchases = await _snapshot(store, loser.id, item.id)
        assert stock == 0
        assert (winner_balance, winner_purchases) == (400, 1)
        assert (loser_balance, loser_purchases) == (1000, 0)

