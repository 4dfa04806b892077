"""Engine error codes and HTTP mapping."""

from __future__ import annotations

import pytest

from questmap.errors import (
    AlreadyRedeemed,
    EngineError,
    InsufficientBalance,
    NotFound,
    OutOfStock,
    TaskLocked,
    TransactionFailure,
)


@pytest.mark.parametrize(
    ("error", "code", "status"),
    [
        (NotFound("Task", 3), "not_found", 404),
        (InsufficientBalance(), "insufficient_balance", 400),
        (OutOfStock(), "out_of_stock", 400),
        (AlreadyRedeemed(), "already_redeemed", 400),
        (TaskLocked(), "task_locked", 403),
        (TransactionFailure(), "transaction_failed", 503),
    ],
)
def test_codes_and_statuses(error: EngineError, code: str, status: int):
    assert isinstance(error, EngineError)
    assert error.code == code
    assert error.status_code == status


def test_only_transaction_failure_is_retryable():
    assert TransactionFailure().retryable is True
    assert InsufficientBalance().retryable is False


def test_not_found_names_the_entity():
    err = NotFound("Item", 99)
    assert err.detail == "Item not found"
    assert err.key == 99


def test_custom_detail_overrides_default():
    assert OutOfStock("Sold out").detail == "Sold out"
    assert OutOfStock().detail == "Item out of stock"
