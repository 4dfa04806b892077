"""Typed failures raised by the progression and economy engine.

Each error carries a stable machine-readable ``code`` so clients can tell
"wrong answer" apart from "already redeemed" or "insufficient funds".
Business-rule rejections are deterministic and are not logged as errors.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for every engine-level rejection."""

    code: str = "engine_error"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail()
        super().__init__(self.detail)

    def default_detail(self) -> str:
        return self.code.replace("_", " ").capitalize()


class NotFound(EngineError):
    """Task, user, shop item or purchase does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, key: object | None = None) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found")


class InsufficientBalance(EngineError):
    code = "insufficient_balance"


class OutOfStock(EngineError):
    code = "out_of_stock"

    def default_detail(self) -> str:
        return "Item out of stock"


class AlreadyRedeemed(EngineError):
    code = "already_redeemed"

    def default_detail(self) -> str:
        return "Purchase already redeemed"


class TaskLocked(EngineError):
    """Task accessed before its predecessor was completed."""

    code = "task_locked"
    status_code = 403

    def default_detail(self) -> str:
        return "Task is locked"


class TransactionFailure(EngineError):
    """The store aborted the transaction; nothing was committed.

    The engine never retries; the caller may retry the whole request.
    """

    code = "transaction_failed"
    status_code = 503
    retryable = True

    def default_detail(self) -> str:
        return "Transaction failed, please retry"
