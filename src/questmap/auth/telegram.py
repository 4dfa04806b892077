"""Telegram login payload verification.

Telegram signs login data with a key derived from the bot token:
``secret = HMAC_SHA256(key="WebAppData", msg=bot_token)`` and
``hash = hex(HMAC_SHA256(key=secret, msg=data_check_string))`` where the
data-check string is the sorted ``key=value`` pairs joined by newlines.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from typing import Any


def _secret_key(bot_token: str) -> bytes:
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def data_check_string(fields: Mapping[str, Any]) -> str:
    """Sorted ``key=value`` lines, skipping ``hash`` and empty values."""
    return "\n".join(
        f"{key}={fields[key]}"
        for key in sorted(fields)
        if key != "hash" and fields[key] not in (None, "")
    )


def compute_hash(fields: Mapping[str, Any], bot_token: str) -> str:
    return hmac.new(_secret_key(bot_token), data_check_string(fields).encode(), hashlib.sha256).hexdigest()


def verify_telegram_hash(fields: Mapping[str, Any], bot_token: str) -> bool:
    """Constant-time check of the ``hash`` field against the other fields."""
    received = fields.get("hash")
    if not received or not bot_token:
        return False
    return hmac.compare_digest(compute_hash(fields, bot_token), str(received))
