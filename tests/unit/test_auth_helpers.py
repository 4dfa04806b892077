"""JWT, Telegram hash and password helpers."""

from __future__ import annotations

import argon2
import jwt
import pytest

from questmap.auth.jwt import create_access_token, verify_token
from questmap.auth.password import hash_password, needs_rehash, verify_password
from questmap.auth.telegram import compute_hash, data_check_string, verify_telegram_hash
from questmap.config import get_settings

BOT_TOKEN = "123456:ABC-test-token"


class TestJwt:
    def test_round_trip_carries_user_and_role(self):
        token = create_access_token(42, "alice", "admin")
        payload = verify_token(token)
        assert payload["sub"] == "42"
        assert payload["role"] == "admin"
        assert payload["username"] == "alice"
        assert payload["iss"] == get_settings().jwt_issuer

    def test_wrong_type_rejected(self):
        token = create_access_token(1, "bob", "student")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="refresh")

    def test_tampered_signature_rejected(self):
        token = create_access_token(1, "bob", "student")
        forged = jwt.encode({"sub": "1", "type": "access"}, "some-other-secret-of-decent-length", algorithm="HS256")
        assert forged != token
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(forged)


class TestTelegramHash:
    def _signed(self, **fields):
        fields["hash"] = compute_hash(fields, BOT_TOKEN)
        return fields

    def test_data_check_string_is_sorted_and_skips_hash_and_empty(self):
        fields = {"username": "al", "id": 7, "hash": "x", "last_name": "", "auth_date": 100}
        assert data_check_string(fields) == "auth_date=100\nid=7\nusername=al"

    def test_valid_hash_accepted(self):
        fields = self._signed(id=7, first_name="Al", auth_date=1700000000)
        assert verify_telegram_hash(fields, BOT_TOKEN) is True

    def test_modified_field_rejected(self):
        fields = self._signed(id=7, first_name="Al", auth_date=1700000000)
        fields["id"] = 8
        assert verify_telegram_hash(fields, BOT_TOKEN) is False

    def test_missing_hash_or_token_rejected(self):
        assert verify_telegram_hash({"id": 7}, BOT_TOKEN) is False
        fields = self._signed(id=7, auth_date=1)
        assert verify_telegram_hash(fields, "") is False


class TestPassword:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cret")
        assert hashed.startswith("$argon2id$")
        assert verify_password("s3cret", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_missing_hash_never_verifies(self):
        assert verify_password("anything", None) is False
        assert verify_password("anything", "not-an-argon2-hash") is False

    def test_weaker_parameters_need_rehash(self):
        weak = argon2.PasswordHasher(time_cost=1, memory_cost=8192, parallelism=1).hash("s3cret")
        assert needs_rehash(weak) is True
        assert needs_rehash(hash_password("s3cret")) is False
