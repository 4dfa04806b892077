"""Request/response schemas for authentication endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TelegramAuthRequest(BaseModel):
    """Login data produced by the Telegram login widget / WebApp."""

    id: int = Field(..., alias="user_id")
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    photo_url: str = ""
    auth_date: int
    hash: str

    model_config = ConfigDict(populate_by_name=True)

    def signed_fields(self) -> dict[str, object]:
        """Fields covered by the Telegram signature, keyed as Telegram sends them."""
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "username": self.username,
            "photo_url": self.photo_url,
            "auth_date": self.auth_date,
            "hash": self.hash,
        }


class PhoneAuthRequest(BaseModel):
    first_name: str = ""
    last_name: str = ""
    phone_number: str = Field(..., min_length=1, max_length=32)

    @field_validator("phone_number")
    @classmethod
    def strip_phone(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Phone number is required"
            raise ValueError(msg)
        return v


class AdminLoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
