"""
Pydantic schemas for the lunch spot API.

Fields are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_PASSWORD_BYTES = 72


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class RegisterRequest(ApiModel):
    username: str = Field(..., min_length=1, max_length=64)
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        # bcrypt only accepts up to 72 bytes of input.
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(ApiModel):
    email: str
    password: str


class UserSummary(ApiModel):
    id: str
    username: str
    email: str


class AuthResponse(ApiModel):
    token: str
    user: UserSummary


class CardCreateRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=128)
    emoji: str = Field(..., min_length=1, max_length=32)
    category: Optional[str] = Field(default=None, max_length=64)


class CardResponse(ApiModel):
    id: str
    name: str
    emoji: str
    category: Optional[str] = None
    added_by: Optional[str] = None
    global_count: int
    created_at: datetime


class FavoriteCreateRequest(ApiModel):
    card_id: str = Field(..., min_length=1)


class FavoriteResponse(ApiModel):
    id: str
    user_id: str
    card_id: str
    added_at: datetime
    card: Optional[CardResponse] = None


class LocationRequest(ApiModel):
    latitude: float
    longitude: float


class SuccessResponse(ApiModel):
    success: Literal[True] = True


class HealthResponse(ApiModel):
    status: Literal["OK"] = "OK"
    timestamp: datetime
