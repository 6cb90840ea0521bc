"""Security helpers (password hashing and bearer tokens)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from lunchspot.config import Settings
from lunchspot.errors import INVALID_CREDENTIAL, UnauthorizedError


def hash_password(password: str, rounds: int = 10) -> str:
    """Salted bcrypt hash; ``rounds`` is the bcrypt cost factor."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def create_access_token(user_id: str, settings: Settings) -> str:
    """Sign a token embedding ``userId`` that expires after ``token_ttl_days``."""
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + timedelta(days=settings.token_ttl_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> str:
    """Return the user id embedded in ``token`` or raise UnauthorizedError."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError(INVALID_CREDENTIAL) from exc
    user_id = payload.get("userId")
    if not isinstance(user_id, str) or not user_id:
        raise UnauthorizedError(INVALID_CREDENTIAL)
    return user_id
