"""
HTTP routes for the lunch spot API.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from lunchspot.config import Settings
from lunchspot.db import DbClient, UserRecord
from lunchspot.dependencies import (
    get_app_settings,
    get_current_user_id,
    get_db_client,
)
from lunchspot.errors import BAD_LOGIN, DUPLICATE_USER, ConflictError, UnauthorizedError
from lunchspot.schemas import (
    AuthResponse,
    CardCreateRequest,
    CardResponse,
    FavoriteCreateRequest,
    FavoriteResponse,
    HealthResponse,
    LocationRequest,
    LoginRequest,
    RegisterRequest,
    SuccessResponse,
    UserSummary,
)
from lunchspot.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()
root_router = APIRouter()

BANNER = "Lunch app server is running ✅"


def _auth_response(user: UserRecord, settings: Settings) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id, settings),
        user=UserSummary(id=user.id, username=user.username, email=user.email),
    )


@router.post("/auth/register", response_model=AuthResponse)
def register(
    payload: RegisterRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    # Cheap pre-check before hashing; create_user still enforces uniqueness.
    if db.find_user_by_username_or_email(payload.username, payload.email):
        raise ConflictError(DUPLICATE_USER)
    password_hash = hash_password(payload.password, rounds=settings.bcrypt_rounds)
    user = db.create_user(payload.username, payload.email, password_hash)
    logger.info("Registered user %s (%s)", user.username, user.id)
    return _auth_response(user, settings)


@router.post("/auth/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    """
    Same error for unknown email and wrong password so callers cannot probe
    which accounts exist.
    """
    user = db.get_user_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login attempt")
        raise UnauthorizedError(BAD_LOGIN)
    return _auth_response(user, settings)


@router.get("/cards", response_model=list[CardResponse])
def list_cards(
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_app_settings),
):
    cards = db.list_cards(limit=settings.card_list_limit)
    return [CardResponse.model_validate(card) for card in cards]


@router.post("/cards", response_model=CardResponse)
def create_card(
    payload: CardCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    """Get-or-create by exact name; an existing card is returned unchanged."""
    card = db.get_or_create_card(
        payload.name,
        payload.emoji,
        added_by=user_id,
        category=payload.category,
    )
    return CardResponse.model_validate(card)


@router.get("/favorites", response_model=list[FavoriteResponse])
def list_favorites(
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    favorites = db.list_favorites(user_id)
    return [FavoriteResponse.model_validate(favorite) for favorite in favorites]


@router.post("/favorites", response_model=FavoriteResponse)
def add_favorite(
    payload: FavoriteCreateRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    favorite, created = db.add_favorite(user_id, payload.card_id)
    if created:
        logger.info(f"User {user_id} favorited card {payload.card_id}")
    return FavoriteResponse.model_validate(favorite)


@router.delete("/favorites/{card_id}", response_model=SuccessResponse)
def remove_favorite(
    card_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    if db.remove_favorite(user_id, card_id):
        logger.info(f"User {user_id} removed favorite card {card_id}")
    return SuccessResponse()


@router.post("/users/location", response_model=SuccessResponse)
def update_location(
    payload: LocationRequest,
    user_id: str = Depends(get_current_user_id),
    db: DbClient = Depends(get_db_client),
):
    if not db.update_user_location(user_id, payload.latitude, payload.longitude):
        logger.warning("Location update for unknown user %s", user_id)
    return SuccessResponse()


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(timestamp=datetime.now(timezone.utc))


@root_router.get("/", response_class=PlainTextResponse)
def root():
    return BANNER
