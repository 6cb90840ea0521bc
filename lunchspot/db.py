"""
Database abstraction for SQLAlchemy backends and an in-memory test implementation.

Users, cards and favorites live behind the DbClient protocol. Uniqueness of
usernames, emails, card names and (user, card) favorite pairs is enforced by
the store itself; get-or-create operations treat a uniqueness violation as
"already exists" instead of relying on a separate lookup.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Column,
    Float,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    or_,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from lunchspot.errors import DUPLICATE_USER, ConflictError, NotFoundError


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self, username: str, email: str, password_hash: str
    ) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def find_user_by_username_or_email(
        self, username: str, email: str
    ) -> Optional["UserRecord"]:
        ...

    def update_user_location(
        self, user_id: str, latitude: float, longitude: float
    ) -> bool:
        ...

    def list_cards(self, limit: int = 50) -> list["CardRecord"]:
        ...

    def get_card(self, card_id: str) -> Optional["CardRecord"]:
        ...

    def get_or_create_card(
        self,
        name: str,
        emoji: str,
        added_by: Optional[str] = None,
        category: Optional[str] = None,
    ) -> "CardRecord":
        ...

    def list_favorites(self, user_id: str) -> list["FavoriteRecord"]:
        ...

    def add_favorite(
        self, user_id: str, card_id: str
    ) -> tuple["FavoriteRecord", bool]:
        ...

    def remove_favorite(self, user_id: str, card_id: str) -> bool:
        ...


@dataclass
class Location:
    latitude: float
    longitude: float


@dataclass
class UserRecord:
    id: str
    username: str
    email: str
    password_hash: str
    location: Optional[Location] = None
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class CardRecord:
    id: str
    name: str
    emoji: str
    category: Optional[str] = None
    added_by: Optional[str] = None
    global_count: int = 0
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class FavoriteRecord:
    id: str
    user_id: str
    card_id: str
    added_at: float = field(default_factory=lambda: time.time())
    # Resolved card, filled in by list_favorites.
    card: Optional[CardRecord] = None


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryDbClient:
    """
    Simple in-memory database for development and tests.

    Every method holds the lock and returns copies, so callers never see a
    record change underneath them.
    """

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.cards: Dict[str, CardRecord] = {}
        self.favorites: Dict[tuple[str, str], FavoriteRecord] = {}
        self._lock = threading.RLock()

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.users.clear()
            self.cards.clear()
            self.favorites.clear()

    def _find_user(self, username: str, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.username == username or user.email == email:
                return user
        return None

    def create_user(
        self, username: str, email: str, password_hash: str
    ) -> UserRecord:
        with self._lock:
            if self._find_user(username, email):
                raise ConflictError(DUPLICATE_USER)
            record = UserRecord(
                id=_new_id(),
                username=username,
                email=email,
                password_hash=password_hash,
            )
            self.users[record.id] = record
            return replace(record)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            user = self.users.get(user_id)
            return replace(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            for user in self.users.values():
                if user.email == email:
                    return replace(user)
            return None

    def find_user_by_username_or_email(
        self, username: str, email: str
    ) -> Optional[UserRecord]:
        with self._lock:
            user = self._find_user(username, email)
            return replace(user) if user else None

    def update_user_location(
        self, user_id: str, latitude: float, longitude: float
    ) -> bool:
        with self._lock:
            user = self.users.get(user_id)
            if not user:
                return False
            user.location = Location(latitude=latitude, longitude=longitude)
            return True

    def list_cards(self, limit: int = 50) -> list[CardRecord]:
        with self._lock:
            # sorted() is stable, so ties keep insertion order.
            cards = sorted(
                self.cards.values(), key=lambda card: card.global_count, reverse=True
            )
            return [replace(card) for card in cards[:limit]]

    def get_card(self, card_id: str) -> Optional[CardRecord]:
        with self._lock:
            card = self.cards.get(card_id)
            return replace(card) if card else None

    def _find_card_by_name(self, name: str) -> Optional[CardRecord]:
        for card in self.cards.values():
            if card.name == name:
                return card
        return None

    def get_or_create_card(
        self,
        name: str,
        emoji: str,
        added_by: Optional[str] = None,
        category: Optional[str] = None,
    ) -> CardRecord:
        with self._lock:
            existing = self._find_card_by_name(name)
            if existing:
                return replace(existing)
            record = CardRecord(
                id=_new_id(),
                name=name,
                emoji=emoji,
                category=category,
                added_by=added_by,
            )
            self.cards[record.id] = record
            return replace(record)

    def list_favorites(self, user_id: str) -> list[FavoriteRecord]:
        with self._lock:
            items: list[FavoriteRecord] = []
            for (owner_id, card_id), favorite in self.favorites.items():
                if owner_id != user_id:
                    continue
                card = self.cards.get(card_id)
                items.append(
                    replace(favorite, card=replace(card) if card else None)
                )
            return items

    def add_favorite(self, user_id: str, card_id: str) -> tuple[FavoriteRecord, bool]:
        with self._lock:
            card = self.cards.get(card_id)
            if not card:
                raise NotFoundError("card not found")
            existing = self.favorites.get((user_id, card_id))
            if existing:
                return replace(existing), False
            record = FavoriteRecord(id=_new_id(), user_id=user_id, card_id=card_id)
            self.favorites[(user_id, card_id)] = record
            card.global_count += 1
            return replace(record), True

    def remove_favorite(self, user_id: str, card_id: str) -> bool:
        with self._lock:
            removed = self.favorites.pop((user_id, card_id), None)
            if not removed:
                return False
            card = self.cards.get(card_id)
            if card and card.global_count > 0:
                card.global_count -= 1
            return True


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _to_user_record(self, row: "UserRow") -> UserRecord:
        location = None
        if row.latitude is not None and row.longitude is not None:
            location = Location(latitude=row.latitude, longitude=row.longitude)
        return UserRecord(
            id=row.id,
            username=row.username,
            email=row.email,
            password_hash=row.password_hash,
            location=location,
            created_at=row.created_at,
        )

    def _to_card_record(self, row: "CardRow") -> CardRecord:
        return CardRecord(
            id=row.id,
            name=row.name,
            emoji=row.emoji,
            category=row.category,
            added_by=row.added_by,
            global_count=row.global_count,
            created_at=row.created_at,
        )

    def _to_favorite_record(
        self, row: "FavoriteRow", card: Optional["CardRow"] = None
    ) -> FavoriteRecord:
        return FavoriteRecord(
            id=row.id,
            user_id=row.user_id,
            card_id=row.card_id,
            added_at=row.added_at,
            card=self._to_card_record(card) if card is not None else None,
        )

    def create_user(
        self, username: str, email: str, password_hash: str
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                id=_new_id(),
                username=username,
                email=email,
                password_hash=password_hash,
                created_at=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise ConflictError(DUPLICATE_USER) from exc
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def find_user_by_username_or_email(
        self, username: str, email: str
    ) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = (
                select(UserRow)
                .where(or_(UserRow.username == username, UserRow.email == email))
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def update_user_location(
        self, user_id: str, latitude: float, longitude: float
    ) -> bool:
        with self.Session() as session:
            result = session.execute(
                update(UserRow)
                .where(UserRow.id == user_id)
                .values(latitude=latitude, longitude=longitude)
            )
            session.commit()
            return bool(result.rowcount)

    def list_cards(self, limit: int = 50) -> list[CardRecord]:
        with self.Session() as session:
            rows = (
                session.query(CardRow)
                .order_by(CardRow.global_count.desc(), CardRow.created_at.asc())
                .limit(limit)
                .all()
            )
            return [self._to_card_record(row) for row in rows]

    def get_card(self, card_id: str) -> Optional[CardRecord]:
        with self.Session() as session:
            row = session.get(CardRow, card_id)
            return self._to_card_record(row) if row else None

    def _select_card_by_name(self, session: Session, name: str) -> Optional["CardRow"]:
        stmt = select(CardRow).where(CardRow.name == name)
        return session.execute(stmt).scalar_one_or_none()

    def get_or_create_card(
        self,
        name: str,
        emoji: str,
        added_by: Optional[str] = None,
        category: Optional[str] = None,
    ) -> CardRecord:
        with self.Session() as session:
            existing = self._select_card_by_name(session, name)
            if existing:
                return self._to_card_record(existing)
            row = CardRow(
                id=_new_id(),
                name=name,
                emoji=emoji,
                category=category,
                added_by=added_by,
                global_count=0,
                created_at=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                # Another request created the same name first.
                session.rollback()
                existing = self._select_card_by_name(session, name)
                if existing is None:
                    raise
                return self._to_card_record(existing)
            return self._to_card_record(row)

    def list_favorites(self, user_id: str) -> list[FavoriteRecord]:
        with self.Session() as session:
            stmt = (
                select(FavoriteRow, CardRow)
                .outerjoin(CardRow, CardRow.id == FavoriteRow.card_id)
                .where(FavoriteRow.user_id == user_id)
                .order_by(FavoriteRow.added_at.asc())
            )
            return [
                self._to_favorite_record(favorite, card)
                for favorite, card in session.execute(stmt).all()
            ]

    def _select_favorite(
        self, session: Session, user_id: str, card_id: str
    ) -> Optional["FavoriteRow"]:
        stmt = select(FavoriteRow).where(
            FavoriteRow.user_id == user_id, FavoriteRow.card_id == card_id
        )
        return session.execute(stmt).scalar_one_or_none()

    def add_favorite(self, user_id: str, card_id: str) -> tuple[FavoriteRecord, bool]:
        with self.Session() as session:
            if session.get(CardRow, card_id) is None:
                raise NotFoundError("card not found")
            existing = self._select_favorite(session, user_id, card_id)
            if existing:
                return self._to_favorite_record(existing), False
            row = FavoriteRow(
                id=_new_id(),
                user_id=user_id,
                card_id=card_id,
                added_at=time.time(),
            )
            session.add(row)
            # Insert and increment commit together; the insert flushes
            # before the update runs.
            try:
                session.execute(
                    update(CardRow)
                    .where(CardRow.id == card_id)
                    .values(global_count=CardRow.global_count + 1)
                )
                session.commit()
            except IntegrityError:
                session.rollback()
                existing = self._select_favorite(session, user_id, card_id)
                if existing is None:
                    raise
                return self._to_favorite_record(existing), False
            return self._to_favorite_record(row), True

    def remove_favorite(self, user_id: str, card_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(FavoriteRow).where(
                    FavoriteRow.user_id == user_id, FavoriteRow.card_id == card_id
                )
            )
            removed = bool(result.rowcount)
            if removed:
                session.execute(
                    update(CardRow)
                    .where(CardRow.id == card_id, CardRow.global_count > 0)
                    .values(global_count=CardRow.global_count - 1)
                )
            session.commit()
            return removed


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class CardRow(Base):
    __tablename__ = "cards"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    emoji = Column(String, nullable=False)
    category = Column(String, nullable=True)
    added_by = Column(String, nullable=True, index=True)
    global_count = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(Float, nullable=False)


class FavoriteRow(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", name="uq_favorites_user_card"),
    )

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    card_id = Column(String, nullable=False, index=True)
    added_at = Column(Float, nullable=False)
