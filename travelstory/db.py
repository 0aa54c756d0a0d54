"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    String,
    Text,
    create_engine,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from travelstory.errors import Conflict


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self, full_name: str, email: str, password_hash: str
    ) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def create_story(self, story: "StoryRecord") -> "StoryRecord":
        ...

    def get_story(self, story_id: str, owner_id: str) -> Optional["StoryRecord"]:
        ...

    def update_story(self, story: "StoryRecord") -> "StoryRecord":
        ...

    def delete_story(self, story_id: str, owner_id: str) -> bool:
        ...

    def list_stories(
        self,
        owner_id: str,
        *,
        visited_from: Optional[datetime] = None,
        visited_to: Optional[datetime] = None,
    ) -> list["StoryRecord"]:
        ...

    def find_stories_by_image(self, image_url: str) -> list["StoryRecord"]:
        ...


def _from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _to_epoch(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


@dataclass
class UserRecord:
    user_id: str
    full_name: str
    email: str
    password_hash: str
    created_at: float = field(default_factory=lambda: time.time())

    def as_public_dict(self) -> dict:
        return {
            "_id": self.user_id,
            "fullName": self.full_name,
            "email": self.email,
            "createdOn": _from_epoch(self.created_at),
        }


@dataclass
class StoryRecord:
    story_id: str
    owner_id: str
    title: str
    story: str
    visited_location: list[str]
    visited_date: datetime
    image_url: str
    is_favourite: bool = False
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "_id": self.story_id,
            "title": self.title,
            "story": self.story,
            "visitedLocation": list(self.visited_location),
            "isFavourite": self.is_favourite,
            "userId": self.owner_id,
            "imageUrl": self.image_url,
            "visitedDate": self.visited_date,
            "createdOn": _from_epoch(self.created_at),
        }


def new_id() -> str:
    return uuid.uuid4().hex


def favourites_first(stories: list[StoryRecord]) -> list[StoryRecord]:
    """Stable sort with favourites ahead of the rest."""
    return sorted(stories, key=lambda s: not s.is_favourite)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.stories: Dict[str, StoryRecord] = {}

    def create_user(
        self, full_name: str, email: str, password_hash: str
    ) -> UserRecord:
        if self.get_user_by_email(email):
            raise Conflict("User already exists")
        record = UserRecord(
            user_id=new_id(),
            full_name=full_name,
            email=email,
            password_hash=password_hash,
        )
        self.users[record.user_id] = record
        return replace(record)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        record = self.users.get(user_id)
        return replace(record) if record else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for record in self.users.values():
            if record.email == email:
                return replace(record)
        return None

    def create_story(self, story: StoryRecord) -> StoryRecord:
        self.stories[story.story_id] = replace(story)
        return replace(story)

    def get_story(self, story_id: str, owner_id: str) -> Optional[StoryRecord]:
        record = self.stories.get(story_id)
        if not record or record.owner_id != owner_id:
            return None
        return replace(record)

    def update_story(self, story: StoryRecord) -> StoryRecord:
        existing = self.stories.get(story.story_id)
        if not existing or existing.owner_id != story.owner_id:
            raise KeyError(story.story_id)
        self.stories[story.story_id] = replace(story)
        return replace(story)

    def delete_story(self, story_id: str, owner_id: str) -> bool:
        record = self.stories.get(story_id)
        if not record or record.owner_id != owner_id:
            return False
        del self.stories[story_id]
        return True

    def list_stories(
        self,
        owner_id: str,
        *,
        visited_from: Optional[datetime] = None,
        visited_to: Optional[datetime] = None,
    ) -> list[StoryRecord]:
        items: list[StoryRecord] = []
        for record in self.stories.values():
            if record.owner_id != owner_id:
                continue
            if visited_from and record.visited_date < visited_from:
                continue
            if visited_to and record.visited_date > visited_to:
                continue
            items.append(replace(record))
        items.sort(key=lambda s: s.created_at)
        return favourites_first(items)

    def find_stories_by_image(self, image_url: str) -> list[StoryRecord]:
        return [
            replace(record)
            for record in self.stories.values()
            if record.image_url == image_url
        ]

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.stories.clear()


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
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
        return UserRecord(
            user_id=row.user_id,
            full_name=row.full_name,
            email=row.email,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def _to_story_record(self, row: "StoryRow") -> StoryRecord:
        return StoryRecord(
            story_id=row.story_id,
            owner_id=row.owner_id,
            title=row.title,
            story=row.story,
            visited_location=list(row.visited_location or []),
            visited_date=_from_epoch(row.visited_date),
            image_url=row.image_url,
            is_favourite=bool(row.is_favourite),
            created_at=row.created_at,
        )

    def create_user(
        self, full_name: str, email: str, password_hash: str
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                user_id=new_id(),
                full_name=full_name,
                email=email,
                password_hash=password_hash,
                created_at=time.time(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise Conflict("User already exists")
            session.refresh(row)
            return self._to_user_record(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user_record(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(UserRow.email == email).limit(1)
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_user_record(row) if row else None

    def create_story(self, story: StoryRecord) -> StoryRecord:
        with self.Session() as session:
            row = StoryRow(
                story_id=story.story_id,
                owner_id=story.owner_id,
                title=story.title,
                story=story.story,
                visited_location=list(story.visited_location),
                visited_date=_to_epoch(story.visited_date),
                image_url=story.image_url,
                is_favourite=story.is_favourite,
                created_at=story.created_at,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_story_record(row)

    def _get_owned_row(
        self, session: Session, story_id: str, owner_id: str
    ) -> Optional["StoryRow"]:
        stmt = select(StoryRow).where(
            StoryRow.story_id == story_id, StoryRow.owner_id == owner_id
        )
        return session.execute(stmt).scalar_one_or_none()

    def get_story(self, story_id: str, owner_id: str) -> Optional[StoryRecord]:
        with self.Session() as session:
            row = self._get_owned_row(session, story_id, owner_id)
            return self._to_story_record(row) if row else None

    def update_story(self, story: StoryRecord) -> StoryRecord:
        with self.Session() as session:
            row = self._get_owned_row(session, story.story_id, story.owner_id)
            if not row:
                raise KeyError(story.story_id)
            row.title = story.title
            row.story = story.story
            row.visited_location = list(story.visited_location)
            row.visited_date = _to_epoch(story.visited_date)
            row.image_url = story.image_url
            row.is_favourite = story.is_favourite
            session.commit()
            session.refresh(row)
            return self._to_story_record(row)

    def delete_story(self, story_id: str, owner_id: str) -> bool:
        with self.Session() as session:
            row = self._get_owned_row(session, story_id, owner_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True

    def list_stories(
        self,
        owner_id: str,
        *,
        visited_from: Optional[datetime] = None,
        visited_to: Optional[datetime] = None,
    ) -> list[StoryRecord]:
        with self.Session() as session:
            stmt = select(StoryRow).where(StoryRow.owner_id == owner_id)
            if visited_from:
                stmt = stmt.where(StoryRow.visited_date >= _to_epoch(visited_from))
            if visited_to:
                stmt = stmt.where(StoryRow.visited_date <= _to_epoch(visited_to))
            stmt = stmt.order_by(
                StoryRow.is_favourite.desc(),
                StoryRow.created_at.asc(),
            )
            rows = session.execute(stmt).scalars().all()
            return [self._to_story_record(row) for row in rows]

    def find_stories_by_image(self, image_url: str) -> list[StoryRecord]:
        with self.Session() as session:
            stmt = select(StoryRow).where(StoryRow.image_url == image_url)
            rows = session.execute(stmt).scalars().all()
            return [self._to_story_record(row) for row in rows]


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    user_id = Column(String, primary_key=True)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class StoryRow(Base):
    __tablename__ = "travel_stories"

    story_id = Column(String, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    story = Column(Text, nullable=False)
    visited_location = Column(JSON, nullable=False)
    visited_date = Column(Float, nullable=False, index=True)
    image_url = Column(String, nullable=False, index=True)
    is_favourite = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)
