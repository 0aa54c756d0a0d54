"""
Account and travel-story operations.

Services validate their inputs and scope every story query to the calling
owner. Storage collaborators are injected at construction time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from travelstory.db import (
    DbClient,
    StoryRecord,
    UserRecord,
    favourites_first,
    new_id,
)
from travelstory.errors import (
    Conflict,
    InvalidCredentials,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from travelstory.security import PasswordHasher, TokenCodec
from travelstory.storage import StorageClient

logger = logging.getLogger(__name__)

ALL_FIELDS_REQUIRED = "All fields are required."


@dataclass
class AuthResult:
    user: UserRecord
    access_token: str


@dataclass
class UploadedImage:
    data: bytes
    filename: str
    content_type: Optional[str] = None


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_epoch_millis(value: Any, field_name: str = "visitedDate") -> datetime:
    """Convert epoch milliseconds (int or integer string) to a UTC datetime."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text.lstrip("-").isdigit():
            raise ValidationError(f"Invalid {field_name}")
        value = int(text)
    if not isinstance(value, int):
        raise ValidationError(f"Invalid {field_name}")
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise ValidationError(f"Invalid {field_name}")


def parse_locations(value: Any) -> list[str]:
    """
    Accept a list of tags or a comma-separated string; drop blanks.

    A lone string is always split on commas, since the web client joins its
    tag array into one form value. Send repeated fields (or a JSON array) to
    keep a tag such as "Washington, D.C." whole.
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts: Iterable[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = value
    else:
        raise ValidationError("visitedLocation must be a list or a string")
    return [str(part).strip() for part in parts if str(part).strip()]


def matches_query(story: StoryRecord, query: str) -> bool:
    needle = query.casefold()
    if needle in story.title.casefold() or needle in story.story.casefold():
        return True
    return any(needle in tag.casefold() for tag in story.visited_location)


class AccountService:
    def __init__(self, db: DbClient, hasher: PasswordHasher, tokens: TokenCodec):
        self.db = db
        self.hasher = hasher
        self.tokens = tokens

    def register(self, full_name: Any, email: Any, password: Any) -> AuthResult:
        full_name, email = _clean(full_name), _clean(email)
        password = "" if password is None else str(password)
        if not full_name or not email or not password:
            raise ValidationError("All fields are required")
        if self.db.get_user_by_email(email):
            raise Conflict("User already exists")

        password_hash = self.hasher.hash(password)
        user = self.db.create_user(full_name, email, password_hash)
        logger.info("Registered user %s", user.user_id)
        return AuthResult(user=user, access_token=self.tokens.issue(user.user_id))

    def login(self, email: Any, password: Any) -> AuthResult:
        email = _clean(email)
        password = "" if password is None else str(password)
        if not email or not password:
            raise ValidationError("Email and Password are required")

        user = self.db.get_user_by_email(email)
        if not user:
            raise NotFound("User not found")
        if not self.hasher.verify(password, user.password_hash):
            raise InvalidCredentials("Invalid password")
        return AuthResult(user=user, access_token=self.tokens.issue(user.user_id))

    def get_current_user(self, user_id: str) -> UserRecord:
        user = self.db.get_user(user_id)
        if not user:
            raise Unauthenticated("User no longer exists")
        return user


class StoryService:
    def __init__(
        self,
        db: DbClient,
        storage: StorageClient,
        *,
        placeholder_image_url: str,
        max_upload_bytes: int = 10 * 1024 * 1024,
    ):
        self.db = db
        self.storage = storage
        self.placeholder_image_url = placeholder_image_url
        self.max_upload_bytes = max_upload_bytes

    def _store_image(self, image: UploadedImage) -> str:
        if image.content_type and not image.content_type.startswith("image/"):
            raise ValidationError("Only images are allowed")
        if not image.data:
            raise ValidationError("Uploaded image is empty")
        if len(image.data) > self.max_upload_bytes:
            raise ValidationError("Uploaded image is too large")
        return self.storage.save_image(image.data, image.filename)

    def _require_owned(self, story_id: str, owner_id: str) -> StoryRecord:
        story = self.db.get_story(story_id, owner_id)
        if not story:
            raise NotFound("Travel story not found")
        return story

    def add_story(
        self,
        owner_id: str,
        *,
        title: Any,
        story: Any,
        visited_location: Any,
        visited_date: Any,
        image: Optional[UploadedImage],
    ) -> StoryRecord:
        title, text = _clean(title), _clean(story)
        locations = parse_locations(visited_location)
        if (
            not title
            or not text
            or not locations
            or visited_date in (None, "")
            or image is None
        ):
            raise ValidationError(ALL_FIELDS_REQUIRED)
        visited_at = parse_epoch_millis(visited_date)

        image_url = self._store_image(image)
        record = StoryRecord(
            story_id=new_id(),
            owner_id=owner_id,
            title=title,
            story=text,
            visited_location=locations,
            visited_date=visited_at,
            image_url=image_url,
        )
        try:
            created = self.db.create_story(record)
        except Exception:
            self._discard_image(image_url)
            raise
        logger.info("Created story %s for %s", created.story_id, owner_id)
        return created

    def list_stories(self, owner_id: str) -> list[StoryRecord]:
        return self.db.list_stories(owner_id)

    def edit_story(
        self,
        story_id: str,
        owner_id: str,
        *,
        title: Any,
        story: Any,
        visited_location: Any,
        visited_date: Any,
        image_url: Any = None,
    ) -> StoryRecord:
        title, text = _clean(title), _clean(story)
        locations = parse_locations(visited_location)
        if not title or not text or not locations or visited_date in (None, ""):
            raise ValidationError(ALL_FIELDS_REQUIRED)
        visited_at = parse_epoch_millis(visited_date)

        existing = self._require_owned(story_id, owner_id)
        image_url = _clean(image_url) or self.placeholder_image_url
        if image_url not in (existing.image_url, self.placeholder_image_url):
            self._require_image_not_foreign(image_url, owner_id)
        updated = replace(
            existing,
            title=title,
            story=text,
            visited_location=locations,
            visited_date=visited_at,
            image_url=image_url,
        )
        return self.db.update_story(updated)

    def delete_story(self, story_id: str, owner_id: str) -> StoryRecord:
        story = self._require_owned(story_id, owner_id)
        if not self.db.delete_story(story_id, owner_id):
            raise NotFound("Travel story not found")
        logger.info("Deleted story %s for %s", story_id, owner_id)
        if not self.db.find_stories_by_image(story.image_url):
            self._discard_image(story.image_url)
        return story

    def _require_image_not_foreign(self, image_url: str, owner_id: str) -> None:
        stories = self.db.find_stories_by_image(image_url)
        if any(s.owner_id != owner_id for s in stories):
            raise NotFound("Image not found")

    def _discard_image(self, image_url: str) -> None:
        # The record is authoritative; blob cleanup only logs on failure.
        try:
            self.storage.delete_image(image_url)
        except Exception:
            logger.warning("Failed to delete image %s", image_url, exc_info=True)

    def set_favourite(
        self, story_id: str, owner_id: str, is_favourite: Any
    ) -> StoryRecord:
        if not isinstance(is_favourite, bool):
            raise ValidationError("isFavourite must be true or false")
        story = self._require_owned(story_id, owner_id)
        return self.db.update_story(replace(story, is_favourite=is_favourite))

    def search(self, owner_id: str, query: Any) -> list[StoryRecord]:
        query = _clean(query)
        if not query:
            raise ValidationError("query is required")
        stories = self.db.list_stories(owner_id)
        return favourites_first([s for s in stories if matches_query(s, query)])

    def filter_by_date_range(
        self, owner_id: str, start: Any = None, end: Any = None
    ) -> list[StoryRecord]:
        visited_from = (
            parse_epoch_millis(start, "startDate") if start not in (None, "") else None
        )
        visited_to = (
            parse_epoch_millis(end, "endDate") if end not in (None, "") else None
        )
        return self.db.list_stories(
            owner_id, visited_from=visited_from, visited_to=visited_to
        )

    def delete_image(self, owner_id: str, image_url: Any) -> bool:
        """
        Remove an uploaded image unless it belongs to another user's story.
        Returns False when there was no such blob.
        """
        image_url = _clean(image_url)
        if not image_url:
            raise ValidationError("ImageUrl parameter is required")
        self._require_image_not_foreign(image_url, owner_id)
        return self.storage.delete_image(image_url)
