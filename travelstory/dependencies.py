"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from datetime import timedelta

from travelstory.config import get_settings
from travelstory.db import DbClient, InMemoryDbClient, PostgresDbClient
from travelstory.errors import ConfigurationError
from travelstory.security import PasswordHasher, TokenCodec
from travelstory.services import AccountService, StoryService
from travelstory.storage import (
    CosStorageClient,
    InMemoryStorageClient,
    LocalStorageClient,
    StorageClient,
)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_token_codec: TokenCodec | None = None
_password_hasher: PasswordHasher | None = None
_account_service: AccountService | None = None
_story_service: StoryService | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so users and stories persist across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _storage_client = InMemoryStorageClient(base_url=settings.uploads_base_url)
    elif settings.cos_bucket:
        _storage_client = CosStorageClient(
            bucket=settings.cos_bucket,
            region=settings.cos_region or "",
            endpoint=settings.cos_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
            public_url=settings.cos_public_url or "",
        )
    else:
        _storage_client = LocalStorageClient(
            root_dir=settings.uploads_dir, base_url=settings.uploads_base_url
        )
    return _storage_client


def get_token_codec() -> TokenCodec:
    global _token_codec
    if _token_codec:
        return _token_codec

    settings = get_settings()
    if settings.access_token_secret is None:
        raise ConfigurationError("ACCESS_TOKEN_SECRET is required")
    _token_codec = TokenCodec(
        secret=settings.access_token_secret.get_secret_value(),
        algorithm=settings.access_token_algorithm,
        ttl=timedelta(hours=settings.access_token_ttl_hours),
    )
    return _token_codec


def get_password_hasher() -> PasswordHasher:
    global _password_hasher
    if _password_hasher:
        return _password_hasher
    _password_hasher = PasswordHasher(rounds=get_settings().password_hash_rounds)
    return _password_hasher


def get_account_service() -> AccountService:
    global _account_service
    if _account_service:
        return _account_service
    _account_service = AccountService(
        db=get_db_client(),
        hasher=get_password_hasher(),
        tokens=get_token_codec(),
    )
    return _account_service


def get_story_service() -> StoryService:
    global _story_service
    if _story_service:
        return _story_service
    settings = get_settings()
    _story_service = StoryService(
        db=get_db_client(),
        storage=get_storage_client(),
        placeholder_image_url=settings.placeholder_image_url,
        max_upload_bytes=settings.max_upload_bytes,
    )
    return _story_service


def reset_dependencies() -> None:
    """Drop every singleton so the next request rebuilds from settings."""
    global _db_client, _storage_client, _token_codec
    global _password_hasher, _account_service, _story_service
    _db_client = None
    _storage_client = None
    _token_codec = None
    _password_hasher = None
    _account_service = None
    _story_service = None
    get_settings.cache_clear()
