"""
Blob storage for story images: local disk, S3-compatible (Tencent COS) and in-memory.
"""

from __future__ import annotations

import mimetypes
import os
import posixpath
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


class StorageClient(Protocol):
    """Defines the operations the API needs from image storage."""

    def save_image(self, data: bytes, filename: str) -> str:
        """Store the bytes under a fresh name and return the public URL."""
        ...

    def delete_image(self, url: str) -> bool:
        """Remove the blob behind ``url``; False when there is nothing to remove."""
        ...


def make_blob_name(filename: str) -> str:
    """Upload-time based name that keeps the original extension."""
    ext = os.path.splitext(filename or "")[1].lower()
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


def key_from_url(url: str, base_url: str) -> Optional[str]:
    """
    Return the blob key for a URL issued under ``base_url``, or None for
    foreign URLs (placeholders, other hosts) and anything that escapes the
    upload prefix.
    """
    if not url:
        return None
    parsed = urlparse(url)
    base = urlparse(base_url.rstrip("/"))
    if parsed.netloc != base.netloc:
        return None
    prefix = base.path.rstrip("/") + "/"
    if not parsed.path.startswith(prefix):
        return None
    key = parsed.path[len(prefix):]
    if not key or key != posixpath.basename(key) or key in (".", ".."):
        return None
    return key


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "http://localhost:8000/uploads"
    stored_objects: dict = field(default_factory=dict)

    def save_image(self, data: bytes, filename: str) -> str:
        key = make_blob_name(filename)
        self.stored_objects[key] = bytes(data)
        return f"{self.base_url.rstrip('/')}/{key}"

    def delete_image(self, url: str) -> bool:
        key = key_from_url(url, self.base_url)
        if key is None or key not in self.stored_objects:
            return False
        del self.stored_objects[key]
        return True


@dataclass
class LocalStorageClient:
    """
    Stores images in a directory the app serves statically at ``/uploads``.
    """

    root_dir: str
    base_url: str

    def __post_init__(self):
        self._root = Path(self.root_dir)
        self._root.mkdir(parents=True, exist_ok=True)

    def save_image(self, data: bytes, filename: str) -> str:
        key = make_blob_name(filename)
        (self._root / key).write_bytes(data)
        return f"{self.base_url.rstrip('/')}/{key}"

    def delete_image(self, url: str) -> bool:
        key = key_from_url(url, self.base_url)
        if key is None:
            return False
        try:
            (self._root / key).unlink()
        except FileNotFoundError:
            return False
        return True


@dataclass
class CosStorageClient:
    """
    S3-compatible storage client for Tencent COS.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_url: str = ""
    prefix: str = "uploads"

    def __post_init__(self):
        # Use virtual-hosted style addressing to satisfy COS requirements.
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )
        if not self.public_url:
            self.public_url = f"{self.endpoint.rstrip('/')}/{self.bucket}"

    @property
    def base_url(self) -> str:
        return f"{self.public_url.rstrip('/')}/{self.prefix}"

    def save_image(self, data: bytes, filename: str) -> str:
        key = make_blob_name(filename)
        content_type = mimetypes.guess_type(filename or "")[0]
        self._client.put_object(
            Bucket=self.bucket,
            Key=f"{self.prefix}/{key}",
            Body=data,
            ContentType=content_type or "application/octet-stream",
        )
        return f"{self.base_url}/{key}"

    def delete_image(self, url: str) -> bool:
        key = key_from_url(url, self.base_url)
        if key is None:
            return False
        object_key = f"{self.prefix}/{key}"
        try:
            self._client.head_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        self._client.delete_object(Bucket=self.bucket, Key=object_key)
        return True
