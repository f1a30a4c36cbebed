"""Persist sealed archives and issue time-bounded links to them.

A link is only ever issued for an object this publisher uploaded, or one
that already exists in the destination bucket.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import BaseModel

from bundler.services.archive import SealedArchive
from bundler.services.errors import ConfigError, PersistError, PublishError
from bundler.services.minio import FETCH_EXCEPTIONS, ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_LINK_TTL = timedelta(minutes=5)

# S3 presigned URLs are valid for at most 7 days
MIN_LINK_TTL = timedelta(seconds=1)
MAX_LINK_TTL = timedelta(days=7)

ARCHIVE_CONTENT_TYPE = "application/zip"


class AccessLink(BaseModel):
    """A presigned link to a persisted archive."""

    url: str
    expires_at: datetime
    bucket: str
    object_name: str
    ttl_seconds: int


def validate_ttl(ttl: timedelta) -> timedelta:
    """Check a link TTL is within what presigned URLs allow.

    Raises:
        ConfigError: If the TTL is out of range
    """
    if not MIN_LINK_TTL <= ttl <= MAX_LINK_TTL:
        raise ConfigError(
            f"Invalid link TTL: {int(ttl.total_seconds())}s. Must be between 1s and 7 days"
        )
    return ttl


class AccessPublisher:
    """Uploads archives to the destination bucket and presigns GET links."""

    def __init__(
        self,
        store: ObjectStore,
        ttl: timedelta = DEFAULT_LINK_TTL,
        key_prefix: str = "",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """Initialize publisher.

        Args:
            store: Client bound to the destination bucket
            ttl: Default link validity window
            key_prefix: Prefix prepended to archive names when uploading
            clock: Source of "now" for expiry timestamps
        """
        self.store = store
        self.ttl = validate_ttl(ttl)
        self.key_prefix = key_prefix
        self._clock = clock
        self._persisted: set[str] = set()

    def object_name_for(self, archive: SealedArchive) -> str:
        """Object key an archive is stored under."""
        return f"{self.key_prefix}{archive.name}"

    def persist(self, archive: SealedArchive, object_name: Optional[str] = None) -> str:
        """Upload a sealed archive as a single object.

        Args:
            archive: Sealed archive to upload
            object_name: Override the object key

        Returns:
            Object key the archive was stored under

        Raises:
            PersistError: If the upload fails
        """
        name = object_name or self.object_name_for(archive)
        try:
            self.store.put_file(name, archive.path, content_type=ARCHIVE_CONTENT_TYPE)
        except FETCH_EXCEPTIONS as e:
            raise PersistError(f"Cannot upload {archive.path} to {self.store.bucket}/{name}: {e}") from e

        self._persisted.add(name)
        logger.info(f"Uploaded {archive.name} to {self.store.bucket}/{name} ({archive.size_bytes} bytes)")
        return name

    def issue_link(self, object_name: str, ttl: Optional[timedelta] = None) -> AccessLink:
        """Presign a GET link for a persisted archive.

        Args:
            object_name: Object key in the destination bucket
            ttl: Validity window (publisher default if None)

        Returns:
            AccessLink with URL and expiry

        Raises:
            PublishError: If the object was never persisted, or presigning fails
            ConfigError: If the TTL is out of range
        """
        ttl = validate_ttl(ttl) if ttl is not None else self.ttl
        try:
            if object_name not in self._persisted and not self.store.exists(object_name):
                raise PublishError(f"No persisted archive {self.store.bucket}/{object_name}")
            issued_at = self._clock()
            url = self.store.presign_get(object_name, expires=ttl)
        except FETCH_EXCEPTIONS as e:
            raise PublishError(f"Cannot presign {self.store.bucket}/{object_name}: {e}") from e

        return AccessLink(
            url=url,
            expires_at=issued_at + ttl,
            bucket=self.store.bucket,
            object_name=object_name,
            ttl_seconds=int(ttl.total_seconds()),
        )
