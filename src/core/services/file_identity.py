"""
FileIdentityService - Content-hash duplicate classification.

Decides whether a download is the first occurrence of its content hash for
a user ("new") or a repeat ("duplicate"), and records the event.

Key behaviors:
- Lookup: read the identity for (user, hash)
- Insert: create identity + "new" event in one unit of work
- Conflict: a concurrent insert won the race; roll back, reread, and
  record a "duplicate" event against the winner
- The identity's metadata is authoritative; a duplicate's metadata is
  discarded apart from the event itself

Invariants:
- I1: exactly one "new" event per (user, hash), whatever the interleaving
- I2: identity creation and its "new" event apply together or not at all
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from src.core.errors import (
    ConflictError,
    StoreUnavailableError,
    ValidationError,
    require_user,
)
from src.core.ports.db import AnalyticsStorePort
from src.core.ports.time import TimePort
from src.core.services.file_metadata import (
    extract_domain,
    get_file_category,
    get_file_extension,
    normalize_category,
)
from src.domain.entities import DownloadEvent, DownloadStatus, FileIdentity

logger = logging.getLogger(__name__)


# --- Input / Result Models ---


@dataclass(frozen=True)
class DownloadMetadata:
    """Metadata reported with a download."""

    filename: str
    url: str
    size: int | None = None
    file_extension: str | None = None
    mime_type: str | None = None
    source_domain: str | None = None
    file_category: str | None = None
    duration: float | None = None
    downloaded_at: datetime | None = None


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classify_and_record."""

    status: DownloadStatus
    file_identity: FileIdentity
    event: DownloadEvent
    conflict_recovered: bool = False

    @property
    def is_duplicate(self) -> bool:
        return self.status == "duplicate"


# --- Validation ---


def _require_text(value: str | None, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError("is required", field_name=field_name)
    return str(value).strip()


def validate_metadata(content_hash: str | None, metadata: DownloadMetadata) -> str:
    """Validate required fields and numeric bounds. Returns the stripped hash."""
    cleaned_hash = _require_text(content_hash, "hash")
    _require_text(metadata.filename, "filename")
    _require_text(metadata.url, "url")

    if metadata.size is not None and metadata.size < 0:
        raise ValidationError("must be >= 0", field_name="size")
    if metadata.duration is not None and metadata.duration < 0:
        raise ValidationError("must be >= 0", field_name="duration")
    if metadata.file_category is not None and normalize_category(metadata.file_category) is None:
        raise ValidationError(
            f"unknown category '{metadata.file_category}'", field_name="file_category"
        )
    return cleaned_hash


def build_identity(
    user_id: str, content_hash: str, metadata: DownloadMetadata, first_seen: datetime
) -> FileIdentity:
    """Build the first-seen record, deriving metadata the client left out."""
    extension = (metadata.file_extension or "").strip().lower().lstrip(".") or None
    if extension is None:
        extension = get_file_extension(metadata.filename.strip())

    domain = (metadata.source_domain or "").strip().lower() or None
    if domain is None:
        domain = extract_domain(metadata.url.strip())

    category = normalize_category(metadata.file_category)
    if category is None:
        category = get_file_category(extension, metadata.mime_type)

    return FileIdentity(
        user_id=user_id,
        hash=content_hash,
        filename=metadata.filename.strip(),
        url=metadata.url.strip(),
        size=metadata.size,
        file_extension=extension,
        file_category=category,  # type: ignore[arg-type]
        mime_type=metadata.mime_type,
        source_domain=domain,
        first_downloaded_at=first_seen,
    )


# --- Service ---


class FileIdentityService:
    """
    Duplicate classification over an injected store.

    The (user, hash) uniqueness constraint of the store serializes
    concurrent first downloads of the same content.
    """

    def __init__(
        self,
        store: AnalyticsStorePort,
        time_port: TimePort,
        max_conflict_retries: int = 3,
    ) -> None:
        self._store = store
        self._time = time_port
        self._max_retries = max_conflict_retries

    def classify_and_record(
        self,
        user_id: str,
        content_hash: str,
        metadata: DownloadMetadata,
    ) -> ClassificationResult:
        """Classify a download as new or duplicate and record the event."""
        user_id = require_user(user_id)
        content_hash = validate_metadata(content_hash, metadata)
        # naive downloaded_at is local wall-clock time
        downloaded_at = self._time.to_utc(metadata.downloaded_at or self._time.now_utc())

        conflicted = False
        for attempt in range(self._max_retries + 1):
            with self._store.unit_of_work() as uow:
                existing = uow.files.get_by_hash(user_id, content_hash)
                if existing is not None:
                    event = uow.download_events.append(
                        DownloadEvent(
                            user_id=user_id,
                            file_id=existing.id,
                            status="duplicate",
                            duration=metadata.duration,
                            downloaded_at=downloaded_at,
                        )
                    )
                    uow.commit()
                    logger.debug("Duplicate download for user %s (file %s)", user_id, existing.id)
                    return ClassificationResult("duplicate", existing, event, conflicted)

                identity = build_identity(user_id, content_hash, metadata, downloaded_at)
                try:
                    uow.files.insert(identity)
                    event = uow.download_events.append(
                        DownloadEvent(
                            user_id=user_id,
                            file_id=identity.id,
                            status="new",
                            duration=metadata.duration,
                            downloaded_at=downloaded_at,
                        )
                    )
                    uow.commit()
                except ConflictError:
                    uow.rollback()
                    conflicted = True
                    logger.info(
                        "Concurrent first download for user %s; rereading (attempt %d)",
                        user_id,
                        attempt + 1,
                    )
                    continue

                logger.debug("New file %s recorded for user %s", identity.id, user_id)
                return ClassificationResult("new", identity, event, conflicted)

        raise StoreUnavailableError(
            f"Could not classify download after {self._max_retries + 1} attempts"
        )
