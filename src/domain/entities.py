from datetime import UTC, datetime
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
DownloadStatus = Literal["new", "duplicate"]
FileCategory = Literal[
    "document", "image", "video", "audio", "archive", "code", "executable", "other"
]

FILE_CATEGORIES: tuple[str, ...] = (
    "document",
    "image",
    "video",
    "audio",
    "archive",
    "code",
    "executable",
    "other",
)


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Downloads ---

class FileIdentity(BaseModel):
    """First-seen record of a content hash for one user. Never mutated."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    hash: str
    filename: str
    url: str
    size: int | None = None
    file_extension: str | None = None
    file_category: FileCategory = "other"
    mime_type: str | None = None
    source_domain: str | None = None
    first_downloaded_at: datetime = Field(default_factory=utc_now)

class DownloadEvent(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    file_id: UUID
    status: DownloadStatus
    duration: float | None = None
    downloaded_at: datetime = Field(default_factory=utc_now)
    seq: int = 0  # insertion order, assigned by the store

class DownloadRecord(BaseModel):
    """A download event joined with its file identity."""

    event_id: UUID
    file_id: UUID
    user_id: str
    status: DownloadStatus
    duration: float | None = None
    downloaded_at: datetime
    seq: int = 0
    hash: str
    filename: str
    url: str
    size: int | None = None
    file_extension: str | None = None
    file_category: FileCategory = "other"
    mime_type: str | None = None
    source_domain: str | None = None
    first_downloaded_at: datetime

    @property
    def size_or_zero(self) -> int:
        return self.size or 0

    @classmethod
    def join(cls, event: DownloadEvent, identity: FileIdentity) -> "DownloadRecord":
        return cls(
            event_id=event.id,
            file_id=identity.id,
            user_id=event.user_id,
            status=event.status,
            duration=event.duration,
            downloaded_at=event.downloaded_at,
            seq=event.seq,
            hash=identity.hash,
            filename=identity.filename,
            url=identity.url,
            size=identity.size,
            file_extension=identity.file_extension,
            file_category=identity.file_category,
            mime_type=identity.mime_type,
            source_domain=identity.source_domain,
            first_downloaded_at=identity.first_downloaded_at,
        )

# --- Browsing ---

class BrowsingDomain(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    domain: str
    created_at: datetime = Field(default_factory=utc_now)

class BrowsingVisit(BaseModel):
    """
    One continuous visit interval.

    duration_seconds is caller-supplied and is not derived from
    end_time - start_time.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    domain_id: UUID
    start_time: datetime
    end_time: datetime
    duration_seconds: float = Field(gt=0)
    click_link_count: int = Field(default=0, ge=0)
    click_button_count: int = Field(default=0, ge=0)
    click_other_count: int = Field(default=0, ge=0)
    scroll_count: int = Field(default=0, ge=0)
    key_event_count: int = Field(default=0, ge=0)
    seq: int = 0

class VisitRecord(BaseModel):
    """A browsing visit joined with its domain string."""

    visit_id: UUID
    domain_id: UUID
    user_id: str
    domain: str
    start_time: datetime
    end_time: datetime
    duration_seconds: float
    click_link_count: int = 0
    click_button_count: int = 0
    click_other_count: int = 0
    scroll_count: int = 0
    key_event_count: int = 0
    seq: int = 0

    @classmethod
    def join(cls, visit: BrowsingVisit, domain: BrowsingDomain) -> "VisitRecord":
        return cls(
            visit_id=visit.id,
            domain_id=domain.id,
            user_id=visit.user_id,
            domain=domain.domain,
            start_time=visit.start_time,
            end_time=visit.end_time,
            duration_seconds=visit.duration_seconds,
            click_link_count=visit.click_link_count,
            click_button_count=visit.click_button_count,
            click_other_count=visit.click_other_count,
            scroll_count=visit.scroll_count,
            key_event_count=visit.key_event_count,
            seq=visit.seq,
        )
