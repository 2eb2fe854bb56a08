"""
SQLite analytics store.

Implements the analytics storage ports using SQLite.
Designed to be Postgres-compatible (uses standard SQL patterns).

Key behaviors:
- Timestamps are stored as UTC ISO-8601 text so range filters compare lexically
- UNIQUE (user_id, hash) / (user_id, domain) violations raise ConflictError
- Statements running past query_timeout_ms are interrupted (QueryTimeoutError)
- Other driver failures surface as StoreUnavailableError
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from src.core.errors import ConflictError, QueryTimeoutError, StoreUnavailableError
from src.domain.entities import (
    BrowsingDomain,
    BrowsingVisit,
    DownloadEvent,
    DownloadRecord,
    FileIdentity,
    VisitRecord,
)

logger = logging.getLogger(__name__)

# Progress handler granularity, in SQLite VM instructions
PROGRESS_STEPS = 1000

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime) -> str:
    """Serialize as fixed-width UTC ISO text."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str) -> datetime:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s)


def _range_clause(
    column: str, start: datetime | None, end: datetime | None
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    if start is not None:
        clauses.append(f"{column} >= ?")
        params.append(format_dt(start))
    if end is not None:
        clauses.append(f"{column} < ?")
        params.append(format_dt(end))
    return "".join(f" AND {c}" for c in clauses), params


# -----------------------------------------------------------------------------
# Query guard
# -----------------------------------------------------------------------------


class QueryGuard:
    """Interrupts statements that run longer than timeout_ms."""

    def __init__(self, timeout_ms: int | None) -> None:
        self.timeout_ms = timeout_ms
        self._deadline: float | None = None

    def install(self, conn: sqlite3.Connection) -> None:
        if self.timeout_ms:
            conn.set_progress_handler(self._check, PROGRESS_STEPS)

    def _check(self) -> int:
        if self._deadline is not None and time.monotonic() > self._deadline:
            return 1
        return 0

    @contextmanager
    def statement(self, entity: str) -> Iterator[None]:
        """Arm the deadline and translate driver errors."""
        if self.timeout_ms:
            self._deadline = time.monotonic() + self.timeout_ms / 1000
        try:
            yield
        except sqlite3.IntegrityError as e:
            if "UNIQUE" not in str(e):
                raise StoreUnavailableError(f"{entity}: {e}") from e
            raise ConflictError(entity, (str(e),)) from e
        except sqlite3.OperationalError as e:
            if "interrupted" in str(e):
                logger.warning("Query on %s exceeded %s ms", entity, self.timeout_ms)
                raise QueryTimeoutError(f"{entity}: query exceeded {self.timeout_ms} ms") from e
            raise StoreUnavailableError(f"{entity}: {e}") from e
        except sqlite3.DatabaseError as e:
            raise StoreUnavailableError(f"{entity}: {e}") from e
        finally:
            self._deadline = None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories bound to a unit of work connection."""

    entity = "record"

    def __init__(self, connection: sqlite3.Connection, guard: QueryGuard):
        self._conn = connection
        self._guard = guard

    def _fetchone(self, sql: str, params: Sequence[Any]) -> dict[str, Any] | None:
        with self._guard.statement(self.entity):
            row: dict[str, Any] | None = self._conn.execute(sql, params).fetchone()
        return row

    def _fetchall(self, sql: str, params: Sequence[Any]) -> list[dict[str, Any]]:
        with self._guard.statement(self.entity):
            rows: list[dict[str, Any]] = self._conn.execute(sql, params).fetchall()
        return rows

    def _execute(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        with self._guard.statement(self.entity):
            return self._conn.execute(sql, params)


# -----------------------------------------------------------------------------
# File identities
# -----------------------------------------------------------------------------


class SQLiteFileIdentityRepo(SQLiteRepoBase):
    entity = "file_identity"

    def _row_to_entity(self, row: dict[str, Any]) -> FileIdentity:
        return FileIdentity(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            hash=row["hash"],
            filename=row["filename"],
            url=row["url"],
            size=row["size"],
            file_extension=row["file_extension"],
            file_category=row["file_category"],
            mime_type=row["mime_type"],
            source_domain=row["source_domain"],
            first_downloaded_at=parse_dt(row["first_downloaded_at"]),
        )

    def get_by_hash(self, user_id: str, content_hash: str) -> FileIdentity | None:
        row = self._fetchone(
            "SELECT * FROM file_identities WHERE user_id = ? AND hash = ?",
            (user_id, content_hash),
        )
        return self._row_to_entity(row) if row else None

    def get_by_id(self, user_id: str, file_id: UUID) -> FileIdentity | None:
        row = self._fetchone(
            "SELECT * FROM file_identities WHERE user_id = ? AND id = ?",
            (user_id, str(file_id)),
        )
        return self._row_to_entity(row) if row else None

    def insert(self, identity: FileIdentity) -> FileIdentity:
        try:
            self._execute(
                """
                INSERT INTO file_identities (
                    id, user_id, hash, filename, url, size, file_extension,
                    file_category, mime_type, source_domain, first_downloaded_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(identity.id),
                    identity.user_id,
                    identity.hash,
                    identity.filename,
                    identity.url,
                    identity.size,
                    identity.file_extension,
                    identity.file_category,
                    identity.mime_type,
                    identity.source_domain,
                    format_dt(identity.first_downloaded_at),
                ),
            )
        except ConflictError as e:
            raise ConflictError(self.entity, (identity.user_id, identity.hash)) from e
        return identity


# -----------------------------------------------------------------------------
# Download events
# -----------------------------------------------------------------------------

_RECORD_SELECT = """
    SELECT e.seq, e.id AS event_id, e.user_id, e.file_id, e.status, e.duration,
           e.downloaded_at, f.hash, f.filename, f.url, f.size, f.file_extension,
           f.file_category, f.mime_type, f.source_domain, f.first_downloaded_at
    FROM download_events e
    JOIN file_identities f ON f.id = e.file_id
"""


class SQLiteDownloadEventRepo(SQLiteRepoBase):
    entity = "download_event"

    def _row_to_record(self, row: dict[str, Any]) -> DownloadRecord:
        return DownloadRecord(
            event_id=UUID(row["event_id"]),
            file_id=UUID(row["file_id"]),
            user_id=row["user_id"],
            status=row["status"],
            duration=row["duration"],
            downloaded_at=parse_dt(row["downloaded_at"]),
            seq=row["seq"],
            hash=row["hash"],
            filename=row["filename"],
            url=row["url"],
            size=row["size"],
            file_extension=row["file_extension"],
            file_category=row["file_category"],
            mime_type=row["mime_type"],
            source_domain=row["source_domain"],
            first_downloaded_at=parse_dt(row["first_downloaded_at"]),
        )

    def append(self, event: DownloadEvent) -> DownloadEvent:
        cursor = self._execute(
            """
            INSERT INTO download_events (id, user_id, file_id, status, duration, downloaded_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                str(event.id),
                event.user_id,
                str(event.file_id),
                event.status,
                event.duration,
                format_dt(event.downloaded_at),
            ),
        )
        return event.model_copy(update={"seq": cursor.lastrowid})

    def get_record(self, user_id: str, event_id: UUID) -> DownloadRecord | None:
        row = self._fetchone(
            _RECORD_SELECT + " WHERE e.user_id = ? AND e.id = ?",
            (user_id, str(event_id)),
        )
        return self._row_to_record(row) if row else None

    def list_records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DownloadRecord]:
        clause, params = _range_clause("e.downloaded_at", start, end)
        rows = self._fetchall(
            _RECORD_SELECT + " WHERE e.user_id = ?" + clause + " ORDER BY e.downloaded_at, e.seq",
            [user_id, *params],
        )
        return [self._row_to_record(row) for row in rows]


# -----------------------------------------------------------------------------
# Browsing domains
# -----------------------------------------------------------------------------


class SQLiteBrowsingDomainRepo(SQLiteRepoBase):
    entity = "browsing_domain"

    def get_by_domain(self, user_id: str, domain: str) -> BrowsingDomain | None:
        row = self._fetchone(
            "SELECT * FROM browsing_domains WHERE user_id = ? AND domain = ?",
            (user_id, domain),
        )
        if not row:
            return None
        return BrowsingDomain(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            domain=row["domain"],
            created_at=parse_dt(row["created_at"]),
        )

    def insert(self, domain: BrowsingDomain) -> BrowsingDomain:
        try:
            self._execute(
                "INSERT INTO browsing_domains (id, user_id, domain, created_at) "
                "VALUES (?, ?, ?, ?)",
                (str(domain.id), domain.user_id, domain.domain, format_dt(domain.created_at)),
            )
        except ConflictError as e:
            raise ConflictError(self.entity, (domain.user_id, domain.domain)) from e
        return domain


# -----------------------------------------------------------------------------
# Browsing visits
# -----------------------------------------------------------------------------


class SQLiteBrowsingVisitRepo(SQLiteRepoBase):
    entity = "browsing_visit"

    def append_many(self, visits: Sequence[BrowsingVisit]) -> int:
        if not visits:
            return 0
        with self._guard.statement(self.entity):
            self._conn.executemany(
                """
                INSERT INTO browsing_visits (
                    id, user_id, domain_id, start_time, end_time, duration_seconds,
                    click_link_count, click_button_count, click_other_count,
                    scroll_count, key_event_count
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(v.id),
                        v.user_id,
                        str(v.domain_id),
                        format_dt(v.start_time),
                        format_dt(v.end_time),
                        v.duration_seconds,
                        v.click_link_count,
                        v.click_button_count,
                        v.click_other_count,
                        v.scroll_count,
                        v.key_event_count,
                    )
                    for v in visits
                ],
            )
        return len(visits)

    def list_records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VisitRecord]:
        clause, params = _range_clause("v.start_time", start, end)
        rows = self._fetchall(
            """
            SELECT v.*, d.domain
            FROM browsing_visits v
            JOIN browsing_domains d ON d.id = v.domain_id
            WHERE v.user_id = ?
            """
            + clause
            + " ORDER BY v.start_time, v.seq",
            [user_id, *params],
        )
        return [
            VisitRecord(
                visit_id=UUID(row["id"]),
                domain_id=UUID(row["domain_id"]),
                user_id=row["user_id"],
                domain=row["domain"],
                start_time=parse_dt(row["start_time"]),
                end_time=parse_dt(row["end_time"]),
                duration_seconds=row["duration_seconds"],
                click_link_count=row["click_link_count"],
                click_button_count=row["click_button_count"],
                click_other_count=row["click_other_count"],
                scroll_count=row["scroll_count"],
                key_event_count=row["key_event_count"],
                seq=row["seq"],
            )
            for row in rows
        ]


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Provides transaction management and access to all repositories.
    Uses a shared connection for all operations within a transaction.
    """

    def __init__(
        self,
        db_path: str,
        busy_timeout_seconds: float = 5.0,
        query_timeout_ms: int | None = None,
    ):
        self.db_path = db_path
        self.busy_timeout_seconds = busy_timeout_seconds
        self._guard = QueryGuard(query_timeout_ms)
        self._conn: sqlite3.Connection | None = None

        # Lazy-initialized repositories
        self._files: SQLiteFileIdentityRepo | None = None
        self._download_events: SQLiteDownloadEventRepo | None = None
        self._browsing_domains: SQLiteBrowsingDomainRepo | None = None
        self._browsing_visits: SQLiteBrowsingVisitRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        try:
            self._conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout_seconds)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open {self.db_path}: {e}") from e
        self._conn.row_factory = dict_factory
        self._conn.execute("PRAGMA foreign_keys = ON;")
        self._guard.install(self._conn)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._conn:
            # Uncommitted writes are discarded
            self._conn.rollback()
            self._conn.close()
            self._conn = None

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreUnavailableError("Unit of work used outside its context")
        return self._conn

    def commit(self) -> None:
        if self._conn:
            with self._guard.statement("commit"):
                self._conn.commit()

    def rollback(self) -> None:
        if self._conn:
            self._conn.rollback()

    @property
    def files(self) -> SQLiteFileIdentityRepo:
        if self._files is None:
            self._files = SQLiteFileIdentityRepo(self._connection(), self._guard)
        return self._files

    @property
    def download_events(self) -> SQLiteDownloadEventRepo:
        if self._download_events is None:
            self._download_events = SQLiteDownloadEventRepo(self._connection(), self._guard)
        return self._download_events

    @property
    def browsing_domains(self) -> SQLiteBrowsingDomainRepo:
        if self._browsing_domains is None:
            self._browsing_domains = SQLiteBrowsingDomainRepo(self._connection(), self._guard)
        return self._browsing_domains

    @property
    def browsing_visits(self) -> SQLiteBrowsingVisitRepo:
        if self._browsing_visits is None:
            self._browsing_visits = SQLiteBrowsingVisitRepo(self._connection(), self._guard)
        return self._browsing_visits


class SQLiteStore:
    """Opens units of work against one database file."""

    def __init__(
        self,
        db_path: str,
        busy_timeout_seconds: float = 5.0,
        query_timeout_ms: int | None = None,
    ):
        self.db_path = db_path
        self.busy_timeout_seconds = busy_timeout_seconds
        self.query_timeout_ms = query_timeout_ms

    def unit_of_work(self) -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(self.db_path, self.busy_timeout_seconds, self.query_timeout_ms)
