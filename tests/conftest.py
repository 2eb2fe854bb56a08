from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from src.adapters.memory_store import InMemoryStore
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteStore
from src.adapters.time_local import FrozenTimeAdapter
from src.components.browsing import BrowsingAnalyticsService
from src.components.downloads import DownloadAnalyticsService
from src.rules.loader import load_rules
from src.rules.models import AnalyticsRules, Rules

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = str(PROJECT_ROOT / "migrations")

# Wednesday 2026-01-14 12:00 UTC
REFERENCE_NOW = datetime(2026, 1, 14, 12, 0)


@pytest.fixture
def clock() -> FrozenTimeAdapter:
    return FrozenTimeAdapter(REFERENCE_NOW)


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SQLiteStore:
    """SQLite store backed by a migrated temporary database."""
    db_path = str(tmp_path / "analytics.db")
    SQLiteMigrator(db_path, MIGRATIONS_DIR).run_migrations()
    return SQLiteStore(db_path, busy_timeout_seconds=5.0, query_timeout_ms=5_000)


@pytest.fixture
def analytics_rules() -> AnalyticsRules:
    return AnalyticsRules()


@pytest.fixture
def downloads(
    memory_store: InMemoryStore, clock: FrozenTimeAdapter, analytics_rules: AnalyticsRules
) -> DownloadAnalyticsService:
    return DownloadAnalyticsService(memory_store, clock, analytics_rules)


@pytest.fixture
def browsing(
    memory_store: InMemoryStore, clock: FrozenTimeAdapter, analytics_rules: AnalyticsRules
) -> BrowsingAnalyticsService:
    return BrowsingAnalyticsService(memory_store, clock, analytics_rules)


@pytest.fixture
def project_rules() -> Rules:
    """The rules.yaml shipped at the project root."""
    return load_rules(PROJECT_ROOT / "rules.yaml")
