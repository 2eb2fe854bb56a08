from __future__ import annotations

import logging
from dataclasses import dataclass

from src.adapters.memory_store import InMemoryStore
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite_db import SQLiteStore
from src.adapters.time_local import LocalTimeAdapter
from src.app_shell.config import Settings
from src.components.browsing import BrowsingAnalyticsService
from src.components.downloads import DownloadAnalyticsService
from src.core.ports.db import AnalyticsStorePort
from src.core.ports.time import TimePort
from src.rules.models import Rules

logger = logging.getLogger(__name__)


@dataclass
class ServiceContext:
    downloads: DownloadAnalyticsService
    browsing: BrowsingAnalyticsService
    store: AnalyticsStorePort
    clock: TimePort
    rules: Rules

    @classmethod
    def create(
        cls,
        rules: Rules,
        settings: Settings,
        clock: TimePort | None = None,
    ) -> ServiceContext:
        storage = rules.storage
        store: AnalyticsStorePort
        if storage.backend == "memory":
            store = InMemoryStore()
        else:
            settings.ensure_data_dir()
            db_path = settings.db_path(storage.db_file)
            SQLiteMigrator(db_path, settings.migrations_dir).run_migrations()
            store = SQLiteStore(
                db_path,
                busy_timeout_seconds=storage.busy_timeout_seconds,
                query_timeout_ms=storage.query_timeout_ms,
            )
        logger.info("Using %s store", storage.backend)

        clock = clock or LocalTimeAdapter(rules.analytics.timezone)
        return cls(
            downloads=DownloadAnalyticsService(store, clock, rules.analytics),
            browsing=BrowsingAnalyticsService(store, clock, rules.analytics),
            store=store,
            clock=clock,
            rules=rules,
        )
