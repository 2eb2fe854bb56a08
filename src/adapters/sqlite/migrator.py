"""
SQLite schema migrator.

Migration files live in one directory as `NNNN_name.sql` and are applied in
filename order. Each file holds the forward script followed by an optional
`-- Down` section that reverses it.
"""

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


@dataclass(frozen=True)
class Migration:
    filename: str
    up: str
    down: str | None

    @classmethod
    def read(cls, path: Path) -> "Migration":
        content = path.read_text()
        up, marker, down = content.partition(DOWN_MARKER)
        return cls(filename=path.name, up=up, down=down if marker else None)


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                filename TEXT UNIQUE NOT NULL,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            );
        """)
        return conn

    def discover(self) -> list[Migration]:
        return [Migration.read(p) for p in sorted(self.migrations_dir.glob("*.sql"))]

    def applied(self) -> list[str]:
        """Applied filenames, oldest first."""
        conn = self._connect()
        try:
            rows = conn.execute("SELECT filename FROM _migrations ORDER BY id").fetchall()
            return [row[0] for row in rows]
        finally:
            conn.close()

    def pending(self) -> list[Migration]:
        done = set(self.applied())
        return [m for m in self.discover() if m.filename not in done]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        pending = self.pending()
        conn = self._connect()
        try:
            for migration in pending:
                logger.info("Applying migration: %s", migration.filename)
                self._run(conn, migration.filename, migration.up)
                conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (migration.filename,))
                conn.commit()
        finally:
            conn.close()
        logger.info("Migrations up to date (%d applied)", len(pending))
        return [m.filename for m in pending]

    def rollback_last(self) -> str | None:
        """Run the Down section of the newest applied migration."""
        applied = self.applied()
        if not applied:
            return None
        filename = applied[-1]
        migration = Migration.read(self.migrations_dir / filename)
        if migration.down is None:
            raise RuntimeError(f"Migration {filename} has no {DOWN_MARKER} section")

        conn = self._connect()
        try:
            logger.info("Rolling back migration: %s", filename)
            self._run(conn, filename, migration.down)
            conn.execute("DELETE FROM _migrations WHERE filename = ?", (filename,))
            conn.commit()
        finally:
            conn.close()
        return filename

    def _run(self, conn: sqlite3.Connection, filename: str, script: str) -> None:
        try:
            conn.executescript(script)
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {filename} failed: {e}") from e
