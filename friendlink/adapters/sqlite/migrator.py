import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# Everything above this marker in a migration file is the Up script
DOWN_MARKER = "-- Down"

_LEDGER_DDL = """
    CREATE TABLE IF NOT EXISTS _migrations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        filename TEXT UNIQUE NOT NULL,
        applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
"""


class SQLiteMigrator:
    """Applies each pending .sql file once, in filename order, recording it in _migrations."""

    def __init__(self, db_path: str, migrations_dir: str | Path = MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations and return their filenames."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            conn.execute(_LEDGER_DDL)
            applied = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}

            pending = [
                path
                for path in sorted(self.migrations_dir.glob("*.sql"))
                if path.name not in applied
            ]
            for path in pending:
                self._apply(conn, path)

            if pending:
                logger.info("Applied %d migration(s) to %s", len(pending), self.db_path)
            return [path.name for path in pending]
        finally:
            conn.close()

    def _apply(self, conn: sqlite3.Connection, path: Path) -> None:
        up_script, _, _ = path.read_text().partition(DOWN_MARKER)
        logger.info("Applying migration: %s", path.name)
        try:
            conn.executescript(up_script)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (path.name,))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise RuntimeError(f"Migration {path.name} failed: {e}") from e
