import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

Connection = sqlite3.Connection

SCHEMA_PATH = Path(__file__).parent / "schema.sql"
IN_MEMORY = ":memory:"

logger = logging.getLogger(__name__)

class DatabaseConfig:
    """
    Where the local ledger lives.

    `FLUX_DB_PATH` usually points here; ":memory:" gives a throwaway ledger
    and skips creating the parent directory.
    """

    def __init__(self, db_path: Path | str = "data/flux.db"):
        self.in_memory = str(db_path) == IN_MEMORY
        self.db_path = Path(db_path)
        if not self.in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection_string(self) -> str:
        """Argument for sqlite3.connect"""
        if self.in_memory:
            return IN_MEMORY
        return str(self.db_path.absolute())

def configure_connection(conn: Connection) -> None:
    """
    Rows come back as sqlite3.Row so the repository can turn them into
    the same dicts the Supabase backend returns.
    """
    conn.execute("PRAGMA foreign_keys = ON")
    conn.row_factory = sqlite3.Row

class DatabaseManager:
    """
    Owns the single SQLite connection behind SQLiteLedgerRepository.

    The connection is opened on first use and shared by every user id the
    repository is created with.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection: Connection | None = None

    def get_connection(self) -> Connection:
        if self._connection is None:
            self._connection = self._create_connection()
        return self._connection

    def _create_connection(self) -> Connection:
        logger.debug("Opening SQLite database at %s", self.config.connection_string)
        conn = sqlite3.connect(
            self.config.connection_string,
            check_same_thread=False,
        )
        configure_connection(conn)
        return conn

    def initialize(self, schema_path: Optional[Path] = None) -> None:
        """Create the ledger tables; safe to call on every start"""
        execute_schema(self.get_connection(), schema_path or SCHEMA_PATH)

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Commit the repository write on success, roll it back on any error.

        A whole installment batch is inserted inside one block, so either
        every sibling is stored or none is:

            with db_manager.transaction() as conn:
                for record in siblings:
                    conn.execute("INSERT INTO transactions ...", ...)
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

def execute_schema(conn: Connection, schema_path: Path) -> None:
    """
    Run schema.sql against `conn`.

    Every statement in it is CREATE ... IF NOT EXISTS or INSERT OR IGNORE,
    so existing ledgers only pick up new tables and schema_version rows.
    """
    with open(schema_path, encoding="utf-8") as f:
        schema = f.read()

    conn.executescript(schema)
    conn.commit()
