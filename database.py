import logging
import sqlite3
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from config import settings
from errors import ConflictError, UnexpectedError
from outcome import Failure, Outcome
from repository import LibraryRepository

logger = logging.getLogger(__name__)

# Default database file; LIBRARY_DB_FILE (via config/.env) overrides it.
DATABASE_FILE = settings.database_file


def get_db_connection(db_file: str, timeout: Optional[float] = None) -> sqlite3.Connection:
    """Open a connection to the SQLite database.

    Transactions are managed explicitly (``isolation_level=None``), so the
    driver never opens one behind our back.
    """
    conn = sqlite3.connect(
        db_file,
        timeout=settings.database_timeout if timeout is None else timeout,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def create_tables(conn: sqlite3.Connection) -> None:
    """Create the books, members and transactions tables if missing."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS books (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            author TEXT NOT NULL,
            isbn TEXT NOT NULL UNIQUE,
            publisher TEXT,
            year_published INTEGER,
            genre TEXT,
            total_copies INTEGER NOT NULL DEFAULT 1 CHECK (total_copies >= 0),
            available_copies INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            CHECK (available_copies >= 0 AND available_copies <= total_copies)
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            phone TEXT,
            address TEXT,
            membership_date DATE NOT NULL DEFAULT CURRENT_DATE,
            status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            book_id INTEGER NOT NULL,
            member_id INTEGER NOT NULL,
            issue_date DATE NOT NULL DEFAULT CURRENT_DATE,
            due_date DATE NOT NULL,
            return_date DATE,
            fine REAL NOT NULL DEFAULT 0 CHECK (fine >= 0),
            status TEXT NOT NULL DEFAULT 'issued' CHECK (status IN ('issued', 'overdue', 'returned')),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (book_id) REFERENCES books(id) ON DELETE CASCADE,
            FOREIGN KEY (member_id) REFERENCES members(id) ON DELETE CASCADE
        )
    """)

    conn.execute("CREATE INDEX IF NOT EXISTS idx_books_title ON books(title)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_members_name ON members(name)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_transactions_status_due ON transactions(status, due_date)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_transactions_book_member ON transactions(book_id, member_id)")


class Database:
    """Handle on the library's SQLite store.

    Services receive one of these instead of reaching for module globals.
    Every call opens its own connection, so a handle is safe to share across
    request threads.
    """

    def __init__(self, db_file: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.db_file = db_file or DATABASE_FILE
        self.timeout = timeout

    def connect(self) -> sqlite3.Connection:
        return get_db_connection(self.db_file, self.timeout)

    def initialize(self) -> None:
        """Create the schema if needed."""
        conn = self.connect()
        try:
            # WAL lets readers proceed while a unit of work holds the write lock
            conn.execute("PRAGMA journal_mode=WAL;")
            create_tables(conn)
        finally:
            conn.close()
        logger.info("Database ready at %s", self.db_file)

    def ping(self) -> bool:
        try:
            conn = self.connect()
        except sqlite3.Error:
            return False
        try:
            conn.execute("SELECT 1")
            return True
        except sqlite3.Error:
            return False
        finally:
            conn.close()

    @contextmanager
    def read(self) -> Iterator[LibraryRepository]:
        """Repository for read-only queries, each statement in autocommit."""
        conn = self.connect()
        try:
            yield LibraryRepository(conn)
        finally:
            conn.close()

    def run_atomic(self, work: Callable[[LibraryRepository], Outcome]) -> Outcome:
        """Run ``work`` as one all-or-nothing unit.

        ``BEGIN IMMEDIATE`` takes the write lock up front, so two units that
        read-then-write the same row are serialized. The unit commits only
        when ``work`` returns a ``Success``; a ``Failure`` or any database
        error rolls everything back.
        """
        try:
            conn = self.connect()
        except sqlite3.Error as exc:
            logger.error("Could not open database %s: %s", self.db_file, exc)
            return Failure(UnexpectedError(f"Database unavailable: {exc}"))

        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
                outcome = work(LibraryRepository(conn))
            except sqlite3.IntegrityError as exc:
                self._rollback(conn)
                logger.warning("Unit of work rolled back on constraint violation: %s", exc)
                return Failure(ConflictError(_describe_integrity_error(exc)))
            except sqlite3.Error as exc:
                self._rollback(conn)
                logger.error("Unit of work rolled back on database error: %s", exc)
                return Failure(UnexpectedError(str(exc)))
            except Exception:
                self._rollback(conn)
                raise

            if outcome.ok:
                try:
                    conn.execute("COMMIT")
                except sqlite3.Error as exc:
                    self._rollback(conn)
                    logger.error("Commit failed: %s", exc)
                    return Failure(UnexpectedError(str(exc)))
            else:
                self._rollback(conn)
            return outcome
        finally:
            conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")


def _describe_integrity_error(exc: sqlite3.IntegrityError) -> str:
    text = str(exc)
    if "books.isbn" in text:
        return "A book with this ISBN already exists"
    if "members.email" in text:
        return "A member with this email already exists"
    return f"Constraint violation: {text}"
