import sqlite3
from datetime import date
from typing import Dict, Iterable, List, Optional

from book import Book
from member import Member
from transaction import OPEN_STATUSES, Transaction, TransactionStatus
from validators import TextValidator

_OPEN = tuple(s.value for s in OPEN_STATUSES)

_JOINED_TRANSACTIONS = """
    SELECT t.*, b.title AS book_title, b.isbn, m.name AS member_name, m.email AS member_email
    FROM transactions t
    JOIN books b ON t.book_id = b.id
    JOIN members m ON t.member_id = m.id
"""


class LibraryRepository:
    """All SQL for books, members and transactions, bound to one connection.

    The repository never begins or ends a transaction; whoever owns the
    connection (see ``database.Database``) decides the boundary.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    # ------------------------- Books ------------------------- #
    def list_books(self) -> List[Book]:
        rows = self.conn.execute("SELECT * FROM books ORDER BY title").fetchall()
        return [Book.from_dict(dict(row)) for row in rows]

    def search_books(self, query: str) -> List[Book]:
        pattern = TextValidator.like_pattern(query)
        rows = self.conn.execute(
            "SELECT * FROM books WHERE title LIKE ? OR author LIKE ? OR isbn LIKE ? OR genre LIKE ? ORDER BY title",
            (pattern, pattern, pattern, pattern),
        ).fetchall()
        return [Book.from_dict(dict(row)) for row in rows]

    def get_book(self, book_id: int) -> Optional[Book]:
        row = self.conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        return Book.from_dict(dict(row)) if row else None

    def insert_book(self, book: Book) -> int:
        cursor = self.conn.execute(
            """
            INSERT INTO books (title, author, isbn, publisher, year_published, genre, total_copies, available_copies)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (book.title, book.author, book.isbn, book.publisher, book.year_published,
             book.genre, book.total_copies, book.available_copies),
        )
        return cursor.lastrowid

    def update_book(self, book: Book) -> int:
        cursor = self.conn.execute(
            """
            UPDATE books SET title = ?, author = ?, isbn = ?, publisher = ?, year_published = ?,
                             genre = ?, total_copies = ?, available_copies = ?
            WHERE id = ?
            """,
            (book.title, book.author, book.isbn, book.publisher, book.year_published,
             book.genre, book.total_copies, book.available_copies, book.id),
        )
        return cursor.rowcount

    def delete_book(self, book_id: int) -> int:
        return self.conn.execute("DELETE FROM books WHERE id = ?", (book_id,)).rowcount

    def adjust_available_copies(self, book_id: int, delta: int) -> int:
        cursor = self.conn.execute(
            "UPDATE books SET available_copies = available_copies + ? WHERE id = ?",
            (delta, book_id),
        )
        return cursor.rowcount

    # ------------------------- Members ------------------------- #
    def list_members(self) -> List[Member]:
        rows = self.conn.execute("SELECT * FROM members ORDER BY name").fetchall()
        return [Member.from_dict(dict(row)) for row in rows]

    def search_members(self, query: str) -> List[Member]:
        pattern = TextValidator.like_pattern(query)
        rows = self.conn.execute(
            "SELECT * FROM members WHERE name LIKE ? OR email LIKE ? OR phone LIKE ? ORDER BY name",
            (pattern, pattern, pattern),
        ).fetchall()
        return [Member.from_dict(dict(row)) for row in rows]

    def get_member(self, member_id: int) -> Optional[Member]:
        row = self.conn.execute("SELECT * FROM members WHERE id = ?", (member_id,)).fetchone()
        return Member.from_dict(dict(row)) if row else None

    def insert_member(self, member: Member) -> int:
        cursor = self.conn.execute(
            """
            INSERT INTO members (name, email, phone, address, membership_date, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (member.name, member.email, member.phone, member.address,
             member.membership_date.isoformat(), member.status.value),
        )
        return cursor.lastrowid

    def update_member(self, member: Member) -> int:
        cursor = self.conn.execute(
            "UPDATE members SET name = ?, email = ?, phone = ?, address = ?, status = ? WHERE id = ?",
            (member.name, member.email, member.phone, member.address, member.status.value, member.id),
        )
        return cursor.rowcount

    def delete_member(self, member_id: int) -> int:
        return self.conn.execute("DELETE FROM members WHERE id = ?", (member_id,)).rowcount

    # ------------------------- Transactions ------------------------- #
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        row = self.conn.execute("SELECT * FROM transactions WHERE id = ?", (transaction_id,)).fetchone()
        return Transaction.from_dict(dict(row)) if row else None

    def find_open_transaction(self, book_id: int, member_id: int) -> Optional[Transaction]:
        row = self.conn.execute(
            "SELECT * FROM transactions WHERE book_id = ? AND member_id = ? AND status IN (?, ?)",
            (book_id, member_id, *_OPEN),
        ).fetchone()
        return Transaction.from_dict(dict(row)) if row else None

    def count_open_for_book(self, book_id: int) -> int:
        return self.conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE book_id = ? AND status IN (?, ?)",
            (book_id, *_OPEN),
        ).fetchone()[0]

    def count_open_for_member(self, member_id: int) -> int:
        return self.conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE member_id = ? AND status IN (?, ?)",
            (member_id, *_OPEN),
        ).fetchone()[0]

    def insert_transaction(self, txn: Transaction) -> int:
        cursor = self.conn.execute(
            """
            INSERT INTO transactions (book_id, member_id, issue_date, due_date, fine, status)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (txn.book_id, txn.member_id, txn.issue_date.isoformat(), txn.due_date.isoformat(),
             txn.fine, txn.status.value),
        )
        return cursor.lastrowid

    def close_transaction(self, transaction_id: int, return_date: date, fine: float) -> int:
        cursor = self.conn.execute(
            "UPDATE transactions SET status = ?, return_date = ?, fine = ? WHERE id = ?",
            (TransactionStatus.RETURNED.value, return_date.isoformat(), fine, transaction_id),
        )
        return cursor.rowcount

    def set_status(self, transaction_ids: Iterable[int], status: TransactionStatus) -> int:
        ids = list(transaction_ids)
        if not ids:
            return 0
        placeholders = ",".join("?" * len(ids))
        cursor = self.conn.execute(
            f"UPDATE transactions SET status = ? WHERE id IN ({placeholders}) AND status != ?",
            (status.value, *ids, TransactionStatus.RETURNED.value),
        )
        return cursor.rowcount

    def list_transactions(self, statuses: Optional[Iterable[TransactionStatus]] = None,
                          order_by: str = "t.created_at DESC, t.id DESC") -> List[Transaction]:
        query = _JOINED_TRANSACTIONS
        params: list = []
        if statuses is not None:
            values = [s.value for s in statuses]
            query += f" WHERE t.status IN ({','.join('?' * len(values))})"
            params.extend(values)
        query += f" ORDER BY {order_by}"
        rows = self.conn.execute(query, params).fetchall()
        return [Transaction.from_dict(dict(row)) for row in rows]

    # ------------------------- Aggregates ------------------------- #
    def dashboard_counts(self) -> Dict[str, int]:
        row = self.conn.execute(
            """
            SELECT
                (SELECT COUNT(*) FROM books) AS total_books,
                (SELECT COALESCE(SUM(total_copies), 0) FROM books) AS total_copies,
                (SELECT COALESCE(SUM(available_copies), 0) FROM books) AS available_copies,
                (SELECT COUNT(*) FROM members WHERE status = 'active') AS total_members,
                (SELECT COUNT(*) FROM transactions WHERE status IN ('issued', 'overdue')) AS issued_books,
                (SELECT COUNT(*) FROM transactions WHERE status = 'overdue') AS overdue_books
            """
        ).fetchone()
        return dict(row)
