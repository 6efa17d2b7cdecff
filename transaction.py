from __future__ import annotations

from datetime import date
from enum import Enum

from validators import as_date


class TransactionStatus(str, Enum):
    ISSUED = "issued"
    OVERDUE = "overdue"
    RETURNED = "returned"


OPEN_STATUSES = (TransactionStatus.ISSUED, TransactionStatus.OVERDUE)


class Transaction:
    """One checkout of a book by a member, from issue to return.

    Listings join the book and member rows in; those extra columns are kept
    in ``details`` and flattened back out by ``to_dict``.
    """

    def __init__(self, book_id: int, member_id: int, due_date: date | str,
                 issue_date: date | str | None = None, return_date: date | str | None = None,
                 fine: float = 0.0, status: TransactionStatus | str = TransactionStatus.ISSUED,
                 id: int | None = None, created_at: str | None = None, details: dict | None = None) -> None:
        self.id = id
        self.book_id = book_id
        self.member_id = member_id
        self.issue_date = as_date(issue_date) or date.today()
        self.due_date = as_date(due_date)
        self.return_date = as_date(return_date)
        self.fine = float(fine or 0)
        self.status = TransactionStatus(status)
        self.created_at = created_at
        self.details = details or {}

    def __str__(self) -> str:
        return f"#{self.id} book={self.book_id} member={self.member_id} due={self.due_date} [{self.status.value}]"

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def days_overdue(self, today: date) -> int:
        return max(0, (today - self.due_date).days)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "book_id": self.book_id,
            "member_id": self.member_id,
            "issue_date": self.issue_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "fine": self.fine,
            "status": self.status.value,
            "created_at": self.created_at,
        }
        data.update(self.details)
        return data

    @staticmethod
    def from_dict(data: dict) -> "Transaction":
        own = {"id", "book_id", "member_id", "issue_date", "due_date", "return_date",
               "fine", "status", "created_at"}
        return Transaction(
            id=data.get("id"),
            book_id=data["book_id"],
            member_id=data["member_id"],
            due_date=data["due_date"],
            issue_date=data.get("issue_date"),
            return_date=data.get("return_date"),
            fine=data.get("fine") or 0.0,
            status=data.get("status") or TransactionStatus.ISSUED,
            created_at=data.get("created_at"),
            details={k: v for k, v in data.items() if k not in own},
        )
