"""Issuing and returning books.

The two units of work, ``issue_book`` and ``return_transaction``, take a
repository bound to an open transaction and return an ``Outcome``. They
never commit or roll back themselves: ``CirculationService`` hands them to
``Database.run_atomic``, which commits on ``Success`` and rolls back on
``Failure``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from config import settings
from database import Database
from errors import InvalidStateError, NotFoundError
from outcome import Failure, Outcome, Success
from repository import LibraryRepository
from transaction import Transaction, TransactionStatus
from validators import as_date

logger = logging.getLogger(__name__)


def calculate_fine(due_date: date, returned_on: date, rate: Optional[float] = None) -> float:
    """Fine for returning on ``returned_on`` a book due on ``due_date``.

    Whole calendar days late times the daily rate; returning on or before
    the due date costs nothing.
    """
    days_late = (returned_on - due_date).days
    if days_late <= 0:
        return 0.0
    per_day = Decimal(str(settings.fine_per_day if rate is None else rate))
    return float((per_day * days_late).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def reclassify(today: date, transactions: Iterable[Transaction]) -> List[Transaction]:
    """Mark issued transactions past their due date as overdue.

    Returns a new list; the inputs are left untouched and only the
    reclassified entries are new objects.
    """
    updated: List[Transaction] = []
    for txn in transactions:
        if txn.status is TransactionStatus.ISSUED and txn.due_date < today:
            txn = Transaction.from_dict({**txn.to_dict(), "status": TransactionStatus.OVERDUE.value})
        updated.append(txn)
    return updated


def issue_book(repo: LibraryRepository, book_id: int, member_id: int, due_date: date,
               today: date) -> Outcome:
    book = repo.get_book(book_id)
    if book is None:
        return Failure(NotFoundError("Book not found", code="book"))
    if book.available_copies <= 0:
        return Failure(InvalidStateError("No copies available for this book", code="no_copies_available"))

    member = repo.get_member(member_id)
    if member is None:
        return Failure(NotFoundError("Member not found", code="member"))
    if not member.is_active:
        return Failure(InvalidStateError("Member account is inactive", code="member_inactive"))

    if repo.find_open_transaction(book_id, member_id) is not None:
        return Failure(InvalidStateError("Member already has this book issued", code="duplicate_issue"))

    txn = Transaction(book_id=book_id, member_id=member_id, issue_date=today, due_date=due_date)
    transaction_id = repo.insert_transaction(txn)
    repo.adjust_available_copies(book_id, -1)
    return Success(transaction_id)


def return_transaction(repo: LibraryRepository, transaction_id: int, now: datetime,
                       rate: Optional[float] = None) -> Outcome:
    txn = repo.get_transaction(transaction_id)
    if txn is None or not txn.is_open:
        return Failure(NotFoundError("Active transaction not found", code="active_transaction"))

    returned_on = now.date()
    fine = calculate_fine(txn.due_date, returned_on, rate)
    repo.close_transaction(transaction_id, returned_on, fine)
    repo.adjust_available_copies(txn.book_id, 1)
    return Success(fine)


class CirculationService:
    """Entry point for the issue/return workflow."""

    def __init__(self, db: Database, fine_per_day: Optional[float] = None,
                 default_loan_days: Optional[int] = None) -> None:
        self.db = db
        self.fine_per_day = settings.fine_per_day if fine_per_day is None else fine_per_day
        self.default_loan_days = settings.default_loan_days if default_loan_days is None else default_loan_days

    def default_due_date(self, today: Optional[date] = None) -> date:
        return (today or date.today()) + timedelta(days=self.default_loan_days)

    def issue(self, book_id: int, member_id: int, due_date: date | str | None = None,
              today: Optional[date] = None) -> Outcome:
        """Lend ``book_id`` to ``member_id``; ``Success`` carries the new transaction id."""
        today = today or date.today()
        try:
            due = as_date(due_date) or self.default_due_date(today)
        except ValueError:
            return Failure(InvalidStateError(f"Invalid due date: {due_date}", code="invalid_due_date"))

        outcome = self.db.run_atomic(lambda repo: issue_book(repo, book_id, member_id, due, today))
        if outcome.ok:
            logger.info("Issued book %s to member %s as transaction %s (due %s)",
                        book_id, member_id, outcome.value, due.isoformat())
        else:
            logger.warning("Issue of book %s to member %s rejected: %s",
                           book_id, member_id, outcome.error.code)
        return outcome

    def return_book(self, transaction_id: int, now: Optional[datetime] = None) -> Outcome:
        """Close an open transaction; ``Success`` carries the fine charged."""
        now = now or datetime.now()
        outcome = self.db.run_atomic(
            lambda repo: return_transaction(repo, transaction_id, now, self.fine_per_day)
        )
        if outcome.ok:
            logger.info("Transaction %s returned, fine %.2f", transaction_id, outcome.value)
        else:
            logger.warning("Return of transaction %s rejected: %s", transaction_id, outcome.error.code)
        return outcome
