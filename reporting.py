import logging
from datetime import date
from typing import Dict, List, Optional

from circulation import reclassify
from database import Database
from outcome import Outcome, Success
from repository import LibraryRepository
from transaction import OPEN_STATUSES, Transaction, TransactionStatus

logger = logging.getLogger(__name__)


class ReportingService:
    """Dashboard counts and transaction listings.

    The overdue listing and the dashboard first sweep issued transactions
    past their due date into ``overdue`` so that what they report is current.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def refresh_overdue(self, today: Optional[date] = None) -> Outcome:
        """Persist the overdue reclassification; ``Success`` carries how many rows changed."""
        today = today or date.today()

        def work(repo: LibraryRepository) -> Outcome:
            issued = repo.list_transactions(statuses=[TransactionStatus.ISSUED])
            changed = [
                after.id
                for before, after in zip(issued, reclassify(today, issued))
                if after.status is not before.status
            ]
            return Success(repo.set_status(changed, TransactionStatus.OVERDUE))

        outcome = self.db.run_atomic(work)
        if outcome.ok and outcome.value:
            logger.info("Reclassified %d transaction(s) as overdue", outcome.value)
        return outcome

    def list_all(self) -> List[Transaction]:
        with self.db.read() as repo:
            return repo.list_transactions()

    def list_active(self) -> List[Transaction]:
        """Open transactions, soonest due first."""
        with self.db.read() as repo:
            return repo.list_transactions(statuses=OPEN_STATUSES, order_by="t.due_date ASC, t.id ASC")

    def list_overdue(self, today: Optional[date] = None) -> Outcome:
        """Reclassify, then list overdue transactions with ``days_overdue`` filled in."""
        today = today or date.today()
        refreshed = self.refresh_overdue(today)
        if not refreshed.ok:
            return refreshed
        with self.db.read() as repo:
            overdue = repo.list_transactions(statuses=[TransactionStatus.OVERDUE],
                                             order_by="t.due_date ASC, t.id ASC")
        for txn in overdue:
            txn.details["days_overdue"] = txn.days_overdue(today)
        return Success(overdue)

    def dashboard(self, today: Optional[date] = None) -> Outcome:
        refreshed = self.refresh_overdue(today)
        if not refreshed.ok:
            return refreshed
        with self.db.read() as repo:
            counts: Dict[str, int] = repo.dashboard_counts()
        return Success(counts)
