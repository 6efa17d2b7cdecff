import logging
from typing import List, Optional

from database import Database
from errors import InvalidStateError, NotFoundError
from member import Member
from outcome import Failure, Outcome, Success
from repository import LibraryRepository
from validators import TextValidator

logger = logging.getLogger(__name__)


def _check_member(member: Member) -> Optional[InvalidStateError]:
    if TextValidator.is_blank(member.name):
        return InvalidStateError("Name cannot be empty.", code="invalid_member")
    if not TextValidator.validate_email(member.email):
        return InvalidStateError(f"Invalid email address: {member.email}", code="invalid_member")
    return None


class MembershipService:
    """Members: CRUD, substring search and the active/inactive flag."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def list_members(self) -> List[Member]:
        with self.db.read() as repo:
            return repo.list_members()

    def search_members(self, query: str) -> List[Member]:
        with self.db.read() as repo:
            return repo.search_members(query)

    def get_member(self, member_id: int) -> Outcome:
        with self.db.read() as repo:
            member = repo.get_member(member_id)
        if member is None:
            return Failure(NotFoundError("Member not found", code="member"))
        return Success(member)

    def add_member(self, member: Member) -> Outcome:
        problem = _check_member(member)
        if problem:
            return Failure(problem)

        outcome = self.db.run_atomic(lambda repo: Success(repo.insert_member(member)))
        if outcome.ok:
            member.id = outcome.value
            logger.info("Registered member %s <%s>", member.id, member.email)
        return outcome

    def update_member(self, member_id: int, changes: Member, keep_status: bool = False) -> Outcome:
        """Replace a member's details.

        With ``keep_status`` the stored active/inactive flag is left as it
        is and ``changes.status`` is ignored.
        """
        problem = _check_member(changes)
        if problem:
            return Failure(problem)

        def work(repo: LibraryRepository) -> Outcome:
            current = repo.get_member(member_id)
            if current is None:
                return Failure(NotFoundError("Member not found", code="member"))
            changes.id = member_id
            if keep_status:
                changes.status = current.status
            repo.update_member(changes)
            return Success(repo.get_member(member_id))

        outcome = self.db.run_atomic(work)
        if outcome.ok:
            logger.info("Updated member %s (status=%s)", member_id, changes.status.value)
        return outcome

    def delete_member(self, member_id: int) -> Outcome:
        def work(repo: LibraryRepository) -> Outcome:
            if repo.get_member(member_id) is None:
                return Failure(NotFoundError("Member not found", code="member"))
            if repo.count_open_for_member(member_id) > 0:
                return Failure(InvalidStateError(
                    "Cannot delete a member who still has books issued",
                    code="has_open_transactions",
                ))
            return Success(repo.delete_member(member_id))

        outcome = self.db.run_atomic(work)
        if outcome.ok:
            logger.info("Deleted member %s", member_id)
        return outcome
