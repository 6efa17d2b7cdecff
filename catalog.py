import logging
from typing import List, Optional

from book import Book
from database import Database
from errors import InvalidStateError, NotFoundError
from outcome import Failure, Outcome, Success
from repository import LibraryRepository
from validators import ISBNValidator, TextValidator

logger = logging.getLogger(__name__)


def _check_book(book: Book) -> Optional[InvalidStateError]:
    if TextValidator.is_blank(book.title):
        return InvalidStateError("Title cannot be empty.", code="invalid_book")
    if TextValidator.is_blank(book.author):
        return InvalidStateError("Author cannot be empty.", code="invalid_book")
    if not book.isbn:
        return InvalidStateError("ISBN cannot be empty.", code="invalid_book")
    if book.total_copies is None or book.total_copies < 0:
        return InvalidStateError("Total copies cannot be negative.", code="invalid_book")
    return None


class CatalogService:
    """Books: CRUD, substring search and the copy counts around circulation."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def list_books(self) -> List[Book]:
        with self.db.read() as repo:
            return repo.list_books()

    def search_books(self, query: str) -> List[Book]:
        """Match ``query`` against title, author, ISBN and genre."""
        with self.db.read() as repo:
            return repo.search_books(query)

    def get_book(self, book_id: int) -> Outcome:
        with self.db.read() as repo:
            book = repo.get_book(book_id)
        if book is None:
            return Failure(NotFoundError("Book not found", code="book"))
        return Success(book)

    def add_book(self, book: Book) -> Outcome:
        """Catalogue a new book with all of its copies available."""
        book.isbn = ISBNValidator.normalize_isbn(book.isbn)
        book.available_copies = book.total_copies
        problem = _check_book(book)
        if problem:
            return Failure(problem)

        outcome = self.db.run_atomic(lambda repo: Success(repo.insert_book(book)))
        if outcome.ok:
            book.id = outcome.value
            logger.info("Added book %s (%s)", book.id, book.isbn)
        return outcome

    def update_book(self, book_id: int, changes: Book) -> Outcome:
        """Replace a book's details.

        A change of ``total_copies`` moves ``available_copies`` by the same
        amount; shrinking below the number of copies currently out fails.
        """
        changes.isbn = ISBNValidator.normalize_isbn(changes.isbn)
        problem = _check_book(changes)
        if problem:
            return Failure(problem)

        def work(repo: LibraryRepository) -> Outcome:
            current = repo.get_book(book_id)
            if current is None:
                return Failure(NotFoundError("Book not found", code="book"))

            # Issued count comes from the stored row; open transactions are not recounted here
            if changes.total_copies < current.issued_copies:
                return Failure(InvalidStateError(
                    "Cannot reduce total copies below currently issued count",
                    code="copies_below_issued",
                ))

            changes.id = book_id
            changes.available_copies = changes.total_copies - current.issued_copies
            repo.update_book(changes)
            return Success(changes)

        outcome = self.db.run_atomic(work)
        if outcome.ok:
            logger.info("Updated book %s", book_id)
        return outcome

    def delete_book(self, book_id: int) -> Outcome:
        def work(repo: LibraryRepository) -> Outcome:
            if repo.get_book(book_id) is None:
                return Failure(NotFoundError("Book not found", code="book"))
            if repo.count_open_for_book(book_id) > 0:
                return Failure(InvalidStateError(
                    "Cannot delete a book with copies still issued",
                    code="has_open_transactions",
                ))
            return Success(repo.delete_book(book_id))

        outcome = self.db.run_atomic(work)
        if outcome.ok:
            logger.info("Deleted book %s", book_id)
        return outcome
