"""Error taxonomy shared by the services, the API and the CLI."""

from typing import Optional


class LibraryError(Exception):
    """Base class for every failure a library operation can report.

    ``code`` is a short machine-readable reason (``no_copies_available``,
    ``member_inactive`` ...); ``message`` is what gets shown to the user.
    """

    kind = "unexpected"
    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.kind

    def to_dict(self) -> dict:
        return {"error": self.message}

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotFoundError(LibraryError):
    """A referenced book, member or transaction does not exist."""

    kind = "not_found"
    status_code = 404


class InvalidStateError(LibraryError):
    """A business rule rejected the operation."""

    kind = "invalid_state"
    status_code = 400


class ConflictError(LibraryError):
    """A uniqueness constraint (ISBN, email) was violated."""

    kind = "conflict"
    status_code = 400


class UnexpectedError(LibraryError):
    kind = "unexpected"
    status_code = 500
