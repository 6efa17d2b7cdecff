"""Discriminated result returned by every unit of work.

A unit of work hands back either ``Success`` or ``Failure``; the runner in
``database.Database.run_atomic`` commits on the former and rolls back on the
latter, so no rollback ever depends on an exception escaping.
"""

from dataclasses import dataclass
from typing import Any, Union

from errors import LibraryError


@dataclass(frozen=True)
class Success:
    value: Any = None

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Failure:
    error: LibraryError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise self.error


Outcome = Union[Success, Failure]
