"""Error types raised and collected by the ORM."""

from __future__ import annotations

from typing import Iterable, Iterator


class GormError(Exception):
    """Base class of every error the ORM raises itself."""


class RecordNotFoundError(GormError):
    """A query with a single destination matched no row.

    Querying into a list never raises it.
    """

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class InvalidSQLError(GormError):
    """A query was attempted with invalid SQL."""

    def __init__(self, message: str = "invalid SQL") -> None:
        super().__init__(message)


class InvalidTransactionError(GormError):
    """Commit or rollback was asked for outside a transaction."""

    def __init__(self, message: str = "no valid transaction") -> None:
        super().__init__(message)


class CantStartTransactionError(GormError):
    """A transaction could not be started."""

    def __init__(self, message: str = "can't start transaction") -> None:
        super().__init__(message)


class UnaddressableError(GormError):
    """A value that cannot be written to was used as a destination."""

    def __init__(self, message: str = "using unaddressable value") -> None:
        super().__init__(message)


class Errors(GormError):
    """An ordered collection of distinct errors, itself usable as an error."""

    def __init__(self, errors: Iterable[BaseException] = ()) -> None:
        self._errors: list[BaseException] = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        return "; ".join(str(err) for err in self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __getitem__(self, index: int) -> BaseException:
        return self._errors[index]

    def __repr__(self) -> str:
        return f"Errors({self._errors!r})"

    def add(self, *args: BaseException | None) -> "Errors":
        """Return a new collection with the given errors appended.

        ``None`` is skipped, nested collections are flattened and an error
        object already present is not added twice.
        """
        collected = list(self._errors)

        def extend(errors: Iterable[BaseException | None]) -> None:
            for err in errors:
                if err is None:
                    continue
                if isinstance(err, Errors):
                    extend(list(err))
                elif not any(err is existing for existing in collected):
                    collected.append(err)

        extend(args)
        return Errors(collected)

    def get_errors(self) -> list[BaseException]:
        """Return the collected errors as a list."""
        return list(self._errors)


def is_record_not_found_error(err: BaseException | None) -> bool:
    """Tell whether ``err`` is, or contains, a record-not-found error."""
    if isinstance(err, Errors):
        if any(isinstance(inner, RecordNotFoundError) for inner in err):
            return True
    return isinstance(err, RecordNotFoundError)