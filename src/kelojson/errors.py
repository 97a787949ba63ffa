"""Error taxonomy for the KeloJSON codec.

Every failure the codec raises carries a kind, a human-readable message and,
where one is known, the identifier of the offending primitive, so callers can
present an actionable message instead of a traceback.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    MALFORMED_INPUT = "malformed_input"
    INVALID_GEOMETRY = "invalid_geometry"
    UNRESOLVED_MEMBER = "unresolved_member"
    IGNORED_FEATURE = "ignored_feature"
    DATA_INTEGRITY = "data_integrity"
    IO_FAILURE = "io_failure"


class KeloJSONError(Exception):
    """Base class for all codec errors."""

    kind = ErrorKind.MALFORMED_INPUT

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        primitive_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.primitive_id = primitive_id

    def __str__(self) -> str:
        if self.primitive_id is not None:
            return f"{self.message} (id {self.primitive_id})"
        return self.message


class IllegalDataError(KeloJSONError):
    """The input is not well-formed KeloJSON. Fatal for the whole document."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.MALFORMED_INPUT,
        primitive_id: int | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message, kind=kind, primitive_id=primitive_id)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        text = super().__str__()
        if self.line is not None:
            text = f"{text} at line {self.line}, column {self.column}"
        return text


class CoordinateRangeError(IllegalDataError, ValueError):
    """A coordinate lies outside the domain of the projection."""

    def __init__(self, message: str, *, primitive_id: int | None = None) -> None:
        super().__init__(
            message, kind=ErrorKind.INVALID_GEOMETRY, primitive_id=primitive_id
        )


class DataIntegrityError(KeloJSONError):
    """A data set invariant would be violated (duplicate id, foreign reference)."""

    kind = ErrorKind.DATA_INTEGRITY


class KeloJSONIOError(KeloJSONError):
    """A file or stream could not be opened, read or written."""

    kind = ErrorKind.IO_FAILURE


@dataclass(frozen=True)
class ReadWarning:
    """A non-fatal condition recorded while reading."""

    kind: ErrorKind
    message: str
    primitive_id: int | None = None
