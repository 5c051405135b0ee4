"""Exception hierarchy for anchor resolution and restoration.

A candidate that does not match is never an error: resolution reports it as
an unanchored outcome and the scheduler retries. Exceptions are reserved for
structural document failures, malformed input and collaborator I/O.
"""

from __future__ import annotations


class ReanchorError(Exception):
    """Base class for all reanchor errors."""


class DocumentError(ReanchorError):
    """The document model rejected an operation."""


class InvalidRangeError(DocumentError):
    """A range cannot be used for the requested operation.

    Raised when a range runs backwards, points outside its text nodes, or
    partially contains an element that a wrap would have to split.
    """

    def __init__(self, message: str, *, partial_tag: str | None = None) -> None:
        super().__init__(message)
        self.partial_tag = partial_tag


class DocumentDetachedError(DocumentError):
    """The host tore the document down while work was still scheduled."""


class StoreUnavailableError(ReanchorError):
    """The highlight store could not be read or written."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InvalidSelectionError(ReanchorError):
    """A selection cannot be turned into a highlight record."""
