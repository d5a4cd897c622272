"""Package-specific exception types."""

from __future__ import annotations


class LabNotesError(Exception):
    """Base class for errors raised by labnotes collaborators.

    Rendering and filtering never raise; only storage and lab management do.
    """


class StorageError(LabNotesError, OSError):
    """Raised when the backing store cannot be written."""


class InvalidLabError(LabNotesError, ValueError):
    """Raised when a stored or submitted lab record cannot be normalized.

    Args:
        reason: Human-readable description of the problem.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid lab record: {reason}")


class LabNotFoundError(LabNotesError, KeyError):
    """Raised when a lab id does not exist in the repository.

    Args:
        lab_id: Identifier that was looked up.
    """

    def __init__(self, lab_id: str):
        self.lab_id = lab_id
        super().__init__(lab_id)

    def __str__(self) -> str:
        return f"No lab with id {self.lab_id!r}"


class NoteFileError(LabNotesError):
    """Raised when a note file cannot be read or fails a safety check."""
