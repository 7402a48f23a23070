"""PromptDesk custom exceptions."""


class PromptDeskError(Exception):
    """Base exception for PromptDesk errors."""


class NotFoundError(PromptDeskError):
    """Record not found in the store."""


class ValidationError(PromptDeskError):
    """A required field is missing or empty."""


class DocumentError(PromptDeskError):
    """A backup document could not be decoded."""


class LockError(PromptDeskError):
    """The connection handle is poisoned by an earlier failure."""
