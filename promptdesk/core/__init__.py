"""
Core module: data models, exceptions, storage, search and backup.

Models (models.py):
    - Project, Task, PromptEntry: The three levels of the hierarchy
    - SearchResult: A keyword match with its preview snippet

Exceptions (exceptions.py):
    - PromptDeskError: Base exception for all PromptDesk errors
    - NotFoundError / ValidationError / DocumentError / LockError

Storage (storage/):
    - PromptRepository: Facade for all database operations
"""

from promptdesk.core.exceptions import (
    DocumentError,
    LockError,
    NotFoundError,
    PromptDeskError,
    ValidationError,
)
from promptdesk.core.models import Project, PromptEntry, SearchResult, Task
from promptdesk.core.storage import PromptRepository, get_default_db_path

__all__ = [
    # Models
    "Project",
    "Task",
    "PromptEntry",
    "SearchResult",
    # Exceptions
    "PromptDeskError",
    "NotFoundError",
    "ValidationError",
    "DocumentError",
    "LockError",
    # Storage
    "PromptRepository",
    "get_default_db_path",
]
