"""
Storage layer: SQLite persistence for projects, tasks and prompt entries.

Components:
    - PromptRepository: Main facade that owns the connection and its lock
    - ProjectStorage / TaskStorage / PromptStorage: CRUD per table
    - Database: The single connection plus the lock guarding it
    - Conditions: Optional query filters composed as data

Database Schema:
    projects: id, name, created_at, updated_at
    tasks: id, project_id -> projects (cascade), name, description, timestamps
    prompt_entries: id, task_id -> tasks (cascade), title, content, tags, model, timestamps

The database is stored at ~/.promptdesk/prompts.db unless $PROMPTDESK_HOME is set.
"""

from promptdesk.core.storage.connection import Database, get_data_dir, get_default_db_path
from promptdesk.core.storage.projects import ProjectStorage
from promptdesk.core.storage.prompts import PromptStorage
from promptdesk.core.storage.query import Conditions
from promptdesk.core.storage.repository import PromptRepository
from promptdesk.core.storage.tasks import TaskStorage

__all__ = [
    "PromptRepository",
    "ProjectStorage",
    "TaskStorage",
    "PromptStorage",
    "Database",
    "Conditions",
    "get_data_dir",
    "get_default_db_path",
]
