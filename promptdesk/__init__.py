"""
PromptDesk: a local store for projects, tasks and the prompts written for them.

PromptDesk keeps a three-level hierarchy in a single SQLite file:
- Projects own tasks, tasks own prompt entries, deletes cascade downward
- Keyword search across prompts with preview snippets
- Whole-store JSON export and transactional re-import

Usage:
    from promptdesk.core import PromptRepository, get_default_db_path

    with PromptRepository(get_default_db_path()) as repo:
        project = repo.projects.create("Website")
        task = repo.tasks.create(project.id, "Landing copy")
        repo.prompts.create(task.id, "Write a headline", tags=["copy"])
"""

__version__ = "0.1.0"
