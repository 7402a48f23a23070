"""
MCP server for PromptDesk.

Exposes the project/task/prompt store to LLMs via the Model Context Protocol.

Tools:
    - promptdesk_list_projects, _create_project, _update_project, _delete_project
    - promptdesk_list_tasks, _create_task, _update_task, _delete_task
    - promptdesk_list_prompts, _create_prompt, _update_prompt, _delete_prompt
    - promptdesk_search: Keyword search with snippets
    - promptdesk_export / promptdesk_import: JSON backup and restore
    - promptdesk_db_path: Location of the store file

Usage:
    Run: promptdesk-mcp
    The store is ~/.promptdesk/prompts.db, or $PROMPTDESK_DB if set.
"""

import asyncio

from promptdesk.mcp.server import serve as _serve


def serve() -> None:
    """Entry point for the MCP server."""
    asyncio.run(_serve())


__all__ = ["serve"]
