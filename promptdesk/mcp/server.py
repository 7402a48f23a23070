"""MCP server implementation for PromptDesk."""

from __future__ import annotations

import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from promptdesk.api import ApiError, PromptDeskService, to_api_error
from promptdesk.core.storage import get_default_db_path

server = Server("promptdesk")

_service: PromptDeskService | None = None


def _get_service() -> PromptDeskService:
    """Get the service for the configured store, opening it on first use."""
    global _service
    if _service is None:
        override = os.environ.get("PROMPTDESK_DB")
        db_path = Path(override) if override else get_default_db_path()
        _service = PromptDeskService.open(db_path)
    return _service


def _id_property(description: str) -> dict[str, Any]:
    return {"type": "integer", "description": description}


def _string_property(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


_TAGS_PROPERTY = {
    "type": "array",
    "items": {"type": "string"},
    "description": "Tags attached to the prompt entry",
}


def _tool(name: str, description: str, properties: dict[str, Any], required: list[str]) -> Tool:
    return Tool(
        name=name,
        description=description,
        inputSchema={"type": "object", "properties": properties, "required": required},
    )


@server.list_tools()  # type: ignore[no-untyped-call, untyped-decorator]
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        _tool("promptdesk_list_projects", "List all projects, newest first.", {}, []),
        _tool(
            "promptdesk_create_project",
            "Create a project.",
            {"name": _string_property("Project name")},
            ["name"],
        ),
        _tool(
            "promptdesk_update_project",
            "Rename a project.",
            {"id": _id_property("Project ID"), "name": _string_property("New name")},
            ["id", "name"],
        ),
        _tool(
            "promptdesk_delete_project",
            "Delete a project and, by cascade, all of its tasks and prompt entries.",
            {"id": _id_property("Project ID")},
            ["id"],
        ),
        _tool(
            "promptdesk_list_tasks",
            "List the tasks of a project, newest first.",
            {"project_id": _id_property("Project ID")},
            ["project_id"],
        ),
        _tool(
            "promptdesk_create_task",
            "Create a task inside a project.",
            {
                "project_id": _id_property("Project ID"),
                "name": _string_property("Task name"),
                "description": _string_property("Optional description"),
            },
            ["project_id", "name"],
        ),
        _tool(
            "promptdesk_update_task",
            "Update a task. Omitted fields keep their current value.",
            {
                "id": _id_property("Task ID"),
                "name": _string_property("New name"),
                "description": _string_property("New description"),
            },
            ["id"],
        ),
        _tool(
            "promptdesk_delete_task",
            "Delete a task and its prompt entries.",
            {"id": _id_property("Task ID")},
            ["id"],
        ),
        _tool(
            "promptdesk_list_prompts",
            (
                "List the prompt entries of a task, newest first. Optionally restrict to a "
                "created_at range (inclusive, ISO-8601) and to entries sharing any given tag."
            ),
            {
                "task_id": _id_property("Task ID"),
                "start_time": _string_property("Earliest created_at"),
                "end_time": _string_property("Latest created_at"),
                "tags": _TAGS_PROPERTY,
            },
            ["task_id"],
        ),
        _tool(
            "promptdesk_create_prompt",
            "Record a prompt entry inside a task.",
            {
                "task_id": _id_property("Task ID"),
                "title": _string_property("Optional title"),
                "content": _string_property("Prompt text"),
                "tags": _TAGS_PROPERTY,
                "model": _string_property("Model label"),
            },
            ["task_id", "content"],
        ),
        _tool(
            "promptdesk_update_prompt",
            "Update a prompt entry. Omitted fields keep their current value.",
            {
                "id": _id_property("Prompt entry ID"),
                "title": _string_property("New title"),
                "content": _string_property("New prompt text"),
                "tags": _TAGS_PROPERTY,
                "model": _string_property("New model label"),
            },
            ["id"],
        ),
        _tool(
            "promptdesk_delete_prompt",
            "Delete a prompt entry.",
            {"id": _id_property("Prompt entry ID")},
            ["id"],
        ),
        _tool(
            "promptdesk_search",
            (
                "Search prompt entries whose title or content contains a keyword. "
                "Returns project/task context and a snippet around the match."
            ),
            {
                "keyword": _string_property("Text to search for"),
                "project_id": _id_property("Only search this project"),
                "task_id": _id_property("Only search this task"),
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of results (default: 50)",
                    "default": 50,
                },
            },
            ["keyword"],
        ),
        _tool(
            "promptdesk_export",
            "Export the whole store to a JSON backup file.",
            {"target_path": _string_property("File to write")},
            ["target_path"],
        ),
        _tool(
            "promptdesk_import",
            "Replace the whole store with the contents of a JSON backup file.",
            {"source_path": _string_property("File to read")},
            ["source_path"],
        ),
        _tool("promptdesk_db_path", "Get the path of the store file.", {}, []),
    ]


def _dispatch(name: str, args: dict[str, Any]) -> Any:
    """Run one tool against the service and return a JSON-serializable result."""
    service = _get_service()

    if name == "promptdesk_list_projects":
        return [p.to_dict() for p in service.list_projects()]
    if name == "promptdesk_create_project":
        return service.create_project(args["name"]).to_dict()
    if name == "promptdesk_update_project":
        return service.update_project(args["id"], args["name"]).to_dict()
    if name == "promptdesk_delete_project":
        service.delete_project(args["id"])
        return {"deleted": args["id"]}

    if name == "promptdesk_list_tasks":
        return [t.to_dict() for t in service.list_tasks(args["project_id"])]
    if name == "promptdesk_create_task":
        return service.create_task(
            args["project_id"], args["name"], args.get("description")
        ).to_dict()
    if name == "promptdesk_update_task":
        return service.update_task(args["id"], args.get("name"), args.get("description")).to_dict()
    if name == "promptdesk_delete_task":
        service.delete_task(args["id"])
        return {"deleted": args["id"]}

    if name == "promptdesk_list_prompts":
        entries = service.list_prompts(
            args["task_id"], args.get("start_time"), args.get("end_time"), args.get("tags")
        )
        return [e.to_dict() for e in entries]
    if name == "promptdesk_create_prompt":
        return service.create_prompt(
            args["task_id"],
            args["content"],
            args.get("title"),
            args.get("tags"),
            args.get("model"),
        ).to_dict()
    if name == "promptdesk_update_prompt":
        return service.update_prompt(
            args["id"],
            args.get("title"),
            args.get("content"),
            args.get("tags"),
            args.get("model"),
        ).to_dict()
    if name == "promptdesk_delete_prompt":
        service.delete_prompt(args["id"])
        return {"deleted": args["id"]}

    if name == "promptdesk_search":
        results = service.search(
            args["keyword"], args.get("project_id"), args.get("task_id"), args.get("limit")
        )
        return {"results": [r.to_dict() for r in results]}
    if name == "promptdesk_export":
        return asdict(service.export_data(Path(args["target_path"])))
    if name == "promptdesk_import":
        return asdict(service.import_data(Path(args["source_path"])))
    if name == "promptdesk_db_path":
        return {"path": service.get_database_path()}

    raise ApiError("UNKNOWN", f"Unknown tool: {name}")


@server.call_tool()  # type: ignore[untyped-decorator]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls."""
    try:
        result = _dispatch(name, arguments or {})
        return [TextContent(type="text", text=json.dumps(result, indent=2, ensure_ascii=False))]
    except KeyError as e:
        error = ApiError("VALIDATION_ERROR", f"Missing required argument: {e.args[0]}")
    except Exception as e:
        error = to_api_error(e)
    return [TextContent(type="text", text=json.dumps({"error": error.to_dict()}))]


async def serve() -> None:
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())
