"""CLI entry point for PromptDesk."""

import json
import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from promptdesk.api import ApiError, PromptDeskService
from promptdesk.core.storage import get_default_db_path

app = typer.Typer(
    name="promptdesk",
    help="Keep projects, tasks and the prompts written for them in one local store.",
    no_args_is_help=True,
)
project_app = typer.Typer(help="Manage projects.", no_args_is_help=True)
task_app = typer.Typer(help="Manage tasks inside a project.", no_args_is_help=True)
prompt_app = typer.Typer(help="Manage prompt entries inside a task.", no_args_is_help=True)
app.add_typer(project_app, name="project")
app.add_typer(task_app, name="task")
app.add_typer(prompt_app, name="prompt")

console = Console()
err_console = Console(stderr=True)

_state: dict[str, Any] = {"db_path": None}

_MAX_SNIPPET_DISPLAY = 80

JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]


def configure_logging(verbose: bool) -> None:
    """Send library logs to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def get_service() -> PromptDeskService:
    """Open the service for the configured store, exiting on failure."""
    db_path = _state["db_path"] or get_default_db_path()
    try:
        return PromptDeskService.open(db_path)
    except ApiError as e:
        fail(e)


def fail(error: ApiError) -> NoReturn:
    """Print an error and exit with status 1."""
    err_console.print(f"[red]\\[{error.code}][/red] {error.message}")
    raise typer.Exit(code=1)


def print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False))


def shorten(text: str, width: int = _MAX_SNIPPET_DISPLAY) -> str:
    text = " ".join(text.split())
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


@app.callback()
def main(
    db: Annotated[
        Path | None, typer.Option("--db", help="Path to the store file", envvar="PROMPTDESK_DB")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Keep projects, tasks and prompts in one local store."""
    configure_logging(verbose)
    _state["db_path"] = db


# Projects


@project_app.command("list")
def project_list(output_json: JsonOption = False) -> None:
    """List projects, newest first."""
    with get_service() as service:
        try:
            projects = service.list_projects()
        except ApiError as e:
            fail(e)

        if output_json:
            print_json([p.to_dict() for p in projects])
            return
        if not projects:
            console.print("[dim]No projects yet[/]")
            return
        table = Table("ID", "Name", "Created", "Updated")
        for p in projects:
            table.add_row(str(p.id), p.name, p.created_at, p.updated_at or "")
        console.print(table)


@project_app.command("create")
def project_create(name: Annotated[str, typer.Argument(help="Project name")]) -> None:
    """Create a project."""
    with get_service() as service:
        try:
            project = service.create_project(name)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Created project[/] [cyan]{project.name}[/] (id {project.id})")


@project_app.command("rename")
def project_rename(
    project_id: Annotated[int, typer.Argument(help="Project ID")],
    name: Annotated[str, typer.Argument(help="New name")],
) -> None:
    """Rename a project."""
    with get_service() as service:
        try:
            project = service.update_project(project_id, name)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Renamed project {project.id} to[/] [cyan]{project.name}[/]")


@project_app.command("delete")
def project_delete(
    project_id: Annotated[int, typer.Argument(help="Project ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Delete a project with all of its tasks and prompts."""
    if not yes:
        typer.confirm(f"Delete project {project_id} and everything in it?", abort=True)
    with get_service() as service:
        try:
            service.delete_project(project_id)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Deleted project {project_id}[/]")


# Tasks


@task_app.command("list")
def task_list(
    project_id: Annotated[int, typer.Argument(help="Project ID")],
    output_json: JsonOption = False,
) -> None:
    """List the tasks of a project, newest first."""
    with get_service() as service:
        try:
            tasks = service.list_tasks(project_id)
        except ApiError as e:
            fail(e)

        if output_json:
            print_json([t.to_dict() for t in tasks])
            return
        if not tasks:
            console.print(f"[dim]No tasks in project {project_id}[/]")
            return
        table = Table("ID", "Name", "Description", "Created")
        for t in tasks:
            table.add_row(str(t.id), t.name, shorten(t.description or "", 40), t.created_at)
        console.print(table)


@task_app.command("create")
def task_create(
    project_id: Annotated[int, typer.Argument(help="Project ID")],
    name: Annotated[str, typer.Argument(help="Task name")],
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="Task description")
    ] = None,
) -> None:
    """Create a task inside a project."""
    with get_service() as service:
        try:
            task = service.create_task(project_id, name, description)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Created task[/] [cyan]{task.name}[/] (id {task.id})")


@task_app.command("update")
def task_update(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="New name")] = None,
    description: Annotated[
        str | None, typer.Option("--description", "-d", help="New description")
    ] = None,
) -> None:
    """Update a task; omitted fields are kept."""
    with get_service() as service:
        try:
            task = service.update_task(task_id, name, description)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Updated task {task.id}[/] [cyan]{task.name}[/]")


@task_app.command("delete")
def task_delete(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Delete a task with all of its prompts."""
    if not yes:
        typer.confirm(f"Delete task {task_id} and its prompts?", abort=True)
    with get_service() as service:
        try:
            service.delete_task(task_id)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Deleted task {task_id}[/]")


# Prompt entries


@prompt_app.command("list")
def prompt_list(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
    start: Annotated[str | None, typer.Option("--from", help="Created at or after (ISO-8601)")] = None,
    end: Annotated[str | None, typer.Option("--to", help="Created at or before (ISO-8601)")] = None,
    tags: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Keep entries with any of these tags")
    ] = None,
    output_json: JsonOption = False,
) -> None:
    """List the prompt entries of a task, newest first."""
    with get_service() as service:
        try:
            entries = service.list_prompts(task_id, start, end, tags)
        except ApiError as e:
            fail(e)

        if output_json:
            print_json([e.to_dict() for e in entries])
            return
        if not entries:
            console.print(f"[dim]No prompts in task {task_id}[/]")
            return
        for entry in entries:
            heading = entry.title or "[dim](untitled)[/]"
            console.print(f"[bold cyan]#{entry.id}[/] {heading}")
            meta = [entry.created_at]
            if entry.model:
                meta.append(entry.model)
            if entry.tags:
                meta.append(", ".join(entry.tags))
            console.print(f"  [dim]{' | '.join(meta)}[/]")
            console.print(f"  {shorten(entry.content)}")


@prompt_app.command("show")
def prompt_show(
    prompt_id: Annotated[int, typer.Argument(help="Prompt entry ID")],
    output_json: JsonOption = False,
) -> None:
    """Show one prompt entry in full."""
    with get_service() as service:
        try:
            entry = service.get_prompt(prompt_id)
        except ApiError as e:
            fail(e)

        if output_json:
            print_json(entry.to_dict())
            return
        console.print(f"[bold cyan]#{entry.id}[/] {entry.title or ''}")
        console.print(f"[dim]task {entry.task_id} | created {entry.created_at}[/]")
        if entry.updated_at:
            console.print(f"[dim]updated {entry.updated_at}[/]")
        if entry.model:
            console.print(f"[dim]model: {entry.model}[/]")
        if entry.tags:
            console.print(f"[dim]tags: {', '.join(entry.tags)}[/]")
        console.print()
        console.print(entry.content, markup=False, highlight=False)


@prompt_app.command("create")
def prompt_create(
    task_id: Annotated[int, typer.Argument(help="Task ID")],
    content: Annotated[str, typer.Argument(help="Prompt text")],
    title: Annotated[str | None, typer.Option("--title", help="Entry title")] = None,
    tags: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
    model: Annotated[str | None, typer.Option("--model", "-m", help="Model label")] = None,
) -> None:
    """Record a prompt inside a task."""
    with get_service() as service:
        try:
            entry = service.create_prompt(task_id, content, title, tags, model)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Created prompt entry {entry.id}[/]")


@prompt_app.command("update")
def prompt_update(
    prompt_id: Annotated[int, typer.Argument(help="Prompt entry ID")],
    content: Annotated[str | None, typer.Option("--content", "-c", help="New text")] = None,
    title: Annotated[str | None, typer.Option("--title", help="New title")] = None,
    tags: Annotated[list[str] | None, typer.Option("--tag", "-t", help="Replace tags")] = None,
    model: Annotated[str | None, typer.Option("--model", "-m", help="New model label")] = None,
) -> None:
    """Update a prompt entry; omitted fields are kept."""
    with get_service() as service:
        try:
            entry = service.update_prompt(prompt_id, title, content, tags, model)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Updated prompt entry {entry.id}[/]")


@prompt_app.command("delete")
def prompt_delete(prompt_id: Annotated[int, typer.Argument(help="Prompt entry ID")]) -> None:
    """Delete a prompt entry."""
    with get_service() as service:
        try:
            service.delete_prompt(prompt_id)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Deleted prompt entry {prompt_id}[/]")


# Search, backup and diagnostics


@app.command()
def search(
    keyword: Annotated[str, typer.Argument(help="Text to look for in titles and content")],
    project_id: Annotated[int | None, typer.Option("--project", "-p", help="Project ID")] = None,
    task_id: Annotated[int | None, typer.Option("--task", "-t", help="Task ID")] = None,
    limit: Annotated[int | None, typer.Option("--limit", "-l", help="Maximum results")] = None,
    output_json: JsonOption = False,
) -> None:
    """Search prompt entries by keyword."""
    with get_service() as service:
        try:
            results = service.search(keyword, project_id, task_id, limit)
        except ApiError as e:
            fail(e)

        if output_json:
            print_json([r.to_dict() for r in results])
            return
        if not results:
            console.print(f"No matches for '[cyan]{keyword}[/cyan]'")
            return
        for r in results:
            console.print(
                f"[bold cyan]#{r.prompt_id}[/] {r.project_name} [dim]/[/] {r.task_name} "
                f"[dim]{r.created_at}[/]"
            )
            console.print(f"  {shorten(r.snippet, 120)}", markup=False, highlight=False)


@app.command("export")
def export_command(target: Annotated[Path, typer.Argument(help="Backup file to write")]) -> None:
    """Export everything to a JSON backup file."""
    with get_service() as service:
        try:
            stats = service.export_data(target)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Exported to[/] {target}")
        console.print(f"  Projects: {stats.projects}")
        console.print(f"  Tasks: {stats.tasks}")
        console.print(f"  Prompts: {stats.prompts}")


@app.command("import")
def import_command(
    source: Annotated[Path, typer.Argument(help="Backup file to read")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Replace everything in the store with a JSON backup."""
    if not yes:
        typer.confirm("Importing deletes all current data. Continue?", abort=True)
    with get_service() as service:
        try:
            stats = service.import_data(source)
        except ApiError as e:
            fail(e)
        console.print(f"[green]Imported from[/] {source}")
        console.print(f"  Projects: {stats.projects}")
        console.print(f"  Tasks: {stats.tasks}")
        console.print(f"  Prompts: {stats.prompts}")


@app.command()
def stats(output_json: JsonOption = False) -> None:
    """Show record counts."""
    with get_service() as service:
        try:
            result = service.get_stats()
        except ApiError as e:
            fail(e)

        if output_json:
            print_json(result)
        else:
            console.print(f"Projects: {result['projects']}")
            console.print(f"Tasks: {result['tasks']}")
            console.print(f"Prompts: {result['prompts']}")


@app.command("db-path")
def db_path() -> None:
    """Print the path of the store file."""
    print(_state["db_path"] or get_default_db_path())


if __name__ == "__main__":
    app()
