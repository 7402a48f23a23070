"""Tests for error handling paths."""

import json
import sqlite3
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from promptdesk.api import ApiError, PromptDeskService, to_api_error
from promptdesk.core.exceptions import (
    DocumentError,
    LockError,
    NotFoundError,
    PromptDeskError,
    ValidationError,
)
from promptdesk.core.storage import get_default_db_path
from promptdesk.core.storage.connection import Database


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as td:
        yield Path(td)


@pytest.fixture
def service(temp_dir: Path):
    """Create a service over a fresh store."""
    with PromptDeskService.open(get_default_db_path(temp_dir)) as svc:
        yield svc


class TestErrorMapping:
    """Tests for mapping internal failures to external codes."""

    @pytest.mark.parametrize(
        ("exc", "code"),
        [
            (sqlite3.OperationalError("no such table"), "DB_ERROR"),
            (sqlite3.IntegrityError("FOREIGN KEY constraint failed"), "DB_ERROR"),
            (OverflowError("Python int too large to convert to SQLite INTEGER"), "DB_ERROR"),
            (FileNotFoundError("missing.json"), "IO_ERROR"),
            (PermissionError("denied"), "IO_ERROR"),
            (NotFoundError("Task 3 not found"), "NOT_FOUND"),
            (ValidationError("Task name must not be empty"), "VALIDATION_ERROR"),
            (DocumentError("bad document"), "JSON_ERROR"),
            (json.JSONDecodeError("Expecting value", "", 0), "JSON_ERROR"),
            (LockError("poisoned"), "LOCK_ERROR"),
            (PromptDeskError("something else"), "UNKNOWN"),
            (RuntimeError("boom"), "UNKNOWN"),
        ],
    )
    def test_codes(self, exc: Exception, code: str) -> None:
        """Test that each failure kind maps to exactly one code."""
        error = to_api_error(exc)
        assert error.code == code
        assert error.message

    def test_not_found_keeps_message(self) -> None:
        """Test that not-found and validation messages pass through unchanged."""
        assert to_api_error(NotFoundError("Project 9 not found")).message == "Project 9 not found"
        assert to_api_error(ValidationError("empty")).message == "empty"

    def test_to_dict(self) -> None:
        """Test the external shape of an error."""
        error = ApiError("NOT_FOUND", "Project 1 not found")
        assert error.to_dict() == {"code": "NOT_FOUND", "message": "Project 1 not found"}
        assert str(error) == "[NOT_FOUND] Project 1 not found"


class TestServiceErrors:
    """Tests for errors surfaced through the service boundary."""

    def test_validation(self, service: PromptDeskService) -> None:
        """Test that blank names come back as VALIDATION_ERROR."""
        with pytest.raises(ApiError) as exc_info:
            service.create_project("   ")
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_delete_twice(self, service: PromptDeskService) -> None:
        """Test that the second delete is NOT_FOUND for every entity."""
        project = service.create_project("P")
        task = service.create_task(project.id, "T")
        entry = service.create_prompt(task.id, "C")

        for delete, record_id in (
            (service.delete_prompt, entry.id),
            (service.delete_task, task.id),
            (service.delete_project, project.id),
        ):
            delete(record_id)
            with pytest.raises(ApiError) as exc_info:
                delete(record_id)
            assert exc_info.value.code == "NOT_FOUND"

    def test_foreign_key_violation(self, service: PromptDeskService) -> None:
        """Test that a task for a missing project is a DB_ERROR."""
        with pytest.raises(ApiError) as exc_info:
            service.create_task(404, "Orphan")
        assert exc_info.value.code == "DB_ERROR"

    def test_import_errors(self, service: PromptDeskService, temp_dir: Path) -> None:
        """Test IO_ERROR for a missing file and JSON_ERROR for a broken one."""
        with pytest.raises(ApiError) as exc_info:
            service.import_data(temp_dir / "missing.json")
        assert exc_info.value.code == "IO_ERROR"

        broken = temp_dir / "broken.json"
        broken.write_text("not json")
        with pytest.raises(ApiError) as exc_info:
            service.import_data(broken)
        assert exc_info.value.code == "JSON_ERROR"

    def test_store_still_usable_after_errors(self, service: PromptDeskService) -> None:
        """Test that expected failures do not poison the handle."""
        with pytest.raises(ApiError):
            service.delete_project(1)
        with pytest.raises(ApiError):
            service.create_task(1, "x")
        assert service.create_project("Fine").name == "Fine"

    def test_open_failure(self, temp_dir: Path) -> None:
        """Test that an unusable store location is reported as an ApiError."""
        blocker = temp_dir / "file"
        blocker.write_text("")
        with pytest.raises(ApiError) as exc_info:
            PromptDeskService.open(blocker / "prompts.db")
        assert exc_info.value.code == "IO_ERROR"

    def test_database_path(self, service: PromptDeskService, temp_dir: Path) -> None:
        """Test the diagnostic path query."""
        assert service.get_database_path() == str(temp_dir / "prompts.db")


class TestLockPoisoning:
    """Tests for the poisoned-lock behaviour."""

    def test_ordinary_failure_keeps_handle(
        self, service: PromptDeskService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that an unexpected exception is reported but does not poison."""
        service.create_project("Kept")

        def explode() -> list:
            raise RuntimeError("bad state in one call")

        monkeypatch.setattr(service._repo.projects, "list", explode)
        with pytest.raises(ApiError) as exc_info:
            service.list_projects()
        assert exc_info.value.code == "UNKNOWN"

        monkeypatch.undo()
        assert [p.name for p in service.list_projects()] == ["Kept"]

    def test_interrupt_poisons(
        self, service: PromptDeskService, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that an interrupted operation blocks later calls."""

        def interrupt() -> list:
            raise KeyboardInterrupt

        monkeypatch.setattr(service._repo.projects, "list", interrupt)
        with pytest.raises(KeyboardInterrupt):
            service.list_projects()

        with pytest.raises(ApiError) as exc_info:
            service.create_project("After")
        assert exc_info.value.code == "LOCK_ERROR"

    def test_failed_rollback_poisons(self, temp_dir: Path) -> None:
        """Test that a transaction that cannot be rolled back poisons the handle."""
        db = Database(get_default_db_path(temp_dir))
        real = db._conn
        broken = MagicMock()
        broken.in_transaction = True
        broken.rollback.side_effect = sqlite3.OperationalError("disk I/O error")
        db._conn = broken
        try:
            with pytest.raises(ValueError):
                with db.acquire():
                    raise ValueError("bad argument")
            assert db.poisoned
            with pytest.raises(LockError):
                with db.acquire():
                    pass
        finally:
            db._conn = real
            db.close()

    def test_failure_inside_transaction_is_rolled_back(self, temp_dir: Path) -> None:
        """Test that a half-done write is undone and the handle stays usable."""
        db = Database(get_default_db_path(temp_dir))
        try:
            with pytest.raises(TypeError):
                with db.acquire() as conn:
                    conn.execute(
                        "INSERT INTO projects (name, created_at) VALUES ('Half', '2024-01-01')"
                    )
                    raise TypeError("unsupported argument")
            assert not db.poisoned
            with db.acquire() as conn:
                assert conn.execute("SELECT COUNT(*) FROM projects").fetchone()[0] == 0
        finally:
            db.close()


class TestBadInputKeepsStore:
    """Tests that malformed input is reported and leaves the store usable."""

    @pytest.mark.parametrize(
        "payload",
        [
            b"\xff\xfe{not utf8",
            b"[" * 100000,
            b'{"version": 1, "exported_at": "x", "projects": "nope"}',
        ],
    )
    def test_bad_import_file(
        self, service: PromptDeskService, temp_dir: Path, payload: bytes
    ) -> None:
        """Test that undecodable or malformed backups are JSON_ERROR."""
        service.create_project("Existing")
        source = temp_dir / "bad.json"
        source.write_bytes(payload)

        with pytest.raises(ApiError) as exc_info:
            service.import_data(source)
        assert exc_info.value.code == "JSON_ERROR"
        assert [p.name for p in service.list_projects()] == ["Existing"]

    def test_out_of_range_id(self, service: PromptDeskService) -> None:
        """Test that an id sqlite cannot bind is a DB_ERROR, not a poisoned handle."""
        service.create_project("Existing")
        for call in (service.delete_project, service.get_prompt, service.list_tasks):
            with pytest.raises(ApiError) as exc_info:
                call(2**70)
            assert exc_info.value.code == "DB_ERROR"
        assert [p.name for p in service.list_projects()] == ["Existing"]

    def test_missing_content(self, service: PromptDeskService) -> None:
        """Test that a wrong argument type still comes back as an ApiError."""
        project = service.create_project("P")
        task = service.create_task(project.id, "T")
        with pytest.raises(ApiError) as exc_info:
            service.create_prompt(task.id, None)  # type: ignore[arg-type]
        assert exc_info.value.code == "UNKNOWN"
        assert service.create_prompt(task.id, "ok").content == "ok"


class TestExceptionHierarchy:
    """Tests for exception class hierarchy."""

    @pytest.mark.parametrize("cls", [NotFoundError, ValidationError, DocumentError, LockError])
    def test_is_promptdesk_error(self, cls: type) -> None:
        """Test that every internal error inherits from PromptDeskError."""
        error = cls("test")
        assert isinstance(error, PromptDeskError)
        assert isinstance(error, Exception)
