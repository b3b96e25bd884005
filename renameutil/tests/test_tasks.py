"""Tests for request dispatch and failure synthesis."""

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from renameutil import tasks
from renameutil.models.rename import InputParams, OutputResults, RenameOperation, UndoResult
from renameutil.processors.backup import BackupManager
from renameutil.tasks import (
    ExecuteOutcome,
    ExecuteRequest,
    PlanRequest,
    TaskBusyError,
    TaskDispatcher,
    UndoRequest,
    run_task,
)


@pytest.fixture
def numbered_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "files"
    directory.mkdir()
    (directory / "doc_1.txt").write_text("one")
    (directory / "doc_2.txt").write_text("two")
    return directory


def plan_for(directory: Path) -> list[RenameOperation]:
    results = run_task(PlanRequest(params=InputParams(target_directory=directory, naming_pattern="doc_<num><ext>")))
    assert isinstance(results, OutputResults)
    return results.rename_plan


class TestRunTask:
    """Tests for run_task."""

    def test_plan_request(self, numbered_dir: Path) -> None:
        """Test that a plan request returns the plan."""
        assert len(plan_for(numbered_dir)) == 2

    def test_execute_with_backup(self, tmp_path: Path, numbered_dir: Path) -> None:
        """Test that the backup is taken before renaming."""
        request = ExecuteRequest(
            plan=plan_for(numbered_dir),
            increment=1,
            target_directory=numbered_dir,
            context_name="renumber",
            backup=True,
        )

        outcome = run_task(request, BackupManager(tmp_path / "backups"))

        assert isinstance(outcome, ExecuteOutcome)
        assert outcome.backup_attempted
        assert outcome.backup_result.success
        assert (outcome.backup_result.backup_path / "doc_1.txt").read_text() == "one"
        assert outcome.rename_result.overall_success
        assert (numbered_dir / "doc_03.txt").read_text() == "two"

    def test_failed_backup_skips_rename(self, tmp_path: Path, numbered_dir: Path) -> None:
        """Test that no file is renamed when the backup fails."""
        request = ExecuteRequest(
            plan=plan_for(numbered_dir),
            target_directory=tmp_path / "missing",
            backup=True,
        )

        outcome = run_task(request, BackupManager(tmp_path / "backups"))

        assert outcome.backup_result.success is False
        assert outcome.rename_result.overall_success is False
        assert outcome.rename_result.successful_rename_ops == []
        assert (numbered_dir / "doc_1.txt").exists()

    def test_execute_without_backup(self, numbered_dir: Path) -> None:
        """Test that no backup is attempted unless requested."""
        outcome = run_task(ExecuteRequest(plan=plan_for(numbered_dir)))

        assert outcome.backup_attempted is False
        assert outcome.backup_result.success
        assert outcome.rename_result.overall_success

    def test_undo_request(self, numbered_dir: Path) -> None:
        """Test that an undo request reverts an executed batch."""
        executed = run_task(ExecuteRequest(plan=plan_for(numbered_dir)))

        result = run_task(UndoRequest(operations=executed.rename_result.successful_rename_ops))

        assert isinstance(result, UndoResult)
        assert result.overall_success
        assert (numbered_dir / "doc_1.txt").read_text() == "one"

    def test_plan_exception(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an exception while planning yields a failed result."""
        monkeypatch.setattr(tasks, "calculate_rename_plan", MagicMock(side_effect=RuntimeError("boom")))

        results = run_task(PlanRequest(params=InputParams()))

        assert results.success is False
        assert results.error_log == ["FATAL EXCEPTION (Preview): boom"]

    def test_execute_exception(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an exception while renaming yields a failed outcome."""
        monkeypatch.setattr(tasks, "perform_rename", MagicMock(side_effect=RuntimeError("boom")))

        outcome = run_task(ExecuteRequest(plan=[]))

        assert outcome.backup_result.error_message == "FATAL EXCEPTION (Rename)"
        assert outcome.rename_result.failed_renames == [("N/A", "FATAL EXCEPTION: boom")]
        assert outcome.rename_result.overall_success is False

    def test_undo_exception(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an exception while undoing yields a failed result."""
        monkeypatch.setattr(tasks, "perform_undo", MagicMock(side_effect=RuntimeError("boom")))

        result = run_task(UndoRequest(operations=[]))

        assert result.failed_undos == [("N/A", "FATAL EXCEPTION (Undo): boom")]
        assert result.overall_success is False


class TestTaskDispatcher:
    """Tests for TaskDispatcher."""

    def test_submit_and_callback(self, numbered_dir: Path) -> None:
        """Test that the callback receives the result."""
        received = []
        done = threading.Event()

        def on_done(result):
            received.append(result)
            done.set()

        params = InputParams(target_directory=numbered_dir, naming_pattern="doc_<num><ext>")
        with TaskDispatcher() as dispatcher:
            future = dispatcher.submit(PlanRequest(params=params), callback=on_done)
            results = future.result(timeout=10)

        assert done.wait(timeout=10)
        assert received == [results]
        assert len(results.rename_plan) == 2

    def test_busy(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a second request is refused while one is running."""
        release = threading.Event()

        def slow_undo(operations, progress_callback=None):
            release.wait(timeout=10)
            return UndoResult(overall_success=True)

        monkeypatch.setattr(tasks, "perform_undo", slow_undo)

        with TaskDispatcher() as dispatcher:
            future = dispatcher.submit(UndoRequest(operations=[]))
            assert dispatcher.busy
            with pytest.raises(TaskBusyError):
                dispatcher.submit(UndoRequest(operations=[]))
            release.set()
            assert future.result(timeout=10).overall_success

            assert not dispatcher.busy
            assert dispatcher.submit(UndoRequest(operations=[])).result(timeout=10).overall_success
