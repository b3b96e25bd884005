"""Plan/execute/undo requests and a background dispatcher for them.

Each request produces exactly one result value. Unexpected exceptions are
turned into a failure result of the matching shape instead of propagating,
so a caller waiting on a result always receives one.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from pydantic import BaseModel, Field

from renameutil.models.rename import (
    BackupResult,
    InputParams,
    OutputResults,
    RenameExecutionResult,
    RenameOperation,
    UndoResult,
)
from renameutil.processors.backup import BackupManager
from renameutil.processors.plan_builder import calculate_rename_plan
from renameutil.processors.rename_executor import ProgressCallback, perform_rename
from renameutil.processors.undo import perform_undo


logger = logging.getLogger(__name__)

UNKNOWN_ITEM = "N/A"


class TaskBusyError(RuntimeError):
    """Raised when a request is submitted while another one is still running."""


class PlanRequest(BaseModel):
    params: InputParams


class ExecuteRequest(BaseModel):
    plan: list[RenameOperation]
    increment: int = 1
    target_directory: Path | None = Field(default=None, description="Directory to back up before renaming")
    context_name: str = Field(default="", description="Label used in the backup folder name")
    backup: bool = False


class UndoRequest(BaseModel):
    operations: list[RenameOperation]


class ExecuteOutcome(BaseModel):
    """Result of an execute request: the backup (if any) and the rename itself."""

    rename_result: RenameExecutionResult = Field(default_factory=RenameExecutionResult)
    backup_result: BackupResult = Field(default_factory=lambda: BackupResult(success=True))
    backup_attempted: bool = False


Request = PlanRequest | ExecuteRequest | UndoRequest
Result = OutputResults | ExecuteOutcome | UndoResult


def _execute(
    request: ExecuteRequest,
    backup_manager: BackupManager | None,
    progress_callback: ProgressCallback | None,
) -> ExecuteOutcome:
    outcome = ExecuteOutcome(backup_attempted=request.backup)

    if request.backup:
        if request.target_directory is None:
            outcome.backup_result = BackupResult(error_message="Backup failed: no target directory to back up.")
        else:
            manager = backup_manager or BackupManager()
            outcome.backup_result = manager.perform_backup(request.target_directory, request.context_name)

    if not outcome.backup_result.success:
        logger.error("Backup failed, rename aborted: %s", outcome.backup_result.error_message)
        outcome.rename_result = RenameExecutionResult(overall_success=False)
        return outcome

    outcome.rename_result = perform_rename(request.plan, request.increment, progress_callback)
    return outcome


def _failure_result(request: Request, error: Exception) -> Result:
    if isinstance(request, PlanRequest):
        return OutputResults(success=False, error_log=[f"FATAL EXCEPTION (Preview): {error}"])
    if isinstance(request, ExecuteRequest):
        return ExecuteOutcome(
            backup_attempted=request.backup,
            backup_result=BackupResult(success=False, error_message="FATAL EXCEPTION (Rename)"),
            rename_result=RenameExecutionResult(
                failed_renames=[(UNKNOWN_ITEM, f"FATAL EXCEPTION: {error}")],
                overall_success=False,
            ),
        )
    return UndoResult(failed_undos=[(UNKNOWN_ITEM, f"FATAL EXCEPTION (Undo): {error}")], overall_success=False)


def run_task(
    request: Request,
    backup_manager: BackupManager | None = None,
    progress_callback: ProgressCallback | None = None,
) -> Result:
    """Run one request to completion on the calling thread.

    Args:
        request: Plan, execute or undo request.
        backup_manager: Manager used for the optional pre-rename backup.
        progress_callback: Optional per-item callback for execute and undo.

    Returns:
        OutputResults, ExecuteOutcome or UndoResult, matching the request.
    """
    try:
        if isinstance(request, PlanRequest):
            return calculate_rename_plan(request.params)
        if isinstance(request, ExecuteRequest):
            return _execute(request, backup_manager, progress_callback)
        if isinstance(request, UndoRequest):
            return perform_undo(request.operations, progress_callback)
        raise TypeError(f"Unsupported request type: {type(request).__name__}")
    except Exception as e:
        logger.exception("Unhandled exception while running %s", type(request).__name__)
        return _failure_result(request, e)


class TaskDispatcher:
    """Runs requests one at a time on a background worker thread.

    Only one request may be in flight; submitting another before it finishes
    raises TaskBusyError, which keeps two batches from touching the same files
    concurrently.
    """

    def __init__(self, backup_manager: BackupManager | None = None) -> None:
        self.backup_manager = backup_manager
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="renameutil-task")
        self._lock = threading.Lock()
        self._current: Future | None = None

    @property
    def busy(self) -> bool:
        return self._current is not None and not self._current.done()

    def submit(
        self,
        request: Request,
        callback: Callable[[Result], None] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> Future:
        """Start ``request`` in the background.

        Args:
            request: The request to run.
            callback: Called with the result once the request finishes (on the worker thread).
            progress_callback: Optional per-item callback for execute and undo.

        Returns:
            A Future resolving to the result. It never resolves to an exception
            raised by the core.
        """
        with self._lock:
            if self.busy:
                raise TaskBusyError("Another rename task is still running.")
            future = self._executor.submit(run_task, request, self.backup_manager, progress_callback)
            self._current = future

        if callback is not None:
            future.add_done_callback(lambda f: callback(f.result()))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "TaskDispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)
