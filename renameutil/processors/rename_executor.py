"""Rename execution: applies a finalized plan to the filesystem."""

import logging
import os
from collections.abc import Callable
from pathlib import Path

from renameutil.models.rename import RenameExecutionResult, RenameOperation


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


def _sort_key(increment: int):
    """Key placing operations so no rename lands on a not-yet-moved source.

    Operations with a parsed number come first, ordered by that number
    (descending when incrementing so the highest file vacates its slot first,
    ascending otherwise). Ties fall back to the manual-mode index, then the
    source path. Number-less operations sort after every numbered one, ordered
    by index and source path; comparing a mixed pair by index alone would not
    give a total order.
    """

    def key(op: RenameOperation) -> tuple:
        if op.number is None:
            return (1, 0, op.index, str(op.old_full_path))
        number = -op.number if increment > 0 else op.number
        return (0, number, op.index, str(op.old_full_path))

    return key


def execution_order(plan: list[RenameOperation], increment: int) -> list[RenameOperation]:
    """Return a copy of ``plan`` in the order it will be executed."""
    return sorted(plan, key=_sort_key(increment))


def check_source(path: Path) -> str | None:
    """Return an error message if ``path`` is not an existing regular file, else None."""
    try:
        if not path.exists():
            return f"Source file disappeared ({path})."
        if not path.is_file():
            return f"Source is not a regular file ({path})."
    except OSError as e:
        return f"Filesystem error checking source existence: {e}"
    return None


def check_target_free(path: Path) -> str | None:
    """Return an error message if something already occupies ``path``, else None."""
    try:
        if os.path.lexists(path):
            return f"Target path already exists ({path})."
    except OSError as e:
        return f"Filesystem error checking target path ({path}): {e}"
    return None


def rename_and_verify(source: Path, target: Path) -> str | None:
    """Rename ``source`` to ``target`` and confirm the filesystem reflects it.

    Returns:
        None on success, otherwise an error message. A rename call that reports
        success but leaves the source in place (or no target) is a failure.
    """
    try:
        os.rename(source, target)
    except OSError as e:
        return f"Rename failed: {e}"

    problems = []
    try:
        if source.exists():
            problems.append("Old file still exists.")
    except OSError as e:
        problems.append(f"Error checking old ({e}).")
    try:
        if not target.exists():
            problems.append("New file does not exist.")
    except OSError as e:
        problems.append(f"Error checking new ({e}).")

    if problems:
        return "Verification failed after rename reported success. " + " ".join(problems)
    return None


def perform_rename(
    plan: list[RenameOperation],
    increment: int,
    progress_callback: ProgressCallback | None = None,
) -> RenameExecutionResult:
    """Execute a rename plan.

    Each operation is re-validated right before it runs; failures are recorded
    per item and never stop the batch. No exception escapes.

    Args:
        plan: Operations produced by the plan builder.
        increment: The increment used when planning; decides the execution order.
        progress_callback: Optional callback (current, total, message) called once per item.

    Returns:
        RenameExecutionResult. `overall_success` is True for an empty plan, and
        otherwise only when every operation succeeded.
    """
    result = RenameExecutionResult()
    if not plan:
        result.overall_success = True
        return result

    ordered = execution_order(plan, increment)
    total = len(ordered)
    any_failure = False

    for position, op in enumerate(ordered, start=1):
        if progress_callback:
            progress_callback(position, total, f"{op.old_name} -> {op.new_name}")

        try:
            if op.old_full_path == op.new_full_path:
                logger.warning("Skipping identity rename operation for '%s' during execution", op.old_name)
                continue

            error = check_source(op.old_full_path)
            if error is None:
                error = check_target_free(op.new_full_path)
            if error is not None:
                error = f"Skipped: {error}"
            else:
                error = rename_and_verify(op.old_full_path, op.new_full_path)
        except Exception as e:
            logger.exception("Unexpected error renaming %s", op.old_full_path)
            error = f"General Exception: {e}"

        if error is None:
            logger.debug("Renamed %s -> %s", op.old_full_path, op.new_full_path)
            result.successful_rename_ops.append(op)
        else:
            logger.warning("Rename of '%s' failed: %s", op.old_name, error)
            result.failed_renames.append((op.old_name, error))
            any_failure = True

    result.overall_success = not any_failure
    logger.info(
        "Rename finished: %d succeeded, %d failed",
        len(result.successful_rename_ops),
        len(result.failed_renames),
    )
    return result
