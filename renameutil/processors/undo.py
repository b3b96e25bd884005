"""Reverting executed rename batches, and the bounded stack of batches that can be undone.

Undo only re-applies the inverse renames. It does not consult backups, so it
is unsafe if the files were modified, moved or renamed again after the batch.
"""

import json
import logging
from collections import deque
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from renameutil.config import MAX_UNDO_LEVELS
from renameutil.models.rename import RenameOperation, UndoResult
from renameutil.processors.rename_executor import (
    ProgressCallback,
    check_source,
    check_target_free,
    rename_and_verify,
)


logger = logging.getLogger(__name__)


def perform_undo(
    ops_to_undo: list[RenameOperation],
    progress_callback: ProgressCallback | None = None,
) -> UndoResult:
    """Revert a batch of successful renames, last executed first.

    Args:
        ops_to_undo: The `successful_rename_ops` of a RenameExecutionResult, in execution order.
        progress_callback: Optional callback (current, total, message) called once per item.

    Returns:
        UndoResult with (new name, old name) pairs for reverted files and
        (new name, message) pairs for failures.
    """
    result = UndoResult()
    if not ops_to_undo:
        result.overall_success = True
        return result

    total = len(ops_to_undo)
    any_failure = False

    for position, op in enumerate(reversed(ops_to_undo), start=1):
        current_path = op.new_full_path
        original_path = op.old_full_path

        if progress_callback:
            progress_callback(position, total, f"{op.new_name} -> {op.old_name}")

        try:
            if current_path == original_path:
                logger.warning("Skipping identity undo operation for '%s'", op.new_name)
                continue

            error = check_source(current_path)
            if error is not None:
                error = f"Skipped Undo: {error} Cannot revert."
            else:
                error = check_target_free(original_path)
                if error is not None:
                    error = f"Skipped Undo: Original path is occupied. {error}"
                else:
                    error = rename_and_verify(current_path, original_path)
        except Exception as e:
            logger.exception("Unexpected error undoing %s", current_path)
            error = f"General Exception during undo: {e}"

        if error is None:
            logger.debug("Reverted %s -> %s", current_path, original_path)
            result.successful_undos.append((op.new_name, op.old_name))
            result.reverted_ops.append(op)
        else:
            logger.warning("Undo of '%s' failed: %s", op.new_name, error)
            result.failed_undos.append((op.new_name, error))
            any_failure = True

    result.overall_success = not any_failure
    logger.info("Undo finished: %d reverted, %d failed", len(result.successful_undos), len(result.failed_undos))
    return result


class UndoStack:
    """Most-recent-first stack of executed batches, holding at most `capacity` batches.

    Pushing beyond capacity silently drops the oldest batch. Callers clear the
    stack whenever the filesystem state it describes can no longer be trusted
    (a failed rename, a new preview over other files, and so on).
    """

    def __init__(self, capacity: int = MAX_UNDO_LEVELS) -> None:
        if capacity < 1:
            raise ValueError("Undo stack capacity must be at least 1")
        self.capacity = capacity
        self._batches: deque[list[RenameOperation]] = deque(maxlen=capacity)

    def push(self, batch: list[RenameOperation]) -> None:
        if not batch:
            return
        self._batches.appendleft(list(batch))

    def pop(self) -> list[RenameOperation] | None:
        """Remove and return the most recent batch, or None if the stack is empty."""
        if not self._batches:
            return None
        return self._batches.popleft()

    def peek(self) -> list[RenameOperation] | None:
        if not self._batches:
            return None
        return list(self._batches[0])

    def clear(self) -> None:
        self._batches.clear()

    def batches(self) -> list[list[RenameOperation]]:
        return [list(batch) for batch in self._batches]

    def __len__(self) -> int:
        return len(self._batches)

    def __bool__(self) -> bool:
        return bool(self._batches)


class _UndoStackFile(BaseModel):
    batches: list[list[RenameOperation]] = Field(default_factory=list)


class UndoStore:
    """Persist an UndoStack as JSON so that a later process can undo a batch."""

    def __init__(self, path: Path, capacity: int = MAX_UNDO_LEVELS) -> None:
        self.path = Path(path)
        self.capacity = capacity

    def load(self) -> UndoStack:
        """Read the stack from disk. A missing or unreadable file gives an empty stack."""
        stack = UndoStack(self.capacity)
        if not self.path.exists():
            return stack

        try:
            data = _UndoStackFile.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable undo stack %s: %s", self.path, e)
            return stack

        # Stored most-recent-first; push oldest first to rebuild the same order
        for batch in reversed(data.batches[: self.capacity]):
            stack.push(batch)
        return stack

    def save(self, stack: UndoStack) -> None:
        """Write the stack to disk, creating the parent directory if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = _UndoStackFile(batches=stack.batches())
        self.path.write_text(payload.model_dump_json(indent=2), encoding="utf-8")

    def clear(self) -> None:
        self.save(UndoStack(self.capacity))
