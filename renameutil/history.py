"""Append-only, human-readable log of executed rename batches."""

import logging
from datetime import datetime
from pathlib import Path

from renameutil.config import HISTORY_TIMESTAMP_FORMAT
from renameutil.models.rename import RenameOperation


logger = logging.getLogger(__name__)


class HistoryLog:
    """Line-oriented history file. Each batch is written as::

        === RENAME at 2024-05-01 13:37:00 ===
        Files: 2
          /photos/img_05.jpg -> /photos/pic_06.jpg
          /photos/img_07.jpg -> /photos/pic_08.jpg
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def append(
        self,
        operations: list[RenameOperation],
        operation_type: str = "RENAME",
        now: datetime | None = None,
    ) -> bool:
        """Append one record for a batch.

        Returns:
            True if the record was written (or there was nothing to write),
            False if the log could not be written. Never raises.
        """
        if not operations:
            return True

        timestamp = (now or datetime.now()).strftime(HISTORY_TIMESTAMP_FORMAT)
        lines = [
            "",
            f"=== {operation_type} at {timestamp} ===",
            f"Files: {len(operations)}",
        ]
        lines.extend(f"  {op.old_full_path} -> {op.new_full_path}" for op in operations)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write("\n".join(lines) + "\n")
        except OSError as e:
            logger.warning("Could not write history log %s: %s", self.path, e)
            return False
        return True

    def read_text(self) -> str:
        """Return the whole log, or an empty string if it does not exist yet."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
