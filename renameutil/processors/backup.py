"""Directory backups taken before a rename batch, and their deletion."""

import logging
import os
import re
import shutil
from datetime import datetime
from pathlib import Path

from renameutil.config import (
    BACKUP_PREFIX,
    BACKUP_TIMESTAMP_FORMAT,
    CONTEXT_NAME_MAX_LENGTH,
    AppPaths,
)
from renameutil.models.rename import BackupResult, DeleteResult


logger = logging.getLogger(__name__)

_INVALID_CONTEXT_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_ALL_DOTS_RE = re.compile(r"^\.+$")
_EDGE_DOTS_SPACES_RE = re.compile(r"^[. ]+|[. ]+$")


def default_backup_root() -> Path:
    return AppPaths.backup_root()


def sanitize_context_name(context_name: str, source_path: Path | None = None) -> str:
    """Turn a free-form context name into a safe folder name component.

    An empty context falls back to the source directory's name, then to
    "BackupContext". A context that sanitizes to nothing becomes "Backup".
    """
    safe = context_name
    if not safe:
        if source_path is not None and source_path.name and source_path.is_dir():
            safe = source_path.name
        else:
            safe = "BackupContext"

    safe = _INVALID_CONTEXT_CHARS_RE.sub("_", safe)
    safe = _ALL_DOTS_RE.sub("_", safe)
    safe = _EDGE_DOTS_SPACES_RE.sub("", safe)
    safe = safe[:CONTEXT_NAME_MAX_LENGTH]
    return safe or "Backup"


def copy_tree(source: Path, destination: Path) -> str | None:
    """Recursively copy the files and directories of ``source`` into ``destination``.

    Existing files at the destination are overwritten. Symlinks and other
    special entries are skipped. Stops at the first failure.

    Returns:
        None on success, otherwise a description of the failure.
    """
    try:
        if not destination.exists():
            destination.mkdir(parents=True)
        elif not destination.is_dir():
            return f"Backup destination path exists but is not a directory: {destination}"
    except OSError as e:
        return f"Failed to create destination directory: {destination} ({e})"

    try:
        with os.scandir(source) as it:
            entries = list(it)
    except OSError as e:
        return f"Failed to list source directory '{source}': {e}"

    for entry in entries:
        src_path = Path(entry.path)
        dst_path = destination / entry.name
        try:
            if entry.is_dir(follow_symlinks=False):
                error = copy_tree(src_path, dst_path)
                if error is not None:
                    return error
            elif entry.is_file(follow_symlinks=False):
                shutil.copy2(src_path, dst_path)
            else:
                logger.debug("Skipping special entry %s", src_path)
        except OSError as e:
            return f"Failed to copy '{src_path}' to '{dst_path}': {e}"

    return None


class BackupManager:
    """Creates and deletes timestamped directory backups under a fixed root."""

    def __init__(self, backup_root: Path | None = None) -> None:
        """Initialize the manager.

        Args:
            backup_root: Directory that holds the backups. Defaults to the
                platform documents directory (see AppPaths.backup_root).
        """
        self.backup_root = Path(backup_root) if backup_root is not None else default_backup_root()

    def backup_path_for(self, source_path: Path, context_name: str, now: datetime | None = None) -> Path:
        """Return the folder a backup of ``source_path`` taken at ``now`` would be written to."""
        timestamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        context = sanitize_context_name(context_name, source_path)
        return self.backup_root / f"{BACKUP_PREFIX}{context}_{timestamp}"

    def perform_backup(self, source_path: Path, context_name: str = "", now: datetime | None = None) -> BackupResult:
        """Copy ``source_path`` into a new timestamped folder under the backup root.

        A partially written backup is removed on failure; if that cleanup fails
        too, its error is appended to the original one.

        Args:
            source_path: Directory to back up.
            context_name: Free-form label included in the backup folder name.
            now: Timestamp for the folder name. Defaults to the current local time.

        Returns:
            BackupResult with the backup folder path.
        """
        source_path = Path(source_path)
        result = BackupResult()
        try:
            result.backup_path = self.backup_path_for(source_path, context_name, now)
            result.error_message = self._backup_into(source_path, result.backup_path)
        except Exception as e:
            logger.exception("Unexpected error backing up %s", source_path)
            result.error_message = f"Backup failed: {e}"

        result.success = not result.error_message
        if result.success:
            logger.info("Backed up %s to %s", source_path, result.backup_path)
        else:
            logger.error("%s", result.error_message)
        return result

    def _backup_into(self, source_path: Path, backup_path: Path) -> str:
        if not source_path.is_dir():
            return f"Backup failed: Backup source path is invalid or not a directory: '{source_path}'"

        try:
            if not self.backup_root.exists():
                self.backup_root.mkdir(parents=True)
            elif not self.backup_root.is_dir():
                return f"Backup failed: Parent backup path exists but is not a directory '{self.backup_root}'"
        except OSError as e:
            return f"Backup failed: Failed to create parent backup directory '{self.backup_root}' ({e})"

        if os.path.lexists(backup_path):
            return f"Backup failed: Backup destination path already exists (collision?): '{backup_path}'"

        error = copy_tree(source_path, backup_path)
        if error is None:
            return ""

        message = f"Backup failed: {error}"
        cleanup_error = self._remove_partial(backup_path)
        if cleanup_error:
            message += f" | Additionally, failed to cleanup partially created backup directory: {cleanup_error}"
        return message

    @staticmethod
    def _remove_partial(backup_path: Path) -> str:
        try:
            if backup_path.exists():
                shutil.rmtree(backup_path)
        except OSError as e:
            return str(e)
        return ""

    def delete_backup(self, backup_path: Path | str) -> DeleteResult:
        """Delete a backup directory.

        Deleting a path that does not exist succeeds, so repeated calls are safe.
        """
        return delete_backup(backup_path)

    def list_backups(self) -> list[Path]:
        """Return the backup folders under the backup root, oldest first."""
        if not self.backup_root.is_dir():
            return []
        return sorted(p for p in self.backup_root.glob(f"{BACKUP_PREFIX}*") if p.is_dir())


def delete_backup(backup_path: Path | str) -> DeleteResult:
    """Recursively delete ``backup_path`` and verify it is gone.

    Empty, "." and ".." paths are rejected. A missing path counts as deleted.
    """
    result = DeleteResult()
    raw = str(backup_path)
    path = Path(backup_path)
    if raw in ("", ".", "..") or path.name in ("", ".", ".."):
        result.error_message = f"Invalid backup path provided for deletion: '{raw}'"
        return result

    try:
        if not os.path.lexists(path):
            result.success = True
            result.error_message = f"Backup path not found (already deleted?): '{path}'."
            return result
        if not path.is_dir() or path.is_symlink():
            result.error_message = f"Path to delete is not a directory: '{path}'."
            return result

        shutil.rmtree(path)

        if os.path.lexists(path):
            result.error_message = (
                f"Verification failed: Directory still exists after reported successful deletion: '{path}'."
            )
            return result
    except OSError as e:
        result.error_message = f"Error deleting backup directory '{path}': {e}"
        return result
    except Exception as e:
        logger.exception("Unexpected error deleting backup %s", path)
        result.error_message = f"General exception during backup deletion '{path}': {e}"
        return result

    logger.info("Deleted backup %s", path)
    result.success = True
    return result
