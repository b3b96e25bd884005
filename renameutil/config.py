"""Application constants and platform paths."""

import os
import platform
from pathlib import Path


APP_NAME = "renameutil"

# Subfolder of the user's documents directory that holds backup trees
BACKUP_FOLDER_NAME = "RenameUtilityBackups"
BACKUP_PREFIX = "RenameBackup_"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
CONTEXT_NAME_MAX_LENGTH = 50

HISTORY_FILENAME = "rename_history.log"
HISTORY_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
PROFILES_FILENAME = "profiles.json"
UNDO_FILENAME = "undo_stack.json"

MAX_UNDO_LEVELS = 10
RANDOM_MAX_LENGTH = 64

DEFAULT_FILENAME_PATTERN = "*.*"
DEFAULT_NAMING_PATTERN = "<orig_name><ext>"

# Environment overrides, mostly useful for tests and portable installs
DATA_DIR_ENV = "RENAMEUTIL_DATA_DIR"
BACKUP_DIR_ENV = "RENAMEUTIL_BACKUP_DIR"


class AppPaths:
    """Resolve per-user directories for the application.

    Nothing here is cached or created eagerly; callers resolve a path once and
    inject it into the component that needs it (BackupManager, HistoryLog,
    ProfileStore, UndoStore).
    """

    @staticmethod
    def user_data_dir() -> Path:
        """Return the per-user data directory.

        Windows: %LOCALAPPDATA%/renameutil
        macOS: ~/Library/Application Support/renameutil
        Linux and others: $XDG_DATA_HOME/renameutil or ~/.local/share/renameutil
        """
        override = os.environ.get(DATA_DIR_ENV)
        if override:
            return Path(override)

        system = platform.system()
        if system == "Windows":
            base = os.environ.get("LOCALAPPDATA")
            if not base:
                base = str(Path(os.environ.get("USERPROFILE", str(Path.home()))) / "AppData" / "Local")
            return Path(base) / APP_NAME
        if system == "Darwin":
            return Path.home() / "Library" / "Application Support" / APP_NAME

        xdg_data = os.environ.get("XDG_DATA_HOME")
        if xdg_data:
            return Path(xdg_data) / APP_NAME
        return Path.home() / ".local" / "share" / APP_NAME

    @staticmethod
    def documents_dir() -> Path | None:
        """Return the user's documents directory, or None if it cannot be determined."""
        xdg_documents = os.environ.get("XDG_DOCUMENTS_DIR")
        if xdg_documents:
            return Path(xdg_documents)
        try:
            home = Path.home()
        except RuntimeError:
            return None
        return home / "Documents"

    @classmethod
    def backup_root(cls) -> Path:
        """Return the directory backups are written into.

        Falls back to the current working directory when no documents
        directory can be determined.
        """
        override = os.environ.get(BACKUP_DIR_ENV)
        if override:
            return Path(override)

        documents = cls.documents_dir()
        base = documents if documents is not None else Path.cwd()
        return base / BACKUP_FOLDER_NAME

    @classmethod
    def history_log_path(cls) -> Path:
        return cls.user_data_dir() / HISTORY_FILENAME

    @classmethod
    def profiles_path(cls) -> Path:
        return cls.user_data_dir() / PROFILES_FILENAME

    @classmethod
    def undo_stack_path(cls) -> Path:
        return cls.user_data_dir() / UNDO_FILENAME
