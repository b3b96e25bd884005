"""Rename planning and execution data models."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from renameutil.config import DEFAULT_FILENAME_PATTERN, DEFAULT_NAMING_PATTERN


class RenamingMode(str, Enum):
    """Where the files of a batch come from."""

    DIRECTORY_SCAN = "directory_scan"
    MANUAL_SELECTION = "manual_selection"


class CaseConversionMode(str, Enum):
    """Case conversion applied to the stem of a generated filename."""

    NO_CHANGE = "no_change"
    TO_UPPER = "to_upper"
    TO_LOWER = "to_lower"


class RenameOperation(BaseModel):
    """A single planned (or applied) file rename."""

    model_config = ConfigDict(frozen=True)

    old_name: str = Field(description="Original filename (without directory path)")
    new_name: str = Field(description="New filename (without directory path)")
    old_full_path: Path = Field(description="Absolute path of the file before the rename")
    new_full_path: Path = Field(description="Absolute path of the file after the rename")
    number: int | None = Field(
        default=None,
        description="Trailing number parsed from the original filename (directory scan only)",
    )
    index: int = Field(
        default=0,
        description="1-based position in the manual file list, 0 in directory scan mode",
    )

    def inverted(self) -> "RenameOperation":
        """Return the operation that reverts this one."""
        return self.model_copy(
            update={
                "old_name": self.new_name,
                "new_name": self.old_name,
                "old_full_path": self.new_full_path,
                "new_full_path": self.old_full_path,
            }
        )

    def __str__(self) -> str:
        return f"RenameOperation('{self.old_name}' -> '{self.new_name}')"


class PotentialOverwrite(BaseModel):
    """A planned rename skipped because its target exists and is foreign to the batch."""

    source_file: str = Field(description="Filename of the source that was skipped")
    target_file: str = Field(description="Generated filename that already exists")
    target_path: Path = Field(description="Resolved path of the existing target")


class InputParams(BaseModel):
    """Full configuration for one planning pass."""

    mode: RenamingMode = Field(default=RenamingMode.DIRECTORY_SCAN, description="Source of the files to rename")
    target_directory: Path | None = Field(default=None, description="Directory to scan (directory scan mode)")
    naming_pattern: str = Field(default=DEFAULT_NAMING_PATTERN, description="Naming pattern with placeholders")
    find_text: str = Field(default="", description="Text (or regex) to find in the generated name")
    replace_text: str = Field(default="", description="Replacement for find_text")
    find_case_sensitive: bool = Field(default=True, description="Whether find/replace is case-sensitive")
    use_regex: bool = Field(default=False, description="Treat find_text as a regular expression")
    case_conversion_mode: CaseConversionMode = Field(
        default=CaseConversionMode.NO_CHANGE, description="Case conversion applied to the stem"
    )
    increment: int = Field(default=1, description="Value added to the trailing number for <num>")
    filename_pattern: str = Field(
        default=DEFAULT_FILENAME_PATTERN, description="Wildcard pattern ('*', '?') filenames must match"
    )
    filter_extensions: str = Field(default="", description="Comma-separated extension allow-list")
    highest_number: int = Field(default=0, description="Upper bound of the numeric filter (0/0 disables it)")
    lowest_number: int = Field(default=0, description="Lower bound of the numeric filter (0/0 disables it)")
    recursive_scan: bool = Field(default=False, description="Descend into subdirectories")
    manual_files: list[Path] = Field(default_factory=list, description="Explicit file list (manual mode)")

    @property
    def number_filter_active(self) -> bool:
        return self.lowest_number != 0 or self.highest_number != 0


class OutputResults(BaseModel):
    """A rename plan together with the diagnostics gathered while building it."""

    rename_plan: list[RenameOperation] = Field(default_factory=list)
    missing_source_files_log: list[str] = Field(default_factory=list)
    potential_overwrites_log: list[PotentialOverwrite] = Field(default_factory=list)
    general_info_log: list[str] = Field(default_factory=list)
    warning_log: list[str] = Field(default_factory=list)
    error_log: list[str] = Field(default_factory=list)
    success: bool = False

    def __len__(self) -> int:
        return len(self.rename_plan)

    @property
    def has_issues(self) -> bool:
        return bool(
            self.missing_source_files_log or self.potential_overwrites_log or self.warning_log or self.error_log
        )


class RenameExecutionResult(BaseModel):
    """Outcome of executing a rename plan."""

    successful_rename_ops: list[RenameOperation] = Field(default_factory=list)
    failed_renames: list[tuple[str, str]] = Field(
        default_factory=list, description="(original filename, error message) pairs"
    )
    overall_success: bool = False


class UndoResult(BaseModel):
    """Outcome of reverting a batch of renames."""

    successful_undos: list[tuple[str, str]] = Field(
        default_factory=list, description="(new filename, restored filename) pairs"
    )
    failed_undos: list[tuple[str, str]] = Field(default_factory=list, description="(new filename, error message) pairs")
    reverted_ops: list[RenameOperation] = Field(
        default_factory=list, description="Operations that were reverted, in the order they were undone"
    )
    overall_success: bool = False


class BackupResult(BaseModel):
    """Outcome of backing up a directory tree."""

    backup_path: Path | None = None
    success: bool = False
    error_message: str = ""


class DeleteResult(BaseModel):
    """Outcome of deleting a backup directory."""

    success: bool = False
    error_message: str = ""
