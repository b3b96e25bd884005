"""Per-file context used to expand naming pattern placeholders."""

from pathlib import Path

from pydantic import BaseModel, Field

from renameutil.filenames import split_name
from renameutil.models.rename import RenamingMode


class PlaceholderContext(BaseModel):
    """Values available to the placeholders of a naming pattern.

    Optional fields that are left unset render as empty strings (or the
    documented fallback for file-based placeholders).
    """

    mode: RenamingMode = Field(description="Renaming mode; decides which numeric placeholders apply")
    original_full_name: str = Field(default="", description="Original filename including extension")
    stem: str = Field(default="", description="Original filename without extension (<orig_name>)")
    extension: str = Field(default="", description="Original extension including the dot (<ext>)")
    index: int = Field(default=0, description="1-based position in the manual list (<index>)")
    total_files: int = Field(default=0, description="Size of the manual list, sets <index> padding")
    original_number: int | None = Field(default=None, description="Trailing number of the original name")
    new_number: int | None = Field(default=None, description="Trailing number after the increment")
    number_width: int = Field(default=0, description="Zero-padding width for <num> and <orig_num>")
    parent_dir_name: str | None = Field(default=None, description="Name of the containing directory")
    full_path: Path | None = Field(default=None, description="Path of the file, for size/date placeholders")

    @classmethod
    def for_path(cls, path: Path, mode: RenamingMode, **kwargs) -> "PlaceholderContext":
        """Build a context from a file path, splitting its name into stem and extension."""
        stem, extension = split_name(path.name)
        return cls(
            mode=mode,
            original_full_name=path.name,
            stem=stem,
            extension=extension,
            parent_dir_name=path.parent.name,
            full_path=path,
            **kwargs,
        )
