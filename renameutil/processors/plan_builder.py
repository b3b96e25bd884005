"""Rename plan builder: scans or walks the input files and produces a conflict-checked plan."""

import logging
import os
import re
from collections.abc import Callable, Iterator
from pathlib import Path

from renameutil.filenames import iequals, split_name
from renameutil.models.placeholders import PlaceholderContext
from renameutil.models.rename import (
    InputParams,
    OutputResults,
    PotentialOverwrite,
    RenameOperation,
    RenamingMode,
)
from renameutil.numbers import compute_number_width, fits_int32, parse_last_number
from renameutil.templating import convert_wildcard_to_regex, generate_name


logger = logging.getLogger(__name__)


class FatalPlanError(Exception):
    """A precondition failed; the plan must be abandoned."""


class PlanBuilder:
    """Build the rename plan for one set of input parameters.

    A builder is single-use: create one per planning pass and call `run()`.
    """

    def __init__(self, params: InputParams) -> None:
        """Initialize the builder.

        Args:
            params: Planning configuration. The builder works on its own copy.
        """
        self.params = params.model_copy(deep=True)
        self.results = OutputResults(success=True)

        # Lower-cased target paths already claimed by this batch
        self._planned_targets: set[str] = set()

    def run(self) -> OutputResults:
        """Build the plan.

        Returns:
            OutputResults with the plan and the categorized logs. `success` is
            False if a precondition failed or any item hit an error.
        """
        try:
            if not self.params.naming_pattern:
                raise FatalPlanError("FATAL: New name pattern cannot be empty.")

            if self.params.mode == RenamingMode.DIRECTORY_SCAN:
                matched = self._plan_directory_scan()
            else:
                matched = self._plan_manual_selection()
        except FatalPlanError as e:
            logger.error("%s", e)
            self.results.error_log.append(str(e))
            self.results.rename_plan = []
            self.results.success = False
            return self.results

        self.results.success = self.results.success and not self.results.error_log
        self._add_summary(matched)
        return self.results

    # Directory scan

    def _plan_directory_scan(self) -> int:
        params = self.params
        target_dir = params.target_directory

        if target_dir is None or not Path(target_dir).is_dir():
            raise FatalPlanError(f"FATAL: Target directory is invalid or inaccessible: {target_dir or ''}")
        if not params.filename_pattern:
            raise FatalPlanError("FATAL: Filename Pattern cannot be empty in Directory Scan mode.")
        if params.lowest_number > params.highest_number and params.number_filter_active:
            raise FatalPlanError("FATAL: Lowest Number filter cannot be greater than Highest Number filter.")

        try:
            name_regex = re.compile(convert_wildcard_to_regex(params.filename_pattern), re.IGNORECASE)
        except re.error as e:
            raise FatalPlanError(f"FATAL: Invalid Filename Pattern (regex error): {e}") from e

        extensions = self._parse_extension_filter(params.filter_extensions)
        if extensions:
            self.results.general_info_log.append(f"Filtering by extensions: {params.filter_extensions}")

        number_width = compute_number_width(params.lowest_number, params.highest_number, params.increment)
        needs_number = (
            params.number_filter_active or "<num>" in params.naming_pattern or "<orig_num>" in params.naming_pattern
        )

        found: dict[Path, int | None] = {}
        root = Path(target_dir).absolute()
        scan_kind = "recursive" if params.recursive_scan else "non-recursive"
        self.results.general_info_log.append(f"Starting {scan_kind} directory scan...")
        logger.info("Scanning %s (%s)", root, scan_kind)

        for path in self._walk(root, params.recursive_scan):
            filename = path.name
            if not name_regex.fullmatch(filename):
                continue
            if extensions and split_name(filename)[1].lower() not in extensions:
                continue

            number = parse_last_number(filename) if needs_number else None
            if params.number_filter_active and (
                number is None or not params.lowest_number <= number <= params.highest_number
            ):
                continue
            found[path] = number

        for path in sorted(found):
            self._plan_scanned_file(path, found[path], number_width, found)

        return len(found)

    def _walk(self, root: Path, recursive: bool) -> Iterator[Path]:
        """Yield the regular files under ``root``.

        Unreadable subdirectories and entries whose type cannot be determined
        are logged as warnings and skipped. Failing to list ``root`` itself is fatal.
        """
        try:
            with os.scandir(root) as it:
                entries = sorted(it, key=lambda e: e.name)
        except PermissionError as e:
            raise FatalPlanError(f"FATAL: Permission denied listing target directory '{root}': {e}") from e
        except OSError as e:
            raise FatalPlanError(f"FATAL: Filesystem error starting directory scan at '{root}': {e}") from e

        yield from self._walk_entries(entries, recursive)

    def _walk_entries(self, entries: list[os.DirEntry], recursive: bool) -> Iterator[Path]:
        for entry in entries:
            try:
                if entry.is_file():
                    yield Path(entry.path)
                elif recursive and entry.is_dir(follow_symlinks=False):
                    yield from self._walk_subdirectory(Path(entry.path))
            except OSError as e:
                self.results.warning_log.append(f"Warning: Filesystem error checking type of '{entry.path}': {e}")

    def _walk_subdirectory(self, directory: Path) -> Iterator[Path]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except PermissionError:
            logger.debug("Skipping unreadable directory %s", directory)
            return
        except OSError as e:
            self.results.warning_log.append(f"Warning: Filesystem error during recursive scan near '{directory}': {e}")
            return

        yield from self._walk_entries(entries, recursive=True)

    @staticmethod
    def _parse_extension_filter(filter_extensions: str) -> set[str]:
        """Parse a comma-separated extension list into lower-cased, dot-prefixed entries."""
        extensions = set()
        for token in filter_extensions.split(","):
            ext = token.strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = "." + ext
            extensions.add(ext)
        return extensions

    def _plan_scanned_file(
        self,
        path: Path,
        original_number: int | None,
        number_width: int,
        batch_sources: dict[Path, int | None],
    ) -> None:
        params = self.params
        filename = path.name

        new_number = None
        if original_number is not None:
            new_number = original_number + params.increment
            if not fits_int32(new_number):
                self.results.missing_source_files_log.append(
                    f"{filename} (in {path.parent}) (Skipped: Incremented number out of int range)"
                )
                self.results.success = False
                return

        context = PlaceholderContext.for_path(
            path,
            RenamingMode.DIRECTORY_SCAN,
            original_number=original_number,
            new_number=new_number,
            number_width=number_width,
        )
        operation = self._build_operation(path, context, batch_sources.__contains__, number=original_number)
        if operation is not None:
            self.results.rename_plan.append(operation)

    # Manual selection

    def _plan_manual_selection(self) -> int:
        manual_files = self.params.manual_files
        if not manual_files:
            raise FatalPlanError("FATAL: No files were added to the list in Manual Selection mode.")

        total_files = len(manual_files)
        input_paths: set[Path] = set()
        seen: set[Path] = set()

        for path in manual_files:
            input_paths.add(Path(path).absolute())

        for index, raw_path in enumerate(manual_files, start=1):
            path = Path(raw_path).absolute()

            if path in seen:
                self.results.warning_log.append(f"Warning: Skipping duplicate input file: {path}")
                continue
            seen.add(path)

            try:
                is_file = path.is_file()
            except OSError as e:
                self.results.missing_source_files_log.append(
                    f"{path} (Skipped: Not a valid file or inaccessible. Error: {e})"
                )
                continue
            if not is_file:
                self.results.missing_source_files_log.append(f"{path} (Skipped: Not a valid file or inaccessible)")
                continue

            context = PlaceholderContext.for_path(
                path,
                RenamingMode.MANUAL_SELECTION,
                index=index,
                total_files=total_files,
            )
            operation = self._build_operation(path, context, input_paths.__contains__, index=index)
            if operation is not None:
                self.results.rename_plan.append(operation)

        return total_files

    # Shared checks

    def _build_operation(
        self,
        path: Path,
        context: PlaceholderContext,
        is_batch_source: Callable[[Path], bool],
        number: int | None = None,
        index: int = 0,
    ) -> RenameOperation | None:
        """Generate the new name for ``path`` and run the per-item checks.

        Args:
            path: Source file.
            context: Placeholder values for the file.
            is_batch_source: Predicate telling whether a path is one of this batch's sources.
            number: Original trailing number (directory scan).
            index: 1-based list position (manual selection).

        Returns:
            The operation to plan, or None if the file is skipped.
        """
        params = self.params
        filename = path.name

        new_name = generate_name(
            params.naming_pattern,
            context,
            find=params.find_text,
            replace=params.replace_text,
            case_sensitive=params.find_case_sensitive,
            use_regex=params.use_regex,
            case_mode=params.case_conversion_mode,
        )

        if not new_name:
            self.results.error_log.append(f"Error: Generated new filename is empty for '{filename}'. Skipped.")
            self.results.missing_source_files_log.append(f"{filename} (Skipped: Generated name was empty)")
            self.results.success = False
            return None

        new_path = path.parent / new_name

        if iequals(str(path), str(new_path)):
            self.results.general_info_log.append(
                f"Skipping '{filename}' (New name is identical to old name, case-insensitively)"
            )
            return None

        target_key = str(new_path).lower()
        if target_key in self._planned_targets:
            self.results.error_log.append(
                f"Error: Generated new path '{new_path}' conflicts with another generated path in this batch. "
                f"Skipping '{filename}'."
            )
            self.results.missing_source_files_log.append(f"{filename} (Skipped: Target path conflict within batch)")
            self.results.success = False
            return None
        self._planned_targets.add(target_key)

        try:
            target_exists = new_path.exists()
        except OSError as e:
            self.results.warning_log.append(
                f"Warning: Filesystem error checking target path '{new_path}': {e}. Skipping '{filename}'."
            )
            self.results.missing_source_files_log.append(f"{filename} (Skipped: Error checking target path)")
            return None

        if target_exists and not is_batch_source(new_path):
            self.results.potential_overwrites_log.append(
                PotentialOverwrite(source_file=filename, target_file=new_name, target_path=new_path)
            )
            self.results.missing_source_files_log.append(
                f"{filename} (Skipped: Target path '{new_path}' already exists and is not part of this rename batch)"
            )
            return None

        return RenameOperation(
            old_name=filename,
            new_name=new_name,
            old_full_path=path,
            new_full_path=new_path,
            number=number,
            index=index,
        )

    def _add_summary(self, matched: int) -> None:
        results = self.results
        if results.rename_plan:
            message = f"Calculated {len(results.rename_plan)} file(s) to be renamed."
        elif self.params.mode == RenamingMode.DIRECTORY_SCAN and matched == 0 and not results.has_issues:
            message = "No files found in the target directory matching the specified pattern/filters."
        else:
            message = "No files eligible for renaming after applying all filters and checks."

        results.general_info_log.append(message)
        logger.info("%s", message)


def calculate_rename_plan(params: InputParams) -> OutputResults:
    """Build a rename plan for ``params``.

    Never raises: an unexpected internal error is reported as a fatal entry
    in the error log with an empty plan.
    """
    try:
        return PlanBuilder(params).run()
    except Exception as e:
        logger.exception("Unexpected error while building the rename plan")
        return OutputResults(
            error_log=[f"FATAL: Unexpected error during plan calculation: {e}"],
            success=False,
        )
