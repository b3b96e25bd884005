"""CLI entrypoints."""

import logging
from pathlib import Path

import click
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from tqdm import tqdm

from renameutil.config import DEFAULT_FILENAME_PATTERN, DEFAULT_NAMING_PATTERN, AppPaths
from renameutil.history import HistoryLog
from renameutil.models.rename import (
    CaseConversionMode,
    InputParams,
    OutputResults,
    RenameOperation,
    RenamingMode,
)
from renameutil.processors.backup import BackupManager, delete_backup
from renameutil.processors.undo import UndoStore, perform_undo
from renameutil.profiles import Profile, ProfileStore
from renameutil.tasks import ExecuteRequest, PlanRequest, run_task


console = Console()
err_console = Console(stderr=True)

CASE_CHOICES = {
    "none": CaseConversionMode.NO_CHANGE,
    "upper": CaseConversionMode.TO_UPPER,
    "lower": CaseConversionMode.TO_LOWER,
}


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@click.group(context_settings=dict(show_default=True))
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v for info, -vv for debug).")
def cli(verbose: int) -> None:
    """renameutil - Batch rename files with number-aware naming patterns."""
    _configure_logging(verbose)


def plan_options(func):
    """Options shared by every command that builds a rename plan.

    Only options given explicitly on the command line override the values
    loaded from --profile.
    """
    options = [
        click.argument("directory", type=click.Path(file_okay=False, path_type=Path), required=False),
        click.option(
            "--files",
            "files",
            type=click.Path(path_type=Path),
            multiple=True,
            help="Rename exactly these files (manual mode) instead of scanning a directory.",
        ),
        click.option(
            "-p",
            "--pattern",
            type=str,
            default=DEFAULT_NAMING_PATTERN,
            help="Naming pattern, e.g. 'pic_<num><ext>'.",
        ),
        click.option(
            "--filter",
            "filename_pattern",
            type=str,
            default=DEFAULT_FILENAME_PATTERN,
            help="Wildcard filter for directory scans, e.g. 'img_*.jpg'.",
        ),
        click.option(
            "--ext",
            "filter_extensions",
            type=str,
            default="",
            help="Comma-separated extensions to include, e.g. 'jpg,png'.",
        ),
        click.option("--find", "find_text", type=str, default="", help="Text to find in the generated name."),
        click.option("--replace", "replace_text", type=str, default="", help="Replacement for --find."),
        click.option("--regex/--no-regex", "use_regex", default=False, help="Treat --find as a regular expression."),
        click.option("--ignore-case/--match-case", "ignore_case", default=False, help="Case-insensitive find/replace."),
        click.option(
            "--case",
            "case",
            type=click.Choice(sorted(CASE_CHOICES)),
            default="none",
            help="Case conversion applied to the stem.",
        ),
        click.option("--increment", type=int, default=1, help="Value added to the trailing number for <num>."),
        click.option("--lowest", "lowest_number", type=int, default=0, help="Lowest trailing number to include."),
        click.option("--highest", "highest_number", type=int, default=0, help="Highest trailing number to include."),
        click.option("-r", "--recursive/--no-recursive", "recursive_scan", default=False, help="Scan subdirectories."),
        click.option("--profile", "profile_name", type=str, default=None, help="Start from a saved profile."),
    ]

    for option in reversed(options):
        func = option(func)
    return func


def _load_profile(profile_name: str | None) -> Profile:
    if not profile_name:
        return Profile()
    try:
        stored = ProfileStore(AppPaths.profiles_path()).load(profile_name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--profile") from e
    if stored is None:
        raise click.BadParameter(f"No profile named '{profile_name}'.", param_hint="--profile")
    return stored


def _is_given(name: str) -> bool:
    source = click.get_current_context().get_parameter_source(name)
    return source not in (None, ParameterSource.DEFAULT, ParameterSource.DEFAULT_MAP)


def given_options(options: dict) -> dict:
    """Keep only the options that were set on the command line."""
    return {name: value for name, value in options.items() if _is_given(name)}


def build_params(base: InputParams, directory: Path | None, files: tuple[Path, ...], options: dict) -> InputParams:
    """Overlay ``options`` (as returned by given_options) onto ``base``."""
    updates = {}
    if files:
        updates["mode"] = RenamingMode.MANUAL_SELECTION
        updates["manual_files"] = list(files)
    elif directory is not None:
        updates["mode"] = RenamingMode.DIRECTORY_SCAN
        updates["target_directory"] = directory

    if "pattern" in options:
        updates["naming_pattern"] = options["pattern"]
    if "ignore_case" in options:
        updates["find_case_sensitive"] = not options["ignore_case"]
    if "case" in options:
        updates["case_conversion_mode"] = CASE_CHOICES[options["case"]]

    for field in (
        "filename_pattern",
        "filter_extensions",
        "find_text",
        "replace_text",
        "use_regex",
        "increment",
        "lowest_number",
        "highest_number",
        "recursive_scan",
    ):
        if field in options:
            updates[field] = options[field]

    return base.model_copy(update=updates, deep=True)


def _print_plan(results: OutputResults) -> None:
    if results.rename_plan:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Original", style="cyan")
        table.add_column("New Name", style="green")
        table.add_column("Directory", style="dim")
        for op in results.rename_plan:
            table.add_row(op.old_name, op.new_name, str(op.old_full_path.parent))
        console.print(table)

    for message in results.general_info_log:
        console.print(f"[cyan]{escape(message)}[/cyan]")
    for overwrite in results.potential_overwrites_log:
        console.print(
            f"[yellow]Skipped {escape(overwrite.source_file)}: target {escape(overwrite.target_file)} "
            f"already exists ({escape(str(overwrite.target_path))}).[/yellow]"
        )
    for message in results.missing_source_files_log:
        console.print(f"[yellow]Missing: {escape(message)}[/yellow]")
    for message in results.warning_log:
        console.print(f"[yellow]Warning: {escape(message)}[/yellow]")
    for message in results.error_log:
        console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def _plan(params: InputParams) -> OutputResults:
    results = run_task(PlanRequest(params=params))
    _print_plan(results)
    return results


def _progress_bar(total: int, desc: str):
    bar = tqdm(total=total, desc=desc, unit="file")

    def on_progress(current: int, total: int, message: str) -> None:
        bar.n = current
        bar.set_postfix_str(message, refresh=False)
        bar.refresh()

    return bar, on_progress


def _print_failures(failures: list[tuple[str, str]]) -> None:
    for name, message in failures:
        console.print(f"[bold red]Failed:[/bold red] {escape(name)}: {escape(message)}")


@cli.command("preview")
@plan_options
def preview(directory: Path | None, files: tuple[Path, ...], profile_name: str | None, **options) -> None:
    """Show what a rename would do without touching any file.

    Examples:

        renameutil preview ~/Photos --filter "img_*.jpg" -p "pic_<num><ext>" --lowest 1 --highest 10

        renameutil preview --files a.txt --files b.log -p "<index>-<orig_name><ext>"
    """
    stored = _load_profile(profile_name)
    params = build_params(stored.params, directory, files, given_options(options))
    results = _plan(params)
    if not results.success:
        raise SystemExit(1)


@cli.command("rename")
@plan_options
@click.option("--backup/--no-backup", default=False, help="Back up the target directory before renaming.")
@click.option("--context", "context_name", type=str, default="", help="Label for the backup folder name.")
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    default=False,
    help="Automatically apply renames without asking for confirmation.",
)
def rename(
    directory: Path | None,
    files: tuple[Path, ...],
    profile_name: str | None,
    backup: bool,
    context_name: str,
    yes: bool,
    **options,
) -> None:
    """Build a rename plan and apply it.

    Successful batches are appended to the history log and can be reverted
    with `renameutil undo`.
    """
    stored = _load_profile(profile_name)
    params = build_params(stored.params, directory, files, given_options(options))
    if not _is_given("backup"):
        backup = stored.backup

    results = _plan(params)
    if not results.success:
        console.print("[bold red]Plan calculation failed. No files were renamed.[/bold red]")
        raise SystemExit(1)
    if not results.rename_plan:
        console.print("[yellow]Nothing to rename.[/yellow]")
        return

    if not yes and not click.confirm(f"Rename {len(results.rename_plan)} file(s)?", default=False):
        console.print("[yellow]Aborted. No files were renamed.[/yellow]")
        return

    target_directory = params.target_directory
    if target_directory is None and params.manual_files:
        target_directory = params.manual_files[0].absolute().parent

    request = ExecuteRequest(
        plan=results.rename_plan,
        increment=params.increment,
        target_directory=target_directory,
        context_name=context_name,
        backup=backup,
    )
    bar, on_progress = _progress_bar(len(results.rename_plan), "Renaming files...")
    with bar:
        outcome = run_task(request, BackupManager(AppPaths.backup_root()), on_progress)

    if outcome.backup_attempted:
        if outcome.backup_result.success:
            backup_path = escape(str(outcome.backup_result.backup_path))
            console.print(f"Backup created at [bold cyan]{backup_path}[/bold cyan].")
        else:
            console.print(f"[bold red]Backup failed:[/bold red] {escape(outcome.backup_result.error_message)}")
            console.print("[yellow]No files were renamed.[/yellow]")
            raise SystemExit(1)

    rename_result = outcome.rename_result
    undo_store = UndoStore(AppPaths.undo_stack_path())
    stack = undo_store.load()
    if rename_result.overall_success:
        stack.push(rename_result.successful_rename_ops)
    else:
        # Partially applied batches cannot be reverted reliably
        stack.clear()
    undo_store.save(stack)

    if rename_result.successful_rename_ops:
        HistoryLog(AppPaths.history_log_path()).append(rename_result.successful_rename_ops)

    console.print(f"[bold green]Renamed {len(rename_result.successful_rename_ops)} file(s).[/bold green]")
    if not rename_result.overall_success:
        _print_failures(rename_result.failed_renames)
        raise SystemExit(1)


@cli.command("undo")
@click.option(
    "-y",
    "--yes",
    is_flag=True,
    default=False,
    help="Undo without asking for confirmation.",
)
def undo(yes: bool) -> None:
    """Revert the most recent rename batch."""
    undo_store = UndoStore(AppPaths.undo_stack_path())
    stack = undo_store.load()
    batch: list[RenameOperation] | None = stack.peek()
    if not batch:
        console.print("[yellow]Nothing to undo.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Current", style="cyan")
    table.add_column("Restored Name", style="green")
    for op in reversed(batch):
        table.add_row(op.new_name, op.old_name)
    console.print(table)

    if not yes and not click.confirm(f"Revert {len(batch)} rename(s)?", default=False):
        console.print("[yellow]Aborted. No files were changed.[/yellow]")
        return

    stack.pop()
    bar, on_progress = _progress_bar(len(batch), "Reverting renames...")
    with bar:
        result = perform_undo(batch, on_progress)

    if result.overall_success:
        undo_store.save(stack)
    else:
        undo_store.clear()

    console.print(f"[bold green]Reverted {len(result.successful_undos)} file(s).[/bold green]")
    if result.successful_undos:
        HistoryLog(AppPaths.history_log_path()).append([op.inverted() for op in result.reverted_ops], "UNDO")
    if not result.overall_success:
        _print_failures(result.failed_undos)
        raise SystemExit(1)


@cli.command("history")
def history() -> None:
    """Print the rename history log."""
    text = HistoryLog(AppPaths.history_log_path()).read_text()
    if not text.strip():
        console.print("[yellow]No renames recorded yet.[/yellow]")
        return
    console.print(text, markup=False, highlight=False)


@cli.command("backups")
def backups() -> None:
    """List the backup folders created by `renameutil rename --backup`."""
    backup_paths = BackupManager(AppPaths.backup_root()).list_backups()
    if not backup_paths:
        console.print("[yellow]No backups found.[/yellow]")
        return
    for backup_path in backup_paths:
        console.print(escape(str(backup_path)), soft_wrap=True)


@cli.command("delete-backup")
@click.argument("backup_path", type=click.Path(path_type=Path))
def delete_backup_command(backup_path: Path) -> None:
    """Delete a backup folder created by `renameutil rename --backup`."""
    result = delete_backup(backup_path)
    if not result.success:
        console.print(f"[bold red]Error:[/bold red] {escape(result.error_message)}")
        raise SystemExit(1)
    if result.error_message:
        console.print(f"[yellow]{escape(result.error_message)}[/yellow]")
    else:
        console.print(f"[bold green]Deleted[/bold green] [bold cyan]{escape(str(backup_path))}[/bold cyan].")


@cli.group("profile")
def profile() -> None:
    """Manage saved renaming profiles."""
    pass


@profile.command("save")
@click.argument("name")
@plan_options
@click.option("--backup/--no-backup", default=False, help="Back up before renaming when this profile is used.")
def profile_save(
    name: str,
    directory: Path | None,
    files: tuple[Path, ...],
    profile_name: str | None,
    backup: bool,
    **options,
) -> None:
    """Save the given options as profile NAME."""
    base = _load_profile(profile_name)
    params = build_params(base.params, directory, files, given_options(options))
    store = ProfileStore(AppPaths.profiles_path())
    try:
        store.save(name, Profile(params=params, backup=backup if _is_given("backup") else base.backup))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAME") from e
    console.print(f"Saved profile [bold cyan]{escape(name.strip())}[/bold cyan].")


@profile.command("list")
def profile_list() -> None:
    """List saved profiles."""
    names = ProfileStore(AppPaths.profiles_path()).names()
    if not names:
        console.print("[yellow]No profiles saved.[/yellow]")
        return
    for name in names:
        console.print(name)


@profile.command("show")
@click.argument("name")
def profile_show(name: str) -> None:
    """Show the settings stored in profile NAME."""
    stored = _load_profile(name)
    params = stored.params

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Mode", params.mode.value)
    table.add_row("Target directory", str(params.target_directory or ""))
    table.add_row("Filename pattern", params.filename_pattern)
    table.add_row("Extensions", params.filter_extensions)
    table.add_row("Lowest number", str(params.lowest_number))
    table.add_row("Highest number", str(params.highest_number))
    table.add_row("Recursive", str(params.recursive_scan))
    table.add_row("Naming pattern", params.naming_pattern)
    table.add_row("Find", params.find_text)
    table.add_row("Replace", params.replace_text)
    table.add_row("Case-sensitive find", str(params.find_case_sensitive))
    table.add_row("Regex", str(params.use_regex))
    table.add_row("Case conversion", params.case_conversion_mode.value)
    table.add_row("Increment", str(params.increment))
    table.add_row("Backup", str(stored.backup))
    console.print(table)


@profile.command("delete")
@click.argument("name")
def profile_delete(name: str) -> None:
    """Delete profile NAME."""
    try:
        deleted = ProfileStore(AppPaths.profiles_path()).delete(name)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="NAME") from e
    if not deleted:
        console.print(f"[bold red]Error:[/bold red] No profile named '{escape(name)}'.")
        raise SystemExit(1)
    console.print(f"Deleted profile [bold cyan]{escape(name)}[/bold cyan].")
