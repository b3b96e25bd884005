"""Unit tests for rename execution."""

from pathlib import Path
from unittest.mock import MagicMock

from renameutil.models.rename import InputParams, RenameOperation
from renameutil.processors.plan_builder import calculate_rename_plan
from renameutil.processors.rename_executor import execution_order, perform_rename


def make_op(directory: Path, old: str, new: str, number: int | None = None, index: int = 0) -> RenameOperation:
    return RenameOperation(
        old_name=old,
        new_name=new,
        old_full_path=directory / old,
        new_full_path=directory / new,
        number=number,
        index=index,
    )


class TestExecutionOrder:
    """Tests for execution_order."""

    def test_positive_increment_runs_highest_first(self, tmp_path: Path) -> None:
        """Test that incrementing renames the highest number first."""
        plan = [make_op(tmp_path, f"f{n}", f"g{n}", number=n) for n in (1, 3, 2)]

        ordered = execution_order(plan, increment=1)

        assert [op.number for op in ordered] == [3, 2, 1]

    def test_negative_increment_runs_lowest_first(self, tmp_path: Path) -> None:
        """Test that decrementing renames the lowest number first."""
        plan = [make_op(tmp_path, f"f{n}", f"g{n}", number=n) for n in (1, 3, 2)]

        ordered = execution_order(plan, increment=-1)

        assert [op.number for op in ordered] == [1, 2, 3]

    def test_numberless_operations_last(self, tmp_path: Path) -> None:
        """Test that operations without a number follow numbered ones, by index."""
        plan = [
            make_op(tmp_path, "b", "b2", index=2),
            make_op(tmp_path, "n5", "n6", number=5),
            make_op(tmp_path, "a", "a2", index=1),
        ]

        ordered = execution_order(plan, increment=1)

        assert [op.old_name for op in ordered] == ["n5", "a", "b"]

    def test_does_not_modify_plan(self, tmp_path: Path) -> None:
        """Test that the input plan keeps its order."""
        plan = [make_op(tmp_path, f"f{n}", f"g{n}", number=n) for n in (1, 2)]

        execution_order(plan, increment=1)

        assert [op.number for op in plan] == [1, 2]


class TestPerformRename:
    """Tests for perform_rename."""

    def test_empty_plan_succeeds(self) -> None:
        """Test that an empty plan is a successful no-op."""
        result = perform_rename([], increment=1)

        assert result.overall_success
        assert result.successful_rename_ops == []

    def test_renames_files(self, tmp_path: Path) -> None:
        """Test a simple successful batch."""
        (tmp_path / "a.txt").write_text("A")
        (tmp_path / "b.txt").write_text("B")
        plan = [make_op(tmp_path, "a.txt", "x.txt", index=1), make_op(tmp_path, "b.txt", "y.txt", index=2)]

        result = perform_rename(plan, increment=1)

        assert result.overall_success
        assert len(result.successful_rename_ops) == 2
        assert (tmp_path / "x.txt").read_text() == "A"
        assert (tmp_path / "y.txt").read_text() == "B"
        assert not (tmp_path / "a.txt").exists()

    def test_chained_renumbering(self, tmp_path: Path) -> None:
        """Test that a plan whose targets are other sources executes without collisions."""
        (tmp_path / "img_01.txt").write_text("one")
        (tmp_path / "img_02.txt").write_text("two")
        plan = calculate_rename_plan(InputParams(target_directory=tmp_path, naming_pattern="img_<num><ext>"))

        result = perform_rename(plan.rename_plan, increment=1)

        assert result.overall_success
        assert (tmp_path / "img_02.txt").read_text() == "one"
        assert (tmp_path / "img_03.txt").read_text() == "two"
        assert not (tmp_path / "img_01.txt").exists()

    def test_missing_source(self, tmp_path: Path) -> None:
        """Test that a vanished source fails without creating the target."""
        plan = [make_op(tmp_path, "gone.txt", "new.txt")]

        result = perform_rename(plan, increment=1)

        assert result.overall_success is False
        assert len(result.failed_renames) == 1
        assert result.failed_renames[0][0] == "gone.txt"
        assert result.failed_renames[0][1].startswith("Skipped: Source file disappeared")
        assert not (tmp_path / "new.txt").exists()

    def test_target_created_after_planning(self, tmp_path: Path) -> None:
        """Test that an occupied target is never overwritten."""
        (tmp_path / "a.txt").write_text("source")
        (tmp_path / "b.txt").write_text("intruder")

        result = perform_rename([make_op(tmp_path, "a.txt", "b.txt")], increment=1)

        assert result.overall_success is False
        assert result.failed_renames[0][1].startswith("Skipped: Target path already exists")
        assert (tmp_path / "b.txt").read_text() == "intruder"
        assert (tmp_path / "a.txt").exists()

    def test_source_is_directory(self, tmp_path: Path) -> None:
        """Test that a source replaced by a directory is skipped."""
        (tmp_path / "a.txt").mkdir()

        result = perform_rename([make_op(tmp_path, "a.txt", "b.txt")], increment=1)

        assert result.failed_renames[0][1].startswith("Skipped: Source is not a regular file")

    def test_failure_does_not_stop_batch(self, tmp_path: Path) -> None:
        """Test that remaining operations still run after a failure."""
        (tmp_path / "ok.txt").write_text("ok")
        plan = [make_op(tmp_path, "gone.txt", "x.txt", index=1), make_op(tmp_path, "ok.txt", "y.txt", index=2)]

        result = perform_rename(plan, increment=1)

        assert result.overall_success is False
        assert [op.old_name for op in result.successful_rename_ops] == ["ok.txt"]
        assert (tmp_path / "y.txt").exists()

    def test_identity_operation_is_skipped(self, tmp_path: Path) -> None:
        """Test that an identity operation is neither a success nor a failure."""
        (tmp_path / "a.txt").write_text("a")

        result = perform_rename([make_op(tmp_path, "a.txt", "a.txt")], increment=1)

        assert result.overall_success
        assert result.successful_rename_ops == []
        assert result.failed_renames == []

    def test_progress_callback(self, tmp_path: Path) -> None:
        """Test that progress is reported once per item."""
        (tmp_path / "a.txt").write_text("a")
        (tmp_path / "b.txt").write_text("b")
        plan = [make_op(tmp_path, "a.txt", "x.txt", index=1), make_op(tmp_path, "b.txt", "y.txt", index=2)]
        callback = MagicMock()

        perform_rename(plan, increment=1, progress_callback=callback)

        assert callback.call_count == 2
        callback.assert_any_call(1, 2, "a.txt -> x.txt")
        callback.assert_any_call(2, 2, "b.txt -> y.txt")
