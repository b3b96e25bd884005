"""Unit tests for undo and the undo stack."""

import hashlib
from pathlib import Path

import pytest

from renameutil.models.rename import InputParams, RenameOperation
from renameutil.processors.plan_builder import calculate_rename_plan
from renameutil.processors.rename_executor import perform_rename
from renameutil.processors.undo import UndoStack, UndoStore, perform_undo


def checksums(directory: Path) -> dict[str, str]:
    return {p.name: hashlib.sha256(p.read_bytes()).hexdigest() for p in directory.iterdir() if p.is_file()}


def make_batch(directory: Path, *pairs: tuple[str, str]) -> list[RenameOperation]:
    return [
        RenameOperation(old_name=old, new_name=new, old_full_path=directory / old, new_full_path=directory / new)
        for old, new in pairs
    ]


class TestPerformUndo:
    """Tests for perform_undo."""

    def test_round_trip_restores_files(self, tmp_path: Path) -> None:
        """Test that rename followed by undo restores names and contents."""
        for n in range(1, 4):
            (tmp_path / f"img_{n:02d}.jpg").write_bytes(bytes([n]) * (n * 100))
        before = checksums(tmp_path)

        plan = calculate_rename_plan(InputParams(target_directory=tmp_path, naming_pattern="img_<num><ext>"))
        executed = perform_rename(plan.rename_plan, increment=1)
        assert executed.overall_success
        assert checksums(tmp_path) != before

        result = perform_undo(executed.successful_rename_ops)

        assert result.overall_success
        assert len(result.successful_undos) == 3
        assert checksums(tmp_path) == before

    def test_empty_batch(self) -> None:
        """Test that undoing nothing succeeds."""
        assert perform_undo([]).overall_success

    def test_missing_renamed_file(self, tmp_path: Path) -> None:
        """Test that a renamed file that vanished is reported."""
        result = perform_undo(make_batch(tmp_path, ("a.txt", "b.txt")))

        assert result.overall_success is False
        name, message = result.failed_undos[0]
        assert name == "b.txt"
        assert message.startswith("Skipped Undo: Source file disappeared")
        assert message.endswith("Cannot revert.")

    def test_original_path_occupied(self, tmp_path: Path) -> None:
        """Test that undo never overwrites a file now at the original path."""
        (tmp_path / "a.txt").write_text("new occupant")
        (tmp_path / "b.txt").write_text("renamed")

        result = perform_undo(make_batch(tmp_path, ("a.txt", "b.txt")))

        assert result.overall_success is False
        assert result.failed_undos[0][1].startswith("Skipped Undo: Original path is occupied.")
        assert (tmp_path / "a.txt").read_text() == "new occupant"

    def test_reverse_order(self, tmp_path: Path) -> None:
        """Test that the batch is reverted last executed first."""
        (tmp_path / "c.txt").write_text("was a")
        batch = make_batch(tmp_path, ("a.txt", "b.txt"), ("b.txt", "c.txt"))

        result = perform_undo(batch)

        assert result.overall_success
        assert result.successful_undos == [("c.txt", "b.txt"), ("b.txt", "a.txt")]
        assert (tmp_path / "a.txt").read_text() == "was a"

    def test_reverted_ops_exclude_failures(self, tmp_path: Path) -> None:
        """Test that only the operations actually reverted are reported back."""
        (tmp_path / "y.txt").write_text("was x")
        batch = make_batch(tmp_path, ("a.txt", "b.txt"), ("x.txt", "y.txt"))

        result = perform_undo(batch)

        assert result.overall_success is False
        assert result.reverted_ops == [batch[1]]
        assert [name for name, _ in result.failed_undos] == ["b.txt"]


class TestUndoStack:
    """Tests for UndoStack."""

    def test_push_pop_most_recent_first(self, tmp_path: Path) -> None:
        """Test LIFO order."""
        stack = UndoStack()
        first = make_batch(tmp_path, ("a", "b"))
        second = make_batch(tmp_path, ("c", "d"))
        stack.push(first)
        stack.push(second)

        assert stack.pop() == second
        assert stack.pop() == first
        assert stack.pop() is None

    def test_capacity_drops_oldest(self, tmp_path: Path) -> None:
        """Test that pushing beyond capacity discards the oldest batch."""
        stack = UndoStack(capacity=2)
        for name in ("a", "b", "c"):
            stack.push(make_batch(tmp_path, (name, name + "2")))

        assert len(stack) == 2
        assert [batch[0].old_name for batch in stack.batches()] == ["c", "b"]

    def test_empty_batch_not_pushed(self) -> None:
        """Test that empty batches are ignored."""
        stack = UndoStack()
        stack.push([])

        assert not stack
        assert stack.peek() is None

    def test_invalid_capacity(self) -> None:
        """Test that a capacity below one is rejected."""
        with pytest.raises(ValueError):
            UndoStack(capacity=0)

    def test_clear(self, tmp_path: Path) -> None:
        """Test clearing the stack."""
        stack = UndoStack()
        stack.push(make_batch(tmp_path, ("a", "b")))
        stack.clear()

        assert len(stack) == 0


class TestUndoStore:
    """Tests for UndoStore persistence."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Test that a saved stack loads with the same order."""
        store = UndoStore(tmp_path / "state" / "undo.json")
        stack = UndoStack()
        stack.push(make_batch(tmp_path, ("a", "b")))
        stack.push(make_batch(tmp_path, ("c", "d"), ("e", "f")))
        store.save(stack)

        loaded = store.load()

        assert loaded.batches() == stack.batches()

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file loads as an empty stack."""
        assert len(UndoStore(tmp_path / "none.json").load()) == 0

    def test_corrupt_file(self, tmp_path: Path) -> None:
        """Test that an unreadable file loads as an empty stack."""
        path = tmp_path / "undo.json"
        path.write_text("{not json")

        assert len(UndoStore(path).load()) == 0

    def test_clear(self, tmp_path: Path) -> None:
        """Test that clear persists an empty stack."""
        store = UndoStore(tmp_path / "undo.json")
        stack = UndoStack()
        stack.push(make_batch(tmp_path, ("a", "b")))
        store.save(stack)

        store.clear()

        assert len(store.load()) == 0
