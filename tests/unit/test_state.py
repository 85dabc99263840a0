"""Unit tests for state cells and the commit queue."""

import numpy as np
import pytest

from hooktrace import CommitQueue, ContractViolation, StateCell, create_state


@pytest.mark.unit
class TestStateCell:
    def test_reader_returns_initial_value(self):
        read, _ = create_state(5)
        assert read() == 5

    def test_value_transition_replaces_value(self):
        read, transition = create_state("a")
        transition("b")
        assert read() == "b"

    def test_function_transition_applies_to_previous_value(self):
        read, transition = create_state(1)
        transition(lambda n: n * 10)
        transition(lambda n: n + 1)
        assert read() == 11

    def test_mutating_a_read_value_raises_and_is_not_reflected(self):
        read, _ = create_state([1, 2])
        items = read()

        with pytest.raises(ContractViolation):
            items.append(3)
        assert read() == [1, 2]

    def test_mutating_the_value_passed_to_transition_is_not_reflected(self):
        read, transition = create_state([])
        source = [1]
        transition(source)
        source.append(2)
        assert read() == [1]

    def test_unfrozen_cell_reflects_in_place_mutation(self):
        read, _ = create_state([1], freeze_reads=False)
        read().append(2)
        assert read() == [1, 2]

    def test_version_counts_effective_commits(self):
        cell = StateCell("count", 0)
        cell.transition(0)
        assert cell.version == 0
        cell.transition(1)
        cell.transition(lambda n: n)
        assert cell.version == 1

    def test_anonymous_cells_get_distinct_ids(self):
        first, second = StateCell(initial=1), StateCell(initial=1)
        assert first.id != second.id
        assert first.id.startswith("cell@")

    def test_same_object_passed_twice_is_an_identity_change(self):
        cell = StateCell("items", [])
        source = [1, 2]
        cell.transition(source)
        frozen = cell.read()
        cell.transition(source)

        assert cell.read() is frozen
        assert cell.version == 1

    def test_passing_back_the_read_value_is_an_identity_change(self):
        cell = StateCell("items", [1])
        cell.transition(cell.read())
        assert cell.version == 0

    def test_bytearray_is_stored_as_bytes(self):
        cell = StateCell("payload", bytearray(b"ab"))
        assert cell.read() == b"ab"
        assert type(cell.read()) is bytes

    def test_mutable_object_is_refused(self):
        class Session:
            def __init__(self):
                self.user = None

        cell = StateCell("session", None)
        with pytest.raises(ContractViolation, match="Cannot store a mutable Session"):
            cell.transition(Session())
        assert cell.read() is None

    def test_unfrozen_cell_stores_objects_as_is(self):
        payload = bytearray(b"ab")
        cell = StateCell("payload", payload, freeze_reads=False)
        assert cell.read() is payload

    def test_same_numpy_scalar_is_an_identity_change(self):
        cell = StateCell("count", np.int64(2))
        cell.transition(np.int64(2))
        assert cell.version == 0
        cell.transition(np.int64(3))
        assert cell.version == 1


@pytest.mark.unit
class TestCommitQueue:
    def test_transitions_are_deferred_until_flush(self):
        queue = CommitQueue()
        cell = StateCell("count", 0, queue=queue)

        with queue:
            cell.transition(lambda n: n + 1)
            cell.transition(lambda n: n + 1)
            assert cell.read() == 0
            assert queue.pending == 2

        changes = queue.flush()
        assert cell.read() == 2
        assert [(c.old_value, c.new_value) for c in changes] == [(0, 1), (1, 2)]

    def test_value_updates_computed_from_a_stale_read_collapse(self):
        queue = CommitQueue()
        cell = StateCell("count", 0, queue=queue)

        with queue:
            current = cell.read()
            cell.transition(current + 1)
            cell.transition(current + 1)

        queue.flush()
        assert cell.read() == 1

    def test_flush_applies_updates_in_call_order_across_cells(self):
        queue = CommitQueue()
        first = StateCell("first", "a", queue=queue)
        second = StateCell("second", "x", queue=queue)

        with queue:
            second.transition("y")
            first.transition("b")
            second.transition(lambda v: v + "z")

        changes = queue.flush()
        assert [c.cell_id for c in changes] == ["second", "first", "second"]
        assert second.read() == "yz"

    def test_exception_discards_queued_transitions(self):
        queue = CommitQueue()
        cell = StateCell("count", 0, queue=queue)

        with pytest.raises(RuntimeError):
            with queue:
                cell.transition(5)
                raise RuntimeError("handler failed")

        assert queue.pending == 0
        assert queue.flush() == []
        assert cell.read() == 0

    def test_transition_during_render_is_a_contract_violation(self):
        queue = CommitQueue()
        cell = StateCell("count", 0, queue=queue)

        with queue.rendering():
            with pytest.raises(ContractViolation, match="during render"):
                cell.transition(1)
        assert not queue.is_rendering

    def test_identity_change_detection(self):
        queue = CommitQueue()
        cell = StateCell("items", [1], queue=queue)

        with queue:
            cell.transition(lambda items: items)
        (same,) = queue.flush()
        with queue:
            cell.transition(lambda items: items + [])
        (copied,) = queue.flush()

        assert same.is_identity
        assert not copied.is_identity

    def test_failing_update_leaves_every_cell_untouched(self):
        queue = CommitQueue()
        first = StateCell("a", 0, queue=queue)
        second = StateCell("b", 0, queue=queue)

        with queue:
            first.transition(5)
            second.transition(lambda v: 1 / 0)

        with pytest.raises(ZeroDivisionError):
            queue.flush()
        assert first.read() == 0
        assert first.version == 0
        assert queue.pending == 0

    def test_chained_updates_see_staged_values(self):
        queue = CommitQueue()
        cell = StateCell("items", [], queue=queue)

        with queue:
            cell.transition(lambda items: items + [1])
            cell.transition(lambda items: items + [2])

        changes = queue.flush()
        assert cell.read() == [1, 2]
        assert changes[1].old_value is changes[0].new_value
        assert cell.version == 2
