"""
hooktrace State - State Cells and the Commit Queue
==================================================

A StateCell is the atomic unit of reactive state inside a component
instance. It is read through ``read()`` and changed only through
``transition(update)``, where ``update`` is either the next value or a
function of the previous value.

Commit model:
    - Outside a transaction, a transition commits immediately.
    - Inside a CommitQueue transaction (an event handler running), the
      transition is queued. ``flush()`` applies queued updates in call order;
      a function update receives the value current at that point of the
      flush, not the value current when the handler called it.
    - If the handler raises, the queued updates are discarded. If a queued
      function update raises during the flush, no cell is assigned.
    - Handing a transition the same object twice, or the value just read,
      is an identity change.
    - A transition issued while the owning instance is rendering raises
      ContractViolation, since render must be pure.

Example:
    read, transition = create_state(0)
    transition(lambda n: n + 1)
    transition(lambda n: n + 1)
    assert read() == 2
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar, Union

from .errors import ContractViolation
from .values import freeze, same_value

T = TypeVar("T")

Update = Union[T, Callable[[T], T]]


@dataclass(frozen=True)
class StateChange:
    """One committed transition of a cell."""

    cell_id: str
    old_value: Any
    new_value: Any

    @property
    def is_identity(self) -> bool:
        return same_value(self.old_value, self.new_value)

    def __repr__(self) -> str:
        return f"StateChange({self.cell_id}: {self.old_value!r} → {self.new_value!r})"


class StateCell(Generic[T]):
    """Holds one value; changed only through ``transition``."""

    __slots__ = ("id", "_value", "_source", "_queue", "_freeze_reads", "_version")

    def __init__(
        self,
        cell_id: Optional[str] = None,
        initial: Any = None,
        queue: Optional["CommitQueue"] = None,
        freeze_reads: bool = True,
    ):
        self.id = cell_id if cell_id is not None else f"cell@{id(self):x}"
        self._queue = queue
        self._freeze_reads = freeze_reads
        self._source = initial
        self._value = self._prepare(initial)
        self._version = 0

    @property
    def version(self) -> int:
        """Number of effective commits since construction."""
        return self._version

    def read(self) -> T:
        return self._value

    def transition(self, update: Update) -> None:
        """Queue or commit ``update``."""
        queue = self._queue
        if queue is not None:
            if queue.is_rendering:
                raise ContractViolation(
                    f"State cell '{self.id}' was transitioned during render. "
                    f"Render functions must not change state."
                )
            if queue.is_open:
                queue.enqueue(self, update)
                return
        self._commit(update)

    def _prepare(self, value: Any) -> Any:
        return freeze(value, strict=True) if self._freeze_reads else value

    def _stage(self, update: Update, current: Tuple[Any, Any]) -> Tuple[Any, Any]:
        """
        Compute the ``(source, value)`` pair ``update`` leads to from ``current``.

        Passing back the object last handed in, or the frozen value itself,
        keeps the frozen value so the transition stays an identity change.
        """
        source, value = current
        new_source = update(value) if callable(update) else update
        if new_source is source or new_source is value:
            return current
        return new_source, self._prepare(new_source)

    def _assign(self, old_value: Any, staged: Tuple[Any, Any]) -> StateChange:
        self._source, self._value = staged
        change = StateChange(self.id, old_value, self._value)
        if not change.is_identity:
            self._version += 1
        logging.debug(f"commit {change!r}")
        return change

    def _commit(self, update: Update) -> StateChange:
        staged = self._stage(update, (self._source, self._value))
        return self._assign(self._value, staged)

    def __repr__(self) -> str:
        return f"StateCell({self.id}={self._value!r})"


class CommitQueue:
    """
    Collects transitions issued during one handler call.

    Used as a context manager around the handler; ``flush`` is called
    afterwards to apply the queued updates.
    """

    def __init__(self):
        self._pending: List[Tuple[StateCell, Any]] = []
        self._depth = 0
        self._rendering = False

    @property
    def is_open(self) -> bool:
        return self._depth > 0

    @property
    def is_rendering(self) -> bool:
        return self._rendering

    @property
    def pending(self) -> int:
        return len(self._pending)

    def enqueue(self, cell: StateCell, update: Any) -> None:
        self._pending.append((cell, update))

    def __enter__(self):
        self._depth += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._depth -= 1
        if exc_type is not None and self._depth == 0:
            logging.debug(f"discarding {len(self._pending)} queued transition(s)")
            self._pending.clear()

    def flush(self) -> List[StateChange]:
        """
        Apply queued transitions in call order and return the changes.

        Every update is evaluated against the values staged so far before any
        cell is assigned, so an update that raises leaves all cells untouched.
        """
        pending, self._pending = self._pending, []
        staged = {}
        steps = []
        for cell, update in pending:
            current = staged.get(id(cell), (cell._source, cell._value))
            step = cell._stage(update, current)
            staged[id(cell)] = step
            steps.append((cell, current[1], step))
        return [cell._assign(old_value, step) for cell, old_value, step in steps]

    def rendering(self) -> "_RenderGuard":
        return _RenderGuard(self)


class _RenderGuard:
    def __init__(self, queue: CommitQueue):
        self._queue = queue
        self._previous = False

    def __enter__(self):
        self._previous = self._queue._rendering
        self._queue._rendering = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._queue._rendering = self._previous


def create_state(
    initial: T, freeze_reads: bool = True
) -> Tuple[Callable[[], T], Callable[[Update], None]]:
    """Create a standalone cell and return its ``(reader, transition)`` pair."""
    cell: StateCell = StateCell(initial=initial, freeze_reads=freeze_reads)
    return cell.read, cell.transition
