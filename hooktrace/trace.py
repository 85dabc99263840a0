"""
hooktrace Trace - Script Steps and Render Traces
================================================

Script steps:
    Event(name, args)     invoke the handler ``name`` with ``args``
    PropsUpdate(props)    hand the root instance a new props bag

Plain strings and tuples are accepted wherever a step is expected:
``"increment"`` is ``Event("increment")`` and ``("add", "milk")`` is
``Event("add", ("milk",))``.

A RenderTrace is the immutable record of one simulator run: one TraceEntry
per completed step, optionally followed by a terminal Thrown marker.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping, Optional, Tuple, Union

from .memo import Recompute
from .values import outputs_equal


@dataclass(frozen=True)
class Event:
    """Invoke a declared handler. Child handlers are addressed as ``"key/name"``."""

    name: str
    args: Tuple[Any, ...] = ()

    @property
    def path(self) -> List[str]:
        return self.name.split("/")

    def __str__(self) -> str:
        return f"{self.name}({', '.join(repr(arg) for arg in self.args)})"


@dataclass(frozen=True)
class PropsUpdate:
    """Replace the root instance's props bag."""

    props: Mapping[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return "<props>"

    def __str__(self) -> str:
        return f"<props {dict(self.props)!r}>"


Step = Union[Event, PropsUpdate]


def coerce_step(item: Any) -> Step:
    """Normalize a script item into an Event or PropsUpdate."""
    if isinstance(item, (Event, PropsUpdate)):
        return item
    if isinstance(item, str):
        return Event(item)
    if isinstance(item, tuple) and item and isinstance(item[0], str):
        return Event(item[0], tuple(item[1:]))
    raise TypeError(f"Cannot interpret script step {item!r}")


@dataclass(frozen=True, eq=False)
class TraceEntry:
    """
    Outcome of one completed step.

    ``rerendered`` is False when the commit changed nothing and the previous
    output was reused. ``recomputed`` lists the memos that recomputed during
    the render, with the dependency lists that triggered them. ``notices``
    holds prop notices raised while processing the step.
    """

    index: int
    event: Step
    output: Any
    rerendered: bool = True
    recomputed: Tuple[Recompute, ...] = ()
    notices: Tuple[Any, ...] = ()

    def __eq__(self, other):
        if not isinstance(other, TraceEntry):
            return NotImplemented
        return (
            self.index == other.index
            and self.event == other.event
            and self.rerendered == other.rerendered
            and outputs_equal(self.output, other.output)
        )

    def __repr__(self) -> str:
        flag = "" if self.rerendered else " (no re-render)"
        return f"#{self.index} {self.event} → {self.output!r}{flag}"


@dataclass(frozen=True, eq=False)
class Thrown:
    """Terminal marker: the step at ``index`` raised and the run halted."""

    index: int
    event: Step
    error: BaseException

    def __eq__(self, other):
        if not isinstance(other, Thrown):
            return NotImplemented
        return (
            self.index == other.index
            and self.event == other.event
            and type(self.error) is type(other.error)
            and str(self.error) == str(other.error)
        )

    def __repr__(self) -> str:
        error = f"{type(self.error).__name__}: {self.error}"
        return f"#{self.index} {self.event} → Thrown({error})"


class RenderTrace:
    """Ordered, immutable record of (event, output) pairs from one run."""

    __slots__ = ("_entries", "_thrown")

    def __init__(
        self, entries: Tuple[TraceEntry, ...] = (), thrown: Optional[Thrown] = None
    ):
        self._entries = tuple(entries)
        self._thrown = thrown

    @property
    def entries(self) -> Tuple[TraceEntry, ...]:
        return self._entries

    @property
    def thrown(self) -> Optional[Thrown]:
        return self._thrown

    @property
    def halted(self) -> bool:
        return self._thrown is not None

    def outputs(self) -> List[Any]:
        return [entry.output for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TraceEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> TraceEntry:
        return self._entries[index]

    def __eq__(self, other):
        if not isinstance(other, RenderTrace):
            return NotImplemented
        return self._entries == other._entries and self._thrown == other._thrown

    def __repr__(self) -> str:
        lines = [repr(entry) for entry in self._entries]
        if self._thrown is not None:
            lines.append(repr(self._thrown))
        if not lines:
            return "RenderTrace()"
        return "RenderTrace(\n  " + "\n  ".join(lines) + "\n)"
