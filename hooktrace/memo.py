"""
hooktrace Memo - Dependency-Gated Memoization
=============================================

A Memo caches the output of a computation together with the dependency
list it was computed from. On each evaluation the new list is compared
element by element with the recorded one (value for primitives, identity
for composites):

    deps=None        no list supplied: recompute on every evaluation
    deps=[]          empty list: compute once, never again
    deps=[a, b, ...] recompute when any element differs

When nothing changed the cached output is returned as the same object, so
downstream identity checks stay stable.

A CALLBACK memo caches a function object instead of calling it: the
"computation" is binding the closure. With an empty list the first closure
is kept forever (and with it whatever values it captured).

Example:
    memo = Memo(lambda: expensive(x), deps=[x])
    first = memo.evaluate()
    assert memo.evaluate() is first
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple

from .values import first_changed_index


class MemoKind(Enum):
    """What a memo caches."""

    VALUE = "value"
    CALLBACK = "callback"


class _Keep:
    def __repr__(self):
        return "KEEP"


_KEEP = _Keep()


@dataclass(frozen=True)
class Recompute:
    """Why a memo recomputed on its most recent evaluation."""

    memo: str
    reason: str
    changed_index: Optional[int]
    previous_deps: Optional[Tuple[Any, ...]]
    current_deps: Optional[Tuple[Any, ...]]

    def describe(self) -> str:
        if self.reason == "changed":
            return (
                f"{self.memo}: dependency #{self.changed_index} changed "
                f"{list(self.previous_deps)!r} → {list(self.current_deps)!r}"
            )
        return f"{self.memo}: {self.reason}"


class Memo:
    """Cached computation gated by a dependency list."""

    __slots__ = (
        "name",
        "kind",
        "_compute",
        "_declared_deps",
        "_output",
        "_recorded_deps",
        "_has_output",
        "compute_count",
        "last_recompute",
    )

    def __init__(
        self,
        compute: Callable[..., Any],
        deps: Optional[Sequence[Any]] = None,
        name: str = "memo",
        kind: MemoKind = MemoKind.VALUE,
    ):
        self.name = name
        self.kind = kind
        self._compute = compute
        self._declared_deps = deps
        self._output: Any = None
        self._recorded_deps: Optional[Tuple[Any, ...]] = None
        self._has_output = False
        self.compute_count = 0
        self.last_recompute: Optional[Recompute] = None

    @property
    def has_output(self) -> bool:
        return self._has_output

    @property
    def output(self) -> Any:
        """The cached output of the last computation (None before the first)."""
        return self._output

    @property
    def has_dependency_list(self) -> bool:
        return self._declared_deps is not None

    @property
    def recorded_deps(self) -> Optional[Tuple[Any, ...]]:
        return self._recorded_deps

    def evaluate(self, compute: Any = _KEEP, deps: Any = _KEEP) -> Any:
        """
        Return the memoized output, recomputing only if the deps changed.

        Args:
            compute: Replacement computation for this evaluation (a fresh
                closure from the current render). Only used when the memo
                actually recomputes.
            deps: Dependency list for this evaluation. Omit to reuse the
                list given at construction.
        """
        if compute is _KEEP:
            compute = self._compute
        if deps is _KEEP:
            deps = self._declared_deps
        else:
            self._declared_deps = deps

        if deps is None:
            return self._recompute(compute, None, "no dependency list", None)

        current = tuple(deps)
        if not self._has_output:
            return self._recompute(compute, current, "first evaluation", None)

        index = first_changed_index(self._recorded_deps, current)
        if index is None:
            self.last_recompute = None
            return self._output
        return self._recompute(compute, current, "changed", index)

    def _recompute(
        self,
        compute: Callable[..., Any],
        current: Optional[Tuple[Any, ...]],
        reason: str,
        index: Optional[int],
    ) -> Any:
        if self.kind is MemoKind.CALLBACK:
            output = compute
        else:
            output = compute()

        self.last_recompute = Recompute(
            self.name, reason, index, self._recorded_deps, current
        )
        self._output = output
        self._recorded_deps = current
        self._has_output = True
        self._compute = compute
        self.compute_count += 1
        logging.debug(f"memo {self.last_recompute.describe()}")
        return output

    def __repr__(self) -> str:
        deps = "none" if self._declared_deps is None else list(self._declared_deps)
        return f"Memo({self.name}, kind={self.kind.value}, deps={deps})"


def callback(
    fn: Callable[..., Any],
    deps: Optional[Sequence[Any]] = None,
    name: str = "callback",
) -> Memo:
    """Create a CALLBACK memo binding ``fn``."""
    return Memo(fn, deps, name=name, kind=MemoKind.CALLBACK)
