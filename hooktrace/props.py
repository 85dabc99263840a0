"""
hooktrace Props - Declared Inputs and the ABSENT Marker
=======================================================

A component declares the prop names it reads. The bag a parent passes in
may hold anything; the component only ever sees its declared names, through
a PropsView:

    view.liked           declared and supplied     → the value
    view.liked           declared, not supplied    → ABSENT
    view.likability      not declared              → ABSENT, plus a notice

Nothing here raises. ABSENT is falsy and prints as ``<absent>``, so a render
that forgets to fall back to a default leaves a visible trace in its output
that the harness can flag (see ``contains_absent``).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

import numpy as np

from .values import freeze

# ============================================================================
# SENTINEL
# ============================================================================


class _Absent:
    """Sentinel for a prop that was not supplied or not declared."""

    __slots__ = ()

    def __repr__(self):
        return "ABSENT"

    def __str__(self):
        return "<absent>"

    def __bool__(self):
        return False

    def __reduce__(self):
        return "ABSENT"


ABSENT = _Absent()


def contains_absent(value: Any) -> bool:
    """True if ``value`` is, holds, or textually embeds the ABSENT marker."""
    if value is ABSENT:
        return True
    if isinstance(value, str):
        return str(ABSENT) in value
    if isinstance(value, np.ndarray):
        return False
    if isinstance(value, dict):
        return any(contains_absent(v) for v in value.values())
    if isinstance(value, (list, tuple, set, frozenset)):
        return any(contains_absent(v) for v in value)
    return False


# ============================================================================
# NOTICES
# ============================================================================


@dataclass(frozen=True)
class UndeclaredPropAccess:
    """
    A prop name outside the declared set was read or supplied.

    kind is "read" when render or a memo asked for the name, and "supplied"
    when a parent passed it in.
    """

    component: str
    name: str
    kind: str
    declared: FrozenSet[str]

    def describe(self) -> str:
        verb = "read" if self.kind == "read" else "received"
        return (
            f"{self.component} {verb} undeclared prop '{self.name}' "
            f"(declared: {sorted(self.declared)})"
        )


# ============================================================================
# VIEW
# ============================================================================


class PropsView:
    """
    Read-only, declared-name-only view of a props bag.

    When ``previous`` is given, a prop passed as the very object it was
    passed as last time keeps its frozen copy from ``previous``, so memos
    that depend on it see an unchanged identity.
    """

    __slots__ = ("_component", "_declared", "_bag", "_sources", "_notices")

    def __init__(
        self,
        component: str,
        declared: Iterable[str],
        bag: Optional[Mapping[str, Any]] = None,
        notices: Optional[List[UndeclaredPropAccess]] = None,
        previous: Optional["PropsView"] = None,
    ):
        self._component = component
        self._declared = frozenset(declared)
        self._notices = notices
        self._bag: Dict[str, Any] = {}
        self._sources: Dict[str, Any] = {}
        for name, value in (bag or {}).items():
            if name in self._declared:
                self._sources[name] = value
                self._bag[name] = _reuse_or_freeze(previous, name, value)
            else:
                self._note(name, "supplied")

    @property
    def declared(self) -> FrozenSet[str]:
        return self._declared

    def _note(self, name: str, kind: str) -> None:
        notice = UndeclaredPropAccess(self._component, name, kind, self._declared)
        logging.warning(notice.describe())
        if self._notices is not None:
            self._notices.append(notice)

    def __getitem__(self, name: str) -> Any:
        if name not in self._declared:
            self._note(name, "read")
            return ABSENT
        return self._bag.get(name, ABSENT)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def get(self, name: str, default: Any = None) -> Any:
        """Like ``view[name]`` but substitutes ``default`` for ABSENT."""
        value = self[name]
        return default if value is ABSENT else value

    def is_absent(self, name: str) -> bool:
        return name not in self._declared or name not in self._bag

    def __contains__(self, name: str) -> bool:
        return not self.is_absent(name)

    def as_dict(self) -> Dict[str, Any]:
        return {name: self._bag.get(name, ABSENT) for name in sorted(self._declared)}

    def __repr__(self) -> str:
        return f"PropsView({self._component}, {self.as_dict()!r})"


def _reuse_or_freeze(previous: Optional[PropsView], name: str, value: Any) -> Any:
    if previous is not None and name in previous._sources:
        if previous._sources[name] is value:
            return previous._bag[name]
    return freeze(value)
