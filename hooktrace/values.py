"""
hooktrace Values - Freezing and Comparison Rules
================================================

Two rules are shared by state cells, memos and the verification harness:

- **Freezing**: values read from a state cell are deep-frozen copies.
  Lists, dicts and sets become Frozen* subclasses whose mutating methods
  raise ContractViolation; tuples and frozen dataclasses are rebuilt with
  frozen members; bytearrays become bytes; numpy arrays are copied and
  marked read-only. State cells refuse any other object that carries
  mutable attributes (see ``freeze(..., strict=True)``); props let such
  objects through as-is.

- **Comparison**: dependency keys compare by value for primitives
  (None, bool, numbers, strings, bytes, enum members, numpy scalars) and by
  identity for everything else. Rendered outputs compare structurally, with
  numpy arrays compared through ``np.array_equal``.
"""

import array
import collections
import dataclasses
import datetime
import decimal
import fractions
import uuid
from enum import Enum
from typing import Any, Optional, Sequence

import numpy as np

from .errors import ContractViolation

_PRIMITIVES = (type(None), bool, int, float, complex, str, bytes, Enum, np.generic)

# Immutable value types that may sit in state unchanged
_VALUE_TYPES = (
    frozenset,
    range,
    datetime.date,
    datetime.time,
    datetime.timedelta,
    decimal.Decimal,
    fractions.Fraction,
    uuid.UUID,
)

_MUTABLE_BUILTINS = (array.array, collections.deque, memoryview)


# ============================================================================
# FROZEN CONTAINERS
# ============================================================================


def _refuse(self, *args, **kwargs):
    raise ContractViolation(
        f"In-place mutation of a state value ({type(self).__name__}). "
        f"Build a new value and pass it to the state transition instead."
    )


class FrozenList(list):
    """List whose mutating methods raise ContractViolation."""

    __slots__ = ()

    append = extend = insert = pop = remove = clear = sort = reverse = _refuse
    __setitem__ = __delitem__ = __iadd__ = __imul__ = _refuse

    def __reduce__(self):
        return (FrozenList, (list(self),))


class FrozenDict(dict):
    """Dict whose mutating methods raise ContractViolation."""

    __slots__ = ()

    update = pop = popitem = clear = setdefault = _refuse
    __setitem__ = __delitem__ = __ior__ = _refuse

    def __reduce__(self):
        return (FrozenDict, (dict(self),))


class FrozenSet(set):
    """Set whose mutating methods raise ContractViolation."""

    __slots__ = ()

    add = discard = remove = pop = clear = update = _refuse
    difference_update = intersection_update = symmetric_difference_update = _refuse
    __ior__ = __iand__ = __isub__ = __ixor__ = _refuse

    def __reduce__(self):
        return (FrozenSet, (set(self),))


def freeze(value: Any, strict: bool = False) -> Any:
    """
    Return a deep-frozen equivalent of ``value``.

    With ``strict=True`` an object that cannot be made read-only (an
    ``array.array``, a deque, a non-frozen dataclass or any other instance
    with writable attributes) raises ContractViolation instead of being
    passed through.
    """
    if isinstance(value, _PRIMITIVES):
        return value
    if isinstance(value, (FrozenList, FrozenDict, FrozenSet, _VALUE_TYPES)):
        return value
    if isinstance(value, bytearray):
        return bytes(value)
    if isinstance(value, np.ndarray):
        if not value.flags.writeable and value.base is None:
            return value
        frozen = np.array(value, copy=True)
        frozen.flags.writeable = False
        return frozen
    if isinstance(value, tuple):
        items = [freeze(item, strict) for item in value]
        if all(new is old for new, old in zip(items, value)):
            return value
        if hasattr(value, "_fields"):
            return type(value)._make(items)
        return tuple(items)
    if isinstance(value, list):
        return FrozenList(freeze(item, strict) for item in value)
    if isinstance(value, dict):
        return FrozenDict((key, freeze(item, strict)) for key, item in value.items())
    if isinstance(value, set):
        return FrozenSet(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if value.__dataclass_params__.frozen:
            return _freeze_fields(value, strict)
    elif callable(value) or not _has_mutable_parts(value):
        return value
    if not strict:
        return value
    raise ContractViolation(
        f"Cannot store a mutable {type(value).__name__} in state. Use an "
        f"immutable value (tuple, frozen dataclass, bytes) or a list, dict or "
        f"numpy array, which are frozen on read."
    )


def _has_mutable_parts(value: Any) -> bool:
    return isinstance(value, _MUTABLE_BUILTINS) or hasattr(value, "__dict__")


def _freeze_fields(value: Any, strict: bool) -> Any:
    changes = {}
    for f in dataclasses.fields(value):
        if not f.init:
            continue
        current = getattr(value, f.name)
        frozen = freeze(current, strict)
        if frozen is not current:
            changes[f.name] = frozen
    return dataclasses.replace(value, **changes) if changes else value


def thaw(value: Any) -> Any:
    """
    Return a plain, mutable deep copy of a frozen value.

    Handlers use this to start from the current state, edit a private copy
    and hand the copy to a transition.
    """
    if isinstance(value, np.ndarray):
        return np.array(value, copy=True)
    if isinstance(value, tuple):
        items = [thaw(item) for item in value]
        if hasattr(value, "_fields"):
            return type(value)._make(items)
        return tuple(items)
    if isinstance(value, list):
        return [thaw(item) for item in value]
    if isinstance(value, dict):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, set):
        return set(value)
    return value


# ============================================================================
# COMPARISON
# ============================================================================


def is_primitive(value: Any) -> bool:
    return isinstance(value, _PRIMITIVES)


def same_value(a: Any, b: Any) -> bool:
    """
    Compare two dependency keys.

    Primitives compare by type and value (NaN equals NaN, True differs
    from 1); anything else compares by identity.
    """
    if a is b:
        return True
    if is_primitive(a) and is_primitive(b):
        if type(a) is not type(b):
            return False
        if isinstance(a, (float, np.floating)) and np.isnan(a) and np.isnan(b):
            return True
        return bool(a == b)
    return False


def first_changed_index(
    previous: Optional[Sequence[Any]], current: Sequence[Any]
) -> Optional[int]:
    """
    Index of the first dependency that differs, or None when unchanged.

    A length mismatch counts as a change at the shorter length.
    """
    if previous is None:
        return 0
    for index, (old, new) in enumerate(zip(previous, current)):
        if not same_value(old, new):
            return index
    if len(previous) != len(current):
        return min(len(previous), len(current))
    return None


def outputs_equal(a: Any, b: Any) -> bool:
    """Structural equality for rendered outputs."""
    if a is b:
        return True
    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if type(a) is not type(b):
            return False
        return a.shape == b.shape and bool(np.array_equal(a, b))
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if isinstance(a, tuple) != isinstance(b, tuple) or len(a) != len(b):
            return False
        return all(outputs_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(outputs_equal(a[key], b[key]) for key in a)
    try:
        return bool(a == b)
    except (ValueError, TypeError):
        return False
