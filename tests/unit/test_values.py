"""Unit tests for value freezing and comparison rules."""

import array
import math
from collections import deque, namedtuple
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pytest

from hooktrace import ContractViolation, FrozenDict, FrozenList, FrozenSet, freeze, thaw
from hooktrace.values import first_changed_index, outputs_equal, same_value


class Color(Enum):
    RED = "red"
    BLUE = "blue"


@pytest.mark.unit
class TestFreeze:
    def test_primitives_pass_through(self):
        for value in [None, True, 3, 2.5, "text", b"raw", Color.RED]:
            assert freeze(value) is value

    def test_nested_containers_are_frozen_deeply(self):
        frozen = freeze({"tags": ["a", "b"], "meta": {"seen": {1, 2}}})

        assert isinstance(frozen, FrozenDict)
        assert isinstance(frozen["tags"], FrozenList)
        assert isinstance(frozen["meta"], FrozenDict)
        assert isinstance(frozen["meta"]["seen"], FrozenSet)
        assert frozen == {"tags": ["a", "b"], "meta": {"seen": {1, 2}}}

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda v: v.append(1),
            lambda v: v.extend([1]),
            lambda v: v.pop(),
            lambda v: v.__setitem__(0, 9),
            lambda v: v.sort(),
        ],
    )
    def test_frozen_list_refuses_mutation(self, mutate):
        value = freeze([3, 1, 2])
        with pytest.raises(ContractViolation, match="In-place mutation"):
            mutate(value)
        assert value == [3, 1, 2]

    def test_augmented_assignment_on_frozen_list_is_refused(self):
        items = freeze([1])
        with pytest.raises(ContractViolation):
            items += [2]

    def test_frozen_dict_refuses_mutation(self):
        value = freeze({"a": 1})
        with pytest.raises(ContractViolation):
            value["b"] = 2
        with pytest.raises(ContractViolation):
            value.update(b=2)
        with pytest.raises(ContractViolation):
            del value["a"]

    def test_frozen_set_refuses_mutation(self):
        value = freeze({1})
        with pytest.raises(ContractViolation):
            value.add(2)
        with pytest.raises(ContractViolation):
            value |= {3}

    def test_building_a_new_value_is_allowed(self):
        items = freeze([{"id": 1}])
        extended = items + [{"id": 2}]
        merged = {**items[0], "done": True}

        assert type(extended) is list
        assert type(merged) is dict
        assert extended == [{"id": 1}, {"id": 2}]

    def test_tuples_and_namedtuples_keep_their_type(self):
        Point = namedtuple("Point", "x tags")
        frozen = freeze(Point(1, ["a"]))

        assert isinstance(frozen, Point)
        assert isinstance(frozen.tags, FrozenList)
        assert isinstance(freeze((1, [2]))[1], FrozenList)

    def test_numpy_arrays_are_copied_read_only(self):
        source = np.arange(3)
        frozen = freeze(source)

        assert frozen is not source
        assert not frozen.flags.writeable
        with pytest.raises(ValueError):
            frozen[0] = 10
        source[0] = 10
        assert frozen[0] == 0

    def test_frozen_values_survive_copying(self):
        import copy
        import pickle

        value = freeze({"items": [1, 2]})
        assert copy.deepcopy(value) == value
        assert pickle.loads(pickle.dumps(value)) == value

    def test_thaw_returns_mutable_copy(self):
        frozen = freeze({"items": [1, 2], "seen": {1}})
        plain = thaw(frozen)
        plain["items"].append(3)
        plain["seen"].add(2)

        assert type(plain) is dict
        assert frozen == {"items": [1, 2], "seen": {1}}


@pytest.mark.unit
class TestComparison:
    def test_primitives_compare_by_value(self):
        assert same_value(3, 3)
        assert same_value("a" * 3, "aaa")
        assert same_value(Color.RED, Color.RED)

    def test_nan_equals_nan(self):
        assert same_value(math.nan, float("nan"))

    def test_bool_and_int_differ(self):
        assert not same_value(True, 1)
        assert not same_value(1, 1.0)

    def test_composites_compare_by_identity(self):
        items = [1, 2]
        assert same_value(items, items)
        assert not same_value(items, [1, 2])
        assert not same_value({"a": 1}, {"a": 1})

    def test_first_changed_index(self):
        shared = {"k": 1}
        assert first_changed_index((1, shared), (1, shared)) is None
        assert first_changed_index((1, shared), (2, shared)) == 0
        assert first_changed_index((1, shared), (1, {"k": 1})) == 1
        assert first_changed_index((1,), (1, 2)) == 1
        assert first_changed_index(None, ()) == 0

    def test_outputs_compare_structurally(self):
        assert outputs_equal({"rows": ["a"], "n": 1}, {"rows": ["a"], "n": 1})
        assert outputs_equal(freeze([1, [2]]), [1, [2]])
        assert not outputs_equal([1, 2], (1, 2))
        assert not outputs_equal({"a": 1}, {"a": 1, "b": 2})

    def test_outputs_with_arrays(self):
        assert outputs_equal(np.array([1, 2]), np.array([1, 2]))
        assert outputs_equal({"grid": np.zeros(2)}, {"grid": np.zeros(2)})
        assert not outputs_equal(np.array([1, 2]), np.array([1, 3]))
        assert not outputs_equal(np.array([1, 2]), [1, 2])
        assert not outputs_equal(np.zeros(2), np.zeros((2, 1)))


@dataclass(frozen=True)
class Filter:
    field: str
    values: list


@dataclass
class Draft:
    title: str


class Session:
    def __init__(self, user):
        self.user = user


@pytest.mark.unit
class TestStrictFreeze:
    def test_bytearray_becomes_bytes(self):
        frozen = freeze(bytearray(b"abc"), strict=True)
        assert type(frozen) is bytes
        assert frozen == b"abc"

    @pytest.mark.parametrize(
        "value",
        [array.array("i", [1, 2]), deque([1]), Draft("x"), Session("ada")],
    )
    def test_mutable_objects_are_refused(self, value):
        with pytest.raises(ContractViolation, match="Cannot store a mutable"):
            freeze(value, strict=True)

    def test_mutable_objects_nested_in_containers_are_refused(self):
        with pytest.raises(ContractViolation, match="Session"):
            freeze({"session": Session("ada")}, strict=True)

    def test_non_strict_passes_objects_through(self):
        session = Session("ada")
        assert freeze(session) is session
        assert freeze([session])[0] is session

    def test_frozen_dataclass_members_are_frozen(self):
        frozen = freeze(Filter("tag", ["a"]), strict=True)

        assert isinstance(frozen, Filter)
        assert isinstance(frozen.values, FrozenList)
        with pytest.raises(ContractViolation):
            frozen.values.append("b")

    def test_frozen_dataclass_without_mutable_members_is_kept(self):
        value = Filter("tag", ("a",))
        assert freeze(value, strict=True) is value

    def test_callables_and_value_types_pass(self):
        import datetime
        from decimal import Decimal

        for value in [len, datetime.date(2024, 1, 1), Decimal("1.5"), frozenset([1])]:
            assert freeze(value, strict=True) is value


@pytest.mark.unit
class TestNumpyScalars:
    def test_numpy_scalars_are_primitives(self):
        assert freeze(np.int64(2)) == 2
        assert same_value(np.int64(2), np.int64(2))
        assert same_value(np.float32(0.5), np.float32(0.5))
        assert not same_value(np.int64(2), np.int64(3))

    def test_numpy_scalar_type_matters(self):
        assert not same_value(np.int64(2), 2)
        assert not same_value(np.int64(2), np.int32(2))

    def test_numpy_nan_equals_nan(self):
        assert same_value(np.float64("nan"), np.float64("nan"))
        assert first_changed_index([np.float64("nan")], [np.float64("nan")]) is None
