"""Tests for the equality strategy."""

import datetime
import math
from decimal import Decimal
from fractions import Fraction

from dirtycheck import are_equal
from dirtycheck.equality import copy_value, deep_equal, same
from dirtycheck.watcher import INITIAL


class TestReference:
    def test_identity(self):
        items = [1, 2]
        assert are_equal(items, items, False)
        assert not are_equal(items, [1, 2], False)

    def test_scalars_compare_by_value(self):
        assert same(10**20, int("1" + "0" * 20))
        assert same("ab" + "c", "abc")
        assert same(None, None)

    def test_scalars_of_different_types_differ(self):
        assert not same(1, True)
        assert not same(1, 1.0)

    def test_nan(self):
        assert same(math.nan, float("nan"))
        assert not same(math.nan, 1.0)
        assert same(Decimal("NaN"), Decimal("nan"))

    def test_other_numbers_compare_by_value(self):
        assert same(Decimal("1.10") * 2, Decimal("2.20"))
        assert same(Fraction(1, 3) + Fraction(1, 3), Fraction(2, 3))
        assert not same(Decimal("2"), 2)

    def test_dates_and_times_compare_by_value(self):
        start = datetime.datetime(2024, 1, 1, 12, 0)
        assert same(start + datetime.timedelta(hours=1), datetime.datetime(2024, 1, 1, 13, 0))
        assert same(start.date(), datetime.date(2024, 1, 1))
        assert same(start.time(), datetime.time(12, 0))
        assert same(datetime.timedelta(minutes=90), datetime.timedelta(hours=1.5))
        assert not same(start, start.date())

    def test_containers_still_compare_by_identity(self):
        assert not same(tuple([1, 2]), tuple([1, 2]))
        assert not same(frozenset({1}), frozenset([1]))

    def test_initial_sentinel_never_equal(self):
        for value in (None, 0, "", [], math.nan):
            assert not are_equal(value, INITIAL, False)
            assert not are_equal(value, INITIAL, True)


class TestByValue:
    def test_nested_structures(self):
        assert deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
        assert not deep_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 3}]})

    def test_nan_at_depth(self):
        assert deep_equal([float("nan"), {"x": float("nan")}], [math.nan, {"x": math.nan}])

    def test_different_keys(self):
        assert not deep_equal({"a": 1}, {"b": 1})

    def test_list_and_tuple_differ(self):
        assert not deep_equal([1, 2], (1, 2))

    def test_incomparable_objects_are_unequal(self):
        class Grumpy:
            def __eq__(self, other):
                raise TypeError("no")

        assert not deep_equal(Grumpy(), Grumpy())

    def test_copy_value_is_independent(self):
        original = {"a": [1, 2]}
        snapshot = copy_value(original)
        original["a"].append(3)
        assert snapshot == {"a": [1, 2]}
