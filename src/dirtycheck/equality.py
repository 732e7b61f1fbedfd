"""Equality strategy used by watchers to decide whether a value changed.

Reference mode mirrors strict equality on primitives: immutable scalars of
the same type (numbers, strings, bytes, dates and times) compare by value,
everything else by identity. Value mode compares structure. Both treat NaN
as equal to NaN so a watch over a value that stays NaN settles instead of
firing every pass.
"""

from __future__ import annotations

import copy
import datetime
import math
import numbers
from collections.abc import Mapping, Sequence
from decimal import Decimal

# Computed values of these types are new objects every pass.
_SCALARS = (
    type(None),
    numbers.Number,
    str,
    bytes,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


def is_nan(value: object) -> bool:
    if isinstance(value, float):
        return math.isnan(value)
    if isinstance(value, Decimal):
        return value.is_nan()
    return False


def is_sequence(value: object) -> bool:
    """List-like values. Strings and bytes are scalars here, not sequences."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def same(new_value: object, old_value: object) -> bool:
    """Reference equality with by-value scalars and NaN == NaN."""
    if new_value is old_value:
        return True
    if type(new_value) is type(old_value) and isinstance(new_value, _SCALARS):
        return new_value == old_value or (is_nan(new_value) and is_nan(old_value))
    return False


def deep_equal(a: object, b: object) -> bool:
    """Structural equality through mappings and sequences."""
    if a is b:
        return True
    if is_nan(a) and is_nan(b):
        return True
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(deep_equal(a[key], b[key]) for key in a)
    if is_sequence(a) and is_sequence(b):
        if type(a) is not type(b) or len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))
    try:
        return bool(a == b)
    except Exception:
        # Objects whose __eq__ refuses the comparison are simply unequal.
        return False


def are_equal(new_value: object, old_value: object, value_eq: bool) -> bool:
    if value_eq:
        return deep_equal(new_value, old_value)
    return same(new_value, old_value)


def copy_value(value: object) -> object:
    """Snapshot stored by by-value watchers so later mutations are detected."""
    return copy.deepcopy(value)
