# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/match.py
# DESCRIPTION:    Generalized match operator for query conditions
# CREATED:        3.2.2024
#
# The contents of this file are subject to the MIT License
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
# Copyright (c) 2024 The MemStore Project Contributors
# All Rights Reserved.
#
# Contributor(s): ______________________________________.

"""MemStore - Generalized match operator

Query conditions are not compared with plain equality. Whether a condition accepts
an attribute value depends on the kind of the condition itself:

* objects implementing `Matchable` decide by their own `matches` method,
* classes with a registered matcher function (looked up along the MRO of the
  condition's class) decide by that function,
* other callables are called with the value and their result is used as bool,
* anything else is compared for equality.

Built-in matchers:

=====================================  ==============================================
Condition                              Matches when
=====================================  ==============================================
class (`type` instance)                value is an instance of the class or its subclass
`range`                                value is an `int` contained in the range
`re.Pattern`                           value is a string (or bytes) the pattern finds
`list`, `tuple`, `set`, `frozenset`    value is a member of the collection
`Interval`                             value lies in the interval
=====================================  ==============================================

Example::

    from memstore.match import matches, register_matcher

    matches(range(3, 8), 5)               # True
    matches(re.compile('o'), 'foo')       # True
    matches(str, 'foo')                   # True
    matches([23, 25, 27], 24)             # False
    matches(lambda v: v > 10, 42)         # True

    # Make `datetime.date` conditions match datetimes from the same day
    register_matcher(date, lambda cond, value: isinstance(value, date) and
                     value.timetuple()[:3] == cond.timetuple()[:3])
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeAlias, runtime_checkable

#: Function that decides whether `condition` (first argument) accepts `value`.
TMatchFunc: TypeAlias = Callable[[Any, Any], bool]

@runtime_checkable
class Matchable(Protocol):
    """Capability of condition objects that decide matching on their own.
    """
    def matches(self, value: Any) -> bool:
        """Returns True if condition accepts the `value`.
        """

_matchers: dict[type, TMatchFunc] = {}

def register_matcher(cls: type, func: TMatchFunc) -> None:
    """Registers matcher function for conditions that are instances of `cls` (or its
    descendants without own matcher).

    Arguments:
        cls:  Condition class.
        func: Function called with condition and value, returning True on match.

    Raises:
        ValueError: When matcher for `cls` is already registered.
    """
    if cls in _matchers:
        raise ValueError(f"Matcher already registered for class '{cls.__name__}'")
    _matchers[cls] = func

def unregister_matcher(cls: type) -> None:
    """Removes matcher registered for `cls`.

    Raises:
        KeyError: When there is no matcher registered for `cls`.
    """
    del _matchers[cls]

def get_matcher(cls: type) -> TMatchFunc | None:
    """Returns matcher function registered for the class or its nearest base class,
    or `None`.
    """
    if (func := _matchers.get(cls)) is None:
        for base in cls.__mro__:
            if (func := _matchers.get(base)) is not None:
                break
    return func

def has_matcher(cls: type) -> bool:
    """Returns True if a matcher is registered for the class or its bases.
    """
    return get_matcher(cls) is not None

def matches(condition: Any, value: Any) -> bool:
    """Returns True if `condition` accepts `value`.

    Arguments:
        condition: Condition value (see module documentation for supported kinds).
        value:     Attribute value extracted from an item.
    """
    if not isinstance(condition, type) and isinstance(condition, Matchable):
        return bool(condition.matches(value))
    if (func := get_matcher(condition.__class__)) is not None:
        return bool(func(condition, value))
    if callable(condition):
        return bool(condition(value))
    return condition == value

@dataclass(frozen=True)
class Interval:
    """Continuous interval condition.

    Arguments:
        low:       Lower bound (inclusive).
        high:      Upper bound.
        exclusive: When True, the upper bound is excluded.

    Values that cannot be compared with bounds do not match.

    Example::

        store.find_all(price=Interval(9.5, 20))
        store.find_all(name=Interval('a', 'f', exclusive=True))
    """
    low: Any
    high: Any
    exclusive: bool = False
    def __contains__(self, value: Any) -> bool:
        return self.matches(value)
    def matches(self, value: Any) -> bool:
        """Returns True if `value` lies in the interval.
        """
        try:
            if self.exclusive:
                return self.low <= value < self.high
            return self.low <= value <= self.high
        except TypeError:
            return False

def _match_class(condition: type, value: Any) -> bool:
    return isinstance(value, condition)

def _match_range(condition: range, value: Any) -> bool:
    try:
        return value in condition
    except TypeError:
        return False

def _match_pattern(condition: re.Pattern, value: Any) -> bool:
    return isinstance(value, type(condition.pattern)) and condition.search(value) is not None

def _match_member(condition: list | tuple | set | frozenset, value: Any) -> bool:
    try:
        return value in condition
    except TypeError:
        # unhashable value tested against set
        return False

register_matcher(type, _match_class)
register_matcher(range, _match_range)
register_matcher(re.Pattern, _match_pattern)
for _cls in (list, tuple, set, frozenset):
    register_matcher(_cls, _match_member)
del _cls
