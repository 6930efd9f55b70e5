# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/query.py
# DESCRIPTION:    Query engine
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

"""MemStore - Query engine

Queries evaluate conditions (mapping of attribute names to condition values) and an
optional predicate against items, and produce one of five results.

The way how individual condition results are combined is selected by `Logic`:

=========  ===============================  ===============  ==========================
Logic      Conditions                       With predicate   No conditions nor predicate
=========  ===============================  ===============  ==========================
ALL        all conditions match             and P(item)      True
ANY        at least one condition matches   or P(item)       False
ONE        exactly one condition matches    xor P(item)      False
NOT_ALL    not ALL                          not (ALL)        False
NONE       no condition matches             and not P(item)  True
=========  ===============================  ===============  ==========================

Each condition is tested with `.match.matches` against the value returned by the
attribute accessor.

The result is selected by `Action`: list of all matching items (`FIND`), lazily
evaluated re-iterable result (`LAZY_FIND`), first matching item (`FIRST`), number of
matching items (`COUNT`), or list of removed matching items (`DELETE`).

Any query could be restricted to items of given type(s). Items of other types are
excluded before conditions are evaluated. Unlike class conditions, type restriction
uses exact comparison, so instances of subclasses are not selected by their parent
class.

The `QueryMixin` class provides the `query()` method and named shortcuts like
`find_all()`, `first_none()` or `count_one()` to collections that implement
`_get_items()` and `_get_accessors()`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from itertools import islice
from typing import TYPE_CHECKING, Any, TypeAlias

from .logging import BraceMessage, get_logger
from .match import matches
from .types import UNDEFINED, NamedEnum

if TYPE_CHECKING:
    from .accessors import Accessors, TAccessFunc, TTypeFunc

#: Collection item
Item = Any
#: Predicate called with item
Predicate: TypeAlias = Callable[[Item], Any]
#: Item test function
TTestFunc: TypeAlias = Callable[[Item], bool]

class Logic(NamedEnum):
    """Condition combination logic.
    """
    ALL = 'all'
    ANY = 'any'
    ONE = 'one'
    NOT_ALL = 'not_all'
    NONE = 'none'

class Action(NamedEnum):
    """Query result action.
    """
    FIND = 'find'
    LAZY_FIND = 'lazy_find'
    FIRST = 'first'
    COUNT = 'count'
    DELETE = 'delete'

def _exactly_one(results: Iterator[bool]) -> bool:
    found = False
    for result in results:
        if result:
            if found:
                return False
            found = True
    return found

def make_test(logic: Logic | str, conditions: Mapping[Any, Any], predicate: Predicate | None,
              attribute: TAccessFunc) -> TTestFunc:
    """Returns function that tests single item.

    Arguments:
        logic:      Condition combination logic.
        conditions: Mapping of attribute names to condition values.
        predicate:  Additional item test or None.
        attribute:  Attribute access function.

    Raises:
        ConfigurationError: For unknown logic.

    Note:
        Conditions are evaluated in mapping order and evaluation stops as soon as the
        result is known. The predicate is called at most once per item, and only when
        the result depends on it.
    """
    logic = Logic.get(logic)
    items = list(conditions.items())

    def results(item: Item) -> Iterator[bool]:
        return (matches(condition, attribute(item, attr)) for attr, condition in items)

    match logic:
        case Logic.ALL:
            def test(item: Item) -> bool:
                return all(results(item)) and (predicate is None or bool(predicate(item)))
        case Logic.ANY:
            def test(item: Item) -> bool:
                return any(results(item)) or (predicate is not None and bool(predicate(item)))
        case Logic.ONE:
            def test(item: Item) -> bool:
                return _exactly_one(results(item)) != (predicate is not None and bool(predicate(item)))
        case Logic.NOT_ALL:
            def test(item: Item) -> bool:
                return not (all(results(item)) and (predicate is None or bool(predicate(item))))
        case Logic.NONE:
            def test(item: Item) -> bool:
                return not any(results(item)) and (predicate is None or not predicate(item))
    return test

def make_type_restriction(type_spec: Any, type_func: TTypeFunc) -> TTestFunc | None:
    """Returns function that tests whether item is of specified type(s), or None for
    `UNDEFINED` type specification.

    Arguments:
        type_spec: Type value, or `list`, `tuple`, `set` or `frozenset` of type values.
        type_func: Item type function.
    """
    if type_spec is UNDEFINED:
        return None
    if isinstance(type_spec, list | tuple | set | frozenset):
        return lambda item: type_func(item) in type_spec
    return lambda item: type_func(item) == type_spec

class LazyResult:
    """Lazily evaluated query result.

    Every iteration scans the live collection again, so it reflects changes made
    after the query was created.

    Arguments:
        scan: Function that returns new iterator over matching items.
    """
    def __init__(self, scan: Callable[[], Iterator[Item]]):
        self._scan = scan
    def __iter__(self) -> Iterator[Item]:
        return self._scan()
    def take(self, count: int) -> list[Item]:
        """Returns list with at most `count` first matching items.
        """
        return list(islice(self._scan(), count))
    def first(self, default: Any=None) -> Item | Any:
        """Returns first matching item, or `default`.
        """
        return next(self._scan(), default)

class QueryMixin:
    """Query methods for collections.

    Descendants must implement `_get_items()` returning the `dict` of stored items, and
    `_get_accessors()` returning `.Accessors` used by the collection.

    All query methods accept the same arguments:

    Arguments:
        type_spec:  Optional type restriction (positional only). Single type value, or
                    `list`, `tuple`, `set` or `frozenset` of type values.
        where:      Mapping of attribute names to condition values.
        predicate:  Callable with item as argument, combined with conditions according
                    to query logic.
        conditions: Conditions as keyword arguments. They take precedence over
                    conditions passed in `where` for the same attribute.

    Example::

        store.find_all(age=range(20, 30), name=re.compile('^J'))
        store.find_all(Person, where={'first name': 'John'}, predicate=lambda p: p.active)
        store.first_none(Person, age=[23, 25])
        store.count(status=['new', 'open'])
    """
    def _get_items(self) -> dict[Any, Item]:
        raise NotImplementedError
    def _get_accessors(self) -> Accessors:
        raise NotImplementedError
    def _scan(self, type_spec: Any, test: TTestFunc) -> Iterator[Item]:
        restriction = make_type_restriction(type_spec, self._get_accessors().type)
        for item in list(self._get_items().values()):
            if (restriction is None or restriction(item)) and test(item):
                yield item
    def _delete(self, type_spec: Any, test: TTestFunc) -> list[Item]:
        items = self._get_items()
        restriction = make_type_restriction(type_spec, self._get_accessors().type)
        removed = []
        for key, item in list(items.items()):
            if (restriction is None or restriction(item)) and test(item):
                removed.append(items.pop(key))
        get_logger(self, 'store').debug(BraceMessage("Query removed {0} item(s)", len(removed)))
        return removed
    def query(self, action: Action | str, logic: Logic | str, type_spec: Any=UNDEFINED, /, *,
              where: Mapping[Any, Any] | None=None, predicate: Predicate | None=None,
              **conditions) -> Any:
        """Executes query.

        Arguments:
            action: Query result action (member or its name).
            logic:  Condition combination logic (member or its name).

        See class documentation for other arguments.

        Returns:
            Depends on `action`: `list` of items for FIND and DELETE, `LazyResult` for
            LAZY_FIND, item or `None` for FIRST, and `int` for COUNT.

        Raises:
            ConfigurationError: For unknown action or logic.
        """
        action = Action.get(action)
        if where:
            conditions = {**where, **conditions}
        test = make_test(logic, conditions, predicate, self._get_accessors().attribute)
        match action:
            case Action.FIND:
                return list(self._scan(type_spec, test))
            case Action.LAZY_FIND:
                return LazyResult(lambda: self._scan(type_spec, test))
            case Action.FIRST:
                return next(self._scan(type_spec, test), None)
            case Action.COUNT:
                return sum(1 for _ in self._scan(type_spec, test))
            case Action.DELETE:
                return self._delete(type_spec, test)
    # find
    def find_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                 predicate: Predicate | None=None, **conditions) -> list[Item]:
        """Returns list of items that match all conditions (and predicate).
        """
        return self.query(Action.FIND, Logic.ALL, type_spec, where=where, predicate=predicate,
                          **conditions)
    def find_any(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                 predicate: Predicate | None=None, **conditions) -> list[Item]:
        """Returns list of items that match at least one condition (or predicate).
        """
        return self.query(Action.FIND, Logic.ANY, type_spec, where=where, predicate=predicate,
                          **conditions)
    def find_one(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                 predicate: Predicate | None=None, **conditions) -> list[Item]:
        """Returns list of items that match exactly one condition (xor predicate).

        Example::

            # items whose name contains 'o' or whose child is a string, but not both
            store.find_one(name=re.compile('o'), child=str)
        """
        return self.query(Action.FIND, Logic.ONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    def find_not_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                     predicate: Predicate | None=None, **conditions) -> list[Item]:
        """Returns list of items that violate at least one condition (or predicate).
        """
        return self.query(Action.FIND, Logic.NOT_ALL, type_spec, where=where,
                          predicate=predicate, **conditions)
    def find_none(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> list[Item]:
        """Returns list of items that violate all conditions (and predicate).

        Important:
            Items that do not have queried attribute(s) are included, because missing
            attributes never match (except `None` conditions).
        """
        return self.query(Action.FIND, Logic.NONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    find = find_all
    # lazy_find
    def lazy_find_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                      predicate: Predicate | None=None, **conditions) -> LazyResult:
        """Lazy version of `find_all`.

        Example::

            store.lazy_find_all(status='open').take(3)
        """
        return self.query(Action.LAZY_FIND, Logic.ALL, type_spec, where=where,
                          predicate=predicate, **conditions)
    def lazy_find_any(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                      predicate: Predicate | None=None, **conditions) -> LazyResult:
        "Lazy version of `find_any`."
        return self.query(Action.LAZY_FIND, Logic.ANY, type_spec, where=where,
                          predicate=predicate, **conditions)
    def lazy_find_one(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                      predicate: Predicate | None=None, **conditions) -> LazyResult:
        "Lazy version of `find_one`."
        return self.query(Action.LAZY_FIND, Logic.ONE, type_spec, where=where,
                          predicate=predicate, **conditions)
    def lazy_find_not_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                          predicate: Predicate | None=None, **conditions) -> LazyResult:
        "Lazy version of `find_not_all`."
        return self.query(Action.LAZY_FIND, Logic.NOT_ALL, type_spec, where=where,
                          predicate=predicate, **conditions)
    def lazy_find_none(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                       predicate: Predicate | None=None, **conditions) -> LazyResult:
        "Lazy version of `find_none`."
        return self.query(Action.LAZY_FIND, Logic.NONE, type_spec, where=where,
                          predicate=predicate, **conditions)
    lazy_find = lazy_find_all
    # first
    def first_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> Item | None:
        """Returns first item that matches all conditions (and predicate), or `None`.

        The scan stops at the first matching item.
        """
        return self.query(Action.FIRST, Logic.ALL, type_spec, where=where, predicate=predicate,
                          **conditions)
    def first_any(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> Item | None:
        "Returns first item that matches at least one condition (or predicate), or `None`."
        return self.query(Action.FIRST, Logic.ANY, type_spec, where=where, predicate=predicate,
                          **conditions)
    def first_one(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> Item | None:
        "Returns first item that matches exactly one condition (xor predicate), or `None`."
        return self.query(Action.FIRST, Logic.ONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    def first_not_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                      predicate: Predicate | None=None, **conditions) -> Item | None:
        "Returns first item that violates at least one condition (or predicate), or `None`."
        return self.query(Action.FIRST, Logic.NOT_ALL, type_spec, where=where,
                          predicate=predicate, **conditions)
    def first_none(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                   predicate: Predicate | None=None, **conditions) -> Item | None:
        "Returns first item that violates all conditions (and predicate), or `None`."
        return self.query(Action.FIRST, Logic.NONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    first = first_all
    # count
    def count_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> int:
        "Returns number of items that match all conditions (and predicate)."
        return self.query(Action.COUNT, Logic.ALL, type_spec, where=where, predicate=predicate,
                          **conditions)
    def count_any(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> int:
        "Returns number of items that match at least one condition (or predicate)."
        return self.query(Action.COUNT, Logic.ANY, type_spec, where=where, predicate=predicate,
                          **conditions)
    def count_one(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                  predicate: Predicate | None=None, **conditions) -> int:
        "Returns number of items that match exactly one condition (xor predicate)."
        return self.query(Action.COUNT, Logic.ONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    def count_not_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                      predicate: Predicate | None=None, **conditions) -> int:
        "Returns number of items that violate at least one condition (or predicate)."
        return self.query(Action.COUNT, Logic.NOT_ALL, type_spec, where=where,
                          predicate=predicate, **conditions)
    def count_none(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                   predicate: Predicate | None=None, **conditions) -> int:
        "Returns number of items that violate all conditions (and predicate)."
        return self.query(Action.COUNT, Logic.NONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    count = count_all
    # delete
    def delete_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                   predicate: Predicate | None=None, **conditions) -> list[Item]:
        """Removes items that match all conditions (and predicate) and returns them.
        """
        return self.query(Action.DELETE, Logic.ALL, type_spec, where=where, predicate=predicate,
                          **conditions)
    def delete_any(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                   predicate: Predicate | None=None, **conditions) -> list[Item]:
        "Removes items that match at least one condition (or predicate) and returns them."
        return self.query(Action.DELETE, Logic.ANY, type_spec, where=where, predicate=predicate,
                          **conditions)
    def delete_one(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                   predicate: Predicate | None=None, **conditions) -> list[Item]:
        "Removes items that match exactly one condition (xor predicate) and returns them."
        return self.query(Action.DELETE, Logic.ONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    def delete_not_all(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                       predicate: Predicate | None=None, **conditions) -> list[Item]:
        "Removes items that violate at least one condition (or predicate) and returns them."
        return self.query(Action.DELETE, Logic.NOT_ALL, type_spec, where=where,
                          predicate=predicate, **conditions)
    def delete_none(self, type_spec: Any=UNDEFINED, /, *, where: Mapping | None=None,
                    predicate: Predicate | None=None, **conditions) -> list[Item]:
        "Removes items that violate all conditions (and predicate) and returns them."
        return self.query(Action.DELETE, Logic.NONE, type_spec, where=where, predicate=predicate,
                          **conditions)
    delete = delete_all
