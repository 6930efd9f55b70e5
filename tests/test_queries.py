# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           tests/test_queries.py
# DESCRIPTION:    Tests for memstore.query
# CREATED:        5.2.2024
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

"""memstore - Unit tests for memstore.query
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import pytest

from memstore.query import Action, LazyResult, Logic, make_test
from memstore.store import MemStore
from memstore.types import ConfigurationError

# --- Test Setup ---

NAMES = 'foo moo boo faa maa baa foa moa boa lao'.split()

@dataclass
class Dummy:
    id: int
    name: str | None = None
    child: Any = None

@pytest.fixture
def store() -> MemStore:
    """Ten dummies, children alternate between `str` and `list`."""
    return MemStore(Dummy(i, NAMES[i], '' if i % 2 == 0 else []) for i in range(10))

@pytest.fixture
def people() -> MemStore:
    return MemStore([{'id': 1, 'age': 23}, {'id': 2, 'age': 25}, {'id': 3, 'age': 27}],
                    key='id', access='get')

def ids(items) -> list[int]:
    return [item.id for item in items]

def ages(items) -> list[int]:
    return [item['age'] for item in items]

# --- Test Functions ---

def test_find(store):
    """Tests find_* queries for every logic."""
    assert ids(store.find_all(id=range(3, 8), child=str)) == [4, 6]
    assert ids(store.find_any(id=range(3, 8), child=str)) == [0, 2, 3, 4, 5, 6, 7, 8]
    assert ids(store.find_one(name=re.compile('o'), child=str)) == [1, 4, 7, 9]
    assert ids(store.find_not_all(name=re.compile('o'), child=str)) == [1, 3, 4, 5, 7, 9]
    assert ids(store.find_none(name=re.compile('o'), child=str)) == [3, 5]
    assert store.find(id=range(3, 8), child=str) == store.find_all(id=range(3, 8), child=str)

def test_first(store):
    """Tests first_* queries for every logic."""
    assert store.first_all(id=range(3, 8), child=str).id == 4
    assert store.first_any(id=range(3, 8), child=str).id == 0
    assert store.first_one(name=re.compile('o'), child=str).id == 1
    assert store.first_not_all(name=re.compile('o'), child=str).id == 1
    assert store.first_none(name=re.compile('o'), child=str).id == 3
    assert store.first(id=5).id == 5
    assert store.first_all(id=42) is None

def test_count(store):
    """Tests count_* queries for every logic."""
    assert store.count_all(id=range(3, 8), child=str) == 2
    assert store.count_any(id=range(3, 8), child=str) == 8
    assert store.count_one(name=re.compile('o'), child=str) == 4
    assert store.count_not_all(name=re.compile('o'), child=str) == 6
    assert store.count_none(name=re.compile('o'), child=str) == 2
    assert store.count(child=list) == 5

def test_delete(store):
    """Tests that delete_* removes matching items and returns them in find order."""
    removed = store.delete_all(id=range(3, 8), child=str)
    assert ids(removed) == [4, 6]
    assert store.find_all(id=range(3, 8), child=str) == []
    assert len(store) == 8
    assert ids(store.delete_none(name=re.compile('o'), child=str)) == [3, 5]
    assert ids(store.delete_one(name=re.compile('o'), child=str)) == [1, 7, 9]
    assert ids(store.delete_not_all(name=re.compile('o'), child=str)) == []
    assert ids(store.delete_any(id=[0])) == [0]
    assert ids(store) == [2, 8]
    assert ids(store.delete(child=str)) == [2, 8]
    assert len(store) == 0

def test_lazy_find(store):
    """Tests that lazy results re-scan the live collection on every iteration."""
    lazy = store.lazy_find_all(child=str)
    assert isinstance(lazy, LazyResult)
    assert ids(lazy) == [0, 2, 4, 6, 8]
    assert ids(lazy.take(2)) == [0, 2]
    assert lazy.first().id == 0
    store.add(Dummy(10, 'xyz', 'child'))
    store.delete_key(store.access_key(store.first(id=0)))
    assert ids(lazy) == [2, 4, 6, 8, 10]
    assert ids(store.lazy_find_any(id=range(3, 8), child=str)) == [2, 3, 4, 5, 6, 7, 8, 10]
    assert ids(store.lazy_find_one(name=re.compile('o'), child=str)) == [1, 4, 7, 9, 10]
    assert ids(store.lazy_find_not_all(id=range(3, 8))) == [1, 2, 8, 9, 10]
    assert ids(store.lazy_find_none(id=range(3, 8))) == [1, 2, 8, 9, 10]
    assert store.lazy_find(id=42).first('missing') == 'missing'
    assert store.lazy_find(id=42).take(3) == []

def test_membership_truth_table(people):
    """Tests membership condition under every logic."""
    assert ages(people.find_all(age=[23, 25, 27])) == [23, 25, 27]
    assert ages(people.find_any(age=[23, 25, 27])) == [23, 25, 27]
    assert ages(people.find_one(age=[23, 25, 27])) == [23, 25, 27]
    assert ages(people.find_not_all(age=[23, 25, 27])) == []
    assert ages(people.find_none(age=[23, 25, 27])) == []

def test_vacuous_conditions(people):
    """Tests queries without conditions and predicate."""
    assert ages(people.find_all()) == [23, 25, 27]
    assert people.find_any() == []
    assert people.find_one() == []
    assert people.find_not_all() == []
    assert ages(people.find_none()) == [23, 25, 27]
    assert people.first_any() is None
    assert people.first_none()['age'] == 23
    assert people.count_none() == 3
    assert people.count_any() == 0

def test_predicate(people):
    """Tests combination of conditions with predicate under every logic."""
    cond = [23, 25]
    assert ages(people.find_all(age=cond, predicate=lambda p: p['age'] > 24)) == [25]
    assert ages(people.find_any(age=cond, predicate=lambda p: p['age'] > 26)) == [23, 25, 27]
    assert ages(people.find_one(age=cond, predicate=lambda p: p['age'] > 24)) == [23, 27]
    assert ages(people.find_not_all(age=cond, predicate=lambda p: p['age'] > 24)) == [23, 27]
    assert ages(people.find_none(age=cond, predicate=lambda p: p['age'] < 24)) == [27]
    assert ages(people.find_none(age=cond, predicate=lambda p: p['age'] > 26)) == []

def test_predicate_only(people):
    """Tests queries with predicate and without conditions."""
    old = lambda p: p['age'] > 24 # noqa: E731
    assert ages(people.find_all(predicate=old)) == [25, 27]
    assert ages(people.find_any(predicate=old)) == [25, 27]
    assert ages(people.find_one(predicate=old)) == [25, 27]
    assert ages(people.find_not_all(predicate=old)) == [23]
    assert ages(people.find_none(predicate=old)) == [23]

def test_xor_semantics(store):
    """Tests that items matching both conditions are excluded from ONE queries."""
    both = store.first(id=0)
    assert both.child == '' and 'o' in both.name
    result = store.find_one(name=re.compile('o'), child=str)
    assert both not in result
    assert store.first(id=4) in result # only child matches
    assert store.first(id=1) in result # only name matches

def test_first_short_circuit(store):
    """Tests that first_* stops scanning at the first match."""
    calls = []
    def counter(item) -> bool:
        calls.append(item.id)
        return True
    assert store.first_any(id=0, predicate=counter).id == 0
    assert len(calls) <= 1
    calls.clear()
    assert store.first_all(predicate=lambda item: counter(item) and item.id == 3).id == 3
    assert calls == [0, 1, 2, 3]

def test_conditions_short_circuit(store):
    """Tests that condition evaluation stops when the result is known."""
    calls = []
    def tracked(value) -> bool:
        calls.append(value)
        return True
    store.find_all(id=-1, name=tracked)
    assert calls == []
    store.find_any(id=lambda v: True, name=tracked)
    assert calls == []
    store.find_one(id=0, name=tracked)
    assert calls == NAMES

def test_missing_attributes(store):
    """Tests that attributes not present on items never raise and never match values."""
    assert store.find_all(missing=42) == []
    assert len(store.find_none(missing=42)) == 10
    assert len(store.find_all(missing=None)) == 10
    assert store.find_all(where={1: 42}) == []
    assert len(store.find_none(where={1: 42})) == 10

def test_class_condition_includes_subclasses():
    """Tests kind-of semantics of class conditions."""
    class Base:
        pass
    class Sub(Base):
        pass
    store = MemStore([Dummy(1, child=Base()), Dummy(2, child=Sub()), Dummy(3, child=1)],
                     key='id')
    assert ids(store.find_all(child=Base)) == [1, 2]
    assert ids(store.find_all(child=Sub)) == [2]

def test_where(people):
    """Tests conditions passed as mapping."""
    store = MemStore([{'first name': 'John', 'id': 1}, {'first name': 'Jane', 'id': 2}],
                     key='id', access='get')
    assert store.find_all(where={'first name': 'Jane'}) == [store[2]]
    assert store.find_all(where={'first name': 'Jane', 'id': 1}) == []
    # Keyword conditions take precedence
    assert store.find_all(where={'id': 1}, id=2) == [store[2]]
    assert people.count_any(where={'age': 23}, id=3) == 2

def test_query(store):
    """Tests generic query entry point with enum members and names."""
    assert ids(store.query(Action.FIND, Logic.NONE, name=re.compile('o'), child=str)) == [3, 5]
    assert ids(store.query('find', 'not_all', name=re.compile('o'), child=str)) == [1, 3, 4, 5, 7, 9]
    assert store.query('COUNT', 'One', name=re.compile('o'), child=str) == 4
    assert store.query(Action.FIRST, 'any', id=[7, 8]).id == 7
    assert isinstance(store.query('lazy_find', 'all'), LazyResult)
    assert ids(store.query('delete', 'all', id=9)) == [9]
    with pytest.raises(ConfigurationError):
        store.query('find', 'some', id=1)
    with pytest.raises(ConfigurationError):
        store.query('collect', 'all', id=1)

def test_make_test():
    """Tests per-item test function."""
    attribute = lambda item, attr: item.get(attr) # noqa: E731
    test = make_test('all', {'a': 1, 'b': range(5)}, None, attribute)
    assert test({'a': 1, 'b': 3})
    assert not test({'a': 1, 'b': 7})
    test = make_test(Logic.NONE, {'a': 1}, lambda item: item.get('c'), attribute)
    assert test({'a': 2})
    assert not test({'a': 2, 'c': True})
    with pytest.raises(ConfigurationError):
        make_test('xor', {}, None, attribute)

def test_modification_during_scan(store):
    """Tests that the store could be changed while query results are consumed."""
    for item in store.lazy_find_all(child=str):
        store.delete_item(item)
    assert ids(store) == [1, 3, 5, 7, 9]
    def grow(item) -> bool:
        store.add(Dummy(item.id + 100, 'new'))
        return item.id == 5
    assert store.first_all(predicate=grow).id == 5
    assert ids(store) == [1, 3, 5, 7, 9, 101, 103, 105]
    lazy = store.lazy_find(name='new')
    assert ids(lazy) == [101, 103, 105]
    store.delete(name='new')
    assert list(lazy) == []
