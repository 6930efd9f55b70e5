# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           tests/test_store.py
# DESCRIPTION:    Tests for memstore.store
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

"""memstore - Unit tests for memstore.store
"""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass

import pytest

from memstore.config import StoreConfig, make_parser
from memstore.store import MemStore
from memstore.types import ConfigurationError, Distinct

# --- Test Setup ---

@dataclass(frozen=True)
class SimpleDummy:
    id: int

@dataclass(eq=False)
class Account(Distinct):
    number: str
    balance: int = 0
    def get_key(self) -> Hashable:
        return self.number

def get_id(item) -> int:
    return item.id

@pytest.fixture
def store() -> MemStore:
    """Floats 0.0 to 9.0 keyed by their integer value."""
    return MemStore((float(i) for i in range(10)), key=int)

# --- Test Functions ---

def test_items_property(store):
    """Tests access to and replacement of the items dictionary."""
    data = {1: 2.0, 2: 4.0, 3: 6.0}
    store.items = data
    assert store.items == data
    data[4] = 8.0
    assert 4 not in store
    assert store.all() == list(store.items.values())

def test_size(store):
    """Tests size of the store."""
    assert store.size() == 10
    assert len(store) == 10

def test_add(store):
    """Tests adding single and multiple items."""
    assert store.add(10.0) is store
    assert store[10] == 10.0
    store.add(11.0, 12.0, 13.0)
    assert store.get_many(11, 12, 13) == [11.0, 12.0, 13.0]
    store << 14.0
    assert store[14] == 14.0

def test_add_replaces_item_with_same_key(store):
    """Tests last-write-wins for items with equal keys."""
    store.add(3.5)
    assert store[3] == 3.5
    assert len(store) == 10
    # The replaced item keeps its position
    assert store.all()[3] == 3.5

def test_get(store):
    """Tests retrieval by key, missing keys give None."""
    assert store[3] == 3.0
    assert store[42] is None
    assert store.get(3) == 3.0
    assert store.get(42) is None
    assert store.get(42, 'default') == 'default'
    assert store.get_many(3) == [3.0]
    assert store.get_many(3, 4, 42, 6) == [3.0, 4.0, None, 6.0]
    assert 3 in store
    assert 42 not in store

def test_delete_items(store):
    """Tests deletion by reference."""
    assert store.delete_item(3.0) == 3.0
    assert store.delete_item(3.0) is None
    assert store.delete_items(4.0, 5.0, 42.0, 6.0) == [4.0, 5.0, None, 6.0]
    assert store.all() == [0.0, 1.0, 2.0, 7.0, 8.0, 9.0]

def test_delete_keys(store):
    """Tests deletion by key."""
    assert store.delete_key(3) == 3.0
    assert store.delete_key(3) is None
    assert store.delete_keys(4, 5, 42, 6) == [4.0, 5.0, None, 6.0]
    assert store.all() == [0.0, 1.0, 2.0, 7.0, 8.0, 9.0]

def test_collect(store):
    """Tests collection of attribute values."""
    assert store.collect('real') == store.all()
    assert store.collect('missing') == [None] * 10

def test_iteration_and_clear(store):
    """Tests iteration in insertion order and clear()."""
    assert list(store) == [float(i) for i in range(10)]
    store.clear()
    assert len(store) == 0
    assert store.all() == []

def test_repr_and_equality(store):
    """Tests repr() and equality of stores."""
    assert repr(store) == "MemStore(size=10, key=<class 'int'>)"
    other = MemStore((float(i) for i in range(10)), key=int)
    assert store == other
    other.delete_key(0)
    assert store != other
    assert store != MemStore((float(i) for i in range(10)), key=int, access='__getattribute__')

def test_initial_items():
    """Tests items passed on creation."""
    store = MemStore([1, 2, 3, 4, 5])
    assert list(store.items.values()) == [1, 2, 3, 4, 5]
    assert store[hash(3)] == 3

def test_key_specifications():
    """Tests key specified by attribute name, function, lambda and Distinct items."""
    dummy = SimpleDummy(42)
    assert MemStore([dummy])[hash(dummy)] is dummy
    assert MemStore([dummy], key='id')[42] is dummy
    assert MemStore([dummy], key=lambda item: item.id)[42] is dummy
    assert MemStore([dummy], key=get_id)[42] is dummy
    account = Account('A-1', 10)
    store = MemStore([account])
    assert store['A-1'] is account
    assert store.delete_item(Account('A-1')) is account

def test_access_specifications():
    """Tests attribute access by method name and callable."""
    data = {'id': 42}
    store = MemStore([data], key='id', access='get')
    assert store[42] is data
    store = MemStore([data], key='id', access=lambda item, attribute: item[attribute])
    assert store[42] is data
    store = MemStore([data], access='get')
    assert store[id(data)] is data
    assert store[42] is None

def test_accessor_methods():
    """Tests direct use of resolved accessors."""
    store = MemStore(key='id', type='kind', access='get')
    item = {'id': 1, 'kind': 'x', 'name': 'foo'}
    assert store.access_key(item) == 1
    assert store.access_type(item) == 'x'
    assert store.access_attribute(item, 'name') == 'foo'
    assert store.accessors.key_spec == 'id'
    assert store.log_context == 0

def test_key_accessor_failure_propagates():
    """Tests that failing key accessor raises to the caller."""
    store = MemStore(key='id', access='__getitem__')
    with pytest.raises(KeyError):
        store.add({'name': 'no id'})
    with pytest.raises(KeyError):
        store.delete_item({'name': 'no id'})

def test_bad_specification():
    """Tests that unusable specifications are rejected on creation."""
    with pytest.raises(ConfigurationError):
        MemStore(access=42)
    with pytest.raises(ConfigurationError):
        MemStore(key={'id'})

def test_from_config():
    """Tests store created from configuration."""
    parser = make_parser()
    parser.read_string("[store]\nkey = id\naccess = get\n")
    config = StoreConfig()
    config.load_config(parser)
    store = MemStore.from_config(config, [{'id': 1}, {'id': 2}])
    assert store.get_many(1, 2) == [{'id': 1}, {'id': 2}]
    assert store.accessors.type_spec is None
