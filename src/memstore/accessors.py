# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/accessors.py
# DESCRIPTION:    Key, type and attribute accessors
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

"""MemStore - Key, type and attribute accessors

`.MemStore` never looks into items directly. It uses three functions resolved once
when the store is created:

* `key(item)` - returns the key under which the item is stored,
* `type(item)` - returns the item classification used by type restricted queries,
* `attribute(item, name)` - returns value of named item attribute used by query
  conditions.

Each function is created from a specification that could be `None` (use default),
a name, or a callable. See `make_accessors` for details.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, TypeAlias

from .types import ConfigurationError, Distinct

#: Function that returns item key.
TKeyFunc: TypeAlias = Callable[[Any], Hashable]
#: Function that returns item type.
TTypeFunc: TypeAlias = Callable[[Any], Any]
#: Function that returns value of item attribute.
TAccessFunc: TypeAlias = Callable[[Any, Any], Any]
#: Key or type specification: `None`, attribute name or callable.
AccessorSpec: TypeAlias = Hashable | Callable | None

def default_key(item: Any) -> Hashable:
    """Default key function.

    Returns `item.get_key()` for `.Distinct` items, `hash(item)` for other hashable
    items and `id(item)` for unhashable items (like `dict`).
    """
    if isinstance(item, Distinct):
        return item.get_key()
    if isinstance(item, Hashable):
        return hash(item)
    return id(item)

def default_type(item: Any) -> type:
    """Default type function, returns class of the item.
    """
    return type(item)

def default_access(item: Any, attribute: Any) -> Any:
    """Default attribute access function.

    Returns value of item attribute, or `None` when item does not have such attribute
    (attribute names that are not strings are never present).
    """
    if not isinstance(attribute, str):
        return None
    return getattr(item, attribute, None)

@dataclass(frozen=True)
class Accessors:
    """Resolved item accessors.

    Arguments:
        key:         Function that returns item key.
        type:        Function that returns item type.
        attribute:   Function that returns value of item attribute.
        key_spec:    Specification used to create `key` function.
        type_spec:   Specification used to create `type` function.
        access_spec: Specification used to create `attribute` function.
    """
    key: TKeyFunc
    type: TTypeFunc
    attribute: TAccessFunc
    key_spec: AccessorSpec = None
    type_spec: AccessorSpec = None
    access_spec: str | Callable | None = None

def _make_access(access: str | Callable | None) -> TAccessFunc:
    if access is None:
        return default_access
    if isinstance(access, str):
        def access_by_method(item: Any, attribute: Any) -> Any:
            return getattr(item, access)(attribute)
        return access_by_method
    if callable(access):
        return access
    raise ConfigurationError(f"No usable access method: {access!r}", spec=access)

def _make_getter(spec: AccessorSpec, default: Callable[[Any], Any], attribute: TAccessFunc,
                 what: str) -> Callable[[Any], Any]:
    if spec is None:
        return default
    if callable(spec):
        return spec
    if isinstance(spec, Hashable):
        def get_attribute(item: Any) -> Any:
            return attribute(item, spec)
        return get_attribute
    raise ConfigurationError(f"No usable {what} specification: {spec!r}", spec=spec)

def make_accessors(key: AccessorSpec=None, type: AccessorSpec=None, # noqa: A002
                   access: str | Callable | None=None) -> Accessors:
    """Creates item accessors from specifications.

    Arguments:
        key:    `None` for `default_key`, callable `key(item)`, or name of attribute
                read using the attribute accessor.
        type:   `None` for `default_type`, callable `type(item)`, or name of attribute
                read using the attribute accessor.
        access: `None` for `default_access`, callable `access(item, attribute)`, or name
                of item method called with attribute name (e.g. `'get'` for `dict` items).

    Raises:
        ConfigurationError: When any specification is not usable.

    Example::

        make_accessors(key='id')                      # item.id
        make_accessors(key='id', access='get')        # item.get('id')
        make_accessors(key=lambda item: item.id[0])
        make_accessors(type='kind', access=lambda item, attr: item.data[attr])
    """
    attribute = _make_access(access)
    return Accessors(key=_make_getter(key, default_key, attribute, 'key'),
                     type=_make_getter(type, default_type, attribute, 'type'),
                     attribute=attribute, key_spec=key, type_spec=type, access_spec=access)
