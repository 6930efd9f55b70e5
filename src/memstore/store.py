# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/store.py
# DESCRIPTION:    In-memory keyed item store
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

"""MemStore - In-memory keyed item store

`MemStore` keeps items in a `dict` under keys computed by the key accessor when items
are added. Items are iterated in insertion order.

Example::

    from memstore.store import MemStore

    store = MemStore(key='id', access='get')
    store.add({'id': 1, 'name': 'John', 'age': 23},
              {'id': 2, 'name': 'Jane', 'age': 27})
    store[1]                               # {'id': 1, 'name': 'John', 'age': 23}
    store.find_all(age=range(20, 25))      # [{'id': 1, ...}]
    store.delete_none(name=['John'])       # [{'id': 2, ...}]

    data = store.to_json()
    copy = MemStore.from_json(data)

    with MemStore.with_file('people.json', 'json', key='id', access='get') as store:
        store.add({'id': 3, 'name': 'Jack', 'age': 31})
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import AbstractContextManager, contextmanager, nullcontext
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from .accessors import Accessors, AccessorSpec, make_accessors
from .codecs import Format, from_document, get_codec, to_document
from .filelock import locked
from .logging import BraceMessage, get_logger
from .query import QueryMixin, make_type_restriction
from .types import UNDEFINED, ConfigurationError

if TYPE_CHECKING:
    from .config import FileStoreConfig, StoreConfig

class MemStore(QueryMixin):
    """In-memory keyed item store.

    Arguments:
        items:  Items to be added.
        key:    Key specification (see `.make_accessors`).
        type:   Type specification (see `.make_accessors`).
        access: Attribute access specification (see `.make_accessors`).

    Raises:
        ConfigurationError: When any specification is not usable.

    All query methods (`find_all`, `first_none`, `count_one`, `delete_any` etc.) are
    provided by `.QueryMixin`.
    """
    _agent_name_: str = 'memstore.MemStore'
    def __init__(self, items: Iterable[Any] | None=None, *, key: AccessorSpec=None,
                 type: AccessorSpec=None, access: str | Callable | None=None): # noqa: A002
        self._accessors: Accessors = make_accessors(key, type, access)
        self._items: dict[Any, Any] = {}
        if items is not None:
            self.add(*items)
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={len(self._items)}, key={self._accessors.key_spec!r})"
    def __len__(self) -> int:
        return len(self._items)
    def __iter__(self) -> Iterator[Any]:
        return iter(self._items.values())
    def __contains__(self, key: Any) -> bool:
        return key in self._items
    def __getitem__(self, key: Any) -> Any:
        """Returns item stored under `key`, or `None` if there is no such item.
        """
        return self._items.get(key)
    def __lshift__(self, item: Any) -> Self:
        return self.add(item)
    def __eq__(self, other: object) -> bool:
        if isinstance(other, MemStore):
            mine, theirs = self._accessors, other._accessors
            return (self._items == other._items and mine.key_spec == theirs.key_spec
                    and mine.type_spec == theirs.type_spec
                    and mine.access_spec == theirs.access_spec)
        return NotImplemented
    __hash__ = None
    def _get_items(self) -> dict[Any, Any]:
        return self._items
    def _get_accessors(self) -> Accessors:
        return self._accessors
    @classmethod
    def _restore(cls, specs: Mapping[str, Any], items: dict[Any, Any]) -> Self:
        # Keys are taken from the source, never recomputed
        store = cls(key=specs.get('key'), type=specs.get('type'), access=specs.get('access'))
        store._items = items
        return store
    # Keyed operations
    def access_key(self, item: Any) -> Any:
        """Returns key of the item.
        """
        return self._accessors.key(item)
    def access_type(self, item: Any) -> Any:
        """Returns type of the item.
        """
        return self._accessors.type(item)
    def access_attribute(self, item: Any, attribute: Any) -> Any:
        """Returns value of item attribute.
        """
        return self._accessors.attribute(item, attribute)
    def size(self, type_spec: Any=UNDEFINED) -> int:
        """Returns number of stored items, optionally only items of given type(s).
        """
        if type_spec is UNDEFINED:
            return len(self._items)
        restriction = make_type_restriction(type_spec, self._accessors.type)
        return sum(1 for item in self._items.values() if restriction(item))
    def all(self, type_spec: Any=UNDEFINED) -> list[Any]:
        """Returns list of all stored items, optionally only items of given type(s).
        """
        if type_spec is UNDEFINED:
            return list(self._items.values())
        restriction = make_type_restriction(type_spec, self._accessors.type)
        return [item for item in self._items.values() if restriction(item)]
    def items_of(self, type_spec: Any) -> dict[Any, Any]:
        """Returns new dictionary of keys and items of given type(s), in store order.
        """
        restriction = make_type_restriction(type_spec, self._accessors.type)
        return {key: item for key, item in self._items.items() if restriction(item)}
    def add(self, *items: Any) -> Self:
        """Adds items to the store. Item stored under the same key is replaced.

        Returns:
            The store itself.

        Raises:
            Exception: Any exception raised by key accessor.
        """
        key = self._accessors.key
        for item in items:
            self._items[key(item)] = item
        get_logger(self, 'store').debug(BraceMessage("Added {0} item(s)", len(items)))
        return self
    def get(self, key: Any, default: Any=None) -> Any:
        """Returns item stored under `key`, or `default` if there is no such item.
        """
        return self._items.get(key, default)
    def get_many(self, *keys: Any) -> list[Any]:
        """Returns list of items stored under `keys`, with `None` for missing keys.
        """
        return [self._items.get(key) for key in keys]
    def delete_item(self, item: Any) -> Any:
        """Removes item from the store.

        Returns:
            Removed item, or `None` if there was no item under the key of `item`.

        Raises:
            Exception: Any exception raised by key accessor.
        """
        return self.delete_key(self._accessors.key(item))
    def delete_items(self, *items: Any) -> list[Any]:
        """Removes items from the store.

        Returns:
            List of removed items, with `None` for items that were not stored.
        """
        key = self._accessors.key
        return self.delete_keys(*(key(item) for item in items))
    def delete_key(self, key: Any) -> Any:
        """Removes item stored under `key`.

        Returns:
            Removed item, or `None` if there was no item under `key`.
        """
        item = self._items.pop(key, None)
        get_logger(self, 'store').debug(BraceMessage("Deleted key {0!r}", key))
        return item
    def delete_keys(self, *keys: Any) -> list[Any]:
        """Removes items stored under `keys`.

        Returns:
            List of removed items, with `None` for missing keys.
        """
        result = [self._items.pop(key, None) for key in keys]
        get_logger(self, 'store').debug(BraceMessage("Deleted {0} key(s)", len(keys)))
        return result
    def collect(self, attribute: Any, type_spec: Any=UNDEFINED) -> list[Any]:
        """Returns list of attribute values of all items (optionally only items of given
        type(s)).
        """
        access = self._accessors.attribute
        return [access(item, attribute) for item in self.all(type_spec)]
    def clear(self) -> None:
        """Removes all items.
        """
        self._items.clear()
    # Serialization
    def to_dict(self) -> dict[str, Any]:
        """Returns store as plain dictionary with `key`, `type`, `access` and `items`
        (list of key/item pairs).
        """
        return to_document(self._accessors, self._items, plain=False)
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self | None:
        """Returns store created from dictionary returned by `to_dict`, or `None` when
        `data` are not valid.
        """
        try:
            specs, items = from_document(data)
            return cls._restore(specs, items)
        except (ValueError, TypeError, ConfigurationError) as exc:
            get_logger(cls._agent_name_, 'io').warning(BraceMessage("Invalid store data: {0}", exc))
            return None
    def dumps(self, format: Format | str) -> bytes | str: # noqa: A002
        """Returns store serialized in specified format.

        Raises:
            ConfigurationError: For unknown format.
            Error: When store cannot be serialized in specified format.
        """
        codec = get_codec(format)
        data = codec.encode(self._accessors, self._items)
        get_logger(self, 'io').debug(BraceMessage("Serialized {0} item(s) to {1}",
                                                  len(self._items), codec.format.value))
        return data
    @classmethod
    def loads(cls, data: bytes | str, format: Format | str) -> Self | None: # noqa: A002
        """Returns store deserialized from `data` in specified format, or `None` when
        `data` are not valid.

        Raises:
            ConfigurationError: For unknown format.
        """
        codec = get_codec(format)
        log = get_logger(cls._agent_name_, 'io')
        try:
            specs, items = codec.decode(data)
            store = cls._restore(specs, items)
        except (*codec.errors, ConfigurationError) as exc:
            log.warning(BraceMessage("Cannot load store from {0}: {1}", codec.format.value, exc))
            return None
        log.debug(BraceMessage("Loaded {0} item(s) from {1}", len(store), codec.format.value))
        return store
    def to_json(self) -> str:
        "Returns store serialized to JSON."
        return self.dumps(Format.JSON)
    @classmethod
    def from_json(cls, data: str | bytes) -> Self | None:
        "Returns store deserialized from JSON, or `None`."
        return cls.loads(data, Format.JSON)
    def to_yaml(self) -> str:
        "Returns store serialized to YAML."
        return self.dumps(Format.YAML)
    @classmethod
    def from_yaml(cls, data: str | bytes) -> Self | None:
        "Returns store deserialized from YAML, or `None`."
        return cls.loads(data, Format.YAML)
    def to_msgpack(self) -> bytes:
        "Returns store serialized to MessagePack."
        return self.dumps(Format.MSGPACK)
    @classmethod
    def from_msgpack(cls, data: bytes) -> Self | None:
        "Returns store deserialized from MessagePack, or `None`."
        return cls.loads(data, Format.MSGPACK)
    def to_binary(self) -> bytes:
        """Returns store serialized with `pickle`.

        Only binary format preserves callable accessor specifications.
        """
        return self.dumps(Format.BINARY)
    @classmethod
    def from_binary(cls, data: bytes) -> Self | None:
        """Returns store deserialized with `pickle`, or `None`.

        Important:
            Load only data from trusted sources.
        """
        return cls.loads(data, Format.BINARY)
    def to_protobuf(self) -> bytes:
        "Returns store serialized to `google.protobuf.Struct` message."
        return self.dumps(Format.PROTOBUF)
    @classmethod
    def from_protobuf(cls, data: bytes) -> Self | None:
        "Returns store deserialized from `google.protobuf.Struct` message, or `None`."
        return cls.loads(data, Format.PROTOBUF)
    # Files
    def to_file(self, path: Path | str, format: Format | str=Format.BINARY) -> int: # noqa: A002
        """Writes store to file.

        Arguments:
            path:   File path.
            format: Serialization format.

        Returns:
            Number of characters (text formats) or bytes written.

        Raises:
            OSError: When file cannot be written.
        """
        path = Path(path)
        data = self.dumps(format)
        if isinstance(data, str):
            written = path.write_text(data, encoding='utf-8')
        else:
            written = path.write_bytes(data)
        get_logger(self, 'io').debug(BraceMessage("Written {0} to '{1}'", written, path))
        return written
    @classmethod
    def from_file(cls, path: Path | str, format: Format | str=Format.BINARY) -> Self | None: # noqa: A002
        """Returns store read from file, or `None` when file cannot be read or its content
        is not valid.

        Raises:
            ConfigurationError: For unknown format.
        """
        path = Path(path)
        codec = get_codec(format)
        try:
            data = path.read_text(encoding='utf-8') if codec.text else path.read_bytes()
        except (OSError, UnicodeDecodeError) as exc:
            get_logger(cls._agent_name_, 'io').warning(BraceMessage("Cannot read '{0}': {1}",
                                                                    path, exc))
            return None
        return cls.loads(data, codec.format)
    @classmethod
    @contextmanager
    def with_file(cls, path: Path | str, format: Format | str=Format.BINARY, *, # noqa: A002
                  items: Iterable[Any] | None=None, key: AccessorSpec=None,
                  type: AccessorSpec=None, access: str | Callable | None=None, # noqa: A002
                  lock: bool=True) -> Iterator[Self]:
        """Context manager for load-modify-save cycle on store file.

        Loads the store from file, or creates new store from `items` and accessor
        specifications when file does not exist or cannot be loaded. The store is
        written back to file when the context exits without exception.

        Arguments:
            path:   File path.
            format: Serialization format.
            items:  Items for new store.
            key:    Key specification for new store.
            type:   Type specification for new store.
            access: Attribute access specification for new store.
            lock:   When True, exclusive advisory lock (see `.locked`) is held while
                    the context is active.

        Example::

            with MemStore.with_file('counters.bin', key='name') as store:
                store.add(Counter('visits', 0))
        """
        path = Path(path)
        with locked(path) if lock else nullcontext(path):
            store = cls.from_file(path, format) if path.exists() else None
            if store is None:
                store = cls(items, key=key, type=type, access=access)
            yield store
            store.to_file(path, format)
    # Configuration
    @classmethod
    def from_config(cls, config: StoreConfig, items: Iterable[Any] | None=None) -> Self:
        """Returns new store with accessors defined by configuration.

        Raises:
            ConfigurationError: When any specification is not usable.
        """
        return cls(items, key=config.key.value, type=config.type.value,
                   access=config.access.value)
    @classmethod
    def with_config(cls, config: FileStoreConfig,
                    items: Iterable[Any] | None=None) -> AbstractContextManager[Self]:
        """Returns `with_file` context manager for file-backed store configuration.

        Raises:
            ConfigurationError: When configuration is not valid.
        """
        config.validate()
        return cls.with_file(config.path.value, config.format.value, items=items,
                             key=config.store.key.value, type=config.store.type.value,
                             access=config.store.access.value, lock=config.lock.value)
    def _set_items(self, value: Mapping[Any, Any]) -> None:
        self._items = dict(value)
    items: dict[Any, Any] = property(_get_items, _set_items,
                                     doc="Stored items, mapping of keys to items (assigned mapping is copied)")
    @property
    def accessors(self) -> Accessors:
        """Resolved item accessors.
        """
        return self._accessors
    @property
    def log_context(self) -> int:
        """Logging context, the number of stored items.
        """
        return len(self._items)
