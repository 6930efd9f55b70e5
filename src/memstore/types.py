# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/types.py
# DESCRIPTION:    Exceptions, sentinels and base classes
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

"""MemStore - Exceptions, sentinels and base classes

This module provides building blocks shared by all `memstore` modules:

- Base exception class (`Error`) and `ConfigurationError`.
- Sentinel objects (`Sentinel`, `UNDEFINED`) used where `None` is a valid value.
- Enum base with lookup by member name (`NamedEnum`).
- Base class for items that know their own key (`Distinct`).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Hashable
from enum import Enum
from typing import Any, Self

# Exceptions

class Error(Exception):
    """Exception intended as a base for all `memstore` errors.

    Accepts arbitrary keyword arguments that are stored as attributes on the exception
    instance. Attribute lookup never fails, all attributes that are not actually set
    have `None` value.

    Example::

        try:
            store.to_json()
        except Error as e:
            if e.format is not None:
                ...
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args)
        for name, value in kwargs.items():
            setattr(self, name, value)
    def __getattr__(self, name) -> Any | None:
        # __notes__ must raise to keep `add_note` working
        if name == '__notes__':
            raise AttributeError
        return None

class ConfigurationError(Error):
    """Unusable configuration: accessor specification, query logic or action identifier,
    serialization format or configuration file content.

    Raised immediately when the bad value is supplied, never recovered internally.
    """

# Sentinels

class _SentinelMeta(type):
    """Metaclass for `Sentinel` objects.

    Sentinel classes cannot be instantiated nor subclassed after their definition,
    and they present themselves by their name.
    """
    def __new__(metaclass, name, bases, namespace): # noqa: N804
        def __new__(cls, *args, **kwargs): # noqa: N807, ARG001
            raise TypeError(f'Cannot initialise or subclass sentinel {cls.__name__!r}')
        cls = super().__new__(metaclass, name, bases, namespace)
        if type(metaclass) is metaclass:
            cls.__new__ = __new__
        cls.__class__ = cls
        return cls
    def __call__(cls, name=None, bases=None, namespace=None, /):
        # Class statements deriving from a sentinel base arrive here
        if bases is not None:
            return cls.__new__(cls, name, bases, namespace)
        raise TypeError(f'Cannot initialise sentinel {cls.__name__!r}')
    def __str__(cls):
        return cls.__name__
    def __repr__(cls):
        return cls.__name__
    @property
    def name(cls) -> str:
        return cls.__name__

class Sentinel(_SentinelMeta, metaclass=_SentinelMeta):
    """Base class for sentinel objects.

    Sentinels are unique objects that signal a state where `None` is a legitimate
    value. They are identified with the `is` operator.

    Example::

        class NOT_SET(Sentinel):
            "Value was not set"

        if value is NOT_SET:
            ...
    """

class UNDEFINED(Sentinel):
    "Sentinel that denotes explicitly undefined value"

# Enums

class NamedEnum(Enum):
    """Enum whose members could be also identified by name (case insensitive).
    """
    @classmethod
    def get(cls, value: Self | str) -> Self:
        """Returns enum member for the member itself or its name.

        Raises:
            ConfigurationError: When value does not identify any member.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and (member := cls.__members__.get(value.upper())) is not None:
            return member
        raise ConfigurationError(f"Unknown {cls.__name__} '{value}'", value=value)

# Distinct objects

class Distinct(ABC):
    """Abstract base class for items with distinct identity based on a key.

    Instances are equal if their keys returned by `get_key()` are equal, and their
    hash is the hash of the key. `.MemStore` uses `get_key()` as the default key of
    such items.

    .. important::

       If used with `@dataclass`, it must be defined with `eq=False`.

    Example::

        @dataclass(eq=False)
        class User(Distinct):
            id: int
            name: str

            def get_key(self) -> Hashable:
                return self.id
    """
    @abstractmethod
    def get_key(self) -> Hashable:
        """Returns the unique key identifying this instance.
        """
    def __hash(self) -> int:
        return hash(self.get_key())
    def __eq__(self, other) -> bool:
        if isinstance(other, Distinct):
            return self.get_key() == other.get_key()
        return False
    __hash__ = __hash
