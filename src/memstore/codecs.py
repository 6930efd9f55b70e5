# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/codecs.py
# DESCRIPTION:    Serialization of stores
# CREATED:        6.2.2024
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

"""MemStore - Serialization of stores

Stores are serialized as *documents*, plain dictionaries with accessor specifications
and stored items::

    {'key': 'id', 'type': None, 'access': 'get',
     'items': [[1, {'id': 1, 'name': 'foo'}], [2, {'id': 2, 'name': 'bar'}]]}

Items are stored as list of key/item pairs, so keys that are not strings survive
formats that allow only string keys in maps. List keys are restored as tuples.

Documents are converted to and from serialized form by codecs registered for
individual `Format` values:

=========  ============================  ====================================
Format     Library                       Serialized form
=========  ============================  ====================================
JSON       `json`                        `str`
YAML       `yaml` (PyYAML, safe dumper)  `str`
MSGPACK    `msgpack`                     `bytes`
BINARY     `pickle`                      `bytes`
PROTOBUF   `google.protobuf.Struct`      `bytes`
=========  ============================  ====================================

Only `BINARY` format can store callable accessor specifications and arbitrary
(picklable) items, other formats require plain data.

Important:
    `BINARY` format uses `pickle`. Load binary data only from trusted sources.

Note:
    `PROTOBUF` format stores all numbers as doubles. Integral numbers are restored as
    `int`.
"""

from __future__ import annotations

import json
import pickle
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

import msgpack
import yaml
from google.protobuf import json_format
from google.protobuf.message import DecodeError
from google.protobuf.struct_pb2 import Struct as StructProto

from .types import ConfigurationError, Error, NamedEnum

if TYPE_CHECKING:
    from .accessors import Accessors

#: Names of accessor specifications in documents.
SPEC_NAMES: tuple[str, ...] = ('key', 'type', 'access')

class Format(NamedEnum):
    """Serialization format.
    """
    JSON = 'json'
    YAML = 'yaml'
    MSGPACK = 'msgpack'
    BINARY = 'binary'
    PROTOBUF = 'protobuf'

def _is_plain(value: Any) -> bool:
    return value is None or isinstance(value, str | int | float | bool)

def _thaw(key: Any) -> Any:
    return [_thaw(x) for x in key] if isinstance(key, tuple) else key

def _freeze(key: Any) -> Any:
    return tuple(_freeze(x) for x in key) if isinstance(key, list) else key

def to_document(accessors: Accessors, items: Mapping[Any, Any], *, plain: bool=True) -> dict[str, Any]:
    """Returns document for accessor specifications and items.

    Arguments:
        accessors: Store accessors.
        items:     Stored items.
        plain:     When True, accessor specifications must be plain values (`None`,
                   `str`, `int`, `float` or `bool`) and tuple keys are stored as lists.

    Raises:
        Error: When `plain` is True and any accessor specification is not plain value.
    """
    specs = {'key': accessors.key_spec, 'type': accessors.type_spec,
             'access': accessors.access_spec}
    if plain:
        for name, spec in specs.items():
            if not _is_plain(spec):
                raise Error(f"Cannot serialize {name} specification {spec!r}", spec=spec)
        return dict(specs, items=[[_thaw(key), item] for key, item in items.items()])
    return dict(specs, items=list(items.items()))

def from_document(document: Any) -> tuple[dict[str, Any], dict[Any, Any]]:
    """Returns accessor specifications and items stored in document.

    Raises:
        ValueError: When document is not valid.
    """
    if not isinstance(document, Mapping) or not isinstance(document.get('items'), list):
        raise ValueError("Not a store document")
    specs = {name: document.get(name) for name in SPEC_NAMES}
    items = {}
    for pair in document['items']:
        if not isinstance(pair, list | tuple) or len(pair) != 2:
            raise ValueError(f"Invalid item entry {pair!r}")
        items[_freeze(pair[0])] = pair[1]
    return specs, items

class Codec(ABC):
    """Base class for store codecs.
    """
    #: Serialization format.
    format: ClassVar[Format]
    #: True if codec supports non-plain documents.
    binary: ClassVar[bool] = False
    #: True if serialized form is `str`, False for `bytes`.
    text: ClassVar[bool] = False
    #: Exceptions that signal malformed serialized data.
    errors: ClassVar[tuple[type[Exception], ...]] = (ValueError, TypeError)
    @abstractmethod
    def dumps(self, document: dict[str, Any]) -> bytes | str:
        """Returns serialized document.
        """
    @abstractmethod
    def loads(self, data: bytes | str) -> Any:
        """Returns document deserialized from `data`.
        """
    def encode(self, accessors: Accessors, items: Mapping[Any, Any]) -> bytes | str:
        """Returns serialized accessor specifications and items.

        Raises:
            Error: When accessor specification cannot be serialized in this format.
        """
        return self.dumps(to_document(accessors, items, plain=not self.binary))
    def decode(self, data: bytes | str) -> tuple[dict[str, Any], dict[Any, Any]]:
        """Returns accessor specifications and items deserialized from `data`.

        Raises:
            Exception: Any exception listed in `errors` when `data` are not valid.
        """
        return from_document(self.loads(data))

class JSONCodec(Codec):
    """JSON codec.
    """
    format = Format.JSON
    text = True
    def dumps(self, document: dict[str, Any]) -> str:
        return json.dumps(document)
    def loads(self, data: bytes | str) -> Any:
        return json.loads(data)

class YAMLCodec(Codec):
    """YAML codec. Uses PyYAML safe dumper and loader.
    """
    format = Format.YAML
    text = True
    errors = (yaml.YAMLError, ValueError, TypeError)
    def dumps(self, document: dict[str, Any]) -> str:
        return yaml.safe_dump(document, sort_keys=False)
    def loads(self, data: bytes | str) -> Any:
        return yaml.safe_load(data)

class MsgPackCodec(Codec):
    """MessagePack codec.
    """
    format = Format.MSGPACK
    errors = (msgpack.exceptions.UnpackException, ValueError, TypeError)
    def dumps(self, document: dict[str, Any]) -> bytes:
        return msgpack.packb(document, use_bin_type=True)
    def loads(self, data: bytes | str) -> Any:
        return msgpack.unpackb(data, raw=False, strict_map_key=False)

class BinaryCodec(Codec):
    """Binary codec based on `pickle`.

    Important:
        Unpickling can execute arbitrary code. Load only data from trusted sources.
    """
    format = Format.BINARY
    binary = True
    errors = (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError,
              KeyError, ValueError, TypeError)
    def dumps(self, document: dict[str, Any]) -> bytes:
        return pickle.dumps(document)
    def loads(self, data: bytes | str) -> Any:
        return pickle.loads(data) # noqa: S301

def struct2dict(struct: StructProto) -> dict[str, Any]:
    """Unpacks `google.protobuf.Struct` message into a dictionary.

    Integral numbers are returned as `int`.
    """
    return _restore_numbers(json_format.MessageToDict(struct))

def dict2struct(value: dict[str, Any]) -> StructProto:
    """Packs a dictionary into `google.protobuf.Struct` message.
    """
    struct = StructProto()
    struct.update(value)
    return struct

def _restore_numbers(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, list):
        return [_restore_numbers(x) for x in value]
    if isinstance(value, dict):
        return {k: _restore_numbers(v) for k, v in value.items()}
    return value

#: Largest magnitude of integer that `google.protobuf.Value` carries exactly.
EXACT_INT_LIMIT: int = 2 ** 53

def _pack_key(key: Any) -> Any:
    if isinstance(key, list):
        return [_pack_key(x) for x in key]
    if isinstance(key, int) and not isinstance(key, bool) and abs(key) > EXACT_INT_LIMIT:
        return {'int': str(key)}
    return key

def _unpack_key(key: Any) -> Any:
    if isinstance(key, list):
        return [_unpack_key(x) for x in key]
    if isinstance(key, dict):
        if key.keys() != {'int'} or not isinstance(key['int'], str):
            raise ValueError(f"Invalid key {key!r}")
        return int(key['int'])
    return key

def _check_numbers(value: Any) -> None:
    if isinstance(value, int) and not isinstance(value, bool) and abs(value) > EXACT_INT_LIMIT:
        raise Error(f"Integer {value} cannot be stored exactly in protobuf format", value=value)
    if isinstance(value, list | tuple):
        for x in value:
            _check_numbers(x)
    elif isinstance(value, Mapping):
        for x in value.values():
            _check_numbers(x)

class ProtobufCodec(Codec):
    """Codec based on `google.protobuf.Struct` message.

    Numbers travel as doubles. Integer keys outside `EXACT_INT_LIMIT` (typical for
    hash-based keys) are stored as `{"int": "<digits>"}` and restored exactly. Other
    integers outside that limit cannot be stored and raise `.Error`.
    """
    format = Format.PROTOBUF
    errors = (DecodeError, ValueError, TypeError)
    def dumps(self, document: dict[str, Any]) -> bytes:
        for _, item in document['items']:
            _check_numbers(item)
        document = dict(document, items=[[_pack_key(key), item] for key, item in document['items']])
        return dict2struct(document).SerializeToString()
    def loads(self, data: bytes | str) -> Any:
        struct = StructProto()
        struct.ParseFromString(data)
        document = struct2dict(struct)
        if isinstance(document.get('items'), list):
            document['items'] = [[_unpack_key(pair[0]), pair[1]]
                                 if isinstance(pair, list) and len(pair) == 2 else pair
                                 for pair in document['items']]
        return document

_codecs: dict[Format, Codec] = {}

def register_codec(codec: Codec) -> None:
    """Registers codec for its format. Replaces codec already registered for the format.
    """
    _codecs[codec.format] = codec

def get_codec(format: Format | str) -> Codec: # noqa: A002
    """Returns codec registered for format.

    Arguments:
        format: Format or its name.

    Raises:
        ConfigurationError: When format is unknown or there is no codec for it.
    """
    fmt = Format.get(format)
    if (codec := _codecs.get(fmt)) is None:
        raise ConfigurationError(f"No codec registered for format '{fmt.value}'", format=fmt)
    return codec

for _codec in (JSONCodec(), YAMLCodec(), MsgPackCodec(), BinaryCodec(), ProtobufCodec()):
    register_codec(_codec)
del _codec
