# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/config.py
# DESCRIPTION:    Store configuration
# CREATED:        7.2.2024
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

"""MemStore - Store configuration

Stores could be configured from files in `configparser` format. Configuration is
defined by `Config` subclasses that own `Option` instances as attributes with the
same name as the option::

    [store]
    key = id
    access = get

    [file_store]
    path = ${env:HOME}/people.json
    format = json
    lock = yes

Values are read with `ConfigParser` using extended interpolation (see `make_parser`),
so values could refer to other options and environment variables (`${env:NAME}`).

Example::

    cfg = FileStoreConfig()
    cfg.load_config(make_parser('people.cfg'))
    cfg.validate()
    with MemStore.with_config(cfg) as store:
        store.add({'id': 1, 'name': 'John'})
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Sequence
from configparser import DEFAULTSECT, ConfigParser, ExtendedInterpolation
from enum import Enum
from pathlib import Path
from typing import Generic, TypeVar

from .codecs import Format
from .types import ConfigurationError

T = TypeVar('T')
E = TypeVar('E', bound=Enum)

#: Strings accepted as boolean True.
TRUE_STR: list[str] = ['yes', 'true', 'on', 'y', '1']
#: Strings accepted as boolean False.
FALSE_STR: list[str] = ['no', 'false', 'off', 'n', '0']

class EnvExtendedInterpolation(ExtendedInterpolation):
    """Extended interpolation that resolves `${env:NAME}` to the value of environment
    variable `NAME`.
    """
    def before_get(self, parser, section, option, value, defaults):
        if '${env:' in value:
            for name, env_value in os.environ.items():
                value = value.replace(f'${{env:{name}}}', env_value.replace('$', '$$'))
        return super().before_get(parser, section, option, value, defaults)

def make_parser(*sources: str | Path) -> ConfigParser:
    """Returns `ConfigParser` with `EnvExtendedInterpolation` that has read given
    configuration files.

    Arguments:
        sources: Paths to configuration files. Missing files are ignored.
    """
    parser = ConfigParser(interpolation=EnvExtendedInterpolation())
    parser.read(sources)
    return parser

class Option(Generic[T], ABC):
    """Base class for configuration options.

    Arguments:
        name:        Option name.
        datatype:    Option datatype.
        description: Option description.
        required:    True if option must have a value.
        default:     Default option value.
    """
    def __init__(self, name: str, datatype: type[T], description: str, *, required: bool=False,
                 default: T | None=None):
        assert name and isinstance(name, str), "name required" # noqa: S101
        assert default is None or isinstance(default, datatype), "default has wrong data type" # noqa: S101
        #: Option name.
        self.name: str = name
        #: Option datatype.
        self.datatype: type[T] = datatype
        #: Option description.
        self.description: str = description
        #: True if option must have a value.
        self.required: bool = required
        #: Default option value.
        self.default: T | None = default
        self._value: T | None = default
    def _check_value(self, value: T | None) -> None:
        if value is None and self.required:
            raise ValueError(f"Value is required for option '{self.name}'")
        if value is not None and not isinstance(value, self.datatype):
            raise TypeError(f"Option '{self.name}' value must be a "
                            f"'{self.datatype.__name__}', not '{type(value).__name__}'")
    def load_config(self, config: ConfigParser, section: str) -> None:
        """Updates option value from `ConfigParser` section.

        Raises:
            ValueError: When option value cannot be loaded.
        """
        if config.has_option(section, self.name):
            self.set_as_str(config[section][self.name])
    def validate(self) -> None:
        """Validates option state.

        Raises:
            ConfigurationError: When required option does not have a value.
        """
        if self.required and self._value is None:
            raise ConfigurationError(f"Missing value for required option '{self.name}'",
                                     option=self.name)
    def get_config(self) -> str:
        """Returns option line for configuration file. Options without value are
        commented out.
        """
        if self._value is None:
            return f';{self.name} = <UNDEFINED>\n'
        return f'{self.name} = {self.get_formatted()}\n'
    def has_value(self) -> bool:
        """Returns True if option value is not None.
        """
        return self._value is not None
    def clear(self, *, to_default: bool=True) -> None:
        """Clears the option value.

        Arguments:
            to_default: If True, sets the option value to default value, else to None.
        """
        self._value = self.default if to_default else None
    def get_formatted(self) -> str:
        """Returns value formatted for use in config file.
        """
        return str(self._value)
    @abstractmethod
    def set_as_str(self, value: str) -> None:
        """Sets new option value from string.

        Raises:
            ValueError: When the argument is not a valid option value.
        """
    def get_value(self) -> T | None:
        """Returns current option value.
        """
        return self._value
    def set_value(self, value: T | None) -> None:
        """Sets new option value.

        Raises:
            TypeError: When the new value is of the wrong type.
            ValueError: When required option is set to None.
        """
        self._check_value(value)
        self._value = value
    value: T | None = property(get_value, set_value, doc="Current option value")

class StrOption(Option[str]):
    """Configuration option with string value.
    """
    def __init__(self, name: str, description: str, *, required: bool=False,
                 default: str | None=None):
        super().__init__(name, str, description, required=required, default=default)
    def set_as_str(self, value: str) -> None:
        self._value = value

class BoolOption(Option[bool]):
    """Configuration option with boolean value. Accepts `TRUE_STR` and `FALSE_STR` values
    (case insensitive).
    """
    def __init__(self, name: str, description: str, *, required: bool=False,
                 default: bool | None=None):
        super().__init__(name, bool, description, required=required, default=default)
    def get_formatted(self) -> str:
        return TRUE_STR[0] if self._value else FALSE_STR[0]
    def set_as_str(self, value: str) -> None:
        if (v := value.lower()) in TRUE_STR:
            self._value = True
        elif v in FALSE_STR:
            self._value = False
        else:
            raise ValueError(f"Value '{value}' is not a valid bool string constant")

class EnumOption(Option[E], Generic[E]):
    """Configuration option with enum value. Values in configuration files are member
    names (case insensitive).

    Arguments:
        name:        Option name.
        enum_class:  Enum type.
        description: Option description.
        required:    True if option must have a value.
        default:     Default option value.
        allowed:     Allowed enum members. All members when not defined.
    """
    def __init__(self, name: str, enum_class: type[E], description: str, *, required: bool=False,
                 default: E | None=None, allowed: Sequence[E] | None=None):
        #: Allowed enum members.
        self.allowed: Sequence[E] = list(enum_class) if allowed is None else allowed
        self._members: dict[str, E] = {i.name.lower(): i for i in self.allowed}
        super().__init__(name, enum_class, description, required=required, default=default)
    def get_formatted(self) -> str:
        return self._value.name.lower()
    def set_as_str(self, value: str) -> None:
        if (member := self._members.get(value.lower())) is None:
            raise ValueError(f"Illegal value '{value}' for enum type '{self.datatype.__name__}'")
        self._value = member
    def set_value(self, value: E | None) -> None:
        self._check_value(value)
        if value is not None and value not in self.allowed:
            raise ValueError(f"Value '{value!r}' not allowed")
        self._value = value
    value: E | None = property(Option.get_value, set_value, doc="Current option value")

class PathOption(Option[Path]):
    """Configuration option with `pathlib.Path` value.
    """
    def __init__(self, name: str, description: str, *, required: bool=False,
                 default: Path | None=None):
        super().__init__(name, Path, description, required=required, default=default)
    def set_as_str(self, value: str) -> None:
        self._value = Path(value)
    def set_value(self, value: Path | str | None) -> None:
        self._check_value(Path(value) if isinstance(value, str) else value)
        self._value = Path(value) if isinstance(value, str) else value
    value: Path | None = property(Option.get_value, set_value, doc="Current option value")

class Config:
    """Collection of configuration options and nested configurations.

    Arguments:
        name:        Name of configuration file section.
        optional:    True if the section does not need to be present.
        description: Configuration description. Class docstring when not provided.

    Important:
        Descendants must define options and nested configs as instance attributes,
        options under the same name as `Option.name`.
    """
    def __init__(self, name: str, *, optional: bool=False, description: str | None=None):
        self._name: str = name
        self._optional: bool = optional
        self._description: str | None = description if description is not None else self.__doc__
    def __setattr__(self, name, value) -> None:
        for attr in vars(self).values():
            if isinstance(attr, Option) and attr.name == name:
                raise ValueError("Cannot assign values to option itself, use 'option.value' instead")
        super().__setattr__(name, value)
    def validate(self) -> None:
        """Validates all options and nested configs.

        Raises:
            ConfigurationError: When any required option does not have a value, or
                option is not defined as attribute with the same name.
        """
        for option in self.options:
            option.validate()
            if getattr(self, option.name, None) is not option:
                raise ConfigurationError(f"Option '{option.name}' is not defined as attribute "
                                         "with the same name", option=option.name)
        for config in self.configs:
            config.validate()
    def clear(self, *, to_default: bool=True) -> None:
        """Clears all options, including options in nested configs.

        Arguments:
            to_default: If True, sets the option values to defaults, else to None.
        """
        for option in self.options:
            option.clear(to_default=to_default)
        for config in self.configs:
            config.clear(to_default=to_default)
    def get_description(self) -> str:
        """Returns configuration description.
        """
        return '' if self._description is None else self._description
    def get_config(self) -> str:
        """Returns configuration in `configparser` format, including nested configs.
        """
        lines = [f'[{self.name}]\n', ';\n']
        lines.extend(f'; {line}\n' for line in self.get_description().strip().splitlines())
        for option in self.options:
            lines.append('\n')
            lines.extend(f'; {line}\n' for line in option.description.strip().splitlines())
            lines.append(option.get_config())
        for config in self.configs:
            lines.append('\n')
            lines.append(config.get_config())
        return ''.join(lines)
    def load_config(self, config: ConfigParser, section: str | None=None) -> None:
        """Updates configuration from `ConfigParser`.

        Arguments:
            config:  `ConfigParser` instance.
            section: Section name. `name` when not defined. Nested configs always use
                     their own names.

        Raises:
            ConfigurationError: When mandatory section is missing or any value is invalid.
        """
        if section is None:
            section = self.name
        if not config.has_section(section):
            if self._optional:
                return
            if section != DEFAULTSECT:
                raise ConfigurationError(f"Configuration error: section '{section}' not found!",
                                         section=section)
        try:
            for option in self.options:
                option.load_config(config, section)
        except ValueError as exc:
            raise ConfigurationError(f"Configuration error: {exc}", section=section) from exc
        for subcfg in self.configs:
            subcfg.load_config(config)
    @property
    def name(self) -> str:
        """Name of configuration file section.
        """
        return self._name
    @property
    def optional(self) -> bool:
        """True if configuration section does not need to be present.
        """
        return self._optional
    @property
    def options(self) -> list[Option]:
        """Options defined as attributes of this config.
        """
        return [v for v in vars(self).values() if isinstance(v, Option)]
    @property
    def configs(self) -> list[Config]:
        """Nested configs defined as attributes of this config.
        """
        return [v for v in vars(self).values() if isinstance(v, Config)]

class StoreConfig(Config):
    """Store accessor configuration.
    """
    def __init__(self, name: str='store', *, optional: bool=True):
        super().__init__(name, optional=optional)
        #: Key specification
        self.key: StrOption = StrOption('key', "Name of item attribute used as item key.\n"
                                        "Hash of item is used when not defined.")
        #: Type specification
        self.type: StrOption = StrOption('type', "Name of item attribute used as item type.\n"
                                         "Class of item is used when not defined.")
        #: Access specification
        self.access: StrOption = StrOption('access', "Name of item method called with "
                                           "attribute name to get attribute value,\n"
                                           "for example 'get' for dictionaries.\n"
                                           "Python attributes are used when not defined.")

class FileStoreConfig(Config):
    """File-backed store configuration.
    """
    def __init__(self, name: str='file_store'):
        super().__init__(name)
        #: Store file
        self.path: PathOption = PathOption('path', "Path to store file.", required=True)
        #: File format
        self.format: EnumOption[Format] = EnumOption('format', Format, "Store file format.",
                                                     required=True, default=Format.BINARY)
        #: Locking
        self.lock: BoolOption = BoolOption('lock', "Hold advisory lock on the store file\n"
                                           "while the store is in use.", default=True)
        #: Store accessors
        self.store: StoreConfig = StoreConfig()
