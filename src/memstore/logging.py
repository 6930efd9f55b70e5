# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/logging.py
# DESCRIPTION:    Context-based logging
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

"""MemStore - Context-based logging

Logging built on top of standard `logging` module. Every store logs through a
`ContextLoggerAdapter` that adds context information to `logging.LogRecord`:

* `domain` - logical area the agent belongs to (default `None`),
* `topic` - logging stream, `memstore` uses `'store'` and `'io'`,
* `agent` - name of the object that logs (by default `module.ClassName`),
* `context` - value of `agent.log_context` (stores provide their size).

The name of underlying `logging.Logger` is composed from `LoggingManager.logger_fmt`,
by default `['memstore', DOMAIN, TOPIC]`, so store messages go to `memstore.store`
and `memstore.io` loggers.

Message wrappers `BraceMessage` and `DollarMessage` defer formatting until the record
is actually emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from string import Template
from typing import Any


class FormatElement(Enum):
    """Placeholders used in `LoggingManager.logger_fmt` list."""
    DOMAIN = 1
    TOPIC = 2

#: Placeholder for domain name in `LoggingManager.logger_fmt`.
DOMAIN: FormatElement = FormatElement.DOMAIN
#: Placeholder for topic name in `LoggingManager.logger_fmt`.
TOPIC: FormatElement = FormatElement.TOPIC

class BraceMessage:
    """Lazy logging message wrapper using `str.format` style formatting.

    Example::

        logger.debug(BraceMessage("Deleted {0} item(s) of type {type}", 3, type='Foo'))
    """
    def __init__(self, fmt: str, /, *args, **kwargs):
        self.fmt: str = fmt
        self.args: tuple[Any, ...] = args
        self.kwargs: dict[str, Any] = kwargs
    def __str__(self) -> str:
        return self.fmt.format(*self.args, **self.kwargs)

class DollarMessage:
    """Lazy logging message wrapper using `string.Template` style formatting.

    Example::

        logger.info(DollarMessage("Loaded $count item(s) from $path", count=10, path='x.bin'))
    """
    def __init__(self, fmt: str, /, **kwargs):
        self.fmt: str = fmt
        self.kwargs: dict[str, Any] = kwargs
    def __str__(self) -> str:
        return Template(self.fmt).substitute(**self.kwargs)

class ContextFilter(logging.Filter):
    """Logging filter that adds missing context fields (`domain`, `topic`, `agent`,
    `context`) with `None` value, so formatters that use them work also for records
    from loggers not wrapped by `ContextLoggerAdapter`.
    """
    def filter(self, record) -> bool:
        for attr in ('domain', 'topic', 'agent', 'context'):
            if not hasattr(record, attr):
                setattr(record, attr, None)
        return True

class ContextLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds context information to log records.

    Arguments:
        logger:     Adapted logger.
        domain:     Domain name (or None).
        topic:      Topic name (or None).
        agent:      Agent object or name.
        agent_name: Agent name.
    """
    def __init__(self, logger: logging.Logger, domain: str | None, topic: str | None,
                 agent: Any, agent_name: str):
        self.agent = agent
        super().__init__(logger, {'domain': domain, 'topic': topic, 'agent': agent_name})
    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[Any, dict[str, Any]]:
        """Adds context to `extra`. Values from `kwargs['extra']` take precedence.

        The `context` value is read from `agent.log_context` on every call.
        """
        extra = dict(self.extra, context=getattr(self.agent, 'log_context', None))
        kwargs['extra'] = dict(extra, **kwargs['extra']) if 'extra' in kwargs else extra
        return msg, kwargs

class LoggingManager:
    """Logging manager.

    Maps agents to domains, renames topics and constructs names of underlying loggers.
    """
    def __init__(self):
        self._agent_domain_map: dict[str, str] = {}
        self._topic_map: dict[str, str] = {}
        self.__logger_fmt: list[str | FormatElement] = ['memstore', DOMAIN, TOPIC]
        self.__default_domain: str | None = None
        self._logger_factory: Callable[[str], logging.Logger] = logging.getLogger
    def reset(self) -> None:
        """Resets manager to defaults: no mappings, default `logger_fmt` and no
        `default_domain`.
        """
        self._agent_domain_map.clear()
        self._topic_map.clear()
        self.__logger_fmt = ['memstore', DOMAIN, TOPIC]
        self.__default_domain = None
    def get_logger_factory(self) -> Callable[[str], logging.Logger]:
        """Returns callable used to create loggers.
        """
        return self._logger_factory
    def set_logger_factory(self, factory: Callable[[str], logging.Logger]) -> None:
        """Sets callable used to create loggers, called with logger name.
        """
        self._logger_factory = factory
    @property
    def logger_fmt(self) -> list[str | FormatElement]:
        """Logger name format.

        List of strings and at most one `DOMAIN` and one `TOPIC` placeholder. Logger name
        is created by joining elements with dots, placeholders are replaced with domain
        and topic names (or left out when not defined). Empty strings are removed.
        """
        return self.__logger_fmt
    @logger_fmt.setter
    def logger_fmt(self, value: list[str | FormatElement]) -> None:
        result = []
        for item in value:
            match item:
                case str():
                    if item:
                        result.append(item)
                case FormatElement():
                    if item in result:
                        raise ValueError(f"Only one occurence of {item.name} allowed")
                    result.append(item)
                case _:
                    raise ValueError(f"Unsupported item type {type(item)}")
        self.__logger_fmt = result
    @property
    def default_domain(self) -> str | None:
        """Domain used for agents without domain mapping.
        """
        return self.__default_domain
    @default_domain.setter
    def default_domain(self, value: str | None) -> None:
        self.__default_domain = None if value is None else str(value)
    def _get_logger_name(self, domain: str | None, topic: str | None) -> str:
        result = []
        for item in self.__logger_fmt:
            if item is DOMAIN:
                if domain:
                    result.append(domain)
            elif item is TOPIC:
                if topic:
                    result.append(topic)
            else:
                result.append(item)
        return '.'.join(result)
    def set_topic_mapping(self, topic: str, new_topic: str | None) -> None:
        """Sets (or removes when `new_topic` is empty) mapping of topic name to another name.
        """
        if new_topic:
            self._topic_map[topic] = str(new_topic)
        else:
            self._topic_map.pop(topic, None)
    def get_topic_mapping(self, topic: str) -> str | None:
        """Returns current name mapping for topic.
        """
        return self._topic_map.get(topic)
    def set_domain_mapping(self, domain: str | None, agents: Iterable[str] | str) -> None:
        """Assigns agents to domain. `None` domain removes the assignment.
        """
        for agent in [agents] if isinstance(agents, str) else agents:
            if domain is None:
                self._agent_domain_map.pop(agent, None)
            else:
                self._agent_domain_map[agent] = domain
    def get_agent_domain(self, agent: str) -> str | None:
        """Returns domain assigned to agent.
        """
        return self._agent_domain_map.get(agent)
    def get_agent_name(self, agent: Any) -> str:
        """Returns name for agent.

        Strings are used as they are, objects use `_agent_name_` attribute if defined,
        otherwise `module.ClassQualname`.
        """
        if isinstance(agent, str):
            return agent
        if name := getattr(agent, '_agent_name_', None):
            return str(name)
        return f'{agent.__class__.__module__}.{agent.__class__.__qualname__}'
    def get_logger(self, agent: Any, topic: str | None=None) -> ContextLoggerAdapter:
        """Returns `ContextLoggerAdapter` for agent and topic.

        Arguments:
            agent: Agent object or name.
            topic: Topic name.
        """
        agent_name = self.get_agent_name(agent)
        domain = self._agent_domain_map.get(agent_name, self.__default_domain)
        topic = self._topic_map.get(topic, topic)
        logger = self._logger_factory(self._get_logger_name(domain, topic))
        return ContextLoggerAdapter(logger, domain, topic, agent, agent_name)

#: Context logging manager.
logging_manager: LoggingManager = LoggingManager()
#: Shortcut to `logging_manager.get_logger`.
get_logger = logging_manager.get_logger
#: Shortcut to `logging_manager.get_agent_name`.
get_agent_name = logging_manager.get_agent_name
#: Shortcut to `logging_manager.set_domain_mapping`.
set_domain_mapping = logging_manager.set_domain_mapping
