# SPDX-FileCopyrightText: 2024-present The MemStore Project Contributors
#
# SPDX-License-Identifier: MIT
#
# PROGRAM/MODULE: memstore
# FILE:           memstore/filelock.py
# DESCRIPTION:    Advisory file locking
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

"""MemStore - Advisory file locking

Exclusive advisory lock held on a companion `<file>.lock` file for the duration of
a load-modify-save cycle. Uses `fcntl.flock` on POSIX systems and `msvcrt.locking`
on Windows. Only processes that use the same lock cooperate.
"""

from __future__ import annotations

import platform
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from .logging import get_logger

if platform.system() == 'Windows': # pragma: no cover
    import msvcrt

    def _lock(file: BinaryIO) -> None:
        file.seek(0)
        msvcrt.locking(file.fileno(), msvcrt.LK_LOCK, 1)

    def _unlock(file: BinaryIO) -> None:
        file.seek(0)
        msvcrt.locking(file.fileno(), msvcrt.LK_UNLCK, 1)
else:
    import fcntl

    def _lock(file: BinaryIO) -> None:
        fcntl.flock(file.fileno(), fcntl.LOCK_EX)

    def _unlock(file: BinaryIO) -> None:
        fcntl.flock(file.fileno(), fcntl.LOCK_UN)

def lock_path(path: Path | str) -> Path:
    """Returns path to lock file used for `path`.
    """
    path = Path(path)
    return path.with_name(path.name + '.lock')

@contextmanager
def locked(path: Path | str) -> Iterator[Path]:
    """Context manager that holds exclusive advisory lock for `path`.

    Blocks until the lock is acquired. The lock is released on every exit from the
    context, including exceptions.

    Arguments:
        path: Path to locked file. The file itself does not need to exist.

    Yields:
        `path` as `pathlib.Path`.

    Example::

        with locked('data.json') as path:
            ...
    """
    path = Path(path)
    log = get_logger('memstore.filelock', 'io')
    with open(lock_path(path), 'a+b') as lock_file:
        _lock(lock_file)
        log.debug("Locked '%s'", path)
        try:
            yield path
        finally:
            _unlock(lock_file)
            log.debug("Unlocked '%s'", path)
