# SPDX-License-Identifier: MIT
"""Exponential backoff for transient storage failures.

Every backend reports retryable conditions as
:attr:`StoreResult.TRANSIENT_FAILURE`, so one retry loop serves them all.
Callers obtain handles and issue raw reads through the helpers here
instead of writing their own loops.
"""

from __future__ import annotations

import logging
import os
import random
import sys
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from ..exceptions import FatalStorageError
from .protocol import RandomReadFile, StorageBackend, WriteFile
from .result import StoreResult

logger = logging.getLogger("storehouse")

MAX_BACKOFF_DEBT = 64
"""Debt (in seconds) at which a further transient failure is fatal."""

T = TypeVar("T")


@dataclass
class Backoff:
    """Retry timing policy.

    Args:
        rng: Source of the jitter term.  Pass a seeded :class:`random.Random`
            for deterministic timing.
        sleep: Blocking sleep function, replaced in tests.
        max_debt: Debt ceiling; reaching it on a transient failure is fatal.
        on_fatal: Terminal action, called with the diagnostic once the
            ceiling is hit.  Defaults to :func:`fatal_exit`.
    """

    rng: random.Random = field(default_factory=random.Random)
    sleep: Callable[[float], None] = time.sleep
    max_debt: int = MAX_BACKOFF_DEBT
    on_fatal: Callable[[str], None] | None = None


_default_backoff = Backoff()


def fatal_exit(message: str) -> None:
    """Default terminal action: flush logging and end the process with status 1.

    On the main thread this raises :class:`SystemExit` so atexit handlers
    run.  Anywhere else ``SystemExit`` would only end the calling thread, so
    the process is torn down with :func:`os._exit`.
    """
    for handler in logging.getLogger().handlers + logger.handlers:
        handler.flush()
    sys.stderr.flush()
    if threading.current_thread() is threading.main_thread():
        sys.exit(1)
    os._exit(1)


def terminate(message: str, on_fatal: Callable[[str], None] | None = None) -> None:
    """Log *message* as critical and run the terminal action.

    Shared by the backoff ceiling and :func:`~storehouse.storage.util.exit_on_error`.

    Raises:
        FatalStorageError: If *on_fatal* returns instead of exiting.
    """
    logger.critical(message)
    (on_fatal or fatal_exit)(message)
    raise FatalStorageError(message)


def _result_of(outcome: StoreResult | tuple) -> StoreResult:
    return outcome[0] if isinstance(outcome, tuple) else outcome


def exponential_backoff(operation: Callable[[], T], name: str, backoff: Backoff | None = None) -> T:
    """Call *operation* until it returns something other than a transient failure.

    *operation* returns either a :class:`StoreResult` or a tuple whose first
    element is one.  The debt starts at 1 and doubles after every transient
    failure; each retry sleeps for the current debt plus a jitter in
    ``[0, 1)``.  A transient failure once the debt has reached the ceiling
    logs a fatal diagnostic and runs the policy's terminal action, which by
    default ends the process from any thread.

    Args:
        operation: Zero-argument callable performing one attempt.
        name: Resource name used in log messages.
        backoff: Timing policy; the module default when omitted.

    Returns:
        The first non-transient outcome of *operation*.
    """
    policy = backoff or _default_backoff
    sleep_debt = 1
    while True:
        outcome = operation()
        if _result_of(outcome) is not StoreResult.TRANSIENT_FAILURE:
            return outcome
        if sleep_debt >= policy.max_debt:
            terminate(f"Reached max backoff for {name}.", policy.on_fatal)
        sleep_time = sleep_debt + policy.rng.random()
        logger.warning("Transient failure for %s, sleeping for %.3fs.", name, sleep_time)
        policy.sleep(sleep_time)
        sleep_debt *= 2


def make_random_read_file(
    storage: StorageBackend, name: str, backoff: Backoff | None = None
) -> tuple[StoreResult, RandomReadFile | None]:
    """Open *name* for reading, retrying transient failures."""
    return exponential_backoff(lambda: storage.make_random_read_file(name), name, backoff)


def make_write_file(
    storage: StorageBackend, name: str, *, overwrite: bool = False, backoff: Backoff | None = None
) -> tuple[StoreResult, WriteFile | None]:
    """Create *name* for writing, retrying transient failures."""
    return exponential_backoff(lambda: storage.make_write_file(name, overwrite=overwrite), name, backoff)


def read_with_backoff(
    file: RandomReadFile, offset: int, size: int, backoff: Backoff | None = None
) -> tuple[StoreResult, bytes]:
    """Issue one raw read on *file*, retrying transient failures."""
    return exponential_backoff(lambda: file.read(offset, size), file.path(), backoff)
