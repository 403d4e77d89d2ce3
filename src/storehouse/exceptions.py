# SPDX-License-Identifier: MIT
"""Exception hierarchy for storehouse."""


class StorehouseError(Exception):
    """Base exception for storehouse errors."""

    pass


class StorageInvariantError(StorehouseError):
    """A backend returned a result the caller's contract rules out."""

    pass


class FatalStorageError(StorehouseError):
    """Unrecoverable storage failure.

    The default fatal action ends the process before this is ever raised.
    It surfaces only when an injected fatal action returns instead of
    exiting, or when that action raises it itself.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
