# SPDX-License-Identifier: MIT
"""Outcome codes shared by every storage operation."""

from __future__ import annotations

import enum


class StoreResult(enum.Enum):
    """Result of a storage operation.

    ``TRANSIENT_FAILURE`` is the only code eligible for automatic retry;
    every other code is terminal for the call that produced it.
    """

    SUCCESS = "Success"
    FILE_EXISTS = "FileExists"
    FILE_DOES_NOT_EXIST = "FileDoesNotExist"
    END_OF_FILE = "EndOfFile"
    TRANSIENT_FAILURE = "TransientFailure"


UNDEFINED_LABEL = "<Undefined>"


def store_result_to_string(result: object) -> str:
    """Human-readable label for *result*, or ``"<Undefined>"`` for anything else."""
    if isinstance(result, StoreResult):
        return result.value
    return UNDEFINED_LABEL
