# SPDX-License-Identifier: MIT
"""Unit tests for the result taxonomy."""

import pytest

from storehouse.storage.result import StoreResult, store_result_to_string


@pytest.mark.unit
@pytest.mark.parametrize(
    ("result", "label"),
    [
        (StoreResult.SUCCESS, "Success"),
        (StoreResult.FILE_EXISTS, "FileExists"),
        (StoreResult.FILE_DOES_NOT_EXIST, "FileDoesNotExist"),
        (StoreResult.END_OF_FILE, "EndOfFile"),
        (StoreResult.TRANSIENT_FAILURE, "TransientFailure"),
    ],
)
def test_labels(result, label):
    assert store_result_to_string(result) == label


@pytest.mark.unit
def test_labels_are_distinct_and_non_empty():
    labels = [store_result_to_string(r) for r in StoreResult]
    assert all(labels)
    assert len(set(labels)) == len(StoreResult)


@pytest.mark.unit
@pytest.mark.parametrize("value", [None, 3, "Success", object()])
def test_unknown_value_is_undefined(value):
    assert store_result_to_string(value) == "<Undefined>"
