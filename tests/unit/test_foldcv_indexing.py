"""Unit tests for positional subsetting of containers.

Covers the container kinds the resolver supports (DataFrame, Series,
ndarray, and non-string sequences) and the failure for everything else.
"""

from collections.abc import Sequence

import numpy as np
import pandas as pd
import pytest

from src.foldcv.errors import UnsupportedContainerKind
from src.foldcv.indexing import container_length, resolve


class ReadingList(Sequence):
    """Minimal user-defined sequence (not a list, tuple or range)."""

    def __init__(self, items):
        self._items = list(items)

    def __getitem__(self, position):
        return self._items[position]

    def __len__(self):
        return len(self._items)


@pytest.fixture
def frame():
    """Small table with non-default row labels."""
    return pd.DataFrame(
        {"x": [0.0, 1.0, 2.0, 3.0], "y": ["a", "b", "c", "d"]},
        index=[10, 11, 12, 13],
    )


def test_resolve_dataframe_keeps_columns_and_labels(frame):
    """Row subset keeps every column and the original row labels."""
    subset = resolve(frame, [2, 0])

    assert list(subset.columns) == ["x", "y"]
    assert list(subset.index) == [12, 10]
    assert subset["y"].tolist() == ["c", "a"]


def test_resolve_dataframe_does_not_mutate_input(frame):
    """Writing to the subset leaves the source table untouched."""
    before = frame.copy()
    subset = resolve(frame, [1, 3])
    subset.loc[11, "x"] = 99.0

    pd.testing.assert_frame_equal(frame, before)


def test_resolve_series_preserves_order():
    """Series subsets follow index order and keep datetime labels."""
    series = pd.Series([5, 6, 7, 8], index=pd.date_range("2020-01-01", periods=4, freq="D"))

    subset = resolve(series, np.array([3, 1]))

    assert subset.tolist() == [8, 6]
    assert subset.index[0] == pd.Timestamp("2020-01-04")


def test_resolve_matrix_selects_rows():
    """2-D arrays are subset along the first axis."""
    matrix = np.arange(12).reshape(4, 3)

    subset = resolve(matrix, [1, 3])

    assert subset.shape == (2, 3)
    np.testing.assert_array_equal(subset[:, 0], [3, 9])


def test_resolve_repeats_duplicate_positions():
    """Bootstrap training sets contain duplicates; they must be repeated."""
    assert resolve([10, 20, 30], [0, 0, 2]) == [10, 10, 30]


def test_resolve_sequence_types():
    """Tuples stay tuples; ranges and lists give lists."""
    assert resolve((1, 2, 3), [2]) == (3,)
    assert resolve(range(5, 10), [0, 4]) == [5, 9]
    assert resolve(["a", "b"], []) == []


def test_resolve_generic_sequence():
    """Any non-string Sequence is indexed by position and returned as a list."""
    books = ReadingList(["dune", "emma", "ulysses"])

    assert container_length(books) == 3
    assert resolve(books, np.array([2, 0])) == ["ulysses", "dune"]


@pytest.mark.parametrize(
    "container",
    [{"a": 1}, "abc", b"abc", 42, 3.5, {1, 2}, np.array(3.0), None],
)
def test_resolve_unsupported_container(container):
    """Mappings, strings, scalars and sets have no positional shape."""
    with pytest.raises(UnsupportedContainerKind, match="Cannot index container"):
        resolve(container, [0])


def test_unsupported_container_is_type_error():
    """Callers catching TypeError also catch the resolver failure."""
    with pytest.raises(TypeError):
        resolve(object(), [0])


def test_resolve_rejects_2d_indices():
    """Indices must be a flat list of positions."""
    with pytest.raises(ValueError, match="one-dimensional"):
        resolve([1, 2, 3], [[0, 1]])


def test_container_length(frame):
    """Length counts rows for tables and elements for sequences."""
    assert container_length(frame) == 4
    assert container_length(np.zeros((7, 2))) == 7
    assert container_length(range(3)) == 3

    with pytest.raises(UnsupportedContainerKind):
        container_length({"a": 1})
