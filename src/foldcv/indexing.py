"""Positional subsetting of vectors, tables, and time series.

The resolver is the only place that knows how each container kind is indexed,
so fold generators and analysis routines can stay shape-agnostic.
"""

from collections.abc import Sequence
from typing import Any

import numpy as np
import pandas as pd

from .errors import UnsupportedContainerKind


def _as_positions(indices: Sequence[int] | np.ndarray) -> np.ndarray:
    positions = np.asarray(indices, dtype=np.int64)
    if positions.ndim != 1:
        raise ValueError(f"Indices must be one-dimensional, got shape {positions.shape}")
    return positions


def _is_sequence(container: Any) -> bool:
    # Strings and bytes are values, not collections of units
    return isinstance(container, Sequence) and not isinstance(
        container, (str, bytes, bytearray)
    )


def container_length(container: Any) -> int:
    """Return the number of units (elements or rows) held by ``container``.

    Raises:
        UnsupportedContainerKind: If the container has no positional shape
    """
    if isinstance(container, (pd.DataFrame, pd.Series)):
        return len(container)
    if isinstance(container, np.ndarray):
        if container.ndim == 0:
            raise UnsupportedContainerKind(container)
        return container.shape[0]
    if _is_sequence(container):
        return len(container)
    raise UnsupportedContainerKind(container)


def resolve(container: Any, indices: Sequence[int] | np.ndarray) -> Any:
    """Extract the units of ``container`` at the given positions.

    Tables keep all of their columns and row labels; sequences keep their
    type where that is meaningful. Order follows ``indices`` (duplicates, as
    produced by bootstrap draws, are repeated).

    Args:
        container: DataFrame, Series, ndarray (ndim >= 1), or any non-string
            sequence (list, tuple, range, ...)
        indices: 0-based integer positions

    Returns:
        Subset of the same kind as ``container`` (other sequences such as
        ``range`` yield a list)

    Raises:
        UnsupportedContainerKind: If the container has no positional shape
        ValueError: If ``indices`` is not one-dimensional
    """
    positions = _as_positions(indices)

    if isinstance(container, (pd.DataFrame, pd.Series)):
        return container.iloc[positions]
    if isinstance(container, np.ndarray):
        if container.ndim == 0:
            raise UnsupportedContainerKind(container)
        return container[positions]
    if isinstance(container, tuple):
        return tuple(container[i] for i in positions.tolist())
    if _is_sequence(container):
        return [container[i] for i in positions.tolist()]

    raise UnsupportedContainerKind(container)
