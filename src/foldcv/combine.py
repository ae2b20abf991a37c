"""Merge per-fold result records into one combined result.

Records are inverted field by field, then each field's fragments are merged
with one of three strategies:

- ``ROW_STACK``: tabular fragments (DataFrames, 2-D arrays) stacked row-wise
- ``CONCATENATE``: scalars and flat 1-D sequences joined into one sequence
- ``LIST_COLLECT``: anything else kept as a list of per-fold values

The strategy is inferred from the first fold's value unless overridden.
"""

import logging
import numbers
from collections.abc import Callable, Mapping, Sequence
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd

from .errors import InconsistentFieldsError, InvalidResultRecordError, MergeShapeMismatchError

logger = logging.getLogger(__name__)


class MergeStrategy(str, Enum):
    ROW_STACK = "row_stack"
    CONCATENATE = "concatenate"
    LIST_COLLECT = "list_collect"


StrategyOverride = MergeStrategy | str | Callable[[list[Any]], Any]

_SCALAR_TYPES = (numbers.Number, np.generic, str, bytes)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _is_numeric(value: Any) -> bool:
    return np.asarray(value).dtype.kind in "biufc"


def _is_flat(value: Any) -> bool:
    """Scalar, Series, 1-D array, or list/tuple made only of scalars."""
    if _is_scalar(value) or isinstance(value, pd.Series):
        return True
    if isinstance(value, np.ndarray):
        return value.ndim <= 1
    if isinstance(value, (list, tuple)):
        return all(_is_scalar(item) for item in value)
    return False


def infer_strategy(value: Any) -> MergeStrategy:
    """Pick the merge strategy for a field from one fold's value."""
    if isinstance(value, pd.DataFrame):
        return MergeStrategy.ROW_STACK
    if isinstance(value, np.ndarray) and value.ndim == 2:
        return MergeStrategy.ROW_STACK
    if _is_flat(value):
        return MergeStrategy.CONCATENATE
    return MergeStrategy.LIST_COLLECT


# ============================================================================
# Merge functions
# ============================================================================


def _row_stack(
    field: str, values: list[Any], fold_indices: Sequence[int], fold_column: str | None
) -> Any:
    first = values[0]

    if isinstance(first, pd.DataFrame):
        expected = list(first.columns)
        if fold_column is not None and fold_column in expected:
            raise MergeShapeMismatchError(
                field,
                fold_indices[0],
                f"fold_column '{fold_column}' would overwrite a column of the same name",
            )
        frames = []
        for value, fold_index in zip(values, fold_indices):
            if not isinstance(value, pd.DataFrame):
                raise MergeShapeMismatchError(
                    field, fold_index, f"expected a DataFrame, got {type(value).__name__}"
                )
            if len(value.columns) != len(expected) or set(value.columns) != set(expected):
                raise MergeShapeMismatchError(
                    field,
                    fold_index,
                    f"columns {list(value.columns)} do not match first fold's {expected}",
                )
            frame = value[expected]
            if fold_column is not None:
                frame = frame.assign(**{fold_column: fold_index})
            frames.append(frame)
        return pd.concat(frames)

    if not isinstance(first, np.ndarray) or first.ndim != 2:
        raise MergeShapeMismatchError(
            field, fold_indices[0], f"cannot row-stack a {type(first).__name__}"
        )
    expected_width = first.shape[1]
    for value, fold_index in zip(values, fold_indices):
        if not isinstance(value, np.ndarray) or value.ndim != 2:
            raise MergeShapeMismatchError(
                field, fold_index, f"expected a 2-D array, got {type(value).__name__}"
            )
        if value.shape[1] != expected_width:
            raise MergeShapeMismatchError(
                field,
                fold_index,
                f"{value.shape[1]} columns do not match first fold's {expected_width}",
            )
    return np.vstack(values)


def _concatenate(field: str, values: list[Any], fold_indices: Sequence[int]) -> Any:
    # A field is either all numeric or all non-numeric
    numeric = None
    for value, fold_index in zip(values, fold_indices):
        if not _is_flat(value):
            raise MergeShapeMismatchError(
                field,
                fold_index,
                f"cannot concatenate a non-flat {type(value).__name__} with flat values",
            )
        if np.size(value) == 0:
            continue
        if numeric is None:
            numeric = _is_numeric(value)
        elif _is_numeric(value) != numeric:
            expected = "numeric" if numeric else "non-numeric"
            raise MergeShapeMismatchError(
                field,
                fold_index,
                f"{type(value).__name__} value {value!r} is incompatible with the "
                f"{expected} values of earlier folds",
            )

    if all(isinstance(value, pd.Series) for value in values):
        return pd.concat(values)
    parts = [np.atleast_1d(np.asarray(value)) for value in values]
    # Empty fragments carry no dtype of their own
    return np.concatenate([part for part in parts if part.size] or parts)


def _resolve_override(field: str, override: StrategyOverride) -> MergeStrategy | Callable:
    if isinstance(override, MergeStrategy) or callable(override):
        return override
    try:
        return MergeStrategy(override)
    except ValueError as err:
        raise ValueError(
            f"Unknown merge strategy {override!r} for field '{field}'. "
            f"Expected one of {[s.value for s in MergeStrategy]} or a callable"
        ) from err


# ============================================================================
# Entry point
# ============================================================================


def combine_results(
    records: Sequence[Mapping[str, Any]],
    strategies: Mapping[str, StrategyOverride] | None = None,
    *,
    fold_indices: Sequence[int] | None = None,
    fold_column: str | None = None,
) -> dict[str, Any]:
    """Invert per-fold records into one combined value per field.

    Args:
        records: One mapping per fold, in fold order
        strategies: Optional per-field overrides (MergeStrategy, its string
            value, or a callable receiving the list of per-fold values)
        fold_indices: Fold index of each record (defaults to 1..len)
        fold_column: If set, row-stacked DataFrames get a column of this name
            holding each row's fold index

    Returns:
        Dict with the same field names as the records

    Raises:
        ValueError: If ``records`` is empty or lengths disagree
        InvalidResultRecordError: If a record is not a mapping
        InconsistentFieldsError: If field names differ between records
        MergeShapeMismatchError: If a fragment is incompatible with the first
        KeyError: If an override names a field the records do not have
    """
    records = list(records)
    if not records:
        raise ValueError("Cannot combine an empty list of result records")

    if fold_indices is None:
        fold_indices = list(range(1, len(records) + 1))
    elif len(fold_indices) != len(records):
        raise ValueError(
            f"Got {len(fold_indices)} fold indices for {len(records)} result records"
        )

    for record, fold_index in zip(records, fold_indices):
        if not isinstance(record, Mapping):
            raise InvalidResultRecordError(fold_index, record)

    fields = list(records[0].keys())
    expected = set(fields)
    for record, fold_index in zip(records[1:], fold_indices[1:]):
        keys = set(record.keys())
        if keys != expected:
            raise InconsistentFieldsError(fold_index, expected - keys, keys - expected)

    strategies = dict(strategies or {})
    unknown = set(strategies) - expected
    if unknown:
        raise KeyError(f"Merge strategies given for unknown fields: {sorted(unknown)}")

    combined: dict[str, Any] = {}
    for field in fields:
        values = [record[field] for record in records]

        if field in strategies:
            strategy = _resolve_override(field, strategies[field])
        else:
            strategy = infer_strategy(values[0])
            logger.debug(f"Field '{field}': inferred {strategy.value} from first fold")

        if not isinstance(strategy, MergeStrategy):
            combined[field] = strategy(values)
        elif strategy is MergeStrategy.ROW_STACK:
            combined[field] = _row_stack(field, values, fold_indices, fold_column)
        elif strategy is MergeStrategy.CONCATENATE:
            combined[field] = _concatenate(field, values, fold_indices)
        else:
            combined[field] = values

    return combined
