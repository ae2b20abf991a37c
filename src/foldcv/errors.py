"""Exception types raised by fold generation, execution, and result combination.

Every error subclasses a built-in exception so callers that already catch
``ValueError``/``TypeError``/``RuntimeError`` keep working.

Errors raised in worker processes travel back to the caller by pickling, so
they are rebuilt from their message and attributes rather than by calling
``__init__`` again.
"""

from collections.abc import Iterable
from typing import Any


def _restore_error(cls: type, args: tuple, state: dict[str, Any]) -> "FoldCVError":
    err = cls.__new__(cls)
    Exception.__init__(err, *args)
    err.__dict__.update(state)
    return err


class FoldCVError(Exception):
    """Base class for all foldcv errors."""

    def __reduce__(self):
        return _restore_error, (type(self), self.args, self.__dict__)


class FoldConfigError(FoldCVError, ValueError):
    """Invalid partitioning configuration or fold sequence."""


class UnsupportedContainerKind(FoldCVError, TypeError):
    """Container exposes neither a sequence nor a tabular shape."""

    def __init__(self, container: object):
        self.kind = type(container).__name__
        super().__init__(
            f"Cannot index container of type '{self.kind}'. "
            "Expected a DataFrame, Series, ndarray or non-string sequence."
        )


class DegenerateFoldError(FoldCVError, ValueError):
    """A generated fold has an empty training or validation set."""

    def __init__(self, fold_index: int, reason: str):
        self.fold_index = fold_index
        super().__init__(f"Fold {fold_index}: {reason}")


class NoFoldBoundError(FoldCVError, RuntimeError):
    """A fold accessor was called outside of a bound fold scope."""

    def __init__(self, accessor: str):
        self.accessor = accessor
        super().__init__(
            f"{accessor}() called with no fold bound. "
            "Call it from a routine run by cross_validate() or inside bind_fold()."
        )


class InvalidResultRecordError(FoldCVError, TypeError):
    """A routine returned something other than a mapping of named fields."""

    def __init__(self, fold_index: int | None, value: object):
        self.fold_index = fold_index
        where = f"Fold {fold_index}" if fold_index is not None else "Result record"
        super().__init__(
            f"{where}: expected a mapping of result fields, got {type(value).__name__}"
        )


class InconsistentFieldsError(FoldCVError, ValueError):
    """Result records do not share the same field names."""

    def __init__(self, fold_index: int, missing: Iterable[str], unexpected: Iterable[str]):
        self.fold_index = fold_index
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        super().__init__(
            f"Fold {fold_index}: result fields differ from the first fold "
            f"(missing={self.missing}, unexpected={self.unexpected})"
        )


class MergeShapeMismatchError(FoldCVError, ValueError):
    """A fold's fragment cannot be merged with the fragments before it."""

    def __init__(self, field: str, fold_index: int, detail: str):
        self.field = field
        self.fold_index = fold_index
        super().__init__(f"Field '{field}', fold {fold_index}: {detail}")
