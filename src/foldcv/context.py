"""Execution-local binding of the fold currently being evaluated.

The binding lives in a :class:`contextvars.ContextVar`, so each thread, task,
or worker process only ever sees the fold it bound itself. Routines can
either use the fold object they receive or call the ``current_*`` accessors.
"""

import contextlib
from collections.abc import Callable, Iterator
from contextvars import ContextVar
from typing import Any

import numpy as np

from .errors import NoFoldBoundError
from .folds import Fold
from .indexing import resolve

_CURRENT_FOLD: ContextVar[Fold | None] = ContextVar("foldcv_current_fold", default=None)


@contextlib.contextmanager
def bind_fold(fold: Fold) -> Iterator[Fold]:
    """Bind ``fold`` as the current fold for the duration of the block.

    The previous binding (None, or an outer fold when nested) is restored on
    every exit path, including exceptions.
    """
    if not isinstance(fold, Fold):
        raise TypeError(f"bind_fold() expects a Fold, got {type(fold).__name__}")
    token = _CURRENT_FOLD.set(fold)
    try:
        yield fold
    finally:
        _CURRENT_FOLD.reset(token)


def with_fold(fold: Fold, body: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``body(*args, **kwargs)`` with ``fold`` bound and return its result."""
    with bind_fold(fold):
        return body(*args, **kwargs)


def current_fold() -> Fold:
    fold = _CURRENT_FOLD.get()
    if fold is None:
        raise NoFoldBoundError("current_fold")
    return fold


def has_bound_fold() -> bool:
    return _CURRENT_FOLD.get() is not None


def current_fold_index() -> int:
    fold = _CURRENT_FOLD.get()
    if fold is None:
        raise NoFoldBoundError("current_fold_index")
    return fold.fold_index


def current_training(container: Any = None) -> Any:
    """Training positions of the bound fold, or ``container`` subset to them."""
    fold = _CURRENT_FOLD.get()
    if fold is None:
        raise NoFoldBoundError("current_training")
    return _positions_or_subset(fold.training, container)


def current_validation(container: Any = None) -> Any:
    """Validation positions of the bound fold, or ``container`` subset to them."""
    fold = _CURRENT_FOLD.get()
    if fold is None:
        raise NoFoldBoundError("current_validation")
    return _positions_or_subset(fold.validation, container)


def _positions_or_subset(positions: np.ndarray, container: Any) -> Any:
    if container is None:
        return positions
    return resolve(container, positions)
