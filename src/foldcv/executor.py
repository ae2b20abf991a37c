"""Cross-validation executor.

Applies an arbitrary routine ``routine(fold, data, *args, **kwargs)`` to
every fold, sequentially, on a thread pool, or on worker processes, then
merges the per-fold records with :func:`combine_results`.

The routine is a black box. The executor guarantees that:
- the fold is bound (see :mod:`src.foldcv.context`) while the routine runs
- records come back in fold order regardless of completion order
- the first failure is re-raised unchanged (with a note naming the fold)
  and the remaining work is cancelled
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from joblib import Parallel, delayed
from tqdm import tqdm

from .combine import StrategyOverride, combine_results
from .context import bind_fold
from .errors import FoldConfigError, InvalidResultRecordError
from .folds import Fold, check_fold_sequence

logger = logging.getLogger(__name__)

CONCURRENCY_MODES = ("sequential", "threads", "processes")

Routine = Callable[..., Mapping[str, Any]]


def _evaluate_fold(
    routine: Routine,
    fold: Fold,
    data: Any,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Mapping[str, Any]:
    """Run the routine on one fold with the fold bound."""
    with bind_fold(fold):
        try:
            record = routine(fold, data, *args, **kwargs)
        except Exception as e:
            e.add_note(f"Raised while evaluating fold {fold.fold_index}")
            logger.error(f"Fold {fold.fold_index} failed: {e!r}")
            raise

    if not isinstance(record, Mapping):
        raise InvalidResultRecordError(fold.fold_index, record)
    return record


def _map_threads(
    routine: Routine,
    folds: list[Fold],
    data: Any,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    n_jobs: int | None,
    show_progress: bool,
) -> list[Mapping[str, Any]]:
    max_workers = None if n_jobs in (None, -1) else n_jobs
    records: list[Mapping[str, Any] | None] = [None] * len(folds)

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="foldcv")
    try:
        future_to_position = {
            executor.submit(_evaluate_fold, routine, fold, data, args, kwargs): position
            for position, fold in enumerate(folds)
        }
        for future in tqdm(
            as_completed(future_to_position),
            total=len(folds),
            desc="Folds",
            disable=not show_progress,
        ):
            records[future_to_position[future]] = future.result()
    except BaseException:
        # Fail fast: drop queued folds, do not wait for running ones
        executor.shutdown(wait=False, cancel_futures=True)
        raise

    executor.shutdown(wait=True)
    return records


def _map_processes(
    routine: Routine,
    folds: list[Fold],
    data: Any,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
    n_jobs: int | None,
    show_progress: bool,
) -> list[Mapping[str, Any]]:
    # joblib keeps input order and aborts outstanding tasks on the first error
    parallel = Parallel(n_jobs=-1 if n_jobs is None else n_jobs, backend="loky")
    tasks = (
        delayed(_evaluate_fold)(routine, fold, data, args, kwargs)
        for fold in tqdm(folds, desc="Folds", disable=not show_progress)
    )
    return list(parallel(tasks))


def map_folds(
    routine: Routine,
    folds: Iterable[Fold],
    data: Any,
    *args: Any,
    concurrency: str = "sequential",
    n_jobs: int | None = None,
    show_progress: bool = False,
    **kwargs: Any,
) -> list[Mapping[str, Any]]:
    """Apply ``routine`` to every fold and return one record per fold.

    Args:
        routine: Callable ``routine(fold, data, *args, **kwargs) -> Mapping``
        folds: Fold sequence with fold indices 1..len
        data: Dataset handed unchanged to every invocation (read-only)
        *args: Extra positional arguments for the routine
        concurrency: "sequential", "threads" or "processes"
        n_jobs: Worker count for threads/processes (None uses the backend default)
        show_progress: Display a tqdm progress bar
        **kwargs: Extra keyword arguments for the routine

    Returns:
        Records in fold order

    Raises:
        FoldConfigError: If ``folds`` is empty or not numbered 1..len
        ValueError: If ``concurrency`` is unknown
        InvalidResultRecordError: If the routine returns a non-mapping
        Exception: Whatever the routine raises, unchanged
    """
    folds = list(folds)
    if not folds:
        raise FoldConfigError("Cannot cross-validate over an empty fold sequence")
    check_fold_sequence(folds)

    if concurrency not in CONCURRENCY_MODES:
        raise ValueError(
            f"Unknown concurrency '{concurrency}'. Expected one of {list(CONCURRENCY_MODES)}"
        )

    logger.info(f"Evaluating routine on {len(folds)} folds (concurrency={concurrency})")

    if concurrency == "threads":
        return _map_threads(routine, folds, data, args, kwargs, n_jobs, show_progress)
    if concurrency == "processes":
        return _map_processes(routine, folds, data, args, kwargs, n_jobs, show_progress)

    return [
        _evaluate_fold(routine, fold, data, args, kwargs)
        for fold in tqdm(folds, desc="Folds", disable=not show_progress)
    ]


def cross_validate(
    routine: Routine,
    folds: Iterable[Fold],
    data: Any,
    *args: Any,
    concurrency: str = "sequential",
    n_jobs: int | None = None,
    combine: bool = True,
    strategies: Mapping[str, StrategyOverride] | None = None,
    fold_column: str | None = None,
    show_progress: bool = False,
    **kwargs: Any,
) -> dict[str, Any] | list[Mapping[str, Any]]:
    """Cross-validate ``routine`` over ``folds`` and combine the results.

    Extra ``*args``/``**kwargs`` are forwarded to the routine.

    Args:
        routine: Callable ``routine(fold, data, *args, **kwargs) -> Mapping``
        folds: Fold sequence, e.g. from :func:`make_folds`
        data: Dataset shared read-only by every fold
        concurrency: "sequential", "threads" or "processes"
        n_jobs: Worker count for parallel modes
        combine: Return the combined dict (True) or the raw record list
        strategies: Per-field merge overrides for :func:`combine_results`
        fold_column: Fold-index column added to row-stacked DataFrames
        show_progress: Display a tqdm progress bar

    Returns:
        Combined result dict, or the list of per-fold records if ``combine``
        is False

    Example:
        >>> def squared_error(fold, data):
        ...     train, valid = fold.training_subset(data), fold.validation_subset(data)
        ...     return {"se": float(((valid - train.mean()) ** 2).mean())}
        >>> result = cross_validate(squared_error, make_folds(n=32, v=8), np.arange(32.0))
        >>> len(result["se"])
        8
    """
    folds = list(folds)
    records = map_folds(
        routine,
        folds,
        data,
        *args,
        concurrency=concurrency,
        n_jobs=n_jobs,
        show_progress=show_progress,
        **kwargs,
    )
    if not combine:
        return records

    combined = combine_results(
        records,
        strategies,
        fold_indices=[fold.fold_index for fold in folds],
        fold_column=fold_column,
    )
    logger.info(f"Combined {len(records)} fold results into fields {list(combined)}")
    return combined
