"""Fold records and the partitioning schemes that generate them.

Schemes:
- V-fold (optionally stratified), leave-one-out, resubstitution
- Bootstrap and Monte Carlo resampling (optionally stratified)
- Rolling origin (expanding window) and rolling window (sliding window)

Any non-rolling scheme can run over cluster ids instead of positions, which
keeps every member of a cluster inside the same training or validation set.

Positions are 0-based; ``fold_index`` is 1-based and contiguous.
"""

import dataclasses
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from .errors import DegenerateFoldError, FoldConfigError
from .indexing import container_length, resolve

logger = logging.getLogger(__name__)

ROLLING_SCHEMES = frozenset({"rolling_origin", "rolling_window"})
STRATIFIABLE_SCHEMES = frozenset({"vfold", "bootstrap", "montecarlo"})

RandomState = np.random.Generator | int | None


def _frozen_positions(values: Any, name: str) -> np.ndarray:
    positions = np.array(values, dtype=np.int64)
    if positions.ndim != 1:
        raise ValueError(f"{name} positions must be one-dimensional, got shape {positions.shape}")
    if positions.size and positions.min() < 0:
        raise ValueError(f"{name} positions must be non-negative")
    positions.setflags(write=False)
    return positions


@dataclass(frozen=True, eq=False)
class Fold:
    """One training/validation partition and its ordinal position.

    Attributes:
        fold_index: 1-based ordinal within the generated sequence
        training: Read-only array of 0-based training positions
        validation: Read-only array of 0-based validation positions

    Example:
        >>> fold = Fold(1, [0, 1, 2], [3])
        >>> fold.validation_subset(["a", "b", "c", "d"])
        ['d']
    """

    fold_index: int
    training: np.ndarray
    validation: np.ndarray

    def __post_init__(self):
        if int(self.fold_index) < 1:
            raise ValueError(f"fold_index must be >= 1 (got {self.fold_index})")
        object.__setattr__(self, "fold_index", int(self.fold_index))
        object.__setattr__(self, "training", _frozen_positions(self.training, "Training"))
        object.__setattr__(self, "validation", _frozen_positions(self.validation, "Validation"))

    @property
    def n_training(self) -> int:
        return int(self.training.size)

    @property
    def n_validation(self) -> int:
        return int(self.validation.size)

    def is_disjoint(self) -> bool:
        """True when no position is both trained on and validated on."""
        return np.intersect1d(self.training, self.validation).size == 0

    def training_subset(self, container: Any) -> Any:
        return resolve(container, self.training)

    def validation_subset(self, container: Any) -> Any:
        return resolve(container, self.validation)

    def renumbered(self, fold_index: int) -> "Fold":
        return Fold(fold_index, self.training, self.validation)

    def __repr__(self) -> str:
        return (
            f"Fold(fold_index={self.fold_index}, n_training={self.n_training}, "
            f"n_validation={self.n_validation})"
        )


@dataclass
class FoldConfig:
    """Configuration for :func:`make_folds`.

    Attributes:
        fold_fun: Scheme name, one of :func:`available_fold_functions`
        v: Number of folds (vfold) or repetitions (bootstrap, montecarlo)
        stratify_ids: Optional grouping vector balanced across folds
        cluster_ids: Optional grouping vector whose members share a fold
        first_window: Initial training size (rolling_origin)
        validation_size: Validation window length (rolling schemes)
        window_size: Fixed training window length (rolling_window)
        gap: Positions skipped between training end and validation start
        batch: Origin step for rolling schemes (defaults to validation_size)
        pvalidation: Validation share per Monte Carlo repetition
        shuffle: Randomly assign V-fold labels (False gives contiguous blocks)
        seed: Seed for every random scheme
    """

    fold_fun: str = "vfold"
    v: int = 10
    stratify_ids: Sequence[Any] | None = None
    cluster_ids: Sequence[Any] | None = None
    first_window: int | None = None
    validation_size: int | None = None
    window_size: int | None = None
    gap: int = 0
    batch: int | None = None
    pvalidation: float = 0.2
    shuffle: bool = True
    seed: int | None = None

    def __post_init__(self):
        if self.fold_fun not in _SCHEMES:
            raise FoldConfigError(
                f"Unknown fold_fun '{self.fold_fun}'. "
                f"Available: {available_fold_functions()}"
            )
        if self.fold_fun == "vfold" and self.v < 2:
            raise FoldConfigError(f"vfold requires v >= 2 (got {self.v})")
        if self.fold_fun in {"bootstrap", "montecarlo"} and self.v < 1:
            raise FoldConfigError(f"{self.fold_fun} requires v >= 1 (got {self.v})")
        if not 0.0 < self.pvalidation < 1.0:
            raise FoldConfigError(f"pvalidation must be in (0, 1) (got {self.pvalidation})")

        if self.fold_fun == "rolling_origin" and (
            self.first_window is None or self.validation_size is None
        ):
            raise FoldConfigError("rolling_origin requires first_window and validation_size")
        if self.fold_fun == "rolling_window" and (
            self.window_size is None or self.validation_size is None
        ):
            raise FoldConfigError("rolling_window requires window_size and validation_size")

        # Rolling schemes have no defined interaction with grouping vectors.
        if self.fold_fun in ROLLING_SCHEMES and self.cluster_ids is not None:
            raise FoldConfigError(f"cluster_ids is not supported with {self.fold_fun}")
        if self.stratify_ids is not None and self.fold_fun not in STRATIFIABLE_SCHEMES:
            raise FoldConfigError(
                f"stratify_ids is not supported with {self.fold_fun}. "
                f"Stratifiable schemes: {sorted(STRATIFIABLE_SCHEMES)}"
            )

    def replace(self, **changes: Any) -> "FoldConfig":
        return dataclasses.replace(self, **changes)


# ============================================================================
# Helpers
# ============================================================================


def _ensure_rng(rng: RandomState) -> np.random.Generator:
    if isinstance(rng, np.random.Generator):
        return rng
    return np.random.default_rng(rng)


def _check_size(n: int, minimum: int, scheme: str) -> None:
    if n < minimum:
        raise FoldConfigError(f"{scheme} requires at least {minimum} observations (got {n})")


def _group_members(ids: Any, n: int) -> list[np.ndarray]:
    """Positions of each distinct id, in order of first appearance."""
    if ids is None:
        return [np.arange(n)]
    codes, uniques = pd.factorize(np.asarray(ids), use_na_sentinel=False)
    return [np.flatnonzero(codes == k) for k in range(len(uniques))]


def _check_ids(ids: Sequence[Any] | None, n: int, name: str) -> np.ndarray | None:
    if ids is None:
        return None
    values = np.asarray(ids)
    if values.ndim != 1:
        raise FoldConfigError(f"{name} must be one-dimensional, got shape {values.shape}")
    if len(values) != n:
        raise FoldConfigError(f"{name} has length {len(values)} but the dataset has {n} units")
    return values


def _folds_from_labels(labels: np.ndarray, v: int) -> list[Fold]:
    return [
        Fold(k + 1, np.flatnonzero(labels != k), np.flatnonzero(labels == k)) for k in range(v)
    ]


# ============================================================================
# Generators
# ============================================================================


def folds_vfold(
    n: int,
    v: int = 10,
    *,
    strata: Sequence[Any] | None = None,
    shuffle: bool = True,
    rng: RandomState = None,
) -> list[Fold]:
    """V-fold partition: each position is validated exactly once.

    Fold sizes differ by at most one. With ``strata``, positions are shuffled
    within each stratum, strata are laid end to end, and fold labels are dealt
    cyclically from a random starting fold, so every stratum is spread as
    evenly as possible over the folds.

    Args:
        n: Dataset size
        v: Number of folds (>= 2); reduced to ``n`` with a warning if larger
        strata: Optional length-``n`` grouping vector to balance
        shuffle: Randomly assign positions; False yields contiguous blocks
        rng: Generator or seed

    Returns:
        List of ``v`` folds

    Raises:
        FoldConfigError: If ``v < 2`` or ``n < 2``
    """
    if v < 2:
        raise FoldConfigError(f"vfold requires v >= 2 (got {v})")
    _check_size(n, 2, "vfold")
    if v > n:
        logger.warning(f"vfold: v={v} exceeds n={n}; using v={n} (leave-one-out)")
        v = n

    rng = _ensure_rng(rng)
    strata = _check_ids(strata, n, "strata")

    if strata is None:
        if shuffle:
            labels = rng.permutation(np.arange(n) % v)
        else:
            labels = np.sort(np.arange(n) % v)
    else:
        order = np.concatenate(
            [rng.permutation(m) if shuffle else m for m in _group_members(strata, n)]
        )
        start = int(rng.integers(v)) if shuffle else 0
        labels = np.empty(n, dtype=np.int64)
        labels[order] = (np.arange(n) + start) % v

    return _folds_from_labels(labels, v)


def folds_resubstitution(n: int) -> list[Fold]:
    """Single fold that trains and validates on every position."""
    _check_size(n, 1, "resubstitution")
    everything = np.arange(n)
    return [Fold(1, everything, everything)]


def folds_loo(n: int) -> list[Fold]:
    """Leave-one-out: ``n`` folds, each validating a single position."""
    _check_size(n, 2, "loo")
    labels = np.arange(n)
    return _folds_from_labels(labels, n)


def folds_bootstrap(
    n: int,
    v: int = 10,
    *,
    strata: Sequence[Any] | None = None,
    rng: RandomState = None,
) -> list[Fold]:
    """Bootstrap resampling with out-of-bag validation.

    Training holds ``n`` draws with replacement (draw order kept, duplicates
    included); validation holds the sorted positions never drawn. With
    ``strata``, each stratum is resampled to its own size.

    Raises:
        DegenerateFoldError: If a repetition draws every position
    """
    if v < 1:
        raise FoldConfigError(f"bootstrap requires v >= 1 (got {v})")
    _check_size(n, 1, "bootstrap")
    rng = _ensure_rng(rng)
    groups = _group_members(_check_ids(strata, n, "strata"), n)
    everything = np.arange(n)

    folds = []
    for k in range(v):
        drawn = np.concatenate([rng.choice(m, size=m.size, replace=True) for m in groups])
        out_of_bag = np.setdiff1d(everything, drawn)
        if out_of_bag.size == 0:
            raise DegenerateFoldError(
                k + 1, "bootstrap draw covered every position; out-of-bag set is empty"
            )
        folds.append(Fold(k + 1, drawn, out_of_bag))
    return folds


def folds_montecarlo(
    n: int,
    v: int = 10,
    pvalidation: float = 0.2,
    *,
    strata: Sequence[Any] | None = None,
    rng: RandomState = None,
) -> list[Fold]:
    """Repeated random holdout without replacement.

    Each repetition validates on ``round(n * pvalidation)`` positions, clamped
    to ``[1, n - 1]``; with ``strata`` the share is taken within each stratum.

    Raises:
        DegenerateFoldError: If a stratified repetition ends up with an empty set
    """
    if v < 1:
        raise FoldConfigError(f"montecarlo requires v >= 1 (got {v})")
    if not 0.0 < pvalidation < 1.0:
        raise FoldConfigError(f"pvalidation must be in (0, 1) (got {pvalidation})")
    _check_size(n, 2, "montecarlo")
    rng = _ensure_rng(rng)
    strata = _check_ids(strata, n, "strata")
    groups = _group_members(strata, n)

    folds = []
    for k in range(v):
        if strata is None:
            n_valid = min(max(int(round(n * pvalidation)), 1), n - 1)
            validation = np.sort(rng.choice(n, size=n_valid, replace=False))
        else:
            validation = np.sort(
                np.concatenate(
                    [
                        rng.choice(m, size=int(round(m.size * pvalidation)), replace=False)
                        for m in groups
                    ]
                )
            )
        if validation.size in (0, n):
            raise DegenerateFoldError(
                k + 1, f"holdout of {validation.size} of {n} positions leaves an empty set"
            )
        folds.append(Fold(k + 1, np.setdiff1d(np.arange(n), validation), validation))
    return folds


def _check_window_args(**values: int | None) -> None:
    for name, value in values.items():
        minimum = 0 if name == "gap" else 1
        if value is None or value < minimum:
            raise FoldConfigError(f"{name} must be >= {minimum} (got {value})")


def _rolling_folds(
    n: int,
    start: int,
    validation_size: int,
    gap: int,
    step: int,
    training_start: Callable[[int], int],
    scheme: str,
) -> list[Fold]:
    origins = range(start, n - gap - validation_size + 1, step)
    folds = [
        Fold(
            k,
            np.arange(training_start(origin), origin),
            np.arange(origin + gap, origin + gap + validation_size),
        )
        for k, origin in enumerate(origins, start=1)
    ]
    if not folds:
        raise FoldConfigError(
            f"{scheme}: n={n} is too small for a training window of {start} plus "
            f"gap={gap} and validation_size={validation_size}"
        )

    covered = int(folds[-1].validation[-1]) + 1
    if covered < n:
        logger.debug(
            f"{scheme}: dropped trailing {n - covered} positions that do not fill "
            f"a validation window of {validation_size}"
        )
    return folds


def folds_rolling_origin(
    n: int,
    first_window: int,
    validation_size: int,
    *,
    gap: int = 0,
    batch: int | None = None,
) -> list[Fold]:
    """Expanding-window time-series folds.

    Fold k trains on ``[0, origin_k)`` and validates on
    ``[origin_k + gap, origin_k + gap + validation_size)``. The first origin is
    ``first_window`` and each next one is ``batch`` later (default
    ``validation_size``). A trailing window that would run past ``n`` is
    dropped rather than shortened.

    Example:
        >>> [int(f.validation[-1]) for f in folds_rolling_origin(144, 36, 24)]
        [59, 83, 107, 131]
    """
    step = validation_size if batch is None else batch
    _check_window_args(
        first_window=first_window, validation_size=validation_size, gap=gap, batch=step
    )
    return _rolling_folds(
        n, first_window, validation_size, gap, step, lambda origin: 0, "rolling_origin"
    )


def folds_rolling_window(
    n: int,
    window_size: int,
    validation_size: int,
    *,
    gap: int = 0,
    batch: int | None = None,
) -> list[Fold]:
    """Sliding-window time-series folds with a fixed training length."""
    step = validation_size if batch is None else batch
    _check_window_args(
        window_size=window_size, validation_size=validation_size, gap=gap, batch=step
    )
    return _rolling_folds(
        n,
        window_size,
        validation_size,
        gap,
        step,
        lambda origin: origin - window_size,
        "rolling_window",
    )


_SchemeFn = Callable[[int, FoldConfig, Any, np.random.Generator], list[Fold]]

_SCHEMES: dict[str, _SchemeFn] = {
    "vfold": lambda n, cfg, strata, rng: folds_vfold(
        n, cfg.v, strata=strata, shuffle=cfg.shuffle, rng=rng
    ),
    "resubstitution": lambda n, cfg, strata, rng: folds_resubstitution(n),
    "loo": lambda n, cfg, strata, rng: folds_loo(n),
    "bootstrap": lambda n, cfg, strata, rng: folds_bootstrap(n, cfg.v, strata=strata, rng=rng),
    "montecarlo": lambda n, cfg, strata, rng: folds_montecarlo(
        n, cfg.v, cfg.pvalidation, strata=strata, rng=rng
    ),
    "rolling_origin": lambda n, cfg, strata, rng: folds_rolling_origin(
        n, cfg.first_window, cfg.validation_size, gap=cfg.gap, batch=cfg.batch
    ),
    "rolling_window": lambda n, cfg, strata, rng: folds_rolling_window(
        n, cfg.window_size, cfg.validation_size, gap=cfg.gap, batch=cfg.batch
    ),
}


def available_fold_functions() -> list[str]:
    """Sorted names accepted as ``FoldConfig.fold_fun``."""
    return sorted(_SCHEMES)


# ============================================================================
# Entry points
# ============================================================================


def _clustered_folds(
    config: FoldConfig,
    clusters: np.ndarray,
    strata: np.ndarray | None,
    rng: np.random.Generator,
) -> list[Fold]:
    """Run the scheme over distinct clusters, then expand clusters to positions."""
    members = _group_members(clusters, len(clusters))

    unit_strata = None
    if strata is not None:
        unit_strata = np.empty(len(members), dtype=object)
        for k, positions in enumerate(members):
            values = pd.unique(strata[positions])
            if len(values) != 1:
                raise FoldConfigError(
                    f"Cluster {clusters[positions[0]]!r} spans {len(values)} strata; "
                    "each cluster must belong to a single stratum"
                )
            unit_strata[k] = values[0]

    logger.debug(f"Assigning {len(members)} clusters covering {len(clusters)} positions")
    unit_folds = _SCHEMES[config.fold_fun](len(members), config, unit_strata, rng)

    def expand(units: np.ndarray) -> np.ndarray:
        if units.size == 0:
            return np.empty(0, dtype=np.int64)
        return np.sort(np.concatenate([members[u] for u in units]))

    return [Fold(f.fold_index, expand(f.training), expand(f.validation)) for f in unit_folds]


def make_folds(
    data: Any = None,
    *,
    n: int | None = None,
    config: FoldConfig | None = None,
    **options: Any,
) -> list[Fold]:
    """Generate the fold sequence for a dataset.

    Args:
        data: Dataset whose length gives ``n`` (DataFrame, Series, array, list)
        n: Dataset size; overrides ``data`` when given
        config: Fold configuration; keyword ``options`` override its fields
        **options: FoldConfig fields used when ``config`` is None

    Returns:
        List of folds with ``fold_index`` running 1..len

    Raises:
        FoldConfigError: Invalid configuration or grouping vectors
        DegenerateFoldError: A resampling scheme produced an empty set

    Example:
        >>> folds = make_folds(n=32, fold_fun="vfold", v=8, seed=1)
        >>> len(folds), folds[0].n_validation
        (8, 4)
    """
    if config is None:
        config = FoldConfig(**options)
    elif options:
        config = config.replace(**options)

    if n is None:
        if data is None:
            raise FoldConfigError("make_folds requires either data or n")
        n = container_length(data)

    strata = _check_ids(config.stratify_ids, n, "stratify_ids")
    clusters = _check_ids(config.cluster_ids, n, "cluster_ids")
    rng = np.random.default_rng(config.seed)

    if clusters is None:
        folds = _SCHEMES[config.fold_fun](n, config, strata, rng)
    else:
        folds = _clustered_folds(config, clusters, strata, rng)

    logger.info(
        f"Generated {len(folds)} {config.fold_fun} folds for n={n} "
        f"(stratified={strata is not None}, clustered={clusters is not None})"
    )
    for fold in folds:
        logger.debug(
            f"Fold {fold.fold_index}: training={fold.n_training}, "
            f"validation={fold.n_validation}"
        )
    return folds


def make_repeated_folds(
    repeats: int,
    data: Any = None,
    *,
    n: int | None = None,
    config: FoldConfig | None = None,
    **options: Any,
) -> list[Fold]:
    """Concatenate ``repeats`` independently drawn fold sequences.

    Each repetition gets its own seed derived from ``config.seed``, and the
    combined sequence is renumbered 1..len.
    """
    if repeats < 1:
        raise FoldConfigError(f"repeats must be >= 1 (got {repeats})")
    if config is None:
        config = FoldConfig(**options)
    elif options:
        config = config.replace(**options)

    seeder = np.random.default_rng(config.seed)
    repeated: list[Fold] = []
    for _ in range(repeats):
        seed = int(seeder.integers(2**32))
        repeated.extend(make_folds(data, n=n, config=config.replace(seed=seed)))

    return [fold.renumbered(k) for k, fold in enumerate(repeated, start=1)]


def check_fold_sequence(folds: Sequence[Fold]) -> None:
    """Raise FoldConfigError unless fold indices run exactly 1..len(folds)."""
    for position, fold in enumerate(folds, start=1):
        if not isinstance(fold, Fold):
            raise FoldConfigError(
                f"Element {position} of the fold sequence is {type(fold).__name__}, not Fold"
            )
        if fold.fold_index != position:
            raise FoldConfigError(
                f"Fold indices must be contiguous from 1; position {position} "
                f"holds fold_index={fold.fold_index}"
            )


def folds_to_frame(folds: Sequence[Fold]) -> pd.DataFrame:
    """Summarize folds as one row per fold (sizes and position ranges)."""

    def bounds(positions: np.ndarray) -> tuple[int | None, int | None]:
        if positions.size == 0:
            return None, None
        return int(positions.min()), int(positions.max())

    rows = []
    for fold in folds:
        training_min, training_max = bounds(fold.training)
        validation_min, validation_max = bounds(fold.validation)
        rows.append(
            {
                "fold_index": fold.fold_index,
                "n_training": fold.n_training,
                "n_validation": fold.n_validation,
                "training_min": training_min,
                "training_max": training_max,
                "validation_min": validation_min,
                "validation_max": validation_max,
            }
        )
    columns = [
        "fold_index",
        "n_training",
        "n_validation",
        "training_min",
        "training_max",
        "validation_min",
        "validation_max",
    ]
    return pd.DataFrame(rows, columns=columns)
