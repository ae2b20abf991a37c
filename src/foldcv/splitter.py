"""scikit-learn compatible splitter backed by :func:`make_folds`."""

import logging
from collections.abc import Generator
from typing import Any

import numpy as np

from .folds import FoldConfig, make_folds

logger = logging.getLogger(__name__)


class FoldSplitter:
    """
    Expose any fold scheme through the scikit-learn ``cv=`` protocol.

    ``split`` yields ``(train_indices, test_indices)`` position arrays, so the
    splitter can be handed to ``cross_val_score``, ``GridSearchCV`` and
    friends. ``groups`` is used as cluster ids when the config has none.

    Example:
        >>> cv = FoldSplitter(fold_fun="rolling_origin", first_window=36, validation_size=24)
        >>> for train_idx, test_idx in cv.split(series):
        ...     print(f"Train: {len(train_idx)} samples, Test: {len(test_idx)} samples")
    """

    def __init__(self, config: FoldConfig | None = None, **options: Any):
        """
        Args:
            config: Fold configuration
            **options: FoldConfig fields (override ``config`` fields if both given)
        """
        if config is None:
            config = FoldConfig(**options)
        elif options:
            config = config.replace(**options)
        self.config = config

    def _config_for(self, groups: Any) -> FoldConfig:
        if groups is None or self.config.cluster_ids is not None:
            return self.config
        return self.config.replace(cluster_ids=np.asarray(groups))

    def split(
        self, X: Any, y: Any = None, groups: Any = None
    ) -> Generator[tuple[np.ndarray, np.ndarray], None, None]:
        """
        Generate train/test position arrays.

        Args:
            X: Data whose length gives the number of samples
            y: Ignored (for sklearn compatibility)
            groups: Optional cluster ids, one per sample

        Yields:
            (train_indices, test_indices) tuples of integer positions
        """
        folds = make_folds(n=len(X), config=self._config_for(groups))
        logger.debug(f"FoldSplitter yielding {len(folds)} {self.config.fold_fun} splits")
        for fold in folds:
            yield fold.training, fold.validation

    def get_n_splits(self, X: Any = None, y: Any = None, groups: Any = None) -> int:
        """Return the number of splits (sklearn-compatible).

        Schemes whose fold count depends on the data size (rolling, loo,
        clustered) need ``X``.
        """
        config = self._config_for(groups)
        if config.fold_fun == "resubstitution":
            return 1
        if config.fold_fun in {"bootstrap", "montecarlo"}:
            return config.v
        if config.fold_fun == "vfold" and config.cluster_ids is None and X is None:
            return config.v
        if X is None:
            raise ValueError(f"get_n_splits() needs X to count {config.fold_fun} folds")
        return len(make_folds(n=len(X), config=config))

    def __repr__(self) -> str:
        return f"FoldSplitter(fold_fun={self.config.fold_fun!r}, v={self.config.v})"
