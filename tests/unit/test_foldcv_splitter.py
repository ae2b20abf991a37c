"""Unit tests for the scikit-learn splitter adapter."""

import numpy as np
import pytest
from sklearn.linear_model import Ridge
from sklearn.model_selection import cross_val_score

from src.foldcv.folds import FoldConfig
from src.foldcv.splitter import FoldSplitter


@pytest.fixture
def regression_arrays():
    rng = np.random.default_rng(0)
    X = rng.normal(size=(40, 3))
    y = X @ np.array([1.0, -2.0, 0.5]) + rng.normal(scale=0.1, size=40)
    return X, y


def test_cross_val_score_accepts_splitter(regression_arrays):
    """FoldSplitter plugs into cross_val_score as cv=."""
    X, y = regression_arrays

    scores = cross_val_score(Ridge(alpha=0.1), X, y, cv=FoldSplitter(v=4, seed=0))

    assert scores.shape == (4,)
    assert np.all(scores > 0.9)


def test_split_partitions_positions(regression_arrays):
    """V-fold splits validate every sample exactly once."""
    X, _ = regression_arrays
    splitter = FoldSplitter(v=5, seed=1)

    seen = []
    for train_idx, test_idx in splitter.split(X):
        assert np.intersect1d(train_idx, test_idx).size == 0
        assert len(train_idx) + len(test_idx) == len(X)
        seen.extend(test_idx.tolist())

    assert sorted(seen) == list(range(len(X)))


def test_groups_stay_together(regression_arrays):
    """groups are used as cluster ids."""
    X, _ = regression_arrays
    groups = np.repeat(np.arange(10), 4)

    for train_idx, test_idx in FoldSplitter(v=5, seed=2).split(X, groups=groups):
        assert set(groups[train_idx]).isdisjoint(groups[test_idx])


def test_rolling_origin_splits_respect_time_order():
    """Rolling splits never train on the future."""
    series = np.arange(144)
    splitter = FoldSplitter(fold_fun="rolling_origin", first_window=36, validation_size=24)

    splits = list(splitter.split(series))

    assert len(splits) == 4
    for train_idx, test_idx in splits:
        assert train_idx.max() < test_idx.min()


def test_options_override_config():
    """Keyword options override the given config."""
    base = FoldConfig(fold_fun="vfold", v=10, seed=3)

    splitter = FoldSplitter(base, v=3)

    assert splitter.config.v == 3
    assert splitter.config.seed == 3
    assert repr(splitter) == "FoldSplitter(fold_fun='vfold', v=3)"


def test_get_n_splits():
    """Split counts come from the config, or from X when they depend on it."""
    assert FoldSplitter(v=7).get_n_splits() == 7
    assert FoldSplitter(fold_fun="bootstrap", v=25).get_n_splits() == 25
    assert FoldSplitter(fold_fun="resubstitution").get_n_splits() == 1

    loo = FoldSplitter(fold_fun="loo")
    assert loo.get_n_splits(np.zeros(6)) == 6
    with pytest.raises(ValueError, match="needs X"):
        loo.get_n_splits()

    clustered = FoldSplitter(v=4, seed=0)
    assert clustered.get_n_splits(np.zeros(6), groups=[0, 0, 1, 1, 2, 2]) == 3
