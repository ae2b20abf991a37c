"""Unit tests for YAML fold configuration."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from src.foldcv.config import (
    create_folds_from_config,
    fold_config_from_dict,
    load_config,
    normalize_config,
)
from src.foldcv.errors import FoldConfigError


@pytest.fixture
def patients():
    """24 visits from 8 patients across 2 sites."""
    return pd.DataFrame(
        {
            "patient_id": np.repeat(np.arange(8), 3),
            "site": np.repeat(["north", "south"], 12),
            "outcome": np.tile([0.1, 0.2, 0.3], 8),
        }
    )


def test_normalize_config_dates_to_iso():
    """YAML dates become ISO strings at every nesting level."""
    raw = {"start": date(2020, 1, 31), "windows": [date(2021, 6, 1)], "nested": {"d": date(2022, 2, 2)}}

    normalized = normalize_config(raw)

    assert normalized == {
        "start": "2020-01-31",
        "windows": ["2021-06-01"],
        "nested": {"d": "2022-02-02"},
    }


def test_load_config_reads_yaml(tmp_path):
    """Config files load as normalized dicts."""
    path = tmp_path / "folds.yaml"
    path.write_text(
        "random_state: 7\n"
        "generated: 2024-03-01\n"
        "folds:\n"
        "  fold_fun: vfold\n"
        "  v: 4\n"
    )

    config = load_config(path)

    assert config["random_state"] == 7
    assert config["generated"] == "2024-03-01"
    assert config["folds"] == {"fold_fun": "vfold", "v": 4}


def test_load_config_empty_file(tmp_path):
    """An empty file is an empty config."""
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(path) == {}


def test_load_config_rejects_list(tmp_path):
    """The top level of a config file must be a mapping."""
    path = tmp_path / "list.yaml"
    path.write_text("- vfold\n- 5\n")

    with pytest.raises(FoldConfigError, match="mapping"):
        load_config(path)


def test_random_state_used_as_seed():
    """Top-level random_state seeds folds when folds.seed is absent."""
    config = fold_config_from_dict({"random_state": 11, "folds": {"v": 3}})

    assert config.seed == 11
    assert config.v == 3


def test_explicit_seed_wins_over_random_state():
    """folds.seed takes precedence over random_state."""
    config = fold_config_from_dict({"random_state": 11, "folds": {"seed": 5}})

    assert config.seed == 5


def test_missing_folds_section_uses_defaults():
    """Without a folds section, the default 10-fold scheme is used."""
    config = fold_config_from_dict({})

    assert config.fold_fun == "vfold"
    assert config.v == 10


def test_unknown_key_rejected():
    """Misspelled keys fail loudly instead of being ignored."""
    with pytest.raises(FoldConfigError, match="Unknown keys"):
        fold_config_from_dict({"folds": {"n_splits": 5}})


def test_invalid_value_rejected():
    """Values are validated by FoldConfig."""
    with pytest.raises(FoldConfigError, match="v >= 2"):
        fold_config_from_dict({"folds": {"fold_fun": "vfold", "v": 1}})


def test_stratify_by_column(patients):
    """stratify_by resolves to the named column's values."""
    config = fold_config_from_dict({"folds": {"v": 4, "stratify_by": "site"}}, patients)

    np.testing.assert_array_equal(config.stratify_ids, patients["site"].to_numpy())


def test_stratify_by_missing_column(patients):
    """A missing grouping column lists what is available."""
    with pytest.raises(FoldConfigError, match="column 'region' not found"):
        fold_config_from_dict({"folds": {"stratify_by": "region"}}, patients)


def test_grouping_column_requires_dataframe():
    """Grouping columns need tabular data."""
    with pytest.raises(FoldConfigError, match="requires tabular data"):
        fold_config_from_dict({"folds": {"cluster_by": "patient_id"}}, np.zeros(10))


def test_create_folds_from_config_clusters(patients):
    """cluster_by keeps every patient on one side of each fold."""
    config = {"random_state": 0, "folds": {"fold_fun": "vfold", "v": 4, "cluster_by": "patient_id"}}

    folds = create_folds_from_config(config, patients)

    assert len(folds) == 4
    for fold in folds:
        validation_patients = set(patients["patient_id"].iloc[fold.validation])
        training_patients = set(patients["patient_id"].iloc[fold.training])
        assert validation_patients.isdisjoint(training_patients)


def test_create_folds_from_config_rolling_with_n():
    """Rolling schemes need only the dataset size."""
    config = {"folds": {"fold_fun": "rolling_origin", "first_window": 36, "validation_size": 24}}

    folds = create_folds_from_config(config, n=144)

    assert [fold.n_training for fold in folds] == [36, 60, 84, 108]
    assert all(fold.n_validation == 24 for fold in folds)
