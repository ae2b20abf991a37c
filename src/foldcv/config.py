"""YAML configuration for fold generation.

Example ``folds.yaml``::

    random_state: 7
    folds:
      fold_fun: vfold
      v: 5
      stratify_by: region     # DataFrame column
      cluster_by: patient_id  # DataFrame column

Grouping vectors cannot sensibly live in YAML, so ``stratify_by`` and
``cluster_by`` name columns of the dataset and are resolved when folds are
built.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from .errors import FoldConfigError
from .folds import Fold, FoldConfig, make_folds

logger = logging.getLogger(__name__)

_SCALAR_KEYS = frozenset(
    {
        "fold_fun",
        "v",
        "seed",
        "shuffle",
        "first_window",
        "validation_size",
        "window_size",
        "gap",
        "batch",
        "pvalidation",
    }
)
_COLUMN_KEYS = {"stratify_by": "stratify_ids", "cluster_by": "cluster_ids"}


def normalize_config(raw_config: dict) -> dict:
    """
    Convert datetime.date objects to ISO strings for config hashing.

    YAML's safe_load() turns ISO dates into date objects, which
    compute_config_hash() cannot serialize.
    """

    def normalize_value(value):
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        elif isinstance(value, dict):
            return {k: normalize_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [normalize_value(item) for item in value]
        return value

    return {key: normalize_value(value) for key, value in raw_config.items()}


def load_config(path: str | Path) -> dict[str, Any]:
    """Read and normalize a YAML config file (an empty file gives {})."""
    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}
    if not isinstance(raw_config, dict):
        raise FoldConfigError(f"Config {path} must contain a mapping at the top level")
    return normalize_config(raw_config)


def _grouping_column(data: Any, column: str, key: str) -> pd.Series:
    if not isinstance(data, pd.DataFrame):
        raise FoldConfigError(f"'{key}: {column}' requires tabular data (a DataFrame)")
    if column not in data.columns:
        raise FoldConfigError(
            f"'{key}' column '{column}' not found. Available columns: {list(data.columns)}"
        )
    return data[column]


def fold_config_from_dict(config: dict[str, Any], data: Any = None) -> FoldConfig:
    """Build a FoldConfig from the ``folds`` section of a config dict.

    A top-level ``random_state`` is used as the seed when ``folds.seed`` is
    absent.

    Raises:
        FoldConfigError: Unknown keys, missing columns, or invalid settings
    """
    section = config.get("folds", {}) or {}
    if not isinstance(section, dict):
        raise FoldConfigError("'folds' section must be a mapping")

    unknown = set(section) - _SCALAR_KEYS - set(_COLUMN_KEYS)
    if unknown:
        raise FoldConfigError(
            f"Unknown keys in 'folds' section: {sorted(unknown)}. "
            f"Allowed: {sorted(_SCALAR_KEYS | set(_COLUMN_KEYS))}"
        )

    options = {key: section[key] for key in _SCALAR_KEYS if key in section}
    if "seed" not in options and "random_state" in config:
        options["seed"] = config["random_state"]

    for key, field_name in _COLUMN_KEYS.items():
        if section.get(key) is not None:
            options[field_name] = _grouping_column(data, section[key], key).to_numpy()

    logger.debug(f"Fold config options from file: {sorted(options)}")
    return FoldConfig(**options)


def create_folds_from_config(
    config: dict[str, Any], data: Any = None, n: int | None = None
) -> list[Fold]:
    """Create the fold sequence described by a config dict."""
    return make_folds(data, n=n, config=fold_config_from_dict(config, data))
