"""
Preview the folds a config would generate for a dataset.

CLI: python -m src.foldcv.describe --config configs/folds.yaml --data data/table.parquet [--debug]
     python -m src.foldcv.describe --config configs/folds.yaml --n 144
"""

import argparse
import sys
from pathlib import Path

import pandas as pd

from src.foldcv.config import create_folds_from_config, load_config
from src.foldcv.errors import FoldCVError
from src.foldcv.folds import folds_to_frame
from src.utils.logging import get_logger, setup_logging


def read_table(path: str | Path) -> pd.DataFrame:
    """Read a CSV or parquet table."""
    path = Path(path)
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        return pd.read_csv(path)
    raise ValueError(f"Unsupported data file '{path}'. Expected .csv or .parquet")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for fold previews."""
    parser = argparse.ArgumentParser(description="Summarize the folds generated by a config")
    parser.add_argument("--config", required=True, help="Path to fold config YAML")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--data", help="CSV or parquet table to partition")
    source.add_argument("--n", type=int, help="Dataset size (no grouping columns)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(
        level="DEBUG" if args.debug else "INFO",
        config=config,
        seed=config.get("folds", {}).get("seed", config.get("random_state")),
    )
    logger = get_logger(__name__)
    logger.info("Describing folds", extra={"config_path": args.config})

    try:
        data = read_table(args.data) if args.data is not None else None
        folds = create_folds_from_config(config, data=data, n=args.n)
    except (FoldCVError, ValueError, OSError) as e:
        logger.error(f"Could not generate folds: {e}")
        return 1

    summary = folds_to_frame(folds)
    print(summary.to_string(index=False))
    logger.info(
        f"Generated {len(folds)} folds",
        extra={"n_folds": len(folds), "fold_fun": config.get("folds", {}).get("fold_fun")},
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
