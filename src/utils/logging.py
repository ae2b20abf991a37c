"""
Centralized logging utilities for foldcv.

- JSON line format on stdout
- UTC timestamps taken from the event time
- INFO level by default, DEBUG on --debug flag
- Every line carries config_hash and seed; lines emitted while a fold is
  bound also carry fold_index
"""

import hashlib
import json
import logging
import sys
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np

from src.foldcv.context import current_fold_index, has_bound_fold

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class FoldContextFilter(logging.Filter):
    """Attach ``fold_index`` to records emitted while a fold is bound."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_bound_fold() and not hasattr(record, "fold_index"):
            record.fold_index = current_fold_index()
        return True


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines with run metadata."""

    def __init__(self, extra_fields: dict[str, Any] | None = None):
        """Initialize JSON formatter.

        Args:
            extra_fields: Fields included in every line (config_hash, seed, ...)
        """
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **self.extra_fields,
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        payload.update(
            (key, value) for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        )
        return json.dumps(payload, default=str)


def _normalize_for_hash(obj: Any) -> Any:
    """Normalize a config value to a deterministic, JSON-serializable form.

    Raises:
        TypeError: If the object cannot be deterministically serialized
    """
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return [_normalize_for_hash(item) for item in obj.tolist()]
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, Enum):
        return _normalize_for_hash(obj.value)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): _normalize_for_hash(v) for k, v in sorted(obj.items())}
    if isinstance(obj, (list, tuple)):
        return [_normalize_for_hash(item) for item in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(_normalize_for_hash(item) for item in obj)

    msg = f"Cannot deterministically hash object of type {type(obj).__name__}"
    raise TypeError(msg)


def compute_config_hash(config: dict[str, Any]) -> str:
    """Compute a deterministic hash of a configuration.

    Returns:
        First 16 hex chars of the SHA-256 of the normalized config

    Raises:
        TypeError: If config contains non-serializable types
    """
    normalized = _normalize_for_hash(config)
    return hashlib.sha256(json.dumps(normalized, sort_keys=True).encode()).hexdigest()[:16]


def setup_logging(
    level: str = "INFO",
    config: dict[str, Any] | None = None,
    seed: int | None = None,
    extra_fields: dict[str, Any] | None = None,
) -> logging.Logger:
    """Route the root logger to stdout as JSON lines.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        config: Configuration dict to hash and include
        seed: Fold generation seed
        extra_fields: Additional custom fields to include

    Returns:
        Configured root logger
    """
    metadata: dict[str, Any] = {"seed": seed}
    if config is not None:
        metadata["config_hash"] = compute_config_hash(config)
    if extra_fields:
        metadata.update(extra_fields)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(extra_fields=metadata))
    handler.addFilter(FoldContextFilter())
    root_logger.addHandler(handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name (typically __name__)."""
    return logging.getLogger(name)
