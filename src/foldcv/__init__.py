"""foldcv package exports."""

from .combine import MergeStrategy, combine_results, infer_strategy
from .context import (
    bind_fold,
    current_fold,
    current_fold_index,
    current_training,
    current_validation,
    has_bound_fold,
    with_fold,
)
from .errors import (
    DegenerateFoldError,
    FoldConfigError,
    FoldCVError,
    InconsistentFieldsError,
    InvalidResultRecordError,
    MergeShapeMismatchError,
    NoFoldBoundError,
    UnsupportedContainerKind,
)
from .executor import cross_validate, map_folds
from .folds import (
    Fold,
    FoldConfig,
    available_fold_functions,
    check_fold_sequence,
    folds_bootstrap,
    folds_loo,
    folds_montecarlo,
    folds_resubstitution,
    folds_rolling_origin,
    folds_rolling_window,
    folds_to_frame,
    folds_vfold,
    make_folds,
    make_repeated_folds,
)
from .indexing import container_length, resolve
from .splitter import FoldSplitter

__all__ = [
    "DegenerateFoldError",
    "Fold",
    "FoldCVError",
    "FoldConfig",
    "FoldConfigError",
    "FoldSplitter",
    "InconsistentFieldsError",
    "InvalidResultRecordError",
    "MergeShapeMismatchError",
    "MergeStrategy",
    "NoFoldBoundError",
    "UnsupportedContainerKind",
    "available_fold_functions",
    "bind_fold",
    "check_fold_sequence",
    "combine_results",
    "container_length",
    "cross_validate",
    "current_fold",
    "current_fold_index",
    "current_training",
    "current_validation",
    "folds_bootstrap",
    "folds_loo",
    "folds_montecarlo",
    "folds_resubstitution",
    "folds_rolling_origin",
    "folds_rolling_window",
    "folds_to_frame",
    "folds_vfold",
    "has_bound_fold",
    "infer_strategy",
    "make_folds",
    "make_repeated_folds",
    "map_folds",
    "resolve",
    "with_fold",
]
