"""Spatial interpolation and model selection for sparse point sensor data."""

from .errors import (
    InterpolationError,
    InvalidInputError,
    InsufficientDataError,
    VariogramFitError,
    OptimizationNonConvergenceError,
    InterpolationWarning,
)
from .dataset import Observation, PointDataset
from .datasplitter import partition, kfold_splits
from .base import Estimator, NullEstimator, InterpolationResult
from .baseline import NearestSensorEstimator, KNearestNeighborEstimator, IDWEstimator
from .kriging import OrdinaryKrigingEstimator, VariogramModel, VariogramSelector, empirical_variogram, fit_variogram
from .estimators import EstimatorKind, EstimatorConfig, build_estimator
from .validator import CVResult, cross_validate_estimator, rmse, null_rmse, improvement_over_null
from .idw_optimizer import IDWOptimum, optimize_idw
from .grid import Grid, make_grid, grid_for_dataset
from .pipeline import (
    fit_and_predict,
    cross_validate,
    compare_estimators,
    ComparisonReport,
    RankedEntry,
    ModelSelector,
)

__version__ = "0.1.0"
