from .baseline_knn import (
    knn_regress,
    NearestSensorEstimator,
    KNearestNeighborEstimator,
    IDWEstimator,
)
