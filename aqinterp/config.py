# config.py
# Defaults for the interpolation / cross-validation workflow.
# Functions that take an ``*_override`` (or plain keyword) argument fall back
# to these values when it is None.

# ---------------------------
# Reproducibility
# ---------------------------
SEED = 42
N_FOLDS = 5

# ---------------------------
# Neighbour based estimators
# ---------------------------
KNN_NMAX = 5
IDW_NMAX = 8
IDW_POWER = 2.0

# query locations are processed in blocks of this many rows
PREDICT_CHUNK_SIZE = 2048

# ---------------------------
# IDW optimizer (Nelder-Mead)
# ---------------------------
IDW_INITIAL_GUESS = (8, 0.5)
IDW_MIN_NMAX = 1
IDW_MIN_POWER = 0.001
# first simplex step along (nmax, power)
IDW_SIMPLEX_STEP = (2.0, 0.5)
OPTIMIZER_MAX_ITER = 200
OPTIMIZER_XATOL = 1e-3
OPTIMIZER_FATOL = 1e-4

# ---------------------------
# Kriging
# ---------------------------
VARIOGRAM_MODELS = ("spherical", "exponential", "gaussian")
VARIOGRAM_MODEL = "auto"
N_LAGS = 6
MIN_VARIOGRAM_BINS = 3
VARIOGRAM_MAX_NFEV = 2000
# lower bound on the gaussian nugget, as a fraction of the largest binned semivariance
GAUSSIAN_NUGGET_FLOOR = 1e-3

# ---------------------------
# Validation
# ---------------------------
# warn when more than this share of held-out predictions is non-finite
NONFINITE_WARN_FRACTION = 0.5

# ---------------------------
# Grid
# ---------------------------
GRID_RESOLUTION = 100

verbose = False
