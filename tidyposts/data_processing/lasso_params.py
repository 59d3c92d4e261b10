"""
Centralized Parameters for the NBER Paper Title Classification Post
"""

# =============================================================================
# DATA
# =============================================================================

ID_COLUMN = 'paper'
TEXT_COLUMN = 'title'
LABEL_COLUMN = 'program_category'

# Keep only papers assigned to exactly one program category
SINGLE_CATEGORY_ONLY = True

# =============================================================================
# RESAMPLING
# =============================================================================

TRAIN_PROP = 0.75
N_FOLDS = 10

# Balance classes to the minority class inside every analysis set
DOWNSAMPLE = True

# =============================================================================
# FEATURES & MODEL
# =============================================================================

# Keep the most frequent tokens only
MAX_TOKENS = 200

# Lasso penalty grid on log10 scale (glmnet-style lambda)
PENALTY_RANGE = (-5.0, 0.0)
PENALTY_LEVELS = 20

MAX_ITER = 1000

# Metric used to pick the penalty ('roc_auc' or 'accuracy')
SELECTION_METRIC = 'roc_auc'

# Pick the simplest model within one standard error of the best
SELECT_BY_ONE_STD_ERR = True

# Parallel workers for cross-validation fits (-1 = all cores)
N_JOBS = -1

RANDOM_STATE = 123

# =============================================================================
# OUTPUT
# =============================================================================

TOP_N_TERMS = 10
TOP_N_WORDS = 10
EXPORT_RESULTS = True


def get_lasso_params() -> dict:
    """Return the parameters above as a dictionary."""
    return {
        'train_prop': TRAIN_PROP,
        'n_folds': N_FOLDS,
        'downsample': DOWNSAMPLE,
        'max_tokens': MAX_TOKENS,
        'penalty_range': PENALTY_RANGE,
        'penalty_levels': PENALTY_LEVELS,
        'max_iter': MAX_ITER,
        'selection_metric': SELECTION_METRIC,
        'one_std_err': SELECT_BY_ONE_STD_ERR,
        'n_jobs': N_JOBS,
        'random_state': RANDOM_STATE,
        'top_n_terms': TOP_N_TERMS,
        'top_n_words': TOP_N_WORDS,
        'export_results': EXPORT_RESULTS,
    }
