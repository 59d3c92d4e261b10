"""
Centralized Parameters for the Employment Clustering Post

This module provides a single place to define the k-means post parameters.
Simple, clean, and easy to modify without unnecessary complexity.
"""

# =============================================================================
# DATA FILTERING PARAMETERS
# =============================================================================

# Occupations with fewer people employed (mean over years) are dropped
MIN_TOTAL_EMPLOYED = 1_000

# race_gender values pivoted into demographic proportion columns
DEMOGRAPHIC_GROUPS = ("Women", "Black or African American", "Asian")

# race_gender value holding the overall head count
TOTAL_GROUP = "TOTAL"

# =============================================================================
# CLUSTERING PARAMETERS
# =============================================================================

# Number of clusters for the first illustrative fit
N_CLUSTERS = 3

# Range of cluster numbers explored for the elbow plot (inclusive)
MIN_CLUSTERS = 1
MAX_CLUSTERS = 9

# Number of clusters for the final, interactive fit
FINAL_N_CLUSTERS = 5

# Random state for reproducible results
RANDOM_STATE = 42

# k-means restarts
N_INIT = 10

# =============================================================================
# OUTPUT AND VISUALIZATION
# =============================================================================

# Axes of the scatter plots (columns of the demographics table)
SCATTER_X = "total"
SCATTER_Y = "women"

EXPORT_RESULTS = True


def get_clustering_params() -> dict:
    """Return the parameters above as a dictionary."""
    return {
        'min_total_employed': MIN_TOTAL_EMPLOYED,
        'demographic_groups': DEMOGRAPHIC_GROUPS,
        'n_clusters': N_CLUSTERS,
        'min_clusters': MIN_CLUSTERS,
        'max_clusters': MAX_CLUSTERS,
        'final_n_clusters': FINAL_N_CLUSTERS,
        'random_state': RANDOM_STATE,
        'n_init': N_INIT,
        'scatter_x': SCATTER_X,
        'scatter_y': SCATTER_Y,
        'export_results': EXPORT_RESULTS,
    }
