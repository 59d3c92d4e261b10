"""tidyposts: data and modeling code behind the tidy tutorial posts.

Curated re-exports for notebook ergonomics:

    from tidyposts import EmploymentClusteringPipeline, NberLassoPipeline

    results = EmploymentClusteringPipeline().run(output_dir="output")

Each pipeline downloads its public dataset (cached as parquet), fits its model
and renders a standalone HTML post next to an Excel workbook of the results.
"""
from __future__ import annotations
import logging
from importlib.metadata import version as _v, PackageNotFoundError

from .exceptions import DataFetchError, DataValidationError, PipelineStateError, TidyPostsError
from .data_connect import HttpCsvConnector, fetch_dataset, dataset_url
from .data_processing.employment_features import tidy_employment, employment_demographics
from .data_processing.clustering_utils import (
    KScanResult,
    prepare_features,
    fit_kmeans,
    tidy_kmeans,
    augment_kmeans,
    glance_kmeans,
    scan_k,
)
from .data_processing.nber_features import join_papers, single_category_papers, category_counts
from .data_processing.text_features import tokenize, unnest_tokens, top_words, make_tfidf
from .data_processing.lasso_utils import (
    initial_split,
    vfold_cv,
    downsample,
    penalty_grid,
    make_lasso_pipeline,
    tune_grid,
    collect_metrics,
    select_best,
    select_by_one_std_err,
    last_fit,
    conf_mat,
    roc_curves,
    lasso_coefficients,
    top_terms,
)
from .data_processing.clustering_pipeline import EmploymentClusteringPipeline
from .data_processing.lasso_pipeline import NberLassoPipeline
from .data_processing.report_utils import render_post_html

__all__ = [
    # Errors
    "TidyPostsError", "DataFetchError", "DataValidationError", "PipelineStateError",
    # Data access
    "HttpCsvConnector", "fetch_dataset", "dataset_url",
    # Employment k-means
    "tidy_employment", "employment_demographics",
    "KScanResult", "prepare_features", "fit_kmeans",
    "tidy_kmeans", "augment_kmeans", "glance_kmeans", "scan_k",
    # NBER lasso
    "join_papers", "single_category_papers", "category_counts",
    "tokenize", "unnest_tokens", "top_words", "make_tfidf",
    "initial_split", "vfold_cv", "downsample", "penalty_grid", "make_lasso_pipeline",
    "tune_grid", "collect_metrics", "select_best", "select_by_one_std_err",
    "last_fit", "conf_mat", "roc_curves", "lasso_coefficients", "top_terms",
    # Pipelines & publication
    "EmploymentClusteringPipeline", "NberLassoPipeline", "render_post_html",
]

# Avoid "No handler found" warnings; user configures logging in notebook if desired
logging.getLogger(__name__).addHandler(logging.NullHandler())

try:
    __version__ = _v("tidyposts")
except PackageNotFoundError:
    __version__ = "0.0.0"
