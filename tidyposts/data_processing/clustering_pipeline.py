"""
Employment Demographics k-means Pipeline

Structured pipeline behind the k-means post: load the BLS employment table,
tidy it, fit k-means, explore k, fit the final clustering and publish.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from dotenv import load_dotenv
from sklearn.cluster import KMeans

from ..data_connect.http_connector import HttpCsvConnector, fetch_dataset
from ..exceptions import PipelineStateError
from . import clustering_params as params
from .clustering_utils import (
    KScanResult,
    augment_kmeans,
    fit_kmeans,
    glance_kmeans,
    prepare_features,
    save_artifacts,
    scan_k,
    tidy_kmeans,
)
from .clustering_visualization_utils import (
    interactive_cluster_scatter,
    plot_assignments_by_k,
    plot_cluster_scatter,
    plot_elbow,
    save_interactive,
)
from .employment_features import employment_demographics, tidy_employment
from .export_utils import export_post_tables
from .report_utils import Code, Figure, Heading, Interactive, Paragraph, Table, render_post_html, save_figure

load_dotenv()

_LOG = logging.getLogger(__name__)

POST_NAME = "employment_kmeans"
POST_TITLE = "Tidy k-means clustering to understand employment demographics"


@dataclass
class EmploymentClusteringPipeline:
    """
    k-means clustering of occupations by demographic make-up.
    """

    # Configuration
    min_total_employed: float = params.MIN_TOTAL_EMPLOYED
    demographic_groups: Tuple[str, ...] = params.DEMOGRAPHIC_GROUPS
    n_clusters: int = params.N_CLUSTERS
    final_n_clusters: int = params.FINAL_N_CLUSTERS
    min_clusters: int = params.MIN_CLUSTERS
    max_clusters: int = params.MAX_CLUSTERS
    random_state: int = params.RANDOM_STATE
    n_init: int = params.N_INIT
    scatter_x: str = params.SCATTER_X
    scatter_y: str = params.SCATTER_Y
    connector: Optional[HttpCsvConnector] = field(default=None, repr=False)
    force_download: bool = False

    # Data containers
    raw: Optional[pd.DataFrame] = field(default=None, repr=False)
    employed_tidy: Optional[pd.DataFrame] = field(default=None, repr=False)
    demographics: Optional[pd.DataFrame] = field(default=None, repr=False)
    X: Optional[np.ndarray] = field(default=None, repr=False)
    feature_columns: Optional[List[str]] = field(default=None, repr=False)

    # Results containers
    initial_model: Optional[KMeans] = field(default=None, repr=False)
    final_model: Optional[KMeans] = field(default=None, repr=False)
    results: Dict[str, pd.DataFrame] = field(default_factory=dict, repr=False)
    scan: Optional[KScanResult] = field(default=None, repr=False)
    figures: Dict[str, Any] = field(default_factory=dict, repr=False)
    export_files: Dict[str, str] = field(default_factory=dict)

    # Pipeline state
    _data_loaded: bool = field(default=False, init=False, repr=False)
    _features_prepared: bool = field(default=False, init=False, repr=False)
    _final_fitted: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        _LOG.info(
            "Employment clustering pipeline: k=%s, final k=%s, k range %s..%s",
            self.n_clusters, self.final_n_clusters, self.min_clusters, self.max_clusters,
        )

    @classmethod
    def from_params(cls, **overrides) -> "EmploymentClusteringPipeline":
        """Build a pipeline from get_clustering_params(), applying keyword overrides."""
        names = {f.name for f in fields(cls) if f.init}
        config = {k: v for k, v in params.get_clustering_params().items() if k in names}
        config.update(overrides)
        return cls(**config)

    def _require(self, flag: bool, step: str) -> None:
        if not flag:
            raise PipelineStateError(f"Call {step}() first.")

    # Steps
    def load_data(self, employed: Optional[pd.DataFrame] = None) -> pd.DataFrame:
        """Use ``employed`` when given, otherwise download the public CSV."""
        if employed is None:
            employed = fetch_dataset("employed", self.connector, force=self.force_download)
        self.raw = employed
        self._data_loaded = True
        _LOG.info("Loaded employment data with %s rows", f"{len(employed):,}")
        return employed

    def prepare_features(self) -> pd.DataFrame:
        self._require(self._data_loaded, "load_data")
        self.employed_tidy = tidy_employment(self.raw)
        self.demographics = employment_demographics(
            self.employed_tidy, min_total=self.min_total_employed, groups=self.demographic_groups
        )
        self.X, self.feature_columns = prepare_features(self.demographics)
        self._features_prepared = True
        return self.demographics

    def fit_initial(self) -> Dict[str, pd.DataFrame]:
        """First illustrative fit, summarised with tidy / augment / glance."""
        self._require(self._features_prepared, "prepare_features")
        self.initial_model = fit_kmeans(self.X, self.n_clusters, self.random_state, self.n_init)
        self.results["tidy"] = tidy_kmeans(self.initial_model, self.feature_columns, self.X)
        self.results["augment"] = augment_kmeans(self.initial_model, self.demographics)
        self.results["glance"] = glance_kmeans(self.initial_model, self.X)
        return self.results

    def explore_k(self) -> KScanResult:
        self._require(self._features_prepared, "prepare_features")
        self.scan = scan_k(
            self.demographics,
            k_range=range(self.min_clusters, self.max_clusters + 1),
            random_state=self.random_state,
            n_init=self.n_init,
        )
        self.results["clusterings"] = self.scan.clusterings
        return self.scan

    def fit_final(self) -> pd.DataFrame:
        self._require(self._features_prepared, "prepare_features")
        self.final_model = fit_kmeans(self.X, self.final_n_clusters, self.random_state, self.n_init)
        self.results["final_augment"] = augment_kmeans(self.final_model, self.demographics)
        self.results["final_tidy"] = tidy_kmeans(self.final_model, self.feature_columns, self.X)
        self._final_fitted = True
        return self.results["final_augment"]

    def build_figures(self) -> Dict[str, Any]:
        self._require(self._final_fitted and self.scan is not None, "explore_k and fit_final")
        self.figures = {
            "initial_scatter": plot_cluster_scatter(
                self.results["augment"], x=self.scatter_x, y=self.scatter_y,
                title=f"k-means with {self.n_clusters} clusters",
            ),
            "elbow": plot_elbow(self.scan.clusterings),
            "assignments_by_k": plot_assignments_by_k(self.scan.assignments, x=self.scatter_x, y=self.scatter_y),
            "final_interactive": interactive_cluster_scatter(
                self.results["final_augment"], x=self.scatter_x, y=self.scatter_y
            ),
        }
        return self.figures

    def close_figures(self) -> None:
        """Release the matplotlib figures held in ``figures``."""
        for fig in self.figures.values():
            if isinstance(fig, plt.Figure):
                plt.close(fig)

    def post_blocks(self) -> list:
        tidy = self.results["tidy"]
        glance = self.results["glance"]
        return [
            Heading("Explore the data"),
            Paragraph(
                "Employment counts are averaged over years for every combination of industry, "
                "occupation and demographic group, then pivoted so each occupation is one row "
                "with the proportion of women, Black or African American and Asian workers and "
                f"the log of its total head count. Occupations with {self.min_total_employed:,.0f} "
                "people or fewer are dropped and every column is scaled."
            ),
            Table(self.demographics, caption="Scaled employment demographics (first rows)", max_rows=10),
            Heading("Implement k-means clustering"),
            Code(f"model = fit_kmeans(X, n_clusters={self.n_clusters}, random_state={self.random_state})"),
            Paragraph("tidy_kmeans summarises each cluster: its center, size and within-cluster sum of squares."),
            Table(tidy, caption="Per-cluster summary"),
            Paragraph("glance_kmeans summarises the whole clustering in one row."),
            Table(glance, caption="Model summary"),
            Figure(self.figures["initial_scatter"], caption="Occupations colored by cluster"),
            Heading("Choosing k"),
            Paragraph(
                f"Fitting k-means for k = {self.min_clusters} to {self.max_clusters} and plotting the total "
                "within-cluster sum of squares shows where adding clusters stops paying off."
            ),
            Figure(self.figures["elbow"], caption="Elbow plot"),
            Figure(self.figures["assignments_by_k"], caption="Assignments for each k"),
            Heading("Final clustering"),
            Paragraph(
                f"With k = {self.final_n_clusters}, hover over a point to see which occupation it is."
            ),
            Interactive(self.figures["final_interactive"], caption="Interactive cluster scatter"),
        ]

    def export(self, output_dir: Optional[str | Path] = None) -> Dict[str, str]:
        self._require(bool(self.figures), "build_figures")
        output_dir = Path(output_dir or os.getenv("TIDYPOSTS_OUTPUT_DIR", "output")) / POST_NAME
        sheets = {
            "demographics": self.demographics,
            "tidy": self.results["tidy"],
            "glance": self.results["glance"],
            "clusterings": self.scan.clusterings,
            "final_assignments": self.results["final_augment"],
        }
        self.export_files["workbook"] = export_post_tables(POST_NAME, sheets, str(output_dir))
        self.export_files["widget"] = str(
            save_interactive(self.figures["final_interactive"], output_dir / "final_clusters.html")
        )
        save_artifacts(
            self.final_model,
            {"n_clusters": self.final_n_clusters, "features": self.feature_columns,
             "random_state": self.random_state},
            output_dir / "model",
        )
        self.export_files["model"] = str(output_dir / "model")
        for name, fig in self.figures.items():
            if isinstance(fig, plt.Figure):
                self.export_files[f"figure_{name}"] = str(save_figure(fig, output_dir / "figures" / f"{name}.png"))
        post_path = output_dir / f"{POST_NAME}.html"
        render_post_html(POST_TITLE, self.post_blocks(), post_path)
        self.export_files["post"] = str(post_path)
        return self.export_files

    def run(
        self,
        employed: Optional[pd.DataFrame] = None,
        output_dir: Optional[str | Path] = None,
        export: bool = params.EXPORT_RESULTS,
    ) -> Dict[str, pd.DataFrame]:
        """Run every step; returns the result tables.

        Figures are only built when exporting; call build_figures() to get
        them without writing anything.
        """
        self.load_data(employed)
        self.prepare_features()
        self.fit_initial()
        self.explore_k()
        self.fit_final()
        if export:
            self.build_figures()
            try:
                self.export(output_dir)
            finally:
                self.close_figures()
        return self.results
