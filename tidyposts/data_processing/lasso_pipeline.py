"""
NBER Paper Title Lasso Pipeline

Structured pipeline behind the multiclass lasso post: join NBER papers to
their program categories, tune an L1 multinomial regression on tf-idf title
features, evaluate on held-out papers and publish.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import pandas as pd
from dotenv import load_dotenv

from ..data_connect.http_connector import HttpCsvConnector, fetch_dataset
from ..exceptions import PipelineStateError
from . import lasso_params as params
from .export_utils import export_post_tables
from .lasso_utils import (
    Fold,
    LastFitResult,
    collect_metrics,
    conf_mat,
    initial_split,
    lasso_coefficients,
    last_fit,
    penalty_grid,
    roc_curves,
    select_best,
    select_by_one_std_err,
    top_terms,
    tune_grid,
    vfold_cv,
)
from .lasso_visualization_utils import (
    plot_confusion_matrix,
    plot_roc_curves,
    plot_top_terms,
    plot_top_words,
    plot_tuning_metrics,
)
from .nber_features import category_counts, join_papers, single_category_papers
from .report_utils import Code, Figure, Heading, Paragraph, Table, render_post_html, save_figure
from .text_features import top_words, unnest_tokens

load_dotenv()

_LOG = logging.getLogger(__name__)

POST_NAME = "nber_lasso"
POST_TITLE = "Multiclass lasso regression for NBER paper titles"


@dataclass
class NberLassoPipeline:
    """
    Predict an NBER paper's program category from its title.
    """

    # Configuration
    train_prop: float = params.TRAIN_PROP
    n_folds: int = params.N_FOLDS
    max_tokens: int = params.MAX_TOKENS
    penalty_range: Tuple[float, float] = params.PENALTY_RANGE
    penalty_levels: int = params.PENALTY_LEVELS
    selection_metric: str = params.SELECTION_METRIC
    one_std_err: bool = params.SELECT_BY_ONE_STD_ERR
    downsample: bool = params.DOWNSAMPLE
    max_iter: int = params.MAX_ITER
    n_jobs: int = params.N_JOBS
    random_state: int = params.RANDOM_STATE
    top_n_terms: int = params.TOP_N_TERMS
    top_n_words: int = params.TOP_N_WORDS
    connector: Optional[HttpCsvConnector] = field(default=None, repr=False)
    force_download: bool = False

    # Data containers
    papers: Optional[pd.DataFrame] = field(default=None, repr=False)
    programs: Optional[pd.DataFrame] = field(default=None, repr=False)
    paper_programs: Optional[pd.DataFrame] = field(default=None, repr=False)
    data: Optional[pd.DataFrame] = field(default=None, repr=False)
    train: Optional[pd.DataFrame] = field(default=None, repr=False)
    test: Optional[pd.DataFrame] = field(default=None, repr=False)
    folds: Optional[List[Fold]] = field(default=None, repr=False)

    # Results containers
    tuning: Optional[pd.DataFrame] = field(default=None, repr=False)
    metrics: Optional[pd.DataFrame] = field(default=None, repr=False)
    selected: Optional[dict] = None
    final: Optional[LastFitResult] = field(default=None, repr=False)
    results: Dict[str, pd.DataFrame] = field(default_factory=dict, repr=False)
    figures: Dict[str, Any] = field(default_factory=dict, repr=False)
    export_files: Dict[str, str] = field(default_factory=dict)

    # Pipeline state
    _data_loaded: bool = field(default=False, init=False, repr=False)
    _data_prepared: bool = field(default=False, init=False, repr=False)
    _tuned: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        _LOG.info(
            "NBER lasso pipeline: %s folds, %s penalties in 1e%s..1e%s, max_tokens=%s",
            self.n_folds, self.penalty_levels, self.penalty_range[0], self.penalty_range[1], self.max_tokens,
        )

    @classmethod
    def from_params(cls, **overrides) -> "NberLassoPipeline":
        """Build a pipeline from get_lasso_params(), applying keyword overrides."""
        names = {f.name for f in fields(cls) if f.init}
        config = {k: v for k, v in params.get_lasso_params().items() if k in names}
        config.update(overrides)
        return cls(**config)

    def _require(self, flag: bool, step: str) -> None:
        if not flag:
            raise PipelineStateError(f"Call {step}() first.")

    # Steps
    def load_data(
        self,
        papers: Optional[pd.DataFrame] = None,
        programs: Optional[pd.DataFrame] = None,
        paper_programs: Optional[pd.DataFrame] = None,
    ) -> None:
        """Use the given tables, downloading whichever are missing."""
        self.papers = papers if papers is not None else fetch_dataset(
            "nber_papers", self.connector, force=self.force_download)
        self.programs = programs if programs is not None else fetch_dataset(
            "nber_programs", self.connector, force=self.force_download)
        self.paper_programs = paper_programs if paper_programs is not None else fetch_dataset(
            "nber_paper_programs", self.connector, force=self.force_download)
        self._data_loaded = True
        _LOG.info("Loaded %s papers, %s programs, %s memberships",
                  len(self.papers), len(self.programs), len(self.paper_programs))

    def prepare_data(self) -> pd.DataFrame:
        self._require(self._data_loaded, "load_data")
        joined = join_papers(self.papers, self.programs, self.paper_programs)
        self.data = single_category_papers(joined) if params.SINGLE_CATEGORY_ONLY else joined
        self.results["category_counts"] = category_counts(self.data)
        self.results["top_words"] = top_words(unnest_tokens(self.data), n=self.top_n_words)
        self._data_prepared = True
        return self.data

    def split(self) -> None:
        self._require(self._data_prepared, "prepare_data")
        self.train, self.test = initial_split(
            self.data, prop=self.train_prop, random_state=self.random_state
        )
        self.folds = vfold_cv(self.train, v=self.n_folds, random_state=self.random_state)
        _LOG.info("Split: %s training / %s testing papers", len(self.train), len(self.test))

    def tune(self) -> pd.DataFrame:
        self._require(self.folds is not None, "split")
        grid = penalty_grid(self.penalty_range, self.penalty_levels)
        self.tuning = tune_grid(
            self.train, grid, self.folds,
            max_tokens=self.max_tokens, max_iter=self.max_iter, balance=self.downsample,
            n_jobs=self.n_jobs, random_state=self.random_state,
        )
        self.metrics = collect_metrics(self.tuning)
        chooser = select_by_one_std_err if self.one_std_err else select_best
        self.selected = chooser(self.metrics, self.selection_metric)
        self.results["tuning_metrics"] = self.metrics
        self._tuned = True
        _LOG.info("Selected penalty %.3e (%s mean %.3f)",
                  self.selected["penalty"], self.selection_metric, self.selected["mean"])
        return self.metrics

    def fit_final(self) -> LastFitResult:
        self._require(self._tuned, "tune")
        self.final = last_fit(
            self.train, self.test, float(self.selected["penalty"]),
            max_tokens=self.max_tokens, max_iter=self.max_iter, balance=self.downsample,
            random_state=self.random_state,
        )
        coefs = lasso_coefficients(self.final.pipeline)
        self.results.update({
            "test_metrics": self.final.metrics,
            "predictions": self.final.predictions,
            "conf_mat": conf_mat(self.final.predictions),
            "roc_curves": roc_curves(self.final.predictions),
            "coefficients": coefs,
            "top_terms": top_terms(coefs, n=self.top_n_terms),
        })
        return self.final

    def build_figures(self) -> Dict[str, Any]:
        self._require(self.final is not None, "fit_final")
        self.figures = {
            "top_words": plot_top_words(self.results["top_words"]),
            "tuning": plot_tuning_metrics(self.metrics, selected_penalty=self.final.penalty),
            "conf_mat": plot_confusion_matrix(self.results["conf_mat"]),
            "roc": plot_roc_curves(self.results["roc_curves"]),
            "top_terms": plot_top_terms(self.results["top_terms"]),
        }
        return self.figures

    def close_figures(self) -> None:
        """Release the matplotlib figures held in ``figures``."""
        for fig in self.figures.values():
            plt.close(fig)

    def post_blocks(self) -> list:
        n_nonzero = int((self.results["coefficients"]["estimate"] != 0).sum())
        return [
            Heading("Explore the data"),
            Paragraph(
                "Each NBER working paper belongs to one or more programs, and programs roll up into "
                "three broad categories. Papers with exactly one category are kept, so the task is a "
                "three-way classification from the title alone."
            ),
            Table(self.results["category_counts"], caption="Papers per program category"),
            Figure(self.figures["top_words"], caption="Most common title words per category"),
            Heading("Build a model"),
            Paragraph(
                f"Titles are tokenized and the {self.max_tokens} most frequent tokens weighted by "
                "tf-idf. Classes are downsampled to the smallest category inside each resample, and an "
                f"L1-penalized multinomial regression is tuned over {self.penalty_levels} penalties with "
                f"{self.n_folds}-fold stratified cross-validation."
            ),
            Code(
                "grid = penalty_grid(range=(%s, %s), levels=%s)\n"
                "tuning = tune_grid(train, grid, vfold_cv(train, v=%s), n_jobs=%s)"
                % (self.penalty_range[0], self.penalty_range[1], self.penalty_levels, self.n_folds, self.n_jobs)
            ),
            Figure(self.figures["tuning"], caption="Tuning results"),
            Table(pd.DataFrame([self.selected]), caption="Selected penalty"),
            Heading("Evaluate on the test set"),
            Table(self.final.metrics, caption="Test set metrics"),
            Figure(self.figures["conf_mat"], caption="Confusion matrix"),
            Figure(self.figures["roc"], caption="ROC curves"),
            Heading("Which words matter?"),
            Paragraph(f"The lasso keeps {n_nonzero} non-zero coefficients (intercepts included)."),
            Figure(self.figures["top_terms"], caption="Top terms per category"),
        ]

    def export(self, output_dir: Optional[str | Path] = None) -> Dict[str, str]:
        self._require(bool(self.figures), "build_figures")
        output_dir = Path(output_dir or os.getenv("TIDYPOSTS_OUTPUT_DIR", "output")) / POST_NAME
        sheets = {name: self.results[name] for name in (
            "category_counts", "tuning_metrics", "test_metrics", "conf_mat", "top_terms", "predictions",
        )}
        self.export_files["workbook"] = export_post_tables(
            POST_NAME, sheets, str(output_dir), thousand_cols=["n"]
        )
        for name, fig in self.figures.items():
            self.export_files[f"figure_{name}"] = str(save_figure(fig, output_dir / "figures" / f"{name}.png"))
        post_path = output_dir / f"{POST_NAME}.html"
        render_post_html(POST_TITLE, self.post_blocks(), post_path)
        self.export_files["post"] = str(post_path)
        return self.export_files

    def run(
        self,
        papers: Optional[pd.DataFrame] = None,
        programs: Optional[pd.DataFrame] = None,
        paper_programs: Optional[pd.DataFrame] = None,
        output_dir: Optional[str | Path] = None,
        export: bool = params.EXPORT_RESULTS,
    ) -> Dict[str, pd.DataFrame]:
        """Run every step; returns the result tables.

        Figures are only built when exporting; call build_figures() to get
        them without writing anything.
        """
        self.load_data(papers, programs, paper_programs)
        self.prepare_data()
        self.split()
        self.tune()
        self.fit_final()
        if export:
            self.build_figures()
            try:
                self.export(output_dir)
            finally:
                self.close_figures()
        return self.results
