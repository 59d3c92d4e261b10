"""
Lasso Utilities for the NBER Paper Title Post

The model is an L1-penalized multinomial logistic regression over tf-idf
title features. scikit-learn provides the solver, joblib runs the
cross-validation fits in parallel. The glmnet-style penalty ``lambda`` used
throughout maps to scikit-learn's inverse regularization strength as
``C = 1 / (lambda * n_samples)``. That matches glmnet's objective but not
its scale: glmnet standardizes predictors before penalizing, while the
l2-normalized tf-idf columns go into LogisticRegression unscaled, so a given
``lambda`` shrinks rare terms harder here and the selected penalty is not
directly comparable with a glmnet fit.

Outputs are tidy tables:

  - tune_grid:      penalty, fold, .metric, value
  - collect_metrics: penalty, .metric, mean, n, std_err
  - last_fit:       predictions with truth, .pred_class and .pred_<class>
  - conf_mat:       truth, prediction, n
  - roc_curves:     .level, .threshold, specificity, sensitivity
  - lasso_coefficients: class, term, estimate
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import accuracy_score, roc_auc_score, roc_curve
from sklearn.model_selection import StratifiedKFold, train_test_split
from sklearn.pipeline import Pipeline

from ..exceptions import DataValidationError
from ..utils.validate import expect_columns
from . import lasso_params as params
from .text_features import make_tfidf

_LOG = logging.getLogger(__name__)

METRICS = ("roc_auc", "accuracy")
INTERCEPT_TERM = "(Intercept)"


@dataclass
class Fold:
    fold_id: str
    analysis: np.ndarray
    assessment: np.ndarray


@dataclass
class LastFitResult:
    pipeline: Pipeline
    metrics: pd.DataFrame
    predictions: pd.DataFrame
    penalty: float


# ----------------------------------------------------------------------
# Resampling
# ----------------------------------------------------------------------

def initial_split(
    df: pd.DataFrame,
    strata: str = params.LABEL_COLUMN,
    prop: float = params.TRAIN_PROP,
    random_state: int = params.RANDOM_STATE,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Stratified train/test split."""
    if not 0 < prop < 1:
        raise ValueError("prop must be between 0 and 1")
    train, test = train_test_split(df, train_size=prop, stratify=df[strata], random_state=random_state)
    return train.reset_index(drop=True), test.reset_index(drop=True)


def vfold_cv(
    df: pd.DataFrame,
    strata: str = params.LABEL_COLUMN,
    v: int = params.N_FOLDS,
    random_state: int = params.RANDOM_STATE,
) -> List[Fold]:
    """Stratified v-fold cross-validation splits (positional indices)."""
    min_class = int(df[strata].value_counts().min())
    if v < 2 or v > min_class:
        raise DataValidationError(f"v={v} folds needs 2 <= v <= smallest class size ({min_class})")
    skf = StratifiedKFold(n_splits=v, shuffle=True, random_state=random_state)
    width = len(str(v))
    return [
        Fold(f"Fold{i:0{width}d}", analysis, assessment)
        for i, (analysis, assessment) in enumerate(skf.split(df, df[strata]), start=1)
    ]


def downsample(
    df: pd.DataFrame,
    label_col: str = params.LABEL_COLUMN,
    random_state: int = params.RANDOM_STATE,
) -> pd.DataFrame:
    """Sample every class down to the size of the smallest one."""
    n_min = int(df[label_col].value_counts().min())
    return df.groupby(label_col).sample(n=n_min, random_state=random_state).sort_index()


# ----------------------------------------------------------------------
# Model
# ----------------------------------------------------------------------

def penalty_grid(
    penalty_range: Tuple[float, float] = params.PENALTY_RANGE,
    levels: int = params.PENALTY_LEVELS,
) -> np.ndarray:
    """Regular grid of penalties, evenly spaced on the log10 scale."""
    lo, hi = penalty_range
    if levels < 1 or lo > hi:
        raise ValueError("penalty grid needs levels >= 1 and range[0] <= range[1]")
    return np.logspace(lo, hi, levels)


def penalty_to_C(penalty: float, n_samples: int) -> float:
    if penalty <= 0 or n_samples <= 0:
        raise ValueError("penalty and n_samples must be positive")
    return 1.0 / (penalty * n_samples)


def make_lasso_pipeline(
    penalty: float,
    n_samples: int,
    max_tokens: Optional[int] = params.MAX_TOKENS,
    max_iter: int = params.MAX_ITER,
    random_state: int = params.RANDOM_STATE,
) -> Pipeline:
    return Pipeline([
        ("tfidf", make_tfidf(max_tokens)),
        ("lasso", LogisticRegression(
            penalty="l1",
            C=penalty_to_C(penalty, n_samples),
            solver="saga",
            max_iter=max_iter,
            random_state=random_state,
        )),
    ])


def _fit(pipe: Pipeline, text: pd.Series, y: pd.Series) -> Pipeline:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=ConvergenceWarning)
        pipe.fit(text, y)
    return pipe


def _score(y_true: pd.Series, proba: np.ndarray, pred: np.ndarray, classes: Sequence[str]) -> Dict[str, float]:
    if len(classes) == 2:
        auc = roc_auc_score(y_true == classes[1], proba[:, 1])
    else:
        auc = roc_auc_score(y_true, proba, multi_class="ovo", average="macro", labels=list(classes))
    return {"roc_auc": float(auc), "accuracy": float(accuracy_score(y_true, pred))}


def _fit_resample(
    train: pd.DataFrame,
    fold: Fold,
    penalty: float,
    text_col: str,
    label_col: str,
    max_tokens: Optional[int],
    max_iter: int,
    balance: bool,
    random_state: int,
) -> List[dict]:
    analysis = train.iloc[fold.analysis]
    assessment = train.iloc[fold.assessment]
    if balance:
        analysis = downsample(analysis, label_col, random_state)
    pipe = make_lasso_pipeline(penalty, len(analysis), max_tokens, max_iter, random_state)
    _fit(pipe, analysis[text_col], analysis[label_col])
    proba = pipe.predict_proba(assessment[text_col])
    pred = pipe.classes_[proba.argmax(axis=1)]
    scores = _score(assessment[label_col], proba, pred, pipe.classes_)
    return [
        {"penalty": penalty, "fold": fold.fold_id, ".metric": m, "value": v}
        for m, v in scores.items()
    ]


# ----------------------------------------------------------------------
# Tuning
# ----------------------------------------------------------------------

def tune_grid(
    train: pd.DataFrame,
    grid: Sequence[float],
    folds: Sequence[Fold],
    text_col: str = params.TEXT_COLUMN,
    label_col: str = params.LABEL_COLUMN,
    max_tokens: Optional[int] = params.MAX_TOKENS,
    max_iter: int = params.MAX_ITER,
    balance: bool = params.DOWNSAMPLE,
    n_jobs: int = params.N_JOBS,
    random_state: int = params.RANDOM_STATE,
) -> pd.DataFrame:
    """Fit every penalty on every fold and score the assessment sets."""
    expect_columns(train, [text_col, label_col])
    if len(grid) == 0 or len(folds) == 0:
        raise ValueError("tune_grid needs a non-empty grid and at least one fold")
    _LOG.info("Tuning %s penalties x %s folds (n_jobs=%s)", len(grid), len(folds), n_jobs)
    chunks = Parallel(n_jobs=n_jobs)(
        delayed(_fit_resample)(
            train, fold, float(p), text_col, label_col, max_tokens, max_iter, balance, random_state
        )
        for p in grid
        for fold in folds
    )
    rows = [row for chunk in chunks for row in chunk]
    return (
        pd.DataFrame(rows)
        .sort_values(["penalty", ".metric", "fold"])
        .reset_index(drop=True)
    )


def collect_metrics(tuning: pd.DataFrame) -> pd.DataFrame:
    """Average fold metrics per penalty with standard errors."""
    out = (
        tuning.groupby(["penalty", ".metric"], as_index=False)
        .agg(mean=("value", "mean"), n=("value", "size"), std=("value", "std"))
    )
    out["std_err"] = (out["std"] / np.sqrt(out["n"])).fillna(0.0)
    return out.drop(columns="std")


def _metric_rows(metrics: pd.DataFrame, metric: str) -> pd.DataFrame:
    if metric not in METRICS:
        raise ValueError(f"metric must be one of {METRICS}")
    rows = metrics[metrics[".metric"] == metric]
    if rows.empty:
        raise DataValidationError(f"No '{metric}' rows in metrics")
    return rows


def select_best(metrics: pd.DataFrame, metric: str = params.SELECTION_METRIC) -> dict:
    """Row with the highest mean; ties go to the larger penalty."""
    rows = _metric_rows(metrics, metric).sort_values(["mean", "penalty"], ascending=[False, False])
    return rows.iloc[0].to_dict()


def select_by_one_std_err(metrics: pd.DataFrame, metric: str = params.SELECTION_METRIC) -> dict:
    """Largest penalty whose mean is within one standard error of the best."""
    rows = _metric_rows(metrics, metric)
    best = select_best(metrics, metric)
    threshold = best["mean"] - best["std_err"]
    candidates = rows[rows["mean"] >= threshold].sort_values("penalty", ascending=False)
    return candidates.iloc[0].to_dict()


# ----------------------------------------------------------------------
# Final fit & evaluation
# ----------------------------------------------------------------------

def last_fit(
    train: pd.DataFrame,
    test: pd.DataFrame,
    penalty: float,
    text_col: str = params.TEXT_COLUMN,
    label_col: str = params.LABEL_COLUMN,
    id_col: Optional[str] = params.ID_COLUMN,
    max_tokens: Optional[int] = params.MAX_TOKENS,
    max_iter: int = params.MAX_ITER,
    balance: bool = params.DOWNSAMPLE,
    random_state: int = params.RANDOM_STATE,
) -> LastFitResult:
    """Fit on the whole training set once and evaluate on the test set."""
    expect_columns(train, [text_col, label_col])
    expect_columns(test, [text_col, label_col])
    fit_df = downsample(train, label_col, random_state) if balance else train
    pipe = make_lasso_pipeline(penalty, len(fit_df), max_tokens, max_iter, random_state)
    _fit(pipe, fit_df[text_col], fit_df[label_col])

    proba = pipe.predict_proba(test[text_col])
    classes = list(pipe.classes_)
    pred = pipe.classes_[proba.argmax(axis=1)]

    predictions = pd.DataFrame({"truth": test[label_col].to_numpy(), ".pred_class": pred})
    if id_col and id_col in test.columns:
        predictions.insert(0, id_col, test[id_col].to_numpy())
    for i, cls in enumerate(classes):
        predictions[f".pred_{cls}"] = proba[:, i]

    scores = _score(test[label_col], proba, pred, classes)
    metrics = pd.DataFrame({".metric": list(scores), ".estimate": list(scores.values())})
    _LOG.info("Last fit (penalty=%.2e): %s", penalty, ", ".join(f"{k}={v:.3f}" for k, v in scores.items()))
    return LastFitResult(pipeline=pipe, metrics=metrics, predictions=predictions, penalty=penalty)


def prediction_classes(predictions: pd.DataFrame) -> List[str]:
    return [c[len(".pred_"):] for c in predictions.columns if c.startswith(".pred_") and c != ".pred_class"]


def conf_mat(predictions: pd.DataFrame) -> pd.DataFrame:
    """Long confusion matrix: every truth x prediction pair with its count."""
    classes = prediction_classes(predictions)
    counts = predictions.groupby(["truth", ".pred_class"]).size()
    counts.index.names = ["truth", "prediction"]
    full = pd.MultiIndex.from_product([classes, classes], names=["truth", "prediction"])
    return counts.reindex(full, fill_value=0).astype(int).rename("n").reset_index()


def roc_curves(predictions: pd.DataFrame) -> pd.DataFrame:
    """One-vs-rest ROC curve per class."""
    frames = []
    for cls in prediction_classes(predictions):
        y = predictions["truth"] == cls
        if y.nunique() < 2:
            _LOG.warning("Skipping ROC curve for '%s': only one class present", cls)
            continue
        fpr, tpr, thresholds = roc_curve(y, predictions[f".pred_{cls}"])
        frames.append(pd.DataFrame({
            ".level": cls,
            ".threshold": thresholds,
            "specificity": 1.0 - fpr,
            "sensitivity": tpr,
        }))
    if not frames:
        return pd.DataFrame(columns=[".level", ".threshold", "specificity", "sensitivity"])
    return pd.concat(frames, ignore_index=True)


def lasso_coefficients(pipe: Pipeline) -> pd.DataFrame:
    """Tidy coefficients: one row per class x term, intercepts included."""
    terms = list(pipe.named_steps["tfidf"].get_feature_names_out())
    model = pipe.named_steps["lasso"]
    classes = list(model.classes_)
    # binary fits keep one row of coefficients, for the second class
    coef_classes = classes if model.coef_.shape[0] == len(classes) else classes[1:]
    frames = []
    for cls, coef, intercept in zip(coef_classes, model.coef_, model.intercept_):
        frames.append(pd.DataFrame({
            "class": cls,
            "term": [INTERCEPT_TERM] + terms,
            "estimate": np.concatenate([[intercept], coef]),
        }))
    return pd.concat(frames, ignore_index=True)


def top_terms(coefs: pd.DataFrame, n: int = params.TOP_N_TERMS) -> pd.DataFrame:
    """Terms with the largest absolute non-zero coefficient per class."""
    terms = coefs[(coefs["term"] != INTERCEPT_TERM) & (coefs["estimate"] != 0)].copy()
    terms["importance"] = terms["estimate"].abs()
    terms["sign"] = np.where(terms["estimate"] > 0, "POS", "NEG")
    terms = terms.sort_values(["class", "importance"], ascending=[True, False])
    return terms.groupby("class", sort=True).head(n).reset_index(drop=True)
