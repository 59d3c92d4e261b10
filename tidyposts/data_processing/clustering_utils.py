"""
Clustering Utilities for the Employment Demographics Post

k-means itself is scikit-learn's. The functions here fit it on the scaled
demographics table and turn the fitted model into tidy tables:

  - tidy_kmeans:    one row per cluster (centers, size, withinss)
  - augment_kmeans: one row per observation (input row + cluster)
  - glance_kmeans:  one row per model (totss, tot_withinss, betweenss, iter)

scan_k repeats the fit over a range of k and stacks the three tables with a
``k`` column, which is what the elbow and facet plots consume.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import joblib
import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.metrics import silhouette_score

from ..utils.validate import expect_non_empty
from . import clustering_params as params

_LOG = logging.getLogger(__name__)

ID_COLUMN = "occupation"
CLUSTER_COLUMN = "cluster"


@dataclass
class KScanResult:
    """Stacked tidy tables from fitting k-means over several k."""
    clusters: pd.DataFrame
    assignments: pd.DataFrame
    clusterings: pd.DataFrame


def prepare_features(
    demo: pd.DataFrame,
    id_col: str = ID_COLUMN,
    feature_cols: Optional[Sequence[str]] = None,
) -> Tuple[np.ndarray, List[str]]:
    """Return the numeric matrix used for clustering and its column names."""
    expect_non_empty(demo, "Clustering input")
    if feature_cols is None:
        feature_cols = [c for c in demo.select_dtypes(include=[np.number]).columns if c != id_col]
    if not feature_cols:
        raise ValueError("No usable feature columns found for clustering.")
    X = demo.loc[:, list(feature_cols)].astype("float64").to_numpy()
    if np.isnan(X).any():
        raise ValueError("Feature matrix contains missing values.")
    return X, list(feature_cols)


def fit_kmeans(
    X: np.ndarray,
    n_clusters: int = params.N_CLUSTERS,
    random_state: int = params.RANDOM_STATE,
    n_init: int = params.N_INIT,
) -> KMeans:
    if n_clusters < 1:
        raise ValueError("n_clusters must be >= 1")
    if n_clusters > len(X):
        raise ValueError(f"n_clusters={n_clusters} exceeds the number of observations ({len(X)})")
    model = KMeans(n_clusters=n_clusters, random_state=random_state, n_init=n_init)
    model.fit(X)
    _LOG.info("k-means k=%s: inertia=%.3f after %s iterations", n_clusters, model.inertia_, model.n_iter_)
    return model


def _within_ss(model: KMeans, X: np.ndarray) -> np.ndarray:
    labels = model.labels_
    centers = model.cluster_centers_
    sq = ((X - centers[labels]) ** 2).sum(axis=1)
    return np.bincount(labels, weights=sq, minlength=model.n_clusters)


def tidy_kmeans(model: KMeans, feature_cols: Sequence[str], X: np.ndarray) -> pd.DataFrame:
    """One row per cluster: center coordinates, size and within-cluster SS."""
    out = pd.DataFrame(model.cluster_centers_, columns=list(feature_cols))
    out["size"] = np.bincount(model.labels_, minlength=model.n_clusters)
    out["withinss"] = _within_ss(model, X)
    out[CLUSTER_COLUMN] = pd.Categorical(range(1, model.n_clusters + 1))
    return out


def augment_kmeans(model: KMeans, data: pd.DataFrame) -> pd.DataFrame:
    """Add the fitted (1-based) cluster of every observation to ``data``."""
    if len(data) != len(model.labels_):
        raise ValueError("data must be the table the model was fitted on")
    out = data.reset_index(drop=True).copy()
    out[CLUSTER_COLUMN] = pd.Categorical(model.labels_ + 1, categories=range(1, model.n_clusters + 1))
    return out


def glance_kmeans(model: KMeans, X: np.ndarray) -> pd.DataFrame:
    """One-row model summary."""
    totss = float(((X - X.mean(axis=0)) ** 2).sum())
    tot_withinss = float(_within_ss(model, X).sum())
    n_labels = len(np.unique(model.labels_))
    sil = silhouette_score(X, model.labels_) if 1 < n_labels < len(X) else np.nan
    return pd.DataFrame([{
        "totss": totss,
        "tot_withinss": tot_withinss,
        "betweenss": totss - tot_withinss,
        "iter": int(model.n_iter_),
        "silhouette": sil,
    }])


def scan_k(
    demo: pd.DataFrame,
    k_range: Iterable[int] = range(params.MIN_CLUSTERS, params.MAX_CLUSTERS + 1),
    random_state: int = params.RANDOM_STATE,
    n_init: int = params.N_INIT,
    id_col: str = ID_COLUMN,
) -> KScanResult:
    """Fit k-means for every k and stack tidy/augment/glance output."""
    X, feature_cols = prepare_features(demo, id_col=id_col)
    clusters, assignments, clusterings = [], [], []
    for k in k_range:
        if k > len(X):
            _LOG.warning("Skipping k=%s: only %s observations", k, len(X))
            continue
        model = fit_kmeans(X, k, random_state=random_state, n_init=n_init)
        clusters.append(tidy_kmeans(model, feature_cols, X).assign(k=k))
        assignments.append(augment_kmeans(model, demo).assign(k=k))
        clusterings.append(glance_kmeans(model, X).assign(k=k))
    if not clusterings:
        raise ValueError("k_range produced no fits")

    # categories differ per k, so stacked tables carry plain integer labels
    def _stack(frames: list) -> pd.DataFrame:
        out = pd.concat(frames, ignore_index=True)
        out[CLUSTER_COLUMN] = out[CLUSTER_COLUMN].astype(int)
        return out

    return KScanResult(
        clusters=_stack(clusters),
        assignments=_stack(assignments),
        clusterings=pd.concat(clusterings, ignore_index=True)[
            ["k", "totss", "tot_withinss", "betweenss", "iter", "silhouette"]
        ],
    )


def save_artifacts(model: KMeans, meta: dict, path: str | Path) -> None:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    joblib.dump(model, path / "kmeans.joblib")
    (path / "meta.json").write_text(json.dumps(meta, indent=2, default=str))


def load_artifacts(path: str | Path) -> tuple[KMeans, dict]:
    path = Path(path)
    model = joblib.load(path / "kmeans.joblib")
    meta = json.loads((path / "meta.json").read_text())
    return model, meta
