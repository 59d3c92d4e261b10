"""
clustering_visualization_utils.py

Figures for the employment clustering post.

Key functions
-------------
- plot_elbow(clusterings): total within-cluster SS against k
- plot_assignments_by_k(assignments): scatter of every k-means fit, one facet per k
- plot_cluster_scatter(augmented): static scatter of a single fit
- interactive_cluster_scatter(augmented): plotly widget with occupation hover

Inputs are the tidy tables produced by clustering_utils (scan_k / augment_kmeans).
Matplotlib/seaborn functions return the Figure; nothing is shown here, callers
decide whether to display, save or embed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import matplotlib.pyplot as plt
import pandas as pd
import plotly.express as px
import seaborn as sns

from . import clustering_params as params
from .clustering_utils import CLUSTER_COLUMN, ID_COLUMN


def _axis_label(col: str) -> str:
    return col.replace("_", " ").capitalize()


def plot_elbow(clusterings: pd.DataFrame, figsize: Tuple[float, float] = (7, 4.5)) -> plt.Figure:
    """Elbow plot from the ``clusterings`` table of scan_k."""
    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(clusterings["k"], clusterings["tot_withinss"], marker="o", lw=1.5, alpha=0.8)
    ax.set_xticks(list(clusterings["k"]))
    ax.set_xlabel("Number of clusters (k)")
    ax.set_ylabel("Total within-cluster sum of squares")
    ax.set_title("Elbow (tot_withinss) vs k")
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def plot_assignments_by_k(
    assignments: pd.DataFrame,
    x: str = params.SCATTER_X,
    y: str = params.SCATTER_Y,
    col_wrap: int = 3,
) -> plt.Figure:
    """One scatter facet per k, points colored by cluster."""
    g = sns.relplot(
        data=assignments,
        x=x,
        y=y,
        hue=CLUSTER_COLUMN,
        col="k",
        col_wrap=col_wrap,
        palette="tab10",
        alpha=0.8,
        s=20,
        height=2.8,
        legend="full",
    )
    g.set_axis_labels(_axis_label(x), _axis_label(y))
    g.figure.suptitle("k-means assignments by k", y=1.02)
    return g.figure


def plot_cluster_scatter(
    augmented: pd.DataFrame,
    x: str = params.SCATTER_X,
    y: str = params.SCATTER_Y,
    title: str = "Occupations by k-means cluster",
) -> plt.Figure:
    fig, ax = plt.subplots(figsize=(7, 5))
    sns.scatterplot(data=augmented, x=x, y=y, hue=CLUSTER_COLUMN, palette="tab10", s=40, alpha=0.8, ax=ax)
    ax.set_xlabel(_axis_label(x))
    ax.set_ylabel(_axis_label(y))
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def interactive_cluster_scatter(
    augmented: pd.DataFrame,
    x: str = params.SCATTER_X,
    y: str = params.SCATTER_Y,
    hover: str = ID_COLUMN,
    title: str = "Employment demographics by cluster",
):
    """Plotly scatter of one fit; hovering a point shows its occupation."""
    df = augmented.copy()
    df[CLUSTER_COLUMN] = df[CLUSTER_COLUMN].astype(str)
    fig = px.scatter(
        df,
        x=x,
        y=y,
        color=CLUSTER_COLUMN,
        hover_name=hover,
        title=title,
        labels={x: _axis_label(x), y: _axis_label(y), CLUSTER_COLUMN: "Cluster"},
        category_orders={CLUSTER_COLUMN: sorted(df[CLUSTER_COLUMN].unique(), key=int)},
    )
    fig.update_traces(marker={"size": 8, "opacity": 0.8})
    return fig


def save_interactive(fig, path: str | Path, include_plotlyjs: str | bool = "cdn") -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(str(path), include_plotlyjs=include_plotlyjs)
    return path
