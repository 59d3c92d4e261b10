"""
Figures for the NBER paper title classification post.

Each function takes one of the tidy tables from lasso_utils / text_features
and returns a matplotlib Figure.
"""
from __future__ import annotations

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from . import lasso_params as params


def plot_top_words(top: pd.DataFrame, by: str = params.LABEL_COLUMN, token_col: str = "word") -> plt.Figure:
    """Horizontal bars of the most frequent words, one panel per group."""
    groups = list(top[by].unique())
    fig, axes = plt.subplots(1, len(groups), figsize=(4 * len(groups), 4), squeeze=False)
    for ax, grp in zip(axes[0], groups):
        sub = top[top[by] == grp].sort_values("n")
        ax.barh(sub[token_col], sub["n"], color="#2E86AB", alpha=0.85)
        ax.set_title(str(grp))
        ax.set_xlabel("Word count")
    fig.tight_layout()
    return fig


def plot_tuning_metrics(metrics: pd.DataFrame, selected_penalty: Optional[float] = None) -> plt.Figure:
    """Mean metric +/- one standard error against penalty (log scale)."""
    names = list(metrics[".metric"].unique())
    fig, axes = plt.subplots(len(names), 1, figsize=(7, 3.2 * len(names)), sharex=True, squeeze=False)
    for ax, name in zip(axes[:, 0], names):
        sub = metrics[metrics[".metric"] == name].sort_values("penalty")
        ax.errorbar(sub["penalty"], sub["mean"], yerr=sub["std_err"], marker="o", ms=4, capsize=3, alpha=0.8)
        if selected_penalty is not None:
            ax.axvline(selected_penalty, ls="--", color="r", label="Selected")
            ax.legend(loc="best")
        ax.set_xscale("log")
        ax.set_ylabel(name)
        ax.grid(True, alpha=0.3)
    axes[-1, 0].set_xlabel("Penalty (lambda)")
    fig.suptitle("Cross-validated performance across the lasso penalty grid")
    fig.tight_layout()
    return fig


def plot_confusion_matrix(cm: pd.DataFrame) -> plt.Figure:
    """Heatmap of the long confusion matrix from conf_mat."""
    wide = cm.pivot(index="prediction", columns="truth", values="n")
    fig, ax = plt.subplots(figsize=(5.5, 4.5))
    sns.heatmap(wide, annot=True, fmt="d", cmap="Blues", cbar=False, ax=ax)
    ax.set_xlabel("Truth")
    ax.set_ylabel("Prediction")
    ax.set_title("Confusion matrix (test set)")
    fig.tight_layout()
    return fig


def plot_roc_curves(curves: pd.DataFrame) -> plt.Figure:
    fig, ax = plt.subplots(figsize=(6, 5))
    for level, sub in curves.groupby(".level"):
        ax.plot(1 - sub["specificity"], sub["sensitivity"], lw=1.5, alpha=0.8, label=str(level))
    ax.plot([0, 1], [0, 1], ls="--", color="grey", lw=1)
    ax.set_xlabel("1 - specificity")
    ax.set_ylabel("Sensitivity")
    ax.set_title("ROC curves (one vs rest)")
    ax.set_aspect("equal")
    ax.legend(loc="lower right")
    fig.tight_layout()
    return fig


def plot_top_terms(terms: pd.DataFrame) -> plt.Figure:
    """Signed coefficients of the most important terms per class."""
    classes = list(terms["class"].unique())
    fig, axes = plt.subplots(1, len(classes), figsize=(4.2 * len(classes), 4.5), squeeze=False)
    for ax, cls in zip(axes[0], classes):
        sub = terms[terms["class"] == cls].sort_values("estimate")
        colors = np.where(sub["estimate"] > 0, "#44BBA4", "#E94F37")
        ax.barh(sub["term"], sub["estimate"], color=colors)
        ax.axvline(0, color="black", lw=0.8)
        ax.set_title(str(cls))
        ax.set_xlabel("Coefficient")
    fig.suptitle("Most important title terms per program category")
    fig.tight_layout()
    return fig
