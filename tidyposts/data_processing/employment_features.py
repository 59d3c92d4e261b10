"""Tidy transformation of the BLS employment table.

Raw input (one row per industry x occupation x demographic group x year)::

    industry, major_occupation, minor_occupation, race_gender,
    industry_total, employ_n, year

is reduced to one row per occupation with the share of women, Black or
African American and Asian workers and the (log) total head count, all
z-scored so that k-means sees comparable scales.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from ..utils.validate import expect_columns, expect_non_empty, expect_unique
from . import clustering_params as params

_LOG = logging.getLogger(__name__)

RAW_COLUMNS = ["industry", "minor_occupation", "race_gender", "employ_n"]


def to_snake_case(text: str) -> str:
    """'Mining, quarrying Management' -> 'mining_quarrying_management'."""
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(text))
    s = re.sub(r"[^0-9A-Za-z]+", "_", s)
    return s.strip("_").lower()


def clean_names(columns: Iterable[str]) -> list[str]:
    return [to_snake_case(c) for c in columns]


def tidy_employment(employed: pd.DataFrame) -> pd.DataFrame:
    """Average ``employ_n`` per occupation and demographic group.

    ``occupation`` is ``industry`` and ``minor_occupation`` pasted together.
    Rows without a head count are dropped before averaging over years.
    """
    expect_columns(employed, RAW_COLUMNS)
    df = employed.dropna(subset=["employ_n"]).copy()
    df["occupation"] = (
        df["industry"].fillna("NA").astype(str) + " " + df["minor_occupation"].fillna("NA").astype(str)
    )
    tidy = (
        df.groupby(["occupation", "race_gender"], as_index=False)
        .agg(n=("employ_n", "mean"))
    )
    _LOG.info("Tidy employment: %s occupation x group rows", len(tidy))
    return tidy


def _zscore(s: pd.Series) -> pd.Series:
    sd = s.std(ddof=1)
    if not sd or np.isnan(sd):
        return s - s.mean()
    return (s - s.mean()) / sd


def employment_demographics(
    employed_tidy: pd.DataFrame,
    min_total: float = params.MIN_TOTAL_EMPLOYED,
    groups: Sequence[str] = params.DEMOGRAPHIC_GROUPS,
    total_group: str = params.TOTAL_GROUP,
) -> pd.DataFrame:
    """Pivot demographic groups wide and scale them for clustering.

    Returns ``occupation`` plus one column per group (as a proportion of the
    total) and ``total`` (log head count), every numeric column z-scored.
    """
    expect_columns(employed_tidy, ["occupation", "race_gender", "n"])
    expect_unique(employed_tidy, ["occupation", "race_gender"])

    wide = (
        employed_tidy[employed_tidy["race_gender"].isin(groups)]
        .pivot(index="occupation", columns="race_gender", values="n")
        .reindex(columns=list(groups))
        .fillna(0)
        .reset_index()
    )
    wide.columns.name = None
    wide.columns = clean_names(wide.columns)
    group_cols = clean_names(groups)

    totals = (
        employed_tidy.loc[employed_tidy["race_gender"] == total_group, ["occupation", "n"]]
        .rename(columns={"n": "total"})
    )
    demo = wide.merge(totals, on="occupation", how="left")
    demo = demo[demo["total"] > min_total].copy()
    expect_non_empty(demo, "Employment demographics")

    for col in group_cols:
        demo[col] = demo[col] / demo["total"]
    demo["total"] = np.log(demo["total"])
    for col in group_cols + ["total"]:
        demo[col] = _zscore(demo[col])
    demo["occupation"] = demo["occupation"].map(to_snake_case)

    _LOG.info("Employment demographics: %s occupations (total > %s)", len(demo), min_total)
    return demo.reset_index(drop=True)[["occupation"] + group_cols + ["total"]]
