"""Join NBER working papers to their program categories."""
from __future__ import annotations

import logging

import pandas as pd

from ..utils.validate import expect_columns, expect_non_empty, expect_unique
from . import lasso_params as params

_LOG = logging.getLogger(__name__)


def join_papers(
    papers: pd.DataFrame,
    programs: pd.DataFrame,
    paper_programs: pd.DataFrame,
) -> pd.DataFrame:
    """One row per distinct (paper, program_category, year, title).

    Program memberships whose program has no category, and papers without a
    title, are dropped. A paper that still appears twice under one category
    (two titles or years for the same id) raises DataValidationError.
    """
    expect_columns(papers, ["paper", "year", "title"])
    expect_columns(programs, ["program", "program_category"])
    expect_columns(paper_programs, ["paper", "program"])

    joined = (
        paper_programs
        .merge(programs, on="program", how="left")
        .merge(papers, on="paper", how="left")
    )
    joined = joined[joined["program_category"].notna() & joined["title"].notna()]
    out = (
        joined[["paper", "program_category", "year", "title"]]
        .drop_duplicates()
        .reset_index(drop=True)
    )
    expect_non_empty(out, "Joined NBER papers")
    expect_unique(out, ["paper", "program_category"])
    _LOG.info("Joined %s paper/category rows covering %s papers", len(out), out["paper"].nunique())
    return out


def single_category_papers(joined: pd.DataFrame, label_col: str = params.LABEL_COLUMN) -> pd.DataFrame:
    """Drop papers that belong to more than one program category."""
    n_cats = joined.groupby("paper")[label_col].transform("nunique")
    out = joined[n_cats == 1].drop_duplicates(subset=["paper"]).reset_index(drop=True)
    _LOG.info("Kept %s of %s papers with a single program category", len(out), joined["paper"].nunique())
    return out


def category_counts(df: pd.DataFrame, label_col: str = params.LABEL_COLUMN) -> pd.DataFrame:
    return (
        df[label_col].value_counts()
        .rename_axis(label_col)
        .reset_index(name="n")
    )
