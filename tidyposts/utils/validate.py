from __future__ import annotations
from typing import Sequence

import pandas as pd

from ..exceptions import DataValidationError


def expect_columns(df: pd.DataFrame, cols: Sequence[str]) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise DataValidationError(f"Missing columns: {missing}")


def expect_non_empty(df: pd.DataFrame, what: str = "DataFrame") -> None:
    if df.empty:
        raise DataValidationError(f"{what} is empty")


def expect_unique(df: pd.DataFrame, keys: Sequence[str]) -> None:
    dup = df.duplicated(subset=list(keys), keep=False)
    if dup.any():
        sample = df.loc[dup, list(keys)].head(3).to_dict("records")
        raise DataValidationError(f"Duplicate keys on {list(keys)}, e.g. {sample}")
