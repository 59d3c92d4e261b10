"""Tokenization and tf-idf featurization of paper titles."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional

import pandas as pd
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS, TfidfVectorizer

from . import lasso_params as params

# lowercase word tokens, digits included
TOKEN_PATTERN = r"(?u)\b\w+\b"
_TOKEN_RE = re.compile(TOKEN_PATTERN)


def tokenize(text: Optional[str]) -> List[str]:
    if text is None or (isinstance(text, float) and pd.isna(text)):
        return []
    return _TOKEN_RE.findall(str(text).lower())


def unnest_tokens(
    df: pd.DataFrame,
    text_col: str = params.TEXT_COLUMN,
    token_col: str = "word",
) -> pd.DataFrame:
    """One row per token: the input row repeated, text column replaced by ``token_col``."""
    out = df.copy()
    out[token_col] = out[text_col].map(tokenize)
    out = out.drop(columns=[text_col]).explode(token_col)
    return out[out[token_col].notna()].reset_index(drop=True)


def top_words(
    tokens: pd.DataFrame,
    by: str = params.LABEL_COLUMN,
    n: int = params.TOP_N_WORDS,
    token_col: str = "word",
    stop_words: Optional[Iterable[str]] = ENGLISH_STOP_WORDS,
) -> pd.DataFrame:
    """Most frequent tokens per group, stop words removed."""
    if stop_words is not None:
        tokens = tokens[~tokens[token_col].isin(set(stop_words))]
    counts = tokens.groupby([by, token_col]).size().reset_index(name="n")
    counts = counts.sort_values([by, "n", token_col], ascending=[True, False, True])
    return counts.groupby(by, sort=True).head(n).reset_index(drop=True)


def make_tfidf(max_tokens: Optional[int] = params.MAX_TOKENS) -> TfidfVectorizer:
    """tf-idf over lowercase word tokens, keeping the ``max_tokens`` most frequent."""
    return TfidfVectorizer(
        lowercase=True,
        token_pattern=TOKEN_PATTERN,
        max_features=max_tokens,
    )
