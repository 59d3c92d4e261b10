from __future__ import annotations
from .io import read_or_fetch, default_cache_dir
from .validate import expect_columns, expect_non_empty, expect_unique

__all__ = [
    "read_or_fetch", "default_cache_dir",
    "expect_columns", "expect_non_empty", "expect_unique",
]
