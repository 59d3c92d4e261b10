from __future__ import annotations
import hashlib
import logging
import os
from pathlib import Path
from typing import Callable, Optional

import pandas as pd

_LOG = logging.getLogger(__name__)


def default_cache_dir() -> Path:
    return Path(os.getenv("TIDYPOSTS_CACHE_DIR", "data/.cache"))


def _cache_key(url: str) -> str:
    return hashlib.sha256(url.encode()).hexdigest()[:16]


def read_or_fetch(
    url: str,
    fetch_fn: Callable[[str], pd.DataFrame],
    *,
    force: bool = False,
    cache_dir: Optional[str | Path] = None,
) -> pd.DataFrame:
    cache = Path(cache_dir) if cache_dir is not None else default_cache_dir()
    cache.mkdir(parents=True, exist_ok=True)
    fp = cache / f"{_cache_key(url)}.parquet"
    if fp.exists() and not force:
        _LOG.info("Cache hit for %s (%s)", url, fp.name)
        return pd.read_parquet(fp)
    df = fetch_fn(url)
    df.to_parquet(fp, index=False)
    return df
