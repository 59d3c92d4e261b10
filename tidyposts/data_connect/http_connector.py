"""HTTP connector for public CSV datasets."""
from __future__ import annotations

import io
import logging
import os
import time
from typing import Optional

import pandas as pd
import requests
from dotenv import load_dotenv

from ..exceptions import DataFetchError
from ..utils.io import read_or_fetch
from .dataset_urls import dataset_url

load_dotenv()

_LOG = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
RETRYABLE_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
)


class HttpCsvConnector:
    """Download CSV files over HTTP and parse them into DataFrames.

    Connection errors, timeouts, truncated bodies and retryable status codes
    are retried with a linear backoff (``backoff * attempt`` seconds). Any other
    requests error, or running out of attempts, raises :class:`DataFetchError`.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: float = 2.0,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = float(timeout if timeout is not None else os.getenv("TIDYPOSTS_HTTP_TIMEOUT", 60))
        self.max_retries = int(max_retries if max_retries is not None else os.getenv("TIDYPOSTS_MAX_RETRIES", 3))
        if self.max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.backoff = backoff
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpCsvConnector":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _get_text(self, url: str) -> str:
        for attempt in range(1, self.max_retries + 1):
            try:
                resp = self.session.get(url, timeout=self.timeout)
            except RETRYABLE_ERRORS as e:
                _LOG.warning("GET %s attempt %s failed: %s", url, attempt, e)
                if attempt == self.max_retries:
                    raise DataFetchError(url, str(e)) from e
            except requests.RequestException as e:
                raise DataFetchError(url, str(e)) from e
            else:
                if resp.status_code == 200:
                    return resp.text
                reason = f"HTTP {resp.status_code}"
                if resp.status_code not in RETRYABLE_STATUS:
                    raise DataFetchError(url, reason)
                _LOG.warning("GET %s attempt %s failed: %s", url, attempt, reason)
                if attempt == self.max_retries:
                    raise DataFetchError(url, reason)
            time.sleep(self.backoff * attempt)
        raise DataFetchError(url, "no attempts made")

    def fetch_csv(self, url: str, **read_csv_kwargs) -> pd.DataFrame:
        """Fetch ``url`` and parse the body with :func:`pandas.read_csv`."""
        _LOG.info("Fetching %s", url)
        text = self._get_text(url)
        try:
            df = pd.read_csv(io.StringIO(text), **read_csv_kwargs)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DataFetchError(url, f"unparseable CSV: {e}") from e
        _LOG.info("Fetched %s rows x %s columns", f"{len(df):,}", df.shape[1])
        return df


def fetch_dataset(
    name: str,
    connector: Optional[HttpCsvConnector] = None,
    *,
    force: bool = False,
    cache_dir: Optional[str] = None,
) -> pd.DataFrame:
    """Fetch a registered dataset through the parquet download cache."""
    url = dataset_url(name)
    if connector is not None:
        return read_or_fetch(url, connector.fetch_csv, force=force, cache_dir=cache_dir)
    with HttpCsvConnector() as conn:
        return read_or_fetch(url, conn.fetch_csv, force=force, cache_dir=cache_dir)
