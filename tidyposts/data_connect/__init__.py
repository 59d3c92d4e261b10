from .dataset_urls import (
    EMPLOYED_CSV_URL,
    NBER_PAPERS_CSV_URL,
    NBER_PROGRAMS_CSV_URL,
    NBER_PAPER_PROGRAMS_CSV_URL,
    dataset_url,
    dataset_urls,
)
from .http_connector import HttpCsvConnector, fetch_dataset

__all__ = [
    "EMPLOYED_CSV_URL",
    "NBER_PAPERS_CSV_URL",
    "NBER_PROGRAMS_CSV_URL",
    "NBER_PAPER_PROGRAMS_CSV_URL",
    "dataset_url",
    "dataset_urls",
    "HttpCsvConnector",
    "fetch_dataset",
]
