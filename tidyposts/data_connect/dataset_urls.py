"""Registry of the public CSV datasets used by the posts.

Both datasets are published through the TidyTuesday project. Every URL can be
overridden with an environment variable (or a `.env` file), which is handy
for pointing the pipelines at a local mirror.
"""
from __future__ import annotations

import os
from typing import Dict

from dotenv import load_dotenv

load_dotenv()

TIDYTUESDAY_BASE = "https://raw.githubusercontent.com/rfordatascience/tidytuesday/master/data"

# ---------------------------------------------------------------------------
# Employment by industry, occupation and demographic group (BLS, 2015-2020)
# ---------------------------------------------------------------------------

EMPLOYED_CSV_URL = f"{TIDYTUESDAY_BASE}/2021/2021-02-23/employed.csv"

# ---------------------------------------------------------------------------
# NBER working papers, programs and the paper -> program bridge table
# ---------------------------------------------------------------------------

NBER_PAPERS_CSV_URL = f"{TIDYTUESDAY_BASE}/2021/2021-09-28/papers.csv"
NBER_PROGRAMS_CSV_URL = f"{TIDYTUESDAY_BASE}/2021/2021-09-28/programs.csv"
NBER_PAPER_PROGRAMS_CSV_URL = f"{TIDYTUESDAY_BASE}/2021/2021-09-28/paper_programs.csv"

_DEFAULTS: Dict[str, str] = {
    "employed": EMPLOYED_CSV_URL,
    "nber_papers": NBER_PAPERS_CSV_URL,
    "nber_programs": NBER_PROGRAMS_CSV_URL,
    "nber_paper_programs": NBER_PAPER_PROGRAMS_CSV_URL,
}


def _env_name(dataset: str) -> str:
    return f"TIDYPOSTS_{dataset.upper()}_URL"


def dataset_url(dataset: str) -> str:
    """Return the URL for a registered dataset, honouring env overrides."""
    if dataset not in _DEFAULTS:
        raise KeyError(f"Unknown dataset '{dataset}'. Known: {sorted(_DEFAULTS)}")
    return os.getenv(_env_name(dataset), _DEFAULTS[dataset])


def dataset_urls() -> Dict[str, str]:
    return {name: dataset_url(name) for name in _DEFAULTS}
