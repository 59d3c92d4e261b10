import os
import shutil
import tempfile

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd


INDUSTRIES = ["Construction", "Finance and insurance", "Health care"]
MINOR_OCCUPATIONS = [
    "Management, business, and financial operations occupations",
    "Professional and related occupations",
    "Service occupations",
    "Sales and related occupations",
]
GROUPS = ["TOTAL", "Men", "Women", "White", "Black or African American", "Asian"]


def make_employed_frame(seed=7, years=(2019, 2020)):
    """Synthetic BLS-shaped employment table: 12 occupations x 6 groups x years.

    One extra occupation ('Mining Tiny occupations') has a total below 1000 and
    one row has a missing head count.
    """
    rng = np.random.default_rng(seed)
    rows = []
    for i, industry in enumerate(INDUSTRIES):
        for j, minor in enumerate(MINOR_OCCUPATIONS):
            base_total = 5_000 * (1 + i) * (1 + j)
            women_share = 0.15 + 0.2 * j / 3 + 0.1 * i
            black_share = 0.05 + 0.03 * ((i + j) % 3)
            asian_share = 0.03 + 0.02 * ((i * 2 + j) % 4)
            for year in years:
                total = base_total * (1 + rng.normal(0, 0.02))
                counts = {
                    "TOTAL": total,
                    "Men": total * (1 - women_share),
                    "Women": total * women_share,
                    "White": total * (1 - black_share - asian_share),
                    "Black or African American": total * black_share,
                    "Asian": total * asian_share,
                }
                for group, n in counts.items():
                    rows.append({
                        "industry": industry,
                        "major_occupation": "All",
                        "minor_occupation": minor,
                        "race_gender": group,
                        "industry_total": base_total * 4,
                        "employ_n": round(n),
                        "year": year,
                    })
    for year in years:
        for group, n in {"TOTAL": 500, "Women": 100, "Asian": 10}.items():
            rows.append({
                "industry": "Mining", "major_occupation": "All", "minor_occupation": "Tiny occupations",
                "race_gender": group, "industry_total": 500, "employ_n": n, "year": year,
            })
    rows.append({
        "industry": "Construction", "major_occupation": "All", "minor_occupation": MINOR_OCCUPATIONS[0],
        "race_gender": "Women", "industry_total": None, "employ_n": None, "year": 2018,
    })
    return pd.DataFrame(rows)


CATEGORY_VOCAB = {
    "Finance": ["stock", "returns", "bond", "asset", "pricing", "banks", "credit", "portfolio"],
    "Macro/International": ["monetary", "policy", "inflation", "trade", "exchange", "rates", "growth", "fiscal"],
    "Micro": ["labor", "health", "education", "wages", "insurance", "schools", "workers", "hospital"],
}
CATEGORY_PROGRAMS = {
    "Finance": ["AP", "CF"],
    "Macro/International": ["EFG", "ITI"],
    "Micro": ["LS", "HE"],
}
FILLER = ["evidence", "from", "the", "and", "of", "new", "data"]


def make_nber_frames(per_category=(60, 45, 75), seed=11):
    """Synthetic papers / programs / paper_programs tables.

    Titles draw from a category-specific vocabulary plus filler words, so a
    lasso can separate the categories. Paper 'wMULTI' belongs to two
    categories and program 'TWP' has no category.
    """
    rng = np.random.default_rng(seed)
    papers, memberships = [], []
    programs = [
        {"program": p, "program_desc": f"Program {p}", "program_category": cat}
        for cat, progs in CATEGORY_PROGRAMS.items()
        for p in progs
    ]
    programs.append({"program": "TWP", "program_desc": "Technical Working Papers", "program_category": None})

    k = 0
    for (cat, vocab), n in zip(CATEGORY_VOCAB.items(), per_category):
        for _ in range(n):
            k += 1
            words = list(rng.choice(vocab, size=3, replace=False)) + list(rng.choice(FILLER, size=2, replace=False))
            rng.shuffle(words)
            paper = f"w{k:04d}"
            papers.append({"paper": paper, "catalogue_group": "General", "year": 1990 + k % 30,
                           "month": 1 + k % 12, "title": " ".join(words).capitalize()})
            memberships.append({"paper": paper, "program": CATEGORY_PROGRAMS[cat][k % 2]})
            if k % 10 == 0:
                memberships.append({"paper": paper, "program": "TWP"})
    papers.append({"paper": "wMULTI", "catalogue_group": "General", "year": 2001, "month": 5,
                   "title": "Credit and labor markets"})
    memberships.append({"paper": "wMULTI", "program": "CF"})
    memberships.append({"paper": "wMULTI", "program": "LS"})
    return pd.DataFrame(papers), pd.DataFrame(programs), pd.DataFrame(memberships)


class MockResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


class MockSession:
    """requests.Session stand-in that replays a queue of responses/exceptions."""

    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None):
        self.calls.append(url)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class MockConnector:
    """HttpCsvConnector stand-in returning frames keyed by URL."""

    def __init__(self, frames_by_url):
        self._frames = frames_by_url
        self.calls = []

    def fetch_csv(self, url):
        self.calls.append(url)
        return self._frames[url].copy()


def make_temp_dir(prefix="tidyposts_"):
    return tempfile.mkdtemp(prefix=prefix)


def cleanup_dir(d):
    if os.path.isdir(d):
        shutil.rmtree(d)
