"""Export utilities (result tables -> Excel workbook)."""
from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Optional

import pandas as pd

from .formatting_utils import safe_filename, safe_sheet_name, write_sheet_with_thousands

_LOG = logging.getLogger(__name__)

__all__ = ["export_to_excel", "export_post_tables"]


def export_to_excel(
    sheets: Dict[str, pd.DataFrame],
    output_path: str,
    thousand_cols: Optional[Iterable[str]] = None,
) -> str:
    """Write multiple DataFrames to an Excel file, one per sheet.

    Categorical columns are written as their plain values. Columns listed in
    ``thousand_cols`` get a ``#,##0`` number format wherever they appear.
    """
    if not sheets:
        raise ValueError("No sheets to export")
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
    thousand_cols = list(thousand_cols or [])
    used = set()
    with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
        for sheet_name, df in sheets.items():
            safe_sheet = safe_sheet_name(sheet_name)
            if safe_sheet in used:
                raise ValueError(f"Duplicate sheet name after sanitizing: {safe_sheet!r}")
            used.add(safe_sheet)
            out = df.copy()
            for col in out.select_dtypes(include="category").columns:
                out[col] = out[col].astype(out[col].cat.categories.dtype)
            write_sheet_with_thousands(writer, out, safe_sheet, thousand_cols=thousand_cols)
    _LOG.info("Wrote %s sheets to %s", len(sheets), output_path)
    return output_path


def export_post_tables(
    post_name: str,
    sheets: Dict[str, pd.DataFrame],
    output_dir: str,
    thousand_cols: Optional[Iterable[str]] = None,
) -> str:
    """Export a post's result tables to ``<output_dir>/<post_name>_results.xlsx``."""
    fname = safe_filename(f"{post_name}_results") + ".xlsx"
    return export_to_excel(sheets, os.path.join(output_dir, fname), thousand_cols=thousand_cols)
