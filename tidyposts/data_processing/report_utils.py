"""Render a tutorial post (prose, tables and figures) to one static HTML file.

A post is a list of blocks:

    Heading("Explore the data")
    Paragraph("Each occupation is ...")
    Code("kmeans = fit_kmeans(X, 3)")
    Table(df, caption="...")
    Figure(matplotlib_figure, caption="...")
    Interactive(plotly_figure)

Markup lives in the Jinja2 templates under ``tidyposts/templates``; text is
autoescaped there. Static figures are embedded as base64 PNG; interactive
figures embed their plotly div and load plotly.js from the CDN once per page.
"""
from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import matplotlib.pyplot as plt
import pandas as pd
from jinja2 import Environment, PackageLoader, select_autoescape

_LOG = logging.getLogger(__name__)

TEMPLATE_ENV = Environment(
    loader=PackageLoader("tidyposts", "templates"),
    autoescape=select_autoescape(enabled_extensions=("html", "j2")),
    trim_blocks=True,
    lstrip_blocks=True,
)
PAGE_TEMPLATE = "post.html.j2"
BLOCK_TEMPLATE = "block.html.j2"


@dataclass
class Heading:
    text: str
    level: int = 2


@dataclass
class Paragraph:
    text: str


@dataclass
class Code:
    source: str


@dataclass
class Table:
    df: pd.DataFrame
    caption: Optional[str] = None
    max_rows: int = 20
    float_format: str = "{:.3f}"


@dataclass
class Figure:
    fig: plt.Figure
    caption: Optional[str] = None
    dpi: int = 110
    close: bool = True


@dataclass
class Interactive:
    fig: Any
    caption: Optional[str] = None


Block = Union[Heading, Paragraph, Code, Table, Figure, Interactive]


def figure_to_base64(fig: plt.Figure, dpi: int = 110) -> str:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi, bbox_inches="tight")
    return base64.b64encode(buf.getvalue()).decode("ascii")


def save_figure(fig: plt.Figure, path: str | Path, dpi: int = 150) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    return path


def _block_context(block: Block, include_plotlyjs: Union[str, bool]) -> dict:
    if isinstance(block, Heading):
        return {"kind": "heading", "level": min(max(block.level, 2), 6)}
    if isinstance(block, Paragraph):
        return {"kind": "paragraph"}
    if isinstance(block, Code):
        return {"kind": "code"}
    if isinstance(block, Table):
        df = block.df.head(block.max_rows)
        return {"kind": "markup", "markup": df.to_html(index=False, float_format=block.float_format.format, border=0)}
    if isinstance(block, Figure):
        data = figure_to_base64(block.fig, dpi=block.dpi)
        if block.close:
            plt.close(block.fig)
        return {"kind": "image", "data": data}
    if isinstance(block, Interactive):
        return {"kind": "markup", "markup": block.fig.to_html(full_html=False, include_plotlyjs=include_plotlyjs)}
    raise TypeError(f"Unsupported block type: {type(block).__name__}")


def render_block(block: Block, include_plotlyjs: Union[str, bool] = False) -> str:
    context = _block_context(block, include_plotlyjs)
    return TEMPLATE_ENV.get_template(BLOCK_TEMPLATE).render(block=block, **context).strip()


def render_post_html(
    title: str,
    blocks: Sequence[Block],
    output_path: Optional[str | Path] = None,
    date: Optional[datetime] = None,
) -> str:
    """Render ``blocks`` into a standalone HTML page; write it when a path is given."""
    parts = []
    plotlyjs_loaded = False
    for block in blocks:
        include = False
        if isinstance(block, Interactive) and not plotlyjs_loaded:
            include, plotlyjs_loaded = "cdn", True
        parts.append(render_block(block, include_plotlyjs=include))
    page = TEMPLATE_ENV.get_template(PAGE_TEMPLATE).render(
        title=title,
        date=(date or datetime.now()).strftime("%Y-%m-%d"),
        body=parts,
    )
    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(page, encoding="utf-8")
        _LOG.info("Rendered post '%s' to %s", title, output_path)
    return page
