"""Render the refresh summary PNG served at ``/countries/image``."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

logger = logging.getLogger(__name__)

WIDTH, HEIGHT, DPI = 600, 400, 100
BACKGROUND = "#1e293b"
TEXT_COLOR = "white"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
TOP_N = 5


@dataclass
class SummaryOutcome:
    rendered: bool
    path: str
    error: str | None = None


def summary_lines(total: int, top_countries, refreshed_at: datetime):
    lines = [
        (20, f"Total Countries: {total}"),
        (50, f"Last Refresh: {refreshed_at.strftime(TIMESTAMP_FORMAT)}"),
        (80, f"Top {TOP_N} by Estimated GDP:"),
    ]
    y = 110
    for country in top_countries:
        gdp = "N/A" if country.estimated_gdp is None else f"{country.estimated_gdp:.2f}"
        lines.append((y, f"{country.name}: {gdp}"))
        y += 25
    return lines


def draw_summary(lines, path: str):
    # no pyplot state here; this runs in threadpool workers
    fig = Figure(figsize=(WIDTH / DPI, HEIGHT / DPI), dpi=DPI, facecolor=BACKGROUND)
    FigureCanvasAgg(fig)
    for y, text in lines:
        fig.text(20 / WIDTH, 1 - y / HEIGHT, text, color=TEXT_COLOR, fontsize=11, va="top", ha="left")
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp_path = f"{path}.tmp"
    fig.savefig(tmp_path, dpi=DPI, facecolor=BACKGROUND, format="png")
    os.replace(tmp_path, path)


def render_summary(store, refreshed_at: datetime, path: str) -> SummaryOutcome:
    """Draw totals and the top countries by GDP to ``path``.

    Never raises: the image is best-effort and a failure here must not fail
    the refresh that triggered it.
    """
    try:
        lines = summary_lines(store.count(), store.top_by_gdp(TOP_N), refreshed_at)
        draw_summary(lines, path)
    except Exception as e:
        logger.exception("Failed to generate summary image at %s", path)
        return SummaryOutcome(rendered=False, path=path, error=str(e))
    logger.info("Summary image generated at %s", path)
    return SummaryOutcome(rendered=True, path=path)
