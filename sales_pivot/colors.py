"""
Colour scaling for pivot cells and the customer heatmap.

Maps a cell value onto a low/mid/high scale relative to a value range.
A uniform range (max == min) has nothing to scale and maps to grey.
"""

import pandas as pd

from .config import (
    AMBER_THRESHOLD,
    GREEN_THRESHOLD,
    RAG_COLORS,
    UNIFORM_HEAT_COLOR,
)
from .pivot import PivotResult, ValueRange


def classify_cell(value: float, value_range: ValueRange | tuple[float, float]) -> str:
    """Return 'green', 'amber', 'red' or 'grey' for a cell value.

    Logic
    -----
    ratio = (value - min) / (max - min)
        green  if ratio >= 0.66
        amber  if ratio >= 0.33
        red    otherwise
    grey when max == min.
    """
    low, high = value_range
    if pd.isna(value) or high == low:
        return "grey"

    ratio = (value - low) / (high - low)
    if ratio >= GREEN_THRESHOLD:
        return "green"
    if ratio >= AMBER_THRESHOLD:
        return "amber"
    return "red"


def heat_rgba(value: float, low: float, high: float) -> str:
    """Heatmap background: red at ``low`` fading to green at ``high``."""
    if high == low:
        return UNIFORM_HEAT_COLOR
    t = (value - low) / (high - low)
    r = round(255 * (1 - t))
    g = round(180 + 75 * t)
    return f"rgba({r},{g},120,0.25)"


def style_grid(result: PivotResult, alpha: str = "22") -> pd.DataFrame:
    """CSS background for every pivot cell, shaped like ``result.grid``.

    Suitable for ``DataFrame.style.apply(..., axis=None)``.
    """
    if result.empty:
        return result.grid.copy()
    return result.grid.apply(
        lambda column: column.map(
            lambda v: f"background-color: {RAG_COLORS[classify_cell(v, result.value_range)]}{alpha}"
        )
    )
