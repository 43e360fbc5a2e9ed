"""Vertical bar graph of the throughput history.

One column per sample, oldest on the left. Heights are scaled against the
largest sample currently in the window, so the tallest bar always reaches
the top row. Unused window capacity is left blank on the left-hand side,
keeping the newest sample anchored to the same column while the window fills.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

from relaytop.units import fmt_kbps

BAR_FILL = "█"
BAR_EMPTY = "░"
BLANK = " "
CELL_WIDTH = 2  # bar glyph + spacer

# Floor for the scale when the window is empty or all-zero. Never displayed.
_EPSILON = 1e-9


def round_half_up(x: float) -> int:
    """Round half away from zero (Python's round() is banker's rounding)."""
    if x < 0:
        return -math.floor(-x + 0.5)
    return math.floor(x + 0.5)


def bar_heights(samples: Sequence[float], rows: int = 5) -> list[int]:
    """Scale each sample into ``[0, rows]`` relative to the window maximum."""
    peak = max(samples, default=0.0)
    scale = peak if peak > 0 else _EPSILON
    heights: list[int] = []
    for s in samples:
        h = round_half_up(s / scale * rows)
        heights.append(max(0, min(h, rows)))
    return heights


def render_bar_graph(
    samples: Sequence[float],
    capacity: int,
    rows: int = 5,
    width: int = 78,
    fmt: Callable[[float], str] = fmt_kbps,
) -> list[str]:
    """Render ``rows`` lines of exactly ``width`` characters.

    A cell in row ``r`` (1-based, counted from the bottom) is filled when the
    sample's scaled height is at least ``r``. The top row carries the scale
    label (the real window maximum, per second) and the bottom row a zero.
    """
    visible = list(samples)[-capacity:] if capacity > 0 else []
    heights = bar_heights(visible, rows)
    padding = (BLANK * CELL_WIDTH) * (capacity - len(visible))
    peak_label = fmt(max(visible, default=0.0))

    lines: list[str] = []
    for r in range(rows, 0, -1):
        cells = "".join(
            (BAR_FILL if h >= r else BAR_EMPTY).ljust(CELL_WIDTH) for h in heights
        )
        if r == rows:
            label = peak_label
        elif r == 1:
            label = "0"
        else:
            label = ""
        line = f" {padding}{cells}{label}"
        lines.append(line.ljust(width)[:width])
    return lines
