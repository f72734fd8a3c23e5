#!/usr/bin/env python3
"""
Layout and aggregation arithmetic for profile cards.

Nothing here touches the network or the SVG tree, so positions and
percentages can be checked on their own.
"""

import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Tuple

from .models import RepositorySummary

CANVAS_WIDTH = 600
MIN_CANVAS_HEIGHT = 400

INFO_X = 50
INFO_Y = 110
INFO_TOP_PADDING = 5
INFO_LINE_HEIGHT = 18
LANGUAGE_GAP = 10
LANGUAGE_X = 50
LANGUAGE_STRIDE = 110
MAX_LANGUAGES = 5

CARD_GAP = 50
CARD_X = 50
CARD_WIDTH = 100
CARD_HEIGHT = 60
CARD_COLUMN_GUTTER = 20
CARD_ROW_SPACING = 15
CARDS_PER_ROW = 3
BOTTOM_MARGIN = 40

DEFAULT_LANGUAGE_COLOR = "#6B7280"
LANGUAGE_COLORS = {
    "JavaScript": "#F7DF1E",
    "TypeScript": "#3178C6",
    "Python": "#3776AB",
    "Java": "#007396",
    "C++": "#00599C",
    "C": "#A8B9CC",
    "C#": "#239120",
    "PHP": "#777BB4",
    "Ruby": "#CC342D",
    "Go": "#00ADD8",
    "Rust": "#DEA584",
    "Swift": "#FA7343",
    "Kotlin": "#7F52FF",
    "HTML": "#E34F26",
    "CSS": "#1572B6",
    "Vue": "#4FC08D",
    "React": "#61DAFB",
    "Shell": "#4EAA25",
}


def _round_half_up(value: float, places: int = 0) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def format_number(num: int) -> str:
    """Abbreviate large numbers: 1500 -> '1.5k', 2500000 -> '2.5M'."""
    if num >= 1_000_000:
        return f"{_round_half_up(num / 1_000_000, 1).normalize():f}M"
    if num >= 1_000:
        return f"{_round_half_up(num / 1_000, 1).normalize():f}k"
    return str(num)


def tally_languages(repos: Iterable[RepositorySummary]) -> Dict[str, int]:
    """Count repositories per primary language, in first-seen order."""
    tally: Dict[str, int] = {}
    for repo in repos:
        if repo.language:
            tally[repo.language] = tally.get(repo.language, 0) + 1
    return tally


def rank_languages(tally: Dict[str, int], limit: int = MAX_LANGUAGES) -> List[Tuple[str, int]]:
    """Most used languages first. Ties keep the tally's first-seen order."""
    return sorted(tally.items(), key=lambda item: item[1], reverse=True)[:limit]


def language_percentage(count: int, tally: Dict[str, int]) -> int:
    """Share of one language against every tallied repository, rounded half up."""
    total = sum(tally.values())
    if total == 0:
        return 0
    return int(_round_half_up(count / total * 100))


def language_color(language: str) -> str:
    return LANGUAGE_COLORS.get(language, DEFAULT_LANGUAGE_COLOR)


@dataclass
class CardLayout:
    """Computed vertical positions for one card."""
    info_rows: List[int] = field(default_factory=list)
    language_y: int = 0
    card_y: int = 0
    card_positions: List[Tuple[int, int]] = field(default_factory=list)
    card_rows: int = 0
    height: int = MIN_CANVAS_HEIGHT

    @property
    def info_lines(self) -> int:
        return len(self.info_rows)


def language_x(index: int) -> int:
    return LANGUAGE_X + index * LANGUAGE_STRIDE


def compute_layout(info_lines: int, card_count: int) -> CardLayout:
    """
    Place the info block, language row and stat-card grid.

    Args:
        info_lines: Number of rows in the info block (at least the join date)
        card_count: Number of stat cards in the grid

    Returns:
        CardLayout with every offset and the final canvas height
    """
    first_row = INFO_Y + INFO_TOP_PADDING
    info_rows = [first_row + i * INFO_LINE_HEIGHT for i in range(info_lines)]

    language_y = INFO_Y + info_lines * INFO_LINE_HEIGHT + LANGUAGE_GAP
    card_y = language_y + CARD_GAP

    positions = []
    for index in range(card_count):
        row, col = divmod(index, CARDS_PER_ROW)
        x = CARD_X + col * (CARD_WIDTH + CARD_COLUMN_GUTTER)
        y = card_y + row * (CARD_HEIGHT + CARD_ROW_SPACING)
        positions.append((x, y))

    card_rows = math.ceil(card_count / CARDS_PER_ROW)
    grid_height = card_rows * CARD_HEIGHT + max(card_rows - 1, 0) * CARD_ROW_SPACING
    height = max(MIN_CANVAS_HEIGHT, card_y + grid_height + BOTTOM_MARGIN)

    return CardLayout(
        info_rows=info_rows,
        language_y=language_y,
        card_y=card_y,
        card_positions=positions,
        card_rows=card_rows,
        height=height,
    )
