"""Color compatibility heuristics used by wardrobe scoring."""
from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterable, List

from models.taxonomy import normalize_color_name

logger = logging.getLogger(__name__)

NEUTRAL_COLORS: FrozenSet[str] = frozenset({"black", "white", "gray", "beige", "cream", "tan"})

SAME_COLOR_SCORE = 70
COMPATIBLE_SCORE = 90
NEUTRAL_SCORE = 75
LOW_SCORE = 40

_COMPATIBILITY: Dict[str, List[str]] = {
    "black": ["white", "gray", "beige", "navy", "red", "pink", "gold", "silver", "cream", "tan"],
    "white": ["black", "navy", "gray", "beige", "blue", "red", "pink", "green", "brown", "tan"],
    "navy": ["white", "beige", "gray", "pink", "gold", "cream", "tan", "light-blue"],
    "gray": ["black", "white", "navy", "pink", "blue", "red", "purple", "burgundy"],
    "beige": ["black", "white", "navy", "brown", "burgundy", "green", "blue", "cream"],
    "brown": ["white", "beige", "cream", "tan", "navy", "green", "burgundy", "gold"],
    "blue": ["white", "gray", "beige", "tan", "brown", "navy", "cream"],
    "red": ["black", "white", "gray", "navy", "beige", "cream"],
    "pink": ["black", "white", "gray", "navy", "beige", "cream", "burgundy"],
    "green": ["white", "beige", "brown", "tan", "cream", "navy", "gold"],
    "burgundy": ["beige", "cream", "gray", "pink", "navy", "tan", "gold"],
    "cream": ["black", "navy", "brown", "burgundy", "green", "tan", "beige"],
    "tan": ["white", "navy", "brown", "cream", "beige", "burgundy", "green"],
    "gold": ["black", "navy", "burgundy", "green", "brown", "white"],
    "silver": ["black", "white", "gray", "navy", "pink", "purple"],
    "purple": ["gray", "silver", "white", "beige", "cream", "pink"],
}


def is_neutral(color: str) -> bool:
    return normalize_color_name(color) in NEUTRAL_COLORS


def compatible(color1: str, color2: str) -> bool:
    """Return True when either color lists the other as a pairing."""

    c1, c2 = normalize_color_name(color1), normalize_color_name(color2)
    return c2 in _COMPATIBILITY.get(c1, []) or c1 in _COMPATIBILITY.get(c2, [])


def color_compatibility_score(color1: str, color2: str) -> int:
    """Score how well two colors pair on a 0-100 scale.

    Matching colors score 70, listed pairings 90, anything involving a neutral
    75 and the rest 40.
    """

    c1, c2 = normalize_color_name(color1), normalize_color_name(color2)
    if c1 == c2:
        score = SAME_COLOR_SCORE
    elif compatible(c1, c2):
        score = COMPATIBLE_SCORE
    elif c1 in NEUTRAL_COLORS or c2 in NEUTRAL_COLORS:
        score = NEUTRAL_SCORE
    else:
        score = LOW_SCORE
    logger.debug("color score (%s, %s) -> %s", c1, c2, score)
    return score


def palette(colors: Iterable[str]) -> List[str]:
    """Distinct canonical colors in first-seen order."""

    seen: List[str] = []
    for color in colors:
        key = normalize_color_name(color) if color else ""
        if key and key not in seen:
            seen.append(key)
    return seen


__all__ = [
    "NEUTRAL_COLORS",
    "is_neutral",
    "compatible",
    "color_compatibility_score",
    "palette",
]
