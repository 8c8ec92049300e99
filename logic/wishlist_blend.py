"""Score how well a wishlist candidate blends into the existing closet."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from models.color_theory import color_compatibility_score
from models.records import ClothingItem, Outfit, WishlistItem, generate_id
from models.taxonomy import normalize_color_name

logger = logging.getLogger(__name__)

# categories that can be worn alongside each category
CATEGORY_PAIRINGS: Dict[str, List[str]] = {
    "tops": ["bottoms", "outerwear", "accessories", "shoes"],
    "bottoms": ["tops", "outerwear", "accessories", "shoes"],
    "dresses": ["outerwear", "accessories", "shoes"],
    "outerwear": ["tops", "bottoms", "dresses", "accessories", "shoes"],
    "shoes": ["tops", "bottoms", "dresses", "outerwear", "accessories"],
    "accessories": ["tops", "bottoms", "dresses", "outerwear", "shoes"],
    "swimwear": ["accessories", "shoes"],
}


@dataclass(frozen=True)
class BlendTier:
    minimum: int
    label: str
    color: str


@dataclass(frozen=True)
class BlendPolicy:
    """Tunable weights, limits and label tiers for blend scoring.

    Tiers are checked from the highest minimum down; the last tier must start
    at 0 so that every score in [0, 100] gets a label.
    """

    color_weight: float = 0.4
    occasion_weight: float = 0.35
    season_weight: float = 0.25
    max_compatible_items: int = 10
    overall_sample_size: int = 5
    max_outfit_suggestions: int = 3
    max_outfit_size: int = 4
    category_gap_bonus: int = 10
    color_gap_bonus: int = 5
    tiers: Tuple[BlendTier, ...] = (
        BlendTier(80, "Perfect Match", "#22C55E"),
        BlendTier(60, "Good Fit", "#84CC16"),
        BlendTier(40, "Moderate Fit", "#EAB308"),
        BlendTier(0, "Low Synergy", "#EF4444"),
    )


DEFAULT_POLICY = BlendPolicy()


@dataclass
class OutfitSuggestion:
    """A candidate look pairing the wishlist item with closet items."""

    id: str
    wishlist_item: WishlistItem
    items: List[ClothingItem]
    score: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "wishlistItemId": self.wishlist_item.id,
            "itemIds": [item.id for item in self.items],
            "score": self.score,
        }


@dataclass
class WishlistBlend:
    wishlist_item_id: str
    compatible_items: List[ClothingItem] = field(default_factory=list)
    match_scores: Dict[str, int] = field(default_factory=dict)
    outfit_suggestions: List[OutfitSuggestion] = field(default_factory=list)
    overall_score: int = 0

    def to_dict(self) -> dict:
        label = get_blend_score_label(self.overall_score)
        return {
            "wishlistItemId": self.wishlist_item_id,
            "compatibleItems": [item.to_dict() for item in self.compatible_items],
            "matchScores": dict(self.match_scores),
            "outfitSuggestions": [suggestion.to_dict() for suggestion in self.outfit_suggestions],
            "overallScore": self.overall_score,
            "label": label.label,
            "color": label.color,
        }


def _round(value: float) -> int:
    return int(value + 0.5)


def _clamp_score(score: float) -> int:
    return max(0, min(100, _round(score)))


def occasion_overlap_score(first: Sequence[str], second: Sequence[str]) -> int:
    if not first or not second:
        return 50
    overlap = [value for value in first if value in second]
    return _round(len(overlap) / min(len(first), len(second)) * 100)


def season_overlap_score(first: Sequence[str], second: Sequence[str]) -> int:
    if not first or not second:
        return 50
    if "all-season" in first or "all-season" in second:
        return 100
    overlap = [value for value in first if value in second]
    return _round(len(overlap) / min(len(first), len(second)) * 100)


def pair_score(candidate: WishlistItem, item: ClothingItem, policy: BlendPolicy = DEFAULT_POLICY) -> int:
    """Weighted color, occasion and season compatibility of two pieces."""

    return _round(
        color_compatibility_score(candidate.color, item.color) * policy.color_weight
        + occasion_overlap_score(candidate.occasions, item.occasions) * policy.occasion_weight
        + season_overlap_score(candidate.seasons, item.seasons) * policy.season_weight
    )


def _gap_bonus(candidate: WishlistItem, closet_items: Sequence[ClothingItem], policy: BlendPolicy) -> int:
    bonus = 0
    if not any(item.category == candidate.category for item in closet_items):
        bonus += policy.category_gap_bonus
    candidate_color = normalize_color_name(candidate.color)
    if not any(normalize_color_name(item.color) == candidate_color for item in closet_items):
        bonus += policy.color_gap_bonus
    return bonus


def _build_suggestions(
    candidate: WishlistItem,
    ranked: List[Tuple[ClothingItem, int]],
    policy: BlendPolicy,
    id_factory: Callable[[], str],
) -> List[OutfitSuggestion]:
    suggestions: List[OutfitSuggestion] = []
    used: set = set()
    for _ in range(min(policy.max_outfit_suggestions, len(ranked))):
        categories = {candidate.category}
        picked: List[Tuple[ClothingItem, int]] = []
        for item, score in ranked:
            if item.id in used or item.category in categories:
                continue
            picked.append((item, score))
            categories.add(item.category)
            used.add(item.id)
            if len(picked) + 1 >= policy.max_outfit_size:
                break
        if not picked:
            break
        suggestions.append(
            OutfitSuggestion(
                id=id_factory(),
                wishlist_item=candidate,
                items=[item for item, _ in picked],
                score=_round(sum(score for _, score in picked) / len(picked)),
            )
        )
    return suggestions


def calculate_wishlist_blend(
    candidate: WishlistItem,
    closet_items: Sequence[ClothingItem],
    policy: BlendPolicy = DEFAULT_POLICY,
    id_factory: Callable[[], str] = generate_id,
) -> WishlistBlend:
    """Rank closet items against a wishlist candidate and suggest outfits."""

    pairable = CATEGORY_PAIRINGS.get(candidate.category, [])
    scored = [(item, pair_score(candidate, item, policy)) for item in closet_items if item.category in pairable]
    # stable sort keeps closet order among equal scores
    scored.sort(key=lambda pair: pair[1], reverse=True)
    ranked = scored[: policy.max_compatible_items]

    if not ranked:
        logger.debug("No pairable closet items for wishlist item", extra={"category": candidate.category})
        return WishlistBlend(wishlist_item_id=candidate.id)

    sample = [score for _, score in ranked[: policy.overall_sample_size]]
    overall = _clamp_score(sum(sample) / len(sample) + _gap_bonus(candidate, closet_items, policy))
    return WishlistBlend(
        wishlist_item_id=candidate.id,
        compatible_items=[item for item, _ in ranked],
        match_scores={item.id: score for item, score in ranked},
        outfit_suggestions=_build_suggestions(candidate, ranked, policy, id_factory),
        overall_score=overall,
    )


def get_blend_score_label(score: float, policy: BlendPolicy = DEFAULT_POLICY) -> BlendTier:
    """Map a score to its label tier; scores outside [0, 100] are clamped."""

    clamped = _clamp_score(score)
    for tier in policy.tiers:
        if clamped >= tier.minimum:
            return tier
    return policy.tiers[-1]


def outfit_from_suggestion(
    suggestion: OutfitSuggestion,
    name: Optional[str] = None,
    id_factory: Callable[[], str] = generate_id,
) -> Outfit:
    """Turn a suggestion into a saveable outfit of the closet pieces only."""

    return Outfit(
        id=id_factory(),
        name=name or f"{suggestion.wishlist_item.name} look",
        item_ids=[item.id for item in suggestion.items],
        occasions=list(suggestion.wishlist_item.occasions),
        is_from_ai=True,
    )


__all__ = [
    "BlendPolicy",
    "BlendTier",
    "CATEGORY_PAIRINGS",
    "OutfitSuggestion",
    "WishlistBlend",
    "calculate_wishlist_blend",
    "get_blend_score_label",
    "occasion_overlap_score",
    "outfit_from_suggestion",
    "pair_score",
    "season_overlap_score",
]
