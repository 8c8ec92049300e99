"""Wishlist blend scoring tests."""

from __future__ import annotations

import itertools

import pytest

from logic.wishlist_blend import (
    BlendPolicy,
    BlendTier,
    calculate_wishlist_blend,
    get_blend_score_label,
    occasion_overlap_score,
    outfit_from_suggestion,
    pair_score,
    season_overlap_score,
)
from models.color_theory import color_compatibility_score


def _ids(prefix: str = "s"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture()
def candidate(make_wishlist):
    return make_wishlist(occasions=["business"], seasons=["fall"])


@pytest.fixture()
def closet(make_item):
    return [
        make_item("t1", category="tops", color="white"),
        make_item("b1", category="bottoms", type="chinos", color="beige", occasions=["business"], seasons=["fall"]),
        make_item("s1", category="shoes", type="loafers", color="black"),
        make_item("b2", category="bottoms", type="skirt", color="red", occasions=["party"], seasons=["summer"]),
    ]


def test_color_scores() -> None:
    assert color_compatibility_score("Navy Blue", "navy") == 70
    assert color_compatibility_score("navy", "beige") == 90
    assert color_compatibility_score("orange", "white") == 75
    assert color_compatibility_score("orange", "purple") == 40


def test_overlap_scores() -> None:
    assert occasion_overlap_score([], ["casual"]) == 50
    assert occasion_overlap_score(["business", "casual"], ["business"]) == 100
    assert occasion_overlap_score(["business", "casual"], ["casual", "party", "travel"]) == 50
    assert season_overlap_score(["winter"], ["all-season"]) == 100
    assert season_overlap_score(["winter"], ["summer"]) == 0


def test_pair_score_weights_components(candidate, closet) -> None:
    by_id = {item.id: item for item in closet}

    assert pair_score(candidate, by_id["b1"]) == 96
    assert pair_score(candidate, by_id["s1"]) == 66
    assert pair_score(candidate, by_id["b2"]) == 36


def test_blend_ranks_pairable_items_and_adds_color_gap_bonus(candidate, closet) -> None:
    blend = calculate_wishlist_blend(candidate, closet, id_factory=_ids())

    assert [item.id for item in blend.compatible_items] == ["b1", "s1", "b2"]
    assert blend.match_scores == {"b1": 96, "s1": 66, "b2": 36}
    # (96 + 66 + 36) / 3 = 66, plus 5 because no navy piece is owned yet
    assert blend.overall_score == 71
    payload = blend.to_dict()
    assert payload["label"] == "Good Fit"
    assert payload["color"] == "#84CC16"


def test_outfit_suggestions_use_distinct_categories(candidate, closet) -> None:
    blend = calculate_wishlist_blend(candidate, closet, id_factory=_ids())

    suggestions = blend.outfit_suggestions
    assert [[item.id for item in s.items] for s in suggestions] == [["b1", "s1"], ["b2"]]
    assert [s.score for s in suggestions] == [81, 36]
    assert [s.id for s in suggestions] == ["s-1", "s-2"]
    for suggestion in suggestions:
        categories = [item.category for item in suggestion.items] + [candidate.category]
        assert len(categories) == len(set(categories))


def test_category_gap_bonus_when_closet_lacks_the_category(make_wishlist, make_item) -> None:
    coat = make_wishlist(category="outerwear", type="coat", color="black")
    closet = [make_item("t", color="black")]

    blend = calculate_wishlist_blend(coat, closet)

    # same color scores 70, so 70*0.4 + 50*0.35 + 50*0.25 = 58, plus the category gap bonus
    assert blend.overall_score == 68


def test_empty_closet_scores_zero(candidate) -> None:
    blend = calculate_wishlist_blend(candidate, [])

    assert blend.overall_score == 0
    assert blend.compatible_items == []
    assert blend.outfit_suggestions == []
    assert blend.to_dict()["label"] == "Low Synergy"


def test_blend_respects_compatible_item_limit(candidate, make_item) -> None:
    closet = [make_item(f"b{i}", category="bottoms", type="jeans", color="beige") for i in range(15)]

    blend = calculate_wishlist_blend(candidate, closet, policy=BlendPolicy(max_compatible_items=4))

    assert len(blend.compatible_items) == 4
    assert len(blend.outfit_suggestions) == 3


@pytest.mark.parametrize(
    ("score", "label"),
    [
        (100, "Perfect Match"),
        (80, "Perfect Match"),
        (79.5, "Perfect Match"),
        (79, "Good Fit"),
        (60, "Good Fit"),
        (40, "Moderate Fit"),
        (39, "Low Synergy"),
        (0, "Low Synergy"),
        (150, "Perfect Match"),
        (-20, "Low Synergy"),
    ],
)
def test_blend_score_labels(score, label) -> None:
    assert get_blend_score_label(score).label == label


def test_custom_policy_tiers() -> None:
    policy = BlendPolicy(tiers=(BlendTier(50, "Yes", "#000000"), BlendTier(0, "No", "#FFFFFF")))

    assert get_blend_score_label(50, policy).label == "Yes"
    assert get_blend_score_label(49, policy).color == "#FFFFFF"


def test_outfit_from_suggestion_keeps_closet_pieces_only(candidate, closet) -> None:
    suggestion = calculate_wishlist_blend(candidate, closet, id_factory=_ids()).outfit_suggestions[0]

    outfit = outfit_from_suggestion(suggestion, id_factory=lambda: "outfit-1")

    assert outfit.id == "outfit-1"
    assert outfit.name == "Linen shirt look"
    assert outfit.item_ids == ["b1", "s1"]
    assert outfit.occasions == ["business"]
    assert outfit.is_from_ai is True
    assert outfit_from_suggestion(suggestion, name="Office").name == "Office"
