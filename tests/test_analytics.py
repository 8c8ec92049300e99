"""Streak, cost-per-wear and closet analytics tests."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from logic.analytics import (
    calculate_cost_per_wear,
    calculate_streak,
    compute_analytics_summary,
    compute_closet_stats,
)

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _days(*values: str):
    return [date.fromisoformat(value) for value in values]


def test_streak_of_empty_history() -> None:
    result = calculate_streak([], today=date(2024, 1, 3))

    assert (result.current, result.longest) == (0, 0)


def test_streak_ending_today() -> None:
    result = calculate_streak(_days("2024-01-01", "2024-01-02", "2024-01-03"), today=date(2024, 1, 3))

    assert (result.current, result.longest) == (3, 3)


def test_streak_ending_yesterday_still_counts() -> None:
    result = calculate_streak(_days("2024-01-02", "2024-01-03"), today=date(2024, 1, 4))

    assert result.current == 2


def test_broken_streak_keeps_longest() -> None:
    result = calculate_streak(_days("2024-01-01", "2024-01-02", "2024-01-03"), today=date(2024, 1, 5))

    assert (result.current, result.longest) == (0, 3)


def test_streak_counts_each_day_once(make_log) -> None:
    logs = [
        make_log("a", when=datetime(2024, 1, 1, 8, tzinfo=timezone.utc)),
        make_log("b", when=datetime(2024, 1, 1, 20, tzinfo=timezone.utc)),
        make_log("c", when=datetime(2024, 1, 2, 9, tzinfo=timezone.utc)),
        make_log("d", when=datetime(2023, 12, 28, 9, tzinfo=timezone.utc)),
    ]

    result = calculate_streak(logs, today=date(2024, 1, 2))

    assert (result.current, result.longest) == (2, 2)


@pytest.mark.parametrize(("price", "wears", "expected"), [(100, 0, 100), (100, 4, 25), (50, 3, 16.67)])
def test_cost_per_wear(make_item, price, wears, expected) -> None:
    assert calculate_cost_per_wear(make_item(purchase_price=price, wear_count=wears)) == expected


@pytest.fixture()
def closet(make_item):
    return [
        make_item(
            "a", purchase_price=100, wear_count=4,
            last_worn_at=datetime(2024, 5, 20, tzinfo=timezone.utc),
        ),
        make_item(
            "b", category="bottoms", type="jeans", color="navy", brand="Levi's", purchase_price=60,
            created_at=datetime(2023, 1, 1, tzinfo=timezone.utc),
        ),
        make_item(
            "c", category="shoes", type="sneakers", color="black", brand="Other", purchase_price=120,
            wear_count=2, last_worn_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        ),
    ]


def test_closet_stats(closet, make_log) -> None:
    stats = compute_closet_stats(closet, [make_log("l1"), make_log("l2")], now=NOW)

    assert stats.total_items == 3
    assert stats.total_value == 280
    assert stats.category_breakdown["tops"].value == 100
    assert stats.category_breakdown["shoes"].count == 1
    assert stats.most_worn_item.id == "a"
    assert [item.id for item in stats.unworn_items] == ["b", "c"]
    assert stats.total_wear_logs == 2
    assert stats.to_dict()["mostWornItem"]["id"] == "a"


def test_closet_stats_without_wears(make_item) -> None:
    stats = compute_closet_stats([make_item("a")], [], now=NOW)

    assert stats.most_worn_item is None
    assert compute_closet_stats([], [], now=NOW).total_value == 0


def test_analytics_summary(closet) -> None:
    summary = compute_analytics_summary(closet, now=NOW)

    assert summary.avg_cost_per_wear == 42.5
    assert [item.id for item in summary.most_worn_items] == ["a", "c", "b"]
    assert [item.id for item in summary.least_worn_items] == ["b", "c", "a"]
    assert summary.category_breakdown.labels == ["Tops", "Bottoms", "Shoes"]
    assert summary.category_breakdown.data == [1, 1, 1]
    assert summary.color_breakdown.labels == ["White", "Navy", "Black"]
    assert summary.value_by_category.data == [100, 60, 120]
    assert summary.top_brands == [("Uniqlo", 1), ("Levi's", 1)]
    assert summary.monthly_spend == 18.33
    payload = summary.to_dict()
    assert payload["topBrands"][0] == {"name": "Uniqlo", "count": 1}
    assert len(payload["categoryBreakdown"]["colors"]) == 3


def test_color_breakdown_groups_the_tail_as_others(make_item) -> None:
    colors = ["red", "red", "blue", "green", "pink", "purple", "gold", "silver", "orange"]
    items = [make_item(f"i{index}", color=color) for index, color in enumerate(colors)]

    series = compute_analytics_summary(items, now=NOW).color_breakdown

    assert series.labels[0] == "Red"
    assert series.data[0] == 2
    assert series.labels[-1] == "Others"
    assert series.data[-1] == 2
    assert len(series.labels) == 7
