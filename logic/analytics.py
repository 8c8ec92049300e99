"""Wear analytics: streaks, cost-per-wear, closet statistics and summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from models.records import ClothingItem, WearLog, utcnow

UNWORN_WINDOW_DAYS = 90
CHART_COLORS = [
    "#10B981",
    "#3B82F6",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#EC4899",
    "#6366F1",
    "#14B8A6",
]
TOP_COLOR_COUNT = 6
TOP_BRAND_COUNT = 5
WEAR_RANKING_SIZE = 5


@dataclass(frozen=True)
class StreakResult:
    current: int
    longest: int


@dataclass(frozen=True)
class CategoryBreakdown:
    count: int
    value: float


@dataclass
class ClosetStats:
    """Aggregate closet figures computed on demand."""

    total_items: int
    total_value: float
    category_breakdown: Dict[str, CategoryBreakdown]
    most_worn_item: Optional[ClothingItem]
    unworn_items: List[ClothingItem]
    total_wear_logs: int

    def to_dict(self) -> dict:
        return {
            "totalItems": self.total_items,
            "totalValue": self.total_value,
            "categoryBreakdown": {
                category: {"count": entry.count, "value": entry.value}
                for category, entry in self.category_breakdown.items()
            },
            "mostWornItem": self.most_worn_item.to_dict() if self.most_worn_item else None,
            "unwornItems": [item.to_dict() for item in self.unworn_items],
            "totalWearLogs": self.total_wear_logs,
        }


@dataclass
class ChartSeries:
    labels: List[str] = field(default_factory=list)
    data: List[float] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, float]]) -> "ChartSeries":
        return cls(
            labels=[label for label, _ in pairs],
            data=[value for _, value in pairs],
            colors=[CHART_COLORS[index % len(CHART_COLORS)] for index in range(len(pairs))],
        )

    def to_dict(self) -> dict:
        return {"labels": self.labels, "data": self.data, "colors": self.colors}


@dataclass
class AnalyticsSummary:
    total_items: int
    total_value: float
    avg_cost_per_wear: float
    most_worn_items: List[ClothingItem]
    least_worn_items: List[ClothingItem]
    category_breakdown: ChartSeries
    color_breakdown: ChartSeries
    value_by_category: ChartSeries
    top_brands: List[Tuple[str, int]]
    monthly_spend: float

    def to_dict(self) -> dict:
        return {
            "totalItems": self.total_items,
            "totalValue": self.total_value,
            "avgCostPerWear": self.avg_cost_per_wear,
            "mostWornItems": [item.to_dict() for item in self.most_worn_items],
            "leastWornItems": [item.to_dict() for item in self.least_worn_items],
            "categoryBreakdown": self.category_breakdown.to_dict(),
            "colorBreakdown": self.color_breakdown.to_dict(),
            "valueByCategory": self.value_by_category.to_dict(),
            "topBrands": [{"name": name, "count": count} for name, count in self.top_brands],
            "monthlySpend": self.monthly_spend,
        }


def _as_day(value: Union[WearLog, datetime, date]) -> date:
    if isinstance(value, WearLog):
        value = value.date
    if isinstance(value, datetime):
        return value.date()
    return value


def calculate_streak(
    logs: Iterable[Union[WearLog, datetime, date]], today: Optional[date] = None
) -> StreakResult:
    """Return the current and longest runs of consecutive logged days.

    Several logs on one calendar day count once. The current streak only counts
    when the latest logged day is today or yesterday.
    """

    days = sorted({_as_day(log) for log in logs}, reverse=True)
    if not days:
        return StreakResult(current=0, longest=0)
    today = today or utcnow().date()

    longest = run = 1
    for newer, older in zip(days, days[1:]):
        run = run + 1 if (newer - older).days == 1 else 1
        longest = max(longest, run)

    current = 0
    if (today - days[0]).days in (0, 1):
        current = 1
        for newer, older in zip(days, days[1:]):
            if (newer - older).days != 1:
                break
            current += 1
    return StreakResult(current=current, longest=longest)


def calculate_cost_per_wear(item: ClothingItem) -> float:
    """Purchase price spread over wears; unworn items carry their full price."""

    if item.wear_count == 0:
        return item.purchase_price
    return round(item.purchase_price / item.wear_count, 2)


def compute_closet_stats(
    items: Sequence[ClothingItem], logs: Sequence[WearLog], now: Optional[datetime] = None
) -> ClosetStats:
    now = now or utcnow()
    cutoff = now - timedelta(days=UNWORN_WINDOW_DAYS)

    breakdown: Dict[str, CategoryBreakdown] = {}
    most_worn: Optional[ClothingItem] = None
    for item in items:
        entry = breakdown.get(item.category, CategoryBreakdown(count=0, value=0.0))
        breakdown[item.category] = CategoryBreakdown(entry.count + 1, entry.value + item.purchase_price)
        if item.wear_count > (most_worn.wear_count if most_worn else 0):
            most_worn = item

    unworn = [item for item in items if item.last_worn_at is None or item.last_worn_at < cutoff]
    return ClosetStats(
        total_items=len(items),
        total_value=sum(item.purchase_price for item in items),
        category_breakdown=breakdown,
        most_worn_item=most_worn,
        unworn_items=unworn,
        total_wear_logs=len(logs),
    )


def _label(value: str) -> str:
    return value[:1].upper() + value[1:]


def compute_analytics_summary(items: Sequence[ClothingItem], now: Optional[datetime] = None) -> AnalyticsSummary:
    """Chart-ready breakdowns of the closet."""

    now = now or utcnow()
    worn = [item for item in items if item.wear_count > 0]
    avg_cost_per_wear = (
        round(sum(calculate_cost_per_wear(item) for item in worn) / len(worn), 2) if worn else 0.0
    )

    by_wear = sorted(items, key=lambda item: item.wear_count, reverse=True)
    least_worn = sorted(items, key=lambda item: item.wear_count)[:WEAR_RANKING_SIZE]

    category_counts: Dict[str, float] = {}
    category_values: Dict[str, float] = {}
    color_counts: Dict[str, int] = {}
    brand_counts: Dict[str, int] = {}
    for item in items:
        label = _label(item.category)
        category_counts[label] = category_counts.get(label, 0) + 1
        category_values[label] = category_values.get(label, 0.0) + item.purchase_price
        color = item.color.strip()
        if color:
            color_label = color[:1].upper() + color[1:].lower()
            color_counts[color_label] = color_counts.get(color_label, 0) + 1
        if item.brand and item.brand != "Other":
            brand_counts[item.brand] = brand_counts.get(item.brand, 0) + 1

    ranked_colors = sorted(color_counts.items(), key=lambda pair: pair[1], reverse=True)
    color_pairs: List[Tuple[str, float]] = list(ranked_colors[:TOP_COLOR_COUNT])
    others = sum(count for _, count in ranked_colors[TOP_COLOR_COUNT:])
    if others:
        color_pairs.append(("Others", others))

    top_brands = sorted(brand_counts.items(), key=lambda pair: pair[1], reverse=True)[:TOP_BRAND_COUNT]

    one_year_ago = now - timedelta(days=365)
    spend_last_year = sum(item.purchase_price for item in items if item.created_at > one_year_ago)

    return AnalyticsSummary(
        total_items=len(items),
        total_value=sum(item.purchase_price for item in items),
        avg_cost_per_wear=avg_cost_per_wear,
        most_worn_items=by_wear[:WEAR_RANKING_SIZE],
        least_worn_items=least_worn,
        category_breakdown=ChartSeries.from_pairs(list(category_counts.items())),
        color_breakdown=ChartSeries.from_pairs(color_pairs),
        value_by_category=ChartSeries.from_pairs(list(category_values.items())),
        top_brands=top_brands,
        monthly_spend=round(spend_last_year / 12, 2),
    )


__all__ = [
    "StreakResult",
    "CategoryBreakdown",
    "ClosetStats",
    "ChartSeries",
    "AnalyticsSummary",
    "calculate_streak",
    "calculate_cost_per_wear",
    "compute_closet_stats",
    "compute_analytics_summary",
]
