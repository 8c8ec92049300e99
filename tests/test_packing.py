"""Packing suggestion and weather enrichment tests."""

from __future__ import annotations

from datetime import date

import pytest
import requests

from logic.packing import (
    PackingPolicy,
    build_packing_list,
    effective_climate,
    ensure_packing_list,
    generate_packing_suggestions,
)
from tools.weather_provider import MockWeatherProvider, OpenWeatherProvider, WeatherProfile, build_weather_provider


def _by_key(categories):
    return {category.key: category for category in categories}


def test_cold_city_trip_scales_clothing_and_skips_swimwear(make_trip) -> None:
    categories = _by_key(generate_packing_suggestions(make_trip(), []))

    assert "swimwear" not in categories
    assert sum(s.quantity for s in categories["tops"].suggestions) == 7
    assert sum(s.quantity for s in categories["bottoms"].suggestions) == 4
    assert "outerwear" in categories
    assert "shoes" not in categories
    assert categories["documents"].is_essential is True
    for category in categories.values():
        assert all(isinstance(s.quantity, int) and s.quantity >= 1 for s in category.suggestions)


def test_short_trip_quantities(make_trip) -> None:
    trip = make_trip(start_date=date(2024, 5, 1), end_date=date(2024, 5, 3), climate="desert")

    categories = _by_key(generate_packing_suggestions(trip, []))

    assert len(categories["tops"].suggestions) == 3
    assert len(categories["bottoms"].suggestions) == 2
    assert "outerwear" not in categories


def test_beach_trip_packs_swimwear_and_extra_sunscreen(make_trip, make_item) -> None:
    trip = make_trip(trip_type="beach", climate="tropical")
    closet = [make_item("bikini", category="swimwear", type="bikini", color="red", brand="")]

    categories = _by_key(generate_packing_suggestions(trip, closet))

    swimwear = categories["swimwear"].suggestions
    assert [(s.name, s.closet_item_id) for s in swimwear] == [("red bikini", "bikini")]
    sunscreen = next(s for s in categories["toiletries"].suggestions if s.name == "Sunscreen")
    assert sunscreen.quantity == 2


def test_beach_trip_without_swimwear_gets_generic_entry(make_trip) -> None:
    categories = _by_key(generate_packing_suggestions(make_trip(trip_type="beach", climate="tropical"), []))

    assert [(s.name, s.quantity) for s in categories["swimwear"].suggestions] == [("Swimwear", 2)]


def test_closet_items_are_filtered_by_climate(make_trip, make_item) -> None:
    closet = [
        make_item("wool", type="sweater", seasons=["winter"], brand="COS", color="gray"),
        make_item("linen", type="blouse", seasons=["summer"]),
        make_item("basic", seasons=["all-season"]),
        make_item("boots", category="shoes", type="boots", seasons=["winter"]),
    ]

    categories = _by_key(generate_packing_suggestions(make_trip(), closet))

    top_ids = [s.closet_item_id for s in categories["tops"].suggestions if s.closet_item_id]
    assert top_ids == ["wool", "basic"]
    assert categories["tops"].suggestions[0].name == "COS gray sweater"
    assert [s.closet_item_id for s in categories["shoes"].suggestions] == ["boots"]


def test_forecast_overrides_declared_climate(make_trip) -> None:
    trip = make_trip(climate="temperate")

    assert effective_climate(trip, None) == "temperate"
    assert effective_climate(trip, WeatherProfile(0, 6, 0.1)) == "cold"
    assert effective_climate(trip, WeatherProfile(12, 18, 0.8)) == "rainy"
    assert effective_climate(trip, WeatherProfile(26, 34, 0.0)) == "tropical"
    assert effective_climate(trip, WeatherProfile(14, 20, 0.2)) == "temperate"

    categories = _by_key(generate_packing_suggestions(trip, [], forecast=WeatherProfile(26, 34, 0.0)))
    assert "swimwear" in categories


def test_custom_policy_caps_tops(make_trip) -> None:
    categories = _by_key(generate_packing_suggestions(make_trip(), [], policy=PackingPolicy(max_tops=3)))

    assert len(categories["tops"].suggestions) == 3


def test_build_packing_list_flattens_categories(make_trip) -> None:
    trip = make_trip()
    categories = generate_packing_suggestions(trip, [])

    packing = build_packing_list(trip, categories)

    assert packing.trip_id == trip.id
    assert len(packing.items) == sum(len(c.suggestions) for c in categories)
    assert len({item.id for item in packing.items}) == len(packing.items)
    documents = [item for item in packing.items if item.category == "documents"]
    assert documents and all(item.is_essential for item in documents)
    assert not any(item.is_packed for item in packing.items)


def test_ensure_packing_list_generates_once(store, make_trip, context) -> None:
    trip = store.save_trip(make_trip())

    first = ensure_packing_list(store, trip)
    pending = context.sync_state.load().pending_changes
    second = ensure_packing_list(store, trip)

    assert first.id == second.id
    assert len(store.get_packing_lists()) == 1
    assert context.sync_state.load().pending_changes == pending


class _Response:
    def __init__(self, payload, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        return self._payload


class _Session:
    def __init__(self, response) -> None:
        self.response = response
        self.params = None

    def get(self, url, params=None, timeout=None):
        self.params = params
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


FORECAST = {
    "list": [
        {"dt_txt": "2024-12-01 12:00:00", "main": {"temp_min": 1, "temp_max": 4}, "pop": 0.2,
         "weather": [{"description": "light snow"}]},
        {"dt_txt": "2024-12-02 12:00:00", "main": {"temp_min": -3, "temp_max": 2}, "pop": 0.6,
         "weather": [{"description": "light snow"}]},
        {"dt_txt": "2024-12-20 12:00:00", "main": {"temp_min": 20, "temp_max": 25}, "pop": 0.0,
         "weather": [{"description": "clear sky"}]},
    ]
}


def test_open_weather_aggregates_entries_within_trip_dates() -> None:
    session = _Session(_Response(FORECAST))
    provider = OpenWeatherProvider(api_key="key", session=session)

    profile = provider.get_trip_forecast("Oslo", date(2024, 12, 1), date(2024, 12, 8))

    assert profile == WeatherProfile(temp_min=-3, temp_max=4, precipitation_probability=0.6, weather_condition="light snow")
    assert session.params["q"] == "Oslo"


@pytest.mark.parametrize(
    "response",
    [requests.ConnectionError("offline"), _Response({}, status_code=401), _Response({"list": "nope"})],
)
def test_open_weather_failures_return_none(response) -> None:
    provider = OpenWeatherProvider(api_key="key", session=_Session(response))

    assert provider.get_trip_forecast("Oslo", date(2024, 12, 1), date(2024, 12, 8)) is None


def test_open_weather_requires_key_and_location() -> None:
    provider = OpenWeatherProvider(api_key=None, session=_Session(_Response(FORECAST)))

    assert provider.get_trip_forecast("Oslo", date(2024, 12, 1), date(2024, 12, 2)) is None
    with pytest.raises(ValueError):
        provider.get_trip_forecast("", date(2024, 12, 1), date(2024, 12, 2))


def test_build_weather_provider() -> None:
    assert isinstance(build_weather_provider(None), MockWeatherProvider)
    assert isinstance(build_weather_provider("key"), OpenWeatherProvider)
    assert MockWeatherProvider().get_trip_forecast("Oslo", date(2024, 1, 1), date(2024, 1, 2)) is None
