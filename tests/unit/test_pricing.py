from datetime import datetime, timedelta, timezone

import pytest

from marketplace.catalog.models import CourseSnapshot
from marketplace.catalog.pricing import effective_price, is_in_early_bird_period, to_minor_units

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
START = NOW - timedelta(days=1)
END = NOW + timedelta(days=1)


def _course(**overrides):
    data = {"id": "c1", "normal_price": 2000, "early_bird_price": 1500,
            "early_bird_start": START, "early_bird_end": END}
    data.update(overrides)
    return CourseSnapshot(**data)


def test_early_bird_price_inside_window():
    assert effective_price(_course(), NOW) == 1500
    assert is_in_early_bird_period(_course(), NOW) is True


@pytest.mark.parametrize("instant", [START, END])
def test_window_bounds_are_inclusive(instant):
    assert effective_price(_course(), instant) == 1500


@pytest.mark.parametrize("instant", [START - timedelta(seconds=1), END + timedelta(seconds=1)])
def test_outside_window_falls_back_to_normal_price(instant):
    assert effective_price(_course(), instant) == 2000
    assert is_in_early_bird_period(_course(), instant) is False


@pytest.mark.parametrize("overrides", [
    {"early_bird_price": None},
    {"early_bird_start": None},
    {"early_bird_end": None},
    {"early_bird_price": 2000},   # égal: pas strictement inférieur
    {"early_bird_price": 2500},
    {"early_bird_start": END, "early_bird_end": START},  # fenêtre inversée
])
def test_misconfigured_promotion_is_silent_fallback(overrides):
    assert effective_price(_course(**overrides), NOW) == 2000


def test_period_flag_ignores_price_comparison():
    # Affichage: la fenêtre est active même si la promo n'est pas appliquée
    course = _course(early_bird_price=2500)
    assert is_in_early_bird_period(course, NOW) is True
    assert effective_price(course, NOW) == 2000


def test_naive_datetimes_are_treated_as_utc():
    course = _course(early_bird_start=datetime(2026, 3, 14), early_bird_end=datetime(2026, 3, 16))
    assert course.early_bird_start.tzinfo is not None
    assert effective_price(course, datetime(2026, 3, 15, 12, 0)) == 1500


def test_to_minor_units_rounds_to_nearest_unit():
    assert to_minor_units(1500) == 150000
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(0.1 + 0.2) == 30
