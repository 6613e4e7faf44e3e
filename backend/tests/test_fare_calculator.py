"""
Unit tests for fare arithmetic.

Pure functions only; no database.
"""

import pytest

from backend.app.core.exceptions import FareValidationError
from backend.app.domain.pricing.fare_calculator import (
    QuoteExtras, SimplifiedRates, StopFeeRates,
    calculate_quote, calculate_request_fare, calculate_simplified,
    extra_region_count, extra_stop_count, negotiated_quote,
    normalize_regions, validate_quote_input,
)
from backend.app.models.rate_enums import MissingRate


@pytest.mark.parametrize("stops_total,expected", [(0, 0), (1, 0), (5, 4)])
def test_extra_stop_count(stops_total, expected):
    assert extra_stop_count(stops_total) == expected


@pytest.mark.parametrize("regions,expected", [
    (["서울"], 0),
    (["서울", "서울", "부산"], 1),
    ([], 0),
])
def test_extra_region_count_uses_distinct_regions(regions, expected):
    assert extra_region_count(len(normalize_regions(regions))) == expected


def test_normalize_regions_trims_drops_blanks_and_keeps_first_seen_order():
    assert normalize_regions([" 수원", "강남", "", "  ", "수원 ", "강남", None]) == ["수원", "강남"]
    assert normalize_regions(None) == []


def test_simplified_end_to_end_example():
    """쿠팡 / 5 / [강남, 강남, 수원] with 3 stops."""
    rates = SimplifiedRates(base_fare=120000, per_stop=5000, per_waypoint=8000)

    breakdown = calculate_simplified(["강남", "강남", "수원"], 3, rates)

    assert breakdown.base_fare == 120000
    assert breakdown.call_fee == 10000
    assert breakdown.waypoint_fee == 8000
    assert breakdown.total == 138000
    assert breakdown.metadata["base_region"] == "강남"
    assert breakdown.metadata["extra_stops"] == 2
    assert breakdown.metadata["extra_regions"] == 1
    assert breakdown.metadata["missing"] == []
    assert breakdown.metadata["per_stop"] == 5000
    assert breakdown.metadata["per_waypoint"] == 8000


def test_simplified_total_is_exact_sum():
    rates = SimplifiedRates(base_fare=99999, per_stop=333, per_waypoint=777)
    breakdown = calculate_simplified(["a", "b", "c", "d"], 7, rates)
    assert breakdown.total == breakdown.base_fare + breakdown.call_fee + breakdown.waypoint_fee
    assert breakdown.total == 99999 + 6 * 333 + 3 * 777


def test_simplified_addons_ignore_duplicate_order():
    rates = SimplifiedRates(base_fare=0, per_stop=1000, per_waypoint=2000)
    first = calculate_simplified(["A", "B", "A", "C"], 4, rates)
    second = calculate_simplified(["A", "C", "B"], 4, rates)
    assert first.call_fee == second.call_fee
    assert first.waypoint_fee == second.waypoint_fee


def test_simplified_reports_missing_tags():
    rates = SimplifiedRates(missing=[MissingRate.BASE, MissingRate.CALL])
    breakdown = calculate_simplified(["강남"], 1, rates)
    assert breakdown.total == 0
    assert breakdown.metadata["missing"] == ["BASE", "CALL"]


def test_simplified_rejects_negative_stops():
    with pytest.raises(FareValidationError):
        calculate_simplified(["강남"], -1, SimplifiedRates())


def test_validate_quote_rejects_stop_count_mismatch():
    with pytest.raises(FareValidationError) as exc_info:
        validate_quote_input("C1", "5t", ["강남", "수원"], 3, False, None)

    assert exc_info.value.status_code == 400
    assert exc_info.value.errors[0]["field"] == "stop_count"


def test_validate_quote_rejects_duplicates_and_bad_negotiated_fare_together():
    with pytest.raises(FareValidationError) as exc_info:
        validate_quote_input("C1", "5t", ["강남", "강남"], 2, True, -1)

    fields = {error["field"] for error in exc_info.value.errors}
    assert fields == {"regions", "negotiated_fare"}


def test_validate_quote_compares_trimmed_region_names():
    with pytest.raises(FareValidationError) as exc_info:
        validate_quote_input("C1", "5t", ["강남", " 강남"], 2, False, None)
    assert exc_info.value.errors[0]["message"] == "Duplicate regions are not allowed"

    with pytest.raises(FareValidationError) as exc_info:
        validate_quote_input("C1", "5t", ["강남", "  "], 2, False, None)
    assert exc_info.value.errors[0]["field"] == "regions"


def test_validate_quote_requires_center_vehicle_and_regions():
    with pytest.raises(FareValidationError) as exc_info:
        validate_quote_input("", None, [], 0, False, None)

    fields = {error["field"] for error in exc_info.value.errors}
    assert fields == {"center_id", "vehicle_type", "regions"}


def test_negotiated_quote_ignores_rates():
    breakdown = negotiated_quote(["강남", "수원"], 250000)
    assert breakdown.total == 250000
    assert breakdown.base_fare == breakdown.region_fare == breakdown.stop_fare == breakdown.extra_fare == 0
    assert breakdown.metadata["missing_rates"] == []


def test_quote_uses_max_region_fare_and_surcharges():
    breakdown = calculate_quote(
        ["수원", "강남"],
        2,
        {"강남": 120000, "수원": 150000},
        QuoteExtras(region_move=10000, stop_extra=5000, misc=3000),
    )

    assert breakdown.base_fare == 150000
    assert breakdown.region_fare == 10000
    assert breakdown.stop_fare == 5000
    assert breakdown.extra_fare == 3000
    assert breakdown.total == 168000
    assert breakdown.metadata["unique_regions"] == ["강남", "수원"]
    assert breakdown.metadata["max_fare_region"] == "수원"
    assert breakdown.metadata["base_region"] == "수원"


def test_quote_single_region_has_no_move_or_stop_surcharge():
    breakdown = calculate_quote(["강남"], 1, {"강남": 120000}, QuoteExtras(region_move=10000, stop_extra=5000))
    assert breakdown.region_fare == 0
    assert breakdown.stop_fare == 0
    assert breakdown.total == 120000


def test_quote_lists_regions_without_rates():
    breakdown = calculate_quote(["강남", "부산"], 2, {"강남": 120000}, QuoteExtras())
    assert breakdown.metadata["missing_rates"] == ["부산"]
    assert breakdown.base_fare == 120000
    assert breakdown.total == breakdown.base_fare + breakdown.region_fare + breakdown.stop_fare + breakdown.extra_fare


def test_request_fare_per_unit_model():
    fare = calculate_request_fare(
        ["강남", "수원", "수원"], 3, 100000, StopFeeRates(extra_stop_fee=5000, extra_region_fee=7000),
        extra_adjustment=-2000,
    )
    assert fare.extra_stop_fee == 10000
    assert fare.extra_region_fee == 7000
    assert fare.subtotal == 117000
    assert fare.total == 115000
    assert fare.missing == []


def test_request_fare_missing_rows_are_zero_not_guessed():
    fare = calculate_request_fare(["부산"], 1, None, None)
    assert fare.total == 0
    assert fare.missing == [MissingRate.BASE, MissingRate.CALL, MissingRate.WAYPOINT]
    assert len(fare.warnings) == 2
