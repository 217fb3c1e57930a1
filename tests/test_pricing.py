"""Tests for compute_totals and minor-unit conversion."""
from decimal import Decimal
from types import SimpleNamespace

from photodesk.services.pricing import compute_totals, to_minor_units


def _sel(package: bool):
    return SimpleNamespace(selected_for_package=package, is_additional_purchase=not package)


def test_package_and_additional_counts():
    """Two package photos and one additional at 15.00 cost 15.00."""
    totals = compute_totals([_sel(True), _sel(True), _sel(False)], Decimal("15.00"))
    assert totals.package_count == 2
    assert totals.additional_count == 1
    assert totals.total_cost == Decimal("15.00")


def test_empty_selection_costs_nothing():
    totals = compute_totals([], Decimal("15.00"))
    assert (totals.package_count, totals.additional_count, totals.total_cost) == (0, 0, Decimal("0.00"))


def test_package_only_selection_costs_nothing():
    totals = compute_totals([_sel(True)] * 5, Decimal("9.99"))
    assert totals.additional_count == 0
    assert totals.total_cost == Decimal("0.00")


def test_repeated_calls_give_same_result():
    selections = [_sel(True), _sel(False), _sel(False)]
    assert compute_totals(selections, Decimal("12.50")) == compute_totals(selections, Decimal("12.50"))


def test_whole_cent_prices_have_no_rounding_drift():
    for price in ("0.01", "9.99", "15.00", "19.99", "123.45"):
        for n in (1, 3, 7, 33):
            totals = compute_totals([_sel(False)] * n, Decimal(price))
            assert totals.total_cost == Decimal(price) * n


def test_sub_cent_price_rounds_half_up():
    totals = compute_totals([_sel(False)], Decimal("0.125"))
    assert totals.total_cost == Decimal("0.13")


def test_to_minor_units():
    assert to_minor_units(Decimal("15.00")) == 1500
    assert to_minor_units(Decimal("19.99")) == 1999
    assert to_minor_units(Decimal("0.01")) == 1
