from decimal import Decimal

import pytest

from smartcore.services.pricing import calculate_subscription_price, size_multiplier


def test_price_is_module_sum_times_company_size_band():
    assert calculate_subscription_price(["rota", "timesheets"], "10-49") == Decimal("51.00")


def test_smallest_band_is_list_price():
    assert calculate_subscription_price(["rota"], "1-9") == Decimal("19.00")


def test_unknown_band_is_priced_as_smallest_band():
    assert size_multiplier("lots of people") == Decimal("1.00")
    assert size_multiplier(None) == Decimal("1.00")


def test_band_lookup_ignores_spaces():
    assert size_multiplier(" 250 + ") == Decimal("4.00")
    assert size_multiplier("50 - 249") == Decimal("2.50")


def test_price_is_rounded_to_pennies():
    price = calculate_subscription_price(["documents", "holidays", "reporting"], "50-249")
    assert price == Decimal("80.00")
    assert str(price) == "80.00"


def test_no_modules_costs_nothing():
    assert calculate_subscription_price([], "250+") == Decimal("0.00")


def test_unknown_module_is_rejected():
    with pytest.raises(ValueError, match="Unknown module: payroll"):
        calculate_subscription_price(["rota", "payroll"], "1-9")
