"""Tests for unit conversion and quantity/currency formatting."""

from decimal import Decimal

import pytest

from gastro.core.formatting import (
    currency_info,
    format_currency,
    format_quantity,
    format_quantity_change,
)
from gastro.core.units import (
    ALL_UNITS,
    calculate_stock_deduction,
    is_known_unit,
    unit_groups,
    unit_label,
)


class TestCalculateStockDeduction:
    def test_three_level_conversion(self):
        # 2 slices; 1 box = 10 cheeses; 1 cheese = 20 slices
        assert calculate_stock_deduction(2, 10, 20) == pytest.approx(0.01)

    def test_two_level_conversion(self):
        # 3 bottles out of a 24-bottle box
        assert calculate_stock_deduction(3, 24) == pytest.approx(0.125)

    def test_zero_recipe_units_ignored(self):
        assert calculate_stock_deduction(6, 12, 0) == pytest.approx(0.5)

    def test_falsy_units_per_package_counts_as_one(self):
        assert calculate_stock_deduction(4, 0) == 4
        assert calculate_stock_deduction(4, None) == 4

    def test_decimal_inputs_not_rounded(self):
        result = calculate_stock_deduction(Decimal("1"), Decimal("3"))
        assert result == Decimal("1") / Decimal("3")


class TestUnits:
    def test_known_units(self):
        assert is_known_unit("kg")
        assert is_known_unit("garrafa")
        assert not is_known_unit("furlong")

    def test_label_falls_back_to_value(self):
        assert unit_label("ml") == "Millilitre (ml)"
        assert unit_label("furlong") == "furlong"

    def test_groups_cover_every_unit(self):
        groups = unit_groups()
        assert [g["label"] for g in groups] == ["Weight", "Volume", "Culinary", "Operational", "Packaging"]
        assert sum(len(g["units"]) for g in groups) == len(ALL_UNITS)


class TestFormatQuantity:
    @pytest.mark.parametrize("value,expected", [
        (None, "0"),
        (5, "5"),
        (Decimal("2.50"), "2.5"),
        (0.0083, "0.01"),
        (Decimal("1.005"), "1.01"),
        (Decimal("3.000000"), "3"),
    ])
    def test_format_quantity(self, value, expected):
        assert format_quantity(value) == expected

    def test_change_sign(self):
        assert format_quantity_change(5) == "+5"
        assert format_quantity_change(0) == "+0"
        assert format_quantity_change(Decimal("-3.5")) == "-3.5"


class TestFormatCurrency:
    def test_usd(self):
        assert format_currency(Decimal("1234.56"), "USD") == "$1,234.56"

    def test_brl(self):
        assert format_currency(Decimal("1234.56"), "BRL") == "R$ 1.234,56"

    def test_eur_four_digits_not_grouped(self):
        assert format_currency(Decimal("1234.56"), "EUR") == "1234,56 €"

    def test_eur_five_digits_grouped(self):
        assert format_currency(Decimal("12345.67"), "EUR") == "12.345,67 €"

    def test_unknown_code_falls_back_to_eur(self):
        assert currency_info("XYZ").code == "EUR"
        assert format_currency(8.5, None) == "8,50 €"

    def test_negative(self):
        assert format_currency(-10, "USD") == "-$10.00"
