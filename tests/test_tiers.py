"""Tests for tier payload building — proves unit conversion is exact."""

import pytest
from decimal import Decimal

from paddeploy.engine.tiers import build_tier_specs, from_smallest_unit, to_smallest_unit
from paddeploy.errors import UnitConversionError


class TestToSmallestUnit:
    def test_silver_fee(self) -> None:
        assert to_smallest_unit(Decimal("0.035"), 18) == 35_000_000_000_000_000

    def test_gold_fee(self) -> None:
        assert to_smallest_unit(Decimal("0.2"), 18) == 200_000_000_000_000_000

    def test_string_and_int_inputs(self) -> None:
        assert to_smallest_unit("1.5", 2) == 150
        assert to_smallest_unit(3, 2) == 300

    def test_exactly_at_precision(self) -> None:
        assert to_smallest_unit("0.000000000000000001", 18) == 1

    def test_trailing_zeros_beyond_precision_are_exact(self) -> None:
        """0.10 at precision 1 has no significant digit past the unit."""
        assert to_smallest_unit("0.10", 1) == 1

    def test_excess_precision_fails(self) -> None:
        with pytest.raises(UnitConversionError, match="decimal places"):
            to_smallest_unit("0.0000000000000000001", 18)

    def test_excess_precision_never_rounds(self) -> None:
        with pytest.raises(UnitConversionError):
            to_smallest_unit("1.005", 2)

    def test_float_rejected(self) -> None:
        with pytest.raises(UnitConversionError, match="float"):
            to_smallest_unit(0.035, 18)

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(UnitConversionError):
            to_smallest_unit(Decimal("Infinity"), 18)
        with pytest.raises(UnitConversionError):
            to_smallest_unit(Decimal("NaN"), 18)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(UnitConversionError):
            to_smallest_unit("a lot", 18)

    def test_unit_conversion_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            to_smallest_unit("0.001", 2)

    def test_large_amount_beyond_context_precision(self) -> None:
        """More digits than the default decimal context holds, still exact."""
        value = Decimal("123456789012345678901234567890.123456789012345678")
        assert to_smallest_unit(value, 18) == 123456789012345678901234567890123456789012345678


class TestRoundTrip:
    @pytest.mark.parametrize("text", ["0.035", "0.2", "1", "0.000000000000000001", "98765.4321"])
    def test_decimal_round_trip(self, text: str) -> None:
        amount = to_smallest_unit(text, 18)
        assert from_smallest_unit(amount, 18) == Decimal(text)

    def test_integer_round_trip(self) -> None:
        amount = 35_000_000_000_000_000
        assert to_smallest_unit(from_smallest_unit(amount, 18), 18) == amount

    def test_from_smallest_unit_is_exact_for_huge_values(self) -> None:
        amount = 10 ** 40 + 1
        back = from_smallest_unit(amount, 18)
        assert to_smallest_unit(back, 18) == amount


class TestBuildTierSpecs:
    RAW = {
        "gold": {"fee": Decimal("0.2"), "unit_amount": 32000},
        "silver": {"fee": Decimal("0.035"), "unit_amount": 50000},
    }

    def test_silver_then_gold(self) -> None:
        specs = build_tier_specs(self.RAW, 18, order=["silver", "gold"])
        assert [s.name for s in specs] == ["silver", "gold"]
        assert specs[0].fee_amount == 35_000_000_000_000_000
        assert specs[0].unit_amount == 50000
        assert specs[1].fee_amount == 200_000_000_000_000_000
        assert specs[1].unit_amount == 32000

    def test_order_not_insertion_order(self) -> None:
        specs = build_tier_specs(self.RAW, 18, order=["silver", "gold"])
        assert [s.name for s in specs] != list(self.RAW)

    def test_unknown_tier_in_order(self) -> None:
        with pytest.raises(ValueError, match="unknown"):
            build_tier_specs(self.RAW, 18, order=["silver", "gold", "platinum"])

    def test_tier_missing_from_order(self) -> None:
        with pytest.raises(ValueError, match="missing from order"):
            build_tier_specs(self.RAW, 18, order=["silver"])

    def test_duplicate_in_order(self) -> None:
        with pytest.raises(ValueError, match="duplicates"):
            build_tier_specs(self.RAW, 18, order=["silver", "silver", "gold"])

    def test_zero_fee_rejected(self) -> None:
        raw = {"free": {"fee": "0", "unit_amount": 1}}
        with pytest.raises(UnitConversionError, match="positive"):
            build_tier_specs(raw, 18, order=["free"])

    def test_negative_fee_rejected(self) -> None:
        raw = {"odd": {"fee": "-0.1", "unit_amount": 1}}
        with pytest.raises(UnitConversionError):
            build_tier_specs(raw, 18, order=["odd"])

    def test_excess_precision_fee_rejected(self) -> None:
        raw = {"odd": {"fee": "0.0001", "unit_amount": 1}}
        with pytest.raises(UnitConversionError):
            build_tier_specs(raw, 3, order=["odd"])

    @pytest.mark.parametrize("unit_amount", [0, -5, 1.5, "100", True, None])
    def test_bad_unit_amount(self, unit_amount) -> None:
        raw = {"t": {"fee": "1", "unit_amount": unit_amount}}
        with pytest.raises(ValueError, match="unit_amount"):
            build_tier_specs(raw, 18, order=["t"])

    def test_bad_unit_amount_is_conversion_error(self) -> None:
        raw = {"t": {"fee": "1", "unit_amount": 0}}
        with pytest.raises(UnitConversionError, match="unit_amount"):
            build_tier_specs(raw, 18, order=["t"])
