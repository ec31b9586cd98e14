"""Tier payload builder — exact decimal → smallest-unit conversion.

Monetary amounts are converted with integer arithmetic on the decimal's
digits, never through floats and never through a rounding context. An
amount with more fractional digits than the unit precision supports is
an error, not a rounding.

    >>> to_smallest_unit(Decimal("0.035"), 18)
    35000000000000000
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence, Union

from paddeploy.errors import UnitConversionError
from paddeploy.models.deployment import TierSpec

# Native unit precision of EVM ledgers (wei per ether).
NATIVE_PRECISION = 18

Amount = Union[Decimal, str, int]


def _as_decimal(value: Amount) -> Decimal:
    if isinstance(value, bool):
        raise UnitConversionError(f"Not a monetary amount: {value!r}")
    if isinstance(value, float):
        raise UnitConversionError(
            f"Binary float {value!r} is not exact; pass a string or Decimal"
        )
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise UnitConversionError(f"Not a monetary amount: {value!r}") from exc


def to_smallest_unit(value: Amount, precision: int = NATIVE_PRECISION) -> int:
    """Convert a decimal amount to an integer count of smallest units.

    Raises UnitConversionError if the amount is not finite or has more
    significant fractional digits than precision allows.
    """
    if precision < 0:
        raise ValueError("precision must be >= 0")
    amount = _as_decimal(value)
    if not amount.is_finite():
        raise UnitConversionError(f"Amount must be finite, got {amount}")

    sign, digits, exponent = amount.as_tuple()
    coefficient = int("".join(str(d) for d in digits) or "0")
    shift = exponent + precision
    if shift >= 0:
        result = coefficient * 10 ** shift
    else:
        result, remainder = divmod(coefficient, 10 ** -shift)
        if remainder:
            raise UnitConversionError(
                f"Amount {amount} has more than {precision} decimal places"
            )
    return -result if sign else result


def from_smallest_unit(amount: int, precision: int = NATIVE_PRECISION) -> Decimal:
    """Convert an integer count of smallest units back to a decimal amount."""
    if precision < 0:
        raise ValueError("precision must be >= 0")
    sign = 1 if amount < 0 else 0
    digits = tuple(int(d) for d in str(abs(amount)))
    return Decimal((sign, digits, -precision))


def build_tier_specs(
    raw_tiers: Mapping[str, Mapping[str, Any]],
    unit_precision: int,
    order: Sequence[str],
) -> list[TierSpec]:
    """Compute tier registration payloads in a caller-fixed order.

    raw_tiers maps tier name → {"fee": decimal amount, "unit_amount": int}.
    order lists every tier name exactly once; the output follows it
    rather than the mapping's insertion order, so registration
    transactions are sequenced identically across runs.
    """
    if len(set(order)) != len(order):
        raise ValueError(f"Tier order has duplicates: {list(order)}")
    missing = [name for name in order if name not in raw_tiers]
    if missing:
        raise ValueError(f"Tier order names unknown tiers: {missing}")
    unordered = sorted(set(raw_tiers) - set(order))
    if unordered:
        raise ValueError(f"Tiers missing from order: {unordered}")

    specs: list[TierSpec] = []
    for name in order:
        raw = raw_tiers[name]
        try:
            fee_value = raw["fee"]
        except KeyError as exc:
            raise ValueError(f"Tier '{name}' has no fee") from exc
        fee = to_smallest_unit(fee_value, unit_precision)
        if fee <= 0:
            raise UnitConversionError(f"Tier '{name}': fee must be positive, got {fee_value}")

        unit_amount = raw.get("unit_amount")
        if isinstance(unit_amount, bool) or not isinstance(unit_amount, int) or unit_amount <= 0:
            raise UnitConversionError(
                f"Tier '{name}': unit_amount must be a positive integer, got {unit_amount!r}"
            )
        specs.append(TierSpec(name=name, fee_amount=fee, unit_amount=unit_amount))
    return specs
