"""Tests for pm_common.precision — the shared decimal policy."""

from decimal import Decimal

import pytest

from src.pm_common.precision import LMSR_CONTEXT, quantize_percent, to_decimal


class TestToDecimal:
    def test_int(self) -> None:
        assert to_decimal(1000) == Decimal(1000)

    def test_float_uses_shortest_repr(self) -> None:
        # Decimal(0.1) would carry the binary expansion; repr does not.
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string(self) -> None:
        assert to_decimal("3000.5") == Decimal("3000.5")

    def test_decimal_passthrough(self) -> None:
        d = Decimal("1.23")
        assert to_decimal(d) is d

    def test_bool_rejected(self) -> None:
        with pytest.raises(TypeError):
            to_decimal(True)


class TestContext:
    def test_precision_is_fixed(self) -> None:
        assert LMSR_CONTEXT.prec == 40

    def test_ln_is_deterministic(self) -> None:
        assert LMSR_CONTEXT.ln(Decimal(2)) == LMSR_CONTEXT.ln(Decimal(2))
        assert str(LMSR_CONTEXT.ln(Decimal(2))).startswith("0.693147180559945309417232")


class TestQuantizePercent:
    def test_half_even(self) -> None:
        assert quantize_percent(Decimal("52.125")) == Decimal("52.12")
        assert quantize_percent(Decimal("52.135")) == Decimal("52.14")

    def test_two_places(self) -> None:
        assert quantize_percent(Decimal("50")) == Decimal("50.00")
