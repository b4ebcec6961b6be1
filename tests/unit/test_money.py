"""
Unit tests for Money, ExchangeRateSet and decimal coercion.

Verifies:
- Floats are coerced through str, never their binary expansion
- Rounding is explicit and half-up at two places
- Same-currency arithmetic only
- Exchange rates are present and strictly positive
"""

from decimal import Decimal

import pytest

from cpq_kernel.domain.values import (
    EUR,
    NIS,
    USD,
    ExchangeRateSet,
    Money,
    percent_of,
    to_decimal,
)
from cpq_kernel.exceptions import (
    ConfigurationError,
    CurrencyMismatchError,
    InvalidAmountError,
    InvalidExchangeRateError,
    MissingExchangeRateError,
)


class TestToDecimal:
    """Tests for to_decimal coercion."""

    def test_float_goes_through_str(self):
        assert to_decimal(3.7) == Decimal("3.7")

    def test_string_and_int(self):
        assert to_decimal("100.50") == Decimal("100.50")
        assert to_decimal(7) == Decimal("7")

    def test_decimal_passthrough(self):
        value = Decimal("1.23456789012345678901234567890")
        assert to_decimal(value) is value

    def test_not_a_number_raises(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            to_decimal("not a number", "original_cost")
        assert exc_info.value.field_name == "original_cost"

    def test_non_finite_rejected(self):
        for value in (Decimal("NaN"), Decimal("Infinity"), float("inf"), "-Infinity"):
            with pytest.raises(InvalidAmountError):
                to_decimal(value)

    def test_bool_rejected(self):
        with pytest.raises(InvalidAmountError):
            to_decimal(True)

    def test_percent_of(self):
        assert percent_of(Decimal("1250"), Decimal("5")) == Decimal("62.5")


class TestMoney:
    """Tests for the Money value object."""

    def test_of_factory(self):
        money = Money.of("100.50", "USD")
        assert money.amount == Decimal("100.50")
        assert money.currency == USD

    def test_zero(self):
        assert Money.zero("EUR").is_zero

    def test_ils_alias(self):
        assert Money.of("10", "ILS").currency == NIS

    def test_round_half_up(self):
        assert Money.of("2.345", "NIS").round().amount == Decimal("2.35")
        assert Money.of("2.344", "NIS").round().amount == Decimal("2.34")

    def test_no_auto_rounding(self):
        money = Money.of("1", "NIS") / 3
        assert money.amount != money.round().amount

    def test_same_currency_addition(self):
        total = Money.of("100", "NIS") + Money.of("270", "NIS")
        assert total == Money.of("370", "NIS")

    def test_subtraction_and_negation(self):
        diff = Money.of("100", "USD") - Money.of("150", "USD")
        assert diff.is_negative
        assert -diff == Money.of("50", "USD")
        assert abs(diff) == Money.of("50", "USD")

    def test_currency_mismatch_raises(self):
        with pytest.raises(CurrencyMismatchError) as exc_info:
            Money.of("1", "USD") + Money.of("1", "EUR")
        assert exc_info.value.left == "USD"
        assert exc_info.value.right == "EUR"

    def test_comparison_requires_same_currency(self):
        assert Money.of("1", "NIS") < Money.of("2", "NIS")
        with pytest.raises(CurrencyMismatchError):
            Money.of("1", "NIS") < Money.of("2", "USD")

    def test_scalar_multiplication(self):
        assert Money.of("100", "EUR") * Decimal("1.5") == Money.of("150", "EUR")
        assert 2 * Money.of("100", "EUR") == Money.of("200", "EUR")

    def test_immutable(self):
        money = Money.of("1", "NIS")
        with pytest.raises(AttributeError):
            money.amount = Decimal("2")

    def test_str(self):
        assert str(Money.of("12.50", "EUR")) == "12.50 EUR"


class TestExchangeRateSet:
    """Rates are explicit, present and strictly positive."""

    def test_of_factory_coerces(self):
        rates = ExchangeRateSet.of("3.7", 4.0)
        assert rates.usd_to_ils == Decimal("3.7")
        assert rates.eur_to_ils == Decimal("4.0")

    def test_rate_to_ils(self):
        rates = ExchangeRateSet.of("3.7", "4.0")
        assert rates.rate_to_ils(NIS) == Decimal("1")
        assert rates.rate_to_ils(USD) == Decimal("3.7")
        assert rates.rate_to_ils(EUR) == Decimal("4.0")

    def test_usd_to_eur_cross_rate(self):
        rates = ExchangeRateSet.of("3.7", "4.0")
        assert rates.usd_to_eur == Decimal("0.925")

    def test_missing_rate_raises(self):
        with pytest.raises(MissingExchangeRateError) as exc_info:
            ExchangeRateSet.of(None, "4.0")
        assert exc_info.value.rate_name == "usd_to_ils"

    @pytest.mark.parametrize("bad_rate", ["0", "-3.7", "abc", "NaN"])
    def test_non_positive_or_invalid_rate_raises(self, bad_rate):
        with pytest.raises(InvalidExchangeRateError) as exc_info:
            ExchangeRateSet.of("3.7", bad_rate)
        assert exc_info.value.rate_name == "eur_to_ils"

    def test_rate_errors_are_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            ExchangeRateSet.of("0", "4.0")
