"""
Tests for cpq_engines.conversion.

Verifies:
- The original-currency bucket is returned exactly as given
- Conversion formulas for every source currency
- Rounding is a separate, explicit step
- Legacy three-bucket records are normalized from a single original price
"""

from decimal import Decimal

import pytest

from cpq_engines.conversion import (
    CurrencyPrices,
    convert,
    convert_to_all_currencies,
    detect_original_currency,
    normalize_legacy_prices,
    price_component,
)
from cpq_kernel.domain.values import EUR, NIS, USD, ExchangeRateSet, Money
from cpq_kernel.exceptions import (
    InvalidAmountError,
    MissingExchangeRateError,
    UnsupportedCurrencyError,
)


class TestConvertToAllCurrencies:
    """Formulas around the original currency."""

    def test_usd_source(self, rates):
        prices = convert_to_all_currencies(Decimal("100"), "USD", rates)
        assert prices.usd == Decimal("100")
        assert prices.nis == Decimal("370")
        assert prices.eur == Decimal("92.5")
        assert prices.original_currency == USD

    def test_nis_source(self, rates):
        prices = convert_to_all_currencies(Decimal("400"), "NIS", rates)
        assert prices.nis == Decimal("400")
        assert prices.eur == Decimal("100")
        assert prices.usd == Decimal("400") / Decimal("3.7")

    def test_eur_source(self, rates):
        prices = convert_to_all_currencies(Decimal("100"), EUR, rates)
        assert prices.eur == Decimal("100")
        assert prices.nis == Decimal("400")
        assert prices.usd == Decimal("400") / Decimal("3.7")

    def test_ils_alias_is_nis(self, rates):
        prices = convert_to_all_currencies("10", "ILS", rates)
        assert prices.original_currency == NIS
        assert prices.nis == Decimal("10")

    @pytest.mark.parametrize("currency", ["NIS", "USD", "EUR"])
    def test_original_bucket_is_exact(self, rates, currency):
        amount = Decimal("123.456789")
        prices = convert_to_all_currencies(amount, currency, rates)
        assert prices.amount_in(currency) == amount
        assert prices.original_amount == amount

    def test_zero_amount(self, rates):
        prices = convert_to_all_currencies(0, "USD", rates)
        assert prices.nis == 0
        assert prices.usd == 0
        assert prices.eur == 0

    def test_missing_rates_raise(self):
        with pytest.raises(MissingExchangeRateError):
            convert_to_all_currencies(Decimal("1"), "USD", None)

    def test_unsupported_currency_raises(self, rates):
        with pytest.raises(UnsupportedCurrencyError):
            convert_to_all_currencies(Decimal("1"), "GBP", rates)

    def test_non_numeric_amount_raises(self, rates):
        with pytest.raises(InvalidAmountError):
            convert_to_all_currencies("ten", "USD", rates)

    def test_deterministic(self, rates):
        first = convert_to_all_currencies(Decimal("77.7"), "EUR", rates)
        second = convert_to_all_currencies(Decimal("77.7"), "EUR", rates)
        assert first == second

    def test_rates_changes_do_not_touch_original(self):
        before = convert_to_all_currencies(Decimal("100"), "USD", ExchangeRateSet.of("3.7", "4.0"))
        after = convert_to_all_currencies(Decimal("100"), "USD", ExchangeRateSet.of("4.0", "4.0"))
        assert before.nis == Decimal("370")
        assert after.nis == Decimal("400")
        assert before.usd == after.usd == Decimal("100")


class TestCurrencyPrices:
    """Accessors and display rounding."""

    def test_rounded_keeps_original_exact(self, rates):
        prices = convert_to_all_currencies(Decimal("100.005"), "NIS", rates).rounded()
        assert prices.nis == Decimal("100.005")
        assert prices.usd == Decimal("27.03")
        assert prices.eur == Decimal("25.00")

    def test_money_in(self, rates):
        prices = convert_to_all_currencies(Decimal("100"), "USD", rates)
        assert prices.money_in("NIS") == Money.of("370", "NIS")

    def test_is_value_object(self):
        prices = CurrencyPrices(
            nis=Decimal("1"),
            usd=Decimal("1"),
            eur=Decimal("1"),
            original_currency=NIS,
            original_amount=Decimal("1"),
        )
        with pytest.raises(AttributeError):
            prices.nis = Decimal("2")


class TestConvertHelpers:
    def test_convert_single_target(self, rates):
        assert convert(Decimal("100"), "USD", "EUR", rates) == Decimal("92.5")
        assert convert(Decimal("100"), "EUR", "EUR", rates) == Decimal("100")

    def test_price_component(self, rates, make_component):
        component = make_component(cost="50", currency="EUR")
        prices = price_component(component, rates)
        assert prices.nis == Decimal("200")
        assert prices.eur == Decimal("50")


class TestLegacyNormalization:
    """Records that stored all three buckets are rebuilt from one original."""

    def test_declared_currency_wins(self):
        currency, amount = detect_original_currency(
            nis=Decimal("370"), usd=Decimal("100"), declared="USD"
        )
        assert currency == USD
        assert amount == Decimal("100")

    def test_first_positive_bucket_when_undeclared(self):
        currency, amount = detect_original_currency(nis=0, usd=None, eur="80")
        assert currency == EUR
        assert amount == Decimal("80")

    def test_declared_bucket_empty_falls_back(self):
        currency, amount = detect_original_currency(nis="500", usd=0, declared="USD")
        assert currency == NIS
        assert amount == Decimal("500")

    def test_nothing_positive_is_zero_nis(self):
        assert detect_original_currency() == (NIS, Decimal("0"))

    def test_normalize_recomputes_stale_buckets(self, rates):
        prices = normalize_legacy_prices(
            rates, nis=Decimal("350"), usd=Decimal("100"), eur=Decimal("90"), declared="USD"
        )
        assert prices.usd == Decimal("100")
        assert prices.nis == Decimal("370")
        assert prices.eur == Decimal("92.5")

    def test_explicit_original_cost_overrides_bucket(self, rates):
        prices = normalize_legacy_prices(
            rates, usd=Decimal("100"), declared="USD", original_cost=Decimal("120")
        )
        assert prices.usd == Decimal("120")
        assert prices.nis == Decimal("444")
