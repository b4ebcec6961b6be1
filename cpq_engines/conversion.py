"""
cpq_engines.conversion -- NIS / USD / EUR conversion around an original price.

Responsibility:
    Given an amount in its original currency and the quotation's exchange
    rates, derive the equivalent amounts in all three supported currencies
    while keeping the original amount untouched.  This is the only module
    that multiplies or divides by exchange rates; the assembly roll-up and
    the quotation cascade both go through it.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import cpq_kernel (domain values, exceptions, logging).
    Leaf engine: consumed by cpq_engines.assembly and cpq_engines.quotation.

Invariants enforced:
    - The bucket matching the original currency equals the input amount
      exactly; it is never re-derived from a converted value.
    - Full Decimal precision; no rounding happens here.  Callers round at
      display or persistence boundaries via CurrencyPrices.rounded().
    - Determinism: identical inputs produce identical outputs.  Rates are
      explicit arguments, never read from global settings.

Failure modes:
    - MissingExchangeRateError if rates is None.
    - InvalidExchangeRateError (via ExchangeRateSet) for non-positive rates.
    - InvalidAmountError for amounts that are not finite numbers.
    - UnsupportedCurrencyError for codes other than NIS/ILS, USD, EUR.

Usage:
    from cpq_engines.conversion import convert_to_all_currencies
    from cpq_kernel.domain.values import ExchangeRateSet

    rates = ExchangeRateSet.of("3.7", "4.0")
    prices = convert_to_all_currencies(Decimal("100"), "USD", rates)
    prices.nis   # Decimal("370.0")
    prices.eur   # Decimal("92.5")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from cpq_kernel.domain.catalog import Component
from cpq_kernel.domain.values import (
    EUR,
    NIS,
    USD,
    ZERO,
    Currency,
    ExchangeRateSet,
    Money,
    to_decimal,
)
from cpq_kernel.exceptions import MissingExchangeRateError
from cpq_kernel.logging_config import get_logger
from cpq_engines.tracer import traced_engine

logger = get_logger("engines.conversion")

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class CurrencyPrices:
    """
    One amount expressed in all three currencies.

    The bucket named by original_currency always equals original_amount.
    """

    nis: Decimal
    usd: Decimal
    eur: Decimal
    original_currency: Currency
    original_amount: Decimal

    def amount_in(self, currency: Currency | str) -> Decimal:
        match Currency.parse(currency).code:
            case "USD":
                return self.usd
            case "EUR":
                return self.eur
            case _:
                return self.nis

    def money_in(self, currency: Currency | str) -> Money:
        target = Currency.parse(currency)
        return Money(amount=self.amount_in(target), currency=target)

    def rounded(self) -> CurrencyPrices:
        """Round the derived buckets to 2 places; the original stays exact."""

        def _round(currency: Currency, amount: Decimal) -> Decimal:
            if currency == self.original_currency:
                return amount
            return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

        return CurrencyPrices(
            nis=_round(NIS, self.nis),
            usd=_round(USD, self.usd),
            eur=_round(EUR, self.eur),
            original_currency=self.original_currency,
            original_amount=self.original_amount,
        )


@traced_engine("conversion", "1.0", fingerprint_fields=("amount", "original_currency", "rates"))
def convert_to_all_currencies(
    amount: Decimal | str | int,
    original_currency: Currency | str,
    rates: ExchangeRateSet | None,
) -> CurrencyPrices:
    """
    Derive NIS, USD and EUR equivalents of ``amount``.

    Formulas (a = amount):
        NIS -> USD: a / usd_to_ils      NIS -> EUR: a / eur_to_ils
        USD -> NIS: a * usd_to_ils      USD -> EUR: a * usd_to_ils / eur_to_ils
        EUR -> NIS: a * eur_to_ils      EUR -> USD: a * eur_to_ils / usd_to_ils

    Raises:
        MissingExchangeRateError: rates is None.
        InvalidAmountError: amount is not a finite number.
        UnsupportedCurrencyError: unknown currency code.
    """
    if rates is None:
        raise MissingExchangeRateError("exchange_rates")
    value = to_decimal(amount)
    currency = Currency.parse(original_currency)

    match currency.code:
        case "USD":
            nis = value * rates.usd_to_ils
            usd = value
            eur = value * rates.usd_to_ils / rates.eur_to_ils
        case "EUR":
            nis = value * rates.eur_to_ils
            usd = value * rates.eur_to_ils / rates.usd_to_ils
            eur = value
        case _:
            nis = value
            usd = value / rates.usd_to_ils
            eur = value / rates.eur_to_ils

    logger.debug("currency_converted", extra={
        "amount": str(value),
        "original_currency": currency.code,
        "nis": str(nis),
        "usd": str(usd),
        "eur": str(eur),
    })

    return CurrencyPrices(
        nis=nis,
        usd=usd,
        eur=eur,
        original_currency=currency,
        original_amount=value,
    )


def convert(
    amount: Decimal | str | int,
    from_currency: Currency | str,
    to_currency: Currency | str,
    rates: ExchangeRateSet | None,
) -> Decimal:
    """Single-target conversion; same semantics as convert_to_all_currencies."""
    return convert_to_all_currencies(amount, from_currency, rates).amount_in(to_currency)


def price_component(component: Component, rates: ExchangeRateSet | None) -> CurrencyPrices:
    """Unit cost of ``component`` in all currencies, from its original price."""
    return convert_to_all_currencies(component.original_cost, component.original_currency, rates)


def _positive(value: Decimal | str | int | None) -> Decimal | None:
    if value is None:
        return None
    amount = to_decimal(value)
    return amount if amount > ZERO else None


def detect_original_currency(
    nis: Decimal | str | int | None = None,
    usd: Decimal | str | int | None = None,
    eur: Decimal | str | int | None = None,
    declared: Currency | str | None = None,
) -> tuple[Currency, Decimal]:
    """
    Recover the authoritative (currency, amount) of a legacy record that
    stored all three buckets.

    A declared currency wins when its bucket is positive; otherwise the
    first positive bucket in NIS, USD, EUR order; otherwise (NIS, 0).
    """
    buckets = {
        NIS: _positive(nis),
        USD: _positive(usd),
        EUR: _positive(eur),
    }
    if declared is not None:
        declared_currency = Currency.parse(declared)
        if buckets[declared_currency] is not None:
            return declared_currency, buckets[declared_currency]
    for currency, amount in buckets.items():
        if amount is not None:
            return currency, amount
    return NIS, ZERO


def normalize_legacy_prices(
    rates: ExchangeRateSet | None,
    nis: Decimal | str | int | None = None,
    usd: Decimal | str | int | None = None,
    eur: Decimal | str | int | None = None,
    declared: Currency | str | None = None,
    original_cost: Decimal | str | int | None = None,
) -> CurrencyPrices:
    """
    Rebuild all three buckets of an imported record from its original price.

    An explicit positive ``original_cost`` overrides the amount found in
    the detected bucket.
    """
    currency, amount = detect_original_currency(nis, usd, eur, declared)
    explicit = _positive(original_cost)
    if explicit is not None:
        amount = explicit
    return convert_to_all_currencies(amount, currency, rates)
