"""
Values -- Immutable, self-validating pricing value objects.

Responsibility:
    Provides the foundational value types for every pricing computation:
    Currency, Money and ExchangeRateSet. These replace primitive types
    (float, str) wherever prices appear in domain logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain and engine module. No outward
    dependencies except cpq_kernel.domain.currency and cpq_kernel.exceptions.

Invariants enforced:
    - Amounts are Decimal, never float (floats are converted through str)
    - Currency codes are validated at construction (NIS/ILS, USD, EUR)
    - Exchange rates are present and strictly positive; an absent or
      non-positive rate is a ConfigurationError, never a silent default

Failure modes:
    - UnsupportedCurrencyError for unknown currency codes
    - InvalidAmountError for amounts that are not finite numbers
    - MissingExchangeRateError / InvalidExchangeRateError for bad rates
    - CurrencyMismatchError when arithmetic mixes currencies
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from cpq_kernel.domain.currency import CurrencyRegistry
from cpq_kernel.exceptions import (
    CurrencyMismatchError,
    InvalidAmountError,
    InvalidExchangeRateError,
    MissingExchangeRateError,
    UnsupportedCurrencyError,
)

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


def to_decimal(value: Decimal | str | int | float, field_name: str = "amount") -> Decimal:
    """
    Coerce a numeric input to a finite Decimal.

    Floats go through ``str`` so that 3.7 becomes Decimal("3.7"), not its
    binary expansion.

    Raises:
        InvalidAmountError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(value, field_name)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as e:
            raise InvalidAmountError(value, field_name) from e
    if not result.is_finite():
        raise InvalidAmountError(value, field_name)
    return result


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * percent / 100`` at full precision."""
    return amount * percent / HUNDRED


@dataclass(frozen=True, slots=True)
class Currency:
    """
    Quoting currency value object.

    Contract:
        Wraps one of the supported codes. Validated and normalized
        (uppercased, ILS mapped to NIS) on construction.

    Non-goals:
        - Does NOT perform conversion (see cpq_engines.conversion)
    """

    code: str

    def __post_init__(self) -> None:
        normalized = CurrencyRegistry.normalize(self.code)
        if normalized is None:
            raise UnsupportedCurrencyError(self.code)
        object.__setattr__(self, "code", normalized)

    @classmethod
    def parse(cls, value: Currency | str) -> Currency:
        """Accept either a Currency or a code string."""
        if isinstance(value, Currency):
            return value
        return cls(value)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def iso_code(self) -> str:
        """ISO 4217 code (ILS for NIS)."""
        info = CurrencyRegistry.get_info(self.code)
        return info.iso_code if info else self.code

    @property
    def is_reporting(self) -> bool:
        """True for NIS, the reporting currency."""
        return self.code == CurrencyRegistry.REPORTING_CODE

    @property
    def name(self) -> str:
        info = CurrencyRegistry.get_info(self.code)
        return info.name if info else self.code

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


NIS = Currency("NIS")
USD = Currency("USD")
EUR = Currency("EUR")

SUPPORTED_CURRENCIES: tuple[Currency, ...] = (NIS, USD, EUR)


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency -- they are NEVER separated.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is always a finite Decimal
        - Arithmetic operations enforce same-currency constraint

    Non-goals:
        - Does NOT perform currency conversion
        - Does NOT auto-round -- callers must explicitly call .round()
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """Factory method for creating Money."""
        return cls(amount=to_decimal(amount), currency=Currency.parse(currency))

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        return cls(amount=ZERO, currency=Currency.parse(currency))

    @property
    def is_zero(self) -> bool:
        return self.amount == ZERO

    @property
    def is_positive(self) -> bool:
        return self.amount > ZERO

    @property
    def is_negative(self) -> bool:
        return self.amount < ZERO

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """
        Round to the currency's decimal places.

        Only called at display and persistence boundaries; intermediate
        accumulation keeps full precision.
        """
        info = CurrencyRegistry.get_info(self.currency.code)
        exponent = info.quantize_exponent if info else Decimal("0.01")
        return Money(amount=self.amount.quantize(exponent, rounding=rounding), currency=self.currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(operation, self.currency.code, other.currency.code)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __abs__(self) -> Money:
        return Money(amount=abs(self.amount), currency=self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        """Multiply by a scalar."""
        if isinstance(factor, (int, str)) and not isinstance(factor, bool):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

    def __truediv__(self, divisor: Decimal | int | str) -> Money:
        """Divide by a scalar."""
        if isinstance(divisor, (int, str)) and not isinstance(divisor, bool):
            divisor = Decimal(str(divisor))
        if not isinstance(divisor, Decimal):
            return NotImplemented
        return Money(amount=self.amount / divisor, currency=self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"


def _resolve_rate(rate_name: str, value: Decimal | str | int | float | None) -> Decimal:
    if value is None:
        raise MissingExchangeRateError(rate_name)
    try:
        rate = to_decimal(value, rate_name)
    except InvalidAmountError as e:
        raise InvalidExchangeRateError(rate_name, value) from e
    if rate <= ZERO:
        raise InvalidExchangeRateError(rate_name, value)
    return rate


@dataclass(frozen=True, slots=True)
class ExchangeRateSet:
    """
    The live USD/ILS and EUR/ILS rate pair of one quotation.

    Contract:
        1 USD = usd_to_ils NIS; 1 EUR = eur_to_ils NIS. Supplied by the
        caller per quotation; never engine-owned global state.

    Guarantees:
        - Both rates are present, finite and strictly positive Decimals.
          Anything else raises a ConfigurationError subclass at construction.

    Non-goals:
        - Does NOT store effective dates or rate history
    """

    usd_to_ils: Decimal
    eur_to_ils: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "usd_to_ils", _resolve_rate("usd_to_ils", self.usd_to_ils))
        object.__setattr__(self, "eur_to_ils", _resolve_rate("eur_to_ils", self.eur_to_ils))

    @classmethod
    def of(
        cls,
        usd_to_ils: Decimal | str | int | float | None,
        eur_to_ils: Decimal | str | int | float | None,
    ) -> ExchangeRateSet:
        """Factory method; rates may be given as str/int/float."""
        return cls(usd_to_ils=usd_to_ils, eur_to_ils=eur_to_ils)

    def rate_to_ils(self, currency: Currency) -> Decimal:
        """NIS value of one unit of ``currency``."""
        if currency == USD:
            return self.usd_to_ils
        if currency == EUR:
            return self.eur_to_ils
        return ONE

    @property
    def usd_to_eur(self) -> Decimal:
        """Cross rate derived from the two ILS rates."""
        return self.usd_to_ils / self.eur_to_ils

    def __str__(self) -> str:
        return f"USD/ILS={self.usd_to_ils} EUR/ILS={self.eur_to_ils}"
