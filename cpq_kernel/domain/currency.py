"""Currency -- registry of the quoting currencies and their display precision."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single quoting currency."""

    code: str
    iso_code: str
    decimal_places: int
    name: str
    symbol: str

    @property
    def quantize_exponent(self) -> Decimal:
        """Exponent for Decimal.quantize() at this currency's precision."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * self.decimal_places)


class CurrencyRegistry:
    """Registry of the currencies a quotation may be priced in.

    NIS is the reporting currency. The business writes it as NIS while
    ISO 4217 calls it ILS; both are accepted on input and NIS is canonical.
    """

    REPORTING_CODE: ClassVar[str] = "NIS"

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        "NIS": CurrencyInfo("NIS", "ILS", 2, "Israeli New Shekel", "₪"),
        "USD": CurrencyInfo("USD", "USD", 2, "US Dollar", "$"),
        "EUR": CurrencyInfo("EUR", "EUR", 2, "Euro", "€"),
    }

    _ALIASES: ClassVar[dict[str, str]] = {
        "ILS": "NIS",
    }

    @classmethod
    def normalize(cls, code: object) -> str | None:
        """Canonical code for ``code``, or None when it is not supported."""
        if not code or not isinstance(code, str):
            return None
        normalized = code.upper().strip()
        normalized = cls._ALIASES.get(normalized, normalized)
        return normalized if normalized in cls._CURRENCIES else None

    @classmethod
    def is_valid(cls, code: object) -> bool:
        """Check if a currency code is a supported quoting currency."""
        return cls.normalize(code) is not None

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code (aliases accepted)."""
        normalized = cls.normalize(code)
        return cls._CURRENCIES[normalized] if normalized else None

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def all_codes(cls) -> tuple[str, ...]:
        """Canonical codes in reporting order (NIS, USD, EUR)."""
        return tuple(cls._CURRENCIES.keys())
