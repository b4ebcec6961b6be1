"""
Typed Exception Hierarchy for the CPQ Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A wrong price sent to a customer is worse than no price at all. Callers
(editors, PDF generation, import jobs) must be able to tell a bad input from
a bad configuration without parsing message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        calculate_quotation(items, parameters)
    except Exception as e:
        if "exchange rate" in str(e):  # FRAGILE - message might change
            ask_for_rates()

Example - RIGHT way (what this module enables):
    try:
        calculate_quotation(items, parameters)
    except MissingExchangeRateError as e:
        ask_for_rate(e.rate_name)
    except ValidationError as e:
        show_field_errors(e.errors)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from CPQError:

    CPQError (base)
    |
    +-- ValidationError
    |   +-- UnsupportedCurrencyError
    |   +-- InvalidQuantityError
    |   +-- InvalidAmountError
    |   +-- InvalidAssemblyError
    |   +-- InvalidQuotationItemError
    |   +-- InvalidParameterError
    |   +-- UnknownSystemError
    |
    +-- ConfigurationError
    |   +-- MissingExchangeRateError
    |   +-- InvalidExchangeRateError
    |   +-- PricingDefaultsError
    |
    +-- CurrencyMismatchError
    |
    +-- QuotationStateError
        +-- InvalidStatusTransitionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Generic input rejection
                | UNSUPPORTED_CURRENCY        | Currency is not NIS/ILS, USD or EUR
                | INVALID_QUANTITY            | Quantity <= 0
                | INVALID_AMOUNT              | Negative, NaN or infinite amount
                | INVALID_ASSEMBLY            | Blank name, no refs, bad quantity
                | INVALID_QUOTATION_ITEM      | Item fails pre-calculation checks
                | INVALID_PARAMETER           | Negative markup/risk/VAT/day cost
                | UNKNOWN_SYSTEM              | Item points at a system not supplied
----------------|-----------------------------|-----------------------------------------
Configuration   | CONFIGURATION_ERROR         | Generic configuration failure
                | MISSING_EXCHANGE_RATE       | Rate absent (never defaulted)
                | INVALID_EXCHANGE_RATE       | Rate zero, negative or not a number
                | PRICING_DEFAULTS_ERROR      | Defaults file malformed
----------------|-----------------------------|-----------------------------------------
Currency        | CURRENCY_MISMATCH           | Money arithmetic across currencies
----------------|-----------------------------|-----------------------------------------
Quotation       | INVALID_STATUS_TRANSITION   | e.g. won -> draft

===============================================================================
HANDLING PATTERNS
===============================================================================

1. VALIDATION IS FAIL-FAST: raised before any calculation starts, so a
   caller never sees a partially computed result.

2. CONFIGURATION ERRORS ARE LOUD: a missing or non-positive exchange rate
   would silently corrupt every downstream total, so it is never clamped
   or replaced by a default.

3. MISSING COMPONENT REFERENCES ARE NOT EXCEPTIONS: the assembly roll-up
   excludes them from totals and reports them in AssemblyPricing.

4. NOTHING IS RETRIED: every failure is deterministic for the same inputs;
   the caller fixes the input and recomputes.
"""

from __future__ import annotations

from collections.abc import Sequence


class CPQError(Exception):
    """
    Base exception for all CPQ kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CPQ_ERROR"


# Validation exceptions


class ValidationError(CPQError):
    """Input rejected before any calculation was attempted."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: Sequence[str] = ()):
        self.errors = tuple(errors) or (message,)
        super().__init__(message)


class UnsupportedCurrencyError(ValidationError):
    """Currency code is not one of the supported quoting currencies."""

    code: str = "UNSUPPORTED_CURRENCY"

    def __init__(self, currency_code: object):
        self.currency_code = str(currency_code)
        super().__init__(f"Unsupported currency: {currency_code!r}")


class InvalidQuantityError(ValidationError):
    """Quantity must be strictly positive."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, subject: str = "quantity"):
        self.quantity = str(quantity)
        self.subject = subject
        super().__init__(f"{subject} must be greater than zero, got {quantity}")


class InvalidAmountError(ValidationError):
    """Monetary amount is negative or not a finite number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, field_name: str):
        self.amount = str(amount)
        self.field_name = field_name
        super().__init__(f"Invalid {field_name}: {amount}")


class InvalidAssemblyError(ValidationError):
    """Assembly failed pre-pricing validation."""

    code: str = "INVALID_ASSEMBLY"

    def __init__(self, assembly_name: str, errors: Sequence[str]):
        self.assembly_name = assembly_name
        super().__init__(
            f"Assembly {assembly_name!r} is invalid: {'; '.join(errors)}",
            errors,
        )


class InvalidQuotationItemError(ValidationError):
    """Quotation item failed pre-calculation validation."""

    code: str = "INVALID_QUOTATION_ITEM"

    def __init__(self, item_id: str, errors: Sequence[str]):
        self.item_id = item_id
        super().__init__(
            f"Quotation item {item_id} is invalid: {'; '.join(errors)}",
            errors,
        )


class InvalidParameterError(ValidationError):
    """Quotation parameters contain an out-of-range value."""

    code: str = "INVALID_PARAMETER"

    def __init__(self, errors: Sequence[str]):
        super().__init__(
            f"Invalid quotation parameters: {'; '.join(errors)}",
            errors,
        )


class UnknownSystemError(ValidationError):
    """Quotation item references a system that was not supplied."""

    code: str = "UNKNOWN_SYSTEM"

    def __init__(self, item_id: str, system_id: str):
        self.item_id = item_id
        self.system_id = system_id
        super().__init__(f"Item {item_id} references unknown system {system_id}")


# Configuration exceptions


class ConfigurationError(CPQError):
    """Base exception for configuration errors (rates, defaults)."""

    code: str = "CONFIGURATION_ERROR"


class MissingExchangeRateError(ConfigurationError):
    """A required exchange rate was not supplied."""

    code: str = "MISSING_EXCHANGE_RATE"

    def __init__(self, rate_name: str):
        self.rate_name = rate_name
        super().__init__(f"Exchange rate {rate_name} is required")


class InvalidExchangeRateError(ConfigurationError):
    """Exchange rate is zero, negative, or not a number."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate_name: str, rate: object):
        self.rate_name = rate_name
        self.rate = str(rate)
        super().__init__(f"Exchange rate {rate_name} must be positive, got {rate}")


class PricingDefaultsError(ConfigurationError):
    """Pricing defaults file could not be interpreted."""

    code: str = "PRICING_DEFAULTS_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid pricing defaults in {source}: {reason}")


# Currency exceptions


class CurrencyMismatchError(CPQError):
    """Money arithmetic attempted across two currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, operation: str, left: str, right: str):
        self.operation = operation
        self.left = left
        self.right = right
        super().__init__(
            f"Cannot {operation} Money with different currencies: {left} and {right}"
        )


# Quotation lifecycle exceptions


class QuotationStateError(CPQError):
    """Base exception for quotation lifecycle errors."""

    code: str = "QUOTATION_STATE_ERROR"


class InvalidStatusTransitionError(QuotationStateError):
    """Quotation status change is not allowed by the lifecycle."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, quotation_id: str, from_status: str, to_status: str):
        self.quotation_id = quotation_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Quotation {quotation_id} cannot move from {from_status} to {to_status}"
        )
