"""
Quotation -- Line items, systems, parameters and lifecycle of a quotation.

Responsibility:
    Defines the read-only snapshot the calculation cascade consumes: the
    quotation's items (each carrying its authoritative original cost and
    currency), the systems that group and multiply them, and the
    parameters (rates, markup, risk, VAT) they are priced under.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Consumed by cpq_engines.quotation and cpq_engines.statistics.

Invariants enforced:
    - Item quantity and system quantity are strictly positive.
    - Item original_cost is >= 0 and is the cost basis in both pricing
      modes, so margin is always reportable.
    - An item is priced by exactly one mode: CostPlusMarkup or MsrpDiscount.
    - Status follows draft -> sent -> won | lost and never affects pricing.

Failure modes:
    - InvalidQuantityError / InvalidAmountError on construction.
    - ConfigurationError from QuotationParameters.exchange_rates when a rate
      is absent or not positive.
    - InvalidStatusTransitionError from Quotation.with_status.
    - ValidationError from QuotationItem.with_msrp_pricing when no list
      price is on record.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from cpq_kernel.domain.catalog import (
    ItemType,
    LaborSubtype,
    check_labor_subtype,
    discount_percent,
    non_negative,
    positive_quantity,
)
from cpq_kernel.domain.values import ZERO, Currency, ExchangeRateSet, to_decimal
from cpq_kernel.exceptions import (
    InvalidAmountError,
    InvalidExchangeRateError,
    InvalidStatusTransitionError,
    ValidationError,
)


class QuotationStatus(str, Enum):
    """Sales lifecycle of a quotation."""

    DRAFT = "draft"
    SENT = "sent"
    WON = "won"
    LOST = "lost"

    def can_transition_to(self, target: QuotationStatus) -> bool:
        return target in _ALLOWED_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[QuotationStatus, frozenset[QuotationStatus]] = {
    QuotationStatus.DRAFT: frozenset({QuotationStatus.SENT}),
    QuotationStatus.SENT: frozenset({QuotationStatus.WON, QuotationStatus.LOST}),
    QuotationStatus.WON: frozenset(),
    QuotationStatus.LOST: frozenset(),
}


@dataclass(frozen=True, slots=True)
class CostPlusMarkup:
    """Customer price = cost * (1 + markup_percent / 100)."""

    markup_percent: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "markup_percent", non_negative(self.markup_percent, "markup_percent"))


@dataclass(frozen=True, slots=True)
class MsrpDiscount:
    """Customer price = list price * (1 - partner_discount_percent / 100)."""

    msrp_price: Decimal
    msrp_currency: Currency
    partner_discount_percent: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "msrp_price", non_negative(self.msrp_price, "msrp_price"))
        object.__setattr__(self, "msrp_currency", Currency.parse(self.msrp_currency))
        object.__setattr__(
            self,
            "partner_discount_percent",
            discount_percent(self.partner_discount_percent, "partner_discount_percent"),
        )


ItemPricing = CostPlusMarkup | MsrpDiscount


@dataclass(frozen=True, slots=True)
class QuotationSystem:
    """A named group of items quoted ``quantity`` times."""

    id: str
    name: str
    order: int = 1
    quantity: Decimal = Decimal("1")
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", positive_quantity(self.quantity, "system quantity"))


@dataclass(frozen=True, slots=True)
class QuotationItem:
    """
    One priced line of a quotation.

    Contract:
        (original_cost, original_currency) is the unit cost snapshotted when
        the item was added. Every recalculation starts from these fields;
        derived prices are never stored on the item.

    Guarantees:
        - quantity > 0 (days, for internal labor)
        - original_cost >= 0
        - labor_subtype only on labor items
        - msrp_currency is set whenever msrp_price is set

    The msrp_* fields record the list price the source component carried,
    whatever mode the item is currently priced in, so the item can be
    switched to MSRP pricing later without going back to the library.
    """

    id: str
    name: str
    item_type: ItemType
    quantity: Decimal
    original_cost: Decimal
    original_currency: Currency
    pricing: ItemPricing
    labor_subtype: LaborSubtype | None = None
    system_id: str | None = None
    component_id: str | None = None
    assembly_id: str | None = None
    is_internal_labor: bool = False
    category: str = ""
    sort_order: int = 0
    display_number: str = ""
    msrp_price: Decimal | None = None
    msrp_currency: Currency | None = None
    partner_discount_percent: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "item_type", ItemType(self.item_type))
        if self.labor_subtype is not None:
            object.__setattr__(self, "labor_subtype", LaborSubtype(self.labor_subtype))
        check_labor_subtype(self.item_type, self.labor_subtype)
        object.__setattr__(self, "quantity", positive_quantity(self.quantity, "item quantity"))
        object.__setattr__(self, "original_cost", non_negative(self.original_cost, "original_cost"))
        object.__setattr__(self, "original_currency", Currency.parse(self.original_currency))

        if self.msrp_price is not None:
            object.__setattr__(self, "msrp_price", non_negative(self.msrp_price, "msrp_price"))
            msrp_currency = self.msrp_currency or self.original_currency
            object.__setattr__(self, "msrp_currency", Currency.parse(msrp_currency))
        elif self.msrp_currency is not None:
            object.__setattr__(self, "msrp_currency", Currency.parse(self.msrp_currency))

        if self.partner_discount_percent is not None:
            object.__setattr__(
                self,
                "partner_discount_percent",
                discount_percent(self.partner_discount_percent, "partner_discount_percent"),
            )

    @property
    def uses_msrp(self) -> bool:
        return isinstance(self.pricing, MsrpDiscount)

    @property
    def has_msrp(self) -> bool:
        """A positive list price is on record for this item."""
        return self.msrp_price is not None and self.msrp_price > ZERO

    @property
    def is_custom(self) -> bool:
        """Created directly in the quotation rather than from the library."""
        return self.component_id is None and self.assembly_id is None

    def with_quantity(self, quantity: Decimal | str | int) -> QuotationItem:
        return replace(self, quantity=quantity)

    def with_pricing(self, pricing: ItemPricing) -> QuotationItem:
        return replace(self, pricing=pricing)

    def with_msrp_pricing(self) -> QuotationItem:
        """
        Switch to MSRP pricing using the list price on record.

        Raises:
            ValidationError: No positive list price is on record.
        """
        if not self.has_msrp:
            raise ValidationError(f"Item {self.id} has no MSRP price to price from")
        return self.with_pricing(
            MsrpDiscount(
                self.msrp_price,
                self.msrp_currency,
                self.partner_discount_percent or ZERO,
            )
        )


def _optional_rate(rate_name: str, value: Decimal | str | int | float | None) -> Decimal | None:
    if value is None:
        return None
    try:
        return to_decimal(value, rate_name)
    except InvalidAmountError as e:
        raise InvalidExchangeRateError(rate_name, value) from e


@dataclass(frozen=True, slots=True)
class QuotationParameters:
    """
    Pricing parameters of one quotation.

    Rates may be absent while a quotation is being drafted. They are
    resolved exactly once per calculation through ``exchange_rates``,
    which fails loudly instead of defaulting.

    Range checks (non-negative markup, risk, VAT, day-work cost) are made
    by cpq_engines.quotation.validate_quotation_parameters so that every
    problem can be reported at once.
    """

    usd_to_ils_rate: Decimal | None
    eur_to_ils_rate: Decimal | None
    markup_percent: Decimal = ZERO
    risk_percent: Decimal = ZERO
    vat_rate: Decimal = ZERO
    include_vat: bool = False
    day_work_cost: Decimal = ZERO
    use_msrp_pricing: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "usd_to_ils_rate", _optional_rate("usd_to_ils", self.usd_to_ils_rate))
        object.__setattr__(self, "eur_to_ils_rate", _optional_rate("eur_to_ils", self.eur_to_ils_rate))
        for name in ("markup_percent", "risk_percent", "vat_rate", "day_work_cost"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))

    @property
    def exchange_rates(self) -> ExchangeRateSet:
        """The rate pair; raises ConfigurationError when absent or not positive."""
        return ExchangeRateSet(usd_to_ils=self.usd_to_ils_rate, eur_to_ils=self.eur_to_ils_rate)

    def with_rates(
        self,
        usd_to_ils_rate: Decimal | str | int | float | None,
        eur_to_ils_rate: Decimal | str | int | float | None,
    ) -> QuotationParameters:
        return replace(self, usd_to_ils_rate=usd_to_ils_rate, eur_to_ils_rate=eur_to_ils_rate)


@dataclass(frozen=True, slots=True)
class Quotation:
    """Read-only snapshot of a quotation handed to the cascade."""

    id: str
    name: str
    customer_name: str
    parameters: QuotationParameters
    systems: tuple[QuotationSystem, ...] = ()
    items: tuple[QuotationItem, ...] = ()
    status: QuotationStatus = QuotationStatus.DRAFT

    def __post_init__(self) -> None:
        object.__setattr__(self, "systems", tuple(self.systems))
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "status", QuotationStatus(self.status))

    def with_status(self, status: QuotationStatus | str) -> Quotation:
        target = QuotationStatus(status)
        if target == self.status:
            return self
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransitionError(self.id, self.status.value, target.value)
        return replace(self, status=target)

    def with_parameters(self, parameters: QuotationParameters) -> Quotation:
        return replace(self, parameters=parameters)

    def with_items(self, items: tuple[QuotationItem, ...]) -> Quotation:
        return replace(self, items=tuple(items))
