"""
cpq_engines.quotation -- Quotation item pricing and the markup / risk / VAT cascade.

Responsibility:
    Price every quotation line item from its original cost and currency,
    group the results by item type, labor subtype and system, and cascade the
    customer price through risk and VAT into the final total.  Also
    builds items from library components and assemblies, validates
    items and parameters, and renumbers items within their systems.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports cpq_kernel domain types, cpq_engines.conversion and
    cpq_engines.assembly.  Consumed by cpq_engines.statistics and callers.

Invariants enforced:
    - Every run starts from each item's (original_cost, original_currency)
      and the current rates.  Repeated rate edits never drift because no
      previously derived price is ever read back.
    - Cost basis and customer-price basis are summed independently.
    - An item's contribution is multiplied by its system's quantity;
      items without a system count once.
    - Full precision throughout.  Nothing is rounded inside the cascade.
    - Inputs are never mutated.

Failure modes:
    - MissingExchangeRateError / InvalidExchangeRateError when the
      parameters' rates are absent or not positive.
    - InvalidParameterError for negative markup, risk, VAT or day cost.
    - InvalidQuotationItemError for an item failing validation.
    - UnknownSystemError for an item whose system was not supplied.
    All are raised before any total is computed.

Usage:
    from cpq_engines.quotation import calculate_quotation

    calculations = calculate_quotation(items, parameters, systems)
    calculations.final_total_ils
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from cpq_kernel.domain.catalog import (
    Assembly,
    Component,
    ItemType,
    LaborSubtype,
    positive_quantity,
)
from cpq_kernel.domain.quotation import (
    CostPlusMarkup,
    MsrpDiscount,
    Quotation,
    QuotationItem,
    QuotationParameters,
    QuotationSystem,
)
from cpq_kernel.domain.values import (
    HUNDRED,
    NIS,
    ONE,
    ZERO,
    ExchangeRateSet,
    percent_of,
)
from cpq_kernel.exceptions import (
    InvalidExchangeRateError,
    InvalidParameterError,
    InvalidQuotationItemError,
    UnknownSystemError,
)
from cpq_kernel.logging_config import LogContext, get_logger
from cpq_engines.assembly import calculate_assembly_pricing
from cpq_engines.conversion import convert, convert_to_all_currencies
from cpq_engines.tracer import traced_engine

logger = get_logger("engines.quotation")

_TWO_PLACES = Decimal("0.01")


# ============================================================================
# Result types
# ============================================================================


@dataclass(frozen=True, slots=True)
class PricedItem:
    """
    One item priced at the quotation's current rates.

    unit/total fields describe one system's worth of the item; the
    extended_* fields include the owning system's quantity and are what
    the cascade sums.
    """

    item: QuotationItem
    unit_price_ils: Decimal
    unit_price_usd: Decimal
    unit_price_eur: Decimal
    total_price_ils: Decimal
    total_price_usd: Decimal
    customer_price_ils: Decimal
    system_quantity: Decimal = ONE

    @property
    def extended_price_ils(self) -> Decimal:
        return self.total_price_ils * self.system_quantity

    @property
    def extended_price_usd(self) -> Decimal:
        return self.total_price_usd * self.system_quantity

    @property
    def extended_customer_price_ils(self) -> Decimal:
        return self.customer_price_ils * self.system_quantity

    @property
    def profit_ils(self) -> Decimal:
        return self.extended_customer_price_ils - self.extended_price_ils


@dataclass(frozen=True, slots=True)
class PricingBucket:
    """Cost basis and price basis of one item type or labor subtype."""

    cost_ils: Decimal = ZERO
    cost_usd: Decimal = ZERO
    customer_price_ils: Decimal = ZERO
    item_count: int = 0

    def add(self, priced: PricedItem) -> PricingBucket:
        return PricingBucket(
            cost_ils=self.cost_ils + priced.extended_price_ils,
            cost_usd=self.cost_usd + priced.extended_price_usd,
            customer_price_ils=self.customer_price_ils + priced.extended_customer_price_ils,
            item_count=self.item_count + 1,
        )

    @property
    def profit_ils(self) -> Decimal:
        return self.customer_price_ils - self.cost_ils


@dataclass(frozen=True, slots=True)
class SystemTotals:
    """
    Cost totals of one system, already multiplied by the system's quantity.

    hardware_* covers every non-labor item (hardware and software);
    labor_* covers labor items.  total_* = hardware_* + labor_*.
    """

    system_id: str
    system_name: str
    system_quantity: Decimal
    total_ils: Decimal = ZERO
    total_usd: Decimal = ZERO
    hardware_ils: Decimal = ZERO
    hardware_usd: Decimal = ZERO
    labor_ils: Decimal = ZERO
    labor_usd: Decimal = ZERO
    customer_price_ils: Decimal = ZERO
    item_count: int = 0

    def add(self, priced: PricedItem) -> SystemTotals:
        cost_ils = priced.extended_price_ils
        cost_usd = priced.extended_price_usd
        if priced.item.item_type == ItemType.LABOR:
            return replace(
                self,
                total_ils=self.total_ils + cost_ils,
                total_usd=self.total_usd + cost_usd,
                labor_ils=self.labor_ils + cost_ils,
                labor_usd=self.labor_usd + cost_usd,
                customer_price_ils=self.customer_price_ils + priced.extended_customer_price_ils,
                item_count=self.item_count + 1,
            )
        return replace(
            self,
            total_ils=self.total_ils + cost_ils,
            total_usd=self.total_usd + cost_usd,
            hardware_ils=self.hardware_ils + cost_ils,
            hardware_usd=self.hardware_usd + cost_usd,
            customer_price_ils=self.customer_price_ils + priced.extended_customer_price_ils,
            item_count=self.item_count + 1,
        )


def _type_buckets() -> dict[ItemType, PricingBucket]:
    return {item_type: PricingBucket() for item_type in ItemType}


def _subtype_buckets() -> dict[LaborSubtype, PricingBucket]:
    return {subtype: PricingBucket() for subtype in LaborSubtype}


@dataclass(frozen=True)
class QuotationCalculations:
    """
    Derived totals of one quotation.

    Always recomputable from the items and parameters that produced it;
    never fed back into a later calculation.  by_system holds one entry
    per supplied system, in system order, including systems with no items.
    """

    subtotal_ils: Decimal
    subtotal_usd: Decimal
    total_customer_price_ils: Decimal
    risk_addition_ils: Decimal
    total_quote_ils: Decimal
    total_vat_ils: Decimal
    final_total_ils: Decimal
    total_cost_ils: Decimal
    total_profit_ils: Decimal
    profit_margin_percent: Decimal
    by_type: dict[ItemType, PricingBucket] = field(default_factory=_type_buckets)
    by_labor_subtype: dict[LaborSubtype, PricingBucket] = field(default_factory=_subtype_buckets)
    by_system: dict[str, SystemTotals] = field(default_factory=dict)
    items: tuple[PricedItem, ...] = ()

    @property
    def total_hardware_ils(self) -> Decimal:
        return self.by_type[ItemType.HARDWARE].cost_ils

    @property
    def total_hardware_usd(self) -> Decimal:
        return self.by_type[ItemType.HARDWARE].cost_usd

    @property
    def total_software_ils(self) -> Decimal:
        return self.by_type[ItemType.SOFTWARE].cost_ils

    @property
    def total_software_usd(self) -> Decimal:
        return self.by_type[ItemType.SOFTWARE].cost_usd

    @property
    def total_labor_ils(self) -> Decimal:
        return self.by_type[ItemType.LABOR].cost_ils

    @property
    def total_labor_usd(self) -> Decimal:
        return self.by_type[ItemType.LABOR].cost_usd

    @property
    def total_engineering_ils(self) -> Decimal:
        return self.by_labor_subtype[LaborSubtype.ENGINEERING].cost_ils

    @property
    def total_commissioning_ils(self) -> Decimal:
        return self.by_labor_subtype[LaborSubtype.COMMISSIONING].cost_ils

    @property
    def total_installation_ils(self) -> Decimal:
        return self.by_labor_subtype[LaborSubtype.INSTALLATION].cost_ils

    @property
    def total_programming_ils(self) -> Decimal:
        return self.by_labor_subtype[LaborSubtype.PROGRAMMING].cost_ils


# ============================================================================
# Validation
# ============================================================================


def validate_quotation_parameters(parameters: QuotationParameters) -> None:
    """
    Range-check quotation parameters.

    A rate that is present but not positive is a configuration problem and
    is raised on its own, before the other fields are looked at.  Absent
    rates are not reported here; they surface as MissingExchangeRateError
    when the rates are resolved.

    Raises:
        InvalidExchangeRateError: a supplied rate is zero or negative.
        InvalidParameterError: negative markup, risk, VAT rate or
            day-work cost, every problem listed at once.
    """
    for rate_name, rate in (
        ("usd_to_ils", parameters.usd_to_ils_rate),
        ("eur_to_ils", parameters.eur_to_ils_rate),
    ):
        if rate is not None and rate <= ZERO:
            logger.warning("quotation_rate_invalid", extra={
                "rate_name": rate_name,
                "rate": str(rate),
            })
            raise InvalidExchangeRateError(rate_name, rate)

    errors: list[str] = []
    if parameters.markup_percent < ZERO:
        errors.append("Markup percent cannot be negative")
    if parameters.risk_percent < ZERO:
        errors.append("Risk percent cannot be negative")
    if parameters.vat_rate < ZERO:
        errors.append("VAT rate cannot be negative")
    if parameters.day_work_cost < ZERO:
        errors.append("Day work cost cannot be negative")

    if errors:
        logger.warning("quotation_parameters_invalid", extra={"errors": errors})
        raise InvalidParameterError(errors)


def validate_quotation_item(item: QuotationItem) -> None:
    """
    Check the cross-field rules of one item.

    Field-level rules (quantity > 0, cost >= 0, subtype only on labor)
    are already enforced when the item is constructed.

    Raises:
        InvalidQuotationItemError: listing every problem found.
    """
    errors: list[str] = []
    if not item.name or not item.name.strip():
        errors.append("Item name is required")
    if item.is_internal_labor and item.item_type != ItemType.LABOR:
        errors.append("Only labor items can be priced as internal labor")
    if isinstance(item.pricing, MsrpDiscount):
        if item.pricing.msrp_price <= ZERO:
            errors.append("MSRP price must be greater than zero in MSRP mode")
        if item.is_internal_labor:
            errors.append("Internal labor is priced at day-work cost, not MSRP")
    elif not isinstance(item.pricing, CostPlusMarkup):
        errors.append(f"Unknown pricing mode {type(item.pricing).__name__}")

    if errors:
        logger.warning("quotation_item_invalid", extra={
            "item_id": item.id,
            "errors": errors,
        })
        raise InvalidQuotationItemError(item.id, errors)


# ============================================================================
# Per-item pricing
# ============================================================================


def _price_item(
    item: QuotationItem,
    parameters: QuotationParameters,
    rates: ExchangeRateSet,
    system_quantity: Decimal,
) -> PricedItem:
    if item.is_internal_labor:
        unit = convert_to_all_currencies(parameters.day_work_cost, NIS, rates)
    else:
        unit = convert_to_all_currencies(item.original_cost, item.original_currency, rates)

    total_ils = unit.nis * item.quantity
    total_usd = unit.usd * item.quantity

    match item.pricing:
        case MsrpDiscount(msrp_price=msrp_price, msrp_currency=msrp_currency, partner_discount_percent=discount):
            msrp_ils = convert(msrp_price, msrp_currency, NIS, rates)
            customer_ils = msrp_ils * item.quantity * (ONE - discount / HUNDRED)
        case CostPlusMarkup(markup_percent=markup):
            customer_ils = total_ils * (ONE + markup / HUNDRED)

    return PricedItem(
        item=item,
        unit_price_ils=unit.nis,
        unit_price_usd=unit.usd,
        unit_price_eur=unit.eur,
        total_price_ils=total_ils,
        total_price_usd=total_usd,
        customer_price_ils=customer_ils,
        system_quantity=system_quantity,
    )


@traced_engine("quotation_item", "1.0", fingerprint_fields=("item", "parameters", "system_quantity"))
def price_item(
    item: QuotationItem,
    parameters: QuotationParameters,
    system_quantity: Decimal = ONE,
) -> PricedItem:
    """
    Price a single item at the parameters' current rates.

    Cost-plus-markup: customer = total_cost * (1 + markup / 100).
    MSRP: customer = msrp_in_ils * quantity * (1 - discount / 100); the
    cost fields are still computed so margin can be reported.
    Internal labor: unit cost = day_work_cost (NIS), quantity = days.
    """
    rates = parameters.exchange_rates
    validate_quotation_parameters(parameters)
    validate_quotation_item(item)
    quantity = positive_quantity(system_quantity, "system quantity")
    return _price_item(item, parameters, rates, quantity)


# ============================================================================
# Cascade
# ============================================================================


def _system_quantities(
    items: Sequence[QuotationItem],
    systems: Sequence[QuotationSystem],
) -> dict[str | None, Decimal]:
    quantities: dict[str | None, Decimal] = {system.id: system.quantity for system in systems}
    quantities[None] = ONE
    for item in items:
        if item.system_id not in quantities:
            logger.warning("quotation_item_unknown_system", extra={
                "item_id": item.id,
                "system_id": item.system_id,
            })
            raise UnknownSystemError(item.id, item.system_id)
    return quantities


@traced_engine("quotation", "1.0", fingerprint_fields=("items", "parameters", "systems"))
def calculate_quotation(
    items: Sequence[QuotationItem],
    parameters: QuotationParameters,
    systems: Sequence[QuotationSystem] = (),
) -> QuotationCalculations:
    """
    Run the full pricing cascade.

    1. subtotal_ils             = sum of item cost totals
    2. total_customer_price_ils = sum of item customer prices
    3. risk_addition_ils        = total_customer_price_ils * risk% / 100
    4. total_quote_ils          = total_customer_price_ils + risk_addition_ils
    5. total_vat_ils            = total_quote_ils * vat% / 100 if include_vat else 0
    6. final_total_ils          = total_quote_ils + total_vat_ils
    7. profit_margin_percent    = (customer - subtotal) / customer * 100, or 0

    Raises:
        ConfigurationError: rates absent or not positive.
        InvalidParameterError, InvalidQuotationItemError,
        UnknownSystemError: before anything is computed.
    """
    rates = parameters.exchange_rates
    validate_quotation_parameters(parameters)
    for item in items:
        validate_quotation_item(item)
    quantities = _system_quantities(items, systems)

    logger.info("quotation_calculation_started", extra={
        "item_count": len(items),
        "system_count": len(systems),
        "usd_to_ils": str(rates.usd_to_ils),
        "eur_to_ils": str(rates.eur_to_ils),
    })

    by_type = _type_buckets()
    by_subtype = _subtype_buckets()
    by_system = {
        system.id: SystemTotals(system.id, system.name, system.quantity)
        for system in sorted(systems, key=lambda s: s.order)
    }
    priced_items: list[PricedItem] = []
    subtotal_ils = ZERO
    subtotal_usd = ZERO
    total_customer = ZERO

    for item in items:
        priced = _price_item(item, parameters, rates, quantities[item.system_id])
        priced_items.append(priced)

        subtotal_ils += priced.extended_price_ils
        subtotal_usd += priced.extended_price_usd
        total_customer += priced.extended_customer_price_ils

        by_type[item.item_type] = by_type[item.item_type].add(priced)
        if item.item_type == ItemType.LABOR and item.labor_subtype is not None:
            by_subtype[item.labor_subtype] = by_subtype[item.labor_subtype].add(priced)
        if item.system_id is not None:
            by_system[item.system_id] = by_system[item.system_id].add(priced)

    risk_addition = percent_of(total_customer, parameters.risk_percent)
    total_quote = total_customer + risk_addition
    total_vat = percent_of(total_quote, parameters.vat_rate) if parameters.include_vat else ZERO
    final_total = total_quote + total_vat

    total_profit = total_customer - subtotal_ils
    if total_customer > ZERO:
        margin = total_profit / total_customer * HUNDRED
    else:
        margin = ZERO

    result = QuotationCalculations(
        subtotal_ils=subtotal_ils,
        subtotal_usd=subtotal_usd,
        total_customer_price_ils=total_customer,
        risk_addition_ils=risk_addition,
        total_quote_ils=total_quote,
        total_vat_ils=total_vat,
        final_total_ils=final_total,
        total_cost_ils=subtotal_ils,
        total_profit_ils=total_profit,
        profit_margin_percent=margin,
        by_type=by_type,
        by_labor_subtype=by_subtype,
        by_system=by_system,
        items=tuple(priced_items),
    )

    logger.info("quotation_calculation_completed", extra={
        "item_count": len(priced_items),
        "subtotal_ils": str(subtotal_ils),
        "total_customer_price_ils": str(total_customer),
        "final_total_ils": str(final_total),
    })

    return result


def calculate_quotation_totals(quotation: Quotation) -> QuotationCalculations:
    """Cascade over a whole quotation snapshot."""
    with LogContext.bind(quotation_id=quotation.id):
        return calculate_quotation(quotation.items, quotation.parameters, quotation.systems)


# ============================================================================
# Item construction
# ============================================================================


def item_from_component(
    component: Component,
    parameters: QuotationParameters,
    item_id: str | None = None,
    system_id: str | None = None,
    quantity: Decimal | str | int = ONE,
    markup_percent: Decimal | None = None,
    sort_order: int = 0,
) -> QuotationItem:
    """
    Snapshot a library component into a new quotation item.

    The item takes the component's original price as its own and never
    looks at the component again.  MSRP mode is used when the quotation
    asks for it and the component has a list price.  The list price and
    partner discount are copied onto the item in either mode, so a
    cost-plus item can later be switched with with_msrp_pricing().
    """
    if parameters.use_msrp_pricing and component.has_msrp:
        pricing: CostPlusMarkup | MsrpDiscount = MsrpDiscount(
            msrp_price=component.msrp_price,
            msrp_currency=component.msrp_currency,
            partner_discount_percent=component.partner_discount_percent or ZERO,
        )
    else:
        pricing = CostPlusMarkup(
            markup_percent=parameters.markup_percent if markup_percent is None else markup_percent
        )

    return QuotationItem(
        id=item_id or str(uuid4()),
        name=component.name,
        item_type=component.item_type,
        labor_subtype=component.labor_subtype,
        quantity=quantity,
        original_cost=component.original_cost,
        original_currency=component.original_currency,
        pricing=pricing,
        system_id=system_id,
        component_id=component.id,
        is_internal_labor=component.is_internal_labor,
        category=component.category,
        sort_order=sort_order,
        msrp_price=component.msrp_price,
        msrp_currency=component.msrp_currency,
        partner_discount_percent=component.partner_discount_percent,
    )


def item_from_assembly(
    assembly: Assembly,
    rates: ExchangeRateSet,
    markup_percent: Decimal | str | int,
    item_id: str | None = None,
    system_id: str | None = None,
    sort_order: int = 0,
) -> QuotationItem:
    """
    Add an assembly to a quotation as a single hardware line.

    The line's original cost is the assembly's NIS total at today's rates,
    rounded to 2 places, so later rate changes do not reprice it.
    """
    pricing = calculate_assembly_pricing(assembly, rates)
    if not pricing.is_complete:
        with LogContext.bind(assembly_id=assembly.id):
            logger.warning("assembly_added_incomplete", extra={
                "missing_component_count": pricing.missing_component_count,
            })

    return QuotationItem(
        id=item_id or str(uuid4()),
        name=assembly.name,
        item_type=ItemType.HARDWARE,
        quantity=ONE,
        original_cost=pricing.total_cost_nis.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP),
        original_currency=NIS,
        pricing=CostPlusMarkup(markup_percent=markup_percent),
        system_id=system_id,
        assembly_id=assembly.id,
        category="Assembly",
        sort_order=sort_order,
    )


# ============================================================================
# Numbering
# ============================================================================


def renumber_items(
    items: Sequence[QuotationItem],
    systems: Sequence[QuotationSystem] = (),
) -> tuple[QuotationItem, ...]:
    """
    Number items 1..n within each system and set "system.item" labels.

    Items keep their relative sort_order inside a system.  The result is
    ordered by system order, then item order.  Items without a system are
    numbered on their own ("1", "2", ...) and come first.

    Raises:
        UnknownSystemError: an item names a system not in ``systems``.
    """
    system_order = {system.id: system.order for system in systems}
    groups: dict[str | None, list[QuotationItem]] = {}
    for item in items:
        if item.system_id is not None and item.system_id not in system_order:
            raise UnknownSystemError(item.id, item.system_id)
        groups.setdefault(item.system_id, []).append(item)

    def _group_key(system_id: str | None) -> tuple[int, int]:
        if system_id is None:
            return (0, 0)
        return (1, system_order[system_id])

    renumbered: list[QuotationItem] = []
    for system_id in sorted(groups, key=_group_key):
        ordered = sorted(groups[system_id], key=lambda it: it.sort_order)
        for index, item in enumerate(ordered, start=1):
            label = str(index) if system_id is None else f"{system_order[system_id]}.{index}"
            renumbered.append(replace(item, sort_order=index, display_number=label))
    return tuple(renumbered)
