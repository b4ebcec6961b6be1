"""
cpq_engines.assembly -- Assembly cost roll-up across mixed currencies.

Responsibility:
    Total the cost of an assembly from its component references.  Each
    resolved reference contributes ``original_cost * quantity`` in the
    component's own currency; per-currency subtotals are then converted
    through cpq_engines.conversion and summed into NIS, USD and EUR totals.
    References to deleted components are skipped and reported.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports cpq_kernel domain types and cpq_engines.conversion only.
    Consumed by cpq_engines.quotation.item_from_assembly and by callers
    that display assembly prices.

Invariants enforced:
    - Missing references never contribute to any total; they are counted
      in missing_component_count and listed in missing_components.
    - component_count counts resolved references only.
    - Totals derive only from each component's original cost and the
      supplied rates, never from previously computed totals.
    - Full precision throughout; AssemblyPricing.rounded() is the display
      boundary.  The roll-up runs in a 50-digit decimal context, so a cent
      on one line is kept even when another line's quantity reaches 1e28.
    - Every log record of a roll-up carries the assembly_id.

Failure modes:
    - MissingExchangeRateError if rates is None.
    - InvalidAssemblyError from validate_assembly (blank name, no
      references, non-positive quantity).
    - An empty assembly is NOT an error for the roll-up: it prices to zero.

Usage:
    from cpq_engines.assembly import calculate_assembly_pricing

    pricing = calculate_assembly_pricing(assembly, rates)
    if not pricing.is_complete:
        warn(pricing.missing_components)
    pricing.rounded().total_cost_nis
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal, localcontext

from cpq_kernel.domain.catalog import (
    Assembly,
    ComponentSnapshot,
    MissingComponent,
    ResolvedComponent,
)
from cpq_kernel.domain.currency import CurrencyRegistry
from cpq_kernel.domain.values import ZERO, Currency, ExchangeRateSet, Money
from cpq_kernel.exceptions import InvalidAssemblyError, MissingExchangeRateError
from cpq_kernel.logging_config import LogContext, get_logger
from cpq_engines.conversion import convert_to_all_currencies
from cpq_engines.tracer import traced_engine

logger = get_logger("engines.assembly")

_TWO_PLACES = Decimal("0.01")

# Working precision of the roll-up: totals below 10**47 keep their cents.
_ROLLUP_PRECISION = 50


def _round2(amount: Decimal) -> Decimal:
    return amount.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class CurrencyBucket:
    """References priced in one currency and their un-converted total."""

    count: int = 0
    total: Decimal = ZERO

    def add(self, line_total: Decimal) -> CurrencyBucket:
        return CurrencyBucket(count=self.count + 1, total=self.total + line_total)


def _empty_breakdown() -> dict[str, CurrencyBucket]:
    return {code: CurrencyBucket() for code in CurrencyRegistry.all_codes()}


@dataclass(frozen=True)
class AssemblyPricing:
    """
    Result of an assembly roll-up.

    breakdown always has an entry for each of NIS, USD and EUR, holding
    amounts in that currency before conversion.
    """

    total_cost_nis: Decimal
    total_cost_usd: Decimal
    total_cost_eur: Decimal
    component_count: int
    missing_component_count: int
    breakdown: dict[str, CurrencyBucket] = field(default_factory=_empty_breakdown)
    missing_components: tuple[ComponentSnapshot, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.missing_component_count == 0

    def total_in(self, currency: Currency | str) -> Money:
        target = Currency.parse(currency)
        match target.code:
            case "USD":
                amount = self.total_cost_usd
            case "EUR":
                amount = self.total_cost_eur
            case _:
                amount = self.total_cost_nis
        return Money(amount=amount, currency=target)

    def rounded(self) -> AssemblyPricing:
        """Display copy with every amount rounded to 2 places."""
        return replace(
            self,
            total_cost_nis=_round2(self.total_cost_nis),
            total_cost_usd=_round2(self.total_cost_usd),
            total_cost_eur=_round2(self.total_cost_eur),
            breakdown={
                code: CurrencyBucket(count=bucket.count, total=_round2(bucket.total))
                for code, bucket in self.breakdown.items()
            },
        )


@traced_engine("assembly", "1.0", fingerprint_fields=("assembly", "rates"))
def calculate_assembly_pricing(
    assembly: Assembly,
    rates: ExchangeRateSet | None,
) -> AssemblyPricing:
    """
    Roll up the cost of ``assembly`` at ``rates``.

    Postconditions:
        total_cost_nis == sum over currencies of that bucket's total
        converted to NIS; likewise for USD and EUR.

    Raises:
        MissingExchangeRateError: rates is None.
    """
    if rates is None:
        raise MissingExchangeRateError("exchange_rates")

    with LogContext.bind(assembly_id=assembly.id), localcontext() as ctx:
        ctx.prec = _ROLLUP_PRECISION
        logger.info("assembly_pricing_started", extra={
            "reference_count": len(assembly.components),
        })

        breakdown = _empty_breakdown()
        missing: list[ComponentSnapshot] = []
        component_count = 0

        for ref in assembly.components:
            match ref.link:
                case ResolvedComponent(component=component):
                    line_total = component.original_cost * ref.quantity
                    code = component.original_currency.code
                    breakdown[code] = breakdown[code].add(line_total)
                    component_count += 1
                case MissingComponent(snapshot=snapshot):
                    missing.append(snapshot)

        total_nis = ZERO
        total_usd = ZERO
        total_eur = ZERO
        for code, bucket in breakdown.items():
            if bucket.count == 0:
                continue
            prices = convert_to_all_currencies(bucket.total, code, rates)
            total_nis += prices.nis
            total_usd += prices.usd
            total_eur += prices.eur

        if missing:
            logger.warning("assembly_missing_components", extra={
                "missing_component_count": len(missing),
                "missing_components": [str(snapshot) for snapshot in missing],
            })

        logger.info("assembly_pricing_completed", extra={
            "component_count": component_count,
            "missing_component_count": len(missing),
            "total_cost_nis": str(total_nis),
        })

    return AssemblyPricing(
        total_cost_nis=total_nis,
        total_cost_usd=total_usd,
        total_cost_eur=total_eur,
        component_count=component_count,
        missing_component_count=len(missing),
        breakdown=breakdown,
        missing_components=tuple(missing),
    )


def validate_assembly(assembly: Assembly) -> None:
    """
    Check an assembly before it is saved.

    Collects every problem and raises once, so the caller can show them
    all together.

    Raises:
        InvalidAssemblyError: blank name, no component references, or a
            reference with quantity <= 0.
    """
    errors: list[str] = []
    if not assembly.name or not assembly.name.strip():
        errors.append("Assembly name is required")
    if not assembly.components:
        errors.append("Assembly must contain at least one component")
    for ref in assembly.components:
        if ref.quantity <= ZERO:
            errors.append(f"Quantity of {ref.snapshot.name} must be greater than zero")

    if errors:
        with LogContext.bind(assembly_id=assembly.id):
            logger.warning("assembly_validation_failed", extra={"errors": errors})
        raise InvalidAssemblyError(assembly.name, errors)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def describe_assembly_pricing(pricing: AssemblyPricing) -> str:
    """One-line summary, e.g. "2 NIS components (200.00 NIS) | 1 missing component"."""
    parts: list[str] = []
    for code, bucket in pricing.breakdown.items():
        if bucket.count > 0:
            parts.append(
                f"{_plural(bucket.count, f'{code} component')} ({_round2(bucket.total)} {code})"
            )
    if pricing.missing_component_count > 0:
        parts.append(_plural(pricing.missing_component_count, "missing component"))
    return " | ".join(parts) if parts else "No components"
