"""
cpq_engines.statistics -- Composition statistics of a calculated quotation.

Responsibility:
    Summarize what a quotation is made of: hardware / software / labor
    shares of the cost subtotal, the engineering and commissioning shares,
    the HW:Engineering:Commissioning ratio, item counts per type and
    profit per type.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Reads a QuotationCalculations produced by cpq_engines.quotation; never
    re-prices anything itself.

Invariants enforced:
    - Shares are taken against subtotal_ils (cost basis).  A zero subtotal
      yields zero shares, never a division error.
    - Profit per type comes from the cascade's actual customer prices, so
      MSRP items and per-item markups are reflected.
    - Percentages are rounded to one decimal place and profits to two;
      this is a display boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from cpq_kernel.domain.catalog import ItemType
from cpq_kernel.domain.values import HUNDRED, ZERO
from cpq_kernel.logging_config import get_logger
from cpq_engines.quotation import QuotationCalculations
from cpq_engines.tracer import traced_engine

logger = get_logger("engines.statistics")

_ONE_PLACE = Decimal("0.1")
_TWO_PLACES = Decimal("0.01")

# Share difference (in percentage points) before a quotation leans one way
QUOTATION_TYPE_THRESHOLD = Decimal("20")


def _safe_percent(value: Decimal, total: Decimal) -> Decimal:
    if total <= ZERO:
        return Decimal("0.0")
    return (value / total * HUNDRED).quantize(_ONE_PLACE, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class TypeProfit:
    """Profit and margin of one item type."""

    profit: Decimal
    margin: Decimal


@dataclass(frozen=True, slots=True)
class StatisticsDelta:
    hardware_percent_delta: Decimal
    labor_percent_delta: Decimal
    total_components_delta: int


@dataclass(frozen=True)
class QuotationStatistics:
    """Composition of one quotation, ready for display."""

    hardware_percent: Decimal
    software_percent: Decimal
    labor_percent: Decimal
    engineering_percent: Decimal
    commissioning_percent: Decimal
    material_percent: Decimal
    labor_only_percent: Decimal
    hw_engineering_commissioning_ratio: str
    component_counts: dict[str, int] = field(default_factory=dict)
    profit_by_type: dict[ItemType, TypeProfit] = field(default_factory=dict)

    def quotation_type(self) -> str:
        """Classify as "material-heavy", "labor-heavy" or "balanced"."""
        if self.material_percent > self.labor_only_percent + QUOTATION_TYPE_THRESHOLD:
            return "material-heavy"
        if self.labor_only_percent > self.material_percent + QUOTATION_TYPE_THRESHOLD:
            return "labor-heavy"
        return "balanced"

    def dominant_category(self) -> str:
        """Largest of hardware, software, engineering and commissioning."""
        categories = (
            ("hardware", self.hardware_percent),
            ("software", self.software_percent),
            ("engineering", self.engineering_percent),
            ("commissioning", self.commissioning_percent),
        )
        name, _ = max(categories, key=lambda category: category[1])
        return name

    def consistency_errors(self) -> list[str]:
        """Sanity checks on rounded shares; empty when consistent."""
        errors: list[str] = []
        if self.component_counts.get("total", 0) == 0:
            return errors
        type_total = self.hardware_percent + self.software_percent + self.labor_percent
        if abs(type_total - HUNDRED) > 1:
            errors.append(f"Type percentages don't add to 100% ({type_total}%)")
        material_labor = self.material_percent + self.labor_only_percent
        if abs(material_labor - HUNDRED) > 1:
            errors.append(f"Material + labor don't add to 100% ({material_labor}%)")
        counted = sum(self.component_counts.get(t.value, 0) for t in ItemType)
        if counted != self.component_counts["total"]:
            errors.append(
                f"Component counts don't match total ({counted} != {self.component_counts['total']})"
            )
        return errors


@traced_engine("statistics", "1.0")
def calculate_quotation_statistics(calculations: QuotationCalculations) -> QuotationStatistics:
    """Derive composition statistics from a cascade result."""
    total = calculations.subtotal_ils

    hardware = _safe_percent(calculations.total_hardware_ils, total)
    software = _safe_percent(calculations.total_software_ils, total)
    labor = _safe_percent(calculations.total_labor_ils, total)
    engineering = _safe_percent(calculations.total_engineering_ils, total)
    commissioning = _safe_percent(calculations.total_commissioning_ils, total)
    material = _safe_percent(
        calculations.total_hardware_ils + calculations.total_software_ils, total
    )

    counts = {
        item_type.value: calculations.by_type[item_type].item_count for item_type in ItemType
    }
    counts["total"] = len(calculations.items)

    profit_by_type: dict[ItemType, TypeProfit] = {}
    for item_type in ItemType:
        bucket = calculations.by_type[item_type]
        profit = bucket.customer_price_ils - bucket.cost_ils
        if bucket.customer_price_ils > ZERO:
            margin = profit / bucket.customer_price_ils * HUNDRED
        else:
            margin = ZERO
        profit_by_type[item_type] = TypeProfit(
            profit=profit.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP),
            margin=margin.quantize(_ONE_PLACE, rounding=ROUND_HALF_UP),
        )

    statistics = QuotationStatistics(
        hardware_percent=hardware,
        software_percent=software,
        labor_percent=labor,
        engineering_percent=engineering,
        commissioning_percent=commissioning,
        material_percent=material,
        labor_only_percent=labor,
        hw_engineering_commissioning_ratio=f"{hardware}:{engineering}:{commissioning}",
        component_counts=counts,
        profit_by_type=profit_by_type,
    )

    logger.debug("quotation_statistics_calculated", extra={
        "subtotal_ils": str(total),
        "ratio": statistics.hw_engineering_commissioning_ratio,
        "item_count": counts["total"],
    })
    return statistics


def compare_statistics(
    current: QuotationStatistics,
    previous: QuotationStatistics,
) -> StatisticsDelta:
    """How the composition moved between two versions of a quotation."""
    return StatisticsDelta(
        hardware_percent_delta=current.hardware_percent - previous.hardware_percent,
        labor_percent_delta=current.labor_percent - previous.labor_percent,
        total_components_delta=(
            current.component_counts.get("total", 0) - previous.component_counts.get("total", 0)
        ),
    )
