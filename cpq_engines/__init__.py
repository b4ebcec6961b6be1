"""
Module: cpq_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    pricing engines: currency conversion, assembly roll-up, the quotation
    cascade and quotation statistics.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import cpq_kernel (and sibling engine modules).

Invariants enforced:
    - Purity: engines never read global settings; rates and parameters
      are explicit arguments.
    - Decimal-only arithmetic: floats are converted through str at the
      value-object boundary and never used in calculations.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine entry point is traced via the ``@traced_engine`` decorator
    (see ``cpq_engines.tracer``), emitting CPQ_ENGINE_TRACE log records with
    engine name, version, input fingerprint and duration.

Usage:
    from cpq_engines import calculate_assembly_pricing, calculate_quotation
"""

from cpq_kernel.logging_config import get_logger

logger = get_logger("engines")

from cpq_engines.assembly import (
    AssemblyPricing,
    CurrencyBucket,
    calculate_assembly_pricing,
    describe_assembly_pricing,
    validate_assembly,
)
from cpq_engines.conversion import (
    CurrencyPrices,
    convert,
    convert_to_all_currencies,
    detect_original_currency,
    normalize_legacy_prices,
    price_component,
)
from cpq_engines.quotation import (
    PricedItem,
    PricingBucket,
    QuotationCalculations,
    SystemTotals,
    calculate_quotation,
    calculate_quotation_totals,
    item_from_assembly,
    item_from_component,
    price_item,
    renumber_items,
    validate_quotation_item,
    validate_quotation_parameters,
)
from cpq_engines.statistics import (
    QuotationStatistics,
    StatisticsDelta,
    TypeProfit,
    calculate_quotation_statistics,
    compare_statistics,
)
from cpq_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Conversion
    "CurrencyPrices",
    "convert_to_all_currencies",
    "convert",
    "detect_original_currency",
    "normalize_legacy_prices",
    "price_component",
    # Assembly
    "AssemblyPricing",
    "CurrencyBucket",
    "calculate_assembly_pricing",
    "validate_assembly",
    "describe_assembly_pricing",
    # Quotation
    "PricedItem",
    "PricingBucket",
    "QuotationCalculations",
    "SystemTotals",
    "price_item",
    "calculate_quotation",
    "calculate_quotation_totals",
    "item_from_component",
    "item_from_assembly",
    "validate_quotation_item",
    "validate_quotation_parameters",
    "renumber_items",
    # Statistics
    "QuotationStatistics",
    "StatisticsDelta",
    "TypeProfit",
    "calculate_quotation_statistics",
    "compare_statistics",
    # Tracing
    "traced_engine",
    "compute_input_fingerprint",
]

logger.debug("engines_package_loaded", extra={
    "modules": ["conversion", "assembly", "quotation", "statistics"],
})
