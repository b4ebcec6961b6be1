"""
Pure domain layer.

This module contains the pricing value objects and the catalog and
quotation entities, with NO dependencies on:
- Persistence
- Time/clock
- I/O

All domain objects are immutable and deterministic.
"""

from cpq_kernel.domain.catalog import (
    Assembly,
    AssemblyComponentRef,
    Component,
    ComponentLink,
    ComponentSnapshot,
    ItemType,
    LaborSubtype,
    MissingComponent,
    ResolvedComponent,
    resolve_assembly_links,
)
from cpq_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from cpq_kernel.domain.quotation import (
    CostPlusMarkup,
    ItemPricing,
    MsrpDiscount,
    Quotation,
    QuotationItem,
    QuotationParameters,
    QuotationStatus,
    QuotationSystem,
)
from cpq_kernel.domain.values import (
    EUR,
    NIS,
    SUPPORTED_CURRENCIES,
    USD,
    Currency,
    ExchangeRateSet,
    Money,
)

__all__ = [
    # Value Objects
    "Currency",
    "Money",
    "ExchangeRateSet",
    "NIS",
    "USD",
    "EUR",
    "SUPPORTED_CURRENCIES",
    "CurrencyInfo",
    "CurrencyRegistry",
    # Catalog
    "ItemType",
    "LaborSubtype",
    "Component",
    "ComponentSnapshot",
    "ComponentLink",
    "ResolvedComponent",
    "MissingComponent",
    "AssemblyComponentRef",
    "Assembly",
    "resolve_assembly_links",
    # Quotation
    "QuotationStatus",
    "CostPlusMarkup",
    "MsrpDiscount",
    "ItemPricing",
    "QuotationSystem",
    "QuotationItem",
    "QuotationParameters",
    "Quotation",
]
