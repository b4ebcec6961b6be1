"""
Pricing defaults schema.

The YAML defaults file is parsed into these types by the loader and
turned into QuotationParameters once, explicitly, when a quotation is
created.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PricingDefaults:
    """Default parameters for new quotations."""

    config_id: str
    version: int
    usd_to_ils_rate: Decimal
    eur_to_ils_rate: Decimal
    markup_percent: Decimal
    risk_percent: Decimal
    vat_rate: Decimal
    include_vat: bool
    day_work_cost: Decimal
    use_msrp_pricing: bool = False
    checksum: str = ""
