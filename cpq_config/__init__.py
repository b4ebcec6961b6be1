"""
cpq_config -- default pricing parameters for new quotations.

Responsibility:
    Loads the pricing defaults (exchange rates, markup, risk, VAT, day-work
    cost) from YAML and turns them into ``QuotationParameters``.  Defaults
    are resolved once, explicitly, when a quotation is created; engines
    never read configuration.

Architecture position:
    Configuration -- sits beside ``cpq_engines`` and above ``cpq_kernel``.
    The kernel and the engines MUST NEVER import from ``cpq_config``.

Failure modes:
    - ``FileNotFoundError`` -- the defaults file does not exist.
    - ``MissingExchangeRateError`` -- a rate is absent from the file.
    - ``PricingDefaultsError`` -- any other missing or malformed key.

Audit relevance:
    Every successful ``load_pricing_defaults()`` call emits a
    ``CPQ_CONFIG_TRACE`` log entry with the config id, version, checksum
    and the loaded rates, tying a quotation's starting parameters to the
    exact defaults file that produced them.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any

from cpq_config.loader import compute_checksum, load_yaml_file, parse_pricing_defaults
from cpq_config.schema import PricingDefaults
from cpq_kernel.domain.quotation import QuotationParameters
from cpq_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_PRICING_FILE = Path(__file__).parent / "defaults" / "pricing.yaml"


def load_pricing_defaults(path: Path | str | None = None) -> PricingDefaults:
    """Load pricing defaults from ``path`` (or the packaged defaults file).

    Returns:
        A frozen ``PricingDefaults`` carrying the file's checksum.

    Raises:
        FileNotFoundError: If the file does not exist.
        MissingExchangeRateError: If either exchange rate is absent.
        PricingDefaultsError: If any other key is missing or malformed.
    """
    source = Path(path) if path is not None else DEFAULT_PRICING_FILE
    data = load_yaml_file(source)
    defaults = parse_pricing_defaults(data, str(source))

    _logger.info(
        "CPQ_CONFIG_TRACE",
        extra={
            "trace_type": "CPQ_CONFIG_TRACE",
            "config_id": defaults.config_id,
            "config_version": defaults.version,
            "checksum": defaults.checksum,
            "source": str(source),
            "usd_to_ils": str(defaults.usd_to_ils_rate),
            "eur_to_ils": str(defaults.eur_to_ils_rate),
        },
    )
    return defaults


def default_quotation_parameters(
    defaults: PricingDefaults,
    **overrides: Any,
) -> QuotationParameters:
    """Build QuotationParameters from defaults, with per-quotation overrides.

    Raises:
        TypeError: If an override names a field QuotationParameters lacks.
    """
    parameters = QuotationParameters(
        usd_to_ils_rate=defaults.usd_to_ils_rate,
        eur_to_ils_rate=defaults.eur_to_ils_rate,
        markup_percent=defaults.markup_percent,
        risk_percent=defaults.risk_percent,
        vat_rate=defaults.vat_rate,
        include_vat=defaults.include_vat,
        day_work_cost=defaults.day_work_cost,
        use_msrp_pricing=defaults.use_msrp_pricing,
    )
    return replace(parameters, **overrides) if overrides else parameters


__all__ = [
    "DEFAULT_PRICING_FILE",
    "PricingDefaults",
    "compute_checksum",
    "default_quotation_parameters",
    "load_pricing_defaults",
]
