"""
Configuration Loader (``cpq_config.loader``).

Responsibility
--------------
Loads the pricing defaults YAML file and parses it into the typed
``cpq_config.schema.PricingDefaults`` dataclass.  Callers go through
``cpq_config.load_pricing_defaults()``; engines never read configuration.

Invariants enforced
-------------------
* Exchange rates are never defaulted: an absent rate raises
  ``MissingExchangeRateError``, a non-positive one
  ``InvalidExchangeRateError``.
* Other required keys raise ``PricingDefaultsError`` naming the key.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from cpq_config.schema import PricingDefaults
from cpq_kernel.domain.values import ZERO, ExchangeRateSet, to_decimal
from cpq_kernel.exceptions import (
    InvalidAmountError,
    MissingExchangeRateError,
    PricingDefaultsError,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _section(data: dict[str, Any], name: str, source: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise PricingDefaultsError(source, f"section {name!r} must be a mapping")
    return section


def _required_decimal(section: dict[str, Any], key: str, path: str, source: str) -> Decimal:
    if section.get(key) is None:
        raise PricingDefaultsError(source, f"missing required key {path}")
    try:
        value = to_decimal(section[key], path)
    except InvalidAmountError as e:
        raise PricingDefaultsError(source, f"{path} is not a number: {section[key]!r}") from e
    if value < ZERO:
        raise PricingDefaultsError(source, f"{path} cannot be negative")
    return value


def _required_bool(section: dict[str, Any], key: str, path: str, source: str) -> bool:
    value = section.get(key)
    if not isinstance(value, bool):
        raise PricingDefaultsError(source, f"{path} must be true or false")
    return value


def parse_pricing_defaults(data: dict[str, Any], source: str = "<memory>") -> PricingDefaults:
    """
    Parse a ``PricingDefaults`` from a dict.

    Preconditions:
        - ``data`` has ``exchange_rates``, ``pricing`` and ``tax`` sections.
    Postconditions:
        - Returns a frozen ``PricingDefaults`` with Decimal amounts and the
          checksum of ``data``.
    Raises:
        MissingExchangeRateError: a rate is absent.
        InvalidExchangeRateError: a rate is zero, negative or not a number.
        PricingDefaultsError: any other missing or malformed key.
    """
    if not isinstance(data, dict):
        raise PricingDefaultsError(source, "top level must be a mapping")

    rates_section = _section(data, "exchange_rates", source)
    for rate_name in ("usd_to_ils", "eur_to_ils"):
        if rates_section.get(rate_name) is None:
            raise MissingExchangeRateError(rate_name)
    rates = ExchangeRateSet.of(rates_section["usd_to_ils"], rates_section["eur_to_ils"])

    pricing = _section(data, "pricing", source)
    tax = _section(data, "tax", source)

    use_msrp = pricing.get("use_msrp_pricing", False)
    if not isinstance(use_msrp, bool):
        raise PricingDefaultsError(source, "pricing.use_msrp_pricing must be true or false")

    return PricingDefaults(
        config_id=str(data.get("config_id", Path(source).stem)),
        version=int(data.get("version", 1)),
        usd_to_ils_rate=rates.usd_to_ils,
        eur_to_ils_rate=rates.eur_to_ils,
        markup_percent=_required_decimal(pricing, "markup_percent", "pricing.markup_percent", source),
        risk_percent=_required_decimal(pricing, "risk_percent", "pricing.risk_percent", source),
        day_work_cost=_required_decimal(pricing, "day_work_cost", "pricing.day_work_cost", source),
        vat_rate=_required_decimal(tax, "vat_rate", "tax.vat_rate", source),
        include_vat=_required_bool(tax, "include_vat", "tax.include_vat", source),
        use_msrp_pricing=use_msrp,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
