"""
Pytest fixtures for the CPQ pricing engine test suite.

Provides:
- Structured logging configured for the whole session, with per-test
  context isolation and a ``captured_logs`` JSON capture fixture
- Exchange rates, parameters and catalog builders shared across tests
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from cpq_kernel.domain.catalog import Assembly, Component, ItemType
from cpq_kernel.domain.quotation import CostPlusMarkup, QuotationItem, QuotationParameters
from cpq_kernel.domain.values import ExchangeRateSet
from cpq_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture cpq_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_assembly_pricing(assembly, rates)
            logs = captured_logs()
            assert any(r["message"] == "assembly_pricing_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("cpq_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Pricing fixtures
# =============================================================================


@pytest.fixture
def rates() -> ExchangeRateSet:
    """USD/ILS 3.7, EUR/ILS 4.0."""
    return ExchangeRateSet.of("3.7", "4.0")


@pytest.fixture
def parameters() -> QuotationParameters:
    """25% markup, 5% risk, 17% VAT included, 1200 NIS per day."""
    return QuotationParameters(
        usd_to_ils_rate=Decimal("3.7"),
        eur_to_ils_rate=Decimal("4.0"),
        markup_percent=Decimal("25"),
        risk_percent=Decimal("5"),
        vat_rate=Decimal("17"),
        include_vat=True,
        day_work_cost=Decimal("1200"),
    )


@pytest.fixture
def make_component():
    """Factory for library components."""

    def _make(
        component_id: str = "cmp-1",
        cost: str = "100",
        currency: str = "NIS",
        name: str | None = None,
        **kwargs,
    ) -> Component:
        return Component(
            id=component_id,
            name=name or f"Component {component_id}",
            original_currency=currency,
            original_cost=Decimal(cost),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_item():
    """Factory for cost-plus-markup quotation items."""

    def _make(
        item_id: str = "item-1",
        cost: str = "1000",
        currency: str = "NIS",
        quantity: str = "1",
        markup: str = "25",
        item_type: ItemType = ItemType.HARDWARE,
        **kwargs,
    ) -> QuotationItem:
        return QuotationItem(
            id=item_id,
            name=kwargs.pop("name", f"Item {item_id}"),
            item_type=item_type,
            quantity=Decimal(quantity),
            original_cost=Decimal(cost),
            original_currency=currency,
            pricing=kwargs.pop("pricing", CostPlusMarkup(Decimal(markup))),
            **kwargs,
        )

    return _make


@pytest.fixture
def empty_assembly() -> Assembly:
    return Assembly(id="asm-1", name="Control cabinet")
