"""
Tests for quotation domain types.

Covers:
- Item construction rules (quantity, cost, subtype)
- Pricing mode variants
- Parameters resolving their exchange rates
- Status lifecycle
"""

from decimal import Decimal

import pytest

from cpq_kernel.domain.catalog import ItemType, LaborSubtype
from cpq_kernel.domain.quotation import (
    CostPlusMarkup,
    MsrpDiscount,
    Quotation,
    QuotationItem,
    QuotationParameters,
    QuotationStatus,
    QuotationSystem,
)
from cpq_kernel.domain.values import NIS, USD
from cpq_kernel.exceptions import (
    InvalidAmountError,
    InvalidExchangeRateError,
    InvalidQuantityError,
    InvalidStatusTransitionError,
    MissingExchangeRateError,
    ValidationError,
)


def _item(**overrides) -> QuotationItem:
    fields = dict(
        id="i1",
        name="PLC",
        item_type=ItemType.HARDWARE,
        quantity=Decimal("1"),
        original_cost=Decimal("100"),
        original_currency="USD",
        pricing=CostPlusMarkup(Decimal("25")),
    )
    fields.update(overrides)
    return QuotationItem(**fields)


class TestQuotationItem:
    """Item construction rules."""

    def test_coerces_fields(self):
        item = _item(item_type="labor", labor_subtype="engineering", quantity="2.5")
        assert item.item_type == ItemType.LABOR
        assert item.labor_subtype == LaborSubtype.ENGINEERING
        assert item.quantity == Decimal("2.5")
        assert item.original_currency == USD

    @pytest.mark.parametrize("quantity", [0, "-1"])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(InvalidQuantityError):
            _item(quantity=quantity)

    def test_negative_cost_rejected(self):
        with pytest.raises(InvalidAmountError):
            _item(original_cost="-5")

    def test_subtype_on_hardware_rejected(self):
        with pytest.raises(ValidationError):
            _item(labor_subtype=LaborSubtype.INSTALLATION)

    def test_custom_item(self):
        assert _item().is_custom
        assert not _item(component_id="c1").is_custom

    def test_mode_flags(self):
        assert not _item().uses_msrp
        msrp = _item(pricing=MsrpDiscount(Decimal("150"), "USD", Decimal("10")))
        assert msrp.uses_msrp

    def test_with_quantity_returns_new_item(self):
        item = _item()
        bigger = item.with_quantity(3)
        assert bigger.quantity == Decimal("3")
        assert item.quantity == Decimal("1")


class TestItemListPrice:
    """List price kept on the item whatever its pricing mode."""

    def test_msrp_currency_defaults_to_cost_currency(self):
        item = _item(msrp_price="150", partner_discount_percent="12.5")
        assert item.msrp_price == Decimal("150")
        assert item.msrp_currency == USD
        assert item.partner_discount_percent == Decimal("12.5")
        assert item.has_msrp

    def test_explicit_msrp_currency(self):
        assert _item(msrp_price="500", msrp_currency="ILS").msrp_currency == NIS

    def test_no_list_price(self):
        item = _item()
        assert item.msrp_price is None
        assert item.msrp_currency is None
        assert not item.has_msrp
        assert not _item(msrp_price="0").has_msrp

    def test_bad_list_price_rejected(self):
        with pytest.raises(InvalidAmountError):
            _item(msrp_price="-1")
        with pytest.raises(InvalidAmountError):
            _item(msrp_price="100", partner_discount_percent="101")

    def test_with_msrp_pricing(self):
        item = _item(msrp_price="150", msrp_currency="EUR").with_msrp_pricing()
        assert item.pricing == MsrpDiscount(Decimal("150"), "EUR", Decimal("0"))
        assert item.original_cost == Decimal("100")

    def test_with_msrp_pricing_needs_positive_price(self):
        with pytest.raises(ValidationError):
            _item(msrp_price="0").with_msrp_pricing()


class TestPricingModes:
    """CostPlusMarkup and MsrpDiscount validation."""

    def test_negative_markup_rejected(self):
        with pytest.raises(InvalidAmountError):
            CostPlusMarkup(Decimal("-1"))

    def test_msrp_defaults_to_no_discount(self):
        mode = MsrpDiscount(msrp_price="100", msrp_currency="ILS")
        assert mode.partner_discount_percent == Decimal("0")
        assert mode.msrp_currency == NIS

    def test_discount_above_hundred_rejected(self):
        with pytest.raises(InvalidAmountError):
            MsrpDiscount(msrp_price="100", msrp_currency="USD", partner_discount_percent="120")


class TestQuotationSystem:
    def test_default_quantity_is_one(self):
        assert QuotationSystem(id="s1", name="Line 1").quantity == Decimal("1")

    def test_non_positive_quantity_rejected(self):
        with pytest.raises(InvalidQuantityError):
            QuotationSystem(id="s1", name="Line 1", quantity=0)


class TestQuotationParameters:
    """Rates are resolved once and fail loudly."""

    def test_exchange_rates(self):
        parameters = QuotationParameters(usd_to_ils_rate=3.7, eur_to_ils_rate="4.0")
        rates = parameters.exchange_rates
        assert rates.usd_to_ils == Decimal("3.7")
        assert rates.eur_to_ils == Decimal("4.0")

    def test_absent_rate_raises_on_resolution(self):
        parameters = QuotationParameters(usd_to_ils_rate=None, eur_to_ils_rate="4.0")
        with pytest.raises(MissingExchangeRateError):
            parameters.exchange_rates

    def test_zero_rate_raises_on_resolution(self):
        parameters = QuotationParameters(usd_to_ils_rate="0", eur_to_ils_rate="4.0")
        with pytest.raises(InvalidExchangeRateError):
            parameters.exchange_rates

    def test_garbage_rate_rejected_at_construction(self):
        with pytest.raises(InvalidExchangeRateError):
            QuotationParameters(usd_to_ils_rate="abc", eur_to_ils_rate="4.0")

    def test_with_rates(self):
        parameters = QuotationParameters(usd_to_ils_rate="3.7", eur_to_ils_rate="4.0")
        updated = parameters.with_rates("4.0", "4.3")
        assert updated.usd_to_ils_rate == Decimal("4.0")
        assert parameters.usd_to_ils_rate == Decimal("3.7")


class TestQuotationStatus:
    """draft -> sent -> won | lost."""

    def setup_method(self):
        self.quotation = Quotation(
            id="q1",
            name="Packing line",
            customer_name="Acme",
            parameters=QuotationParameters(usd_to_ils_rate="3.7", eur_to_ils_rate="4.0"),
        )

    def test_starts_as_draft(self):
        assert self.quotation.status == QuotationStatus.DRAFT

    def test_draft_to_sent_to_won(self):
        won = self.quotation.with_status("sent").with_status(QuotationStatus.WON)
        assert won.status == QuotationStatus.WON
        assert won.status.is_terminal
        assert self.quotation.status == QuotationStatus.DRAFT

    def test_sent_to_lost(self):
        assert self.quotation.with_status("sent").with_status("lost").status == QuotationStatus.LOST

    def test_draft_cannot_jump_to_won(self):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            self.quotation.with_status("won")
        assert exc_info.value.from_status == "draft"
        assert exc_info.value.to_status == "won"

    def test_terminal_status_cannot_reopen(self):
        won = self.quotation.with_status("sent").with_status("won")
        with pytest.raises(InvalidStatusTransitionError):
            won.with_status("draft")

    def test_same_status_is_noop(self):
        assert self.quotation.with_status("draft") is self.quotation

    def test_can_transition_to(self):
        assert QuotationStatus.DRAFT.can_transition_to(QuotationStatus.SENT)
        assert not QuotationStatus.LOST.can_transition_to(QuotationStatus.WON)
