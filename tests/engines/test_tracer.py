"""
Tests for the engine tracer (CPQ_ENGINE_TRACE).

Verifies:
- Fingerprints are deterministic and insensitive to call style
- Decimal representation does not change the fingerprint
- A trace record is emitted per successful call, none on failure
"""

from decimal import Decimal

import pytest

from cpq_engines.conversion import convert_to_all_currencies
from cpq_engines.tracer import compute_input_fingerprint, traced_engine
from cpq_kernel.domain.catalog import ItemType
from cpq_kernel.domain.values import ExchangeRateSet


@traced_engine("sample", "2.1", fingerprint_fields=("amount", "label"))
def _sample_engine(amount, label="default"):
    return amount


@traced_engine("failing", "1.0")
def _failing_engine():
    raise ValueError("engine failure")


def _traces(records: list[dict]) -> list[dict]:
    return [r for r in records if r["message"] == "CPQ_ENGINE_TRACE"]


class TestComputeInputFingerprint:
    def test_deterministic(self):
        args = {"amount": Decimal("100"), "currency": "USD"}
        first = compute_input_fingerprint(("amount", "currency"), args)
        second = compute_input_fingerprint(("amount", "currency"), dict(args))
        assert first == second
        assert len(first) == 16

    def test_decimal_normalized(self):
        assert compute_input_fingerprint(("amount",), {"amount": Decimal("100")}) == (
            compute_input_fingerprint(("amount",), {"amount": Decimal("100.00")})
        )

    def test_different_inputs_differ(self):
        assert compute_input_fingerprint(("amount",), {"amount": Decimal("1")}) != (
            compute_input_fingerprint(("amount",), {"amount": Decimal("2")})
        )

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("amount",), {}) == (
            compute_input_fingerprint(("amount",), {"amount": None})
        )

    def test_enums_and_dataclasses(self):
        rates = ExchangeRateSet.of("3.7", "4.0")
        same = ExchangeRateSet.of("3.70", "4")
        assert compute_input_fingerprint(("rates", "kind"), {"rates": rates, "kind": ItemType.LABOR}) == (
            compute_input_fingerprint(("rates", "kind"), {"rates": same, "kind": "labor"})
        )


class TestTracedEngine:
    def test_emits_trace(self, captured_logs):
        assert _sample_engine(Decimal("5")) == Decimal("5")

        traces = _traces(captured_logs())
        assert len(traces) == 1
        trace = traces[0]
        assert trace["trace_type"] == "CPQ_ENGINE_TRACE"
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["duration_ms"] >= 0
        assert trace["logger"] == "cpq_kernel.engines.tracer"

    def test_positional_and_keyword_calls_match(self, captured_logs):
        _sample_engine(Decimal("5"), "x")
        _sample_engine(amount=Decimal("5"), label="x")

        first, second = _traces(captured_logs())
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_defaults_are_fingerprinted(self, captured_logs):
        _sample_engine(Decimal("5"))
        _sample_engine(Decimal("5"), "default")

        first, second = _traces(captured_logs())
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_failure_propagates_without_trace(self, captured_logs):
        with pytest.raises(ValueError, match="engine failure"):
            _failing_engine()
        assert _traces(captured_logs()) == []

    def test_wraps_preserves_name(self):
        assert _sample_engine.__name__ == "_sample_engine"

    def test_real_engine_traced(self, rates, captured_logs):
        convert_to_all_currencies(Decimal("100"), "USD", rates)
        traces = _traces(captured_logs())
        assert [t["engine_name"] for t in traces] == ["conversion"]
