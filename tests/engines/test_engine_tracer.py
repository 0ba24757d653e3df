"""Tests for the engine tracer decorator (stock_engines.tracer)."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from stock_engines.tracer import compute_input_fingerprint, traced_engine
from stock_kernel.domain.dtos import MovementType


class TestFingerprint:

    def test_deterministic(self):
        kwargs = {"lots": [1, 2], "as_of": date(2024, 1, 1)}
        assert compute_input_fingerprint(("lots", "as_of"), kwargs) == \
            compute_input_fingerprint(("lots", "as_of"), dict(kwargs))

    def test_sixteen_hex_chars(self):
        fp = compute_input_fingerprint(("x",), {"x": 1})
        assert len(fp) == 16
        int(fp, 16)

    def test_decimal_normalised(self):
        a = compute_input_fingerprint(("q",), {"q": Decimal("1.50")})
        b = compute_input_fingerprint(("q",), {"q": Decimal("1.5")})
        assert a == b

    def test_dict_key_order_irrelevant(self):
        a = compute_input_fingerprint(("d",), {"d": {"b": 2, "a": 1}})
        b = compute_input_fingerprint(("d",), {"d": {"a": 1, "b": 2}})
        assert a == b

    def test_input_changes_fingerprint(self):
        a = compute_input_fingerprint(("t",), {"t": MovementType.WASTE})
        b = compute_input_fingerprint(("t",), {"t": MovementType.SAMPLE})
        assert a != b

    def test_frozen_rows_hashed_by_value(self):
        @dataclass(frozen=True)
        class Row:
            lot_number: str
            balance: Decimal

        a = compute_input_fingerprint(("lots",), {"lots": (Row("PCM-1", Decimal("10.00")),)})
        b = compute_input_fingerprint(("lots",), {"lots": (Row("PCM-1", Decimal("10")),)})
        c = compute_input_fingerprint(("lots",), {"lots": (Row("PCM-1", Decimal("11")),)})
        assert a == b
        assert a != c

    def test_set_order_irrelevant(self):
        a = compute_input_fingerprint(("s",), {"s": {"PRODUCTION", "WASTE", "SAMPLE"}})
        b = compute_input_fingerprint(("s",), {"s": {"SAMPLE", "PRODUCTION", "WASTE"}})
        assert a == b

    def test_missing_field_recorded_as_null(self):
        a = compute_input_fingerprint(("missing",), {})
        b = compute_input_fingerprint(("missing",), {"missing": None})
        assert a == b


def test_traced_engine_emits_trace(captured_logs):
    @traced_engine("demo", "2.1", fingerprint_fields=("value",))
    def double(*, value):
        return value * 2

    assert double(value=21) == 42

    traces = [r for r in captured_logs() if r["message"] == "STOCK_ENGINE_TRACE"]
    assert len(traces) == 1
    trace = traces[0]
    assert trace["engine_name"] == "demo"
    assert trace["engine_version"] == "2.1"
    assert trace["trace_type"] == "STOCK_ENGINE_TRACE"
    assert len(trace["input_fingerprint"]) == 16
    assert trace["duration_ms"] >= 0
    assert trace["logger"] == "stock_kernel.engines.tracer"


def test_traced_engine_preserves_metadata():
    @traced_engine("demo", "1.0")
    def documented():
        """Docstring survives."""

    assert documented.__name__ == "documented"
    assert documented.__doc__ == "Docstring survives."
