"""Tests for the engine tracer decorator and input fingerprints."""

from billing_engines.tracer import compute_input_fingerprint, traced_engine
from billing_kernel.domain.facility import PauseWindow
from billing_kernel.domain.values import Money


@traced_engine("sample_engine", "2.1", fingerprint_fields=("amount", "days"))
def _sample(amount, days, note=None):
    return amount


class TestComputeInputFingerprint:

    def test_deterministic(self):
        args = {"amount": Money.of("1.00"), "days": frozenset({1, 3})}

        assert compute_input_fingerprint(("amount", "days"), args) == \
            compute_input_fingerprint(("amount", "days"), dict(args))

    def test_set_order_irrelevant(self):
        a = compute_input_fingerprint(("days",), {"days": frozenset({3, 1, 2})})
        b = compute_input_fingerprint(("days",), {"days": frozenset({2, 3, 1})})

        assert a == b

    def test_input_change_changes_fingerprint(self):
        a = compute_input_fingerprint(("window",), {"window": PauseWindow(1, 5)})
        b = compute_input_fingerprint(("window",), {"window": PauseWindow(1, 6)})

        assert a != b

    def test_length(self):
        assert len(compute_input_fingerprint(("x",), {})) == 16


class TestTracedEngine:

    def test_returns_result(self):
        amount = Money.of("5.00")

        assert _sample(amount, {1}) is amount

    def test_emits_trace(self, captured_logs):
        _sample(Money.of("5.00"), days={1}, note="ignored")

        traces = [r for r in captured_logs() if r["message"] == "BILLING_ENGINE_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "sample_engine"
        assert trace["engine_version"] == "2.1"
        assert trace["function"] == "_sample"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["duration_ms"] >= 0

    def test_ignored_argument_does_not_affect_fingerprint(self, captured_logs):
        _sample(Money.of("5.00"), {1}, note="a")
        _sample(Money.of("5.00"), {1}, note="b")

        prints = {
            r["input_fingerprint"]
            for r in captured_logs()
            if r["message"] == "BILLING_ENGINE_TRACE"
        }
        assert len(prints) == 1
