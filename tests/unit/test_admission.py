"""
Unit Tests - Admission Control
"""
import pytest

from beacon_analytics.errors import RateLimitDenied
from beacon_analytics.ingestion.admission import AdmissionController


@pytest.fixture
def controller(clock) -> AdmissionController:
    return AdmissionController(ceiling=100, window_ms=60_000, clock=clock)


class TestAdmissionController:
    """Tests for the fixed-window admission controller"""

    def test_ceiling_then_deny(self, controller):
        results = [controller.admit("198.51.100.7") for _ in range(101)]

        assert all(results[:100])
        assert results[100] is False

    def test_window_expiry_readmits(self, controller, clock):
        for _ in range(101):
            controller.admit("198.51.100.7")

        clock.advance(60_001)

        assert controller.admit("198.51.100.7") is True

    def test_window_expires_at_exact_boundary(self, controller, clock):
        for _ in range(100):
            controller.admit("198.51.100.7")
        assert controller.admit("198.51.100.7") is False

        clock.advance(60_000)

        assert controller.admit("198.51.100.7") is True

    def test_denied_requests_do_not_extend_window(self, controller, clock):
        for _ in range(100):
            controller.admit("198.51.100.7")

        clock.advance(30_000)
        assert controller.admit("198.51.100.7") is False

        clock.advance(30_000)
        assert controller.admit("198.51.100.7") is True

    def test_sources_are_independent(self, controller):
        for _ in range(100):
            controller.admit("198.51.100.7")

        assert controller.admit("198.51.100.7") is False
        assert controller.admit("198.51.100.8") is True

    def test_check_raises_with_retry_after(self, clock):
        controller = AdmissionController(ceiling=1, window_ms=60_000, clock=clock)
        controller.check("198.51.100.7")

        with pytest.raises(RateLimitDenied) as exc_info:
            controller.check("198.51.100.7")

        assert exc_info.value.retry_after_seconds == 60
        assert exc_info.value.source_key == "198.51.100.7"

    def test_retry_after_is_at_least_one_second(self, clock):
        controller = AdmissionController(ceiling=1, window_ms=250, clock=clock)

        assert controller.retry_after_seconds == 1

    def test_sweep_removes_only_expired_windows(self, controller, clock):
        controller.admit("198.51.100.7")
        clock.advance(45_000)
        controller.admit("198.51.100.8")
        clock.advance(20_000)

        removed = controller.sweep()

        assert removed == 1
        assert len(controller) == 1

    @pytest.mark.parametrize("ceiling,window_ms", [(0, 60_000), (10, 0)])
    def test_invalid_configuration(self, ceiling, window_ms):
        with pytest.raises(ValueError):
            AdmissionController(ceiling=ceiling, window_ms=window_ms)
