"""
Tests for Sentry error tracking setup and capture.
"""
from unittest.mock import patch

import pytest

from app.core import error_tracking
from app.core.config import settings


@pytest.fixture(autouse=True)
def tracking_off(monkeypatch):
    monkeypatch.setattr(error_tracking, "_initialized", False)


class TestInitErrorTracking:
    def test_disabled_without_dsn(self, monkeypatch):
        monkeypatch.setattr(settings, "SENTRY_DSN", "")

        with patch("app.core.error_tracking.sentry_sdk.init") as mock_init:
            assert error_tracking.init_error_tracking() is False

        mock_init.assert_not_called()
        assert error_tracking.is_enabled() is False

    def test_initializes_sentry_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "SENTRY_DSN", "https://key@sentry.example.com/1")
        monkeypatch.setattr(settings, "SENTRY_TRACES_SAMPLE_RATE", 0.25)

        with patch("app.core.error_tracking.sentry_sdk.init") as mock_init:
            assert error_tracking.init_error_tracking() is True

        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://key@sentry.example.com/1"
        assert kwargs["environment"] == settings.ENV
        assert kwargs["traces_sample_rate"] == 0.25
        assert kwargs["send_default_pii"] is False
        assert error_tracking.is_enabled() is True


class TestCaptureError:
    def test_noop_while_disabled(self):
        with patch("app.core.error_tracking.sentry_sdk.capture_exception") as mock_capture:
            assert error_tracking.capture_error(RuntimeError("x")) is None

        mock_capture.assert_not_called()

    def test_sends_exception_when_enabled(self, monkeypatch):
        monkeypatch.setattr(error_tracking, "_initialized", True)
        exc = RuntimeError("database exploded")

        with patch(
            "app.core.error_tracking.sentry_sdk.capture_exception", return_value="evt-1"
        ) as mock_capture:
            event_id = error_tracking.capture_error(
                exc, context={"path": "/boom"}, tags={"error_type": "RuntimeError"}
            )

        assert event_id == "evt-1"
        mock_capture.assert_called_once_with(exc)

    def test_shutdown_flushes_and_disables(self, monkeypatch):
        monkeypatch.setattr(error_tracking, "_initialized", True)

        with patch("app.core.error_tracking.sentry_sdk.flush") as mock_flush:
            error_tracking.shutdown_error_tracking()

        mock_flush.assert_called_once()
        assert error_tracking.is_enabled() is False
