"""
Tests for observability components (metrics, logging) and settings loading.
"""

import json
import logging

import pytest

from trend_curator import config
from trend_curator.observability.logging import (
    AuditLogger,
    JSONFormatter,
    log_context,
    log_error,
    setup_logging,
)
from trend_curator.observability.metrics import (
    api_request_counter,
    render_metrics,
    review_actions_total,
)


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname=__file__, lineno=1,
        msg=message, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ============================================================================
# Metrics Tests
# ============================================================================

class TestPrometheusMetrics:

    def test_api_request_counter(self):
        counter = api_request_counter.labels(
            method="GET", endpoint="/api/health", status_code="200"
        )
        initial_value = counter._value.get()

        counter.inc()

        assert counter._value.get() == initial_value + 1

    def test_render_metrics(self):
        review_actions_total.labels(action="skip", outcome="success").inc()

        content, content_type = render_metrics()

        assert b"review_actions_total" in content
        assert content_type.startswith("text/plain")


# ============================================================================
# Logging Tests
# ============================================================================

class TestJSONFormatter:

    def test_standard_fields(self):
        data = json.loads(JSONFormatter().format(make_record("Loaded signal")))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Loaded signal"
        assert "context" not in data

    def test_extra_fields_are_merged(self):
        record = make_record(extra_fields={"project_id": "proj_1", "signal_id": "0001"})

        data = json.loads(JSONFormatter().format(record))

        assert data["project_id"] == "proj_1"
        assert data["signal_id"] == "0001"

    def test_log_context(self):
        with log_context(project_id="proj_1"):
            with log_context(action="skip"):
                data = json.loads(JSONFormatter().format(make_record()))

        assert data["context"] == {"project_id": "proj_1", "action": "skip"}
        assert "context" not in json.loads(JSONFormatter().format(make_record()))


class TestLoggingHelpers:

    def test_setup_logging_replaces_handlers(self):
        root = logging.getLogger()
        saved = (root.level, list(root.handlers))
        try:
            setup_logging("DEBUG", json_format=True)
            setup_logging("WARNING", json_format=False)

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
        finally:
            root.setLevel(saved[0])
            root.handlers = saved[1]

    def test_log_error_carries_error_details(self, caplog):
        logger = logging.getLogger("test.errors")

        with caplog.at_level(logging.ERROR, logger="test.errors"):
            try:
                raise RuntimeError("boom")
            except RuntimeError as e:
                log_error(logger, "Action failed", e, project_id="proj_1")

        record = caplog.records[-1]
        assert record.extra_fields["error_type"] == "RuntimeError"
        assert record.extra_fields["project_id"] == "proj_1"
        assert record.exc_info is not None

    def test_audit_trend_transition(self, caplog):
        audit = AuditLogger()

        with caplog.at_level(logging.INFO, logger="audit"):
            audit.log_trend_transition("proj_1", "t-1", "draft", "retired", "Stale")

        fields = caplog.records[-1].extra_fields
        assert fields["event_type"] == "trend_transition"
        assert fields["to_state"] == "retired"
        assert fields["note"] == "Stale"


# ============================================================================
# Settings Tests
# ============================================================================

class TestSettings:

    @pytest.fixture(autouse=True)
    def reset_cache(self, monkeypatch):
        monkeypatch.setattr(config, "_settings_cache", None)
        yield
        config._settings_cache = None

    def test_defaults_when_file_missing(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CURATOR_SETTINGS", str(tmp_path / "missing.json"))

        assert config.get_poll_interval() == config.POLL_INTERVAL_SECONDS
        assert config.hide_reviewed_candidates() is False
        assert config.get_score_bands() == {"high": 80.0, "medium": 60.0}

    def test_file_overrides_per_key(self, monkeypatch, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "review": {"poll_interval_seconds": 2},
            "scores": {"high_percent": 90},
        }))
        monkeypatch.setenv("CURATOR_SETTINGS", str(path))

        assert config.get_poll_interval() == 2.0
        assert config.hide_reviewed_candidates() is False
        assert config.get_score_bands() == {"high": 90.0, "medium": 60.0}

    def test_invalid_file_falls_back(self, monkeypatch, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        monkeypatch.setenv("CURATOR_SETTINGS", str(path))

        assert config.load_settings()["scores"]["high_percent"] == 80

    def test_settings_are_cached(self, monkeypatch, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"review": {"hide_reviewed_candidates": True}}))
        monkeypatch.setenv("CURATOR_SETTINGS", str(path))
        assert config.hide_reviewed_candidates() is True

        path.write_text(json.dumps({"review": {"hide_reviewed_candidates": False}}))

        assert config.hide_reviewed_candidates() is True
        assert config.load_settings(force_reload=True)["review"]["hide_reviewed_candidates"] is False
