"""
Unit tests for monitoring: diagnostics reporter, metrics, events and log formatters.
"""

import io
import json
import logging

from placefilter.errors import CycleDetected, DanglingParent, UnknownCategory
from placefilter.monitoring.diagnostics import (
    CONDITION_COUNTER,
    DROPPED_COUNTER,
    DiagnosticsReporter,
)
from placefilter.monitoring.events import emit_event
from placefilter.monitoring.logging import (
    JsonFormatter,
    LoggingOptions,
    TextFormatter,
    setup_logging,
    with_context,
)
from placefilter.monitoring.metrics import MetricsRegistry


def _capture_logger(name: str, formatter: logging.Formatter):
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger, stream


class TestDiagnosticsReporter:
    """Tests for DiagnosticsReporter."""

    def test_report_counts_by_kind(self):
        reporter = DiagnosticsReporter()
        reporter.report(UnknownCategory("x"))
        reporter.report(UnknownCategory("y", source="place"))
        reporter.report(CycleDetected(("b", "a")))

        counters = reporter.metrics.as_dict()["counters"]
        assert counters[f"{CONDITION_COUNTER}|kind=UnknownCategory"] == 2
        assert counters[f"{CONDITION_COUNTER}|kind=CycleDetected"] == 1
        assert reporter.count(UnknownCategory) == 2
        assert reporter.count(DanglingParent) == 0

    def test_as_dict_is_json_friendly(self):
        reporter = DiagnosticsReporter()
        reporter.report(CycleDetected(("b", "a")))
        report = reporter.as_dict()
        assert report["conditions"] == [
            {"kind": "CycleDetected", "message": str(CycleDetected(("a", "b"))), "members": ["a", "b"]}
        ]
        json.dumps(report)

    def test_repeated_condition_kept_once(self):
        """Repeats are counted but stored and logged only once."""
        logger, stream = _capture_logger("test.diagnostics.repeat", JsonFormatter())
        reporter = DiagnosticsReporter(log=logger)
        for _ in range(500):
            reporter.report(UnknownCategory("not_in_feed", source="place"))
        reporter.report(UnknownCategory("not_in_feed", source="hide_list"))

        assert [(c.alias, c.source) for c in reporter.conditions] == [
            ("not_in_feed", "place"),
            ("not_in_feed", "hide_list"),
        ]
        assert len(stream.getvalue().strip().splitlines()) == 2
        counters = reporter.metrics.as_dict()["counters"]
        assert counters[f"{CONDITION_COUNTER}|kind=UnknownCategory"] == 501

    def test_retained_conditions_capped(self):
        reporter = DiagnosticsReporter(max_conditions=3)
        for i in range(10):
            reporter.report(UnknownCategory(f"tag{i}", source="place"))

        assert [c.alias for c in reporter.conditions] == ["tag0", "tag1", "tag2"]
        counters = reporter.metrics.as_dict()["counters"]
        assert counters[f"{CONDITION_COUNTER}|kind=UnknownCategory"] == 10
        assert counters[DROPPED_COUNTER] == 7

    def test_report_logs_structured_warning(self):
        logger, stream = _capture_logger("test.diagnostics", JsonFormatter())
        reporter = DiagnosticsReporter(log=logger)
        reporter.report(DanglingParent("coffee", "ghost"))

        record = json.loads(stream.getvalue().strip())
        assert record["level"] == "WARNING"
        assert record["event"] == "category.DanglingParent"
        assert record["payload"]["parent"] == "ghost"


class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_counters_with_labels(self):
        m = MetricsRegistry()
        m.inc("hits")
        m.inc("hits", 2)
        m.inc("hits", labels={"b": "2", "a": "1"})
        assert m.counters == {"hits": 3.0, "hits|a=1|b=2": 1.0}

    def test_timer(self):
        m = MetricsRegistry()
        with m.time("build"):
            pass
        m.observe("build", 1.0)
        timer = m.as_dict()["timers"]["build"]
        assert timer["count"] == 2.0
        assert timer["max"] == 1.0

    def test_gauge(self):
        m = MetricsRegistry()
        m.set_gauge("size", 3)
        assert m.as_dict()["gauges"] == {"size": 3.0}


class TestLogging:
    """Tests for formatters and context injection."""

    def test_text_formatter_with_context(self):
        logger, stream = _capture_logger("test.text", TextFormatter())
        with_context(logger, component="visibility", stage="reload").info("hello")
        line = stream.getvalue().strip()
        assert line == "INFO test.text [component=visibility stage=reload] hello"

    def test_emit_event_payload(self):
        logger, stream = _capture_logger("test.events", JsonFormatter())
        emit_event(logger, "engine.ready", {"categories": 3}, stage="startup")
        record = json.loads(stream.getvalue().strip())
        assert record["msg"] == "Event: engine.ready"
        assert record["payload"] == {"categories": 3}
        assert record["stage"] == "startup"

    def test_setup_logging_is_idempotent(self, tmp_path):
        log_file = tmp_path / "logs" / "engine.log"
        logger = setup_logging(LoggingOptions(level="debug", log_file=log_file))
        logger = setup_logging(LoggingOptions(level="debug", log_file=log_file))
        try:
            assert len(logger.handlers) == 2
            assert logger.level == logging.DEBUG
            logger.info("written")
            for h in logger.handlers:
                h.flush()
            assert "written" in log_file.read_text(encoding="utf-8")
        finally:
            for h in list(logger.handlers):
                logger.removeHandler(h)
                h.close()
            logger.propagate = True
