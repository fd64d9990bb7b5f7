import json
import logging
import sys

from fallback_bot.logging_config import JSONFormatter, LoggerAdapter, get_logger


def _record(message="hello", **extra):
    record = logging.LogRecord("fallback_bot.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_formats_basic_fields(self):
        data = json.loads(JSONFormatter(service="fallback-chatbot").format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "fallback_bot.test"
        assert data["service"] == "fallback-chatbot"
        assert data["message"] == "hello"
        assert "timestamp" in data
        assert "context" not in data

    def test_includes_context(self):
        data = json.loads(JSONFormatter().format(_record(context={"user_id": "U1", "time_left": "200 seconds"})))

        assert data["context"] == {"user_id": "U1", "time_left": "200 seconds"}

    def test_keeps_thai_text_readable(self):
        output = JSONFormatter().format(_record("รีเซ็ต cooldown สำเร็จ"))

        assert "รีเซ็ต" in output

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


class TestGetLogger:
    def test_namespaced(self):
        assert get_logger("webhook").name == "fallback_bot.webhook"


class TestLoggerAdapter:
    def test_merges_bound_and_call_context(self):
        adapter = LoggerAdapter(get_logger("test"), {"user_id": "U1"})

        msg, kwargs = adapter.process("hi", {"context": {"time_left": 5}})

        assert msg == "hi"
        assert kwargs["extra"] == {"context": {"user_id": "U1", "time_left": 5}}

    def test_bound_context_only(self):
        adapter = LoggerAdapter(get_logger("test"), {"user_id": "U1"})

        _, kwargs = adapter.process("hi", {})

        assert kwargs["extra"] == {"context": {"user_id": "U1"}}
