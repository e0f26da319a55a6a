"""Tests for JSON logging configuration."""

import json
import logging
import sys

from olibox.core.logging import JsonFormatter, configure_logging


def _record(msg="hello", **extra):
    record = logging.LogRecord("olibox.test", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self):
        payload = json.loads(JsonFormatter().format(_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "olibox.test"
        assert payload["msg"] == "hello"
        assert "ts" in payload

    def test_selected_extra_keys(self):
        record = _record(schema_id="kilt:ctype:0x1", status_code=404, secret="x")
        payload = json.loads(JsonFormatter().format(record))
        assert payload["schema_id"] == "kilt:ctype:0x1"
        assert payload["status_code"] == 404
        assert "secret" not in payload

    def test_non_ascii_kept(self):
        payload = JsonFormatter().format(_record("Lieferantenwechsel für BEV"))
        assert "für" in payload

    def test_exc_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("olibox.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in payload["exc_info"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_level_from_argument(self):
        configure_logging(log_level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("OLI_LOG_LEVEL", "WARNING")
        configure_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_console_only_by_default(self, monkeypatch):
        monkeypatch.delenv("OLI_LOG_FILE", raising=False)
        configure_logging()
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JsonFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "oli.log"
        configure_logging(log_file=str(log_file))
        logging.getLogger("olibox.test").info("to file", extra={"did": "did:kilt:4x"})
        for handler in logging.getLogger().handlers:
            handler.flush()
            if isinstance(handler, logging.FileHandler):
                handler.close()
        line = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
        assert line["msg"] == "to file"
        assert line["did"] == "did:kilt:4x"
