"""Tests for structured logging setup."""

import json

from tablestage.core.logging import configure_logging, get_logger, log_context


def _json_lines(text: str) -> list[dict]:
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


class TestLogging:
    """Tests for configure_logging and log_context."""

    def test_json_format(self, capsys):
        configure_logging(log_level="INFO", log_format="json")
        get_logger("tests").info("file_admitted", file="sales_2024.csv", byte_size=10)

        (entry,) = _json_lines(capsys.readouterr().err)
        assert entry["event"] == "file_admitted"
        assert entry["file"] == "sales_2024.csv"
        assert entry["level"] == "info"
        assert "timestamp" in entry

    def test_level_filtering(self, capsys):
        configure_logging(log_level="WARNING", log_format="json")
        logger = get_logger("tests")
        logger.info("quiet")
        logger.warning("loud")

        events = [e["event"] for e in _json_lines(capsys.readouterr().err)]
        assert events == ["loud"]

    def test_log_context_is_scoped(self, capsys):
        configure_logging(log_level="INFO", log_format="json")
        logger = get_logger("tests")

        with log_context(batch_id="b-1"):
            with log_context(file="a.csv"):
                logger.info("upload_started")
            logger.info("batch_upload_finished")
        logger.info("after")

        first, second, third = _json_lines(capsys.readouterr().err)
        assert first["batch_id"] == "b-1"
        assert first["file"] == "a.csv"
        assert second["batch_id"] == "b-1"
        assert "file" not in second
        assert "batch_id" not in third
