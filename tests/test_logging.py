import io
import json
import logging

from journal_client.core.types import Id
from journal_client.logging import setup_logging


def test_json_log_line_with_extras(settings):
    stream = io.StringIO()
    setup_logging(settings, stream=stream)
    try:
        logging.getLogger("journal_client.test").info("Entry saved", extra={"entry_id": Id(12)})
    finally:
        logging.getLogger().handlers.clear()

    record = json.loads(stream.getvalue().strip())
    assert record["message"] == "Entry saved"
    assert record["level"] == "INFO"
    assert record["service"] == "journal-client"
    assert record["entry_id"] == 12


def test_exception_class_is_reported(settings):
    stream = io.StringIO()
    setup_logging(settings, stream=stream)
    try:
        try:
            raise ValueError("bad draft")
        except ValueError:
            logging.getLogger("journal_client.test").error("Autosave failed", exc_info=True)
    finally:
        logging.getLogger().handlers.clear()

    record = json.loads(stream.getvalue().strip())
    assert record["error"] == {"class": "ValueError", "message": "bad draft"}
