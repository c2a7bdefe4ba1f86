import json
import logging

from app.core.config import Settings
from app.core.logging import configure_logging


def test_configure_logging_emits_json(capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(Settings(log_level="debug"))
        logging.getLogger("app.services.settlement_engine").info("[settlement] poll=%s", "p-1")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["level"] == "INFO"
        assert payload["logger"] == "app.services.settlement_engine"
        assert payload["message"] == "[settlement] poll=p-1"
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
