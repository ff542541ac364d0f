"""Logging setup for the service.

Modules log through ``logging.getLogger(__name__)``. ``setup_logging`` installs
a single stdout handler on the root logger, emitting JSON records by default.
"""

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger.json import JsonFormatter

# Set by the orchestrator while a generation for a session is running
session_id_var: ContextVar[str | None] = ContextVar("session_id", default=None)
generation_id_var: ContextVar[str | None] = ContextVar("generation_id", default=None)


class StructuredFormatter(JsonFormatter):
    """JSON formatter that adds timestamp, level and generation context."""

    def add_fields(
        self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        if session_id := session_id_var.get():
            log_record["session_id"] = session_id
        if generation_id := generation_id_var.get():
            log_record["generation_id"] = generation_id


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(StructuredFormatter("%(message)s"))
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Client libraries log every HTTP request at INFO
    for noisy in ("httpx", "httpcore", "openai", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
