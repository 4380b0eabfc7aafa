"""
Structured logging for the eligibility wizard.

JSON lines for production (LOG_FORMAT=json), readable lines otherwise.
A context-local session_id and extra fields are attached to every line so
that one wizard run can be followed across requests.

Usage:
    from citizenship_wizard.logger import logger

    logger.set_session("sess_123")
    logger.info("Answer recorded", question_id="born_in_jamaica")
    logger.event("wizard_completed", status="eligible")
"""

import json
import logging
import os
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from citizenship_wizard.settings import settings


# Line kind -> stdlib level. METRIC and EVENT are analytics lines logged at INFO.
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "METRIC": logging.INFO,
    "EVENT": logging.INFO,
}

READABLE_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"

_session_var: ContextVar[Optional[str]] = ContextVar("wizard_session_id", default=None)
_context_var: ContextVar[Dict[str, Any]] = ContextVar("wizard_log_context", default={})


def json_output() -> bool:
    return os.environ.get("LOG_FORMAT", "readable") == "json"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StructuredLogger:
    """
    Wrapper around a stdlib logger that renders keyword fields.

    Fields passed as keyword arguments end up as JSON keys, or as a
    "[key=value, ...]" suffix in readable mode.
    """

    def __init__(self, name: str, level: Optional[str] = None):
        self.name = name
        self.logger = logging.getLogger(name)
        if not self.logger.handlers:
            self._attach_handler(level or settings.get_nested("logging.level", "INFO"))

    def _attach_handler(self, level_name: str) -> None:
        level = logging.getLevelName(str(level_name).upper())
        if not isinstance(level, int):
            level = logging.INFO

        handler = logging.StreamHandler()
        if json_output():
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler.setFormatter(logging.Formatter(READABLE_FORMAT, datefmt="%H:%M:%S"))

        self.logger.setLevel(level)
        self.logger.addHandler(handler)
        # Lines are already rendered; the root logger would print them twice
        self.logger.propagate = False

    # -- context ---------------------------------------------------------

    @property
    def session_id(self) -> Optional[str]:
        return _session_var.get()

    def set_session(self, session_id: str) -> None:
        _session_var.set(session_id)

    def clear_session(self) -> None:
        _session_var.set(None)

    @property
    def _extra_context(self) -> Dict[str, Any]:
        return _context_var.get()

    def set_context(self, **fields: Any) -> None:
        """Add fields to every following line of the current context."""
        _context_var.set({**_context_var.get(), **fields})

    def clear_context(self) -> None:
        _context_var.set({})

    # -- rendering -------------------------------------------------------

    def _format_structured(self, level: str, message: str, **fields: Any) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "timestamp": _utc_timestamp(),
            "level": level,
            "logger": self.name,
            "message": message,
        }
        if self.session_id:
            entry["session_id"] = self.session_id
        entry.update(self._extra_context)
        entry.update(fields)
        return entry

    def _render(self, kind: str, message: str, fields: Dict[str, Any]) -> str:
        if json_output():
            entry = self._format_structured(kind, message, **fields)
            return json.dumps(entry, ensure_ascii=False, default=str)

        if fields:
            message += " [" + ", ".join(f"{k}={v}" for k, v in fields.items()) + "]"
        if self.session_id:
            message = f"[{self.session_id}] {message}"
        return message

    def _emit(self, kind: str, message: str, fields: Dict[str, Any], exc_info: bool = False) -> None:
        level = LEVELS[kind]
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(level, self._render(kind, message, fields), exc_info=exc_info)

    # -- public API ------------------------------------------------------

    def debug(self, message: str, **fields: Any) -> None:
        self._emit("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit("ERROR", message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Error line with the active traceback (as a field in JSON mode)."""
        if json_output():
            fields["traceback"] = traceback.format_exc()
            self._emit("ERROR", message, fields)
        else:
            self._emit("ERROR", message, fields, exc_info=True)

    def metric(self, name: str, value: Any, **fields: Any) -> None:
        """
        Numeric analytics line.

        Example:
            logger.metric("questions_answered", 5, country_code="jm")
        """
        self._emit("METRIC", name, {"value": value, **fields})

    def event(self, event_type: str, **fields: Any) -> None:
        """
        Business event line.

        Example:
            logger.event("wizard_completed", country_code="jm", status="eligible")
        """
        self._emit("EVENT", event_type, fields)


logger = StructuredLogger("citizenship_wizard")


def create_test_logger(name: str = "test") -> StructuredLogger:
    """Isolated child logger for tests."""
    return StructuredLogger(f"citizenship_wizard.{name}")
