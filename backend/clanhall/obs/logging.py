"""JSON logging for clanhall.

Request-scoped fields (request id, route, caller) live in one ContextVar that
the HTTP middleware binds; every record emitted while it is bound carries them.
Chat content and application answers written by users never reach the log stream.
"""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from clanhall.settings import settings

_LOG_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("clanhall_log_context", default={})

_ROOT_LOGGER = "clanhall"

_REDACTED_KEYS = ("token", "secret", "authorization", "answers", "content")

_MAX_VALUE_CHARS = 200

# attributes every LogRecord carries; anything else came from ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Merge non-empty ``fields`` into the log context; returns the reset token."""
	merged = dict(_LOG_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if value})
	return _LOG_CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_LOG_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _LOG_CONTEXT.get().get("request_id")


def _clean(key: str, value: Any) -> Any:
	if any(marker in key.lower() for marker in _REDACTED_KEYS):
		return "[redacted]"
	if isinstance(value, (bool, int, float)) or value is None:
		return value
	if isinstance(value, Mapping):
		return {str(k): _clean(str(k), v) for k, v in value.items()}
	if isinstance(value, (list, tuple, set)):
		return [_clean(key, item) for item in value]
	text = str(value)
	return text if len(text) <= _MAX_VALUE_CHARS else text[:_MAX_VALUE_CHARS] + "..."


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per line."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		payload: Dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"event": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		payload.update(_LOG_CONTEXT.get())
		for key, value in record.__dict__.items():
			if key not in _RECORD_ATTRS and not key.startswith("_"):
				payload[key] = _clean(key, value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


def configure_logging() -> logging.Logger:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_ROOT_LOGGER)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _ROOT_LOGGER)
