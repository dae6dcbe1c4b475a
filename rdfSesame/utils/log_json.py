from __future__ import annotations

"""JSON event logging for HTTP exchanges, with credentials scrubbed.

Each event is a single JSON object on one line::

    {"event": "http.response", "level": "DEBUG", "method": "GET",
     "service": "transport", "status": 200, "ts": "...", "url": "..."}

Request coordinates (``method``, ``url``, ``status``, ``latency_ms``) sit at
the top level; everything else is gathered under ``details``.
"""

import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Mapping

LEVEL_ENV = "SESAME_LOG_LEVEL"
PROMOTED_KEYS = ("method", "url", "status", "latency_ms")
SECRET_KEYS = frozenset({"password", "authorization", "proxy-authorization", "auth"})
REDACTED = "[redacted]"

USERINFO_RE = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")
CREDENTIAL_RE = re.compile(r"\b(?:bearer|basic)\s+[A-Za-z0-9\-_=+/.]{8,}", re.IGNORECASE)


def _level(name: str | None) -> int:
    value = logging.getLevelName((name or "WARNING").upper())
    return value if isinstance(value, int) else logging.WARNING


def _scrub(text: str) -> str:
    text = USERINFO_RE.sub(lambda m: f"{m.group('scheme')}{REDACTED}@", text)
    return CREDENTIAL_RE.sub(REDACTED, text)


def _sanitize(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if str(key).lower() in SECRET_KEYS else _sanitize(item)
            for key, item in value.items()
            if item is not None
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_sanitize(item) for item in value]
    return _scrub(str(value))


def _truncate(details: dict[str, Any], max_bytes: int) -> dict[str, Any]:
    if max_bytes <= 0:
        return details
    blob = json.dumps(details, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")
    if len(blob) <= max_bytes:
        return details
    return {"note": "truncated", "preview": blob[:max_bytes].decode("utf-8", errors="ignore")}


class JsonLogger:
    """Emit structured JSON events under the ``rdfsesame.<service>`` logger.

    The threshold comes from ``level`` or ``SESAME_LOG_LEVEL`` (default
    ``WARNING``). Every method returns the emitted entry, or ``None`` when
    the level is filtered out.
    """

    def __init__(
        self,
        service: str,
        *,
        logger: logging.Logger | None = None,
        level: str | None = None,
        max_details_bytes: int = 4096,
    ) -> None:
        self._service = service
        self._logger = logger or logging.getLogger(f"rdfsesame.{service}")
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)
        self._logger.propagate = False
        self._logger.setLevel(_level(level or os.getenv(LEVEL_ENV)))
        self._max_details_bytes = max(0, int(max_details_bytes))

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self.emit("DEBUG", event, **fields)

    def info(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self.emit("INFO", event, **fields)

    def warning(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self.emit("WARNING", event, **fields)

    def error(self, event: str, **fields: Any) -> dict[str, Any] | None:
        return self.emit("ERROR", event, **fields)

    def emit(self, level: str, event: str, **fields: Any) -> dict[str, Any] | None:
        numeric = _level(level)
        if not self._logger.isEnabledFor(numeric):
            return None
        entry = self._entry(logging.getLevelName(numeric), event, fields)
        self._logger.log(numeric, json.dumps(entry, ensure_ascii=False, sort_keys=True, separators=(",", ":")))
        return entry

    def _entry(self, level: str, event: str, fields: dict[str, Any]) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "service": self._service,
            "event": event,
        }
        for key in PROMOTED_KEYS:
            value = fields.pop(key, None)
            if value is not None:
                entry[key] = _sanitize(value)
        details: dict[str, Any] = {}
        explicit = fields.pop("details", None)
        if isinstance(explicit, Mapping):
            details.update(explicit)
        elif explicit is not None:
            details["details"] = explicit
        details.update(fields)
        if details:
            entry["details"] = _truncate(_sanitize(details), self._max_details_bytes)
        return entry


__all__ = ["JsonLogger"]
