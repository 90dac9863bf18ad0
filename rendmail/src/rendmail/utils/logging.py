"""Rendmail logging helpers emitting one JSON object per line on stderr.

What:
  Offer a tiny facade over Python streams so the rewrite engine and the CLI can
  emit diagnostics with a consistent schema and without leaking message
  content.

Why:
  Rendmail runs as a filter inside mail delivery agents (procmail, fdm), where
  stdout carries the rewritten message and stderr ends up in the agent's log.
  Diagnostics must therefore never touch stdout, and a structured layout keeps
  those logs greppable.

How:
  Provide a :class:`JsonLogger` dataclass bound to a target stream (``stderr``
  by default). ``extra`` dictionaries are scrubbed via a recursive redaction
  helper before being serialised with ``json.dump``.

Interfaces:
  :class:`JsonLogger`, :func:`get_logger`.

Invariants & Safety:
  - Every entry carries ``ts``, ``lvl``, ``msg`` and ``component`` fields.
  - ``subject`` and ``body`` keys are replaced with ``[redacted]`` even inside
    nested dictionaries.
  - Streams are flushed after every write so entries survive an abrupt exit of
    the delivery agent.
"""
from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"subject", "body"})


@dataclass
class JsonLogger:
    """Structured JSON logger with automatic redaction.

    What:
      Emits single-line JSON entries that include a timestamp, severity, a
      component tag, and optional supplemental fields.

    Why:
      A uniform schema lets operators filter the delivery agent's log for
      rendmail entries and lets tests assert on individual fields.

    How:
      Stores the destination stream and component label, then exposes
      :meth:`log`, :meth:`info`, :meth:`warning` and :meth:`error`, which merge
      a canonical payload with redacted extras before writing.
    """

    stream: Any = field(default_factory=lambda: sys.stderr)
    component: str = "rendmail"

    def log(self, level: str, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        """Serialise ``message`` and redacted ``extra`` to the stream and flush."""

        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "lvl": level.upper(),
            "msg": message,
            "component": self.component,
        }
        if extra:
            payload.update(self._redact(extra))
        json.dump(payload, self.stream, separators=(",", ":"), default=str)
        self.stream.write("\n")
        self.stream.flush()

    def info(self, message: str, **kwargs: Any) -> None:
        self.log("INFO", message, extra=kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log("WARN", message, extra=kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log("ERROR", message, extra=kwargs)

    @staticmethod
    def _redact(data: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``data`` with :data:`SENSITIVE_KEYS` masked recursively."""

        result: Dict[str, Any] = {}
        for key, value in data.items():
            if key in SENSITIVE_KEYS:
                result[key] = REDACTED
            elif isinstance(value, dict):
                result[key] = JsonLogger._redact(value)
            else:
                result[key] = value
        return result


def get_logger(component: str, stream: Any = None) -> JsonLogger:
    """Construct a :class:`JsonLogger` for ``component``.

    Args:
      component: Logical subsystem name included in every entry.
      stream: Destination; defaults to the current ``sys.stderr``.
    """

    if stream is None:
        return JsonLogger(component=component)
    return JsonLogger(stream=stream, component=component)
