"""
Structured event logging for runtime debugging.

Writes one JSON object per line to the configured events.jsonl file.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from config.settings import EVENT_LOG_PATH

_LOCK = threading.Lock()
_LOG_PATH = Path(EVENT_LOG_PATH)

# Never write these keys to disk
_REDACTED_KEYS = {"auth_code", "api_key", "token"}


def _to_json_safe(value: Any) -> Any:
    """Convert values to JSON-safe representations."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json_safe(v) for v in value]
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if isinstance(value, Path):
        return str(value)
    return value


def log_event(event: str, **data: Any) -> None:
    """
    Append a structured event to the JSONL log file.

    Logging should never break bot flows. Failures are reported on stdout.
    """
    try:
        now_utc = datetime.now(timezone.utc)
        now_local = datetime.now().astimezone()
        payload = {
            "ts_utc": now_utc.isoformat(),
            "ts_local": now_local.isoformat(),
            "ts_unix_ms": int(now_utc.timestamp() * 1000),
            "event": event,
            **{
                k: _to_json_safe(v)
                for k, v in data.items()
                if k not in _REDACTED_KEYS
            },
        }

        _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(payload, ensure_ascii=False)
        with _LOCK:
            with _LOG_PATH.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
    except Exception as exc:
        print(f"⚠️ Error writing event log: {exc}")


def get_event_log_path() -> Path:
    return _LOG_PATH
