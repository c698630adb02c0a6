import json
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from hoist.time_utils import now_local

# Initialize system logger
_logger = logging.getLogger("hoist")
_logger.setLevel(logging.INFO)

LOG_FILENAME = "hoist.log"
LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(directory: Path) -> Path:
    """Attaches a rotating JSON-lines file handler under the given directory."""
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILENAME

    if not any(
        isinstance(h, logging.handlers.RotatingFileHandler) and h.baseFilename == str(log_file.resolve())
        for h in _logger.handlers
    ):
        # Rotating handler: 10MB per file, keep 5 backups
        handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        _logger.addHandler(handler)
    return log_file


def set_log_level(level: int | str) -> None:
    if isinstance(level, str):
        level = LEVELS.get(level.strip().lower(), logging.INFO)
    _logger.setLevel(level)


# Global list of event subscribers (reporters, tests)
_subscribers: List[Callable[[Dict[str, Any]], None]] = []


def subscribe_to_events(callback: Callable[[Dict[str, Any]], None]):
    _subscribers.append(callback)


def unsubscribe_from_events(callback: Callable[[Dict[str, Any]], None]):
    if callback in _subscribers:
        _subscribers.remove(callback)


def log_event(event: str, data: Optional[Dict[str, Any]] = None, level: str = "info", **kwargs) -> Dict[str, Any]:
    """
    Unified log router.
    Emits one JSON record on the 'hoist' logger and notifies subscribers.
    Extra keyword arguments are merged into the record data.
    """
    full_data = {**(data or {}), **kwargs}
    record = {
        "timestamp": now_local().isoformat(),
        "level": level,
        "event": event,
        "data": full_data,
    }

    _logger.log(LEVELS.get(level, logging.INFO), json.dumps(record, ensure_ascii=False, default=str))

    for subscriber in _subscribers:
        try:
            subscriber(record)
        except (RuntimeError, ValueError, TypeError, OSError) as e:
            failure_record = {
                "timestamp": now_local().isoformat(),
                "level": "error",
                "event": "logging_subscriber_failed",
                "data": {"error": str(e)},
            }
            _logger.error(json.dumps(failure_record, ensure_ascii=False))
    return record
