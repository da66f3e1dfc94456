# adboard/core/safe_logger.py
"""
Logging setup for the adboard backend.

USAGE:
    from adboard.core.safe_logger import init_safe_logging

    init_safe_logging(level="INFO", use_structured=True)

Modules keep using ``logging.getLogger(__name__)``. With ``use_structured``
every record is emitted as one JSON line, so multi-line messages from
concurrent requests are not split apart by the log collector.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Union

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

# Libraries that flood DEBUG output
NOISY_LOGGERS = ('asyncio', 'aiohttp.access')

_configured = False


class StructuredFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        extra = getattr(record, 'extra_data', None)
        if extra is not None:
            entry["data"] = extra
        return json.dumps(entry, ensure_ascii=False, default=str)


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def init_safe_logging(level: Union[int, str] = logging.INFO,
                      format_string: Optional[str] = None,
                      use_structured: bool = False) -> logging.Logger:
    """
    Configure the root logger once; later calls are no-ops.

    Args:
        level: level name ("DEBUG") or number
        format_string: plain-text format, ignored when structured
        use_structured: emit JSON lines instead of plain text
    """
    global _configured

    root = logging.getLogger()
    if _configured:
        return root

    numeric_level = _resolve_level(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(StructuredFormatter() if use_structured
                         else logging.Formatter(format_string or DEFAULT_FORMAT))

    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    _configured = True
    root.info(f"🔒 Logging configured (level={logging.getLevelName(numeric_level)}, structured={use_structured})")
    return root
