"""
Structured optimizer tracing.

Enabled when the OPTIMIZER_TRACE_PATH env var is set. Appends one JSON line per
event so selection runs can be replayed and compared offline.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any

logger = logging.getLogger("pug_bot.trace")


def trace_event(location: str, message: str, data: dict[str, Any] | None = None) -> None:
    """
    Append a JSONL trace entry to OPTIMIZER_TRACE_PATH if configured.
    """
    path = os.getenv("OPTIMIZER_TRACE_PATH")
    if not path:
        return

    payload = {
        "timestamp": int(time.time() * 1000),
        "location": location,
        "message": message,
        "data": data or {},
    }

    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(payload, default=str) + "\n")
    except OSError as e:
        # Tracing must never affect selection
        logger.debug(f"Could not write optimizer trace to {path}: {e}")
