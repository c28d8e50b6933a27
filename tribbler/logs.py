from __future__ import annotations

import json
import logging
import os
from collections import deque
from datetime import datetime, timezone

LOG_LEVEL = os.getenv("TRIB_LOG_LEVEL", "INFO").strip().upper()

recent_logs: deque = deque(maxlen=300)

logger = logging.getLogger("tribbler")
if not logger.handlers:
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_handler)


def log_event(event: str, **kwargs: object) -> None:
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "event": event,
        **kwargs,
    }
    recent_logs.appendleft(payload)
    logger.info(json.dumps(payload, default=str))
