from __future__ import annotations

import hashlib
import logging
import random
import time
from datetime import datetime, timezone
from pathlib import Path

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def sha256_bytes(value: bytes) -> str:
    return hashlib.sha256(value).hexdigest()


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def epoch_ms_now() -> int:
    return int(time.time() * 1000)


def generate_area_id(now_ms: int, rng: random.Random) -> str:
    suffix = "".join(rng.choice(_BASE36) for _ in range(9))
    return f"area_{now_ms}_{suffix}"


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("fog_explorer_engine")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    return logger
