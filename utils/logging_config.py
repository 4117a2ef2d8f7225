"""Logging bootstrap for the analysis backend."""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Optional


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None, retention_days: int = 14) -> None:
    """Configure console logging, plus a rotating file when `log_dir` is given."""
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": level,
        },
    }
    if log_dir is not None:
        log_dir = Path(log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers["runtime_file"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "formatter": "default",
            "level": level,
            "filename": str(log_dir / "backend-runtime.log"),
            "when": "midnight",
            "backupCount": max(int(retention_days), 1),
            "utc": True,
            "delay": True,
            "encoding": "utf-8",
        }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                }
            },
            "handlers": handlers,
            "root": {"level": level, "handlers": list(handlers)},
        }
    )


__all__ = ["configure_logging"]
