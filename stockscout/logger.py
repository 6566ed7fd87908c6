"""Loguru setup for scrape runs.

Console lines carry a ``[TICKER source]`` tag whenever the call bound a
ticker or source, so interleaved output from a concurrent batch stays
readable. The file sink writes one JSON object per line with ``ticker``
and ``source`` promoted to top-level keys for grepping.
"""

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig, get_config
from stockscout.exceptions import LoggingInitializationError

_CONSOLE_PREFIX = (
    "<green>{time:HH:mm:ss.SSS}</green> <level>{level: <8}</level> "
    "<cyan>{extra[module]}</cyan>"
)
_PROMOTED_KEYS = ("ticker", "source")
_INTERNAL_KEYS = ("module", "serialized")


def _console_format(record: dict[str, Any]) -> str:
    extra = record["extra"]
    tag = ""
    if "ticker" in extra and "source" in extra:
        tag = " <magenta>[{extra[ticker]} {extra[source]}]</magenta>"
    elif "ticker" in extra:
        tag = " <magenta>[{extra[ticker]}]</magenta>"
    elif "source" in extra:
        tag = " <magenta>[{extra[source]}]</magenta>"
    return _CONSOLE_PREFIX + tag + " | <level>{message}</level>\n{exception}"


def _file_format(record: dict[str, Any]) -> str:
    return "{extra[serialized]}\n"


def _attach_json(record: dict[str, Any]) -> None:
    """Patcher storing the JSON rendering of ``record`` in its extras."""
    extra = record["extra"]
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "module": extra.get("module", record["name"]),
        "message": record["message"],
    }
    for key in _PROMOTED_KEYS:
        if key in extra:
            entry[key] = extra[key]

    context = {
        key: value
        for key, value in extra.items()
        if key not in _PROMOTED_KEYS and key not in _INTERNAL_KEYS
    }
    if context:
        entry["context"] = context

    if record["exception"] is not None:
        exc_type, exc_value, _ = record["exception"]
        entry["error"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
        }

    extra["serialized"] = json.dumps(entry, default=str)


def _ensure_writable(log_dir: Path) -> None:
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        marker = log_dir / ".write_test"
        marker.write_text("")
        marker.unlink()
    except OSError as exc:
        raise LoggingInitializationError(log_dir=str(log_dir), reason=str(exc)) from exc


def configure_logging(config: GlobalConfig | None = None) -> None:
    """Install the console and JSON file sinks.

    Call once from the entry point, before the first scrape.

    Raises:
        LoggingInitializationError: If the log directory cannot be written.
    """
    config = config or get_config()
    _ensure_writable(config.log_dir)

    logger.configure(
        handlers=[
            {
                "sink": sys.stderr,
                "format": _console_format,
                "level": config.log_level,
                "colorize": True,
                "backtrace": config.debug,
                "diagnose": config.debug,
            },
            {
                "sink": str(config.log_dir / "stockscout_{time:YYYY-MM-DD}.json"),
                "format": _file_format,
                "level": config.log_level,
                "rotation": config.log_rotation,
                "retention": config.log_retention,
                "compression": "gz",
            },
        ],
        extra={"module": "stockscout"},
        patcher=_attach_json,
    )

    logger.info(
        "Logging ready for {app_name}",
        app_name=config.app_name,
        environment=config.environment,
        log_dir=str(config.log_dir),
    )


def get_logger(name: str) -> "logger":
    """Logger bound to ``name``; pass ``ticker=`` and ``source=`` per call."""
    return logger.bind(module=name)
