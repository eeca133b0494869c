# src/ariacore/logging_config.py
"""
Logging configuration for ariacore.

Provides a single entry point, :func:`configure_logging`, that wires the
standard ``logging`` module for an agent process:

- Console logging gated by a :class:`DisplayFilter`
- Optional rotating file logging
- Per-component log level overrides

Key concepts:

    **Display filter**: When ``console_enabled=False`` (the default), the
    console handler still exists but only passes through log records that
    carry ``extra={"display": True}``.  The agent's default narration sink
    sets this flag, so iteration progress ("Strategy: ... | Action: ...")
    reaches the terminal while debug chatter stays in the log file.

    **Configuration source**: The ``[logging]`` table of the agent TOML
    file, or a dictionary passed directly.

Usage:
    from ariacore.logging_config import configure_logging, log_display

    configure_logging(app_name="aria-demo", config={"console_enabled": True})

    logger = logging.getLogger("aria-demo")
    log_display(logger, logging.INFO, "Agent %s ready", name)
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/ariacore/logs",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 10 * 1024 * 1024,  # 10 MB
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "ariacore": "INFO",
        "anthropic": "WARNING",
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "aiohttp": "WARNING",
        "asyncio": "WARNING",
    },
}


def _resolve_level(name: Any, default: int) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


class DisplayFilter(logging.Filter):
    """Controls which log records pass through to the console handler.

    When console is globally enabled, everything passes and the handler's
    own level does the filtering.  Otherwise only records with
    ``record.display = True`` at or above ``display_min_level`` pass.
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True

        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level

        return False


_configured_log_path: Optional[Path] = None
_configured: bool = False


def configure_logging(
    app_name: str = "ariacore",
    config: Optional[dict[str, Any]] = None,
    force_reconfigure: bool = False,
) -> Optional[Path]:
    """
    Configure logging for the application.

    Args:
        app_name: Name of the application (used in the log filename).
        config: Logging section overrides; merged over the defaults.
        force_reconfigure: Reconfigure even if logging was already set up.

    Returns:
        Path to the log file, or None when file logging is disabled.
    """
    global _configured, _configured_log_path

    if _configured and not force_reconfigure:
        return _configured_log_path

    log_config = {**DEFAULT_LOGGING_CONFIG, **(config or {})}

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(logging.DEBUG)

    console_enabled = bool(log_config.get("console_enabled", False))
    display_filter = DisplayFilter(
        console_globally_enabled=console_enabled,
        display_min_level=_resolve_level(log_config.get("display_min_level"), logging.INFO),
    )

    console_handler = logging.StreamHandler(sys.stderr)
    if console_enabled:
        console_handler.setLevel(_resolve_level(log_config.get("console_level"), logging.WARNING))
    else:
        # Filter is the sole gate in quiet mode
        console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(log_config["console_format"]))
    console_handler.addFilter(display_filter)
    root_logger.addHandler(console_handler)

    log_path: Optional[Path] = None
    if log_config.get("file_enabled", False):
        directory = Path(str(log_config["file_directory"])).expanduser()
        directory.mkdir(parents=True, exist_ok=True)
        filename = log_config["file_name_pattern"].format(app=app_name, timestamp=datetime.now())
        log_path = directory / filename

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=int(log_config["rotation_max_bytes"]),
            backupCount=int(log_config["rotation_backup_count"]),
            encoding="utf-8",
        )
        file_handler.setLevel(_resolve_level(log_config.get("file_level"), logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(log_config["file_format"]))
        root_logger.addHandler(file_handler)

    for component_name, level_str in log_config.get("components", {}).items():
        logging.getLogger(component_name).setLevel(_resolve_level(level_str, logging.INFO))

    _configured = True
    _configured_log_path = log_path

    if log_path:
        logging.getLogger(__name__).debug(f"Logging configured. Log file: {log_path}")

    return log_path


def log_display(logger: logging.Logger, level: int, msg: str, *args: Any) -> None:
    """Log a message that reaches the console even in quiet mode."""
    logger.log(level, msg, *args, extra={"display": True})
