from __future__ import annotations

import logging
import sys
from typing import Optional

from .config import LoggingConfig

ROOT_LOGGER = "robloxstudio_mcp"
SDK_LOGGER = "mcp"

# HTTP handler threads, request timers and the sweeper all log here.
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s - %(message)s"


def _build_handler(config: LoggingConfig) -> logging.Handler:
    if config.file:
        return logging.FileHandler(config.file, encoding="utf-8")
    # stdout carries MCP frames
    return logging.StreamHandler(sys.stderr)


def configure_logging(config: LoggingConfig) -> logging.Logger:
    """Attach one handler to the package logger and the SDK logger; safe to call again."""
    level = getattr(logging, config.level.upper(), logging.INFO)
    handler = _build_handler(config)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    package_logger = logging.getLogger(ROOT_LOGGER)
    sdk_logger = logging.getLogger(SDK_LOGGER)
    for target in (package_logger, sdk_logger):
        for old in list(target.handlers):
            target.removeHandler(old)
            old.close()
        target.addHandler(handler)
        target.propagate = False

    package_logger.setLevel(level)
    # SDK chatter only when debugging the bridge itself
    sdk_logger.setLevel(level if level <= logging.DEBUG else max(level, logging.WARNING))
    return package_logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name if name else ROOT_LOGGER)
