from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

DEFAULT_PORT = 3002


@dataclass(frozen=True)
class BridgeConfig:
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    timeout_ms: int = 30000
    sweep_interval_ms: int = 5000
    # When set, tool calls are forwarded to a bridge already running at this URL.
    url: str | None = None

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def sweep_interval(self) -> float:
        return self.sweep_interval_ms / 1000.0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    file: str | None = None


@dataclass(frozen=True)
class AppConfig:
    bridge: BridgeConfig = BridgeConfig()
    logging: LoggingConfig = LoggingConfig()


def _load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _from_file() -> AppConfig:
    config_path = os.getenv("ROBLOX_STUDIO_MCP_CONFIG")
    if not config_path:
        return AppConfig()

    path = Path(config_path)
    if not path.exists():
        return AppConfig()

    raw = _load_json(path)
    bridge_raw = raw.get("bridge", {})
    logging_raw = raw.get("logging", {})
    return AppConfig(
        bridge=BridgeConfig(
            host=str(bridge_raw.get("host", "127.0.0.1")),
            port=int(bridge_raw.get("port", DEFAULT_PORT)),
            timeout_ms=int(bridge_raw.get("timeout_ms", 30000)),
            sweep_interval_ms=int(bridge_raw.get("sweep_interval_ms", 5000)),
            url=bridge_raw.get("url"),
        ),
        logging=LoggingConfig(
            level=str(logging_raw.get("level", "INFO")),
            file=logging_raw.get("file"),
        ),
    )


def load_config() -> AppConfig:
    config = _from_file()
    bridge = replace(
        config.bridge,
        host=os.getenv("ROBLOX_STUDIO_HOST") or config.bridge.host,
        port=_env_int("ROBLOX_STUDIO_PORT", config.bridge.port),
        timeout_ms=_env_int("ROBLOX_STUDIO_TIMEOUT_MS", config.bridge.timeout_ms),
        url=os.getenv("ROBLOX_STUDIO_BRIDGE_URL") or config.bridge.url,
    )
    logging_config = replace(
        config.logging,
        level=os.getenv("ROBLOX_STUDIO_LOG_LEVEL") or config.logging.level,
    )
    return AppConfig(bridge=bridge, logging=logging_config)
