from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ..shared.errors import InvalidArgument, ToolExecutionError, TransportFailure, UnknownOperation
from ..shared.logging import get_logger

logger = get_logger(__name__)

JsonDict = Dict[str, Any]


class StudioHttpClient:
    """Forwards tool calls to a bridge process that already owns the plugin connection."""

    def __init__(self, base_url: str, timeout: float = 35.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def request(self, path: str, payload: Optional[Mapping[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        data: Optional[bytes] = None
        headers: Dict[str, str] = {}
        if payload is not None:
            data = json.dumps(dict(payload)).encode("utf-8")
            headers["Content-Type"] = "application/json"
        req = urllib.request.Request(url, data=data, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as exc:
            raise self._http_error(exc) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise TransportFailure(
                f"Studio bridge connection failed. Make sure the bridge is running and accessible at {self.base_url} ({exc})"
            ) from exc
        return self._decode(body)

    def health(self) -> JsonDict:
        return self.request("/health")

    def status(self) -> JsonDict:
        return self.request("/status")

    def call_tool_sync(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> JsonDict:
        return self.request(f"/mcp/{name}", arguments or {})

    async def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> JsonDict:
        return await asyncio.to_thread(self.call_tool_sync, name, arguments)

    def _decode(self, body: bytes) -> Any:
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportFailure("Invalid response from Studio bridge") from exc

    def _http_error(self, exc: urllib.error.HTTPError) -> Exception:
        message = f"HTTP {exc.code}: {exc.reason}"
        try:
            detail = json.loads(exc.read().decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError, OSError):
            detail = None
        if isinstance(detail, dict) and isinstance(detail.get("error"), str):
            message = detail["error"]
        if exc.code == 400:
            return InvalidArgument(message)
        if exc.code == 404:
            return UnknownOperation(message)
        logger.debug("Bridge returned HTTP %s: %s", exc.code, message)
        return ToolExecutionError(message)
