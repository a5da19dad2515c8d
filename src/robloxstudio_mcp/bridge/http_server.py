from __future__ import annotations

import asyncio
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from ..shared.errors import InvalidArgument, RobloxStudioError, UnknownOperation
from ..shared.logging import get_logger
from .service import BridgeService

if TYPE_CHECKING:
    from ..tools.dispatch import ToolDispatcher

logger = get_logger(__name__)

SERVICE_NAME = "robloxstudio-mcp"


class PluginState:
    """Whether the Studio plugin has announced itself. Set once, never reset."""

    def __init__(self) -> None:
        self._ready = threading.Event()

    @property
    def connected(self) -> bool:
        return self._ready.is_set()

    def mark_ready(self) -> bool:
        first = not self._ready.is_set()
        self._ready.set()
        return first


plugin_state = PluginState()


class BridgeHandler(BaseHTTPRequestHandler):
    server_version = "robloxstudio_bridge/1.0"
    server: "BridgeHTTPServer"

    def log_message(self, format: str, *args) -> None:  # noqa: A003
        logger.debug("%s - %s", self.address_string(), format % args)

    def _send_json(self, payload: Any, status: int = 200) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def _read_json(self) -> Tuple[bool, Any]:
        try:
            length = int(self.headers.get("Content-Length", "0") or 0)
        except ValueError:
            return False, None
        raw = self.rfile.read(length) if length > 0 else b""
        if not raw:
            return True, {}
        try:
            return True, json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False, None

    def do_OPTIONS(self):  # noqa: N802
        self.send_response(204)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def do_GET(self):  # noqa: N802
        path = self.path.split("?", 1)[0]
        if path == "/health":
            self._send_json({"status": "ok", "service": SERVICE_NAME})
            return
        if path == "/poll":
            request = self.server.bridge.peek_oldest()
            self._send_json(request.to_message() if request else {"request": None})
            return
        if path == "/status":
            self._send_json(status_payload(self.server))
            return
        self._send_json({"error": "Not found"}, status=404)

    def do_POST(self):  # noqa: N802
        path = self.path.split("?", 1)[0]
        ok, body = self._read_json()
        if not ok:
            self._send_json({"error": "Invalid JSON"}, status=400)
            return

        if path == "/response":
            self._handle_response(body)
            return
        if path == "/ready":
            if self.server.plugin_state.mark_ready():
                logger.info("Studio plugin connected")
            self._send_json({"success": True})
            return
        if path.startswith("/mcp/"):
            self._handle_tool(path[len("/mcp/"):], body)
            return
        self._send_json({"error": "Not found"}, status=404)

    def _handle_response(self, body: Any) -> None:
        if isinstance(body, dict):
            request_id = body.get("requestId")
            error = body.get("error")
            if error:
                self.server.bridge.fail(request_id, error)
            else:
                self.server.bridge.complete(request_id, body.get("response"))
        # acknowledges delivery, not whether the id was still pending
        self._send_json({"success": True})

    def _handle_tool(self, name: str, arguments: Any) -> None:
        dispatcher = self.server.dispatcher
        if dispatcher is None:
            self._send_json({"error": "Tool proxy is not enabled"}, status=404)
            return
        try:
            result = asyncio.run(dispatcher.dispatch(name, arguments))
        except UnknownOperation as exc:
            self._send_json({"error": exc.message}, status=404)
        except InvalidArgument as exc:
            self._send_json({"error": exc.message}, status=400)
        except RobloxStudioError as exc:
            self._send_json({"error": exc.message}, status=500)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Tool %s failed", name)
            self._send_json({"error": str(exc) or "Unknown error"}, status=500)
        else:
            self._send_json(result)


class BridgeHTTPServer(ThreadingHTTPServer):
    """HTTP face of the bridge: /poll and /response for the plugin, /mcp/<tool> for proxies."""

    def __init__(
        self,
        bridge: BridgeService,
        dispatcher: Optional["ToolDispatcher"] = None,
        host: str = "127.0.0.1",
        port: int = 3002,
        state: Optional[PluginState] = None,
    ) -> None:
        super().__init__((host, port), BridgeHandler)
        self.bridge = bridge
        self.dispatcher = dispatcher
        self.plugin_state = state if state is not None else plugin_state
        self._thread: Optional[threading.Thread] = None

    @property
    def address(self) -> Tuple[str, int]:
        host, port = self.server_address[:2]
        return str(host), int(port)

    @property
    def url(self) -> str:
        host, port = self.address
        return f"http://{host}:{port}"

    def start(self) -> Tuple[str, int]:
        if self._thread is None:
            thread = threading.Thread(target=self.serve_forever, name="bridge-http", daemon=True)
            self._thread = thread
            thread.start()
            logger.info("HTTP server listening on %s for Studio plugin", self.url)
        return self.address

    def stop(self) -> None:
        if self._thread is None:
            self.server_close()
            return
        self.shutdown()
        self.server_close()
        self._thread.join(timeout=1.0)
        self._thread = None
        logger.info("HTTP server stopped")


def status_payload(server: BridgeHTTPServer) -> Dict[str, Any]:
    pending = server.bridge.list_pending()
    return {
        "pluginConnected": server.plugin_state.connected,
        "pendingRequests": len(pending),
        "pending": [{"requestId": request.id, "endpoint": request.endpoint} for request in pending],
    }
