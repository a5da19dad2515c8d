import json
import threading
import time
import urllib.error
import urllib.request
from typing import Iterator

import pytest

from robloxstudio_mcp.bridge.http_server import BridgeHTTPServer, PluginState
from robloxstudio_mcp.bridge.service import BridgeService
from robloxstudio_mcp.tools.dispatch import ToolDispatcher
from robloxstudio_mcp.tools.facade import RobloxStudioTools


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bridge() -> Iterator[BridgeService]:
    service = BridgeService(timeout=5.0)
    yield service
    service.close()


@pytest.fixture
def dispatcher(bridge: BridgeService) -> ToolDispatcher:
    return ToolDispatcher(RobloxStudioTools(bridge))


@pytest.fixture
def http_server(bridge: BridgeService, dispatcher: ToolDispatcher) -> Iterator[BridgeHTTPServer]:
    server = BridgeHTTPServer(bridge, dispatcher, host="127.0.0.1", port=0, state=PluginState())
    server.start()
    yield server
    server.stop()


def http_json(url: str, payload=None, timeout: float = 5.0):
    """Return (status, decoded body) for a GET, or a POST when payload is given."""
    data = None
    headers = {}
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        headers["Content-Type"] = "application/json"
    req = urllib.request.Request(url, data=data, headers=headers)
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.status, json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as exc:
        return exc.code, json.loads(exc.read().decode("utf-8"))


class FakePlugin:
    """Polls the bridge in a thread and answers with a canned handler."""

    def __init__(self, bridge: BridgeService, handler) -> None:
        self.bridge = bridge
        self.handler = handler
        self.seen = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self) -> None:
        while not self._stop.is_set():
            request = self.bridge.peek_oldest()
            if request is None:
                time.sleep(0.005)
                continue
            self.seen.append((request.endpoint, request.payload))
            ok, value = self.handler(request.endpoint, request.payload)
            if ok:
                self.bridge.complete(request.id, value)
            else:
                self.bridge.fail(request.id, value)

    def __enter__(self) -> "FakePlugin":
        self._thread.start()
        return self

    def __exit__(self, *exc) -> None:
        self._stop.set()
        self._thread.join(timeout=1.0)


@pytest.fixture
def fake_plugin(bridge: BridgeService):
    def _make(handler):
        return FakePlugin(bridge, handler)

    return _make
