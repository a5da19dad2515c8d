import http.client
import json
import threading
import time
import urllib.error
import urllib.request

import pytest

from conftest import http_json
from robloxstudio_mcp.bridge.http_server import PluginState


def _wait_for_poll(base_url: str, timeout: float = 2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        _, body = http_json(f"{base_url}/poll")
        if body.get("request") is not None:
            return body
        time.sleep(0.01)
    raise AssertionError("nothing was queued")


def test_health(http_server):
    status, body = http_json(f"{http_server.url}/health")
    assert status == 200
    assert body == {"status": "ok", "service": "robloxstudio-mcp"}


def test_poll_with_nothing_pending(http_server):
    status, body = http_json(f"{http_server.url}/poll")
    assert status == 200
    assert body == {"request": None}


def test_place_info_round_trip(http_server, bridge):
    handle = bridge.submit("/api/place-info", {})

    status, polled = http_json(f"{http_server.url}/poll")
    assert status == 200
    assert polled["request"]["endpoint"] == "/api/place-info"
    assert polled["request"]["payload"] == {}
    request_id = polled["requestId"]

    # served again until it is answered
    _, again = http_json(f"{http_server.url}/poll")
    assert again["requestId"] == request_id

    ack = http_json(f"{http_server.url}/response", {"requestId": request_id, "response": {"name": "MyGame"}})
    assert ack == (200, {"success": True})
    assert handle.result(timeout=1) == {"name": "MyGame"}

    duplicate = http_json(f"{http_server.url}/response", {"requestId": request_id, "response": {"name": "MyGame"}})
    assert duplicate == (200, {"success": True})
    assert handle.result(timeout=1) == {"name": "MyGame"}
    assert http_json(f"{http_server.url}/poll")[1] == {"request": None}


def test_response_with_error_rejects(http_server, bridge):
    handle = bridge.submit("/api/class-info", {"className": "Nope"})
    request_id = http_json(f"{http_server.url}/poll")[1]["requestId"]

    ack = http_json(f"{http_server.url}/response", {"requestId": request_id, "error": "Unknown class"})
    assert ack == (200, {"success": True})
    with pytest.raises(Exception, match="Unknown class"):
        handle.result(timeout=1)


def test_response_for_unknown_id_is_acknowledged(http_server):
    assert http_json(f"{http_server.url}/response", {"requestId": "missing", "response": 1}) == (
        200,
        {"success": True},
    )
    assert http_json(f"{http_server.url}/response", {}) == (200, {"success": True})


def test_response_with_invalid_json(http_server):
    req = urllib.request.Request(
        f"{http_server.url}/response",
        data=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    with pytest.raises(urllib.error.HTTPError) as excinfo:
        urllib.request.urlopen(req, timeout=5)
    assert excinfo.value.code == 400


def test_response_with_malformed_content_length(http_server):
    host, port = http_server.address
    conn = http.client.HTTPConnection(host, port, timeout=5)
    try:
        conn.putrequest("POST", "/response")
        conn.putheader("Content-Type", "application/json")
        conn.putheader("Content-Length", "abc")
        conn.endheaders()
        resp = conn.getresponse()
        assert resp.status == 400
        assert json.loads(resp.read().decode("utf-8")) == {"error": "Invalid JSON"}
    finally:
        conn.close()


def test_ready_and_status(http_server, bridge):
    assert http_json(f"{http_server.url}/status")[1] == {
        "pluginConnected": False,
        "pendingRequests": 0,
        "pending": [],
    }

    assert http_json(f"{http_server.url}/ready", {}) == (200, {"success": True})
    bridge.submit("/api/selection", {})
    bridge.submit("/api/place-info", {})
    _, status = http_json(f"{http_server.url}/status")
    assert status["pluginConnected"] is True
    assert status["pendingRequests"] == 2
    assert [item["endpoint"] for item in status["pending"]] == ["/api/selection", "/api/place-info"]
    assert [item["requestId"] for item in status["pending"]] == [r.id for r in bridge.list_pending()]

    # never reset
    http_json(f"{http_server.url}/ready", {})
    assert http_server.plugin_state.connected is True


def test_plugin_state_reports_first_ready_only():
    state = PluginState()
    assert state.connected is False
    assert state.mark_ready() is True
    assert state.mark_ready() is False
    assert state.connected is True


def test_unknown_route(http_server):
    assert http_json(f"{http_server.url}/nope")[0] == 404
    assert http_json(f"{http_server.url}/nope", {})[0] == 404


def test_tool_proxy_missing_argument(http_server, bridge):
    status, body = http_json(f"{http_server.url}/mcp/get_file_content", {})
    assert status == 400
    assert "path" in body["error"]
    assert bridge.pending_count == 0


def test_tool_proxy_unknown_tool(http_server, bridge):
    status, body = http_json(f"{http_server.url}/mcp/not_a_tool", {})
    assert status == 404
    assert "not_a_tool" in body["error"]
    assert bridge.pending_count == 0


def test_tool_proxy_round_trip(http_server):
    result = {}

    def _call():
        result["value"] = http_json(f"{http_server.url}/mcp/get_file_content", {"path": "ServerScriptService.Main"})

    caller = threading.Thread(target=_call)
    caller.start()

    polled = _wait_for_poll(http_server.url)
    assert polled["request"]["endpoint"] == "/api/file-content"
    assert polled["request"]["payload"] == {"path": "ServerScriptService.Main"}
    http_json(f"{http_server.url}/response", {"requestId": polled["requestId"], "response": {"source": "print(1)"}})

    caller.join(timeout=5)
    status, body = result["value"]
    assert status == 200
    assert json.loads(body["content"][0]["text"]) == {"source": "print(1)"}


def test_tool_proxy_remote_error(http_server):
    result = {}

    def _call():
        result["value"] = http_json(f"{http_server.url}/mcp/get_class_info", {"className": "Part"})

    caller = threading.Thread(target=_call)
    caller.start()

    polled = _wait_for_poll(http_server.url)
    http_json(f"{http_server.url}/response", {"requestId": polled["requestId"], "error": "Studio exploded"})

    caller.join(timeout=5)
    status, body = result["value"]
    assert status == 500
    assert body == {"error": "Studio exploded"}
