from .client import StudioHttpClient
from .http_server import BridgeHTTPServer, PluginState, plugin_state
from .service import BridgeService, PendingRequest

__all__ = [
    "BridgeHTTPServer",
    "BridgeService",
    "PendingRequest",
    "PluginState",
    "StudioHttpClient",
    "plugin_state",
]
