"""MCP server bridging tool calls to a polling Roblox Studio plugin."""

from .bridge.service import BridgeService, PendingRequest
from .tools.dispatch import ToolDispatcher
from .tools.facade import RobloxStudioTools

__version__ = "1.0.0"

__all__ = [
    "BridgeService",
    "PendingRequest",
    "RobloxStudioTools",
    "ToolDispatcher",
    "__version__",
]
