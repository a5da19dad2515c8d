from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from ..shared.errors import InvalidArgument, UnknownOperation
from .defs import ToolDefinition
from .facade import RobloxStudioTools
from .registry import list_definitions

JsonDict = Dict[str, Any]
ToolMethod = Callable[..., Awaitable[JsonDict]]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_keyword(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


class ToolDispatcher:
    """Routes MCP tool names to the matching RobloxStudioTools method."""

    def __init__(self, tools: RobloxStudioTools) -> None:
        self.tools = tools
        self._routes: Dict[str, Tuple[ToolDefinition, ToolMethod]] = {
            definition.name: (definition, getattr(tools, definition.name))
            for definition in list_definitions()
        }

    def __contains__(self, name: object) -> bool:
        return name in self._routes

    def list_tools(self) -> list[ToolDefinition]:
        return [definition for definition, _ in self._routes.values()]

    async def dispatch(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> JsonDict:
        route = self._routes.get(name)
        if route is None:
            raise UnknownOperation(f"Unknown tool: {name}")
        definition, method = route

        arguments = arguments or {}
        if not isinstance(arguments, Mapping):
            raise InvalidArgument(f"Arguments for {name} must be an object")
        unexpected = sorted(set(arguments) - set(definition.properties))
        if unexpected:
            raise InvalidArgument(f"Unexpected argument(s) for {name}: {', '.join(unexpected)}")

        kwargs = {to_keyword(key): value for key, value in arguments.items()}
        return await method(**kwargs)
