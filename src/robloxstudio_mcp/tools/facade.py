from __future__ import annotations

import asyncio
import json
from collections.abc import Mapping
from typing import Any, Dict, Optional

from ..bridge.service import BridgeService
from ..shared.errors import RobloxStudioError, ToolExecutionError
from ..shared.logging import get_logger
from .registry import build_payload, compact_arguments, get_definition

logger = get_logger(__name__)

JsonDict = Dict[str, Any]


def render_envelope(result: Any) -> JsonDict:
    return {
        "content": [
            {
                "type": "text",
                "text": json.dumps(result, indent=2),
            }
        ]
    }


class RobloxStudioTools:
    """Catalog of Studio operations, each parked on the bridge until the plugin answers."""

    def __init__(self, bridge: BridgeService) -> None:
        self.bridge = bridge

    async def invoke(self, tool_name: str, arguments: Optional[Mapping[str, Any]] = None) -> JsonDict:
        definition = get_definition(tool_name)
        # raises InvalidArgument before anything reaches the bridge
        payload = build_payload(tool_name, arguments or {})
        handle = self.bridge.submit(definition.endpoint, payload)
        try:
            result = await asyncio.wrap_future(handle)
        except RobloxStudioError as exc:
            logger.info("%s failed (%s): %s", tool_name, exc.code, exc.message)
            raise ToolExecutionError(exc.message, kind=exc.code) from exc
        return render_envelope(result)

    # File system

    async def get_file_tree(self, path: str = "") -> JsonDict:
        return await self.invoke("get_file_tree", {"path": path})

    async def get_file_content(self, path: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_file_content", compact_arguments(path=path))

    async def search_files(self, query: Optional[str] = None, search_type: str = "name") -> JsonDict:
        return await self.invoke("search_files", compact_arguments(query=query, searchType=search_type))

    async def get_file_properties(self, path: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_file_properties", compact_arguments(path=path))

    # Studio context

    async def get_place_info(self) -> JsonDict:
        return await self.invoke("get_place_info")

    async def get_services(self, service_name: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_services", compact_arguments(serviceName=service_name))

    async def get_selection(self) -> JsonDict:
        return await self.invoke("get_selection")

    async def search_objects(
        self,
        query: Optional[str] = None,
        search_type: str = "name",
        property_name: Optional[str] = None,
    ) -> JsonDict:
        arguments = compact_arguments(query=query, searchType=search_type, propertyName=property_name)
        return await self.invoke("search_objects", arguments)

    # Properties and instances

    async def get_instance_properties(self, instance_path: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_instance_properties", compact_arguments(instancePath=instance_path))

    async def get_instance_children(self, instance_path: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_instance_children", compact_arguments(instancePath=instance_path))

    async def search_by_property(
        self,
        property_name: Optional[str] = None,
        property_value: Optional[str] = None,
    ) -> JsonDict:
        arguments = compact_arguments(propertyName=property_name, propertyValue=property_value)
        return await self.invoke("search_by_property", arguments)

    async def get_class_info(self, class_name: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_class_info", compact_arguments(className=class_name))

    # Project

    async def get_project_structure(self) -> JsonDict:
        return await self.invoke("get_project_structure")

    async def get_dependencies(self, module_path: Optional[str] = None) -> JsonDict:
        return await self.invoke("get_dependencies", compact_arguments(modulePath=module_path))

    async def validate_references(self) -> JsonDict:
        return await self.invoke("validate_references")
