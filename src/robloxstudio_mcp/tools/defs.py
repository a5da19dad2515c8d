from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    endpoint: str
    description: str
    input_schema: dict[str, Any]
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def properties(self) -> dict[str, Any]:
        return self.input_schema.get("properties", {})

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required", []))


def _string(description: str, **extra: Any) -> dict[str, Any]:
    return {"type": "string", "description": description, **extra}


def _required_string(description: str) -> dict[str, Any]:
    return _string(description, minLength=1)


def _schema(properties: dict[str, Any] | None = None, required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties or {},
        "additionalProperties": False,
    }
    if required:
        schema["required"] = required
    return schema


TOOL_DEFINITIONS: list[ToolDefinition] = [
    # File system
    ToolDefinition(
        name="get_file_tree",
        endpoint="/api/file-tree",
        description="Get complete hierarchy of the Roblox Studio project with script types, models, and folders",
        input_schema=_schema(
            {"path": _string("Optional path to start from (defaults to workspace root)", default="")}
        ),
        defaults={"path": ""},
    ),
    ToolDefinition(
        name="get_file_content",
        endpoint="/api/file-content",
        description="Retrieve script source code from a specific file",
        input_schema=_schema({"path": _required_string("Path to the script file")}, ["path"]),
    ),
    ToolDefinition(
        name="search_files",
        endpoint="/api/search-files",
        description="Find files by name, type, or content patterns",
        input_schema=_schema(
            {
                "query": _required_string("Search query (name, type, or content pattern)"),
                "searchType": _string(
                    "Type of search to perform", enum=["name", "type", "content"], default="name"
                ),
            },
            ["query"],
        ),
        defaults={"searchType": "name"},
    ),
    ToolDefinition(
        name="get_file_properties",
        endpoint="/api/file-properties",
        description="Get script properties and parent/child relationships",
        input_schema=_schema({"path": _required_string("Path to the script file")}, ["path"]),
    ),
    # Studio context
    ToolDefinition(
        name="get_place_info",
        endpoint="/api/place-info",
        description="Get place ID, name, and game settings",
        input_schema=_schema(),
    ),
    ToolDefinition(
        name="get_services",
        endpoint="/api/services",
        description="Get available Roblox services and their children",
        input_schema=_schema({"serviceName": _string("Optional specific service name to query")}),
    ),
    ToolDefinition(
        name="get_selection",
        endpoint="/api/selection",
        description="Get currently selected objects in Studio",
        input_schema=_schema(),
    ),
    ToolDefinition(
        name="search_objects",
        endpoint="/api/search-objects",
        description="Find instances by name, class, or properties",
        input_schema=_schema(
            {
                "query": _required_string("Search query"),
                "searchType": _string(
                    "Type of search to perform", enum=["name", "class", "property"], default="name"
                ),
                "propertyName": _string('Property name when searchType is "property"'),
            },
            ["query"],
        ),
        defaults={"searchType": "name"},
    ),
    # Properties and instances
    ToolDefinition(
        name="get_instance_properties",
        endpoint="/api/instance-properties",
        description="Get all properties of a specific instance",
        input_schema=_schema({"instancePath": _required_string("Path to the instance")}, ["instancePath"]),
    ),
    ToolDefinition(
        name="get_instance_children",
        endpoint="/api/instance-children",
        description="Get child objects and their types",
        input_schema=_schema(
            {"instancePath": _required_string("Path to the parent instance")}, ["instancePath"]
        ),
    ),
    ToolDefinition(
        name="search_by_property",
        endpoint="/api/search-by-property",
        description="Find objects with specific property values",
        input_schema=_schema(
            {
                "propertyName": _required_string("Name of the property to search"),
                "propertyValue": _required_string("Value to search for"),
            },
            ["propertyName", "propertyValue"],
        ),
    ),
    ToolDefinition(
        name="get_class_info",
        endpoint="/api/class-info",
        description="Get available properties/methods for Roblox classes",
        input_schema=_schema({"className": _required_string("Roblox class name")}, ["className"]),
    ),
    # Project
    ToolDefinition(
        name="get_project_structure",
        endpoint="/api/project-structure",
        description="Get complete game hierarchy",
        input_schema=_schema(),
    ),
    ToolDefinition(
        name="get_dependencies",
        endpoint="/api/dependencies",
        description="Get module dependencies and relationships",
        input_schema=_schema({"modulePath": _string("Optional specific module path to analyze")}),
    ),
    ToolDefinition(
        name="validate_references",
        endpoint="/api/validate-references",
        description="Check for broken script references",
        input_schema=_schema(),
    ),
]
