"""Group tools: create, delete, change members and reload"""

from typing import Any, Dict

from ..registry import ToolInputError, ToolRegistry, ToolResult, ToolSpec
from .automations import generate_automation_id
from .common import get_bool, get_non_empty_string, get_string_list, require_string, schema
from .helper_config import parse_helper_entity_id

_ENTITY_LIST = {"type": "array", "items": {"type": "string"}}


def handle_create_group(client, args: Dict[str, Any]) -> ToolResult:
    name = require_string(args, "name")
    entities = get_string_list(args, "entities")
    if not entities:
        raise ToolInputError("entities is required and must contain at least one entity ID")
    object_id = generate_automation_id(get_non_empty_string(args, "id") or name)
    if not object_id:
        raise ToolInputError("id must contain at least one letter or digit")

    data: Dict[str, Any] = {"object_id": object_id, "name": name, "entities": entities}
    all_on = get_bool(args, "all")
    if all_on is not None:
        data["all"] = all_on
    icon = get_non_empty_string(args, "icon")
    if icon:
        data["icon"] = icon

    try:
        client.call_service("group", "set", data)
    except Exception as e:
        return ToolResult.error(f"Error creating group: {e}")
    return ToolResult.text(
        f"Group '{name}' created successfully as group.{object_id} with {len(entities)} entities"
    )


def handle_delete_group(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    object_id = parse_helper_entity_id(entity_id, "group")
    try:
        client.call_service("group", "remove", {"object_id": object_id})
    except Exception as e:
        return ToolResult.error(f"Error deleting group: {e}")
    return ToolResult.text(f"Group '{entity_id}' deleted successfully")


def handle_set_group_entities(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    object_id = parse_helper_entity_id(entity_id, "group")
    add_entities = get_string_list(args, "add_entities")
    remove_entities = get_string_list(args, "remove_entities")
    if not add_entities and not remove_entities:
        raise ToolInputError("at least one of add_entities or remove_entities is required")

    data: Dict[str, Any] = {"object_id": object_id}
    if add_entities:
        data["add_entities"] = add_entities
    if remove_entities:
        data["remove_entities"] = remove_entities

    try:
        client.call_service("group", "set", data)
    except Exception as e:
        return ToolResult.error(f"Error modifying group entities: {e}")
    return ToolResult.text(f"Group '{entity_id}' entities updated successfully")


def handle_reload_group(client, args: Dict[str, Any]) -> ToolResult:
    try:
        client.call_service("group", "reload", {})
    except Exception as e:
        return ToolResult.error(f"Error reloading groups: {e}")
    return ToolResult.text("Groups reloaded successfully")


def register_group_tools(registry: ToolRegistry) -> None:
    """Register group tools."""
    registry.register(ToolSpec(
        name="create_group",
        title="Create Group",
        description="""Create a group that combines several entities into one.

## Parameters
• name: Display name (required)
• entities: Member entity IDs (required, at least one)
• id: Object ID (default: derived from the name)
• all: When true the group is 'on' only if every member is on (default: any member)
• icon: MDI icon, e.g. mdi:lightbulb-group

## Returns
Confirmation with the new entity ID and member count

## Related Tools
• Use `set_group_entities` to change members later""",
        input_schema=schema({
            "name": {"type": "string"},
            "entities": _ENTITY_LIST,
            "id": {"type": "string"},
            "all": {"type": "boolean"},
            "icon": {"type": "string"},
        }, ["name", "entities"]),
        handler=handle_create_group,
    ))

    registry.register(ToolSpec(
        name="delete_group",
        title="Delete Group",
        description="""Delete a group created with `create_group`.

## Parameters
• entity_id: Group to delete, e.g. 'group.living_room_lights' (required)""",
        input_schema=schema({"entity_id": {"type": "string"}}, ["entity_id"]),
        handler=handle_delete_group,
    ))

    registry.register(ToolSpec(
        name="set_group_entities",
        title="Set Group Entities",
        description="""Add or remove members of an existing group.

## Parameters
• entity_id: Group entity (required)
• add_entities: Entity IDs to add
• remove_entities: Entity IDs to remove
At least one of add_entities or remove_entities is required.""",
        input_schema=schema({
            "entity_id": {"type": "string"},
            "add_entities": _ENTITY_LIST,
            "remove_entities": _ENTITY_LIST,
        }, ["entity_id"]),
        handler=handle_set_group_entities,
    ))

    registry.register(ToolSpec(
        name="reload_group",
        title="Reload Groups",
        description="""Reload groups from the YAML configuration.

## Use Cases
• Apply manual edits to groups.yaml""",
        input_schema=schema(),
        handler=handle_reload_group,
    ))
