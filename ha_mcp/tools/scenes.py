"""Scene tools: list, get, create, update, delete and activate"""

import logging
from typing import Any, Dict

from ..registry import ToolInputError, ToolRegistry, ToolResult, ToolSpec
from ..services.homeassistant import SceneConfig, SceneState
from .common import (
    friendly_name,
    get_dict,
    get_non_empty_string,
    get_number,
    get_string,
    json_result,
    require_string,
    schema,
)

logger = logging.getLogger(__name__)


def _scene_object_id(scene_id: str) -> str:
    return scene_id[len("scene."):] if scene_id.startswith("scene.") else scene_id


def parse_scene_entities(raw: Dict[str, Any]) -> Dict[str, SceneState]:
    """
    Convert the 'entities' argument into scene states

    Each value is either a state string ('on') or an object with 'state'
    and optional 'attributes'.
    """
    entities: Dict[str, SceneState] = {}
    for entity_id, value in raw.items():
        if isinstance(value, str):
            entities[entity_id] = SceneState(state=value)
        elif isinstance(value, dict):
            state = value.get("state")
            attributes = value.get("attributes")
            entities[entity_id] = SceneState(
                state=state if isinstance(state, str) else "",
                attributes=attributes if isinstance(attributes, dict) else {},
            )
        else:
            raise ToolInputError(f"Invalid state format for entity {entity_id}")
    return entities


def _snapshot_members(client, scene_state: Dict[str, Any]) -> Dict[str, SceneState]:
    """Current state of every entity the scene already controls"""
    members = (scene_state.get("attributes") or {}).get("entity_id") or []
    return {
        member: SceneState(state=client.get_state(member).get("state") or "")
        for member in members
        if isinstance(member, str)
    }


# ========== HANDLERS ==========

def handle_list_scenes(client, args: Dict[str, Any]) -> ToolResult:
    try:
        scenes = client.list_scenes()
    except Exception as e:
        return ToolResult.error(f"Error listing scenes: {e}")

    name_contains = (get_string(args, "name_contains") or "").lower()
    entity_contains = (get_string(args, "entity_contains") or "").lower()

    result = []
    for scene in scenes:
        info: Dict[str, Any] = {"entity_id": scene.get("entity_id", ""), "state": scene.get("state", "")}
        name = friendly_name(scene)
        if name:
            info["friendly_name"] = name
        members = [m for m in (scene.get("attributes") or {}).get("entity_id") or [] if isinstance(m, str)]
        if members:
            info["entity_ids"] = members

        if name_contains and name_contains not in info["entity_id"].lower() and name_contains not in name.lower():
            continue
        if entity_contains and not any(entity_contains in m.lower() for m in members):
            continue
        result.append(info)

    return json_result(result, f"Found {len(result)} scenes", "scenes")


def handle_get_scene(client, args: Dict[str, Any]) -> ToolResult:
    scene_id = require_string(args, "scene_id")
    try:
        scene = client.get_scene(_scene_object_id(scene_id))
    except Exception as e:
        return ToolResult.error(f"Error getting scene: {e}")
    return json_result(scene, what="scene")


def handle_create_scene(client, args: Dict[str, Any]) -> ToolResult:
    scene_id = _scene_object_id(require_string(args, "scene_id"))
    name = require_string(args, "name")
    raw_entities = get_dict(args, "entities")
    if not raw_entities:
        return ToolResult.error("entities is required and must be a non-empty object")

    config = SceneConfig(
        id=scene_id,
        name=name,
        entities=parse_scene_entities(raw_entities),
        icon=get_non_empty_string(args, "icon") or "",
    )
    try:
        client.create_scene(config)
    except Exception as e:
        return ToolResult.error(f"Error creating scene: {e}")
    return ToolResult.text(f"Scene '{scene_id}' created successfully")


def handle_update_scene(client, args: Dict[str, Any]) -> ToolResult:
    scene_id = _scene_object_id(require_string(args, "scene_id"))
    raw_entities = get_dict(args, "entities")
    try:
        current = client.get_scene(scene_id)
        # Without new entities the scene keeps its members at their present state
        entities = parse_scene_entities(raw_entities) if raw_entities else _snapshot_members(client, current)
    except ToolInputError:
        raise
    except Exception as e:
        return ToolResult.error(f"Error getting current scene: {e}")

    config = SceneConfig(
        id=scene_id,
        name=get_string(args, "name") or friendly_name(current) or scene_id,
        entities=entities,
        icon=get_string(args, "icon") or (current.get("attributes") or {}).get("icon") or "",
    )
    try:
        client.update_scene(scene_id, config)
    except Exception as e:
        return ToolResult.error(f"Error updating scene: {e}")
    return ToolResult.text(f"Scene '{scene_id}' updated successfully")


def handle_delete_scene(client, args: Dict[str, Any]) -> ToolResult:
    scene_id = _scene_object_id(require_string(args, "scene_id"))
    try:
        client.delete_scene(scene_id)
    except Exception as e:
        return ToolResult.error(f"Error deleting scene: {e}")
    return ToolResult.text(f"Scene '{scene_id}' deleted successfully")


def handle_activate_scene(client, args: Dict[str, Any]) -> ToolResult:
    scene_id = _scene_object_id(require_string(args, "scene_id"))
    try:
        client.activate_scene(scene_id, get_number(args, "transition"))
    except Exception as e:
        return ToolResult.error(f"Error activating scene: {e}")
    return ToolResult.text(f"Scene '{scene_id}' activated successfully")


# ========== REGISTRATION ==========

_SCENE_ID = {"scene_id": {"type": "string", "description": "Scene ID without the 'scene.' prefix"}}
_ENTITIES = {
    "type": "object",
    "description": "Map of entity_id to a state string or {state, attributes}",
    "additionalProperties": {
        "oneOf": [
            {"type": "string"},
            {
                "type": "object",
                "properties": {"state": {"type": "string"}, "attributes": {"type": "object"}},
            },
        ]
    },
}


def register_scene_tools(registry: ToolRegistry) -> None:
    """Register scene tools."""
    registry.register(ToolSpec(
        name="list_scenes",
        title="List Scenes",
        description="""List scenes with the entities they control.

## Parameters
• name_contains: Case-insensitive substring of the scene entity_id or name
• entity_contains: Only scenes controlling an entity whose ID contains this text

## Returns
Summary line followed by a JSON list of scenes""",
        input_schema=schema({
            "name_contains": {"type": "string"},
            "entity_contains": {"type": "string"},
        }),
        handler=handle_list_scenes,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="get_scene",
        title="Get Scene",
        description="""Get the state and attributes of a scene.

## Parameters
• scene_id: Scene ID (required)""",
        input_schema=schema(dict(_SCENE_ID), ["scene_id"]),
        handler=handle_get_scene,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="create_scene",
        title="Create Scene",
        description="""Create a scene from target entity states.

## Parameters
• scene_id: New scene ID (required)
• name: Display name (required)
• entities: Map of entity_id to state or {state, attributes} (required)
• icon: MDI icon, e.g. 'mdi:sofa'

## Related Tools
• Use `activate_scene` to apply it""",
        input_schema=schema({
            **_SCENE_ID,
            "name": {"type": "string"},
            "entities": _ENTITIES,
            "icon": {"type": "string"},
        }, ["scene_id", "name", "entities"]),
        handler=handle_create_scene,
    ))

    registry.register(ToolSpec(
        name="update_scene",
        title="Update Scene",
        description="""Update a scene's name, icon or entity states.

## Parameters
• scene_id: Scene to update (required)
• name: New display name
• icon: New icon
• entities: Replacement entity states; when omitted the current members are kept at their present state""",
        input_schema=schema({
            **_SCENE_ID,
            "name": {"type": "string"},
            "entities": _ENTITIES,
            "icon": {"type": "string"},
        }, ["scene_id"]),
        handler=handle_update_scene,
    ))

    registry.register(ToolSpec(
        name="delete_scene",
        title="Delete Scene",
        description="""Delete a scene permanently.

## Parameters
• scene_id: Scene to delete (required)""",
        input_schema=schema(dict(_SCENE_ID), ["scene_id"]),
        handler=handle_delete_scene,
    ))

    registry.register(ToolSpec(
        name="activate_scene",
        title="Activate Scene",
        description="""Activate a scene.

## Parameters
• scene_id: Scene to activate (required)
• transition: Transition time in seconds""",
        input_schema=schema({**_SCENE_ID, "transition": {"type": "number"}}, ["scene_id"]),
        handler=handle_activate_scene,
    ))
