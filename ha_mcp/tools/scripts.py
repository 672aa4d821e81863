"""Script tools: list, get, create, update, delete, execute, and generic service calls"""

import logging
from typing import Any, Dict

from ..registry import ToolInputError, ToolRegistry, ToolResult, ToolSpec
from ..services.homeassistant import ScriptConfig
from .automations import generate_automation_id
from .common import (
    friendly_name,
    get_dict,
    get_list,
    get_non_empty_string,
    get_string,
    json_result,
    require_string,
    schema,
)

logger = logging.getLogger(__name__)

SCRIPT_PREFIX = "script."
SCRIPT_MODES = ["single", "restart", "queued", "parallel"]


def _script_id(args: Dict[str, Any]) -> str:
    """Object ID from the script_id argument, with or without the 'script.' prefix"""
    script_id = require_string(args, "script_id")
    if script_id.startswith(SCRIPT_PREFIX):
        script_id = script_id[len(SCRIPT_PREFIX):]
    if not script_id:
        raise ToolInputError("script_id is required")
    return script_id


def _apply_optional_fields(config: ScriptConfig, args: Dict[str, Any]) -> None:
    """Copy description, mode, icon and fields from args onto config when given"""
    for key in ("description", "icon"):
        value = get_string(args, key)
        if value is not None:
            setattr(config, key, value)
    mode = get_non_empty_string(args, "mode")
    if mode:
        if mode not in SCRIPT_MODES:
            raise ToolInputError(f"mode must be one of: {', '.join(SCRIPT_MODES)}")
        config.mode = mode
    fields = get_dict(args, "fields")
    if fields is not None:
        config.fields = fields


# ========== HANDLERS ==========

def handle_list_scripts(client, args: Dict[str, Any]) -> ToolResult:
    try:
        scripts = client.list_scripts()
    except Exception as e:
        return ToolResult.error(f"Error listing scripts: {e}")

    output = []
    for script in scripts:
        info: Dict[str, Any] = {"entity_id": script.get("entity_id", ""), "state": script.get("state", "")}
        name = friendly_name(script)
        if name:
            info["friendly_name"] = name
        last_triggered = (script.get("attributes") or {}).get("last_triggered")
        if last_triggered:
            info["last_triggered"] = last_triggered
        output.append(info)
    return json_result(output, f"Found {len(output)} scripts", "scripts")


def handle_get_script(client, args: Dict[str, Any]) -> ToolResult:
    script_id = _script_id(args)
    entity_id = f"{SCRIPT_PREFIX}{script_id}"
    try:
        state = client.get_state(entity_id)
    except Exception as e:
        return ToolResult.error(f"Error getting script: {e}")

    result: Dict[str, Any] = {
        "entity_id": entity_id,
        "state": state.get("state"),
        "friendly_name": friendly_name(state),
        "attributes": state.get("attributes") or {},
    }
    # YAML-only scripts have no stored configuration
    try:
        result["config"] = client.get_script_config(script_id).to_dict()
    except Exception as e:
        logger.debug(f"No stored configuration for {entity_id}: {e}")
        result["config_error"] = str(e)
    return json_result(result, what="script")


def handle_create_script(client, args: Dict[str, Any]) -> ToolResult:
    script_id = _script_id(args)
    if generate_automation_id(script_id) != script_id:
        raise ToolInputError("script_id must contain only lowercase letters, digits and underscores")
    alias = require_string(args, "alias")
    sequence = get_list(args, "sequence")
    if not sequence:
        raise ToolInputError("sequence is required and must be a non-empty array")

    config = ScriptConfig(alias=alias, sequence=sequence)
    _apply_optional_fields(config, args)

    try:
        client.save_script(script_id, config)
    except Exception as e:
        return ToolResult.error(f"Error creating script: {e}")
    return ToolResult.text(f"Script '{script_id}' created successfully")


def handle_update_script(client, args: Dict[str, Any]) -> ToolResult:
    script_id = _script_id(args)
    try:
        config = client.get_script_config(script_id)
    except Exception as e:
        return ToolResult.error(f"Error getting current script: {e}")

    alias = get_non_empty_string(args, "alias")
    if alias:
        config.alias = alias
    if "sequence" in args:
        sequence = get_list(args, "sequence")
        if not sequence:
            raise ToolInputError("sequence must be a non-empty array")
        config.sequence = sequence
    _apply_optional_fields(config, args)

    try:
        client.save_script(script_id, config)
    except Exception as e:
        return ToolResult.error(f"Error updating script: {e}")
    return ToolResult.text(f"Script '{script_id}' updated successfully")


def handle_delete_script(client, args: Dict[str, Any]) -> ToolResult:
    script_id = _script_id(args)
    try:
        client.delete_script(script_id)
    except Exception as e:
        return ToolResult.error(f"Error deleting script: {e}")
    return ToolResult.text(f"Script '{script_id}' deleted successfully")


def handle_execute_script(client, args: Dict[str, Any]) -> ToolResult:
    script_id = _script_id(args)
    try:
        client.run_script(script_id, get_dict(args, "variables"))
    except Exception as e:
        return ToolResult.error(f"Error executing script: {e}")
    return ToolResult.text(f"Script '{script_id}' executed successfully")


def handle_call_service(client, args: Dict[str, Any]) -> ToolResult:
    domain = require_string(args, "domain")
    service = require_string(args, "service")
    data = get_dict(args, "data") or {}

    try:
        changed = client.call_service(domain, service, data)
    except Exception as e:
        return ToolResult.error(f"Error calling service: {e}")

    entity_ids = [
        state.get("entity_id") for state in (changed if isinstance(changed, list) else [])
        if isinstance(state, dict) and state.get("entity_id")
    ]
    result: Dict[str, Any] = {
        "success": True,
        "service": f"{domain}.{service}",
        "affected_entities": len(entity_ids),
    }
    if entity_ids:
        result["entity_ids"] = entity_ids
    return json_result(result, what="service response")


# ========== REGISTRATION ==========

_CONFIG_PROPERTIES = {
    "alias": {"type": "string"},
    "description": {"type": "string"},
    "mode": {"type": "string", "enum": SCRIPT_MODES},
    "icon": {"type": "string"},
    "sequence": {"type": "array", "items": {"type": "object"}},
    "fields": {"type": "object"},
}


def register_script_tools(registry: ToolRegistry) -> None:
    """Register script and service tools."""
    registry.register(ToolSpec(
        name="list_scripts",
        title="List Scripts",
        description="""List all scripts.

## Returns
Summary line followed by a JSON list of entity_id, state, friendly_name and last_triggered

## Related Tools
• Use `get_script` for the full configuration""",
        input_schema=schema(),
        handler=handle_list_scripts,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="get_script",
        title="Get Script",
        description="""Get the state and stored configuration of a script.

## Parameters
• script_id: Script ID, with or without the 'script.' prefix (required)""",
        input_schema=schema({"script_id": {"type": "string"}}, ["script_id"]),
        handler=handle_get_script,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="create_script",
        title="Create Script",
        description="""Create a new script.

## Parameters
• script_id: Unique ID, lowercase letters, digits and underscores (required)
• alias: Display name (required)
• sequence: Actions to run, in order (required)
• description: What the script does
• mode: single, restart, queued or parallel
• icon: MDI icon, e.g. mdi:script
• fields: Input fields accepted by the script

## Related Tools
• Use `execute_script` to run it""",
        input_schema=schema({"script_id": {"type": "string"}, **_CONFIG_PROPERTIES},
                            ["script_id", "alias", "sequence"]),
        handler=handle_create_script,
    ))

    registry.register(ToolSpec(
        name="update_script",
        title="Update Script",
        description="""Update an existing script. Fields not given keep their current values.

## Parameters
• script_id: Script to update (required)
• alias, description, mode, icon, sequence, fields: New values""",
        input_schema=schema({"script_id": {"type": "string"}, **_CONFIG_PROPERTIES}, ["script_id"]),
        handler=handle_update_script,
    ))

    registry.register(ToolSpec(
        name="delete_script",
        title="Delete Script",
        description="""Delete a script.

## Parameters
• script_id: Script to delete (required)""",
        input_schema=schema({"script_id": {"type": "string"}}, ["script_id"]),
        handler=handle_delete_script,
    ))

    registry.register(ToolSpec(
        name="execute_script",
        title="Execute Script",
        description="""Run a script.

## Parameters
• script_id: Script to run (required)
• variables: Variables passed to the script""",
        input_schema=schema({
            "script_id": {"type": "string"},
            "variables": {"type": "object"},
        }, ["script_id"]),
        handler=handle_execute_script,
    ))

    registry.register(ToolSpec(
        name="call_service",
        title="Call Service",
        description="""Call any Home Assistant service.

## Parameters
• domain: Service domain, e.g. 'light' (required)
• service: Service name, e.g. 'turn_on' (required)
• data: Service data including entity_id and other parameters

## Returns
JSON with success, affected_entities and the changed entity IDs

## Related Tools
• Use `get_services_for_target` to find services an entity supports""",
        input_schema=schema({
            "domain": {"type": "string"},
            "service": {"type": "string"},
            "data": {"type": "object"},
        }, ["domain", "service"]),
        handler=handle_call_service,
    ))
