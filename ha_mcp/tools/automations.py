"""Automation tools: list, get, create, update, delete and toggle"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..registry import ToolRegistry, ToolResult, ToolSpec
from ..services.homeassistant import Automation, AutomationConfig
from .common import (
    found_summary,
    get_bool,
    get_list,
    get_non_empty_string,
    get_string,
    json_result,
    require_bool,
    require_string,
    schema,
)
from .search import automation_references_entity

logger = logging.getLogger(__name__)

AUTOMATION_PREFIX = "automation."


def generate_automation_id(alias: str) -> str:
    """
    Turn a free-text alias into a lowercase underscore slug

    Letters and digits are kept (lower-cased), runs of whitespace, hyphens
    and underscores become one underscore, everything else is dropped.
    'Turn On Living Room Lights' -> 'turn_on_living_room_lights'
    """
    chars: List[str] = []
    for char in alias:
        if char.isspace() or char in "-_":
            if chars and chars[-1] != "_":
                chars.append("_")
            continue
        for lowered in char.lower():
            if lowered.isalpha() or lowered.isdecimal():
                chars.append(lowered)
    return "".join(chars).rstrip("_")


def _object_id(automation_id: str) -> str:
    if automation_id.startswith(AUTOMATION_PREFIX):
        return automation_id[len(AUTOMATION_PREFIX):]
    return automation_id


def _fetch_configs(client, automations: List[Automation]) -> Tuple[Dict[str, AutomationConfig], List[str]]:
    """Fetch each automation's config; returns (configs by entity_id, entity_ids that failed)"""
    configs: Dict[str, AutomationConfig] = {}
    skipped: List[str] = []
    for automation in automations:
        try:
            full = client.get_automation(_object_id(automation.entity_id))
        except Exception as e:
            logger.warning(f"Skipping {automation.entity_id}: could not read configuration: {e}")
            skipped.append(automation.entity_id)
            continue
        if full.config is not None:
            configs[automation.entity_id] = full.config
    return configs, skipped


def find_automation_by_id(client, search_id: str) -> Automation:
    """
    Locate an automation by entity_id or by the id stored in its config

    Raises:
        LookupError: nothing matched
    """
    automations = client.list_automations()

    if search_id.startswith(AUTOMATION_PREFIX):
        for automation in automations:
            if automation.entity_id == search_id:
                return client.get_automation(_object_id(automation.entity_id))

    for automation in automations:
        try:
            full = client.get_automation(_object_id(automation.entity_id))
        except Exception as e:
            logger.debug(f"Could not read {automation.entity_id} while searching for {search_id}: {e}")
            continue
        if full.config is not None and full.config.id == search_id:
            return full

    raise LookupError(
        f"automation not found with ID: {search_id} (tried as automation_id, entity_id, and config.id)"
    )


def _resolve_automation(client, automation_id: str) -> Automation:
    try:
        return client.get_automation(_object_id(automation_id))
    except Exception as e:
        logger.debug(f"Direct lookup of {automation_id} failed ({e}), searching all automations")
        return find_automation_by_id(client, automation_id)


# ========== HANDLERS ==========

def handle_list_automations(client, args: Dict[str, Any]) -> ToolResult:
    try:
        automations = client.list_automations()
    except Exception as e:
        return ToolResult.error(f"Error listing automations: {e}")

    state_filter = get_non_empty_string(args, "state")
    alias_filter = get_non_empty_string(args, "alias")
    entity_filter = get_non_empty_string(args, "entity_id")
    verbose = get_bool(args, "verbose") or False

    if state_filter:
        automations = [a for a in automations if a.state == state_filter]
    if alias_filter:
        needle = alias_filter.lower()
        automations = [a for a in automations if needle in a.friendly_name.lower()]

    configs: Dict[str, AutomationConfig] = {}
    skipped: List[str] = []
    if entity_filter or verbose:
        configs, skipped = _fetch_configs(client, automations)
    if entity_filter:
        automations = [
            a for a in automations
            if a.entity_id in configs and automation_references_entity(configs[a.entity_id], entity_filter)
        ]

    if verbose:
        output = []
        for automation in automations:
            entry = {
                "entity_id": automation.entity_id,
                "state": automation.state,
                "friendly_name": automation.friendly_name,
                "last_triggered": automation.last_triggered,
            }
            if automation.entity_id in configs:
                entry["config"] = configs[automation.entity_id].to_dict()
            output.append(entry)
    else:
        output = [
            {
                "entity_id": a.entity_id,
                "state": a.state,
                "alias": a.friendly_name,
                "last_triggered": a.last_triggered,
            }
            for a in automations
        ]

    # Only an entity_id filter can drop automations because of a failed fetch
    skipped_count = len(skipped) if entity_filter else 0
    summary = found_summary(len(output), "automations", verbose, skipped_count)
    return json_result(output, summary, "automations")


def handle_get_automation(client, args: Dict[str, Any]) -> ToolResult:
    automation_id = require_string(args, "automation_id")
    try:
        automation = _resolve_automation(client, automation_id)
    except Exception as e:
        return ToolResult.error(f"Error getting automation: {e}")
    return json_result(automation.to_dict(), what="automation")


def handle_create_automation(client, args: Dict[str, Any]) -> ToolResult:
    alias = require_string(args, "alias")
    triggers = get_list(args, "trigger")
    if not triggers:
        return ToolResult.error("trigger is required")
    actions = get_list(args, "action")
    if not actions:
        return ToolResult.error("action is required")

    config = AutomationConfig(
        id=generate_automation_id(alias),
        alias=alias,
        description=get_string(args, "description") or "",
        triggers=triggers,
        conditions=get_list(args, "condition") or [],
        actions=actions,
        mode=get_non_empty_string(args, "mode") or "",
    )
    if not config.id:
        return ToolResult.error("alias must contain at least one letter or digit")

    try:
        client.create_automation(config)
    except Exception as e:
        return ToolResult.error(f"Error creating automation: {e}")
    return ToolResult.text(f"Automation '{alias}' created successfully with ID '{config.id}'")


def handle_update_automation(client, args: Dict[str, Any]) -> ToolResult:
    automation_id = require_string(args, "automation_id")
    try:
        current = _resolve_automation(client, automation_id)
    except Exception as e:
        return ToolResult.error(f"Error getting current automation: {e}")

    config = current.config or AutomationConfig(id=_object_id(automation_id))

    alias = get_non_empty_string(args, "alias")
    if alias:
        config.alias = alias
    description = get_string(args, "description")
    if description is not None:
        config.description = description
    triggers = get_list(args, "trigger")
    if triggers:
        config.triggers = triggers
    conditions = get_list(args, "condition")
    if conditions is not None:
        config.conditions = conditions
    actions = get_list(args, "action")
    if actions:
        config.actions = actions
    mode = get_non_empty_string(args, "mode")
    if mode:
        config.mode = mode

    config_id = config.id or _object_id(automation_id)
    try:
        client.update_automation(config_id, config)
    except Exception as e:
        return ToolResult.error(f"Error updating automation: {e}")
    return ToolResult.text(f"Automation '{automation_id}' updated successfully")


def handle_delete_automation(client, args: Dict[str, Any]) -> ToolResult:
    automation_id = require_string(args, "automation_id")
    config_id = _config_id_for(client, automation_id)
    try:
        client.delete_automation(config_id)
    except Exception as e:
        return ToolResult.error(f"Error deleting automation: {e}")
    return ToolResult.text(f"Automation '{automation_id}' deleted successfully")


def _config_id_for(client, automation_id: str) -> str:
    """Config API id for an automation, falling back to its object ID"""
    try:
        automation = client.get_automation(_object_id(automation_id))
    except Exception as e:
        logger.debug(f"Could not read {automation_id} config, using object ID: {e}")
        return _object_id(automation_id)
    if automation.config is not None and automation.config.id:
        return automation.config.id
    return _object_id(automation_id)


def handle_toggle_automation(client, args: Dict[str, Any]) -> ToolResult:
    automation_id = require_string(args, "automation_id")
    enabled = require_bool(args, "enabled")
    entity_id = automation_id if automation_id.startswith(AUTOMATION_PREFIX) else f"{AUTOMATION_PREFIX}{automation_id}"
    try:
        client.toggle_automation(entity_id, enabled)
    except Exception as e:
        return ToolResult.error(f"Error toggling automation: {e}")
    action = "enabled" if enabled else "disabled"
    return ToolResult.text(f"Automation '{automation_id}' {action} successfully")


# ========== REGISTRATION ==========

_BLOCK_LIST = {"type": "array", "items": {"type": "object"}}


def register_automation_tools(registry: ToolRegistry) -> None:
    """Register automation tools."""
    registry.register(ToolSpec(
        name="list_automations",
        title="List Automations",
        description="""List Home Assistant automations with optional filters.

## Parameters
• state: Only automations in this state ('on' or 'off')
• alias: Case-insensitive substring of the automation name
• entity_id: Only automations whose triggers, conditions or actions reference this entity
• verbose: Include full configuration (default: false)

## Returns
Summary line followed by a JSON list of automations

## Related Tools
• Use `get_automation` for one automation's full configuration
• Use `get_entity_dependencies` to see how an entity is used""",
        input_schema=schema({
            "state": {"type": "string", "enum": ["on", "off"]},
            "alias": {"type": "string"},
            "entity_id": {"type": "string"},
            "verbose": {"type": "boolean"},
        }),
        handler=handle_list_automations,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="get_automation",
        title="Get Automation",
        description="""Get an automation and its full configuration.

## Parameters
• automation_id: Entity ID (automation.x), object ID or config id (required)

## Returns
JSON with entity_id, state and config (triggers, conditions, actions, mode)""",
        input_schema=schema({"automation_id": {"type": "string"}}, ["automation_id"]),
        handler=handle_get_automation,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="create_automation",
        title="Create Automation",
        description="""Create a new automation. The ID is derived from the alias.

## Parameters
• alias: Automation name (required)
• trigger: List of trigger objects (required)
• action: List of action objects (required)
• condition: List of condition objects
• description: Free-text description
• mode: single, restart, queued or parallel

## Returns
Confirmation with the generated automation ID""",
        input_schema=schema({
            "alias": {"type": "string"},
            "description": {"type": "string"},
            "trigger": _BLOCK_LIST,
            "condition": _BLOCK_LIST,
            "action": _BLOCK_LIST,
            "mode": {"type": "string", "enum": ["single", "restart", "queued", "parallel"]},
        }, ["alias", "trigger", "action"]),
        handler=handle_create_automation,
    ))

    registry.register(ToolSpec(
        name="update_automation",
        title="Update Automation",
        description="""Update an existing automation. Only the fields provided are changed.

## Parameters
• automation_id: Automation to update (required)
• alias, description, trigger, condition, action, mode: New values

## Related Tools
• Use `get_automation` to read the current configuration first""",
        input_schema=schema({
            "automation_id": {"type": "string"},
            "alias": {"type": "string"},
            "description": {"type": "string"},
            "trigger": _BLOCK_LIST,
            "condition": _BLOCK_LIST,
            "action": _BLOCK_LIST,
            "mode": {"type": "string", "enum": ["single", "restart", "queued", "parallel"]},
        }, ["automation_id"]),
        handler=handle_update_automation,
    ))

    registry.register(ToolSpec(
        name="delete_automation",
        title="Delete Automation",
        description="""Delete an automation permanently.

## Parameters
• automation_id: Automation to delete (required)""",
        input_schema=schema({"automation_id": {"type": "string"}}, ["automation_id"]),
        handler=handle_delete_automation,
    ))

    registry.register(ToolSpec(
        name="toggle_automation",
        title="Enable/Disable Automation",
        description="""Enable or disable an automation.

## Parameters
• automation_id: Automation to change (required)
• enabled: true to enable, false to disable (required)""",
        input_schema=schema({
            "automation_id": {"type": "string"},
            "enabled": {"type": "boolean"},
        }, ["automation_id", "enabled"]),
        handler=handle_toggle_automation,
    ))
