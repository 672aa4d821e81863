"""Helper tools: list, create, update, delete and set values"""

import logging
from typing import Any, Dict, Optional

from ..registry import ToolInputError, ToolRegistry, ToolResult, ToolSpec
from .automations import generate_automation_id
from .common import (
    friendly_name,
    get_non_empty_string,
    get_number,
    get_string,
    get_string_list,
    json_result,
    require_string,
    schema,
)
from .helper_config import (
    HelperPlatform,
    build_helper_config,
    helper_config_for,
    helper_entity_id,
    parse_helper_entity_id,
)

logger = logging.getLogger(__name__)

LABELS = {
    "input_boolean": "Input boolean",
    "input_number": "Input number",
    "input_text": "Input text",
    "input_select": "Input select",
    "input_datetime": "Input datetime",
    "input_button": "Input button",
    "counter": "Counter",
    "timer": "Timer",
    "schedule": "Schedule",
}


# ========== GENERIC CREATE / DELETE ==========

def make_create_handler(platform: str):
    """Handler that creates a helper of the given platform from tool arguments"""
    label = LABELS[platform]

    def handle_create(client, args: Dict[str, Any]) -> ToolResult:
        name = require_string(args, "name")
        fallback_id = get_non_empty_string(args, "id") or generate_automation_id(name)
        config = helper_config_for(platform, name, args, fallback_id)
        if config is None:
            return ToolResult.error(f"Unsupported helper platform: {platform}")
        try:
            created = client.create_helper(config)
        except Exception as e:
            return ToolResult.error(f"Error creating {platform}: {e}")
        entity_id = helper_entity_id(platform, created, fallback_id)
        return ToolResult.text(f"{label} '{name}' created successfully as {entity_id}")

    handle_create.__name__ = f"handle_create_{platform}"
    return handle_create


def make_delete_handler(platform: str):
    """Handler that deletes a helper after checking its platform"""
    label = LABELS[platform]

    def handle_delete(client, args: Dict[str, Any]) -> ToolResult:
        entity_id = require_string(args, "entity_id")
        parse_helper_entity_id(entity_id, platform)
        try:
            client.delete_helper(entity_id)
        except Exception as e:
            return ToolResult.error(f"Error deleting {platform}: {e}")
        return ToolResult.text(f"{label} '{entity_id}' deleted successfully")

    handle_delete.__name__ = f"handle_delete_{platform}"
    return handle_delete


def _service_call(client, entity_id: str, domain: str, service: str, error_verb: str,
                  data: Optional[Dict[str, Any]] = None) -> Optional[ToolResult]:
    """Call domain.service on entity_id; returns an error result on failure, None on success"""
    service_data = {"entity_id": entity_id}
    if data:
        service_data.update(data)
    try:
        client.call_service(domain, service, service_data)
    except Exception as e:
        return ToolResult.error(f"Error {error_verb}: {e}")
    return None


# ========== HANDLERS ==========

def handle_list_helpers(client, args: Dict[str, Any]) -> ToolResult:
    try:
        helpers = client.list_helpers()
    except Exception as e:
        return ToolResult.error(f"Error listing helpers: {e}")

    platform = get_non_empty_string(args, "platform")
    if platform:
        helpers = [h for h in helpers if h.get("entity_id", "").startswith(f"{platform}.")]

    output = [
        {
            "entity_id": h.get("entity_id"),
            "platform": h.get("entity_id", "").split(".", 1)[0],
            "state": h.get("state"),
            "friendly_name": friendly_name(h),
        }
        for h in helpers
    ]
    return json_result(output, f"Found {len(output)} helpers", "helpers")


def handle_update_helper(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    if "." not in entity_id:
        raise ToolInputError("entity_id must be a helper entity (e.g., input_number.my_value)")
    platform = entity_id.split(".", 1)[0]
    object_id = parse_helper_entity_id(entity_id, platform)

    name = get_non_empty_string(args, "name")
    if name is None:
        try:
            name = friendly_name(client.get_state(entity_id)) or object_id
        except Exception as e:
            return ToolResult.error(f"Error getting current helper: {e}")

    fields = build_helper_config(platform, name, args)
    if fields is None:
        supported = ", ".join(p.value for p in HelperPlatform)
        return ToolResult.error(f"Unsupported helper platform: {platform}. Supported: {supported}")

    try:
        client.update_helper(platform, object_id, fields)
    except Exception as e:
        return ToolResult.error(f"Error updating {platform}: {e}")
    return ToolResult.text(f"Helper '{entity_id}' updated successfully")


def handle_toggle_input_boolean(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_boolean")
    error = _service_call(client, entity_id, "input_boolean", "toggle", "toggling input_boolean")
    return error or ToolResult.text(f"Input boolean '{entity_id}' toggled successfully")


def handle_set_input_number_value(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_number")
    value = get_number(args, "value")
    if value is None:
        return ToolResult.error("value is required and must be a number")
    try:
        client.set_helper_value(entity_id, value)
    except Exception as e:
        return ToolResult.error(f"Error setting input_number value: {e}")
    return ToolResult.text(f"Input number '{entity_id}' value set to {value} successfully")


def handle_set_input_text_value(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_text")
    value = get_string(args, "value")
    if value is None:
        return ToolResult.error("value is required and must be a string")
    try:
        client.set_helper_value(entity_id, value)
    except Exception as e:
        return ToolResult.error(f"Error setting input_text value: {e}")
    return ToolResult.text(f"Input text '{entity_id}' value set successfully")


def handle_select_option(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_select")
    option = require_string(args, "option")
    try:
        client.set_helper_value(entity_id, option)
    except Exception as e:
        return ToolResult.error(f"Error selecting option: {e}")
    return ToolResult.text(f"Option '{option}' selected successfully for '{entity_id}'")


def handle_set_options(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_select")
    raw = args.get("options")
    if not isinstance(raw, list) or not raw:
        return ToolResult.error("options is required and must be a non-empty array")
    options = get_string_list(args, "options")
    if not options:
        return ToolResult.error("options must contain at least one string value")
    error = _service_call(client, entity_id, "input_select", "set_options", "setting options", {"options": options})
    return error or ToolResult.text(f"Options updated successfully for '{entity_id}'")


def handle_set_input_datetime(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_datetime")
    value = {
        key: args[key]
        for key in ("datetime", "date", "time")
        if get_non_empty_string(args, key)
    }
    if not value:
        return ToolResult.error("At least one of datetime, date, or time is required")
    try:
        client.set_helper_value(entity_id, value)
    except Exception as e:
        return ToolResult.error(f"Error setting input_datetime: {e}")
    return ToolResult.text(f"Input datetime '{entity_id}' value set successfully")


def handle_press_input_button(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "input_button")
    error = _service_call(client, entity_id, "input_button", "press", "pressing input_button")
    return error or ToolResult.text(f"Input button '{entity_id}' pressed successfully")


# ========== REGISTRATION ==========

_CREATE_COMMON = {
    "name": {"type": "string", "description": "Display name"},
    "id": {"type": "string", "description": "Preferred object ID; Home Assistant derives the final ID from the name"},
    "icon": {"type": "string", "description": "MDI icon, e.g. mdi:toggle-switch"},
}

CREATE_FIELDS: Dict[str, Dict[str, Any]] = {
    "input_boolean": {"initial": {"type": "boolean"}},
    "input_number": {
        "min": {"type": "number"},
        "max": {"type": "number"},
        "step": {"type": "number"},
        "initial": {"type": "number"},
        "mode": {"type": "string", "enum": ["box", "slider"]},
        "unit_of_measurement": {"type": "string"},
    },
    "input_text": {
        "min": {"type": "integer"},
        "max": {"type": "integer"},
        "initial": {"type": "string"},
        "mode": {"type": "string", "enum": ["text", "password"]},
        "pattern": {"type": "string"},
    },
    "input_select": {
        "options": {"type": "array", "items": {"type": "string"}},
        "initial": {"type": "string"},
    },
    "input_datetime": {
        "has_date": {"type": "boolean"},
        "has_time": {"type": "boolean"},
        "initial": {"type": "string"},
    },
    "input_button": {},
}

_ENTITY_ONLY = {"entity_id": {"type": "string"}}


def _create_description(platform: str, properties: Dict[str, Any]) -> str:
    lines = [
        f"Create a {platform} helper.",
        "",
        "## Parameters",
        "• name: Display name (required)",
        "• id: Preferred object ID",
        "• icon: MDI icon",
    ]
    lines += [f"• {key}" for key in properties]
    lines += ["", "## Returns", "Confirmation with the new entity ID"]
    return "\n".join(lines)


def register_lifecycle_tools(registry: ToolRegistry, platform: str, create_properties: Dict[str, Any],
                             create_description: str) -> None:
    """Register create_<platform> and delete_<platform> for one helper platform"""
    label = LABELS[platform]
    registry.register(ToolSpec(
        name=f"create_{platform}",
        title=f"Create {label}",
        description=create_description,
        input_schema=schema({**_CREATE_COMMON, **create_properties}, ["name"]),
        handler=make_create_handler(platform),
    ))
    registry.register(ToolSpec(
        name=f"delete_{platform}",
        title=f"Delete {label}",
        description=f"""Delete a {platform} helper.

## Parameters
• entity_id: Helper to delete, e.g. '{platform}.my_helper' (required)""",
        input_schema=schema(dict(_ENTITY_ONLY), ["entity_id"]),
        handler=make_delete_handler(platform),
    ))


def register_helper_tools(registry: ToolRegistry) -> None:
    """Register input helper tools."""
    registry.register(ToolSpec(
        name="list_helpers",
        title="List Helpers",
        description="""List helpers (input_boolean, input_number, input_text, input_select, input_datetime, input_button, counter).

## Parameters
• platform: Only helpers of this platform

## Returns
Summary line followed by a JSON list of helpers""",
        input_schema=schema({"platform": {"type": "string"}}),
        handler=handle_list_helpers,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="update_helper",
        title="Update Helper",
        description="""Update the configuration of an existing helper.

## Parameters
• entity_id: Helper to update (required)
• name: New display name (default: current name)
• Any platform field accepted by the matching create_* tool

## Related Tools
• Use `list_helpers` to find helpers""",
        input_schema={
            **schema({"entity_id": {"type": "string"}, "name": {"type": "string"}}, ["entity_id"]),
            "additionalProperties": True,
        },
        handler=handle_update_helper,
    ))

    for platform, properties in CREATE_FIELDS.items():
        register_lifecycle_tools(registry, platform, properties, _create_description(platform, properties))

    registry.register(ToolSpec(
        name="toggle_input_boolean",
        title="Toggle Input Boolean",
        description="""Toggle an input_boolean helper.

## Parameters
• entity_id: input_boolean entity (required)""",
        input_schema=schema(dict(_ENTITY_ONLY), ["entity_id"]),
        handler=handle_toggle_input_boolean,
    ))

    registry.register(ToolSpec(
        name="set_input_number_value",
        title="Set Input Number",
        description="""Set the value of an input_number helper.

## Parameters
• entity_id: input_number entity (required)
• value: New value (required)""",
        input_schema=schema({**_ENTITY_ONLY, "value": {"type": "number"}}, ["entity_id", "value"]),
        handler=handle_set_input_number_value,
    ))

    registry.register(ToolSpec(
        name="set_input_text_value",
        title="Set Input Text",
        description="""Set the value of an input_text helper.

## Parameters
• entity_id: input_text entity (required)
• value: New text (required)""",
        input_schema=schema({**_ENTITY_ONLY, "value": {"type": "string"}}, ["entity_id", "value"]),
        handler=handle_set_input_text_value,
    ))

    registry.register(ToolSpec(
        name="select_option",
        title="Select Option",
        description="""Select an option of an input_select helper.

## Parameters
• entity_id: input_select entity (required)
• option: Option to select (required)""",
        input_schema=schema({**_ENTITY_ONLY, "option": {"type": "string"}}, ["entity_id", "option"]),
        handler=handle_select_option,
    ))

    registry.register(ToolSpec(
        name="set_options",
        title="Set Select Options",
        description="""Replace the options of an input_select helper.

## Parameters
• entity_id: input_select entity (required)
• options: New list of options (required)""",
        input_schema=schema({
            **_ENTITY_ONLY,
            "options": {"type": "array", "items": {"type": "string"}},
        }, ["entity_id", "options"]),
        handler=handle_set_options,
    ))

    registry.register(ToolSpec(
        name="set_input_datetime",
        title="Set Input Datetime",
        description="""Set the value of an input_datetime helper.

## Parameters
• entity_id: input_datetime entity (required)
• datetime: 'YYYY-MM-DD HH:MM:SS'
• date: 'YYYY-MM-DD'
• time: 'HH:MM:SS'
At least one of datetime, date or time is required.""",
        input_schema=schema({
            **_ENTITY_ONLY,
            "datetime": {"type": "string"},
            "date": {"type": "string"},
            "time": {"type": "string"},
        }, ["entity_id"]),
        handler=handle_set_input_datetime,
    ))

    registry.register(ToolSpec(
        name="press_input_button",
        title="Press Input Button",
        description="""Press an input_button helper.

## Parameters
• entity_id: input_button entity (required)""",
        input_schema=schema(dict(_ENTITY_ONLY), ["entity_id"]),
        handler=handle_press_input_button,
    ))
