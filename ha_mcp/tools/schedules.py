"""Schedule helper tools"""

import logging
from typing import Any, Dict, List

from ..registry import ToolRegistry, ToolResult, ToolSpec
from .common import json_result, require_string, schema
from .helper_config import WEEKDAYS, parse_helper_entity_id
from .helpers import register_lifecycle_tools

logger = logging.getLogger(__name__)


def _time_blocks(raw: Any) -> List[Dict[str, str]]:
    blocks = []
    for block in raw if isinstance(raw, list) else []:
        if isinstance(block, dict):
            blocks.append({"from": str(block.get("from") or ""), "to": str(block.get("to") or "")})
    return blocks


def handle_get_schedule_details(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "schedule")

    try:
        state = client.get_state(entity_id)
    except Exception as e:
        return ToolResult.error(f"Error getting schedule state: {e}")

    try:
        config = client.get_schedule_config(entity_id)
    except Exception as e:
        # YAML schedules have no stored config; report state only
        logger.info(f"No stored configuration for {entity_id}: {e}")
        config = {}

    attributes = state.get("attributes") or {}
    details: Dict[str, Any] = {"entity_id": state.get("entity_id", entity_id), "state": state.get("state")}
    for key in ("friendly_name", "icon", "next_event"):
        if attributes.get(key):
            details[key] = attributes[key]
    for day in WEEKDAYS:
        blocks = _time_blocks(config.get(day))
        if blocks:
            details[day] = blocks

    return json_result(details, what="schedule")


def handle_reload_schedule(client, args: Dict[str, Any]) -> ToolResult:
    try:
        client.call_service("schedule", "reload", {})
    except Exception as e:
        return ToolResult.error(f"Error reloading schedules: {e}")
    return ToolResult.text("Schedules reloaded successfully")


_TIME_RANGE = {
    "type": "object",
    "properties": {
        "from": {"type": "string", "description": "Start time as HH:MM:SS"},
        "to": {"type": "string", "description": "End time as HH:MM:SS"},
    },
    "required": ["from", "to"],
}


def register_schedule_tools(registry: ToolRegistry) -> None:
    """Register schedule tools."""
    registry.register(ToolSpec(
        name="get_schedule_details",
        title="Get Schedule Details",
        description="""Get a schedule helper with its time blocks for each day of the week.

## Parameters
• entity_id: schedule entity, e.g. 'schedule.work_hours' (required)

## Returns
State, next event and per-day {from, to} blocks""",
        input_schema=schema({"entity_id": {"type": "string"}}, ["entity_id"]),
        handler=handle_get_schedule_details,
        read_only=True,
    ))

    register_lifecycle_tools(
        registry,
        "schedule",
        {day: {"type": "array", "items": _TIME_RANGE} for day in WEEKDAYS},
        """Create a schedule helper with weekly time blocks.

## Parameters
• name: Display name (required)
• id: Preferred object ID
• monday .. sunday: Lists of {from, to} blocks in HH:MM:SS
• icon: MDI icon, e.g. mdi:calendar-clock

## Use Cases
• Time-window conditions such as work hours""",
    )

    registry.register(ToolSpec(
        name="reload_schedule",
        title="Reload Schedules",
        description="""Reload schedule helpers from configuration.""",
        input_schema=schema(),
        handler=handle_reload_schedule,
    ))
