"""Timer helper tools"""

from typing import Any, Dict

from ..registry import ToolRegistry, ToolResult, ToolSpec
from .common import get_non_empty_string, require_string, schema
from .helper_config import parse_helper_entity_id
from .helpers import register_lifecycle_tools

# tool name -> (service, past tense, error verb)
TIMER_ACTIONS = {
    "start_timer": ("start", "started", "starting"),
    "pause_timer": ("pause", "paused", "pausing"),
    "cancel_timer": ("cancel", "canceled", "canceling"),
    "finish_timer": ("finish", "finished", "finishing"),
}


def _timer_entity(args: Dict[str, Any]) -> str:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "timer")
    return entity_id


def make_timer_action_handler(service: str, done: str, verb: str):
    def handle_timer_action(client, args: Dict[str, Any]) -> ToolResult:
        entity_id = _timer_entity(args)
        data: Dict[str, Any] = {"entity_id": entity_id}
        # Only start accepts an override duration
        duration = get_non_empty_string(args, "duration") if service == "start" else None
        if duration:
            data["duration"] = duration
        try:
            client.call_service("timer", service, data)
        except Exception as e:
            return ToolResult.error(f"Error {verb} timer: {e}")
        return ToolResult.text(f"Timer '{entity_id}' {done} successfully")

    handle_timer_action.__name__ = f"handle_{service}_timer"
    return handle_timer_action


def handle_change_timer(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = _timer_entity(args)
    duration = require_string(args, "duration")
    try:
        client.call_service("timer", "change", {"entity_id": entity_id, "duration": duration})
    except Exception as e:
        return ToolResult.error(f"Error changing timer: {e}")
    return ToolResult.text(f"Timer '{entity_id}' duration changed by {duration} successfully")


def register_timer_tools(registry: ToolRegistry) -> None:
    """Register timer tools."""
    register_lifecycle_tools(registry, "timer", {
        "duration": {"type": "string", "description": "Default duration, e.g. '00:05:00'"},
        "restore": {"type": "boolean", "description": "Restore the timer after a restart"},
    }, """Create a timer helper.

## Parameters
• name: Display name (required)
• id: Preferred object ID
• duration: Default duration as HH:MM:SS
• restore: Restore state after Home Assistant restarts
• icon: MDI icon

## Related Tools
• Use `start_timer` to run it""")

    for name, (service, done, verb) in TIMER_ACTIONS.items():
        properties: Dict[str, Any] = {"entity_id": {"type": "string"}}
        duration_line = ""
        if service == "start":
            properties["duration"] = {"type": "string"}
            duration_line = "\n• duration: Override duration as HH:MM:SS"
        registry.register(ToolSpec(
            name=name,
            title=f"{service.capitalize()} Timer",
            description=f"""{service.capitalize()} a timer.

## Parameters
• entity_id: timer entity, e.g. 'timer.my_timer' (required){duration_line}""",
            input_schema=schema(properties, ["entity_id"]),
            handler=make_timer_action_handler(service, done, verb),
        ))

    registry.register(ToolSpec(
        name="change_timer",
        title="Change Timer",
        description="""Add to or subtract from the remaining time of a running timer.

## Parameters
• entity_id: timer entity (required)
• duration: Amount to change by, e.g. '00:01:00' or '-00:00:30' (required)""",
        input_schema=schema({
            "entity_id": {"type": "string"},
            "duration": {"type": "string"},
        }, ["entity_id", "duration"]),
        handler=handle_change_timer,
    ))
