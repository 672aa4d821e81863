"""Counter helper tools"""

from typing import Any, Dict

from ..registry import ToolRegistry, ToolResult, ToolSpec
from .common import require_number, require_string, schema
from .helper_config import parse_helper_entity_id
from .helpers import register_lifecycle_tools

# tool name -> (service, past tense, error verb)
COUNTER_ACTIONS = {
    "increment_counter": ("increment", "incremented", "incrementing"),
    "decrement_counter": ("decrement", "decremented", "decrementing"),
    "reset_counter": ("reset", "reset", "resetting"),
}


def _counter_entity(args: Dict[str, Any]) -> str:
    entity_id = require_string(args, "entity_id")
    parse_helper_entity_id(entity_id, "counter")
    return entity_id


def make_counter_action_handler(service: str, done: str, verb: str):
    def handle_counter_action(client, args: Dict[str, Any]) -> ToolResult:
        entity_id = _counter_entity(args)
        try:
            client.call_service("counter", service, {"entity_id": entity_id})
        except Exception as e:
            return ToolResult.error(f"Error {verb} counter: {e}")
        return ToolResult.text(f"Counter '{entity_id}' {done} successfully")

    handle_counter_action.__name__ = f"handle_{service}_counter"
    return handle_counter_action


def handle_set_counter_value(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = _counter_entity(args)
    # Counters hold whole numbers
    value = int(require_number(args, "value"))
    try:
        client.call_service("counter", "set_value", {"entity_id": entity_id, "value": value})
    except Exception as e:
        return ToolResult.error(f"Error setting counter value: {e}")
    return ToolResult.text(f"Counter '{entity_id}' set to {value} successfully")


def register_counter_tools(registry: ToolRegistry) -> None:
    """Register counter tools."""
    register_lifecycle_tools(registry, "counter", {
        "initial": {"type": "integer", "description": "Value when created or reset (default: 0)"},
        "step": {"type": "integer", "description": "Increment/decrement step (default: 1)"},
        "minimum": {"type": "integer", "description": "Lowest allowed value"},
        "maximum": {"type": "integer", "description": "Highest allowed value"},
        "restore": {"type": "boolean", "description": "Restore the value after a restart"},
    }, """Create a counter helper. A counter can be incremented, decremented and reset.

## Parameters
• name: Display name (required)
• id: Preferred object ID
• initial: Value when created or reset (default: 0)
• step: Step for increment/decrement (default: 1)
• minimum: Lowest allowed value (no limit if not set)
• maximum: Highest allowed value (no limit if not set)
• restore: Restore the value after Home Assistant restarts
• icon: MDI icon, e.g. mdi:counter

## Related Tools
• Use `increment_counter` and `set_counter_value` to change it""")

    for name, (service, done, verb) in COUNTER_ACTIONS.items():
        what = "to its initial value" if service == "reset" else "by its step value"
        registry.register(ToolSpec(
            name=name,
            title=f"{service.capitalize()} Counter",
            description=f"""{service.capitalize()} a counter {what}.

## Parameters
• entity_id: counter entity, e.g. 'counter.my_counter' (required)""",
            input_schema=schema({"entity_id": {"type": "string"}}, ["entity_id"]),
            handler=make_counter_action_handler(service, done, verb),
        ))

    registry.register(ToolSpec(
        name="set_counter_value",
        title="Set Counter Value",
        description="""Set a counter to a specific value.

## Parameters
• entity_id: counter entity (required)
• value: New value; fractions are truncated (required)""",
        input_schema=schema({
            "entity_id": {"type": "string"},
            "value": {"type": "integer"},
        }, ["entity_id", "value"]),
        handler=handle_set_counter_value,
    ))
