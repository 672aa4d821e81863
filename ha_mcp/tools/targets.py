"""Target tools: what can trigger, test or act on a set of entities, devices, areas or labels"""

from typing import Any, Dict, Tuple

from ..registry import ToolInputError, ToolRegistry, ToolResult, ToolSpec
from ..services.homeassistant import Target
from .common import get_bool, get_string_list, json_result, schema

TARGET_KEYS = ("entity_id", "device_id", "area_id", "label_id")


def parse_target(args: Dict[str, Any]) -> Tuple[Target, bool]:
    """
    Read the target selector and expand_group flag

    Raises:
        ToolInputError: none of entity_id, device_id, area_id, label_id given
    """
    target = Target(**{key: get_string_list(args, key) for key in TARGET_KEYS})
    if target.is_empty():
        raise ToolInputError(
            "Invalid parameters: at least one of entity_id, device_id, area_id, or label_id is required"
        )
    return target, get_bool(args, "expand_group") or False


def make_target_handler(method_name: str, what: str):
    """Handler that runs one client target query and returns its JSON"""
    def handle_target_query(client, args: Dict[str, Any]) -> ToolResult:
        target, expand_group = parse_target(args)
        try:
            result = getattr(client, method_name)(target, expand_group)
        except Exception as e:
            return ToolResult.error(f"Error {what}: {e}")
        if hasattr(result, "to_dict"):
            result = result.to_dict()
        return json_result(result)

    handle_target_query.__name__ = f"handle_{method_name}"
    return handle_target_query


TARGET_TOOLS = [
    (
        "get_triggers_for_target",
        "Get Triggers For Target",
        "getting triggers for target",
        "List the trigger types that can be used with a target.",
    ),
    (
        "get_conditions_for_target",
        "Get Conditions For Target",
        "getting conditions for target",
        "List the condition types that can be used with a target.",
    ),
    (
        "get_services_for_target",
        "Get Services For Target",
        "getting services for target",
        "List the services (actions) that can be called on a target.",
    ),
    (
        "extract_from_target",
        "Extract From Target",
        "extracting from target",
        "Resolve a target to the entities, devices and areas it refers to, and report missing references.",
    ),
]

_LIST = {"type": "array", "items": {"type": "string"}}


def register_target_tools(registry: ToolRegistry) -> None:
    """Register target tools."""
    for name, title, what, summary in TARGET_TOOLS:
        registry.register(ToolSpec(
            name=name,
            title=title,
            description=f"""{summary}

## Parameters
• entity_id: Entity IDs
• device_id: Device IDs
• area_id: Area IDs
• label_id: Label IDs
• expand_group: Expand group entities to their members (default: false)
At least one of entity_id, device_id, area_id or label_id is required.""",
            input_schema=schema({
                "entity_id": _LIST,
                "device_id": _LIST,
                "area_id": _LIST,
                "label_id": _LIST,
                "expand_group": {"type": "boolean"},
            }),
            handler=make_target_handler(name, what),
            read_only=True,
        ))
