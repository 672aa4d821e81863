"""Helper configuration builders keyed on the helper platform"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..registry import ToolInputError
from ..services.homeassistant import HelperConfig
from .common import get_bool, get_int, get_non_empty_string, get_number, get_string_list


class HelperPlatform(Enum):
    """Helper platforms with a configuration builder"""
    INPUT_BOOLEAN = "input_boolean"
    INPUT_NUMBER = "input_number"
    INPUT_TEXT = "input_text"
    INPUT_SELECT = "input_select"
    INPUT_DATETIME = "input_datetime"
    INPUT_BUTTON = "input_button"
    COUNTER = "counter"
    TIMER = "timer"
    SCHEDULE = "schedule"


WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

# Field kinds understood by _read_field
STRING = "string"
NUMBER = "number"
INTEGER = "integer"
BOOLEAN = "boolean"
STRING_LIST = "string_list"
TIME_RANGES = "time_ranges"

PLATFORM_FIELDS: Dict[HelperPlatform, List[Tuple[str, str]]] = {
    HelperPlatform.INPUT_BOOLEAN: [
        ("icon", STRING),
        ("initial", BOOLEAN),
    ],
    HelperPlatform.INPUT_NUMBER: [
        ("icon", STRING),
        ("min", NUMBER),
        ("max", NUMBER),
        ("step", NUMBER),
        ("initial", NUMBER),
        ("mode", STRING),
        ("unit_of_measurement", STRING),
    ],
    HelperPlatform.INPUT_TEXT: [
        ("icon", STRING),
        ("min", INTEGER),
        ("max", INTEGER),
        ("initial", STRING),
        ("mode", STRING),
        ("pattern", STRING),
    ],
    HelperPlatform.INPUT_SELECT: [
        ("icon", STRING),
        ("options", STRING_LIST),
        ("initial", STRING),
    ],
    HelperPlatform.INPUT_DATETIME: [
        ("icon", STRING),
        ("has_date", BOOLEAN),
        ("has_time", BOOLEAN),
        ("initial", STRING),
    ],
    HelperPlatform.INPUT_BUTTON: [
        ("icon", STRING),
    ],
    HelperPlatform.COUNTER: [
        ("icon", STRING),
        ("initial", INTEGER),
        ("minimum", INTEGER),
        ("maximum", INTEGER),
        ("step", INTEGER),
        ("restore", BOOLEAN),
    ],
    HelperPlatform.TIMER: [
        ("icon", STRING),
        ("duration", STRING),
        ("restore", BOOLEAN),
    ],
    HelperPlatform.SCHEDULE: [("icon", STRING)] + [(day, TIME_RANGES) for day in WEEKDAYS],
}

ENTITY_EXAMPLES = {
    "input_boolean": "input_boolean.my_switch",
    "input_number": "input_number.my_value",
    "input_text": "input_text.my_text",
    "input_select": "input_select.my_dropdown",
    "input_datetime": "input_datetime.my_datetime",
    "input_button": "input_button.my_button",
    "counter": "counter.my_counter",
    "group": "group.living_room_lights",
    "timer": "timer.my_timer",
    "schedule": "schedule.work_hours",
}


def _read_field(args: Dict[str, Any], key: str, kind: str) -> Any:
    if kind == STRING:
        return get_non_empty_string(args, key)
    if kind == NUMBER:
        return get_number(args, key)
    if kind == INTEGER:
        return get_int(args, key)
    if kind == BOOLEAN:
        return get_bool(args, key)
    if kind == STRING_LIST:
        return get_string_list(args, key) or None
    if kind == TIME_RANGES:
        value = args.get(key)
        return value if isinstance(value, list) and value else None
    raise ValueError(f"Unknown field kind: {kind}")


def build_helper_config(platform: str, name: str, args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Build the configuration mapping for a helper platform

    Args:
        platform: Helper platform (e.g. 'input_number', 'timer')
        name: Display name of the helper
        args: Tool arguments to copy platform fields from

    Returns:
        Mapping with 'name' and every platform field present in args, or None
        when the platform has no builder. Values are passed through without
        range or format checks; empty strings are never included.
    """
    try:
        helper_platform = HelperPlatform(platform)
    except ValueError:
        return None

    config: Dict[str, Any] = {"name": name}
    for key, kind in PLATFORM_FIELDS[helper_platform]:
        value = _read_field(args, key, kind)
        if value is not None:
            config[key] = value
    return config


def helper_config_for(platform: str, name: str, args: Dict[str, Any], helper_id: str = "") -> Optional[HelperConfig]:
    """Wrap build_helper_config in a HelperConfig for the client"""
    fields = build_helper_config(platform, name, args)
    if fields is None:
        return None
    fields.pop("name")
    return HelperConfig(platform=platform, name=name, id=helper_id, options=fields)


def parse_helper_entity_id(entity_id: str, platform: str) -> str:
    """
    Check that entity_id belongs to platform and return its object ID

    Raises:
        ToolInputError: entity_id is for another platform or has no object ID
    """
    prefix = f"{platform}."
    if not entity_id.startswith(prefix) or len(entity_id) == len(prefix):
        article = "an" if platform[0] in "aeiou" else "a"
        example = ENTITY_EXAMPLES.get(platform, f"{platform}.my_helper")
        raise ToolInputError(f"entity_id must be {article} {platform} entity (e.g., {example})")
    return entity_id[len(prefix):]


def helper_entity_id(platform: str, created: Dict[str, Any], fallback_id: str) -> str:
    """Entity ID of a newly created helper, preferring the ID Home Assistant assigned"""
    object_id = created.get("id") if isinstance(created, dict) else None
    return f"{platform}.{object_id or fallback_id}"
