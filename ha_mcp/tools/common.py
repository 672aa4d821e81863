"""Shared argument readers and output formatting for tool handlers"""

import json
import math
from typing import Any, Dict, List, Optional

from ..registry import ToolInputError, ToolResult

VERBOSE_HINT = " (use verbose=true for full details)"


# ========== ARGUMENT READERS ==========

def get_string(args: Dict[str, Any], key: str) -> Optional[str]:
    """Return args[key] when it is a string, else None"""
    value = args.get(key)
    return value if isinstance(value, str) else None


def get_non_empty_string(args: Dict[str, Any], key: str) -> Optional[str]:
    value = get_string(args, key)
    return value if value else None


def require_string(args: Dict[str, Any], key: str) -> str:
    """Return a non-empty string argument or raise ToolInputError('<key> is required')"""
    value = get_non_empty_string(args, key)
    if value is None:
        raise ToolInputError(f"{key} is required")
    return value


def get_bool(args: Dict[str, Any], key: str) -> Optional[bool]:
    """Read a boolean; 'true'/'false' strings are accepted"""
    value = args.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def require_bool(args: Dict[str, Any], key: str) -> bool:
    value = get_bool(args, key)
    if value is None:
        raise ToolInputError(f"{key} is required")
    return value


def get_number(args: Dict[str, Any], key: str) -> Optional[float]:
    """Read a finite number; numeric strings are accepted, booleans, inf and nan are not"""
    value = args.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def require_number(args: Dict[str, Any], key: str) -> float:
    value = get_number(args, key)
    if value is None:
        raise ToolInputError(f"{key} is required")
    return value


def get_int(args: Dict[str, Any], key: str) -> Optional[int]:
    value = get_number(args, key)
    if value is None:
        return None
    return int(value)


def get_list(args: Dict[str, Any], key: str) -> Optional[List[Any]]:
    value = args.get(key)
    return value if isinstance(value, list) else None


def get_string_list(args: Dict[str, Any], key: str) -> List[str]:
    """Read a list of strings; a single string becomes a one-item list, non-strings are dropped"""
    value = args.get(key)
    if isinstance(value, str):
        return [value] if value else []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str) and item]
    return []


def get_dict(args: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = args.get(key)
    return value if isinstance(value, dict) else None


# ========== OUTPUT ==========

def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def json_result(data: Any, summary: Optional[str] = None, what: str = "response") -> ToolResult:
    """Pretty-printed JSON, optionally preceded by a one-line summary"""
    try:
        text = to_json(data)
    except (TypeError, ValueError) as e:
        return ToolResult.error(f"Error formatting {what}: {e}")
    if summary:
        text = f"{summary}\n\n{text}"
    return ToolResult.text(text)


def found_summary(count: int, noun: str, verbose: bool, skipped: int = 0) -> str:
    """'Found N <noun>' plus the verbose hint when compact output was used"""
    summary = f"Found {count} {noun}{skipped_note(skipped)}"
    if not verbose:
        summary += VERBOSE_HINT
    return summary


def skipped_note(skipped: int) -> str:
    if not skipped:
        return ""
    return f"; {skipped} skipped (configuration unavailable)"


def friendly_name(state: Dict[str, Any]) -> str:
    return (state.get("attributes") or {}).get("friendly_name") or ""


def schema(properties: Optional[Dict[str, Any]] = None, required: Optional[List[str]] = None) -> Dict[str, Any]:
    """Build an object input schema for a tool"""
    result: Dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        result["required"] = required
    return result
