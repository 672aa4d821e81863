"""Entity tools: states, history, domains and automation dependencies"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, List, Optional

from ..registry import ToolInputError, ToolRegistry, ToolResult, ToolSpec
from .common import (
    VERBOSE_HINT,
    friendly_name,
    found_summary,
    get_bool,
    get_int,
    get_non_empty_string,
    get_number,
    json_result,
    require_string,
    schema,
    skipped_note,
)
from .search import find_automation_references

logger = logging.getLogger(__name__)

# Seconds fraction of an RFC3339 time, any number of digits
FRACTION_PATTERN = re.compile(r"([Tt ]\d{2}:\d{2}:\d{2})\.(\d+)")


def _normalize_fraction(match: re.Match) -> str:
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def parse_timestamp(value: str, field_name: str) -> datetime:
    """Parse an RFC3339 timestamp; naive values are taken as UTC"""
    normalized = FRACTION_PATTERN.sub(_normalize_fraction, value.replace("Z", "+00:00"), count=1)
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise ToolInputError(f"invalid {field_name} format: {e}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class HistoryQuery:
    entity_id: str
    start_time: datetime
    end_time: datetime
    state: Optional[str] = None
    limit: Optional[int] = None
    verbose: bool = False

    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "HistoryQuery":
        """Read history arguments; 'hours' wins over 'start_time'"""
        entity_id = require_string(args, "entity_id")
        now = datetime.now(timezone.utc)

        end_value = get_non_empty_string(args, "end_time")
        end_time = parse_timestamp(end_value, "end_time") if end_value else now

        hours = get_number(args, "hours")
        start_value = get_non_empty_string(args, "start_time")
        if hours is not None and hours > 0:
            start_time = now - timedelta(hours=hours)
        elif start_value:
            start_time = parse_timestamp(start_value, "start_time")
        else:
            start_time = now - timedelta(hours=24)

        limit = get_int(args, "limit")
        return cls(
            entity_id=entity_id,
            start_time=start_time,
            end_time=end_time,
            state=get_non_empty_string(args, "state"),
            limit=limit if limit and limit > 0 else None,
            verbose=get_bool(args, "verbose") or False,
        )


# ========== HANDLERS ==========

def handle_get_states(client, args: Dict[str, Any]) -> ToolResult:
    try:
        states = client.get_states()
    except Exception as e:
        return ToolResult.error(f"Error getting states: {e}")

    domain = get_non_empty_string(args, "domain")
    state_filter = get_non_empty_string(args, "state")
    state_not = get_non_empty_string(args, "state_not")
    name_contains = get_non_empty_string(args, "name_contains")
    verbose = get_bool(args, "verbose") or False

    if domain:
        states = [s for s in states if s.get("entity_id", "").startswith(f"{domain}.")]
    if state_filter:
        states = [s for s in states if s.get("state") == state_filter]
    if state_not:
        states = [s for s in states if s.get("state") != state_not]
    if name_contains:
        needle = name_contains.lower()
        states = [
            s for s in states
            if needle in s.get("entity_id", "").lower() or needle in friendly_name(s).lower()
        ]

    if verbose:
        output = states
    else:
        output = [
            {"entity_id": s.get("entity_id"), "state": s.get("state"), "friendly_name": friendly_name(s)}
            for s in states
        ]
    return json_result(output, found_summary(len(output), "entities", verbose), "states")


def handle_get_state(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    try:
        state = client.get_state(entity_id)
    except Exception as e:
        return ToolResult.error(f"Error getting state: {e}")
    return json_result(state, what="state")


def handle_get_history(client, args: Dict[str, Any]) -> ToolResult:
    query = HistoryQuery.from_args(args)
    try:
        history = client.get_history(query.entity_id, query.start_time, query.end_time)
    except Exception as e:
        return ToolResult.error(f"Error getting history: {e}")

    if query.state:
        history = [entry for entry in history if entry.get("state") == query.state]
    total = len(history)
    if query.limit is not None and total > query.limit:
        # Keep the most recent entries
        history = history[-query.limit:]

    if query.verbose:
        output = history
    else:
        output = [{"state": e.get("state"), "last_changed": e.get("last_changed")} for e in history]

    if len(output) < total:
        summary = f"Showing {len(output)} of {total} history entries for {query.entity_id} (limited)"
    else:
        summary = f"Found {total} history entries for {query.entity_id}"
    if query.state:
        summary += f" (filtered by state='{query.state}')"
    if not query.verbose:
        summary += VERBOSE_HINT
    return json_result(output, summary, "history")


def handle_list_domains(client, args: Dict[str, Any]) -> ToolResult:
    try:
        states = client.get_states()
    except Exception as e:
        return ToolResult.error(f"Error getting states: {e}")

    counts = Counter(
        s["entity_id"].split(".", 1)[0]
        for s in states
        if s.get("entity_id", "").find(".") > 0
    )
    domains = [{"domain": d, "entity_count": counts[d]} for d in sorted(counts)]
    return json_result(domains, what="domains")


def handle_get_entity_dependencies(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    try:
        references, skipped = find_automation_references(client, entity_id)
    except Exception as e:
        return ToolResult.error(f"Error listing automations: {e}")

    dependencies: List[Dict[str, Any]] = []
    for automation, used_in in references:
        alias = automation.friendly_name
        if automation.config is not None and automation.config.alias:
            alias = automation.config.alias
        dependencies.append({
            "automation_id": automation.entity_id.split(".", 1)[-1],
            "automation_alias": alias,
            "used_in": used_in,
        })

    result: Dict[str, Any] = {
        "entity_id": entity_id,
        "automations": dependencies,
        "total_usages": len(dependencies),
    }
    if skipped:
        result["skipped_automations"] = skipped

    summary = f"Found {len(dependencies)} automations using '{entity_id}'{skipped_note(len(skipped))}"
    return json_result(result, summary, "result")


# ========== REGISTRATION ==========

def register_entity_tools(registry: ToolRegistry) -> None:
    """Register entity tools."""
    registry.register(ToolSpec(
        name="get_states",
        title="Get Entity States",
        description="""Get entity states from Home Assistant.

## Parameters
• domain: Only entities of this domain (e.g., 'light', 'sensor')
• state: Only entities in this state
• state_not: Exclude entities in this state (e.g., 'unavailable')
• name_contains: Case-insensitive substring of entity_id or friendly name
• verbose: Return full state objects with attributes (default: false)

## Returns
Summary line followed by a JSON list (entity_id, state, friendly_name when compact)

## Related Tools
• Use `list_domains` to see available domains
• Use `get_state` for a single entity""",
        input_schema=schema({
            "domain": {"type": "string"},
            "state": {"type": "string"},
            "state_not": {"type": "string"},
            "name_contains": {"type": "string"},
            "verbose": {"type": "boolean"},
        }),
        handler=handle_get_states,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="get_state",
        title="Get Entity State",
        description="""Get the full state of one entity.

## Parameters
• entity_id: Entity to read, e.g. 'light.living_room' (required)""",
        input_schema=schema({"entity_id": {"type": "string"}}, ["entity_id"]),
        handler=handle_get_state,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="get_history",
        title="Get Entity History",
        description="""Get historical state changes for an entity.

## Parameters
• entity_id: Entity to read (required)
• start_time: RFC3339 start (default: 24 hours ago)
• end_time: RFC3339 end (default: now)
• hours: Look back this many hours; overrides start_time
• state: Only entries with this state
• limit: Keep only the most recent N entries
• verbose: Include attributes (default: false)

## Returns
Summary line followed by a JSON list (state, last_changed when compact)""",
        input_schema=schema({
            "entity_id": {"type": "string"},
            "start_time": {"type": "string"},
            "end_time": {"type": "string"},
            "hours": {"type": "number"},
            "state": {"type": "string"},
            "limit": {"type": "integer"},
            "verbose": {"type": "boolean"},
        }, ["entity_id"]),
        handler=handle_get_history,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="list_domains",
        title="List Domains",
        description="""List every entity domain with its entity count.

## Returns
JSON list of {domain, entity_count}""",
        input_schema=schema(),
        handler=handle_list_domains,
        read_only=True,
    ))

    registry.register(ToolSpec(
        name="get_entity_dependencies",
        title="Get Entity Dependencies",
        description="""Find the automations that reference an entity and where.

## Parameters
• entity_id: Entity to look for (required)

## Returns
JSON with each automation and whether the entity is used in its trigger, condition or action

## Related Tools
• Use `analyze_entity` for state, scenes and history as well""",
        input_schema=schema({"entity_id": {"type": "string"}}, ["entity_id"]),
        handler=handle_get_entity_dependencies,
        read_only=True,
    ))
