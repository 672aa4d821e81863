"""Entity analysis: how an entity is controlled and used"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from ..registry import ToolRegistry, ToolResult, ToolSpec
from ..services.homeassistant import ScriptConfig
from .common import friendly_name, get_bool, json_result, require_string, schema
from .search import (
    USAGE_ACTION,
    contains_area_reference,
    contains_entity_reference,
    find_area_usages,
    load_automation_configs,
    match_automations,
)

logger = logging.getLogger(__name__)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _join(parts: List[str]) -> str:
    if len(parts) == 1:
        return parts[0]
    return f"{', '.join(parts[:-1])} and {parts[-1]}"


def _scene_references(client, entity_id: str) -> List[Dict[str, Any]]:
    scenes = []
    for scene in client.list_scenes():
        members = (scene.get("attributes") or {}).get("entity_id") or []
        if entity_id in members:
            scenes.append({"entity_id": scene.get("entity_id"), "friendly_name": friendly_name(scene)})
    return scenes


def _group_references(client, entity_id: str) -> List[str]:
    return [
        group.get("entity_id")
        for group in client.list_groups()
        if entity_id in ((group.get("attributes") or {}).get("entity_id") or [])
    ]


def _load_script_configs(client) -> Tuple[List[Tuple[Dict[str, Any], ScriptConfig]], List[str]]:
    """Every script state with its stored configuration, plus the scripts that had none"""
    loaded = []
    skipped = []
    for script in client.list_scripts():
        entity_id = script.get("entity_id", "")
        try:
            config = client.get_script_config(entity_id)
        except Exception as e:
            logger.warning(f"Skipping {entity_id}: could not read configuration: {e}")
            skipped.append(entity_id)
            continue
        loaded.append((script, config))
    return loaded, skipped


def _entity_area(client, entity_id: str) -> Optional[str]:
    try:
        return client.get_entity_area(entity_id)
    except Exception as e:
        logger.debug(f"No registry entry for {entity_id}: {e}")
        return None


def build_summary(entity_id: str, automation_count: int, scene_count: int,
                  script_count: int = 0, group_count: int = 0, area_count: int = 0) -> str:
    """One sentence naming how many automations, scripts, scenes and groups use the entity"""
    parts = [
        _plural(count, noun)
        for count, noun in (
            (automation_count, "automation"),
            (script_count, "script"),
            (scene_count, "scene"),
            (group_count, "group"),
        )
        if count
    ]
    if parts:
        summary = f"{entity_id} is referenced by {_join(parts)}"
    else:
        summary = f"{entity_id} is not referenced by any automation, script, scene or group"
    if area_count:
        summary += f" ({_plural(area_count, 'area reference')})"
    return summary


def handle_analyze_entity(client, args: Dict[str, Any]) -> ToolResult:
    entity_id = require_string(args, "entity_id")
    include_history = get_bool(args, "include_history") or False

    try:
        state = client.get_state(entity_id)
    except Exception as e:
        return ToolResult.error(f"Error getting entity state: {e}")

    try:
        loaded_automations, skipped = load_automation_configs(client)
        loaded_scripts, skipped_scripts = _load_script_configs(client)
        scenes = _scene_references(client, entity_id)
        groups = _group_references(client, entity_id)
    except Exception as e:
        return ToolResult.error(f"Error finding references: {e}")

    automations = [
        {
            "entity_id": automation.entity_id,
            "alias": (automation.config.alias if automation.config else "") or automation.friendly_name,
            "state": automation.state,
            "last_triggered": automation.last_triggered,
            "used_in": used_in,
        }
        for automation, used_in in match_automations(loaded_automations, entity_id)
    ]
    scripts = [
        {"entity_id": script.get("entity_id"), "friendly_name": friendly_name(script), "used_in": USAGE_ACTION}
        for script, config in loaded_scripts
        if contains_entity_reference(config.sequence, entity_id)
    ]

    area_id = _entity_area(client, entity_id)
    area_references: List[Dict[str, Any]] = []
    if area_id:
        for automation in loaded_automations:
            used_in = find_area_usages(automation.config, area_id)
            if used_in:
                area_references.append({
                    "entity_id": automation.entity_id,
                    "alias": automation.config.alias or automation.friendly_name,
                    "type": "automation",
                    "used_in": used_in,
                })
        for script, config in loaded_scripts:
            if contains_area_reference(config.sequence, area_id):
                area_references.append({
                    "entity_id": script.get("entity_id"),
                    "alias": config.alias or friendly_name(script),
                    "type": "script",
                    "used_in": [USAGE_ACTION],
                })

    analysis: Dict[str, Any] = {
        "entity_id": entity_id,
        "state": state.get("state"),
        "friendly_name": friendly_name(state),
        "domain": entity_id.split(".", 1)[0],
        "area_id": area_id,
        "attributes": state.get("attributes") or {},
        "last_changed": state.get("last_changed"),
        "references": {
            "automations": automations,
            "scripts": scripts,
            "scenes": scenes,
            "groups": groups,
            "area_references": area_references,
            "total_references": (
                len(automations) + len(scripts) + len(scenes) + len(groups) + len(area_references)
            ),
        },
        "summary": build_summary(
            entity_id, len(automations), len(scenes),
            script_count=len(scripts), group_count=len(groups), area_count=len(area_references),
        ),
    }
    if skipped:
        analysis["skipped_automations"] = skipped
    if skipped_scripts:
        analysis["skipped_scripts"] = skipped_scripts

    if include_history:
        try:
            history = client.get_history(entity_id)
        except Exception as e:
            logger.warning(f"History unavailable for {entity_id}: {e}")
            analysis["history_error"] = str(e)
        else:
            analysis["history"] = [
                {"state": entry.get("state"), "last_changed": entry.get("last_changed")}
                for entry in history
            ]

    return json_result(analysis, what="analysis")


def register_analysis_tools(registry: ToolRegistry) -> None:
    """Register analysis tools."""
    registry.register(ToolSpec(
        name="analyze_entity",
        title="Analyze Entity",
        description="""Analyze an entity and find everything that references it.

## Parameters
• entity_id: Entity to analyze, e.g. 'light.living_room' (required)
• include_history: Include state history for the last 24 hours (default: false)

## Returns
Current state, attributes and area, plus:
• automations referencing it (with trigger/condition/action usage)
• scripts whose sequence references it
• scenes and groups containing it
• automations and scripts that target its area
• a one-line summary

## Related Tools
• Use `get_entity_dependencies` for automation usage only""",
        input_schema=schema({
            "entity_id": {"type": "string"},
            "include_history": {"type": "boolean"},
        }, ["entity_id"]),
        handler=handle_analyze_entity,
        read_only=True,
    ))
