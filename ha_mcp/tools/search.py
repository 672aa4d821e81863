"""
Entity reference search over automation configuration trees

Automation triggers, conditions and actions are schema-less nested
mappings and lists. These functions decide whether an entity ID, or an
area through an 'area_id' field, is referenced anywhere inside them.
"""

import logging
from typing import Any, List, Tuple

from ..services.homeassistant import Automation, AutomationConfig

logger = logging.getLogger(__name__)

# Real configurations are a handful of levels deep
MAX_SEARCH_DEPTH = 100

USAGE_TRIGGER = "trigger"
USAGE_CONDITION = "condition"
USAGE_ACTION = "action"


def contains_entity_reference(value: Any, entity_id: str, _depth: int = 0) -> bool:
    """
    Check whether entity_id appears as a string value anywhere in value

    Args:
        value: Configuration value (mapping, list or scalar)
        entity_id: Entity ID to look for, compared exactly

    Returns:
        True if found. Mapping keys never match; only values do.
    """
    if _depth > MAX_SEARCH_DEPTH:
        logger.debug(f"Search depth limit reached looking for {entity_id}")
        return False

    if value is None:
        return False
    if isinstance(value, str):
        return value == entity_id
    if isinstance(value, list):
        return any(contains_entity_reference(item, entity_id, _depth + 1) for item in value)
    if isinstance(value, dict):
        for key, item in value.items():
            if key == "entity_id" and contains_entity_reference(item, entity_id, _depth + 1):
                return True
            if key == "target" and isinstance(item, dict):
                if contains_entity_reference(item.get("entity_id"), entity_id, _depth + 1):
                    return True
            if contains_entity_reference(item, entity_id, _depth + 1):
                return True
        return False
    return False


def find_entity_usages(config: AutomationConfig, entity_id: str) -> List[str]:
    """Return the sections ('trigger', 'condition', 'action') of config that reference entity_id"""
    used_in = []
    if contains_entity_reference(config.triggers, entity_id):
        used_in.append(USAGE_TRIGGER)
    if contains_entity_reference(config.conditions, entity_id):
        used_in.append(USAGE_CONDITION)
    if contains_entity_reference(config.actions, entity_id):
        used_in.append(USAGE_ACTION)
    return used_in


def automation_references_entity(config: AutomationConfig, entity_id: str) -> bool:
    return bool(find_entity_usages(config, entity_id))


def contains_area_reference(value: Any, area_id: str, _depth: int = 0) -> bool:
    """
    Check whether an 'area_id' key anywhere in value names area_id

    The key may hold a single area or a list of areas; this covers both
    top-level 'area_id' fields and 'target.area_id'.
    """
    if _depth > MAX_SEARCH_DEPTH:
        logger.debug(f"Search depth limit reached looking for area {area_id}")
        return False

    if isinstance(value, list):
        return any(contains_area_reference(item, area_id, _depth + 1) for item in value)
    if isinstance(value, dict):
        for key, item in value.items():
            if key == "area_id":
                if item == area_id or (isinstance(item, list) and area_id in item):
                    return True
            if contains_area_reference(item, area_id, _depth + 1):
                return True
    return False


def find_area_usages(config: AutomationConfig, area_id: str) -> List[str]:
    """Return the sections of config that target area_id"""
    used_in = []
    if contains_area_reference(config.triggers, area_id):
        used_in.append(USAGE_TRIGGER)
    if contains_area_reference(config.conditions, area_id):
        used_in.append(USAGE_CONDITION)
    if contains_area_reference(config.actions, area_id):
        used_in.append(USAGE_ACTION)
    return used_in


def load_automation_configs(client) -> Tuple[List[Automation], List[str]]:
    """
    Read the stored configuration of every automation

    Args:
        client: Home Assistant client

    Returns:
        ([automation with config, ...], entity IDs of automations whose
        configuration could not be read)
    """
    loaded: List[Automation] = []
    skipped: List[str] = []

    for automation in client.list_automations():
        object_id = automation.entity_id.split(".", 1)[-1]
        try:
            full = client.get_automation(object_id)
        except Exception as e:
            logger.warning(f"Skipping {automation.entity_id}: could not read configuration: {e}")
            skipped.append(automation.entity_id)
            continue
        if full.config is None:
            continue

        full.state = full.state or automation.state
        full.friendly_name = full.friendly_name or automation.friendly_name
        full.last_triggered = full.last_triggered or automation.last_triggered
        loaded.append(full)

    return loaded, skipped


def match_automations(automations: List[Automation], entity_id: str) -> List[Tuple[Automation, List[str]]]:
    """Pair each automation that references entity_id with the sections it is used in"""
    references = []
    for automation in automations:
        used_in = find_entity_usages(automation.config, entity_id)
        if used_in:
            references.append((automation, used_in))
    return references


def find_automation_references(client, entity_id: str) -> Tuple[List[Tuple[Automation, List[str]]], List[str]]:
    """
    Scan every automation for references to entity_id

    Returns:
        ([(automation, used_in), ...], entity IDs of automations whose
        configuration could not be read)
    """
    automations, skipped = load_automation_configs(client)
    return match_automations(automations, entity_id), skipped
