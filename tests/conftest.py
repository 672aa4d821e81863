"""Shared fixtures and configuration for tests"""

import os
import json
import pytest
from unittest.mock import MagicMock, patch
from typing import Dict, List, Any

from ha_mcp.services.homeassistant import (
    Automation,
    AutomationConfig,
    HomeAssistantClient,
)


# ============================================================================
# Sample Data
# ============================================================================

def make_state(entity_id: str, state: str, /, **attributes) -> Dict[str, Any]:
    """Build a Home Assistant state object"""
    return {
        'entity_id': entity_id,
        'state': state,
        'attributes': attributes,
        'last_changed': '2024-01-15T10:00:00+00:00',
        'last_updated': '2024-01-15T10:00:00+00:00',
    }


@pytest.fixture
def sample_states() -> List[Dict[str, Any]]:
    """A small house worth of entity states"""
    return [
        make_state('light.kitchen', 'on', friendly_name='Kitchen Light', brightness=255),
        make_state('light.living_room', 'off', friendly_name='Living Room Light'),
        make_state('sensor.temperature', '22.5', friendly_name='Temperature', unit_of_measurement='°C'),
        make_state('binary_sensor.motion', 'off', friendly_name='Hallway Motion'),
        make_state('switch.garage', 'unavailable', friendly_name='Garage Switch'),
        make_state('automation.morning_lights', 'on', friendly_name='Morning Lights',
                   last_triggered='2024-01-15T07:00:00+00:00'),
        make_state('scene.movie_night', 'scening', friendly_name='Movie Night',
                   entity_id=['light.living_room', 'light.kitchen']),
    ]


@pytest.fixture
def sample_automations() -> List[Automation]:
    """Automations as returned by list_automations"""
    return [
        Automation(entity_id='automation.motion_lights', state='on',
                   friendly_name='Motion Lights', last_triggered='2024-01-15T08:00:00+00:00'),
        Automation(entity_id='automation.night_mode', state='off', friendly_name='Night Mode'),
        Automation(entity_id='automation.motion_alarm', state='off', friendly_name='Motion Alarm'),
    ]


@pytest.fixture
def sample_configs() -> Dict[str, AutomationConfig]:
    """Stored configurations keyed by automation entity_id"""
    return {
        'automation.motion_lights': AutomationConfig(
            id='1700000000001',
            alias='Motion Lights',
            triggers=[{'platform': 'state', 'entity_id': 'binary_sensor.motion', 'to': 'on'}],
            actions=[{'service': 'light.turn_on', 'target': {'entity_id': 'light.kitchen'}}],
            mode='single',
        ),
        'automation.night_mode': AutomationConfig(
            id='1700000000002',
            alias='Night Mode',
            triggers=[{'platform': 'time', 'at': '23:00:00'}],
            conditions=[{'condition': 'state', 'entity_id': 'light.kitchen', 'state': 'on'}],
            actions=[{'service': 'light.turn_off', 'target': {'entity_id': ['light.kitchen', 'light.living_room']}}],
        ),
        'automation.motion_alarm': AutomationConfig(
            id='1700000000003',
            alias='Motion Alarm',
            triggers=[{'platform': 'state', 'entity_id': ['binary_sensor.motion'], 'to': 'on'}],
            actions=[{'service': 'notify.mobile', 'data': {'message': 'Motion detected'}}],
        ),
    }


# ============================================================================
# Mock Client
# ============================================================================

@pytest.fixture
def mock_client(sample_automations, sample_configs):
    """MagicMock standing in for HomeAssistantClient"""
    client = MagicMock(spec=HomeAssistantClient)
    client.list_automations.return_value = sample_automations

    def get_automation(automation_id):
        entity_id = automation_id if automation_id.startswith('automation.') else f'automation.{automation_id}'
        for automation in sample_automations:
            if automation.entity_id == entity_id:
                return Automation(
                    entity_id=automation.entity_id,
                    state=automation.state,
                    friendly_name=automation.friendly_name,
                    last_triggered=automation.last_triggered,
                    config=sample_configs[entity_id],
                )
        raise Exception(f'not found: {entity_id}')

    client.get_automation.side_effect = get_automation
    return client


@pytest.fixture
def mock_env_vars():
    """Home Assistant settings in the environment"""
    env = {
        'HA_URL': 'http://localhost:8123',
        'HA_TOKEN': 'abcd1234efgh5678',
        'HA_VERIFY_SSL': 'true',
    }
    with patch.dict(os.environ, env, clear=False):
        yield env


def response_text(result) -> str:
    """Text of the first content block of a ToolResult"""
    return result.content[0]['text']


def response_json(result):
    """Decode the JSON part of a ToolResult, skipping the summary line if present"""
    text = response_text(result)
    if not text.startswith(('[', '{')):
        text = text.split('\n\n', 1)[1]
    return json.loads(text)
