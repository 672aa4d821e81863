"""Unit tests for scene tools"""

import pytest

from ha_mcp.registry import ToolInputError
from ha_mcp.services.homeassistant import SceneConfig, SceneState
from ha_mcp.tools.scenes import (
    handle_activate_scene,
    handle_create_scene,
    handle_delete_scene,
    handle_get_scene,
    handle_list_scenes,
    handle_update_scene,
    parse_scene_entities,
)

from conftest import make_state, response_json, response_text


@pytest.fixture
def scenes():
    return [
        make_state('scene.movie_night', 'scening', friendly_name='Movie Night',
                   entity_id=['light.living_room', 'media_player.tv']),
        make_state('scene.good_morning', 'scening', friendly_name='Good Morning',
                   entity_id=['light.kitchen', 'cover.bedroom']),
    ]


class TestParseSceneEntities:
    """Test suite for parse_scene_entities"""

    def test_string_and_object_states(self):
        """Test both value forms"""
        entities = parse_scene_entities({
            'light.kitchen': 'on',
            'light.living_room': {'state': 'on', 'attributes': {'brightness': 120}},
        })
        assert entities['light.kitchen'] == SceneState(state='on')
        assert entities['light.living_room'].attributes == {'brightness': 120}

    def test_invalid_value(self):
        """Test unsupported value type"""
        with pytest.raises(ToolInputError, match="Invalid state format for entity light.kitchen"):
            parse_scene_entities({'light.kitchen': 5})

    def test_scene_state_serializes_flat(self):
        """Test attributes sit beside the state"""
        config = SceneConfig(
            id='evening',
            name='Evening',
            entities={'light.kitchen': SceneState(state='on', attributes={'brightness': 80})},
        )
        assert config.to_dict() == {
            'id': 'evening',
            'name': 'Evening',
            'entities': {'light.kitchen': {'brightness': 80, 'state': 'on'}},
        }


class TestSceneHandlers:
    """Test suite for scene tool handlers"""

    def test_list_filters(self, mock_client, scenes):
        """Test name and entity filters"""
        mock_client.list_scenes.return_value = scenes

        result = handle_list_scenes(mock_client, {'entity_contains': 'tv'})

        assert response_text(result).startswith('Found 1 scenes')
        data = response_json(result)
        assert data == [{
            'entity_id': 'scene.movie_night',
            'state': 'scening',
            'friendly_name': 'Movie Night',
            'entity_ids': ['light.living_room', 'media_player.tv'],
        }]

    def test_list_by_name(self, mock_client, scenes):
        """Test name_contains on friendly name"""
        mock_client.list_scenes.return_value = scenes

        result = handle_list_scenes(mock_client, {'name_contains': 'morning'})

        assert [s['entity_id'] for s in response_json(result)] == ['scene.good_morning']

    def test_get_strips_prefix(self, mock_client, scenes):
        """Test scene. prefix is accepted"""
        mock_client.get_scene.return_value = scenes[0]

        handle_get_scene(mock_client, {'scene_id': 'scene.movie_night'})

        mock_client.get_scene.assert_called_once_with('movie_night')

    def test_create(self, mock_client):
        """Test create builds a SceneConfig"""
        result = handle_create_scene(mock_client, {
            'scene_id': 'reading',
            'name': 'Reading',
            'entities': {'light.living_room': {'state': 'on', 'attributes': {'brightness': 200}}},
            'icon': 'mdi:book',
        })

        assert response_text(result) == "Scene 'reading' created successfully"
        config = mock_client.create_scene.call_args[0][0]
        assert config.icon == 'mdi:book'
        assert config.entities['light.living_room'].state == 'on'

    def test_create_requires_entities(self, mock_client):
        """Test empty entities"""
        result = handle_create_scene(mock_client, {'scene_id': 'x', 'name': 'X', 'entities': {}})

        assert result.is_error
        assert response_text(result) == 'entities is required and must be a non-empty object'
        mock_client.create_scene.assert_not_called()

    def test_update_keeps_current_members(self, mock_client, scenes):
        """Test update without entities snapshots existing members"""
        mock_client.get_scene.return_value = scenes[0]
        mock_client.get_state.side_effect = lambda entity_id: make_state(entity_id, 'off')

        result = handle_update_scene(mock_client, {'scene_id': 'movie_night', 'name': 'Film Night'})

        assert response_text(result) == "Scene 'movie_night' updated successfully"
        scene_id, config = mock_client.update_scene.call_args[0]
        assert scene_id == 'movie_night'
        assert config.name == 'Film Night'
        assert set(config.entities) == {'light.living_room', 'media_player.tv'}

    def test_delete_error(self, mock_client):
        """Test client failure"""
        mock_client.delete_scene.side_effect = Exception('HTTP 404')

        result = handle_delete_scene(mock_client, {'scene_id': 'gone'})

        assert result.is_error
        assert response_text(result) == 'Error deleting scene: HTTP 404'

    def test_activate_with_transition(self, mock_client):
        """Test transition is forwarded"""
        result = handle_activate_scene(mock_client, {'scene_id': 'movie_night', 'transition': '2.5'})

        assert response_text(result) == "Scene 'movie_night' activated successfully"
        mock_client.activate_scene.assert_called_once_with('movie_night', 2.5)
