"""Unit tests for helper configuration builders and helper, counter, group, timer and schedule tools"""

import pytest

from ha_mcp.registry import ToolInputError
from ha_mcp.tools.helper_config import (
    HelperPlatform,
    build_helper_config,
    helper_config_for,
    helper_entity_id,
    parse_helper_entity_id,
)
from ha_mcp.tools.helpers import (
    handle_list_helpers,
    handle_press_input_button,
    handle_select_option,
    handle_set_input_datetime,
    handle_set_input_number_value,
    handle_set_options,
    handle_toggle_input_boolean,
    handle_update_helper,
    make_create_handler,
    make_delete_handler,
)
from ha_mcp.tools.counters import COUNTER_ACTIONS, handle_set_counter_value, make_counter_action_handler
from ha_mcp.tools.groups import (
    handle_create_group,
    handle_delete_group,
    handle_reload_group,
    handle_set_group_entities,
)
from ha_mcp.tools.schedules import handle_get_schedule_details, handle_reload_schedule
from ha_mcp.tools.timers import TIMER_ACTIONS, handle_change_timer, make_timer_action_handler

from conftest import make_state, response_json, response_text


class TestBuildHelperConfig:
    """Test suite for build_helper_config"""

    def test_empty_icon_omitted(self):
        """Test empty strings are never copied"""
        assert build_helper_config("input_boolean", "X", {"icon": ""}) == {"name": "X"}

    def test_unknown_platform(self):
        """Test unknown platform gives None, not an empty config"""
        assert build_helper_config("template", "X", {}) is None
        assert build_helper_config("input_boolean", "X", {}) == {"name": "X"}

    def test_input_number_fields(self):
        """Test platform fields are passed through without range checks"""
        config = build_helper_config("input_number", "Volume", {
            "min": 10, "max": 0, "step": "0.5", "mode": "slider", "icon": "mdi:volume-high",
            "options": ["ignored"],
        })
        assert config == {
            "name": "Volume", "icon": "mdi:volume-high",
            "min": 10, "max": 0, "step": 0.5, "mode": "slider",
        }

    def test_input_select_options(self):
        """Test options list"""
        config = build_helper_config("input_select", "Mode", {"options": ["Home", "Away", 3]})
        assert config["options"] == ["Home", "Away"]

    def test_schedule_days(self):
        """Test schedule time blocks are copied per day"""
        blocks = [{"from": "09:00:00", "to": "17:00:00"}]
        config = build_helper_config("schedule", "Work", {"monday": blocks, "tuesday": []})
        assert config == {"name": "Work", "monday": blocks}

    def test_counter(self):
        """Test counter fields are whole numbers"""
        config = build_helper_config("counter", "Visitors", {
            "initial": "0", "step": 2, "minimum": 0, "maximum": "100", "restore": False, "min": 5,
        })
        assert config == {
            "name": "Visitors", "initial": 0, "step": 2, "minimum": 0, "maximum": 100, "restore": False,
        }

    def test_timer(self):
        """Test timer fields"""
        config = build_helper_config("timer", "Tea", {"duration": "00:03:00", "restore": "true"})
        assert config == {"name": "Tea", "duration": "00:03:00", "restore": True}

    @pytest.mark.parametrize("platform", [p.value for p in HelperPlatform])
    def test_every_platform_has_builder(self, platform):
        """Test each platform yields a config with a name"""
        assert build_helper_config(platform, "Name", {})["name"] == "Name"

    def test_helper_config_for(self):
        """Test wrapping in HelperConfig"""
        config = helper_config_for("input_text", "Note", {"max": 100}, "note")
        assert config.platform == "input_text"
        assert config.to_dict() == {"name": "Note", "max": 100}


class TestEntityIds:
    """Test suite for helper entity id parsing"""

    def test_parse(self):
        """Test valid entity id"""
        assert parse_helper_entity_id("input_number.volume", "input_number") == "volume"

    @pytest.mark.parametrize("entity_id,platform,message", [
        ("light.kitchen", "input_number", "entity_id must be an input_number entity (e.g., input_number.my_value)"),
        ("timer.", "timer", "entity_id must be a timer entity (e.g., timer.my_timer)"),
        ("input_select_mode", "input_select", "entity_id must be an input_select entity"),
    ])
    def test_parse_invalid(self, entity_id, platform, message):
        """Test mismatched platform"""
        with pytest.raises(ToolInputError, match=message.replace("(", r"\(").replace(")", r"\)")):
            parse_helper_entity_id(entity_id, platform)

    def test_created_entity_id(self):
        """Test assigned id wins over fallback"""
        assert helper_entity_id("timer", {"id": "tea_2"}, "tea") == "timer.tea_2"
        assert helper_entity_id("timer", {}, "tea") == "timer.tea"


class TestHelperHandlers:
    """Test suite for input helper tools"""

    def test_list_with_platform(self, mock_client):
        """Test platform filter"""
        mock_client.list_helpers.return_value = [
            make_state("input_boolean.guest", "off", friendly_name="Guest Mode"),
            make_state("input_number.volume", "30", friendly_name="Volume"),
        ]

        result = handle_list_helpers(mock_client, {"platform": "input_number"})

        assert response_text(result).startswith("Found 1 helpers")
        assert response_json(result) == [{
            "entity_id": "input_number.volume",
            "platform": "input_number",
            "state": "30",
            "friendly_name": "Volume",
        }]

    def test_create(self, mock_client):
        """Test create reports the assigned entity id"""
        mock_client.create_helper.return_value = {"id": "guest_mode", "name": "Guest Mode"}

        result = make_create_handler("input_boolean")(mock_client, {"name": "Guest Mode", "icon": "mdi:account"})

        assert response_text(result) == "Input boolean 'Guest Mode' created successfully as input_boolean.guest_mode"
        config = mock_client.create_helper.call_args[0][0]
        assert config.to_dict() == {"name": "Guest Mode", "icon": "mdi:account"}

    def test_create_error(self, mock_client):
        """Test client failure"""
        mock_client.create_helper.side_effect = Exception("name already in use")

        result = make_create_handler("timer")(mock_client, {"name": "Tea"})

        assert response_text(result) == "Error creating timer: name already in use"

    def test_delete_checks_platform(self, mock_client):
        """Test delete rejects another platform"""
        with pytest.raises(ToolInputError):
            make_delete_handler("input_text")(mock_client, {"entity_id": "input_number.volume"})
        mock_client.delete_helper.assert_not_called()

    def test_update(self, mock_client):
        """Test update keeps the current name when none given"""
        mock_client.get_state.return_value = make_state("input_number.volume", "30", friendly_name="Volume")

        result = handle_update_helper(mock_client, {"entity_id": "input_number.volume", "max": 80})

        assert response_text(result) == "Helper 'input_number.volume' updated successfully"
        mock_client.update_helper.assert_called_once_with("input_number", "volume", {"name": "Volume", "max": 80})

    def test_update_unsupported(self, mock_client):
        """Test update on a platform without a builder"""
        result = handle_update_helper(mock_client, {"entity_id": "counter.visits", "name": "Visits"})

        assert result.is_error
        assert response_text(result).startswith("Unsupported helper platform: counter")

    def test_toggle(self, mock_client):
        """Test toggle service call"""
        handle_toggle_input_boolean(mock_client, {"entity_id": "input_boolean.guest"})
        mock_client.call_service.assert_called_once_with("input_boolean", "toggle", {"entity_id": "input_boolean.guest"})

    def test_set_number(self, mock_client):
        """Test numeric strings are accepted"""
        result = handle_set_input_number_value(mock_client, {"entity_id": "input_number.volume", "value": "42"})

        assert response_text(result) == "Input number 'input_number.volume' value set to 42 successfully"
        mock_client.set_helper_value.assert_called_once_with("input_number.volume", 42)

    def test_set_number_missing_value(self, mock_client):
        """Test missing value"""
        result = handle_set_input_number_value(mock_client, {"entity_id": "input_number.volume"})
        assert result.is_error

    def test_select_option(self, mock_client):
        """Test option selection"""
        result = handle_select_option(mock_client, {"entity_id": "input_select.mode", "option": "Away"})
        assert response_text(result) == "Option 'Away' selected successfully for 'input_select.mode'"

    def test_set_options(self, mock_client):
        """Test options replacement"""
        handle_set_options(mock_client, {"entity_id": "input_select.mode", "options": ["Home", "Away"]})
        mock_client.call_service.assert_called_once_with(
            "input_select", "set_options", {"entity_id": "input_select.mode", "options": ["Home", "Away"]}
        )

    def test_set_options_empty(self, mock_client):
        """Test empty options"""
        result = handle_set_options(mock_client, {"entity_id": "input_select.mode", "options": []})
        assert response_text(result) == "options is required and must be a non-empty array"

    def test_set_datetime(self, mock_client):
        """Test only supplied parts are sent"""
        handle_set_input_datetime(mock_client, {"entity_id": "input_datetime.alarm", "time": "07:30:00"})
        mock_client.set_helper_value.assert_called_once_with("input_datetime.alarm", {"time": "07:30:00"})

    def test_set_datetime_requires_value(self, mock_client):
        """Test at least one part"""
        result = handle_set_input_datetime(mock_client, {"entity_id": "input_datetime.alarm"})
        assert response_text(result) == "At least one of datetime, date, or time is required"

    def test_press_button(self, mock_client):
        """Test button press"""
        result = handle_press_input_button(mock_client, {"entity_id": "input_button.doorbell"})
        assert response_text(result) == "Input button 'input_button.doorbell' pressed successfully"
        mock_client.call_service.assert_called_once_with("input_button", "press", {"entity_id": "input_button.doorbell"})


class TestTimerHandlers:
    """Test suite for timer tools"""

    def test_start_with_duration(self, mock_client):
        """Test start forwards duration"""
        handler = make_timer_action_handler(*TIMER_ACTIONS["start_timer"])

        result = handler(mock_client, {"entity_id": "timer.tea", "duration": "00:05:00"})

        assert response_text(result) == "Timer 'timer.tea' started successfully"
        mock_client.call_service.assert_called_once_with("timer", "start", {"entity_id": "timer.tea", "duration": "00:05:00"})

    def test_pause_ignores_duration(self, mock_client):
        """Test only start takes a duration"""
        handler = make_timer_action_handler(*TIMER_ACTIONS["pause_timer"])

        handler(mock_client, {"entity_id": "timer.tea", "duration": "00:05:00"})

        mock_client.call_service.assert_called_once_with("timer", "pause", {"entity_id": "timer.tea"})

    def test_action_error(self, mock_client):
        """Test client failure"""
        mock_client.call_service.side_effect = Exception("not running")
        handler = make_timer_action_handler(*TIMER_ACTIONS["cancel_timer"])

        result = handler(mock_client, {"entity_id": "timer.tea"})

        assert response_text(result) == "Error canceling timer: not running"

    def test_change_requires_duration(self, mock_client):
        """Test change needs a duration"""
        with pytest.raises(ToolInputError, match="duration is required"):
            handle_change_timer(mock_client, {"entity_id": "timer.tea"})

    def test_change(self, mock_client):
        """Test change message"""
        result = handle_change_timer(mock_client, {"entity_id": "timer.tea", "duration": "-00:00:30"})
        assert response_text(result) == "Timer 'timer.tea' duration changed by -00:00:30 successfully"


class TestScheduleHandlers:
    """Test suite for schedule tools"""

    def test_details(self, mock_client):
        """Test state merged with weekly blocks"""
        mock_client.get_state.return_value = make_state(
            "schedule.work_hours", "on", friendly_name="Work Hours", next_event="2024-01-15T17:00:00+00:00"
        )
        mock_client.get_schedule_config.return_value = {
            "id": "work_hours",
            "monday": [{"from": "09:00:00", "to": "17:00:00"}],
            "sunday": [],
        }

        result = handle_get_schedule_details(mock_client, {"entity_id": "schedule.work_hours"})

        data = response_json(result)
        assert data["friendly_name"] == "Work Hours"
        assert data["monday"] == [{"from": "09:00:00", "to": "17:00:00"}]
        assert "sunday" not in data

    def test_details_without_stored_config(self, mock_client):
        """Test YAML schedules report state only"""
        mock_client.get_state.return_value = make_state("schedule.yaml_one", "off")
        mock_client.get_schedule_config.side_effect = Exception("schedule not found: yaml_one")

        result = handle_get_schedule_details(mock_client, {"entity_id": "schedule.yaml_one"})

        assert not result.is_error
        assert response_json(result) == {"entity_id": "schedule.yaml_one", "state": "off"}

    def test_reload(self, mock_client):
        """Test reload service"""
        result = handle_reload_schedule(mock_client, {})
        assert response_text(result) == "Schedules reloaded successfully"
        mock_client.call_service.assert_called_once_with("schedule", "reload", {})


class TestCounterHandlers:
    """Test suite for counter tools"""

    def test_create(self, mock_client):
        """Test counter creation through the helper WebSocket API"""
        mock_client.create_helper.return_value = {"id": "visitors"}
        handler = make_create_handler("counter")

        result = handler(mock_client, {"name": "Visitors", "initial": 0, "step": 1, "maximum": 50})

        assert response_text(result) == "Counter 'Visitors' created successfully as counter.visitors"
        config = mock_client.create_helper.call_args[0][0]
        assert config.platform == "counter"
        assert config.to_dict() == {"name": "Visitors", "initial": 0, "step": 1, "maximum": 50}

    def test_delete_wrong_platform(self, mock_client):
        """Test delete refuses other platforms"""
        handler = make_delete_handler("counter")
        with pytest.raises(ToolInputError, match=r"entity_id must be a counter entity \(e.g., counter.my_counter\)"):
            handler(mock_client, {"entity_id": "timer.tea"})
        mock_client.delete_helper.assert_not_called()

    @pytest.mark.parametrize("tool,service,message", [
        ("increment_counter", "increment", "Counter 'counter.visitors' incremented successfully"),
        ("decrement_counter", "decrement", "Counter 'counter.visitors' decremented successfully"),
        ("reset_counter", "reset", "Counter 'counter.visitors' reset successfully"),
    ])
    def test_actions(self, mock_client, tool, service, message):
        """Test each action calls its counter service"""
        handler = make_counter_action_handler(*COUNTER_ACTIONS[tool])

        result = handler(mock_client, {"entity_id": "counter.visitors"})

        assert response_text(result) == message
        mock_client.call_service.assert_called_once_with("counter", service, {"entity_id": "counter.visitors"})

    def test_action_error(self, mock_client):
        """Test client failure"""
        mock_client.call_service.side_effect = Exception("maximum reached")
        handler = make_counter_action_handler(*COUNTER_ACTIONS["increment_counter"])

        result = handler(mock_client, {"entity_id": "counter.visitors"})

        assert result.is_error
        assert response_text(result) == "Error incrementing counter: maximum reached"

    def test_set_value(self, mock_client):
        """Test set_value sends a whole number"""
        result = handle_set_counter_value(mock_client, {"entity_id": "counter.visitors", "value": "12"})

        assert response_text(result) == "Counter 'counter.visitors' set to 12 successfully"
        mock_client.call_service.assert_called_once_with(
            "counter", "set_value", {"entity_id": "counter.visitors", "value": 12}
        )

    @pytest.mark.parametrize("value", [None, "lots", "inf"])
    def test_set_value_requires_number(self, mock_client, value):
        """Test missing or non-numeric value"""
        with pytest.raises(ToolInputError, match="value is required"):
            handle_set_counter_value(mock_client, {"entity_id": "counter.visitors", "value": value})
        mock_client.call_service.assert_not_called()


class TestGroupHandlers:
    """Test suite for group tools"""

    def test_create(self, mock_client):
        """Test group.set creates the group with its members"""
        result = handle_create_group(mock_client, {
            "name": "Living Room Lights",
            "entities": ["light.lamp", "light.ceiling"],
            "all": "true",
            "icon": "mdi:lightbulb-group",
        })

        assert response_text(result) == (
            "Group 'Living Room Lights' created successfully as group.living_room_lights with 2 entities"
        )
        mock_client.call_service.assert_called_once_with("group", "set", {
            "object_id": "living_room_lights",
            "name": "Living Room Lights",
            "entities": ["light.lamp", "light.ceiling"],
            "all": True,
            "icon": "mdi:lightbulb-group",
        })

    def test_create_with_id(self, mock_client):
        """Test an explicit id is used as the object ID"""
        result = handle_create_group(mock_client, {"name": "Downstairs", "id": "ground_floor", "entities": ["light.a"]})

        assert response_text(result).endswith("as group.ground_floor with 1 entities")

    def test_create_requires_entities(self, mock_client):
        """Test at least one member"""
        with pytest.raises(ToolInputError, match="entities is required and must contain at least one entity ID"):
            handle_create_group(mock_client, {"name": "Empty", "entities": []})

    def test_delete(self, mock_client):
        """Test group.remove with the object ID"""
        result = handle_delete_group(mock_client, {"entity_id": "group.living_room_lights"})

        assert response_text(result) == "Group 'group.living_room_lights' deleted successfully"
        mock_client.call_service.assert_called_once_with("group", "remove", {"object_id": "living_room_lights"})

    def test_delete_wrong_platform(self, mock_client):
        """Test delete refuses non-group entities"""
        with pytest.raises(ToolInputError, match="entity_id must be a group entity"):
            handle_delete_group(mock_client, {"entity_id": "light.kitchen"})

    def test_set_entities(self, mock_client):
        """Test add and remove lists"""
        result = handle_set_group_entities(mock_client, {
            "entity_id": "group.downstairs",
            "add_entities": ["light.hall"],
            "remove_entities": ["light.kitchen"],
        })

        assert response_text(result) == "Group 'group.downstairs' entities updated successfully"
        mock_client.call_service.assert_called_once_with("group", "set", {
            "object_id": "downstairs",
            "add_entities": ["light.hall"],
            "remove_entities": ["light.kitchen"],
        })

    def test_set_entities_requires_change(self, mock_client):
        """Test add or remove is required"""
        with pytest.raises(ToolInputError, match="at least one of add_entities or remove_entities is required"):
            handle_set_group_entities(mock_client, {"entity_id": "group.downstairs"})

    def test_reload_error(self, mock_client):
        """Test reload failure"""
        mock_client.call_service.side_effect = Exception("invalid config")

        result = handle_reload_group(mock_client, {})

        assert result.is_error
        assert response_text(result) == "Error reloading groups: invalid config"
