"""Unit tests for target tools"""

import pytest

from ha_mcp.registry import ToolInputError
from ha_mcp.services.homeassistant import ExtractFromTargetResult, Target
from ha_mcp.tools.targets import make_target_handler, parse_target

from conftest import response_json, response_text


class TestParseTarget:
    """Test suite for parse_target"""

    def test_lists_and_flag(self):
        """Test list arguments and expand_group"""
        target, expand_group = parse_target({
            "entity_id": ["light.kitchen"],
            "area_id": ["kitchen", ""],
            "expand_group": "true",
        })
        assert target == Target(entity_id=["light.kitchen"], area_id=["kitchen"])
        assert expand_group is True

    def test_single_string(self):
        """Test a bare string is treated as a one-item list"""
        target, expand_group = parse_target({"label_id": "outdoor"})
        assert target.to_dict() == {"label_id": ["outdoor"]}
        assert expand_group is False

    def test_empty_target(self):
        """Test at least one selector is required"""
        with pytest.raises(ToolInputError, match="at least one of entity_id, device_id, area_id, or label_id is required"):
            parse_target({"entity_id": []})


class TestTargetHandlers:
    """Test suite for target query handlers"""

    def test_triggers(self, mock_client):
        """Test trigger list output"""
        mock_client.get_triggers_for_target.return_value = ["state", "numeric_state"]
        handler = make_target_handler("get_triggers_for_target", "getting triggers for target")

        result = handler(mock_client, {"entity_id": ["sensor.temperature"]})

        assert response_json(result) == ["state", "numeric_state"]
        mock_client.get_triggers_for_target.assert_called_once_with(
            Target(entity_id=["sensor.temperature"]), False
        )

    def test_services_error(self, mock_client):
        """Test client failure"""
        mock_client.get_services_for_target.side_effect = Exception("unknown_command")
        handler = make_target_handler("get_services_for_target", "getting services for target")

        result = handler(mock_client, {"device_id": ["abc123"]})

        assert result.is_error
        assert response_text(result) == "Error getting services for target: unknown_command"

    def test_extract(self, mock_client):
        """Test extract result is serialized"""
        mock_client.extract_from_target.return_value = ExtractFromTargetResult(
            referenced_entities=["light.kitchen", "light.pantry"],
            referenced_areas=["kitchen"],
        )
        handler = make_target_handler("extract_from_target", "extracting from target")

        result = handler(mock_client, {"area_id": ["kitchen"], "expand_group": True})

        data = response_json(result)
        assert data["referenced_entities"] == ["light.kitchen", "light.pantry"]
        assert data["missing_devices"] == []
