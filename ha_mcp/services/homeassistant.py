"""Home Assistant client for MCP tool handlers via REST and WebSocket APIs"""

import json
import logging
import ssl
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Dict, List, Optional, Any
from urllib.parse import urlparse

import requests
import websocket

logger = logging.getLogger(__name__)

# Domains reported by list_helpers
HELPER_DOMAINS = [
    "input_boolean",
    "input_number",
    "input_text",
    "input_select",
    "input_datetime",
    "input_button",
    "counter",
]


class ConnectionType(Enum):
    """Connection type to Home Assistant"""
    LOCAL = "local"
    NABU_CASA = "nabu_casa"


# ========== ERRORS ==========

class HomeAssistantError(Exception):
    """Base error for Home Assistant client failures"""


class HomeAssistantAPIError(HomeAssistantError):
    """Non-success HTTP response from the REST API"""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Home Assistant API error (status {status_code}): {message}")


class HomeAssistantWebSocketError(HomeAssistantError):
    """WebSocket connection, authentication or command failure"""


# ========== DATA TYPES ==========

def _script_object_id(script_id: str) -> str:
    return script_id[len("script."):] if script_id.startswith("script.") else script_id


def _as_list(value: Any) -> List[Any]:
    """Normalize a configuration block (triggers, actions, a script sequence) to a list"""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


@dataclass
class AutomationConfig:
    """Automation definition as stored by Home Assistant"""
    id: str = ""
    alias: str = ""
    description: str = ""
    triggers: List[Any] = field(default_factory=list)
    conditions: List[Any] = field(default_factory=list)
    actions: List[Any] = field(default_factory=list)
    mode: str = ""
    variables: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AutomationConfig":
        """Build from an automation config, accepting singular and plural block keys"""
        data = data or {}
        return cls(
            id=str(data.get("id") or ""),
            alias=data.get("alias") or "",
            description=data.get("description") or "",
            triggers=_as_list(data.get("triggers", data.get("trigger"))),
            conditions=_as_list(data.get("conditions", data.get("condition"))),
            actions=_as_list(data.get("actions", data.get("action"))),
            mode=data.get("mode") or "",
            variables=data.get("variables") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key in ("id", "alias", "description"):
            value = getattr(self, key)
            if value:
                result[key] = value
        for key in ("triggers", "conditions", "actions"):
            value = getattr(self, key)
            if value:
                result[key] = value
        if self.mode:
            result["mode"] = self.mode
        if self.variables:
            result["variables"] = self.variables
        return result

    def to_api_payload(self) -> Dict[str, Any]:
        """Body for POST /api/config/automation/config/<id>"""
        payload: Dict[str, Any] = {
            "id": self.id,
            "alias": self.alias,
            "description": self.description,
            "trigger": self.triggers,
            "condition": self.conditions,
            "action": self.actions,
            "mode": self.mode or "single",
        }
        if self.variables:
            payload["variables"] = self.variables
        return payload


@dataclass
class Automation:
    """Automation entity with optional configuration"""
    entity_id: str
    state: str = ""
    friendly_name: str = ""
    last_triggered: str = ""
    config: Optional[AutomationConfig] = None

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "Automation":
        attributes = state.get("attributes") or {}
        return cls(
            entity_id=state.get("entity_id", ""),
            state=state.get("state", ""),
            friendly_name=attributes.get("friendly_name") or "",
            last_triggered=attributes.get("last_triggered") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"entity_id": self.entity_id, "state": self.state}
        if self.friendly_name:
            result["friendly_name"] = self.friendly_name
        if self.last_triggered:
            result["last_triggered"] = self.last_triggered
        if self.config is not None:
            result["config"] = self.config.to_dict()
        return result


@dataclass
class HelperConfig:
    """Creation payload for a storage-based helper"""
    platform: str
    name: str
    id: str = ""
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {"name": self.name}
        result.update(self.options)
        return result


@dataclass
class SceneState:
    """Target state of one entity in a scene"""
    state: str = ""
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        # Home Assistant stores attributes flat beside the state
        result = dict(self.attributes)
        if self.state:
            result["state"] = self.state
        return result


@dataclass
class SceneConfig:
    id: str
    name: str
    entities: Dict[str, SceneState] = field(default_factory=dict)
    icon: str = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "entities": {entity_id: s.to_dict() for entity_id, s in self.entities.items()},
        }
        if self.icon:
            result["icon"] = self.icon
        return result


@dataclass
class ScriptConfig:
    """Script definition as stored by Home Assistant"""
    alias: str = ""
    sequence: List[Any] = field(default_factory=list)
    description: str = ""
    mode: str = ""
    icon: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ScriptConfig":
        data = data or {}
        return cls(
            alias=data.get("alias") or "",
            sequence=_as_list(data.get("sequence")),
            description=data.get("description") or "",
            mode=data.get("mode") or "",
            icon=data.get("icon") or "",
            fields=data.get("fields") or {},
            variables=data.get("variables") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key in ("alias", "description", "mode", "icon"):
            value = getattr(self, key)
            if value:
                result[key] = value
        if self.fields:
            result["fields"] = self.fields
        if self.variables:
            result["variables"] = self.variables
        result["sequence"] = self.sequence
        return result


@dataclass
class Target:
    """Target selector used by the *_for_target WebSocket commands"""
    entity_id: List[str] = field(default_factory=list)
    device_id: List[str] = field(default_factory=list)
    area_id: List[str] = field(default_factory=list)
    label_id: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.entity_id or self.device_id or self.area_id or self.label_id)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            key: getattr(self, key)
            for key in ("entity_id", "device_id", "area_id", "label_id")
            if getattr(self, key)
        }


@dataclass
class ExtractFromTargetResult:
    """Entities, devices and areas a target resolves to"""
    referenced_entities: List[str] = field(default_factory=list)
    referenced_devices: List[str] = field(default_factory=list)
    referenced_areas: List[str] = field(default_factory=list)
    missing_devices: List[str] = field(default_factory=list)
    missing_areas: List[str] = field(default_factory=list)
    missing_floors: List[str] = field(default_factory=list)
    missing_labels: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExtractFromTargetResult":
        data = data or {}
        return cls(**{key: list(data.get(key) or []) for key in cls.__dataclass_fields__})

    def to_dict(self) -> Dict[str, List[str]]:
        return {key: getattr(self, key) for key in self.__dataclass_fields__}


# ========== CLIENT ==========

class HomeAssistantClient:
    """Synchronous client for the Home Assistant REST and WebSocket APIs"""

    def __init__(self, url: str, access_token: str, verify_ssl: bool = True, timeout: int = 30):
        """
        Initialize Home Assistant client

        Args:
            url: Home Assistant URL (local or Nabu Casa remote URL)
            access_token: Long-lived access token
            verify_ssl: Whether to verify SSL certificates
            timeout: Per-request timeout in seconds
        """
        self.url = url.rstrip('/')
        self.access_token = access_token
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.connection_type = self._detect_connection_type()
        self.headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json"
        }

        logger.info(f"Initialized Home Assistant client ({self.connection_type.value}): {self.url}")

    def _detect_connection_type(self) -> ConnectionType:
        """Detect if this is a local or Nabu Casa connection"""
        parsed = urlparse(self.url)
        if 'ui.nabu.casa' in parsed.netloc or 'remote.nabucasa.com' in parsed.netloc:
            return ConnectionType.NABU_CASA
        return ConnectionType.LOCAL

    # ========== TRANSPORT ==========

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """
        Perform a REST call and decode the JSON body

        Args:
            method: HTTP method
            path: API path beginning with /api
            **kwargs: Passed through to requests (json, params)

        Returns:
            Decoded JSON body, or None for empty responses
        """
        logger.debug(f"{method} {path}")
        try:
            response = requests.request(
                method,
                f"{self.url}{path}",
                headers=self.headers,
                verify=self.verify_ssl,
                timeout=self.timeout,
                **kwargs
            )
        except requests.exceptions.Timeout as e:
            raise HomeAssistantError(
                f"Connection to Home Assistant timed out after {self.timeout} seconds.\n"
                "Possible issues:\n"
                "  • Home Assistant is not running\n"
                "  • Network connectivity issues\n"
                f"  • Incorrect HA_URL configuration (current: {self.url})"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise HomeAssistantError(
                f"Cannot connect to Home Assistant at {self.url}.\n"
                "To fix:\n"
                "  • Verify HA_URL environment variable\n"
                "  • Check Home Assistant is running\n"
                f"Original error: {str(e)}"
            ) from e

        if response.status_code >= 400:
            logger.error(f"{method} {path} failed with HTTP {response.status_code}")
            raise self._api_error(response.status_code, response.text, path)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _api_error(self, status_code: int, body: str, path: str) -> HomeAssistantAPIError:
        if status_code == 401:
            return HomeAssistantAPIError(status_code, (
                "authentication failed.\n"
                "To fix:\n"
                "  • Check your HA_TOKEN is valid\n"
                "  • Generate a new token in Home Assistant: Profile → Long-Lived Access Tokens"
            ))
        if status_code == 403:
            return HomeAssistantAPIError(status_code, (
                f"access denied for {path}.\n"
                "To fix:\n"
                "  • Configuration endpoints require a token owned by an administrator"
            ))
        if status_code == 404:
            return HomeAssistantAPIError(status_code, f"not found: {path}")
        return HomeAssistantAPIError(status_code, body or "no response body")

    def _ws_url(self) -> str:
        ws_url = self.url.replace('http://', 'ws://').replace('https://', 'wss://')
        return f"{ws_url}/api/websocket"

    def _send_ws_command(self, command_type: str, **payload) -> Any:
        """
        Run a single WebSocket command on a fresh authenticated connection

        Args:
            command_type: WebSocket message type (e.g. 'automation/config')
            **payload: Additional message fields

        Returns:
            The 'result' field of the command response
        """
        sslopt = {"cert_reqs": ssl.CERT_NONE} if not self.verify_ssl else None
        logger.debug(f"WebSocket command {command_type}")

        try:
            ws = websocket.create_connection(self._ws_url(), sslopt=sslopt, timeout=self.timeout)
        except (websocket.WebSocketException, OSError) as e:
            logger.error(f"WebSocket connection failed: {e}")
            raise HomeAssistantWebSocketError(f"connection failed: {e}") from e

        try:
            auth_required = json.loads(ws.recv())
            if auth_required.get('type') != 'auth_required':
                raise HomeAssistantWebSocketError(f"unexpected initial message: {auth_required}")

            ws.send(json.dumps({"type": "auth", "access_token": self.access_token}))
            auth_result = json.loads(ws.recv())
            if auth_result.get('type') != 'auth_ok':
                raise HomeAssistantWebSocketError(
                    f"authentication failed: {auth_result.get('message', 'invalid access token')}"
                )

            ws.send(json.dumps({"id": 1, "type": command_type, **payload}))
            while True:
                data = json.loads(ws.recv())
                # Skip anything that is not the reply to our command
                if data.get('id') == 1 and data.get('type') == 'result':
                    break

            if not data.get('success'):
                error = data.get('error') or {}
                logger.error(f"WebSocket command {command_type} failed: {error}")
                raise HomeAssistantWebSocketError(
                    f"command failed: {error.get('code', 'unknown_error')} - "
                    f"{error.get('message', 'Unknown error')}"
                )
            return data.get('result')
        except (websocket.WebSocketException, OSError, ValueError) as e:
            raise HomeAssistantWebSocketError(f"{command_type} failed: {e}") from e
        finally:
            ws.close()

    # ========== CORE API ==========

    def test_connection(self) -> Dict[str, Any]:
        """Test connection to Home Assistant"""
        try:
            data = self._request("GET", "/api/") or {}
            return {
                "status": "success",
                "message": data.get("message", "API running."),
                "connection_type": self.connection_type.value,
                "url": self.url
            }
        except HomeAssistantError as e:
            return {
                "status": "error",
                "error": str(e),
                "connection_type": self.connection_type.value,
                "url": self.url
            }

    def get_config(self) -> Dict[str, Any]:
        """Get Home Assistant configuration"""
        return self._request("GET", "/api/config")

    def get_states(self) -> List[Dict[str, Any]]:
        """Get the current state of every entity"""
        return self._request("GET", "/api/states") or []

    def get_state(self, entity_id: str) -> Dict[str, Any]:
        """Get the current state of a single entity"""
        return self._request("GET", f"/api/states/{entity_id}")

    def get_history(self, entity_id: str, start_time: Optional[datetime] = None,
                    end_time: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Get state history for an entity

        Args:
            entity_id: Entity ID to get history for
            start_time: Start time (defaults to 24 hours ago)
            end_time: End time (defaults to now)

        Returns:
            List of historical states, oldest first
        """
        if not start_time:
            start_time = datetime.now(timezone.utc) - timedelta(days=1)
        if not end_time:
            end_time = datetime.now(timezone.utc)

        params = {
            "filter_entity_id": entity_id,
            "end_time": end_time.isoformat(),
            "minimal_response": "false",
            "no_attributes": "false"
        }
        history = self._request("GET", f"/api/history/period/{start_time.isoformat()}", params=params)

        # History API returns a list of lists, one per requested entity
        return history[0] if history else []

    def call_service(self, domain: str, service: str,
                     service_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call a Home Assistant service

        Args:
            domain: Service domain (e.g., 'light', 'automation')
            service: Service name (e.g., 'turn_on', 'reload')
            service_data: Service data including any entity_id target

        Returns:
            States changed by the service call
        """
        return self._request("POST", f"/api/services/{domain}/{service}", json=service_data or {})

    # ========== AUTOMATIONS ==========

    def list_automations(self) -> List[Automation]:
        """List automation entities from the state machine"""
        return [
            Automation.from_state(state)
            for state in self.get_states()
            if state.get("entity_id", "").startswith("automation.")
        ]

    def get_automation(self, automation_id: str) -> Automation:
        """
        Get an automation and its stored configuration

        Args:
            automation_id: Entity ID or object ID of the automation

        Returns:
            Automation with config populated
        """
        entity_id = automation_id if automation_id.startswith("automation.") else f"automation.{automation_id}"
        result = self._send_ws_command("automation/config", entity_id=entity_id) or {}

        try:
            automation = Automation.from_state(self.get_state(entity_id))
        except HomeAssistantError as e:
            logger.debug(f"No state for {entity_id}: {e}")
            automation = Automation(entity_id=entity_id)
        automation.config = AutomationConfig.from_dict(result.get("config"))
        return automation

    def create_automation(self, config: AutomationConfig) -> Any:
        """Create an automation through the config API"""
        if not config.id:
            raise ValueError("Automation config requires an id")
        return self._request(
            "POST",
            f"/api/config/automation/config/{config.id}",
            json=config.to_api_payload()
        )

    def update_automation(self, automation_id: str, config: AutomationConfig) -> Any:
        """Replace the stored configuration of an automation"""
        config.id = config.id or automation_id
        return self._request(
            "POST",
            f"/api/config/automation/config/{automation_id}",
            json=config.to_api_payload()
        )

    def delete_automation(self, automation_id: str) -> Any:
        return self._request("DELETE", f"/api/config/automation/config/{automation_id}")

    def toggle_automation(self, entity_id: str, enabled: bool) -> Any:
        service = "turn_on" if enabled else "turn_off"
        return self.call_service("automation", service, {"entity_id": entity_id})

    # ========== HELPERS ==========

    def list_helpers(self) -> List[Dict[str, Any]]:
        """List helper entities (input_*, counter) from the state machine"""
        return [
            state for state in self.get_states()
            if state.get("entity_id", "").split(".", 1)[0] in HELPER_DOMAINS
        ]

    def create_helper(self, config: HelperConfig) -> Dict[str, Any]:
        """
        Create a storage-based helper

        Home Assistant derives the object ID from the name; the created item
        (including its 'id') is returned.
        """
        return self._send_ws_command(f"{config.platform}/create", **config.to_dict()) or {}

    def update_helper(self, platform: str, helper_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Update a storage-based helper in place"""
        payload = {f"{platform}_id": helper_id}
        payload.update(fields)
        return self._send_ws_command(f"{platform}/update", **payload) or {}

    def delete_helper(self, entity_id: str) -> Any:
        """Delete a storage-based helper by entity ID"""
        if "." not in entity_id:
            raise ValueError(f"Invalid helper entity_id: '{entity_id}'")
        platform, helper_id = entity_id.split(".", 1)
        return self._send_ws_command(f"{platform}/delete", **{f"{platform}_id": helper_id})

    def set_helper_value(self, entity_id: str, value: Any) -> Any:
        """
        Set the value of an input helper using the matching service

        Args:
            entity_id: Helper entity ID (e.g. 'input_number.volume')
            value: New value; for input_datetime a dict of date/time/datetime fields

        Returns:
            Service call result
        """
        platform = entity_id.split(".", 1)[0]
        data: Dict[str, Any] = {"entity_id": entity_id}

        if platform == "input_boolean":
            service = "turn_on" if value else "turn_off"
        elif platform in ("input_number", "input_text"):
            service = "set_value"
            data["value"] = value
        elif platform == "input_select":
            service = "select_option"
            data["option"] = value
        elif platform == "input_datetime":
            service = "set_datetime"
            if isinstance(value, dict):
                data.update(value)
            else:
                data["datetime"] = value
        else:
            raise ValueError(
                f"Cannot set a value on '{entity_id}'.\n"
                "Supported helper domains: input_boolean, input_number, input_text, input_select, input_datetime"
            )
        return self.call_service(platform, service, data)

    # ========== SCENES ==========

    def list_scenes(self) -> List[Dict[str, Any]]:
        return [
            state for state in self.get_states()
            if state.get("entity_id", "").startswith("scene.")
        ]

    def get_scene(self, scene_id: str) -> Dict[str, Any]:
        entity_id = scene_id if scene_id.startswith("scene.") else f"scene.{scene_id}"
        return self.get_state(entity_id)

    def create_scene(self, config: SceneConfig) -> Any:
        return self._request("POST", f"/api/config/scene/config/{config.id}", json=config.to_dict())

    def update_scene(self, scene_id: str, config: SceneConfig) -> Any:
        config.id = scene_id
        return self._request("POST", f"/api/config/scene/config/{scene_id}", json=config.to_dict())

    def delete_scene(self, scene_id: str) -> Any:
        return self._request("DELETE", f"/api/config/scene/config/{scene_id}")

    def activate_scene(self, scene_id: str, transition: Optional[float] = None) -> Any:
        entity_id = scene_id if scene_id.startswith("scene.") else f"scene.{scene_id}"
        data: Dict[str, Any] = {"entity_id": entity_id}
        if transition is not None:
            data["transition"] = transition
        return self.call_service("scene", "turn_on", data)

    # ========== SCRIPTS ==========

    def list_scripts(self) -> List[Dict[str, Any]]:
        return [
            state for state in self.get_states()
            if state.get("entity_id", "").startswith("script.")
        ]

    def get_script_config(self, script_id: str) -> ScriptConfig:
        """Get the stored configuration of a UI-managed script"""
        return ScriptConfig.from_dict(self._request("GET", f"/api/config/script/config/{_script_object_id(script_id)}"))

    def save_script(self, script_id: str, config: ScriptConfig) -> Any:
        """Create or replace a script through the config API"""
        return self._request(
            "POST",
            f"/api/config/script/config/{_script_object_id(script_id)}",
            json=config.to_dict()
        )

    def delete_script(self, script_id: str) -> Any:
        return self._request("DELETE", f"/api/config/script/config/{_script_object_id(script_id)}")

    def run_script(self, script_id: str, variables: Optional[Dict[str, Any]] = None) -> Any:
        """Start a script, passing variables through script.turn_on"""
        data: Dict[str, Any] = {"entity_id": f"script.{_script_object_id(script_id)}"}
        if variables:
            data["variables"] = variables
        return self.call_service("script", "turn_on", data)

    # ========== GROUPS ==========

    def list_groups(self) -> List[Dict[str, Any]]:
        return [
            state for state in self.get_states()
            if state.get("entity_id", "").startswith("group.")
        ]

    # ========== REGISTRIES ==========

    def get_entity_area(self, entity_id: str) -> Optional[str]:
        """
        Area an entity belongs to

        The entity registry entry's own area wins; otherwise the area of its
        device is used.

        Returns:
            Area ID, or None when the entity has no area
        """
        entry = self._send_ws_command("config/entity_registry/get", entity_id=entity_id) or {}
        if entry.get("area_id"):
            return entry["area_id"]

        device_id = entry.get("device_id")
        if not device_id:
            return None
        for device in self._send_ws_command("config/device_registry/list") or []:
            if device.get("id") == device_id:
                return device.get("area_id") or None
        return None

    # ========== SCHEDULES ==========

    def get_schedule_config(self, schedule_id: str) -> Dict[str, Any]:
        """
        Get the stored weekly configuration of a schedule helper

        Args:
            schedule_id: Schedule object ID or entity ID

        Returns:
            Schedule item with per-day time ranges
        """
        object_id = schedule_id.split(".", 1)[1] if schedule_id.startswith("schedule.") else schedule_id
        for item in self._send_ws_command("schedule/list") or []:
            if item.get("id") == object_id:
                return item
        raise HomeAssistantError(f"schedule not found: {object_id}")

    # ========== TARGETS ==========

    def _target_command(self, command_type: str, target: Target, expand_group: bool) -> Any:
        return self._send_ws_command(command_type, target=target.to_dict(), expand_group=expand_group)

    def get_triggers_for_target(self, target: Target, expand_group: bool = False) -> List[str]:
        return list(self._target_command("get_triggers_for_target", target, expand_group) or [])

    def get_conditions_for_target(self, target: Target, expand_group: bool = False) -> List[str]:
        return list(self._target_command("get_conditions_for_target", target, expand_group) or [])

    def get_services_for_target(self, target: Target, expand_group: bool = False) -> List[str]:
        return list(self._target_command("get_services_for_target", target, expand_group) or [])

    def extract_from_target(self, target: Target, expand_group: bool = False) -> ExtractFromTargetResult:
        """Resolve a target to the entities, devices and areas it refers to"""
        return ExtractFromTargetResult.from_dict(
            self._target_command("extract_from_target", target, expand_group)
        )
