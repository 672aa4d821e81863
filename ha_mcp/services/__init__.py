"""
Services package for Home Assistant MCP Server
Contains the Home Assistant REST/WebSocket client.
"""

from .homeassistant import (
    HomeAssistantClient,
    HomeAssistantError,
    HomeAssistantAPIError,
    HomeAssistantWebSocketError,
)

__all__ = [
    'HomeAssistantClient',
    'HomeAssistantError',
    'HomeAssistantAPIError',
    'HomeAssistantWebSocketError',
]
