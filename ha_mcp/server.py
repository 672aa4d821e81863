#!/usr/bin/env python3
"""
Home Assistant MCP Server
MCP tools for Home Assistant automations, entities, scenes, helpers, timers,
schedules and targets
"""

import sys
import json
import logging
import argparse
from dataclasses import replace
from typing import Optional, Dict, Any, List

from fastmcp import FastMCP

from . import __version__
from .config import Settings, load_environment
from .registry import ToolRegistry
from .services.homeassistant import HomeAssistantClient
from .tools import register_tools

# Load environment variables (.env, .env.local) without overriding the process
load_environment()


def _initial_log_level() -> int:
    try:
        return Settings.from_env().effective_log_level
    except ValueError:
        return logging.INFO


# Configure logging; stdout belongs to the stdio transport
logging.basicConfig(
    level=_initial_log_level(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr
)
logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = FastMCP(name="HomeAssistantMCP")

# Client instance (initialized on first use)
_ha_client: Optional[HomeAssistantClient] = None


def get_settings() -> Optional[Settings]:
    """Current settings, or None when the environment holds invalid values"""
    try:
        return Settings.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return None


def get_ha_client() -> Optional[HomeAssistantClient]:
    """Get or initialize the Home Assistant client"""
    global _ha_client

    if _ha_client is None:
        settings = get_settings()
        if settings is None:
            return None
        if not settings.is_configured:
            logger.warning("Home Assistant not configured. Set HA_URL and HA_TOKEN in environment.")
            return None

        try:
            client = HomeAssistantClient(
                url=settings.ha_url,
                access_token=settings.ha_token,
                verify_ssl=settings.verify_ssl,
                timeout=settings.timeout
            )
            result = client.test_connection()
            if result.get('status') == 'success':
                logger.info(f"Initialized Home Assistant client ({result.get('connection_type')})")
                _ha_client = client
            else:
                logger.error(f"Home Assistant connection test failed: {result.get('error')}")
                return None
        except Exception as e:
            logger.error(f"Failed to initialize Home Assistant client: {e}")
            return None

    return _ha_client


def reset_ha_client() -> None:
    """Drop the cached client so the next call reconnects"""
    global _ha_client
    _ha_client = None


# Register Home Assistant tools
registry = ToolRegistry(get_ha_client)
register_tools(registry)
registry.attach(mcp)


# ==================== Server Tools ====================

@mcp.tool(
    name="get_server_status",
    description="""Get the current status of the Home Assistant connection.

## Returns
• Home Assistant connection status, type and version
• Server version
• Number of registered Home Assistant tools

## Use Cases
• Health check
• Troubleshooting connections

## Related Tools
• Use `get_server_config` for configuration details""",
    title="Server Status",
    annotations={"title": "Server Status", "readOnlyHint": True}
)
def get_server_status() -> Dict[str, Any]:
    """Get the status of the Home Assistant connection"""
    status: Dict[str, Any] = {
        "server": "HomeAssistantMCP",
        "version": __version__,
        "tool_count": len(registry.list_tools()),
        "services": {}
    }

    client = get_ha_client()
    if client:
        test = client.test_connection()
        if test.get('status') == 'success':
            status["services"]["homeassistant"] = {
                "status": "active",
                "connection_type": test.get('connection_type')
            }
            try:
                ha_config = client.get_config() or {}
                status["services"]["homeassistant"]["version"] = ha_config.get("version")
                status["services"]["homeassistant"]["location_name"] = ha_config.get("location_name")
            except Exception as e:
                logger.warning(f"Could not read Home Assistant configuration: {e}")
        else:
            status["services"]["homeassistant"] = {"status": "error", "error": test.get('error')}
            reset_ha_client()
    else:
        status["services"]["homeassistant"] = {"status": "not_configured"}

    return status


@mcp.tool(
    name="get_server_config",
    description="""Get the current server configuration (non-sensitive values only).

## Returns
• Home Assistant URL and whether a token is set
• SSL verification and timeout
• Transport and log level

## Related Tools
• Use `get_server_status` for connection health

⚠️ **Note**: The access token is masked""",
    title="Server Configuration",
    annotations={"title": "Server Configuration", "readOnlyHint": True}
)
def get_server_config() -> Dict[str, Any]:
    """Get the current server configuration (non-sensitive)"""
    settings = get_settings()
    if settings is None:
        return {"error": "Invalid configuration; check the server logs"}
    config = settings.to_dict(mask_secrets=True)
    config["homeassistant_configured"] = settings.is_configured
    return config


# ==================== Command Line ====================

def tool_names() -> List[str]:
    """Names of every registered tool, server tools included"""
    return [spec.name for spec in registry.list_tools()] + ["get_server_status", "get_server_config"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ha-mcp", description="Home Assistant MCP server")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the MCP server (default)")
    serve.add_argument("--transport", choices=["stdio", "http"], help="Override HA_MCP_TRANSPORT")
    serve.add_argument("--host", help="Override HA_MCP_HOST")
    serve.add_argument("--port", type=int, help="Override HA_MCP_PORT")

    subparsers.add_parser("config", help="Print the effective configuration")
    subparsers.add_parser("tools", help="List the registered tools")
    return parser


def serve(settings: Settings, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the MCP server on the configured transport"""
    if not settings.is_configured:
        logger.warning("Home Assistant not configured. Set HA_URL and HA_TOKEN in .env.local or .env")

    if settings.transport == "http":
        host = host or settings.host
        port = port or settings.port
        logger.info(f"Starting HomeAssistantMCP server on http://{host}:{port}/mcp")
        mcp.run(transport="http", host=host, port=port)
    else:
        logger.info("Starting HomeAssistantMCP server (stdio)...")
        mcp.run()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    if args.command == "config":
        print(json.dumps(settings.to_dict(mask_secrets=True), indent=2))
        return 0

    if args.command == "tools":
        for name in tool_names():
            print(name)
        return 0

    transport = getattr(args, "transport", None)
    if transport:
        settings = replace(settings, transport=transport)
    try:
        settings.validate(require_token=False)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    serve(
        settings,
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
