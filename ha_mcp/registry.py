"""
Tool registry and dispatch
Maps tool names to handlers, runs them against the Home Assistant client and
publishes them on a FastMCP server.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool
from fastmcp.tools.tool import ToolResult as MCPToolResult
from mcp.types import TextContent, ToolAnnotations
from pydantic import Field

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = (
    "Home Assistant is not configured or unreachable.\n"
    "To fix:\n"
    "  • Set HA_URL and HA_TOKEN in the environment, .env or .env.local\n"
    "  • Use `get_server_status` to check the connection"
)


class ToolInputError(ValueError):
    """Invalid or missing tool argument"""


@dataclass
class ToolResult:
    """Result envelope returned by every tool: text blocks plus an error flag"""
    content: List[Dict[str, str]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}])

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}], is_error=True)

    @property
    def text_content(self) -> str:
        """All text blocks joined with newlines"""
        return "\n".join(block.get("text", "") for block in self.content)

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "is_error": self.is_error}


Handler = Callable[[Any, Dict[str, Any]], ToolResult]


@dataclass
class ToolSpec:
    """Static metadata and handler for one tool"""
    name: str
    title: str
    description: str
    input_schema: Dict[str, Any]
    handler: Handler
    read_only: bool = False


class ToolRegistry:
    """Name-to-handler table with a single tool-call entry point"""

    def __init__(self, client_factory: Callable[[], Optional[Any]]):
        """
        Initialize the registry

        Args:
            client_factory: Returns the Home Assistant client, or None when
                Home Assistant is not configured
        """
        self._client_factory = client_factory
        self._tools: Dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> ToolSpec:
        if spec.name in self._tools:
            raise ValueError(f"Tool '{spec.name}' is already registered")
        self._tools[spec.name] = spec
        return spec

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def list_tools(self) -> List[ToolSpec]:
        return list(self._tools.values())

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Dispatch a tool call

        Args:
            name: Registered tool name
            arguments: Untyped argument map from the caller

        Returns:
            ToolResult; failures are reported with is_error set, never raised
        """
        spec = self.get(name)
        if spec is None:
            return ToolResult.error(f"Unknown tool: {name}")

        client = self._client_factory()
        if client is None:
            return ToolResult.error(NOT_CONFIGURED_MESSAGE)

        logger.debug(f"Calling tool {name}")
        try:
            return spec.handler(client, arguments or {})
        except ToolInputError as e:
            return ToolResult.error(str(e))
        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return ToolResult.error(f"Error executing {name}: {e}")

    def attach(self, mcp: FastMCP) -> None:
        """Publish every registered tool on a FastMCP server"""
        for spec in self._tools.values():
            mcp.add_tool(RegistryTool.from_spec(spec, self))
        logger.info(f"Registered {len(self._tools)} Home Assistant tools")


class RegistryTool(Tool):
    """FastMCP tool that forwards its raw arguments to the registry"""

    registry: Any = Field(default=None, exclude=True)

    @classmethod
    def from_spec(cls, spec: ToolSpec, registry: ToolRegistry) -> "RegistryTool":
        return cls(
            name=spec.name,
            title=spec.title,
            description=spec.description,
            parameters=spec.input_schema,
            annotations=ToolAnnotations(title=spec.title, readOnlyHint=spec.read_only),
            registry=registry,
        )

    async def run(self, arguments: Dict[str, Any]) -> MCPToolResult:
        result = self.registry.call_tool(self.name, arguments)
        if result.is_error:
            raise ToolError(result.text_content)
        return MCPToolResult(
            content=[TextContent(type="text", text=block["text"]) for block in result.content]
        )
