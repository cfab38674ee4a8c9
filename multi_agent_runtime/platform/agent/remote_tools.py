"""Tools served by an external tool source.

A ToolSource is anything that can list tool schemas and invoke a tool by
name (an MCP-style tool server client, an in-process plugin host, ...).
Its tools are converted into ordinary Tool instances so agents use them
exactly like local tools. The source is responsible for its own internal
synchronization; RemoteTool holds no per-call state.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from multi_agent_runtime.platform.agent.context import ToolContext
from multi_agent_runtime.platform.agent.errors import AgentConfigurationError
from multi_agent_runtime.platform.agent.tools import JSON_TYPES, Tool, ToolParameter

logger = logging.getLogger(__name__)


class ToolSource(Protocol):
    """Protocol for a provider of remotely executed tools."""

    def list_tools(self) -> list[Any]:
        """Return tool descriptors with name, description, and inputSchema."""
        ...

    def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a tool by its original name."""
        ...


@dataclass(frozen=True)
class ToolSourceConfig:
    """A tool source plus the name prefix applied to its tools.

    Attributes:
        source: The tool source
        prefix: Optional prefix avoiding collisions between sources ("<prefix>_<name>")
        label: Name used in collision errors (defaults to the source's repr)
    """

    source: ToolSource
    prefix: str | None = None
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or repr(self.source)


def _descriptor_field(descriptor: Any, key: str) -> Any:
    if isinstance(descriptor, Mapping):
        return descriptor.get(key)
    return getattr(descriptor, key, None)


def parameters_from_schema(tool_name: str, schema: Any) -> tuple[ToolParameter, ...]:
    """Translate a JSON schema object into parameter declarations.

    Unknown property types fall back to string. An invalid schema yields no
    parameters (arguments are then passed through unvalidated).
    """
    if not schema:
        return ()
    if not isinstance(schema, Mapping) or "properties" not in schema:
        logger.warning(
            "Invalid tool schema for '%s': expected dict with 'properties' key, "
            "got %s. Tool will not have argument validation.",
            tool_name,
            type(schema).__name__,
        )
        return ()

    required = set(schema.get("required") or [])
    parameters = []
    for name, info in (schema.get("properties") or {}).items():
        info = info if isinstance(info, Mapping) else {}
        json_type = info.get("type", "string")
        if json_type not in JSON_TYPES:
            json_type = "string"
        parameters.append(
            ToolParameter(
                name=name,
                type=json_type,
                description=info.get("description", ""),
                required=name in required,
            )
        )
    return tuple(parameters)


class RemoteTool(Tool):
    """Tool delegating perform() to a ToolSource."""

    def __init__(self, source: ToolSource, descriptor: Any, prefix: str | None = None) -> None:
        """Initialize from a source's tool descriptor.

        Args:
            source: Source that executes the tool
            descriptor: Mapping or object with name, description, and inputSchema
            prefix: Optional name prefix
        """
        original_name = _descriptor_field(descriptor, "name")
        if not original_name:
            raise AgentConfigurationError(f"Remote tool descriptor without a name: {descriptor!r}")

        self.source = source
        self.original_name = str(original_name)
        super().__init__(
            name=f"{prefix}_{self.original_name}" if prefix else self.original_name,
            description=_descriptor_field(descriptor, "description") or f"Remote tool: {self.original_name}",
            parameters=parameters_from_schema(
                self.original_name, _descriptor_field(descriptor, "inputSchema")
            ),
        )

    def perform(self, context: ToolContext, **params: Any) -> Any:
        # the source only knows the unprefixed name
        result = self.source.call_tool(self.original_name, params)
        if result is None:
            return "No result"
        return result


def load_remote_tools(*sources: ToolSource | ToolSourceConfig) -> list[Tool]:
    """Fetch and convert the tools of one or more sources.

    Raises:
        AgentConfigurationError: If two sources expose the same (prefixed) tool name
    """
    tools: list[Tool] = []
    seen: dict[str, str] = {}  # tool_name -> source
    for item in sources:
        config = item if isinstance(item, ToolSourceConfig) else ToolSourceConfig(source=item)
        for descriptor in config.source.list_tools():
            tool = RemoteTool(config.source, descriptor, prefix=config.prefix)
            if tool.name in seen:
                raise AgentConfigurationError(
                    f"Tool name collision: '{tool.name}' from {config.display_name} "
                    f"conflicts with {seen[tool.name]}. "
                    f"Set a prefix on one or both tool sources."
                )
            seen[tool.name] = config.display_name
            tools.append(tool)
    logger.debug("Loaded %d remote tools from %d sources", len(tools), len(sources))
    return tools
