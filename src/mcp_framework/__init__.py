"""MCP Framework - A general-purpose framework for building MCP servers with annotations.

This framework allows you to create MCP servers by simply defining a class with
annotated methods: tools, resources (static or URI templates) and prompts.
Tools can ask for a Context to log to the client, report progress and read
the server's own resources.
"""

from .base import BaseMCPServer, configure_logging
from .context import Context
from .decorators import mcp_prompt, mcp_resource, mcp_tool
from .exceptions import MCPFrameworkError, PromptError, ResourceError, ToolError
from .image import Image
from .prompts import AssistantMessage, Message, UserMessage

__all__ = [
    "AssistantMessage",
    "BaseMCPServer",
    "Context",
    "Image",
    "MCPFrameworkError",
    "Message",
    "PromptError",
    "ResourceError",
    "ToolError",
    "UserMessage",
    "configure_logging",
    "mcp_prompt",
    "mcp_resource",
    "mcp_tool",
]
