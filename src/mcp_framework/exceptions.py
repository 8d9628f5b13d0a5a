"""Exceptions raised by annotation-based MCP servers."""


class MCPFrameworkError(Exception):
    """Base class for all framework errors."""

    pass


class ToolError(MCPFrameworkError):
    """Raised when a tool cannot complete its operation.

    The call_tool handler reports these back to the client as an
    ``Error: ...`` text result instead of failing the request.
    """

    pass


class ResourceError(MCPFrameworkError):
    """Raised when a resource URI is unknown or its content cannot be read.

    This includes URIs that match neither a static resource nor a template,
    and failures inside the resource method itself.
    """

    pass


class PromptError(MCPFrameworkError):
    """Raised when a prompt is unknown or is rendered with bad arguments."""

    pass
