"""Base class for annotation-based MCP servers."""

import argparse
import asyncio
import inspect
import json
import logging
import math
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Union

import mcp.server.stdio
from mcp import types
from mcp.server import NotificationOptions, Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from pydantic import BaseModel

from .context import Context
from .exceptions import PromptError, ResourceError, ToolError
from .image import Image
from .prompts import convert_prompt_result
from .schema_generator import (
    build_prompt_arguments,
    build_tool_schema,
    context_parameter_name,
    first_docstring_line,
    is_context_parameter,
)
from .uri_template import UriTemplate

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"

CONTENT_TYPES = (types.TextContent, types.ImageContent, types.EmbeddedResource)

ToolContent = Union[types.TextContent, types.ImageContent, types.EmbeddedResource]


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout carries the protocol messages."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def _json_safe(value: Any) -> Any:
    """Replace NaN and infinite floats with None so the result is strict JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def _dump_json(value: Any) -> str:
    return json.dumps(_json_safe(value), indent=2, default=str, allow_nan=False)


def _env_pair(value: str) -> Tuple[str, str]:
    key, sep, val = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got '{value}'")
    return key, val


def _strip_config_args(args: List[str]) -> List[str]:
    """Drop the options that only affect --print-config from a command line."""
    kept = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
        elif arg == "--env":
            skip_next = True
        elif arg != "--print-config" and not arg.startswith("--env="):
            kept.append(arg)
    return kept


class BaseMCPServer:
    """Base class for creating MCP servers using annotated methods.

    Inherit from this class and use the @mcp_tool, @mcp_resource and
    @mcp_prompt decorators to mark methods that should be exposed to clients.

    Example:
        class DemoServer(BaseMCPServer):
            def __init__(self):
                super().__init__("demo", "1.0.0")

            @mcp_tool()
            def add(self, a: int, b: int) -> int:
                '''Add two numbers'''
                return a + b

            @mcp_resource("greeting://{name}")
            def get_greeting(self, name: str) -> str:
                '''Get a personalized greeting'''
                return f"Hello, {name}!"
    """

    def __init__(
        self,
        server_name: str = "mcp-server",
        server_version: str = "0.1.0",
        tool_prefix: str = "",
        instructions: Optional[str] = None,
    ):
        """Initialize the MCP server.

        Args:
            server_name: Name of the MCP server
            server_version: Version of the MCP server
            tool_prefix: Prefix to add to all tool names (e.g., "db-" results in "db-query")
            instructions: Optional usage hints sent to the client on initialization
        """
        self.server_name = server_name
        self.server_version = server_version
        self.tool_prefix = tool_prefix
        # Minimum level the client asked for via logging/setLevel; None sends everything
        self.client_log_level: Optional[str] = None
        self.server = Server(
            server_name,
            version=server_version,
            instructions=instructions,
            lifespan=self._server_lifespan,
        )
        self._tools: Dict[str, Any] = {}
        self._resources: Dict[str, Any] = {}
        self._templates: Dict[str, Tuple[UriTemplate, Any]] = {}
        self._prompts: Dict[str, Any] = {}

        # Discover and register tools, resources and prompts
        self._discover()

        # Register MCP handlers
        self._register_handlers()

    @asynccontextmanager
    async def lifespan(self) -> AsyncIterator[Any]:
        """Set up and tear down resources shared by every request of a session.

        Override in subclasses; whatever is yielded is available to tools as
        ``ctx.lifespan_context``.
        """
        yield {}

    @asynccontextmanager
    async def _server_lifespan(self, server: Server) -> AsyncIterator[Any]:
        logging.info(f"Starting lifespan for {self.server_name}")
        try:
            async with self.lifespan() as value:
                yield value
        finally:
            logging.info(f"Lifespan for {self.server_name} finished")

    def _discover(self) -> None:
        """Discover methods decorated with @mcp_tool, @mcp_resource and @mcp_prompt."""
        for name, method in inspect.getmembers(self, predicate=inspect.ismethod):
            if getattr(method, "_mcp_tool", False):
                tool_name = getattr(method, "_mcp_tool_name", name)
                # Apply prefix to tool name
                prefixed_name = f"{self.tool_prefix}{tool_name}" if self.tool_prefix else tool_name
                self._tools[prefixed_name] = method
                logging.info(f"Discovered MCP tool: {prefixed_name}")
            elif getattr(method, "_mcp_resource", False):
                self._add_resource(method)
            elif getattr(method, "_mcp_prompt", False):
                prompt_name = method._mcp_prompt_name
                self._prompts[prompt_name] = method
                logging.info(f"Discovered MCP prompt: {prompt_name}")

    def _add_resource(self, method: Any) -> None:
        uri = method._mcp_resource_uri
        template = UriTemplate(uri)
        params = [
            param_name
            for param_name, param in inspect.signature(method).parameters.items()
            if param_name != "self" and not is_context_parameter(param)
        ]

        if set(params) != set(template.parameters):
            raise ValueError(
                f"Resource {method.__name__} parameters {params} do not match "
                f"URI placeholders {template.parameters} in '{uri}'"
            )

        if template.is_template:
            self._templates[uri] = (template, method)
            logging.info(f"Discovered MCP resource template: {uri}")
        else:
            self._resources[uri] = method
            logging.info(f"Discovered MCP resource: {uri}")

    @staticmethod
    def _describe(method: Any, kind: str) -> Optional[str]:
        return getattr(method, f"_mcp_{kind}_description", None) or first_docstring_line(method)

    def list_tool_definitions(self) -> List[types.Tool]:
        tools = []
        for tool_name, method in self._tools.items():
            tools.append(types.Tool(
                name=tool_name,
                description=self._describe(method, "tool") or f"Tool: {tool_name}",
                inputSchema=build_tool_schema(method),
            ))
        return tools

    def list_resource_definitions(self) -> List[types.Resource]:
        return [
            types.Resource(
                uri=uri,
                name=method._mcp_resource_name,
                description=self._describe(method, "resource"),
                mimeType=method._mcp_resource_mime_type,
            )
            for uri, method in self._resources.items()
        ]

    def list_template_definitions(self) -> List[types.ResourceTemplate]:
        return [
            types.ResourceTemplate(
                uriTemplate=uri,
                name=method._mcp_resource_name,
                description=self._describe(method, "resource"),
                mimeType=method._mcp_resource_mime_type,
            )
            for uri, (_, method) in self._templates.items()
        ]

    def list_prompt_definitions(self) -> List[types.Prompt]:
        return [
            types.Prompt(
                name=prompt_name,
                description=self._describe(method, "prompt"),
                arguments=build_prompt_arguments(method),
            )
            for prompt_name, method in self._prompts.items()
        ]

    def get_context(self) -> Context:
        """Context for the request being handled, or a detached one outside a request."""
        try:
            request_context = self.server.request_context
        except LookupError:
            request_context = None
        return Context(request_context=request_context, server=self)

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Run a tool by name and return its raw result."""
        if name not in self._tools:
            raise ToolError(f"Unknown tool: {name}")

        method = self._tools[name]
        kwargs = dict(arguments or {})
        ctx_param = context_parameter_name(method)
        if ctx_param:
            kwargs[ctx_param] = self.get_context()
        return await method(**kwargs)

    def _convert_tool_result(self, result: Any) -> List[ToolContent]:
        """Convert a tool's return value to MCP content blocks."""
        if result is None:
            return []
        if isinstance(result, Image):
            return [result.to_image_content()]
        if isinstance(result, CONTENT_TYPES):
            return [result]
        if isinstance(result, str):
            return [types.TextContent(type="text", text=result)]
        if isinstance(result, BaseModel):
            return [types.TextContent(type="text", text=result.model_dump_json(indent=2))]
        if isinstance(result, (list, tuple)):
            if any(isinstance(item, (Image,) + CONTENT_TYPES) for item in result):
                blocks: List[ToolContent] = []
                for item in result:
                    blocks.extend(self._convert_tool_result(item))
                return blocks
            return [types.TextContent(type="text", text=_dump_json(result))]
        if isinstance(result, dict):
            return [types.TextContent(type="text", text=_dump_json(result))]
        return [types.TextContent(type="text", text=str(result))]

    def _resolve_resource(self, uri: str) -> Tuple[Any, Dict[str, str]]:
        if uri in self._resources:
            return self._resources[uri], {}

        for template, method in self._templates.values():
            params = template.matches(uri)
            if params is not None:
                return method, params

        raise ResourceError(f"Unknown resource: {uri}")

    async def read_resource_contents(self, uri: str) -> List[ReadResourceContents]:
        """Read a resource by URI, matching static resources before templates."""
        method, params = self._resolve_resource(uri)
        mime_type = method._mcp_resource_mime_type
        logging.info(f"Reading resource: {uri}")

        kwargs: Dict[str, Any] = dict(params)
        ctx_param = context_parameter_name(method)
        if ctx_param:
            kwargs[ctx_param] = self.get_context()

        try:
            result = await method(**kwargs)
        except ResourceError:
            raise
        except Exception as e:
            logging.error(f"Error reading resource {uri}: {e}", exc_info=True)
            raise ResourceError(f"Error reading resource {uri}: {e}") from e

        if isinstance(result, bytes):
            return [ReadResourceContents(content=result, mime_type=mime_type)]
        if isinstance(result, BaseModel):
            return [ReadResourceContents(content=result.model_dump_json(indent=2), mime_type=mime_type)]
        if isinstance(result, (dict, list)):
            return [ReadResourceContents(content=_dump_json(result), mime_type=mime_type)]
        return [ReadResourceContents(content=str(result), mime_type=mime_type)]

    async def render_prompt(
        self, name: str, arguments: Optional[Dict[str, str]] = None
    ) -> types.GetPromptResult:
        """Render a prompt by name with the given arguments."""
        if name not in self._prompts:
            raise PromptError(f"Unknown prompt: {name}")

        method = self._prompts[name]
        arguments = arguments or {}
        declared = build_prompt_arguments(method)

        missing = [arg.name for arg in declared if arg.required and arg.name not in arguments]
        if missing:
            raise PromptError(f"Missing required arguments for prompt {name}: {', '.join(missing)}")

        known = {arg.name for arg in declared}
        kwargs = {key: value for key, value in arguments.items() if key in known}
        logging.info(f"Rendering prompt: {name} with arguments: {kwargs}")

        ctx_param = context_parameter_name(method)
        if ctx_param:
            kwargs[ctx_param] = self.get_context()

        result = await method(**kwargs)
        return types.GetPromptResult(
            description=self._describe(method, "prompt"),
            messages=convert_prompt_result(result),
        )

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            """List all available tools."""
            tools = self.list_tool_definitions()
            logging.info(f"Listed {len(tools)} tools")
            return tools

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Optional[Dict[str, Any]]
        ) -> List[ToolContent]:
            """Handle tool execution requests."""
            if name not in self._tools:
                raise ToolError(f"Unknown tool: {name}")

            logging.info(f"Calling tool: {name} with arguments: {arguments}")

            try:
                result = await self.call_tool(name, arguments)
                return self._convert_tool_result(result)
            except Exception as e:
                logging.error(f"Error executing tool {name}: {e}", exc_info=True)
                return [types.TextContent(type="text", text=f"Error: {str(e)}")]

        @self.server.list_resources()
        async def handle_list_resources() -> List[types.Resource]:
            """List static resources."""
            return self.list_resource_definitions()

        @self.server.list_resource_templates()
        async def handle_list_resource_templates() -> List[types.ResourceTemplate]:
            """List parameterized resources."""
            return self.list_template_definitions()

        @self.server.read_resource()
        async def handle_read_resource(uri: Any) -> List[ReadResourceContents]:
            """Read a resource by URI."""
            return await self.read_resource_contents(str(uri))

        @self.server.list_prompts()
        async def handle_list_prompts() -> List[types.Prompt]:
            """Handle list prompts request."""
            return self.list_prompt_definitions()

        @self.server.get_prompt()
        async def handle_get_prompt(
            name: str, arguments: Optional[Dict[str, str]]
        ) -> types.GetPromptResult:
            """Render a prompt template."""
            return await self.render_prompt(name, arguments)

        @self.server.set_logging_level()
        async def handle_set_logging_level(level: types.LoggingLevel) -> None:
            """Remember the minimum level of log messages the client wants."""
            logging.info(f"Client log level set to {level}")
            self.client_log_level = level

    async def run(self) -> None:
        """Run the MCP server over stdio."""
        logging.info(f"Starting {self.server_name} v{self.server_version}")

        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            )

    def describe(self) -> None:
        """Print human-readable descriptions of all tools, resources and prompts."""
        print(f"\n{self.server_name} v{self.server_version}")
        print("=" * 60)
        print("\nAvailable Tools:\n")

        for tool_name, method in sorted(self._tools.items()):
            print(f"Tool: {tool_name}")
            print(f"  Description: {self._describe(method, 'tool') or 'No description available'}")

            input_schema = build_tool_schema(method)
            if input_schema["properties"]:
                print("  Parameters:")
                required_params = input_schema.get("required", [])

                for param_name, param_info in input_schema["properties"].items():
                    param_type = param_info.get("type", "any")
                    param_desc = param_info.get("description", "No description")
                    is_required = param_name in required_params

                    # Handle array types
                    if param_type == "array" and "items" in param_info:
                        item_type = param_info["items"].get("type", "any")
                        param_type = f"array[{item_type}]"

                    # Handle enum values
                    if "enum" in param_info:
                        enum_values = ", ".join(f"'{v}'" for v in param_info["enum"])
                        param_type = f"{param_type} ({enum_values})"

                    print(f"    - {param_name}: {param_type} {'(required)' if is_required else '(optional)'}")
                    print(f"      {param_desc}")
            else:
                print("  Parameters: None")

            print()  # Empty line between tools

        if self._resources or self._templates:
            print("Available Resources:\n")
            for uri, method in sorted(self._resources.items()):
                print(f"Resource: {uri} [{method._mcp_resource_mime_type}]")
                print(f"  Description: {self._describe(method, 'resource') or 'No description available'}")
            for uri, (_, method) in sorted(self._templates.items()):
                print(f"Template: {uri} [{method._mcp_resource_mime_type}]")
                print(f"  Description: {self._describe(method, 'resource') or 'No description available'}")
            print()

        if self._prompts:
            print("Available Prompts:\n")
            for prompt_name, method in sorted(self._prompts.items()):
                print(f"Prompt: {prompt_name}")
                print(f"  Description: {self._describe(method, 'prompt') or 'No description available'}")
                for argument in build_prompt_arguments(method):
                    print(f"    - {argument.name} {'(required)' if argument.required else '(optional)'}")
            print()

    def host_config(
        self,
        env: Optional[Dict[str, str]] = None,
        server_args: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Build the ``mcpServers`` entry a host such as Claude Desktop needs to launch this server.

        Args:
            env: Environment variables the host should set for the server process
            server_args: Extra command line arguments for the server

        Returns:
            Dictionary in the host's configuration file format
        """
        module = type(self).__module__
        if module == "__main__":
            args = [os.path.abspath(sys.argv[0])]
        else:
            args = ["-m", module]
        args.extend(server_args or [])

        entry: Dict[str, Any] = {"command": sys.executable, "args": args}
        if env:
            entry["env"] = dict(env)

        return {"mcpServers": {self.server_name: entry}}

    def parse_args(self, args: Optional[List[str]] = None) -> argparse.Namespace:
        """Parse command line arguments.

        Args:
            args: Optional list of arguments to parse. If None, uses sys.argv.

        Returns:
            Parsed arguments namespace
        """
        parser = argparse.ArgumentParser(
            prog=self.server_name,
            allow_abbrev=False,
            description=f"{self.server_name} - MCP server",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        parser.add_argument(
            "--describe",
            action="store_true",
            help="Show available tools, resources and prompts"
        )
        parser.add_argument(
            "--print-config",
            action="store_true",
            help="Print the host configuration entry (mcpServers) for this server"
        )
        parser.add_argument(
            "--env",
            type=_env_pair,
            action="append",
            default=[],
            metavar="KEY=VALUE",
            help="Environment variable to include in --print-config output (repeatable)"
        )
        parser.add_argument(
            "--log-level",
            default=os.getenv("MCP_LOG_LEVEL", "INFO"),
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            type=str.upper,
            help="Log level for messages written to stderr"
        )

        # Allow subclasses to add their own arguments
        self.add_arguments(parser)

        return parser.parse_args(args)

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Override in subclasses to add custom command line arguments.

        Args:
            parser: The argument parser to add arguments to
        """
        pass

    def main(self, args: Optional[List[str]] = None) -> None:
        """Main entry point for the server.

        Args:
            args: Optional list of command line arguments. If None, uses sys.argv.
        """
        parsed_args = self.parse_args(args)
        configure_logging(parsed_args.log_level)

        if parsed_args.describe:
            self.describe()
            sys.exit(0)

        if parsed_args.print_config:
            launch_args = _strip_config_args(sys.argv[1:] if args is None else args)
            print(json.dumps(self.host_config(dict(parsed_args.env), launch_args), indent=2))
            sys.exit(0)

        asyncio.run(self.run())
