"""Tests for BaseMCPServer discovery, dispatch and the MCP handlers."""

import json
from typing import Any, Dict, List

import pytest
from mcp import types
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from pydantic import AnyUrl, BaseModel

from mcp_framework import (
    AssistantMessage,
    BaseMCPServer,
    Context,
    Image,
    PromptError,
    ResourceError,
    ToolError,
    UserMessage,
    mcp_prompt,
    mcp_resource,
    mcp_tool,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-JSON constant {name}")


class Summary(BaseModel):
    count: int
    label: str


class SampleServer(BaseMCPServer):
    """Server exercising every kind of capability."""

    def __init__(self, tool_prefix: str = ""):
        super().__init__("sample", "2.0.0", tool_prefix=tool_prefix, instructions="Try the add tool.")

    @mcp_tool()
    def add(self, a: int, b: int) -> int:
        """Add two numbers.

        Args:
            a: First number
            b: Second number
        """
        return a + b

    @mcp_tool(name="get-stats", description="Statistics as a dictionary")
    async def stats(self, values: List[float]) -> Dict[str, float]:
        return {"min": min(values), "max": max(values)}

    @mcp_tool()
    def summary(self) -> Summary:
        """Return a pydantic model"""
        return Summary(count=2, label="two")

    @mcp_tool()
    def picture(self) -> List[Any]:
        """Return text and an image"""
        return ["caption", Image(data=PNG_BYTES, format="png")]

    @mcp_tool()
    def nothing(self) -> None:
        """Return nothing"""

    @mcp_tool()
    def fail(self) -> str:
        """Always fails"""
        raise ToolError("it broke")

    @mcp_tool(name="request-id")
    def request_id(self, ctx: Context) -> str:
        """Echo the current request id"""
        return ctx.request_id

    @mcp_resource("config://sample", mime_type="application/json")
    def config(self) -> Dict[str, Any]:
        """Sample configuration"""
        return {"debug": True}

    @mcp_resource("blob://data", mime_type="application/octet-stream")
    def blob(self) -> bytes:
        """Binary data"""
        return b"\x00\x01"

    @mcp_resource("items://{item_id}/name")
    def item_name(self, item_id: str) -> str:
        """Name of an item"""
        if item_id == "missing":
            raise KeyError(item_id)
        return f"Item {item_id}"

    @mcp_prompt()
    def greet(self, name: str, style: str = "friendly") -> str:
        """Greet someone"""
        return f"Write a {style} greeting for {name}"

    @mcp_prompt(name="chat")
    def conversation(self, topic: str) -> List[Any]:
        """A short conversation"""
        return [
            UserMessage(f"Tell me about {topic}"),
            AssistantMessage("Sure, what would you like to know?"),
            {"role": "user", "content": "Everything"},
        ]

    @mcp_prompt()
    async def briefing(self, topic: str, ctx: Context) -> str:
        """Prompt that logs through its context"""
        await ctx.info(f"Preparing briefing on {topic}")
        return f"Brief me on {topic}"


@pytest.fixture
def server():
    return SampleServer()


class TestDiscovery:
    def test_tools_resources_and_prompts_are_discovered(self, server):
        assert sorted(server._tools) == [
            "add", "fail", "get-stats", "nothing", "picture", "request-id", "summary",
        ]
        assert sorted(server._resources) == ["blob://data", "config://sample"]
        assert list(server._templates) == ["items://{item_id}/name"]
        assert sorted(server._prompts) == ["briefing", "chat", "greet"]

    def test_tool_prefix(self):
        server = SampleServer(tool_prefix="s-")
        assert "s-add" in server._tools
        assert "add" not in server._tools

    def test_template_parameters_must_match_method(self):
        class BrokenServer(BaseMCPServer):
            @mcp_resource("users://{user_id}")
            def profile(self, name: str) -> str:
                return name

        with pytest.raises(ValueError, match="do not match"):
            BrokenServer()

    def test_tool_definitions(self, server):
        tools = {tool.name: tool for tool in server.list_tool_definitions()}
        assert tools["add"].description == "Add two numbers."
        assert tools["add"].inputSchema["required"] == ["a", "b"]
        assert tools["add"].inputSchema["properties"]["a"]["description"] == "First number"
        assert tools["get-stats"].description == "Statistics as a dictionary"
        assert tools["request-id"].inputSchema["properties"] == {}

    def test_resource_and_template_definitions(self, server):
        resources = {str(r.uri): r for r in server.list_resource_definitions()}
        assert resources["config://sample"].mimeType == "application/json"
        assert resources["config://sample"].description == "Sample configuration"

        templates = server.list_template_definitions()
        assert templates[0].uriTemplate == "items://{item_id}/name"
        assert templates[0].name == "item_name"

    def test_prompt_definitions(self, server):
        prompts = {p.name: p for p in server.list_prompt_definitions()}
        assert [(a.name, a.required) for a in prompts["greet"].arguments] == [
            ("name", True), ("style", False),
        ]
        assert [(a.name, a.required) for a in prompts["briefing"].arguments] == [("topic", True)]


class TestToolCalls:
    @pytest.mark.asyncio
    async def test_sync_tools_are_awaitable(self, server):
        assert await server.add(2, 3) == 5
        assert await server.call_tool("add", {"a": 2, "b": 3}) == 5

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        with pytest.raises(ToolError, match="Unknown tool"):
            await server.call_tool("missing")

    @pytest.mark.asyncio
    async def test_context_outside_a_request_is_detached(self, server):
        with pytest.raises(ValueError, match="outside of a request"):
            await server.call_tool("request-id")

    @pytest.mark.asyncio
    async def test_explicit_context_is_used(self, server, make_context):
        assert await server.request_id(ctx=make_context(server, request_id=9)) == "9"

    def test_convert_string_and_dict(self, server):
        assert server._convert_tool_result("hi")[0].text == "hi"
        content = server._convert_tool_result({"a": 1})
        assert json.loads(content[0].text) == {"a": 1}

    def test_convert_model_and_plain_list(self, server):
        content = server._convert_tool_result(Summary(count=1, label="x"))
        assert json.loads(content[0].text) == {"count": 1, "label": "x"}
        content = server._convert_tool_result([1, 2, 3])
        assert json.loads(content[0].text) == [1, 2, 3]

    def test_convert_list_with_image_is_flattened(self, server):
        content = server._convert_tool_result(["caption", Image(data=PNG_BYTES, format="png")])
        assert isinstance(content[0], types.TextContent)
        assert isinstance(content[1], types.ImageContent)
        assert content[1].mimeType == "image/png"

    def test_convert_none_and_other(self, server):
        assert server._convert_tool_result(None) == []
        assert server._convert_tool_result(3.5)[0].text == "3.5"

    def test_convert_non_finite_floats_to_null(self, server):
        content = server._convert_tool_result({"v": float("nan"), "items": [1.5, float("inf")]})
        assert json.loads(content[0].text, parse_constant=_reject_constant) == {"v": None, "items": [1.5, None]}


class TestResources:
    @pytest.mark.asyncio
    async def test_static_json_resource(self, server):
        contents = await server.read_resource_contents("config://sample")
        assert json.loads(contents[0].content) == {"debug": True}
        assert contents[0].mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_bytes_resource(self, server):
        contents = await server.read_resource_contents("blob://data")
        assert contents[0].content == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_template_resource(self, server):
        contents = await server.read_resource_contents("items://7/name")
        assert contents[0].content == "Item 7"

    @pytest.mark.asyncio
    async def test_unknown_resource(self, server):
        with pytest.raises(ResourceError, match="Unknown resource"):
            await server.read_resource_contents("items://7/price")

    @pytest.mark.asyncio
    async def test_resource_failure_is_wrapped(self, server):
        with pytest.raises(ResourceError, match="items://missing/name"):
            await server.read_resource_contents("items://missing/name")


class TestPrompts:
    @pytest.mark.asyncio
    async def test_string_prompt_becomes_user_message(self, server):
        result = await server.render_prompt("greet", {"name": "Ada"})
        assert result.description == "Greet someone"
        assert len(result.messages) == 1
        assert result.messages[0].role == "user"
        assert result.messages[0].content.text == "Write a friendly greeting for Ada"

    @pytest.mark.asyncio
    async def test_message_list(self, server):
        result = await server.render_prompt("chat", {"topic": "owls"})
        assert [m.role for m in result.messages] == ["user", "assistant", "user"]
        assert result.messages[2].content.text == "Everything"

    @pytest.mark.asyncio
    async def test_missing_argument(self, server):
        with pytest.raises(PromptError, match="name"):
            await server.render_prompt("greet", {})

    @pytest.mark.asyncio
    async def test_unknown_prompt(self, server):
        with pytest.raises(PromptError, match="Unknown prompt"):
            await server.render_prompt("missing")

    @pytest.mark.asyncio
    async def test_prompt_receives_context(self, server):
        result = await server.render_prompt("briefing", {"topic": "owls"})
        assert result.messages[0].content.text == "Brief me on owls"

    @pytest.mark.asyncio
    async def test_unexpected_arguments_are_ignored(self, server):
        result = await server.render_prompt("greet", {"name": "Ada", "extra": "x"})
        assert "Ada" in result.messages[0].content.text


class TestCommandLine:
    def test_describe(self, server, capsys):
        server.describe()
        output = capsys.readouterr().out
        assert "sample v2.0.0" in output
        assert "Tool: add" in output
        assert "- a: integer (required)" in output
        assert "- values: array[number] (required)" in output
        assert "Template: items://{item_id}/name" in output
        assert "Prompt: greet" in output

    def test_describe_flag_exits(self, server, capsys):
        with pytest.raises(SystemExit) as exc_info:
            server.main(["--describe"])
        assert exc_info.value.code == 0
        assert "Available Tools" in capsys.readouterr().out

    def test_print_config(self, server, capsys):
        with pytest.raises(SystemExit):
            server.main(["--print-config", "--env", "API_KEY=abc", "--log-level", "debug"])
        config = json.loads(capsys.readouterr().out)
        entry = config["mcpServers"]["sample"]
        assert entry["args"] == ["-m", __name__, "--log-level", "debug"]
        assert entry["env"] == {"API_KEY": "abc"}

    def test_bad_env_pair(self, server):
        with pytest.raises(SystemExit):
            server.parse_args(["--env", "NOVALUE"])

    def test_log_level_is_normalised(self, server):
        assert server.parse_args(["--log-level", "warning"]).log_level == "WARNING"

    def test_abbreviated_options_are_rejected(self, server, capsys):
        with pytest.raises(SystemExit) as exc_info:
            server.main(["--print"])
        assert exc_info.value.code == 2
        assert capsys.readouterr().out == ""


class TestProtocol:
    """Drive the server through a real client session over in-memory streams."""

    @pytest.mark.asyncio
    async def test_list_and_call_tools(self, server):
        async with create_connected_server_and_client_session(server.server) as client:
            tools = await client.list_tools()
            assert "add" in [tool.name for tool in tools.tools]

            result = await client.call_tool("add", {"a": 2, "b": 40})
            assert result.content[0].text == "42"

    @pytest.mark.asyncio
    async def test_tool_error_is_reported_as_text(self, server):
        async with create_connected_server_and_client_session(server.server) as client:
            result = await client.call_tool("fail", {})
            assert result.content[0].text == "Error: it broke"

    @pytest.mark.asyncio
    async def test_context_sees_request(self, server):
        async with create_connected_server_and_client_session(server.server) as client:
            result = await client.call_tool("request-id", {})
            assert result.content[0].text

    @pytest.mark.asyncio
    async def test_resources(self, server):
        async with create_connected_server_and_client_session(server.server) as client:
            listed = await client.list_resources()
            assert "config://sample" in [str(r.uri) for r in listed.resources]

            templates = await client.list_resource_templates()
            assert templates.resourceTemplates[0].uriTemplate == "items://{item_id}/name"

            result = await client.read_resource(AnyUrl("items://abc/name"))
            assert result.contents[0].text == "Item abc"

            with pytest.raises(McpError):
                await client.read_resource(AnyUrl("items://abc/price"))

    @pytest.mark.asyncio
    async def test_prompts(self, server):
        async with create_connected_server_and_client_session(server.server) as client:
            listed = await client.list_prompts()
            assert sorted(p.name for p in listed.prompts) == ["briefing", "chat", "greet"]

            result = await client.get_prompt("greet", {"name": "Ada", "style": "formal"})
            assert result.messages[0].content.text == "Write a formal greeting for Ada"

            result = await client.get_prompt("briefing", {"topic": "owls"})
            assert result.messages[0].content.text == "Brief me on owls"

    @pytest.mark.asyncio
    async def test_set_logging_level(self, server):
        async with create_connected_server_and_client_session(server.server) as client:
            await client.set_logging_level("warning")
        assert server.client_log_level == "warning"
