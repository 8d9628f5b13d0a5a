"""Echo MCP server exposing the same behaviour as a resource, a tool and a prompt."""

from typing import Optional

from mcp_framework import BaseMCPServer, mcp_prompt, mcp_resource, mcp_tool


class EchoServer(BaseMCPServer):
    def __init__(self):
        super().__init__("echo", "1.0.0")

    @mcp_resource("echo://{message}", name="echo")
    def echo_resource(self, message: str) -> str:
        """Echo a message as a resource"""
        return f"Resource echo: {message}"

    @mcp_tool(name="echo")
    def echo_tool(self, message: str) -> str:
        """Echo a message as a tool"""
        return f"Tool echo: {message}"

    @mcp_prompt(name="echo")
    def echo_prompt(self, message: str) -> str:
        """Create an echo prompt"""
        return f"Please process this message: {message}"


def main(args: Optional[list] = None) -> None:
    EchoServer().main(args)


if __name__ == "__main__":
    main()
