"""Demo MCP server: one tool and one resource template.

The smallest useful server. Run it directly or add it to a host with the
entry printed by ``python -m mcp_cookbook.demo --print-config``.
"""

from typing import Optional

from mcp_framework import BaseMCPServer, mcp_resource, mcp_tool


class DemoServer(BaseMCPServer):
    """An addition tool and a greeting resource."""

    def __init__(self):
        super().__init__("demo", "1.0.0")

    @mcp_tool()
    async def add(self, a: int, b: int) -> int:
        """Add two numbers.

        Args:
            a: First number
            b: Second number

        Returns:
            Sum of a and b
        """
        return a + b

    @mcp_resource("greeting://{name}", name="greeting")
    async def get_greeting(self, name: str) -> str:
        """Get a personalized greeting.

        Args:
            name: Who to greet
        """
        return f"Hello, {name}!"


def main(args: Optional[list] = None) -> None:
    """Main entry point for the demo server."""
    DemoServer().main(args)


if __name__ == "__main__":
    main()
