"""Example MCP servers built on mcp_framework.

Run one with ``mcp-cookbook <server> [options]``, e.g.
``mcp-cookbook sqlite-explorer --db-path app.db --describe``.
"""

import sys
from typing import Callable, Dict, List, Optional

from . import demo, echo, sqlite_explorer, weather, workbench

SERVERS: Dict[str, Callable[[Optional[List[str]]], None]] = {
    "demo": demo.main,
    "echo": echo.main,
    "sqlite-explorer": sqlite_explorer.main,
    "weather": weather.main,
    "workbench": workbench.main,
}


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the package."""
    argv = list(sys.argv[1:] if argv is None else argv)

    if not argv or argv[0] not in SERVERS:
        print(f"usage: mcp-cookbook {{{','.join(SERVERS)}}} [options]", file=sys.stderr)
        sys.exit(2)

    SERVERS[argv[0]](argv[1:])


__all__ = ["SERVERS", "main"]
