"""Request-scoped helper handed to tools that ask for it."""

import logging
from typing import TYPE_CHECKING, Any, List, Optional

from mcp import types
from mcp.server.lowlevel.helper_types import ReadResourceContents

if TYPE_CHECKING:
    from mcp.shared.context import RequestContext

    from .base import BaseMCPServer

# RFC 5424 severities in the order MCP uses them
LOG_LEVELS: List[str] = [
    "debug", "info", "notice", "warning", "error", "critical", "alert", "emergency",
]

_PYTHON_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


class Context:
    """Gives a tool access to the request it is running in.

    Declare a parameter annotated with ``Context`` and the server fills it in
    when the tool is called; it never appears in the tool's input schema.

    Example:
        @mcp_tool()
        async def long_task(self, files: List[str], ctx: Context) -> str:
            for i, name in enumerate(files):
                await ctx.info(f"Processing {name}")
                await ctx.report_progress(i, len(files))
            return "Processing complete"
    """

    def __init__(
        self,
        request_context: Optional["RequestContext"] = None,
        server: Optional["BaseMCPServer"] = None,
    ):
        self._request_context = request_context
        self._server = server

    @property
    def request_context(self) -> "RequestContext":
        if self._request_context is None:
            raise ValueError("Context is not available outside of a request")
        return self._request_context

    @property
    def request_id(self) -> str:
        return str(self.request_context.request_id)

    @property
    def session(self) -> Any:
        return self.request_context.session

    @property
    def lifespan_context(self) -> Any:
        """Value yielded by the server's lifespan() for this session."""
        return self.request_context.lifespan_context

    async def report_progress(self, progress: float, total: Optional[float] = None) -> None:
        """Report progress on the current request.

        Does nothing when the client did not ask for progress updates or when
        called outside a request.

        Args:
            progress: Amount of work done so far
            total: Total amount of work, if known
        """
        if self._request_context is None:
            return
        meta = self._request_context.meta
        progress_token = meta.progressToken if meta is not None else None
        if progress_token is None:
            return

        await self.session.send_progress_notification(
            progress_token=progress_token,
            progress=progress,
            total=total,
            related_request_id=self.request_id,
        )

    async def log(
        self,
        level: types.LoggingLevel,
        message: str,
        logger_name: Optional[str] = None,
    ) -> None:
        """Send a log message to the client and mirror it to the local log.

        Outside a request the message only goes to the local log.
        """
        logging.log(_PYTHON_LEVELS[level], f"[client log] {message}")

        if self._request_context is None or not self._should_forward(level):
            return

        await self.session.send_log_message(
            level=level,
            data=message,
            logger=logger_name,
            related_request_id=self.request_id,
        )

    def _should_forward(self, level: str) -> bool:
        minimum = self._server.client_log_level if self._server is not None else None
        if minimum is None:
            return True
        return LOG_LEVELS.index(level) >= LOG_LEVELS.index(minimum)

    async def debug(self, message: str, logger_name: Optional[str] = None) -> None:
        await self.log("debug", message, logger_name)

    async def info(self, message: str, logger_name: Optional[str] = None) -> None:
        await self.log("info", message, logger_name)

    async def warning(self, message: str, logger_name: Optional[str] = None) -> None:
        await self.log("warning", message, logger_name)

    async def error(self, message: str, logger_name: Optional[str] = None) -> None:
        await self.log("error", message, logger_name)

    async def read_resource(self, uri: str) -> List[ReadResourceContents]:
        """Read one of this server's resources by URI."""
        if self._server is None:
            raise ValueError("Context is not attached to a server")
        return await self._server.read_resource_contents(uri)
