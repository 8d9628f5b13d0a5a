"""Decorators for marking methods as MCP tools, resources and prompts."""

import inspect
from functools import wraps
from typing import Any, Callable, Optional


def _default_name(func: Callable) -> str:
    return func.__name__.replace("_", "-")


def _awaitable(func: Callable, **metadata: Any) -> Callable:
    """Wrap func so it is always awaitable and carries the given metadata."""
    for key, value in metadata.items():
        setattr(func, key, value)

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        result = func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    # Preserve the metadata on the wrapper
    for key, value in metadata.items():
        setattr(wrapper, key, value)

    return wrapper


def mcp_tool(
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Callable[[Callable], Callable]:
    """Decorator to mark a method as an MCP tool.

    Args:
        name: Optional custom name for the tool. If not provided, uses the method
            name with underscores replaced by hyphens.
        description: Optional description override. If not provided, uses the
            first line of the method's docstring.

    Example:
        @mcp_tool(name="calculate-bmi")
        def calculate_bmi(self, weight_kg: float, height_m: float) -> float:
            '''Calculate BMI given weight in kg and height in meters.'''
            return weight_kg / (height_m ** 2)
    """
    def decorator(func: Callable) -> Callable:
        return _awaitable(
            func,
            _mcp_tool=True,
            _mcp_tool_name=name or _default_name(func),
            _mcp_tool_description=description,
        )

    return decorator


def mcp_resource(
    uri: str,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    mime_type: str = "text/plain",
) -> Callable[[Callable], Callable]:
    """Decorator to mark a method as an MCP resource.

    A URI containing ``{param}`` placeholders registers a resource template;
    each placeholder is passed to the method as a keyword argument of the
    same name.

    Example:
        @mcp_resource("users://{user_id}/profile")
        def get_user_profile(self, user_id: str) -> str:
            '''Dynamic user data'''
            return f"Profile data for user {user_id}"
    """
    def decorator(func: Callable) -> Callable:
        return _awaitable(
            func,
            _mcp_resource=True,
            _mcp_resource_uri=uri,
            _mcp_resource_name=name or func.__name__,
            _mcp_resource_description=description,
            _mcp_resource_mime_type=mime_type,
        )

    return decorator


def mcp_prompt(
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Callable[[Callable], Callable]:
    """Decorator to mark a method as a reusable prompt template.

    The method's parameters become the prompt's arguments. It may return a
    string, a message, or a list of messages.
    """
    def decorator(func: Callable) -> Callable:
        return _awaitable(
            func,
            _mcp_prompt=True,
            _mcp_prompt_name=name or _default_name(func),
            _mcp_prompt_description=description,
        )

    return decorator
