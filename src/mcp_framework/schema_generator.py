"""Generate JSON schemas and prompt arguments from Python signatures."""

import inspect
import typing
from collections import abc
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union, get_args, get_origin

from mcp import types
from pydantic import BaseModel

from .context import Context

_SEQUENCE_ORIGINS = (list, set, frozenset, abc.Sequence, abc.Set)


def python_type_to_json_schema(type_hint: Any) -> Dict[str, Any]:
    """Convert a Python type hint to a JSON schema definition.

    Args:
        type_hint: The Python type annotation

    Returns:
        JSON schema dictionary
    """
    if type_hint is type(None):
        return {"type": "null"}

    if type_hint is Any:
        return {}

    # bool must be checked before int
    if type_hint is bool:
        return {"type": "boolean"}
    elif type_hint is str:
        return {"type": "string"}
    elif type_hint is int:
        return {"type": "integer"}
    elif type_hint is float:
        return {"type": "number"}
    elif type_hint is datetime:
        return {"type": "string", "format": "date-time"}
    elif type_hint is date:
        return {"type": "string", "format": "date"}
    elif type_hint in (list, tuple, set):
        return {"type": "array"}
    elif type_hint is dict:
        return {"type": "object"}

    origin = get_origin(type_hint)
    args = get_args(type_hint)

    if origin is Union:
        non_none_args = [arg for arg in args if arg is not type(None)]
        if len(non_none_args) == 1:
            # Optional[T]: nullability is expressed by leaving it out of "required"
            return python_type_to_json_schema(non_none_args[0])
        return {"anyOf": [python_type_to_json_schema(arg) for arg in non_none_args]}

    if origin in _SEQUENCE_ORIGINS:
        schema: Dict[str, Any] = {"type": "array"}
        if args:
            schema["items"] = python_type_to_json_schema(args[0])
        if origin in (set, frozenset, abc.Set):
            schema["uniqueItems"] = True
        return schema

    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return {"type": "array", "items": python_type_to_json_schema(args[0])}
        if args:
            return {
                "type": "array",
                "prefixItems": [python_type_to_json_schema(arg) for arg in args],
                "minItems": len(args),
                "maxItems": len(args),
            }
        return {"type": "array"}

    if origin in (dict, abc.Mapping):
        if len(args) == 2 and args[0] is str:
            return {
                "type": "object",
                "additionalProperties": python_type_to_json_schema(args[1]),
            }
        return {"type": "object"}

    if origin is typing.Literal:
        return {"enum": list(args)}

    if inspect.isclass(type_hint):
        if issubclass(type_hint, Enum):
            return {"enum": [item.value for item in type_hint]}
        if issubclass(type_hint, BaseModel):
            return type_hint.model_json_schema()

    # Default to string for unknown types
    return {"type": "string"}


def is_context_parameter(param: inspect.Parameter) -> bool:
    """Whether a parameter asks for the request Context to be injected."""
    annotation = param.annotation
    if annotation is Context:
        return True
    return get_origin(annotation) is Union and Context in get_args(annotation)


def context_parameter_name(func: Callable) -> Optional[str]:
    """Return the name of func's Context parameter, if it has one."""
    for param_name, param in inspect.signature(func).parameters.items():
        if is_context_parameter(param):
            return param_name
    return None


def _is_optional(annotation: Any) -> bool:
    return get_origin(annotation) is Union and type(None) in get_args(annotation)


def extract_parameter_schema(func: Any) -> Dict[str, Any]:
    """Extract parameter schema from a function's type annotations.

    ``self`` and Context parameters are left out since the client never
    supplies them.

    Args:
        func: The function to extract schema from

    Returns:
        JSON schema for the function's parameters
    """
    signature = inspect.signature(func)
    properties: Dict[str, Any] = {}
    required: List[str] = []

    for param_name, param in signature.parameters.items():
        if param_name == "self" or is_context_parameter(param):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        if param.annotation is inspect.Parameter.empty:
            param_schema: Dict[str, Any] = {}
        else:
            param_schema = python_type_to_json_schema(param.annotation)
        param_schema["title"] = param_name.replace("_", " ").title()

        if param.default is not inspect.Parameter.empty:
            if param.default is None or isinstance(param.default, (str, int, float, bool)):
                param_schema["default"] = param.default
            elif isinstance(param.default, Enum):
                param_schema["default"] = param.default.value
        elif not _is_optional(param.annotation):
            required.append(param_name)

        properties[param_name] = param_schema

    schema: Dict[str, Any] = {
        "type": "object",
        "properties": properties,
    }

    if required:
        schema["required"] = required

    return schema


def parse_docstring_params(docstring: Optional[str]) -> Dict[str, str]:
    """Parse parameter descriptions from a docstring.

    Supports Google-style sections (``Args:``, ``Arguments:``,
    ``Parameters:``, ``Params:``). Continuation lines indented deeper than
    the parameter line are joined onto its description.

    Args:
        docstring: The function's docstring

    Returns:
        Dictionary mapping parameter names to descriptions
    """
    if not docstring:
        return {}

    params: Dict[str, str] = {}
    lines = inspect.cleandoc(docstring).split("\n")

    in_params_section = False
    param_indent: Optional[int] = None
    current_param: Optional[str] = None
    current_desc: List[str] = []

    def flush() -> None:
        if current_param and current_desc:
            params[current_param] = " ".join(current_desc).strip()

    for raw_line in lines:
        stripped = raw_line.strip()
        indent = len(raw_line) - len(raw_line.lstrip())

        if stripped in ("Args:", "Arguments:", "Parameters:", "Params:"):
            in_params_section = True
            param_indent = None
            continue

        if not in_params_section or not stripped:
            continue

        if indent == 0 and stripped.endswith(":"):
            # Another section started
            flush()
            current_param, current_desc = None, []
            in_params_section = False
            continue

        if param_indent is None:
            param_indent = indent

        if indent <= param_indent and ":" in stripped:
            flush()
            param_part, desc_part = stripped.split(":", 1)
            # "name (type): description"
            current_param = param_part.split("(")[0].strip()
            current_desc = [desc_part.strip()] if desc_part.strip() else []
        elif current_param:
            current_desc.append(stripped)

    flush()
    return params


def first_docstring_line(func: Callable) -> Optional[str]:
    """Return the first line of func's docstring, if any."""
    doc = inspect.getdoc(func)
    if not doc:
        return None
    return doc.split("\n")[0].strip() or None


def build_tool_schema(func: Callable) -> Dict[str, Any]:
    """Build a tool input schema with docstring parameter descriptions merged in."""
    input_schema = extract_parameter_schema(func)
    for param_name, param_desc in parse_docstring_params(func.__doc__).items():
        if param_name in input_schema["properties"]:
            input_schema["properties"][param_name]["description"] = param_desc
    return input_schema


def build_prompt_arguments(func: Callable) -> List[types.PromptArgument]:
    """Describe a prompt method's parameters as MCP prompt arguments."""
    descriptions = parse_docstring_params(func.__doc__)
    arguments = []
    for param_name, param in inspect.signature(func).parameters.items():
        if param_name == "self" or is_context_parameter(param):
            continue
        arguments.append(types.PromptArgument(
            name=param_name,
            description=descriptions.get(param_name),
            required=param.default is inspect.Parameter.empty,
        ))
    return arguments
