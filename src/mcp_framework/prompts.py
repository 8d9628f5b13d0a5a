"""Message types returned by prompt methods."""

import json
from typing import Any, List, Literal, Sequence, Union

from mcp import types

from .exceptions import PromptError

MessageContent = Union[str, types.TextContent, types.ImageContent, types.EmbeddedResource]


class Message:
    """A single prompt message."""

    def __init__(self, role: Literal["user", "assistant"], content: MessageContent):
        self.role = role
        self.content = content

    def to_prompt_message(self) -> types.PromptMessage:
        content = self.content
        if isinstance(content, str):
            content = types.TextContent(type="text", text=content)
        return types.PromptMessage(role=self.role, content=content)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.content!r})"


class UserMessage(Message):
    """A message from the user."""

    def __init__(self, content: MessageContent):
        super().__init__("user", content)


class AssistantMessage(Message):
    """A message from the assistant."""

    def __init__(self, content: MessageContent):
        super().__init__("assistant", content)


def _convert_one(item: Any) -> types.PromptMessage:
    if isinstance(item, types.PromptMessage):
        return item
    if isinstance(item, Message):
        return item.to_prompt_message()
    if isinstance(item, str):
        return UserMessage(item).to_prompt_message()
    if isinstance(item, dict):
        if "role" not in item or "content" not in item:
            raise PromptError(f"Prompt message dict needs 'role' and 'content': {json.dumps(item)}")
        return Message(item["role"], item["content"]).to_prompt_message()
    raise PromptError(f"Cannot convert {type(item).__name__} to a prompt message")


def convert_prompt_result(result: Any) -> List[types.PromptMessage]:
    """Turn whatever a prompt method returned into protocol messages.

    A bare string becomes a single user message.
    """
    if isinstance(result, Sequence) and not isinstance(result, str):
        return [_convert_one(item) for item in result]
    return [_convert_one(result)]
