"""Image return type for tools."""

import base64
from pathlib import Path
from typing import Optional, Union

from mcp import types

_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


class Image:
    """An image a tool returns; converted to image content automatically.

    Args:
        path: File to read the image from
        data: Raw encoded image bytes (e.g. a PNG file's contents)
        format: Image format such as "png"; guessed from path when omitted
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        data: Optional[bytes] = None,
        format: Optional[str] = None,
    ):
        if (path is None) == (data is None):
            raise ValueError("Exactly one of path or data must be provided")

        self.path = Path(path) if path is not None else None
        self.data = data
        self._format = format
        self.mime_type = self._get_mime_type()

    def _get_mime_type(self) -> str:
        if self._format:
            return _MIME_TYPES.get(self._format.lower(), f"image/{self._format.lower()}")
        if self.path is not None:
            return _MIME_TYPES.get(self.path.suffix.lower().lstrip("."), "application/octet-stream")
        return "image/png"

    def read_bytes(self) -> bytes:
        if self.path is not None:
            return self.path.read_bytes()
        return self.data  # type: ignore[return-value]

    def to_image_content(self) -> types.ImageContent:
        encoded = base64.b64encode(self.read_bytes()).decode()
        return types.ImageContent(type="image", data=encoded, mimeType=self.mime_type)
