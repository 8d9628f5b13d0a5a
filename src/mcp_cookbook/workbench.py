"""Workbench MCP server showing every kind of capability in one place.

Resources (static and templated), plain and image-returning tools, a tool
that reports progress and logs to the client, and prompt templates.
"""

import argparse
import json
import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from mcp_framework import (
    AssistantMessage,
    BaseMCPServer,
    Context,
    Image,
    Message,
    ResourceError,
    ToolError,
    UserMessage,
    mcp_prompt,
    mcp_resource,
    mcp_tool,
)

from .config import APP_ENVIRONMENT, APP_NAME, DOCS_DIR, USER_PROFILES_PATH

# PNG can store these modes directly; anything else is converted first
_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I"}


def load_profiles(path: Union[str, Path]) -> Dict[str, Dict[str, Any]]:
    """Load user profiles from a JSON file.

    The file holds either an object keyed by user ID or a list of objects
    with an ``id`` field. A missing file yields no profiles.
    """
    path = Path(path)
    if not path.exists():
        logging.warning(f"User profiles file {path} not found; users:// resources will be empty")
        return {}

    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return {str(item["id"]): item for item in data}
    return {str(user_id): profile for user_id, profile in data.items()}


class WorkbenchServer(BaseMCPServer):
    """Configuration, user profiles, documents, health and image tools, and prompts."""

    def __init__(
        self,
        docs_dir: Union[str, Path] = DOCS_DIR,
        profiles_path: Union[str, Path] = USER_PROFILES_PATH,
        profiles: Optional[Dict[str, Dict[str, Any]]] = None,
    ):
        """Initialize the workbench server.

        Args:
            docs_dir: Directory served through docs://{name}
            profiles_path: JSON file with user profiles
            profiles: Profiles to use instead of reading profiles_path
        """
        super().__init__("workbench", "0.1.0")
        self.docs_dir = Path(docs_dir)
        self.profiles_path = Path(profiles_path)
        self.profiles = profiles if profiles is not None else load_profiles(profiles_path)

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--docs-dir", default=str(self.docs_dir), help="Directory of documents to serve")
        parser.add_argument("--profiles", default=str(self.profiles_path), help="JSON file with user profiles")

    @mcp_resource("config://app", name="app-config", mime_type="application/json")
    def get_config(self) -> Dict[str, Any]:
        """Static configuration data"""
        return {
            "app_name": APP_NAME,
            "environment": APP_ENVIRONMENT,
            "docs_dir": str(self.docs_dir),
            "user_count": len(self.profiles),
        }

    @mcp_resource("users://{user_id}/profile", name="user-profile", mime_type="application/json")
    def get_user_profile(self, user_id: str) -> Dict[str, Any]:
        """Dynamic user data"""
        if user_id not in self.profiles:
            raise ResourceError(f"Unknown user: {user_id}")
        return {"id": user_id, **self.profiles[user_id]}

    @mcp_resource("docs://{name}", name="document")
    def get_document(self, name: str) -> str:
        """Contents of a text document from the documents directory"""
        root = self.docs_dir.resolve()
        path = (root / name).resolve()
        if path.parent != root:
            raise ResourceError(f"Document name must not leave the documents directory: {name}")
        if not path.is_file():
            raise ResourceError(f"Unknown document: {name}")
        return path.read_text(encoding="utf-8")

    @mcp_tool(name="calculate-bmi")
    def calculate_bmi(self, weight_kg: float, height_m: float) -> float:
        """Calculate BMI given weight in kg and height in meters.

        Args:
            weight_kg: Body weight in kilograms
            height_m: Height in meters
        """
        if weight_kg <= 0 or height_m <= 0:
            raise ToolError("Weight and height must be positive")
        return weight_kg / (height_m ** 2)

    @mcp_tool(name="create-thumbnail")
    def create_thumbnail(self, image_path: str, size: int = 100) -> Image:
        """Create a PNG thumbnail from an image file.

        Args:
            image_path: Path of the image on the server's filesystem
            size: Maximum width and height of the thumbnail in pixels

        Returns:
            The thumbnail as PNG image content
        """
        if size <= 0:
            raise ToolError("size must be positive")

        try:
            with PILImage.open(image_path) as img:
                img.thumbnail((size, size))
                if img.mode not in _PNG_MODES:
                    img = img.convert("RGBA")
                buffer = BytesIO()
                img.save(buffer, format="PNG")
        except FileNotFoundError as e:
            raise ToolError(f"Image not found: {image_path}") from e
        except UnidentifiedImageError as e:
            raise ToolError(f"Not a recognised image file: {image_path}") from e
        except OSError as e:
            raise ToolError(f"Could not create thumbnail for {image_path}: {e}") from e

        return Image(data=buffer.getvalue(), format="png")

    @mcp_tool(name="summarize-documents")
    async def summarize_documents(self, names: List[str], ctx: Context) -> Dict[str, Any]:
        """Read documents and count their lines and words, reporting progress.

        Args:
            names: Document names inside the documents directory

        Returns:
            Per-document counts and the total word count
        """
        summaries = []
        total = len(names)

        for i, name in enumerate(names):
            await ctx.info(f"Processing {name}")
            await ctx.report_progress(i, total)
            try:
                contents = await ctx.read_resource(f"docs://{quote(name, safe='')}")
            except ResourceError as e:
                await ctx.warning(str(e))
                summaries.append({"name": name, "error": str(e)})
                continue

            text = "".join(str(item.content) for item in contents)
            lines = text.splitlines()
            summaries.append({
                "name": name,
                "lines": len(lines),
                "words": len(text.split()),
                "first_line": lines[0] if lines else "",
            })

        await ctx.report_progress(total, total)
        return {
            "documents": summaries,
            "total_words": sum(summary.get("words", 0) for summary in summaries),
        }

    @mcp_prompt(name="review-code")
    def review_code(self, code: str) -> str:
        """Ask for a review of a piece of code.

        Args:
            code: The code to review
        """
        return f"Please review this code:\n\n{code}"

    @mcp_prompt(name="debug-error")
    def debug_error(self, error: str) -> List[Message]:
        """Start a debugging conversation about an error.

        Args:
            error: The error message or traceback
        """
        return [
            UserMessage("I'm seeing this error:"),
            UserMessage(error),
            AssistantMessage("I'll help debug that. What have you tried so far?"),
        ]


def main(args: Optional[List[str]] = None) -> None:
    """Main entry point for the workbench server."""
    parsed_args = WorkbenchServer(profiles={}).parse_args(args)
    WorkbenchServer(docs_dir=parsed_args.docs_dir, profiles_path=parsed_args.profiles).main(args)


if __name__ == "__main__":
    main()
