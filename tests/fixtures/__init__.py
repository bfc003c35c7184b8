"""Test fixtures for Partialkit.

Sample Application:
- sample_app/templates: users, posts, shared partials and a page layout
"""

from dataclasses import dataclass
from pathlib import Path

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

# Template tree of the sample application
SAMPLE_APP_TEMPLATES = FIXTURES_DIR / "sample_app" / "templates"


@dataclass
class User:
    """Domain object rendered with users/_user by convention."""

    name: str
    email: str = ""


@dataclass
class Post:
    """Domain object rendered with posts/_post by convention."""

    title: str


@dataclass
class Announcement:
    """Domain object that picks its own partial."""

    title: str

    def to_partial_path(self) -> str:
        return "posts/post"
