"""Jinja2 filters and tests available to every template.

- partial_path: implicit partial reference of an object
- format_datetime: consistent UTC timestamps
- strip_blank_lines: collapse runs of blank lines left by conditionals
- blank (test): whether rendered content is effectively empty
"""

import re
from datetime import UTC, datetime
from typing import Any

from jinja2 import Environment
from markupsafe import Markup

from partialkit.models.partial import PartialReference

_BLANK_RUN_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*){2,}")


def partial_path(obj: Any) -> str:
    """Return the partial reference an object renders with.

    Examples:
        >>> class BlogPost: ...
        >>> partial_path(BlogPost())
        'blog_posts/blog_post'
    """
    return PartialReference.for_object(obj).path


def format_datetime(dt: datetime | str | None) -> str:
    """Format datetime for display in templates.

    Args:
        dt: Datetime object or ISO string

    Returns:
        Formatted date string
    """
    if dt is None:
        return "N/A"

    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt)
        except ValueError:
            return dt

    # Naive datetimes are taken as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def strip_blank_lines(text: str) -> str:
    """Collapse three or more consecutive line breaks into one blank line.

    Keeps Markup safe so it can be applied to rendered partials.

    Examples:
        >>> strip_blank_lines("a\\n\\n\\n\\nb")
        'a\\n\\nb'
    """
    if not text:
        return text
    result = _BLANK_RUN_RE.sub("\n\n", str(text))
    return Markup(result) if isinstance(text, Markup) else result


def is_blank(content: Any) -> bool:
    """Check if content is effectively empty.

    Args:
        content: Value to check (None, string, rendered markup)

    Returns:
        True if the content is missing or only whitespace
    """
    if content is None:
        return True
    return not str(content).strip()


def register_filters(env: Environment) -> None:
    """Install the filters and tests on a Jinja2 environment."""
    env.filters["partial_path"] = partial_path
    env.filters["format_datetime"] = format_datetime
    env.filters["strip_blank_lines"] = strip_blank_lines
    env.tests["blank"] = is_blank
