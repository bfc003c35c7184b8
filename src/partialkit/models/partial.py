"""Partial rendering entities.

This module contains the value types that flow through a render:
- PartialReference: Symbolic reference to a partial template
- LocalsSignature: Parsed strict-locals declaration
- PartialIteration: Position of an element within a collection render
- ContentBlock: Deferred markup substituted into a layout
"""

import copy
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from markupsafe import Markup

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def underscore(name: str) -> str:
    """Convert a CamelCase class name to snake_case.

    Examples:
        >>> underscore("BlogPost")
        'blog_post'
        >>> underscore("HTTPRequest")
        'http_request'
    """
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def pluralize(word: str) -> str:
    """Pluralize a snake_case English noun using the common suffix rules.

    Only the last segment is pluralized ("blog_post" -> "blog_posts").
    """
    if word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return word[:-1] + "ies"
    return word + "s"


@dataclass(frozen=True)
class PartialReference:
    """Symbolic reference to a partial template.

    Attributes:
        path: Directory-qualified reference without underscore or extension
            (e.g., "users/user")
        format: Output format used to pick the file extension (e.g., "html")
    """

    path: str
    format: str | None = None

    def __post_init__(self) -> None:
        """Normalize and validate the reference path."""
        if not self.path or not self.path.strip("/"):
            raise ValueError("Partial reference must not be empty")
        object.__setattr__(self, "path", self.path.strip("/"))

    @property
    def directory(self) -> str:
        """Directory part of the reference ("" for a bare name)."""
        head, _, _ = self.path.rpartition("/")
        return head

    @property
    def basename(self) -> str:
        """Last path segment as written."""
        return self.path.rpartition("/")[2]

    @property
    def variable_name(self) -> str:
        """Local name the partial binds its object under.

        "users/user" -> "user", "shared/_card.html.j2" -> "card"
        """
        name = self.basename.lstrip("_")
        return name.split(".", 1)[0]

    @property
    def has_extension(self) -> bool:
        """Return True if the reference already names a file extension."""
        return "." in self.basename

    @classmethod
    def for_object(cls, obj: Any, format: str | None = None) -> "PartialReference":
        """Derive the implicit partial reference for a domain object.

        Objects may define ``to_partial_path`` (method or attribute) to pick
        their own partial; otherwise the class name decides:
        ``BlogPost`` -> ``blog_posts/blog_post``.
        """
        custom = getattr(obj, "to_partial_path", None)
        if custom is not None:
            path = custom() if callable(custom) else custom
            return cls(str(path), format)

        singular = underscore(type(obj).__name__)
        return cls(f"{pluralize(singular)}/{singular}", format)

    def __str__(self) -> str:
        return self.path


@dataclass
class LocalsSignature:
    """Strict-locals contract declared by a template.

    Attributes:
        required: Names that must be passed, in declaration order
        optional: Names with defaults, in declaration order
        accepts_extra: True if the declaration ends with ``**name``
    """

    required: list[str] = field(default_factory=list)
    optional: dict[str, Any] = field(default_factory=dict)
    accepts_extra: bool = False

    @property
    def names(self) -> list[str]:
        """All declared names, required first."""
        return [*self.required, *self.optional]

    def defaults(self) -> dict[str, Any]:
        """Return a fresh copy of the optional defaults."""
        return {name: copy.deepcopy(value) for name, value in self.optional.items()}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "required": list(self.required),
            "optional": dict(self.optional),
            "accepts_extra": self.accepts_extra,
        }

    def __str__(self) -> str:
        parts = list(self.required)
        parts.extend(f"{name}={value!r}" for name, value in self.optional.items())
        if self.accepts_extra:
            parts.append("**")
        return f"({', '.join(parts)})"


@dataclass(frozen=True)
class PartialIteration:
    """Position of the current element within a collection render."""

    index: int
    size: int

    @property
    def first(self) -> bool:
        return self.index == 0

    @property
    def last(self) -> bool:
        return self.index == self.size - 1


class ContentBlock:
    """Deferred chunk of markup supplied by a caller.

    Wraps ready strings and zero-argument callables. A callable is invoked the
    first time the block is read and its result replaces it, so a layout that
    never yields a block never pays for rendering it and a block read twice
    renders once.
    """

    def __init__(self, source: "str | Callable[[], Any] | ContentBlock | None" = None) -> None:
        self._parts: list[Any] = []
        if source is not None:
            self.append(source)

    def append(self, source: "str | Callable[[], Any] | ContentBlock") -> None:
        """Add more content to the end of the block."""
        self._parts.append(source)

    @property
    def is_empty(self) -> bool:
        return not self._parts

    def _evaluated_parts(self) -> list[Any]:
        for index, part in enumerate(self._parts):
            if callable(part):
                self._parts[index] = part()
        return self._parts

    def evaluate(self) -> str:
        """Render the block as plain text."""
        return "".join(str(part) for part in self._evaluated_parts())

    def markup(self) -> Markup:
        """Render the block as HTML-safe markup.

        Parts that are already ``Markup`` (rendered templates) pass through;
        plain strings are escaped.
        """
        return Markup("").join(self._evaluated_parts())

    def __str__(self) -> str:
        return self.evaluate()

    def __repr__(self) -> str:
        deferred = sum(1 for part in self._parts if callable(part))
        return f"<ContentBlock parts={len(self._parts)} deferred={deferred}>"

    def __html__(self) -> str:
        return self.markup()
