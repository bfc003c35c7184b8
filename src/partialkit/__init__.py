"""Partialkit - partial, collection and layout rendering for Jinja2.

Partialkit brings view-layer composition conventions to Jinja2 templates:

- Partials: reusable fragments looked up by a symbolic reference
  ("users/user" -> users/_user.html.j2)
- Locals: per-render variables, optionally constrained by a strict-locals
  declaration at the top of the template
- Collections: one render per element with an optional spacer template
- Layouts: wrapping templates with default and named content blocks (slots)
"""

from partialkit.errors import (
    ConfigError,
    LocalsDeclarationError,
    LocalsError,
    MissingLocalError,
    PartialkitError,
    RenderDepthError,
    TemplateNotFoundError,
    UnexpectedLocalError,
)
from partialkit.templates import PartialRenderer

__version__ = "0.1.0"
__author__ = "Partialkit Contributors"

__all__ = [
    "PartialRenderer",
    "PartialkitError",
    "TemplateNotFoundError",
    "LocalsError",
    "MissingLocalError",
    "UnexpectedLocalError",
    "LocalsDeclarationError",
    "RenderDepthError",
    "ConfigError",
]
