"""Partialkit template rendering.

Jinja2-based partial rendering: reference resolution, strict locals,
collections and layouts. Rendering is deterministic: the same reference and
locals always produce the same output.
"""

from partialkit.templates.binder import LocalsBinder, parse_locals_signature
from partialkit.templates.collection import render_collection
from partialkit.templates.layout import LayoutCompositor
from partialkit.templates.renderer import PartialRenderer
from partialkit.templates.resolver import TemplateResolver

__all__ = [
    "PartialRenderer",
    "TemplateResolver",
    "LocalsBinder",
    "LayoutCompositor",
    "parse_locals_signature",
    "render_collection",
]
