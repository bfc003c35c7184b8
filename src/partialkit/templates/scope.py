"""Per-render state for content blocks and nesting depth.

Each top-level render owns a RenderScope held in a ContextVar, so template
globals (``content_for``, ``yield_content``, ``render``) reach the state of
the render they run in without it leaking into user locals, and concurrent
renders in different threads or tasks never share blocks.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from partialkit.errors import RenderDepthError
from partialkit.models.partial import ContentBlock

DEFAULT_BLOCK = "default"

# Deep enough for any real partial hierarchy, shallow enough to catch a
# partial that renders itself
DEFAULT_MAX_DEPTH = 50


@dataclass
class RenderScope:
    """Content blocks and template stack of one render.

    Attributes:
        blocks: Named content blocks provided so far
        parent: Enclosing scope (partial layouts compose in a child scope)
        max_depth: Maximum partial nesting depth
        template_stack: Names of templates currently rendering, outermost first
    """

    blocks: dict[str, ContentBlock] = field(default_factory=dict)
    parent: "RenderScope | None" = None
    max_depth: int = DEFAULT_MAX_DEPTH
    template_stack: list[str] = field(default_factory=list)

    def block(self, name: str = DEFAULT_BLOCK) -> ContentBlock | None:
        """Look up a block, falling back to enclosing scopes for named blocks.

        The default block never falls back: inside a partial layout it is
        the wrapped partial, not the page body.
        """
        found = self.blocks.get(name)
        if found is not None or name == DEFAULT_BLOCK or self.parent is None:
            return found
        return self.parent.block(name)

    def has_block(self, name: str = DEFAULT_BLOCK) -> bool:
        found = self.block(name)
        return found is not None and not found.is_empty

    def provide(self, name: str, source: Any) -> None:
        """Append content to a named block, creating it if needed."""
        self.blocks.setdefault(name, ContentBlock()).append(source)

    def child(self, blocks: dict[str, ContentBlock] | None = None) -> "RenderScope":
        """Create a nested scope sharing the template stack."""
        return RenderScope(
            blocks=dict(blocks or {}),
            parent=self,
            max_depth=self.max_depth,
            template_stack=self.template_stack,
        )

    @property
    def current_template(self) -> str | None:
        return self.template_stack[-1] if self.template_stack else None

    @contextmanager
    def entering(self, template_name: str) -> Iterator[None]:
        """Track a template on the stack for the duration of its render.

        Raises:
            RenderDepthError: If nesting exceeds ``max_depth``
        """
        if len(self.template_stack) >= self.max_depth:
            raise RenderDepthError(template_name, self.max_depth, list(self.template_stack))
        self.template_stack.append(template_name)
        try:
            yield
        finally:
            self.template_stack.pop()


_render_scope: ContextVar[RenderScope | None] = ContextVar(
    "partialkit_render_scope",
    default=None,
)


def get_render_scope() -> RenderScope | None:
    """Return the scope of the render in progress, if any."""
    return _render_scope.get()


@contextmanager
def render_scope(scope: RenderScope | None = None) -> Iterator[RenderScope]:
    """Activate a scope for the duration of a render.

    With no argument, reuses the active scope or starts a new root scope.
    """
    if scope is None:
        current = _render_scope.get()
        if current is not None:
            yield current
            return
        scope = RenderScope()

    token = _render_scope.set(scope)
    try:
        yield scope
    finally:
        _render_scope.reset(token)
