"""Layout composition with default and named content blocks.

A layout yields blocks where they belong:

    <title>{{ yield_content("title") }}</title>
    <aside>{{ yield_content("sidebar") }}</aside>
    <main>{{ yield_content() }}</main>

Views provide named blocks before the layout renders:

    {{ content_for("title", "Users") }}
    {% call content_for("sidebar") %}<a href="/users/new">New</a>{% endcall %}

Blocks nobody provided render empty.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from jinja2 import Environment, Template, pass_eval_context
from jinja2.nodes import EvalContext
from markupsafe import Markup

from partialkit.models.partial import ContentBlock
from partialkit.templates.scope import DEFAULT_BLOCK, RenderScope, get_render_scope, render_scope

logger = logging.getLogger(__name__)

BlockSource = str | Callable[[], Any] | ContentBlock


def autoescapes(template: Template) -> bool:
    """Whether a loaded template escapes its output."""
    policy = template.environment.autoescape
    if callable(policy):
        return bool(policy(template.name))
    return bool(policy)


def render_output(template: Template, context: Mapping[str, Any]) -> str:
    """Render a template; output of an autoescaped template is ``Markup``."""
    output = template.render(context)
    return Markup(output) if autoescapes(template) else output


def _active_scope() -> RenderScope:
    scope = get_render_scope()
    if scope is None:
        # Outside a managed render: behave like a layout with no blocks
        return RenderScope()
    return scope


@pass_eval_context
def yield_content(eval_ctx: EvalContext, name: str = DEFAULT_BLOCK) -> str:
    """Template global: output a content block (empty if not provided)."""
    block = _active_scope().block(name)
    if block is None:
        return Markup("") if eval_ctx.autoescape else ""
    return block.markup() if eval_ctx.autoescape else block.evaluate()


@pass_eval_context
def content_for(
    eval_ctx: EvalContext,
    name: str,
    value: Any = None,
    caller: Callable[[], str] | None = None,
) -> str:
    """Template global: provide content for a named block.

    With neither a value nor a ``{% call %}`` body, returns the block's
    content instead, like ``yield_content(name)``.
    """
    scope = _active_scope()
    if caller is not None:
        # Macro output is Markup in escaped templates and text elsewhere
        scope.provide(name, caller)
    elif value is not None:
        scope.provide(name, value)
    else:
        return yield_content(eval_ctx, name)
    return Markup("") if eval_ctx.autoescape else ""


def has_content(name: str = DEFAULT_BLOCK) -> bool:
    """Template global: whether a block has been provided."""
    return _active_scope().has_block(name)


def register_globals(env: Environment) -> None:
    """Install the block globals on a Jinja2 environment."""
    env.globals["yield_content"] = yield_content
    env.globals["content_for"] = content_for
    env.globals["has_content"] = has_content


class LayoutCompositor:
    """Renders a layout template around caller-supplied content blocks.

    Usage:
        compositor = LayoutCompositor(env)
        html = compositor.compose(
            "shared/_card.html.j2",
            block=Markup("<p>body</p>"),
            slots={"title": "Card"},
        )
    """

    def __init__(
        self,
        env: Environment,
        get_template: Callable[[str, str | None], Template] | None = None,
    ) -> None:
        """Initialize the compositor.

        Args:
            env: Jinja2 environment the layout templates load from
            get_template: Loads a layout for an output format (defaults to
                ``env.get_template``)
        """
        self._env = env
        self._get_template = get_template or (lambda name, format: env.get_template(name))
        register_globals(env)

    def compose(
        self,
        layout_name: str,
        block: BlockSource | None = None,
        slots: Mapping[str, BlockSource] | None = None,
        locals_: Mapping[str, Any] | None = None,
        nested: bool = False,
        format: str | None = None,
    ) -> str:
        """Render a layout with its insertion points substituted.

        Args:
            layout_name: Resolved layout template name
            block: Default content block (what ``yield_content()`` outputs)
            slots: Named content blocks
            locals_: Variables visible to the layout
            nested: Compose in a child scope so the default block and the
                given slots do not replace the page's own blocks
            format: Output format the layout renders for

        Returns:
            Rendered layout, ``Markup`` when the layout autoescapes
        """
        with render_scope() as scope:
            target = scope.child() if nested else scope

            # Caller-owned blocks are wrapped, never appended to
            if block is not None:
                target.blocks[DEFAULT_BLOCK] = ContentBlock(block)
            for name, source in (slots or {}).items():
                if name == DEFAULT_BLOCK and block is not None:
                    target.blocks[DEFAULT_BLOCK].append(source)
                else:
                    target.provide(name, source)

            template = self._get_template(layout_name, format)
            logger.debug(
                "Composing layout %s with blocks %s",
                layout_name,
                sorted(target.blocks),
            )
            with render_scope(target), target.entering(layout_name):
                return render_output(template, dict(locals_ or {}))
