"""Partial renderer: every syntactic form of ``render`` in one place.

The same forms work from Python and, through the ``render`` global, from
inside templates:

    render("users/user", user=user)                 reference + locals
    render(partial="users/user", locals={...})      explicit options
    render(user)                                    object, implicit partial
    render(partial="users/user", object=user, as_="person")
    render(users)                                   collection, per-element partial
    render(partial="users/user", collection=users, spacer_template="users/divider")
    render(partial="users/user", user=..., layout="shared/box")   wrapped partial
    {% call render(layout="shared/card") %}...{% endcall %}         layout with a block

Full pages render through ``render_template``, which wraps the view in the
configured page layout.
"""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from jinja2 import BaseLoader, Environment, FileSystemLoader, Template, TemplateNotFound, pass_context
from jinja2.runtime import Context

from partialkit.config import PartialkitConfig
from partialkit.models.partial import LocalsSignature, PartialReference
from partialkit.renderers.filters import register_filters
from partialkit.templates.binder import LocalsBinder
from partialkit.templates.collection import collection_locals, render_collection
from partialkit.templates.layout import BlockSource, LayoutCompositor, render_output
from partialkit.templates.resolver import TemplateResolver
from partialkit.templates.scope import RenderScope, get_render_scope, render_scope

logger = logging.getLogger(__name__)

# Formats whose templates escape their output
ESCAPED_FORMATS = frozenset({"html", "htm", "xml"})

# Keyword options understood by the explicit forms of render()
RENDER_OPTIONS = frozenset({
    "partial",
    "locals",
    "object",
    "collection",
    "as",
    "as_",
    "spacer_template",
    "layout",
    "block",
    "slots",
    "format",
})

_UNSET: Any = object()


def _as_reference(value: "PartialReference | str", format: str | None) -> PartialReference:
    if isinstance(value, PartialReference):
        return value if format is None else PartialReference(value.path, format)
    return PartialReference(str(value), format)


def _is_collection(value: Any) -> bool:
    """Whether ``render(value)`` means the collection form.

    Any iterable (lists, generators, dict views, deques) is a collection;
    strings, bytes and mappings are objects.
    """
    if isinstance(value, (str, bytes, Mapping)):
        return False
    return isinstance(value, Iterable)


def _directory(template_name: str | None) -> str:
    if not template_name:
        return ""
    return template_name.rpartition("/")[0]


class PartialRenderer:
    """Renders partials, collections, layouts and full pages.

    This is the main entry point for rendering. Templates load from the
    configured search path (or an explicit Jinja2 loader).

    Usage:
        renderer = PartialRenderer(config)
        html = renderer.render("users/user", user=user)
        page = renderer.render_template("users/index", users=users)
    """

    def __init__(
        self,
        config: PartialkitConfig | None = None,
        loader: BaseLoader | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            config: Partialkit configuration
            loader: Jinja2 loader (defaults to the configured template paths)
        """
        self.config = config or PartialkitConfig()
        templates = self.config.templates

        if loader is None:
            loader = FileSystemLoader([str(p) for p in self.config.template_dirs()])

        self._env = Environment(
            loader=loader,
            autoescape=self._autoescape_policy(),
            trim_blocks=templates.trim_blocks,
            lstrip_blocks=templates.lstrip_blocks,
            keep_trailing_newline=True,
        )
        register_filters(self._env)

        self.resolver = TemplateResolver(
            self._env,
            default_format=templates.default_format,
            extension=templates.extension,
        )
        self.binder = LocalsBinder(self.get_source)
        self.compositor = LayoutCompositor(self._env, self.get_template)
        self._env.globals["render"] = self._make_render_global()
        # Format-agnostic templates load through an overlay per escaping mode
        self._agnostic_envs: dict[bool, Environment] = {}

    @property
    def env(self) -> Environment:
        """The underlying Jinja2 environment."""
        return self._env

    def _autoescape_policy(self) -> Any:
        if not self.config.templates.autoescape:
            return False

        def policy(template_name: str | None) -> bool:
            if template_name is None:
                # from_string templates
                return True
            fmt = self.resolver.format_of(template_name) or self.config.templates.default_format
            return fmt in ESCAPED_FORMATS

        return policy

    def get_template(self, name: str, format: str | None = None) -> Template:
        """Load a resolved template for an output format.

        Templates named with a format escape according to that format. A
        format-agnostic template (``users/_user.j2``) escapes according to
        the format it is rendered for.
        """
        if not self.config.templates.autoescape or self.resolver.format_of(name) is not None:
            return self._env.get_template(name)

        escape = (format or self.config.templates.default_format) in ESCAPED_FORMATS
        env = self._agnostic_envs.get(escape)
        if env is None:
            env = self._agnostic_envs.setdefault(escape, self._env.overlay(autoescape=escape))
        return env.get_template(name)

    # =========================================================================
    # Public API
    # =========================================================================

    def render(self, target: Any = None, /, **options: Any) -> str:
        """Render using any of the supported syntactic forms.

        Args:
            target: Reference string, domain object, collection, or None for
                the explicit option form
            **options: Locals (reference form) or render options

        Returns:
            Rendered output, ``Markup`` when the template autoescapes so it
            can be passed on as a block without being escaped again

        Raises:
            TemplateNotFoundError: If a reference does not resolve
            MissingLocalError: Strict partial missing a required local
            UnexpectedLocalError: Strict partial given an undeclared local
            TypeError: For unknown options or an unrenderable call
        """
        return self._dispatch(target, dict(options), prefix="")

    def render_partial(
        self,
        reference: "PartialReference | str",
        locals_: Mapping[str, Any] | None = None,
        *,
        format: str | None = None,
        layout: "PartialReference | str | None" = None,
        slots: Mapping[str, BlockSource] | None = None,
        prefix: str = "",
    ) -> str:
        """Render one partial by reference.

        Args:
            reference: Partial reference ("users/user")
            locals_: Locals for the render
            format: Output format (selects the file extension)
            layout: Partial layout wrapped around the output
            slots: Named blocks for the partial layout
            prefix: Directory of the calling template

        Returns:
            Rendered output
        """
        name = self.resolver.resolve(_as_reference(reference, format), prefix=prefix)
        return self._render_resolved(
            name,
            locals_,
            layout=layout,
            slots=slots,
            format=format,
            prefix=prefix,
        )

    def render_object(
        self,
        obj: Any,
        *,
        partial: "PartialReference | str | None" = None,
        as_: str | None = None,
        locals_: Mapping[str, Any] | None = None,
        format: str | None = None,
        layout: "PartialReference | str | None" = None,
        slots: Mapping[str, BlockSource] | None = None,
        prefix: str = "",
    ) -> str:
        """Render a partial for one object, bound under its variable name.

        Without ``partial`` the reference is derived from the object
        (``to_partial_path`` or its class name).
        """
        name, reference = self._resolve_for(obj, partial, format, prefix)
        alias = as_ or reference.variable_name

        scope_locals = dict(locals_ or {})
        scope_locals[alias] = obj
        return self._render_resolved(
            name,
            scope_locals,
            implicit={alias},
            layout=layout,
            slots=slots,
            format=format,
            prefix=prefix,
        )

    def render_collection(
        self,
        collection: Iterable[Any] | None,
        *,
        partial: "PartialReference | str | None" = None,
        as_: str | None = None,
        spacer_template: "PartialReference | str | None" = None,
        locals_: Mapping[str, Any] | None = None,
        format: str | None = None,
        layout: "PartialReference | str | None" = None,
        slots: Mapping[str, BlockSource] | None = None,
        prefix: str = "",
    ) -> str:
        """Render a partial once per element, with an optional spacer.

        Each element is bound under ``as_`` (or the partial's variable name)
        together with ``<name>_counter`` and ``<name>_iteration``. Without
        ``partial`` each element picks its own partial. Templates are only
        resolved when there is something to render, so an empty collection
        renders nothing even if its partial does not exist.

        Returns:
            Per-element output joined by the spacer; "" for an empty collection
        """
        if collection is None:
            return ""

        shared = dict(locals_ or {})

        def render_one(element: Any, iteration: Any) -> str:
            name, reference = self._resolve_for(element, partial, format, prefix)
            alias = as_ or reference.variable_name
            element_locals = dict(shared)
            element_locals.update(collection_locals(alias, element, iteration))
            return self._render_resolved(
                name,
                element_locals,
                implicit=set(element_locals) - set(shared) | {alias},
                layout=layout,
                slots=slots,
                format=format,
                prefix=prefix,
            )

        spacer: Callable[[], str] | None = None
        if spacer_template is not None:
            spacer_ref = _as_reference(spacer_template, format)

            def spacer() -> str:
                spacer_name = self.resolver.resolve(spacer_ref, prefix=prefix)
                return self._render_resolved(spacer_name, shared, implicit=set(shared), format=format)

        with self._scope():
            return render_collection(render_one, collection, spacer)

    def render_layout(
        self,
        layout: "PartialReference | str",
        block: BlockSource | None = None,
        slots: Mapping[str, BlockSource] | None = None,
        locals_: Mapping[str, Any] | None = None,
        *,
        format: str | None = None,
        partial: bool = True,
        prefix: str = "",
    ) -> str:
        """Render a layout around a default block and named blocks.

        Args:
            layout: Layout reference ("shared/card" -> shared/_card.html.j2)
            block: Default content, output by ``yield_content()``
            slots: Named content, output by ``yield_content(name)``
            locals_: Locals for the layout
            format: Output format
            partial: Whether underscore-prefixed layout names are tried
            prefix: Directory of the calling template

        Returns:
            Rendered layout; insertion points without a block render empty
        """
        with self._scope():
            name = self.resolver.resolve(_as_reference(layout, format), partial=partial, prefix=prefix)
            bound = self.binder.bind(name, locals_)
            return self.compositor.compose(
                name,
                block=block,
                slots=slots,
                locals_=bound,
                nested=True,
                format=format,
            )

    def render_template(
        self,
        name: str,
        /,
        layout: Any = _UNSET,
        slots: Mapping[str, BlockSource] | None = None,
        format: str | None = None,
        locals_: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> str:
        """Render a full page: the view first, then its page layout.

        Args:
            name: View reference ("users/index" -> users/index.html.j2)
            layout: Page layout reference; defaults to the configured layout,
                None renders the view alone
            slots: Extra named blocks for the layout
            format: Output format
            locals_: Locals for the view (also visible to the layout); use
                this for locals named like the options above
            **kwargs: More locals, merged over ``locals_``

        Returns:
            Rendered page
        """
        layout_ref = self.config.layout.default if layout is _UNSET else layout
        page_locals = {**(locals_ or {}), **kwargs}

        with self._scope(fresh=True) as scope:
            view_name = self.resolver.resolve(_as_reference(name, format), partial=False)
            bound = self.binder.bind(view_name, page_locals)
            with scope.entering(view_name):
                body = render_output(self.get_template(view_name, format), bound)

            if not layout_ref:
                logger.info("Rendered %s (%d characters)", view_name, len(body))
                return body

            layout_name = self.resolver.resolve(_as_reference(layout_ref, format), partial=False)
            layout_locals = self.binder.bind(layout_name, bound, implicit=set(bound))
            page = self.compositor.compose(
                layout_name,
                block=body,
                slots=slots,
                locals_=layout_locals,
                format=format,
            )

        logger.info("Rendered %s in %s (%d characters)", view_name, layout_name, len(page))
        return page

    def render_to_file(self, name: str, output_path: Path, /, **kwargs: Any) -> Path:
        """Render a full page and write it to a file.

        Args:
            name: View reference
            output_path: Path to write output file
            **kwargs: Passed to ``render_template``

        Returns:
            Path to written file
        """
        content = self.render_template(name, **kwargs)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(content, encoding="utf-8")
        logger.info("Wrote %s to %s", name, output_path)

        return output_path

    def get_source(self, template_name: str) -> str:
        """Return the source text of a resolved template."""
        loader = self._env.loader
        if loader is None:
            raise TemplateNotFound(template_name)
        source, _, _ = loader.get_source(self._env, template_name)
        return source

    def get_signature(
        self,
        reference: "PartialReference | str",
        format: str | None = None,
        partial: bool = True,
    ) -> tuple[str, LocalsSignature | None]:
        """Resolve a reference and return its strict-locals signature.

        Returns:
            Tuple of (template name, signature or None for non-strict)
        """
        name = self.resolver.resolve(_as_reference(reference, format), partial=partial)
        return name, self.binder.signature_for(name)

    def list_partials(self) -> list[str]:
        """List partial templates on the search path."""
        return self.resolver.list_partials()

    def clear_cache(self) -> None:
        """Forget resolutions, signatures and compiled templates."""
        self.resolver.clear_cache()
        self.binder.clear_cache()
        if self._env.cache is not None:
            self._env.cache.clear()

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _scope(self, fresh: bool = False) -> Iterator[RenderScope]:
        """Reuse the render in progress, or start a root scope."""
        current = get_render_scope()
        if current is not None and not fresh:
            yield current
            return
        root = RenderScope(max_depth=self.config.templates.max_depth)
        with render_scope(root) as scope:
            yield scope

    def _resolve_for(
        self,
        obj: Any,
        partial: "PartialReference | str | None",
        format: str | None,
        prefix: str,
    ) -> tuple[str, PartialReference]:
        if partial is None:
            return self.resolver.resolve_object(obj, format)
        reference = _as_reference(partial, format)
        return self.resolver.resolve(reference, prefix=prefix), reference

    def _render_resolved(
        self,
        name: str,
        locals_: Mapping[str, Any] | None,
        implicit: Iterable[str] = (),
        layout: "PartialReference | str | None" = None,
        slots: Mapping[str, BlockSource] | None = None,
        format: str | None = None,
        prefix: str = "",
    ) -> str:
        if slots and layout is None:
            raise TypeError("slots require a layout")

        with self._scope() as scope:
            bound = self.binder.bind(name, locals_, implicit)
            template = self.get_template(name, format)
            with scope.entering(name):
                output = render_output(template, bound)

            if layout is None:
                return output

            layout_name = self.resolver.resolve(_as_reference(layout, format), prefix=prefix)
            layout_locals = self.binder.bind(layout_name, bound, implicit=set(bound))
            return self.compositor.compose(
                layout_name,
                block=output,
                slots=slots,
                locals_=layout_locals,
                nested=True,
                format=format,
            )

    def _dispatch(self, target: Any, options: dict[str, Any], prefix: str) -> str:
        if isinstance(target, (str, PartialReference)):
            # Shorthand form: every keyword is a local
            locals_ = dict(options.pop("locals", None) or {})
            locals_.update(options)
            return self.render_partial(target, locals_, prefix=prefix)

        unknown = set(options) - RENDER_OPTIONS
        if unknown:
            raise TypeError(f"Unknown render option(s): {', '.join(sorted(unknown))}")

        alias = options.get("as_") or options.get("as")
        common: dict[str, Any] = {
            "locals_": options.get("locals"),
            "format": options.get("format"),
            "layout": options.get("layout"),
            "slots": options.get("slots"),
            "prefix": prefix,
        }

        if target is not None:
            if _is_collection(target):
                return self.render_collection(
                    target,
                    partial=options.get("partial"),
                    as_=alias,
                    spacer_template=options.get("spacer_template"),
                    **common,
                )
            return self.render_object(target, partial=options.get("partial"), as_=alias, **common)

        if "collection" in options:
            return self.render_collection(
                options["collection"],
                partial=options.get("partial"),
                as_=alias,
                spacer_template=options.get("spacer_template"),
                **common,
            )

        if "object" in options:
            return self.render_object(
                options["object"],
                partial=options.get("partial"),
                as_=alias,
                **common,
            )

        if options.get("partial") is not None:
            return self.render_partial(
                options["partial"],
                options.get("locals"),
                format=options.get("format"),
                layout=options.get("layout"),
                slots=options.get("slots"),
                prefix=prefix,
            )

        if options.get("layout") is not None:
            return self.render_layout(
                options["layout"],
                block=options.get("block"),
                slots=options.get("slots"),
                locals_=options.get("locals"),
                format=options.get("format"),
                prefix=prefix,
            )

        raise TypeError("render() needs a partial, object, collection or layout")

    def _make_render_global(self) -> Callable[..., Any]:
        renderer = self

        @pass_context
        def render(context: Context, target: Any = None, /, **options: Any) -> Any:
            """Template global: ``{{ render(...) }}`` in any supported form."""
            prefix = _directory(context.name)
            caller = options.pop("caller", None)
            if caller is not None:
                # {% call render(layout=...) %}body{% endcall %}
                options["block"] = caller
                if options.get("layout") is None:
                    raise TypeError("render() with a call block needs a layout")
            # Markup from escaped templates embeds as is; other text is
            # escaped by an escaping caller
            return renderer._dispatch(target, options, prefix=prefix)

        return render
