"""Local-variable binding with optional strict-locals contracts.

A template opts into strict locals with a magic comment before any other
content:

    {#- locals: (user, show_avatar=True) -#}

The parameter list uses Python parameter syntax. Names without a default are
required, ``name=<literal>`` declares an optional local, ``**rest`` accepts
any other key, and ``()`` accepts no locals at all. Templates without the
comment bind whatever they are given and read missing names as undefined.
"""

import ast
import logging
import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from partialkit.errors import (
    LocalsDeclarationError,
    MissingLocalError,
    UnexpectedLocalError,
)
from partialkit.models.partial import LocalsSignature

logger = logging.getLogger(__name__)

# Leading Jinja2 comment of the form {# locals: (...) #}, dashes optional
_LOCALS_COMMENT_RE = re.compile(
    r"\A\s*\{#-?\s*locals:\s*(?P<params>\(.*?\))\s*-?#\}",
    re.DOTALL,
)


def parse_locals_signature(
    source: str,
    template_name: str = "<template>",
) -> LocalsSignature | None:
    """Parse the strict-locals declaration at the top of a template.

    Args:
        source: Template source text
        template_name: Name used in error messages

    Returns:
        LocalsSignature if the template declares strict locals, None otherwise

    Raises:
        LocalsDeclarationError: If the declaration is malformed
    """
    match = _LOCALS_COMMENT_RE.match(source)
    if match is None:
        return None

    params = match.group("params")
    try:
        tree = ast.parse(f"def _locals{params}: pass", mode="exec")
    except SyntaxError as e:
        raise LocalsDeclarationError(template_name, f"{params} ({e.msg})") from e

    func = tree.body[0]
    if not isinstance(func, ast.FunctionDef):
        raise LocalsDeclarationError(template_name, params)
    args = func.args

    if args.vararg is not None:
        raise LocalsDeclarationError(template_name, "*args is not supported")
    if args.posonlyargs:
        raise LocalsDeclarationError(template_name, "positional-only markers are not supported")

    signature = LocalsSignature(accepts_extra=args.kwarg is not None)

    positional_defaults = [None] * (len(args.args) - len(args.defaults)) + list(args.defaults)
    declared = list(zip(args.args, positional_defaults, strict=True))
    declared.extend(zip(args.kwonlyargs, args.kw_defaults, strict=True))

    for arg, default in declared:
        if default is None:
            signature.required.append(arg.arg)
            continue
        try:
            signature.optional[arg.arg] = ast.literal_eval(default)
        except ValueError as e:
            raise LocalsDeclarationError(
                template_name,
                f"default for '{arg.arg}' must be a literal",
            ) from e

    logger.debug("Parsed strict locals for %s: %s", template_name, signature)
    return signature


class LocalsBinder:
    """Binds caller locals into a template scope.

    Signatures are parsed once per template and cached.

    Usage:
        binder = LocalsBinder(source_loader)
        scope = binder.bind("users/_user.html.j2", {"user": user})
    """

    def __init__(self, source_loader: Callable[[str], str]) -> None:
        """Initialize the binder.

        Args:
            source_loader: Callable mapping a template name to its source
        """
        self._source_loader = source_loader
        self._cache: dict[str, LocalsSignature | None] = {}

    def signature_for(self, template_name: str) -> LocalsSignature | None:
        """Return the strict-locals signature of a template (cached)."""
        if template_name not in self._cache:
            source = self._source_loader(template_name)
            self._cache[template_name] = parse_locals_signature(source, template_name)
        return self._cache[template_name]

    def bind(
        self,
        template_name: str,
        locals_: Mapping[str, Any] | None = None,
        implicit: Iterable[str] = (),
    ) -> dict[str, Any]:
        """Validate and bind locals for one render.

        Args:
            template_name: Resolved template name
            locals_: Caller-supplied locals
            implicit: Names injected by the renderer (collection counters,
                object aliases) that strict templates need not declare

        Returns:
            The render scope

        Raises:
            MissingLocalError: Strict template missing a required local
            UnexpectedLocalError: Strict template given an undeclared local
        """
        given = dict(locals_ or {})
        signature = self.signature_for(template_name)
        if signature is None:
            return given

        return bind_strict(template_name, signature, given, implicit)

    def clear_cache(self) -> None:
        """Forget parsed signatures (after templates change on disk)."""
        self._cache.clear()


def bind_strict(
    template_name: str,
    signature: LocalsSignature,
    given: dict[str, Any],
    implicit: Iterable[str] = (),
) -> dict[str, Any]:
    """Bind locals against a strict-locals signature."""
    implicit_names = set(implicit)

    missing = [name for name in signature.required if name not in given]
    if missing:
        raise MissingLocalError(template_name, missing)

    if not signature.accepts_extra:
        declared = set(signature.names)
        unexpected = [
            name for name in given if name not in declared and name not in implicit_names
        ]
        if unexpected:
            raise UnexpectedLocalError(template_name, unexpected)

    scope = signature.defaults()
    scope.update(given)
    return scope
