"""Template resolution by naming convention.

Maps a symbolic partial reference to a concrete template name on the Jinja2
search path. For reference ``users/user`` rendered as HTML the candidates are:

    users/_user.html.j2   partial with format
    users/_user.j2        format-agnostic partial
    users/user.html.j2    plain template with format
    users/user            explicit template file name

A bare reference (``user``) rendered from inside ``users/index.html.j2`` is
looked up under ``users/`` first.
"""

import logging
from typing import Any

from jinja2 import Environment, TemplateNotFound

from partialkit.errors import TemplateNotFoundError
from partialkit.models.partial import PartialReference

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "html"
DEFAULT_EXTENSION = ".j2"


class TemplateResolver:
    """Resolves partial references to template names.

    Resolution results are cached; call ``clear_cache`` after templates are
    added or removed.
    """

    def __init__(
        self,
        env: Environment,
        default_format: str = DEFAULT_FORMAT,
        extension: str = DEFAULT_EXTENSION,
    ) -> None:
        """Initialize the resolver.

        Args:
            env: Jinja2 environment whose loader holds the templates
            default_format: Format used when a reference gives none
            extension: Template file extension (including the dot)
        """
        self._env = env
        self.default_format = default_format
        self.extension = extension
        self._cache: dict[tuple[str, str, bool, str], str] = {}

    def candidates(
        self,
        reference: PartialReference,
        partial: bool = True,
        prefix: str = "",
    ) -> list[str]:
        """List candidate template names for a reference, in lookup order.

        Args:
            reference: Partial reference to resolve
            partial: Whether underscore-prefixed names are tried
            prefix: Directory of the calling template, used for bare names

        Returns:
            Candidate names without duplicates
        """
        fmt = reference.format or self.default_format
        ext = self.extension

        directories = [reference.directory]
        if not reference.directory and prefix:
            directories.insert(0, prefix.strip("/"))

        names: list[str] = []
        for directory in directories:
            base = f"{directory}/" if directory else ""
            name = reference.basename
            if reference.has_extension:
                names.append(f"{base}{name}")
                if partial and not name.startswith("_"):
                    names.append(f"{base}_{name}")
                continue
            if partial:
                names.append(f"{base}_{name}.{fmt}{ext}")
                names.append(f"{base}_{name}{ext}")
            names.append(f"{base}{name}.{fmt}{ext}")
            names.append(f"{base}{name}")

        return list(dict.fromkeys(names))

    def resolve(
        self,
        reference: PartialReference | str,
        format: str | None = None,
        partial: bool = True,
        prefix: str = "",
    ) -> str:
        """Resolve a reference to an existing template name.

        Args:
            reference: Partial reference or reference string
            format: Output format (overrides the reference's own)
            partial: Whether underscore-prefixed names are tried
            prefix: Directory of the calling template

        Returns:
            Template name loadable by the Jinja2 environment

        Raises:
            TemplateNotFoundError: If no candidate exists
        """
        if isinstance(reference, str):
            reference = PartialReference(reference, format)
        elif format is not None:
            reference = PartialReference(reference.path, format)

        key = (reference.path, reference.format or self.default_format, partial, prefix)
        if key in self._cache:
            return self._cache[key]

        tried = self.candidates(reference, partial=partial, prefix=prefix)
        for name in tried:
            if self._exists(name):
                logger.debug("Resolved %s -> %s", reference, name)
                self._cache[key] = name
                return name

        logger.debug("No template for %s (tried %s)", reference, tried)
        raise TemplateNotFoundError(reference.path, tried)

    def resolve_object(
        self,
        obj: Any,
        format: str | None = None,
    ) -> tuple[str, PartialReference]:
        """Resolve the implicit partial for a domain object.

        Returns:
            Tuple of (template name, derived reference)
        """
        reference = PartialReference.for_object(obj, format)
        return self.resolve(reference, format=format), reference

    def format_of(self, template_name: str) -> str | None:
        """Format segment of a template name, None for format-agnostic names.

        ``users/_user.html.j2`` -> "html", ``users/_user.j2`` -> None.
        """
        basename = template_name.rpartition("/")[2]
        if self.extension and basename.endswith(self.extension):
            basename = basename[: -len(self.extension)]
        stem, dot, fmt = basename.rpartition(".")
        return fmt if dot and stem.lstrip("_") else None

    def list_partials(self) -> list[str]:
        """List every partial template (basename starting with "_")."""
        try:
            names = self._env.list_templates()
        except TypeError:
            # Loader does not support listing
            return []
        return sorted(name for name in names if name.rpartition("/")[2].startswith("_"))

    def clear_cache(self) -> None:
        """Forget cached resolutions."""
        self._cache.clear()

    def _exists(self, name: str) -> bool:
        loader = self._env.loader
        if loader is None:
            return False
        try:
            loader.get_source(self._env, name)
        except TemplateNotFound:
            return False
        return True
