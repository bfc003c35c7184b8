"""Collection rendering.

Renders one partial per element of a sequence and joins the results, with an
optional spacer between elements (never after the last one).
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from markupsafe import Markup

from partialkit.models.partial import PartialIteration

logger = logging.getLogger(__name__)


def collection_locals(alias: str, element: Any, iteration: PartialIteration) -> dict[str, Any]:
    """Build the per-element locals for a collection render.

    Args:
        alias: Local name the element is bound under
        element: Current element
        iteration: Position within the collection

    Returns:
        ``{alias: element, alias_counter: index, alias_iteration: iteration}``
    """
    return {
        alias: element,
        f"{alias}_counter": iteration.index,
        f"{alias}_iteration": iteration,
    }


def render_collection(
    render_one: Callable[[Any, PartialIteration], str],
    collection: Iterable[Any],
    spacer: Callable[[], str] | None = None,
) -> str:
    """Render every element of a collection.

    Args:
        render_one: Renders one element given its position
        collection: Elements to render (consumed once, in order)
        spacer: Renders the separator inserted between elements

    Returns:
        Concatenated output (``Markup`` when the partials escape); empty
        string for an empty collection
    """
    elements = list(collection)
    size = len(elements)
    if size == 0:
        logger.debug("Empty collection, nothing to render")
        return ""

    # Spacer output is identical between elements; render it once
    separator = spacer() if spacer is not None and size > 1 else ""

    parts: list[str] = []
    for index, element in enumerate(elements):
        if index and separator:
            parts.append(separator)
        parts.append(render_one(element, PartialIteration(index=index, size=size)))

    logger.debug("Rendered collection of %d element(s)", size)
    if any(isinstance(part, Markup) for part in parts):
        # Escaped partials: plain parts are escaped, Markup parts kept
        return Markup("").join(parts)
    return "".join(parts)
