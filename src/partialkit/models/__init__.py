"""Partialkit data models.

- PartialReference: Symbolic reference to a partial template
- LocalsSignature: Strict-locals declaration parsed from a template
- PartialIteration: Collection position exposed as ``<name>_iteration``
- ContentBlock: Deferred markup for layout slots
"""

from partialkit.models.partial import (
    ContentBlock,
    LocalsSignature,
    PartialIteration,
    PartialReference,
    pluralize,
    underscore,
)

__all__ = [
    "PartialReference",
    "LocalsSignature",
    "PartialIteration",
    "ContentBlock",
    "pluralize",
    "underscore",
]
