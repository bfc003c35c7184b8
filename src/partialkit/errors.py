"""Partialkit exceptions.

Exception Hierarchy:
PartialkitError (base)
├── TemplateNotFoundError      # No template matched the naming convention
├── LocalsError                # Strict-locals contract violated
│   ├── MissingLocalError      # Required local not passed
│   └── UnexpectedLocalError   # Undeclared local passed
├── LocalsDeclarationError     # Malformed `{# locals: (...) #}` comment
├── RenderDepthError           # Partials nested too deeply
└── ConfigError                # Invalid configuration

Locals errors also derive from TypeError, and the lookup/declaration errors
from LookupError/ValueError, so callers can catch them the way they would
catch the equivalent Python failure.
"""


class PartialkitError(Exception):
    """Base class for all Partialkit errors."""


class TemplateNotFoundError(PartialkitError, LookupError):
    """Raised when a reference does not resolve to any template.

    Attributes:
        reference: The symbolic reference that was looked up
        tried: Candidate template names, in lookup order
    """

    def __init__(self, reference: str, tried: list[str] | None = None) -> None:
        self.reference = reference
        self.tried = list(tried or [])
        message = f"Template not found: {reference}"
        if self.tried:
            message += f" (tried: {', '.join(self.tried)})"
        super().__init__(message)


class LocalsError(PartialkitError, TypeError):
    """Base class for strict-locals violations.

    Attributes:
        template: Name of the template whose contract was violated
        names: Offending local names, sorted
    """

    def __init__(self, template: str, names: list[str], message: str) -> None:
        self.template = template
        self.names = sorted(names)
        super().__init__(message)


class MissingLocalError(LocalsError):
    """Raised when a strict template is rendered without a required local."""

    def __init__(self, template: str, names: list[str]) -> None:
        joined = ", ".join(sorted(names))
        super().__init__(
            template,
            names,
            f"undefined local variable(s) {joined} for {template}",
        )


class UnexpectedLocalError(LocalsError):
    """Raised when a strict template is passed a local it does not declare."""

    def __init__(self, template: str, names: list[str]) -> None:
        joined = ", ".join(sorted(names))
        super().__init__(
            template,
            names,
            f"unexpected keyword(s) {joined} for {template}",
        )


class LocalsDeclarationError(PartialkitError, ValueError):
    """Raised when a strict-locals magic comment cannot be parsed."""

    def __init__(self, template: str, message: str) -> None:
        self.template = template
        super().__init__(f"Invalid locals declaration in {template}: {message}")


class RenderDepthError(PartialkitError, RecursionError):
    """Raised when partials nest deeper than the configured maximum.

    Attributes:
        template: Template that would have exceeded the limit
        stack: Templates rendering at the time, outermost first
    """

    def __init__(self, template: str, max_depth: int, stack: list[str]) -> None:
        self.template = template
        self.stack = stack
        chain = " -> ".join([*stack[-3:], template])
        super().__init__(f"Partial nesting exceeds {max_depth} levels: ... {chain}")


class ConfigError(PartialkitError, ValueError):
    """Raised for invalid configuration values."""
