"""Partialkit CLI interface.

Commands:
- render: Render a full page (view + layout)
- partial: Render a partial, object or collection
- locals: Show the strict-locals declaration of a partial
- list: List partial templates on the search path
- validate: Validate a template's syntax and locals declaration
- init: Initialize Partialkit configuration

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from partialkit import __version__
from partialkit.config import PartialkitConfig, create_default_config, load_config
from partialkit.errors import PartialkitError
from partialkit.utils.logging import configure_from_cli, get_logger

app = typer.Typer(
    name="partialkit",
    help="Render Jinja2 partials, collections and layouts",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: PartialkitConfig | None = None
_logger = get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"partialkit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Enable CI mode with JSON log output"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Partialkit - partial, collection and layout rendering for Jinja2."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug(f"Loaded config from: {_config.config_path}")
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(1)
    except PartialkitError as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)


# =============================================================================
# Shared helpers
# =============================================================================


def _load_locals(data: Path | None, assignments: list[str] | None) -> dict[str, Any]:
    """Build render locals from a YAML/JSON data file and key=value pairs.

    Values given with --set are parsed as YAML scalars ("3" -> 3, "true" -> True).
    """
    locals_: dict[str, Any] = {}

    if data is not None:
        try:
            loaded = yaml.safe_load(data.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            _logger.error(f"Invalid data file {data}: {e}")
            raise typer.Exit(1)
        if not isinstance(loaded, dict):
            _logger.error(f"Data file must contain a mapping: {data}")
            raise typer.Exit(1)
        locals_.update(loaded)

    for assignment in assignments or []:
        key, sep, raw = assignment.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got: {assignment}")
        try:
            locals_[key.strip()] = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError as e:
            _logger.error(f"Invalid value for {key.strip()}: {e}")
            raise typer.Exit(1)

    return locals_


def _renderer(templates: list[Path] | None = None) -> Any:
    """Create a renderer from the loaded config, with CLI path overrides."""
    from partialkit.templates import PartialRenderer

    config = _config or PartialkitConfig()
    if templates:
        config.templates.paths = [str(p.resolve()) for p in templates]
    return PartialRenderer(config)


def _emit(content: str, output: Path | None) -> None:
    """Write rendered content to a file or stdout."""
    if output is None and _config is not None and _config.output.path:
        output = Path(_config.output.path)

    if output is None:
        typer.echo(content, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    _logger.info(f"Wrote output to {output}")


DataOption = Annotated[
    Path | None,
    typer.Option("--data", "-d", help="YAML or JSON file with locals", exists=True, dir_okay=False),
]
SetOption = Annotated[
    list[str] | None,
    typer.Option("--set", "-s", help="Local as key=value (repeatable)"),
]
TemplatesOption = Annotated[
    list[Path] | None,
    typer.Option("--templates", "-t", help="Template directory (overrides config, repeatable)"),
]
FormatOption = Annotated[
    str | None,
    typer.Option("--format", "-f", help="Output format, selects the template extension"),
]
OutputOption = Annotated[
    Path | None,
    typer.Option("--output", "-o", help="Output file path (default: stdout)"),
]


# =============================================================================
# render command
# =============================================================================


@app.command()
def render(
    template: Annotated[str, typer.Argument(help="View reference, e.g. users/index")],
    data: DataOption = None,
    assignments: SetOption = None,
    layout: Annotated[
        str | None,
        typer.Option("--layout", "-l", help="Page layout (overrides config)"),
    ] = None,
    no_layout: Annotated[
        bool,
        typer.Option("--no-layout", help="Render the view without a layout"),
    ] = False,
    templates: TemplatesOption = None,
    format: FormatOption = None,
    output: OutputOption = None,
) -> None:
    """Render a full page: the view, then its layout.

    Exit codes:
        0: Rendered successfully
        1: Template, locals or syntax error
    """
    from jinja2 import TemplateError

    renderer = _renderer(templates)
    locals_ = _load_locals(data, assignments)

    options: dict[str, Any] = {"format": format}
    if no_layout:
        options["layout"] = None
    elif layout:
        options["layout"] = layout

    try:
        content = renderer.render_template(template, locals_=locals_, **options)
    except (PartialkitError, TemplateError) as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    _emit(content, output)


# =============================================================================
# partial command
# =============================================================================


@app.command()
def partial(
    reference: Annotated[str, typer.Argument(help="Partial reference, e.g. users/user")],
    data: DataOption = None,
    assignments: SetOption = None,
    collection: Annotated[
        str | None,
        typer.Option("--collection", help="Render once per element of this list local"),
    ] = None,
    as_: Annotated[
        str | None,
        typer.Option("--as", help="Local name for each collection element"),
    ] = None,
    spacer: Annotated[
        str | None,
        typer.Option("--spacer", help="Spacer partial rendered between elements"),
    ] = None,
    layout: Annotated[
        str | None,
        typer.Option("--layout", "-l", help="Partial layout wrapped around the output"),
    ] = None,
    templates: TemplatesOption = None,
    format: FormatOption = None,
    output: OutputOption = None,
) -> None:
    """Render a single partial, or a collection with --collection."""
    from jinja2 import TemplateError

    renderer = _renderer(templates)
    locals_ = _load_locals(data, assignments)

    try:
        if collection is not None:
            if collection not in locals_:
                _logger.error(f"Collection local not found: {collection}")
                raise typer.Exit(1)
            items = locals_.pop(collection)
            if not isinstance(items, list):
                _logger.error(f"Collection local must be a list: {collection}")
                raise typer.Exit(1)
            content = renderer.render_collection(
                items,
                partial=reference,
                as_=as_,
                spacer_template=spacer,
                locals_=locals_,
                format=format,
                layout=layout,
            )
        else:
            content = renderer.render_partial(reference, locals_, format=format, layout=layout)
    except (PartialkitError, TemplateError) as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    _emit(content, output)


# =============================================================================
# locals command
# =============================================================================


@app.command("locals")
def show_locals(
    reference: Annotated[str, typer.Argument(help="Partial reference, e.g. users/user")],
    templates: TemplatesOption = None,
    format: FormatOption = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show the strict-locals declaration of a partial."""
    renderer = _renderer(templates)

    try:
        name, signature = renderer.get_signature(reference, format=format)
    except PartialkitError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    if json_output:
        payload = {"template": name, "strict": signature is not None}
        if signature is not None:
            payload.update(signature.to_dict())
        typer.echo(json.dumps(payload, indent=2, default=repr))
        return

    if signature is None:
        typer.echo(f"{name}: any locals (no strict declaration)")
    else:
        typer.echo(f"{name}: locals {signature}")


# =============================================================================
# list command
# =============================================================================


@app.command("list")
def list_partials(templates: TemplatesOption = None) -> None:
    """List partial templates on the search path."""
    renderer = _renderer(templates)
    names = renderer.list_partials()

    if not names:
        _logger.warning("No partials found")
        return

    for name in names:
        typer.echo(name)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing config file"),
    ] = False,
) -> None:
    """Initialize Partialkit configuration in ./.partialkit/config.yaml."""
    config_dir = Path.cwd() / ".partialkit"
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file} (use --force to overwrite)")
        raise typer.Exit(1)

    config_dir.mkdir(parents=True, exist_ok=True)
    config_file.write_text(create_default_config(), encoding="utf-8")
    _logger.info(f"Created config: {config_file}")

    typer.echo(f"✅ Partialkit configuration initialized: {config_file}")


# =============================================================================
# validate command
# =============================================================================


@app.command()
def validate(
    template: Annotated[
        Path,
        typer.Argument(
            help="Path to Jinja2 template to validate",
            exists=True,
            dir_okay=False,
        ),
    ],
) -> None:
    """Validate a template.

    Checks Jinja2 syntax and the strict-locals declaration, if any.
    """
    from jinja2 import Environment, TemplateSyntaxError

    from partialkit.errors import LocalsDeclarationError
    from partialkit.templates.binder import parse_locals_signature

    _logger.info(f"Validating template: {template}")
    source = template.read_text(encoding="utf-8")

    try:
        Environment().parse(source)
        signature = parse_locals_signature(source, template.name)
    except TemplateSyntaxError as e:
        _logger.error(f"Template syntax error: {e.message}")
        typer.echo(f"❌ Template syntax error at line {e.lineno}: {e.message}")
        raise typer.Exit(1)
    except LocalsDeclarationError as e:
        _logger.error(str(e))
        typer.echo(f"❌ {e}")
        raise typer.Exit(1)

    typer.echo(f"✅ Template is valid: {template}")
    if signature is not None:
        typer.echo(f"   locals {signature}")


if __name__ == "__main__":
    app()
