"""Partialkit configuration system.

Configuration is YAML-based with per-run CLI overrides (--templates, --layout,
--format, --output). Supports environment variable substitution (${VAR}) in
config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.partialkit/config.yaml
3. ./partialkit.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from partialkit.errors import ConfigError

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class TemplateConfig:
    """Template lookup and Jinja2 environment settings.

    Attributes:
        paths: Template search path, in priority order
        default_format: Format used when a reference gives none (html, txt, ...)
        extension: Template file extension, including the dot
        autoescape: Escape output of html/xml templates
        trim_blocks: Jinja2 trim_blocks
        lstrip_blocks: Jinja2 lstrip_blocks
        max_depth: Maximum partial nesting depth
    """

    paths: list[str] = field(default_factory=lambda: ["templates"])
    default_format: str = "html"
    extension: str = ".j2"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True
    max_depth: int = 50

    def __post_init__(self) -> None:
        """Validate template configuration."""
        if isinstance(self.paths, str):
            self.paths = [self.paths]
        if not self.paths:
            raise ConfigError("At least one template path is required")

        if not re.fullmatch(r"[A-Za-z0-9_+-]+", self.default_format):
            raise ConfigError(f"Invalid default format: {self.default_format!r}")

        if self.extension and not self.extension.startswith("."):
            self.extension = f".{self.extension}"

        if self.max_depth < 1:
            raise ConfigError(f"max_depth must be positive (got {self.max_depth})")


@dataclass
class LayoutConfig:
    """Page layout settings.

    Attributes:
        default: Layout wrapped around full-page renders (None disables)
    """

    default: str | None = None


@dataclass
class OutputConfig:
    """Output configuration.

    Attributes:
        path: File to write rendered output to (stdout when None)
    """

    path: str | None = None


@dataclass
class PartialkitConfig:
    """Top-level Partialkit configuration.

    Attributes:
        templates: Template lookup and environment settings
        layout: Page layout settings
        output: Output destination
    """

    templates: TemplateConfig = field(default_factory=TemplateConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Runtime overrides (set by CLI)
    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path

    def template_dirs(self) -> list[Path]:
        """Template search path resolved against the config file location."""
        base = self._config_path.parent if self._config_path else Path.cwd()
        if base.name == ".partialkit":
            base = base.parent

        dirs: list[Path] = []
        for entry in self.templates.paths:
            path = Path(entry)
            dirs.append(path if path.is_absolute() else (base / path).resolve())
        return dirs


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${TEMPLATE_ROOT} -> value of TEMPLATE_ROOT

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ConfigError: If a referenced variable is not set
    """
    if isinstance(value, str):
        # Pattern: ${VAR_NAME}
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ConfigError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.partialkit/config.yaml
    2. ./partialkit.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".partialkit" / "config.yaml",
        start_path / "partialkit.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def load_config_from_dict(data: dict[str, Any]) -> PartialkitConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        PartialkitConfig instance

    Raises:
        ConfigError: If a section is malformed or a value is invalid
    """
    # Apply environment variable substitution
    data = substitute_env_vars(data)

    config = PartialkitConfig()

    for section in ("templates", "layout", "output"):
        if section in data and data[section] is not None and not isinstance(data[section], dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")

    # Templates config
    if data.get("templates"):
        tpl = data["templates"]
        defaults = config.templates
        config.templates = TemplateConfig(
            paths=tpl.get("paths", defaults.paths),
            default_format=tpl.get("default_format", defaults.default_format),
            extension=tpl.get("extension", defaults.extension),
            autoescape=tpl.get("autoescape", defaults.autoescape),
            trim_blocks=tpl.get("trim_blocks", defaults.trim_blocks),
            lstrip_blocks=tpl.get("lstrip_blocks", defaults.lstrip_blocks),
            max_depth=tpl.get("max_depth", defaults.max_depth),
        )

    # Layout config
    if data.get("layout"):
        config.layout = LayoutConfig(default=data["layout"].get("default"))

    # Output config
    if data.get("output"):
        config.output = OutputConfig(path=data["output"].get("path"))

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> PartialkitConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        PartialkitConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
        ConfigError: If the file contents are invalid
    """
    # Find config file
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    # Load config
    if found_path is not None:
        with open(found_path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {found_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {found_path}")
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = PartialkitConfig()

    return config


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# Partialkit Configuration

# Template lookup
templates:
  paths:
    - "templates"          # searched in order
  default_format: "html"   # users/user -> users/_user.html.j2
  extension: ".j2"
  autoescape: true         # escape html/xml templates
  trim_blocks: true
  lstrip_blocks: true
  max_depth: 50            # maximum partial nesting

# Page layout wrapped around `partialkit render` output
layout:
  default: null            # e.g. "layouts/application"

# Output destination
output:
  path: null               # stdout when null
'''
