"""Shared pytest fixtures for Partialkit tests.

Fixtures are organized by category:
- Path fixtures: the sample application template tree
- Renderer fixtures: renderers over the sample app or in-memory templates
- Domain fixtures: users and posts to render
"""

from collections.abc import Callable
from pathlib import Path

import pytest
from jinja2 import DictLoader

from partialkit.config import LayoutConfig, PartialkitConfig, TemplateConfig
from partialkit.templates import PartialRenderer
from tests.fixtures import SAMPLE_APP_TEMPLATES, Post, User

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def templates_dir() -> Path:
    """Return the sample application's template directory."""
    return SAMPLE_APP_TEMPLATES


# =============================================================================
# Renderer Fixtures
# =============================================================================


@pytest.fixture
def sample_config(templates_dir: Path) -> PartialkitConfig:
    """Config pointing at the sample app with its application layout."""
    return PartialkitConfig(
        templates=TemplateConfig(paths=[str(templates_dir)]),
        layout=LayoutConfig(default="layouts/application"),
    )


@pytest.fixture
def renderer(sample_config: PartialkitConfig) -> PartialRenderer:
    """Renderer over the sample application templates."""
    return PartialRenderer(sample_config)


@pytest.fixture
def make_renderer() -> Callable[..., PartialRenderer]:
    """Factory for renderers over in-memory templates.

    Usage:
        renderer = make_renderer({"users/_user.html.j2": "{{ user }}"})
    """

    def factory(templates: dict[str, str], **config: object) -> PartialRenderer:
        template_config = TemplateConfig(**config)  # type: ignore[arg-type]
        return PartialRenderer(
            PartialkitConfig(templates=template_config),
            loader=DictLoader(templates),
        )

    return factory


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def users() -> list[User]:
    """Three users, rendered in order."""
    return [
        User(name="Ann", email="ann@example.com"),
        User(name="Bob", email="bob@example.com"),
        User(name="Cid", email="cid@example.com"),
    ]


@pytest.fixture
def posts() -> list[Post]:
    """Two posts."""
    return [Post(title="Hello"), Post(title="Partials")]


# =============================================================================
# Config File Fixtures
# =============================================================================


@pytest.fixture
def config_yaml(templates_dir: Path) -> str:
    """Return a complete config file pointing at the sample app."""
    return f'''templates:
  paths:
    - "{templates_dir}"
  default_format: "html"
  max_depth: 20
layout:
  default: "layouts/application"
'''
