"""Unit tests for template resolution."""

import pytest
from jinja2 import DictLoader, Environment

from partialkit.errors import TemplateNotFoundError
from partialkit.models import PartialReference
from partialkit.templates.resolver import TemplateResolver
from tests.fixtures import Announcement, User


@pytest.fixture
def templates() -> dict[str, str]:
    """In-memory template tree."""
    return {
        "users/_user.html.j2": "html",
        "users/_user.txt.j2": "txt",
        "users/_badge.j2": "any format",
        "users/index.html.j2": "page",
        "users/_profile.html.j2": "profile",
        "shared/_card.html.j2": "card",
        "layouts/application.html.j2": "layout",
        "posts/_post.html.j2": "post",
        "static/robots.txt": "explicit",
    }


@pytest.fixture
def resolver(templates: dict[str, str]) -> TemplateResolver:
    """Resolver over the in-memory tree."""
    return TemplateResolver(Environment(loader=DictLoader(templates)))


class TestCandidates:
    """Tests for candidate name generation."""

    def test_partial_candidates(self, resolver: TemplateResolver) -> None:
        """Test lookup order for a partial reference."""
        assert resolver.candidates(PartialReference("users/user")) == [
            "users/_user.html.j2",
            "users/_user.j2",
            "users/user.html.j2",
            "users/user",
        ]

    def test_non_partial_candidates(self, resolver: TemplateResolver) -> None:
        """Test underscore names are skipped for views and page layouts."""
        assert resolver.candidates(PartialReference("users/index"), partial=False) == [
            "users/index.html.j2",
            "users/index",
        ]

    def test_prefix_tried_first_for_bare_names(self, resolver: TemplateResolver) -> None:
        """Test bare names look in the calling template's directory first."""
        names = resolver.candidates(PartialReference("profile"), prefix="users")

        assert names[0] == "users/_profile.html.j2"
        assert "_profile.html.j2" in names

    def test_prefix_ignored_for_qualified_names(self, resolver: TemplateResolver) -> None:
        """Test directory-qualified references ignore the prefix."""
        names = resolver.candidates(PartialReference("shared/card"), prefix="users")

        assert all(name.startswith("shared/") for name in names)

    def test_format_selects_extension(self, resolver: TemplateResolver) -> None:
        """Test the format is part of the file name."""
        names = resolver.candidates(PartialReference("users/user", "txt"))

        assert names[0] == "users/_user.txt.j2"


class TestResolve:
    """Tests for TemplateResolver.resolve."""

    def test_resolve_partial(self, resolver: TemplateResolver) -> None:
        """Test leading underscore and format extension."""
        assert resolver.resolve("users/user") == "users/_user.html.j2"

    def test_resolve_format(self, resolver: TemplateResolver) -> None:
        """Test explicit format."""
        assert resolver.resolve("users/user", format="txt") == "users/_user.txt.j2"

    def test_format_agnostic_fallback(self, resolver: TemplateResolver) -> None:
        """Test _name.j2 serves every format."""
        assert resolver.resolve("users/badge", format="txt") == "users/_badge.j2"

    def test_resolve_view(self, resolver: TemplateResolver) -> None:
        """Test non-partial lookup for views."""
        assert resolver.resolve("users/index", partial=False) == "users/index.html.j2"

    def test_resolve_explicit_file(self, resolver: TemplateResolver) -> None:
        """Test a reference naming the file itself."""
        assert resolver.resolve("static/robots.txt") == "static/robots.txt"
        assert resolver.resolve("shared/_card.html.j2") == "shared/_card.html.j2"

    def test_resolve_with_prefix(self, resolver: TemplateResolver) -> None:
        """Test bare reference relative to the calling directory."""
        assert resolver.resolve("profile", prefix="users") == "users/_profile.html.j2"

    def test_not_found(self, resolver: TemplateResolver) -> None:
        """Test a missing template lists everything tried."""
        with pytest.raises(TemplateNotFoundError, match="Template not found: users/missing") as exc_info:
            resolver.resolve("users/missing")

        assert "users/_missing.html.j2" in exc_info.value.tried
        assert exc_info.value.reference == "users/missing"

    def test_not_found_is_lookup_error(self, resolver: TemplateResolver) -> None:
        """Test the error can be caught as LookupError."""
        with pytest.raises(LookupError):
            resolver.resolve("nope")

    def test_view_is_not_a_partial(self, resolver: TemplateResolver) -> None:
        """Test partial=False never finds underscore templates."""
        with pytest.raises(TemplateNotFoundError):
            resolver.resolve("shared/card", partial=False)

    def test_resolution_cached(self, templates: dict[str, str]) -> None:
        """Test resolutions are cached until cleared."""
        resolver = TemplateResolver(Environment(loader=DictLoader(templates)))
        assert resolver.resolve("users/user") == "users/_user.html.j2"

        del templates["users/_user.html.j2"]
        assert resolver.resolve("users/user") == "users/_user.html.j2"

        resolver.clear_cache()
        with pytest.raises(TemplateNotFoundError):
            resolver.resolve("users/user")

    def test_resolve_object(self, resolver: TemplateResolver) -> None:
        """Test implicit partial for a domain object."""
        name, ref = resolver.resolve_object(User(name="Ann"))

        assert name == "users/_user.html.j2"
        assert ref.variable_name == "user"

    def test_resolve_object_custom_path(self, resolver: TemplateResolver) -> None:
        """Test to_partial_path overrides the class name."""
        name, _ = resolver.resolve_object(Announcement(title="x"))

        assert name == "posts/_post.html.j2"


class TestListPartials:
    """Tests for list_partials."""

    def test_lists_only_partials(self, resolver: TemplateResolver) -> None:
        """Test only underscore templates are listed, sorted."""
        partials = resolver.list_partials()

        assert "users/_user.html.j2" in partials
        assert "users/index.html.j2" not in partials
        assert "layouts/application.html.j2" not in partials
        assert partials == sorted(partials)

    def test_loader_without_listing(self) -> None:
        """Test loaders that cannot list return nothing."""
        from jinja2 import FunctionLoader

        resolver = TemplateResolver(Environment(loader=FunctionLoader(lambda name: None)))

        assert resolver.list_partials() == []


class TestFormatOf:
    """Tests for reading the format from a template name."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("users/_user.html.j2", "html"),
            ("users/_user.txt.j2", "txt"),
            ("users/index.html.j2", "html"),
            ("users/_user.j2", None),
            ("users/user", None),
            ("page.xml", "xml"),
        ],
    )
    def test_format_of(self, resolver: TemplateResolver, name: str, expected: str | None) -> None:
        """Test format-agnostic names have no format."""
        assert resolver.format_of(name) == expected
