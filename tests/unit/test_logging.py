"""Unit tests for logging setup."""

import io
import json
import logging
from collections.abc import Iterator

import pytest

from partialkit.templates.scope import RenderScope, render_scope
from partialkit.utils.logging import (
    HumanFormatter,
    JSONFormatter,
    LogMode,
    TemplateContextFilter,
    VerboseFormatter,
    configure_from_cli,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_logger() -> Iterator[None]:
    """Restore the partialkit logger after each test."""
    yield
    logger = logging.getLogger("partialkit")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


def _record(msg: str = "Rendered %s", *args: object, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="partialkit.templates.renderer",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args or ("users/index.html.j2",),
        exc_info=None,
    )


class TestFormatters:
    """Tests for the log formatters."""

    def test_human(self) -> None:
        """Test [LEVEL] message."""
        output = HumanFormatter(use_colors=False).format(_record())

        assert output == "[INFO] Rendered users/index.html.j2"

    def test_human_colors(self) -> None:
        """Test levels are colored for terminals."""
        output = HumanFormatter(use_colors=True).format(_record(level=logging.ERROR))

        assert output.startswith("\033[31m[ERROR]")

    def test_verbose(self) -> None:
        """Test logger name is included."""
        output = VerboseFormatter(use_colors=False).format(_record())

        assert output.startswith("[INFO][")
        assert output.endswith("] partialkit.templates.renderer: Rendered users/index.html.j2")

    def test_json(self) -> None:
        """Test JSON lines output."""
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "partialkit.templates.renderer"
        assert entry["msg"] == "Rendered users/index.html.j2"
        assert "ts" in entry

    def test_json_extra_data(self) -> None:
        """Test structured data becomes extra keys."""
        record = _record()
        record.extra_data = {"template": "users/_user.html.j2"}

        entry = json.loads(JSONFormatter().format(record))

        assert entry["template"] == "users/_user.html.j2"


class TestSetupLogging:
    """Tests for setup_logging and configure_from_cli."""

    def test_writes_to_stream(self) -> None:
        """Test messages reach the configured stream."""
        stream = io.StringIO()
        setup_logging(LogMode.HUMAN, logging.INFO, stream)

        logging.getLogger("partialkit.templates").info("hello")

        assert stream.getvalue() == "[INFO] hello\n"

    def test_level_filters(self) -> None:
        """Test messages below the level are dropped."""
        stream = io.StringIO()
        setup_logging(LogMode.HUMAN, logging.WARNING, stream)

        logging.getLogger("partialkit").info("hidden")

        assert stream.getvalue() == ""

    def test_handlers_replaced(self) -> None:
        """Test repeated setup does not duplicate output."""
        stream = io.StringIO()
        setup_logging(stream=stream)
        setup_logging(stream=stream)

        logging.getLogger("partialkit").warning("once")

        assert stream.getvalue().count("once") == 1

    def test_structured(self) -> None:
        """Test structured logging in JSON mode."""
        stream = io.StringIO()
        setup_logging(LogMode.JSON, logging.DEBUG, stream)

        get_logger("partialkit.structured").structured(logging.INFO, "bound", template="a.j2")

        entry = json.loads(stream.getvalue())
        assert entry["msg"] == "bound"
        assert entry["template"] == "a.j2"

    @pytest.mark.parametrize(
        ("flags", "level", "formatter"),
        [
            ({}, logging.INFO, HumanFormatter),
            ({"verbose": True}, logging.DEBUG, VerboseFormatter),
            ({"quiet": True}, logging.WARNING, HumanFormatter),
            ({"ci": True}, logging.INFO, JSONFormatter),
        ],
    )
    def test_configure_from_cli(
        self,
        flags: dict[str, bool],
        level: int,
        formatter: type[logging.Formatter],
    ) -> None:
        """Test CLI flags map to mode and level."""
        configure_from_cli(**flags)

        logger = logging.getLogger("partialkit")
        assert logger.level == level
        assert type(logger.handlers[0].formatter) is formatter


class TestTemplateContext:
    """Tests for the template name attached to records."""

    def test_outside_render(self) -> None:
        """Test records logged outside a render carry no template."""
        record = _record()
        TemplateContextFilter().filter(record)

        assert record.template is None  # type: ignore[attr-defined]
        assert "template" not in json.loads(JSONFormatter().format(record))

    def test_inside_render(self) -> None:
        """Test the innermost rendering template is attached."""
        stream = io.StringIO()
        setup_logging(LogMode.JSON, logging.DEBUG, stream)

        scope = RenderScope()
        with render_scope(scope), scope.entering("users/index.html.j2"):
            with scope.entering("users/_user.html.j2"):
                logging.getLogger("partialkit.test").info("inner")

        entry = json.loads(stream.getvalue())
        assert entry["template"] == "users/_user.html.j2"

    def test_verbose_shows_template(self) -> None:
        """Test verbose lines name the template."""
        record = _record()
        record.template = "users/_user.html.j2"

        output = VerboseFormatter(use_colors=False).format(record)

        assert output.endswith("(in users/_user.html.j2)")
