"""Tests for output rendering."""

import io

import pytest

from diffgrep.classify import DiffLineRecord
from diffgrep.config import ColorMode
from diffgrep.pattern import MatchedLine
from diffgrep.render import ANSI_LINENO, ANSI_MATCH, ANSI_PATH, ANSI_RESET, LineRenderer, use_color


@pytest.fixture
def line() -> MatchedLine:
    record = DiffLineRecord(added=True, content="a needle here", line_number=12, path="src/x.py")
    return MatchedLine(record=record, span=(2, 8))


class FakeTTY(io.StringIO):
    def isatty(self) -> bool:
        return True


class TestLineRenderer:
    """Test LineRenderer."""

    def test_plain(self, line):
        assert LineRenderer(color=False).render(line) == "src/x.py:12: a needle here"

    def test_colored(self, line):
        rendered = LineRenderer(color=True).render(line)

        assert rendered == (
            f"{ANSI_PATH}src/x.py{ANSI_RESET}:"
            f"{ANSI_LINENO}12{ANSI_RESET}: "
            f"a {ANSI_MATCH}needle{ANSI_RESET} here"
        )

    def test_match_at_edges(self):
        record = DiffLineRecord(added=True, content="needle", line_number=1, path="f")
        rendered = LineRenderer().render(MatchedLine(record=record, span=(0, 6)))

        assert rendered == "f:1: needle"


class TestUseColor:
    """Test color mode decisions."""

    def test_always(self):
        assert use_color(ColorMode.ALWAYS, io.StringIO()) is True

    def test_never(self):
        assert use_color(ColorMode.NEVER, FakeTTY()) is False

    def test_auto_follows_terminal(self):
        assert use_color(ColorMode.AUTO, FakeTTY()) is True
        assert use_color(ColorMode.AUTO, io.StringIO()) is False

    def test_accepts_strings(self):
        assert use_color("always", io.StringIO()) is True
