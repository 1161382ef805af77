"""Output formatting for matched lines."""

from typing import TextIO

from .config import ColorMode
from .pattern import MatchedLine

# ANSI color escape codes
ANSI_RESET = "\033[0m"
ANSI_PATH = "\033[35m"
ANSI_LINENO = "\033[32m"
ANSI_MATCH = "\033[1;31m"


def use_color(mode: ColorMode, stream: TextIO) -> bool:
    """Decide once whether output to ``stream`` is colored."""
    mode = ColorMode(mode)
    if mode is ColorMode.ALWAYS:
        return True
    if mode is ColorMode.NEVER:
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class LineRenderer:
    """Formats ``path:lineno: text`` lines, optionally highlighting the match."""

    def __init__(self, color: bool = False):
        self.color = color

    def _paint(self, code: str, text: str) -> str:
        if not self.color:
            return text
        return f"{code}{text}{ANSI_RESET}"

    def render(self, line: MatchedLine) -> str:
        record = line.record
        return (
            f"{self._paint(ANSI_PATH, record.path)}:"
            f"{self._paint(ANSI_LINENO, str(record.line_number))}: "
            f"{line.before}{self._paint(ANSI_MATCH, line.match)}{line.after}"
        )
