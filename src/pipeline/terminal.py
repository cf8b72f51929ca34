"""
Terminal output for glyph grids.
"""

from __future__ import annotations

import shutil
import sys
from typing import Optional, Sequence, TextIO

# ANSI escape codes
CSI = "\x1b["
CLEAR_SCREEN = CSI + "2J"
MOVE_CURSOR_HOME = CSI + "H"


def terminal_columns(default: int = 80) -> int:
    """Width of the controlling terminal, or `default` when there is none."""
    return shutil.get_terminal_size((default, 24)).columns


class TerminalWriter:
    """Clears the screen and writes a glyph grid, one newline-terminated row per line."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def write_grid(self, rows: Sequence[Sequence[str]]) -> None:
        parts = [CLEAR_SCREEN, MOVE_CURSOR_HOME]
        for row in rows:
            parts.append("".join(row))
            parts.append("\n")
        self.stream.write("".join(parts))
        self.stream.flush()
