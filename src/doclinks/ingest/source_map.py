from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass

from doclinks.analysis.model import Span, utf8_len

BOM = "\ufeff"
_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def strip_bom(source: str) -> str:
    """Drop a leading byte order mark; libcst positions never count it."""
    return source[len(BOM) :] if source.startswith(BOM) else source


@dataclass(frozen=True)
class SourcePosition:
    line: int
    column: int


class SourceMap:
    """Byte offsets <-> (1-based line, 0-based code point column)."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.encoded = source.encode("utf-8", "surrogatepass")
        self._lines: list[str] = []
        self._line_starts: list[int] = []
        cursor_char = 0
        cursor_byte = 0
        for match in _LINE_BREAK_RE.finditer(source):
            line = source[cursor_char : match.start()]
            self._lines.append(line)
            self._line_starts.append(cursor_byte)
            cursor_byte += utf8_len(line) + len(match.group())
            cursor_char = match.end()
        self._lines.append(source[cursor_char:])
        self._line_starts.append(cursor_byte)

    def offset(self, line: int, column: int) -> int:
        text = self._lines[line - 1]
        return self._line_starts[line - 1] + utf8_len(text[:column])

    def position(self, offset: int) -> SourcePosition:
        offset = max(0, min(offset, len(self.encoded)))
        index = bisect_right(self._line_starts, offset) - 1
        delta = offset - self._line_starts[index]
        column = 0
        consumed = 0
        for char in self._lines[index]:
            consumed += utf8_len(char)
            if consumed > delta:
                break
            column += 1
        return SourcePosition(line=index + 1, column=column)

    def utf16_column(self, position: SourcePosition) -> int:
        prefix = self._lines[position.line - 1][: position.column]
        return len(prefix.encode("utf-16-le", "surrogatepass")) // 2

    def text(self, span: Span) -> str:
        return self.encoded[span.lo : span.hi].decode("utf-8", "surrogatepass")
