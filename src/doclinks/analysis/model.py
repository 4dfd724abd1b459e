"""Value types shared by the link scanner and the lint surfaces."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


RULE_ID = "doc_broken_link"


def utf8_len(text: str) -> int:
    """UTF-8 byte length; a lone surrogate counts as the three bytes it would occupy."""
    return len(text.encode("utf-8", "surrogatepass"))


@dataclass(frozen=True)
class Span:
    """Half-open absolute byte range ``[lo, hi)`` in the UTF-8 encoded source."""

    lo: int
    hi: int

    @property
    def is_empty(self) -> bool:
        return self.lo == self.hi


@dataclass(frozen=True)
class Fragment:
    """One documentation line.

    Fragment-local byte offset ``k`` maps to absolute position ``span.lo + k``.
    """

    text: str
    span: Span

    @classmethod
    def at(cls, text: str, lo: int) -> Fragment:
        return cls(text=text, span=Span(lo, lo + utf8_len(text)))

    def absolute(self, local_offset: int) -> int:
        return self.span.lo + local_offset


class BrokenLinkReason(StrEnum):
    MULTIPLE_LINES = "multiple_lines"
    MISSING_CLOSING_PARENTHESIS = "missing_closing_parenthesis"
    WHITESPACE_IN_URL = "whitespace_in_url"


_REASON_DETAIL: dict[BrokenLinkReason, str] = {
    BrokenLinkReason.MULTIPLE_LINES: "broken across multiple lines",
    BrokenLinkReason.MISSING_CLOSING_PARENTHESIS: "missing close parenthesis",
    BrokenLinkReason.WHITESPACE_IN_URL: "whitespace within url",
}


def reason_message(reason: BrokenLinkReason) -> str:
    return f"possible broken doc link: {_REASON_DETAIL[reason]}"


@dataclass(frozen=True)
class BrokenLink:
    reason: BrokenLinkReason
    span: Span

    @property
    def message(self) -> str:
        return reason_message(self.reason)
