"""Single-pass scanner for inline doc links a renderer would leave inert.

The scanner consumes the Fragments of one Block in order and tracks a single
candidate link at a time. It flags three shapes only:

* URL content that starts on one line and resumes on the next,
* a Block that ends while the URL part is still open,
* whitespace after URL content has begun on a line.

Bracket usages that are not followed directly by ``(`` (code references such
as ``[T]``) abandon the candidate without a finding. Link text is never
inspected, so ``[text`` / ``continued](url)`` is fine.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from typing import Iterable, TypeAlias

from doclinks.analysis.model import BrokenLink, BrokenLinkReason, Fragment, Span, utf8_len

LINE_BREAKS = frozenset("\n\r")


class UrlState(StrEnum):
    EMPTY = "empty"
    SINGLE_LINE_CONTENT = "single_line_content"
    MULTI_LINE_BROKEN = "multi_line_broken"


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class InLinkText:
    pass


@dataclass(frozen=True)
class LinkTextClosed:
    pass


@dataclass(frozen=True)
class InLinkUrl:
    url: UrlState = UrlState.EMPTY


ScanState: TypeAlias = Idle | InLinkText | LinkTextClosed | InLinkUrl

IDLE = Idle()
IN_LINK_TEXT = InLinkText()
LINK_TEXT_CLOSED = LinkTextClosed()


@dataclass(frozen=True)
class ActiveLink:
    block_span: Span
    # Absolute offset of the first URL content byte; unset until content starts.
    start_pos: int | None = None


class LinkScanner:
    """Scans one Block. Create a fresh instance per Block."""

    def __init__(self) -> None:
        self._state: ScanState = IDLE
        self._active: ActiveLink | None = None
        self._continuation_pending = False
        self._line_has_content = False
        self._current: Fragment | None = None
        self._broken: list[BrokenLink] = []

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def active_link(self) -> ActiveLink | None:
        return self._active

    @property
    def broken_links(self) -> tuple[BrokenLink, ...]:
        return tuple(self._broken)

    def scan_fragment(self, fragment: Fragment) -> None:
        self._current = fragment
        self._line_has_content = False
        offset = 0
        for index, char in enumerate(fragment.text):
            width = utf8_len(char)
            # Doc lines carry a conventional separating space after the marker.
            if index == 0 and char.isspace() and char not in LINE_BREAKS:
                offset += width
                continue
            self._step(char, fragment.absolute(offset), width)
            offset += width
        if isinstance(self._state, InLinkUrl):
            self._continuation_pending = True

    def finalize_block(self) -> tuple[BrokenLink, ...]:
        if isinstance(self._state, InLinkUrl) and self._current is not None:
            end = self._current.span.hi
            self._emit(BrokenLinkReason.MISSING_CLOSING_PARENTHESIS, Span(end, end))
        self._reset()
        return self.broken_links

    def _step(self, char: str, pos: int, width: int) -> None:
        state = self._state
        if isinstance(state, Idle):
            if char == "[" and self._current is not None:
                self._state = IN_LINK_TEXT
                self._active = ActiveLink(block_span=self._current.span)
            return
        if isinstance(state, InLinkText):
            if char == "]":
                self._state = LINK_TEXT_CLOSED
            return
        if isinstance(state, LinkTextClosed):
            if char == "(":
                self._state = InLinkUrl(UrlState.EMPTY)
                return
            # Not an inline link; the character may still open a new candidate.
            self._reset()
            self._step(char, pos, width)
            return
        self._step_url(state.url, char, pos, width)

    def _step_url(self, url: UrlState, char: str, pos: int, width: int) -> None:
        if char == ")":
            if url is UrlState.MULTI_LINE_BROKEN and self._active is not None:
                start = self._active.start_pos if self._active.start_pos is not None else pos
                self._emit(BrokenLinkReason.MULTIPLE_LINES, Span(start, pos + width))
            self._reset()
            return
        if char in LINE_BREAKS:
            self._continuation_pending = True
            self._line_has_content = False
            return
        if char.isspace():
            if url is not UrlState.EMPTY and self._line_has_content:
                self._emit(BrokenLinkReason.WHITESPACE_IN_URL, Span(pos, pos + width))
                self._reset()
            return
        self._line_has_content = True
        if self._continuation_pending and url is UrlState.SINGLE_LINE_CONTENT:
            self._state = InLinkUrl(UrlState.MULTI_LINE_BROKEN)
        elif url is UrlState.EMPTY:
            self._state = InLinkUrl(UrlState.SINGLE_LINE_CONTENT)
            if self._active is not None:
                self._active = replace(self._active, start_pos=pos)
        self._continuation_pending = False

    def _emit(self, reason: BrokenLinkReason, span: Span) -> None:
        self._broken.append(BrokenLink(reason=reason, span=span))

    def _reset(self) -> None:
        self._state = IDLE
        self._active = None
        self._continuation_pending = False
        self._line_has_content = False


def scan_block(fragments: Iterable[Fragment]) -> tuple[BrokenLink, ...]:
    scanner = LinkScanner()
    for fragment in fragments:
        scanner.scan_fragment(fragment)
    return scanner.finalize_block()
