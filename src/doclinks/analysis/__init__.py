from doclinks.analysis.model import (
    RULE_ID,
    BrokenLink,
    BrokenLinkReason,
    Fragment,
    Span,
    reason_message,
)
from doclinks.analysis.scanner import LinkScanner, UrlState, scan_block

__all__ = [
    "RULE_ID",
    "BrokenLink",
    "BrokenLinkReason",
    "Fragment",
    "LinkScanner",
    "Span",
    "UrlState",
    "reason_message",
    "scan_block",
]
