"""
Accept header negotiation

Decides whether a client prefers a given media type based on its Accept header.
An exact match always counts. Wildcards (*/* or type/*) only count when they
carry the maximal quality value, so "image/*;q=0.8" does not opt a client in.
"""

import re
from dataclasses import dataclass
from typing import Optional

Q_VALUE_PATTERN = re.compile(r"q=([0-9.]+)")
WEBP_MIME_TYPE = "image/webp"


@dataclass(frozen=True)
class AcceptDirective:
    mime_type: str
    q: float = 1.0

    @property
    def is_wildcard(self) -> bool:
        return self.mime_type == "*/*" or self.mime_type.endswith("/*")

    def matches_wildcard(self, target_mime_type: str) -> bool:
        if self.mime_type == "*/*":
            return True
        return self.mime_type == target_mime_type.split("/")[0] + "/*"


def _parse_q(params: str) -> float:
    match = Q_VALUE_PATTERN.search(params)
    if not match:
        return 1.0
    try:
        return float(match.group(1))
    except ValueError:
        return 1.0


def parse_accept(accept_header: Optional[str]) -> list[AcceptDirective]:
    """Split an Accept header into directives. Malformed q-values default to 1.0."""
    if not accept_header:
        return []

    directives = []
    for part in accept_header.split(","):
        mime_type, _, params = part.strip().partition(";")
        mime_type = mime_type.strip().lower()
        if not mime_type:
            continue
        directives.append(AcceptDirective(mime_type=mime_type, q=_parse_q(params)))
    return directives


def prefers_format(accept_header: Optional[str], target_mime_type: str) -> bool:
    target = target_mime_type.lower()
    for directive in parse_accept(accept_header):
        if directive.mime_type == target:
            return True
        if directive.is_wildcard and directive.q >= 1.0 and directive.matches_wildcard(target):
            return True
    return False


def accepts_webp(accept_header: Optional[str]) -> bool:
    return prefers_format(accept_header, WEBP_MIME_TYPE)
