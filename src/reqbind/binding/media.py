from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

APPLICATION_JSON = "application/json"
APPLICATION_FORM = "application/x-www-form-urlencoded"
TEXT_PLAIN = "text/plain"
TEXT_HTML = "text/html"
ALL = "*/*"


@dataclass(frozen=True)
class MediaType:
    type: str
    subtype: str
    params: dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def parse(cls, value: str) -> "MediaType":
        """
        Parse ``type/subtype; key=value`` into a MediaType.

        A bare ``*`` is read as ``*/*``. Raises ValueError for anything
        without a slash.
        """
        head, *rest = [p.strip() for p in value.split(";")]
        head = head.lower()
        if head == "*":
            head = ALL
        if "/" not in head:
            raise ValueError(f"Invalid media type: {value!r}")
        t, s = head.split("/", 1)
        if not t or not s:
            raise ValueError(f"Invalid media type: {value!r}")

        params: dict[str, str] = {}
        for p in rest:
            if "=" in p:
                k, v = p.split("=", 1)
                params[k.strip().lower()] = v.strip().strip('"')
        return cls(type=t, subtype=s, params=params)

    @property
    def essence(self) -> str:
        return f"{self.type}/{self.subtype}"

    @property
    def charset(self) -> Optional[str]:
        return self.params.get("charset")

    @property
    def quality(self) -> float:
        try:
            return float(self.params.get("q", "1"))
        except ValueError:
            return 0.0

    @property
    def is_wildcard(self) -> bool:
        return self.type == "*" or self.subtype == "*"

    def includes(self, other: "MediaType") -> bool:
        """True when ``other`` falls inside this (possibly wildcard) range."""
        if self.type == "*":
            return True
        if self.type != other.type:
            return False
        return self.subtype == "*" or self.subtype == other.subtype

    def __str__(self) -> str:
        return self.essence


def parse_accept(header: Optional[str]) -> list[MediaType]:
    """Accept header -> media ranges, best first. Missing or empty means ``*/*``."""
    if not header or not header.strip():
        return [MediaType.parse(ALL)]

    ranges: list[tuple[int, MediaType]] = []
    for i, part in enumerate(header.split(",")):
        part = part.strip()
        if not part:
            continue
        try:
            ranges.append((i, MediaType.parse(part)))
        except ValueError:
            continue

    # stable: quality desc, then specificity, then header order
    ranges.sort(key=lambda x: (-x[1].quality, x[1].type == "*", x[1].subtype == "*", x[0]))
    return [m for _, m in ranges]


def consumes_matches(content_type: Optional[str], consumes: Iterable[str]) -> bool:
    declared = [MediaType.parse(c) for c in consumes]
    if not declared:
        return True
    if not content_type:
        return False
    try:
        actual = MediaType.parse(content_type)
    except ValueError:
        return False
    return any(d.includes(actual) for d in declared)


def _quality_for(offered: MediaType, ranges: list[MediaType]) -> float:
    # the most specific matching range decides, so "text/html;q=0, */*" refuses html
    best: Optional[tuple[int, float]] = None
    for r in ranges:
        if r.includes(offered):
            specificity = (r.type != "*") + (r.subtype != "*")
            if best is None or specificity > best[0]:
                best = (specificity, r.quality)
    return best[1] if best else 0.0


def negotiate(accept_header: Optional[str], produces: Iterable[str]) -> Optional[MediaType]:
    """
    Pick the produced type the client accepts best.

    Returns None when nothing is acceptable. With no ``produces`` the
    first concrete accepted range is returned, or None when the client
    only sent wildcards.
    """
    ranges = parse_accept(accept_header)
    offered = [MediaType.parse(p) for p in produces]

    if not offered:
        for r in ranges:
            if r.quality > 0 and not r.is_wildcard:
                return r
        return None

    chosen: Optional[MediaType] = None
    chosen_q = 0.0
    for o in offered:
        q = _quality_for(o, ranges)
        if q > chosen_q:
            chosen, chosen_q = o, q
    return chosen
