from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote

from reqbind.domain.errors import HandlerSpecError

_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
_PARAM_ANGLE = re.compile(r"<([A-Za-z_][A-Za-z0-9_]*)>")
_PARAM_COLON = re.compile(r"(?<=/):([A-Za-z_][A-Za-z0-9_]*)")
_MULTI_SLASH = re.compile(r"/{2,}")


def normalize_path(path: str) -> str:
    """Request path: leading slash, no repeated or trailing slashes. Segments are kept as sent."""
    p = (path or "").strip()
    if not p.startswith("/"):
        p = "/" + p

    p = _MULTI_SLASH.sub("/", p)

    if p != "/" and p.endswith("/"):
        p = p[:-1]
    return p


def normalize_template(path: str) -> str:
    # normalize common param styles into "{param}"
    p = _PARAM_ANGLE.sub(r"{\1}", normalize_path(path))  # <id> -> {id}
    return _PARAM_COLON.sub(r"{\1}", p)  # /:id -> /{id}


@dataclass(frozen=True)
class PathTemplate:
    """
    A compiled route path such as ``/mapping/users/{userId}/orders/{orderId}``.

    Each placeholder captures exactly one segment, and placeholder names
    are unique within a template.
    """

    raw: str
    names: tuple[str, ...]
    pattern: re.Pattern

    @classmethod
    def compile(cls, path: str) -> "PathTemplate":
        raw = normalize_template(path)
        names = tuple(_PLACEHOLDER.findall(raw))
        if len(set(names)) != len(names):
            raise HandlerSpecError(f"Duplicate path placeholder in {raw!r}")

        out = []
        pos = 0
        for m in _PLACEHOLDER.finditer(raw):
            out.append(re.escape(raw[pos:m.start()]))
            out.append(f"(?P<{m.group(1)}>[^/]+)")
            pos = m.end()
        out.append(re.escape(raw[pos:]))
        return cls(raw=raw, names=names, pattern=re.compile("^" + "".join(out) + "$"))

    def match(self, path: str) -> Optional[dict[str, str]]:
        """Return placeholder -> decoded segment, or None if the path does not fit."""
        m = self.pattern.match(normalize_path(path.split("?", 1)[0]))
        if m is None:
            return None
        return {k: unquote(v) for k, v in m.groupdict().items()}

    @property
    def is_static(self) -> bool:
        return not self.names
