"""
Path helpers - joining and matching route templates.

Templates use ``{name}`` segments for parameters (e.g. ``/users/{id}``).
Trailing slashes are not significant.
"""

from typing import Dict, Optional, Pattern
import re


_PARAM_RE = re.compile(r"^\{([A-Za-z_][A-Za-z0-9_]*)\}$")


def join_paths(*parts: str) -> str:
    """
    Join path fragments into one normalized path.

    >>> join_paths("/", "foo")
    '/foo'
    >>> join_paths("/api", "/users/", "/")
    '/api/users'
    """
    segments = []
    for part in parts:
        if not part:
            continue
        segments.extend(s for s in part.split("/") if s)
    return "/" + "/".join(segments)


def normalize_path(path: str) -> str:
    return join_paths(path)


def compile_path(template: str, *, prefix: bool = False) -> Pattern[str]:
    """
    Compile a path template to a regex.

    With ``prefix=True`` the pattern also matches any sub-path, which is how
    ``Application.use(path=...)`` mounts middleware.
    """
    template = normalize_path(template)
    if template == "/":
        return re.compile(r"^/.*$" if prefix else r"^/$")

    parts = []
    for segment in template.strip("/").split("/"):
        m = _PARAM_RE.match(segment)
        if m:
            parts.append(f"(?P<{m.group(1)}>[^/]+)")
        else:
            parts.append(re.escape(segment))

    body = "/" + "/".join(parts)
    tail = r"(?:/.*)?$" if prefix else r"$"
    return re.compile("^" + body + tail)


def match_path(pattern: Pattern[str], path: str) -> Optional[Dict[str, str]]:
    """Match a normalized request path; return path params or None."""
    m = pattern.match(normalize_path(path))
    if m is None:
        return None
    return m.groupdict()
