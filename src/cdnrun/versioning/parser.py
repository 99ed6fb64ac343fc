"""Token parsing utilities for ``name@range`` package specifiers."""

from typing import Tuple

from cdnrun.errors import InvalidPackageSpecError

LATEST = "latest"


def split_spec(spec: str) -> Tuple[str, str]:
    """Return ``(name, range)`` for an npm-style specifier.

    A leading ``@scope/`` belongs to the name; the rightmost ``@`` after it
    separates the range. A missing range means ``latest``.
    """
    s = spec.strip()
    if not s:
        raise InvalidPackageSpecError(spec)
    at = s.find("@", 1)
    if at == -1:
        name, rng = s, LATEST
    else:
        name, rng = s[:at], s[at + 1:].strip() or LATEST
    if not name or name.endswith("/") or (name.startswith("@") and "/" not in name):
        raise InvalidPackageSpecError(spec)
    return name, rng


def format_spec(name: str, rng: str) -> str:
    """Inverse of :func:`split_spec`."""
    return f"{name}@{rng}"
