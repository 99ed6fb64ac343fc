"""npm range matching using semantic versioning."""

import re

import semantic_version


def _normalize_spec(spec_str: str) -> str:
    """Normalize npm range syntax (hyphen, x-ranges) into SimpleSpec-compatible form."""
    s = spec_str.strip()

    # Hyphen ranges: "1.2.3 - 1.4.5" => ">=1.2.3, <=1.4.5"
    m = re.match(r'^\s*([0-9A-Za-z\.\-\+]+)\s*-\s*([0-9A-Za-z\.\-\+]+)\s*$', s)
    if m:
        return f">={m.group(1)},<={m.group(2)}"

    s2 = s.replace('*', 'x').lower()
    m = re.match(r'^\s*(\d+)\.(\d+)\.x\s*$', s2)
    if m:
        major, minor = int(m.group(1)), int(m.group(2))
        return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

    m = re.match(r'^\s*(\d+)(?:\.x)?\s*$', s2)
    if m:
        major = int(m.group(1))
        return f">={major}.0.0,<{major + 1}.0.0"

    return spec_str


def _parse_range(spec_str: str):
    # NpmSpec understands ^, ~, hyphen ranges and x-ranges natively
    try:
        return semantic_version.NpmSpec(spec_str)
    except ValueError:
        pass
    try:
        return semantic_version.SimpleSpec(_normalize_spec(spec_str))
    except ValueError:
        return None


def satisfies(version: str, spec_str: str) -> bool:
    """Return True when ``version`` matches the npm range ``spec_str``.

    Dist-tags (``latest``, ``next``) and unparseable ranges never match, so
    the caller falls back to asking the registry.
    """
    try:
        ver = semantic_version.Version(version)
    except ValueError:
        return False
    spec = _parse_range(spec_str)
    if spec is None:
        return False
    return spec.match(ver)
