"""npm specifier parsing and semver range matching."""

from .parser import format_spec, split_spec
from .npm import satisfies

__all__ = ["format_spec", "split_spec", "satisfies"]
