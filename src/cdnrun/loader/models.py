"""Immutable request/result values passed through the module loading chain."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ModuleRequest:
    """A module being loaded: what was asked for and where it resolved to."""
    specifier: str
    address: str
    parent: Optional[str] = None

    def with_address(self, address: str) -> "ModuleRequest":
        """Return a copy pointing at another candidate address."""
        return ModuleRequest(specifier=self.specifier, address=address, parent=self.parent)


@dataclass(frozen=True)
class FetchResult:
    """Outcome of one fetch attempt. ``source`` is None when not found."""
    address: str
    source: Optional[str] = None
    status: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.source is not None

    @classmethod
    def not_found(cls, address: str, status: int = 404) -> "FetchResult":
        return cls(address=address, source=None, status=status)


@dataclass(frozen=True)
class LoadedModule:
    """Record handed to the evaluator once a module's source is available."""
    address: str
    source: str
    format: Optional[str] = None
    globals: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
