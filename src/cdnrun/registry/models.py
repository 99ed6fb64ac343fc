"""Data models for resolved package graphs."""

from dataclasses import dataclass, field
from typing import Any, Dict

DependencySpec = Dict[str, str]


@dataclass(eq=False)
class PackageNode:
    """One resolved ``name@version`` in a package graph.

    Nodes compare by identity: a diamond dependency yields a single node
    reachable from several parents.
    """
    name: str
    version: str
    raw: Dict[str, Any]
    children: Dict[str, "PackageNode"] = field(default_factory=dict)

    @property
    def key(self) -> str:
        """``name@version`` key, unique per resolved package."""
        return f"{self.name}@{self.version}"

    def __repr__(self) -> str:
        return f"PackageNode({self.key!r}, children={sorted(self.children)})"


def package_id(base_url: str, name: str, version: str) -> str:
    """Canonical identifier used as import-map value and package-table key."""
    return f"{base_url}/{name}@{version}"


def node_id(base_url: str, node: PackageNode) -> str:
    """Return :func:`package_id` for a resolved node."""
    return package_id(base_url, node.name, node.version)
