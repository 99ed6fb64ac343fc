"""Package registry access: metadata loading and dependency graph resolution."""

from .models import DependencySpec, PackageNode, node_id, package_id
from .metadata import PackageMetadataLoader
from .client import DependencyGraphClient
from .graph import load_dependency_packages

__all__ = [
    "DependencySpec",
    "PackageNode",
    "node_id",
    "package_id",
    "PackageMetadataLoader",
    "DependencyGraphClient",
    "load_dependency_packages",
]
