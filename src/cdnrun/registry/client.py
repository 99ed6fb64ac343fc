"""Dependency graph client: turns ``name@range`` specs into PackageNode graphs.

The client asks the metadata loader for one document per distinct spec, then
expands the ``dependencies`` of every resolved package. Ranges are first
matched against versions already resolved in this client so diamonds share a
single node; only unmatched ranges go back to the CDN.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from cdnrun.versioning import format_spec, satisfies, split_spec
from cdnrun.errors import MetadataFetchError
from cdnrun.common.logging_utils import extra_context, is_debug_enabled

from .models import PackageNode

logger = logging.getLogger(__name__)

MetadataLoader = Callable[[str], Awaitable[Dict[str, Any]]]


class DependencyGraphClient:
    """Resolves package specs into a shared, deduplicated node graph."""

    def __init__(self, metadata_loader: MetadataLoader):
        self._metadata_loader = metadata_loader
        self._nodes: Dict[str, PackageNode] = {}
        self._by_name: Dict[str, List[PackageNode]] = {}
        self._pending: Dict[str, "asyncio.Future[PackageNode]"] = {}
        self._populating: List["asyncio.Future[None]"] = []

    @property
    def nodes(self) -> Dict[str, PackageNode]:
        """Resolved nodes keyed by ``name@version``."""
        return dict(self._nodes)

    async def load(self, spec: str) -> PackageNode:
        """Resolve ``spec`` and wait until its whole subtree is populated.

        Raises:
            MetadataFetchError: Any metadata request in the subtree failed.
            InvalidPackageSpecError: ``spec`` cannot be parsed.
        """
        node = await self._resolve(spec)
        await self._drain()
        return node

    def _find_satisfying(self, name: str, rng: str) -> Optional[PackageNode]:
        for candidate in self._by_name.get(name, ()):
            if satisfies(candidate.version, rng):
                return candidate
        return None

    async def _resolve(self, spec: str) -> PackageNode:
        name, rng = split_spec(spec)
        existing = self._find_satisfying(name, rng)
        if existing is not None:
            return existing

        pending = self._pending.get(spec)
        if pending is None:
            pending = asyncio.ensure_future(self._fetch_node(spec, name))
            self._pending[spec] = pending
        return await pending

    async def _fetch_node(self, spec: str, requested_name: str) -> PackageNode:
        raw = await self._metadata_loader(spec)
        version = raw.get("version")
        if not isinstance(version, str) or not version:
            raise MetadataFetchError(spec, 200, "metadata has no version")
        name = raw.get("name") or requested_name

        key = f"{name}@{version}"
        node = self._nodes.get(key)
        if node is not None:
            return node

        # Register before expanding children so cycles resolve to this node.
        node = PackageNode(name=name, version=version, raw=raw)
        self._nodes[key] = node
        self._by_name.setdefault(name, []).append(node)
        if name != requested_name:
            self._by_name.setdefault(requested_name, []).append(node)
        self._populating.append(asyncio.ensure_future(self._populate(node)))

        if is_debug_enabled(logger):
            logger.debug(
                "Resolved package",
                extra=extra_context(
                    event="resolve",
                    component="graph_client",
                    outcome="success",
                    target=spec,
                    package=key,
                ),
            )
        return node

    async def _populate(self, node: PackageNode) -> None:
        dependencies = node.raw.get("dependencies") or {}
        if not isinstance(dependencies, dict):
            return
        names = list(dependencies)
        children = await asyncio.gather(
            *(self._resolve(format_spec(dep, str(dependencies[dep]))) for dep in names)
        )
        for dep, child in zip(names, children):
            node.children[dep] = child

    async def _drain(self) -> None:
        """Wait for every scheduled population task, surfacing the first error.

        On failure the remaining fetches and population tasks are cancelled,
        so nothing is left running with an unobserved exception.
        """
        while True:
            pending = [task for task in self._populating if not task.done()]
            if not pending:
                break
            results = await asyncio.gather(*pending, return_exceptions=True)
            errors = [r for r in results if isinstance(r, Exception)]
            if errors:
                self._cancel_outstanding()
                raise errors[0]
        for task in self._populating:
            if not task.cancelled() and task.exception() is not None:
                self._cancel_outstanding()
                raise task.exception()

    def _cancel_outstanding(self) -> None:
        for future in [*self._pending.values(), *self._populating]:
            if not future.done():
                future.cancel()
