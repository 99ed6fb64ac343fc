"""SystemConfig synthesis from a resolved package graph.

The import map (``map``) only lists the top-level requested packages. Every
package reachable from them gets an entry in ``packages`` whose own ``map``
points its dependencies at their canonical ids. Traversal is breadth first
over an explicit worklist and deduplicates by package id, so a package shared
by several parents is configured once and referenced by each parent.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any, Deque, Dict, Iterable, Set

from cdnrun.constants import Constants
from cdnrun.registry.models import PackageNode, node_id

logger = logging.getLogger(__name__)

SystemConfig = Dict[str, Any]


def build_meta_rules(base_url: str) -> Dict[str, Dict[str, Any]]:
    """Pattern-keyed loader rules for remote and virtual-root modules."""
    shims = {"process": Constants.PROCESS_MODULE}
    return {
        f"{base_url}/*": {"loader": Constants.REMOTE_LOADER, "globals": dict(shims)},
        "./*": {"loader": Constants.LOCAL_LOADER, "globals": dict(shims)},
    }


def resolve_main(raw: Dict[str, Any], use_browser: bool) -> str:
    """Pick the entry file for a package."""
    browser = raw.get("browser")
    if use_browser and isinstance(browser, str) and browser:
        return browser
    main = raw.get("main")
    if isinstance(main, str) and main:
        return main
    return Constants.DEFAULT_MAIN


def browser_map(raw: Dict[str, Any]) -> Dict[str, str]:
    """Translate an object ``browser`` field into package map entries.

    ``false`` stubs the module out with the empty sentinel; strings are copied
    verbatim.
    """
    browser = raw.get("browser")
    if not isinstance(browser, dict):
        return {}
    remaps: Dict[str, str] = {}
    for specifier, target in browser.items():
        if target is False:
            remaps[specifier] = Constants.EMPTY_MODULE
        elif isinstance(target, str):
            remaps[specifier] = target
        else:
            logger.debug("Ignoring browser field entry %s=%r in %s", specifier, target, raw.get("name"))
    return remaps


def synthesize_system_config(
    packages: Iterable[PackageNode],
    base_url: str,
    use_browser: bool = False,
) -> SystemConfig:
    """Build the loader configuration for a set of resolved root packages.

    Args:
        packages: Root nodes, one per declared dependency.
        base_url: CDN base URL without trailing slash.
        use_browser: Honour ``browser`` fields.

    Returns:
        A fresh ``{"map", "meta", "packages"}`` dict. The input graph is not
        modified, so calling this twice on the same graph yields equal configs.
    """
    config: SystemConfig = {
        "map": {},
        "meta": build_meta_rules(base_url),
        "packages": {
            Constants.ROOT_PACKAGE: {"defaultExtension": Constants.DEFAULT_EXTENSION},
        },
    }
    queue: Deque[PackageNode] = deque()
    seen: Set[str] = set()

    for pkg in packages:
        config["map"][pkg.name] = node_id(base_url, pkg)
        queue.append(pkg)

    while queue:
        pkg = queue.popleft()
        pkg_id = node_id(base_url, pkg)
        if pkg_id in seen:
            continue
        seen.add(pkg_id)

        pkg_config: Dict[str, Any] = {
            "defaultExtension": Constants.DEFAULT_EXTENSION,
            "main": resolve_main(pkg.raw, use_browser),
            "map": browser_map(pkg.raw) if use_browser else {},
        }
        config["packages"][pkg_id] = pkg_config

        for child_name, child in pkg.children.items():
            pkg_config["map"][child_name] = node_id(base_url, child)
            queue.append(child)

    logger.debug("Synthesized config for %d packages", len(seen))
    return config
