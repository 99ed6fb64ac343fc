"""Module loader runtime: specifier resolution, meta rules and loader plugins.

``SystemLoader`` consumes a SystemConfig and turns module specifiers into
addresses, then loads each address through the plugin chosen by the matching
``meta`` rule. Local modules are addressed as ``./path`` relative to the
virtual root; remote modules by their CDN URL.

Evaluation is delegated to a pluggable evaluator. Parsing, linking and
executing module source is outside this package; the default evaluator
returns the :class:`LoadedModule` record unchanged.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import urllib.parse
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple, Union

from cdnrun.constants import Constants
from cdnrun.errors import ModuleFetchStatusError, UnresolvedSpecifierError

from .files import maybe_await, normalize_pathname
from .models import FetchResult, LoadedModule, ModuleRequest
from .remote import RemoteFetcher

logger = logging.getLogger(__name__)

Evaluator = Callable[[LoadedModule, "SystemLoader"], Union[Any, Awaitable[Any]]]


def default_evaluator(record: LoadedModule, loader: "SystemLoader") -> LoadedModule:
    """Return the loaded record itself as the module value."""
    return record


def _is_url(specifier: str) -> bool:
    return urllib.parse.urlsplit(specifier).scheme in ("http", "https")


def _is_relative(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../", "/"))


def _split_bare(specifier: str) -> Tuple[str, str]:
    """``@scope/pkg/a/b`` -> (``@scope/pkg``, ``a/b``); ``pkg`` -> (``pkg``, ``""``)."""
    parts = specifier.split("/")
    count = 2 if specifier.startswith("@") else 1
    return "/".join(parts[:count]), "/".join(parts[count:])


def _local(pathname: str) -> str:
    return "./" + normalize_pathname(pathname)


class SystemLoader:
    """Resolves and loads modules according to a SystemConfig."""

    def __init__(
        self,
        *,
        evaluator: Optional[Evaluator] = None,
        root_dir: Optional[Union[str, Path]] = None,
        remote: Optional[RemoteFetcher] = None,
    ):
        """Initialize the loader.

        Args:
            evaluator: Turns a LoadedModule into the module value.
            root_dir: Directory backing the virtual root when no plugin serves a file.
            remote: Fetcher used for http(s) addresses without a plugin.
        """
        self._config: Dict[str, Any] = {"map": {}, "meta": {}, "packages": {}}
        self._plugins: Dict[str, Any] = {}
        self._evaluator = evaluator or default_evaluator
        self._root_dir = Path(root_dir) if root_dir is not None else Path.cwd()
        self._remote = remote
        self.registry: Dict[str, Any] = {Constants.EMPTY_MODULE: {}}

    def config(self, system_config: Dict[str, Any]) -> None:
        """Install a configuration; missing sections default to empty."""
        self._config = {
            **system_config,
            "map": dict(system_config.get("map") or {}),
            "meta": dict(system_config.get("meta") or {}),
            "packages": dict(system_config.get("packages") or {}),
        }

    def get_config(self) -> Dict[str, Any]:
        return self._config

    def register_plugin(self, name: str, plugin: Any) -> None:
        """Register a loader plugin referenced by ``meta[...]["loader"]``."""
        self._plugins[name] = plugin

    # -- resolution -------------------------------------------------------

    async def resolve(self, specifier: str, parent: Optional[str] = None) -> str:
        """Resolve ``specifier`` (relative to ``parent``) to a module address."""
        return self._resolve(specifier, parent)

    def _resolve(self, specifier: str, parent: Optional[str]) -> str:
        if specifier == Constants.EMPTY_MODULE:
            return specifier
        if specifier in self.registry and not _is_relative(specifier):
            return specifier
        if _is_url(specifier):
            address = specifier
        elif _is_relative(specifier):
            address = self._join(parent, specifier)
        else:
            address = self._resolve_bare(specifier, parent)
            if address == Constants.EMPTY_MODULE:
                return address
        return self._apply_package_rules(address)

    def _join(self, parent: Optional[str], specifier: str) -> str:
        if specifier.startswith("/"):
            return _local(specifier)
        if parent and _is_url(parent):
            return urllib.parse.urljoin(parent, specifier)
        base = normalize_pathname(parent or "")
        directory = base.rsplit("/", 1)[0] if "/" in base else ""
        return _local(f"{directory}/{specifier}")

    def _package_for(self, address: str) -> Optional[str]:
        """Return the id of the package containing ``address``."""
        if address.startswith("./"):
            return Constants.ROOT_PACKAGE if Constants.ROOT_PACKAGE in self._config["packages"] else None
        best = None
        for pkg_id in self._config["packages"]:
            if pkg_id == Constants.ROOT_PACKAGE:
                continue
            if address == pkg_id or address.startswith(pkg_id + "/"):
                if best is None or len(pkg_id) > len(best):
                    best = pkg_id
        return best

    def _resolve_bare(
        self, specifier: str, parent: Optional[str], seen: FrozenSet[str] = frozenset()
    ) -> str:
        name, subpath = _split_bare(specifier)
        seen = seen | {specifier}
        scopes = []
        parent_pkg = self._package_for(parent) if parent else None
        if parent_pkg is not None:
            scopes.append((parent_pkg, self._config["packages"][parent_pkg].get("map") or {}))
        scopes.append((None, self._config["map"]))

        for owner, mapping in scopes:
            if specifier in mapping:
                return self._map_target(owner, mapping[specifier], "", parent, seen)
            if name in mapping:
                return self._map_target(owner, mapping[name], subpath, parent, seen)
        raise UnresolvedSpecifierError(specifier, parent)

    def _map_target(
        self,
        owner: Optional[str],
        target: str,
        subpath: str,
        parent: Optional[str],
        seen: FrozenSet[str],
    ) -> str:
        if target == Constants.EMPTY_MODULE:
            return target
        if not target.startswith(("./", "/")) and not _is_url(target):
            # Bare target, e.g. a browser field remap to another module.
            bare = f"{target}/{subpath}" if subpath else target
            if bare in seen:
                raise UnresolvedSpecifierError(bare, parent)
            return self._resolve_bare(bare, parent, seen)
        if target.startswith("./") and owner and owner != Constants.ROOT_PACKAGE:
            target = f"{owner}/{normalize_pathname(target)}"
        elif target.startswith("./"):
            target = _local(target)
        return f"{target}/{subpath}" if subpath else target

    def _apply_package_rules(self, address: str) -> str:
        pkg_id = self._package_for(address)
        if pkg_id is None:
            return address
        pkg = self._config["packages"][pkg_id]
        ext = pkg.get("defaultExtension")

        if pkg_id != Constants.ROOT_PACKAGE:
            if address == pkg_id:
                address = f"{pkg_id}/{normalize_pathname(pkg.get('main') or Constants.DEFAULT_MAIN)}"
            internal = "./" + address[len(pkg_id) + 1:]
            remaps = pkg.get("map") or {}
            keys = [internal]
            if ext and not internal.endswith(f".{ext}"):
                keys.append(f"{internal}.{ext}")
            for key in keys:
                if key in remaps:
                    target = remaps[key]
                    if target == Constants.EMPTY_MODULE:
                        return target
                    address = f"{pkg_id}/{normalize_pathname(target)}"
                    break

        if ext and not address.endswith(Constants.SCRIPT_EXTENSIONS):
            address = f"{address}.{ext}"
        return address

    # -- loading ----------------------------------------------------------

    def _meta_for(self, address: str) -> Dict[str, Any]:
        """Merge matching meta rules, least specific first."""
        merged: Dict[str, Any] = {}
        matches = [p for p in self._config["meta"] if fnmatch.fnmatchcase(address, p)]
        for pattern in sorted(matches, key=len):
            merged.update(self._config["meta"][pattern])

        pkg_id = self._package_for(address)
        if pkg_id and pkg_id != Constants.ROOT_PACKAGE:
            pkg = self._config["packages"][pkg_id]
            internal = address[len(pkg_id) + 1:]
            for pattern, rules in (pkg.get("meta") or {}).items():
                if fnmatch.fnmatchcase(internal, normalize_pathname(pattern)):
                    merged.update(rules)
            if pkg.get("format") and "format" not in merged:
                merged["format"] = pkg["format"]
        return merged

    def _root_path(self, address: str) -> Optional[Path]:
        """Map a local address onto root_dir; None if it would leave the root."""
        relative = normalize_pathname(address)
        if not relative or relative.startswith(".."):
            return None
        root = self._root_dir.resolve()
        path = (root / relative).resolve()
        try:
            path.relative_to(root)
        except ValueError:
            return None
        return path

    async def _default_fetch(self, request: ModuleRequest) -> FetchResult:
        if _is_url(request.address):
            if self._remote is None:
                raise ModuleFetchStatusError(request.address, 0)
            return await self._remote.try_fetch(request)
        path = self._root_path(request.address)
        if path is None or not await asyncio.to_thread(path.is_file):
            return FetchResult.not_found(request.address)
        source = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return FetchResult(address=request.address, source=source, status=200)

    async def _strict_fetch(self, request: ModuleRequest) -> str:
        result = await self._default_fetch(request)
        if not result.found:
            raise ModuleFetchStatusError(request.address, result.status or 404)
        return result.source  # type: ignore[return-value]

    async def import_module(self, specifier: str, parent: Optional[str] = None) -> Any:
        """Resolve, fetch and evaluate a module, caching it in ``registry``."""
        address = self._resolve(specifier, parent)
        if address in self.registry:
            return self.registry[address]

        meta = self._meta_for(address)
        plugin = self._plugins.get(meta.get("loader")) if meta.get("loader") else None
        request = ModuleRequest(specifier=specifier, address=address, parent=parent)

        if plugin is not None and hasattr(plugin, "locate"):
            located = await maybe_await(plugin.locate(request))
            if located and located != address:
                request = request.with_address(located)
        if plugin is not None and hasattr(plugin, "fetch"):
            source = await plugin.fetch(request, self._default_fetch)
        else:
            source = await self._strict_fetch(request)

        shims = {
            name: self.registry.get(module_name)
            for name, module_name in (meta.get("globals") or {}).items()
        }
        record = LoadedModule(
            address=request.address,
            source=source,
            format=meta.get("format"),
            globals=shims,
            meta=meta,
        )
        logger.debug("Loaded %s (%d bytes)", request.address, len(source))
        module = await maybe_await(self._evaluator(record, self))
        self.registry[address] = module
        return module
