"""Context: resolves declared dependencies once and runs entry modules.

A Context owns its options, an optional aiohttp session and a single memoized
loader build. The build runs preset phase 1, dependency resolution, config
synthesis and preset phase 2, then installs the files overlay and remote
fetcher as loader plugins. The build moves UNBUILT -> BUILDING -> READY or
UNBUILT -> BUILDING -> FAILED and never goes back; a failed build is reported
again to every later caller.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import aiohttp
import yaml

from cdnrun.constants import BuildState, Constants
from cdnrun.common.cache import MetadataCache
from cdnrun.common.http_client import create_session
from cdnrun.loader import (
    RemoteFetcher,
    RemoteLoaderPlugin,
    SystemLoader,
    VirtualFileOverlay,
    as_files_host,
    synthesize_system_config,
)
from cdnrun.loader.files import normalize_pathname
from cdnrun.loader.system import Evaluator
from cdnrun.presets import (
    PresetContext,
    get_preset,
    run_before_resolve_dependencies,
    run_before_system_config,
)
from cdnrun.registry import (
    DependencyGraphClient,
    PackageMetadataLoader,
    load_dependency_packages,
)
from cdnrun.schema import validate_config
from cdnrun.versioning import split_spec

logger = logging.getLogger(__name__)


def _parse_pairs(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``["K=V", ...]`` into a dict, skipping malformed items."""
    result: Dict[str, str] = {}
    for item in pairs or []:
        if not isinstance(item, str) or "=" not in item:
            logger.warning("Ignoring malformed KEY=VALUE pair: %r", item)
            continue
        key, value = item.split("=", 1)
        result[key.strip()] = value.strip()
    return result


def _parse_dependency_tokens(tokens: Optional[List[str]]) -> Dict[str, str]:
    deps: Dict[str, str] = {}
    for token in tokens or []:
        name, rng = split_spec(token)
        deps[name] = rng
    return deps


@dataclass
class ContextOptions:
    """Construction options for a Context."""

    base_url: str = Constants.DEFAULT_BASE_URL
    dependencies: Dict[str, str] = field(default_factory=dict)
    files: Any = None
    preset: Optional[str] = None
    preset_options: Dict[str, Any] = field(default_factory=dict)
    process_env: Dict[str, str] = field(default_factory=lambda: dict(Constants.DEFAULT_PROCESS_ENV))
    use_browser: bool = False
    default_extensions: List[str] = field(default_factory=lambda: list(Constants.DEFAULT_EXTENSIONS))
    module_timeout: float = Constants.MODULE_FETCH_TIMEOUT
    root_dir: Optional[str] = None

    def __post_init__(self) -> None:
        if self.base_url.endswith("/"):
            self.base_url = self.base_url[:-1]

    def merge(self, **overrides: Any) -> "ContextOptions":
        """Return a copy with every non-None override applied."""
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"Unknown context option(s): {', '.join(sorted(unknown))}")
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_file(cls, path: str) -> "ContextOptions":
        """Load options from a YAML or JSON file.

        Reads the ``cdnrun:`` section when present, otherwise the whole
        document.

        Raises:
            FileNotFoundError: ``path`` does not exist.
            ValueError: The document is not a mapping.
            ConfigValidationError: A known key has the wrong type.
        """
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        section = data.get(Constants.CONFIG_SECTION, data)
        if not isinstance(section, dict):
            raise ValueError(f"'{Constants.CONFIG_SECTION}' section in {path} must be a mapping")
        validate_config(section, path)
        known = {f.name for f in dataclasses.fields(cls)}
        for key in sorted(set(section) - known):
            logger.warning("Ignoring unknown config key %r in %s", key, path)
        return cls(**{k: v for k, v in section.items() if k in known})

    @classmethod
    def from_args(cls, args: Any, base: Optional["ContextOptions"] = None) -> "ContextOptions":
        """Create options from CLI arguments, layered over ``base``.

        Args:
            args: Parsed CLI arguments namespace.
            base: Options loaded from a config file, if any.

        Returns:
            ContextOptions instance.
        """
        options = base or cls()
        dependencies = dict(options.dependencies)
        dependencies.update(_parse_dependency_tokens(getattr(args, "DEPENDENCIES", None)))
        process_env = dict(options.process_env)
        process_env.update(_parse_pairs(getattr(args, "ENV", None)))
        preset_options = dict(options.preset_options)
        preset_options.update(_parse_pairs(getattr(args, "PRESET_OPTIONS", None)))

        return options.merge(
            base_url=getattr(args, "BASE_URL", None),
            dependencies=dependencies,
            preset=getattr(args, "PRESET", None),
            preset_options=preset_options,
            process_env=process_env,
            use_browser=True if getattr(args, "BROWSER", False) else None,
            default_extensions=getattr(args, "EXTENSIONS", None) or None,
            module_timeout=getattr(args, "TIMEOUT", None),
            root_dir=getattr(args, "ROOT", None),
        )


class Context:
    """Orchestrates dependency resolution, config synthesis and module loading."""

    def __init__(
        self,
        options: Optional[ContextOptions] = None,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        evaluator: Optional[Evaluator] = None,
        metadata_cache: Optional[MetadataCache] = None,
        **overrides: Any,
    ):
        """Initialize the context.

        Args:
            options: Base options; keyword overrides are applied on top.
            session: Shared aiohttp session. A private one is created lazily
                (and closed by :meth:`close`) when omitted.
            evaluator: Turns loaded module records into module values.
            metadata_cache: Cache for package.json documents shared across contexts.
            **overrides: Any ContextOptions field.

        Raises:
            UnknownPresetError: ``preset`` is not a built-in preset.
        """
        opts = options or ContextOptions()
        self._options = opts.merge(**overrides) if overrides else opts
        self._files = as_files_host(self._options.files)
        self._preset = get_preset(self._options.preset)
        self._session = session
        self._owns_session = session is None
        self._evaluator = evaluator
        self._metadata_cache = metadata_cache

        self._state = BuildState.UNBUILT
        self._build: Optional["asyncio.Future[SystemLoader]"] = None
        self._loader: Optional[SystemLoader] = None
        self._error: Optional[BaseException] = None

    @property
    def options(self) -> ContextOptions:
        return self._options

    @property
    def base_url(self) -> str:
        return self._options.base_url

    @property
    def state(self) -> BuildState:
        return self._state

    @property
    def preset_context(self) -> PresetContext:
        return PresetContext(base_url=self._options.base_url, use_browser=self._options.use_browser)

    @property
    def system_config(self) -> Optional[Dict[str, Any]]:
        """Configuration installed in the loader, once the build is ready."""
        return self._loader.get_config() if self._loader is not None else None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = create_session()
        return self._session

    async def load_system_config(self) -> Dict[str, Any]:
        """Resolve dependencies and synthesize the loader configuration.

        Raises:
            MetadataFetchError: A package.json request failed.
            MissingMappingError: The preset's required packages were not resolved.
        """
        ctx = self.preset_context
        dependencies = await run_before_resolve_dependencies(
            self._preset, self._options.dependencies, ctx
        )
        metadata_loader = PackageMetadataLoader(
            self._get_session, self._options.base_url, cache=self._metadata_cache
        )
        client = DependencyGraphClient(metadata_loader)
        packages = await load_dependency_packages(client, dependencies)
        config = synthesize_system_config(packages, self._options.base_url, self._options.use_browser)
        return await run_before_system_config(self._preset, config, self._options.preset_options, ctx)

    async def _build_loader(self) -> SystemLoader:
        config = await self.load_system_config()
        remote = RemoteFetcher(self._get_session, timeout=self._options.module_timeout)
        system = SystemLoader(evaluator=self._evaluator, root_dir=self._options.root_dir, remote=remote)
        system.config(config)
        system.register_plugin(
            Constants.LOCAL_LOADER,
            VirtualFileOverlay(self._files, self._options.default_extensions),
        )
        system.register_plugin(Constants.REMOTE_LOADER, RemoteLoaderPlugin(remote))
        system.registry[Constants.PROCESS_MODULE] = {"env": dict(self._options.process_env)}
        return system

    def _on_build_done(self, future: "asyncio.Future[SystemLoader]") -> None:
        if future.cancelled():
            self._error = asyncio.CancelledError("loader build was cancelled")
        else:
            self._error = future.exception()
        if self._error is None:
            self._loader = future.result()
            self._state = BuildState.READY
            logger.info("Loader ready with %d packages", len(self._loader.get_config()["packages"]) - 1)
        else:
            self._state = BuildState.FAILED
            logger.error("Loader build failed: %s", self._error)

    async def get_loader(self) -> SystemLoader:
        """Return the loader, building it on first use.

        Concurrent callers share the in-flight build. Once failed, the same
        error is raised on every call without retrying.
        """
        if self._state is BuildState.READY and self._loader is not None:
            return self._loader
        if self._state is BuildState.FAILED and self._error is not None:
            raise self._error
        if self._build is None:
            self._state = BuildState.BUILDING
            logger.debug("Building loader for %s", self._options.base_url)
            self._build = asyncio.ensure_future(self._build_loader())
            self._build.add_done_callback(self._on_build_done)
        return await asyncio.shield(self._build)

    async def run(self, pathname: str) -> Any:
        """Import ``pathname`` (relative to the virtual root) and return its value."""
        loader = await self.get_loader()
        entry = "./" + normalize_pathname(pathname)
        logger.info("Running %s", entry)
        return await loader.import_module(entry)

    async def close(self) -> None:
        """Close the session if this context created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "Context":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def load_options(config_path: Optional[str]) -> ContextOptions:
    """Load options from ``config_path`` if it exists, else the defaults."""
    if not config_path:
        return ContextOptions()
    if not os.path.isfile(config_path):
        raise FileNotFoundError(config_path)
    return ContextOptions.from_file(config_path)
