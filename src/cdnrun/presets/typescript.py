"""TypeScript preset: transpile local sources with plugin-typescript."""

from __future__ import annotations

from typing import Any, Dict

from cdnrun.constants import Constants
from cdnrun.errors import MissingMappingError, MissingPackageConfigError
from cdnrun.registry.models import DependencySpec

from .base import Preset, PresetContext, PresetName

PLUGIN_PACKAGE = "plugin-typescript"
COMPILER_PACKAGE = "typescript"

IMPLICIT_DEPENDENCIES = {
    PLUGIN_PACKAGE: "^8.0.0",
    COMPILER_PACKAGE: "^2.7.2",
}

# Node built-ins the compiler references but never needs in the loader.
SHIM_MODULES = ("crypto", "fs", "path", "os", "source-map-support")

DEFAULT_COMPILER_OPTIONS = {
    "allowJs": True,
    "allowSyntheticDefaultImports": True,
    "esModuleInterop": True,
    "tsconfig": False,
}


def on_before_resolve_dependencies(dependencies: DependencySpec, ctx: PresetContext) -> DependencySpec:
    """Add the plugin and compiler unless the caller pinned them already."""
    result = dict(dependencies)
    for name, rng in IMPLICIT_DEPENDENCIES.items():
        if not result.get(name):
            result[name] = rng
    return result


def _require_package(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    pkg_id = config.get("map", {}).get(name)
    if not pkg_id:
        raise MissingMappingError(name)
    pkg = config.get("packages", {}).get(pkg_id)
    if pkg is None:
        raise MissingPackageConfigError(name)
    return pkg


def on_before_system_config(
    config: Dict[str, Any], options: Dict[str, Any], ctx: PresetContext
) -> Dict[str, Any]:
    """Wire the compiler into the config; fails fast if it was not resolved."""
    plugin = _require_package(config, PLUGIN_PACKAGE)
    compiler = _require_package(config, COMPILER_PACKAGE)

    plugin["format"] = "system"
    compiler["format"] = "cjs"
    compiler["meta"] = {
        **(compiler.get("meta") or {}),
        "lib/typescript.js": {"exports": "ts"},
    }

    compiler_map = compiler.setdefault("map", {})
    for module_name in SHIM_MODULES:
        if not compiler_map.get(module_name):
            compiler_map[module_name] = Constants.EMPTY_MODULE

    config["transpiler"] = PLUGIN_PACKAGE
    config["typescriptOptions"] = {**DEFAULT_COMPILER_OPTIONS, **(options or {})}
    return config


PRESET = Preset(
    name=PresetName.TYPESCRIPT.value,
    on_before_resolve_dependencies=on_before_resolve_dependencies,
    on_before_system_config=on_before_system_config,
)
