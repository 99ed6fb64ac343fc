"""Preset definitions and the two-phase hook pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from cdnrun.loader.files import maybe_await
from cdnrun.registry.models import DependencySpec

logger = logging.getLogger(__name__)


class PresetName(Enum):
    """Built-in presets.

    Args:
        Enum (string): Preset names accepted by Context and the CLI.
    """

    TYPESCRIPT = "typescript"


@dataclass(frozen=True)
class PresetContext:
    """Read-only view of the orchestrator handed to preset hooks."""
    base_url: str
    use_browser: bool


BeforeResolveHook = Callable[[DependencySpec, PresetContext], Union[DependencySpec, Awaitable[DependencySpec]]]
BeforeConfigHook = Callable[
    [Dict[str, Any], Dict[str, Any], PresetContext],
    Union[Dict[str, Any], Awaitable[Dict[str, Any]]],
]


@dataclass(frozen=True)
class Preset:
    """A named pair of optional hooks."""
    name: str
    on_before_resolve_dependencies: Optional[BeforeResolveHook] = None
    on_before_system_config: Optional[BeforeConfigHook] = None


async def run_before_resolve_dependencies(
    preset: Optional[Preset], dependencies: DependencySpec, ctx: PresetContext
) -> DependencySpec:
    """Phase 1: let the preset adjust the dependency set before resolution."""
    if preset is None or preset.on_before_resolve_dependencies is None:
        return dict(dependencies)
    result = await maybe_await(preset.on_before_resolve_dependencies(dict(dependencies), ctx))
    logger.debug("Preset %s dependencies: %s", preset.name, result)
    return result


async def run_before_system_config(
    preset: Optional[Preset],
    config: Dict[str, Any],
    options: Optional[Dict[str, Any]],
    ctx: PresetContext,
) -> Dict[str, Any]:
    """Phase 2: let the preset validate and adjust the synthesized config."""
    if preset is None or preset.on_before_system_config is None:
        return config
    return await maybe_await(preset.on_before_system_config(config, dict(options or {}), ctx))
