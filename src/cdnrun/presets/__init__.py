"""Built-in presets adjusting dependency resolution and generated config."""

from typing import Dict, Optional, Union

from cdnrun.errors import UnknownPresetError

from .base import (
    Preset,
    PresetContext,
    PresetName,
    run_before_resolve_dependencies,
    run_before_system_config,
)
from . import typescript

PRESETS: Dict[PresetName, Preset] = {
    PresetName.TYPESCRIPT: typescript.PRESET,
}


def get_preset(name: Optional[Union[str, PresetName]]) -> Optional[Preset]:
    """Look up a built-in preset; ``None`` means no preset."""
    if name is None or name == "":
        return None
    try:
        key = name if isinstance(name, PresetName) else PresetName(str(name).strip().lower())
    except ValueError as exc:
        raise UnknownPresetError(str(name)) from exc
    return PRESETS[key]


__all__ = [
    "PRESETS",
    "Preset",
    "PresetContext",
    "PresetName",
    "get_preset",
    "run_before_resolve_dependencies",
    "run_before_system_config",
]
