"""JSON Schema validation for configuration files.

Wraps jsonschema Draft7 validation of the ``cdnrun:`` section so a bad file
fails with a single readable message naming the offending key.
"""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator

from cdnrun.errors import ConfigValidationError

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "base_url": {"type": "string", "pattern": "^https?://"},
        "dependencies": _STRING_MAP,
        "files": {"type": "object", "additionalProperties": {"type": "string"}},
        "preset": {"type": ["string", "null"]},
        "preset_options": {"type": "object"},
        "process_env": _STRING_MAP,
        "use_browser": {"type": "boolean"},
        "default_extensions": {"type": "array", "items": {"type": "string"}},
        "module_timeout": {"type": "number", "exclusiveMinimum": 0},
        "root_dir": {"type": ["string", "null"]},
    },
}

_validator = Draft7Validator(CONFIG_SCHEMA)


def validate_config(data: Dict[str, Any], source: str = "<config>") -> None:
    """Validate a config section and raise on the first error.

    Args:
        data:   Parsed ``cdnrun:`` section.
        source: File name used in the error message.

    Raises:
        ConfigValidationError: ``data`` does not match :data:`CONFIG_SCHEMA`.
    """
    errs = sorted(_validator.iter_errors(data), key=lambda e: list(e.path))
    if errs:
        first = errs[0]
        path = "/".join(str(p) for p in first.path) or "<root>"
        raise ConfigValidationError(source, path, first.message)
