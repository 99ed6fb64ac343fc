"""cdnrun - run npm package trees from a CDN inside a single module loader."""

from cdnrun.context import Context, ContextOptions
from cdnrun.errors import (
    CdnRunError,
    ConfigValidationError,
    ExtensionFallbackExhaustedError,
    FetchTimeoutError,
    MetadataFetchError,
    MissingMappingError,
    MissingPackageConfigError,
    ModuleFetchStatusError,
    UnexpectedStatusError,
    UnknownPresetError,
    UnresolvedSpecifierError,
)

__version__ = "0.1.0"

__all__ = [
    "Context",
    "ContextOptions",
    "CdnRunError",
    "ConfigValidationError",
    "ExtensionFallbackExhaustedError",
    "FetchTimeoutError",
    "MetadataFetchError",
    "MissingMappingError",
    "MissingPackageConfigError",
    "ModuleFetchStatusError",
    "UnexpectedStatusError",
    "UnknownPresetError",
    "UnresolvedSpecifierError",
]
