"""Error taxonomy for dependency resolution and module loading.

Every error raised by the package derives from :class:`CdnRunError` so callers
of ``Context.run`` can catch the whole family at once, while still being able
to tell a metadata failure from a module fetch failure.
"""

from __future__ import annotations

from typing import Optional, Sequence


class CdnRunError(Exception):
    """Base class for all cdnrun errors."""


class InvalidPackageSpecError(CdnRunError, ValueError):
    """A ``name@range`` specifier could not be parsed."""

    def __init__(self, spec: str):
        super().__init__(f"Invalid package spec: {spec!r}")
        self.spec = spec


class MetadataFetchError(CdnRunError):
    """Package metadata request returned a non-success status or bad body."""

    def __init__(self, spec: str, status: Optional[int], reason: Optional[str] = None):
        message = f"Unexpected status code loading '{spec}': {status}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.spec = spec
        self.status = status


class FetchTimeoutError(CdnRunError, TimeoutError):
    """A remote fetch exceeded its deadline."""

    def __init__(self, url: str, timeout: float):
        super().__init__(f"Timed out after {timeout}s fetching {url}")
        self.url = url
        self.timeout = timeout


class ModuleFetchStatusError(CdnRunError):
    """Remote module fetch returned a non-success status."""

    def __init__(self, url: str, status: int):
        super().__init__(f"Unexpected status code fetching {url}: {status}")
        self.url = url
        self.status = status


UnexpectedStatusError = ModuleFetchStatusError


class ExtensionFallbackExhaustedError(CdnRunError):
    """Every local and remote extension-fallback candidate failed."""

    def __init__(self, candidates: Sequence[str], last_error: Optional[Exception]):
        super().__init__(
            f"No candidate found for {candidates[0] if candidates else '<empty>'} "
            f"(tried {', '.join(candidates)}): {last_error}"
        )
        self.candidates = list(candidates)
        self.last_error = last_error


class MissingMappingError(CdnRunError):
    """A preset required an import-map entry that resolution did not produce."""

    def __init__(self, name: str):
        super().__init__(f"{name} mapping not found")
        self.name = name


class MissingPackageConfigError(CdnRunError):
    """A preset required a package configuration entry that is absent."""

    def __init__(self, name: str):
        super().__init__(f"{name} package not found")
        self.name = name


class UnknownPresetError(CdnRunError, ValueError):
    """The requested preset is not part of the built-in enumeration."""

    def __init__(self, name: str):
        super().__init__(f"Unknown preset: {name!r}")
        self.name = name


class UnresolvedSpecifierError(CdnRunError, LookupError):
    """A bare module specifier is not present in any applicable map."""

    def __init__(self, specifier: str, parent: Optional[str] = None):
        where = f" from {parent}" if parent else ""
        super().__init__(f"Cannot resolve module {specifier!r}{where}")
        self.specifier = specifier
        self.parent = parent


class ConfigValidationError(CdnRunError, ValueError):
    """A configuration file does not match the expected schema."""

    def __init__(self, source: str, path: str, message: str):
        super().__init__(f"Invalid config in {source} at '{path}': {message}")
        self.source = source
        self.path = path
