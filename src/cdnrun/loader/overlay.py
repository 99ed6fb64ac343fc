"""Virtual file overlay: local files first, remote fallback second.

Installed as the loader plugin for modules under the virtual root. Both
plugin points build the same ordered candidate list: the requested address
followed by its extension variants. Local files always win over remote ones,
and within each layer the first candidate in declaration order wins.
"""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, List, Optional, Sequence

from cdnrun.constants import Constants
from cdnrun.errors import ExtensionFallbackExhaustedError, ModuleFetchStatusError
from cdnrun.common.logging_utils import extra_context, is_debug_enabled

from .files import FilesHost, maybe_await, normalize_pathname
from .models import FetchResult, ModuleRequest

logger = logging.getLogger(__name__)

NextFetch = Callable[[ModuleRequest], Awaitable[FetchResult]]

_SCRIPT_EXT_RE = re.compile(
    "(" + "|".join(re.escape(ext) for ext in Constants.SCRIPT_EXTENSIONS) + r")$"
)


def extension_variants(address: str, extensions: Sequence[str]) -> List[str]:
    """Return ``address`` with its script extension swapped for each of ``extensions``.

    The original address is never part of the result; duplicates are dropped
    while keeping declaration order.
    """
    stem = _SCRIPT_EXT_RE.sub("", address)
    variants: List[str] = []
    for ext in extensions:
        if not ext:
            continue
        candidate = stem + (ext if ext.startswith(".") else f".{ext}")
        if candidate != address and candidate not in variants:
            variants.append(candidate)
    return variants


def local_pathname(address: str) -> str:
    """Map a virtual-root address (``./a/b.js``) to a files-host pathname."""
    return normalize_pathname(address)


class VirtualFileOverlay:
    """``locate``/``fetch`` plugin backed by a read-only files host."""

    def __init__(self, files_host: FilesHost, default_extensions: Optional[Sequence[str]] = None):
        self._files = files_host
        self._extensions = list(
            default_extensions if default_extensions is not None else Constants.DEFAULT_EXTENSIONS
        )

    @property
    def default_extensions(self) -> List[str]:
        return list(self._extensions)

    def candidates(self, address: str) -> List[str]:
        """Ordered candidate addresses for ``address``."""
        return [address] + extension_variants(address, self._extensions)

    async def _has(self, address: str) -> bool:
        return bool(await maybe_await(self._files.has(local_pathname(address))))

    async def locate(self, request: ModuleRequest) -> str:
        """Return the first candidate present locally, else the original address."""
        for candidate in self.candidates(request.address):
            if await self._has(candidate):
                return candidate
        return request.address

    async def fetch(self, request: ModuleRequest, next_fetch: NextFetch) -> str:
        """Return local source if any candidate exists, otherwise delegate.

        Remote candidates are tried in order; a not-found result moves on to
        the next one and anything raised by ``next_fetch`` propagates as is.

        Raises:
            ExtensionFallbackExhaustedError: No candidate was found anywhere.
        """
        candidates = self.candidates(request.address)
        for candidate in candidates:
            if await self._has(candidate):
                source = await maybe_await(self._files.get(local_pathname(candidate)))
                if is_debug_enabled(logger):
                    logger.debug(
                        "Serving module from files host",
                        extra=extra_context(
                            event="fetch", component="overlay", outcome="local", target=candidate
                        ),
                    )
                return source

        last: Optional[FetchResult] = None
        for candidate in candidates:
            result = await next_fetch(request.with_address(candidate))
            if result.found:
                return result.source  # type: ignore[return-value]
            last = result
            logger.debug("Candidate %s not found (status %s), trying next", candidate, result.status)

        last_error = ModuleFetchStatusError(last.address, last.status or 404) if last else None
        raise ExtensionFallbackExhaustedError(candidates, last_error) from last_error
