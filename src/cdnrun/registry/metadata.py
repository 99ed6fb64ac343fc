"""Package metadata loader: fetches ``package.json`` documents from the CDN."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import aiohttp

from cdnrun.constants import Constants
from cdnrun.errors import MetadataFetchError
from cdnrun.common.cache import MetadataCache
from cdnrun.common.http_client import get_text
from cdnrun.common.logging_utils import extra_context, safe_url

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Awaitable[aiohttp.ClientSession]]


class PackageMetadataLoader:
    """Loads ``{base_url}/{spec}/package.json`` with strict status handling."""

    def __init__(
        self,
        session_factory: SessionFactory,
        base_url: str,
        *,
        cache: Optional[MetadataCache] = None,
        timeout: float = Constants.REQUEST_TIMEOUT,
    ):
        """Initialize the loader.

        Args:
            session_factory: Coroutine function returning the shared session.
            base_url: CDN base URL without trailing slash.
            cache: Optional document cache shared across loaders.
            timeout: Request timeout in seconds.
        """
        self._session_factory = session_factory
        self._base_url = base_url.rstrip("/")
        self._cache = cache
        self._timeout = timeout

    def url_for(self, spec: str) -> str:
        """Return the metadata URL for a ``name@range`` spec."""
        return f"{self._base_url}/{spec}/{Constants.PACKAGE_JSON_FILE}"

    async def load(self, spec: str) -> Dict[str, Any]:
        """Fetch and parse the metadata document for ``spec``.

        Raises:
            MetadataFetchError: Non-200 status, invalid JSON or non-object body.
        """
        url = self.url_for(spec)
        if self._cache is not None:
            cached = self._cache.lookup(url)
            if cached is not None:
                return cached

        session = await self._session_factory()
        status, text = await get_text(session, url, context="metadata", timeout=self._timeout)
        if status != 200:
            logger.warning(
                "Metadata request failed",
                extra=extra_context(
                    event="http_response",
                    component="metadata",
                    outcome="non_200",
                    status_code=status,
                    target=safe_url(url),
                ),
            )
            raise MetadataFetchError(spec, status)

        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MetadataFetchError(spec, status, "invalid JSON") from exc
        if not isinstance(document, dict):
            raise MetadataFetchError(spec, status, "metadata is not an object")

        if self._cache is not None:
            self._cache.store(url, document)
        return document

    __call__ = load
