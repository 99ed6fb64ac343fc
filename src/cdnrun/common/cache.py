"""In-memory cache of parsed ``package.json`` documents.

A single cache can be shared by several Context instances that talk to the
same CDN, so repeated runs do not download identical metadata again. Entries
are keyed by metadata URL, expire after a TTL, and the least recently used
entry is dropped once the cache is full.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Optional

from cdnrun.constants import Constants

Document = Dict[str, Any]


@dataclass
class _Slot:
    document: Document
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class MetadataCache:
    """TTL + LRU cache for metadata documents."""

    def __init__(self, ttl: float = Constants.HTTP_CACHE_TTL_SEC, max_documents: int = 5000):
        """Initialize the cache.

        Args:
            ttl: Seconds a document stays valid.
            max_documents: Upper bound on stored documents.
        """
        if max_documents < 1:
            raise ValueError("max_documents must be at least 1")
        self._ttl = ttl
        self._max_documents = max_documents
        self._slots: "OrderedDict[str, _Slot]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def lookup(self, url: str) -> Optional[Document]:
        """Return the cached document for ``url``, or None on a miss."""
        slot = self._slots.get(url)
        if slot is None or slot.expired(time.monotonic()):
            if slot is not None:
                del self._slots[url]
            self.misses += 1
            return None
        self._slots.move_to_end(url)
        self.hits += 1
        return slot.document

    def store(self, url: str, document: Document, ttl: Optional[float] = None) -> None:
        """Remember ``document`` for ``url``."""
        lifetime = self._ttl if ttl is None else ttl
        self._slots[url] = _Slot(document, time.monotonic() + lifetime)
        self._slots.move_to_end(url)
        while len(self._slots) > self._max_documents:
            self._slots.popitem(last=False)

    def discard(self, url: str) -> None:
        self._slots.pop(url, None)

    def clear(self) -> None:
        self._slots.clear()
        self.hits = self.misses = 0

    def stats(self) -> Dict[str, Any]:
        """Counters for diagnostics."""
        return {
            "documents": len(self._slots),
            "max_documents": self._max_documents,
            "ttl": self._ttl,
            "hits": self.hits,
            "misses": self.misses,
        }

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, url: object) -> bool:
        return url in self._slots
