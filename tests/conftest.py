"""Shared fakes for HTTP access and package metadata."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest

BASE_URL = "https://cdn.test/npm"


class DummyResponse:
    """Minimal aiohttp-like response."""

    def __init__(self, status: int = 200, body: str = ""):
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body


class _DummyRequest:
    def __init__(self, session: "DummySession", url: str):
        self._session = session
        self._url = url

    async def __aenter__(self) -> DummyResponse:
        route = self._session.routes.get(self._url)
        if route is None:
            self._session.completed.append(self._url)
            return DummyResponse(404, "Not found")
        status, body, delay = route
        if delay:
            await asyncio.sleep(delay)
        self._session.completed.append(self._url)
        return DummyResponse(status, body)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class DummySession:
    """Routes GET requests to canned responses; unknown URLs return 404."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, str, float]] = {}
        self.requests: List[str] = []
        self.completed: List[str] = []
        self.closed = False

    def add(self, url: str, body: Union[str, Dict[str, Any]] = "", status: int = 200, delay: float = 0.0) -> None:
        if not isinstance(body, str):
            body = json.dumps(body)
        self.routes[url] = (status, body, delay)

    def add_package(
        self,
        name: str,
        version: str,
        *,
        spec: Optional[str] = None,
        main: Optional[str] = None,
        browser: Any = None,
        dependencies: Optional[Dict[str, str]] = None,
        base_url: str = BASE_URL,
    ) -> Dict[str, Any]:
        """Serve a package.json for ``name@spec`` (defaults to the exact version)."""
        doc: Dict[str, Any] = {"name": name, "version": version}
        if main is not None:
            doc["main"] = main
        if browser is not None:
            doc["browser"] = browser
        if dependencies:
            doc["dependencies"] = dependencies
        self.add(f"{base_url}/{name}@{spec or version}/package.json", doc)
        return doc

    def get(self, url: str, allow_redirects: bool = True) -> _DummyRequest:
        self.requests.append(url)
        return _DummyRequest(self, url)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def session() -> DummySession:
    """Fresh fake HTTP session."""
    return DummySession()


@pytest.fixture
def session_factory(session):
    """Coroutine function returning the fake session, as loaders expect."""
    async def _factory():
        return session
    return _factory


@pytest.fixture
def base_url() -> str:
    """CDN base URL served by the fake session."""
    return BASE_URL
