"""Tests for dependency graph resolution."""

import asyncio

import pytest

from cdnrun.errors import MetadataFetchError
from cdnrun.registry import (
    DependencyGraphClient,
    PackageMetadataLoader,
    load_dependency_packages,
)


def _client(session_factory, base_url):
    return DependencyGraphClient(PackageMetadataLoader(session_factory, base_url))


class TestDependencyGraphClient:
    """Tests for building PackageNode graphs."""

    def test_children_are_keyed_by_dependency_name(self, session, session_factory, base_url):
        session.add_package("app", "1.0.0", dependencies={"lib": "^2.0.0"})
        session.add_package("lib", "2.3.1", spec="^2.0.0")
        client = _client(session_factory, base_url)

        root = asyncio.run(client.load("app@1.0.0"))

        assert root.key == "app@1.0.0"
        assert list(root.children) == ["lib"]
        assert root.children["lib"].version == "2.3.1"

    def test_diamond_shares_one_node(self, session, session_factory, base_url):
        session.add_package("a", "1.0.0", dependencies={"shared": "^1.0.0"})
        session.add_package("b", "1.0.0", dependencies={"shared": "~1.2.0"})
        session.add_package("shared", "1.2.4", spec="^1.0.0")
        session.add_package("shared", "1.2.4", spec="~1.2.0")
        client = _client(session_factory, base_url)

        async def _load():
            return await asyncio.gather(client.load("a@1.0.0"), client.load("b@1.0.0"))

        a, b = asyncio.run(_load())

        assert a.children["shared"] is b.children["shared"]
        assert sorted(client.nodes) == ["a@1.0.0", "b@1.0.0", "shared@1.2.4"]

    def test_satisfied_range_is_not_refetched(self, session, session_factory, base_url):
        session.add_package("a", "1.0.0", dependencies={"shared": "^1.0.0"})
        session.add_package("shared", "1.4.0", spec="^1.0.0")
        session.add_package("b", "1.0.0", dependencies={"shared": "1.x"})
        client = _client(session_factory, base_url)

        async def _load():
            await client.load("a@1.0.0")
            return await client.load("b@1.0.0")

        b = asyncio.run(_load())

        assert b.children["shared"].version == "1.4.0"
        assert f"{base_url}/shared@1.x/package.json" not in session.requests

    def test_cycles_terminate(self, session, session_factory, base_url):
        session.add_package("ping", "1.0.0", dependencies={"pong": "^1.0.0"})
        session.add_package("pong", "1.0.0", spec="^1.0.0", dependencies={"ping": "^1.0.0"})
        client = _client(session_factory, base_url)

        ping = asyncio.run(asyncio.wait_for(client.load("ping@1.0.0"), 2))

        assert ping.children["pong"].children["ping"] is ping

    def test_missing_version_raises(self, session, session_factory, base_url):
        session.add(f"{base_url}/odd@1/package.json", {"name": "odd"})
        client = _client(session_factory, base_url)

        with pytest.raises(MetadataFetchError, match="no version"):
            asyncio.run(client.load("odd@1"))

    def test_transitive_failure_fails_root(self, session, session_factory, base_url):
        session.add_package("app", "1.0.0", dependencies={"gone": "^1.0.0"})
        client = _client(session_factory, base_url)

        with pytest.raises(MetadataFetchError) as excinfo:
            asyncio.run(client.load("app@1.0.0"))

        assert excinfo.value.spec == "gone@^1.0.0"
        assert excinfo.value.status == 404


    def test_failure_cancels_outstanding_work(self, session, session_factory, base_url):
        session.add_package("app", "1.0.0", dependencies={"bad": "^1.0.0", "slow": "^1.0.0"})
        session.add(f"{base_url}/slow@^1.0.0/package.json",
                    {"name": "slow", "version": "1.0.0", "dependencies": {"bad2": "^1.0.0"}}, delay=0.2)
        client = _client(session_factory, base_url)

        async def _load():
            with pytest.raises(MetadataFetchError) as excinfo:
                await client.load("app@1.0.0")
            await asyncio.sleep(0.3)
            return excinfo.value

        error = asyncio.run(_load())

        assert error.spec == "bad@^1.0.0"
        assert f"{base_url}/bad2@^1.0.0/package.json" not in session.requests
        assert f"{base_url}/slow@^1.0.0/package.json" not in session.completed


class TestLoadDependencyPackages:
    """Tests for top-level batch resolution."""

    def test_empty_dependencies(self, session_factory, base_url):
        client = _client(session_factory, base_url)
        assert asyncio.run(load_dependency_packages(client, {})) == []

    def test_roots_follow_declaration_order(self, session, session_factory, base_url):
        session.add_package("zeta", "1.0.0", spec="latest")
        session.add_package("alpha", "2.0.0", spec="^2.0.0")
        client = _client(session_factory, base_url)

        roots = asyncio.run(load_dependency_packages(client, {"zeta": "latest", "alpha": "^2.0.0"}))

        assert [r.key for r in roots] == ["zeta@1.0.0", "alpha@2.0.0"]

    def test_one_failure_fails_batch(self, session, session_factory, base_url):
        session.add_package("ok", "1.0.0")
        client = _client(session_factory, base_url)

        with pytest.raises(MetadataFetchError):
            asyncio.run(load_dependency_packages(client, {"ok": "1.0.0", "bad": "1.0.0"}))
