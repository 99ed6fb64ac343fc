"""Tests for SystemConfig synthesis from package graphs."""

import copy

from cdnrun.constants import Constants
from cdnrun.loader import synthesize_system_config
from cdnrun.loader.config import browser_map, resolve_main
from cdnrun.registry import PackageNode

BASE = "https://cdn.test/npm"


def _node(name, version, **raw):
    return PackageNode(name=name, version=version, raw={"name": name, "version": version, **raw})


class TestResolveMain:
    """Tests for picking a package entry file."""

    def test_defaults_to_index(self):
        assert resolve_main({}, use_browser=False) == "index.js"

    def test_main_field(self):
        assert resolve_main({"main": "lib.js"}, use_browser=False) == "lib.js"

    def test_browser_string_wins_only_in_browser_mode(self):
        raw = {"main": "node.js", "browser": "browser.js"}
        assert resolve_main(raw, use_browser=True) == "browser.js"
        assert resolve_main(raw, use_browser=False) == "node.js"

    def test_browser_object_does_not_replace_main(self):
        assert resolve_main({"main": "a.js", "browser": {"fs": False}}, use_browser=True) == "a.js"


class TestBrowserMap:
    """Tests for browser field remaps."""

    def test_false_becomes_empty_module(self):
        assert browser_map({"browser": {"fs": False}}) == {"fs": Constants.EMPTY_MODULE}

    def test_strings_are_copied_verbatim(self):
        raw = {"browser": {"./lib/node.js": "./lib/browser.js", "http": "stream-http"}}
        assert browser_map(raw) == {"./lib/node.js": "./lib/browser.js", "http": "stream-http"}

    def test_other_values_are_skipped(self):
        assert browser_map({"browser": {"x": True, "y": 3}}) == {}


class TestSynthesizeSystemConfig:
    """Tests for the generated loader configuration."""

    def test_root_package_and_meta_rules(self):
        config = synthesize_system_config([], BASE)

        assert config["map"] == {}
        assert config["packages"] == {".": {"defaultExtension": "js"}}
        assert config["meta"][f"{BASE}/*"]["loader"] == Constants.REMOTE_LOADER
        assert config["meta"]["./*"]["loader"] == Constants.LOCAL_LOADER
        assert config["meta"]["./*"]["globals"] == {"process": Constants.PROCESS_MODULE}

    def test_top_level_map_points_at_package_id(self):
        react = _node("react", "16.4.2", main="index.js")

        config = synthesize_system_config([react], BASE)

        assert config["map"] == {"react": f"{BASE}/react@16.4.2"}
        assert config["packages"][f"{BASE}/react@16.4.2"] == {
            "defaultExtension": "js",
            "main": "index.js",
            "map": {},
        }

    def test_transitive_packages_are_not_in_top_level_map(self):
        child = _node("loose-envify", "1.4.0")
        react = _node("react", "16.4.2")
        react.children["loose-envify"] = child

        config = synthesize_system_config([react], BASE)

        assert "loose-envify" not in config["map"]
        assert config["packages"][f"{BASE}/react@16.4.2"]["map"] == {
            "loose-envify": f"{BASE}/loose-envify@1.4.0"
        }
        assert f"{BASE}/loose-envify@1.4.0" in config["packages"]

    def test_diamond_configured_once_and_referenced_twice(self):
        shared = _node("shared", "1.0.0")
        a = _node("a", "1.0.0")
        b = _node("b", "1.0.0")
        a.children["shared"] = shared
        b.children["shared"] = shared

        config = synthesize_system_config([a, b], BASE)

        shared_id = f"{BASE}/shared@1.0.0"
        assert len([k for k in config["packages"] if k == shared_id]) == 1
        assert config["packages"][f"{BASE}/a@1.0.0"]["map"]["shared"] == shared_id
        assert config["packages"][f"{BASE}/b@1.0.0"]["map"]["shared"] == shared_id
        assert len(config["packages"]) == 4

    def test_cycle_terminates(self):
        a = _node("a", "1.0.0")
        b = _node("b", "1.0.0")
        a.children["b"] = b
        b.children["a"] = a

        config = synthesize_system_config([a], BASE)

        assert config["packages"][f"{BASE}/b@1.0.0"]["map"] == {"a": f"{BASE}/a@1.0.0"}

    def test_browser_mode_adds_remaps(self):
        pkg = _node("ws", "1.0.0", main="index.js", browser={"fs": False, "./lib/node.js": "./lib/web.js"})

        plain = synthesize_system_config([pkg], BASE)
        browser = synthesize_system_config([pkg], BASE, use_browser=True)

        assert plain["packages"][f"{BASE}/ws@1.0.0"]["map"] == {}
        assert browser["packages"][f"{BASE}/ws@1.0.0"]["map"] == {
            "fs": "@empty",
            "./lib/node.js": "./lib/web.js",
        }

    def test_synthesis_is_repeatable_and_does_not_mutate_graph(self):
        shared = _node("shared", "1.0.0", browser={"fs": False})
        a = _node("a", "1.0.0", main="lib.js")
        a.children["shared"] = shared
        before = copy.deepcopy(a.raw)

        first = synthesize_system_config([a], BASE, use_browser=True)
        second = synthesize_system_config([a], BASE, use_browser=True)

        assert first == second
        assert first is not second
        assert a.raw == before
        assert list(a.children) == ["shared"]
