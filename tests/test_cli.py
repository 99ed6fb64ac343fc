"""Tests for CLI argument parsing and option layering."""

import json

import pytest

from cdnrun import cli
from cdnrun.args import parse_args
from cdnrun.constants import ExitCodes
from cdnrun.context import ContextOptions, load_options
from cdnrun.errors import FetchTimeoutError, MetadataFetchError, MissingMappingError


class TestParseArgs:
    """Tests for the argparse definition."""

    def test_config_command(self):
        args = parse_args(["config", "-d", "react@^16", "-d", "@babel/core", "--browser"])
        assert args.COMMAND == "config"
        assert args.DEPENDENCIES == ["react@^16", "@babel/core"]
        assert args.BROWSER is True
        assert args.LOG_LEVEL == "WARNING"

    def test_run_command(self):
        args = parse_args([
            "run", "src/index.js", "--root", "/tmp/app", "--extension", ".jsx",
            "--env", "NODE_ENV=production", "--timeout", "2.5", "--preset", "TypeScript",
        ])
        assert args.ENTRY == "src/index.js"
        assert args.ROOT == "/tmp/app"
        assert args.EXTENSIONS == [".jsx"]
        assert args.ENV == ["NODE_ENV=production"]
        assert args.TIMEOUT == 2.5
        assert args.PRESET == "typescript"

    def test_unknown_preset_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["config", "--preset", "flow"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestOptionsFromArgs:
    """Tests for layering CLI arguments over config files."""

    def test_args_override_file(self, tmp_path):
        path = tmp_path / "cdnrun.yml"
        path.write_text(
            "cdnrun:\n"
            "  base_url: https://file.test\n"
            "  dependencies:\n"
            "    react: ^15.0.0\n"
            "    lodash: ^4.0.0\n",
            encoding="utf-8",
        )
        args = parse_args([
            "run", "index.js", "-c", str(path), "-d", "react@^16.0.0",
            "--env", "API=on", "--env", "broken", "--preset-option", "jsx=react",
        ])

        options = ContextOptions.from_args(args, load_options(args.CONFIG))

        assert options.base_url == "https://file.test"
        assert options.dependencies == {"react": "^16.0.0", "lodash": "^4.0.0"}
        assert options.process_env == {"NODE_ENV": "development", "API": "on"}
        assert options.preset_options == {"jsx": "react"}
        assert options.use_browser is False

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_options(str(tmp_path / "absent.yml"))

    def test_no_config_means_defaults(self):
        assert load_options(None) == ContextOptions()


class TestMain:
    """Tests for the CLI entry point."""

    def test_exit_codes(self):
        assert cli._exit_code_for(FetchTimeoutError("u", 1)) == ExitCodes.CONNECTION_ERROR.value
        assert cli._exit_code_for(MetadataFetchError("a@1", 404)) == ExitCodes.RESOLUTION_ERROR.value
        assert cli._exit_code_for(MissingMappingError("x")) == ExitCodes.RESOLUTION_ERROR.value

    def test_config_prints_json(self, monkeypatch, capsys):
        async def _fake_run(args, options):
            return {"map": {"react": options.base_url + "/react@16.4.2"}}

        monkeypatch.setattr(cli, "_run_command", _fake_run)

        with pytest.raises(SystemExit) as excinfo:
            cli.main(["config", "--base-url", "https://cdn.test/npm/"])

        assert excinfo.value.code == ExitCodes.SUCCESS.value
        assert json.loads(capsys.readouterr().out) == {
            "map": {"react": "https://cdn.test/npm/react@16.4.2"}
        }

    def test_failure_exit_code(self, monkeypatch):
        async def _fake_run(args, options):
            raise MetadataFetchError("react@^16", 500)

        monkeypatch.setattr(cli, "_run_command", _fake_run)

        with pytest.raises(SystemExit) as excinfo:
            cli.main(["config", "-d", "react@^16"])

        assert excinfo.value.code == ExitCodes.RESOLUTION_ERROR.value

    def test_malformed_yaml_exit_code(self, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("cdnrun: [unclosed\n", encoding="utf-8")

        with pytest.raises(SystemExit) as excinfo:
            cli.main(["config", "-c", str(path)])

        assert excinfo.value.code == ExitCodes.FILE_ERROR.value

    def test_bad_config_file_exit_code(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["config", "-c", str(tmp_path / "absent.yml")])
        assert excinfo.value.code == ExitCodes.FILE_ERROR.value
