"""Argument parsing functionality for cdnrun."""

import argparse

from cdnrun.presets import PresetName


def _add_common_arguments(parser):
    parser.add_argument("-d", "--dependency",
                        dest="DEPENDENCIES",
                        help="Dependency as name@range (repeatable)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("--base-url",
                        dest="BASE_URL",
                        help="CDN base URL serving name@range/path",
                        action="store", type=str)
    parser.add_argument("--preset",
                        dest="PRESET",
                        help="Preset adjusting dependencies and loader config",
                        action="store", type=str.lower,
                        choices=[p.value for p in PresetName])
    parser.add_argument("--preset-option",
                        dest="PRESET_OPTIONS",
                        help="Preset option as KEY=VALUE (repeatable)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("--browser",
                        dest="BROWSER",
                        help="Honour package.json browser fields",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store", type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store", type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store", type=str)


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="cdnrun",
        description="Run npm package trees from a CDN without installing them",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", required=True)

    config_parser = subparsers.add_parser(
        "config", help="Resolve dependencies and print the loader configuration as JSON")
    _add_common_arguments(config_parser)

    run_parser = subparsers.add_parser("run", help="Run an entry module")
    _add_common_arguments(run_parser)
    run_parser.add_argument("ENTRY",
                            help="Entry module path relative to --root",
                            type=str)
    run_parser.add_argument("--root",
                            dest="ROOT",
                            help="Directory served as the virtual root (default: cwd)",
                            action="store", type=str)
    run_parser.add_argument("--extension",
                            dest="EXTENSIONS",
                            help="Fallback extension such as .jsx (repeatable)",
                            action="append", type=str)
    run_parser.add_argument("--env",
                            dest="ENV",
                            help="process.env entry as KEY=VALUE (repeatable)",
                            action="append", type=str,
                            default=[])
    run_parser.add_argument("--timeout",
                            dest="TIMEOUT",
                            help="Remote module fetch timeout in seconds",
                            action="store", type=float)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
