"""cdnrun command line entry point.

``cdnrun config`` prints the synthesized loader configuration;
``cdnrun run ENTRY`` loads an entry module from a local directory, pulling
its dependencies from the CDN.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import os
import sys
from typing import Any

import aiohttp
import yaml

from cdnrun.args import parse_args
from cdnrun.constants import Constants, ExitCodes
from cdnrun.context import Context, ContextOptions, load_options
from cdnrun.errors import (
    CdnRunError,
    ExtensionFallbackExhaustedError,
    FetchTimeoutError,
    ModuleFetchStatusError,
)
from cdnrun.common.logging_utils import configure_logging
from cdnrun.loader import DirectoryFilesHost, LoadedModule

logger = logging.getLogger(__name__)


def _setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _build_options(args: Any) -> ContextOptions:
    try:
        base = load_options(getattr(args, "CONFIG", None))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Failed to load config %s: %s", getattr(args, "CONFIG", None), exc)
        sys.exit(ExitCodes.FILE_ERROR.value)
    options = ContextOptions.from_args(args, base)
    if args.COMMAND == "run" and options.files is None:
        options = options.merge(files=DirectoryFilesHost(options.root_dir or os.getcwd()))
    return options


def _describe(value: Any) -> Any:
    if isinstance(value, LoadedModule):
        return {
            "address": value.address,
            "format": value.format,
            "bytes": len(value.source),
            "globals": sorted(value.globals),
        }
    if dataclasses.is_dataclass(value):
        return dataclasses.asdict(value)
    return value


async def _run_command(args: Any, options: ContextOptions) -> Any:
    async with Context(options) as context:
        if args.COMMAND == "config":
            return await context.load_system_config()
        return _describe(await context.run(args.ENTRY))


def _exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, (FetchTimeoutError, ModuleFetchStatusError, ExtensionFallbackExhaustedError,
                        aiohttp.ClientError)):
        return ExitCodes.CONNECTION_ERROR.value
    return ExitCodes.RESOLUTION_ERROR.value


def main(argv=None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    _setup_logging(args)
    options = _build_options(args)

    try:
        result = asyncio.run(_run_command(args, options))
    except (CdnRunError, aiohttp.ClientError) as exc:
        logger.error("%s failed: %s", args.COMMAND, exc)
        sys.exit(_exit_code_for(exc))

    sys.stdout.write(json.dumps(result, indent=2, default=str) + "\n")
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
