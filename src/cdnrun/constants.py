"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    RESOLUTION_ERROR = 3


class BuildState(Enum):
    """Lifecycle of the memoized loader build owned by a Context."""

    UNBUILT = "unbuilt"
    BUILDING = "building"
    READY = "ready"
    FAILED = "failed"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    DEFAULT_BASE_URL = "https://cdn.jsdelivr.net/npm"
    DEFAULT_EXTENSION = "js"
    DEFAULT_EXTENSIONS = [".js"]
    DEFAULT_PROCESS_ENV = {"NODE_ENV": "development"}
    DEFAULT_MAIN = "index.js"
    PACKAGE_JSON_FILE = "package.json"

    # Module loader sentinels and plugin names
    EMPTY_MODULE = "@empty"
    LOCAL_LOADER = "@cdn-run-local"
    REMOTE_LOADER = "@cdn-run-remote"
    PROCESS_MODULE = "@cdn-run-process"
    ROOT_PACKAGE = "."

    # Extensions recognised when building fallback candidates
    SCRIPT_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx")

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "CDNRUN_LOG_LEVEL"
    CONFIG_SECTION = "cdnrun"

    REQUEST_TIMEOUT = 30  # Timeout in seconds for package metadata requests
    MODULE_FETCH_TIMEOUT = 5.0  # Timeout in seconds for remote module fetches
    HTTP_CACHE_TTL_SEC = 300
    USER_AGENT = "cdnrun/0.1"
