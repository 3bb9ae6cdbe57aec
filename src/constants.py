"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    INSTALL_FAILED = 2


class ScriptEvents(Enum):
    """Hook event names dispatched during a run.

    Args:
        Enum (string): Event names.
    """

    PRE_INSTALL_CMD = "pre-install-cmd"
    POST_INSTALL_CMD = "post-install-cmd"
    PRE_UPDATE_CMD = "pre-update-cmd"
    POST_UPDATE_CMD = "post-update-cmd"
    PRE_PACKAGE_INSTALL = "pre-package-install"
    POST_PACKAGE_INSTALL = "post-package-install"
    PRE_PACKAGE_UPDATE = "pre-package-update"
    POST_PACKAGE_UPDATE = "post-package-update"
    PRE_PACKAGE_UNINSTALL = "pre-package-uninstall"
    POST_PACKAGE_UNINSTALL = "post-package-uninstall"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    MANIFEST_FILE = "depsync.json"
    LOCK_FILE = "depsync.lock"
    CONFIG_FILE = "depsync.yml"
    INSTALLED_FILE = "installed.json"
    STATE_DIR = "depsync"
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_PREFIX = "DEPSYNC_"
    ENV_CONFIG = "DEPSYNC_CONFIG"
    ENV_LOG_LEVEL = "DEPSYNC_LOG_LEVEL"

    # Stability tiers, lower is more stable
    STABILITIES = {
        "stable": 0,
        "RC": 5,
        "beta": 10,
        "alpha": 15,
        "dev": 20,
    }
    DEFAULT_MINIMUM_STABILITY = "stable"

    # Whitelist tokens that never name a real package
    RESERVED_WHITELIST_TOKENS = ("nothing", "lock")

    # Requirement targets that are platform facts rather than installable units
    PLATFORM_PACKAGE_REGEX = r"^(?:python(?:-64bit)?|(?:ext|lib)-[^/]+)$"

    LOCK_README = [
        "This file locks the dependencies of your project to a known state",
        "It is generated by depsync; do not edit it by hand",
    ]

    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_CACHE_TTL_SEC = 300
    USER_AGENT = "depsync"
