"""depsync - dependency install and update orchestration.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from args import parse_args
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes
from factory import create_installer
from installer.errors import InstallerError
from installer.events import ScriptExecutionError


def _setup_logging(args):
    """Configure logging from the CLI arguments."""
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()
    if getattr(args, "LOG_FILE", None):
        handler = logging.FileHandler(args.LOG_FILE, encoding="utf-8")
        handler.setFormatter(logging.Formatter(Constants.LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def run(args):
    """Run one install or update and return the exit code."""
    logger = logging.getLogger(__name__)
    if args.packages and args.action != "update":
        logging.error("Package names can only be given to update.")
        return ExitCodes.FILE_ERROR.value

    try:
        installer = create_installer(args.WORKING_DIR, args.CONFIG)
    except FileNotFoundError as e:
        logging.error("%s, aborting", e)
        return ExitCodes.FILE_ERROR.value
    except ValueError as e:
        logging.error("Invalid project configuration: %s", e)
        return ExitCodes.FILE_ERROR.value

    installer.set_dry_run(args.DRY_RUN)
    installer.set_verbose(args.VERBOSE)
    installer.set_dev_mode(not args.NO_DEV)
    installer.set_run_scripts(not args.NO_SCRIPTS)
    installer.set_update(args.action == "update")
    if args.PREFER_SOURCE:
        installer.set_prefer_source(True).set_prefer_dist(False)
    if args.PREFER_DIST:
        installer.set_prefer_dist(True).set_prefer_source(False)
    if args.packages:
        installer.set_update_whitelist(args.packages)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action)
        )

    try:
        installer.run()
    except InstallerError as e:
        logging.error("%s", e)
        return ExitCodes.INSTALL_FAILED.value
    except ScriptExecutionError as e:
        logging.error("%s", e)
        return ExitCodes.INSTALL_FAILED.value
    except (OSError, ValueError) as e:
        logging.error("Run failed: %s", e)
        return ExitCodes.INSTALL_FAILED.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
