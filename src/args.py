"""Argument parsing functionality for depsync."""

import argparse


def build_parser():
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="depsync",
        description="depsync - install and update a project's dependencies",
        add_help=True,
    )
    parser.add_argument("action",
                        help="install from the lock file, or update to the latest matching versions",
                        choices=["install", "update"])
    parser.add_argument("packages",
                        metavar="PACKAGE",
                        help="Only update these packages (globs allowed); update only",
                        nargs="*")

    parser.add_argument("-d", "--working-dir",
                        dest="WORKING_DIR",
                        help="Project directory holding the manifest",
                        action="store",
                        type=str,
                        default=".")
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--dry-run",
                        dest="DRY_RUN",
                        help="Only report the operations, change nothing",
                        action="store_true")
    parser.add_argument("--no-dev",
                        dest="NO_DEV",
                        help="Skip require-dev packages",
                        action="store_true")
    parser.add_argument("--no-scripts",
                        dest="NO_SCRIPTS",
                        help="Do not run hook scripts",
                        action="store_true")

    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument("--prefer-source",
                              dest="PREFER_SOURCE",
                              help="Install packages from their source checkout",
                              action="store_true")
    source_group.add_argument("--prefer-dist",
                              dest="PREFER_DIST",
                              help="Install packages from their dist archive",
                              action="store_true")

    parser.add_argument("-v", "--verbose",
                        dest="VERBOSE",
                        help="Show every operation",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
