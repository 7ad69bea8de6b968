"""Argument parsing functionality for relock."""

import argparse
from constants import Constants


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="relock",
        description=(
            "relock - regenerate lock files for a manifest update"
        ),
        add_help=True,
    )

    parser.add_argument("-m", "--manager",
                        dest="MANAGER",
                        help="Package manager, i.e: nuget, npm, yarn",
                        action="store", type=str.lower,
                        choices=Constants.SUPPORTED_MANAGERS,
                        required=True)
    parser.add_argument("-f", "--file",
                        dest="PACKAGE_FILE",
                        help="Manifest path relative to the workspace root",
                        action="store", type=str,
                        required=True)
    parser.add_argument("--content",
                        dest="CONTENT_FILE",
                        help="File holding the new manifest content (default: keep current content)",
                        action="store", type=str)
    parser.add_argument("-d", "--dep",
                        dest="DEPS",
                        help="Updated dependency as NAME or NAME=URL[,URL...] (repeatable)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("--maintenance",
                        dest="MAINTENANCE",
                        help="Refresh lock files even when no dependency changed",
                        action="store_true")
    parser.add_argument("--npmrc",
                        dest="NPMRC_FILE",
                        help="File with .npmrc content supplied by the caller",
                        action="store", type=str)
    parser.add_argument("--npmrc-merge",
                        dest="NPMRC_MERGE",
                        help="Merge the caller .npmrc with the repository .npmrc",
                        action="store_true")
    parser.add_argument("--constraint",
                        dest="CONSTRAINTS",
                        help="Toolchain version constraint as TOOL=VERSION (repeatable)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("--post-update-option",
                        dest="POST_UPDATE_OPTIONS",
                        help="Post update option, e.g. dotnetWorkloadRestore (repeatable)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("-C", "--root",
                        dest="LOCAL_DIR",
                        help="Workspace root directory (default: current directory)",
                        action="store", type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, JSON or TOML)",
                        action="store", type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the JSON result to this file instead of stdout",
                        action="store", type=str)
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

    return parser.parse_args(argv)
