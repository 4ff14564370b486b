"""Argument parsing functionality for aliasgate."""

import argparse


def build_parser():
    """Build the argument parser (exposed for tests)."""
    parser = argparse.ArgumentParser(
        prog="aliasgate",
        description=(
            "aliasgate - Resolve module specifiers through import maps, workspaces and registries"
        ),
        add_help=True,
    )
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default=None)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve one or more specifiers")
    resolve.add_argument("specifiers",
                         metavar="SPECIFIER",
                         nargs="+",
                         help="Module specifier as written in the importing module")
    resolve.add_argument("-i", "--importer",
                         dest="IMPORTER",
                         help="Path or URL of the importing module",
                         action="store",
                         type=str)
    resolve.add_argument("-m", "--manifest",
                         dest="MANIFEST",
                         help="Owning manifest (file or package directory); discovered from --importer if omitted",
                         action="store",
                         type=str)
    resolve.add_argument("-t", "--transport",
                         dest="TRANSPORT",
                         help="HTTP transport to use",
                         action="store",
                         type=str.lower,
                         choices=['aiohttp', 'requests'],
                         default='aiohttp')
    resolve.add_argument("--no-error-check",
                         dest="ERROR_CHECK",
                         help="Do not fail on directory aliases whose target lacks a trailing slash",
                         action="store_false",
                         default=None)
    resolve.add_argument("--json",
                         dest="JSON",
                         help="Print results as JSON",
                         action="store_true")
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
