"""aliasgate - resolve module specifiers the way the bundler plugin does.

    Returns:
        int: Exit code (see constants.ExitCodes)
"""
import asyncio
import json
import logging
import sys

import yaml

from args import parse_args
from common.logging_utils import configure_logging
from common.transport import create_transport
from constants import ExitCodes, load_config
from engine import ResolutionEngine, ResolvedSpecifier
from errors import ResolutionError, TransportError, UnresolvedAliasError
from registry.config import load_registries

logger = logging.getLogger(__name__)


def result_to_dict(specifier, result):
    """Serialize one resolution for --json output."""
    return {
        "specifier": specifier,
        "path": result.path,
        "manifest": result.manifest.location if result.manifest is not None else None,
        "source": result.source,
    }


def _exit_code_for(exc):
    if isinstance(exc, UnresolvedAliasError):
        logger.warning("%s", exc)
        return ExitCodes.UNRESOLVED
    if isinstance(exc, TransportError):
        logger.error("Fetch failed: %s", exc)
        return ExitCodes.CONNECTION_ERROR
    logger.error("%s", exc)
    return ExitCodes.INVALID_INPUT


async def run_resolve(args, registries):
    """Resolve every specifier on the command line and print the results."""
    transport = create_transport(args.TRANSPORT)
    exit_code = ExitCodes.SUCCESS
    resolved = []
    try:
        engine = ResolutionEngine(
            transport=transport, registries=registries, error_check=args.ERROR_CHECK
        )
        results = await asyncio.gather(
            *(engine.resolve(spec, args.IMPORTER, args.MANIFEST) for spec in args.specifiers),
            return_exceptions=True,
        )
    finally:
        await transport.close()

    for specifier, result in zip(args.specifiers, results):
        if isinstance(result, ResolvedSpecifier):
            resolved.append(result_to_dict(specifier, result))
            continue
        if not isinstance(result, (ResolutionError, TransportError)):
            raise result
        code = _exit_code_for(result)
        if exit_code == ExitCodes.SUCCESS:
            exit_code = code

    if args.JSON:
        print(json.dumps(resolved, indent=2))
    else:
        for entry in resolved:
            print(entry["path"])
    return exit_code


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)

    try:
        load_config(args.CONFIG)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Unable to read config: %s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)
    # The config file may set the level; the command line wins.
    configure_logging(args.LOG_LEVEL)

    try:
        registries = load_registries()
    except (TypeError, ValueError) as e:
        logger.error("Invalid registry configuration: %s", e)
        sys.exit(ExitCodes.INVALID_INPUT.value)

    exit_code = asyncio.run(run_resolve(args, registries))
    sys.exit(exit_code.value)


if __name__ == "__main__":
    main()
