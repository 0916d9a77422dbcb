"""
Command Line Interface for teamcity-dl.

Usage:

    teamcity-dl <build-id> [output-dir]

Environment:

    TEAMCITY_TOKEN - bearer token for authentication (required)
    TEAMCITY_URL   - base URL (default: https://teamcity.cockroachdb.com)
"""

import argparse
import sys
from typing import List, Optional

from ._version import __version__
from .cli_helpers import exit_with_error, map_exception_to_exit_code
from .common.config import Settings
from .common.constants import ExitCodes
from .common.logging_config import configure_logging, get_logger
from .core.artifacts import ArtifactDownloader


class _SingleLineErrorParser(argparse.ArgumentParser):
    """Argument parser reporting usage errors as one `Error:` line."""

    def error(self, message: str) -> None:
        usage = " ".join(self.format_usage().split())
        exit_with_error(f"{message} ({usage})", ExitCodes.USAGE)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = _SingleLineErrorParser(
        prog='teamcity-dl',
        description='Download and extract the archived artifacts of a TeamCity build',
    )
    parser.add_argument('build_id', metavar='build-id', help='TeamCity build id (not the build number)')
    parser.add_argument('output_dir', metavar='output-dir', nargs='?', default='.',
                        help='Directory for the archive and the extracted files (default: .)')
    parser.add_argument('--log-level', dest='log_level', default=None,
                        help='Override TEAMCITY_DL_LOG_LEVEL (DEBUG, INFO, WARNING, ...)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def run(parsed_args: argparse.Namespace) -> None:
    """Execute the download for already parsed arguments."""
    logger = get_logger("teamcity_dl")
    try:
        settings = Settings.from_env()
        result = ArtifactDownloader(settings, logger).run(parsed_args.build_id, parsed_args.output_dir)
    except Exception as exc:
        exit_code = map_exception_to_exit_code(exc)
        if exit_code is None:
            logger.debug("Unexpected failure", exc_info=True)
            exit_code = ExitCodes.UNEXPECTED_ERROR
        # Keep the message on one line even when a response body spans several.
        exit_with_error(" ".join(str(exc).split()), exit_code)
        return

    print(f"Extracted {result.file_count} files to {result.extract_dir}")


def main(args: Optional[List[str]] = None) -> None:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)
    """
    parser = create_parser()

    if args is None:
        args = sys.argv[1:]

    # Exits with ExitCodes.USAGE when build-id is missing
    parsed_args = parser.parse_args(args)
    configure_logging(parsed_args.log_level)

    run(parsed_args)


if __name__ == '__main__':
    main()
