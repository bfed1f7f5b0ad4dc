"""Command-line entry point: sync a repository's commit graph into a vcsloc database."""

import argparse
import logging
import sys
from typing import List, Optional

from vcsloc.db.database import Database
from vcsloc.errors import ConfigurationError, VcslocError
from vcsloc.sync import sync_database
from vcsloc.vcs.base import available_data_sources, create_data_source

logger = logging.getLogger("vcsloc")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FATAL = 2


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    import vcsloc.vcs.git  # noqa: F401  registers the git backend

    parser = ArgumentParser(
        prog="vcsloc",
        description="Sync a repository's commit graph into a local vcsloc database.",
    )
    parser.add_argument("--db", metavar="path", help="Database directory (always required)")
    parser.add_argument(
        "--repo", metavar="path", help="Repository to analyze (required when creating the database)"
    )
    parser.add_argument(
        "--vcs",
        metavar="vcs-name",
        help=f"Version control system: {', '.join(available_data_sources())} "
        "(required when creating the database)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Echo fetched data for diagnostics"
    )
    return parser


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def run(db_path: str, repo: Optional[str], vcs: Optional[str]) -> int:
    if vcs and vcs not in available_data_sources():
        raise ConfigurationError(
            f"Unknown version control system '{vcs}' (known: {', '.join(available_data_sources())})"
        )
    db = Database.open(db_path, repo, vcs)
    source = create_data_source(db.vcs, db.repo_path)
    report = sync_database(db, source)

    for line in report.summary_lines():
        logger.info(line)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        return run(args.db, args.repo, args.vcs)
    except ConfigurationError as e:
        logger.error("%s", e)
        return EXIT_USAGE
    except VcslocError as e:
        logger.error("Fatal: %s", e)
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
