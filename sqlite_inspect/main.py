import argparse
import logging
import sys

from sqlite_inspect.btree import BTreeWalker
from sqlite_inspect.consts import DBINFO_COMMAND, DEFAULT_MAX_DEPTH, DUMP_COMMAND
from sqlite_inspect.exceptions import InspectError
from sqlite_inspect.pager import Pager
from sqlite_inspect.render import render_dbinfo, render_dump
from sqlite_inspect.schema import SchemaCatalog

from typing import List, Optional

logger = logging.getLogger(__name__)


def run(
    database_file_path: str, command: str, max_depth: int = DEFAULT_MAX_DEPTH
) -> str:
    with Pager.open(database_file_path) as pager:
        walker = BTreeWalker(pager, max_depth)

        # The first page in an sqlite db is the root of the schema table
        catalog = SchemaCatalog.load(walker)

        if command == DBINFO_COMMAND:
            return render_dbinfo(pager.header, catalog)
        if command == DUMP_COMMAND:
            return render_dump(catalog, walker)

    raise ValueError(f"Unknown command {command!r}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="sqlite-inspect",
        description="Read a SQLite database file without SQLite and describe or dump it",
    )
    parser.add_argument("database_file_path", help="Path to the database file")
    parser.add_argument("command", choices=[DBINFO_COMMAND, DUMP_COMMAND])
    parser.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Deepest table b-tree to follow (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log page reads to stderr"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        output = run(args.database_file_path, args.command, args.max_depth)
    except (InspectError, OSError) as e:
        logger.debug("Failed to %s %s", args.command, args.database_file_path, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1

    sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
