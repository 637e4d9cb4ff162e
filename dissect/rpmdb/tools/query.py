#!/usr/bin/env python
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from flow.record import RecordPrinter, RecordStreamWriter, RecordWriter

from dissect.rpmdb.exceptions import FormatError, ReadError
from dissect.rpmdb.helpers import config
from dissect.rpmdb.record import file_records, package_record
from dissect.rpmdb.rpmdb import open_database
from dissect.rpmdb.tools.utils import (
    catch_sigpipe,
    configure_generic_arguments,
    process_generic_arguments,
)

if TYPE_CHECKING:
    from flow.record.adapter import AbstractWriter

log = logging.getLogger(__name__)
logging.lastResort = None
logging.raiseExceptions = False


def record_output(strings: bool = False, json: bool = False) -> AbstractWriter:
    if json:
        return RecordWriter("jsonfile://-")

    fp = sys.stdout.buffer

    if strings or fp.isatty():
        return RecordPrinter(fp)

    return RecordStreamWriter(fp)


@catch_sigpipe
def main() -> int:
    help_formatter = argparse.ArgumentDefaultsHelpFormatter
    parser = argparse.ArgumentParser(
        description="Output the installed packages of RPM databases (Packages, Packages.db or rpmdb.sqlite)",
        fromfile_prefix_chars="@",
        formatter_class=help_formatter,
    )
    parser.add_argument("databases", metavar="DATABASE", nargs="+", type=Path, help="RPM database files to read")
    parser.add_argument(
        "--files",
        action="store_true",
        default=None,
        help=f"also output a record for every installed file (default from {config.CONFIG_NAME}: OUTPUT_FILES)",
    )
    parser.add_argument(
        "--skip-invalid",
        action="store_true",
        default=None,
        help=f"skip malformed package headers (default from {config.CONFIG_NAME}: SKIP_INVALID)",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help=f"path to search for a {config.CONFIG_NAME} file, instead of the database location",
    )
    parser.add_argument("-s", "--strings", action="store_true", help="print output as string")
    parser.add_argument("-j", "--json", action="store_true", help="output records as json")
    configure_generic_arguments(parser)

    args = parser.parse_args()
    process_generic_arguments(args)

    exit_code = 0
    rs = record_output(args.strings, args.json)

    try:
        for path in args.databases:
            cfg = config.load([args.config or path])
            skip_invalid = cfg.SKIP_INVALID if args.skip_invalid is None else args.skip_invalid
            output_files = cfg.OUTPUT_FILES if args.files is None else args.files

            try:
                with open_database(path) as db:
                    for package in db.packages(skip_invalid=skip_invalid):
                        rs.write(package_record(package, path))

                        if output_files:
                            for record in file_records(package, path):
                                rs.write(record)

            except ReadError as e:
                log.error("Unable to read RPM database %s: %s", path, e)  # noqa: TRY400
                log.debug("", exc_info=e)
                exit_code = 1

            except FormatError as e:
                log.error("Invalid RPM database %s: %s", path, e)  # noqa: TRY400
                log.debug("", exc_info=e)
                exit_code = 1
    finally:
        rs.flush()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
