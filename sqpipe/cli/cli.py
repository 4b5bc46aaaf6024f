#!/usr/bin/env python3
"""
Command-line interface: run SQL against an embedded database and print
rows in a format a shell `read` loop can parse.

Usage:
  sqpipe [options] DATABASE SQL [ARGS...]

Engine inference (if --engine omitted):
- .duckdb       -> duckdb
- otherwise     -> sqlite (fallback)
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import BinaryIO, List, Mapping, Optional

from sqpipe import __version__
from sqpipe.config.config_loader import ConfigLoader
from sqpipe.config.tool_config import ToolConfig
from sqpipe.consts.EngineType import EngineType
from sqpipe.errors import SqPipeError, UsageError
from sqpipe.service.context import RunContext
from sqpipe.service.driver.statement_driver import StatementDriver
from sqpipe.util.file_utils import read_script
from sqpipe.util.log_config import configure_logging, setup_logger

logger = setup_logger(__name__)

EPILOG = """\
Use ? or :name to fetch ARGS, $ENV to access the environment.
Names starting with :fd read a BLOB from a file descriptor:
  :fd0          all of stdin
  :fd0_5        the next 5 bytes of stdin
  :fd0__10      stdin up to the next newline (byte 10)
  :fd0_t_s      the next whitespace separated word, trimmed
  :fd0___1      trailing _TAG tells apart several reads of one descriptor
With --loop a statement is repeated until its descriptors run dry.

Parse the output as follows:
  sqpipe db 'select * from t' |
  while read -r row col type data
  do case "$type" in
  t)  echo "row=$row col=$col data=$data";;
  e)  printf 'row=%s col=%s data=%b\\n' "$row" "$col" "$data";;
  0)  echo "row=$row col=$col NULL";;
  esac
  done
"""


class _ArgumentParser(argparse.ArgumentParser):

    def error(self, message):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    """
    Create the sqpipe ArgumentParser.

    Options default to None so that values from a config file can fill in
    whatever was not given on the command line.
    """
    parser = _ArgumentParser(
        prog="sqpipe",
        description="Run SQL statements against an embedded database and stream rows to stdout.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("database", help="Database file")
    parser.add_argument("script", help="SQL statements (or a file name with -f)")
    parser.add_argument("args", nargs=argparse.REMAINDER, help="Values for positional bind markers")

    parser.add_argument("-d", "--debug", action="store_true", default=None,
                        help="Trace binds and statements to stderr")
    parser.add_argument("-t", "--timeout", type=int, default=None, metavar="MS",
                        help="Busy timeout in milliseconds (default 100)")
    parser.add_argument("-r", "--raw", action="store_true", default=None,
                        help="Raw output: values only, newline separated")
    parser.add_argument("-n", "--nul", action="store_true", default=None,
                        help="NUL-terminate raw values or separated records")
    parser.add_argument("-a", "--ansi", action="store_true", default=None,
                        help="Escape values for bash $'...' quoting")
    parser.add_argument("-b", "--begin", default=None, metavar="STR",
                        help="Write STR before each row (empty: a NUL byte)")
    parser.add_argument("-e", "--end", default=None, metavar="STR",
                        help="Write STR after each row (empty: a NUL byte)")
    parser.add_argument("-l", "--loop", action="store_true", default=None,
                        help="Repeat statements while descriptor streams have data")
    parser.add_argument("-s", "--sep", action="append", default=None, metavar="STR",
                        help="Field separator; repeat to cycle through several")
    parser.add_argument("-u", "--unbuffered", action="store_true", default=None,
                        help="Flush stdout after every row")
    parser.add_argument("-f", "--file", action="store_true", default=None,
                        help="SQL names a file to read the statements from")
    parser.add_argument("--engine", choices=[e.value for e in EngineType], default=None,
                        help="Override engine detection")
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML file with option defaults")
    parser.add_argument("--env", type=str, default=None,
                        help="Overlay <config-stem>_<env> over the config file (e.g. 'ci')")
    parser.add_argument("--log-file", type=str, default=None,
                        help="Also append diagnostics to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run(config: ToolConfig, out: BinaryIO, environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Execute the configured script.

    Returns:
        Number of rows written to `out`.
    """
    script = read_script(config.script) if config.script_is_file else config.script

    with RunContext(config, out, environ) as ctx:
        return StatementDriver(ctx).run(script)


def main(argv: Optional[List[str]] = None, out: Optional[BinaryIO] = None) -> int:
    """Main entry point."""
    configure_logging()
    parser = build_parser()

    try:
        ns = parser.parse_args(argv)
    except UsageError as e:
        sys.stderr.write(parser.format_help())
        logger.error(str(e))
        return e.exit_code

    try:
        config = ConfigLoader(ns.config, ns.env).build(ns)
        if config.debug or config.log_file:
            configure_logging(logging.DEBUG if config.debug else logging.WARNING,
                              config.log_file, timestamps=config.debug)
        logger.debug(config)
        run(config, out if out is not None else sys.stdout.buffer)
    except UsageError as e:
        sys.stderr.write(parser.format_usage())
        logger.error(str(e))
        return e.exit_code
    except SqPipeError as e:
        logger.error(str(e))
        return e.exit_code

    return 0


def main_entry() -> None:
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
