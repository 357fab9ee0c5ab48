from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .config import DiffConfig, RuntimeConfig
from .errors import AdiffError
from .orchestration.main import AdiffOrchestrator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adiff",
        description="Report which C functions changed between two versions of a file",
        allow_abbrev=False,
    )
    parser.add_argument("input1", type=Path, help="Old version (file or directory)")
    parser.add_argument("input2", type=Path, help="New version (file or directory)")

    # Analysis flags, spelled the way the tool has always spelled them
    parser.add_argument(
        "-show_all",
        action="store_true",
        help="Also print functions that did not change",
    )
    parser.add_argument(
        "-body_only",
        action="store_true",
        help="Start each function at its body's opening brace",
    )
    parser.add_argument(
        "-not_nested",
        action="store_true",
        help="The first '*/' always closes a comment",
    )
    parser.add_argument(
        "-vs",
        type=int,
        default=None,
        metavar="N",
        help="Max branch choices evaluated per file (default: 500)",
    )

    # Run settings
    parser.add_argument(
        "-report",
        type=Path,
        default=None,
        metavar="PATH",
        help="Also write the results as YAML to PATH",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Diagnostic logging level on stderr (default: WARNING)",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> tuple[argparse.Namespace, DiffConfig]:
    """Parse the command line and merge it over the ``ADIFF_*`` environment."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.vs is not None and args.vs <= 0:
        parser.error(f"-vs must be a positive integer, got {args.vs}")
    if args.input1.is_dir() != args.input2.is_dir():
        parser.error("inputs must be two files or two directories")

    try:
        env_config = DiffConfig.from_env()
    except ValueError as e:
        parser.error(f"invalid ADIFF_* environment setting: {e}")

    config = DiffConfig(
        show_all=args.show_all or env_config.show_all,
        body_only=args.body_only or env_config.body_only,
        nested_comments=False if args.not_nested else env_config.nested_comments,
        choice_limit=args.vs if args.vs is not None else env_config.choice_limit,
    )
    return args, config


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    args, config = parse_args(argv)

    level = args.log_level or os.environ.get("ADIFF_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level if level in LOG_LEVELS else "WARNING",
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    runtime = RuntimeConfig(report_path=args.report)
    orchestrator = AdiffOrchestrator(config, runtime)

    try:
        if args.input1.is_dir():
            tree = orchestrator.run_tree(args.input1, args.input2)
            return 1 if tree.failures else 0
        orchestrator.run_pair(args.input1, args.input2)
    except AdiffError as e:
        print(f"ERROR: {e}")
        return 1
    except MemoryError:
        print("ERROR: out of memory", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
