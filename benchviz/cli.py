"""Command-line interface for benchviz.

Reads ``go test -bench`` output, classifies it with a ruleset and writes the
resulting scenario as JSON for the rendering collaborator.

Usage
-----
    go test -bench . ./... | benchviz -c benchviz.yaml -o scenario.json
    benchviz --report bench.txt
    benchviz --generate-config -o benchviz.yaml bench.txt
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import __version__
from .adapters import InputError
from .adapters.gobench import STDIN, read_files
from .adapters.report import build_report, record_names
from .config.models import BenchvizSettings, RulesetDocument, RulesetError
from .domain.organizer import Organizer, StrictModeError
from .domain.store import load_rule_store
from .domain.synthesizer import dump_ruleset_yaml, generate_document
from .observability import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Argument parser of the ``benchviz`` command."""
    parser = argparse.ArgumentParser(
        prog="benchviz",
        description="Reshape Go benchmark results into chart-ready series",
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Benchmark output files; none or '-' reads standard input",
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Ruleset document (default: BENCHVIZ_CONFIG or benchviz.yaml)",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=STDIN,
        help="Output file, or '-' for standard output",
    )
    parser.add_argument(
        "-e", "--environment", help="Environment string shown on every chart"
    )
    parser.add_argument(
        "--json",
        dest="is_json",
        action="store_true",
        help="Read input as 'go test -json' event streams",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on benchmarks or categories that cannot be classified",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-r",
        "--report",
        action="store_true",
        help="Report the contents of the input only",
    )
    mode.add_argument(
        "--generate-config",
        dest="generate_config",
        action="store_true",
        help="Print a ruleset generated from the input benchmarks",
    )
    mode.add_argument(
        "--schema",
        action="store_true",
        help="Print the JSON schema of the ruleset document",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=[
            "CRITICAL",
            "ERROR",
            "WARNING",
            "INFO",
            "DEBUG",
        ],
        help="Logging level (overrides environment)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (once sets DEBUG)",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def _write_output(output: str, text: str) -> None:
    if not text.endswith("\n"):
        text += "\n"
    if output == STDIN:
        sys.stdout.write(text)
        return
    Path(output).write_text(text, encoding="utf-8")
    logger.info("Output written to '%s'", output)


def _execute(args: argparse.Namespace, settings: BenchvizSettings) -> None:
    if args.schema:
        schema = RulesetDocument.model_json_schema()
        _write_output(args.output, json.dumps(schema, indent=2))
        return

    groups = read_files(args.files, fmt="json" if args.is_json else "text")

    if args.report:
        report = build_report(groups)
        _write_output(args.output, report.model_dump_json(indent=1))
        return

    if args.generate_config:
        report = build_report(groups)
        document = generate_document(record_names(groups), report.metric_names())
        _write_output(args.output, dump_ruleset_yaml(document))
        return

    store = load_rule_store(args.config or settings.config)
    strict = settings.strict if args.strict is None else args.strict
    organizer = Organizer(
        store,
        strict=strict,
        environment=args.environment or settings.environment or None,
    )
    scenario = organizer.scenarize(groups)
    _write_output(args.output, scenario.model_dump_json(indent=2))


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = BenchvizSettings()

    # Determine effective log level
    effective_level = args.log_level or (
        "DEBUG" if args.verbose > 0 else settings.log_level.upper()
    )
    setup_logging(effective_level)

    try:
        _execute(args, settings)
    except (RulesetError, StrictModeError, InputError) as e:
        logger.error("%s", e)
        return 1
    except OSError as e:
        logger.error("writing output %r: %s", args.output, e)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entrypoint; exits with the status returned by :func:`run`."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
