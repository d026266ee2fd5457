"""Readers for the output of ``go test -bench``.

A benchmark line looks like::

    BenchmarkGreater/generic/int-16   1000000   1052 ns/op   48 B/op   2 allocs/op

i.e. the benchmark name, the iteration count, then (value, unit) pairs. Lines
that do not follow this layout are ignored. The header lines ``goos:``,
``goarch:`` and ``cpu:`` describe the environment the benchmarks ran in.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Iterable, List, Optional, Sequence, TextIO

from ..domain.models import RawRecord, RecordGroup
from . import InputError, get_reader

logger = logging.getLogger(__name__)

UNKNOWN_ENVIRONMENT = "unknown environment"
STDIN = "-"

# Unit -> RawRecord field
_UNITS = {
    "ns/op": "ns_per_op",
    "MB/s": "mb_per_s",
    "B/op": "bytes_per_op",
    "allocs/op": "allocs_per_op",
}


def parse_bench_line(line: str) -> Optional[RawRecord]:
    """Parse one benchmark result line, or return None when it is not one."""
    fields = line.split()
    if len(fields) < 4 or not fields[0].startswith("Benchmark"):
        return None
    try:
        n = int(fields[1])
    except ValueError:
        return None

    values = {}
    for i in range(2, len(fields) - 1, 2):
        field = _UNITS.get(fields[i + 1])
        if field is None:
            continue
        try:
            values[field] = float(fields[i])
        except ValueError:
            logger.debug(
                "gobench.invalid_value",
                extra={"benchmark_name": fields[0], "unit": fields[i + 1]},
            )
    return RawRecord(name=fields[0], n=n, **values)


def parse_bench_text(text: str) -> List[RawRecord]:
    """All benchmark records found in ``text``, in input order."""
    records = []
    for line in text.splitlines():
        record = parse_bench_line(line)
        if record is not None:
            records.append(record)
    return records


def extract_environment(text: str) -> str:
    """Environment string built from the goos, goarch and cpu header lines."""
    parts = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("goos: "):
            parts.append(line[len("goos: "):])
        elif line.startswith("goarch: "):
            parts.append(line[len("goarch: "):])
        elif line.startswith("cpu: "):
            parts.append("cpu: " + line[len("cpu: "):].strip())
    if not parts:
        return UNKNOWN_ENVIRONMENT
    return " ".join(parts)


def collect_json_output(lines: Iterable[str]) -> str:
    """Concatenate the ``Output`` of ``output`` events of a test2json stream.

    Lines which are not JSON objects are skipped.
    """
    chunks = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("gobench.skipped_json_line", extra={"line": line[:80]})
            continue
        if not isinstance(event, dict):
            continue
        output = event.get("Output")
        if event.get("Action") == "output" and isinstance(output, str) and output:
            chunks.append(output)
    return "".join(chunks)


class GoBenchTextReader:
    """Reader for the plain text output of ``go test -bench``."""

    format = "text"

    def read(self, stream: TextIO, source: str = STDIN) -> RecordGroup:
        text = stream.read()
        return RecordGroup(
            source_file=source,
            source_environment=extract_environment(text),
            records=parse_bench_text(text),
        )


class GoTestJSONReader:
    """Reader for the event stream of ``go test -json -bench``."""

    format = "json"

    def read(self, stream: TextIO, source: str = STDIN) -> RecordGroup:
        text = collect_json_output(stream)
        return RecordGroup(
            source_file=source,
            source_environment=extract_environment(text),
            records=parse_bench_text(text),
        )


def read_files(paths: Sequence[str], *, fmt: str = "text") -> List[RecordGroup]:
    """Read benchmark input files; ``-`` (or no path at all) means stdin.

    Raises
    ------
    InputError
        If a file cannot be opened or decoded.
    """
    reader = get_reader(fmt)
    groups: List[RecordGroup] = []
    for path in paths or [STDIN]:
        if path == STDIN:
            groups.append(reader.read(sys.stdin, STDIN))
            continue
        try:
            with open(path, encoding="utf-8") as stream:
                groups.append(reader.read(stream, path))
        except (OSError, UnicodeDecodeError) as e:
            raise InputError(f"input file {path!r}: {e}") from e

    logger.info(
        "gobench.parsed",
        extra={
            "parsed_files": len(groups),
            "records": sum(len(g.records) for g in groups),
            "format": fmt,
        },
    )
    return groups
