"""Pytest configuration for test suite.

Ensures the project root is on ``sys.path`` so imports like
``import benchviz`` resolve regardless of the working directory pytest
chooses, and provides shared rulesets and benchmark inputs.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_syspath() -> None:
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)
    if project_root_str not in sys.path:
        # Prepend to prefer local sources over site-packages
        sys.path.insert(0, project_root_str)


_ensure_project_root_on_syspath()


COMPARE_RULESET = """
name: Compare
functions:
  - id: greater
    match: Greater
    notMatch: GreaterOr
  - id: less
    match: Less
contexts:
  - id: int
    match: int
versions:
  - id: reflect
    match: reflect
  - id: generics
    match: generic
categories:
  - id: comparisons
    title: "Comparisons ({metric})"
    includes:
      metrics: [nsPerOp]
"""

BENCH_OUTPUT = """goos: linux
goarch: amd64
pkg: github.com/example/assert
cpu: AMD Ryzen 7 5800X 8-Core Processor
BenchmarkGreater/reflect/int-16         	 4876543	       245.3 ns/op	      48 B/op	       2 allocs/op
BenchmarkGreater/generic/int-16         	152345678	         7.89 ns/op	       0 B/op	       0 allocs/op
BenchmarkGreaterOrEqual/reflect/int-16  	 1000000	       999 ns/op
PASS
ok  	github.com/example/assert	4.210s
"""


@pytest.fixture(autouse=True)
def reset_reader_registry():
    """Reset the input reader registry before each test."""
    from benchviz.adapters import reset_readers

    reset_readers()
    yield


@pytest.fixture
def compare_ruleset() -> str:
    """Ruleset classifying Greater/Less comparisons by version and type."""
    return COMPARE_RULESET


@pytest.fixture
def compare_store():
    """Rule store built from :data:`COMPARE_RULESET` over the defaults."""
    from benchviz.domain.store import load_rule_store_from_string

    return load_rule_store_from_string(COMPARE_RULESET)


@pytest.fixture
def bench_output() -> str:
    """Plain text output of ``go test -bench``."""
    return BENCH_OUTPUT


@pytest.fixture
def bench_file(tmp_path: Path) -> Path:
    path = tmp_path / "bench.txt"
    path.write_text(BENCH_OUTPUT)
    return path
