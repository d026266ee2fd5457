"""Build a minimal ruleset from the benchmark names found in the input.

The synthesized ruleset declares one function per distinct benchmark, the
metrics present in the input and a single category charting everything. It
is a starting point for users writing their own ruleset.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..config.models import (
    CategorySpec,
    IncludesSpec,
    MetricSpec,
    RenderSpec,
    RuleSpec,
    RulesetDocument,
    load_default_document,
)
from .metrics import MetricName
from .normalize import normalize_ruleset_document
from .rules import titleize
from .store import RuleStore, build_rule_store

logger = logging.getLogger(__name__)

GENERATED_NAME = "Generated Config"
ALL_CATEGORY_ID = "all"
ALL_CATEGORY_TITLE = "All Benchmarks ({metric})"

_PROCS_SUFFIX = re.compile(r"-\d+$")
_ID_SEPARATORS = re.compile(r"[/_]")


def bench_name_to_id(name: str) -> str:
    """Convert a benchmark name to a kebab-case identifier.

    The ``Benchmark`` prefix, one leading underscore and the GOMAXPROCS
    suffix (e.g. ``-16``) are stripped:

    >>> bench_name_to_id("BenchmarkGreater/generic/int-16")
    'greater-generic-int'
    >>> bench_name_to_id("Benchmark_isEmpty-16")
    'isempty'
    """
    ident = name[len("Benchmark"):] if name.startswith("Benchmark") else name
    if ident.startswith("_"):
        ident = ident[1:]
    match = _PROCS_SUFFIX.search(ident)
    # A suffix at position 0 is the whole name, not a GOMAXPROCS marker
    if match is not None and match.start() > 0:
        ident = ident[: match.start()]
    return _ID_SEPARATORS.sub("-", ident).lower()


def distinct_function_ids(names: Iterable[str]) -> List[str]:
    """Sorted distinct identifiers derived from benchmark names."""
    return sorted({bench_name_to_id(n) for n in names})


def generate_document(
    record_names: Sequence[str],
    metric_ids: Sequence[Union[MetricName, str]],
    *,
    defaults: Optional[Mapping[str, Any]] = None,
) -> RulesetDocument:
    """Synthesize a ruleset document from record names and metric ids.

    Parameters
    ----------
    record_names: Sequence[str]
        Benchmark names, in input order. The first name of each distinct
        identifier becomes the function's literal match pattern.
    metric_ids: Sequence[MetricName | str]
        Metrics found in the input. Titles and axis labels come from the
        default document when it defines the metric.
    defaults: Mapping | None
        Raw default document; the embedded defaults when None.
    """
    base = normalize_ruleset_document(
        load_default_document() if defaults is None else dict(defaults)
    )
    default_metrics: Dict[str, Dict[str, Any]] = {
        str(m.get("id")): m for m in base.get("metrics") or [] if isinstance(m, dict)
    }

    metrics: List[MetricSpec] = []
    for metric_id in metric_ids:
        key = str(metric_id)
        known = default_metrics.get(key)
        if known is not None:
            metrics.append(
                MetricSpec(
                    id=key,
                    title=known.get("title") or "",
                    axis_label=known.get("axis_label") or "",
                )
            )
        else:
            metrics.append(MetricSpec(id=key, title=titleize(key)))

    functions: List[RuleSpec] = []
    seen = set()
    for name in record_names:
        ident = bench_name_to_id(name)
        if ident in seen:
            continue
        seen.add(ident)
        functions.append(
            RuleSpec(id=ident, title=titleize(ident), match_pattern=re.escape(name))
        )

    category = CategorySpec(
        id=ALL_CATEGORY_ID,
        title=ALL_CATEGORY_TITLE,
        includes=IncludesSpec(
            functions=[f.id for f in functions],
            metrics=[m.id for m in metrics],
        ),
    )

    document = RulesetDocument(
        name=GENERATED_NAME,
        render=RenderSpec.model_validate(base.get("render") or {}),
        metrics=metrics,
        functions=functions,
        categories=[category],
    )
    logger.info(
        "synthesizer.generated",
        extra={"functions": len(functions), "metrics": len(metrics)},
    )
    return document


def generate(
    record_names: Sequence[str],
    metric_ids: Sequence[Union[MetricName, str]],
    *,
    defaults: Optional[Mapping[str, Any]] = None,
) -> RuleStore:
    """Synthesize a ruleset and build its rule store."""
    return build_rule_store(
        generate_document(record_names, metric_ids, defaults=defaults)
    )


def dump_ruleset_yaml(document: Union[RulesetDocument, RuleStore]) -> str:
    """Serialize a ruleset to YAML accepted by the ruleset loaders."""
    if isinstance(document, RuleStore):
        document = document.to_document()
    return document.to_yaml()
