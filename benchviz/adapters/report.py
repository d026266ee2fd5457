"""Parsing report: a summary of what the input readers found.

The report helps users write a ruleset: it lists the analyzed files, the
distinct benchmark names, and the range of every metric present.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from pydantic import BaseModel, Field

from ..domain.metrics import MetricName, all_metric_names
from ..domain.models import RawRecord, RecordGroup


class MetricRange(BaseModel):
    """Observed range of one metric."""

    metric: MetricName
    measurements_count: int = 0
    min_value: float = 0.0
    max_value: float = 0.0
    origin_files: List[str] = Field(default_factory=list)


class Signature(BaseModel):
    """One benchmark record with the metrics it carries."""

    benchmark_name: str
    available_metrics: List[MetricRange] = Field(default_factory=list)
    environment: str = ""


class ParsingReport(BaseModel):
    """Summary of parsed benchmark input."""

    sets: int = 0
    analyzed_files: List[str] = Field(default_factory=list)
    benchmark_functions: List[str] = Field(default_factory=list)
    benchmark_metrics: List[MetricRange] = Field(default_factory=list)
    benchmark_signatures: List[Signature] = Field(default_factory=list)

    def metric_names(self) -> List[MetricName]:
        """Metrics found in the input, in order of first appearance."""
        return [m.metric for m in self.benchmark_metrics]


def _record_metrics(record: RawRecord, file: str) -> List[MetricRange]:
    # Zero and absent values both mean "not measured"
    ranges = []
    for metric in all_metric_names():
        value = record.metric_value(metric)
        if value is None or value <= 0:
            continue
        ranges.append(
            MetricRange(
                metric=metric,
                measurements_count=1,
                min_value=value,
                max_value=value,
                origin_files=[file],
            )
        )
    return ranges


def build_report(groups: Sequence[RecordGroup]) -> ParsingReport:
    """Summarize record groups into a :class:`ParsingReport`."""
    report = ParsingReport()
    seen_names = set()

    for group in groups:
        report.sets += 1
        if group.source_file not in report.analyzed_files:
            report.analyzed_files.append(group.source_file)
        for record in group.records:
            seen_names.add(record.name)
            report.benchmark_signatures.append(
                Signature(
                    benchmark_name=record.name,
                    environment=group.source_environment,
                    available_metrics=_record_metrics(record, group.source_file),
                )
            )

    merged: Dict[MetricName, MetricRange] = {}
    for signature in report.benchmark_signatures:
        for m in signature.available_metrics:
            previous = merged.get(m.metric)
            if previous is None:
                merged[m.metric] = m.model_copy(deep=True)
                continue
            previous.min_value = min(previous.min_value, m.min_value)
            previous.max_value = max(previous.max_value, m.max_value)
            for origin in m.origin_files:
                if origin not in previous.origin_files:
                    previous.origin_files.append(origin)
            previous.measurements_count += m.measurements_count

    report.benchmark_metrics = list(merged.values())
    report.benchmark_functions = sorted(seen_names)
    return report


def record_names(groups: Sequence[RecordGroup]) -> List[str]:
    """Benchmark names of all records, in input order."""
    return [r.name for g in groups for r in g.records]
