"""Canonical data model exchanged with input readers and renderers.

Input readers produce :class:`RecordGroup` objects (one per input file). The
organizer classifies their records into :class:`ClassifiedObservation`
objects, then assembles a :class:`Scenario` tree: one :class:`Category` per
chart, one :class:`CategoryData` per metric and version, one
:class:`Series` per version, one :class:`Point` per function and context.
These Pydantic models serialize to JSON for the rendering collaborator.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .metrics import MetricName


class RawRecord(BaseModel):
    """Single benchmark measurement as read from the input.

    Attributes
    ----------
    name: str
        Full benchmark name (e.g., "BenchmarkGreater/reflect/int-16").
    n: int
        Number of iterations.
    ns_per_op, allocs_per_op, bytes_per_op, mb_per_s: Optional[float]
        Metric values; None when the measurement is absent.
    """

    name: str
    n: int = 0
    ns_per_op: Optional[float] = None
    allocs_per_op: Optional[float] = None
    bytes_per_op: Optional[float] = None
    mb_per_s: Optional[float] = None

    def metric_value(self, metric: MetricName) -> Optional[float]:
        """Value of ``metric`` for this record, or None when absent."""
        return getattr(self, metric.field)


class RecordGroup(BaseModel):
    """Records read from one input file, with the file's environment."""

    source_file: str = ""
    source_environment: str = ""
    records: List[RawRecord] = Field(default_factory=list)


class SeriesKey(BaseModel):
    """Identifies a benchmark series: function, version, context, metric."""

    model_config = ConfigDict(frozen=True)

    function: str = ""
    version: str = ""
    context: str = ""
    metric: Optional[MetricName] = None


class ClassifiedObservation(BaseModel):
    """One metric value of a classified benchmark record."""

    model_config = ConfigDict(frozen=True)

    function_id: str
    version_id: str = ""
    context_id: str = ""
    metric_id: MetricName
    value: float
    environment: str = ""

    @property
    def key(self) -> SeriesKey:
        return SeriesKey(
            function=self.function_id,
            version=self.version_id,
            context=self.context_id,
            metric=self.metric_id,
        )


class MetricInfo(BaseModel):
    """Metric as shown on a chart."""

    id: MetricName
    title: str = ""
    axis_label: str = ""


class VersionInfo(BaseModel):
    """Version as shown in a chart legend."""

    id: str = ""
    title: str = ""


class Point(BaseModel):
    """Single data point; the label is used by tooltips."""

    key: SeriesKey
    label: str
    value: float


class Series(BaseModel):
    """Points of one version, for one metric, within one category."""

    key: SeriesKey
    title: str = ""
    points: List[Point] = Field(default_factory=list)

    def labels(self) -> List[str]:
        """Point labels, in order."""
        return [p.label for p in self.points]


class CategoryData(BaseModel):
    """Series for one metric and one version of a category."""

    metric: MetricInfo
    version: VersionInfo
    series: List[Series] = Field(default_factory=list)


class Category(BaseModel):
    """All the series regrouped on a single chart."""

    id: str
    title: str = ""
    environment: str = ""
    data: List[CategoryData] = Field(default_factory=list)

    def metrics(self) -> List[MetricInfo]:
        """Metrics present in the category data, deduplicated, in order."""
        seen: set = set()
        metrics: List[MetricInfo] = []
        for d in self.data:
            if d.metric.id in seen:
                continue
            seen.add(d.metric.id)
            metrics.append(d.metric)
        return metrics

    def labels(self) -> List[str]:
        """Deduplicated X-axis labels ("function - context") across series."""
        seen: set = set()
        labels: List[str] = []
        for d in self.data:
            for s in d.series:
                for p in s.points:
                    pair = (p.key.function, p.key.context)
                    if pair in seen:
                        continue
                    seen.add(pair)
                    labels.append(f"{p.key.function} - {p.key.context}")
        return labels

    def title_with_placeholders(self, metric: MetricInfo) -> str:
        """Replace the "{metric}" placeholder of the title."""
        return self.title.replace("{metric}", metric.title)

    def has_points(self) -> bool:
        return any(s.points for d in self.data for s in d.series)


class Scenario(BaseModel):
    """Complete visualization scenario for a single page."""

    name: str = ""
    categories: List[Category] = Field(default_factory=list)
