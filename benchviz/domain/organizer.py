"""Organizer: reshape classified benchmark records into a chart scenario.

The organizer runs two linear passes over the input:

1. ``classify``: every raw record is classified against the rule store into
   a (function, version, context) triple, then expanded into one observation
   per metric defined in the store.
2. ``assemble``: for every configured category, one series per metric and
   version is built, holding one point per matching function and context.

Values are copied through unchanged: no statistical combination is applied,
and duplicate observations of the same key become separate points. In strict
mode every classification warning becomes a :class:`StrictModeError`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import DefaultDict, Dict, Iterable, List, NamedTuple, Optional, Sequence

from cachetools import LRUCache  # type: ignore[import-untyped]

from .metrics import MetricName, all_metric_names
from .models import (
    Category,
    CategoryData,
    ClassifiedObservation,
    MetricInfo,
    Point,
    RecordGroup,
    Scenario,
    Series,
    SeriesKey,
    VersionInfo,
)
from .store import CategoryDefinition, RuleStore

logger = logging.getLogger(__name__)

# Version or context id of a record no rule classified
UNCLASSIFIED = ""


class StrictModeError(ValueError):
    """Raised in strict mode when a record or category cannot be placed."""


class Classification(NamedTuple):
    """Identifiers resolved for a benchmark name; function None means no match."""

    function: Optional[str]
    version: str = UNCLASSIFIED
    context: str = UNCLASSIFIED


class Organizer:
    """Rearranges parsed benchmark data into a configured scenario.

    Parameters
    ----------
    store: RuleStore
        Validated ruleset; never mutated.
    strict: bool
        Escalate classification warnings to :class:`StrictModeError`.
    environment: Optional[str]
        Run-level environment override. Falls back to the ruleset
        environment, then to the environment of each input file.
    cache_size: int
        Number of memoized (benchmark name, file name) classifications.
    """

    def __init__(
        self,
        store: RuleStore,
        *,
        strict: bool = False,
        environment: Optional[str] = None,
        cache_size: int = 4096,
    ) -> None:
        self._store = store
        self._strict = strict
        self._environment = environment or store.environment
        self._memo: LRUCache = LRUCache(maxsize=cache_size)

    @property
    def store(self) -> RuleStore:
        return self._store

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def environment(self) -> str:
        """Effective run-level environment ("" when none is configured)."""
        return self._environment

    def scenarize(self, groups: Iterable[RecordGroup]) -> Scenario:
        """Classify all records then assemble the scenario."""
        observations = self.classify(groups)
        return self.assemble(observations)

    # ---------------- Classification ----------------
    def classify_name(self, name: str, file: str = "") -> Classification:
        """Resolve function, version and context for a benchmark name.

        Version and context are looked up in the benchmark name first, then
        in the file rules matched against ``file``.
        """
        memo_key = (name, file)
        cached = self._memo.get(memo_key)
        if cached is not None:
            return cached

        store = self._store
        function = store.find_function(name)
        if function is None:
            result = Classification(function=None)
        else:
            version = store.find_version(name)
            if version is None:
                version = store.find_version_from_file(file)
            context = store.find_context(name)
            if context is None:
                context = store.find_context_from_file(file)
            if version is None and context is None:
                logger.debug(
                    "organizer.no_version_no_context",
                    extra={"benchmark_name": name, "file": file},
                )
            result = Classification(
                function=function,
                version=version or UNCLASSIFIED,
                context=context or UNCLASSIFIED,
            )

        self._memo[memo_key] = result
        return result

    def classify(self, groups: Iterable[RecordGroup]) -> List[ClassifiedObservation]:
        """Turn raw record groups into classified observations.

        Raises
        ------
        StrictModeError
            In strict mode, when a record matches no function, when no metric
            could be extracted from a record, or when nothing was classified.
        """
        metrics: Sequence[MetricName] = [
            m for m in all_metric_names() if m in self._store.metric_index
        ]
        observations: List[ClassifiedObservation] = []

        for group in groups:
            file = group.source_file
            environment = self._environment or group.source_environment
            for record in group.records:
                classified = self.classify_name(record.name, file)
                if classified.function is None:
                    logger.warning(
                        "organizer.no_function_matched",
                        extra={"file": file, "benchmark_name": record.name},
                    )
                    self._escalate(
                        f"strict requirement not met for benchmark {record.name!r} "
                        f"(file {file!r}): no function matched"
                    )
                    continue

                resolved = 0
                for metric in metrics:
                    value = record.metric_value(metric)
                    if value is None:
                        continue
                    observations.append(
                        ClassifiedObservation(
                            function_id=classified.function,
                            version_id=classified.version,
                            context_id=classified.context,
                            metric_id=metric,
                            value=value,
                            environment=environment,
                        )
                    )
                    resolved += 1

                if not resolved:
                    logger.warning(
                        "organizer.no_metric_ingested",
                        extra={"file": file, "benchmark_name": record.name},
                    )
                    self._escalate(
                        f"strict requirement not met for benchmark {record.name!r} "
                        f"(file {file!r}): no metric ingested"
                    )

        if not observations:
            logger.warning("organizer.empty_benchmark_set")
            self._escalate("strict requirement not met: empty benchmark set")

        logger.info(
            "organizer.classified",
            extra={"observations": len(observations), "cached_names": len(self._memo)},
        )
        return observations

    # ---------------- Assembly ----------------
    def assemble(self, observations: Sequence[ClassifiedObservation]) -> Scenario:
        """Build the scenario from classified observations.

        Series are built over the included versions and contexts only, so a
        category selecting none of either charts nothing. Categories without
        any point are dropped (fatal in strict mode).
        """
        by_key: DefaultDict[SeriesKey, List[ClassifiedObservation]] = defaultdict(list)
        for obs in observations:
            by_key[obs.key].append(obs)

        environment = self._environment or next(
            (o.environment for o in observations if o.environment), ""
        )
        scenario = Scenario(name=self._store.name)

        for definition in self._store.categories:
            category = self._assemble_category(definition, by_key, environment)
            if not category.has_points():
                logger.warning(
                    "organizer.empty_category", extra={"category": definition.id}
                )
                self._escalate(
                    f"strict requirement not met for category {definition.id!r}: "
                    "no data for category"
                )
                continue
            scenario.categories.append(category)

        logger.info(
            "Resolved categories: %d of %d",
            len(scenario.categories),
            len(self._store.categories),
        )
        return scenario

    def _assemble_category(
        self,
        definition: CategoryDefinition,
        by_key: Dict[SeriesKey, List[ClassifiedObservation]],
        environment: str,
    ) -> Category:
        includes = definition.includes
        category = Category(
            id=definition.id, title=definition.title, environment=environment
        )

        for metric_id in includes.metrics:
            metric = self._store.get_metric(metric_id)
            info = MetricInfo(
                id=metric_id,
                title=metric.title if metric else metric_id.value,
                axis_label=metric.axis_label if metric else "",
            )
            for version_id in includes.versions:
                version = self._store.get_version(version_id)
                title = version.title if version is not None else version_id
                series = series_for(
                    by_key,
                    metric_id,
                    version_id,
                    includes.functions,
                    includes.contexts,
                )
                series.title = title
                category.data.append(
                    CategoryData(
                        metric=info,
                        version=VersionInfo(id=version_id, title=title),
                        series=[series],
                    )
                )
        return category

    def _escalate(self, message: str) -> None:
        if self._strict:
            raise StrictModeError(message)


def series_for(
    by_key: Dict[SeriesKey, List[ClassifiedObservation]],
    metric: MetricName,
    version: str,
    functions: Sequence[str],
    contexts: Sequence[str],
) -> Series:
    """Build the single series of one metric and one version.

    Points follow the (function, context) order of the category; each
    observation matching the exact key becomes its own point.
    """
    series = Series(key=SeriesKey(version=version, metric=metric), title=version)
    for function in functions:
        for context in contexts:
            key = SeriesKey(
                function=function, version=version, context=context, metric=metric
            )
            for obs in by_key.get(key, ()):
                series.points.append(
                    Point(
                        key=key,
                        label=f"{function} - {version} - {context}",
                        value=obs.value,
                    )
                )
    return series


def scenarize(
    store: RuleStore,
    groups: Iterable[RecordGroup],
    *,
    strict: bool = False,
    environment: Optional[str] = None,
) -> Scenario:
    """Pure-function form of :meth:`Organizer.scenarize`."""
    return Organizer(store, strict=strict, environment=environment).scenarize(groups)
