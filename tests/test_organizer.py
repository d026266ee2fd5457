"""Tests for record classification and scenario assembly."""

from __future__ import annotations

import logging

import pytest

from benchviz.domain.metrics import MetricName
from benchviz.domain.models import RawRecord, RecordGroup
from benchviz.domain.organizer import Organizer, StrictModeError, scenarize
from benchviz.domain.store import load_rule_store_from_string


def _group(*records, file="bench.txt", environment="linux amd64"):
    return RecordGroup(
        source_file=file, source_environment=environment, records=list(records)
    )


def _compare_records():
    return _group(
        RawRecord(name="BenchmarkGreater/reflect/int-16", n=1, ns_per_op=245.3),
        RawRecord(name="BenchmarkGreater/generic/int-16", n=1, ns_per_op=7.89),
        RawRecord(name="BenchmarkGreaterOrEqual/reflect/int-16", n=1, ns_per_op=999),
    )


def test_compare_scenario_has_one_series_per_version(compare_store):
    """GreaterOrEqual is excluded by the negative pattern of greater."""
    scenario = scenarize(compare_store, [_compare_records()])

    assert scenario.name == "Compare"
    assert len(scenario.categories) == 1
    category = scenario.categories[0]
    assert category.id == "comparisons"
    assert [d.version.id for d in category.data] == ["reflect", "generics"]

    reflect, generics = (d.series[0] for d in category.data)
    assert reflect.title == "Reflect"
    assert [(p.key.function, p.key.context, p.value) for p in reflect.points] == [
        ("greater", "int", 245.3)
    ]
    assert [(p.key.function, p.key.context, p.value) for p in generics.points] == [
        ("greater", "int", 7.89)
    ]
    assert reflect.points[0].label == "greater - reflect - int"
    assert all(p.value != 999 for d in category.data for s in d.series for p in s.points)


def test_category_helpers(compare_store):
    category = scenarize(compare_store, [_compare_records()]).categories[0]
    assert category.labels() == ["greater - int"]
    metric = category.metrics()[0]
    assert metric.id is MetricName.NS_PER_OP
    assert category.title_with_placeholders(metric) == "Comparisons (Benchmark Timings)"


def test_unmatched_record_is_dropped_with_warning(compare_store, caplog):
    group = _group(
        RawRecord(name="BenchmarkGreater/reflect/int-16", n=1, ns_per_op=10),
        RawRecord(name="BenchmarkContains/reflect/int-16", n=1, ns_per_op=20),
    )
    with caplog.at_level(logging.WARNING):
        observations = Organizer(compare_store).classify([group])

    assert [o.function_id for o in observations] == ["greater"]
    assert any(r.message == "organizer.no_function_matched" for r in caplog.records)


def test_unmatched_record_is_fatal_in_strict_mode(compare_store):
    group = _group(RawRecord(name="BenchmarkContains/reflect/int-16", n=1, ns_per_op=20))
    with pytest.raises(StrictModeError, match="BenchmarkContains/reflect/int-16"):
        scenarize(compare_store, [group], strict=True)


def test_record_without_metric_warns_and_is_fatal_in_strict_mode(compare_store, caplog):
    group = _group(RawRecord(name="BenchmarkGreater/reflect/int-16", n=1))
    with caplog.at_level(logging.WARNING):
        assert Organizer(compare_store).classify([group]) == []
    assert any(r.message == "organizer.no_metric_ingested" for r in caplog.records)
    with pytest.raises(StrictModeError, match="no metric ingested"):
        Organizer(compare_store, strict=True).classify([group])


def test_empty_input_is_fatal_only_in_strict_mode(compare_store):
    scenario = scenarize(compare_store, [])
    assert scenario.categories == []
    with pytest.raises(StrictModeError, match="empty benchmark set"):
        scenarize(compare_store, [], strict=True)


def test_one_observation_per_metric_in_store():
    store = load_rule_store_from_string(
        """
metrics:
  - id: nsPerOp
  - id: bytesPerOp
functions:
  - id: greater
    match: Greater
"""
    )
    record = RawRecord(
        name="BenchmarkGreater-8", n=1, ns_per_op=5, allocs_per_op=2, bytes_per_op=64
    )
    observations = Organizer(store).classify([_group(record)])
    assert [(o.metric_id, o.value) for o in observations] == [
        (MetricName.NS_PER_OP, 5),
        (MetricName.BYTES_PER_OP, 64),
    ]
    assert all(o.version_id == "" and o.context_id == "" for o in observations)


def test_version_and_context_fall_back_to_file_rules():
    store = load_rule_store_from_string(
        """
functions:
  - id: greater
    match: Greater
contexts:
  - id: amd64
    match: amd64
versions:
  - id: go124
    match: go1\\.24
  - id: go125
    match: go1\\.25
files:
  - id: go-releases
    matchFile: "go1\\\\.2[45]"
    versions:
      - id: go124
        match: go1\\.24
      - id: go125
        match: go1\\.25
    contexts:
      - id: amd64
        match: amd64
"""
    )
    organizer = Organizer(store)
    classified = organizer.classify_name("BenchmarkGreater-8", "bench-go1.25-amd64.txt")
    assert classified == ("greater", "go125", "amd64")
    # The benchmark name wins over the file name
    classified = organizer.classify_name("BenchmarkGreater/go1.24-8", "bench-go1.25.txt")
    assert classified.version == "go124"
    assert organizer.classify_name("BenchmarkGreater-8", "other.txt") == ("greater", "", "")


def test_classification_is_memoized(compare_store):
    organizer = Organizer(compare_store, cache_size=2)
    first = organizer.classify_name("BenchmarkGreater/reflect/int-16", "a.txt")
    assert organizer.classify_name("BenchmarkGreater/reflect/int-16", "a.txt") is first
    assert organizer.classify_name("BenchmarkLess", "a.txt").function == "less"


def test_duplicate_observations_become_separate_points(compare_store):
    group = _group(
        RawRecord(name="BenchmarkGreater/reflect/int-16", n=1, ns_per_op=1.0),
        RawRecord(name="BenchmarkGreater/reflect/int-16", n=1, ns_per_op=2.0),
    )
    category = scenarize(compare_store, [group]).categories[0]
    reflect = category.data[0].series[0]
    assert [p.value for p in reflect.points] == [1.0, 2.0]
    # generics has no point but the category still has data
    assert category.data[1].series[0].points == []


def test_points_follow_function_then_context_order():
    store = load_rule_store_from_string(
        """
functions:
  - id: less
    match: Less
  - id: greater
    match: Greater
contexts:
  - id: string
    match: string
  - id: int
    match: int
versions:
  - id: generics
    match: generic
categories:
  - id: all
    includes:
      metrics: [nsPerOp]
"""
    )
    group = _group(
        RawRecord(name="BenchmarkGreater/generic/int", n=1, ns_per_op=1),
        RawRecord(name="BenchmarkGreater/generic/string", n=1, ns_per_op=2),
        RawRecord(name="BenchmarkLess/generic/int", n=1, ns_per_op=3),
    )
    series = scenarize(store, [group]).categories[0].data[0].series[0]
    assert series.labels() == [
        "less - generics - int",
        "greater - generics - string",
        "greater - generics - int",
    ]
    assert series.title == "Generics"


NO_CONTEXT_RULESET = """
functions:
  - id: greater
    match: Greater
versions:
  - id: reflect
    match: reflect
categories:
  - id: all
    includes:
      metrics: [nsPerOp]
"""


def test_category_without_contexts_charts_nothing(caplog):
    """No context is defined, so the category selects no (function, context) pair."""
    store = load_rule_store_from_string(NO_CONTEXT_RULESET)
    assert store.categories[0].includes.contexts == ()
    group = _group(RawRecord(name="BenchmarkGreater/reflect-8", n=1, ns_per_op=3.0))

    with caplog.at_level(logging.WARNING):
        scenario = scenarize(store, [group])
    assert scenario.categories == []
    assert any(r.message == "organizer.empty_category" for r in caplog.records)

    with pytest.raises(StrictModeError, match="category 'all'"):
        scenarize(store, [group], strict=True)


def test_category_without_versions_charts_nothing():
    store = load_rule_store_from_string(
        """
functions:
  - id: greater
    match: Greater
contexts:
  - id: int
    match: int
categories:
  - id: all
    includes:
      metrics: [nsPerOp]
"""
    )
    group = _group(RawRecord(name="BenchmarkGreater/int-8", n=1, ns_per_op=3.0))
    assert scenarize(store, [group]).categories == []
    with pytest.raises(StrictModeError, match="no data for category"):
        scenarize(store, [group], strict=True)


def test_empty_category_is_dropped_or_fatal_in_strict_mode(caplog):
    store = load_rule_store_from_string(
        """
functions:
  - id: greater
    match: Greater
  - id: less
    match: Less
versions:
  - id: base
    match: Benchmark
contexts:
  - id: cpu8
    match: "-8$"
categories:
  - id: greater
    includes:
      functions: [greater]
      metrics: [nsPerOp]
  - id: less
    includes:
      functions: [less]
      metrics: [nsPerOp]
"""
    )
    group = _group(RawRecord(name="BenchmarkGreater-8", n=1, ns_per_op=1))
    with caplog.at_level(logging.WARNING):
        scenario = scenarize(store, [group])
    assert [c.id for c in scenario.categories] == ["greater"]
    assert any(r.message == "organizer.empty_category" for r in caplog.records)
    with pytest.raises(StrictModeError, match="category 'less'"):
        scenarize(store, [group], strict=True)


def test_environment_precedence(compare_store):
    records = _compare_records()

    scenario = scenarize(compare_store, [records])
    assert scenario.categories[0].environment == "linux amd64"

    scenario = scenarize(compare_store, [records], environment="CI runner")
    assert scenario.categories[0].environment == "CI runner"
    observations = Organizer(compare_store, environment="CI runner").classify([records])
    assert {o.environment for o in observations} == {"CI runner"}

    store = load_rule_store_from_string(
        "environment: from ruleset\nfunctions:\n  - id: greater\n    match: Greater\n"
        "versions:\n  - id: reflect\n    match: reflect\n"
        "contexts:\n  - id: int\n    match: int\n"
        "categories:\n  - id: all\n    includes:\n      metrics: [nsPerOp]\n"
    )
    assert scenarize(store, [records]).categories[0].environment == "from ruleset"


def test_scenario_serializes_to_json(compare_store):
    scenario = scenarize(compare_store, [_compare_records()])
    payload = scenario.model_dump(mode="json")
    point = payload["categories"][0]["data"][0]["series"][0]["points"][0]
    assert point["key"]["metric"] == "nsPerOp"
    assert point["value"] == 245.3
