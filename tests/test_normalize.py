"""Tests for ruleset key synonyms and the default overlay."""

from benchviz.domain.normalize import merge_documents, normalize_ruleset_document


def test_rule_synonyms_are_normalized():
    raw = {
        "functions": [{"id": "greater", "match": "Greater", "notMatch": "GreaterOr"}],
        "versions": [{"id": "v1", "Match": "v1", "NotMatch": "v10"}],
        "metrics": [{"id": "nsPerOp", "axis": "ns/op"}],
    }
    out = normalize_ruleset_document(raw)
    assert out["functions"][0] == {
        "id": "greater",
        "match_pattern": "Greater",
        "not_match_pattern": "GreaterOr",
    }
    assert out["versions"][0]["match_pattern"] == "v1"
    assert out["versions"][0]["not_match_pattern"] == "v10"
    assert out["metrics"][0] == {"id": "nsPerOp", "axis_label": "ns/op"}


def test_file_rules_and_nested_entries_are_normalized():
    raw = {
        "files": [
            {
                "id": "f",
                "matchFile": "go1.25",
                "versions": [{"id": "v", "match": "go1.25"}],
                "contexts": [{"id": "c", "not_match": "arm"}],
            }
        ]
    }
    out = normalize_ruleset_document(raw)
    entry = out["files"][0]
    assert entry["match_file_pattern"] == "go1.25"
    assert entry["versions"][0]["match_pattern"] == "go1.25"
    assert entry["contexts"][0]["not_match_pattern"] == "arm"


def test_canonical_key_wins_and_input_untouched():
    raw = {"functions": [{"id": "a", "match": "short", "match_pattern": "canonical"}]}
    out = normalize_ruleset_document(raw)
    assert out["functions"][0]["match_pattern"] == "canonical"
    assert "match" not in out["functions"][0]
    assert raw["functions"][0]["match"] == "short"


def test_merge_keeps_defaults_for_absent_keys():
    defaults = {
        "name": "Benchmarks",
        "render": {"theme": "roma", "layout": {"horizontal": 2, "vertical": 0}},
        "metrics": [{"id": "nsPerOp", "title": "Timings", "axis_label": "ns/op"}],
    }
    user = {"name": "Mine", "render": {"layout": {"vertical": 3}}}
    merged = merge_documents(defaults, user)
    assert merged["name"] == "Mine"
    assert merged["render"] == {"theme": "roma", "layout": {"horizontal": 2, "vertical": 3}}
    assert merged["metrics"] == defaults["metrics"]


def test_merge_user_list_inherits_default_entry_fields():
    """A user metric list replaces the defaults, entries inheriting by id."""
    defaults = {
        "metrics": [
            {"id": "nsPerOp", "title": "Timings", "axis_label": "ns/op"},
            {"id": "allocsPerOp", "title": "Allocations", "axis_label": "allocs/op"},
        ]
    }
    user = {"metrics": [{"id": "nsPerOp", "title": "Latency"}]}
    merged = merge_documents(defaults, user)
    assert merged["metrics"] == [
        {"id": "nsPerOp", "title": "Latency", "axis_label": "ns/op"}
    ]
    assert len(defaults["metrics"]) == 2
