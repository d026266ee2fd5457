"""Ruleset document normalization utilities.

This module centralizes the key synonyms accepted in ruleset documents and
the overlay of a user document over the embedded defaults, so that every
loader applies identical semantics before validation.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List

# Synonym -> canonical key, for every rule-bearing entry
RULE_KEY_SYNONYMS = {
    "match": "match_pattern",
    "Match": "match_pattern",
    "notMatch": "not_match_pattern",
    "NotMatch": "not_match_pattern",
    "not_match": "not_match_pattern",
    "matchFile": "match_file_pattern",
    "MatchFile": "match_file_pattern",
    "match_file": "match_file_pattern",
    "axis": "axis_label",
    "Axis": "axis_label",
}

RULE_COLLECTIONS = ("functions", "contexts", "versions")
ID_COLLECTIONS = ("metrics", "functions", "contexts", "versions", "categories", "files")


def _normalize_entry(entry: Any) -> Any:
    if not isinstance(entry, dict):
        return entry
    out = dict(entry)
    for synonym, canonical in RULE_KEY_SYNONYMS.items():
        if synonym not in out:
            continue
        value = out.pop(synonym)
        # Canonical key wins when both are present
        out.setdefault(canonical, value)
    return out


def _normalize_list(entries: Any) -> Any:
    if not isinstance(entries, list):
        return entries
    return [_normalize_entry(e) for e in entries]


def normalize_ruleset_document(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize a raw ruleset document to canonical keys.

    - Rule entries (functions, contexts, versions and the nested entries of
      file rules) accept ``match``/``Match`` and ``notMatch``/``NotMatch``.
    - File rules accept ``matchFile``/``MatchFile``.
    - Metrics accept ``axis`` for ``axis_label``.

    The input mapping is not modified.
    """
    params = copy.deepcopy(raw)

    for key in RULE_COLLECTIONS + ("metrics",):
        if key in params:
            params[key] = _normalize_list(params[key])

    files = params.get("files")
    if isinstance(files, list):
        normalized: List[Any] = []
        for entry in files:
            entry = _normalize_entry(entry)
            if isinstance(entry, dict):
                for nested in ("contexts", "versions"):
                    if nested in entry:
                        entry[nested] = _normalize_list(entry[nested])
            normalized.append(entry)
        params["files"] = normalized

    return params


def _merge_values(base: Any, override: Any) -> Any:
    if isinstance(base, dict) and isinstance(override, dict):
        merged = copy.deepcopy(base)
        for key, value in override.items():
            merged[key] = _merge_values(base.get(key), value)
        return merged
    return copy.deepcopy(override)


def _merge_by_id(base: Any, override: Any) -> Any:
    if not isinstance(base, list) or not isinstance(override, list):
        return copy.deepcopy(override)
    defaults_by_id = {
        e["id"]: e
        for e in base
        if isinstance(e, dict) and isinstance(e.get("id"), str)
    }
    merged: List[Any] = []
    for entry in override:
        entry_id = entry.get("id") if isinstance(entry, dict) else None
        if isinstance(entry_id, str) and entry_id in defaults_by_id:
            merged.append(_merge_values(defaults_by_id[entry_id], entry))
        else:
            merged.append(copy.deepcopy(entry))
    return merged


def merge_documents(defaults: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay a user document on the default document.

    Mappings merge recursively, the user value winning per field. An
    id-bearing list provided by the user replaces the default list, each user
    entry inheriting the fields it omits from the default entry with the same
    ``id``. Keys absent from the user document keep their default value.
    """
    merged = copy.deepcopy(defaults)
    for key, value in user.items():
        if key in ID_COLLECTIONS:
            merged[key] = _merge_by_id(defaults.get(key), value)
        else:
            merged[key] = _merge_values(defaults.get(key), value)
    return merged
