"""Validated, indexed and immutable rule store.

The rule store is built once per run from a declarative ruleset document
(embedded defaults overlaid by a user document) and is read-only afterwards.
Building is a pure function: either a complete store is returned, or a
:class:`RulesetError` describing the first problem found is raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from ..config.models import (
    CategorySpec,
    FileSpec,
    MetricSpec,
    RenderSpec,
    RuleSpec,
    RulesetDocument,
    RulesetError,
    load_default_document,
    parse_document,
    read_document,
)
from .metrics import MetricName, all_metric_names
from .normalize import merge_documents, normalize_ruleset_document
from .rules import FileRule, MatchRule, compile_pattern, first_match, titleize

logger = logging.getLogger(__name__)

__all__ = [
    "CategoryDefinition",
    "Includes",
    "Metric",
    "RuleStore",
    "RulesetError",
    "build_rule_store",
    "load_defaults",
    "load_rule_store",
    "load_rule_store_from_string",
    "validate_document",
]

# Renderers draw at most two metric axes on a single chart
MAX_METRICS_PER_CHART = 2


@dataclass(frozen=True)
class Metric:
    """Metric definition with its display title and axis label."""

    id: MetricName
    title: str
    axis_label: str = ""


@dataclass(frozen=True)
class Includes:
    """Identifiers selected by a category, after default expansion."""

    functions: Tuple[str, ...] = ()
    versions: Tuple[str, ...] = ()
    contexts: Tuple[str, ...] = ()
    metrics: Tuple[MetricName, ...] = ()


@dataclass(frozen=True)
class CategoryDefinition:
    """One chart's worth of functions x versions x contexts x metrics."""

    id: str
    title: str
    includes: Includes = field(default_factory=Includes)


@dataclass(frozen=True, eq=False)
class RuleStore:  # pylint: disable=too-many-instance-attributes
    """Immutable aggregate of a validated ruleset plus lookup indices.

    Rule collections are tuples kept in declaration order, which is the order
    used by every first-match-wins scan. Indices are read-only mappings.
    """

    name: str = ""
    environment: str = ""
    render: RenderSpec = field(default_factory=RenderSpec)
    metrics: Tuple[Metric, ...] = ()
    functions: Tuple[MatchRule, ...] = ()
    contexts: Tuple[MatchRule, ...] = ()
    versions: Tuple[MatchRule, ...] = ()
    categories: Tuple[CategoryDefinition, ...] = ()
    files: Tuple[FileRule, ...] = ()
    function_index: Mapping[str, MatchRule] = field(
        default_factory=lambda: MappingProxyType({})
    )
    context_index: Mapping[str, MatchRule] = field(
        default_factory=lambda: MappingProxyType({})
    )
    version_index: Mapping[str, MatchRule] = field(
        default_factory=lambda: MappingProxyType({})
    )
    metric_index: Mapping[MetricName, Metric] = field(
        default_factory=lambda: MappingProxyType({})
    )

    # ---------------- Getters ----------------
    def get_function(self, function_id: str) -> Optional[MatchRule]:
        """Function definition by id, or None."""
        return self.function_index.get(function_id)

    def get_context(self, context_id: str) -> Optional[MatchRule]:
        """Context definition by id, or None."""
        return self.context_index.get(context_id)

    def get_version(self, version_id: str) -> Optional[MatchRule]:
        """Version definition by id, or None."""
        return self.version_index.get(version_id)

    def get_metric(self, metric_id: Union[MetricName, str]) -> Optional[Metric]:
        """Metric definition by name, or None (also for unknown names)."""
        name = MetricName.parse(metric_id)
        if name is None:
            return None
        return self.metric_index.get(name)

    # ---------------- Classification ----------------
    def find_function(self, name: str) -> Optional[str]:
        """Id of the first function whose rule matches the benchmark name."""
        return first_match(self.functions, name)

    def find_version(self, name: str) -> Optional[str]:
        """Id of the first version whose rule matches the benchmark name."""
        return first_match(self.versions, name)

    def find_context(self, name: str) -> Optional[str]:
        """Id of the first context whose rule matches the benchmark name."""
        return first_match(self.contexts, name)

    def find_file_rule(self, filename: str) -> Optional[FileRule]:
        """First file rule whose file pattern matches ``filename``."""
        for rule in self.files:
            if rule.match(filename) is not None:
                return rule
        return None

    def find_version_from_file(self, filename: str) -> Optional[str]:
        """Version id resolved by the first file rule matching ``filename``.

        Only the first matching file rule is consulted: when none of its
        nested versions match, no later file rule is tried.
        """
        rule = self.find_file_rule(filename)
        if rule is None:
            return None
        return rule.find_version(filename)

    def find_context_from_file(self, filename: str) -> Optional[str]:
        """Context id resolved by the first file rule matching ``filename``.

        Same single-file-rule policy as :meth:`find_version_from_file`.
        """
        rule = self.find_file_rule(filename)
        if rule is None:
            return None
        return rule.find_context(filename)

    def to_document(self) -> RulesetDocument:
        """Rebuild a ruleset document equivalent to this store."""

        def _rule(rule: MatchRule) -> RuleSpec:
            return RuleSpec(
                id=rule.id,
                title=rule.title,
                match_pattern=rule.match_pattern or None,
                not_match_pattern=rule.not_match_pattern or None,
            )

        return RulesetDocument(
            name=self.name,
            environment=self.environment,
            render=self.render,
            metrics=[
                MetricSpec(id=m.id.value, title=m.title, axis_label=m.axis_label)
                for m in self.metrics
            ],
            functions=[_rule(r) for r in self.functions],
            contexts=[_rule(r) for r in self.contexts],
            versions=[_rule(r) for r in self.versions],
            categories=[
                CategorySpec(
                    id=c.id,
                    title=c.title,
                    includes={
                        "functions": list(c.includes.functions),
                        "versions": list(c.includes.versions),
                        "contexts": list(c.includes.contexts),
                        "metrics": [m.value for m in c.includes.metrics],
                    },
                )
                for c in self.categories
            ],
            files=[
                FileSpec(
                    id=f.id,
                    match_file_pattern=f.match_file_pattern or None,
                    contexts=[_rule(r) for r in f.contexts],
                    versions=[_rule(r) for r in f.versions],
                )
                for f in self.files
            ],
        )


# ---------------- Validation ----------------


def _compile_rule(
    spec: RuleSpec, kind: str, position: str, title: str = ""
) -> MatchRule:
    try:
        return MatchRule.build(
            spec.id,
            title=spec.title or title,
            match_pattern=spec.match_pattern,
            not_match_pattern=spec.not_match_pattern,
            kind=kind,
        )
    except re.error as e:
        raise RulesetError(f"invalid regexp[{position} - {spec.id}]: {e}") from e


def _build_rules(
    specs: Sequence[RuleSpec], collection: str, kind: str
) -> Tuple[MatchRule, ...]:
    rules: List[MatchRule] = []
    seen: set[str] = set()
    for i, spec in enumerate(specs):
        if not spec.id:
            raise RulesetError(
                f"invalid {collection}: empty ID found: {collection}[{i}]"
            )
        if spec.id in seen:
            raise RulesetError(
                f"invalid {collection}: duplicate ID key found: {spec.id}"
            )
        seen.add(spec.id)
        rules.append(_compile_rule(spec, kind, f"{kind} {i}"))
    return tuple(rules)


def _build_metrics(specs: Sequence[MetricSpec]) -> Tuple[Metric, ...]:
    metrics: List[Metric] = []
    seen: set[MetricName] = set()
    for i, spec in enumerate(specs):
        if not spec.id:
            raise RulesetError(f"invalid metrics: empty ID found: metrics[{i}]")
        name = MetricName.parse(spec.id)
        if name is None:
            valid = ", ".join(m.value for m in all_metric_names())
            raise RulesetError(
                f"invalid metrics: invalid metric ID: metrics[{i}]={spec.id} "
                f"(should be one of {valid})"
            )
        if name in seen:
            raise RulesetError(f"invalid metrics: duplicate ID key found: {spec.id}")
        seen.add(name)
        metrics.append(
            Metric(
                id=name,
                title=spec.title or titleize(spec.id),
                axis_label=spec.axis_label,
            )
        )
    return tuple(metrics)


def _check_references(
    category_id: str,
    kind: str,
    refs: Sequence[str],
    index: Mapping[Any, Any],
) -> None:
    for j, ref in enumerate(refs):
        if ref not in index:
            raise RulesetError(
                f"invalid category: {kind[:-1]} ID not found "
                f"categories.{category_id}.includes.{kind}[{j}]={ref}"
            )


def _build_category(
    spec: CategorySpec,
    i: int,
    functions: Tuple[MatchRule, ...],
    contexts: Tuple[MatchRule, ...],
    versions: Tuple[MatchRule, ...],
    metric_index: Mapping[MetricName, Metric],
) -> CategoryDefinition:
    if not spec.id:
        raise RulesetError(f"invalid categories: empty ID found: categories[{i}]")

    inc = spec.includes
    _check_references(spec.id, "functions", inc.functions, {r.id: r for r in functions})
    _check_references(spec.id, "contexts", inc.contexts, {r.id: r for r in contexts})
    _check_references(spec.id, "versions", inc.versions, {r.id: r for r in versions})

    metrics: List[MetricName] = []
    for j, ref in enumerate(inc.metrics):
        name = MetricName.parse(ref)
        if name is None or name not in metric_index:
            raise RulesetError(
                "invalid category: metric ID not found "
                f"categories.{spec.id}.includes.metrics[{j}]={ref}"
            )
        metrics.append(name)
    if not metrics:
        raise RulesetError(
            "invalid category: at least 1 metric must be included in a category. "
            f"categories.{spec.id}.includes.metrics"
        )
    if len(metrics) > MAX_METRICS_PER_CHART:
        logger.warning(
            "ruleset.category_many_metrics",
            extra={"category": spec.id, "metrics": [m.value for m in metrics]},
        )

    # Empty selections default to every defined entry, in declaration order
    return CategoryDefinition(
        id=spec.id,
        title=spec.title or titleize(spec.id),
        includes=Includes(
            functions=tuple(inc.functions) or tuple(r.id for r in functions),
            versions=tuple(inc.versions) or tuple(r.id for r in versions),
            contexts=tuple(inc.contexts) or tuple(r.id for r in contexts),
            metrics=tuple(metrics),
        ),
    )


def _build_categories(
    specs: Sequence[CategorySpec],
    functions: Tuple[MatchRule, ...],
    contexts: Tuple[MatchRule, ...],
    versions: Tuple[MatchRule, ...],
    metric_index: Mapping[MetricName, Metric],
) -> Tuple[CategoryDefinition, ...]:
    categories: List[CategoryDefinition] = []
    seen: set[str] = set()
    for i, spec in enumerate(specs):
        category = _build_category(spec, i, functions, contexts, versions, metric_index)
        if category.id in seen:
            raise RulesetError(
                f"invalid categories: duplicate ID key found: {category.id}"
            )
        seen.add(category.id)
        categories.append(category)
    return tuple(categories)


def _build_nested(
    specs: Sequence[RuleSpec],
    i: int,
    collection: str,
    kind: str,
    index: Mapping[str, MatchRule],
) -> Tuple[MatchRule, ...]:
    rules: List[MatchRule] = []
    for j, spec in enumerate(specs):
        known = index.get(spec.id)
        if known is None:
            raise RulesetError(
                f"invalid file: {kind} ID not found "
                f"files[{i}].{collection}[{j}]={spec.id}"
            )
        rules.append(
            _compile_rule(
                spec, kind, f"files[{i}].{collection}[{j}]", title=known.title
            )
        )
    return tuple(rules)


def _build_files(
    specs: Sequence[FileSpec],
    context_index: Mapping[str, MatchRule],
    version_index: Mapping[str, MatchRule],
) -> Tuple[FileRule, ...]:
    files: List[FileRule] = []
    for i, spec in enumerate(specs):
        if not spec.id:
            raise RulesetError(f"invalid files: missing ID for file in files[{i}]")
        try:
            file_pattern = compile_pattern(spec.match_file_pattern)
        except re.error as e:
            raise RulesetError(
                f"invalid regexp[files[{i}] - {spec.id}]: {e}"
            ) from e
        if file_pattern is None:
            logger.warning(
                "ruleset.file_rule_without_pattern", extra={"file_rule": spec.id}
            )
        files.append(
            FileRule(
                id=spec.id,
                match_file_pattern=spec.match_file_pattern or "",
                contexts=_build_nested(
                    spec.contexts, i, "contexts", "context", context_index
                ),
                versions=_build_nested(
                    spec.versions, i, "versions", "version", version_index
                ),
                file_pattern=file_pattern,
            )
        )
    return tuple(files)


def validate_document(raw: Mapping[str, Any]) -> RulesetDocument:
    """Normalize and validate the shape of a raw (merged) document."""
    try:
        return RulesetDocument.model_validate(normalize_ruleset_document(dict(raw)))
    except ValidationError as e:
        raise RulesetError(f"invalid ruleset document: {e}") from e


def build_rule_store(document: Union[RulesetDocument, Mapping[str, Any]]) -> RuleStore:
    """Validate a ruleset document and build the immutable rule store.

    Parameters
    ----------
    document: RulesetDocument | Mapping
        A validated document, or a raw mapping validated on the fly. No
        defaults are applied here; see :func:`load_rule_store`.

    Raises
    ------
    RulesetError
        On the first validation failure; no partial store is returned.
    """
    if not isinstance(document, RulesetDocument):
        document = validate_document(document)

    functions = _build_rules(document.functions, "functions", "function")
    contexts = _build_rules(document.contexts, "contexts", "context")
    versions = _build_rules(document.versions, "versions", "version")
    metrics = _build_metrics(document.metrics)

    function_index = MappingProxyType({r.id: r for r in functions})
    context_index = MappingProxyType({r.id: r for r in contexts})
    version_index = MappingProxyType({r.id: r for r in versions})
    metric_index = MappingProxyType({m.id: m for m in metrics})

    categories = _build_categories(
        document.categories, functions, contexts, versions, metric_index
    )
    files = _build_files(document.files, context_index, version_index)

    store = RuleStore(
        name=document.name,
        environment=document.environment,
        render=document.render,
        metrics=metrics,
        functions=functions,
        contexts=contexts,
        versions=versions,
        categories=categories,
        files=files,
        function_index=function_index,
        context_index=context_index,
        version_index=version_index,
        metric_index=metric_index,
    )
    logger.debug(
        "ruleset.built",
        extra={
            "ruleset": store.name,
            "functions": len(functions),
            "contexts": len(contexts),
            "versions": len(versions),
            "metrics": len(metrics),
            "categories": len(categories),
            "files": len(files),
        },
    )
    return store


def _overlay(
    user: Mapping[str, Any], defaults: Optional[Mapping[str, Any]]
) -> Dict[str, Any]:
    base = load_default_document() if defaults is None else dict(defaults)
    return merge_documents(
        normalize_ruleset_document(base), normalize_ruleset_document(dict(user))
    )


def load_rule_store(
    path: Optional[Union[str, Path]] = None,
    *,
    defaults: Optional[Mapping[str, Any]] = None,
) -> RuleStore:
    """Load a ruleset file overlaid on the default document.

    Parameters
    ----------
    path: str | Path | None
        YAML or JSON ruleset document. When None, only defaults are used.
    defaults: Mapping | None
        Raw default document. The embedded defaults are used when None.

    Raises
    ------
    RulesetError
        If the file is missing or malformed, or the ruleset is invalid.
    """
    user = read_document(path) if path is not None else {}
    store = build_rule_store(_overlay(user, defaults))
    logger.info(
        "Ruleset loaded: '%s' (%d functions, %d categories)",
        path if path is not None else "<defaults>",
        len(store.functions),
        len(store.categories),
    )
    return store


def load_rule_store_from_string(
    text: str, *, defaults: Optional[Mapping[str, Any]] = None
) -> RuleStore:
    """Same as :func:`load_rule_store`, reading the user document from text."""
    return build_rule_store(_overlay(parse_document(text), defaults))


def load_defaults() -> RuleStore:
    """Build a rule store from the embedded default document alone."""
    return build_rule_store(load_default_document())
