"""Config models and loader.

This module defines Pydantic models for the declarative ruleset document and
for environment-based settings. The document models only check the shape of
the YAML tree; semantic validation (unique ids, references, regular
expressions) happens when the rule store is built from a validated document.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DOCUMENT_PATH = Path(__file__).with_name("defaults.yaml")


class RulesetError(ValueError):
    """Raised when a ruleset document cannot be loaded or validated."""


def _none_to_empty(value: Any) -> Any:
    return "" if value is None else value


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


class RuleSpec(BaseModel):
    """Function, version or context entry of a ruleset document.

    Attributes
    ----------
    id: str
        Identifier, unique within its collection.
    title: str
        Optional display title; derived from ``id`` when empty.
    match_pattern: Optional[str]
        Regular expression that must be found in the benchmark name.
    not_match_pattern: Optional[str]
        Regular expression that must not be found in the benchmark name.
    """

    id: str = ""
    title: str = ""
    match_pattern: Optional[str] = None
    not_match_pattern: Optional[str] = None

    empty_strings = field_validator("id", "title", mode="before")(_none_to_empty)


class MetricSpec(BaseModel):
    """Metric entry: one of the known metric names plus display settings."""

    id: str = ""
    title: str = ""
    axis_label: str = ""

    empty_strings = field_validator("id", "title", "axis_label", mode="before")(
        _none_to_empty
    )


class IncludesSpec(BaseModel):
    """Identifiers selected by a category. Empty lists mean "all"."""

    functions: List[str] = Field(default_factory=list)
    versions: List[str] = Field(default_factory=list)
    contexts: List[str] = Field(default_factory=list)
    metrics: List[str] = Field(default_factory=list)

    empty_lists = field_validator(
        "functions", "versions", "contexts", "metrics", mode="before"
    )(_none_to_list)


class CategorySpec(BaseModel):
    """Category entry: one chart's worth of selected series."""

    id: str = ""
    title: str = ""
    includes: IncludesSpec = Field(default_factory=IncludesSpec)

    empty_strings = field_validator("id", "title", mode="before")(_none_to_empty)


class FileSpec(BaseModel):
    """File rule entry enriching benchmarks from their input file name."""

    id: str = ""
    match_file_pattern: Optional[str] = None
    contexts: List[RuleSpec] = Field(default_factory=list)
    versions: List[RuleSpec] = Field(default_factory=list)

    empty_strings = field_validator("id", mode="before")(_none_to_empty)
    empty_lists = field_validator("contexts", "versions", mode="before")(
        _none_to_list
    )


class Scale(str, Enum):
    """Y-axis scaling strategy."""

    AUTO = "auto"
    LOG = "log"


class LegendPosition(str, Enum):
    """Where the chart legend is displayed."""

    NONE = "none"
    BOTTOM = "bottom"
    TOP = "top"
    LEFT = "left"
    RIGHT = "right"


class Orientation(str, Enum):
    """Chart bar direction."""

    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"


class LayoutSpec(BaseModel):
    """How charts are arranged on the page."""

    model_config = ConfigDict(frozen=True)

    horizontal: int = Field(1, ge=1)
    vertical: int = Field(0, ge=0)


class ScreenshotSpec(BaseModel):
    """Headless browser screenshot settings used by image renderers."""

    model_config = ConfigDict(frozen=True)

    height: int = Field(0, ge=0)
    width: int = Field(0, ge=0)
    sleep: str = ""


class RenderSpec(BaseModel):
    """Rendering settings carried through to the rendering collaborator."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    theme: str = "roma"
    layout: LayoutSpec = Field(default_factory=LayoutSpec)
    chart: str = "barchart"
    legend: LegendPosition = LegendPosition.BOTTOM
    scale: Scale = Scale.AUTO
    dual_scale: bool = False
    orientation: Orientation = Orientation.VERTICAL
    screenshot: ScreenshotSpec = Field(default_factory=ScreenshotSpec)


class RulesetDocument(BaseModel):
    """Top-level declarative ruleset document.

    Attributes
    ----------
    name: str
        Scenario name handed to renderers.
    environment: str
        Run-level environment string; overrides per-file environments.
    render: RenderSpec
        Rendering settings (not interpreted by the organizer).
    metrics, functions, contexts, versions, categories, files
        Rule collections, kept in declaration order.
    """

    name: str = ""
    environment: str = ""
    render: RenderSpec = Field(default_factory=RenderSpec)
    metrics: List[MetricSpec] = Field(default_factory=list)
    functions: List[RuleSpec] = Field(default_factory=list)
    contexts: List[RuleSpec] = Field(default_factory=list)
    versions: List[RuleSpec] = Field(default_factory=list)
    categories: List[CategorySpec] = Field(default_factory=list)
    files: List[FileSpec] = Field(default_factory=list)

    empty_strings = field_validator("name", "environment", mode="before")(
        _none_to_empty
    )
    empty_lists = field_validator(
        "metrics",
        "functions",
        "contexts",
        "versions",
        "categories",
        "files",
        mode="before",
    )(_none_to_list)

    def to_yaml(self) -> str:
        """Serialize the document to YAML accepted by the ruleset loader."""
        raw = self.model_dump(mode="json", exclude_none=True)
        return yaml.safe_dump(raw, sort_keys=False, allow_unicode=True)


def read_document(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML (or JSON) ruleset document into a raw mapping.

    Raises
    ------
    RulesetError
        If the file is missing, unreadable, malformed, or not a mapping.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RulesetError(f"reading ruleset {str(path)!r}: {e}") from e
    return parse_document(text, source=str(path))


def parse_document(text: str, source: str = "<string>") -> Dict[str, Any]:
    """Parse YAML text into a raw mapping; an empty document yields ``{}``."""
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RulesetError(f"parsing ruleset {source!r}: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RulesetError(
            f"parsing ruleset {source!r}: expected a mapping at the top level, "
            f"got {type(raw).__name__}"
        )
    return raw


def load_default_document() -> Dict[str, Any]:
    """Load the embedded default document shipped with the package."""
    return read_document(DEFAULT_DOCUMENT_PATH)


class BenchvizSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    config: str
        Path to the ruleset document. Defaults to "benchviz.yaml".
    strict: bool
        Turn classification warnings into fatal errors.
    environment: str
        Environment string overriding the ruleset and input environments.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="BENCHVIZ_")

    log_level: str = Field("INFO")
    config: str = Field("benchviz.yaml", description="Ruleset document path")
    strict: bool = Field(False, description="Escalate warnings to errors")
    environment: str = Field("", description="Run-level environment override")
