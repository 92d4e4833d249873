"""Domain types for the alert pipeline: matches, pending alerts, rules, summary."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from provisioner.alerts.templates import AlertTemplate
from provisioner.core.types import (
    AlertSeverity,
    DataSourceRef,
    DataSourceType,
    Threshold,
)


class MatchedResource(BaseModel):
    """Minimal projection of a discovered resource attached to a match."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arn: str
    region: str


class TemplateMatch(BaseModel):
    """One template applied to every resource of its service in one region."""

    model_config = ConfigDict(frozen=True)

    template: AlertTemplate
    region: str
    resources: tuple[MatchedResource, ...]


class TemplateMatchingResult(BaseModel):
    """Matcher output. ``confirmed`` stays False until the operator reviews it."""

    model_config = ConfigDict(frozen=True)

    matches: tuple[TemplateMatch, ...] = ()
    gaps: tuple[str, ...] = ()
    unmatched_templates: tuple[AlertTemplate, ...] = ()
    confirmed: bool = False


# ── Customization ────────────────────────────────────────────────


class AlertOverrides(BaseModel):
    """Operator-supplied values; ``None`` means keep the template default."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    threshold: float | None = None
    evaluation_interval: str | None = None
    for_duration: str | None = None
    severity: AlertSeverity | None = None
    labels: dict[str, str] | None = None
    contact_point: str | None = None
    data_source_type: DataSourceType | None = None


class AlertConfiguration(BaseModel):
    """Template defaults merged with operator overrides."""

    model_config = ConfigDict(frozen=True)

    threshold: float
    evaluation_interval: str
    for_duration: str
    severity: AlertSeverity
    labels: dict[str, str] = Field(default_factory=dict)
    contact_point: str
    data_source_type: DataSourceType


class PendingAlert(BaseModel):
    """A match plus its configuration, not yet bound to a data source."""

    model_config = ConfigDict(frozen=True)

    template: AlertTemplate
    region: str
    resources: tuple[MatchedResource, ...]
    configuration: AlertConfiguration


# ── Built rules ──────────────────────────────────────────────────


class CloudWatchQuery(BaseModel):
    """CloudWatch query using a dimension wildcard so new resources are covered."""

    model_config = ConfigDict(frozen=True)

    type: Literal["cloudwatch"] = "cloudwatch"
    namespace: str
    metric_name: str
    statistic: str
    dimension_key: str
    dimension_values: tuple[str, ...] = ("*",)
    period: int = 300
    region: str


class PrometheusQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["prometheus"] = "prometheus"
    expr: str
    legend_format: str = "{{instance}}"


AlertQuery = Annotated[CloudWatchQuery | PrometheusQuery, Field(discriminator="type")]


class AlertRule(BaseModel):
    """Finished multi-dimensional alert rule, ready for script generation."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    folder: str
    rule_group: str
    severity: AlertSeverity
    threshold: Threshold
    evaluation_interval: str
    for_duration: str
    data_source: DataSourceRef
    query: AlertQuery
    labels: dict[str, str]
    annotations: dict[str, str]
    contact_point: str
    region: str
    source_template: AlertTemplate
    covered_resources: tuple[MatchedResource, ...]


class BuildResult(BaseModel):
    """Built rules plus one warning per skipped pending alert."""

    model_config = ConfigDict(frozen=True)

    alerts: tuple[AlertRule, ...] = ()
    warnings: tuple[str, ...] = ()


class SeverityCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    critical: int = 0
    warning: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.warning + self.info


class AlertsSummary(BaseModel):
    """Aggregate view of a rule set, with advisory warnings."""

    model_config = ConfigDict(frozen=True)

    total_count: int = 0
    by_service: dict[str, int] = Field(default_factory=dict)
    by_severity: SeverityCounts = SeverityCounts()
    warnings: tuple[str, ...] = ()
