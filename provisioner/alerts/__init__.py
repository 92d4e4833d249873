"""Alert pipeline — templates, matching, customization, building, summary."""

from provisioner.alerts.builder import AlertBuilder, resolve_data_sources
from provisioner.alerts.customization import (
    customize_alerts,
    customize_match,
    merge_configuration,
    resolve_data_source_type,
)
from provisioner.alerts.matcher import TemplateMatcher
from provisioner.alerts.repository import YamlTemplateRepository
from provisioner.alerts.summary import summarize_alerts
from provisioner.alerts.templates import AlertTemplate
from provisioner.alerts.types import (
    AlertConfiguration,
    AlertOverrides,
    AlertRule,
    AlertsSummary,
    BuildResult,
    MatchedResource,
    PendingAlert,
    TemplateMatch,
    TemplateMatchingResult,
)

__all__ = [
    "AlertBuilder",
    "AlertConfiguration",
    "AlertOverrides",
    "AlertRule",
    "AlertTemplate",
    "AlertsSummary",
    "BuildResult",
    "MatchedResource",
    "PendingAlert",
    "TemplateMatch",
    "TemplateMatcher",
    "TemplateMatchingResult",
    "YamlTemplateRepository",
    "customize_alerts",
    "customize_match",
    "merge_configuration",
    "resolve_data_source_type",
    "resolve_data_sources",
    "summarize_alerts",
]
