"""Dashboard provisioning — catalog, matching, selection, report."""

from provisioner.dashboards.catalog import (
    DASHBOARD_SERVICE_MAP,
    all_dashboard_templates,
    get_dashboard_template,
)
from provisioner.dashboards.matcher import (
    aggregate_to_selections,
    apply_selection,
    group_dashboard_matches_by_service,
    match_dashboard_templates,
)
from provisioner.dashboards.report import DashboardReportData, generate_dashboard_report
from provisioner.dashboards.types import (
    DashboardMatch,
    DashboardMatchingResult,
    DashboardSelection,
    DashboardTemplate,
)

__all__ = [
    "DASHBOARD_SERVICE_MAP",
    "DashboardMatch",
    "DashboardMatchingResult",
    "DashboardReportData",
    "DashboardSelection",
    "DashboardTemplate",
    "aggregate_to_selections",
    "all_dashboard_templates",
    "apply_selection",
    "generate_dashboard_report",
    "get_dashboard_template",
    "group_dashboard_matches_by_service",
    "match_dashboard_templates",
]
