"""Markdown report documenting dashboard deployment decisions."""

from __future__ import annotations

import datetime

from pydantic import BaseModel, Field

from provisioner.dashboards.matcher import aggregate_to_selections
from provisioner.dashboards.types import DashboardMatch, DashboardSelection


class DashboardReportData(BaseModel):
    """Everything the report needs from one dashboard run."""

    customer_name: str
    folder_path: str
    matches: list[DashboardMatch] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)
    selections: list[DashboardSelection] = Field(default_factory=list)
    grafana_url: str
    datasource_uid: str = ""
    default_region: str = "us-east-1"
    generated_at: datetime.datetime | None = None


def _service_rows(selections: list[DashboardSelection]) -> list[str]:
    rows = [
        "| Service | Dashboard Title | Template | Regions | Resources |",
        "|---------|-----------------|----------|---------|-----------|",
    ]
    for s in selections:
        if s.template is None:
            continue
        rows.append(
            f"| {s.service.upper()} | {s.template.title} | {s.template.filename} "
            f"| {', '.join(s.regions)} | {s.total_resource_count} |"
        )
    return rows


def generate_dashboard_report(data: DashboardReportData) -> str:
    """Render the deployment report as markdown."""
    generated = data.generated_at or datetime.datetime.now(datetime.UTC)
    deployed = [s for s in data.selections if s.selected and s.has_template]
    skipped = [s for s in data.selections if not s.selected and s.has_template]
    discovered = [
        s for s in aggregate_to_selections(data.matches, []) if s.has_template
    ]
    template_by_service = {s.service: s.template for s in data.selections if s.selected}

    lines: list[str] = [
        "# Dashboard Deployment Report",
        "",
        f"**Customer:** {data.customer_name}",
        f"**Generated:** {generated.strftime('%Y-%m-%d %H:%M %Z')}",
        "",
        "---",
        "",
        "## Configuration",
        "",
        "| Setting | Value |",
        "|---------|-------|",
        f"| Grafana URL | {data.grafana_url} |",
        f"| Folder Path | {data.folder_path} |",
        f"| Datasource UID | {data.datasource_uid} |",
        f"| Default Region | {data.default_region} |",
        "",
        "---",
        "",
        "## Summary",
        "",
        f"- **Services Discovered:** {len(discovered) + len(data.gaps)}",
        f"- **Dashboard Templates Available:** {len(deployed) + len(skipped)}",
        f"- **Dashboards Deployed:** {len(deployed)}",
        f"- **Dashboards Skipped:** {len(skipped)}",
        f"- **Services Without Templates:** {len(data.gaps)}",
        "",
    ]

    if deployed:
        lines += ["---", "", "## Deployed Dashboards", ""]
        lines += _service_rows(deployed)
        lines.append("")

    if skipped:
        lines += ["---", "", "## Skipped Dashboards", ""]
        lines.append(
            "The following dashboards had templates available but were not "
            "selected for deployment:"
        )
        lines.append("")
        lines += _service_rows(skipped)
        lines.append("")

    if data.gaps:
        lines += ["---", "", "## Services Without Dashboard Templates", ""]
        lines += [f"- **{gap.upper()}**" for gap in data.gaps]
        lines += ["", "*Consider creating dashboard templates for these services.*", ""]

    lines += ["---", "", "## Resource Details by Service", ""]
    for s in discovered:
        template = template_by_service.get(s.service)
        status = "Dashboard deployed" if template else "Not deployed"
        lines += [
            f"### {s.service.upper()}",
            "",
            f"- **Resources:** {s.total_resource_count}",
            f"- **Regions:** {', '.join(s.regions)}",
            f"- **Status:** {status}",
        ]
        if template is not None:
            lines += [
                f"- **Template:** {template.filename}",
                f"- **CloudWatch Namespace:** {template.namespace}",
                f"- **Dimension Key:** {template.dimension_key}",
            ]
        lines.append("")

    lines += ["---", "", "*Report generated by Grafana Provisioner*"]
    return "\n".join(lines)
