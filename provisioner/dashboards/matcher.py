"""Dashboard matching — maps discovered services onto the dashboard catalog."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from provisioner.core.types import AwsServiceType
from provisioner.dashboards.catalog import DASHBOARD_SERVICE_MAP
from provisioner.dashboards.types import (
    DashboardMatch,
    DashboardMatchingResult,
    DashboardSelection,
    DashboardTemplate,
)
from provisioner.discovery.resources import AwsResource, DiscoveredResources, RdsResource

AURORA_SERVICE = "aurora"


def _count_by_region(resources: Sequence[AwsResource]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for r in resources:
        counts[r.region] = counts.get(r.region, 0) + 1
    return counts


def _service_buckets(
    service: AwsServiceType,
    resources: Sequence[AwsResource],
) -> list[tuple[str, list[AwsResource]]]:
    """Catalog keys to look up for a service; RDS splits into aurora and rds."""
    if service != AwsServiceType.RDS:
        return [(service.value, list(resources))]
    aurora = [r for r in resources if isinstance(r, RdsResource) and r.is_aurora]
    standard = [r for r in resources if not (isinstance(r, RdsResource) and r.is_aurora)]
    return [(AURORA_SERVICE, aurora), (service.value, standard)]


def match_dashboard_templates(
    resources: DiscoveredResources,
    templates: Mapping[str, DashboardTemplate] | None = None,
) -> DashboardMatchingResult:
    """Emit one match per (service, region) that has resources and a template."""
    catalog = DASHBOARD_SERVICE_MAP if templates is None else templates
    matches: list[DashboardMatch] = []
    gaps: list[str] = []
    seen_services: set[str] = set()

    for service in resources.services_present():
        # Any RDS resource marks the rds template as used, Aurora-only included
        seen_services.add(service.value)
        for key, bucket in _service_buckets(service, resources.resources_for(service)):
            if not bucket:
                continue
            seen_services.add(key)
            template = catalog.get(key)
            if template is None:
                if key not in gaps:
                    gaps.append(key)
                continue
            for region, count in _count_by_region(bucket).items():
                matches.append(DashboardMatch(
                    service=key,
                    region=region,
                    template=template,
                    resource_count=count,
                ))

    unused = tuple(key for key in catalog if key not in seen_services)
    return DashboardMatchingResult(
        matches=tuple(matches),
        gaps=tuple(gaps),
        unused_templates=unused,
        confirmed=len(matches) > 0,
    )


def group_dashboard_matches_by_service(
    matches: Sequence[DashboardMatch],
) -> dict[str, list[DashboardMatch]]:
    grouped: dict[str, list[DashboardMatch]] = {}
    for m in matches:
        grouped.setdefault(m.service, []).append(m)
    return grouped


def aggregate_to_selections(
    matches: Sequence[DashboardMatch],
    gaps: Sequence[str],
) -> list[DashboardSelection]:
    """Collapse per-region matches into one selection per service.

    Services with templates come first (selected by default), then gaps
    (never selected, no template).
    """
    selections: list[DashboardSelection] = []
    for service, service_matches in group_dashboard_matches_by_service(matches).items():
        regions = tuple(dict.fromkeys(m.region for m in service_matches))
        selections.append(DashboardSelection(
            service=service,
            template=service_matches[0].template,
            selected=True,
            has_template=True,
            regions=regions,
            total_resource_count=sum(m.resource_count for m in service_matches),
        ))

    covered = {s.service for s in selections}
    for gap in gaps:
        if gap in covered:
            continue
        covered.add(gap)
        selections.append(DashboardSelection(
            service=gap,
            template=None,
            selected=False,
            has_template=False,
        ))
    return selections


def apply_selection(
    selections: Sequence[DashboardSelection],
    chosen_services: Sequence[str],
) -> list[DashboardSelection]:
    """Mark exactly *chosen_services* as selected; gaps stay unselected."""
    chosen = set(chosen_services)
    return [
        s.model_copy(update={"selected": s.has_template and s.service in chosen})
        for s in selections
    ]
