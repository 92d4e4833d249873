"""Template matching — pairs discovered resources with the alert templates for their service."""

from __future__ import annotations

from collections.abc import Sequence

from provisioner.alerts.templates import AlertTemplate
from provisioner.alerts.types import MatchedResource, TemplateMatch, TemplateMatchingResult
from provisioner.core.types import AwsServiceType
from provisioner.discovery.resources import AwsResource, DiscoveredResources, RdsResource


def _project(resource: AwsResource) -> MatchedResource:
    return MatchedResource(
        id=resource.id,
        name=resource.name,
        arn=resource.arn,
        region=resource.region,
    )


def _group_by_region(
    resources: Sequence[AwsResource],
) -> dict[str, list[MatchedResource]]:
    """Bucket resources by region, regions in first-seen order."""
    grouped: dict[str, list[MatchedResource]] = {}
    for resource in resources:
        grouped.setdefault(resource.region, []).append(_project(resource))
    return grouped


def _candidates_for(
    template: AlertTemplate,
    service_resources: Sequence[AwsResource],
) -> list[AwsResource]:
    """Resources of the template's service that the template can cover.

    RDS is split: cluster-dimension templates cover Aurora, the rest cover
    standard instances.
    """
    if template.service != AwsServiceType.RDS:
        return list(service_resources)
    want_aurora = template.is_aurora_template
    return [
        r for r in service_resources
        if isinstance(r, RdsResource) and r.is_aurora == want_aurora
    ]


class TemplateMatcher:
    """Matches discovered resources against an alert template library.

    Emits one :class:`TemplateMatch` per (template, region) pair that has
    resources; a region without resources gets no alert.
    """

    def match(
        self,
        resources: DiscoveredResources,
        templates: Sequence[AlertTemplate],
    ) -> TemplateMatchingResult:
        matches: list[TemplateMatch] = []
        gaps: list[str] = []
        matched_template_ids: set[str] = set()

        for service in resources.services_present():
            service_resources = resources.resources_for(service)
            service_templates = [t for t in templates if t.service == service]

            if not service_templates:
                if service.value not in gaps:
                    gaps.append(service.value)
                continue

            for template in service_templates:
                by_region = _group_by_region(_candidates_for(template, service_resources))
                for region, region_resources in by_region.items():
                    matches.append(TemplateMatch(
                        template=template,
                        region=region,
                        resources=tuple(region_resources),
                    ))
                    matched_template_ids.add(template.id)

        unmatched = tuple(t for t in templates if t.id not in matched_template_ids)
        return TemplateMatchingResult(
            matches=tuple(matches),
            gaps=tuple(gaps),
            unmatched_templates=unmatched,
            confirmed=False,
        )


def group_matches_by_service(
    matches: Sequence[TemplateMatch],
) -> dict[AwsServiceType, list[TemplateMatch]]:
    grouped: dict[AwsServiceType, list[TemplateMatch]] = {}
    for m in matches:
        grouped.setdefault(m.template.service, []).append(m)
    return grouped


def group_matches_by_template(
    matches: Sequence[TemplateMatch],
) -> dict[str, list[TemplateMatch]]:
    grouped: dict[str, list[TemplateMatch]] = {}
    for m in matches:
        grouped.setdefault(m.template.id, []).append(m)
    return grouped


def filter_matches_by_service(
    matches: Sequence[TemplateMatch],
    service: AwsServiceType,
) -> list[TemplateMatch]:
    return [m for m in matches if m.template.service == service]
