"""ProvisioningWorkflow — orchestrates discover → validate → match → customize → build → summarize."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from provisioner.alerts.builder import AlertBuilder, resolve_data_sources
from provisioner.alerts.customization import customize_alerts
from provisioner.alerts.matcher import TemplateMatcher
from provisioner.alerts.repository import TemplateRepositoryPort
from provisioner.alerts.summary import summarize_alerts
from provisioner.alerts.types import (
    AlertOverrides,
    AlertRule,
    AlertsSummary,
    TemplateMatchingResult,
)
from provisioner.core.exceptions import CredentialsError, TemplateRepositoryError
from provisioner.core.types import Customer, DataSourceRef, DataSourceType
from provisioner.dashboards.matcher import (
    aggregate_to_selections,
    apply_selection,
    match_dashboard_templates,
)
from provisioner.dashboards.types import DashboardMatchingResult, DashboardSelection
from provisioner.discovery.base import AwsDiscoveryPort
from provisioner.discovery.resources import DiscoveredResources
from provisioner.discovery.validation import (
    ServiceValidationResult,
    ValidationStatus,
    ValidationSummary,
    filter_validated_resources,
    group_for_validation,
    summarize_validation,
    validate_resources,
)
from provisioner.grafana.base import GrafanaPort


class ProvisioningResult(BaseModel):
    """Everything one alert provisioning run produced."""

    model_config = ConfigDict(frozen=True)

    customer: Customer
    account_id: str | None = None
    resources: DiscoveredResources
    # None when Grafana has no CloudWatch data source to validate against
    validation: ValidationSummary | None = None
    matching: TemplateMatchingResult
    alerts: tuple[AlertRule, ...] = ()
    summary: AlertsSummary
    warnings: tuple[str, ...] = ()


class DashboardPlan(BaseModel):
    """Dashboard matching result plus the per-service selections."""

    model_config = ConfigDict(frozen=True)

    customer: Customer
    resources: DiscoveredResources
    matching: DashboardMatchingResult
    selections: tuple[DashboardSelection, ...] = ()
    datasource_uid: str = ""


class ProvisioningWorkflow:
    """Runs the provisioning pipeline for one customer.

    Collaborators are injected; the workflow owns none of their lifecycles.

    Usage::

        async with GrafanaClient(settings.grafana) as grafana:
            workflow = ProvisioningWorkflow(discovery, grafana, repo, logger)
            result = await workflow.run(customer)
            plan = await workflow.run_dashboards(customer, resources=result.resources)
    """

    def __init__(
        self,
        discovery: AwsDiscoveryPort,
        grafana: GrafanaPort,
        templates: TemplateRepositoryPort,
        logger: structlog.stdlib.BoundLogger,
    ) -> None:
        self._discovery = discovery
        self._grafana = grafana
        self._templates = templates
        self._log = logger
        self._matcher = TemplateMatcher()
        self._builder = AlertBuilder()

    async def _discover(
        self, customer: Customer, regions: list[str] | None,
    ) -> tuple[str | None, DiscoveredResources]:
        creds = await self._discovery.validate_credentials()
        if not creds.valid:
            self._log.error("credentials_invalid", error=creds.error)
            raise CredentialsError(creds.error or "AWS credentials are not valid")
        self._log.info("credentials_validated", account_id=creds.account_id)

        target_regions = list(regions) if regions else list(customer.regions)
        resources = await self._discovery.discover_resources(target_regions)
        self._log.info(
            "discovery_complete",
            regions=target_regions,
            total=resources.total_count,
            services=[s.value for s in resources.services_present()],
        )
        return creds.account_id, resources

    async def validate_cloudwatch(
        self, resources: DiscoveredResources, data_source: DataSourceRef,
    ) -> ValidationSummary:
        """Check every discovered (service, region) group against CloudWatch.

        Lookups run one at a time; namespace health is fetched once per
        (namespace, region).
        """
        accessible: dict[tuple[str, str], bool] = {}
        results: list[ServiceValidationResult] = []

        for group in group_for_validation(resources):
            key = (group.config.namespace, group.region)
            if key not in accessible:
                health = await self._grafana.check_cloudwatch_namespace_health(
                    data_source.uid, group.config.namespace, group.region,
                )
                accessible[key] = health.has_metrics

            dimension = await self._grafana.get_cloudwatch_dimension_values(
                data_source.uid,
                group.config.namespace,
                group.config.metric_name,
                group.config.dimension_key,
                group.region,
            )
            result = validate_resources(
                group.resources, dimension.values, group.service, group.region, accessible[key],
            )
            if result.status in (ValidationStatus.PARTIAL, ValidationStatus.NONE):
                self._log.warning(
                    "cloudwatch_resources_unmatched",
                    service=result.service.value,
                    region=result.region,
                    status=result.status.value,
                    unmatched=[d.resource.id for d in result.diagnostics],
                    root_causes=sorted({d.root_cause.value for d in result.diagnostics}),
                )
            results.append(result)

        return summarize_validation(results)

    async def run(
        self,
        customer: Customer,
        overrides: Mapping[str, AlertOverrides] | None = None,
        regions: list[str] | None = None,
        validated_only: bool = False,
    ) -> ProvisioningResult:
        """Provision alert rules for *customer*.

        Args:
            customer: Target customer.
            overrides: Operator overrides keyed by template id.
            regions: Regions to discover; defaults to the customer's regions.
            validated_only: Match only resources CloudWatch reports metrics for.

        Raises:
            CredentialsError: Discovery reports invalid credentials.
            TemplateRepositoryError: The template library is missing or empty.
            GrafanaError: Listing Grafana data sources failed.
        """
        self._log.info("provisioning_started", customer=customer.name)
        account_id, resources = await self._discover(customer, regions)

        data_sources = await self._grafana.list_data_sources()
        self._log.info("data_sources_listed", count=len(data_sources))

        validation: ValidationSummary | None = None
        cloudwatch = resolve_data_sources(data_sources).get(DataSourceType.CLOUDWATCH)
        if cloudwatch is None:
            self._log.info("cloudwatch_validation_skipped", reason="no cloudwatch data source")
        else:
            validation = await self.validate_cloudwatch(resources, cloudwatch)
            self._log.info(
                "cloudwatch_validated",
                discovered=validation.total_discovered,
                matched=validation.total_matched,
                unmatched=validation.total_unmatched,
                critical=validation.has_critical_issues,
            )

        candidates = resources
        if validated_only and validation is not None:
            candidates = filter_validated_resources(resources, validation.results)

        templates = self._templates.load_all_templates()
        if not templates:
            raise TemplateRepositoryError(
                f"No alert templates found in {self._templates.source}"
            )

        matching = self._matcher.match(candidates, templates)
        self._log.info(
            "templates_matched",
            templates=len(templates),
            matches=len(matching.matches),
            gaps=list(matching.gaps),
        )

        pending = customize_alerts(matching.matches, customer, overrides)
        built = self._builder.build_alerts(pending, customer, data_sources)
        for warning in built.warnings:
            self._log.warning("alert_skipped", reason=warning)

        summary = summarize_alerts(built.alerts)
        for warning in summary.warnings:
            self._log.warning("summary_warning", reason=warning)

        self._log.info(
            "provisioning_complete",
            alerts=summary.total_count,
            critical=summary.by_severity.critical,
            skipped=len(built.warnings),
        )
        return ProvisioningResult(
            customer=customer,
            account_id=account_id,
            resources=resources,
            validation=validation,
            matching=matching,
            alerts=built.alerts,
            summary=summary,
            warnings=built.warnings + summary.warnings,
        )

    async def run_dashboards(
        self,
        customer: Customer,
        regions: list[str] | None = None,
        resources: DiscoveredResources | None = None,
        skip_services: Sequence[str] = (),
    ) -> DashboardPlan:
        """Match resources against the dashboard catalog.

        Discovery runs only when *resources* is not supplied. Services in
        *skip_services* stay in the plan but are deselected.
        """
        self._log.info("dashboard_matching_started", customer=customer.name)
        if resources is None:
            _, resources = await self._discover(customer, regions)

        matching = match_dashboard_templates(resources)
        selections = aggregate_to_selections(matching.matches, matching.gaps)

        skipped = set(skip_services)
        known = {s.service for s in selections}
        for service in sorted(skipped - known):
            self._log.warning("dashboard_skip_unknown", service=service)
        if skipped:
            selections = apply_selection(
                selections, [s.service for s in selections if s.service not in skipped],
            )

        cloudwatch = resolve_data_sources(
            await self._grafana.list_data_sources(),
        ).get(DataSourceType.CLOUDWATCH)

        self._log.info(
            "dashboards_matched",
            matches=len(matching.matches),
            gaps=list(matching.gaps),
            unused=len(matching.unused_templates),
            skipped=sorted(skipped & known),
        )
        return DashboardPlan(
            customer=customer,
            resources=resources,
            matching=matching,
            selections=tuple(selections),
            datasource_uid=cloudwatch.uid if cloudwatch is not None else "",
        )
