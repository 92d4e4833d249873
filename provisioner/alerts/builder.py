"""Alert building — binds pending alerts to data sources and emits final rules."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from provisioner.alerts.templates import AlertTemplate
from provisioner.alerts.types import (
    AlertConfiguration,
    AlertQuery,
    AlertRule,
    BuildResult,
    CloudWatchQuery,
    MatchedResource,
    PendingAlert,
    PrometheusQuery,
)
from provisioner.core.types import (
    AwsServiceType,
    Customer,
    DataSourceRef,
    DataSourceType,
    Threshold,
)
from provisioner.grafana.types import GrafanaDataSource

DEFAULT_CLOUDWATCH_PERIOD = 300

# Dimension identifying a single resource when the template names none
SERVICE_DIMENSION_MAP: dict[AwsServiceType, str] = {
    AwsServiceType.EC2: "InstanceId",
    AwsServiceType.RDS: "DBInstanceIdentifier",
    AwsServiceType.LAMBDA: "FunctionName",
    AwsServiceType.ECS: "ServiceName",
    AwsServiceType.EKS: "ClusterName",
    AwsServiceType.ELASTICACHE: "CacheClusterId",
    AwsServiceType.ALB: "LoadBalancer",
    AwsServiceType.NLB: "LoadBalancer",
    AwsServiceType.APIGATEWAY: "ApiName",
    AwsServiceType.S3: "BucketName",
    AwsServiceType.SQS: "QueueName",
}

_RESOURCE_PLACEHOLDER = re.compile(r"\{\{\s*\$resource_(?:pattern|name)\s*\}\}")


def resolve_data_sources(
    data_sources: Iterable[GrafanaDataSource],
) -> dict[DataSourceType, DataSourceRef]:
    """Keep the first data source Grafana lists for each canonical type.

    Grafana's ordering is authoritative; later duplicates are never used.
    """
    by_type: dict[DataSourceType, DataSourceRef] = {}
    for ds in data_sources:
        ref = ds.to_ref()
        if ref is not None and ref.type not in by_type:
            by_type[ref.type] = ref
    return by_type


def _dimension_key(template: AlertTemplate, dimensions: Sequence[str]) -> str:
    if dimensions:
        return dimensions[0]
    return SERVICE_DIMENSION_MAP.get(template.service, "Name")


def _interpolate_prometheus(query: str, resources: Sequence[MatchedResource]) -> str:
    pattern = "|".join(r.name for r in resources)
    return _RESOURCE_PLACEHOLDER.sub(lambda _: pattern, query)


def build_query(
    template: AlertTemplate,
    configuration: AlertConfiguration,
    resources: Sequence[MatchedResource],
    region: str,
) -> AlertQuery:
    """Build the query for the configured data source type.

    Raises:
        ValueError: if the template has no config for that type.
    """
    sources = template.data_sources
    if configuration.data_source_type == DataSourceType.CLOUDWATCH and sources.cloudwatch:
        cw = sources.cloudwatch
        return CloudWatchQuery(
            namespace=cw.namespace,
            metric_name=cw.metric,
            statistic=cw.statistic,
            dimension_key=_dimension_key(template, cw.dimensions),
            period=cw.period or DEFAULT_CLOUDWATCH_PERIOD,
            region=region,
        )

    if configuration.data_source_type == DataSourceType.PROMETHEUS and sources.prometheus:
        return PrometheusQuery(
            expr=_interpolate_prometheus(sources.prometheus.query, resources),
        )

    raise ValueError(f"No valid data source configuration for template {template.id}")


def build_labels(
    template: AlertTemplate,
    configuration: AlertConfiguration,
    customer: Customer,
) -> dict[str, str]:
    """Template labels < configured labels < routing labels < customer labels."""
    labels: dict[str, str] = {
        **template.labels,
        **configuration.labels,
        "customer": customer.name,
        "service": template.service.value,
        "severity": configuration.severity.value,
    }
    if customer.labels:
        labels.update(customer.labels)
    return labels


def build_annotations(template: AlertTemplate) -> dict[str, str]:
    annotations = {
        "summary": template.annotations.summary,
        "description": template.annotations.description,
    }
    if template.annotations.runbook_url:
        annotations["runbook_url"] = template.annotations.runbook_url
    return annotations


class AlertBuilder:
    """Builds :class:`AlertRule` objects from pending alerts."""

    def build_alert(
        self,
        pending: PendingAlert,
        customer: Customer,
        data_source: DataSourceRef,
    ) -> AlertRule:
        template = pending.template
        config = pending.configuration
        region_suffix = f" ({pending.region})" if len(customer.regions) > 1 else ""

        return AlertRule(
            id=f"{template.id}-{pending.region}",
            title=f"{template.name}{region_suffix}",
            description=template.description,
            folder=customer.grafana_folder,
            rule_group=f"{template.service.value.upper()}-Alerts",
            severity=config.severity,
            threshold=Threshold(
                value=config.threshold,
                operator=template.defaults.threshold_operator,
            ),
            evaluation_interval=config.evaluation_interval,
            for_duration=config.for_duration,
            data_source=data_source,
            query=build_query(template, config, pending.resources, pending.region),
            labels=build_labels(template, config, customer),
            annotations=build_annotations(template),
            contact_point=config.contact_point,
            region=pending.region,
            source_template=template,
            covered_resources=pending.resources,
        )

    def build_alerts(
        self,
        pending_alerts: Sequence[PendingAlert],
        customer: Customer,
        data_sources: Iterable[GrafanaDataSource],
    ) -> BuildResult:
        """Build every pending alert whose data source type is available.

        Alerts without a matching data source are skipped and reported in
        ``warnings``; the rest keep their input order.
        """
        by_type = resolve_data_sources(data_sources)
        alerts: list[AlertRule] = []
        warnings: list[str] = []

        for pending in pending_alerts:
            ds_type = pending.configuration.data_source_type
            ref = by_type.get(ds_type)
            if ref is None:
                warnings.append(
                    f"No {ds_type.value} data source available, "
                    f"skipping alert {pending.template.id} ({pending.region})"
                )
                continue
            alerts.append(self.build_alert(pending, customer, ref))

        return BuildResult(alerts=tuple(alerts), warnings=tuple(warnings))
