"""CloudWatch coverage validation — do discovered resources actually emit metrics?

Pure functions over :class:`DiscoveredResources` plus the dimension values
Grafana's CloudWatch data source reports. Each (service, region) group gets a
status; every resource CloudWatch does not know about gets a diagnosed root
cause built only from state the discovery snapshot verified.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from provisioner.core.types import AwsServiceType
from provisioner.discovery.resources import (
    AlbResource,
    AwsResource,
    DiscoveredResources,
    Ec2Resource,
    EcsResource,
    ElastiCacheResource,
    LambdaResource,
    NlbResource,
    RdsResource,
    S3Resource,
)


class CloudWatchMetricConfig(BaseModel):
    """Where a service's resources show up in CloudWatch."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    dimension_key: str
    metric_name: str


SERVICE_CLOUDWATCH_CONFIG: dict[AwsServiceType, CloudWatchMetricConfig] = {
    AwsServiceType.EC2: CloudWatchMetricConfig(
        namespace="AWS/EC2", dimension_key="InstanceId", metric_name="CPUUtilization",
    ),
    AwsServiceType.RDS: CloudWatchMetricConfig(
        namespace="AWS/RDS", dimension_key="DBInstanceIdentifier", metric_name="CPUUtilization",
    ),
    AwsServiceType.LAMBDA: CloudWatchMetricConfig(
        namespace="AWS/Lambda", dimension_key="FunctionName", metric_name="Invocations",
    ),
    AwsServiceType.ECS: CloudWatchMetricConfig(
        namespace="AWS/ECS", dimension_key="ServiceName", metric_name="CPUUtilization",
    ),
    AwsServiceType.EKS: CloudWatchMetricConfig(
        namespace="AWS/EKS", dimension_key="ClusterName", metric_name="cluster_failed_node_count",
    ),
    AwsServiceType.ELASTICACHE: CloudWatchMetricConfig(
        namespace="AWS/ElastiCache", dimension_key="CacheClusterId", metric_name="CPUUtilization",
    ),
    AwsServiceType.ALB: CloudWatchMetricConfig(
        namespace="AWS/ApplicationELB", dimension_key="LoadBalancer", metric_name="RequestCount",
    ),
    AwsServiceType.NLB: CloudWatchMetricConfig(
        namespace="AWS/NetworkELB", dimension_key="LoadBalancer", metric_name="ProcessedBytes",
    ),
    AwsServiceType.APIGATEWAY: CloudWatchMetricConfig(
        namespace="AWS/ApiGateway", dimension_key="ApiName", metric_name="Count",
    ),
    AwsServiceType.S3: CloudWatchMetricConfig(
        namespace="AWS/S3", dimension_key="BucketName", metric_name="NumberOfObjects",
    ),
    AwsServiceType.SQS: CloudWatchMetricConfig(
        namespace="AWS/SQS", dimension_key="QueueName", metric_name="NumberOfMessagesReceived",
    ),
}

# Aurora publishes per cluster, not per instance
AURORA_CLOUDWATCH_CONFIG = CloudWatchMetricConfig(
    namespace="AWS/RDS", dimension_key="DBClusterIdentifier", metric_name="CPUUtilization",
)


class ValidationRootCause(StrEnum):
    """Why a discovered resource has no CloudWatch metrics."""

    PERMISSIONS = "permissions"
    NO_ACTIVITY = "no_activity"
    CONFIG_REQUIRED = "config_required"
    EDGE_FUNCTION = "edge_function"
    STOPPED_RESOURCE = "stopped_resource"
    UNKNOWN = "unknown"


class ValidationStatus(StrEnum):
    OK = "ok"
    PARTIAL = "partial"
    NONE = "none"
    EMPTY = "empty"


class ResourceDiagnostic(BaseModel):
    model_config = ConfigDict(frozen=True)

    resource: AwsResource
    root_cause: ValidationRootCause
    recommendation: str


class ServiceValidationResult(BaseModel):
    """Validation outcome for one (service, region) group."""

    model_config = ConfigDict(frozen=True)

    service: AwsServiceType
    region: str
    discovered_count: int
    cloudwatch_count: int
    matched_resources: tuple[AwsResource, ...] = ()
    unmatched_resources: tuple[AwsResource, ...] = ()
    status: ValidationStatus
    namespace_accessible: bool = True
    diagnostics: tuple[ResourceDiagnostic, ...] = ()


class ValidationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    results: tuple[ServiceValidationResult, ...] = ()
    total_discovered: int = 0
    total_matched: int = 0
    total_unmatched: int = 0
    has_issues: bool = False
    # discovered > 0 but nothing matched for some group
    has_critical_issues: bool = False

    def root_cause_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for result in self.results:
            for diag in result.diagnostics:
                counts[diag.root_cause.value] = counts.get(diag.root_cause.value, 0) + 1
        return counts


class ValidationGroup(BaseModel):
    """Resources validated together against one dimension lookup."""

    model_config = ConfigDict(frozen=True)

    service: AwsServiceType
    region: str
    config: CloudWatchMetricConfig
    resources: tuple[AwsResource, ...]


def cloudwatch_config_for_resource(resource: AwsResource) -> CloudWatchMetricConfig:
    if isinstance(resource, RdsResource) and resource.is_aurora:
        return AURORA_CLOUDWATCH_CONFIG
    return SERVICE_CLOUDWATCH_CONFIG[AwsServiceType(resource.service)]


def cloudwatch_identifier(resource: AwsResource) -> str:
    """Dimension value CloudWatch uses for *resource*."""
    if isinstance(resource, (AlbResource, NlbResource)):
        # LoadBalancer dimension is the ARN suffix: app/<name>/<id> or net/<name>/<id>
        _, sep, suffix = resource.arn.partition(":loadbalancer/")
        return suffix if sep and suffix else resource.name
    if resource.service in ("ec2", "rds", "elasticache"):
        return resource.id
    return resource.name


def cloudwatch_identifiers(resource: AwsResource) -> list[str]:
    """All dimension values that may identify *resource*.

    Lambda@Edge replicas report as ``<region>.<function>``.
    """
    primary = cloudwatch_identifier(resource)
    if resource.service == "lambda":
        return [primary, f"{resource.region}.{primary}"]
    return [primary]


def _diagnostic(
    resource: AwsResource, cause: ValidationRootCause, recommendation: str,
) -> ResourceDiagnostic:
    return ResourceDiagnostic(resource=resource, root_cause=cause, recommendation=recommendation)


def diagnose_unmatched_resource(
    resource: AwsResource, namespace_accessible: bool = True,
) -> ResourceDiagnostic:
    """Pick the root cause the resource's own state can confirm."""
    if not namespace_accessible:
        return _diagnostic(
            resource, ValidationRootCause.PERMISSIONS,
            "Check IAM role permissions for cloudwatch:GetMetricData and cloudwatch:ListMetrics",
        )

    if isinstance(resource, Ec2Resource):
        if resource.state != "running":
            return _diagnostic(
                resource, ValidationRootCause.STOPPED_RESOURCE,
                f"EC2 instance is {resource.state} - only running instances emit metrics",
            )
        return _diagnostic(
            resource, ValidationRootCause.UNKNOWN,
            "Instance is running but no metrics found - may be newly launched (wait 5 min)",
        )

    if isinstance(resource, RdsResource):
        if resource.status != "available":
            return _diagnostic(
                resource, ValidationRootCause.STOPPED_RESOURCE,
                f'RDS instance status is "{resource.status}" - only available instances emit metrics',
            )
        if resource.is_aurora:
            return _diagnostic(
                resource, ValidationRootCause.UNKNOWN,
                "Aurora cluster is available - verify DBClusterIdentifier dimension is being queried",
            )
        return _diagnostic(
            resource, ValidationRootCause.UNKNOWN,
            "RDS instance is available but no metrics found - may be newly created",
        )

    if isinstance(resource, LambdaResource):
        if resource.is_edge_function:
            return _diagnostic(
                resource, ValidationRootCause.EDGE_FUNCTION,
                "Lambda@Edge function - metrics appear in us-east-1 as "
                f'"{resource.region}.{resource.name}"',
            )
        return _diagnostic(
            resource, ValidationRootCause.NO_ACTIVITY,
            "Lambda function has not been invoked - metrics appear after first invocation",
        )

    if isinstance(resource, EcsResource):
        if resource.resource_type == "service":
            if not resource.container_insights_enabled:
                return _diagnostic(
                    resource, ValidationRootCause.CONFIG_REQUIRED,
                    f'Container Insights is DISABLED on cluster "{resource.cluster_name}" '
                    "- enable it for CloudWatch metrics",
                )
            if resource.running_count == 0:
                return _diagnostic(
                    resource, ValidationRootCause.STOPPED_RESOURCE,
                    f"ECS service has 0 running tasks (desired: {resource.desired_count})",
                )
        return _diagnostic(
            resource, ValidationRootCause.UNKNOWN,
            "ECS resource exists but no metrics found - Container Insights may need enabling",
        )

    if isinstance(resource, S3Resource):
        if not resource.has_request_metrics:
            return _diagnostic(
                resource, ValidationRootCause.CONFIG_REQUIRED,
                "S3 request metrics are NOT ENABLED on this bucket - enable in bucket properties",
            )
        return _diagnostic(
            resource, ValidationRootCause.UNKNOWN,
            "S3 bucket has request metrics enabled but no data - may be newly configured",
        )

    if isinstance(resource, (AlbResource, NlbResource)):
        kind = resource.service.upper()
        if resource.state != "active":
            return _diagnostic(
                resource, ValidationRootCause.STOPPED_RESOURCE,
                f'{kind} state is "{resource.state}" - only active load balancers emit metrics',
            )
        return _diagnostic(
            resource, ValidationRootCause.NO_ACTIVITY,
            f"{kind} is active but no metrics - has not received traffic yet",
        )

    if isinstance(resource, ElastiCacheResource):
        if resource.status != "available":
            return _diagnostic(
                resource, ValidationRootCause.STOPPED_RESOURCE,
                f'ElastiCache status is "{resource.status}" - only available clusters emit metrics',
            )
        return _diagnostic(
            resource, ValidationRootCause.UNKNOWN,
            "ElastiCache is available but no metrics found",
        )

    if resource.service == "apigateway":
        return _diagnostic(
            resource, ValidationRootCause.NO_ACTIVITY,
            "API Gateway only emits metrics after receiving API calls",
        )
    if resource.service == "eks":
        return _diagnostic(
            resource, ValidationRootCause.CONFIG_REQUIRED,
            "EKS requires Container Insights to be enabled for CloudWatch metrics",
        )
    if resource.service == "sqs":
        return _diagnostic(
            resource, ValidationRootCause.NO_ACTIVITY,
            "SQS queue has not received messages",
        )
    return _diagnostic(
        resource, ValidationRootCause.UNKNOWN,
        "Unable to determine root cause - resource may be newly created",
    )


def validate_resources(
    resources: Sequence[AwsResource],
    dimension_values: Sequence[str],
    service: AwsServiceType,
    region: str,
    namespace_accessible: bool = True,
) -> ServiceValidationResult:
    """Split one group into resources CloudWatch reports and those it does not.

    Identifier comparison is case-insensitive.
    """
    if not resources:
        return ServiceValidationResult(
            service=service,
            region=region,
            discovered_count=0,
            cloudwatch_count=len(dimension_values),
            status=ValidationStatus.EMPTY,
            namespace_accessible=namespace_accessible,
        )

    known = {v.lower() for v in dimension_values}
    matched: list[AwsResource] = []
    unmatched: list[AwsResource] = []
    for resource in resources:
        if any(i.lower() in known for i in cloudwatch_identifiers(resource)):
            matched.append(resource)
        else:
            unmatched.append(resource)

    if len(matched) == len(resources):
        status = ValidationStatus.OK
    elif matched:
        status = ValidationStatus.PARTIAL
    else:
        status = ValidationStatus.NONE

    return ServiceValidationResult(
        service=service,
        region=region,
        discovered_count=len(resources),
        cloudwatch_count=len(dimension_values),
        matched_resources=tuple(matched),
        unmatched_resources=tuple(unmatched),
        status=status,
        namespace_accessible=namespace_accessible,
        diagnostics=tuple(diagnose_unmatched_resource(r, namespace_accessible) for r in unmatched),
    )


def summarize_validation(results: Iterable[ServiceValidationResult]) -> ValidationSummary:
    results = tuple(results)
    has_issues = any(r.status in (ValidationStatus.PARTIAL, ValidationStatus.NONE) for r in results)
    has_critical = any(
        r.status == ValidationStatus.NONE and r.discovered_count > 0 for r in results
    )
    return ValidationSummary(
        results=results,
        total_discovered=sum(r.discovered_count for r in results),
        total_matched=sum(len(r.matched_resources) for r in results),
        total_unmatched=sum(len(r.unmatched_resources) for r in results),
        has_issues=has_issues,
        has_critical_issues=has_critical,
    )


def group_for_validation(resources: DiscoveredResources) -> list[ValidationGroup]:
    """(service, region) groups to look up; RDS splits into Aurora and standard.

    Order follows service declaration order, then first appearance of each region.
    """
    groups: list[ValidationGroup] = []
    for service in resources.services_present():
        by_region: dict[str, list[AwsResource]] = {}
        for r in resources.resources_for(service):
            by_region.setdefault(r.region, []).append(r)

        for region, items in by_region.items():
            if service == AwsServiceType.RDS:
                aurora = [r for r in items if isinstance(r, RdsResource) and r.is_aurora]
                standard = [r for r in items if not (isinstance(r, RdsResource) and r.is_aurora)]
                buckets = [(AURORA_CLOUDWATCH_CONFIG, aurora), (SERVICE_CLOUDWATCH_CONFIG[service], standard)]
            else:
                buckets = [(SERVICE_CLOUDWATCH_CONFIG[service], items)]

            for config, bucket in buckets:
                if bucket:
                    groups.append(ValidationGroup(
                        service=service, region=region, config=config, resources=tuple(bucket),
                    ))
    return groups


def filter_validated_resources(
    resources: DiscoveredResources,
    results: Iterable[ServiceValidationResult],
) -> DiscoveredResources:
    """Keep only resources some validation result matched."""
    matched = {
        (r.service, r.region, r.id)
        for result in results
        for r in result.matched_resources
    }
    return DiscoveredResources.from_resources(
        r for r in resources.all_resources() if (r.service, r.region, r.id) in matched
    )
