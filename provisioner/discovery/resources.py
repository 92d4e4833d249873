"""Discovered AWS resource types — one variant per service, tagged by ``service``."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from provisioner.core.types import AwsServiceType


class ResourceTag(BaseModel):
    """A single AWS resource tag."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str


class BaseAwsResource(BaseModel):
    """Fields every discovered resource carries."""

    model_config = ConfigDict(frozen=True)

    id: str
    arn: str
    name: str
    region: str
    tags: tuple[ResourceTag, ...] = ()


class Ec2Resource(BaseAwsResource):
    service: Literal["ec2"] = "ec2"
    instance_type: str
    state: str
    vpc_id: str | None = None
    subnet_id: str | None = None
    private_ip_address: str | None = None
    public_ip_address: str | None = None


class RdsResource(BaseAwsResource):
    service: Literal["rds"] = "rds"
    engine: str
    engine_version: str = ""
    instance_class: str = ""
    allocated_storage: int = 0
    multi_az: bool = False
    status: str = ""
    has_read_replicas: bool = False
    is_read_replica: bool = False
    has_storage_autoscaling: bool = False
    # Aurora clusters are monitored on DBClusterIdentifier instead of DBInstanceIdentifier
    is_aurora: bool = False
    cluster_identifier: str | None = None
    is_serverless: bool = False


class LambdaResource(BaseAwsResource):
    service: Literal["lambda"] = "lambda"
    runtime: str = ""
    memory_size: int = 128
    timeout: int = 3
    handler: str = ""
    last_modified: str = ""
    has_dlq_configured: bool = False
    is_edge_function: bool = False


class EcsResource(BaseAwsResource):
    """ECS cluster or service (``resource_type`` tells which)."""

    service: Literal["ecs"] = "ecs"
    resource_type: Literal["cluster", "service"] = "cluster"
    status: str = ""
    cluster_arn: str | None = None
    cluster_name: str | None = None
    running_tasks_count: int = 0
    pending_tasks_count: int = 0
    active_services_count: int = 0
    desired_count: int = 0
    running_count: int = 0
    launch_type: str | None = None
    has_auto_scaling: bool = False
    container_insights_enabled: bool = False


class EksResource(BaseAwsResource):
    service: Literal["eks"] = "eks"
    version: str = ""
    status: str = ""
    platform_version: str = ""
    endpoint: str | None = None


class ElastiCacheResource(BaseAwsResource):
    service: Literal["elasticache"] = "elasticache"
    engine: str = ""
    engine_version: str = ""
    cache_node_type: str = ""
    num_cache_nodes: int = 0
    status: str = ""
    has_replication: bool = False


class AlbResource(BaseAwsResource):
    service: Literal["alb"] = "alb"
    dns_name: str = ""
    scheme: str = ""
    vpc_id: str = ""
    state: str = ""


class NlbResource(BaseAwsResource):
    service: Literal["nlb"] = "nlb"
    dns_name: str = ""
    scheme: str = ""
    vpc_id: str = ""
    state: str = ""


class ApiGatewayResource(BaseAwsResource):
    service: Literal["apigateway"] = "apigateway"
    created_date: str = ""
    description: str | None = None
    api_key_source: str | None = None
    endpoint_configuration: str | None = None


class S3Resource(BaseAwsResource):
    service: Literal["s3"] = "s3"
    creation_date: str = ""
    has_request_metrics: bool = False


class SqsResource(BaseAwsResource):
    service: Literal["sqs"] = "sqs"
    queue_url: str = ""
    is_fifo: bool = False
    visibility_timeout: int | None = None
    message_retention_period: int | None = None
    has_dlq: bool = False


AwsResource = Annotated[
    Ec2Resource
    | RdsResource
    | LambdaResource
    | EcsResource
    | EksResource
    | ElastiCacheResource
    | AlbResource
    | NlbResource
    | ApiGatewayResource
    | S3Resource
    | SqsResource,
    Field(discriminator="service"),
]


class DiscoveredResources(BaseModel):
    """Snapshot of one discovery run: service → resources of that service.

    Services with no resources may be absent or map to an empty tuple.
    """

    model_config = ConfigDict(frozen=True)

    resources: dict[AwsServiceType, tuple[AwsResource, ...]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_service_keys(self) -> DiscoveredResources:
        for service, items in self.resources.items():
            for item in items:
                if item.service != service:
                    raise ValueError(
                        f"resource {item.id} has service {item.service} "
                        f"but is listed under {service}"
                    )
        return self

    @classmethod
    def from_resources(cls, items: Iterable[AwsResource]) -> DiscoveredResources:
        """Group a flat resource list by service, keeping input order."""
        grouped: dict[AwsServiceType, list[AwsResource]] = {}
        for item in items:
            grouped.setdefault(AwsServiceType(item.service), []).append(item)
        return cls(resources={k: tuple(v) for k, v in grouped.items()})

    def resources_for(self, service: AwsServiceType) -> tuple[AwsResource, ...]:
        return self.resources.get(service, ())

    def services_present(self) -> list[AwsServiceType]:
        """Services with at least one resource, in enum declaration order."""
        return [s for s in AwsServiceType if self.resources.get(s)]

    def all_resources(self) -> list[AwsResource]:
        result: list[AwsResource] = []
        for service in AwsServiceType:
            result.extend(self.resources.get(service, ()))
        return result

    @property
    def total_count(self) -> int:
        return sum(len(v) for v in self.resources.values())

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0


def create_empty_discovered_resources() -> DiscoveredResources:
    """Return a snapshot with no resources for any service."""
    return DiscoveredResources()
