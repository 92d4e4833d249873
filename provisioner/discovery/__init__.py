"""AWS resource discovery — resource types, port, snapshot adapter."""

from provisioner.discovery.base import AwsDiscoveryPort, CredentialsStatus
from provisioner.discovery.resources import (
    AwsResource,
    DiscoveredResources,
    ResourceTag,
    create_empty_discovered_resources,
)
from provisioner.discovery.snapshot import SnapshotDiscovery

__all__ = [
    "AwsDiscoveryPort",
    "AwsResource",
    "CredentialsStatus",
    "DiscoveredResources",
    "ResourceTag",
    "SnapshotDiscovery",
    "create_empty_discovered_resources",
]
