"""Abstract discovery port — what the workflow needs from an AWS inventory source."""

from __future__ import annotations

import abc

from pydantic import BaseModel

from provisioner.core.types import AwsServiceType
from provisioner.discovery.resources import DiscoveredResources


class CredentialsStatus(BaseModel):
    """Outcome of a credential check, consulted before discovery starts."""

    valid: bool
    account_id: str | None = None
    arn: str | None = None
    error: str | None = None


class AwsDiscoveryPort(abc.ABC):
    """Source of :class:`DiscoveredResources` snapshots.

    Implementations own pagination, throttling and timeouts; the workflow
    only awaits the finished snapshot.
    """

    @abc.abstractmethod
    async def validate_credentials(self) -> CredentialsStatus:
        """Check that the configured credentials can be used."""

    @abc.abstractmethod
    async def discover_resources(
        self,
        regions: list[str],
        services: list[AwsServiceType] | None = None,
    ) -> DiscoveredResources:
        """Discover resources in *regions*, limited to *services* when given."""

    def supported_services(self) -> list[AwsServiceType]:
        return list(AwsServiceType)
