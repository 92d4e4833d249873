"""Discovery adapter backed by a JSON inventory snapshot on disk.

Expected structure::

    {
        "account_id": "123456789012",
        "resources": {
            "ec2": [{"id": "i-1", "arn": "...", "name": "web", "region": "us-east-1",
                     "service": "ec2", "instance_type": "t3.micro", "state": "running"}],
            "lambda": [...]
        }
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from provisioner.core.exceptions import DiscoveryError
from provisioner.core.types import AwsServiceType
from provisioner.discovery.base import AwsDiscoveryPort, CredentialsStatus
from provisioner.discovery.resources import DiscoveredResources


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    location = ".".join(str(part) for part in err["loc"])
    return f"{location}: {err['msg']}"


class SnapshotDiscovery(AwsDiscoveryPort):
    """Serves discovery results from a previously exported inventory file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            with open(self._path) as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError(f"snapshot {self._path} is not a JSON object")
            self._data = raw
        return self._data

    async def validate_credentials(self) -> CredentialsStatus:
        """A readable snapshot stands in for a valid AWS identity."""
        try:
            data = self._load()
        except FileNotFoundError:
            return CredentialsStatus(
                valid=False, error=f"Inventory snapshot not found: {self._path}",
            )
        except (OSError, ValueError) as exc:
            return CredentialsStatus(
                valid=False, error=f"Inventory snapshot unreadable: {exc}",
            )
        return CredentialsStatus(valid=True, account_id=data.get("account_id"))

    async def discover_resources(
        self,
        regions: list[str],
        services: list[AwsServiceType] | None = None,
    ) -> DiscoveredResources:
        """Return the snapshot's resources in *regions* for *services*.

        Raises:
            DiscoveryError: if the snapshot holds malformed resources.
        """
        data = self._load()
        try:
            snapshot = DiscoveredResources.model_validate(
                {"resources": data.get("resources", {})},
            )
        except ValidationError as exc:
            raise DiscoveryError(
                f"Inventory snapshot {self._path} has malformed resources: "
                f"{exc.error_count()} validation error(s), first: {_first_error(exc)}"
            ) from exc
        wanted_services = set(services) if services is not None else set(AwsServiceType)
        wanted_regions = set(regions)

        return DiscoveredResources.from_resources(
            r for r in snapshot.all_resources()
            if r.service in wanted_services and r.region in wanted_regions
        )
