"""Async Grafana HTTP API client — health, folders, contact points, data sources."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog

from provisioner.core.config import GrafanaConfig, get_settings
from provisioner.grafana.base import GrafanaPort
from provisioner.grafana.exceptions import (
    GrafanaConnectionError,
    GrafanaError,
    GrafanaParseError,
    GrafanaResponseError,
)
from provisioner.grafana.types import (
    CloudWatchDimensionValues,
    CloudWatchNamespaceHealth,
    ConnectionStatus,
    GrafanaContactPoint,
    GrafanaDataSource,
    GrafanaFolder,
)

logger = structlog.stdlib.get_logger()

_FALLBACK_CONTACT_POINT = GrafanaContactPoint(uid="default", name="default", type="email")


class GrafanaClient(GrafanaPort):
    """Thin async wrapper over the Grafana HTTP API.

    Usage::

        async with GrafanaClient(settings.grafana) as grafana:
            sources = await grafana.list_data_sources()
    """

    def __init__(self, config: GrafanaConfig | None = None) -> None:
        self._config = config or get_settings().grafana
        self._http: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._config.url.rstrip("/")

    @property
    def connected(self) -> bool:
        """Whether the HTTP client is active."""
        return self._http is not None and not self._http.is_closed

    async def connect(self) -> None:
        """Create the httpx async client."""
        headers = {"Content-Type": "application/json"}
        api_key = self._config.api_key.get_secret_value()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._http = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(self._config.timeout_secs),
        )

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> GrafanaClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ── Request plumbing ────────────────────────────────────────

    async def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET ``/api{path}`` and return the decoded JSON body."""
        if self._http is None:
            raise GrafanaConnectionError("HTTP client not connected")

        url = f"{self.base_url}/api{path}"
        try:
            response = await self._http.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GrafanaResponseError(
                exc.response.status_code, exc.response.text,
            ) from exc
        except httpx.HTTPError as exc:
            raise GrafanaConnectionError(f"Grafana request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise GrafanaParseError(f"Grafana returned invalid JSON for {path}") from exc

    async def _get_list(self, path: str, params: dict[str, str] | None = None) -> list[dict[str, Any]]:
        body = await self._get(path, params)
        if not isinstance(body, list):
            raise GrafanaParseError(f"Expected a JSON list from {path}")
        return [item for item in body if isinstance(item, dict)]

    # ── API ─────────────────────────────────────────────────────

    async def test_connection(self) -> ConnectionStatus:
        """Check ``/api/health``; never raises."""
        try:
            health = await self._get("/health")
        except GrafanaError as exc:
            return ConnectionStatus(connected=False, error=str(exc))
        version = health.get("version") if isinstance(health, dict) else None
        return ConnectionStatus(connected=True, version=version)

    async def list_folders(self) -> list[GrafanaFolder]:
        items = await self._get_list("/search", {"type": "dash-folder"})
        return [
            GrafanaFolder(
                uid=str(f.get("uid", "")),
                title=str(f.get("title", "")),
                url=str(f.get("url", "")),
                parent_uid=f.get("folderUid"),
            )
            for f in items
        ]

    async def list_contact_points(self) -> list[GrafanaContactPoint]:
        """List contact points, falling back to Grafana's built-in default."""
        try:
            items = await self._get_list("/v1/provisioning/contact-points")
        except GrafanaError as exc:
            logger.warning("grafana_contact_points_unavailable", error=str(exc))
            return [_FALLBACK_CONTACT_POINT]
        return [
            GrafanaContactPoint(
                uid=str(cp.get("uid", "")),
                name=str(cp.get("name", "")),
                type=str(cp.get("type", "")),
            )
            for cp in items
        ]

    async def list_data_sources(self) -> list[GrafanaDataSource]:
        """List data sources in the order Grafana returns them."""
        items = await self._get_list("/datasources")
        return [
            GrafanaDataSource(
                uid=str(ds.get("uid", "")),
                name=str(ds.get("name", "")),
                type=str(ds.get("type", "")),
                url=ds.get("url"),
            )
            for ds in items
        ]

    async def get_cloudwatch_dimension_values(
        self,
        data_source_uid: str,
        namespace: str,
        metric_name: str,
        dimension_key: str,
        region: str,
    ) -> CloudWatchDimensionValues:
        """Ask the CloudWatch data source which dimension values exist.

        Returns an empty value list when the data source cannot answer.
        """
        result = CloudWatchDimensionValues(
            dimension_key=dimension_key, namespace=namespace, region=region,
        )
        try:
            items = await self._get_list(
                f"/datasources/uid/{data_source_uid}/resources/dimension-values",
                {
                    "namespace": namespace,
                    "region": region,
                    "dimensionKey": dimension_key,
                    "metricName": metric_name,
                },
            )
        except GrafanaError as exc:
            logger.debug(
                "grafana_dimension_lookup_failed",
                namespace=namespace,
                region=region,
                error=str(exc),
            )
            return result
        return result.model_copy(
            update={"values": [str(v.get("value", "")) for v in items]},
        )

    async def check_cloudwatch_namespace_health(
        self, data_source_uid: str, namespace: str, region: str,
    ) -> CloudWatchNamespaceHealth:
        """A namespace with no listable metrics is treated as inaccessible."""
        try:
            items = await self._get_list(
                f"/datasources/uid/{data_source_uid}/resources/metrics",
                {"namespace": namespace, "region": region},
            )
        except GrafanaError as exc:
            logger.debug(
                "grafana_namespace_check_failed",
                namespace=namespace,
                region=region,
                error=str(exc),
            )
            return CloudWatchNamespaceHealth(namespace=namespace, region=region)
        return CloudWatchNamespaceHealth(
            namespace=namespace,
            region=region,
            has_metrics=len(items) > 0,
            metric_count=len(items),
        )
