"""YAML alert template repository.

Templates live one per file under ``<templates_path>/<service>/*.yaml``::

    id: ec2-high-cpu
    name: EC2 High CPU
    service: ec2
    severity: warning
    data_sources:
      cloudwatch:
        namespace: AWS/EC2
        metric: CPUUtilization
        statistic: Average
        dimensions: [InstanceId]
    defaults:
      threshold: 80
      threshold_operator: gt
      evaluation_interval: 1m
      for_duration: 5m
    labels: {team: platform}
    annotations:
      summary: High CPU on {{ $labels.InstanceId }}
      description: CPU above threshold
    customizable: [threshold, for_duration]

The legacy single-source form (``data_source: {type: cloudwatch, ...}``) is
also accepted.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from provisioner.alerts.templates import AlertTemplate
from provisioner.core.exceptions import TemplateRepositoryError
from provisioner.core.types import AwsServiceType

logger = structlog.stdlib.get_logger()

_YAML_SUFFIXES = {".yaml", ".yml"}


def _parse_data_sources(raw: dict[str, Any]) -> dict[str, Any]:
    """Normalise either data source format into the multi-source mapping."""
    multi = raw.get("data_sources")
    if isinstance(multi, dict):
        return {k: v for k, v in multi.items() if k in ("cloudwatch", "prometheus") and v}

    legacy = raw.get("data_source")
    if not isinstance(legacy, dict):
        return {}

    source_type = legacy.get("type")
    if source_type == "cloudwatch":
        return {"cloudwatch": {
            "namespace": legacy.get("namespace", ""),
            "metric": legacy.get("metric", ""),
            "statistic": legacy.get("statistic", "Average"),
            "dimensions": legacy.get("dimensions") or [],
            "period": legacy.get("period"),
        }}
    if source_type == "prometheus":
        return {"prometheus": {
            "metric": legacy.get("metric", ""),
            "query": legacy.get("query", ""),
        }}
    return {}


def parse_template(raw: dict[str, Any]) -> AlertTemplate:
    """Build an AlertTemplate from a parsed YAML mapping.

    Raises:
        pydantic.ValidationError: if required fields are missing or invalid.
    """
    return AlertTemplate.model_validate({
        "id": raw.get("id"),
        "name": raw.get("name"),
        "description": raw.get("description", ""),
        "service": raw.get("service"),
        "severity": raw.get("severity"),
        "data_sources": _parse_data_sources(raw),
        "defaults": raw.get("defaults") or {},
        "labels": raw.get("labels") or {},
        "annotations": raw.get("annotations") or {},
        "customizable": raw.get("customizable") or [],
    })


class TemplateRepositoryPort(abc.ABC):
    """Source of the static alert template library."""

    @property
    @abc.abstractmethod
    def source(self) -> str:
        """Where the templates come from, for error messages."""

    @abc.abstractmethod
    def load_all_templates(self) -> list[AlertTemplate]: ...

    def load_templates_by_service(self, service: AwsServiceType) -> list[AlertTemplate]:
        return [t for t in self.load_all_templates() if t.service == service]

    def get_template(self, template_id: str) -> AlertTemplate | None:
        return next((t for t in self.load_all_templates() if t.id == template_id), None)


class YamlTemplateRepository(TemplateRepositoryPort):
    """Loads alert templates from disk once and serves them from memory."""

    def __init__(self, templates_path: str | Path) -> None:
        self._path = Path(templates_path)
        self._cache: dict[str, AlertTemplate] = {}
        self._loaded = False

    @property
    def templates_path(self) -> Path:
        return self._path

    @property
    def source(self) -> str:
        return str(self._path)

    def load_all_templates(self) -> list[AlertTemplate]:
        """Return every template, reading the library on first call.

        Raises:
            TemplateRepositoryError: if the templates directory does not exist.
        """
        if not self._loaded:
            self._load_from_disk()
            self._loaded = True
        return list(self._cache.values())

    def get_template(self, template_id: str) -> AlertTemplate | None:
        self.load_all_templates()
        return self._cache.get(template_id)

    def _load_from_disk(self) -> None:
        if not self._path.is_dir():
            raise TemplateRepositoryError(f"Templates directory not found: {self._path}")

        for service_dir in sorted(p for p in self._path.iterdir() if p.is_dir()):
            for file in sorted(service_dir.iterdir()):
                if file.suffix not in _YAML_SUFFIXES:
                    continue
                try:
                    with open(file) as f:
                        raw = yaml.safe_load(f)
                    if not isinstance(raw, dict):
                        raise ValueError("template file is not a mapping")
                    template = parse_template(raw)
                except (OSError, yaml.YAMLError, ValueError, ValidationError) as exc:
                    logger.warning("template_parse_failed", path=str(file), error=str(exc))
                    continue
                self._cache[template.id] = template

        logger.debug("templates_loaded", path=str(self._path), count=len(self._cache))
