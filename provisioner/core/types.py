"""Shared domain types — service/severity enums, data source refs, customer."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_validator

from provisioner.core.config import US_REGIONS


class AwsServiceType(StrEnum):
    """AWS services the provisioner knows how to discover and monitor."""

    EC2 = "ec2"
    RDS = "rds"
    LAMBDA = "lambda"
    ECS = "ecs"
    EKS = "eks"
    ELASTICACHE = "elasticache"
    ALB = "alb"
    NLB = "nlb"
    APIGATEWAY = "apigateway"
    S3 = "s3"
    SQS = "sqs"


class AlertSeverity(StrEnum):
    """Alert severity as written into rule labels."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class DataSourceType(StrEnum):
    """Metrics backends an alert query can target."""

    CLOUDWATCH = "cloudwatch"
    PROMETHEUS = "prometheus"


class ThresholdOperator(StrEnum):
    """Comparison applied between the metric and the threshold value."""

    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    NEQ = "neq"


class CustomizableField(StrEnum):
    """Template fields an operator may override."""

    THRESHOLD = "threshold"
    EVALUATION_INTERVAL = "evaluation_interval"
    FOR_DURATION = "for_duration"
    LABELS = "labels"
    CONTACT_POINT = "contact_point"
    SEVERITY = "severity"


_OPERATOR_SYMBOLS: dict[ThresholdOperator, str] = {
    ThresholdOperator.GT: ">",
    ThresholdOperator.GTE: ">=",
    ThresholdOperator.LT: "<",
    ThresholdOperator.LTE: "<=",
    ThresholdOperator.EQ: "==",
    ThresholdOperator.NEQ: "!=",
}


class Threshold(BaseModel):
    """Threshold value plus the comparison operator."""

    model_config = ConfigDict(frozen=True)

    value: float
    operator: ThresholdOperator = ThresholdOperator.GT

    @property
    def symbol(self) -> str:
        return _OPERATOR_SYMBOLS[self.operator]

    def to_condition(self) -> str:
        """Render as a Grafana condition string, e.g. ``"> 80"``."""
        value = int(self.value) if self.value.is_integer() else self.value
        return f"{self.symbol} {value}"


class DataSourceRef(BaseModel):
    """Canonical reference to a data source registered in Grafana."""

    model_config = ConfigDict(frozen=True)

    type: DataSourceType
    uid: str
    name: str


# ── Customer ─────────────────────────────────────────────────────


_NON_FOLDER_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUNS = re.compile(r"-+")


def sanitize_folder_name(name: str) -> str:
    """Turn a display name into a lowercase hyphenated folder token.

    "My Co!!" → "my-co"
    """
    token = _NON_FOLDER_CHARS.sub("-", name.lower())
    token = _HYPHEN_RUNS.sub("-", token)
    return token.strip("-")


class Customer(BaseModel):
    """The customer a provisioning session runs for."""

    model_config = ConfigDict(frozen=True)

    name: str
    grafana_folder: str
    default_contact_point: str = "default"
    regions: tuple[str, ...] = US_REGIONS
    labels: dict[str, str] | None = None

    @field_validator("regions")
    @classmethod
    def _regions_not_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("customer needs at least one region")
        # ordered set: drop repeats, keep first position
        return tuple(dict.fromkeys(v))


def create_customer(
    name: str,
    grafana_folder: str | None = None,
    default_contact_point: str | None = None,
    regions: list[str] | tuple[str, ...] | None = None,
    labels: dict[str, str] | None = None,
) -> Customer:
    """Build a Customer, deriving the folder from *name* when not supplied."""
    return Customer(
        name=name,
        grafana_folder=(
            grafana_folder if grafana_folder is not None else sanitize_folder_name(name)
        ),
        default_contact_point=default_contact_point or "default",
        regions=tuple(regions) if regions is not None else US_REGIONS,
        labels=dict(labels) if labels else None,
    )

