"""Tests for AlertBuilder — data source resolution, rule fields, skip warnings."""

from __future__ import annotations

import pytest

from provisioner.alerts.builder import (
    AlertBuilder,
    build_labels,
    build_query,
    resolve_data_sources,
)
from provisioner.alerts.customization import merge_configuration
from provisioner.alerts.templates import AlertTemplate
from provisioner.alerts.types import (
    AlertOverrides,
    CloudWatchQuery,
    MatchedResource,
    PendingAlert,
    PrometheusQuery,
)
from provisioner.core.types import (
    Customer,
    DataSourceType,
    ThresholdOperator,
    create_customer,
)
from provisioner.grafana.types import GrafanaDataSource

# ── Helpers ─────────────────────────────────────────────────────


def _template(
    id: str = "ec2-high-cpu",
    service: str = "ec2",
    sources: dict[str, object] | None = None,
    operator: str = "gt",
) -> AlertTemplate:
    return AlertTemplate.model_validate({
        "id": id,
        "name": "High CPU",
        "description": "CPU above threshold",
        "service": service,
        "severity": "critical",
        "data_sources": sources or {"cloudwatch": {
            "namespace": "AWS/EC2",
            "metric": "CPUUtilization",
            "statistic": "Maximum",
            "dimensions": ["InstanceId"],
        }},
        "defaults": {"threshold": 80, "threshold_operator": operator},
        "labels": {"team": "platform", "severity": "template"},
        "annotations": {
            "summary": "High CPU",
            "description": "CPU is high",
            "runbook_url": "https://runbooks/cpu",
        },
        "customizable": ["labels"],
    })


def _resources(*names: str, region: str = "us-east-1") -> tuple[MatchedResource, ...]:
    return tuple(
        MatchedResource(id=n, name=n, arn=f"arn:{n}", region=region) for n in names
    )


def _pending(
    template: AlertTemplate | None = None,
    region: str = "us-east-1",
    customer: Customer | None = None,
    overrides: AlertOverrides | None = None,
    names: tuple[str, ...] = ("web-1",),
) -> PendingAlert:
    t = template or _template()
    return PendingAlert(
        template=t,
        region=region,
        resources=_resources(*names, region=region),
        configuration=merge_configuration(t, customer or _customer(), overrides),
    )


def _customer(regions: list[str] | None = None, **kwargs: object) -> Customer:
    return create_customer("Acme Corp", regions=regions or ["us-east-1"], **kwargs)  # type: ignore[arg-type]


def _ds(uid: str, type: str) -> GrafanaDataSource:
    return GrafanaDataSource(uid=uid, name=uid.upper(), type=type)


# ── resolve_data_sources ────────────────────────────────────────


class TestResolveDataSources:
    def test_first_seen_wins(self) -> None:
        refs = resolve_data_sources([_ds("cw-1", "cloudwatch"), _ds("cw-2", "cloudwatch")])
        assert refs[DataSourceType.CLOUDWATCH].uid == "cw-1"

    def test_prometheus_compatible_types(self) -> None:
        refs = resolve_data_sources([_ds("m", "mimir"), _ds("p", "prometheus")])
        assert refs[DataSourceType.PROMETHEUS].uid == "m"

    def test_unknown_types_ignored(self) -> None:
        assert resolve_data_sources([_ds("l", "loki"), _ds("t", "tempo")]) == {}

    def test_empty(self) -> None:
        assert resolve_data_sources([]) == {}


# ── build_query ─────────────────────────────────────────────────


class TestBuildQuery:
    def test_cloudwatch_query(self) -> None:
        p = _pending(region="us-west-2")
        q = build_query(p.template, p.configuration, p.resources, p.region)

        assert isinstance(q, CloudWatchQuery)
        assert q.namespace == "AWS/EC2"
        assert q.metric_name == "CPUUtilization"
        assert q.statistic == "Maximum"
        assert q.dimension_key == "InstanceId"
        assert q.dimension_values == ("*",)
        assert q.period == 300
        assert q.region == "us-west-2"

    def test_cloudwatch_service_default_dimension(self) -> None:
        t = _template(service="lambda", sources={"cloudwatch": {
            "namespace": "AWS/Lambda", "metric": "Errors", "statistic": "Sum", "period": 60,
        }})
        p = _pending(t)
        q = build_query(t, p.configuration, p.resources, p.region)

        assert isinstance(q, CloudWatchQuery)
        assert q.dimension_key == "FunctionName"
        assert q.period == 60

    def test_prometheus_substitutes_resource_pattern(self) -> None:
        t = _template(sources={"prometheus": {
            "metric": "cpu",
            "query": 'cpu{instance=~"{{ $resource_pattern }}"} > 0.8',
        }})
        p = _pending(t, names=("web-1", "web-2"))
        q = build_query(t, p.configuration, p.resources, p.region)

        assert isinstance(q, PrometheusQuery)
        assert q.expr == 'cpu{instance=~"web-1|web-2"} > 0.8'

    def test_prometheus_resource_name_placeholder(self) -> None:
        t = _template(sources={"prometheus": {"metric": "up", "query": "up{job='{{$resource_name}}'}"}})
        p = _pending(t, names=("api",))
        q = build_query(t, p.configuration, p.resources, p.region)
        assert isinstance(q, PrometheusQuery)
        assert q.expr == "up{job='api'}"

    def test_configured_type_without_config_raises(self) -> None:
        p = _pending()
        cfg = p.configuration.model_copy(update={"data_source_type": DataSourceType.PROMETHEUS})
        with pytest.raises(ValueError, match="ec2-high-cpu"):
            build_query(p.template, cfg, p.resources, p.region)


# ── build_labels ────────────────────────────────────────────────


class TestBuildLabels:
    def test_merge_order(self) -> None:
        customer = _customer(labels={"team": "acme-sre", "tier": "gold"})
        p = _pending(
            customer=customer,
            overrides=AlertOverrides(labels={"env": "prod", "severity": "ignored"}),
        )
        labels = build_labels(p.template, p.configuration, customer)

        assert labels == {
            "env": "prod",
            "team": "acme-sre",
            "customer": "Acme Corp",
            "service": "ec2",
            "severity": "critical",
            "tier": "gold",
        }

    def test_template_labels_without_overrides(self) -> None:
        p = _pending()
        labels = build_labels(p.template, p.configuration, _customer())
        assert labels["team"] == "platform"
        assert labels["severity"] == "critical"


# ── AlertBuilder ────────────────────────────────────────────────


class TestBuildAlert:
    def test_rule_fields(self) -> None:
        customer = _customer()
        p = _pending(customer=customer, names=("web-1", "web-2"))
        ref = _ds("cw-1", "cloudwatch").to_ref()
        assert ref is not None

        rule = AlertBuilder().build_alert(p, customer, ref)

        assert rule.id == "ec2-high-cpu-us-east-1"
        assert rule.title == "High CPU"
        assert rule.description == "CPU above threshold"
        assert rule.folder == "acme-corp"
        assert rule.rule_group == "EC2-Alerts"
        assert rule.threshold.to_condition() == "> 80"
        assert rule.data_source == ref
        assert rule.contact_point == "default"
        assert rule.region == "us-east-1"
        assert rule.source_template == p.template
        assert [r.id for r in rule.covered_resources] == ["web-1", "web-2"]
        assert rule.annotations == {
            "summary": "High CPU",
            "description": "CPU is high",
            "runbook_url": "https://runbooks/cpu",
        }

    def test_title_has_region_for_multi_region_customer(self) -> None:
        customer = _customer(regions=["us-east-1", "us-west-2"])
        p = _pending(region="us-west-2", customer=customer)
        ref = _ds("cw-1", "cloudwatch").to_ref()
        assert ref is not None

        rule = AlertBuilder().build_alert(p, customer, ref)
        assert rule.title == "High CPU (us-west-2)"

    def test_threshold_uses_template_operator(self) -> None:
        customer = _customer()
        p = _pending(_template(operator="lte"), customer=customer)
        ref = _ds("cw-1", "cloudwatch").to_ref()
        assert ref is not None
        rule = AlertBuilder().build_alert(p, customer, ref)
        assert rule.threshold.operator == ThresholdOperator.LTE


class TestBuildAlerts:
    def test_skips_missing_data_source_with_warning(self) -> None:
        prom_only = _template("ec2-prom", sources={"prometheus": {"metric": "m", "query": "m"}})
        pending = [_pending(), _pending(prom_only), _pending(region="us-west-2")]
        result = AlertBuilder().build_alerts(pending, _customer(), [_ds("cw", "cloudwatch")])

        assert [a.id for a in result.alerts] == ["ec2-high-cpu-us-east-1", "ec2-high-cpu-us-west-2"]
        assert result.warnings == (
            "No prometheus data source available, skipping alert ec2-prom (us-east-1)",
        )

    def test_no_data_sources_builds_nothing(self) -> None:
        result = AlertBuilder().build_alerts([_pending(), _pending()], _customer(), [])
        assert result.alerts == ()
        assert len(result.warnings) == 2

    def test_uses_first_listed_source(self) -> None:
        sources = [_ds("cw-b", "cloudwatch"), _ds("cw-a", "cloudwatch")]
        result = AlertBuilder().build_alerts([_pending()], _customer(), sources)
        assert result.alerts[0].data_source.uid == "cw-b"

    def test_all_valid_preserves_order(self) -> None:
        ids = [f"t{i}" for i in range(5)]
        pending = [_pending(_template(i)) for i in ids]
        result = AlertBuilder().build_alerts(pending, _customer(), [_ds("cw", "cloudwatch")])

        assert [a.source_template.id for a in result.alerts] == ids
        assert result.warnings == ()
