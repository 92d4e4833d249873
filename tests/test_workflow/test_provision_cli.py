"""Tests for scripts/provision.py — argument parsing, Grafana checks, artifact writing."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
import structlog
import yaml

from provisioner.core.config import reset_settings
from provisioner.core.exceptions import ConfigError
from provisioner.discovery.snapshot import SnapshotDiscovery
from provisioner.grafana.client import GrafanaClient
from provisioner.grafana.types import (
    CloudWatchDimensionValues,
    CloudWatchNamespaceHealth,
    ConnectionStatus,
    GrafanaContactPoint,
    GrafanaDataSource,
    GrafanaFolder,
)
from scripts.provision import load_overrides, main, parse_args

# ── Helpers ─────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("GRAFANA_URL", "GRAFANA_API_KEY", "TEMPLATES_PATH", "OUTPUT_PATH"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    structlog.reset_defaults()


def _ec2(id: str, state: str = "running") -> dict[str, object]:
    return {
        "service": "ec2", "id": id, "arn": f"arn:{id}", "name": id,
        "region": "us-east-1", "instance_type": "t3.micro", "state": state,
    }


def _setup(
    tmp_path: Path,
    grafana_url: str = "http://grafana.test:3000",
    resources: dict[str, list[dict[str, object]]] | None = None,
) -> Path:
    templates = tmp_path / "templates" / "ec2"
    templates.mkdir(parents=True)
    (templates / "cpu.yaml").write_text(yaml.dump({
        "id": "ec2-high-cpu", "name": "EC2 High CPU", "service": "ec2",
        "severity": "warning",
        "data_sources": {"cloudwatch": {"namespace": "AWS/EC2", "metric": "CPUUtilization"}},
        "defaults": {"threshold": 80},
        "annotations": {"summary": "High CPU"},
        "customizable": ["threshold"],
    }))

    snapshot = tmp_path / "snapshot.json"
    snapshot.write_text(json.dumps({
        "account_id": "123456789012",
        "resources": resources if resources is not None else {"ec2": [_ec2("i-1")]},
    }))

    config = tmp_path / "settings.yaml"
    config.write_text(yaml.dump({
        "grafana": {"url": grafana_url},
        "templates": {"path": str(tmp_path / "templates")},
        "output": {"path": str(tmp_path / "out")},
        "aws": {"snapshot_path": str(snapshot)},
        "logging": {"format": "json"},
    }))
    return config


_SOURCES = [GrafanaDataSource(uid="cw-1", name="CloudWatch", type="cloudwatch")]


def _grafana_patch(
    connected: bool = True,
    contact_points: tuple[str, ...] = ("default", "pagerduty"),
    dimension_values: list[str] | None = None,
    sources: list[GrafanaDataSource] | None = None,
) -> Any:
    """Patch every GrafanaClient call the CLI makes."""
    status = (
        ConnectionStatus(connected=True, version="10.4.1") if connected
        else ConnectionStatus(connected=False, error="connection refused")
    )
    return patch.multiple(
        GrafanaClient,
        test_connection=AsyncMock(return_value=status),
        list_contact_points=AsyncMock(return_value=[
            GrafanaContactPoint(uid=name, name=name, type="email") for name in contact_points
        ]),
        list_folders=AsyncMock(return_value=[GrafanaFolder(uid="f1", title="acme-corp")]),
        list_data_sources=AsyncMock(return_value=_SOURCES if sources is None else sources),
        check_cloudwatch_namespace_health=AsyncMock(
            return_value=CloudWatchNamespaceHealth(
                namespace="AWS/EC2", region="us-east-1", has_metrics=True, metric_count=12,
            ),
        ),
        get_cloudwatch_dimension_values=AsyncMock(
            return_value=CloudWatchDimensionValues(
                dimension_key="InstanceId", namespace="AWS/EC2", region="us-east-1",
                values=["i-1"] if dimension_values is None else dimension_values,
            ),
        ),
    )


def _run(config: Path, *extra: str, **patch_kwargs: Any) -> int:
    with _grafana_patch(**patch_kwargs), pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config), "--region", "us-east-1", *extra])
    return exc_info.value.code  # type: ignore[return-value]


def _rules(tmp_path: Path, folder: str) -> dict[str, Any]:
    return json.loads((tmp_path / "out" / folder / "alert-rules.json").read_text())


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args(["--customer", "Acme"])
        assert args.customer == "Acme"
        assert args.region is None
        assert args.dashboards is False
        assert args.config is None
        assert args.overrides is None
        assert args.skip_dashboard == []
        assert args.validated_only is False

    def test_repeatable_region(self) -> None:
        args = parse_args(["--customer", "Acme", "--region", "us-east-1", "--region", "eu-west-1"])
        assert args.region == ["us-east-1", "eu-west-1"]

    def test_repeatable_skip_dashboard(self) -> None:
        args = parse_args(["--customer", "Acme", "--skip-dashboard", "s3",
                           "--skip-dashboard", "aurora"])
        assert args.skip_dashboard == ["s3", "aurora"]

    def test_customer_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


class TestLoadOverrides:
    def test_valid_file(self, tmp_path: Path) -> None:
        path = tmp_path / "overrides.yaml"
        path.write_text(yaml.dump({
            "ec2-high-cpu": {"threshold": 95, "for_duration": "10m"},
            "rds-high-cpu": {"contact_point": "dba", "severity": "critical"},
        }))
        overrides = load_overrides(path)

        assert overrides["ec2-high-cpu"].threshold == 95
        assert overrides["ec2-high-cpu"].for_duration == "10m"
        assert overrides["rds-high-cpu"].severity == "critical"

    def test_empty_file_means_no_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "overrides.yaml"
        path.write_text("")
        assert load_overrides(path) == {}

    def test_unknown_field_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "overrides.yaml"
        path.write_text(yaml.dump({"ec2-high-cpu": {"treshold": 95}}))
        with pytest.raises(ConfigError, match="Invalid overrides"):
            load_overrides(path)

    def test_bad_value_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "overrides.yaml"
        path.write_text(yaml.dump({"ec2-high-cpu": {"threshold": "very high"}}))
        with pytest.raises(ConfigError):
            load_overrides(path)

    def test_not_a_mapping_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "overrides.yaml"
        path.write_text(yaml.dump(["ec2-high-cpu"]))
        with pytest.raises(ConfigError):
            load_overrides(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read overrides"):
            load_overrides(tmp_path / "missing.yaml")


class TestMain:
    def test_writes_alert_rules(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _setup(tmp_path)
        assert _run(config, "--customer", "Acme Corp") == 0

        written = _rules(tmp_path, "acme-corp")
        assert written["folder"] == "acme-corp"
        assert [a["id"] for a in written["alerts"]] == ["ec2-high-cpu-us-east-1"]
        assert written["summary"]["total_count"] == 1
        assert written["cloudwatch_validation"]["total_matched"] == 1
        out = capsys.readouterr().out
        assert "Total alerts: 1" in out
        assert "With metrics: 1" in out

    def test_no_cloudwatch_source_skips_validation(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path)
        prom = [GrafanaDataSource(uid="prom-1", name="Prometheus", type="prometheus")]
        assert _run(config, "--customer", "Acme", sources=prom) == 0

        assert _rules(tmp_path, "acme")["cloudwatch_validation"] is None
        assert "Skipped (no CloudWatch data source)" in capsys.readouterr().out

    def test_validated_only_drops_resources_without_metrics(self, tmp_path: Path) -> None:
        config = _setup(tmp_path, resources={"ec2": [_ec2("i-1"), _ec2("i-2", "stopped")]})
        assert _run(config, "--customer", "Acme", "--validated-only") == 0

        written = _rules(tmp_path, "acme")
        covered = [r["id"] for r in written["alerts"][0]["covered_resources"]]
        assert covered == ["i-1"]
        diagnostics = written["cloudwatch_validation"]["results"][0]["diagnostics"]
        assert diagnostics[0]["root_cause"] == "stopped_resource"

    def test_unvalidated_resources_kept_by_default(self, tmp_path: Path) -> None:
        config = _setup(tmp_path, resources={"ec2": [_ec2("i-1"), _ec2("i-2", "stopped")]})
        assert _run(config, "--customer", "Acme") == 0

        covered = [r["id"] for r in _rules(tmp_path, "acme")["alerts"][0]["covered_resources"]]
        assert covered == ["i-1", "i-2"]

    def test_dashboard_report(self, tmp_path: Path) -> None:
        config = _setup(tmp_path)
        assert _run(config, "--customer", "Acme", "--dashboards") == 0

        report = (tmp_path / "out" / "acme" / "dashboard-report.md").read_text()
        assert "| EC2 | EC2 Dashboard |" in report
        assert "| Datasource UID | cw-1 |" in report

    def test_dashboards_reuse_discovery(self, tmp_path: Path) -> None:
        config = _setup(tmp_path)
        original = SnapshotDiscovery.discover_resources
        with patch.object(
            SnapshotDiscovery, "discover_resources", autospec=True, side_effect=original,
        ) as discover:
            assert _run(config, "--customer", "Acme", "--dashboards") == 0

        assert discover.call_count == 1

    def test_overrides_file_applied(self, tmp_path: Path) -> None:
        config = _setup(tmp_path)
        overrides = tmp_path / "overrides.yaml"
        overrides.write_text(yaml.dump({"ec2-high-cpu": {"threshold": 95}}))
        assert _run(config, "--customer", "Acme", "--overrides", str(overrides)) == 0

        assert _rules(tmp_path, "acme")["alerts"][0]["threshold"]["value"] == 95

    def test_invalid_overrides_exit_nonzero(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path)
        overrides = tmp_path / "overrides.yaml"
        overrides.write_text(yaml.dump({"ec2-high-cpu": {"threshold": "loud"}}))
        assert _run(config, "--customer", "Acme", "--overrides", str(overrides)) == 1
        assert "Invalid overrides" in capsys.readouterr().err

    def test_skip_dashboard_deselects_service(self, tmp_path: Path) -> None:
        config = _setup(tmp_path, resources={
            "ec2": [_ec2("i-1")],
            "s3": [{"service": "s3", "id": "b", "arn": "arn:b", "name": "b",
                    "region": "us-east-1"}],
        })
        assert _run(config, "--customer", "Acme", "--dashboards", "--skip-dashboard", "s3") == 0

        report = (tmp_path / "out" / "acme" / "dashboard-report.md").read_text()
        assert "## Skipped Dashboards" in report
        selected, _, skipped = report.partition("## Skipped Dashboards")
        assert "| EC2 | EC2 Dashboard |" in selected
        assert "| S3 |" in skipped
        assert "| S3 |" not in selected

    def test_unknown_contact_point_rejected(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path)
        code = _run(config, "--customer", "Acme", "--contact-point", "opsgenie")

        assert code == 1
        err = capsys.readouterr().err
        assert "Unknown contact point(s): opsgenie" in err
        assert "pagerduty" in err
        assert not (tmp_path / "out" / "acme" / "alert-rules.json").exists()

    def test_known_contact_point_used(self, tmp_path: Path) -> None:
        config = _setup(tmp_path)
        assert _run(config, "--customer", "Acme", "--contact-point", "pagerduty") == 0
        assert _rules(tmp_path, "acme")["alerts"][0]["contact_point"] == "pagerduty"

    def test_override_contact_point_checked(self, tmp_path: Path) -> None:
        config = _setup(tmp_path)
        overrides = tmp_path / "overrides.yaml"
        overrides.write_text(yaml.dump({"ec2-high-cpu": {"contact_point": "nobody"}}))
        assert _run(config, "--customer", "Acme", "--overrides", str(overrides)) == 1

    def test_unreachable_grafana_exits_nonzero(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path)
        assert _run(config, "--customer", "Acme", connected=False) == 1
        assert "Cannot reach Grafana: connection refused" in capsys.readouterr().err

    def test_invalid_grafana_url_exits_nonzero(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path, grafana_url="not-a-url")
        with pytest.raises(SystemExit) as exc_info:
            main(["--config", str(config), "--customer", "Acme"])

        assert exc_info.value.code == 1
        assert "Invalid GRAFANA_URL" in capsys.readouterr().err

    def test_missing_snapshot_exits_nonzero(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path)
        code = _run(config, "--customer", "Acme", "--snapshot", str(tmp_path / "missing.json"))

        assert code == 1
        assert "snapshot not found" in capsys.readouterr().err

    def test_malformed_snapshot_exits_nonzero(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        config = _setup(tmp_path, resources={"ec2": [{"service": "ec2", "id": "i-1"}]})
        assert _run(config, "--customer", "Acme") == 1

        err = capsys.readouterr().err
        assert "Error: Inventory snapshot" in err
        assert "malformed resources" in err
        assert "Traceback" not in err
