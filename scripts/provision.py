#!/usr/bin/env python3
"""Provision CLI — discover AWS resources and generate Grafana alert rules.

Usage:
    python -m scripts.provision --customer "Acme Corp"
    python -m scripts.provision --customer "Acme Corp" --region us-east-1 --region us-west-2
    python -m scripts.provision --customer "Acme Corp" --snapshot inventory.json --dashboards
    python -m scripts.provision --customer "Acme Corp" --overrides overrides.yaml \\
        --dashboards --skip-dashboard s3

Writes ``<output>/<folder>/alert-rules.json`` and, with ``--dashboards``,
``<output>/<folder>/dashboard-report.md``.

Overrides file format (template id → overrides)::

    ec2-high-cpu:
      threshold: 90
      for_duration: 10m
    rds-high-cpu:
      contact_point: dba-pager
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog
import yaml
from pydantic import TypeAdapter, ValidationError

from provisioner.alerts.repository import TemplateRepositoryPort, YamlTemplateRepository
from provisioner.alerts.types import AlertOverrides, AlertsSummary
from provisioner.core.config import Settings, load_settings, validate_settings
from provisioner.core.exceptions import ConfigError, ProvisionerError
from provisioner.core.logging import create_session_logger, setup_logging
from provisioner.core.types import Customer, create_customer
from provisioner.dashboards.report import DashboardReportData, generate_dashboard_report
from provisioner.discovery.snapshot import SnapshotDiscovery
from provisioner.discovery.validation import ValidationSummary
from provisioner.grafana.base import GrafanaPort
from provisioner.grafana.client import GrafanaClient
from provisioner.grafana.exceptions import GrafanaError
from provisioner.workflow import DashboardPlan, ProvisioningResult, ProvisioningWorkflow

ALERT_RULES_FILENAME = "alert-rules.json"
DASHBOARD_REPORT_FILENAME = "dashboard-report.md"

_OVERRIDES_ADAPTER = TypeAdapter(dict[str, AlertOverrides])


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate Grafana alert rules for a customer's AWS resources.",
    )
    parser.add_argument(
        "--customer",
        required=True,
        help="Customer display name",
    )
    parser.add_argument(
        "--folder",
        default=None,
        help="Grafana folder (default: sanitized customer name)",
    )
    parser.add_argument(
        "--contact-point",
        default=None,
        help="Default contact point; must exist in Grafana (default: 'default')",
    )
    parser.add_argument(
        "--region",
        action="append",
        default=None,
        help="AWS region to scan; repeatable (default: configured regions)",
    )
    parser.add_argument(
        "--snapshot",
        default=None,
        help="Path to inventory snapshot JSON (default: aws.snapshot_path)",
    )
    parser.add_argument(
        "--overrides",
        default=None,
        help="YAML file mapping template id to alert overrides",
    )
    parser.add_argument(
        "--validated-only",
        action="store_true",
        help="Only alert on resources CloudWatch reports metrics for",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Output directory (default: output.path)",
    )
    parser.add_argument(
        "--dashboards",
        action="store_true",
        help="Also match dashboards and write a deployment report",
    )
    parser.add_argument(
        "--skip-dashboard",
        action="append",
        default=[],
        metavar="SERVICE",
        help="Deselect a service's dashboard (e.g. s3, aurora); repeatable",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (e.g. DEBUG)",
    )
    return parser.parse_args(argv)


def load_overrides(path: str | Path) -> dict[str, AlertOverrides]:
    """Read an overrides YAML file; an empty file means no overrides.

    Raises:
        ConfigError: if the file is missing, not YAML, or fails validation.
    """
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read overrides file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Overrides file {path} is not valid YAML: {exc}") from exc

    if raw is None:
        return {}
    try:
        return _OVERRIDES_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid overrides in {path}: {exc}") from exc


async def check_grafana(
    grafana: GrafanaPort,
    customer: Customer,
    overrides: dict[str, AlertOverrides],
    logger: structlog.stdlib.BoundLogger,
) -> None:
    """Fail fast on an unreachable Grafana or an unknown contact point.

    Raises:
        ConfigError: Grafana is unreachable or a contact point does not exist.
    """
    status = await grafana.test_connection()
    if not status.connected:
        raise ConfigError(f"Cannot reach Grafana: {status.error}")
    logger.info("grafana_connected", version=status.version)

    available = {cp.name for cp in await grafana.list_contact_points()}
    wanted = {customer.default_contact_point}
    wanted.update(o.contact_point for o in overrides.values() if o.contact_point)
    missing = sorted(wanted - available)
    if missing:
        raise ConfigError(
            f"Unknown contact point(s): {', '.join(missing)} "
            f"(available: {', '.join(sorted(available)) or 'none'})"
        )

    folders = await grafana.list_folders()
    existing = next(
        (f for f in folders if customer.grafana_folder in (f.title, f.uid)), None,
    )
    if existing is None:
        logger.info("grafana_folder_missing", folder=customer.grafana_folder)
    else:
        logger.info("grafana_folder_found", folder=existing.title, uid=existing.uid)


def warn_unknown_overrides(
    overrides: dict[str, AlertOverrides],
    templates: TemplateRepositoryPort,
    logger: structlog.stdlib.BoundLogger,
) -> None:
    for template_id in overrides:
        if templates.get_template(template_id) is None:
            logger.warning("override_unknown_template", template=template_id)


def write_alert_rules(result: ProvisioningResult, directory: Path) -> Path:
    """Serialize the built rule set as JSON; returns the written path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / ALERT_RULES_FILENAME
    payload = {
        "customer": result.customer.name,
        "folder": result.customer.grafana_folder,
        "account_id": result.account_id,
        "alerts": [a.model_dump(mode="json") for a in result.alerts],
        "summary": result.summary.model_dump(mode="json"),
        "cloudwatch_validation": (
            result.validation.model_dump(mode="json") if result.validation is not None else None
        ),
        "warnings": list(result.warnings),
    }
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)
    return path


def write_dashboard_report(
    plan: DashboardPlan, settings: Settings, directory: Path,
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / DASHBOARD_REPORT_FILENAME
    report = generate_dashboard_report(DashboardReportData(
        customer_name=plan.customer.name,
        folder_path=plan.customer.grafana_folder,
        matches=list(plan.matching.matches),
        gaps=list(plan.matching.gaps),
        selections=list(plan.selections),
        grafana_url=settings.grafana.url,
        datasource_uid=plan.datasource_uid,
        default_region=settings.aws.default_region,
    ))
    path.write_text(report)
    return path


def print_validation(validation: ValidationSummary | None) -> None:
    print("CLOUDWATCH VALIDATION")
    print("-" * 48)
    if validation is None:
        print("  Skipped (no CloudWatch data source)")
        return
    print(f"  Discovered: {validation.total_discovered}  "
          f"With metrics: {validation.total_matched}  "
          f"Without: {validation.total_unmatched}")
    for cause, count in validation.root_cause_counts().items():
        print(f"    {cause:<18} {count}")
    if validation.has_critical_issues:
        print("  ! Some service/region groups have NO CloudWatch metrics at all")


def print_summary(summary: AlertsSummary, warnings: tuple[str, ...]) -> None:
    print("ALERT SUMMARY")
    print("-" * 48)
    print(f"  Total alerts: {summary.total_count}")
    for service, count in summary.by_service.items():
        print(f"    {service:<14} {count}")
    sev = summary.by_severity
    print(f"  Critical: {sev.critical}  Warning: {sev.warning}  Info: {sev.info}")
    if warnings:
        print()
        print("WARNINGS")
        for w in warnings:
            print(f"  - {w}")


async def run_provision(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    errors = validate_settings(settings)
    if errors:
        raise ConfigError("; ".join(errors))

    overrides = load_overrides(args.overrides) if args.overrides else {}
    customer = create_customer(
        args.customer,
        grafana_folder=args.folder,
        default_contact_point=args.contact_point,
        regions=args.region or settings.aws.regions,
    )
    logger = create_session_logger(customer=customer.name, folder=customer.grafana_folder)
    discovery = SnapshotDiscovery(args.snapshot or settings.aws.snapshot_path)
    templates = YamlTemplateRepository(settings.templates.path)
    out_dir = Path(args.output or settings.output.path) / customer.grafana_folder

    async with GrafanaClient(settings.grafana) as grafana:
        await check_grafana(grafana, customer, overrides, logger)

        workflow = ProvisioningWorkflow(discovery, grafana, templates, logger)
        result = await workflow.run(
            customer, overrides=overrides, validated_only=args.validated_only,
        )
        warn_unknown_overrides(overrides, templates, logger)
        rules_path = write_alert_rules(result, out_dir)

        report_path: Path | None = None
        if args.dashboards:
            plan = await workflow.run_dashboards(
                customer, resources=result.resources, skip_services=args.skip_dashboard,
            )
            report_path = write_dashboard_report(plan, settings, out_dir)

    print(f"Customer: {customer.name} (folder: {customer.grafana_folder})")
    print(f"  Resources discovered: {result.resources.total_count}")
    print(f"  Coverage gaps: {', '.join(result.matching.gaps) or 'none'}")
    print()
    print_validation(result.validation)
    print()
    print_summary(result.summary, result.warnings)
    print()
    print(f"Alert rules written to {rules_path}")
    if report_path is not None:
        print(f"Dashboard report written to {report_path}")
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        code = asyncio.run(run_provision(args))
    except (ProvisionerError, GrafanaError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
