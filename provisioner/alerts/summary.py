"""Rule-set summary with advisory volume warnings."""

from __future__ import annotations

from collections.abc import Sequence

from provisioner.alerts.types import AlertRule, AlertsSummary, SeverityCounts
from provisioner.core.types import AlertSeverity, AwsServiceType

# Fixed advisory thresholds; exceeding them only adds a warning
MAX_ALERTS_PER_RUN = 100
MAX_CRITICAL_ALERTS = 20


def group_alerts_by_service(
    alerts: Sequence[AlertRule],
) -> dict[AwsServiceType, list[AlertRule]]:
    grouped: dict[AwsServiceType, list[AlertRule]] = {}
    for alert in alerts:
        grouped.setdefault(alert.source_template.service, []).append(alert)
    return grouped


def count_alerts_by_severity(alerts: Sequence[AlertRule]) -> SeverityCounts:
    counts = {s: 0 for s in AlertSeverity}
    for alert in alerts:
        counts[alert.severity] += 1
    return SeverityCounts(
        critical=counts[AlertSeverity.CRITICAL],
        warning=counts[AlertSeverity.WARNING],
        info=counts[AlertSeverity.INFO],
    )


def summarize_alerts(alerts: Sequence[AlertRule]) -> AlertsSummary:
    """Count rules by service and severity and flag oversized rule sets."""
    by_service = {
        service.value: len(items)
        for service, items in group_alerts_by_service(alerts).items()
    }
    by_severity = count_alerts_by_severity(alerts)
    total = len(alerts)

    warnings: list[str] = []
    if total > MAX_ALERTS_PER_RUN:
        warnings.append(
            f"High alert count ({total}). "
            "Consider splitting into multiple provisioning runs."
        )
    if by_severity.critical > MAX_CRITICAL_ALERTS:
        warnings.append(
            f"Many critical alerts ({by_severity.critical}). "
            "This may cause alert fatigue."
        )

    return AlertsSummary(
        total_count=total,
        by_service=by_service,
        by_severity=by_severity,
        warnings=tuple(warnings),
    )
