"""Alert customization — merges operator overrides onto template defaults."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from provisioner.alerts.templates import AlertTemplate
from provisioner.alerts.types import (
    AlertConfiguration,
    AlertOverrides,
    PendingAlert,
    TemplateMatch,
)
from provisioner.core.types import Customer, CustomizableField, DataSourceType

DEFAULT_DATA_SOURCE_TYPE = DataSourceType.CLOUDWATCH

_NO_OVERRIDES = AlertOverrides()


def resolve_data_source_type(
    template: AlertTemplate,
    requested: DataSourceType | None = None,
) -> DataSourceType:
    """Pick the data source type a template's alert will query.

    A single declared type always wins. With both declared, the operator's
    request wins, else cloudwatch. A request for an undeclared type is ignored.
    """
    supported = template.supported_data_source_types
    if len(supported) == 1:
        return supported[0]
    if requested is not None and requested in supported:
        return requested
    return DEFAULT_DATA_SOURCE_TYPE


def default_configuration(template: AlertTemplate, customer: Customer) -> AlertConfiguration:
    return AlertConfiguration(
        threshold=template.defaults.threshold,
        evaluation_interval=template.defaults.evaluation_interval,
        for_duration=template.defaults.for_duration,
        severity=template.severity,
        labels=dict(template.labels),
        contact_point=customer.default_contact_point,
        data_source_type=resolve_data_source_type(template),
    )


def merge_configuration(
    template: AlertTemplate,
    customer: Customer,
    overrides: AlertOverrides | None = None,
) -> AlertConfiguration:
    """Apply *overrides* for the template's customizable fields only."""
    ov = overrides or _NO_OVERRIDES
    base = default_configuration(template, customer)

    def allowed(field: CustomizableField, supplied: object) -> bool:
        return supplied is not None and template.is_customizable(field)

    return AlertConfiguration(
        threshold=(
            ov.threshold
            if allowed(CustomizableField.THRESHOLD, ov.threshold)
            else base.threshold
        ),
        evaluation_interval=(
            ov.evaluation_interval
            if allowed(CustomizableField.EVALUATION_INTERVAL, ov.evaluation_interval)
            else base.evaluation_interval
        ),
        for_duration=(
            ov.for_duration
            if allowed(CustomizableField.FOR_DURATION, ov.for_duration)
            else base.for_duration
        ),
        severity=(
            ov.severity
            if allowed(CustomizableField.SEVERITY, ov.severity)
            else base.severity
        ),
        labels=dict(
            ov.labels
            if ov.labels is not None and allowed(CustomizableField.LABELS, ov.labels)
            else base.labels
        ),
        contact_point=(
            ov.contact_point
            if allowed(CustomizableField.CONTACT_POINT, ov.contact_point)
            else base.contact_point
        ),
        data_source_type=resolve_data_source_type(template, ov.data_source_type),
    )


def customize_match(
    match: TemplateMatch,
    customer: Customer,
    overrides: AlertOverrides | None = None,
) -> PendingAlert:
    """Turn one template match into a pending alert."""
    return PendingAlert(
        template=match.template,
        region=match.region,
        resources=match.resources,
        configuration=merge_configuration(match.template, customer, overrides),
    )


def customize_alerts(
    matches: Sequence[TemplateMatch],
    customer: Customer,
    overrides_by_template: Mapping[str, AlertOverrides] | None = None,
) -> list[PendingAlert]:
    """One pending alert per match; overrides are looked up by template id."""
    lookup = overrides_by_template or {}
    return [
        customize_match(m, customer, lookup.get(m.template.id))
        for m in matches
    ]
