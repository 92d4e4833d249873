"""Domain types for dashboard provisioning."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class DashboardTemplate(BaseModel):
    """A dashboard JSON template and the CloudWatch shape it expects."""

    model_config = ConfigDict(frozen=True)

    filename: str
    title: str
    namespace: str
    dimension_key: str
    variable_name: str


class DashboardMatch(BaseModel):
    """Resources of one service in one region, paired with its template."""

    model_config = ConfigDict(frozen=True)

    service: str
    region: str
    template: DashboardTemplate
    resource_count: int


class DashboardMatchingResult(BaseModel):
    """Matcher output. ``confirmed`` is True exactly when there are matches."""

    model_config = ConfigDict(frozen=True)

    matches: tuple[DashboardMatch, ...] = ()
    gaps: tuple[str, ...] = ()
    unused_templates: tuple[str, ...] = ()
    confirmed: bool = False


class DashboardSelection(BaseModel):
    """One service's dashboard across all regions, with the operator's choice."""

    model_config = ConfigDict(frozen=True)

    service: str
    template: DashboardTemplate | None = None
    selected: bool
    has_template: bool
    regions: tuple[str, ...] = ()
    total_resource_count: int = 0
