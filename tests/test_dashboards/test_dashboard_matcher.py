"""Tests for dashboard matching, selection aggregation and catalog lookups."""

from __future__ import annotations

from provisioner.dashboards.catalog import (
    DASHBOARD_SERVICE_MAP,
    all_dashboard_templates,
    get_dashboard_template,
)
from provisioner.dashboards.matcher import (
    aggregate_to_selections,
    apply_selection,
    group_dashboard_matches_by_service,
    match_dashboard_templates,
)
from provisioner.dashboards.types import DashboardTemplate
from provisioner.discovery.resources import (
    AwsResource,
    DiscoveredResources,
    Ec2Resource,
    EcsResource,
    LambdaResource,
    RdsResource,
    create_empty_discovered_resources,
)

# ── Helpers ─────────────────────────────────────────────────────


def _ec2(id: str = "i-1", region: str = "us-east-1") -> Ec2Resource:
    return Ec2Resource(
        id=id, arn=f"arn:{id}", name=id, region=region,
        instance_type="t3.micro", state="running",
    )


def _lambda(name: str = "fn", region: str = "us-east-1") -> LambdaResource:
    return LambdaResource(id=name, arn=f"arn:{name}", name=name, region=region)


def _rds(id: str, aurora: bool = False) -> RdsResource:
    return RdsResource(
        id=id, arn=f"arn:{id}", name=id, region="us-east-1",
        engine="aurora-mysql" if aurora else "mysql", is_aurora=aurora,
    )


def _resources(*items: AwsResource) -> DiscoveredResources:
    return DiscoveredResources.from_resources(items)


class TestMatchDashboardTemplates:
    def test_empty_inventory(self) -> None:
        result = match_dashboard_templates(create_empty_discovered_resources())
        assert result.matches == ()
        assert result.gaps == ()
        assert result.confirmed is False
        assert set(result.unused_templates) == set(DASHBOARD_SERVICE_MAP)

    def test_ec2_and_lambda(self) -> None:
        result = match_dashboard_templates(_resources(_ec2(), _lambda()))

        assert len(result.matches) == 2
        assert result.confirmed is True
        assert {m.service for m in result.matches} == {"ec2", "lambda"}
        assert "ec2" not in result.unused_templates

    def test_one_match_per_region_with_counts(self) -> None:
        inventory = _resources(
            _ec2("i-1", "us-east-1"), _ec2("i-2", "us-west-2"), _ec2("i-3", "us-east-1"),
        )
        result = match_dashboard_templates(inventory)
        assert [(m.region, m.resource_count) for m in result.matches] == [
            ("us-east-1", 2), ("us-west-2", 1),
        ]
        assert result.matches[0].template == DASHBOARD_SERVICE_MAP["ec2"]

    def test_rds_splits_into_aurora_and_rds(self) -> None:
        result = match_dashboard_templates(_resources(_rds("a", aurora=True), _rds("b"), _rds("c")))
        counts = {m.service: m.resource_count for m in result.matches}
        assert counts == {"aurora": 1, "rds": 2}

    def test_only_aurora_emits_no_rds_match(self) -> None:
        result = match_dashboard_templates(_resources(_rds("a", aurora=True)))
        assert [m.service for m in result.matches] == ["aurora"]
        # rds still counts as used: the service has resources
        assert "rds" not in result.unused_templates
        assert "aurora" not in result.unused_templates

    def test_only_standard_rds_leaves_aurora_unused(self) -> None:
        result = match_dashboard_templates(_resources(_rds("orders")))
        assert [m.service for m in result.matches] == ["rds"]
        assert "aurora" in result.unused_templates
        assert "rds" not in result.unused_templates

    def test_missing_catalog_entry_is_gap(self) -> None:
        catalog = {"ec2": DASHBOARD_SERVICE_MAP["ec2"]}
        cluster = EcsResource(id="c", arn="arn:c", name="c", region="us-east-1")
        result = match_dashboard_templates(_resources(_ec2(), cluster), catalog)

        assert result.gaps == ("ecs",)
        assert [m.service for m in result.matches] == ["ec2"]
        assert result.unused_templates == ()

    def test_only_gaps_not_confirmed(self) -> None:
        result = match_dashboard_templates(_resources(_ec2()), {})
        assert result.gaps == ("ec2",)
        assert result.confirmed is False


class TestSelections:
    def test_aggregate_collapses_regions(self) -> None:
        inventory = _resources(
            _ec2("i-1", "us-west-2"), _ec2("i-2", "us-east-1"), _ec2("i-3", "us-west-2"),
        )
        result = match_dashboard_templates(inventory)
        (selection,) = aggregate_to_selections(result.matches, result.gaps)

        assert selection.service == "ec2"
        assert selection.selected and selection.has_template
        assert selection.regions == ("us-west-2", "us-east-1")
        assert selection.total_resource_count == 3

    def test_gaps_appended_unselected(self) -> None:
        result = match_dashboard_templates(_resources(_ec2()), {"ec2": DASHBOARD_SERVICE_MAP["ec2"]})
        selections = aggregate_to_selections(result.matches, ["ecs", "ecs"])

        assert [s.service for s in selections] == ["ec2", "ecs"]
        gap = selections[1]
        assert not gap.selected
        assert not gap.has_template
        assert gap.template is None
        assert gap.regions == ()
        assert gap.total_resource_count == 0

    def test_apply_selection(self) -> None:
        result = match_dashboard_templates(_resources(_ec2(), _lambda()))
        selections = aggregate_to_selections(result.matches, ["ecs"])
        chosen = apply_selection(selections, ["lambda", "ecs"])

        assert {s.service: s.selected for s in chosen} == {
            "ec2": False, "lambda": True, "ecs": False,
        }

    def test_group_by_service(self) -> None:
        result = match_dashboard_templates(
            _resources(_ec2("i-1", "us-east-1"), _ec2("i-2", "eu-west-1"), _lambda()),
        )
        grouped = group_dashboard_matches_by_service(result.matches)
        assert {k: len(v) for k, v in grouped.items()} == {"ec2": 2, "lambda": 1}


class TestCatalog:
    def test_lookup_case_insensitive(self) -> None:
        template = get_dashboard_template("EC2")
        assert isinstance(template, DashboardTemplate)
        assert template.filename == "ec2-cloudwatch-dashboard.json"
        assert template.namespace == "AWS/EC2"
        assert template.dimension_key == "InstanceId"

    def test_unknown_service(self) -> None:
        assert get_dashboard_template("mainframe") is None

    def test_all_templates(self) -> None:
        entries = all_dashboard_templates()
        assert len(entries) == len(DASHBOARD_SERVICE_MAP)
        assert ("aurora", DASHBOARD_SERVICE_MAP["aurora"]) in entries
