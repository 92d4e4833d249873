"""Provision Grafana alert rules and dashboards for discovered AWS resources."""

__version__ = "0.1.0"
