"""Core module — config, types, logging, exceptions."""

from provisioner.core.config import (
    Settings,
    get_settings,
    load_settings,
    reset_settings,
    validate_settings,
)
from provisioner.core.exceptions import (
    ConfigError,
    CredentialsError,
    ProvisionerError,
    TemplateRepositoryError,
)
from provisioner.core.logging import create_session_logger, setup_logging
from provisioner.core.types import (
    AlertSeverity,
    AwsServiceType,
    Customer,
    CustomizableField,
    DataSourceRef,
    DataSourceType,
    Threshold,
    ThresholdOperator,
    create_customer,
)

__all__ = [
    "AlertSeverity",
    "AwsServiceType",
    "ConfigError",
    "CredentialsError",
    "Customer",
    "CustomizableField",
    "DataSourceRef",
    "DataSourceType",
    "ProvisionerError",
    "Settings",
    "TemplateRepositoryError",
    "Threshold",
    "ThresholdOperator",
    "create_customer",
    "create_session_logger",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
    "validate_settings",
]
