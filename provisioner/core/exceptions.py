"""Provisioning exceptions raised at the pipeline boundary."""

from __future__ import annotations


class ProvisionerError(Exception):
    """Base exception for provisioning errors."""


class ConfigError(ProvisionerError):
    """Configuration is missing or malformed."""


class CredentialsError(ProvisionerError):
    """AWS credentials are missing, invalid or expired."""


class TemplateRepositoryError(ProvisionerError):
    """The alert template library could not be loaded."""


class DiscoveryError(ProvisionerError):
    """Discovered inventory is malformed or cannot be read."""
