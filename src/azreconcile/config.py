"""Configuration management with validation.

Configuration is read once at the process boundary and threaded into every
constructor as an explicit value. Nothing below this module reads the
environment mid-operation.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

# Tag key carrying the cluster name on every tagged resource
CLUSTER_TAG_KEY = "KubernetesCluster"

MAX_RESOURCE_GROUP_NAME_LENGTH = 90
MAX_TOPOLOGY_FILE_SIZE_BYTES = 1024 * 1024  # 1MB max topology file

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
VALID_LOCATION_PATTERN = r"^[a-z]{2,}[a-z0-9]*$"
VALID_RESOURCE_GROUP_PATTERN = r"^[-\w\._\(\)]+$"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass(frozen=True)
class Config:
    """Reconciler configuration.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError immediately rather than failing mid-pass.
    """

    subscription_id: str
    resource_group_name: str
    location: str

    # Cluster identity, used for the additive cluster tag merge
    cluster_name: str | None = None

    # User-assigned managed identity; None selects DefaultAzureCredential
    managed_identity_client_id: str | None = None

    dry_run: bool = False

    def __post_init__(self) -> None:
        errors: list[str] = []

        if not self.subscription_id:
            errors.append("AZURE_SUBSCRIPTION_ID is required")
        elif not re.match(VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        if not self.resource_group_name:
            errors.append("AZURE_RESOURCEGROUP_NAME is required")
        elif len(self.resource_group_name) > MAX_RESOURCE_GROUP_NAME_LENGTH:
            errors.append(
                f"AZURE_RESOURCEGROUP_NAME exceeds maximum length of "
                f"{MAX_RESOURCE_GROUP_NAME_LENGTH}"
            )
        elif not re.match(VALID_RESOURCE_GROUP_PATTERN, self.resource_group_name):
            errors.append(
                f"AZURE_RESOURCEGROUP_NAME contains invalid characters: "
                f"{self.resource_group_name}"
            )

        if not self.location:
            errors.append("AZURE_LOCATION is required")
        elif not re.match(VALID_LOCATION_PATTERN, self.location.lower()):
            errors.append(f"AZURE_LOCATION must be a valid Azure region: {self.location}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def cluster_tags(self) -> dict[str, str]:
        """Tags merged into every taggable resource owned by this cluster."""
        if not self.cluster_name:
            return {}
        return {CLUSTER_TAG_KEY: self.cluster_name}

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables.

        Environment Variables:
            AZURE_SUBSCRIPTION_ID: Target Azure subscription
            AZURE_RESOURCEGROUP_NAME: Resource group holding the managed resources
            AZURE_LOCATION: Region for regional resources (NSGs, ASGs)
            CLUSTER_NAME: Optional cluster name for the cluster tag
            AZURE_MANAGED_IDENTITY_CLIENT_ID: Optional user-assigned identity
            DRY_RUN: If "true", only compute and validate changes (default: false)
        """

        def get_bool(key: str, default: bool) -> bool:
            value = os.environ.get(key, "").lower()
            if not value:
                return default
            return value in ("true", "1", "yes")

        return cls(
            subscription_id=os.environ.get("AZURE_SUBSCRIPTION_ID", ""),
            resource_group_name=os.environ.get("AZURE_RESOURCEGROUP_NAME", ""),
            location=os.environ.get("AZURE_LOCATION", ""),
            cluster_name=os.environ.get("CLUSTER_NAME") or None,
            managed_identity_client_id=(
                os.environ.get("AZURE_MANAGED_IDENTITY_CLIENT_ID") or None
            ),
            dry_run=get_bool("DRY_RUN", False),
        )
