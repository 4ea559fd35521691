"""Thin wrappers over azure-mgmt-network for security groups and rules.

Each wrapper exposes list / create_or_update keyed by resource
group and name, drains pagers, blocks on long-running operations and
reports failures as BackendError.
"""

from __future__ import annotations

from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.network.models import (
    ApplicationSecurityGroup,
    NetworkSecurityGroup,
    SecurityRule,
)

from .errors import backend_call


class NetworkSecurityGroupClient:
    """Client for managing network security groups."""

    def __init__(self, client: NetworkManagementClient) -> None:
        self._client = client

    def list(self, resource_group: str) -> list[NetworkSecurityGroup]:
        with backend_call("network_security_groups.list", resource_group):
            return list(self._client.network_security_groups.list(resource_group_name=resource_group))

    def create_or_update(
        self, resource_group: str, name: str, parameters: NetworkSecurityGroup
    ) -> NetworkSecurityGroup:
        with backend_call("network_security_groups.begin_create_or_update", f"{resource_group}/{name}"):
            return self._client.network_security_groups.begin_create_or_update(
                resource_group_name=resource_group,
                network_security_group_name=name,
                parameters=parameters,
            ).result()


class ApplicationSecurityGroupClient:
    """Client for managing application security groups."""

    def __init__(self, client: NetworkManagementClient) -> None:
        self._client = client

    def list(self, resource_group: str) -> list[ApplicationSecurityGroup]:
        with backend_call("application_security_groups.list", resource_group):
            return list(
                self._client.application_security_groups.list(resource_group_name=resource_group)
            )

    def create_or_update(
        self, resource_group: str, name: str, parameters: ApplicationSecurityGroup
    ) -> ApplicationSecurityGroup:
        with backend_call(
            "application_security_groups.begin_create_or_update", f"{resource_group}/{name}"
        ):
            return self._client.application_security_groups.begin_create_or_update(
                resource_group_name=resource_group,
                application_security_group_name=name,
                parameters=parameters,
            ).result()


class SecurityRulesClient:
    """Client for managing the security rules of a network security group."""

    def __init__(self, client: NetworkManagementClient) -> None:
        self._client = client

    def list(self, resource_group: str, network_security_group: str) -> list[SecurityRule]:
        with backend_call("security_rules.list", f"{resource_group}/{network_security_group}"):
            return list(
                self._client.security_rules.list(
                    resource_group_name=resource_group,
                    network_security_group_name=network_security_group,
                )
            )

    def create_or_update(
        self,
        resource_group: str,
        network_security_group: str,
        name: str,
        parameters: SecurityRule,
    ) -> SecurityRule:
        path = f"{resource_group}/{network_security_group}/{name}"
        with backend_call("security_rules.begin_create_or_update", path):
            return self._client.security_rules.begin_create_or_update(
                resource_group_name=resource_group,
                network_security_group_name=network_security_group,
                security_rule_name=name,
                security_rule_parameters=parameters,
            ).result()
