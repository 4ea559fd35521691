"""Cloud handle passed to every reconciliation step.

Bundles the validated configuration with the DNS provider and the network
clients so each triad reads subscription, resource group and region from
one explicit value.
"""

from __future__ import annotations

import logging

from azure.core.credentials import TokenCredential
from azure.mgmt.network import NetworkManagementClient

from .config import Config
from .dnsprovider import PROVIDER_NAME, AzureDNSProvider, get_dns_provider
from .network_clients import (
    ApplicationSecurityGroupClient,
    NetworkSecurityGroupClient,
    SecurityRulesClient,
)

logger = logging.getLogger(__name__)


class AzureCloud:
    """Configured Azure clients for one subscription and resource group."""

    def __init__(
        self,
        config: Config,
        dns: AzureDNSProvider,
        network_security_groups: NetworkSecurityGroupClient,
        application_security_groups: ApplicationSecurityGroupClient,
        security_rules: SecurityRulesClient,
    ) -> None:
        self._config = config
        self._dns = dns
        self._network_security_groups = network_security_groups
        self._application_security_groups = application_security_groups
        self._security_rules = security_rules

    @classmethod
    def from_credential(cls, config: Config, credential: TokenCredential) -> AzureCloud:
        network = NetworkManagementClient(
            credential=credential, subscription_id=config.subscription_id
        )
        return cls(
            config=config,
            dns=get_dns_provider(PROVIDER_NAME, config, credential),
            network_security_groups=NetworkSecurityGroupClient(network),
            application_security_groups=ApplicationSecurityGroupClient(network),
            security_rules=SecurityRulesClient(network),
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def subscription_id(self) -> str:
        return self._config.subscription_id

    @property
    def region(self) -> str:
        return self._config.location

    @property
    def resource_group(self) -> str:
        return self._config.resource_group_name

    def dns(self) -> AzureDNSProvider:
        return self._dns

    def network_security_groups(self) -> NetworkSecurityGroupClient:
        return self._network_security_groups

    def application_security_groups(self) -> ApplicationSecurityGroupClient:
        return self._application_security_groups

    def security_rules(self) -> SecurityRulesClient:
        return self._security_rules

    def add_cluster_tags(self, tags: dict[str, str]) -> None:
        """Merge the cluster tags into ``tags`` in place."""
        tags.update(self._config.cluster_tags)

    def resource_id(self, provider_type: str, name: str, resource_group: str | None = None) -> str:
        """Build an ARM resource id, e.g. for "Microsoft.Network/virtualNetworks"."""
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{resource_group or self.resource_group}"
            f"/providers/{provider_type}/{name}"
        )
