"""Network and application security group reconciliation.

Both kinds are regional, tagged resources keyed by name within a resource
group. Tags are merged additively; a tag set by someone else survives
every pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from azure.mgmt.network.models import ApplicationSecurityGroup as AzureApplicationSecurityGroup
from azure.mgmt.network.models import NetworkSecurityGroup as AzureNetworkSecurityGroup

from .tasks import Task, applying, discovery, merge_tags

if TYPE_CHECKING:
    from .cloud import AzureCloud

logger = logging.getLogger(__name__)


@dataclass
class NetworkSecurityGroup(Task):
    """A network security group.

    Rules are reconciled separately as SecurityGroupRule resources. The
    rules discovered on the group are carried through updates unchanged so
    that rewriting the group's tags never drops them.
    """

    KIND: ClassVar[str] = "NetworkSecurityGroup"
    HAS_CLUSTER_TAGS: ClassVar[bool] = True

    name: str | None = None
    resource_group: str | None = None
    tags: dict[str, str] | None = None
    id: str | None = field(default=None, compare=False)
    shared: bool | None = field(default=None, compare=False)
    security_rules: list[Any] | None = field(default=None, compare=False, repr=False)

    def find(self, cloud: AzureCloud) -> NetworkSecurityGroup | None:
        resource_group = self.resource_group or cloud.resource_group
        with discovery(self.KIND, self.name):
            groups = cloud.network_security_groups().list(resource_group)

        for group in groups:
            if group.name == self.name:
                logger.debug("Found network security group", extra={"nsg_id": group.id})
                return NetworkSecurityGroup(
                    name=group.name,
                    resource_group=self.resource_group,
                    tags=dict(group.tags or {}),
                    id=group.id,
                    shared=self.shared,
                    security_rules=group.security_rules,
                )
        return None

    @classmethod
    def render(
        cls,
        cloud: AzureCloud,
        actual: NetworkSecurityGroup | None,
        desired: NetworkSecurityGroup,
        changes: NetworkSecurityGroup,
    ) -> None:
        if actual is None:
            logger.info("Creating network security group", extra={"nsg": desired.name})
        else:
            logger.info("Updating network security group", extra={"nsg": desired.name})

        parameters = AzureNetworkSecurityGroup(
            location=cloud.region,
            tags=merge_tags(actual.tags if actual else None, desired.tags),
            security_rules=actual.security_rules if actual else None,
        )
        with applying(cls.KIND, desired.name):
            group = cloud.network_security_groups().create_or_update(
                desired.resource_group or cloud.resource_group, desired.name, parameters
            )
        desired.id = group.id


@dataclass
class ApplicationSecurityGroup(Task):
    """An application security group, referenced by rules as source or
    destination."""

    KIND: ClassVar[str] = "ApplicationSecurityGroup"
    HAS_CLUSTER_TAGS: ClassVar[bool] = True

    name: str | None = None
    resource_group: str | None = None
    tags: dict[str, str] | None = None
    id: str | None = field(default=None, compare=False)
    shared: bool | None = field(default=None, compare=False)

    def find(self, cloud: AzureCloud) -> ApplicationSecurityGroup | None:
        resource_group = self.resource_group or cloud.resource_group
        with discovery(self.KIND, self.name):
            groups = cloud.application_security_groups().list(resource_group)

        for group in groups:
            if group.name == self.name:
                logger.debug("Found application security group", extra={"asg_id": group.id})
                return ApplicationSecurityGroup(
                    name=group.name,
                    resource_group=self.resource_group,
                    tags=dict(group.tags or {}),
                    id=group.id,
                    shared=self.shared,
                )
        return None

    @classmethod
    def render(
        cls,
        cloud: AzureCloud,
        actual: ApplicationSecurityGroup | None,
        desired: ApplicationSecurityGroup,
        changes: ApplicationSecurityGroup,
    ) -> None:
        if actual is None:
            logger.info("Creating application security group", extra={"asg": desired.name})
        else:
            logger.info("Updating application security group", extra={"asg": desired.name})

        parameters = AzureApplicationSecurityGroup(
            location=cloud.region,
            tags=merge_tags(actual.tags if actual else None, desired.tags),
        )
        with applying(cls.KIND, desired.name):
            group = cloud.application_security_groups().create_or_update(
                desired.resource_group or cloud.resource_group, desired.name, parameters
            )
        desired.id = group.id
