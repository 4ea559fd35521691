"""Security rule reconciliation.

A rule belongs to exactly one network security group and may reference
application security groups as source or destination. Groups are named in
the desired state; their ARM ids are derived at render time and parsed back
to names at discovery so both sides compare by name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from azure.mgmt.network.models import ApplicationSecurityGroup as AzureApplicationSecurityGroup
from azure.mgmt.network.models import SecurityRule

from .errors import ApplyError, BackendError
from .tasks import Task, TaskKey, applying, discovery

if TYPE_CHECKING:
    from .cloud import AzureCloud

logger = logging.getLogger(__name__)

APPLICATION_SECURITY_GROUP_PROVIDER_TYPE = "Microsoft.Network/applicationSecurityGroups"

ANY = "*"
DIRECTION_INBOUND = "Inbound"
DIRECTION_OUTBOUND = "Outbound"


def _enum_value(value: Any) -> str | None:
    if value is None:
        return None
    return getattr(value, "value", value)


def _names_from_ids(groups: list[Any] | None) -> tuple[str, ...] | None:
    if not groups:
        return None
    return tuple(g.id.rstrip("/").rsplit("/", 1)[-1] for g in groups)


def _tuple_or_none(values: list[str] | None) -> tuple[str, ...] | None:
    return tuple(values) if values else None


@dataclass
class SecurityGroupRule(Task):
    """One rule of a network security group.

    Attributes:
        egress: True for outbound rules, False or None for inbound.
        protocol: "Tcp", "Udp", "Icmp" or "*".
        access: "Allow" or "Deny".
        priority: 100-4096; lower numbers are evaluated first.
    """

    KIND: ClassVar[str] = "SecurityGroupRule"
    IMMUTABLE_FIELDS: ClassVar[tuple[str, ...]] = ("name", "network_security_group")

    name: str | None = None
    resource_group: str | None = None
    network_security_group: str | None = None
    priority: int | None = None
    protocol: str | None = None
    access: str | None = None
    egress: bool | None = None
    source_port_range: str | None = None
    destination_port_range: str | None = None
    source_address_prefix: str | None = None
    source_address_prefixes: tuple[str, ...] | None = None
    destination_address_prefix: str | None = None
    destination_address_prefixes: tuple[str, ...] | None = None
    source_application_security_groups: tuple[str, ...] | None = None
    destination_application_security_groups: tuple[str, ...] | None = None
    id: str | None = field(default=None, compare=False)

    @property
    def key(self) -> TaskKey:
        # Rule names are only unique within their group
        return (self.KIND, f"{self.network_security_group}/{self.name}")

    def depends_on(self) -> list[TaskKey]:
        keys: list[TaskKey] = []
        if self.network_security_group:
            keys.append(("NetworkSecurityGroup", self.network_security_group))
        for name in [
            *(self.source_application_security_groups or ()),
            *(self.destination_application_security_groups or ()),
        ]:
            keys.append(("ApplicationSecurityGroup", name))
        return keys

    def find(self, cloud: AzureCloud) -> SecurityGroupRule | None:
        if not self.network_security_group:
            return None

        resource_group = self.resource_group or cloud.resource_group
        with discovery(self.KIND, self.name):
            try:
                rules = cloud.security_rules().list(resource_group, self.network_security_group)
            except BackendError as e:
                # The owning group not existing yet means the rule does not either
                if e.is_not_found:
                    return None
                raise

        for rule in rules:
            if rule.name != self.name:
                continue
            logger.debug("Found security rule", extra={"rule_id": rule.id})
            return SecurityGroupRule(
                name=rule.name,
                resource_group=self.resource_group,
                network_security_group=self.network_security_group,
                priority=rule.priority,
                protocol=_enum_value(rule.protocol),
                access=_enum_value(rule.access),
                egress=_enum_value(rule.direction) == DIRECTION_OUTBOUND,
                source_port_range=rule.source_port_range,
                destination_port_range=rule.destination_port_range,
                source_address_prefix=rule.source_address_prefix,
                source_address_prefixes=_tuple_or_none(rule.source_address_prefixes),
                destination_address_prefix=rule.destination_address_prefix,
                destination_address_prefixes=_tuple_or_none(rule.destination_address_prefixes),
                source_application_security_groups=_names_from_ids(
                    rule.source_application_security_groups
                ),
                destination_application_security_groups=_names_from_ids(
                    rule.destination_application_security_groups
                ),
                id=rule.id,
            )
        return None

    @classmethod
    def render(
        cls,
        cloud: AzureCloud,
        actual: SecurityGroupRule | None,
        desired: SecurityGroupRule,
        changes: SecurityGroupRule,
    ) -> None:
        if not desired.network_security_group:
            raise ApplyError(f"Security rule {desired.name} has no network security group")
        if desired.priority is None:
            raise ApplyError(f"Security rule {desired.name} has no priority")

        resource_group = desired.resource_group or cloud.resource_group

        def application_security_groups(
            names: tuple[str, ...] | None,
        ) -> list[AzureApplicationSecurityGroup] | None:
            if not names:
                return None
            return [
                AzureApplicationSecurityGroup(
                    id=cloud.resource_id(
                        APPLICATION_SECURITY_GROUP_PROVIDER_TYPE, name, resource_group
                    )
                )
                for name in names
            ]

        source_groups = application_security_groups(desired.source_application_security_groups)
        destination_groups = application_security_groups(
            desired.destination_application_security_groups
        )

        # Azure requires one of prefix, prefixes or groups on each side
        source_prefix = desired.source_address_prefix
        if not (source_prefix or desired.source_address_prefixes or source_groups):
            source_prefix = ANY
        destination_prefix = desired.destination_address_prefix
        if not (destination_prefix or desired.destination_address_prefixes or destination_groups):
            destination_prefix = ANY

        parameters = SecurityRule(
            protocol=desired.protocol or ANY,
            access=desired.access or "Allow",
            priority=desired.priority,
            direction=DIRECTION_OUTBOUND if desired.egress else DIRECTION_INBOUND,
            source_port_range=desired.source_port_range or ANY,
            destination_port_range=desired.destination_port_range or ANY,
            source_address_prefix=source_prefix,
            source_address_prefixes=(
                list(desired.source_address_prefixes) if desired.source_address_prefixes else None
            ),
            destination_address_prefix=destination_prefix,
            destination_address_prefixes=(
                list(desired.destination_address_prefixes)
                if desired.destination_address_prefixes
                else None
            ),
            source_application_security_groups=source_groups,
            destination_application_security_groups=destination_groups,
        )

        logger.info(
            "Creating security rule" if actual is None else "Updating security rule",
            extra={"rule": desired.name, "nsg": desired.network_security_group},
        )
        with applying(cls.KIND, desired.name):
            rule = cloud.security_rules().create_or_update(
                resource_group, desired.network_security_group, desired.name, parameters
            )
        desired.id = rule.id
