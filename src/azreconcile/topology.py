"""Desired-state topology: pydantic models and the YAML loader.

Validation happens here, at the boundary. A topology that loads is
structurally sound; what remains for the reconcile pass is comparing it
against the cloud.

Example:

    resourceGroupName: rg-cluster
    dnsZones:
      - name: example.com
      - name: internal.example.com
        private: true
        virtualNetworkName: vnet-cluster
    recordSets:
      - name: api
        dnsZone: internal.example.com
        ttl: 60
        addresses: [10.0.0.4]
    applicationSecurityGroups:
      - name: asg-masters
    networkSecurityGroups:
      - name: nsg-cluster
    securityRules:
      - name: allow-https
        networkSecurityGroup: nsg-cluster
        priority: 200
        protocol: Tcp
        destinationPortRange: "443"
        destinationApplicationSecurityGroups: [asg-masters]
"""

from __future__ import annotations

import ipaddress
import logging
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .config import MAX_TOPOLOGY_FILE_SIZE_BYTES
from .dnszone import DNSZone
from .recordset import DEFAULT_TTL, RecordSet
from .securitygroups import ApplicationSecurityGroup, NetworkSecurityGroup
from .securityrule import SecurityGroupRule
from .tasks import Task

logger = logging.getLogger(__name__)

MIN_RULE_PRIORITY = 100
MAX_RULE_PRIORITY = 4096
MAX_TTL_SECONDS = 2147483647

VALID_PROTOCOLS = ("Tcp", "Udp", "Icmp", "*")
VALID_ACCESS = ("Allow", "Deny")
VALID_DIRECTIONS = ("Inbound", "Outbound")


class TopologyLoadError(Exception):
    """Raised when topology loading or validation fails."""

    pass


def _canonical(value: str, choices: tuple[str, ...], field_name: str) -> str:
    for choice in choices:
        if value.lower() == choice.lower():
            return choice
    raise ValueError(f"{field_name} must be one of {list(choices)}")


# =============================================================================
# DNS
# =============================================================================


class DNSZoneConfig(BaseModel):
    """DNS zone declaration."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1, max_length=253)]
    private: bool = False
    virtual_network_name: str | None = Field(None, alias="virtualNetworkName")
    tags: dict[str, str] = Field(default_factory=dict)
    # Zone is also used by others; tags are merged, never replaced
    shared: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return v.rstrip(".")

    @model_validator(mode="after")
    def validate_private_network(self) -> DNSZoneConfig:
        if self.private and not self.virtual_network_name:
            raise ValueError("private zones require virtualNetworkName")
        return self


class RecordSetConfig(BaseModel):
    """A record declaration."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1)]
    dns_zone: Annotated[str, Field(min_length=1, alias="dnsZone")]
    ttl: Annotated[int, Field(ge=1, le=MAX_TTL_SECONDS)] = DEFAULT_TTL
    addresses: Annotated[list[str], Field(min_length=1)]
    type: str = "A"
    shared: bool = False

    @field_validator("addresses")
    @classmethod
    def validate_addresses(cls, v: list[str]) -> list[str]:
        for address in v:
            try:
                ipaddress.IPv4Address(address)
            except ValueError as e:
                raise ValueError(f"not an IPv4 address: {address}") from e
        return v

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v.upper() != "A":
            raise ValueError("only A records are supported")
        return "A"


# =============================================================================
# Network security
# =============================================================================


class ApplicationSecurityGroupConfig(BaseModel):
    """Application security group declaration."""

    model_config = {"extra": "ignore"}

    name: Annotated[str, Field(min_length=1, max_length=80)]
    tags: dict[str, str] = Field(default_factory=dict)
    shared: bool = False


class NetworkSecurityGroupConfig(BaseModel):
    """Network security group declaration."""

    model_config = {"extra": "ignore"}

    name: Annotated[str, Field(min_length=1, max_length=80)]
    tags: dict[str, str] = Field(default_factory=dict)
    shared: bool = False


class SecurityRuleConfig(BaseModel):
    """Security rule declaration."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1, max_length=80)]
    network_security_group: Annotated[str, Field(min_length=1, alias="networkSecurityGroup")]
    priority: Annotated[int, Field(ge=MIN_RULE_PRIORITY, le=MAX_RULE_PRIORITY)]
    protocol: str = "*"
    access: str = "Allow"
    direction: str = "Inbound"
    source_port_range: str | None = Field(None, alias="sourcePortRange")
    destination_port_range: str | None = Field(None, alias="destinationPortRange")
    source_address_prefix: str | None = Field(None, alias="sourceAddressPrefix")
    source_address_prefixes: list[str] = Field(default_factory=list, alias="sourceAddressPrefixes")
    destination_address_prefix: str | None = Field(None, alias="destinationAddressPrefix")
    destination_address_prefixes: list[str] = Field(
        default_factory=list, alias="destinationAddressPrefixes"
    )
    source_application_security_groups: list[str] = Field(
        default_factory=list, alias="sourceApplicationSecurityGroups"
    )
    destination_application_security_groups: list[str] = Field(
        default_factory=list, alias="destinationApplicationSecurityGroups"
    )

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        return _canonical(v, VALID_PROTOCOLS, "protocol")

    @field_validator("access")
    @classmethod
    def validate_access(cls, v: str) -> str:
        return _canonical(v, VALID_ACCESS, "access")

    @field_validator("direction")
    @classmethod
    def validate_direction(cls, v: str) -> str:
        return _canonical(v, VALID_DIRECTIONS, "direction")


# =============================================================================
# Topology
# =============================================================================


class Topology(BaseModel):
    """The full desired state of one reconcile pass."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    resource_group_name: str | None = Field(None, alias="resourceGroupName")
    # Applied to every taggable resource; per-resource tags win on conflict
    tags: dict[str, str] = Field(default_factory=dict)
    dns_zones: list[DNSZoneConfig] = Field(default_factory=list, alias="dnsZones")
    record_sets: list[RecordSetConfig] = Field(default_factory=list, alias="recordSets")
    application_security_groups: list[ApplicationSecurityGroupConfig] = Field(
        default_factory=list, alias="applicationSecurityGroups"
    )
    network_security_groups: list[NetworkSecurityGroupConfig] = Field(
        default_factory=list, alias="networkSecurityGroups"
    )
    security_rules: list[SecurityRuleConfig] = Field(default_factory=list, alias="securityRules")

    @model_validator(mode="after")
    def validate_unique_names(self) -> Topology:
        for label, items in (
            ("dnsZones", self.dns_zones),
            ("applicationSecurityGroups", self.application_security_groups),
            ("networkSecurityGroups", self.network_security_groups),
        ):
            names = [item.name for item in items]
            duplicates = sorted({n for n in names if names.count(n) > 1})
            if duplicates:
                raise ValueError(f"duplicate {label} names: {duplicates}")

        rule_keys = [(r.network_security_group, r.name) for r in self.security_rules]
        duplicates = sorted({k for k in rule_keys if rule_keys.count(k) > 1})
        if duplicates:
            raise ValueError(f"duplicate securityRules: {duplicates}")
        return self

    def _tags(self, tags: dict[str, str]) -> dict[str, str]:
        return {**self.tags, **tags}

    def to_tasks(self, resource_group: str) -> list[Task]:
        """Build the desired tasks, in declaration order.

        Args:
            resource_group: Resource group used when the topology names none.
        """
        group = self.resource_group_name or resource_group
        tasks: list[Task] = []

        for zone in self.dns_zones:
            tasks.append(
                DNSZone(
                    name=zone.name,
                    resource_group=group,
                    private=zone.private,
                    virtual_network_name=zone.virtual_network_name,
                    tags=self._tags(zone.tags),
                    shared=zone.shared,
                )
            )

        for asg in self.application_security_groups:
            tasks.append(
                ApplicationSecurityGroup(
                    name=asg.name, resource_group=group, tags=self._tags(asg.tags), shared=asg.shared
                )
            )

        for nsg in self.network_security_groups:
            tasks.append(
                NetworkSecurityGroup(
                    name=nsg.name, resource_group=group, tags=self._tags(nsg.tags), shared=nsg.shared
                )
            )

        for rule in self.security_rules:
            tasks.append(
                SecurityGroupRule(
                    name=rule.name,
                    resource_group=group,
                    network_security_group=rule.network_security_group,
                    priority=rule.priority,
                    protocol=rule.protocol,
                    access=rule.access,
                    egress=rule.direction == "Outbound",
                    source_port_range=rule.source_port_range,
                    destination_port_range=rule.destination_port_range,
                    source_address_prefix=rule.source_address_prefix,
                    source_address_prefixes=tuple(rule.source_address_prefixes) or None,
                    destination_address_prefix=rule.destination_address_prefix,
                    destination_address_prefixes=tuple(rule.destination_address_prefixes) or None,
                    source_application_security_groups=(
                        tuple(rule.source_application_security_groups) or None
                    ),
                    destination_application_security_groups=(
                        tuple(rule.destination_application_security_groups) or None
                    ),
                )
            )

        for record in self.record_sets:
            tasks.append(
                RecordSet(
                    name=record.name,
                    resource_group=group,
                    dns_zone=record.dns_zone,
                    ttl=record.ttl,
                    rrdatas=tuple(record.addresses),
                    shared=record.shared,
                )
            )

        return tasks


def load_topology(path: Path) -> Topology:
    """Load and validate a topology file.

    Both a flat mapping and a Kubernetes-style wrapper
    (apiVersion/kind/metadata/spec) are accepted.

    Raises:
        TopologyLoadError: If the file cannot be read or fails validation.
    """
    if not path.exists():
        raise TopologyLoadError(f"Topology file not found: {path}")

    try:
        file_size = path.stat().st_size
    except OSError as e:
        raise TopologyLoadError(f"Failed to stat topology file {path}: {e}") from e

    if file_size > MAX_TOPOLOGY_FILE_SIZE_BYTES:
        raise TopologyLoadError(
            f"Topology file exceeds maximum size of {MAX_TOPOLOGY_FILE_SIZE_BYTES} bytes: {path}"
        )

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise TopologyLoadError(f"Failed to read topology file {path}: {e}") from e

    try:
        raw_data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise TopologyLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw_data, dict):
        raise TopologyLoadError(f"Topology file must contain a YAML mapping: {path}")

    if "apiVersion" in raw_data and "spec" in raw_data:
        data = raw_data.get("spec") or {}
        if not isinstance(data, dict):
            raise TopologyLoadError(f"Spec section must be a mapping: {path}")
    else:
        data = raw_data

    try:
        topology = Topology.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            errors.append(f"  - {loc}: {error['msg']}")
        error_list = "\n".join(errors)
        raise TopologyLoadError(f"Validation failed for {path}:\n{error_list}") from e

    logger.info(
        "Loaded topology",
        extra={
            "path": str(path),
            "dns_zones": len(topology.dns_zones),
            "record_sets": len(topology.record_sets),
            "network_security_groups": len(topology.network_security_groups),
            "application_security_groups": len(topology.application_security_groups),
            "security_rules": len(topology.security_rules),
        },
    )
    return topology
