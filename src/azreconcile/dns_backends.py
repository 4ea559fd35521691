"""Backend adapters for the public and private Azure DNS services.

Both adapters translate the backend-neutral model in dns_model into calls
against one management client and back. Each call is a single attempt;
the SDK's pipeline retry policy is the only retry layer, and failures are
surfaced as BackendError with the call's identifying path.

The two services disagree on argument order and naming (the private
record set API takes the record type before the relative name, and zones
are "private_zones" with long-running create). That asymmetry stays here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any

from azure.mgmt.dns import DnsManagementClient
from azure.mgmt.dns.models import ARecord
from azure.mgmt.dns.models import RecordSet as PublicRecordSet
from azure.mgmt.dns.models import Zone as PublicZone
from azure.mgmt.privatedns import PrivateDnsManagementClient
from azure.mgmt.privatedns.models import ARecord as PrivateARecord
from azure.mgmt.privatedns.models import PrivateZone, SubResource, VirtualNetworkLink
from azure.mgmt.privatedns.models import RecordSet as PrivateRecordSet

from .dns_model import RecordType, ResourceRecordSet, ZoneInfo, ZoneKind, ZoneSpec
from .errors import backend_call
from .naming import APEX_RECORD_NAME

logger = logging.getLogger(__name__)

# DNS zones are global resources regardless of the configured region
DNS_ZONE_LOCATION = "global"


def _record_path(
    resource_group: str, zone_name: str, relative_name: str, record_type: RecordType
) -> str:
    return f"{resource_group}/{zone_name}/{record_type.value}/{relative_name}"


def _parse_record_type(sdk_type: str | None) -> RecordType | None:
    """Map an ARM type ("Microsoft.Network/dnszones/A") to a RecordType.

    Returns None for types this model does not know.
    """
    if not sdk_type:
        return RecordType.A
    try:
        return RecordType(sdk_type.rsplit("/", 1)[-1].upper())
    except ValueError:
        return None


def _known_types(sdk_records: Iterable[Any]) -> Iterator[tuple[Any, RecordType]]:
    """Pair SDK record sets with their type, skipping unknown types."""
    for record in sdk_records:
        record_type = _parse_record_type(record.type)
        if record_type is None:
            logger.debug(
                "Skipping record set of unknown type",
                extra={"record_set": record.name, "record_type": record.type},
            )
            continue
        yield record, record_type


def _record_name(sdk_record: Any, zone_name: str) -> str:
    """Fully-qualified name of an SDK record set, without the trailing dot."""
    if sdk_record.fqdn:
        return sdk_record.fqdn.rstrip(".")
    if not sdk_record.name or sdk_record.name == APEX_RECORD_NAME:
        return zone_name
    return f"{sdk_record.name}.{zone_name}"


def _a_record_addresses(a_records: list[Any] | None) -> tuple[str, ...]:
    return tuple(a.ipv4_address for a in a_records or [] if a.ipv4_address)


def _virtual_network_name(virtual_network_id: str) -> str:
    return virtual_network_id.rstrip("/").rsplit("/", 1)[-1]


class DnsBackend(ABC):
    """Record set and zone operations of one DNS service."""

    kind: ZoneKind

    @abstractmethod
    def create_or_update(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        record_type: RecordType,
        record_set: ResourceRecordSet,
    ) -> None:
        """Create or replace a record set."""

    @abstractmethod
    def list(self, resource_group: str, zone_name: str) -> list[ResourceRecordSet]:
        """List every record set in a zone, all pages drained."""

    @abstractmethod
    def delete(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        record_type: RecordType,
    ) -> None:
        """Delete a record set. Missing record sets are reported, not ignored."""

    @abstractmethod
    def list_zones(self, resource_group: str) -> list[ZoneInfo]:
        """List the zones of this service in a resource group."""

    @abstractmethod
    def create_or_update_zone(self, resource_group: str, spec: ZoneSpec) -> ZoneInfo:
        """Create or update a zone and return its identity."""

    @abstractmethod
    def delete_zone(self, resource_group: str, zone_name: str) -> None:
        """Delete a zone, blocking until the operation completes."""


class PublicDnsBackend(DnsBackend):
    """Adapter for publicly resolvable zones (azure-mgmt-dns)."""

    kind = ZoneKind.PUBLIC

    def __init__(self, client: DnsManagementClient) -> None:
        self._client = client

    def create_or_update(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        record_type: RecordType,
        record_set: ResourceRecordSet,
    ) -> None:
        parameters = PublicRecordSet(
            ttl=record_set.ttl,
            a_records=[ARecord(ipv4_address=address) for address in record_set.rrdatas],
        )
        path = _record_path(resource_group, zone_name, relative_name, record_type)
        with backend_call("record_sets.create_or_update", path):
            self._client.record_sets.create_or_update(
                resource_group_name=resource_group,
                zone_name=zone_name,
                relative_record_set_name=relative_name,
                record_type=record_type.value,
                parameters=parameters,
            )
        logger.debug("Upserted public record set", extra={"record_set": path})

    def list(self, resource_group: str, zone_name: str) -> list[ResourceRecordSet]:
        with backend_call("record_sets.list_all_by_dns_zone", f"{resource_group}/{zone_name}"):
            return [
                ResourceRecordSet(
                    name=_record_name(r, zone_name),
                    rrdatas=_a_record_addresses(r.a_records),
                    ttl=r.ttl or 0,
                    type=record_type,
                )
                for r, record_type in _known_types(
                    self._client.record_sets.list_all_by_dns_zone(
                        resource_group_name=resource_group, zone_name=zone_name
                    )
                )
            ]

    def delete(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        record_type: RecordType,
    ) -> None:
        path = _record_path(resource_group, zone_name, relative_name, record_type)
        with backend_call("record_sets.delete", path):
            self._client.record_sets.delete(
                resource_group_name=resource_group,
                zone_name=zone_name,
                relative_record_set_name=relative_name,
                record_type=record_type.value,
            )
        logger.debug("Deleted public record set", extra={"record_set": path})

    def list_zones(self, resource_group: str) -> list[ZoneInfo]:
        with backend_call("zones.list_by_resource_group", resource_group):
            return [
                ZoneInfo(
                    name=z.name,
                    id=z.id,
                    kind=ZoneKind.PUBLIC,
                    tags=dict(z.tags or {}),
                )
                for z in self._client.zones.list_by_resource_group(
                    resource_group_name=resource_group
                )
            ]

    def create_or_update_zone(self, resource_group: str, spec: ZoneSpec) -> ZoneInfo:
        parameters = PublicZone(
            location=DNS_ZONE_LOCATION,
            tags=dict(spec.tags),
            zone_type="Public",
        )
        with backend_call("zones.create_or_update", f"{resource_group}/{spec.name}"):
            zone = self._client.zones.create_or_update(
                resource_group_name=resource_group,
                zone_name=spec.name,
                parameters=parameters,
            )
        return ZoneInfo(
            name=zone.name or spec.name,
            id=zone.id,
            kind=ZoneKind.PUBLIC,
            tags=dict(zone.tags or {}),
        )

    def delete_zone(self, resource_group: str, zone_name: str) -> None:
        with backend_call("zones.begin_delete", f"{resource_group}/{zone_name}"):
            self._client.zones.begin_delete(
                resource_group_name=resource_group, zone_name=zone_name
            ).result()


class PrivateDnsBackend(DnsBackend):
    """Adapter for zones resolvable only inside linked virtual networks
    (azure-mgmt-privatedns).

    A private zone is associated with its virtual network through a
    virtual network link with auto-registration enabled, rather than
    through a subresource reference on the zone itself.
    """

    kind = ZoneKind.PRIVATE

    def __init__(self, client: PrivateDnsManagementClient) -> None:
        self._client = client

    def create_or_update(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        record_type: RecordType,
        record_set: ResourceRecordSet,
    ) -> None:
        parameters = PrivateRecordSet(
            ttl=record_set.ttl,
            a_records=[PrivateARecord(ipv4_address=address) for address in record_set.rrdatas],
        )
        path = _record_path(resource_group, zone_name, relative_name, record_type)
        with backend_call("record_sets.create_or_update", path):
            self._client.record_sets.create_or_update(
                resource_group_name=resource_group,
                private_zone_name=zone_name,
                record_type=record_type.value,
                relative_record_set_name=relative_name,
                parameters=parameters,
            )
        logger.debug("Upserted private record set", extra={"record_set": path})

    def list(self, resource_group: str, zone_name: str) -> list[ResourceRecordSet]:
        with backend_call("record_sets.list", f"{resource_group}/{zone_name}"):
            return [
                ResourceRecordSet(
                    name=_record_name(r, zone_name),
                    rrdatas=_a_record_addresses(r.a_records),
                    ttl=r.ttl or 0,
                    type=record_type,
                    auto_registered=bool(r.is_auto_registered),
                )
                for r, record_type in _known_types(
                    self._client.record_sets.list(
                        resource_group_name=resource_group, private_zone_name=zone_name
                    )
                )
            ]

    def delete(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        record_type: RecordType,
    ) -> None:
        path = _record_path(resource_group, zone_name, relative_name, record_type)
        with backend_call("record_sets.delete", path):
            self._client.record_sets.delete(
                resource_group_name=resource_group,
                private_zone_name=zone_name,
                record_type=record_type.value,
                relative_record_set_name=relative_name,
            )
        logger.debug("Deleted private record set", extra={"record_set": path})

    def list_zones(self, resource_group: str) -> list[ZoneInfo]:
        with backend_call("private_zones.list_by_resource_group", resource_group):
            zones = list(
                self._client.private_zones.list_by_resource_group(
                    resource_group_name=resource_group
                )
            )
        return [
            ZoneInfo(
                name=z.name,
                id=z.id,
                kind=ZoneKind.PRIVATE,
                virtual_network_id=self._registration_network(resource_group, z.name),
                tags=dict(z.tags or {}),
            )
            for z in zones
        ]

    def create_or_update_zone(self, resource_group: str, spec: ZoneSpec) -> ZoneInfo:
        path = f"{resource_group}/{spec.name}"
        with backend_call("private_zones.begin_create_or_update", path):
            zone = self._client.private_zones.begin_create_or_update(
                resource_group_name=resource_group,
                private_zone_name=spec.name,
                parameters=PrivateZone(location=DNS_ZONE_LOCATION, tags=dict(spec.tags)),
            ).result()

        if spec.virtual_network_id:
            link_name = f"{_virtual_network_name(spec.virtual_network_id)}-link"
            link = VirtualNetworkLink(
                location=DNS_ZONE_LOCATION,
                virtual_network=SubResource(id=spec.virtual_network_id),
                registration_enabled=True,
            )
            with backend_call("virtual_network_links.begin_create_or_update", f"{path}/{link_name}"):
                self._client.virtual_network_links.begin_create_or_update(
                    resource_group_name=resource_group,
                    private_zone_name=spec.name,
                    virtual_network_link_name=link_name,
                    parameters=link,
                ).result()

        return ZoneInfo(
            name=zone.name or spec.name,
            id=zone.id,
            kind=ZoneKind.PRIVATE,
            virtual_network_id=spec.virtual_network_id,
            tags=dict(zone.tags or {}),
        )

    def delete_zone(self, resource_group: str, zone_name: str) -> None:
        # Zones with virtual network links cannot be deleted
        path = f"{resource_group}/{zone_name}"
        with backend_call("virtual_network_links.list", path):
            links = list(
                self._client.virtual_network_links.list(
                    resource_group_name=resource_group, private_zone_name=zone_name
                )
            )
        for link in links:
            with backend_call("virtual_network_links.begin_delete", f"{path}/{link.name}"):
                self._client.virtual_network_links.begin_delete(
                    resource_group_name=resource_group,
                    private_zone_name=zone_name,
                    virtual_network_link_name=link.name,
                ).result()

        with backend_call("private_zones.begin_delete", path):
            self._client.private_zones.begin_delete(
                resource_group_name=resource_group, private_zone_name=zone_name
            ).result()

    def _registration_network(self, resource_group: str, zone_name: str) -> str | None:
        """Virtual network id of the zone's registration link, if any."""
        path = f"{resource_group}/{zone_name}"
        with backend_call("virtual_network_links.list", path):
            links = list(
                self._client.virtual_network_links.list(
                    resource_group_name=resource_group, private_zone_name=zone_name
                )
            )
        for link in links:
            if link.registration_enabled and link.virtual_network is not None:
                return link.virtual_network.id
        return None
