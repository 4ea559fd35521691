"""In-memory fakes of the public and private DNS management clients.

Only the operations the adapters call are implemented. Records are stored
as simple namespaces shaped like the SDK's RecordSet models; new zones get
the service-managed apex records (NS and SOA for public zones, SOA for
private ones) so discovery has to filter by type like it does in Azure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

from azure.core.exceptions import ResourceNotFoundError

from .state import FakeAzureState, FakeOperations, FakePoller

APEX = "@"

PUBLIC_ZONE_TYPE = "Microsoft.Network/dnszones"
PRIVATE_ZONE_TYPE = "Microsoft.Network/privateDnsZones"


@dataclass
class FakeZone:
    """A zone and the record sets in it, keyed by (relative name, type)."""

    name: str
    id: str
    tags: dict[str, str] = field(default_factory=dict)
    records: dict[tuple[str, str], SimpleNamespace] = field(default_factory=dict)
    links: dict[str, SimpleNamespace] = field(default_factory=dict)

    def as_sdk(self) -> SimpleNamespace:
        return SimpleNamespace(name=self.name, id=self.id, tags=dict(self.tags))


def _make_record(
    zone: FakeZone,
    zone_type: str,
    relative_name: str,
    record_type: str,
    ttl: int | None,
    addresses: list[str] | None,
    auto_registered: bool | None = None,
) -> SimpleNamespace:
    fqdn = f"{zone.name}." if relative_name == APEX else f"{relative_name}.{zone.name}."
    return SimpleNamespace(
        id=f"{zone.id}/{record_type}/{relative_name}",
        name=relative_name,
        type=f"{zone_type}/{record_type}",
        fqdn=fqdn,
        ttl=ttl,
        a_records=(
            [SimpleNamespace(ipv4_address=address) for address in addresses]
            if addresses is not None
            else None
        ),
        is_auto_registered=auto_registered,
    )


def _addresses(parameters: Any) -> list[str]:
    return [a.ipv4_address for a in parameters.a_records or []]


class _ZoneStore:
    """Zones of one DNS service, keyed by (resource group, zone name)."""

    def __init__(self, state: FakeAzureState, zone_type: str) -> None:
        self._state = state
        self._zone_type = zone_type
        self.zones: dict[tuple[str, str], FakeZone] = {}

    def get(self, resource_group: str, zone_name: str) -> FakeZone:
        zone = self.zones.get((resource_group, zone_name))
        if zone is None:
            raise ResourceNotFoundError(f"Zone {zone_name} not found in {resource_group}")
        return zone

    def create(self, resource_group: str, zone_name: str, tags: dict[str, str]) -> FakeZone:
        zone = self.zones.get((resource_group, zone_name))
        if zone is None:
            zone = FakeZone(
                name=zone_name,
                id=self._state.resource_id(resource_group, self._zone_type, zone_name),
            )
            soa = _make_record(zone, self._zone_type, APEX, "SOA", 3600, None)
            zone.records[(APEX, "SOA")] = soa
            if self._zone_type == PUBLIC_ZONE_TYPE:
                ns = _make_record(zone, self._zone_type, APEX, "NS", 172800, None)
                zone.records[(APEX, "NS")] = ns
            self.zones[(resource_group, zone_name)] = zone
        zone.tags = dict(tags)
        return zone

    def in_group(self, resource_group: str) -> list[FakeZone]:
        return [zone for (group, _), zone in self.zones.items() if group == resource_group]


# =============================================================================
# Public DNS
# =============================================================================


class FakeDnsRecordSetOperations(FakeOperations):
    prefix = "dns"

    def __init__(self, state: FakeAzureState, store: _ZoneStore) -> None:
        super().__init__(state)
        self._store = store

    def create_or_update(
        self,
        resource_group_name: str,
        zone_name: str,
        relative_record_set_name: str,
        record_type: str,
        parameters: Any,
        **kwargs: Any,
    ) -> SimpleNamespace:
        self._call(
            "record_sets.create_or_update",
            resource_group_name,
            zone_name,
            relative_record_set_name,
            record_type,
        )
        zone = self._store.get(resource_group_name, zone_name)
        record = _make_record(
            zone,
            PUBLIC_ZONE_TYPE,
            relative_record_set_name,
            record_type,
            parameters.ttl,
            _addresses(parameters),
        )
        zone.records[(relative_record_set_name, record_type)] = record
        return record

    def list_all_by_dns_zone(
        self, resource_group_name: str, zone_name: str, **kwargs: Any
    ) -> list[SimpleNamespace]:
        self._call("record_sets.list_all_by_dns_zone", resource_group_name, zone_name)
        return list(self._store.get(resource_group_name, zone_name).records.values())

    def delete(
        self,
        resource_group_name: str,
        zone_name: str,
        relative_record_set_name: str,
        record_type: str,
        **kwargs: Any,
    ) -> None:
        self._call(
            "record_sets.delete",
            resource_group_name,
            zone_name,
            relative_record_set_name,
            record_type,
        )
        zone = self._store.get(resource_group_name, zone_name)
        key = (relative_record_set_name, record_type)
        if key not in zone.records:
            raise ResourceNotFoundError(
                f"Record set {record_type}/{relative_record_set_name} not found in {zone_name}"
            )
        del zone.records[key]


class FakeDnsZoneOperations(FakeOperations):
    prefix = "dns"

    def __init__(self, state: FakeAzureState, store: _ZoneStore) -> None:
        super().__init__(state)
        self._store = store

    def list_by_resource_group(self, resource_group_name: str, **kwargs: Any) -> list[Any]:
        self._call("zones.list_by_resource_group", resource_group_name)
        return [zone.as_sdk() for zone in self._store.in_group(resource_group_name)]

    def create_or_update(
        self, resource_group_name: str, zone_name: str, parameters: Any, **kwargs: Any
    ) -> SimpleNamespace:
        self._call("zones.create_or_update", resource_group_name, zone_name)
        return self._store.create(resource_group_name, zone_name, parameters.tags or {}).as_sdk()

    def begin_delete(self, resource_group_name: str, zone_name: str, **kwargs: Any) -> FakePoller:
        self._call("zones.begin_delete", resource_group_name, zone_name)
        self._store.get(resource_group_name, zone_name)
        del self._store.zones[(resource_group_name, zone_name)]
        return FakePoller()


class FakeDnsManagementClient:
    """Stand-in for azure.mgmt.dns.DnsManagementClient."""

    def __init__(self, state: FakeAzureState) -> None:
        self._store = _ZoneStore(state, PUBLIC_ZONE_TYPE)
        self.record_sets = FakeDnsRecordSetOperations(state, self._store)
        self.zones = FakeDnsZoneOperations(state, self._store)

    def add_zone(
        self, resource_group: str, zone_name: str, tags: dict[str, str] | None = None
    ) -> FakeZone:
        """Seed a zone without recording a call."""
        return self._store.create(resource_group, zone_name, tags or {})

    def add_a_record(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        addresses: list[str],
        ttl: int = 300,
    ) -> None:
        """Seed an A record without recording a call."""
        zone = self._store.get(resource_group, zone_name)
        zone.records[(relative_name, "A")] = _make_record(
            zone, PUBLIC_ZONE_TYPE, relative_name, "A", ttl, addresses
        )

    def add_record(
        self, resource_group: str, zone_name: str, relative_name: str, record_type: str
    ) -> None:
        """Seed a record set of any type, without answer data."""
        zone = self._store.get(resource_group, zone_name)
        zone.records[(relative_name, record_type)] = _make_record(
            zone, PUBLIC_ZONE_TYPE, relative_name, record_type, 3600, None
        )

    def zone(self, resource_group: str, zone_name: str) -> FakeZone:
        return self._store.get(resource_group, zone_name)

    def has_zone(self, resource_group: str, zone_name: str) -> bool:
        return (resource_group, zone_name) in self._store.zones


# =============================================================================
# Private DNS
# =============================================================================


class FakePrivateRecordSetOperations(FakeOperations):
    prefix = "privatedns"

    def __init__(self, state: FakeAzureState, store: _ZoneStore) -> None:
        super().__init__(state)
        self._store = store

    def create_or_update(
        self,
        resource_group_name: str,
        private_zone_name: str,
        record_type: str,
        relative_record_set_name: str,
        parameters: Any,
        **kwargs: Any,
    ) -> SimpleNamespace:
        self._call(
            "record_sets.create_or_update",
            resource_group_name,
            private_zone_name,
            relative_record_set_name,
            record_type,
        )
        zone = self._store.get(resource_group_name, private_zone_name)
        record = _make_record(
            zone,
            PRIVATE_ZONE_TYPE,
            relative_record_set_name,
            record_type,
            parameters.ttl,
            _addresses(parameters),
            auto_registered=False,
        )
        zone.records[(relative_record_set_name, record_type)] = record
        return record

    def list(
        self, resource_group_name: str, private_zone_name: str, **kwargs: Any
    ) -> list[SimpleNamespace]:
        self._call("record_sets.list", resource_group_name, private_zone_name)
        return list(self._store.get(resource_group_name, private_zone_name).records.values())

    def delete(
        self,
        resource_group_name: str,
        private_zone_name: str,
        record_type: str,
        relative_record_set_name: str,
        **kwargs: Any,
    ) -> None:
        self._call(
            "record_sets.delete",
            resource_group_name,
            private_zone_name,
            relative_record_set_name,
            record_type,
        )
        zone = self._store.get(resource_group_name, private_zone_name)
        key = (relative_record_set_name, record_type)
        if key not in zone.records:
            raise ResourceNotFoundError(
                f"Record set {record_type}/{relative_record_set_name} "
                f"not found in {private_zone_name}"
            )
        del zone.records[key]


class FakePrivateZoneOperations(FakeOperations):
    prefix = "privatedns"

    def __init__(self, state: FakeAzureState, store: _ZoneStore) -> None:
        super().__init__(state)
        self._store = store

    def list_by_resource_group(self, resource_group_name: str, **kwargs: Any) -> list[Any]:
        self._call("private_zones.list_by_resource_group", resource_group_name)
        return [zone.as_sdk() for zone in self._store.in_group(resource_group_name)]

    def begin_create_or_update(
        self, resource_group_name: str, private_zone_name: str, parameters: Any, **kwargs: Any
    ) -> FakePoller:
        self._call("private_zones.begin_create_or_update", resource_group_name, private_zone_name)
        zone = self._store.create(resource_group_name, private_zone_name, parameters.tags or {})
        return FakePoller(zone.as_sdk())

    def begin_delete(
        self, resource_group_name: str, private_zone_name: str, **kwargs: Any
    ) -> FakePoller:
        self._call("private_zones.begin_delete", resource_group_name, private_zone_name)
        self._store.get(resource_group_name, private_zone_name)
        del self._store.zones[(resource_group_name, private_zone_name)]
        return FakePoller()


class FakeVirtualNetworkLinkOperations(FakeOperations):
    prefix = "privatedns"

    def __init__(self, state: FakeAzureState, store: _ZoneStore) -> None:
        super().__init__(state)
        self._store = store

    def list(
        self, resource_group_name: str, private_zone_name: str, **kwargs: Any
    ) -> list[SimpleNamespace]:
        self._call("virtual_network_links.list", resource_group_name, private_zone_name)
        return list(self._store.get(resource_group_name, private_zone_name).links.values())

    def begin_create_or_update(
        self,
        resource_group_name: str,
        private_zone_name: str,
        virtual_network_link_name: str,
        parameters: Any,
        **kwargs: Any,
    ) -> FakePoller:
        self._call(
            "virtual_network_links.begin_create_or_update",
            resource_group_name,
            private_zone_name,
            virtual_network_link_name,
        )
        zone = self._store.get(resource_group_name, private_zone_name)
        link = SimpleNamespace(
            name=virtual_network_link_name,
            virtual_network=SimpleNamespace(id=parameters.virtual_network.id),
            registration_enabled=parameters.registration_enabled,
        )
        zone.links[virtual_network_link_name] = link
        return FakePoller(link)

    def begin_delete(
        self,
        resource_group_name: str,
        private_zone_name: str,
        virtual_network_link_name: str,
        **kwargs: Any,
    ) -> FakePoller:
        self._call(
            "virtual_network_links.begin_delete",
            resource_group_name,
            private_zone_name,
            virtual_network_link_name,
        )
        zone = self._store.get(resource_group_name, private_zone_name)
        zone.links.pop(virtual_network_link_name, None)
        return FakePoller()


class FakePrivateDnsManagementClient:
    """Stand-in for azure.mgmt.privatedns.PrivateDnsManagementClient."""

    def __init__(self, state: FakeAzureState) -> None:
        self._store = _ZoneStore(state, PRIVATE_ZONE_TYPE)
        self.record_sets = FakePrivateRecordSetOperations(state, self._store)
        self.private_zones = FakePrivateZoneOperations(state, self._store)
        self.virtual_network_links = FakeVirtualNetworkLinkOperations(state, self._store)

    def add_zone(
        self,
        resource_group: str,
        zone_name: str,
        virtual_network_id: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> FakeZone:
        """Seed a zone, optionally with a registration link, without recording a call."""
        zone = self._store.create(resource_group, zone_name, tags or {})
        if virtual_network_id:
            link_name = f"{virtual_network_id.rsplit('/', 1)[-1]}-link"
            zone.links[link_name] = SimpleNamespace(
                name=link_name,
                virtual_network=SimpleNamespace(id=virtual_network_id),
                registration_enabled=True,
            )
        return zone

    def add_a_record(
        self,
        resource_group: str,
        zone_name: str,
        relative_name: str,
        addresses: list[str],
        ttl: int = 300,
        auto_registered: bool = False,
    ) -> None:
        """Seed an A record without recording a call."""
        zone = self._store.get(resource_group, zone_name)
        zone.records[(relative_name, "A")] = _make_record(
            zone, PRIVATE_ZONE_TYPE, relative_name, "A", ttl, addresses, auto_registered
        )

    def zone(self, resource_group: str, zone_name: str) -> FakeZone:
        return self._store.get(resource_group, zone_name)

    def has_zone(self, resource_group: str, zone_name: str) -> bool:
        return (resource_group, zone_name) in self._store.zones
