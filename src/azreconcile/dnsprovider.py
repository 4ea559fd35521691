"""Uniform DNS provider hierarchy over the public and private DNS services.

    provider.zones() -> Zones -> Zone -> ResourceRecordSets -> ResourceRecordChangeset

A Zone's kind is fixed when the zone is discovered or created, and the
backend adapter serving it is picked once at that point. Nothing above the
adapter boundary branches on the kind; callers that need it read
``Zone.kind``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from azure.core.credentials import TokenCredential
from azure.mgmt.dns import DnsManagementClient
from azure.mgmt.privatedns import PrivateDnsManagementClient

from .config import Config
from .dns_backends import DnsBackend, PrivateDnsBackend, PublicDnsBackend
from .dns_model import RecordType, ResourceRecordSet, ZoneInfo, ZoneKind, ZoneSpec
from .errors import ApplyError, BackendError
from .naming import zone_record_set_name

logger = logging.getLogger(__name__)

PROVIDER_NAME = "azure-dns"

# Record types the changeset engine knows how to write
WRITABLE_RECORD_TYPES = frozenset({RecordType.A})


class ResourceRecordChangeset:
    """Pending record set mutations against one zone, applied as one batch.

    Apply order is fixed: every removal, then every addition, then every
    upsert. A replace expressed as remove + add on the same name therefore
    never collides with the record it replaces.
    """

    def __init__(self, rrsets: ResourceRecordSets) -> None:
        self._rrsets = rrsets
        self.additions: list[ResourceRecordSet] = []
        self.removals: list[ResourceRecordSet] = []
        self.upserts: list[ResourceRecordSet] = []

    @property
    def resource_record_sets(self) -> ResourceRecordSets:
        """The record set collection this changeset was started from."""
        return self._rrsets

    def add(self, rrset: ResourceRecordSet) -> ResourceRecordChangeset:
        self.additions.append(rrset)
        return self

    def remove(self, rrset: ResourceRecordSet) -> ResourceRecordChangeset:
        self.removals.append(rrset)
        return self

    def upsert(self, rrset: ResourceRecordSet) -> ResourceRecordChangeset:
        self.upserts.append(rrset)
        return self

    def is_empty(self) -> bool:
        return not (self.additions or self.removals or self.upserts)

    def apply(self) -> None:
        """Apply the batch against the zone's backend.

        The first failure aborts the batch. Mutations issued before it stay
        in effect; the next discovery pass observes them.

        Raises:
            ApplyError: If a backend call fails or a record type cannot be written.
        """
        if self.is_empty():
            return

        zone = self._rrsets.zone
        backend = zone.backend
        resource_group = zone.resource_group

        logger.info(
            "Applying DNS changeset",
            extra={
                "zone": zone.name,
                "zone_kind": zone.kind.value,
                "removals": len(self.removals),
                "additions": len(self.additions),
                "upserts": len(self.upserts),
            },
        )

        for removal in self.removals:
            relative_name = zone_record_set_name(removal.name, zone.name)
            try:
                backend.delete(resource_group, zone.name, relative_name, removal.type)
            except BackendError as e:
                raise ApplyError(f"Removing record set {removal.name} failed: {e}") from e

        for rrset in [*self.additions, *self.upserts]:
            if rrset.type not in WRITABLE_RECORD_TYPES:
                raise ApplyError(
                    f"Record type {rrset.type.value} is not supported for {rrset.name}"
                )
            relative_name = zone_record_set_name(rrset.name, zone.name)
            try:
                backend.create_or_update(
                    resource_group, zone.name, relative_name, rrset.type, rrset
                )
            except BackendError as e:
                raise ApplyError(f"Writing record set {rrset.name} failed: {e}") from e


class ResourceRecordSets:
    """Record sets of one zone."""

    def __init__(self, zone: Zone) -> None:
        self._zone = zone

    @property
    def zone(self) -> Zone:
        return self._zone

    def list(self) -> list[ResourceRecordSet]:
        """List every record set in the zone.

        Raises:
            BackendError: If the backend list call fails.
        """
        return self._zone.backend.list(self._zone.resource_group, self._zone.name)

    def get(self, name: str) -> list[ResourceRecordSet]:
        """Record sets whose zone-relative name matches ``name``.

        ``name`` may be relative ("api"), fully-qualified ("api.example.com")
        or name the apex ("example.com" or "@").
        An empty list means no record set of that name exists.
        """
        wanted = zone_record_set_name(name, self._zone.name)
        return [
            rrset
            for rrset in self.list()
            if zone_record_set_name(rrset.name, self._zone.name) == wanted
        ]

    def new(
        self,
        name: str,
        rrdatas: list[str] | tuple[str, ...],
        ttl: int,
        record_type: RecordType = RecordType.A,
    ) -> ResourceRecordSet:
        return ResourceRecordSet(name=name, rrdatas=tuple(rrdatas), ttl=ttl, type=record_type)

    def start_changeset(self) -> ResourceRecordChangeset:
        return ResourceRecordChangeset(self)


class Zone:
    """A DNS zone bound to the backend adapter of its kind."""

    def __init__(self, info: ZoneInfo, backend: DnsBackend, resource_group: str) -> None:
        if backend.kind != info.kind:
            raise ValueError(
                f"Zone {info.name} is {info.kind.value} but backend serves {backend.kind.value}"
            )
        self._info = info
        self._backend = backend
        self._resource_group = resource_group

    @property
    def name(self) -> str:
        return self._info.name

    @property
    def id(self) -> str | None:
        return self._info.id

    @property
    def kind(self) -> ZoneKind:
        return self._info.kind

    @property
    def virtual_network_id(self) -> str | None:
        return self._info.virtual_network_id

    @property
    def tags(self) -> dict[str, str]:
        return dict(self._info.tags)

    @property
    def resource_group(self) -> str:
        return self._resource_group

    @property
    def backend(self) -> DnsBackend:
        return self._backend

    def resource_record_sets(self) -> ResourceRecordSets:
        return ResourceRecordSets(self)

    def __repr__(self) -> str:
        return f"Zone(name={self.name!r}, kind={self.kind.value!r})"


class Zones:
    """Zones of both services in one resource group."""

    def __init__(self, provider: AzureDNSProvider, resource_group: str) -> None:
        self._provider = provider
        self._resource_group = resource_group

    @property
    def resource_group(self) -> str:
        return self._resource_group

    def list(self) -> list[Zone]:
        """List public zones followed by private zones.

        Raises:
            BackendError: If either backend list call fails.
        """
        zones: list[Zone] = []
        for backend in self._provider.backends:
            zones.extend(
                Zone(info, backend, self._resource_group)
                for info in backend.list_zones(self._resource_group)
            )
        return zones

    def get(self, name: str) -> Zone | None:
        for zone in self.list():
            if zone.name == name:
                return zone
        return None

    def create(self, spec: ZoneSpec) -> Zone:
        """Create or update a zone through the backend matching ``spec.kind``."""
        backend = self._provider.backend_for(spec.kind)
        info = backend.create_or_update_zone(self._resource_group, spec)
        logger.info(
            "Zone created or updated",
            extra={"zone": spec.name, "zone_kind": spec.kind.value},
        )
        return Zone(info, backend, self._resource_group)

    def remove(self, zone: Zone) -> None:
        zone.backend.delete_zone(zone.resource_group, zone.name)
        logger.info("Zone deleted", extra={"zone": zone.name, "zone_kind": zone.kind.value})


class AzureDNSProvider:
    """DNS provider backed by Azure public and private DNS."""

    def __init__(
        self,
        resource_group: str,
        public_backend: DnsBackend,
        private_backend: DnsBackend,
    ) -> None:
        self._resource_group = resource_group
        self._backends = {
            ZoneKind.PUBLIC: public_backend,
            ZoneKind.PRIVATE: private_backend,
        }

    @classmethod
    def from_credential(cls, config: Config, credential: TokenCredential) -> AzureDNSProvider:
        return cls(
            resource_group=config.resource_group_name,
            public_backend=PublicDnsBackend(
                DnsManagementClient(credential=credential, subscription_id=config.subscription_id)
            ),
            private_backend=PrivateDnsBackend(
                PrivateDnsManagementClient(
                    credential=credential, subscription_id=config.subscription_id
                )
            ),
        )

    @property
    def resource_group(self) -> str:
        return self._resource_group

    @property
    def backends(self) -> list[DnsBackend]:
        return [self._backends[ZoneKind.PUBLIC], self._backends[ZoneKind.PRIVATE]]

    def backend_for(self, kind: ZoneKind) -> DnsBackend:
        return self._backends[kind]

    def zones(self, resource_group: str | None = None) -> Zones:
        """Zones in ``resource_group``, defaulting to the configured one."""
        return Zones(self, resource_group or self._resource_group)


# =============================================================================
# Provider registry
# =============================================================================

ProviderFactory = Callable[[Config, TokenCredential], AzureDNSProvider]

_PROVIDERS: dict[str, ProviderFactory] = {}


def register_dns_provider(name: str, factory: ProviderFactory) -> None:
    """Register a DNS provider factory under a name token."""
    if name in _PROVIDERS:
        raise ValueError(f"DNS provider already registered: {name}")
    _PROVIDERS[name] = factory


def get_dns_provider(name: str, config: Config, credential: TokenCredential) -> AzureDNSProvider:
    """Construct a registered DNS provider.

    Raises:
        ValueError: If no provider is registered under ``name``.
    """
    factory = _PROVIDERS.get(name)
    if factory is None:
        raise ValueError(f"Unknown DNS provider '{name}'. Registered: {sorted(_PROVIDERS)}")
    return factory(config, credential)


register_dns_provider(PROVIDER_NAME, AzureDNSProvider.from_credential)
