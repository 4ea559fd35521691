"""A record reconciliation, written through the DNS changeset engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .dns_model import RecordType
from .errors import ApplyError
from .naming import APEX_RECORD_NAME
from .tasks import Task, TaskKey, applying, discovery

if TYPE_CHECKING:
    from .cloud import AzureCloud
    from .dnsprovider import Zone

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300


@dataclass
class RecordSet(Task):
    """An A record set in a DNS zone managed alongside it.

    ``name`` may be relative to the zone ("api") or fully-qualified
    ("api.example.com"). The zone name itself or "@" names the apex. The
    zone a record lives in cannot change.
    """

    KIND: ClassVar[str] = "RecordSet"
    IMMUTABLE_FIELDS: ClassVar[tuple[str, ...]] = ("name", "dns_zone")

    name: str | None = None
    resource_group: str | None = None
    dns_zone: str | None = None
    ttl: int | None = None
    rrdatas: tuple[str, ...] | None = None
    shared: bool | None = field(default=None, compare=False)

    def depends_on(self) -> list[TaskKey]:
        return [("DNSZone", self.dns_zone)] if self.dns_zone else []

    def _zone(self, cloud: AzureCloud) -> Zone | None:
        return cloud.dns().zones(self.resource_group).get(self.dns_zone)

    def find(self, cloud: AzureCloud) -> RecordSet | None:
        if not self.dns_zone:
            return None

        with discovery(self.KIND, self.name):
            zone = self._zone(cloud)
            if zone is None:
                return None
            matches = [
                rrset
                for rrset in zone.resource_record_sets().get(self.name)
                if rrset.type is RecordType.A
            ]
        if not matches:
            return None

        found = matches[0]
        logger.debug("Found record set", extra={"record_set": found.name, "zone": zone.name})
        return RecordSet(
            name=self.name,
            resource_group=self.resource_group,
            dns_zone=self.dns_zone,
            ttl=found.ttl,
            rrdatas=found.rrdatas,
            shared=self.shared,
        )

    @classmethod
    def render(
        cls, cloud: AzureCloud, actual: RecordSet | None, desired: RecordSet, changes: RecordSet
    ) -> None:
        if not desired.dns_zone:
            raise ApplyError(f"Record set {desired.name} has no DNS zone")

        with applying(cls.KIND, desired.name):
            zone = desired._zone(cloud)
        if zone is None:
            raise ApplyError(f"DNS zone {desired.dns_zone} not found for record set {desired.name}")

        rrdatas = desired.rrdatas
        if rrdatas is None:
            rrdatas = actual.rrdatas if actual and actual.rrdatas else ()
        ttl = desired.ttl or (actual.ttl if actual else None) or DEFAULT_TTL

        fqdn = desired.name.rstrip(".")
        if fqdn == APEX_RECORD_NAME:
            fqdn = zone.name
        elif fqdn != zone.name and not fqdn.endswith("." + zone.name):
            fqdn = f"{fqdn}.{zone.name}"

        logger.info(
            "Creating record set" if actual is None else "Updating record set",
            extra={"record_set": fqdn, "zone": zone.name, "zone_kind": zone.kind.value},
        )
        rrsets = zone.resource_record_sets()
        rrsets.start_changeset().upsert(rrsets.new(fqdn, rrdatas, ttl)).apply()
