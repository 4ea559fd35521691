"""DNS zone reconciliation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from .dns_model import ZoneKind, ZoneSpec
from .errors import RequiredFieldError
from .tasks import Task, applying, discovery, merge_tags

if TYPE_CHECKING:
    from .cloud import AzureCloud

logger = logging.getLogger(__name__)

VIRTUAL_NETWORK_PROVIDER_TYPE = "Microsoft.Network/virtualNetworks"


def _last_segment(resource_id: str | None) -> str | None:
    if not resource_id:
        return None
    return resource_id.rstrip("/").rsplit("/", 1)[-1]


@dataclass
class DNSZone(Task):
    """An Azure DNS zone, public or private.

    ``private`` cannot change after creation; Azure serves the two kinds
    from different services and a zone cannot move between them.
    """

    KIND: ClassVar[str] = "DNSZone"
    IMMUTABLE_FIELDS: ClassVar[tuple[str, ...]] = ("name", "private")
    HAS_CLUSTER_TAGS: ClassVar[bool] = True

    name: str | None = None
    resource_group: str | None = None
    private: bool | None = None
    # Virtual network a private zone auto-registers records from
    virtual_network_name: str | None = None
    tags: dict[str, str] | None = None
    zone_id: str | None = field(default=None, compare=False)
    shared: bool | None = field(default=None, compare=False)

    def find(self, cloud: AzureCloud) -> DNSZone | None:
        with discovery(self.KIND, self.name):
            zone = cloud.dns().zones(self.resource_group).get(self.name)
        if zone is None:
            return None

        logger.debug("Found DNS zone", extra={"zone": zone.name, "zone_id": zone.id})
        private = zone.kind is ZoneKind.PRIVATE
        # Public zones have no network; the declared one is not compared
        if private:
            virtual_network_name = _last_segment(zone.virtual_network_id)
        else:
            virtual_network_name = self.virtual_network_name
        return DNSZone(
            name=zone.name,
            resource_group=self.resource_group,
            private=private,
            virtual_network_name=virtual_network_name,
            tags=zone.tags,
            zone_id=zone.id,
            shared=self.shared,
        )

    @classmethod
    def check_changes(cls, actual: DNSZone | None, desired: DNSZone, changes: DNSZone) -> None:
        super().check_changes(actual, desired, changes)
        if actual is None and desired.private and desired.virtual_network_name is None:
            raise RequiredFieldError("virtual_network_name")

    @classmethod
    def render(
        cls, cloud: AzureCloud, actual: DNSZone | None, desired: DNSZone, changes: DNSZone
    ) -> None:
        if actual is None:
            logger.info("Creating DNS zone", extra={"zone": desired.name})
            private = bool(desired.private)
        else:
            logger.info("Updating DNS zone", extra={"zone": desired.name})
            private = bool(actual.private)

        virtual_network_id = None
        virtual_network_name = desired.virtual_network_name or (
            actual.virtual_network_name if actual else None
        )
        if private and virtual_network_name:
            virtual_network_id = cloud.resource_id(
                VIRTUAL_NETWORK_PROVIDER_TYPE, virtual_network_name, desired.resource_group
            )

        spec = ZoneSpec(
            name=desired.name,
            kind=ZoneKind.PRIVATE if private else ZoneKind.PUBLIC,
            tags=merge_tags(actual.tags if actual else None, desired.tags),
            virtual_network_id=virtual_network_id,
        )
        with applying(cls.KIND, desired.name):
            zone = cloud.dns().zones(desired.resource_group).create(spec)
        desired.zone_id = zone.id
