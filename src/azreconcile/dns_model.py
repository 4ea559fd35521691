"""Backend-neutral DNS data model shared by the adapters and the facade."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ZoneKind(str, Enum):
    """The DNS service a zone lives in. Fixed for the lifetime of a zone."""

    PUBLIC = "public"
    PRIVATE = "private"


class RecordType(str, Enum):
    """Record types Azure DNS can report. Only A is written.

    Listings skip record sets of any other type.
    """

    A = "A"
    AAAA = "AAAA"
    CAA = "CAA"
    CNAME = "CNAME"
    DS = "DS"
    MX = "MX"
    NAPTR = "NAPTR"
    NS = "NS"
    PTR = "PTR"
    SOA = "SOA"
    SRV = "SRV"
    TLSA = "TLSA"
    TXT = "TXT"


@dataclass(frozen=True)
class ResourceRecordSet:
    """A named group of DNS answers of one type.

    Attributes:
        name: Fully-qualified record name without the trailing dot.
        rrdatas: Answer data; IPv4 addresses for A records.
        ttl: Time to live in seconds.
        type: Record type.
        auto_registered: Set by the private DNS service for records it
            created for virtual machines. Always False in public zones.
    """

    name: str
    rrdatas: tuple[str, ...]
    ttl: int
    type: RecordType = RecordType.A
    auto_registered: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class ZoneInfo:
    """Zone identity as reported by a backend."""

    name: str
    id: str | None
    kind: ZoneKind
    virtual_network_id: str | None = None
    tags: dict[str, str] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ZoneSpec:
    """Desired zone passed to zone creation."""

    name: str
    kind: ZoneKind
    tags: dict[str, str] = field(default_factory=dict)
    virtual_network_id: str | None = None
