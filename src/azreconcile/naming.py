"""Zone-relative record set naming."""

from __future__ import annotations

# Name Azure DNS gives the record sets at the zone apex
APEX_RECORD_NAME = "@"


def relative_record_set_name(fqdn: str, zone_name: str) -> str:
    """Derive the zone-relative record set name from a fully-qualified name.

    Exactly one trailing ".<zone_name>" is removed, together with a single
    root dot after it ("www.example.com." resolves like "www.example.com").
    A trailing dot on ``zone_name`` is ignored. A name that does not end
    with the suffix is returned unchanged, so resolving an already-relative
    name is a no-op. Matching is literal: the zone name is never treated as
    a pattern and earlier occurrences of it inside the name are kept.

    >>> relative_record_set_name("www.example.com", "example.com")
    'www'
    >>> relative_record_set_name("www.example.com.", "example.com.")
    'www'
    >>> relative_record_set_name("www", "example.com")
    'www'
    """
    zone_name = zone_name.rstrip(".")
    if not zone_name:
        return fqdn

    suffix = "." + zone_name
    for candidate in (suffix + ".", suffix):
        if fqdn.endswith(candidate):
            return fqdn[: -len(candidate)]
    return fqdn


def zone_record_set_name(name: str, zone_name: str) -> str:
    """Record set name as the DNS services key it: relative, or "@" at the apex."""
    if name == APEX_RECORD_NAME or name.rstrip(".") == zone_name.rstrip("."):
        return APEX_RECORD_NAME
    return relative_record_set_name(name, zone_name)
