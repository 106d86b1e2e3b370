"""CIDR parsing helpers.

``parse_cidr`` follows the control plane's notion of a CIDR literal: an
address, a slash and a prefix length are all required, and host bits may be
set (``10.0.0.1/24`` is accepted and normalised to ``10.0.0.0/24``).
"""

from __future__ import annotations

import ipaddress
from typing import Union

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def parse_cidr(literal: str) -> IPNetwork:
    """Parse *literal* into a network; raise ``ValueError`` if malformed."""
    if not isinstance(literal, str) or "/" not in literal:
        raise ValueError(f"{literal!r} is not in CIDR notation")
    address, _, prefix = literal.partition("/")
    if not prefix.isdigit() or address != address.strip():
        raise ValueError(f"{literal!r} has an invalid prefix length")
    return ipaddress.ip_network(literal, strict=False)


def is_valid_cidr(literal: str) -> bool:
    try:
        parse_cidr(literal)
    except ValueError:
        return False
    return True


def cidr_contains(outer: IPNetwork, inner: IPNetwork) -> bool:
    """True if *inner* lies entirely inside *outer* (same address family)."""
    if outer.version != inner.version:
        return False
    return inner.subnet_of(outer)  # type: ignore[arg-type]
