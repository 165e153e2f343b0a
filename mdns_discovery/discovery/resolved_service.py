"""Defines the ResolvedService class describing a fully resolved mDNS instance."""

import dataclasses
from typing import List, Tuple


@dataclasses.dataclass(frozen=True)
class ResolvedService:
    """Represents a resolved mDNS service instance.

    Holds everything learned about one advertised instance once its SRV,
    A/AAAA and TXT records are known. Instances are replaced wholesale when
    the same instance is resolved again.

    Attributes:
        fullname: Fully qualified instance name
            (e.g. "printer._ipp._tcp.local."). Unique key of the instance.
        hostname: Target host of the SRV record (e.g. "printer.local.").
        port: Service port from the SRV record.
        addresses: Textual IP addresses, in the order they were reported.
        properties: TXT attributes as (key, value) pairs, in record order.
    """

    fullname: str
    hostname: str
    port: int
    addresses: Tuple[str, ...] = ()
    properties: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def create(
        cls,
        fullname: str,
        hostname: str,
        port: int,
        addresses: List[str] | None = None,
        properties: List[Tuple[str, str]] | None = None,
    ) -> "ResolvedService":
        """Builds a ResolvedService from list arguments."""
        return cls(
            fullname,
            hostname,
            port,
            tuple(addresses or ()),
            tuple(properties or ()),
        )
