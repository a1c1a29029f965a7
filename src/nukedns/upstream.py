"""Single fixed upstream resolver.

Brief:
  UpstreamResolver sends one query per call to a fixed recursive resolver over
  UDP and returns the answer section. Any failure surfaces as ResolveError; the
  caller decides what to tell the client. There is no retry and no failover.
"""

from __future__ import annotations

import logging
from typing import List

from dnslib import RCODE, RR, DNSHeader, DNSQuestion, DNSRecord

from .errors import ResolveError
from .transports.udp import udp_query

logger = logging.getLogger("nukedns.upstream")

DEFAULT_UPSTREAM_HOST = "8.8.8.8"
DEFAULT_UPSTREAM_PORT = 53
DEFAULT_UPSTREAM_TIMEOUT = 5.0


class UpstreamResolver:
    """Resolve (name, qtype) against one upstream server.

    Example use:
        >>> resolver = UpstreamResolver()
        >>> records = resolver.resolve("example.com", QTYPE.A)  # doctest: +SKIP
    """

    def __init__(
        self,
        host: str = DEFAULT_UPSTREAM_HOST,
        port: int = DEFAULT_UPSTREAM_PORT,
        timeout: float = DEFAULT_UPSTREAM_TIMEOUT,
    ) -> None:
        self.host = str(host)
        self.port = int(port)
        self.timeout = float(timeout)

    def __repr__(self) -> str:
        return f"UpstreamResolver({self.host}:{self.port}, timeout={self.timeout}s)"

    def resolve(self, name: str, qtype: int) -> List[RR]:
        """
        Query the upstream server and return its answer records.

        Inputs:
            name: Query name (trailing dot optional).
            qtype: Integer QTYPE value.
        Outputs:
            List of dnslib RR objects from the answer section, in upstream
            order. An NXDOMAIN reply yields an empty list.

        Raises:
            ResolveError: on transport failure or timeout, an undecodable or
            truncated reply, a transaction id mismatch, or any upstream rcode
            other than NOERROR/NXDOMAIN.
        """
        query = DNSRecord(DNSHeader(rd=1), q=DNSQuestion(name, int(qtype)))
        wire = udp_query(self.host, self.port, query.pack(), timeout=self.timeout)

        try:
            reply = DNSRecord.parse(wire)
        except Exception as e:
            raise ResolveError(f"Undecodable upstream reply for {name}: {e}") from e

        if reply.header.id != query.header.id:
            raise ResolveError(
                f"Upstream reply id {reply.header.id} does not match query id "
                f"{query.header.id}"
            )
        if reply.header.tc:
            raise ResolveError(f"Truncated upstream reply for {name}")

        rcode = reply.header.rcode
        if rcode == RCODE.NXDOMAIN:
            logger.debug("Upstream NXDOMAIN for %s %s", name, qtype)
            return []
        if rcode != RCODE.NOERROR:
            raise ResolveError(
                f"Upstream returned {RCODE.get(rcode, rcode)} for {name}"
            )

        logger.debug(
            "Upstream %s answered %s %s with %d records",
            self.host,
            name,
            qtype,
            len(reply.rr),
        )
        return list(reply.rr)
