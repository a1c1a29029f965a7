import logging
from typing import Any, List, Optional

from dnslib import QTYPE, RCODE, DNSHeader, DNSRecord

from .cache import AnswerCache, ttl_for
from .denylist import DenylistStore, normalize_domain
from .errors import ResolveError
from .upstream import UpstreamResolver

logger = logging.getLogger("nukedns.handler")


def _qtype_name(qtype: int) -> str:
    return str(QTYPE.get(qtype, qtype))


class RequestHandler:
    """
    Per-datagram resolution pipeline.

    Brief:
        decode -> denylist check -> cache lookup -> upstream resolve on miss ->
        cache populate -> encode. The handler keeps no per-request state, so
        one instance is shared by every listener thread.

    Inputs (constructor):
        denylist: DenylistStore consulted before anything else.
        cache: AnswerCache shared across all requests.
        resolver: UpstreamResolver (or any object with resolve(name, qtype)).

    Example use:
        >>> handler = RequestHandler(DenylistStore(), AnswerCache(), UpstreamResolver())
        >>> wire = handler.handle(DNSRecord.question("example.com").pack())  # doctest: +SKIP
    """

    def __init__(
        self,
        denylist: DenylistStore,
        cache: AnswerCache,
        resolver: UpstreamResolver,
    ) -> None:
        self.denylist = denylist
        self.cache = cache
        self.resolver = resolver

    def handle(self, data: bytes, client_ip: Optional[str] = None) -> Optional[bytes]:
        """Resolve a single DNS wire query and return the wire response.

        Inputs:
          - data: Raw datagram received from the client.
          - client_ip: Optional peer address, used for logging only.
        Outputs:
          - bytes: Encoded response to send back to the client.
          - None: The datagram was malformed and must be dropped silently.
        """
        request = self._decode(data, client_ip)
        if request is None:
            return None

        question = request.q
        domain = normalize_domain(str(question.qname))
        qtype = int(question.qtype)
        logger.info(
            "Incoming request for %s %s from %s",
            domain,
            _qtype_name(qtype),
            client_ip or "-",
        )

        try:
            return self._resolve(request, domain, qtype)
        except Exception:  # pragma: no cover - outermost guard
            logger.exception("Unexpected error resolving %s %s", domain, qtype)
            return self._build_response(request, RCODE.SERVFAIL)

    def _decode(self, data: bytes, client_ip: Optional[str]) -> Optional[DNSRecord]:
        """
        Parse the datagram and reject anything that is not a single query.

        Inputs:
            - data: Raw datagram bytes.
            - client_ip: Peer address for log lines.
        Outputs:
            - DNSRecord, or None for undecodable input, responses, or requests
              without a question.
        """
        try:
            request = DNSRecord.parse(data)
        except Exception as e:
            logger.debug(
                "Dropping malformed datagram (%d bytes) from %s: %s",
                len(data),
                client_ip or "-",
                e,
            )
            return None
        if request.header.qr:
            logger.debug("Dropping DNS response sent by %s", client_ip or "-")
            return None
        if not request.questions:
            logger.debug("Dropping query without questions from %s", client_ip or "-")
            return None
        return request

    def _resolve(self, request: DNSRecord, domain: str, qtype: int) -> bytes:
        if self.denylist.contains(domain):
            logger.info("Denied %s %s", domain, _qtype_name(qtype))
            return self._build_response(request, RCODE.NXDOMAIN, authoritative=True)

        key = (domain, qtype)
        answers = self.cache.get(key)
        if answers is not None:
            logger.debug("Cache hit for %s %s", domain, _qtype_name(qtype))
        else:
            try:
                answers = self.resolver.resolve(domain, qtype)
            except ResolveError as e:
                logger.warning(
                    "Upstream failure for %s %s: %s", domain, _qtype_name(qtype), e
                )
                return self._build_response(request, RCODE.SERVFAIL)
            ttl = ttl_for(answers)
            logger.debug(
                "Caching %s %s with TTL %ds", domain, _qtype_name(qtype), ttl
            )
            self.cache.put(key, answers, ttl)

        return self._build_response(request, RCODE.NOERROR, answers=answers)

    @staticmethod
    def _build_response(
        request: DNSRecord,
        rcode: int,
        *,
        answers: Optional[List[Any]] = None,
        authoritative: bool = False,
    ) -> bytes:
        """
        Create the response for request with the given outcome.

        Inputs:
            - request: Decoded client query.
            - rcode: NOERROR, NXDOMAIN or SERVFAIL.
            - answers: Answer records (NOERROR only).
            - authoritative: Value of the AA flag.
        Outputs:
            - bytes: Response carrying the request id, its RD flag, RA=1 and
              the original question.
        """
        header = DNSHeader(
            id=request.header.id,
            qr=1,
            aa=1 if authoritative else 0,
            rd=request.header.rd,
            ra=1,
            rcode=rcode,
        )
        response = DNSRecord(header, q=request.q)
        for rr in answers or []:
            response.add_answer(rr)
        return response.pack()
