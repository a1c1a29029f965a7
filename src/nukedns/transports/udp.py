import socket

from ..errors import ResolveError

MAX_UDP_RESPONSE = 4096


class UDPError(ResolveError):
    """
    Brief: DNS-over-UDP transport error (timeout, refused, unreachable).

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """


def udp_query(host: str, port: int, query: bytes, *, timeout: float = 5.0) -> bytes:
    """
    Brief: Send one DNS query over UDP and return the first datagram received.

    Inputs:
    - host: upstream resolver IP
    - port: upstream UDP port
    - query: wire-format DNS query bytes
    - timeout: socket timeout in seconds

    Outputs:
    - bytes: wire-format DNS response

    Example:
        >>> try:
        ...     udp_query('127.0.0.1', 53, b'\x00\x01', timeout=0.1)
        ... except UDPError:
        ...     pass
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.settimeout(timeout)
            # connect() makes the kernel discard datagrams from other peers.
            s.connect((host, int(port)))
            s.send(query)
            return s.recv(MAX_UDP_RESPONSE)
    except socket.timeout as e:
        raise UDPError(f"UDP timeout after {timeout:.1f}s querying {host}:{port}") from e
    except OSError as e:
        raise UDPError(f"UDP error: {e}") from e
