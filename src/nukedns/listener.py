import ipaddress
import logging
import socket
import socketserver
import threading
from typing import Tuple

from .handler import RequestHandler

logger = logging.getLogger("nukedns.listener")

BOUND = "bound"
SERVING = "serving"
STOPPED = "stopped"


class _DatagramHandler(socketserver.BaseRequestHandler):
    """
    Handles one UDP datagram.
    socketserver instantiates this class on a fresh thread for every datagram,
    so a slow upstream lookup never delays the next recvfrom().
    """

    def handle(self) -> None:
        data, sock = self.request
        client_ip = self.client_address[0]
        wire = self.server.request_handler.handle(data, client_ip)
        # None means the datagram was dropped; the client observes a timeout.
        if not wire:
            return
        try:
            sock.sendto(wire, self.client_address)
        except OSError as e:
            logger.warning("Failed to send response to %s: %s", client_ip, e)


class _ThreadingUDPServer(socketserver.ThreadingUDPServer):
    daemon_threads = True

    def __init__(self, server_address, request_handler: RequestHandler) -> None:
        self.request_handler = request_handler
        host = server_address[0]
        try:
            if ipaddress.ip_address(host).version == 6:
                self.address_family = socket.AF_INET6
        except ValueError:
            pass
        super().__init__(server_address, _DatagramHandler)

    def handle_error(self, request, client_address) -> None:
        logger.exception("Error handling datagram from %s", client_address)


class UDPListener:
    """One bound UDP endpoint serving DNS queries.

    State moves bound -> serving -> stopped. Binding happens in the
    constructor, so a listener that exists is always bound.

    Example use:
        >>> listener = UDPListener("127.0.0.1", 5355, handler)
        >>> t = threading.Thread(target=listener.serve_forever, daemon=True)
        >>> t.start()
        >>> listener.stop()
    """

    def __init__(self, host: str, port: int, handler: RequestHandler) -> None:
        """Bind a UDP socket on host:port.

        Inputs:
            host: Address to listen on.
            port: UDP port; 0 picks an ephemeral port.
            handler: RequestHandler shared with all other listeners.

        Raises:
            OSError: when the address cannot be bound.
        """
        self.host = str(host)
        self.port = int(port)
        self._state_lock = threading.Lock()
        try:
            self.server = _ThreadingUDPServer((self.host, self.port), handler)
        except PermissionError as e:
            logger.error(
                "Permission denied when binding to %s:%d. Try a port >1024 or run with elevated privileges. Original error: %s",
                self.host,
                self.port,
                e,
            )
            raise
        except OSError as e:
            logger.error("Could not bind UDP listener on %s:%d: %s", self.host, self.port, e)
            raise
        self.state = BOUND
        logger.debug("DNS UDP listener bound to %s:%d", *self.server_address[:2])

    @property
    def server_address(self) -> Tuple[str, int]:
        return self.server.server_address

    def serve_forever(self, poll_interval: float = 0.5) -> None:
        """Read datagrams until stop() is called or the socket fails.

        Inputs:
          - poll_interval: Seconds between shutdown-flag checks.
        Outputs:
          - None; exceptions from the socket loop propagate to the caller.
        """
        with self._state_lock:
            if self.state != BOUND:
                return
            self.state = SERVING
        logger.info("Listening on %s:%d", *self.server_address[:2])
        try:
            self.server.serve_forever(poll_interval=poll_interval)
        finally:
            self.state = STOPPED
            logger.info("Listener on %s:%d stopped", self.host, self.port)

    def stop(self) -> None:
        """Request shutdown and close the underlying UDP socket.

        Safe to call from any thread other than the one running
        serve_forever(), and safe to call more than once.
        """
        with self._state_lock:
            was_serving = self.state == SERVING
            if self.state == BOUND:
                self.state = STOPPED
        if was_serving:
            try:
                self.server.shutdown()
            except Exception:  # pragma: no cover
                logger.exception("Error while shutting down UDP listener")
        try:
            self.server.server_close()
        except Exception:  # pragma: no cover
            logger.exception("Error while closing UDP listener socket")
