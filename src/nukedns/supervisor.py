"""Process-level coordination of listeners and the cache sweeper.

Brief:
  Supervisor binds one UDPListener per bind target, starts a single
  CacheSweeper for the shared AnswerCache, and blocks until either a listener
  stops on its own or shutdown is requested. Either way every listener and
  the sweeper are stopped before run() returns.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import List, Optional, Sequence

from .cache import DEFAULT_SWEEP_INTERVAL, AnswerCache, CacheSweeper
from .config.config_parser import BindTarget
from .handler import RequestHandler
from .listener import UDPListener

logger = logging.getLogger("nukedns.supervisor")


class Supervisor:
    """Run the DNS listeners until one of them stops or stop() is called.

    Example use:
        >>> sup = Supervisor([BindTarget(address="127.0.0.1", port=5353)], handler, cache)
        >>> threading.Thread(target=sup.run, daemon=True).start()
        >>> sup.stop()
    """

    def __init__(
        self,
        targets: Sequence[BindTarget],
        handler: RequestHandler,
        cache: AnswerCache,
        *,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        poll_interval: float = 0.2,
    ) -> None:
        if not targets:
            raise ValueError("Supervisor needs at least one bind target")
        self.targets = list(targets)
        self.handler = handler
        self.cache = cache
        self.sweep_interval = sweep_interval
        self.poll_interval = poll_interval

        self.listeners: List[UDPListener] = []
        self.sweeper: Optional[CacheSweeper] = None
        self._threads: List[threading.Thread] = []
        self._wake = threading.Event()
        self._stop_requested = False
        self._ready = threading.Event()

    def stop(self) -> None:
        """Request shutdown; run() tears down and returns 0.

        Only sets flags, so it is safe to call from a signal handler.
        """
        self._stop_requested = True
        self._wake.set()

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until every listener is bound and serving threads are started."""
        return self._ready.wait(timeout)

    def run(self) -> int:
        """
        Bind listeners, start serving, and wait for the first terminal event.

        Inputs:
            None
        Outputs:
            int: 0 when shutdown was requested, 1 when a listener stopped on
            its own (socket error or unexpected exit).

        Raises:
            OSError: when any bind target cannot be bound. Listeners that were
            already bound are closed first.
        """
        self._bind_all()

        self.sweeper = CacheSweeper(self.cache, self.sweep_interval)
        self.sweeper.start()

        for listener in self.listeners:
            t = threading.Thread(
                target=self._serve,
                args=(listener,),
                name=f"nukedns-udp-{listener.host}:{listener.port}",
                daemon=True,
            )
            t.start()
            self._threads.append(t)
        self._ready.set()
        logger.info("Startup completed with %d listener(s)", len(self.listeners))

        try:
            # stop() may run in a signal handler on this thread; poll the flag
            # rather than block inside Event.wait().
            while not self._wake.is_set():
                time.sleep(self.poll_interval)
        except KeyboardInterrupt:
            logger.info("Received interrupt, shutting down")
            self._stop_requested = True
        finally:
            self._teardown()

        if self._stop_requested:
            return 0
        logger.error("A listener stopped unexpectedly; shutting down")
        return 1

    def _bind_all(self) -> None:
        for target in self.targets:
            try:
                listener = UDPListener(target.address, target.port, self.handler)
            except OSError:
                for bound in self.listeners:
                    bound.stop()
                self.listeners = []
                raise
            self.listeners.append(listener)

    def _serve(self, listener: UDPListener) -> None:
        try:
            listener.serve_forever()
        except Exception as e:
            logger.error(
                "Listener on %s:%d failed: %s",
                listener.host,
                listener.port,
                e,
                exc_info=True,
            )
        finally:
            self._wake.set()

    def _teardown(self) -> None:
        for listener in self.listeners:
            listener.stop()
        for t in self._threads:
            t.join(timeout=5.0)
            if t.is_alive():  # pragma: no cover
                logger.warning("Listener thread %s did not exit", t.name)
        if self.sweeper is not None:
            self.sweeper.stop()
        logger.info("Shutdown complete (%d cached answers discarded)", len(self.cache))
