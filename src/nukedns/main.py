from __future__ import annotations

import argparse
import logging
import signal
from typing import List, Optional

from dotenv import load_dotenv

from .cache import AnswerCache
from .config.config_parser import (
    get_denylist_path,
    get_sweep_interval,
    load_config,
    resolve_bind_targets,
)
from .config.logging_config import init_logging
from .denylist import DenylistStore
from .handler import RequestHandler
from .supervisor import Supervisor
from .upstream import UpstreamResolver


def _install_signal_handlers(supervisor: Supervisor, logger: logging.Logger) -> None:
    """Route termination-like signals to Supervisor.stop()."""

    def _handler(signum, _frame):
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        supervisor.stop()

    for name in ("SIGTERM", "SIGINT", "SIGHUP"):
        sig = getattr(signal, name, None)
        if sig is None:
            continue
        try:
            signal.signal(sig, _handler)
            logger.debug("Installed %s handler for clean shutdown", name)
        except (ValueError, OSError):
            # signal.signal() only works from the main thread.
            logger.warning("Could not install %s handler", name)


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the DNS forwarder.
    Parses arguments, loads configuration and the denylist, then runs the
    Supervisor until shutdown.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 on requested shutdown, 1 on startup failure or when a
        listener stops unexpectedly.

    Example use:
        CLI:
            PYTHONPATH=src python -m nukedns --config config.yaml
    """
    parser = argparse.ArgumentParser(description="Caching, filtering DNS forwarder")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to optional YAML config"
    )
    parser.add_argument(
        "--denylist",
        default=None,
        help="Denylist file in ad-block syntax (overrides denylist.file)",
    )
    parser.add_argument(
        "--dotenv",
        default=".env",
        help="Environment file providing HOST/PORT (ignored when missing)",
    )
    args = parser.parse_args(argv)

    load_dotenv(args.dotenv, override=False)

    # Console logging first so config problems are visible, then the
    # configured handlers.
    init_logging(None)
    cfg = load_config(args.config)
    init_logging(cfg.get("logging"))
    logger = logging.getLogger("nukedns.main")

    denylist_path: Optional[str] = args.denylist or get_denylist_path(cfg)
    try:
        if denylist_path:
            denylist = DenylistStore.load(denylist_path)
        else:
            denylist = DenylistStore.load_bundled()
    except OSError as e:
        logger.error("Could not load denylist %s: %s", denylist_path, e)
        return 1

    cache = AnswerCache()
    resolver = UpstreamResolver()
    handler = RequestHandler(denylist, cache, resolver)
    targets = resolve_bind_targets(cfg)
    logger.info(
        "Upstream: %s:%d, listeners: [%s]",
        resolver.host,
        resolver.port,
        ", ".join(str(t) for t in targets),
    )

    supervisor = Supervisor(
        targets, handler, cache, sweep_interval=get_sweep_interval(cfg)
    )
    _install_signal_handlers(supervisor, logger)

    try:
        return supervisor.run()
    except OSError as e:
        logger.error("Fatal: could not start listeners: %s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover
