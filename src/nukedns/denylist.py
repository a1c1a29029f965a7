"""Static domain denylist loaded once at startup.

Brief:
  DenylistStore holds the set of blocked domain names. Entries come from an
  ad-block style list (``||domain.tld^``), either the copy bundled with the
  package or a file named in the configuration. The store is immutable once
  loaded, so lookups need no locking.
"""

from __future__ import annotations

import logging
import os
from importlib import resources
from typing import FrozenSet, Iterable, Iterator, Union

logger = logging.getLogger("nukedns.denylist")

BUNDLED_LIST = "denylist.txt"


def normalize_domain(domain: str) -> str:
    """Brief: Lowercase a domain name and drop any trailing root dot.

    Inputs:
      - domain: Domain name as written in a list or decoded from a query.

    Outputs:
      - str: Normalized name used for denylist and cache keys.

    Example:
      >>> normalize_domain("Ads.Example.COM.")
      'ads.example.com'
    """
    return str(domain).strip().rstrip(".").lower()


def _strip_wrappers(token: str) -> str:
    """Brief: Remove the ad-block ``||`` prefix and ``^`` suffix from a token.

    Inputs:
      - token: One stripped, non-comment list line.

    Outputs:
      - str: The domain part with wrappers removed; other text is kept verbatim.
    """
    t = token
    if t.startswith("||"):
        t = t[2:]
    if t.endswith("^"):
        t = t[:-1]
    return t


def _iter_entries(lines: Iterable[str]) -> Iterator[str]:
    for raw in lines:
        line = raw.strip()
        # '!' is the ad-block comment marker, '#' the hosts-file one.
        if not line or line.startswith("#") or line.startswith("!"):
            continue
        domain = normalize_domain(_strip_wrappers(line))
        if domain:
            yield domain


class DenylistStore:
    """Set of blocked domain names, exact match only.

    Example use:
        >>> store = DenylistStore.load(["||ads.example.com^"])
        >>> store.contains("ads.example.com")
        True
        >>> store.contains("sub.ads.example.com")
        False
    """

    def __init__(self, domains: Iterable[str] = ()) -> None:
        self._domains: FrozenSet[str] = frozenset(
            normalize_domain(d) for d in domains if normalize_domain(d)
        )

    @classmethod
    def load(cls, source: Union[str, os.PathLike, Iterable[str]]) -> "DenylistStore":
        """
        Build a store from a list file or an iterable of lines.

        Inputs:
            source: Path to a newline-delimited list, or an iterable of lines.
        Outputs:
            DenylistStore with one entry per non-comment line.

        Raises:
            OSError: when a path is given and cannot be read.
        """
        if isinstance(source, (str, os.PathLike)):
            path = os.fspath(source)
            logger.debug("Opening denylist %s", path)
            with open(path, "r", encoding="utf-8") as fh:
                store = cls(_iter_entries(fh))
            logger.info("Loaded %d denylist entries from %s", len(store), path)
            return store
        return cls(_iter_entries(source))

    @classmethod
    def load_bundled(cls) -> "DenylistStore":
        """Load the denylist shipped inside the nukedns package."""
        text = (
            resources.files("nukedns.data")
            .joinpath(BUNDLED_LIST)
            .read_text(encoding="utf-8")
        )
        store = cls(_iter_entries(text.splitlines()))
        logger.info("Loaded %d bundled denylist entries", len(store))
        return store

    def contains(self, domain: str) -> bool:
        """
        Return True when the exact (normalized) domain is on the list.

        Inputs:
            domain: Query name; case and a trailing dot are ignored.
        Outputs:
            bool
        """
        return normalize_domain(domain) in self._domains

    def __contains__(self, domain: object) -> bool:
        return isinstance(domain, str) and self.contains(domain)

    def __len__(self) -> int:
        return len(self._domains)
