"""Error taxonomy for one device's scrape."""

from typing import Optional


class ScrapeError(Exception):
    """Base class for failures that are local to one device's unit of work."""

    def __init__(self, message: str, device: Optional[str] = None):
        super().__init__(message)
        self.device = device


class DiscoveryError(ScrapeError):
    """DNS SRV lookup for a discovery-tagged entry failed."""


class ConnectError(ScrapeError):
    """Dialing the device failed (timeout, refused, TLS handshake)."""


class AuthError(ScrapeError):
    """Login was rejected or the challenge could not be answered."""


class CollectError(ScrapeError):
    """A collector query failed or returned unparseable data."""


class SinkClosedError(RuntimeError):
    """A sample was written to a sink that has already been closed."""
