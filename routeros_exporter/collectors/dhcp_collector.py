"""DHCP server active lease counts."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value, parse_number


class DHCPCollector(BaseCollector):
    """Number of active leases on each DHCP server."""

    name = "dhcp"

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        self.description = description(
            "dhcp", "leases_active_count", "number of active leases per DHCP server",
            ["name", "address", "server"]
        )

    def describe(self) -> List[CollectorDescriptor]:
        return [self.description]

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        servers = self.fetch(session, "/ip/dhcp-server/print", ["name"])
        for server in servers:
            server_name = label_value(server["name"])
            # count-only replies carry the count in the !done "ret" attribute
            reply = session.run(
                "/ip/dhcp-server/lease/print",
                f"?server={server_name}", "=active=", "=count-only="
            )
            counts = [r["ret"] for r in reply if "ret" in r]
            if not counts:
                raise ValueError(f"no lease count returned for server {server_name}")
            yield Sample(
                self.description,
                parse_number(counts[-1]),
                tuple(self.device_labels(device) + [server_name])
            )
