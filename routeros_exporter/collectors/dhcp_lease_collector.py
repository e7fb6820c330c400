"""DHCP lease table."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value, parse_duration


class DHCPLeaseCollector(BaseCollector):
    """One sample per bound lease, valued by the seconds until it expires."""

    name = "dhcp_leases"
    props = ["active-mac-address", "status", "expires-after", "active-address", "host-name"]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        self.description = description(
            "dhcpl", "lease_expires_seconds", "seconds until the DHCP lease expires",
            ["name", "address", "active_mac_address", "status", "active_address", "host_name"]
        )

    def describe(self) -> List[CollectorDescriptor]:
        return [self.description]

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/ip/dhcp-server/lease/print", self.props, "?status=bound")
        for record in records:
            labels = tuple(self.device_labels(device) + [
                label_value(record.get("active-mac-address")),
                label_value(record.get("status")),
                label_value(record.get("active-address")),
                label_value(record.get("host-name")),
            ])
            # Static leases without expiry report no expires-after
            expires = record.get("expires-after")
            value = parse_duration(expires) if expires not in (None, "", "never") else 0.0
            yield Sample(self.description, value, labels)
