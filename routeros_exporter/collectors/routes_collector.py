"""IP routing table."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value


class RoutesCollector(BaseCollector):
    name = "routes"
    props = ["dst-address", "gateway", "distance", "pref-src"]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        self.description = description(
            "route", "info", "ip route entries (always 1)",
            ["name", "address", "dst_address", "gateway", "distance", "pref_src"]
        )

    def describe(self) -> List[CollectorDescriptor]:
        return [self.description]

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/ip/route/print", self.props)
        for record in records:
            labels = tuple(self.device_labels(device) + [label_value(record.get(p)) for p in self.props])
            yield Sample(self.description, 1.0, labels)
