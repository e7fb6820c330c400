"""BGP peering state."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value, parse_number


class BGPCollector(BaseCollector):
    """Session state and prefix/update counters per BGP peer."""

    name = "bgp"
    props = [
        "name", "remote-as", "state", "prefix-count",
        "updates-sent", "updates-received", "withdrawn-sent", "withdrawn-received",
    ]
    metric_props = props[2:]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        label_names = ["name", "address", "session", "asn"]
        self.descriptions = {}
        for prop in self.metric_props:
            if prop == "state":
                self.descriptions[prop] = description(
                    "bgp", "up", "BGP session is established (up = 1)", label_names
                )
            else:
                self.descriptions[prop] = description(
                    "bgp", prop, f"number of {prop.replace('-', ' ')}", label_names
                )

    def describe(self) -> List[CollectorDescriptor]:
        return list(self.descriptions.values())

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/routing/bgp/peer/print", self.props)
        for record in records:
            labels = tuple(self.device_labels(device) + [
                label_value(record.get("name")),
                label_value(record.get("remote-as")),
            ])
            for prop in self.metric_props:
                value = record.get(prop)
                if prop == "state":
                    yield Sample(self.descriptions[prop], 1.0 if value == "established" else 0.0, labels)
                elif value not in (None, ""):
                    yield Sample(self.descriptions[prop], parse_number(value), labels)
