"""Interface traffic counters."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, MetricType, Sample, description
from .base import BaseCollector, label_value, parse_number


class InterfaceCollector(BaseCollector):
    """Per-interface rx/tx byte, packet, error and drop counters."""

    name = "interface"
    props = [
        "name", "type", "disabled", "comment", "running", "slave",
        "rx-byte", "tx-byte", "rx-packet", "tx-packet",
        "rx-error", "tx-error", "rx-drop", "tx-drop",
    ]
    label_props = props[:6]
    metric_props = props[6:]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        label_names = ["name", "address", "interface", "type", "disabled", "comment", "running", "slave"]
        self.descriptions = {
            prop: description(
                "interface", prop, f"number of {prop.replace('-', ' ')} on the interface",
                label_names, MetricType.COUNTER
            )
            for prop in self.metric_props
        }

    def describe(self) -> List[CollectorDescriptor]:
        return list(self.descriptions.values())

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/interface/print", self.props)
        for record in records:
            labels = tuple(self.device_labels(device) + [label_value(record.get(p)) for p in self.label_props])
            for prop in self.metric_props:
                # Disabled or virtual interfaces omit some counters
                if prop not in record:
                    continue
                yield Sample(self.descriptions[prop], parse_number(record[prop]), labels)
