"""System resource usage."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value, parse_duration, parse_number


class ResourceCollector(BaseCollector):
    """Memory, CPU, storage and uptime of the device."""

    name = "resource"
    props = [
        "free-memory", "total-memory", "cpu-load",
        "free-hdd-space", "total-hdd-space", "uptime",
        "board-name", "version",
    ]
    metric_props = props[:6]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        label_names = ["name", "address", "boardname", "version"]
        self.descriptions = {
            prop: description("system", prop, f"{prop.replace('-', ' ')} of the system", label_names)
            for prop in self.metric_props
        }

    def describe(self) -> List[CollectorDescriptor]:
        return list(self.descriptions.values())

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/system/resource/print", self.props)
        for record in records:
            labels = tuple(self.device_labels(device) + [
                label_value(record.get("board-name")),
                label_value(record.get("version")),
            ])
            for prop in self.metric_props:
                # Boards without storage omit the hdd fields
                if prop not in record:
                    continue
                if prop == "uptime":
                    value = parse_duration(record[prop])
                else:
                    value = parse_number(record[prop])
                yield Sample(self.descriptions[prop], value, labels)
