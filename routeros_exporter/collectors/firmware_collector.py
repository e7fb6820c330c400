"""RouterBOARD firmware and board identity."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value


class FirmwareCollector(BaseCollector):
    name = "firmware"
    props = ["board-name", "model", "serial-number", "current-firmware", "upgrade-firmware"]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        label_names = ["name", "address", "board_name", "model", "serial_number",
                       "current_firmware", "upgrade_firmware"]
        self.info = description(
            "firmware", "info", "board identity and firmware versions (always 1)", label_names
        )
        self.upgrade_available = description(
            "firmware", "upgrade_available",
            "1 if the upgrade firmware differs from the running firmware", label_names
        )

    def describe(self) -> List[CollectorDescriptor]:
        return [self.info, self.upgrade_available]

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/system/routerboard/print", self.props)
        for record in records:
            values = [label_value(record.get(p)) for p in self.props]
            labels = tuple(self.device_labels(device) + values)
            current, upgrade = values[3], values[4]
            yield Sample(self.info, 1.0, labels)
            yield Sample(self.upgrade_available, 1.0 if upgrade and upgrade != current else 0.0, labels)
