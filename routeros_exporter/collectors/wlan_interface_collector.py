"""Wireless radio interface state."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value, parse_number


class WLANInterfaceCollector(BaseCollector):
    """Registered clients, noise floor and CCQ per wireless interface."""

    name = "wlan_interfaces"
    props = ["channel", "registered-clients", "noise-floor", "overall-tx-ccq"]
    metric_props = props[1:]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        label_names = ["name", "address", "interface", "channel"]
        self.descriptions = {
            prop: description(
                "wlan_interface", prop, f"{prop.replace('-', ' ')} of the wireless interface",
                label_names
            )
            for prop in self.metric_props
        }

    def describe(self) -> List[CollectorDescriptor]:
        return list(self.descriptions.values())

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        interfaces = self.fetch(session, "/interface/wireless/print", ["name"])
        for iface in interfaces:
            iface_name = label_value(iface["name"])
            records = self.fetch(
                session, "/interface/wireless/monitor", self.props,
                f"=numbers={iface_name}", "=once="
            )
            for record in records:
                labels = tuple(self.device_labels(device) + [iface_name, label_value(record.get("channel"))])
                for prop in self.metric_props:
                    if prop not in record:
                        continue
                    yield Sample(self.descriptions[prop], parse_number(record[prop]), labels)
