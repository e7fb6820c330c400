"""Wireless station associations."""

import logging
from typing import Iterable, List

from ..config.models import DeviceConfig
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample, description
from .base import BaseCollector, label_value, parse_number


class WLANStationCollector(BaseCollector):
    """Signal quality and traffic of each station in the registration table."""

    name = "wlan_stations"
    props = ["interface", "mac-address", "signal-to-noise", "signal-strength", "packets", "bytes", "frames"]
    pair_props = ["packets", "bytes", "frames"]

    def __init__(self, logger: logging.Logger):
        super().__init__(logger)
        label_names = ["name", "address", "interface", "mac_address"]
        self.signal_to_noise = description(
            "wlan_station", "signal_to_noise", "signal to noise ratio of the station", label_names
        )
        self.signal_strength = description(
            "wlan_station", "signal_strength", "signal strength of the station in dBm", label_names
        )
        self.pairs = {
            (prop, direction): description(
                "wlan_station", f"{prop}_{direction}",
                f"number of {prop} {'sent to' if direction == 'tx' else 'received from'} the station",
                label_names
            )
            for prop in self.pair_props
            for direction in ("tx", "rx")
        }

    def describe(self) -> List[CollectorDescriptor]:
        return [self.signal_to_noise, self.signal_strength] + list(self.pairs.values())

    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        records = self.fetch(session, "/interface/wireless/registration-table/print", self.props)
        for record in records:
            labels = tuple(self.device_labels(device) + [
                label_value(record.get("interface")),
                label_value(record.get("mac-address")),
            ])
            if "signal-to-noise" in record:
                yield Sample(self.signal_to_noise, parse_number(record["signal-to-noise"]), labels)
            if "signal-strength" in record:
                # e.g. "-62@HT20-5", the rate after "@" is dropped
                strength = str(record["signal-strength"]).split("@", 1)[0]
                yield Sample(self.signal_strength, parse_number(strength), labels)
            for prop in self.pair_props:
                if prop not in record:
                    continue
                tx, rx = str(record[prop]).split(",")
                yield Sample(self.pairs[(prop, "tx")], parse_number(tx), labels)
                yield Sample(self.pairs[(prop, "rx")], parse_number(rx), labels)
