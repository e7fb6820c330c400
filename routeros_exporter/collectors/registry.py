"""Assemble the ordered collector pipeline from feature toggles."""

import logging
from typing import List

from ..config.models import FeaturesConfig
from .base import BaseCollector
from .bgp_collector import BGPCollector
from .dhcp_collector import DHCPCollector
from .dhcp_lease_collector import DHCPLeaseCollector
from .firmware_collector import FirmwareCollector
from .interface_collector import InterfaceCollector
from .resource_collector import ResourceCollector
from .routes_collector import RoutesCollector
from .wlan_interface_collector import WLANInterfaceCollector
from .wlan_station_collector import WLANStationCollector

# Toggle name -> collector class, in pipeline order
OPTIONAL_COLLECTORS = [
    ("bgp", BGPCollector),
    ("dhcp", DHCPCollector),
    ("dhcp_leases", DHCPLeaseCollector),
    ("firmware", FirmwareCollector),
    ("wlan_interfaces", WLANInterfaceCollector),
    ("wlan_stations", WLANStationCollector),
    ("routes", RoutesCollector),
]


def build_collectors(features: FeaturesConfig, logger: logging.Logger) -> List[BaseCollector]:
    """
    Build the fixed collector pipeline.

    Interface and resource collectors always run first, followed by every
    enabled optional collector.

    Args:
        features: Feature toggles
        logger: Parent logger for the collectors

    Returns:
        List[BaseCollector]: Collectors in execution order
    """
    collectors: List[BaseCollector] = [InterfaceCollector(logger), ResourceCollector(logger)]
    for toggle, collector_cls in OPTIONAL_COLLECTORS:
        if getattr(features, toggle):
            collectors.append(collector_cls(logger))

    logger.info(
        f"Initialized {len(collectors)} collector(s)",
        extra={"collectors": [c.name for c in collectors]}
    )
    return collectors
