"""Metric data structures shared by collectors, the orchestrator and the exporter."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

NAMESPACE = "mikrotik"


class MetricType(Enum):
    """Exposition type of a descriptor."""

    GAUGE = "gauge"
    COUNTER = "counter"


@dataclass(frozen=True)
class CollectorDescriptor:
    """Fixed name/label schema of one time series family."""

    name: str
    documentation: str
    label_names: Tuple[str, ...]
    metric_type: MetricType = MetricType.GAUGE


@dataclass(frozen=True)
class Sample:
    """One observation emitted by a collector or the orchestrator."""

    descriptor: CollectorDescriptor
    value: float
    labels: Tuple[str, ...]

    def __post_init__(self):
        """Enforce the descriptor's label arity."""
        if len(self.labels) != len(self.descriptor.label_names):
            raise ValueError(
                f"{self.descriptor.name}: expected {len(self.descriptor.label_names)} "
                f"label values, got {len(self.labels)}"
            )


def build_name(*parts: str) -> str:
    """Join non-empty name parts with underscores, dashes normalised."""
    return "_".join(p.replace("-", "_") for p in parts if p)


def description(
    prefix: str,
    name: str,
    help_text: str,
    label_names: List[str],
    metric_type: MetricType = MetricType.GAUGE
) -> CollectorDescriptor:
    """
    Build a namespaced descriptor, e.g. ``mikrotik_interface_rx_byte``.

    Args:
        prefix: Subsystem name (interface, system, bgp, ...)
        name: Metric name inside the subsystem
        help_text: Human readable description
        label_names: Ordered label names
        metric_type: Gauge or counter

    Returns:
        CollectorDescriptor: Immutable descriptor
    """
    return CollectorDescriptor(
        name=build_name(NAMESPACE, prefix, name),
        documentation=help_text,
        label_names=tuple(label_names),
        metric_type=metric_type
    )


SCRAPE_DURATION = description(
    "scrape", "collector_duration_seconds",
    "mikrotik_exporter: duration of a collector scrape",
    ["device"]
)
SCRAPE_SUCCESS = description(
    "scrape", "collector_success",
    "mikrotik_exporter: whether a collector succeeded",
    ["device"]
)


@dataclass(frozen=True)
class ScrapeOutcome:
    """Per-device duration and success of one scrape cycle."""

    device: str
    duration: float
    success: bool

    def samples(self) -> List[Sample]:
        """Duration sample followed by the 1.0/0.0 success sample."""
        return [
            Sample(SCRAPE_DURATION, self.duration, (self.device,)),
            Sample(SCRAPE_SUCCESS, 1.0 if self.success else 0.0, (self.device,)),
        ]
