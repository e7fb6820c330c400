"""prometheus_client adapter: one scrape cycle per collection request."""

import asyncio
from typing import Dict, Iterable, List, Union

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily
from prometheus_client.registry import Collector

from .orchestrator import ScrapeOrchestrator
from .utils.metrics import CollectorDescriptor, MetricType, Sample

MetricFamily = Union[GaugeMetricFamily, CounterMetricFamily]


def _family(descriptor: CollectorDescriptor) -> MetricFamily:
    labels = list(descriptor.label_names)
    if descriptor.metric_type is MetricType.COUNTER:
        return CounterMetricFamily(descriptor.name, descriptor.documentation, labels=labels)
    return GaugeMetricFamily(descriptor.name, descriptor.documentation, labels=labels)


class RouterOSExporter(Collector):
    """Custom collector registered with a CollectorRegistry."""

    def __init__(self, orchestrator: ScrapeOrchestrator):
        self.orchestrator = orchestrator
        self._descriptors = orchestrator.descriptors()

    def describe(self) -> Iterable[MetricFamily]:
        return [_family(d) for d in self._descriptors]

    def collect(self) -> Iterable[MetricFamily]:
        sink = asyncio.run(self.orchestrator.scrape())
        return self.families(sink.samples)

    def families(self, samples: List[Sample]) -> List[MetricFamily]:
        """Group samples into one metric family per descriptor."""
        families: Dict[str, MetricFamily] = {d.name: _family(d) for d in self._descriptors}
        for sample in samples:
            family = families.get(sample.descriptor.name)
            if family is None:
                family = families[sample.descriptor.name] = _family(sample.descriptor)
            family.add_metric(list(sample.labels), sample.value)
        return [f for f in families.values() if f.samples]
