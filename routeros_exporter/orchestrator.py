"""Scrape orchestration: resolve devices, fan out, collect, report outcomes."""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .collectors.base import BaseCollector
from .collectors.registry import build_collectors
from .config.models import DeviceConfig, ExporterConfig
from .errors import DiscoveryError, ScrapeError
from .services.resolver import DeviceResolver
from .services.session import SessionEstablisher
from .utils.logger import setup_logger
from .utils.metrics import SCRAPE_DURATION, SCRAPE_SUCCESS, CollectorDescriptor, ScrapeOutcome
from .utils.sink import MetricSink


class ScrapeOrchestrator:
    """
    Runs scrape cycles over the configured devices.

    Each cycle resolves the device set, then scrapes every device in its own
    worker thread: dial, authenticate, run the collector pipeline in order,
    close the session. Every device reports exactly one duration and one
    success sample, whatever happened to it.
    """

    def __init__(
        self,
        devices: List[DeviceConfig],
        collectors: List[BaseCollector],
        establisher: SessionEstablisher,
        resolver: Optional[DeviceResolver] = None,
        max_workers: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize scrape orchestrator.

        Args:
            devices: Configured devices (static or SRV templates)
            collectors: Collector pipeline, in execution order
            establisher: Opens one session per device
            resolver: Expands SRV templates; built from the establisher if omitted
            max_workers: Concurrent device limit; None means one worker per device
            logger: Optional logger instance
        """
        self.devices = list(devices)
        self.collectors = list(collectors)
        self.establisher = establisher
        self.max_workers = max_workers
        self.logger = (logger or setup_logger("orchestrator")).getChild(self.__class__.__name__)
        self.resolver = resolver or DeviceResolver(
            establisher, timeout=establisher.timeout, logger=self.logger
        )

    @classmethod
    def from_config(cls, config: ExporterConfig, logger: logging.Logger) -> "ScrapeOrchestrator":
        """Wire establisher, resolver and collectors from configuration."""
        logger.info(
            "Setting up collector for devices",
            extra={"num_devices": len(config.devices)}
        )
        establisher = SessionEstablisher(
            timeout=config.timeout,
            use_tls=config.tls,
            insecure_tls=config.insecure,
            logger=logger
        )
        return cls(
            devices=config.devices,
            collectors=build_collectors(config.features, logger),
            establisher=establisher,
            logger=logger
        )

    def descriptors(self) -> List[CollectorDescriptor]:
        """Every descriptor this orchestrator can emit, scrape metrics first."""
        descriptors = [SCRAPE_DURATION, SCRAPE_SUCCESS]
        for collector in self.collectors:
            descriptors.extend(collector.describe())
        return descriptors

    async def scrape(self) -> MetricSink:
        """
        Run one scrape cycle.

        Returns only after every device has finished; the returned sink is
        closed and safe to read.

        Returns:
            MetricSink: All samples of this cycle
        """
        start_time = time.monotonic()
        sink = MetricSink()

        def report_discovery_failure(template: DeviceConfig, error: DiscoveryError, elapsed: float):
            self._emit_outcome(sink, ScrapeOutcome(template.name, elapsed, False))

        devices = await self.resolver.resolve(self.devices, on_error=report_discovery_failure)

        if devices:
            loop = asyncio.get_running_loop()
            workers = self.max_workers or len(devices)
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scrape") as executor:
                tasks = [
                    loop.run_in_executor(executor, self.scrape_device, device, sink)
                    for device in devices
                ]
                results = await asyncio.gather(*tasks, return_exceptions=True)

            for device, result in zip(devices, results):
                if isinstance(result, Exception):
                    self.logger.error(
                        f"Scrape worker crashed: {result}",
                        extra={"device": device.name}
                    )

        sink.close()
        self.logger.debug(
            f"Scrape cycle completed in {time.monotonic() - start_time:.3f}s",
            extra={"num_devices": len(devices), "num_samples": len(sink)}
        )
        return sink

    def scrape_device(self, device: DeviceConfig, sink: MetricSink) -> ScrapeOutcome:
        """
        Scrape one device and emit its outcome samples. Never raises.

        Args:
            device: Resolved device
            sink: Destination for samples

        Returns:
            ScrapeOutcome: Duration and success of this device's scrape
        """
        begin = time.monotonic()
        error: Optional[Exception] = None
        try:
            self._connect_and_collect(device, sink)
        except ScrapeError as e:
            error = e
        except Exception as e:
            self.logger.error(
                f"Unexpected error scraping {device.name}",
                exc_info=True,
                extra={"device": device.name}
            )
            error = e
        duration = time.monotonic() - begin

        if error is not None:
            self.logger.error(
                f"{device.name} collector failed after {duration:.3f}s: {error}",
                extra={"device": device.name, "error_type": type(error).__name__}
            )
        else:
            self.logger.debug(
                f"{device.name} collector succeeded after {duration:.3f}s",
                extra={"device": device.name}
            )

        outcome = ScrapeOutcome(device.name, duration, error is None)
        self._emit_outcome(sink, outcome)
        return outcome

    def _connect_and_collect(self, device: DeviceConfig, sink: MetricSink) -> None:
        session = self.establisher.open(device)
        try:
            for collector in self.collectors:
                collector.collect(session, device, sink)
        finally:
            session.close()

    @staticmethod
    def _emit_outcome(sink: MetricSink, outcome: ScrapeOutcome) -> None:
        for sample in outcome.samples():
            sink.emit(sample)
