"""Base collector abstract class for all device collectors."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Sequence
import logging
import re

from ..config.models import DeviceConfig
from ..errors import CollectError
from ..services.session import DeviceSession
from ..utils.metrics import CollectorDescriptor, Sample
from ..utils.sink import MetricSink

Record = Dict[str, Any]

DURATION_PATTERN = re.compile(
    r'^(?:(\d+)w)?(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?(?:(\d+)ms)?$'
)
DURATION_UNITS = (604800, 86400, 3600, 60, 1, 0.001)


class BaseCollector(ABC):
    """
    Abstract base class for all collectors.

    A collector declares its descriptors once at startup and, per device and
    scrape, queries the device and emits samples. Collectors hold no
    per-device state, so one instance serves every concurrent scrape.
    """

    name: str = ""

    def __init__(self, logger: logging.Logger):
        """
        Initialize base collector.

        Args:
            logger: Logger instance
        """
        self.logger = logger.getChild(self.__class__.__name__)

    @abstractmethod
    def describe(self) -> List[CollectorDescriptor]:
        """Descriptors of every metric this collector can emit."""

    @abstractmethod
    def samples(self, session: DeviceSession, device: DeviceConfig) -> Iterable[Sample]:
        """
        Query the device and map its records into samples.

        Raises:
            CollectError: If a query fails
        """

    def collect(self, session: DeviceSession, device: DeviceConfig, sink: MetricSink) -> None:
        """
        Collect this collector's samples for one device into the sink.

        Samples are built in full before any is emitted, so a collector that
        fails part way through leaves nothing of its own in the sink.

        Raises:
            CollectError: If a query fails or a record cannot be parsed
        """
        try:
            samples = list(self.samples(session, device))
        except CollectError:
            raise
        except (KeyError, ValueError, TypeError) as e:
            self.logger.error(
                f"Unparseable {self.name} data: {e}",
                exc_info=True,
                extra={"device": device.name}
            )
            raise CollectError(f"{self.name}: unparseable reply: {e}", device=device.name) from e

        for sample in samples:
            sink.emit(sample)
        self.logger.debug(
            f"Emitted {len(samples)} {self.name} sample(s)",
            extra={"device": device.name}
        )

    def fetch(
        self,
        session: DeviceSession,
        command: str,
        props: Sequence[str],
        *words: str
    ) -> List[Record]:
        """Run a print-style command restricted to ``props``."""
        try:
            return session.run(command, "=.proplist=" + ",".join(props), *words)
        except CollectError as e:
            self.logger.error(
                f"Error fetching {self.name} metrics: {e}",
                extra={"device": session.device.name}
            )
            raise

    @staticmethod
    def device_labels(device: DeviceConfig) -> List[str]:
        """Leading label values shared by every device sample."""
        return [device.name, device.address or ""]


def label_value(value: Any) -> str:
    """Render a record value as a label value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def parse_number(value: Any) -> float:
    """
    Convert a record value into a float.

    Raises:
        ValueError: If the value is missing or not numeric
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if value is None or value == "":
        raise ValueError("empty value")
    return float(value)


def parse_duration(value: Any) -> float:
    """
    Convert a RouterOS duration such as ``1w2d3h4m5s`` into seconds.

    Raises:
        ValueError: If the value is not a duration
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = str(value)
    match = DURATION_PATTERN.match(text)
    if not text or match is None:
        raise ValueError(f"invalid duration: {value!r}")
    return float(sum(int(g) * unit for g, unit in zip(match.groups(), DURATION_UNITS) if g))
