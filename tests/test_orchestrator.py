"""Tests for scrape orchestration."""

import socket
from unittest.mock import MagicMock, patch

import dns.exception
import pytest

from routeros_exporter.collectors.base import BaseCollector
from routeros_exporter.collectors.interface_collector import InterfaceCollector
from routeros_exporter.collectors.resource_collector import ResourceCollector
from routeros_exporter.config.models import (
    DeviceConfig,
    DnsServerConfig,
    ExporterConfig,
    FeaturesConfig,
    SrvRecordConfig,
)
from routeros_exporter.errors import CollectError
from routeros_exporter.orchestrator import ScrapeOrchestrator
from routeros_exporter.utils.metrics import SCRAPE_DURATION, SCRAPE_SUCCESS, Sample, description


class StepCollector(BaseCollector):
    """Emits one sample, or fails, and records that it ran."""

    def __init__(self, logger, name, fail_with=None):
        super().__init__(logger)
        self.name = name
        self.fail_with = fail_with
        self.invoked = []
        self.description = description("step", name, "pipeline step", ["name", "address"])

    def describe(self):
        return [self.description]

    def samples(self, session, device):
        self.invoked.append(device.name)
        if self.fail_with is not None:
            raise self.fail_with
        yield Sample(self.description, 1.0, tuple(self.device_labels(device)))


def outcomes(sink):
    success = {s.labels[0]: s.value for s in sink if s.descriptor is SCRAPE_SUCCESS}
    duration = {s.labels[0]: s.value for s in sink if s.descriptor is SCRAPE_DURATION}
    return success, duration


@pytest.fixture
def device_b():
    return DeviceConfig(name="r2", address="192.0.2.2", user="prometheus", password="secret")


@pytest.mark.asyncio
async def test_failed_device_is_isolated(device, device_b, logger, make_establisher, routeros_responses):
    establisher = make_establisher(routeros_responses, unreachable={"r2"})
    orchestrator = ScrapeOrchestrator(
        [device, device_b],
        [InterfaceCollector(logger), ResourceCollector(logger)],
        establisher,
        logger=logger
    )

    sink = await orchestrator.scrape()

    success, duration = outcomes(sink)
    assert success == {"r1": 1.0, "r2": 0.0}
    assert set(duration) == {"r1", "r2"}
    assert all(value >= 0 for value in duration.values())
    interface_devices = {s.labels[0] for s in sink if s.descriptor.name.startswith("mikrotik_interface_")}
    assert interface_devices == {"r1"}
    assert sink.closed


@pytest.mark.asyncio
async def test_unreachable_device_every_cycle(device, logger, make_establisher):
    orchestrator = ScrapeOrchestrator(
        [device], [InterfaceCollector(logger)], make_establisher(unreachable={"r1"}), logger=logger
    )

    for _ in range(2):
        sink = await orchestrator.scrape()
        success, _ = outcomes(sink)
        assert success == {"r1": 0.0}
        assert len(sink) == 2


@pytest.mark.asyncio
async def test_pipeline_short_circuits_on_failure(device, logger, make_establisher):
    first = StepCollector(logger, "first")
    second = StepCollector(logger, "second", fail_with=CollectError("trap"))
    third = StepCollector(logger, "third")
    establisher = make_establisher()
    orchestrator = ScrapeOrchestrator([device], [first, second, third], establisher, logger=logger)

    sink = await orchestrator.scrape()

    names = [s.descriptor.name for s in sink]
    assert "mikrotik_step_first" in names
    assert "mikrotik_step_second" not in names
    assert third.invoked == []
    assert outcomes(sink)[0] == {"r1": 0.0}
    assert establisher.sessions[0].closed


@pytest.mark.asyncio
async def test_unexpected_error_is_contained(device, logger, make_establisher):
    broken = StepCollector(logger, "broken", fail_with=RuntimeError("bug"))
    establisher = make_establisher()
    orchestrator = ScrapeOrchestrator([device], [broken], establisher, logger=logger)

    sink = await orchestrator.scrape()

    assert outcomes(sink)[0] == {"r1": 0.0}
    assert establisher.sessions[0].closed


@pytest.mark.asyncio
async def test_samples_follow_plugin_order_per_device(device, device_b, logger, make_establisher):
    steps = [StepCollector(logger, f"step{i}") for i in range(3)]
    orchestrator = ScrapeOrchestrator([device, device_b], steps, make_establisher(), logger=logger)

    sink = await orchestrator.scrape()

    for name in ("r1", "r2"):
        per_device = [s.descriptor.name for s in sink if s.labels[0] == name]
        assert per_device == [
            "mikrotik_step_step0", "mikrotik_step_step1", "mikrotik_step_step2",
            SCRAPE_DURATION.name, SCRAPE_SUCCESS.name,
        ]


@pytest.mark.asyncio
async def test_one_session_per_device_closed(device, device_b, logger, make_establisher):
    establisher = make_establisher()
    orchestrator = ScrapeOrchestrator(
        [device, device_b], [StepCollector(logger, "only")], establisher, max_workers=1, logger=logger
    )

    await orchestrator.scrape()

    assert sorted(s.device.name for s in establisher.sessions) == ["r1", "r2"]
    assert all(s.closed for s in establisher.sessions)


@pytest.mark.asyncio
async def test_discovery_failure_reported_as_outcome(device, logger, make_establisher):
    template = DeviceConfig(
        name="branch", user="u", password="p", srv=SrvRecordConfig(record="_api._tcp.example.com")
    )
    orchestrator = ScrapeOrchestrator(
        [template, device], [StepCollector(logger, "only")], make_establisher(), logger=logger
    )

    with patch("dns.resolver.Resolver") as resolver_cls:
        resolver_cls.return_value.resolve.side_effect = dns.exception.DNSException("timeout")
        sink = await orchestrator.scrape()

    assert outcomes(sink)[0] == {"branch": 0.0, "r1": 1.0}


def srv_answer(*targets):
    answers = []
    for target in targets:
        rdata = MagicMock()
        rdata.target.to_text.return_value = target
        answers.append(rdata)
    return answers


@pytest.fixture
def srv_template():
    return DeviceConfig(
        name="branch", user="u", password="p", srv=SrvRecordConfig(record="_api._tcp.example.com")
    )


@pytest.mark.asyncio
async def test_discovered_device_scraped_under_identity(srv_template, device, logger, make_establisher):
    establisher = make_establisher(per_device={
        "r9.example.com": {"/system/identity/print": [{"name": "core-1"}]},
    })
    step = StepCollector(logger, "only")
    orchestrator = ScrapeOrchestrator([srv_template, device], [step], establisher, logger=logger)

    with patch("dns.resolver.Resolver") as resolver_cls:
        resolver_cls.return_value.resolve.return_value = srv_answer("r9.example.com.")
        sink = await orchestrator.scrape()

    discovered = [s for s in sink if s.labels[0] == "core-1"]
    assert [s.descriptor.name for s in discovered] == [
        "mikrotik_step_only", SCRAPE_DURATION.name, SCRAPE_SUCCESS.name,
    ]
    assert discovered[0].labels == ("core-1", "r9.example.com")
    assert outcomes(sink)[0] == {"core-1": 1.0, "r1": 1.0}
    assert not any(s.labels[0] in ("branch", "r9.example.com") for s in sink)


@pytest.mark.asyncio
async def test_unresolvable_dns_server_keeps_static_devices(device, logger, make_establisher):
    template = DeviceConfig(
        name="branch", user="u", password="p",
        srv=SrvRecordConfig(record="_api._tcp.example.com", dns=DnsServerConfig(address="ns1.invalid"))
    )
    orchestrator = ScrapeOrchestrator(
        [template, device], [StepCollector(logger, "only")], make_establisher(), logger=logger
    )

    with patch(
        "routeros_exporter.services.resolver.socket.getaddrinfo",
        side_effect=socket.gaierror("Name or service not known")
    ):
        sink = await orchestrator.scrape()

    assert outcomes(sink)[0] == {"branch": 0.0, "r1": 1.0}


@pytest.mark.asyncio
async def test_unexpected_identity_error_keeps_cycle(srv_template, device, logger, make_establisher):
    establisher = make_establisher(failures={
        "r9.example.com": {"/system/identity/print": UnicodeEncodeError("ascii", "p\xe4ss", 1, 2, "out of range")},
    })
    orchestrator = ScrapeOrchestrator(
        [srv_template, device], [StepCollector(logger, "only")], establisher, logger=logger
    )

    with patch("dns.resolver.Resolver") as resolver_cls:
        resolver_cls.return_value.resolve.return_value = srv_answer("r9.example.com.")
        sink = await orchestrator.scrape()

    # Identity failed, so the SRV target name is kept
    assert outcomes(sink)[0] == {"r9.example.com": 1.0, "r1": 1.0}


@pytest.mark.asyncio
async def test_no_devices(logger, make_establisher):
    orchestrator = ScrapeOrchestrator([], [StepCollector(logger, "only")], make_establisher(), logger=logger)

    sink = await orchestrator.scrape()

    assert len(sink) == 0
    assert sink.closed


def test_descriptors_include_scrape_metrics(logger, make_establisher):
    orchestrator = ScrapeOrchestrator(
        [], [StepCollector(logger, "a"), StepCollector(logger, "b")], make_establisher(), logger=logger
    )

    names = [d.name for d in orchestrator.descriptors()]

    assert names == [
        "mikrotik_scrape_collector_duration_seconds",
        "mikrotik_scrape_collector_success",
        "mikrotik_step_a",
        "mikrotik_step_b",
    ]


def test_from_config(device, logger):
    config = ExporterConfig(
        devices=[device], features=FeaturesConfig(bgp=True), timeout=3.0, tls=True, insecure=True
    )

    orchestrator = ScrapeOrchestrator.from_config(config, logger)

    assert [c.name for c in orchestrator.collectors] == ["interface", "resource", "bgp"]
    assert orchestrator.establisher.timeout == 3.0
    assert orchestrator.establisher.use_tls
    assert orchestrator.establisher.insecure_tls
    assert orchestrator.resolver.timeout == 3.0
