"""Tests for the CLI and HTTP wiring."""

import pytest
from prometheus_client import CollectorRegistry, Gauge

from routeros_exporter.config.models import ExporterConfig, FeaturesConfig
from routeros_exporter.main import apply_flag_overrides, build_parser, create_app, parse_listen_address


def call_app(app, path):
    status = {}

    def start_response(code, headers):
        status["code"] = code
        status["headers"] = dict(headers)

    environ = {"PATH_INFO": path, "REQUEST_METHOD": "GET", "QUERY_STRING": ""}
    body = b"".join(app(environ, start_response))
    return status["code"], body


@pytest.fixture
def app():
    registry = CollectorRegistry()
    Gauge("sample_value", "test gauge", registry=registry).set(1)
    return create_app(registry, "/metrics")


def test_metrics_path(app):
    code, body = call_app(app, "/metrics")

    assert code.startswith("200")
    assert b"sample_value 1.0" in body


def test_healthz(app):
    assert call_app(app, "/healthz") == ("200 OK", b"ok")


def test_landing_page_links_metrics(app):
    code, body = call_app(app, "/")

    assert code == "200 OK"
    assert b'href="/metrics"' in body


def test_unknown_path(app):
    code, _ = call_app(app, "/nope")

    assert code.startswith("404")


@pytest.mark.parametrize("listen,expected", [
    (":9436", ("0.0.0.0", 9436)),
    ("127.0.0.1:8080", ("127.0.0.1", 8080)),
])
def test_parse_listen_address(listen, expected):
    assert parse_listen_address(listen) == expected


def test_parse_listen_address_invalid():
    with pytest.raises(ValueError):
        parse_listen_address("localhost")


def test_flag_overrides_enable_features(device):
    args = build_parser().parse_args(["--with-bgp", "--with-wlansta", "--tls", "--timeout", "2"])
    config = ExporterConfig(devices=[device], features=FeaturesConfig(dhcp=True))

    updated = apply_flag_overrides(config, args)

    assert updated.features.bgp and updated.features.wlan_stations and updated.features.dhcp
    assert not updated.features.firmware
    assert updated.tls is True
    assert updated.timeout == 2.0
    assert config.features.bgp is False


def test_parser_defaults():
    args = build_parser().parse_args([])

    assert args.path == "/metrics"
    assert args.deviceport is None
    assert not args.run_once
