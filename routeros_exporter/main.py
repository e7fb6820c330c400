"""Main application entry point for the RouterOS Prometheus exporter."""

import argparse
import logging
import signal
import sys
from typing import Callable, Iterable, List, Optional, Tuple
from wsgiref.simple_server import make_server

from prometheus_client import CollectorRegistry, generate_latest, make_wsgi_app
from prometheus_client.exposition import ThreadingWSGIServer

from .config.loader import ConfigLoader
from .config.models import ExporterConfig, FeaturesConfig
from .config.settings import Settings
from .exporter import RouterOSExporter
from .orchestrator import ScrapeOrchestrator
from .utils.logger import setup_logger

APP_VERSION = "0.1.0"
CONFIG_ERROR_EXIT = 3

LANDING_PAGE = """<html>
<head><title>Mikrotik Exporter</title></head>
<body>
<h1>Mikrotik Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>"""

FEATURE_FLAGS = {
    "with_bgp": "bgp",
    "with_dhcp": "dhcp",
    "with_dhcpl": "dhcp_leases",
    "with_firmware": "firmware",
    "with_wlanif": "wlan_interfaces",
    "with_wlansta": "wlan_stations",
    "with_routes": "routes",
}


def parse_listen_address(listen: str) -> Tuple[str, int]:
    """Split ``host:port`` (host optional, as in ``:9436``)."""
    host, _, port = listen.rpartition(":")
    if not port.isdigit():
        raise ValueError(f"Invalid listen address: {listen}")
    return host or "0.0.0.0", int(port)


def create_app(registry: CollectorRegistry, metrics_path: str = "/metrics") -> Callable:
    """
    Build the WSGI application.

    Serves the registry on ``metrics_path``, ``ok`` on ``/healthz`` and a
    landing page on ``/``.
    """
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response) -> Iterable[bytes]:
        path = environ.get("PATH_INFO", "/")
        if path == metrics_path:
            return metrics_app(environ, start_response)
        if path == "/healthz":
            start_response("200 OK", [("Content-Type", "text/plain")])
            return [b"ok"]
        if path == "/":
            start_response("200 OK", [("Content-Type", "text/html")])
            return [LANDING_PAGE.format(path=metrics_path).encode("utf-8")]
        start_response("404 Not Found", [("Content-Type", "text/plain")])
        return [b"not found"]

    return app


class ExporterApp:
    """
    Exporter application.

    Loads configuration, wires the scrape orchestrator into a dedicated
    registry and serves it over HTTP (or runs a single cycle).
    """

    def __init__(self, args: argparse.Namespace, logger: Optional[logging.Logger] = None):
        """
        Initialize exporter application.

        Args:
            args: Parsed command line arguments
            logger: Optional logger instance

        Raises:
            SystemExit: If configuration is invalid
        """
        self.args = args
        self.logger = logger or setup_logger("routeros_exporter", args.log_level, args.log_format)

        signal.signal(signal.SIGTERM, self._signal_handler)

        self.config = self._load_config()
        self.orchestrator = ScrapeOrchestrator.from_config(self.config, self.logger)
        self.registry = CollectorRegistry()
        self.registry.register(RouterOSExporter(self.orchestrator))

    def _load_config(self) -> ExporterConfig:
        """
        Load configuration from file or single-device flags, then apply flag overrides.

        Raises:
            SystemExit: If configuration cannot be loaded
        """
        try:
            if self.args.config_file:
                self.logger.info(f"Loading configuration from {self.args.config_file}")
                config = ConfigLoader.load_from_file(self.args.config_file)
            else:
                config = ConfigLoader.from_flags(
                    self.args.device,
                    self.args.address,
                    self.args.user,
                    self.args.password,
                    self.args.deviceport
                )
        except Exception as e:
            self.logger.error(f"Could not load config: {e}")
            sys.exit(CONFIG_ERROR_EXIT)

        return apply_flag_overrides(config, self.args)

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, shutting down")
        sys.exit(0)

    def run_once(self) -> str:
        """Run a single scrape cycle and return the exposition text."""
        return generate_latest(self.registry).decode("utf-8")

    def serve(self) -> None:
        """Serve metrics until interrupted."""
        host, port = parse_listen_address(self.args.port)
        app = create_app(self.registry, self.args.path)
        httpd = make_server(host, port, app, ThreadingWSGIServer)
        self.logger.info(f"Listening on {host}:{port}")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            httpd.server_close()


def apply_flag_overrides(config: ExporterConfig, args: argparse.Namespace) -> ExporterConfig:
    """Enable features and transport options requested on the command line."""
    features = config.features.model_dump()
    for flag, feature in FEATURE_FLAGS.items():
        if getattr(args, flag, False):
            features[feature] = True

    update = {"features": FeaturesConfig(**features)}
    if getattr(args, "tls", False):
        update["tls"] = True
    if getattr(args, "insecure", False):
        update["insecure"] = True
    if getattr(args, "timeout", None):
        update["timeout"] = args.timeout
    return config.model_copy(update=update)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Prometheus exporter for MikroTik RouterOS devices',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monitor a single device
  routeros-exporter --device r1 --address 192.0.2.1 --user prometheus --password secret

  # Use a config file and enable BGP metrics
  routeros-exporter --config-file config/config.yaml --with-bgp

  # Scrape once and print the metrics
  routeros-exporter --config-file config/config.yaml --run-once
        """
    )

    parser.add_argument('--config-file', default=Settings.config_file(), help='config file to load')
    parser.add_argument('--device', default='', help='single device to monitor')
    parser.add_argument('--address', default='', help='address of the device to monitor')
    parser.add_argument('--user', default='', help='user for authentication with single device')
    parser.add_argument('--password', default='', help='password for authentication for single device')
    parser.add_argument('--deviceport', type=int, default=None,
                        help='port for single device (default: 8728, or 8729 with --tls)')
    parser.add_argument('--port', default=Settings.listen_address(), help='address to listen on (default: :9436)')
    parser.add_argument('--path', default='/metrics', help='path to answer requests on')
    parser.add_argument('--timeout', type=float, default=None, help='dial timeout in seconds (default: 5)')
    parser.add_argument('--tls', action='store_true', help='use TLS (API-SSL) to connect to devices')
    parser.add_argument('--insecure', action='store_true',
                        help='skips verification of server certificate when using TLS (not recommended)')
    parser.add_argument('--log-level', default=Settings.log_level(),
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='log level')
    parser.add_argument('--log-format', default=Settings.log_format(),
                        choices=['json', 'text'], help='log format')
    parser.add_argument('--with-bgp', action='store_true', help='retrieves BGP routing information')
    parser.add_argument('--with-dhcp', action='store_true', help='retrieves DHCP server metrics')
    parser.add_argument('--with-dhcpl', action='store_true', help='retrieves DHCP server lease metrics')
    parser.add_argument('--with-firmware', action='store_true', help='retrieves firmware metrics')
    parser.add_argument('--with-wlanif', action='store_true', help='retrieves wlan interface metrics')
    parser.add_argument('--with-wlansta', action='store_true', help='retrieves wlan station metrics')
    parser.add_argument('--with-routes', action='store_true', help='retrieves IP route metrics')
    parser.add_argument('--run-once', action='store_true', help='scrape once, print metrics and exit')
    parser.add_argument('--version', action='store_true', help='print the version and exit')
    return parser


def main(argv: Optional[List[str]] = None):
    """
    CLI entry point.

    Parses command-line arguments and starts the exporter.
    """
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"Version: {APP_VERSION}")
        sys.exit(0)

    app = ExporterApp(args)

    if args.run_once:
        sys.stdout.write(app.run_once())
        sys.exit(0)

    app.serve()


if __name__ == '__main__':
    main()
