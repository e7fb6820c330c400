"""Expand configured devices into the concrete device set for one scrape."""

import asyncio
import logging
import socket
import time
from typing import Callable, List, Optional

import dns.exception
import dns.inet
import dns.resolver

from ..config.models import DeviceConfig, DnsServerConfig, SrvRecordConfig
from ..errors import DiscoveryError, ScrapeError
from .session import DEFAULT_TIMEOUT, SessionEstablisher

ErrorCallback = Callable[[DeviceConfig, DiscoveryError, float], None]


class DeviceResolver:
    """Pass static devices through; resolve SRV-tagged entries into devices."""

    def __init__(
        self,
        establisher: SessionEstablisher,
        timeout: float = DEFAULT_TIMEOUT,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize device resolver.

        Args:
            establisher: Used for identity queries against discovered devices
            timeout: DNS query lifetime in seconds
            logger: Logger instance
        """
        self.establisher = establisher
        self.timeout = timeout
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    async def resolve(
        self,
        devices: List[DeviceConfig],
        on_error: Optional[ErrorCallback] = None
    ) -> List[DeviceConfig]:
        """
        Build the flattened device list for one scrape cycle.

        A failed SRV query drops only the entry that owns it. The failure is
        logged and passed to ``on_error`` together with the time spent.

        Args:
            devices: Configured devices
            on_error: Called with (template, error, elapsed seconds) per failed entry

        Returns:
            List[DeviceConfig]: Devices to scrape this cycle
        """
        resolved: List[DeviceConfig] = []
        for device in devices:
            if device.srv is None:
                resolved.append(device)
                continue

            begin = time.monotonic()
            try:
                resolved.extend(await self.expand(device))
            except DiscoveryError as e:
                elapsed = time.monotonic() - begin
                self.logger.error(
                    f"SRV discovery failed: {e}",
                    extra={"device": device.name, "record": device.srv.record}
                )
                if on_error is not None:
                    on_error(device, e, elapsed)

        return resolved

    async def expand(self, template: DeviceConfig) -> List[DeviceConfig]:
        """
        Resolve one SRV-tagged entry.

        Args:
            template: Device whose ``srv`` record names the service

        Returns:
            List[DeviceConfig]: One device per SRV answer, renamed after its identity

        Raises:
            DiscoveryError: If the SRV query fails
        """
        self.logger.info(
            "SRV configuration detected",
            extra={"device": template.name, "record": template.srv.record}
        )
        loop = asyncio.get_running_loop()
        targets = await loop.run_in_executor(None, self.query_srv, template.srv)

        devices = [
            template.model_copy(update={"name": target, "address": target, "srv": None})
            for target in targets
        ]
        lookups = [loop.run_in_executor(None, self.lookup_identity, d) for d in devices]
        return list(await asyncio.gather(*lookups))

    def query_srv(self, srv: SrvRecordConfig) -> List[str]:
        """
        Run the SRV query and return answer targets without the root dot.

        Raises:
            DiscoveryError: If the resolver cannot be configured or the query fails
        """
        try:
            if srv.dns is not None:
                resolver = dns.resolver.Resolver(configure=False)
                resolver.nameservers = [self.nameserver_address(srv.dns)]
                resolver.port = srv.dns.port
                self.logger.info(
                    f"Custom DNS config detected: {srv.dns.address}:{srv.dns.port}"
                )
            else:
                resolver = dns.resolver.Resolver()
            resolver.lifetime = self.timeout

            answer = resolver.resolve(srv.record, "SRV")
        except (dns.exception.DNSException, OSError, ValueError) as e:
            raise DiscoveryError(f"SRV lookup for {srv.record} failed: {e}") from e

        return [rdata.target.to_text().rstrip(".") for rdata in answer]

    @staticmethod
    def nameserver_address(server: DnsServerConfig) -> str:
        """IP address of a custom DNS server, looking up host names first."""
        if dns.inet.is_address(server.address):
            return server.address
        infos = socket.getaddrinfo(server.address, server.port, proto=socket.IPPROTO_UDP)
        if not infos:
            raise OSError(f"no address found for DNS server {server.address}")
        return infos[0][4][0]

    def lookup_identity(self, device: DeviceConfig) -> DeviceConfig:
        """
        Rename a discovered device after its self-reported identity.

        A device whose identity cannot be fetched keeps its SRV-derived name.
        """
        try:
            with self.establisher.open(device) as session:
                records = session.run("/system/identity/print")
        except ScrapeError as e:
            self.logger.warning(
                f"Identity lookup failed, keeping SRV name: {e}",
                extra={"device": device.name}
            )
            return device
        except Exception as e:
            self.logger.error(
                f"Unexpected error during identity lookup, keeping SRV name: {e}",
                exc_info=True,
                extra={"device": device.name}
            )
            return device

        names = [str(r["name"]) for r in records if "name" in r]
        if not names:
            return device
        return device.model_copy(update={"name": names[-1]})
