"""Pydantic configuration models for the exporter."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional


class DnsServerConfig(BaseModel):
    """Custom resolver used instead of the system one for SRV lookups."""
    model_config = ConfigDict(frozen=True)

    address: str
    port: int = Field(default=53, ge=1, le=65535)


class SrvRecordConfig(BaseModel):
    """Discovery record: the device set is resolved via DNS SRV."""
    model_config = ConfigDict(frozen=True)

    record: str
    dns: Optional[DnsServerConfig] = None


class DeviceConfig(BaseModel):
    """A target device, either static or an SRV discovery template."""
    model_config = ConfigDict(frozen=True)

    name: str
    address: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)  # Default depends on TLS
    user: str
    password: str
    srv: Optional[SrvRecordConfig] = None

    @model_validator(mode="after")
    def require_address_or_srv(self) -> "DeviceConfig":
        """A device needs somewhere to connect to."""
        if not self.address and self.srv is None:
            raise ValueError(f"device {self.name!r} needs an address or an srv record")
        return self


class FeaturesConfig(BaseModel):
    """Optional collector toggles; interface and resource collectors always run."""
    model_config = ConfigDict(populate_by_name=True)

    bgp: bool = False
    dhcp: bool = False
    dhcp_leases: bool = Field(
        default=False,
        validation_alias=AliasChoices("dhcp_leases", "dhcpl", "dhcp-leases")
    )
    firmware: bool = False
    wlan_interfaces: bool = Field(
        default=False,
        validation_alias=AliasChoices("wlan_interfaces", "wlanif", "wlan-interfaces")
    )
    wlan_stations: bool = Field(
        default=False,
        validation_alias=AliasChoices("wlan_stations", "wlansta", "wlan-stations")
    )
    routes: bool = False


class ExporterConfig(BaseModel):
    """Root configuration model."""
    devices: List[DeviceConfig] = Field(default_factory=list)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    timeout: float = Field(default=5.0, gt=0)
    tls: bool = False
    insecure: bool = False
