from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from ipaddress import IPv4Address
from typing import Optional

from .hardware_address import HardwareAddress


class GatewayType(str, Enum):
    """Gateway families told apart by their HTTP interface."""
    G1 = "G1"
    MG3 = "MG3"


@dataclass(frozen=True)
class GatewayDetection:
    """A gateway found at an address."""
    address: IPv4Address
    gateway: GatewayType
    hardware: HardwareAddress

    def to_dict(self) -> dict:
        return {
            "ip": str(self.address),
            "gateway": self.gateway.value,
            "mac": str(self.hardware),
        }


@dataclass
class ScanReport:
    """Outcome of one scan over an address range."""
    range: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    addresses_scanned: int = 0
    gateways: list[GatewayDetection] = field(default_factory=list)

    @property
    def duration(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()
