from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from ..scanner.models import GatewayDetection, GatewayType, ScanReport


class ScanRequest(BaseModel):
    """Scan trigger request schema."""
    range: Optional[str] = None
    concurrency: Optional[int] = Field(None, ge=1)


class GatewayResponse(BaseModel):
    """Detected gateway schema."""
    ip: str
    gateway: GatewayType
    mac: str

    @classmethod
    def from_detection(cls, detection: GatewayDetection) -> "GatewayResponse":
        return cls(**detection.to_dict())


class ScanReportResponse(BaseModel):
    """Scan report response schema."""
    range: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration: Optional[float] = None
    addresses_scanned: int
    gateways_found: int
    gateways: list[GatewayResponse]

    @classmethod
    def from_report(cls, report: ScanReport) -> "ScanReportResponse":
        return cls(
            range=report.range,
            started_at=report.started_at,
            completed_at=report.completed_at,
            duration=report.duration,
            addresses_scanned=report.addresses_scanned,
            gateways_found=len(report.gateways),
            gateways=[GatewayResponse.from_detection(d) for d in report.gateways]
        )


class ScanStartedEvent(BaseModel):
    """Payload of the scan_started websocket event."""
    range: str


class ScanCompletedEvent(BaseModel):
    """Payload of the scan_completed websocket event."""
    range: str
    addresses_scanned: int
    gateways_found: int
    duration: Optional[float] = None
