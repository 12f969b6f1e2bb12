from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.exceptions import ScanConfigError
from ..scanner.gateway_scanner import GatewayScanner
from .schemas import ScanReportResponse, ScanRequest

router = APIRouter()


def get_scanner(request: Request) -> GatewayScanner:
    """Dependency for getting the application's scanner."""
    return request.app.state.scanner


@router.post("/scan", response_model=ScanReportResponse)
async def trigger_scan(
    scan_request: ScanRequest,
    scanner: GatewayScanner = Depends(get_scanner)
):
    """Scan a range for gateways and return the report."""
    if scanner.is_running:
        raise HTTPException(status_code=409, detail="A scan is already running")

    try:
        await scanner.scan_range(scan_request.range, scan_request.concurrency)
    except ScanConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ScanReportResponse.from_report(scanner.last_report)


@router.get("/scan/last", response_model=ScanReportResponse)
async def get_last_scan(scanner: GatewayScanner = Depends(get_scanner)):
    """Get the report of the most recent completed scan."""
    if scanner.last_report is None:
        raise HTTPException(status_code=404, detail="No scan has completed yet")
    return ScanReportResponse.from_report(scanner.last_report)
