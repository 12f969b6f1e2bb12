import asyncio
import logging
from datetime import datetime, timezone
from ipaddress import IPv4Address
from typing import Iterable, Optional

from ..core.config import Settings, settings
from .address_range import AddressRange
from .models import GatewayDetection, ScanReport
from .probes import GatewayProber

logger = logging.getLogger(__name__)


class GatewayScanner:
    """Scans address ranges for gateways, a bounded number of addresses at a time."""

    def __init__(self, concurrency: int = None, prober: Optional[GatewayProber] = None,
                 log: Optional[logging.Logger] = None, config: Optional[Settings] = None):
        self.config = config or settings
        self.concurrency = self.config.SCAN_CONCURRENCY if concurrency is None else concurrency
        if self.concurrency < 1:
            raise ValueError(f"Concurrency must be at least 1, got {self.concurrency}")
        self.logger = log or logger
        self.prober = prober or GatewayProber(
            port=self.config.PROBE_PORT,
            connect_timeout=self.config.CONNECT_TIMEOUT,
            probe_timeout=self.config.PROBE_TIMEOUT,
            log=self.logger
        )
        self.last_report: Optional[ScanReport] = None
        self._running = False
        self._callbacks = []

    @property
    def is_running(self) -> bool:
        return self._running

    def register_callback(self, callback):
        """Register a callback for scan updates."""
        self._callbacks.append(callback)

    def unregister_callback(self, callback):
        """Unregister a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def _notify_callbacks(self, event_type: str, data: dict):
        """Notify all registered callbacks."""
        for callback in self._callbacks:
            try:
                await callback(event_type, data)
            except Exception as e:
                self.logger.warning(f"Callback error: {e}")

    async def probe_address(self, address: IPv4Address) -> Optional[GatewayDetection]:
        """Run the reachability check and protocol race for one address."""
        return await self.prober.probe(address)

    async def scan(self, addresses: Iterable[IPv4Address],
                   concurrency: Optional[int] = None) -> list[GatewayDetection]:
        """
        Probe every address, at most `concurrency` at a time.

        Addresses are pulled from the iterable only when a slot frees up, so
        large ranges are never held in memory.

        Args:
            addresses: Addresses to probe, typically an AddressRange
            concurrency: Override the scanner's limit for this scan

        Returns:
            Detections in completion order
        """
        limit = self.concurrency if concurrency is None else concurrency
        if limit < 1:
            raise ValueError(f"Concurrency must be at least 1, got {limit}")

        label = str(addresses) if isinstance(addresses, AddressRange) else "(address list)"
        report = ScanReport(range=label, started_at=datetime.now(timezone.utc))
        self._running = True
        self.logger.info(f"Scanning range {label}...")
        await self._notify_callbacks("scan_started", {"range": report.range})

        semaphore = asyncio.Semaphore(limit)
        in_flight = set()

        async def run(address: IPv4Address):
            try:
                detection = await self.probe_address(address)
            except Exception as e:
                self.logger.error(f"Unexpected error probing {address}: {e}", exc_info=True)
                detection = None
            finally:
                semaphore.release()

            if detection is not None:
                report.gateways.append(detection)
                self.logger.debug(f"Found {detection.gateway.value} gateway at {address} ({detection.hardware})")
                await self._notify_callbacks("gateway_detected", detection.to_dict())

        try:
            for address in addresses:
                await semaphore.acquire()
                report.addresses_scanned += 1
                task = asyncio.create_task(run(address))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)

            await asyncio.gather(*in_flight)
        finally:
            pending = list(in_flight)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            self._running = False

        report.completed_at = datetime.now(timezone.utc)
        self.last_report = report
        self.logger.info(f"Scan ended finding {len(report.gateways)} gateways")
        await self._notify_callbacks("scan_completed", {
            "range": report.range,
            "addresses_scanned": report.addresses_scanned,
            "gateways_found": len(report.gateways),
            "duration": report.duration
        })
        return list(report.gateways)

    async def scan_range(self, range_text: Optional[str] = None,
                         concurrency: Optional[int] = None) -> list[GatewayDetection]:
        """
        Scan a range given as text, falling back to the configured or local range.

        Raises:
            RangeParseError: range_text is malformed
            LocalAddressError: no range given and no local address found
        """
        return await self.scan(resolve_range(range_text, self.config), concurrency)


def resolve_range(range_text: Optional[str] = None, config: Optional[Settings] = None) -> AddressRange:
    """Pick the range to scan: explicit text, DEFAULT_RANGE, then the local /24."""
    config = config or settings
    if range_text:
        return AddressRange.parse(range_text)
    if config.DEFAULT_RANGE:
        logger.info(f"Using configured range: {config.DEFAULT_RANGE}")
        return AddressRange.parse(config.DEFAULT_RANGE)
    address_range = AddressRange.default()
    logger.info(f"Using range derived from local address: {address_range}")
    return address_range
