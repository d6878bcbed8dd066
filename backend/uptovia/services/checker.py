"""Checker service - performs HTTP, HTTPS, TCP, DNS and ping checks.

A check never raises: every failure mode (timeout, refused connection,
resolver error, unaccepted status code, bad monitor configuration) becomes a
``down`` outcome with a message.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Set

import dns.asyncresolver
import dns.exception
import httpx

from .pinger import Pinger, PingError, IcmpPinger

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5

# Message for a probe cut off by the overall deadline, per monitor type
DEADLINE_MESSAGES = {
    "http": "Request timeout",
    "https": "Request timeout",
    "tcp": "Connection timeout",
}

DEFAULT_TIMEOUT = 30
DEFAULT_ACCEPTED_CODES = frozenset({200})


@dataclass(frozen=True)
class CheckOutcome:
    """Normalized result of a single probe."""
    status: str  # up, down
    response_time: Optional[int] = None  # ms
    status_code: Optional[int] = None
    error_message: Optional[str] = None

    @classmethod
    def down(cls, message: str, response_time: Optional[int] = None,
             status_code: Optional[int] = None) -> "CheckOutcome":
        return cls(status="down", response_time=response_time,
                   status_code=status_code, error_message=message)


def parse_status_codes(spec: Optional[str]) -> Set[int]:
    """Parse an accepted status code spec such as ``"200-204,301"``.

    Tokens are comma separated; each is a code or an inclusive ``start-end``
    range. An unset or blank spec means ``{200}``.

    Raises:
        ValueError: for empty or non-numeric tokens, reversed ranges and
        codes outside 100-599.
    """
    if spec is None or not spec.strip():
        return set(DEFAULT_ACCEPTED_CODES)

    codes: Set[int] = set()
    for token in spec.split(","):
        token = token.strip()
        if not token:
            raise ValueError(f"Empty status code in '{spec}'")

        if "-" in token:
            start_str, _, end_str = token.partition("-")
            start, end = _parse_code(start_str, token), _parse_code(end_str, token)
            if start > end:
                raise ValueError(f"Reversed status code range '{token}'")
            codes.update(range(start, end + 1))
        else:
            codes.add(_parse_code(token, token))

    return codes


def _parse_code(value: str, token: str) -> int:
    value = value.strip()
    if not value.isdigit():
        raise ValueError(f"Invalid status code '{token}'")
    code = int(value)
    if not 100 <= code <= 599:
        raise ValueError(f"Status code out of range '{token}'")
    return code


def validate_status_code_spec(spec: Optional[str]) -> Optional[str]:
    """Validate a spec at monitor creation time; returns it normalized."""
    if spec is None or not spec.strip():
        return None
    parse_status_codes(spec)
    return ",".join(token.strip().replace(" ", "") for token in spec.split(","))


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class CheckerService:
    """Service for performing one probe against one monitor."""

    def __init__(
        self,
        pinger: Optional[Pinger] = None,
        verify_tls: bool = True,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.pinger = pinger or IcmpPinger()
        self.verify_tls = verify_tls
        # Overridable for tests
        self._http_transport = http_transport

    async def check(self, monitor) -> CheckOutcome:
        """Perform a check based on monitor type.

        The whole probe, redirects and body included, is bounded by the monitor
        timeout. httpx timeouts apply per read, so a server trickling bytes
        would otherwise hold the probe open indefinitely.
        """
        timeout = monitor.timeout or DEFAULT_TIMEOUT

        if monitor.type in ("http", "https"):
            probe = self._check_http(monitor, timeout)
        elif monitor.type == "tcp":
            probe = self._check_tcp(monitor, timeout)
        elif monitor.type == "dns":
            probe = self._check_dns(monitor, timeout)
        elif monitor.type == "ping":
            probe = self._check_ping(monitor, timeout)
        else:
            return CheckOutcome.down(f"Unsupported monitor type: {monitor.type}")

        start = time.perf_counter()
        try:
            return await asyncio.wait_for(probe, timeout=timeout)
        except asyncio.TimeoutError:
            message = DEADLINE_MESSAGES.get(monitor.type, f"Check timed out after {timeout}s")
            return CheckOutcome.down(message, response_time=_elapsed_ms(start))
        except Exception as e:
            logger.error(f"Unexpected error checking monitor {monitor.id}: {e}")
            return CheckOutcome.down(str(e) or type(e).__name__)

    async def _check_http(self, monitor, timeout: float) -> CheckOutcome:
        """Issue the configured request; any status code is captured, not raised."""
        if not monitor.url:
            return CheckOutcome.down("No URL configured")

        try:
            accepted = parse_status_codes(monitor.accepted_status_codes)
        except ValueError as e:
            return CheckOutcome.down(f"Invalid accepted status codes: {e}")

        method = (monitor.method or "GET").upper()
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                max_redirects=MAX_REDIRECTS,
                verify=self.verify_tls,
                transport=self._http_transport,
            ) as client:
                response = await client.request(method, monitor.url)
        except httpx.TimeoutException as e:
            return CheckOutcome.down(str(e) or "Request timeout", response_time=_elapsed_ms(start))
        except httpx.HTTPError as e:
            return CheckOutcome.down(str(e) or type(e).__name__, response_time=_elapsed_ms(start))

        response_time = _elapsed_ms(start)
        if response.status_code in accepted:
            return CheckOutcome(
                status="up",
                response_time=response_time,
                status_code=response.status_code,
            )
        return CheckOutcome.down(
            f"Status code {response.status_code} not in accepted range",
            response_time=response_time,
            status_code=response.status_code,
        )

    async def _check_tcp(self, monitor, timeout: float) -> CheckOutcome:
        """Open a raw connection to hostname:port and close it straight away."""
        if not monitor.hostname or not monitor.port:
            return CheckOutcome.down("Hostname and port are required for TCP checks")

        start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(monitor.hostname, monitor.port),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return CheckOutcome.down("Connection timeout", response_time=_elapsed_ms(start))
        except OSError as e:
            return CheckOutcome.down(str(e) or type(e).__name__, response_time=_elapsed_ms(start))

        response_time = _elapsed_ms(start)
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass  # peer reset on close, connection already proven
        return CheckOutcome(status="up", response_time=response_time)

    async def _resolve(self, hostname: str, record_type: str, timeout: float):
        resolver = dns.asyncresolver.Resolver()
        return await resolver.resolve(hostname, record_type, lifetime=timeout)

    async def _check_dns(self, monitor, timeout: float) -> CheckOutcome:
        """Any successful answer counts as up, regardless of the record set."""
        if not monitor.hostname:
            return CheckOutcome.down("No hostname configured")

        record_type = monitor.dns_record_type or "A"
        start = time.perf_counter()
        try:
            await self._resolve(monitor.hostname, record_type, timeout)
        except dns.exception.DNSException as e:
            return CheckOutcome.down(str(e) or type(e).__name__, response_time=_elapsed_ms(start))

        return CheckOutcome(status="up", response_time=_elapsed_ms(start))

    async def _check_ping(self, monitor, timeout: float) -> CheckOutcome:
        if not monitor.hostname:
            return CheckOutcome.down("No hostname configured")

        start = time.perf_counter()
        try:
            rtt = await self.pinger.ping(monitor.hostname, timeout)
        except PingError as e:
            return CheckOutcome.down(f"Ping failed: {e}", response_time=_elapsed_ms(start))

        response_time = int(round(rtt)) if rtt is not None else _elapsed_ms(start)
        return CheckOutcome(status="up", response_time=response_time)
