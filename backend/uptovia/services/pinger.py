"""Reachability backends for ping monitors.

``IcmpPinger`` sends a single echo request through icmplib using unprivileged
datagram sockets. ``SystemPinger`` shells out to the OS ``ping`` binary and
is only meant as a fallback where ICMP sockets are not permitted.
"""
import asyncio
import logging
import re
from typing import Optional, Protocol

from icmplib import ICMPLibError, async_ping

logger = logging.getLogger(__name__)

# Example line: "64 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=14.2 ms"
PING_TIME_PATTERN = re.compile(r'time[=<](\d+\.?\d*)\s*ms')


class PingError(Exception):
    """The target did not answer the reachability probe."""


class Pinger(Protocol):
    async def ping(self, host: str, timeout: float) -> Optional[float]:
        """Probe ``host`` once and return the round-trip time in ms if known.

        Raises PingError when no reply arrives within ``timeout`` seconds.
        """
        ...


class IcmpPinger:
    """Native ICMP echo via icmplib."""

    def __init__(self, privileged: bool = False):
        self.privileged = privileged

    async def ping(self, host: str, timeout: float) -> Optional[float]:
        try:
            result = await async_ping(
                host,
                count=1,
                timeout=timeout,
                privileged=self.privileged,
            )
        except ICMPLibError as e:
            raise PingError(str(e) or type(e).__name__) from e

        if not result.is_alive:
            raise PingError(f"No reply from {host}")
        return result.avg_rtt


class SystemPinger:
    """Runs ``ping -c 1`` and parses the reply time from its output."""

    def __init__(self, binary: str = "ping"):
        self.binary = binary

    async def ping(self, host: str, timeout: float) -> Optional[float]:
        wait = str(max(1, int(timeout)))
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary, "-c", "1", "-W", wait, host,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PingError(f"Cannot run {self.binary}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug(f"{self.binary} did not exit in time for {host}, killing it")
            proc.kill()
            await proc.wait()
            raise PingError("Ping timeout")
        except asyncio.CancelledError:
            proc.kill()
            raise

        if proc.returncode != 0:
            message = stderr.decode(errors="replace").strip() or f"{host} is unreachable"
            raise PingError(message)

        match = PING_TIME_PATTERN.search(stdout.decode(errors="replace"))
        return float(match.group(1)) if match else None


def create_pinger(backend: str) -> Pinger:
    """Build the pinger named by the ``ping_backend`` setting."""
    if backend == "icmp":
        return IcmpPinger()
    if backend == "system":
        return SystemPinger()
    raise ValueError(f"Unknown ping backend: {backend}")
