from __future__ import annotations

import asyncio
import ipaddress
from typing import Awaitable, Callable, List, Optional, Sequence

from opentelemetry import trace, metrics

from z21scan import z21
from z21scan.config import ScanConfig
from z21scan.logging_setup import get_logger
from z21scan.models import ScanResult

log = get_logger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)

metric_probes = meter.create_counter("z21scan_probes_total")
metric_devices = meter.create_counter("z21scan_devices_total")

Connector = Callable[[str, int], Awaitable[z21.Z21Connection]]
ResultCallback = Callable[[ScanResult], None]


async def probe_host(
    ip: ipaddress.IPv4Address,
    port: int,
    timeout: float,
    connect: Optional[Connector] = None,
) -> ScanResult:
    """Ask one host for its serial number. Never raises: any failure means unreachable."""
    connect = connect or z21.connect
    conn = None
    with tracer.start_as_current_span("probe") as span:
        span.set_attribute("net.peer.ip", str(ip))
        try:
            conn = await connect(str(ip), port)
            reply = await conn.send_rcv(z21.SerialNumber(), timeout=timeout)
            if not isinstance(reply, z21.SerialNumber):
                raise z21.Z21ProtocolError(f"unexpected reply {type(reply).__name__}")
        except Exception as e:
            log.debug("probe_failed", ip=str(ip), port=port, error=str(e) or type(e).__name__)
            return ScanResult(ip=ip, port=port)
        finally:
            if conn is not None:
                conn.close()
        span.set_attribute("z21.serial", reply.serial_number)
    return ScanResult(ip=ip, port=port, reachable=True, serial=str(reply.serial_number))


async def scan_hosts(
    hosts: Sequence[ipaddress.IPv4Address],
    cfg: ScanConfig,
    connect: Optional[Connector] = None,
    on_result: Optional[ResultCallback] = None,
) -> List[ScanResult]:
    """
    Probe every host exactly once with at most ``cfg.concurrency`` probes in flight.

    Returns one ScanResult per host, in completion order, once every probe has finished.
    ``on_result`` is called as each probe completes.
    """
    sem = asyncio.Semaphore(cfg.concurrency)
    results_q: asyncio.Queue[ScanResult] = asyncio.Queue()

    async def sem_task(ip: ipaddress.IPv4Address):
        try:
            result = await probe_host(ip, cfg.port, cfg.timeout, connect)
            results_q.put_nowait(result)
            if on_result is not None:
                on_result(result)
        finally:
            sem.release()

    with tracer.start_as_current_span("scan") as span:
        span.set_attribute("z21scan.hosts", len(hosts))
        log.info("scan_start", hosts=len(hosts), port=cfg.port, concurrency=cfg.concurrency)

        tasks = []
        for ip in hosts:
            await sem.acquire()
            tasks.append(asyncio.create_task(sem_task(ip)))
        await asyncio.gather(*tasks)

        results: List[ScanResult] = []
        while not results_q.empty():
            results.append(results_q.get_nowait())

        found = sum(1 for r in results if r.reachable)
        metric_probes.add(len(results))
        metric_devices.add(found)
        log.info("scan_complete", hosts=len(hosts), results=len(results), reachable=found)
    return results


def reachable_only(results: Sequence[ScanResult]) -> List[ScanResult]:
    return [r for r in results if r.reachable]
