from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from z21scan.config import (
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    MAX_CONCURRENCY,
    OUTPUT_NORMAL,
    ScanConfig,
    load_config,
    resolve_output,
)
from z21scan.errors import Z21ScanError
from z21scan.logging_setup import get_logger, setup_logging
from z21scan.models import ScanResult
from z21scan.network import hosts_in_network, resolve_target
from z21scan.otel import init_otel, shutdown_otel
from z21scan.output import print_banner, print_progress, print_results
from z21scan.scanner import reachable_only, scan_hosts

log = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="z21scan",
        description=(
            "Scan a local network for reachable Z21 devices. "
            'Give either a network interface (e.g. "eth0") or a network '
            'address in CIDR notation (e.g. "192.168.2.0/24").'
        ),
    )
    p.add_argument("target", metavar="IFACE|NETWORK", help="Network interface name or IPv4 CIDR block")
    p.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help=f"UDP port to probe (default {DEFAULT_PORT})")
    p.add_argument("-o", "--output", default=OUTPUT_NORMAL, help="Output format: short|normal|verbose|json")
    p.add_argument("-q", "--quiet", action="store_true", help="Short output (same as -o short)")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose output (same as -o verbose), wins over -q")
    p.add_argument("-t", "--timeout", type=float, default=DEFAULT_TIMEOUT, help=f"Per-probe timeout in seconds (default {DEFAULT_TIMEOUT})")
    p.add_argument("-c", "--concurrency", type=int, default=MAX_CONCURRENCY, help=f"Maximum probes in flight (default {MAX_CONCURRENCY})")
    p.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Diagnostic log level, logs go to stderr")
    return p


def build_config(args: argparse.Namespace) -> ScanConfig:
    return ScanConfig(
        port=args.port,
        concurrency=args.concurrency,
        timeout=args.timeout,
        output=resolve_output(args.output, quiet=args.quiet, verbose=args.verbose),
    )


def run(target: str, cfg: ScanConfig) -> List[ScanResult]:
    network = resolve_target(target)
    hosts = hosts_in_network(network)
    log.info("targets_resolved", target=target, network=str(network), hosts=len(hosts))

    print_banner(network, cfg.port, cfg.output)
    on_result = print_progress if cfg.verbose else None
    results = asyncio.run(scan_hosts(hosts, cfg, on_result=on_result))
    return reachable_only(results)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    tracer_provider, meter_provider = init_otel(load_config().otel)

    try:
        cfg = build_config(args)
        found = run(args.target, cfg)
        print_results(found, cfg.output)
    except Z21ScanError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        shutdown_otel(tracer_provider, meter_provider)
    return 0


if __name__ == "__main__":
    sys.exit(main())
