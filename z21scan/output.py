from __future__ import annotations

import ipaddress
import json
import sys
from typing import List, Optional, Sequence, TextIO

from z21scan.config import OUTPUT_JSON, OUTPUT_NORMAL, OUTPUT_SHORT, OUTPUT_VERBOSE
from z21scan.errors import InvalidOutputFormat, RenderError
from z21scan.models import ScanResult


def _out(stream: Optional[TextIO]) -> TextIO:
    # resolved at call time so a replaced sys.stdout is honoured
    return stream if stream is not None else sys.stdout


def print_banner(network: ipaddress.IPv4Network, port: int, fmt: str, stream: Optional[TextIO] = None) -> None:
    if fmt in (OUTPUT_NORMAL, OUTPUT_VERBOSE):
        print(f'Scanning network "{network}" (port: {port}) ...', file=_out(stream))


def format_progress(result: ScanResult) -> str:
    return f"Probing {str(result.ip):<14} -> z21 device: {str(result.reachable).lower()}"


def print_progress(result: ScanResult, stream: Optional[TextIO] = None) -> None:
    print(format_progress(result), file=_out(stream), flush=True)


def format_row(r: ScanResult) -> str:
    return f"  {str(r.ip):<15} port={r.port} serial={r.serial}"


def results_to_json(results: Sequence[ScanResult]) -> str:
    payload = [r.to_doc() for r in results]
    try:
        return json.dumps(payload, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise RenderError(f"failed to marshal results to JSON: {e}") from e


def render_results(results: Sequence[ScanResult], fmt: str) -> List[str]:
    if fmt == OUTPUT_SHORT:
        return [str(r.ip) for r in results]
    if fmt in (OUTPUT_NORMAL, OUTPUT_VERBOSE):
        return [f"Found {len(results)} Z21 device(s)"] + [format_row(r) for r in results]
    if fmt == OUTPUT_JSON:
        return [results_to_json(results)]
    raise InvalidOutputFormat(f"invalid output format: {fmt!r}")


def print_results(results: Sequence[ScanResult], fmt: str, stream: Optional[TextIO] = None) -> None:
    out = _out(stream)
    for line in render_results(results, fmt):
        print(line, file=out)
