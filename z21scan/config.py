from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from z21scan.errors import InvalidOption, InvalidOutputFormat

DEFAULT_PORT = 21105
MAX_CONCURRENCY = 200
DEFAULT_TIMEOUT = 2.0

OUTPUT_SHORT = "short"
OUTPUT_NORMAL = "normal"
OUTPUT_VERBOSE = "verbose"
OUTPUT_JSON = "json"
VALID_OUTPUT_FORMATS: Tuple[str, ...] = (OUTPUT_SHORT, OUTPUT_NORMAL, OUTPUT_VERBOSE, OUTPUT_JSON)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _getbool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "y", "on")


@dataclass(frozen=True)
class ScanConfig:
    port: int = DEFAULT_PORT
    concurrency: int = MAX_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    output: str = OUTPUT_NORMAL

    def __post_init__(self):
        if self.output not in VALID_OUTPUT_FORMATS:
            raise InvalidOutputFormat(
                f"invalid output format: {self.output!r} (valid: {', '.join(VALID_OUTPUT_FORMATS)})"
            )
        if not 1 <= self.port <= 65535:
            raise InvalidOption(f"invalid port: {self.port} (must be 1-65535)")
        if self.concurrency < 1:
            raise InvalidOption(f"invalid concurrency: {self.concurrency} (must be >= 1)")
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise InvalidOption(f"invalid timeout: {self.timeout} (must be a finite number > 0)")

    @property
    def verbose(self) -> bool:
        return self.output == OUTPUT_VERBOSE


def resolve_output(output: str, quiet: bool = False, verbose: bool = False) -> str:
    # quiet is applied first so verbose wins when both are set
    if quiet:
        output = OUTPUT_SHORT
    if verbose:
        output = OUTPUT_VERBOSE
    return output


@dataclass
class OTelConfig:
    enabled: bool = field(default_factory=lambda: _getbool("OTEL_ENABLED", False))
    endpoint: str = field(
        default_factory=lambda: _getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317") or "http://localhost:4317"
    )
    service_name: str = field(default_factory=lambda: _getenv("OTEL_SERVICE_NAME", "z21scan") or "z21scan")


@dataclass
class AppConfig:
    otel: OTelConfig = field(default_factory=OTelConfig)


def load_config() -> AppConfig:
    return AppConfig()
