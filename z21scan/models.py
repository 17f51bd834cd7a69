from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Any, Dict


@dataclass(frozen=True)
class ScanResult:
    ip: IPv4Address
    port: int
    reachable: bool = False
    serial: str = ""

    def to_doc(self) -> Dict[str, Any]:
        return {
            "ip": str(self.ip),
            "port": self.port,
            "reachable": self.reachable,
            "serial": self.serial,
        }
