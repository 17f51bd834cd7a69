from __future__ import annotations

import ipaddress
import socket
from typing import List

import psutil

from z21scan.errors import InterfaceNotFound, InvalidNetworkAddress, NoIPv4Address
from z21scan.logging_setup import get_logger

log = get_logger(__name__)


def parse_cidr(spec: str) -> ipaddress.IPv4Network:
    try:
        # host bits are allowed and masked away, e.g. 192.168.2.10/24
        return ipaddress.IPv4Network(spec.strip(), strict=False)
    except ValueError as e:
        raise InvalidNetworkAddress(f"invalid network address: {e}") from e


def network_from_interface(name: str) -> ipaddress.IPv4Network:
    addrs = psutil.net_if_addrs()
    if name not in addrs:
        raise InterfaceNotFound(
            f"failed to get network address from interface {name!r}: no such network interface"
        )
    for a in addrs[name]:
        if getattr(a, "family", None) != socket.AF_INET or not a.address:
            continue
        netmask = a.netmask or "255.255.255.255"
        try:
            net = ipaddress.IPv4Network(f"{a.address}/{netmask}", strict=False)
        except ValueError:
            log.debug("iface_addr_skipped", iface=name, address=a.address, netmask=a.netmask)
            continue
        log.debug("iface_resolved", iface=name, address=a.address, network=str(net))
        return net
    raise NoIPv4Address(f"failed to get network address from interface {name!r}: no IPv4 network")


def resolve_target(target: str) -> ipaddress.IPv4Network:
    """Turn an interface name or an IPv4 CIDR block into the network to scan."""
    if "/" in target:
        return parse_cidr(target)
    return network_from_interface(target)


def _inc_ip(packed: bytearray) -> bool:
    # big-endian increment with carry; False once the address wraps past 255.255.255.255
    for j in range(len(packed) - 1, -1, -1):
        packed[j] = (packed[j] + 1) & 0xFF
        if packed[j] != 0:
            return True
    return False


def hosts_in_network(net: ipaddress.IPv4Network) -> List[ipaddress.IPv4Address]:
    """
    Expand a network block into candidate host addresses.

    Network and broadcast addresses are dropped only when the block holds more
    than two addresses, so /31 and /32 blocks return every address.
    """
    ips: List[ipaddress.IPv4Address] = []
    cur = bytearray(net.network_address.packed)
    while True:
        ip = ipaddress.IPv4Address(bytes(cur))
        if ip not in net:
            break
        ips.append(ip)
        if not _inc_ip(cur):
            break

    if len(ips) > 2:
        return ips[1:-1]
    return ips
