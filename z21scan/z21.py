"""
Minimal asyncio client for the Z21 LAN protocol.

Only what is needed to identify a command station is implemented: framing and
the LAN_GET_SERIAL_NUMBER exchange. Every datagram carries one or more frames
laid out as little-endian ``DataLen:u16, Header:u16, Data``, where DataLen
counts the whole frame.
"""

from __future__ import annotations

import asyncio
import struct
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from z21scan.logging_setup import get_logger

log = get_logger(__name__)

FRAME_HEADER = struct.Struct("<HH")
LAN_GET_SERIAL_NUMBER = 0x10


class Z21Error(Exception):
    pass


class Z21ConnectError(Z21Error):
    pass


class Z21Timeout(Z21Error):
    pass


class Z21ProtocolError(Z21Error):
    pass


@dataclass(frozen=True)
class SerialNumber:
    serial_number: int = 0

    header = LAN_GET_SERIAL_NUMBER

    def encode(self) -> bytes:
        # the request carries no payload
        return FRAME_HEADER.pack(FRAME_HEADER.size, self.header)

    @classmethod
    def decode(cls, data: bytes) -> "SerialNumber":
        if len(data) != 4:
            raise Z21ProtocolError(f"serial number reply: expected 4 data bytes, got {len(data)}")
        return cls(serial_number=struct.unpack("<I", data)[0])


@dataclass(frozen=True)
class UnknownMessage:
    header: int
    data: bytes = b""


Message = Union[SerialNumber, UnknownMessage]


def split_frames(datagram: bytes) -> List[Tuple[int, bytes]]:
    frames: List[Tuple[int, bytes]] = []
    offset = 0
    while offset < len(datagram):
        if len(datagram) - offset < FRAME_HEADER.size:
            raise Z21ProtocolError(f"truncated frame header at offset {offset}")
        length, header = FRAME_HEADER.unpack_from(datagram, offset)
        if length < FRAME_HEADER.size or offset + length > len(datagram):
            raise Z21ProtocolError(f"bad frame length {length} at offset {offset}")
        frames.append((header, datagram[offset + FRAME_HEADER.size : offset + length]))
        offset += length
    return frames


def decode_message(header: int, data: bytes) -> Message:
    if header == LAN_GET_SERIAL_NUMBER:
        return SerialNumber.decode(data)
    return UnknownMessage(header=header, data=data)


class _Z21Protocol(asyncio.DatagramProtocol):
    def __init__(self):
        self.inbox: asyncio.Queue = asyncio.Queue()

    def datagram_received(self, data: bytes, addr) -> None:
        self.inbox.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        # e.g. ICMP port unreachable surfaced as ConnectionRefusedError
        self.inbox.put_nowait(exc)


class Z21Connection:
    def __init__(self, transport: asyncio.DatagramTransport, protocol: _Z21Protocol, host: str, port: int):
        self._transport: Optional[asyncio.DatagramTransport] = transport
        self._protocol = protocol
        self.host = host
        self.port = port

    @property
    def closed(self) -> bool:
        return self._transport is None

    async def send_rcv(self, message: SerialNumber, timeout: float) -> Message:
        """Send one request and return the first frame that comes back within ``timeout`` seconds."""
        if self._transport is None:
            raise Z21Error("connection is closed")
        self._transport.sendto(message.encode())
        try:
            item = await asyncio.wait_for(self._protocol.inbox.get(), timeout)
        except asyncio.TimeoutError:
            raise Z21Timeout(f"no reply from {self.host}:{self.port} within {timeout}s") from None
        if isinstance(item, Exception):
            raise Z21ProtocolError(f"receive from {self.host}:{self.port} failed: {item}") from item
        frames = split_frames(item)
        if not frames:
            raise Z21ProtocolError(f"empty reply from {self.host}:{self.port}")
        header, data = frames[0]
        return decode_message(header, data)

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
            self._transport = None

    async def __aenter__(self) -> "Z21Connection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


async def connect(host: str, port: int) -> Z21Connection:
    loop = asyncio.get_running_loop()
    try:
        transport, protocol = await loop.create_datagram_endpoint(_Z21Protocol, remote_addr=(host, port))
    except OSError as e:
        raise Z21ConnectError(f"connect {host}:{port}: {e}") from e
    return Z21Connection(transport, protocol, host, port)
