"""The goodbye message a slave sends the master at the end of a run."""

from __future__ import annotations

import socket
import struct
import sys
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

from uperfkit.commands import ProtocolError, send_all

GOODBYE_MAGIC = "So Long, and Thanks for All the Fish"
MAGIC_LEN = 64
GOODBYE_MESSAGE_LEN = 512
_UINT64_MAX = 2**64 - 1


class MessageKind(IntEnum):
    """What kind of note a goodbye carries."""

    ERROR = 0xAA
    WARNING = 0xBB
    INFO = 0xCC
    NONE = 0xDD


def _prefix(byteorder: str) -> str:
    if byteorder not in ("little", "big"):
        raise ValueError(f"unknown byte order {byteorder!r}")
    return "<" if byteorder == "little" else ">"


def _swap64(value: int) -> int:
    return int.from_bytes(value.to_bytes(8, "little"), "big")


def _kind(raw: int) -> int:
    try:
        return MessageKind(raw)
    except ValueError:
        return raw


@dataclass(frozen=True)
class GoodbyeStat:
    """Run totals reported by one peer."""

    elapsed_time: int = 0
    error: int = 0
    bytes_xfer: int = 0
    count: int = 0


@dataclass(frozen=True)
class Goodbye:
    """A goodbye: a message kind, run totals and a text note."""

    kind: int = MessageKind.NONE
    stat: GoodbyeStat = field(default_factory=GoodbyeStat)
    message: str = ""

    SIZE: ClassVar[int] = MAGIC_LEN + 5 * 8 + GOODBYE_MESSAGE_LEN

    def _numbers(self) -> tuple[int, int, int, int, int]:
        s = self.stat
        return (int(self.kind), s.elapsed_time, s.error, s.bytes_xfer, s.count)

    def pack(self, byteorder: str = sys.byteorder) -> bytes:
        """Encode as magic (64 bytes), five 64-bit numbers and a 512-byte message."""
        numbers = self._numbers()
        if any(not 0 <= n <= _UINT64_MAX for n in numbers):
            raise ValueError("goodbye fields must fit in 64 unsigned bits")
        magic = GOODBYE_MAGIC.encode().ljust(MAGIC_LEN, b"\0")
        text = self.message.encode("utf-8")[: GOODBYE_MESSAGE_LEN - 1]
        body = struct.pack(_prefix(byteorder) + "5Q", *numbers)
        return magic + body + text.ljust(GOODBYE_MESSAGE_LEN, b"\0")

    @classmethod
    def unpack(cls, data: bytes, byteorder: str = sys.byteorder) -> Goodbye:
        """Decode a goodbye; raises ProtocolError on a bad length or magic."""
        if len(data) != cls.SIZE:
            raise ProtocolError(f"goodbye must be {cls.SIZE} bytes, got {len(data)}")
        magic = data[:MAGIC_LEN].split(b"\0", 1)[0]
        if magic != GOODBYE_MAGIC.encode():
            shown = magic.decode("utf-8", errors="replace")
            raise ProtocolError(f"Wrong goodbye magic: {shown}")
        end = MAGIC_LEN + 40
        kind, elapsed, error, xfer, count = struct.unpack(
            _prefix(byteorder) + "5Q", data[MAGIC_LEN:end]
        )
        text = data[end:].split(b"\0", 1)[0].decode("utf-8", errors="replace")
        return cls(_kind(kind), GoodbyeStat(elapsed, error, xfer, count), text)

    def byteswapped(self) -> Goodbye:
        """Return a copy with every 64-bit number byte-swapped."""
        kind, elapsed, error, xfer, count = (_swap64(n) for n in self._numbers())
        return Goodbye(_kind(kind), GoodbyeStat(elapsed, error, xfer, count), self.message)


def send_goodbye(goodbye: Goodbye, sock: socket.socket) -> int:
    """Send a goodbye; returns the number of bytes written."""
    try:
        return send_all(sock, goodbye.pack())
    except OSError as exc:
        raise ProtocolError("Error exchanging goodbye's with client") from exc


def recv_goodbye(sock: socket.socket, timeout: int) -> Goodbye:
    """Receive a goodbye within ``timeout`` milliseconds.

    If the peer closes early, the missing bytes are taken as zero.
    Raises ProtocolError on timeout, socket error or wrong magic.
    """
    deadline = time.monotonic() + timeout / 1000.0
    buffer = bytearray()
    previous = sock.gettimeout()
    try:
        while len(buffer) < Goodbye.SIZE:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ProtocolError("Error exchanging goodbye's with client: timed out")
            sock.settimeout(remaining)
            try:
                chunk = sock.recv(Goodbye.SIZE - len(buffer))
            except TimeoutError:
                raise ProtocolError(
                    "Error exchanging goodbye's with client: timed out"
                ) from None
            except OSError as exc:
                raise ProtocolError("Error exchanging goodbye's with client") from exc
            if not chunk:
                break
            buffer += chunk
    finally:
        sock.settimeout(previous)
    return Goodbye.unpack(bytes(buffer).ljust(Goodbye.SIZE, b"\0"))