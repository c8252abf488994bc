"""Control commands exchanged between master and slave, and exact socket I/O."""

from __future__ import annotations

import socket
import struct
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from uperfkit.messagelog import LogLevel, MessageType, printer

UPERF_COMMAND_MAGIC = "uperf_command"
ALL_GROUPS = -1
MAGIC_LEN = 64


class ProtocolError(Exception):
    """Raised when the control connection closes or carries a malformed message."""


class Command(IntEnum):
    """Commands the master sends to slaves."""

    NEXT_TXN = 0
    ABORT = 1
    SEND_STATS = 2
    ERROR = 3


def _prefix(byteorder: str) -> str:
    if byteorder not in ("little", "big"):
        raise ValueError(f"unknown byte order {byteorder!r}")
    return "<" if byteorder == "little" else ">"


def _label(command: Command) -> str:
    return f"UPERF_CMD_{command.name}"


@dataclass(frozen=True)
class CommandMessage:
    """A command and its argument."""

    command: Command
    value: int = 0

    SIZE: ClassVar[int] = MAGIC_LEN + 8

    def pack(self, byteorder: str = sys.byteorder) -> bytes:
        """Encode as magic (64 bytes), command and value (32-bit each)."""
        if not 0 <= self.value <= 0xFFFFFFFF:
            raise ValueError(f"command value {self.value} does not fit 32 bits")
        magic = UPERF_COMMAND_MAGIC.encode().ljust(MAGIC_LEN, b"\0")
        return magic + struct.pack(_prefix(byteorder) + "II", int(self.command), self.value)

    @classmethod
    def unpack(cls, data: bytes, byteswap: bool = False) -> CommandMessage:
        """Decode a message in native order, or the opposite order if ``byteswap``."""
        if len(data) != cls.SIZE:
            raise ProtocolError(f"command message must be {cls.SIZE} bytes, got {len(data)}")
        magic = data[:MAGIC_LEN].split(b"\0", 1)[0]
        if magic != UPERF_COMMAND_MAGIC.encode():
            raise ProtocolError("Wrong command magic")
        order = sys.byteorder
        if byteswap:
            order = "big" if order == "little" else "little"
        raw_command, value = struct.unpack(_prefix(order) + "II", data[MAGIC_LEN:])
        try:
            command = Command(raw_command)
        except ValueError:
            raise ProtocolError(f"Unknown command {raw_command}") from None
        return cls(command, value)


def recv_exact(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes; raises ProtocolError if the peer closes first."""
    buffer = bytearray()
    while len(buffer) < size:
        chunk = sock.recv(size - len(buffer))
        if not chunk:
            raise ProtocolError("connection closed")
        buffer += chunk
    return bytes(buffer)


def send_all(sock: socket.socket, data: bytes) -> int:
    """Write all of ``data`` and return its length."""
    view = memoryview(data)
    sent = 0
    while sent < len(view):
        n = sock.send(view[sent:])
        if n <= 0:
            raise ProtocolError("connection closed")
        sent += n
    return sent


def send_command(sock: socket.socket, command: Command, value: int = 0) -> int:
    """Send one command; returns the number of bytes written."""
    message = CommandMessage(Command(command), value)
    printer(LogLevel.VERBOSE, MessageType.INFO,
            f"TX command [{_label(message.command)}, {value}]\n")
    return send_all(sock, message.pack())


def receive_command(sock: socket.socket, byteswap: bool = False) -> CommandMessage:
    """Receive one command, swapping byte order if the peer's differs."""
    message = CommandMessage.unpack(recv_exact(sock, CommandMessage.SIZE), byteswap)
    printer(LogLevel.VERBOSE, MessageType.INFO,
            f"RX Command [{_label(message.command)}, {message.value}]\n")
    return message