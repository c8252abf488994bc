"""Flow operation types and their name lookup."""

from __future__ import annotations

from enum import IntEnum


class FlowopType(IntEnum):
    """Kinds of flow operation a transaction can hold."""

    ERROR = 0
    READ = 1
    WRITE = 2
    CONNECT = 3
    DISCONNECT = 4
    ACCEPT = 5
    NOP = 6
    THINK = 7
    SEND = 8
    RECV = 9
    SENDFILEV = 10
    SENDFILE = 11


class ThinkType(IntEnum):
    """How a think flowop waits."""

    IDLE = 1
    BUSY = 2


_NAMES = {
    "error": FlowopType.ERROR,
    "read": FlowopType.READ,
    "write": FlowopType.WRITE,
    "connect": FlowopType.CONNECT,
    "disconnect": FlowopType.DISCONNECT,
    "accept": FlowopType.ACCEPT,
    "nop": FlowopType.NOP,
    "think": FlowopType.THINK,
    "send": FlowopType.SEND,
    "recv": FlowopType.RECV,
    "sendfile": FlowopType.SENDFILE,
    "sendfilev": FlowopType.SENDFILEV,
}

_OPPOSITES = (
    (FlowopType.READ, FlowopType.WRITE),
    (FlowopType.SEND, FlowopType.RECV),
    (FlowopType.ACCEPT, FlowopType.CONNECT),
    (FlowopType.SENDFILE, FlowopType.READ),
    (FlowopType.SENDFILEV, FlowopType.READ),
)


def flowop_type(name: str) -> FlowopType:
    """Look up a flowop by name, ignoring case; unknown names give FlowopType.ERROR."""
    return _NAMES.get(name.lower(), FlowopType.ERROR)


def flowop_opposite(kind: FlowopType) -> FlowopType:
    """Return the operation the peer performs for ``kind``, or ``kind`` itself."""
    for fop, opposite in _OPPOSITES:
        if kind == fop:
            return opposite
        if kind == opposite:
            return fop
    return FlowopType(kind)