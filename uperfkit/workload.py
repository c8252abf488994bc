"""Data model of a workload profile: groups, transactions and flow operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag, auto

from uperfkit.flowops import FlowopType

ANY_CONNECTION = 0
NAME_LEN = 128


class Protocol(IntEnum):
    """Transport protocols a flowop can use."""

    TCP = 0
    UDP = 1
    SSL = 2
    SCTP = 3
    RDS = 4
    VSOCK = 5
    UNSUPPORTED = -1


_PROTOCOL_NAMES = {p.name.lower(): p for p in Protocol if p is not Protocol.UNSUPPORTED}


def protocol_type(name: str) -> Protocol:
    """Look up a protocol by name, ignoring case; unknown names give UNSUPPORTED."""
    return _PROTOCOL_NAMES.get(name.strip().lower(), Protocol.UNSUPPORTED)


class OptionFlag(IntFlag):
    """Boolean options a flowop may carry."""

    NONE = 0
    TCP_NODELAY = auto()
    THINK_BUSY = auto()
    THINK_IDLE = auto()
    CANFAIL = auto()
    NONBLOCKING = auto()
    SIZE_RAND = auto()
    SCTP_UNORDERED = auto()
    SCTP_NODELAY = auto()


@dataclass
class FlowopOptions:
    """Settings parsed from a flowop's options string."""

    count: int = 1
    size: int = 0
    rsize: int = 0
    nfiles: int = 0
    dir: str = ""
    port: int = 0
    protocol: Protocol = Protocol.TCP
    remotehost: str = ""
    localhost: str = ""
    wndsz: int = 0
    poll_timeout: int = 0
    duration: int = 0
    encaps_port: int = 0
    cc: str = ""
    stack: str = ""
    rand_sz_min: int = 0
    rand_sz_max: int = 0
    flag: OptionFlag = OptionFlag.NONE
    sctp_rto_min: int = 0
    sctp_rto_max: int = 0
    sctp_rto_initial: int = 0
    sctp_sack_delay: int = 0
    sctp_sack_frequency: int = 0
    sctp_max_burst_size: int = 0
    sctp_max_fragment_size: int = 0
    sctp_hb_interval: int = 0
    sctp_path_mtu: int = 0
    sctp_in_streams: int = 0
    sctp_out_streams: int = 0
    sctp_stream_id: int = 0
    sctp_pr_value: int = 0
    sctp_pr_policy: str = ""
    engine: str = ""
    cipher: str = ""
    method: str = ""

    def random_size(self) -> bool:
        """True when the transfer size is drawn from rand(min, max)."""
        return bool(self.flag & OptionFlag.SIZE_RAND)


@dataclass
class Flowop:
    """A single operation inside a transaction."""

    type: FlowopType = FlowopType.ERROR
    name: str = ""
    id: int = 0
    connection_id: int = ANY_CONNECTION
    options: FlowopOptions = field(default_factory=FlowopOptions)


@dataclass
class Transaction:
    """A sequence of flowops run a number of times or for a duration."""

    name: str = ""
    txnid: int = 0
    iterations: int = 1
    duration: int = 0
    rate: str = ""
    rate_count: int = 0
    flowops: list[Flowop] = field(default_factory=list)


@dataclass
class Group:
    """A set of identical strands running the same transactions."""

    name: str = ""
    groupid: int = 0
    nthreads: int = 0
    processes: bool = False
    transactions: list[Transaction] = field(default_factory=list)


@dataclass
class Workorder:
    """A whole profile: its name and its groups."""

    name: str = ""
    groups: list[Group] = field(default_factory=list)