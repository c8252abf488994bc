"""Per-interface packet counters sampled before and after a run."""

from __future__ import annotations

import os
import re
import subprocess
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from uperfkit.numbers import format_decimal

INTERFACE_LEN = 32
ADDRESS_LEN = 17
LINUX_SEPARATORS = " |:"
BSD_SEPARATORS = " "
LINUX_DEV = "/proc/net/dev"
_ADDRESS_ADJUST = 2 if sys.platform == "darwin" else 0
_DIGITS = re.compile(r"\d+")


@dataclass
class PacketStats:
    """One sample of an interface's counters, stamped in nanoseconds."""

    tx_packets: int = 0
    rx_packets: int = 0
    tx_bytes: int = 0
    rx_bytes: int = 0
    stamp: int = 0


@dataclass(frozen=True)
class ColumnLayout:
    """Which token of a statistics line holds each counter."""

    rx_bytes: int
    rx_packets: int
    tx_bytes: int
    tx_packets: int
    separators: str = LINUX_SEPARATORS
    address_offset: int | None = None


def _split(line: str, separators: str) -> list[str]:
    pattern = "[" + re.escape(separators) + "]+"
    return [token for token in re.split(pattern, line) if token]


def _to_int(token: str) -> int:
    match = _DIGITS.match(token)
    return int(match.group()) if match else 0


def parse_linux_header(line: str) -> ColumnLayout:
    """Find the counter columns in the second header line of the Linux device table."""
    rx_bytes = rx_packets = tx_bytes = tx_packets = 0
    for index, token in enumerate(_split(line.rstrip("\r\n"), LINUX_SEPARATORS)):
        if token == "packets":
            if rx_packets == 0:
                rx_packets = index
            else:
                tx_packets = index
        elif token == "bytes":
            if rx_bytes == 0:
                rx_bytes = index
            else:
                tx_bytes = index
    if rx_packets == tx_packets or rx_bytes == tx_bytes:
        raise ValueError(f"Error parsing header from {LINUX_DEV}")
    return ColumnLayout(rx_bytes, rx_packets, tx_bytes, tx_packets, LINUX_SEPARATORS)


def parse_bsd_header(line: str) -> ColumnLayout:
    """Find the counter columns in a 'netstat -bi' header; the Address column is skipped."""
    line = line.rstrip("\r\n")
    offset = line.find("Address")
    address_offset = None if offset < 0 else max(offset - _ADDRESS_ADJUST, 0)
    rx_bytes = rx_packets = tx_bytes = tx_packets = 0
    index = 0
    for token in _split(line, BSD_SEPARATORS):
        if token == "Ipkts":
            rx_packets = index
        elif token == "Ibytes":
            rx_bytes = index
        elif token == "Opkts":
            tx_packets = index
        elif token == "Obytes":
            tx_bytes = index
        if token != "Address":
            index += 1
    if rx_packets == tx_packets or rx_bytes == tx_bytes:
        raise ValueError(
            "Error parsing header from netstat -bi: "
            f"{rx_bytes} {rx_packets} {tx_bytes} {tx_packets}"
        )
    return ColumnLayout(
        rx_bytes, rx_packets, tx_bytes, tx_packets, BSD_SEPARATORS, address_offset
    )


def parse_counters(line: str, layout: ColumnLayout) -> tuple[str, PacketStats]:
    """Parse one interface line into its name and a stamped PacketStats."""
    line = line.rstrip("\r\n")
    if layout.address_offset is not None:
        start = layout.address_offset
        line = line.ljust(start + ADDRESS_LEN)
        line = line[:start] + " " * ADDRESS_LEN + line[start + ADDRESS_LEN:]
    tokens = _split(line, layout.separators)
    if not tokens:
        raise ValueError("empty statistics line")
    stats = PacketStats(stamp=time.monotonic_ns())
    for index, token in enumerate(tokens):
        if index == layout.rx_bytes:
            stats.rx_bytes = _to_int(token)
        elif index == layout.tx_bytes:
            stats.tx_bytes = _to_int(token)
        elif index == layout.tx_packets:
            stats.tx_packets = _to_int(token)
        elif index == layout.rx_packets:
            stats.rx_packets = _to_int(token)
    return tokens[0][:INTERFACE_LEN], stats


def _run_netstat(command: str) -> str:
    result = subprocess.run(
        [command, "-bi"], capture_output=True, text=True, check=True
    )
    return result.stdout


def _make_reader(
    source: Callable[[], str] | str | os.PathLike[str] | None,
) -> Callable[[], str]:
    if callable(source):
        return source
    if source is not None:
        path = Path(source)
        return lambda: path.read_text()
    if sys.platform.startswith("linux"):
        return lambda: Path(LINUX_DEV).read_text()
    if sys.platform.startswith("freebsd"):
        return lambda: _run_netstat("/usr/bin/netstat")
    if sys.platform == "darwin":
        return lambda: _run_netstat("/usr/sbin/netstat")
    raise OSError("packet statistics are not available on this platform")


class NetstatCollector:
    """Samples interface counters at the start and end of a run and reports rates.

    ``source`` is a callable returning the statistics text, a path to read it
    from, or None for the platform's own source.
    """

    def __init__(self, source=None) -> None:
        self._read = _make_reader(source)
        lines = self._read().splitlines()
        if not lines:
            raise ValueError("no statistics header found")
        self._linux = "|" in lines[0]
        if self._linux:
            if len(lines) < 2:
                raise ValueError(f"Error parsing header from {LINUX_DEV}")
            self._layout = parse_linux_header(lines[1])
        else:
            self._layout = parse_bsd_header(lines[0])
        self._begin: dict[str, PacketStats] = {}
        self._end: dict[str, PacketStats] = {}

    def _data_lines(self) -> list[str]:
        lines = self._read().splitlines()
        if self._linux:
            if len(lines) < 2:
                raise ValueError(f"Error reading {LINUX_DEV}")
            lines = lines[2:]
        else:
            lines = [line for line in lines if "Link" in line]
        return [line for line in lines if line.strip()]

    def snap(self, begin: bool = True) -> list[str]:
        """Take a start (``begin``) or end sample.

        Returns the interfaces that appeared since the start sample.
        """
        appeared: list[str] = []
        if begin:
            self._begin.clear()
            self._end.clear()
        for line in self._data_lines():
            name, stats = parse_counters(line, self._layout)
            if begin:
                self._begin[name] = stats
            elif name in self._begin:
                self._end[name] = stats
            else:
                sys.stdout.write(f"Nic {name} came online\n")
                appeared.append(name)
        return appeared

    def report(self) -> str:
        """Render packet and bit rates for every interface that saw traffic."""
        lines = [
            "\nNetstat statistics for this run\n",
            f"{'Nic':<5}  {'opkts/s':>10}  {'ipkts/s':>10}  {'obits/s':>11}  {'ibits/s':>11}\n",
        ]
        for name, start in self._begin.items():
            end = self._end.get(name)
            if end is None:
                continue
            op = end.tx_packets - start.tx_packets
            ip = end.rx_packets - start.rx_packets
            ob = end.tx_bytes - start.tx_bytes
            ib = end.rx_bytes - start.rx_bytes
            seconds = (end.stamp - start.stamp) / 1.0e9
            if (ip == 0 and op == 0) or seconds <= 0:
                continue
            lines.append(
                f"{name:<5}  {op / seconds:10.0f}  {ip / seconds:10.0f}  "
                + format_decimal(ob * 8 / seconds, 11, True)
                + " "
                + format_decimal(ib * 8 / seconds, 11, True)
                + "\n"
            )
        return "".join(lines)