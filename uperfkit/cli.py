"""Command-line option handling and the program entry point."""

from __future__ import annotations

import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import IntFlag

from uperfkit.lexer import ProfileError
from uperfkit.messagelog import LogLevel, MessageType, printer, set_log_level
from uperfkit.netstat import NetstatCollector
from uperfkit.numbers import string_to_int, string_to_nsec
from uperfkit.profile import format_workorder, load_profile
from uperfkit.workload import Protocol, protocol_type

VERSION = "1.0.0"
MASTER_PORT = 20000
DEFAULT_INTERVAL_MS = 1000
FILE_DESCRIPTOR_LIMIT = 32 * 1024

_FLAG_OPTIONS = "pTgtfknasRvVh"
_VALUE_OPTIONS = "mXiPS"


class StatOption(IntFlag):
    """Statistics the run collects and prints."""

    NONE = 0
    FLOWOP = 1 << 0
    TXN = 1 << 1
    CPUCOUNTER = 1 << 2
    PACKET = 1 << 3
    THREAD = 1 << 4
    ERROR = 1 << 5
    HISTORY = 1 << 8
    GROUP = 1 << 9
    UTILIZATION = 1 << 11
    NO_STATS = 1 << 12
    RAW = 1 << 13


class RunChoice(IntFlag):
    """Which role the program takes."""

    NONE = 0
    MASTER = 1 << 0
    SLAVE = 1 << 1


class UsageError(Exception):
    """Raised for a bad command line.

    ``exit_code`` is the status to exit with; ``show_usage`` says whether the
    usage text should follow the message.
    """

    def __init__(self, message: str = "", exit_code: int = 1, show_usage: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code
        self.show_usage = show_usage


@dataclass
class Options:
    """Settings taken from the command line."""

    master_port: int = MASTER_PORT
    run_choice: RunChoice = RunChoice.NONE
    profile: str = ""
    history_file: str = ""
    stats: StatOption = StatOption.ERROR | StatOption.PACKET
    interval: int = DEFAULT_INTERVAL_MS
    control_protocol: Protocol = Protocol.TCP
    log_level: LogLevel = LogLevel.NONVERBOSE
    action: str = field(default="run")

    @property
    def is_master(self) -> bool:
        return bool(self.run_choice & RunChoice.MASTER)

    @property
    def is_slave(self) -> bool:
        return bool(self.run_choice & RunChoice.SLAVE)

    def enabled(self, option: StatOption) -> bool:
        """True when ``option`` is among the statistics to collect."""
        return bool(self.stats & option)

    @property
    def stats_enabled(self) -> bool:
        return not self.enabled(StatOption.NO_STATS)


def usage_text(prog: str) -> str:
    """Return the usage message for program name ``prog``."""
    return (
        f"Uperf Version {VERSION}\n"
        f"Usage:   {prog} [-m profile] [-hvV] [-ngtTfkpaX:i:P:RS:]\n"
        f"\t {prog} [-s] [-hvV]\n\n"
        "\t-m <profile>\t Run uperf with this profile\n"
        "\t-s\t\t Slave\n"
        "\t-S <protocol>\t Protocol type for the control Socket [def: tcp]\n"
        "\t-n\t\t No statistics\n"
        "\t-T\t\t Print Thread statistics\n"
        "\t-t\t\t Print Transaction averages\n"
        "\t-f\t\t Print Flowop averages\n"
        "\t-g\t\t Print Group statistics\n"
        "\t-k\t\t Collect kstat statistics\n"
        "\t-p\t\t Collect CPU utilization for flowops [-f assumed]\n"
        "\t-a\t\t Collect all statistics\n"
        "\t-X <file>\t Collect response times\n"
        "\t-i <interval>\t Collect throughput every <interval>\n"
        "\t-P <port>\t Set the master port (defaults to 20000)\n"
        "\t-R\t\t Emit raw (not transformed), time-stamped (ms) statistics\n"
        "\t-v\t\t Verbose\n"
        "\t-V\t\t Version\n"
        "\t-h\t\t Print usage\n"
    )


def version_text() -> str:
    """Return the version banner with the supported protocols."""
    return f"Uperf Version {VERSION}\nSupported protocols: TCP, UDP\n"


def _apply_flag(options: Options, ch: str, roles: dict[str, int]) -> None:
    if ch == "p":
        options.stats |= StatOption.UTILIZATION | StatOption.FLOWOP
    elif ch == "T":
        options.stats |= StatOption.THREAD
    elif ch == "g":
        options.stats |= StatOption.GROUP
    elif ch == "t":
        options.stats |= StatOption.TXN
    elif ch == "f":
        options.stats |= StatOption.FLOWOP
    elif ch == "k":
        options.stats |= StatOption.PACKET
    elif ch == "n":
        options.stats = StatOption.NO_STATS
    elif ch == "a":
        options.stats |= (
            StatOption.FLOWOP | StatOption.TXN | StatOption.PACKET
            | StatOption.THREAD | StatOption.ERROR | StatOption.GROUP
        )
    elif ch == "s":
        options.run_choice |= RunChoice.SLAVE
        roles["server"] += 1
    elif ch == "R":
        options.stats |= StatOption.RAW
    elif ch == "v":
        options.log_level = LogLevel.VERBOSE


def _apply_value(options: Options, ch: str, value: str, roles: dict[str, int]) -> None:
    if ch == "m":
        options.run_choice |= RunChoice.MASTER
        options.profile = value
        roles["client"] += 1
    elif ch == "X":
        options.stats |= StatOption.HISTORY
        options.history_file = value
    elif ch == "i":
        try:
            interval = int(string_to_nsec(value) / 1.0e6)
        except ValueError:
            interval = 0
        if interval == 0:
            raise UsageError(f"Incorrect interval: {value}", show_usage=False)
        options.interval = interval
    elif ch == "P":
        try:
            options.master_port = string_to_int(value)
        except ValueError:
            options.master_port = -1
    elif ch == "S":
        options.control_protocol = protocol_type(value)
        if options.control_protocol == Protocol.UNSUPPORTED:
            raise UsageError(f"Protocol {value} not supported", show_usage=False)


def parse_options(argv: Sequence[str]) -> Options:
    """Parse a full argument vector (program name first) into Options.

    Options are handled in order; -V and -h stop parsing at once and set
    ``action``. Raises UsageError for anything the command line gets wrong.
    """
    args = list(argv)
    if len(args) < 2:
        raise UsageError("")
    options = Options()
    roles = {"server": 0, "client": 0}
    i = 1
    while i < len(args):
        arg = args[i]
        if arg == "--":
            break
        if not arg.startswith("-") or arg == "-":
            break
        j = 1
        while j < len(arg):
            ch = arg[j]
            if ch in _VALUE_OPTIONS:
                value = arg[j + 1:]
                if not value:
                    i += 1
                    if i >= len(args):
                        raise UsageError(f"Unrecognized option: -{ch}", exit_code=0)
                    value = args[i]
                _apply_value(options, ch, value, roles)
                break
            if ch == "V":
                options.action = "version"
                return options
            if ch == "h":
                options.action = "help"
                return options
            if ch in _FLAG_OPTIONS:
                _apply_flag(options, ch, roles)
            else:
                raise UsageError(f"Unrecognized option: -{ch}", exit_code=0)
            j += 1
        i += 1

    if roles["server"] and roles["client"]:
        raise UsageError("Can only be server or client. Not both!")
    if not roles["server"] and not roles["client"]:
        raise UsageError("Please specify server or client.")
    if roles["client"] and not options.profile:
        raise UsageError("Please specify profile for client.")
    return options


def _raise_descriptor_limit() -> None:
    try:
        import resource
    except ImportError:
        return
    try:
        soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
        target = FILE_DESCRIPTOR_LIMIT
        if hard != resource.RLIM_INFINITY:
            target = min(target, hard)
        if soft == resource.RLIM_INFINITY or soft >= target:
            return
        resource.setrlimit(resource.RLIMIT_NOFILE, (target, hard))
    except (OSError, ValueError) as exc:
        printer(LogLevel.VERBOSE, MessageType.WARN,
                f"Unable to increase file descriptors: {exc}\n")


def main(argv: Sequence[str] | None = None) -> int:
    """Check the command line and profile, then describe the run it sets up."""
    args = list(sys.argv if argv is None else argv)
    prog = args[0] if args else "uperf"
    try:
        options = parse_options(args)
    except UsageError as exc:
        if exc.message:
            sys.stdout.write(exc.message + "\n")
        if exc.show_usage:
            sys.stdout.write(usage_text(prog))
        return exc.exit_code

    if options.action == "help":
        sys.stdout.write(usage_text(prog))
        return 0
    if options.action == "version":
        sys.stdout.write(version_text())
        return 0

    set_log_level(options.log_level)

    history = None
    if options.enabled(StatOption.HISTORY):
        try:
            history = open(options.history_file, "w")
        except OSError:
            sys.stdout.write("Cannot open file\n")
            return 1

    try:
        if options.is_master and options.enabled(StatOption.PACKET):
            try:
                NetstatCollector()
            except (OSError, ValueError, RuntimeError):
                printer(LogLevel.NONVERBOSE, MessageType.ERROR,
                        "Will not collect packet statistics\n")
                options.stats &= ~StatOption.PACKET

        workorder = None
        if options.is_master:
            try:
                workorder = load_profile(options.profile)
            except ProfileError as exc:
                sys.stderr.write(f"{exc}\n")
                printer(LogLevel.NONVERBOSE, MessageType.ERROR,
                        f"Error parsing {options.profile}\n")
                return 1

        _raise_descriptor_limit()

        if workorder is not None:
            sys.stdout.write(f"Profile {workorder.name}\n")
            sys.stdout.write(format_workorder(workorder))
        else:
            sys.stdout.write(
                f"Slave on port {options.master_port} "
                f"({options.control_protocol.name.lower()} control)\n"
            )
        return 0
    finally:
        if history is not None:
            history.close()