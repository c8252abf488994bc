"""Parsing of a flowop's options string into its settings."""

from __future__ import annotations

import os
import re

from uperfkit.numbers import string_to_int, string_to_nsec
from uperfkit.workload import ANY_CONNECTION, Flowop, OptionFlag, Protocol, protocol_type

MAX_OPTIONS = 100
OPTION_LEN = 100
PR_POLICY_LEN = 8

_ATOI = re.compile(r"\s*([+-]?\d+)")

_FLAG_OPTIONS = {
    "tcp_nodelay": OptionFlag.TCP_NODELAY,
    "busy": OptionFlag.THINK_BUSY,
    "idle": OptionFlag.THINK_IDLE,
    "canfail": OptionFlag.CANFAIL,
    "non_blocking": OptionFlag.NONBLOCKING,
    "sctp_unordered": OptionFlag.SCTP_UNORDERED,
    "sctp_nodelay": OptionFlag.SCTP_NODELAY,
}

_TEXT_OPTIONS = {
    "remotehost": "remotehost",
    "localhost": "localhost",
    "cc": "cc",
    "stack": "stack",
    "engine": "engine",
    "cipher": "cipher",
    "method": "method",
}

_SIZE_OPTIONS = {"rsize": "rsize", "nfiles": "nfiles", "wndsz": "wndsz"}

# key -> (attribute, lowest accepted, highest accepted or None)
_RANGED_OPTIONS = {
    "encaps": ("encaps_port", 0, 65535),
    "sctp_rto_min": ("sctp_rto_min", 0, None),
    "sctp_rto_max": ("sctp_rto_max", 0, None),
    "sctp_rto_initial": ("sctp_rto_initial", 0, None),
    "sctp_sack_delay": ("sctp_sack_delay", 0, None),
    "sctp_sack_frequency": ("sctp_sack_frequency", 0, None),
    "sctp_max_burst_size": ("sctp_max_burst_size", 0, None),
    "sctp_max_fragment_size": ("sctp_max_fragment_size", 0, None),
    "sctp_hb_interval": ("sctp_hb_interval", 0, None),
    "sctp_path_mtu": ("sctp_path_mtu", 0, None),
    "sctp_in_streams": ("sctp_in_streams", 1, 65535),
    "sctp_out_streams": ("sctp_out_streams", 1, 65535),
    "sctp_stream_id": ("sctp_stream_id", 0, 65535),
    "sctp_pr_value": ("sctp_pr_value", 0, None),
}

_TIME_OPTIONS = {"timeout": "poll_timeout", "duration": "duration"}


def _atoi(text: str) -> int:
    match = _ATOI.match(text)
    return int(match.group(1)) if match else 0


def _string2int(value: str | None, errors: list[str]) -> int:
    """Convert a size, recording a parse error and giving -1 when it is malformed."""
    if value is None:
        return -1
    try:
        return string_to_int(value)
    except ValueError:
        errors.append(f"Cannot parse {value}")
        return -1


def _string2nsec(value: str, errors: list[str]) -> int:
    """Convert a duration, recording an error and giving 0 when it is malformed."""
    try:
        result = string_to_nsec(value)
    except ValueError:
        result = 0
    if result == 0:
        errors.append(f"Cannot convert {value} to nsecs")
    return result


def _strip_spaces(text: str) -> str:
    return text.strip(" ")


def parse_size(flowop: Flowop, value: str) -> int:
    """Parse ``size=``: a plain size, or rand(min,max) which sets the random-size range.

    Returns the size, or 0 for a random size. Raises ValueError if neither form fits.
    """
    try:
        size = string_to_int(value)
    except ValueError:
        size = -1
    if size > 0:
        return size
    if value[:5].lower() == "rand(":
        low, _, rest = value[5:].partition(",")
        high = rest.split(")", 1)[0] if rest else None
        options = flowop.options
        scratch: list[str] = []
        options.rand_sz_min = _string2int(_strip_spaces(low), scratch)
        options.rand_sz_max = _string2int(
            _strip_spaces(high) if high is not None else None, scratch
        )
        options.flag |= OptionFlag.SIZE_RAND
        if options.rand_sz_min > 0 and options.rand_sz_max > 0:
            return 0
    raise ValueError(f"Could not parse {value}")


def parse_option(option: str, flowop: Flowop, errors: list[str]) -> None:
    """Apply one option (a flag or key=value) to ``flowop``; problems go to ``errors``."""
    options = flowop.options
    flag = _FLAG_OPTIONS.get(option.lower())
    if flag is not None:
        options.flag |= flag
        return

    key, _, value = option.partition("=")
    if not value:
        errors.append(f"option {key} is not of type key=value")
        return

    if value.startswith("$"):
        resolved = os.environ.get(value[1:])
        if resolved is None:
            errors.append(f"Env variable {key} = {value} not set")
            return
        value = resolved

    name = key.lower()
    if name == "size":
        try:
            options.size = parse_size(flowop, value)
        except ValueError:
            options.size = -1
            errors.append(f"Could not parse {value}")
    elif name in _SIZE_OPTIONS:
        setattr(options, _SIZE_OPTIONS[name], _string2int(value, errors))
    elif name == "dir":
        options.dir = value
    elif name == "count":
        options.count = _atoi(value)
    elif name == "port":
        options.port = _atoi(value)
    elif name == "protocol":
        options.protocol = protocol_type(value)
        if options.protocol == Protocol.UNSUPPORTED:
            errors.append(f"Protocol {value} not supported")
    elif name == "conn":
        flowop.connection_id = _atoi(value)
        if flowop.connection_id <= 0:
            errors.append(f"connection id (conn={value}) should be > 0")
    elif name in _TEXT_OPTIONS:
        setattr(options, _TEXT_OPTIONS[name], value)
    elif name == "sctp_pr_policy":
        options.sctp_pr_policy = value[: PR_POLICY_LEN - 1]
    elif name in _TIME_OPTIONS:
        result = _string2nsec(value, errors)
        setattr(options, _TIME_OPTIONS[name], result)
        if result == 0:
            errors.append(f"Cannot understand {name}:{value}")
    elif name in _RANGED_OPTIONS:
        attribute, low, high = _RANGED_OPTIONS[name]
        result = _string2int(value, errors)
        if result >= low and (high is None or result <= high):
            setattr(options, attribute, result)
        else:
            errors.append(f"Cannot understand {name}:{value}")
    else:
        errors.append(f"parser - Option unrecognized {key}={value}")


def parse_flowop_options(text: str, flowop: Flowop, errors: list[str]) -> None:
    """Reset ``flowop``'s defaults and apply each whitespace-separated option in ``text``.

    Words not starting with a letter are ignored.
    """
    options = flowop.options
    options.count = 1
    options.size = 0
    options.duration = 0
    flowop.connection_id = ANY_CONNECTION

    words = [
        word[: OPTION_LEN - 1]
        for word in re.split(r"[ \t]+", text)
        if word and word[0].isascii() and word[0].isalpha()
    ]
    for word in words[:MAX_OPTIONS]:
        parse_option(word, flowop, errors)