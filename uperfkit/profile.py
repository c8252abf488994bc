"""Building a workorder from a profile's symbols, and loading profiles."""

from __future__ import annotations

import os
from collections.abc import Iterable

from uperfkit.flowop_options import _string2int, _string2nsec, parse_flowop_options
from uperfkit.flowops import FlowopType, flowop_type
from uperfkit.lexer import ProfileError, Symbol, TokenType, parse_symbols
from uperfkit.workload import NAME_LEN, Flowop, Group, Transaction, Workorder


def _name(text: str) -> str:
    return text[: NAME_LEN - 1]


def build_workorder(symbols: Iterable[Symbol], errors: list[str]) -> Workorder:
    """Turn a symbol list into a Workorder.

    Recoverable problems are appended to ``errors``; a structural problem
    raises ProfileError.
    """
    workorder = Workorder()
    group: Group | None = None
    txn: Transaction | None = None
    flowop: Flowop | None = None
    txnid = 0
    fid = 0
    in_group = False
    in_txn = False

    def need_txn() -> Transaction:
        if not in_txn or txn is None:
            raise ProfileError("No current transaction")
        return txn

    def need_group() -> Group:
        if not in_group or group is None:
            raise ProfileError("No current group")
        return group

    def need_flowop() -> Flowop:
        if flowop is None:
            raise ProfileError("No current flowop")
        return flowop

    for sym in symbols:
        kind = sym.type
        if kind in (TokenType.PROFILE_START, TokenType.PROFILE_END, TokenType.XML_END):
            continue
        if kind == TokenType.GROUP_START:
            index = len(workorder.groups)
            group = Group(name=f"Group{index}", groupid=index)
            workorder.groups.append(group)
            txn = None
            flowop = None
            txnid = 0
            in_group = True
        elif kind == TokenType.GROUP_END:
            in_group = False
        elif kind == TokenType.TXN_START:
            current_group = need_group()
            txn = Transaction(name=f"Txn{txnid}", txnid=txnid, iterations=1)
            current_group.transactions.append(txn)
            txnid += 1
            flowop = None
            fid = 0
            in_txn = True
        elif kind == TokenType.TXN_END:
            in_txn = False
        elif kind == TokenType.FLOWOP_START:
            current_txn = need_txn()
            flowop = Flowop(id=fid)
            current_txn.flowops.append(flowop)
            fid += 1
        elif kind == TokenType.NAME:
            if in_group and group is not None:
                group.name = _name(sym.symbol)
            else:
                workorder.name = _name(sym.symbol)
        elif kind == TokenType.ITERATIONS:
            need_txn().iterations = _string2int(sym.symbol, errors)
        elif kind == TokenType.TYPE:
            current = need_flowop()
            current.type = flowop_type(sym.symbol)
            if current.type == FlowopType.ERROR:
                raise ProfileError(f"Unknown flowop {sym.symbol}")
            current.name = sym.symbol
        elif kind == TokenType.OPTIONS:
            parse_flowop_options(sym.symbol, need_flowop(), errors)
        elif kind == TokenType.RATE:
            current_txn = need_txn()
            current_txn.rate = _name(sym.symbol)
            current_txn.rate_count = _string2int(sym.symbol, errors)
        elif kind == TokenType.DURATION:
            current_txn = need_txn()
            current_txn.duration = _string2nsec(sym.symbol, errors)
            current_txn.iterations = 1
        elif kind == TokenType.NTHREADS:
            need_group().nthreads = _string2int(sym.symbol, errors)
        elif kind == TokenType.NPROCESSES:
            current_group = need_group()
            current_group.nthreads = _string2int(sym.symbol, errors)
            current_group.processes = True
        else:
            raise ProfileError(f"Unknown symbol: {sym.symbol}")
    return workorder


def parse_profile_text(text: str) -> Workorder:
    """Parse profile text; raises ProfileError listing every error found."""
    errors: list[str] = []
    symbols = parse_symbols(text, errors)
    try:
        workorder = build_workorder(symbols, errors)
    except ProfileError as exc:
        errors.append(str(exc))
    if errors:
        raise ProfileError(
            "\n".join(f"Error {number}: {message}" for number, message in enumerate(errors, 1))
        )
    return workorder


def load_profile(path: str | os.PathLike[str]) -> Workorder:
    """Read and parse a profile file; raises ProfileError on any failure."""
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise ProfileError(f"Cannot open file {path}: {exc.strerror}") from exc
    if not data:
        raise ProfileError("Zero byte file!")
    # The final byte of the file is taken as the end of the text.
    return parse_profile_text(data[:-1].decode("utf-8", errors="replace"))


def format_workorder(workorder: Workorder) -> str:
    """Describe every group, transaction and flowop, one per line."""
    lines = []
    for group in workorder.groups:
        lines.append(
            f"group_t [nthreads = {group.nthreads}, ntxn = {len(group.transactions)}]"
        )
        for txn in group.transactions:
            lines.append(
                f"\ttxn_t [iter = {txn.iterations}, nflowops = {len(txn.flowops)}, "
                f"duration = {txn.duration}, rate = {txn.rate}]"
            )
            for flowop in txn.flowops:
                opts = flowop.options
                lines.append(
                    f"\t\tflowop_t [type = {flowop.name}, local = {opts.localhost}, "
                    f"remote = {opts.remotehost}, protocol = {int(opts.protocol)}, "
                    f"duration = {opts.duration}]"
                )
    return "".join(line + "\n" for line in lines)