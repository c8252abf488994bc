import pytest

from uperfkit.flowops import FlowopType
from uperfkit.lexer import ProfileError, parse_symbols
from uperfkit.numbers import string_to_int, string_to_nsec
from uperfkit.profile import build_workorder, format_workorder, load_profile, parse_profile_text
from uperfkit.workload import OptionFlag, Protocol

SAMPLE = """<?xml version="1.0"?>
<profile name="netperf">
  <group nthreads="2">
    <transaction iterations="1">
      <flowop type="connect" options="remotehost=127.0.0.1 protocol=tcp wndsz=50k tcp_nodelay"/>
    </transaction>
    <transaction duration="30s">
      <flowop type="write" options="count=16 size=64k"/>
    </transaction>
    <transaction iterations="1">
      <flowop type="disconnect" />
    </transaction>
  </group>
</profile>
"""


def test_parse_sample_structure():
    work = parse_profile_text(SAMPLE)
    assert work.name == "netperf"
    assert len(work.groups) == 1
    group = work.groups[0]
    assert group.name == "Group0"
    assert group.nthreads == 2
    assert not group.processes
    assert [t.name for t in group.transactions] == ["Txn0", "Txn1", "Txn2"]
    assert [t.txnid for t in group.transactions] == [0, 1, 2]


def test_parse_sample_flowops():
    group = parse_profile_text(SAMPLE).groups[0]
    connect = group.transactions[0].flowops[0]
    assert connect.type == FlowopType.CONNECT
    assert connect.name == "connect"
    assert connect.options.remotehost == "127.0.0.1"
    assert connect.options.protocol == Protocol.TCP
    assert connect.options.wndsz == string_to_int("50k")
    assert connect.options.flag & OptionFlag.TCP_NODELAY
    write = group.transactions[1].flowops[0]
    assert write.type == FlowopType.WRITE
    assert write.options.count == 16
    assert write.options.size == string_to_int("64k")
    assert group.transactions[2].flowops[0].type == FlowopType.DISCONNECT


def test_duration_transaction():
    txn = parse_profile_text(SAMPLE).groups[0].transactions[1]
    assert txn.duration == string_to_nsec("30s")
    assert txn.iterations == 1


def test_group_name_processes_and_rate():
    text = (
        '<profile name="p">\n<group name="g1" nprocs="4">\n'
        '<transaction rate="100" duration="1s">\n<flowop type="nop"/>\n'
        "</transaction>\n</group>\n</profile>\n"
    )
    group = parse_profile_text(text).groups[0]
    assert group.name == "g1"
    assert group.processes
    assert group.nthreads == 4
    txn = group.transactions[0]
    assert txn.rate == "100"
    assert txn.rate_count == 100


def test_transaction_outside_group():
    text = '<profile name="x">\n<transaction iterations="1">\n</transaction>\n</profile>\n'
    with pytest.raises(ProfileError, match="No current group"):
        parse_profile_text(text)


def test_flowop_outside_transaction():
    text = '<profile name="x">\n<group nthreads="1">\n<flowop type="nop"/>\n</group>\n</profile>\n'
    with pytest.raises(ProfileError, match="No current transaction"):
        parse_profile_text(text)


def test_unknown_flowop():
    text = (
        '<profile name="x">\n<group nthreads="1">\n<transaction iterations="1">\n'
        '<flowop type="jump"/>\n</transaction>\n</group>\n</profile>\n'
    )
    with pytest.raises(ProfileError, match="Unknown flowop jump"):
        parse_profile_text(text)


def test_unknown_symbol():
    with pytest.raises(ProfileError, match="Unknown symbol: <foo/>"):
        parse_profile_text('<profile name="x">\n<foo/>\n</profile>\n')


def test_option_errors_reported():
    text = (
        '<profile name="x">\n<group nthreads="1">\n<transaction iterations="1">\n'
        '<flowop type="write" options="bogus=1"/>\n</transaction>\n</group>\n</profile>\n'
    )
    with pytest.raises(ProfileError, match="Option unrecognized"):
        parse_profile_text(text)


def test_empty_profile():
    with pytest.raises(ProfileError):
        parse_profile_text("   ")


def test_build_workorder_keeps_recoverable_errors():
    errors = []
    text = '<profile name="x">\n<group nthreads="zz">\n</group>\n</profile>\n'
    work = build_workorder(parse_symbols(text, errors), errors)
    assert work.groups[0].nthreads == -1
    assert errors == ["Cannot parse zz"]


def test_load_profile(tmp_path):
    path = tmp_path / "p.xml"
    path.write_text(SAMPLE)
    work = load_profile(path)
    assert work.name == "netperf"
    assert len(work.groups[0].transactions) == 3


def test_load_profile_missing(tmp_path):
    with pytest.raises(ProfileError, match="Cannot open file"):
        load_profile(tmp_path / "missing.xml")


def test_load_profile_empty(tmp_path):
    path = tmp_path / "empty.xml"
    path.write_bytes(b"")
    with pytest.raises(ProfileError, match="Zero byte file"):
        load_profile(path)


def test_format_workorder():
    work = parse_profile_text(SAMPLE)
    text = format_workorder(work)
    lines = text.splitlines()
    assert len(lines) == 1 + 3 + 3
    assert lines[0] == "group_t [nthreads = 2, ntxn = 3]"
    assert "remote = 127.0.0.1" in lines[2]