import pytest

from uperfkit.flowop_options import parse_flowop_options, parse_option, parse_size
from uperfkit.numbers import string_to_int, string_to_nsec
from uperfkit.workload import ANY_CONNECTION, Flowop, OptionFlag, Protocol


def _apply(option):
    flowop = Flowop()
    errors = []
    parse_option(option, flowop, errors)
    return flowop, errors


def test_parse_size_plain():
    flowop = Flowop()
    assert parse_size(flowop, "64k") == string_to_int("64k")
    assert not flowop.options.random_size()


def test_parse_size_random_range():
    flowop = Flowop()
    assert parse_size(flowop, "rand(1,8k)") == 0
    assert flowop.options.random_size()
    assert flowop.options.rand_sz_min == 1
    assert flowop.options.rand_sz_max == string_to_int("8k")


def test_parse_size_random_with_spaces_inside():
    flowop = Flowop()
    assert parse_size(flowop, "rand( 2 ,3 )") == 0
    assert (flowop.options.rand_sz_min, flowop.options.rand_sz_max) == (2, 3)


@pytest.mark.parametrize("value", ["0", "abc", "rand(0,5)", "rand(5)"])
def test_parse_size_rejects(value):
    with pytest.raises(ValueError):
        parse_size(Flowop(), value)


@pytest.mark.parametrize(
    "option, flag",
    [
        ("tcp_nodelay", OptionFlag.TCP_NODELAY),
        ("BUSY", OptionFlag.THINK_BUSY),
        ("idle", OptionFlag.THINK_IDLE),
        ("canfail", OptionFlag.CANFAIL),
        ("non_blocking", OptionFlag.NONBLOCKING),
    ],
)
def test_flag_options(option, flag):
    flowop, errors = _apply(option)
    assert flowop.options.flag & flag
    assert errors == []


def test_count_and_port():
    flowop, errors = _apply("count=5")
    assert flowop.options.count == 5
    flowop, errors = _apply("port=20000")
    assert flowop.options.port == 20000
    assert errors == []


def test_protocol_known_and_unknown():
    flowop, errors = _apply("protocol=udp")
    assert flowop.options.protocol == Protocol.UDP
    assert errors == []
    flowop, errors = _apply("protocol=foo")
    assert errors == ["Protocol foo not supported"]


def test_connection_id():
    flowop, errors = _apply("conn=3")
    assert flowop.connection_id == 3
    _, errors = _apply("conn=0")
    assert errors == ["connection id (conn=0) should be > 0"]


def test_option_without_value():
    _, errors = _apply("size")
    assert errors == ["option size is not of type key=value"]


def test_unrecognized_option():
    _, errors = _apply("bogus=1")
    assert errors == ["parser - Option unrecognized bogus=1"]


def test_size_error_reported():
    flowop, errors = _apply("size=xyz")
    assert flowop.options.size == -1
    assert "Could not parse xyz" in errors


def test_environment_value(monkeypatch):
    monkeypatch.setenv("UPERFKIT_TEST_HOST", "10.0.0.9")
    flowop, errors = _apply("remotehost=$UPERFKIT_TEST_HOST")
    assert flowop.options.remotehost == "10.0.0.9"
    assert errors == []


def test_environment_value_missing(monkeypatch):
    monkeypatch.delenv("UPERFKIT_MISSING", raising=False)
    _, errors = _apply("remotehost=$UPERFKIT_MISSING")
    assert errors == ["Env variable remotehost = $UPERFKIT_MISSING not set"]


def test_duration_and_timeout():
    flowop, errors = _apply("duration=10ms")
    assert flowop.options.duration == string_to_nsec("10ms")
    flowop, errors2 = _apply("timeout=2s")
    assert flowop.options.poll_timeout == string_to_nsec("2s")
    assert errors == errors2 == []


def test_bad_timeout():
    _, errors = _apply("timeout=abc")
    assert "Cannot understand timeout:abc" in errors


def test_ranged_options():
    flowop, errors = _apply("encaps=4789")
    assert flowop.options.encaps_port == 4789
    assert errors == []
    _, errors = _apply("encaps=70000")
    assert errors == ["Cannot understand encaps:70000"]
    _, errors = _apply("sctp_in_streams=0")
    assert errors == ["Cannot understand sctp_in_streams:0"]


def test_window_size():
    flowop, errors = _apply("wndsz=50k")
    assert flowop.options.wndsz == string_to_int("50k")
    assert errors == []


def test_parse_flowop_options_resets_and_applies():
    flowop = Flowop()
    flowop.options.count = 9
    flowop.connection_id = 4
    errors = []
    parse_flowop_options("size=64k\tremotehost=host1 1=2 tcp_nodelay", flowop, errors)
    assert errors == []
    assert flowop.options.count == 1
    assert flowop.connection_id == ANY_CONNECTION
    assert flowop.options.size == string_to_int("64k")
    assert flowop.options.remotehost == "host1"
    assert flowop.options.flag & OptionFlag.TCP_NODELAY


def test_parse_flowop_options_collects_all_errors():
    flowop = Flowop()
    errors = []
    parse_flowop_options("bogus=1 protocol=foo", flowop, errors)
    assert len(errors) == 2