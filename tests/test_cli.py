import pytest

from uperfkit.cli import (
    Options,
    RunChoice,
    StatOption,
    UsageError,
    main,
    parse_options,
    usage_text,
    version_text,
)
from uperfkit.workload import Protocol

PROFILE = """<?xml version="1.0"?>
<profile name="demo">
  <group nthreads="2">
    <transaction iterations="1">
      <flowop type="connect" options="remotehost=127.0.0.1 protocol=tcp"/>
    </transaction>
  </group>
</profile>
"""


def test_slave_defaults():
    options = parse_options(["prog", "-s"])
    assert options.is_slave and not options.is_master
    assert options.master_port == 20000
    assert options.interval == 1000
    assert options.control_protocol == Protocol.TCP
    assert options.stats == StatOption.ERROR | StatOption.PACKET
    assert options.action == "run"


def test_master_with_attached_profile():
    options = parse_options(["prog", "-mfile.xml"])
    assert options.is_master
    assert options.profile == "file.xml"
    assert options.run_choice == RunChoice.MASTER


def test_grouped_flags():
    options = parse_options(["prog", "-sTgv"])
    assert options.enabled(StatOption.THREAD)
    assert options.enabled(StatOption.GROUP)
    assert options.log_level == 2


def test_no_stats_resets_everything():
    options = parse_options(["prog", "-s", "-n"])
    assert options.stats == StatOption.NO_STATS
    assert not options.stats_enabled


def test_all_stats():
    options = parse_options(["prog", "-s", "-a"])
    for flag in (StatOption.FLOWOP, StatOption.TXN, StatOption.PACKET,
                 StatOption.THREAD, StatOption.ERROR, StatOption.GROUP):
        assert options.enabled(flag)


def test_utilization_implies_flowop():
    options = parse_options(["prog", "-s", "-p"])
    assert options.enabled(StatOption.UTILIZATION)
    assert options.enabled(StatOption.FLOWOP)


def test_interval_in_milliseconds():
    options = parse_options(["prog", "-s", "-i", "2s"])
    assert options.interval == 2000


def test_bad_interval():
    with pytest.raises(UsageError) as info:
        parse_options(["prog", "-s", "-i", "abc"])
    assert info.value.exit_code == 1
    assert not info.value.show_usage


def test_port_and_protocol():
    options = parse_options(["prog", "-s", "-P", "3000", "-S", "udp"])
    assert options.master_port == 3000
    assert options.control_protocol == Protocol.UDP


def test_unsupported_protocol():
    with pytest.raises(UsageError) as info:
        parse_options(["prog", "-s", "-S", "bogus"])
    assert "not supported" in info.value.message


def test_history_file_option():
    options = parse_options(["prog", "-s", "-X", "out.txt"])
    assert options.history_file == "out.txt"
    assert options.enabled(StatOption.HISTORY)


def test_server_and_client_conflict():
    with pytest.raises(UsageError) as info:
        parse_options(["prog", "-s", "-m", "p.xml"])
    assert info.value.message == "Can only be server or client. Not both!"
    assert info.value.exit_code == 1


def test_neither_role():
    with pytest.raises(UsageError) as info:
        parse_options(["prog", "-v"])
    assert info.value.message == "Please specify server or client."


def test_no_arguments():
    with pytest.raises(UsageError) as info:
        parse_options(["prog"])
    assert info.value.exit_code == 1


def test_unrecognized_option_exits_zero():
    with pytest.raises(UsageError) as info:
        parse_options(["prog", "-Z"])
    assert info.value.exit_code == 0
    assert "-Z" in info.value.message


def test_missing_argument():
    with pytest.raises(UsageError) as info:
        parse_options(["prog", "-m"])
    assert info.value.exit_code == 0


def test_version_stops_parsing():
    options = parse_options(["prog", "-V", "-S", "bogus"])
    assert options.action == "version"


def test_help_action():
    assert parse_options(["prog", "-h"]).action == "help"


def test_options_default_dataclass():
    assert Options().run_choice == RunChoice.NONE


def test_usage_and_version_text():
    assert "-m <profile>" in usage_text("prog")
    assert "prog [-s]" in usage_text("prog")
    assert "Supported protocols: TCP, UDP" in version_text()


def test_main_without_arguments(capsys):
    assert main(["prog"]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_main_help(capsys):
    assert main(["prog", "-h"]) == 0
    assert "-s\t\t Slave" in capsys.readouterr().out


def test_main_version(capsys):
    assert main(["prog", "-V"]) == 0
    assert "Supported protocols" in capsys.readouterr().out


def test_main_master_profile(tmp_path, capsys):
    profile = tmp_path / "demo.xml"
    profile.write_text(PROFILE)
    history = tmp_path / "history.txt"
    assert main(["prog", "-n", "-X", str(history), "-m", str(profile)]) == 0
    out = capsys.readouterr().out
    assert "nthreads = 2" in out
    assert "Profile demo" in out
    assert history.exists()


def test_main_bad_profile(tmp_path):
    profile = tmp_path / "bad.xml"
    profile.write_text("<profile>\n<flowop type=\"read\"/>\n</profile>\n")
    assert main(["prog", "-n", "-m", str(profile)]) == 1


def test_main_missing_profile(tmp_path):
    assert main(["prog", "-n", "-m", str(tmp_path / "absent.xml")]) == 1


def test_main_bad_protocol(capsys):
    assert main(["prog", "-s", "-S", "bogus"]) == 1
    out = capsys.readouterr().out
    assert "Protocol bogus not supported" in out
    assert "Usage:" not in out


def test_main_slave(capsys):
    assert main(["prog", "-s", "-P", "4000"]) == 0
    assert "4000" in capsys.readouterr().out