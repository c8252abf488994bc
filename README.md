# uperfkit

uperfkit holds the building blocks of a network benchmark. It reads
workload profiles that describe groups of threads or processes, the
transactions they run and the flow operations (connect, read, write,
think, ...) inside each transaction. It encodes and decodes the binary
control messages a master and its slaves exchange, and it samples
per-interface packet counters before and after a run.

## Modules

- `uperfkit.numbers`: sizes and durations written for people.
  `string_to_int("64k")` gives 65536 (suffixes B, K, M, G, T, P, E, Z
  scale by powers of 1024); `string_to_nsec("20ms")` gives nanoseconds,
  and a bare number counts as seconds. Both raise `ValueError` on bad
  input, and a value starting with `$` is read from that environment
  variable. `decimal_to_string`, `format_decimal` and `format_time`
  render byte counts, bit rates and durations for reports.
- `uperfkit.flowops`: the `FlowopType` and `ThinkType` enums,
  `flowop_type(name)` (case-insensitive lookup, unknown names give
  `FlowopType.ERROR`) and `flowop_opposite(kind)`, the operation the
  peer runs (read/write, send/recv, accept/connect).
- `uperfkit.workload`: the data model: `Workorder`, `Group`,
  `Transaction`, `Flowop`, `FlowopOptions`, the `Protocol` enum with
  `protocol_type(name)`, and `OptionFlag`.
- `uperfkit.lexer`: `tokenize`, `token_type`, `resolve_symbol` and
  `parse_symbols`, which split profile text into classified `Symbol`s.
  Problems raise `ProfileError`.
- `uperfkit.flowop_options`: `parse_flowop_options`, `parse_option` and
  `parse_size` for a flowop's `options="..."` string, for example
  `size=8k`, `size=rand(1,8k)`, `count=10`, `protocol=tcp`,
  `remotehost=...`, `conn=1`, `duration=5s`, `timeout=1s`, `wndsz=64k`,
  and the flags `tcp_nodelay`, `busy`, `idle`, `canfail` and
  `non_blocking`.
- `uperfkit.profile`: `load_profile(path)` and `parse_profile_text(text)`
  return a `Workorder` or raise `ProfileError` listing every error found;
  `format_workorder` describes it line by line; `build_workorder` turns
  symbols into a workorder.
- `uperfkit.commands`: `Command` and `CommandMessage` (`pack`/`unpack`),
  `send_command` and `receive_command` on a socket, and the exact-length
  helpers `send_all` and `recv_exact`. Malformed or cut-off messages
  raise `ProtocolError`.
- `uperfkit.goodbye`: the end-of-run `Goodbye` with its `GoodbyeStat`
  totals and `MessageKind`; `pack`, `unpack`, `byteswapped`,
  `send_goodbye` and `recv_goodbye(sock, timeout)` with the timeout in
  milliseconds.
- `uperfkit.netstat`: `NetstatCollector` reads `/proc/net/dev` on Linux
  or `netstat -bi` on FreeBSD and macOS (or any callable or file you
  pass as `source`), takes start and end samples with `snap(begin=...)`
  and renders packet and bit rates with `report()`. The header and line
  parsers `parse_linux_header`, `parse_bsd_header` and `parse_counters`
  are available on their own.
- `uperfkit.messagelog`: `MessageLog`, a thread-safe log that folds
  repeated messages into one entry with a count, and `printer` /
  `set_log_level` for verbosity-filtered output.
- `uperfkit.cli`: `parse_options`, the `Options` it returns, and
  `main`.

## A profile

```xml
<?xml version="1.0"?>
<profile name="netperf">
  <!-- one thread writing for 30 seconds -->
  <group nthreads="1">
    <transaction iterations="1">
      <flowop type="connect" options="remotehost=$h protocol=tcp"/>
    </transaction>
    <transaction duration="30s">
      <flowop type="write" options="count=16 size=64k"/>
    </transaction>
    <transaction iterations="1">
      <flowop type="disconnect"/>
    </transaction>
  </group>
</profile>
```

An option value starting with `$` is taken from the environment
variable of that name (here `h` must be set), and an unset variable is
reported as an error. Comments and the `<?xml ...?>` line are skipped.
`load_profile` treats the last byte of the file as its end, so the file
should end with a newline.

```python
from uperfkit.profile import load_profile, format_workorder

workorder = load_profile("netperf.xml")
print(format_workorder(workorder))
```

## Command line

Installing the package gives the `uperfkit` command:

```
uperfkit -m netperf.xml      # check a profile and print its summary
uperfkit -s                  # print the slave's port and control protocol
uperfkit -V                  # print the version
uperfkit -h                  # print all options
```

The statistics flags (`-n`, `-T`, `-t`, `-f`, `-g`, `-k`, `-p`, `-a`,
`-R`), `-X <file>` (opens the file for writing), the interval `-i`
(at least one millisecond), the master port `-P` and the control
protocol `-S` are parsed and checked; `-v` turns on verbose output.
Exactly one of `-m` and `-s` must be given.

## What it does not do

The command does not run a benchmark. It parses and validates the
command line and the profile and describes the run they set up, but it
starts no threads or processes, opens no control or data connections,
performs no handshake with slaves, executes no flowops, and has no
sleeping or busy-spinning delays. The message formats and counter
sampling are there for a program that does.

## Tests

```
pip install -e .[test]
pytest
```