# mesisim

`mesisim` simulates a four-core machine in which each core has a private L1
data cache. The caches are kept coherent with MESI line states over one
central snooping bus, and each set replaces its lines in least-recently-used
order. The simulator advances one clock cycle at a time until every core has
run its whole trace, then prints the cycle count, the cache configuration and
a per-core and bus report.

## Installation

```
pip install .
```

Python 3.10 or later is needed. There are no run-time dependencies; the tests
use pytest (`pip install .[test]`).

## Trace files

An application is a set of four trace files, one per core, named
`<app>_proc0.trace` to `<app>_proc3.trace`. Each line holds one memory access:
an operation followed by a hexadecimal address written `0x` plus at most eight
hex digits:

```
R 0x7e1afe78
W 0x000001a4
```

`R` is a read and `W` is a write. Any other operation, a malformed address, a
missing address or extra fields on a line is an error.

## Running a simulation

```
mesisim -t app -s 6 -b 5 -E 2
```

| Option | Meaning | Default |
|--------|---------|---------|
| `-t <app>` | application name; loads `<app>_proc0.trace` ... `<app>_proc3.trace` (may be given once) | required |
| `-s <s>` | number of set index bits (2^s sets) | 6 |
| `-b <b>` | number of block bits (2^b bytes per line) | 5 |
| `-E <E>` | associativity (lines per set) | 2 |
| `-o <file>` | output file name | `output.txt` |
| `-h` | print the help text and exit | |

On success the command prints `Simulation completed in N cycles.`, then the
simulation parameters (set bits, associativity, block size, number of sets,
cache size in KB per core), one block of statistics per core, and an overall
bus summary. An unknown option, a bad value, a missing `-t`, an unreadable or
malformed trace file, or an inconsistent simulation state prints
`Error: ...` on standard error and exits with status 1.

## Inspecting traces

```
mesisim-dump -t app
```

This parses the same options, prints them and the four trace file names, then
lists every instruction of each file as `Read`/`Write`, the address in
decimal, and its processed flag. Use it to check that traces are read as you
expect before running a simulation.

## Library use

- `mesisim.trace`: `parse_args`, `parse_trace_file`, `parse_trace_line`,
  `help_text`, `SimulationOptions` (with `prefix()`), `Instruction`,
  `UsageError`, `HelpRequested`
- `mesisim.cache`: `Cache` (`process_instruction`, `snoop`, `set_for`,
  `finished`), `CacheSet` (`lookup`, `add_tag`), `CacheLine`, `LineState`,
  `TransactionType`, `BusTransaction`, `SimulationError`
- `mesisim.bus`: `Bus` (`run_cycle`, `transaction_over`) and
  `simulate(caches)`, which runs the given caches until all have finished and
  returns the bus and the number of cycles
- `mesisim.report`: `format_parameters`, `format_core_statistics`,
  `format_bus_summary`, each returning the report text

## Limitations

- The statistics counters are reported but not counted during a run: reads,
  execution and idle cycles, misses, evictions, writebacks, invalidations,
  data traffic, and the bus transaction and traffic totals all print as 0.
  Consequently every instruction is reported as a write and the miss rate is
  0%. Only the instruction totals and the total cycle count are meaningful.
- `-o` is accepted and stored, but nothing is written to that file; all
  output goes to the terminal.
- The command always simulates exactly four cores.