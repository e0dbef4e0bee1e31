"""Command-line entry points for the simulator."""

from __future__ import annotations

import sys

from .bus import simulate
from .cache import Cache, SimulationError
from .report import format_bus_summary, format_core_statistics, format_parameters
from .trace import HelpRequested, parse_args, parse_trace_file


def _options(argv):
    return parse_args(sys.argv[1:] if argv is None else argv)


def main(argv=None) -> int:
    """Run the four-core simulation and print its report."""
    try:
        options = _options(argv)
        caches = [
            Cache(
                options.line_size_bits,
                options.associativity,
                options.set_bits,
                parse_trace_file(path),
            )
            for path in options.trace_files
        ]
        bus, cycles = simulate(caches)
    except HelpRequested as request:
        print(request, end="")
        return 0
    except (ValueError, OSError, SimulationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Simulation completed in {cycles} cycles.")
    print(
        format_parameters(
            options.set_bits, options.associativity, options.line_size_bits, options.prefix()
        ),
        end="",
    )
    print(format_core_statistics(caches), end="")
    print(format_bus_summary(bus), end="")
    return 0


def dump(argv=None) -> int:
    """Print the parsed options and every instruction of the trace files."""
    try:
        options = _options(argv)
        print(f"Associativity: {options.associativity}")
        print(f"Block Bits: {options.line_size_bits}")
        print(f"Set Bits: {options.set_bits}")
        print(f"Output File Name: {options.output_file}")
        print("Trace Files:")
        for path in options.trace_files:
            print(f"  {path}")
        for path in options.trace_files:
            instructions = parse_trace_file(path)
            print(f"Instructions from {path}:")
            for instruction in instructions:
                kind = "Write" if instruction.is_write else "Read"
                print(f"{kind} {instruction.address} {int(instruction.processed)}")
    except HelpRequested as request:
        print(request, end="")
        return 0
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())