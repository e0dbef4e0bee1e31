"""Command-line options and memory trace files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

CORES = 4

_WHITESPACE = " \t\n\v\f\r"
_WHITESPACE_RE = re.compile(r"[ \t\n\v\f\r]+")
_LEADING_INT_RE = re.compile(r"[ \t\n\v\f\r]*([+-]?\d+)")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_INT_MAX = 2**31 - 1
_VALUE_OPTIONS = frozenset({"-E", "-b", "-s", "-o", "-t"})


class UsageError(ValueError):
    """Raised when the command line cannot be understood."""


class HelpRequested(Exception):
    """Raised when the user asks for help; the message is the help text."""


@dataclass
class Instruction:
    """One memory access from a trace: address, kind and whether it was tried."""

    address: int
    is_write: bool
    processed: bool = False


@dataclass
class SimulationOptions:
    """Settings chosen on the command line."""

    associativity: int = 2
    line_size_bits: int = 5
    set_bits: int = 6
    output_file: str = "output.txt"
    trace_files: list[str] = field(default_factory=list)

    def prefix(self) -> str:
        """The application name the trace files were derived from."""
        first = self.trace_files[0]
        cut = first.rfind("_")
        return first if cut < 0 else first[:cut]


def help_text() -> str:
    """The usage message."""
    return (
        "Usage: ./L1simulate [options]\n"
        "-t <tracefile>: name of parallel application trace file\n"
        "-s <s>: number of set index bits (number of sets = 2^s)\n"
        "-b <b>: number of block bits (block size = 2^b)\n"
        "-E <E>: associativity (number of cache lines per set)\n"
        "-o <outfilename>: logs output in file for plotting\n"
    )


def _parse_int(option: str, text: str) -> int:
    match = _LEADING_INT_RE.match(text)
    if match is None:
        raise UsageError(f"Invalid value for {option}: {text}")
    value = int(match.group(1))
    if not 0 <= value <= _INT_MAX:
        raise UsageError(f"Value out of range for {option}: {text}")
    return value


def parse_args(argv) -> SimulationOptions:
    """Parse command-line arguments (without the program name)."""
    options = SimulationOptions()
    trace_given = False
    tokens = iter(argv)
    for arg in tokens:
        if arg == "-h":
            raise HelpRequested(help_text())
        if arg not in _VALUE_OPTIONS:
            raise UsageError(f"Invalid argument: {arg}")
        value = next(tokens, None)
        if value is None:
            raise UsageError(f"Invalid argument: {arg}")
        if arg == "-E":
            options.associativity = _parse_int(arg, value)
        elif arg == "-b":
            options.line_size_bits = _parse_int(arg, value)
        elif arg == "-s":
            options.set_bits = _parse_int(arg, value)
        elif arg == "-o":
            options.output_file = value
        else:
            if trace_given:
                raise UsageError("Error: -t option can only be specified once.")
            trace_given = True
            options.trace_files = [f"{value}_proc{core}.trace" for core in range(CORES)]
    if not trace_given:
        raise UsageError("No application name provided. Use -t <appName>.")
    return options


def parse_trace_line(line: str) -> Instruction:
    """Parse one trace line of the form ``R 0x1234`` or ``W 0x1234``."""
    stripped = line.lstrip(_WHITESPACE)
    if not stripped:
        raise ValueError(f"Invalid line format in trace file: {line}")
    op, rest = stripped[0], stripped[1:]
    fields = [token for token in _WHITESPACE_RE.split(rest) if token]
    if len(fields) != 1:
        raise ValueError(f"Invalid line format in trace file: {line}")
    if op not in ("R", "W"):
        raise ValueError(f"Invalid operation in trace file: {line}")
    address_text = fields[0]
    if (
        len(address_text) > 10
        or address_text[:2] != "0x"
        or not set(address_text[2:]) <= _HEX_DIGITS
    ):
        raise ValueError(f"Invalid hexadecimal address in trace file: {line}")
    return Instruction(address=int(address_text[2:] or "0", 16), is_write=op == "W")


def parse_trace_file(path) -> list[Instruction]:
    """Read every instruction from a trace file."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise OSError(f"Failed to open trace file: {path}") from exc
    lines = data.decode("latin-1").split("\n")
    if lines[-1] == "":
        lines.pop()
    return [parse_trace_line(line) for line in lines]