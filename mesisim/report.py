"""Text reports of the simulation settings and results."""

from __future__ import annotations

from typing import Iterable

from .bus import Bus
from .cache import Cache


def format_parameters(set_bits: int, associativity: int, block_bits: int, trace_prefix: str) -> str:
    """Describe the simulated cache configuration."""
    block_size = 1 << block_bits
    set_count = 1 << set_bits
    size_kb = (set_count * associativity * block_size) // 1024
    return (
        "Simulation Parameters:\n"
        f"Trace Prefix: {trace_prefix}\n"
        f"Set Index Bits: {set_bits}\n"
        f"Associativity: {associativity}\n"
        f"Block Bits: {block_bits}\n"
        f"Block Size (Bytes): {block_size}\n"
        f"Number of Sets: {set_count}\n"
        f"Cache Size (KB per core): {size_kb}\n"
        "MESI Protocol: Enabled\n"
        "Write Policy: Write-back, Write-allocate\n"
        "Replacement Policy: LRU\n"
        "Bus: Central snooping bus\n\n"
    )


def format_core_statistics(cores: Iterable[Cache]) -> str:
    """Per-core counters, one block per core."""
    blocks = []
    for index, core in enumerate(cores):
        total = len(core.instructions)
        miss_rate = core.misses // total if total else 0
        blocks.append(
            f"Core {index} Statistics:\n"
            f"Total Instructions: {total}\n"
            f"Total Reads: {core.read_instructions}\n"
            f"Total Writes: {total - core.read_instructions}\n"
            f"Total Execution Cycles: {core.execution_cycles}\n"
            f"Idle Cycles: {core.idle_cycles}\n"
            f"Cache Misses: {core.misses}\n"
            f"Cache Miss Rate: {miss_rate}%\n"
            f"Cache Evictions: {core.evictions}\n"
            f"Writebacks: {core.writebacks}\n"
            f"Bus Invalidations: {core.invalidations}\n"
            f"Data Traffic (Bytes): {core.byte_traffic}\n\n"
        )
    return "".join(blocks)


def format_bus_summary(bus: Bus) -> str:
    """Totals for the shared bus."""
    return (
        "Overall Bus Summary:\n"
        f"Total Bus Transactions: {bus.total_transactions}\n"
        f"Total Bus Traffic (Bytes): {bus.total_traffic}\n"
    )