"""Per-core L1 caches with MESI line states and LRU replacement."""

from __future__ import annotations

import enum
import itertools
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from .trace import Instruction

DEFAULT_ASSOCIATIVITY = 4
DEFAULT_LINE_SIZE_BITS = 6
DEFAULT_SET_BITS = 6


class SimulationError(RuntimeError):
    """Raised when the simulation reaches an inconsistent state."""


class LineState(enum.Enum):
    """MESI state of a cache line."""

    M = "M"
    E = "E"
    S = "S"
    I = "I"  # noqa: E741


class TransactionType(enum.Enum):
    """Kind of request a cache puts on the bus."""

    READ = "Rd"
    READ_EXCLUSIVE = "RdX"
    WRITE_INVALIDATE = "WriteInvalidate"
    NONE = "None"


@dataclass(frozen=True)
class BusTransaction:
    """A request on the bus; ``value`` is an address or, for invalidations, a tag."""

    type: TransactionType = TransactionType.NONE
    value: int = 0


@dataclass
class CacheLine:
    """One line of a set."""

    tag: int = 0
    state: LineState = LineState.I


class CacheSet:
    """A set of lines, replaced in least-recently-used order."""

    def __init__(self, associativity: int = DEFAULT_ASSOCIATIVITY):
        if associativity < 1:
            raise ValueError("associativity must be at least 1")
        self.lines = [CacheLine() for _ in range(associativity)]
        # Recency entries, oldest first: entry id -> slot index. Entries left
        # behind by invalidated lines stay here until they age out.
        self._recency: OrderedDict[int, int] = OrderedDict()
        self._entry_of_tag: dict[int, int] = {}
        self._entry_ids = itertools.count()

    def lookup(self, tag: int, update_lru: bool) -> Optional[CacheLine]:
        """Return the valid line holding ``tag``, or None on a miss."""
        line = next(
            (line for line in self.lines if line.tag == tag and line.state is not LineState.I),
            None,
        )
        if line is not None and update_lru:
            self._recency.move_to_end(self._entry_of_tag[tag])
        return line

    def add_tag(self, tag: int, state: LineState) -> CacheLine:
        """Place ``tag`` in the set and return a copy of the line it replaced."""
        slot = next(
            (index for index, line in enumerate(self.lines) if line.state is LineState.I),
            None,
        )
        if slot is None:
            _, slot = self._recency.popitem(last=False)
            self._entry_of_tag.pop(self.lines[slot].tag, None)
        previous = replace(self.lines[slot])
        self.lines[slot].tag = tag
        self.lines[slot].state = state
        entry = next(self._entry_ids)
        self._entry_of_tag[tag] = entry
        self._recency[entry] = slot
        return previous


class Cache:
    """A core's private cache together with the core's instruction stream."""

    def __init__(
        self,
        line_size_bits: int = DEFAULT_LINE_SIZE_BITS,
        associativity: int = DEFAULT_ASSOCIATIVITY,
        set_bits: int = DEFAULT_SET_BITS,
        instructions: Iterable[Instruction] = (),
    ):
        self.line_size_bits = line_size_bits
        self.associativity = associativity
        self.set_bits = set_bits
        self.set_count = 1 << set_bits
        self.sets = [CacheSet(associativity) for _ in range(self.set_count)]
        self.instructions = [replace(instruction) for instruction in instructions]
        self.pc = 0
        self.halted = False
        self.read_instructions = 0
        self.execution_cycles = 0
        self.idle_cycles = 0
        self.misses = 0
        self.evictions = 0
        self.writebacks = 0
        self.invalidations = 0
        self.byte_traffic = 0
        self.outgoing = BusTransaction()

    def set_for(self, address: int) -> CacheSet:
        """The set an address maps to."""
        return self.sets[(address >> self.line_size_bits) & (self.set_count - 1)]

    def finished(self) -> bool:
        """True once every instruction has completed."""
        return self.pc >= len(self.instructions)

    def process_instruction(self) -> None:
        """Try to execute the current instruction for one cycle."""
        if self.finished() or self.halted:
            return
        instruction = self.instructions[self.pc]
        retry = instruction.processed
        instruction.processed = True

        address = instruction.address
        tag = address >> self.line_size_bits
        line = self.set_for(address).lookup(tag, True)

        if line is not None:
            if not instruction.is_write:
                self.pc += 1
            elif line.state is LineState.S:
                if retry:
                    raise SimulationError("write to a shared line after its bus request")
                line.state = LineState.M
                self.outgoing = BusTransaction(TransactionType.WRITE_INVALIDATE, line.tag)
                self.halted = True
            else:
                if line.state is LineState.E:
                    line.state = LineState.M
                self.pc += 1
            return

        if retry:
            raise SimulationError("line missing after its bus request completed")
        kind = TransactionType.READ_EXCLUSIVE if instruction.is_write else TransactionType.READ
        self.outgoing = BusTransaction(kind, address)
        self.halted = True

    def snoop(self, transaction: BusTransaction) -> Optional[CacheLine]:
        """React to another core's request; return the line as it was, or None."""
        tag = transaction.value >> self.line_size_bits
        line = self.set_for(transaction.value).lookup(tag, False)
        if line is None:
            return None
        before = replace(line)
        if transaction.type is TransactionType.READ:
            line.state = LineState.S
        elif transaction.type in (
            TransactionType.READ_EXCLUSIVE,
            TransactionType.WRITE_INVALIDATE,
        ):
            line.state = LineState.I
        return before