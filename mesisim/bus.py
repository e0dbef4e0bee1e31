"""The shared snooping bus that connects the per-core caches."""

from __future__ import annotations

from typing import Iterable, Optional

from .cache import BusTransaction, Cache, LineState, TransactionType

MEMORY = -1
MEMORY_LATENCY = 100
STALL_DURING_TRANSFER = True


class Bus:
    """Arbitrates requests between caches and moves lines between them and memory."""

    def __init__(self, caches: Iterable[Cache], stall_during_transfer: bool = STALL_DURING_TRANSFER):
        self.caches = list(caches)
        self.source: Optional[int] = None
        self.destination: Optional[int] = None
        self.cycles_busy = 0
        self.total_transactions = 0
        self.total_traffic = 0
        self.current_is_eviction = False
        self.current = BusTransaction()
        self.owner: Optional[int] = None
        self.new_line_state = LineState.I
        self.stall_during_transfer = stall_during_transfer

    def _transfer_cycles(self, core: int) -> int:
        return 2 * (1 << self.caches[core].line_size_bits)

    def _release_sender(self, core: int) -> None:
        cache = self.caches[core]
        if self.stall_during_transfer and cache.outgoing.type is TransactionType.NONE:
            cache.halted = False

    def _install(self) -> None:
        cache = self.caches[self.owner]
        address = self.current.value
        replaced = cache.set_for(address).add_tag(
            address >> cache.line_size_bits, self.new_line_state
        )
        if replaced.state is LineState.M:
            self.source = self.owner
            self.destination = MEMORY
            self.current_is_eviction = True
            self.cycles_busy = MEMORY_LATENCY
            if not self.stall_during_transfer:
                cache.halted = False
                cache.outgoing = BusTransaction()
        else:
            self.transaction_over()

    def _complete(self) -> None:
        self.cycles_busy = 0
        kind = self.current.type
        if kind is TransactionType.READ:
            if self.destination != MEMORY:
                if self.source != MEMORY:
                    self._release_sender(self.source)
                self._install()
            elif self.source == self.owner:
                self.transaction_over()
            else:
                self.destination = self.owner
                self.cycles_busy = self._transfer_cycles(self.owner)
                self.new_line_state = LineState.S
                self.current_is_eviction = False
        elif kind is TransactionType.READ_EXCLUSIVE:
            if self.source == MEMORY:
                self._install()
            elif self.source == self.owner:
                self.transaction_over()
            else:
                self._release_sender(self.source)
                self.source = MEMORY
                self.destination = self.owner
                self.cycles_busy = MEMORY_LATENCY

    def _arbitrate(self) -> None:
        owner = next(
            (
                index
                for index, cache in enumerate(self.caches)
                if cache.outgoing.type is not TransactionType.NONE
            ),
            None,
        )
        if owner is None:
            return
        requester = self.caches[owner]
        transaction = requester.outgoing
        requester.outgoing = BusTransaction()

        if transaction.type is TransactionType.WRITE_INVALIDATE:
            for index, cache in enumerate(self.caches):
                if index != owner:
                    cache.snoop(transaction)
            requester.halted = False
            requester.outgoing = BusTransaction()
            requester.pc += 1
            return

        self.current = transaction
        self.owner = owner
        sender: Optional[int] = None
        found = LineState.I
        for index, cache in enumerate(self.caches):
            if index == owner:
                continue
            line = cache.snoop(transaction)
            if line is not None and line.state is not LineState.I:
                sender, found = index, line.state

        if transaction.type is TransactionType.READ:
            if found is LineState.I:
                self.source, self.destination = MEMORY, owner
                self.cycles_busy = MEMORY_LATENCY
                self.new_line_state = LineState.E
            elif found is LineState.M:
                if self.stall_during_transfer:
                    self.caches[sender].halted = True
                self.source, self.destination = sender, MEMORY
                self.cycles_busy = MEMORY_LATENCY
                self.new_line_state = LineState.S
            else:
                if self.stall_during_transfer:
                    self.caches[sender].halted = True
                self.source, self.destination = sender, owner
                self.cycles_busy = self._transfer_cycles(sender)
                self.new_line_state = LineState.S
        elif transaction.type is TransactionType.READ_EXCLUSIVE:
            if found is not LineState.M:
                self.source, self.destination = MEMORY, owner
            else:
                if self.stall_during_transfer:
                    self.caches[sender].halted = True
                self.source, self.destination = sender, MEMORY
            self.cycles_busy = MEMORY_LATENCY
            self.new_line_state = LineState.E

    def run_cycle(self) -> None:
        """Advance the bus and every core by one cycle."""
        if self.cycles_busy > 1:
            self.cycles_busy -= 1
        elif self.cycles_busy == 1:
            self._complete()

        for cache in self.caches:
            cache.process_instruction()

        if self.cycles_busy == 0:
            self._arbitrate()

    def transaction_over(self) -> None:
        """Release the requesting core and reset the bus to idle."""
        if self.stall_during_transfer or not self.current_is_eviction:
            cache = self.caches[self.owner]
            cache.halted = False
            cache.outgoing = BusTransaction()
        self.owner = None
        self.source = None
        self.destination = None
        self.current_is_eviction = False
        self.new_line_state = LineState.I
        self.current = BusTransaction()


def simulate(caches: Iterable[Cache]) -> tuple[Bus, int]:
    """Run until every core has finished; return the bus and the cycle count."""
    bus = Bus(caches)
    cycles = 0
    while True:
        bus.run_cycle()
        cycles += 1
        if all(cache.finished() for cache in bus.caches):
            return bus, cycles