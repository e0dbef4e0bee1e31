import pytest

from mesisim.bus import MEMORY, MEMORY_LATENCY, Bus, simulate
from mesisim.cache import BusTransaction, Cache, LineState, TransactionType
from mesisim.trace import Instruction

LINE_BITS = 6


def _core(*accesses, associativity=2, set_bits=2):
    return Cache(
        line_size_bits=LINE_BITS,
        associativity=associativity,
        set_bits=set_bits,
        instructions=[Instruction(address, op == "W") for op, address in accesses],
    )


def _cores(*first):
    cores = list(first)
    while len(cores) < 4:
        cores.append(_core())
    return cores


def _state(cache, address):
    line = cache.set_for(address).lookup(address >> LINE_BITS, False)
    return LineState.I if line is None else line.state


def test_all_empty_runs_one_cycle():
    bus, cycles = simulate(_cores())
    assert cycles == 1
    assert all(cache.finished() for cache in bus.caches)


def test_first_read_miss_goes_to_memory():
    core = _core(("R", 0))
    bus = Bus(_cores(core))
    bus.run_cycle()
    assert core.halted
    assert bus.owner == 0
    assert bus.source == MEMORY
    assert bus.destination == 0
    assert bus.cycles_busy == MEMORY_LATENCY
    assert bus.new_line_state is LineState.E
    assert bus.current == BusTransaction(TransactionType.READ, 0)


def test_single_read_ends_exclusive():
    core = _core(("R", 0))
    bus, cycles = simulate(_cores(core))
    assert core.finished()
    assert _state(core, 0) is LineState.E
    assert cycles > MEMORY_LATENCY
    assert bus.owner is None
    assert bus.current.type is TransactionType.NONE


def test_read_then_write_becomes_modified():
    core = _core(("R", 0), ("W", 0))
    simulate(_cores(core))
    assert _state(core, 0) is LineState.M


def test_two_readers_share_line():
    first = _core(("R", 0))
    second = _core(("R", 0))
    simulate(_cores(first, second))
    assert _state(first, 0) is LineState.S
    assert _state(second, 0) is LineState.S


def test_write_to_shared_line_invalidates_others():
    first = _core(("R", 0), ("W", 0))
    second = _core(("R", 0))
    simulate(_cores(first, second))
    assert _state(first, 0) is LineState.M
    assert _state(second, 0) is LineState.I


def test_read_of_modified_line_writes_back_then_shares():
    writer = _core(("W", 0))
    reader = _core(("R", 0))
    simulate(_cores(writer, reader))
    assert _state(writer, 0) is LineState.S
    assert _state(reader, 0) is LineState.S


def test_write_miss_takes_exclusive_and_invalidates():
    first = _core(("R", 0))
    second = _core(("W", 0))
    simulate(_cores(first, second))
    assert _state(first, 0) is LineState.I
    assert _state(second, 0) is LineState.M


def test_modified_line_is_evicted_on_conflict():
    core = _core(("W", 0), ("R", 1 << LINE_BITS), associativity=1, set_bits=0)
    simulate(_cores(core))
    line = core.sets[0].lines[0]
    assert line.tag == 1
    assert line.state is LineState.E


def test_eviction_occupies_bus_with_memory_write():
    core = _core(("W", 0), ("R", 1 << LINE_BITS), associativity=1, set_bits=0)
    bus = Bus(_cores(core))
    seen_eviction = False
    while not core.finished():
        bus.run_cycle()
        if bus.current_is_eviction:
            seen_eviction = True
            assert bus.source == 0
            assert bus.destination == MEMORY
            assert core.halted
    assert seen_eviction


def test_lower_numbered_core_wins_arbitration():
    cores = _cores(_core(), _core(("R", 0)), _core(("R", 1 << LINE_BITS)))
    bus = Bus(cores)
    bus.run_cycle()
    assert bus.owner == 1
    assert cores[2].outgoing.type is TransactionType.READ


def test_transaction_over_resets_state():
    core = _core(("R", 0))
    bus = Bus(_cores(core))
    bus.run_cycle()
    core.outgoing = BusTransaction(TransactionType.READ, 0)
    bus.transaction_over()
    assert not core.halted
    assert core.outgoing.type is TransactionType.NONE
    assert bus.owner is None
    assert bus.source is None
    assert bus.destination is None
    assert bus.new_line_state is LineState.I
    assert bus.current == BusTransaction()


@pytest.mark.parametrize("addresses", [[0, 64, 128], [0, 0, 64, 4096]])
def test_simulation_finishes_every_core(addresses):
    cores = [
        _core(*[("W" if (i + n) % 2 else "R", a) for n, a in enumerate(addresses)])
        for i in range(4)
    ]
    bus, cycles = simulate(cores)
    assert all(core.finished() for core in cores)
    assert not any(core.halted for core in cores)
    assert bus.cycles_busy == 0 or bus.owner is not None
    assert cycles >= MEMORY_LATENCY