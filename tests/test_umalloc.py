import pytest

from xvsim.umalloc import HEADER_SIZE, MIN_CORE_UNITS, Allocator

CORE = MIN_CORE_UNITS * HEADER_SIZE


def test_allocations_do_not_overlap():
    heap = Allocator(CORE * 4)
    sizes = [1, 10, 100, 1000, 7]
    blocks = [(heap.malloc(n), n) for n in sizes]
    spans = sorted((a, a + n) for a, n in blocks)
    for (_, end), (start, _) in zip(spans, spans[1:]):
        assert end <= start
    for a, n in blocks:
        assert HEADER_SIZE <= a and a + n <= HEADER_SIZE + CORE * 4


def test_free_all_coalesces():
    heap = Allocator(CORE)
    addrs = [heap.malloc(n) for n in (16, 32, 64, 128)]
    for a in addrs:
        heap.free(a)
    blocks = heap.free_blocks()
    assert len(blocks) == 1
    assert blocks[0][1] == MIN_CORE_UNITS


def test_free_in_reverse_order_coalesces():
    heap = Allocator(CORE)
    addrs = [heap.malloc(n) for n in (16, 32, 64)]
    for a in reversed(addrs):
        heap.free(a)
    assert [units for _, units in heap.free_blocks()] == [MIN_CORE_UNITS]


def test_units_accounted():
    heap = Allocator(CORE)
    a = heap.malloc(100)
    total_free = sum(units for _, units in heap.free_blocks())
    used = (100 + HEADER_SIZE - 1) // HEADER_SIZE + 1
    assert total_free + used == MIN_CORE_UNITS
    heap.free(a)


def test_out_of_memory():
    assert Allocator(100).malloc(1) is None


def test_request_larger_than_limit():
    heap = Allocator(CORE)
    assert heap.malloc(CORE) is None
    assert heap.malloc(CORE - HEADER_SIZE) is not None and heap.free_blocks() == []


def test_reuse_after_free():
    heap = Allocator(CORE)
    a = heap.malloc(CORE - HEADER_SIZE)
    assert heap.malloc(1) is None
    heap.free(a)
    b = heap.malloc(CORE - HEADER_SIZE)
    assert b == a


def test_grows_heap_in_steps():
    heap = Allocator(CORE * 2)
    first = heap.malloc(CORE - HEADER_SIZE)
    second = heap.malloc(10)
    assert first is not None and second is not None
    assert heap.malloc(CORE) is None


def test_free_unknown_address():
    heap = Allocator(CORE)
    with pytest.raises(ValueError):
        heap.free(12345)


def test_double_free():
    heap = Allocator(CORE)
    a = heap.malloc(8)
    heap.free(a)
    with pytest.raises(ValueError):
        heap.free(a)


def test_negative_limit():
    with pytest.raises(ValueError):
        Allocator(-1)