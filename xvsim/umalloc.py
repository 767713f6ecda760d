"""A first-fit free-list memory allocator over a simulated heap."""

from __future__ import annotations

from typing import Optional

HEADER_SIZE = 8
MIN_CORE_UNITS = 4096


class Allocator:
    """Circular free-list allocator that grows its heap in large steps.

    Addresses are plain integers; the heap may grow by at most limit bytes.
    """

    _BASE = 0

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must not be negative")
        self.limit = limit
        self._start = HEADER_SIZE
        self._brk = self._start
        self._size: dict[int, int] = {self._BASE: 0}
        self._next: dict[int, int] = {}
        self._freep: Optional[int] = None
        self._allocated: set[int] = set()

    def malloc(self, nbytes: int) -> Optional[int]:
        """Allocate nbytes; the payload address, or None when out of memory."""
        if nbytes < 0:
            raise ValueError("size must not be negative")
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        if self._freep is None:
            self._next[self._BASE] = self._BASE
            self._freep = self._BASE
        prevp = self._freep
        p = self._next[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._next[prevp] = self._next.pop(p)
                else:
                    self._size[p] -= nunits
                    p += self._size[p] * HEADER_SIZE
                    self._size[p] = nunits
                self._freep = prevp
                self._allocated.add(p)
                return p + HEADER_SIZE
            if p == self._freep:
                found = self._morecore(nunits)
                if found is None:
                    return None
                p = found
            prevp, p = p, self._next[p]

    def free(self, ap: int) -> None:
        """Return a block obtained from malloc to the free list."""
        bp = ap - HEADER_SIZE
        if bp not in self._allocated:
            raise ValueError(f"address {ap:#x} was not allocated")
        self._allocated.remove(bp)
        self._release(bp)

    def free_blocks(self) -> list[tuple[int, int]]:
        """(header address, size in units) of each free block, by address."""
        if self._freep is None:
            return []
        blocks = []
        p = self._next[self._BASE]
        while p != self._BASE:
            blocks.append((p, self._size[p]))
            p = self._next[p]
        return sorted(blocks)

    def _release(self, bp: int) -> None:
        p = self._freep
        while not (p < bp < self._next[p]):
            nxt = self._next[p]
            if p >= nxt and (bp > p or bp < nxt):
                break
            p = nxt
        nxt = self._next[p]
        if bp + self._size[bp] * HEADER_SIZE == nxt:
            self._size[bp] += self._size.pop(nxt)
            self._next[bp] = self._next.pop(nxt)
        else:
            self._next[bp] = nxt
        if p + self._size[p] * HEADER_SIZE == bp:
            self._size[p] += self._size.pop(bp)
            self._next[p] = self._next.pop(bp)
        else:
            self._next[p] = bp
        self._freep = p

    def _morecore(self, nunits: int) -> Optional[int]:
        nunits = max(nunits, MIN_CORE_UNITS)
        nbytes = nunits * HEADER_SIZE
        if self._brk - self._start + nbytes > self.limit:
            return None
        hp = self._brk
        self._brk += nbytes
        self._size[hp] = nunits
        self._release(hp)
        return self._freep