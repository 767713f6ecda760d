"""Two-level x86 page tables kept in simulated physical memory."""

from __future__ import annotations

import struct
from typing import Optional

from xvsim.mmu import (
    EXTMEM,
    KERNBASE,
    NPDENTRIES,
    NPTENTRIES,
    PGSIZE,
    PTE_P,
    PTE_U,
    PTE_W,
    p2v,
    pdx,
    pg_round_down,
    pg_round_up,
    pte_addr,
    pte_flags,
    ptx,
    v2p,
)
from xvsim.spinlock import KernelPanic

_ENTRY = struct.Struct("<I")
_JUNK = 1


class PhysicalMemory:
    """A range of page frames handed out one page at a time.

    Frames start at physical address EXTMEM; freed frames are filled
    with junk so that stale data is easy to spot.
    """

    def __init__(self, npages: int) -> None:
        if npages <= 0:
            raise ValueError("physical memory needs at least one page")
        self.base = EXTMEM
        self.npages = npages
        self.end = self.base + npages * PGSIZE
        self._data = bytearray(npages * PGSIZE)
        self._free = [self.base + i * PGSIZE for i in reversed(range(npages))]
        self._free_set = set(self._free)

    def kalloc(self) -> Optional[int]:
        """Physical address of a free page, or None when memory is exhausted."""
        if not self._free:
            return None
        pa = self._free.pop()
        self._free_set.discard(pa)
        return pa

    def kfree(self, pa: int) -> None:
        """Return a page obtained from kalloc."""
        if pa % PGSIZE or not self.base <= pa < self.end or pa in self._free_set:
            raise KernelPanic("kfree")
        off = pa - self.base
        self._data[off:off + PGSIZE] = bytes([_JUNK]) * PGSIZE
        self._free.append(pa)
        self._free_set.add(pa)

    def _offset(self, pa: int, n: int) -> int:
        if n < 0 or pa < self.base or pa + n > self.end:
            raise ValueError(f"physical range {pa:#x}+{n} outside memory")
        return pa - self.base

    def read(self, pa: int, n: int) -> bytes:
        """n bytes starting at physical address pa."""
        off = self._offset(pa, n)
        return bytes(self._data[off:off + n])

    def write(self, pa: int, data: bytes) -> None:
        """Store data at physical address pa."""
        off = self._offset(pa, len(data))
        self._data[off:off + len(data)] = data

    def _load(self, pa: int) -> int:
        return _ENTRY.unpack(self.read(pa, _ENTRY.size))[0]

    def _store(self, pa: int, value: int) -> None:
        self.write(pa, _ENTRY.pack(value & 0xFFFFFFFF))

    def _zero(self, pa: int) -> None:
        self.write(pa, bytes(PGSIZE))


class PageDirectory:
    """The user half of a process address space.

    The directory and its page tables live in pages of the given
    physical memory. Addresses of entries are physical addresses.
    """

    def __init__(self, mem: PhysicalMemory) -> None:
        self.mem = mem
        pa = mem.kalloc()
        if pa is None:
            raise MemoryError("no memory for a page directory")
        mem._zero(pa)
        self.pa: Optional[int] = pa

    def _dir(self) -> int:
        if self.pa is None:
            raise KernelPanic("freevm: no pgdir")
        return self.pa

    def walk(self, va: int, alloc: bool = False) -> Optional[int]:
        """Physical address of the PTE for va, creating its page table if alloc.

        None if the table is missing and cannot or may not be created.
        """
        pde_pa = self._dir() + 4 * pdx(va)
        pde = self.mem._load(pde_pa)
        if pde & PTE_P:
            pgtab = pte_addr(pde)
        else:
            if not alloc:
                return None
            pgtab = self.mem.kalloc()
            if pgtab is None:
                return None
            self.mem._zero(pgtab)
            self.mem._store(pde_pa, pgtab | PTE_P | PTE_W | PTE_U)
        return pgtab + 4 * ptx(va)

    def _pte(self, va: int) -> Optional[int]:
        addr = self.walk(va, False)
        return None if addr is None else self.mem._load(addr)

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map the pages covering [va, va+size) to physical pages from pa."""
        a = pg_round_down(va)
        last = pg_round_down(va + size - 1)
        while True:
            addr = self.walk(a, True)
            if addr is None:
                raise MemoryError("no memory for a page table")
            if self.mem._load(addr) & PTE_P:
                raise KernelPanic("remap")
            self.mem._store(addr, pa | perm | PTE_P)
            if a == last:
                break
            a += PGSIZE
            pa += PGSIZE

    def init_uvm(self, init: bytes) -> None:
        """Load init, which must be smaller than a page, at address 0."""
        if len(init) >= PGSIZE:
            raise KernelPanic("inituvm: more than a page")
        page = self.mem.kalloc()
        if page is None:
            raise MemoryError("no memory for the first user page")
        self.mem._zero(page)
        self.map_pages(0, PGSIZE, page, PTE_W | PTE_U)
        self.mem.write(page, bytes(init))

    def alloc_uvm(self, oldsz: int, newsz: int) -> int:
        """Grow the user memory from oldsz to newsz; the new size.

        Raises MemoryError, with nothing left allocated, on failure.
        """
        if newsz >= KERNBASE:
            raise MemoryError("size reaches kernel space")
        if newsz < oldsz:
            return oldsz
        a = pg_round_up(oldsz)
        while a < newsz:
            page = self.mem.kalloc()
            if page is None:
                self.dealloc_uvm(newsz, oldsz)
                raise MemoryError("allocuvm out of memory")
            self.mem._zero(page)
            try:
                self.map_pages(a, PGSIZE, page, PTE_W | PTE_U)
            except MemoryError:
                self.mem.kfree(page)
                self.dealloc_uvm(newsz, oldsz)
                raise
            a += PGSIZE
        return newsz

    def dealloc_uvm(self, oldsz: int, newsz: int) -> int:
        """Free user pages to shrink from oldsz to newsz; the new size."""
        if newsz >= oldsz:
            return oldsz
        a = pg_round_up(newsz)
        while a < oldsz:
            addr = self.walk(a, False)
            if addr is None:
                a += (NPTENTRIES - 1) * PGSIZE
            else:
                pte = self.mem._load(addr)
                if pte & PTE_P:
                    pa = pte_addr(pte)
                    if pa == 0:
                        raise KernelPanic("kfree")
                    self.mem.kfree(pa)
                    self.mem._store(addr, 0)
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Free all user pages, the page tables and the directory."""
        pgdir = self._dir()
        self.dealloc_uvm(KERNBASE, 0)
        for i in range(NPDENTRIES):
            pde = self.mem._load(pgdir + 4 * i)
            if pde & PTE_P:
                self.mem.kfree(pte_addr(pde))
        self.mem.kfree(pgdir)
        self.pa = None

    def clear_pteu(self, uva: int) -> None:
        """Make the page at uva inaccessible to user code."""
        addr = self.walk(uva, False)
        if addr is None:
            raise KernelPanic("clearpteu")
        self.mem._store(addr, self.mem._load(addr) & ~PTE_U)

    def copy(self, sz: int) -> "PageDirectory":
        """A new directory holding a copy of the first sz bytes of user memory."""
        child = PageDirectory(self.mem)
        for i in range(0, sz, PGSIZE):
            pte = self._pte(i)
            if pte is None:
                raise KernelPanic("copyuvm: pte should exist")
            if not pte & PTE_P:
                raise KernelPanic("copyuvm: page not present")
            page = self.mem.kalloc()
            if page is None:
                child.free()
                raise MemoryError("no memory to copy the address space")
            self.mem.write(page, self.mem.read(pte_addr(pte), PGSIZE))
            try:
                child.map_pages(i, PGSIZE, page, pte_flags(pte))
            except MemoryError:
                self.mem.kfree(page)
                child.free()
                raise
        return child

    def uva2ka(self, uva: int) -> Optional[int]:
        """Kernel address of the user page at uva, or None if not user-accessible."""
        pte = self._pte(uva)
        if pte is None or not pte & PTE_P or not pte & PTE_U:
            return None
        return p2v(pte_addr(pte))

    def copyout(self, va: int, data: bytes) -> None:
        """Copy data to user address va; ValueError on an inaccessible page."""
        buf = memoryview(bytes(data))
        while buf:
            va0 = pg_round_down(va)
            ka = self.uva2ka(va0)
            if ka is None:
                raise ValueError(f"user address {va:#x} is not mapped")
            n = min(PGSIZE - (va - va0), len(buf))
            self.mem.write(v2p(ka) + (va - va0), bytes(buf[:n]))
            buf = buf[n:]
            va = va0 + PGSIZE

    def read_user(self, va: int, n: int) -> bytes:
        """n bytes of user memory from va; ValueError on an inaccessible page."""
        out = bytearray()
        while n > 0:
            va0 = pg_round_down(va)
            ka = self.uva2ka(va0)
            if ka is None:
                raise ValueError(f"user address {va:#x} is not mapped")
            chunk = min(PGSIZE - (va - va0), n)
            out += self.mem.read(v2p(ka) + (va - va0), chunk)
            n -= chunk
            va = va0 + PGSIZE
        return bytes(out)