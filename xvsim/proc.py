"""Process table: allocation, fork, exit, wait, sleep and wakeup."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterator, Optional

from xvsim.mmu import DPL_USER, FL_IF, PGSIZE, SEG_UCODE, SEG_UDATA
from xvsim.spinlock import Cpu, KernelPanic, SpinLock
from xvsim.vm import PageDirectory, PhysicalMemory

_NAMELEN = 16


class ProcState(IntEnum):
    UNUSED = 0
    EMBRYO = 1
    SLEEPING = 2
    RUNNABLE = 3
    RUNNING = 4
    ZOMBIE = 5


_STATE_NAMES = {
    ProcState.UNUSED: "unused",
    ProcState.EMBRYO: "embryo",
    ProcState.SLEEPING: "sleep ",
    ProcState.RUNNABLE: "runble",
    ProcState.RUNNING: "run   ",
    ProcState.ZOMBIE: "zombie",
}


@dataclass(eq=False)
class Proc:
    """Per-process state. Processes compare by identity."""

    state: ProcState = ProcState.UNUSED
    pid: int = 0
    sz: int = 0
    pgdir: Optional[PageDirectory] = None
    kstack: Optional[int] = None
    parent: Optional["Proc"] = None
    tf: dict[str, int] = field(default_factory=dict)
    chan: Any = None
    killed: bool = False
    ofile: dict[int, Any] = field(default_factory=dict)
    cwd: Optional[str] = None
    name: str = ""


class ProcessTable:
    """A fixed number of process slots sharing one physical memory."""

    def __init__(self, nproc: int, mem: PhysicalMemory) -> None:
        if nproc <= 0:
            raise ValueError("the table needs at least one slot")
        self.mem = mem
        self.procs = [Proc() for _ in range(nproc)]
        self.initproc: Optional[Proc] = None
        self.lock = SpinLock("ptable")
        self._cpu = Cpu()
        self._nextpid = 1

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.lock.acquire(self._cpu)
        try:
            yield
        finally:
            self.lock.release(self._cpu)

    def alloc(self) -> Optional[Proc]:
        """Claim an unused slot as an embryo with a kernel stack, or None."""
        with self._locked():
            p = next((p for p in self.procs if p.state is ProcState.UNUSED), None)
            if p is None:
                return None
            p.state = ProcState.EMBRYO
            p.pid = self._nextpid
            self._nextpid += 1
        kstack = self.mem.kalloc()
        if kstack is None:
            p.state = ProcState.UNUSED
            return None
        p.kstack = kstack
        p.tf = {}
        p.chan = None
        return p

    def userinit(self, initcode: bytes) -> Proc:
        """Set up the first user process running initcode from address 0."""
        p = self.alloc()
        if p is None:
            raise KernelPanic("userinit: no process slot")
        self.initproc = p
        try:
            p.pgdir = PageDirectory(self.mem)
        except MemoryError:
            raise KernelPanic("userinit: out of memory?") from None
        p.pgdir.init_uvm(initcode)
        p.sz = PGSIZE
        ds = (SEG_UDATA << 3) | DPL_USER
        p.tf = {
            "cs": (SEG_UCODE << 3) | DPL_USER,
            "ds": ds,
            "es": ds,
            "ss": ds,
            "eflags": FL_IF,
            "esp": PGSIZE,
            "eip": 0,
            "eax": 0,
        }
        p.name = "initcode"
        p.cwd = "/"
        p.state = ProcState.RUNNABLE
        return p

    def growproc(self, proc: Proc, n: int) -> int:
        """Grow or shrink proc's memory by n bytes; the new size."""
        if proc.pgdir is None:
            raise ValueError("process has no address space")
        sz = proc.sz
        if n > 0:
            sz = proc.pgdir.alloc_uvm(sz, sz + n)
        elif n < 0:
            if sz + n < 0:
                raise ValueError("cannot shrink below zero")
            sz = proc.pgdir.dealloc_uvm(sz, sz + n)
        proc.sz = sz
        return sz

    def fork(self, parent: Proc) -> int:
        """Create a copy of parent; the child's pid. MemoryError on failure."""
        if parent.pgdir is None:
            raise ValueError("parent has no address space")
        child = self.alloc()
        if child is None:
            raise MemoryError("no free process slot")
        try:
            child.pgdir = parent.pgdir.copy(parent.sz)
        except MemoryError:
            if child.kstack is not None:
                self.mem.kfree(child.kstack)
            child.kstack = None
            child.state = ProcState.UNUSED
            raise
        child.sz = parent.sz
        child.parent = parent
        child.tf = dict(parent.tf)
        child.tf["eax"] = 0
        child.ofile = dict(parent.ofile)
        child.cwd = parent.cwd
        child.name = parent.name[: _NAMELEN - 1]
        with self._locked():
            child.state = ProcState.RUNNABLE
        return child.pid

    def exit(self, proc: Proc) -> None:
        """Turn proc into a zombie and hand its children to init."""
        if proc is self.initproc:
            raise KernelPanic("init exiting")
        proc.ofile.clear()
        proc.cwd = None
        with self._locked():
            self._wakeup1(proc.parent)
            for p in self.procs:
                if p.parent is proc:
                    p.parent = self.initproc
                    if p.state is ProcState.ZOMBIE:
                        self._wakeup1(self.initproc)
            proc.state = ProcState.ZOMBIE

    def wait(self, proc: Proc) -> Optional[int]:
        """Reap a zombie child and return its pid.

        Returns None after putting proc to sleep when its children are
        all still alive; raises ChildProcessError when it has none or
        has been killed.
        """
        with self._locked():
            havekids = False
            for p in self.procs:
                if p.parent is not proc:
                    continue
                havekids = True
                if p.state is ProcState.ZOMBIE:
                    pid = p.pid
                    self._reap(p)
                    return pid
            if not havekids or proc.killed:
                raise ChildProcessError(f"pid {proc.pid} has no children to wait for")
            proc.chan = proc
            proc.state = ProcState.SLEEPING
            return None

    def _reap(self, p: Proc) -> None:
        if p.kstack is not None:
            self.mem.kfree(p.kstack)
        if p.pgdir is not None:
            p.pgdir.free()
        p.kstack = None
        p.pgdir = None
        p.state = ProcState.UNUSED
        p.pid = 0
        p.parent = None
        p.name = ""
        p.killed = False
        p.sz = 0
        p.chan = None
        p.tf = {}

    def sleep(self, proc: Proc, chan: Any) -> None:
        """Put proc to sleep on chan until a wakeup on the same channel."""
        if chan is None:
            raise ValueError("sleep needs a channel")
        with self._locked():
            proc.chan = chan
            proc.state = ProcState.SLEEPING

    def _wakeup1(self, chan: Any) -> list[Proc]:
        woken = []
        for p in self.procs:
            if p.state is ProcState.SLEEPING and p.chan is chan:
                p.state = ProcState.RUNNABLE
                p.chan = None
                woken.append(p)
        return woken

    def wakeup(self, chan: Any) -> list[Proc]:
        """Make every process sleeping on chan runnable; those woken."""
        with self._locked():
            return self._wakeup1(chan)

    def kill(self, pid: int) -> None:
        """Mark the process with pid as killed, waking it if asleep."""
        with self._locked():
            for p in self.procs:
                if p.state is not ProcState.UNUSED and p.pid == pid:
                    p.killed = True
                    if p.state is ProcState.SLEEPING:
                        p.state = ProcState.RUNNABLE
                    return
        raise ProcessLookupError(f"no process with pid {pid}")

    def runnable(self) -> list[Proc]:
        """Runnable processes in the order the scheduler visits them."""
        return [p for p in self.procs if p.state is ProcState.RUNNABLE]

    def procdump(self) -> list[str]:
        """One line per live process: pid, state and name."""
        return [
            f"{p.pid} {_STATE_NAMES.get(p.state, '???')} {p.name}"
            for p in self.procs
            if p.state is not ProcState.UNUSED
        ]