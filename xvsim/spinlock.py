"""Mutual exclusion spin locks and per-CPU interrupt nesting."""

from __future__ import annotations

import threading
import traceback
from dataclasses import dataclass
from typing import Optional

from xvsim.mmu import FL_IF

NPCS = 10


class KernelPanic(RuntimeError):
    """An unrecoverable kernel invariant violation."""


@dataclass
class Cpu:
    """Per-CPU state relevant to locking: eflags and cli nesting."""

    id: int = 0
    eflags: int = 0
    ncli: int = 0
    intena: bool = False

    @property
    def interrupts_enabled(self) -> bool:
        return bool(self.eflags & FL_IF)

    def pushcli(self) -> None:
        """Disable interrupts, remembering whether they were on at depth 0."""
        enabled = self.interrupts_enabled
        self.eflags &= ~FL_IF
        if self.ncli == 0:
            self.intena = enabled
        self.ncli += 1

    def popcli(self) -> None:
        """Undo one pushcli; re-enable interrupts when the outermost one ends."""
        if self.interrupts_enabled:
            raise KernelPanic("popcli - interruptible")
        self.ncli -= 1
        if self.ncli < 0:
            raise KernelPanic("popcli")
        if self.ncli == 0 and self.intena:
            self.eflags |= FL_IF


class SpinLock:
    """A lock held by one CPU at a time, with interrupts off while held."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.locked = False
        self.cpu: Optional[Cpu] = None
        self.pcs: list[traceback.FrameSummary] = []
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"SpinLock({self.name!r}, locked={self.locked})"

    def acquire(self, cpu: Cpu) -> None:
        """Take the lock on behalf of cpu, waiting until it is free."""
        cpu.pushcli()
        if self.holding(cpu):
            raise KernelPanic("acquire")
        self._lock.acquire()
        self.locked = True
        self.cpu = cpu
        stack = traceback.extract_stack()[:-1]
        self.pcs = list(reversed(stack))[:NPCS]

    def release(self, cpu: Cpu) -> None:
        """Give up the lock held by cpu."""
        if not self.holding(cpu):
            raise KernelPanic("release")
        self.pcs = []
        self.cpu = None
        self.locked = False
        self._lock.release()
        cpu.popcli()

    def holding(self, cpu: Cpu) -> bool:
        """Whether cpu holds this lock."""
        return self.locked and self.cpu is cpu