"""System call numbers, argument fetching and dispatch."""

from __future__ import annotations

import struct
import sys
from enum import IntEnum
from typing import Callable, Optional

from xvsim.mmu import PGSIZE, pg_round_down
from xvsim.proc import Proc, ProcessTable

_U32 = 0xFFFFFFFF
_INT = struct.Struct("<i")

# Errors a system call reports to user code as -1.
_FAILURES = (MemoryError, ValueError, OSError)

Handler = Callable[[Proc], Optional[int]]


class SysCall(IntEnum):
    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21
    SHUTDOWN = 22


def _space(proc: Proc):
    if proc.pgdir is None:
        raise ValueError("process has no address space")
    return proc.pgdir


def fetchint(proc: Proc, addr: int) -> int:
    """The 32-bit signed int at user address addr."""
    addr &= _U32
    if addr >= proc.sz or addr + 4 > proc.sz:
        raise ValueError(f"address {addr:#x} outside process memory")
    return _INT.unpack(_space(proc).read_user(addr, 4))[0]


def fetchstr(proc: Proc, addr: int) -> bytes:
    """The NUL-terminated string at user address addr, without the NUL."""
    addr &= _U32
    if addr >= proc.sz:
        raise ValueError(f"address {addr:#x} outside process memory")
    pgdir = _space(proc)
    out = bytearray()
    va = addr
    while va < proc.sz:
        n = min(pg_round_down(va) + PGSIZE, proc.sz) - va
        chunk = pgdir.read_user(va, n)
        end = chunk.find(0)
        if end >= 0:
            out += chunk[:end]
            return bytes(out)
        out += chunk
        va += n
    raise ValueError("string is not terminated inside process memory")


def argint(proc: Proc, n: int) -> int:
    """The nth 32-bit system call argument."""
    return fetchint(proc, proc.tf["esp"] + 4 + 4 * n)


def argptr(proc: Proc, n: int, size: int) -> int:
    """The nth argument as the address of size bytes inside process memory."""
    addr = argint(proc, n) & _U32
    if addr >= proc.sz or addr + size > proc.sz:
        raise ValueError(f"block at {addr:#x} of {size} bytes outside process memory")
    return addr


def argstr(proc: Proc, n: int) -> bytes:
    """The nth argument as a NUL-terminated string."""
    return fetchstr(proc, argint(proc, n))


class SyscallDispatcher:
    """Routes system call numbers to handlers and keeps the tick count.

    A handler returns the value for eax, or None when the process has
    gone to sleep and the call must be dispatched again once it wakes.
    """

    def __init__(self, ptable: ProcessTable) -> None:
        self.ptable = ptable
        self.ticks = 0
        self.halted = False
        self._ticks_chan = object()
        self._deadlines: dict[Proc, int] = {}
        self._handlers: dict[int, Handler] = {}
        for num, handler in (
            (SysCall.FORK, self._sys_fork),
            (SysCall.EXIT, self._sys_exit),
            (SysCall.WAIT, self._sys_wait),
            (SysCall.KILL, self._sys_kill),
            (SysCall.GETPID, self._sys_getpid),
            (SysCall.SBRK, self._sys_sbrk),
            (SysCall.SLEEP, self._sys_sleep),
            (SysCall.UPTIME, self._sys_uptime),
            (SysCall.SHUTDOWN, self._sys_shutdown),
        ):
            self.register(num, handler)

    def register(self, num: int, handler: Handler) -> None:
        """Install handler for system call number num."""
        num = int(num)
        if num <= 0:
            raise ValueError("system call numbers start at 1")
        self._handlers[num] = handler

    def dispatch(self, proc: Proc, num: int) -> Optional[int]:
        """Run system call num for proc and store the result in its eax."""
        handler = self._handlers.get(int(num))
        if handler is None:
            print(f"{proc.pid} {proc.name}: unknown sys call {num}", file=sys.stderr)
            proc.tf["eax"] = -1
            return -1
        try:
            result = handler(proc)
        except _FAILURES:
            result = -1
        if result is None:
            return None
        proc.tf["eax"] = result
        return result

    def tick(self) -> int:
        """Advance the clock by one tick, waking sleepers; the new count."""
        self.ticks += 1
        self.ptable.wakeup(self._ticks_chan)
        return self.ticks

    def _sys_fork(self, proc: Proc) -> int:
        return self.ptable.fork(proc)

    def _sys_exit(self, proc: Proc) -> int:
        self.ptable.exit(proc)
        return 0

    def _sys_wait(self, proc: Proc) -> Optional[int]:
        return self.ptable.wait(proc)

    def _sys_kill(self, proc: Proc) -> int:
        self.ptable.kill(argint(proc, 0))
        return 0

    def _sys_getpid(self, proc: Proc) -> int:
        return proc.pid

    def _sys_sbrk(self, proc: Proc) -> int:
        n = argint(proc, 0)
        addr = proc.sz
        self.ptable.growproc(proc, n)
        return addr

    def _sys_sleep(self, proc: Proc) -> Optional[int]:
        n = argint(proc, 0)
        deadline = self._deadlines.setdefault(proc, self.ticks + n)
        if self.ticks >= deadline:
            del self._deadlines[proc]
            return 0
        if proc.killed:
            del self._deadlines[proc]
            return -1
        self.ptable.sleep(proc, self._ticks_chan)
        return None

    def _sys_uptime(self, proc: Proc) -> int:
        return self.ticks

    def _sys_shutdown(self, proc: Proc) -> int:
        self.halted = True
        return 0