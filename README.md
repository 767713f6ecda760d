# xvsim

`xvsim` is a plain-Python model of the core of a small x86 teaching kernel. It
covers paging, process management and system-call dispatch. It also includes a
few user-space pieces: a shell command parser, C string routines, a heap
allocator and a word counter. Every piece is an ordinary Python object that you
can inspect and test. There is no emulator.

## Modules

- `xvsim.mmu`: x86 constants and address arithmetic.
  - Functions: `pdx`, `ptx`, `pgaddr`, `pg_round_up`, `pg_round_down`,
    `pte_addr`, `pte_flags`, `v2p`, `p2v`.
  - `SegmentDescriptor` builds descriptors with `seg` and `seg16`.
  - `GateDescriptor` builds gates with `make`.
  - Both have `pack()`, which returns the 8-byte hardware form.
- `xvsim.elf`: `ElfHeader` and `ProgramHeader`, each with `unpack`/`pack`.
  `program_headers(data)` lists every program header of an image. Short data
  or a bad magic number raises `ElfFormatError`.
- `xvsim.cstring`: C-style routines on NUL-terminated byte strings: `memcmp`,
  `memmove`, `strncmp`, `strcmp`, `strlen`, `strchr`, `atoi` and `gets`.
  - `memmove` copies within a `bytearray`.
  - `strchr` returns an index or `None`.
  - `strncpy` and `safestrcpy` return the bytes a bounded copy would write.
- `xvsim.umalloc`: `Allocator(limit)` is a first-fit, circular free-list
  allocator over integer addresses.
  - It grows its heap in steps of at least 4096 eight-byte units. The heap
    never grows past `limit` bytes.
  - `malloc` returns `None` when memory runs out.
  - `free` rejects addresses it did not hand out.
  - `free_blocks()` shows the free list.
- `xvsim.wc`: `count(data)` returns `Counts(lines, words, chars)`.
- `xvsim.shell`: `parse_command(text)` parses one command line into a tree of
  `ExecCmd`, `RedirCmd`, `PipeCmd`, `ListCmd` and `BackCmd`.
  - The grammar supports `|`, `;`, `&`, `<`, `>`, `>>` and parentheses.
  - A syntax error raises `ParseError`.
  - `Tokenizer` is available on its own.
- `xvsim.spinlock`: `SpinLock` and a modelled `Cpu` with
  `pushcli`/`popcli` interrupt nesting. Misuse raises `KernelPanic`, for
  example releasing a lock you do not hold or acquiring one twice.
- `xvsim.vm`: `PhysicalMemory(npages)` hands out page frames. `PageDirectory`
  builds two-level page tables inside that memory and supports:
  - `walk`, `map_pages`, `init_uvm`;
  - `alloc_uvm`, `dealloc_uvm`, `copy`, `free`;
  - `clear_pteu`, `uva2ka`, `copyout`, `read_user`.
- `xvsim.proc`: `ProcessTable(nproc, mem)` holds `Proc` entries in
  `ProcState` states. It supports:
  - `alloc`, `userinit`, `growproc`, `fork`, `exit`, `wait`;
  - `sleep`, `wakeup`, `kill`;
  - `runnable()`, which lists runnable processes in scheduling order;
  - `procdump()`, which returns one line per live process.
- `xvsim.syscall`: `SysCall` numbers, plus argument fetching from user memory:
  `fetchint`, `fetchstr`, `argint`, `argptr`, `argstr`.
  - `SyscallDispatcher` handles fork, exit, wait, kill, getpid, sbrk, sleep,
    uptime and shutdown. Other numbers can be added with `register`.
  - `dispatch` stores the result in the process's `eax` and returns it.
  - An unknown number, or a failing call, yields `-1`.
  - A handler that puts the process to sleep makes `dispatch` return `None`.
  - `tick()` advances the clock and wakes sleepers.

## Installing

```
pip install .
```

## Counting words

```
xvsim-wc README.md
```

With no file names, `xvsim-wc` counts standard input. Each line of output
reads:

```
lines words bytes name
```

## Parsing a command line

```python
from xvsim.shell import parse_command

tree = parse_command("cat < in | grep x > out &")
# BackCmd(PipeCmd(RedirCmd(ExecCmd(["cat"]), "in", ...), RedirCmd(...)))
```

## Running processes

```python
from xvsim.vm import PhysicalMemory
from xvsim.proc import ProcessTable

table = ProcessTable(64, PhysicalMemory(1024))
init = table.userinit(b"\x90" * 16)
child_pid = table.fork(init)
```

## What it does not do

- There is no file system. Open, read, write, pipe, exec, link, unlink, mkdir
  and the other file system calls have no built-in handlers. Calls that take
  file descriptors or paths must be supplied through
  `SyscallDispatcher.register`.
- Nothing executes machine code. Processes are table entries, and the
  package has no scheduler loop or context switch.
- The shell only parses command lines. It does not run them, and
  `xvsim-wc` is the only command the package installs.

## Running the tests

```
pip install .[test]
pytest
```