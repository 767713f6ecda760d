"""ELF executable header formats."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

ELF_MAGIC = 0x464C457F

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4


class ElfFormatError(ValueError):
    """Raised when data is not a well-formed ELF image."""


@dataclass
class ElfHeader:
    """The ELF file header."""

    magic: int = ELF_MAGIC
    elf: bytes = field(default=bytes(12))
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    FORMAT: ClassVar[struct.Struct] = struct.Struct("<I12sHHIIIIIHHHHHH")
    SIZE: ClassVar[int] = FORMAT.size

    @classmethod
    def unpack(cls, data: bytes) -> "ElfHeader":
        """Parse the header at the start of data."""
        if len(data) < cls.SIZE:
            raise ElfFormatError("data too short for an ELF header")
        header = cls(*cls.FORMAT.unpack_from(data, 0))
        if header.magic != ELF_MAGIC:
            raise ElfFormatError("bad ELF magic")
        return header

    def pack(self) -> bytes:
        return self.FORMAT.pack(
            self.magic, self.elf, self.type, self.machine, self.version,
            self.entry, self.phoff, self.shoff, self.flags, self.ehsize,
            self.phentsize, self.phnum, self.shentsize, self.shnum,
            self.shstrndx,
        )


@dataclass
class ProgramHeader:
    """An ELF program section header."""

    type: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 0

    FORMAT: ClassVar[struct.Struct] = struct.Struct("<8I")
    SIZE: ClassVar[int] = FORMAT.size

    @classmethod
    def unpack(cls, data: bytes, offset: int = 0) -> "ProgramHeader":
        """Parse a program header found at offset in data."""
        if offset < 0 or offset + cls.SIZE > len(data):
            raise ElfFormatError("program header lies outside the data")
        return cls(*cls.FORMAT.unpack_from(data, offset))

    def pack(self) -> bytes:
        return self.FORMAT.pack(
            self.type, self.off, self.vaddr, self.paddr,
            self.filesz, self.memsz, self.flags, self.align,
        )


def program_headers(data: bytes) -> list[ProgramHeader]:
    """All program headers of an ELF image, in table order."""
    header = ElfHeader.unpack(data)
    return [
        ProgramHeader.unpack(data, header.phoff + i * ProgramHeader.SIZE)
        for i in range(header.phnum)
    ]