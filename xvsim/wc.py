"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Optional, Sequence, Union

_WHITESPACE = frozenset(b" \r\t\n\v")


@dataclass(frozen=True)
class Counts:
    lines: int
    words: int
    chars: int


def count(data: Union[bytes, bytearray, str]) -> Counts:
    """Line, word and byte counts of data."""
    if isinstance(data, str):
        data = data.encode("latin-1")
    lines = words = 0
    inword = False
    for ch in data:
        if ch == 0x0A:
            lines += 1
        if ch in _WHITESPACE:
            inword = False
        elif not inword:
            words += 1
            inword = True
    return Counts(lines, words, len(data))


def _report(counts: Counts, name: str) -> None:
    print(f"{counts.lines} {counts.words} {counts.chars} {name}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Report counts for each named file, or for standard input."""
    if argv is None:
        argv = sys.argv[1:]
    if not argv:
        _report(count(sys.stdin.buffer.read()), "")
        return 0
    for name in argv:
        try:
            with open(name, "rb") as f:
                data = f.read()
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        _report(count(data), name)
    return 0


if __name__ == "__main__":
    sys.exit(main())