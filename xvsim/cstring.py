"""NUL-terminated byte string and memory helpers."""

from __future__ import annotations

from typing import BinaryIO, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _b(s: BytesLike) -> bytes:
    if isinstance(s, str):
        return s.encode("latin-1")
    return bytes(s)


def _at(s: bytes, i: int) -> int:
    return s[i] if i < len(s) else 0


def memcmp(a: BytesLike, b: BytesLike, n: int) -> int:
    """Compare the first n bytes; the difference of the first unequal pair, or 0."""
    a, b = _b(a), _b(b)
    if n < 0 or n > len(a) or n > len(b):
        raise ValueError("n exceeds the buffers")
    for x, y in zip(a[:n], b[:n]):
        if x != y:
            return x - y
    return 0


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy n bytes within buf from offset src to offset dst; overlap is safe."""
    if n < 0 or min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise ValueError("move outside the buffer")
    buf[dst:dst + n] = buf[src:src + n]
    return buf


def strncmp(p: BytesLike, q: BytesLike, n: int) -> int:
    """Compare at most n characters of two NUL-terminated strings."""
    p, q = _b(p), _b(q)
    i = 0
    while n > 0 and _at(p, i) and _at(p, i) == _at(q, i):
        n -= 1
        i += 1
    if n == 0:
        return 0
    return _at(p, i) - _at(q, i)


def strcmp(p: BytesLike, q: BytesLike) -> int:
    """Compare two NUL-terminated strings."""
    p, q = _b(p), _b(q)
    i = 0
    while _at(p, i) and _at(p, i) == _at(q, i):
        i += 1
    return _at(p, i) - _at(q, i)


def strlen(s: BytesLike) -> int:
    """Length up to the first NUL, or the whole length."""
    s = _b(s)
    end = s.find(0)
    return len(s) if end < 0 else end


def strncpy(src: BytesLike, n: int) -> bytes:
    """The n bytes a bounded copy writes: the string, then NUL padding.

    If the string has n or more characters the result is not terminated.
    """
    if n <= 0:
        return b""
    s = _b(src)[: strlen(src)]
    return s[:n].ljust(n, b"\0")


def safestrcpy(src: BytesLike, n: int) -> bytes:
    """Copy at most n-1 characters and always NUL-terminate; empty if n <= 0."""
    if n <= 0:
        return b""
    s = _b(src)[: strlen(src)]
    return s[: n - 1] + b"\0"


def strchr(s: BytesLike, c: Union[int, str, bytes]) -> Optional[int]:
    """Index of the first c before the terminating NUL, or None."""
    if not isinstance(c, int):
        c = _b(c)
        if len(c) != 1:
            raise ValueError("strchr needs a single character")
        c = c[0]
    s = _b(s)
    for i, ch in enumerate(s[: strlen(s)]):
        if ch == c:
            return i
    return None


def atoi(s: BytesLike) -> int:
    """Value of the leading decimal digits; no sign or whitespace is accepted."""
    n = 0
    for ch in _b(s):
        if not 0x30 <= ch <= 0x39:
            break
        n = n * 10 + ch - 0x30
    return n


def gets(stream: BinaryIO, max: int) -> bytes:
    """Read a line of at most max-1 bytes, keeping the newline or CR."""
    out = bytearray()
    while len(out) + 1 < max:
        c = stream.read(1)
        if not c:
            break
        out += c
        if c in (b"\n", b"\r"):
            break
    return bytes(out)