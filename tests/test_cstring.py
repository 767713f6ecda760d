import io

import pytest

from xvsim import cstring


def test_memcmp():
    assert cstring.memcmp(b"abc", b"abd", 3) == ord("c") - ord("d")
    assert cstring.memcmp(b"abc", b"abd", 2) == 0
    assert cstring.memcmp(b"b", b"a", 1) > 0


def test_memcmp_too_long():
    with pytest.raises(ValueError):
        cstring.memcmp(b"ab", b"abc", 3)


def test_memmove_overlap_forward():
    buf = bytearray(b"abcdef")
    cstring.memmove(buf, 2, 0, 4)
    assert buf == bytearray(b"ababcd")


def test_memmove_overlap_backward():
    buf = bytearray(b"abcdef")
    result = cstring.memmove(buf, 0, 2, 4)
    assert result is buf
    assert buf[:4] == bytearray(b"cdef")


def test_memmove_out_of_range():
    with pytest.raises(ValueError):
        cstring.memmove(bytearray(4), 2, 0, 3)


def test_strncmp():
    assert cstring.strncmp(b"abcx", b"abcy", 3) == 0
    assert cstring.strncmp(b"abcx", b"abcy", 4) < 0
    assert cstring.strncmp(b"ab", b"ab\0zz", 10) == 0


def test_strcmp():
    assert cstring.strcmp(b"a", b"a\0zz") == 0
    assert cstring.strcmp("abc", "abd") < 0
    assert cstring.strcmp(b"abc", b"ab") == ord("c")


def test_strncpy_pads():
    assert cstring.strncpy(b"hi", 5) == b"hi\0\0\0"


def test_strncpy_truncates_without_nul():
    assert cstring.strncpy(b"hello", 3) == b"hello"[:3]


def test_safestrcpy():
    result = cstring.safestrcpy(b"hello", 3)
    assert result == b"he\0"
    assert cstring.safestrcpy(b"hi", 16) == b"hi\0"
    assert cstring.safestrcpy(b"x", 0) == b""


def test_strlen():
    data = b"ab\0cd"
    assert cstring.strlen(data) == data.index(b"\0")
    assert cstring.strlen(b"abc") == len(b"abc")


def test_strchr():
    assert cstring.strchr(b"hello", "l") == b"hello".index(b"l")
    assert cstring.strchr(b"hello", ord("z")) is None
    assert cstring.strchr(b"ab\0c", "c") is None
    assert cstring.strchr(b"abc", 0) is None


def test_atoi():
    assert cstring.atoi("123abc") == 123
    assert cstring.atoi(b"-5") == 0
    assert cstring.atoi("") == 0


def test_gets_line():
    stream = io.BytesIO(b"line\nrest")
    assert cstring.gets(stream, 100) == b"line\n"
    assert cstring.gets(stream, 100) == b"rest"
    assert cstring.gets(stream, 100) == b""


def test_gets_limit():
    assert cstring.gets(io.BytesIO(b"abcdef"), 4) == b"abc"