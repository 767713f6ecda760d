import io
import sys

from xvsim.wc import Counts, count, main


def test_simple_count():
    assert count(b"hello world\n") == Counts(1, 2, 12)


def test_invariants():
    data = b"one two\tthree\r\nfour\vfive\n\nsix"
    c = count(data)
    assert c.chars == len(data)
    assert c.lines == data.count(b"\n")
    assert c.words == len(data.split())


def test_formfeed_is_not_a_separator():
    assert count(b"a\fb").words == count(b"ab").words


def test_nul_is_part_of_word():
    assert count(b"a\0b c").words == count(b"ab c").words


def test_empty():
    assert count(b"") == Counts(0, 0, 0)


def test_str_input():
    assert count("x y\n") == count(b"x y\n")


def test_main_files(tmp_path, capsys):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_bytes(b"alpha beta\ngamma\n")
    b.write_bytes(b"")
    assert main([str(a), str(b)]) == 0
    ca, cb = count(a.read_bytes()), count(b"")
    assert capsys.readouterr().out == (
        f"{ca.lines} {ca.words} {ca.chars} {a}\n"
        f"{cb.lines} {cb.words} {cb.chars} {b}\n"
    )


def test_main_missing_file_stops(tmp_path, capsys):
    missing = tmp_path / "nope"
    present = tmp_path / "yes"
    present.write_bytes(b"x\n")
    assert main([str(missing), str(present)]) == 1
    assert capsys.readouterr().out == f"wc: cannot open {missing}\n"


def test_main_stdin(monkeypatch, capsys):
    data = b"from stdin\n"
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))
    assert main([]) == 0
    c = count(data)
    assert capsys.readouterr().out == f"{c.lines} {c.words} {c.chars} \n"