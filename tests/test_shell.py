import pytest

from xvsim.shell import (
    MAXARGS,
    O_CREATE,
    O_RDONLY,
    O_WRONLY,
    BackCmd,
    ExecCmd,
    ListCmd,
    ParseError,
    PipeCmd,
    RedirCmd,
    Tokenizer,
    parse_command,
)


def test_simple_exec():
    assert parse_command("echo hello world\n") == ExecCmd(["echo", "hello", "world"])


def test_empty_line_is_empty_exec():
    assert parse_command("") == ExecCmd([])
    assert parse_command("  \t\n") == ExecCmd([])


def test_tokenizer_sequence():
    t = Tokenizer("cat >> out | wc")
    kinds = []
    while True:
        kind, word = t.gettoken()
        kinds.append((kind, word))
        if kind == "":
            break
    assert kinds == [
        ("a", "cat"),
        ("+", ">>"),
        ("a", "out"),
        ("|", "|"),
        ("a", "wc"),
        ("", ""),
    ]


def test_tokenizer_word_stops_at_symbol():
    t = Tokenizer("ab;cd")
    assert t.gettoken() == ("a", "ab")
    assert t.gettoken() == (";", ";")
    assert t.gettoken() == ("a", "cd")


def test_peek_does_not_consume_token():
    t = Tokenizer("   | x")
    assert t.peek("|")
    assert not t.peek("&")
    assert not t.peek("")
    assert t.gettoken() == ("|", "|")


def test_redirections_nest_in_order():
    cmd = parse_command("cat < in > out")
    inner = RedirCmd(ExecCmd(["cat"]), "in", O_RDONLY, 0)
    assert cmd == RedirCmd(inner, "out", O_WRONLY | O_CREATE, 1)


def test_append_redirection_uses_write_mode():
    cmd = parse_command("echo hi >> log")
    assert cmd == RedirCmd(ExecCmd(["echo", "hi"]), "log", O_WRONLY | O_CREATE, 1)


def test_redirection_before_words_keeps_arguments():
    cmd = parse_command("< in grep x")
    assert isinstance(cmd, RedirCmd)
    assert cmd.cmd == ExecCmd(["grep", "x"])
    assert cmd.file == "in"


def test_pipeline_is_right_nested():
    cmd = parse_command("a | b | c")
    assert cmd == PipeCmd(ExecCmd(["a"]), PipeCmd(ExecCmd(["b"]), ExecCmd(["c"])))


def test_list_is_right_nested():
    cmd = parse_command("a ; b ; c")
    assert cmd == ListCmd(ExecCmd(["a"]), ListCmd(ExecCmd(["b"]), ExecCmd(["c"])))


def test_background_commands():
    assert parse_command("a &") == BackCmd(ExecCmd(["a"]))
    assert parse_command("a & &") == BackCmd(BackCmd(ExecCmd(["a"])))


def test_background_then_list():
    cmd = parse_command("a & ; b")
    assert cmd == ListCmd(BackCmd(ExecCmd(["a"])), ExecCmd(["b"]))


def test_background_followed_by_word_is_syntax_error():
    with pytest.raises(ParseError, match="syntax") as info:
        parse_command("a & b")
    assert info.value.leftovers == "b"


def test_block_with_redirection():
    cmd = parse_command("(a ; b) > f")
    assert cmd == RedirCmd(
        ListCmd(ExecCmd(["a"]), ExecCmd(["b"])), "f", O_WRONLY | O_CREATE, 1
    )


def test_missing_close_paren():
    with pytest.raises(ParseError, match=r"syntax - missing \)"):
        parse_command("( echo a")


def test_unmatched_close_paren_is_leftover():
    with pytest.raises(ParseError) as info:
        parse_command("echo a )")
    assert info.value.leftovers == ")"


def test_missing_redirection_file():
    with pytest.raises(ParseError, match="missing file for redirection"):
        parse_command("echo <")


def test_open_paren_inside_words_is_syntax_error():
    with pytest.raises(ParseError, match="syntax"):
        parse_command("echo ( a")


def test_too_many_args():
    words = [f"w{i}" for i in range(MAXARGS)]
    with pytest.raises(ParseError, match="too many args"):
        parse_command(" ".join(words))


def test_max_minus_one_args_accepted():
    words = [f"w{i}" for i in range(MAXARGS - 1)]
    assert parse_command(" ".join(words)) == ExecCmd(words)


def test_text_after_nul_is_ignored():
    assert parse_command("echo a\0 junk )") == ExecCmd(["echo", "a"])