"""Command-line parser for the shell: tokenizer and command tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

# Open modes used by redirections.
O_RDONLY = 0x000
O_WRONLY = 0x001
O_RDWR = 0x002
O_CREATE = 0x200

MAXARGS = 10

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"


class ParseError(ValueError):
    """Raised when a command line cannot be parsed."""

    def __init__(self, message: str, leftovers: Optional[str] = None) -> None:
        super().__init__(message)
        self.leftovers = leftovers


@dataclass
class ExecCmd:
    """Run a program with arguments; argv[0] is the program."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run cmd with file opened in mode on descriptor fd."""

    cmd: "Command"
    file: str
    mode: int
    fd: int


@dataclass
class PipeCmd:
    """Connect the output of left to the input of right."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run left, wait for it, then run right."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run cmd in the background."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


class Tokenizer:
    """Splits a command line into words and shell symbols."""

    def __init__(self, text: str) -> None:
        nul = text.find("\0")
        self.text = text if nul < 0 else text[:nul]
        self.pos = 0

    @property
    def rest(self) -> str:
        return self.text[self.pos:]

    def _skip_space(self) -> None:
        end = len(self.text)
        while self.pos < end and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def gettoken(self) -> tuple[str, str]:
        """Consume the next token.

        Returns (kind, text): kind is "" at the end of input, "a" for a word,
        "+" for ">>", and the symbol itself for any other symbol.
        """
        self._skip_space()
        end = len(self.text)
        start = self.pos
        if self.pos >= end:
            kind = ""
        else:
            ch = self.text[self.pos]
            if ch in "|();&<":
                kind = ch
                self.pos += 1
            elif ch == ">":
                kind = ">"
                self.pos += 1
                if self.pos < end and self.text[self.pos] == ">":
                    kind = "+"
                    self.pos += 1
            else:
                kind = "a"
                while (
                    self.pos < end
                    and self.text[self.pos] not in WHITESPACE
                    and self.text[self.pos] not in SYMBOLS
                ):
                    self.pos += 1
        word = self.text[start:self.pos]
        self._skip_space()
        return kind, word

    def peek(self, toks: str) -> bool:
        """Skip whitespace; true if the next character is one of toks."""
        self._skip_space()
        return self.pos < len(self.text) and self.text[self.pos] in toks


def parse_command(text: str) -> Command:
    """Parse a full command line into a command tree."""
    tokens = Tokenizer(text)
    cmd = _parse_line(tokens)
    tokens.peek("")
    if tokens.pos != len(tokens.text):
        raise ParseError("syntax", leftovers=tokens.rest)
    return cmd


def _parse_line(tokens: Tokenizer) -> Command:
    cmd = _parse_pipe(tokens)
    while tokens.peek("&"):
        tokens.gettoken()
        cmd = BackCmd(cmd)
    if tokens.peek(";"):
        tokens.gettoken()
        cmd = ListCmd(cmd, _parse_line(tokens))
    return cmd


def _parse_pipe(tokens: Tokenizer) -> Command:
    cmd = _parse_exec(tokens)
    if tokens.peek("|"):
        tokens.gettoken()
        cmd = PipeCmd(cmd, _parse_pipe(tokens))
    return cmd


def _parse_redirs(cmd: Command, tokens: Tokenizer) -> Command:
    while tokens.peek("<>"):
        kind, _ = tokens.gettoken()
        file_kind, file = tokens.gettoken()
        if file_kind != "a":
            raise ParseError("missing file for redirection")
        if kind == "<":
            cmd = RedirCmd(cmd, file, O_RDONLY, 0)
        else:
            cmd = RedirCmd(cmd, file, O_WRONLY | O_CREATE, 1)
    return cmd


def _parse_block(tokens: Tokenizer) -> Command:
    if not tokens.peek("("):
        raise ParseError("parseblock")
    tokens.gettoken()
    cmd = _parse_line(tokens)
    if not tokens.peek(")"):
        raise ParseError("syntax - missing )")
    tokens.gettoken()
    return _parse_redirs(cmd, tokens)


def _parse_exec(tokens: Tokenizer) -> Command:
    if tokens.peek("("):
        return _parse_block(tokens)
    exec_cmd = ExecCmd()
    ret: Command = _parse_redirs(exec_cmd, tokens)
    while not tokens.peek("|)&;"):
        kind, word = tokens.gettoken()
        if kind == "":
            break
        if kind != "a":
            raise ParseError("syntax")
        exec_cmd.argv.append(word)
        if len(exec_cmd.argv) >= MAXARGS:
            raise ParseError("too many args")
        ret = _parse_redirs(ret, tokens)
    return ret