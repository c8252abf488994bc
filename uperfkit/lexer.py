"""Tokenizer for the XML-like profile format."""

from __future__ import annotations

import os
from collections.abc import Iterator
from dataclasses import dataclass
from enum import IntEnum

MAX_TOKEN_LEN = 1024


class ProfileError(Exception):
    """Raised when a profile cannot be read."""


class TokenType(IntEnum):
    """Kinds of profile token."""

    PROFILE_START = 0
    PROFILE_END = 1
    GROUP_START = 2
    GROUP_END = 3
    TXN_START = 4
    TXN_END = 5
    FLOWOP_START = 6
    XML_END = 7
    NAME = 8
    ITERATIONS = 9
    TYPE = 10
    OPTIONS = 11
    DURATION = 12
    NTHREADS = 14
    NPROCESSES = 15
    RATE = 16
    ERROR = 99


_TOKEN_PREFIXES = (
    ("<profile", TokenType.PROFILE_START),
    ("</profile>", TokenType.PROFILE_END),
    ("<group", TokenType.GROUP_START),
    ("</group>", TokenType.GROUP_END),
    ("<transaction", TokenType.TXN_START),
    ("</transaction", TokenType.TXN_END),
    ("<flowop", TokenType.FLOWOP_START),
    ("/>", TokenType.XML_END),
    ("name=", TokenType.NAME),
    ("iterations=", TokenType.ITERATIONS),
    ("type=", TokenType.TYPE),
    ("options=", TokenType.OPTIONS),
    ("duration=", TokenType.DURATION),
    ("nthreads=", TokenType.NTHREADS),
    ("nprocs=", TokenType.NPROCESSES),
    ("rate=", TokenType.RATE),
)


@dataclass
class Symbol:
    """A classified token: its resolved value, its type and the text it came from."""

    symbol: str
    type: TokenType
    text: str


def _is_separator(ch: str) -> bool:
    return 0 < ord(ch) < 33


def _lower(ch: str) -> str:
    return ch.lower() if ch.isascii() else ch


def tokenize(text: str) -> Iterator[str]:
    """Yield lower-cased tokens; quoted words form one token, comments are dropped.

    Raises ProfileError for a token of MAX_TOKEN_LEN characters or more.
    """
    pos = 0
    end = len(text)
    while True:
        while pos < end and _is_separator(text[pos]):
            pos += 1
        if pos >= end or text[pos] == "\0":
            return
        if text.startswith("<!--", pos):
            close = text.find("-->", pos + 2)
            pos = end if close < 0 else close + 3
            continue
        if text.startswith("<?", pos):
            close = text.find("?>", pos + 1)
            pos = end if close < 0 else close + 2
            continue
        chars: list[str] = []
        while pos < end and not _is_separator(text[pos]) and text[pos] != "\0" \
                and len(chars) < MAX_TOKEN_LEN:
            if text[pos] == '"':
                pos += 1
                while pos < end and text[pos] not in '"\0' and len(chars) < MAX_TOKEN_LEN:
                    ch = text[pos]
                    chars.append(" " if ch in "\r\n" else _lower(ch))
                    pos += 1
                if pos < end and text[pos] == '"':
                    pos += 1
                break
            chars.append(_lower(text[pos]))
            pos += 1
        if len(chars) >= MAX_TOKEN_LEN:
            raise ProfileError("token too long.")
        yield "".join(chars)


def token_type(token: str | None) -> TokenType:
    """Classify a token by its leading keyword."""
    if token is None:
        return TokenType.ERROR
    for prefix, kind in _TOKEN_PREFIXES:
        if token.startswith(prefix):
            return kind
    return TokenType.ERROR


def resolve_symbol(token: str, errors: list[str]) -> str:
    """Return the value of a 'key=value' token, expanding a leading '$' from the environment.

    An unset variable is reported in ``errors`` and the unexpanded value returned.
    """
    _, sep, value = token.partition("=")
    if not sep:
        value = token
    if value.startswith("$"):
        resolved = os.environ.get(value[1:])
        if resolved:
            return resolved
        errors.append(f"{value} is not set")
    return value


def parse_symbols(text: str, errors: list[str]) -> list[Symbol]:
    """Split a profile into symbols, joining pieces split around '=' or after '<' and '</'."""
    symbols: list[Symbol] = []
    seen_any = False
    for token in tokenize(text):
        seen_any = True
        if token == ">":
            continue
        if symbols:
            prev = symbols[-1].text
            merge = (
                token.startswith("=")
                or prev.endswith("=")
                or prev in ("<", "</")
            )
        else:
            merge = False
        if merge:
            current = symbols[-1]
            joined = current.text + token
            current.text = joined
            current.type = token_type(joined)
            current.symbol = resolve_symbol(joined, errors)
        else:
            kind = token_type(token)
            value = resolve_symbol(token, errors) if kind != TokenType.ERROR else token
            symbols.append(Symbol(value, kind, token))
    if not seen_any:
        raise ProfileError("No profile found")
    return symbols