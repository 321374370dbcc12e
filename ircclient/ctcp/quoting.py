"""CTCP framing and the two quoting layers.

Outgoing payloads are CTCP-quoted (``\\`` escapes, ``\\a`` for the 0x01
delimiter) and then low-level quoted (0x10 escapes for NUL, LF and CR), and
finally wrapped in 0x01 delimiters. Incoming payloads are undone in reverse.
"""

from __future__ import annotations

from collections.abc import Mapping

DELIMITER = "\x01"
CTCP_ESCAPE = "\\"
LOW_LEVEL_ESCAPE = "\x10"

_CTCP_QUOTES = {DELIMITER: "a"}
_LOW_LEVEL_QUOTES = {"\0": "0", "\n": "n", "\r": "r"}


def _quote(value: str, escape: str, quoted: Mapping[str, str]) -> str:
    out: list[str] = []
    for ch in value:
        if ch == escape:
            out.append(escape + escape)
        elif ch in quoted:
            out.append(escape + quoted[ch])
        else:
            out.append(ch)
    return "".join(out)


def _dequote(value: str, escape: str, quoted: Mapping[str, str]) -> str:
    """Reverse ``_quote``; an unknown escape yields the escaped character."""
    unquoted = {v: k for k, v in quoted.items()}
    out: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == escape and i + 1 < len(value):
            nxt = value[i + 1]
            out.append(unquoted.get(nxt, nxt))
            i += 2
            continue
        if ch != escape:
            out.append(ch)
        i += 1
    return "".join(out)


def ctcp_quote(value: str) -> str:
    return _quote(value, CTCP_ESCAPE, _CTCP_QUOTES)


def ctcp_dequote(value: str) -> str:
    return _dequote(value, CTCP_ESCAPE, _CTCP_QUOTES)


def low_level_quote(value: str) -> str:
    return _quote(value, LOW_LEVEL_ESCAPE, _LOW_LEVEL_QUOTES)


def low_level_dequote(value: str) -> str:
    return _dequote(value, LOW_LEVEL_ESCAPE, _LOW_LEVEL_QUOTES)


def is_ctcp(text: str) -> bool:
    return len(text) >= 2 and text.startswith(DELIMITER)


def encode_ctcp(tag: str, data: str | None = None) -> str:
    """Frame ``TAG data`` as a CTCP payload ready for PRIVMSG/NOTICE."""
    tagged = tag.upper() if data is None else f"{tag.upper()} {data}"
    return DELIMITER + low_level_quote(ctcp_quote(tagged)) + DELIMITER


def decode_ctcp(text: str) -> tuple[str, str | None]:
    """Split a framed payload into ``(TAG, data)``.

    A missing closing delimiter is tolerated. Raises ``ValueError`` if the
    text is not framed at all.
    """
    if not is_ctcp(text):
        raise ValueError("not a CTCP payload")
    body = text[1:]
    if body.endswith(DELIMITER):
        body = body[:-1]
    body = ctcp_dequote(low_level_dequote(body))
    tag, sep, data = body.partition(" ")
    if not sep:
        return tag.upper(), None
    return tag.upper(), data.lstrip(":")
