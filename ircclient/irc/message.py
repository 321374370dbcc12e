"""IRC line parsing and serialization.

Grammar (RFC 1459 section 2.3.1, plus optional IRCv3 message tags)::

    ['@' tags SPACE] [':' prefix SPACE] command {SPACE middle} [SPACE ':' trailing]

A line is at most 512 bytes including its CRLF terminator; the tag section
does not count towards that limit.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ..constants import LINE_TERMINATOR, MAX_LINE_LENGTH, MAX_PARAMS
from ..errors import LineTooLongError, MalformedLineError

_MAX_BODY = MAX_LINE_LENGTH - 2
_FORBIDDEN = ("\r", "\n", "\0")
_WIRE_ERRORS = "surrogateescape"

_TAG_UNESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}
_TAG_ESCAPES = {v: f"\\{k}" for k, v in _TAG_UNESCAPES.items()}


@dataclass(frozen=True, slots=True)
class Prefix:
    """Source of a message: ``nick!user@host`` or a server name."""

    raw: str
    nickname: str | None = None
    username: str | None = None
    hostname: str | None = None

    @property
    def is_server(self) -> bool:
        return self.nickname is None

    @property
    def name(self) -> str:
        return self.nickname if self.nickname is not None else self.raw

    @classmethod
    def parse(cls, text: str) -> Prefix:
        bang = text.find("!")
        at = text.find("@", bang + 1 if bang >= 0 else 0)
        if bang >= 0:
            nick = text[:bang]
            if at >= 0:
                return cls(text, nick, text[bang + 1 : at], text[at + 1 :])
            return cls(text, nick, text[bang + 1 :], None)
        if at >= 0:
            return cls(text, text[:at], None, text[at + 1 :])
        if "." in text:
            return cls(text)
        return cls(text, text)


@dataclass(slots=True)
class RawMessage:
    command: str
    params: list[str] = field(default_factory=list)
    trailing: str | None = None
    prefix: Prefix | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def all_params(self) -> list[str]:
        """Middle parameters followed by the trailing parameter, if any."""
        if self.trailing is None:
            return list(self.params)
        return [*self.params, self.trailing]

    @property
    def is_numeric(self) -> bool:
        return len(self.command) == 3 and self.command.isdigit()

    def param(self, index: int, default: str | None = None) -> str | None:
        values = self.all_params
        return values[index] if index < len(values) else default

    def serialize(self) -> bytes:
        return serialize_message(
            self.command,
            self.params,
            self.trailing,
            prefix=self.prefix.raw if self.prefix else None,
            tags=self.tags or None,
        )


def _is_valid_command(command: str) -> bool:
    if len(command) == 3 and command.isdigit():
        return True
    return command.isascii() and command.isalpha()


def _split_tokens(text: str) -> tuple[str, str]:
    head, _, rest = text.partition(" ")
    return head, rest.lstrip(" ")


def parse_message(line: bytes | str) -> RawMessage:
    """Parse one protocol line into a ``RawMessage``.

    Accepts the line with or without its CRLF terminator. Bytes are decoded
    as UTF-8 with ``surrogateescape``, so encoding problems never raise and
    undecodable bytes survive re-serialization unchanged.

    Raises:
        LineTooLongError: the line (without tags) exceeds 510 bytes.
        MalformedLineError: the line has no command or an invalid one, or
            contains CR, LF or NUL before its terminator.
    """
    original = line
    if isinstance(line, bytes | bytearray):
        text = bytes(line).decode("utf-8", errors=_WIRE_ERRORS)
    else:
        text = line
    text = text.rstrip("\r\n")
    if not text.strip(" "):
        raise MalformedLineError("empty line", original)
    if any(ch in text for ch in _FORBIDDEN):
        raise MalformedLineError("line contains CR, LF or NUL", original)

    tags: dict[str, str] = {}
    if text.startswith("@"):
        raw_tags, text = _split_tokens(text[1:])
        tags = _parse_tags(raw_tags)

    try:
        size = len(text.encode("utf-8", errors=_WIRE_ERRORS))
    except UnicodeEncodeError as e:
        raise MalformedLineError("line is not encodable", original) from e
    if size > _MAX_BODY:
        raise LineTooLongError(
            f"line exceeds {MAX_LINE_LENGTH} bytes including terminator", original
        )

    prefix: Prefix | None = None
    if text.startswith(":"):
        raw_prefix, text = _split_tokens(text[1:])
        if not raw_prefix:
            raise MalformedLineError("empty prefix", original)
        prefix = Prefix.parse(raw_prefix)

    command, rest = _split_tokens(text)
    if not command:
        raise MalformedLineError("missing command", original)
    if not _is_valid_command(command):
        raise MalformedLineError(f"invalid command {command!r}", original)

    params: list[str] = []
    trailing: str | None = None
    while rest:
        if rest.startswith(":"):
            trailing = rest[1:]
            break
        if len(params) == MAX_PARAMS - 1:
            # Fifteenth parameter swallows the remainder, colon or not.
            # Serializing it back adds the sentinel, which must still fit.
            if size >= _MAX_BODY:
                raise LineTooLongError(
                    f"line exceeds {MAX_LINE_LENGTH} bytes including terminator",
                    original,
                )
            trailing = rest
            break
        token, rest = _split_tokens(rest)
        params.append(token)

    return RawMessage(
        command=command.upper(),
        params=params,
        trailing=trailing,
        prefix=prefix,
        tags=tags,
    )


def _check_forbidden(value: str, what: str) -> None:
    if any(ch in value for ch in _FORBIDDEN):
        raise ValueError(f"{what} may not contain CR, LF or NUL: {value!r}")


def serialize_message(
    command: str,
    params: Sequence[str] = (),
    trailing: str | None = None,
    *,
    prefix: str | None = None,
    tags: Mapping[str, str] | None = None,
) -> bytes:
    """Build a CRLF-terminated protocol line.

    ``trailing`` is always written with its ``:`` sentinel so it may contain
    spaces or be empty. Middle parameters must be non-empty, contain no
    spaces and not start with ``:``.

    Raises:
        ValueError: invalid command or parameters.
        LineTooLongError: the encoded line exceeds 512 bytes.
    """
    if not command or not _is_valid_command(command):
        raise ValueError(f"invalid command {command!r}")
    count = len(params) + (1 if trailing is not None else 0)
    if count > MAX_PARAMS:
        raise ValueError(f"no more than {MAX_PARAMS} parameters may be specified")

    parts: list[str] = []
    if prefix:
        _check_forbidden(prefix, "prefix")
        if " " in prefix:
            raise ValueError(f"prefix may not contain spaces: {prefix!r}")
        parts.append(f":{prefix}")
    parts.append(command.upper())
    for value in params:
        if not value or " " in value or value.startswith(":"):
            raise ValueError(f"invalid middle parameter {value!r}")
        _check_forbidden(value, "parameter")
        parts.append(value)
    if trailing is not None:
        _check_forbidden(trailing, "trailing parameter")
        parts.append(f":{trailing}")

    body = " ".join(parts).encode("utf-8", errors=_WIRE_ERRORS)
    if len(body) > _MAX_BODY:
        raise LineTooLongError(
            f"line exceeds {MAX_LINE_LENGTH} bytes including terminator", body
        )
    if tags:
        raw_tags = _format_tags(tags).encode("utf-8", errors=_WIRE_ERRORS)
        body = b"@" + raw_tags + b" " + body
    return body + LINE_TERMINATOR


def _parse_tags(raw_tags: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for tag in raw_tags.split(";"):
        if not tag:
            continue
        if "=" in tag:
            k, v = tag.split("=", 1)
        else:
            k, v = tag, ""
        tags[k] = _unescape_tag_value(v)
    return tags


def _unescape_tag_value(value: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            nxt = value[i + 1]
            out.append(_TAG_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        if ch != "\\":
            out.append(ch)
        i += 1
    return "".join(out)


def _format_tags(tags: Mapping[str, str]) -> str:
    items = []
    for key, value in tags.items():
        if not value:
            items.append(key)
            continue
        escaped = "".join(_TAG_ESCAPES.get(ch, ch) for ch in value)
        items.append(f"{key}={escaped}")
    return ";".join(items)


__all__ = ["Prefix", "RawMessage", "parse_message", "serialize_message"]
