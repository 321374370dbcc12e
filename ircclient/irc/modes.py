"""Mode string parsing driven by the server's CHANMODES and PREFIX tokens."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..constants import DEFAULT_CHANMODES, DEFAULT_PREFIX
from .models import Channel, ChannelUser, ModeChange


def parse_prefix_token(value: str) -> list[tuple[str, str]]:
    """Parse an ISUPPORT PREFIX value such as ``(qaohv)~&@%+``.

    Returns ``(mode, symbol)`` pairs, highest rank first. An empty value means
    the server has no membership prefixes.
    """
    if not value:
        return []
    if not value.startswith("(") or ")" not in value:
        raise ValueError(f"invalid PREFIX value {value!r}")
    modes, symbols = value[1:].split(")", 1)
    if len(modes) != len(symbols):
        raise ValueError(f"invalid PREFIX value {value!r}")
    return list(zip(modes, symbols, strict=True))


@dataclass(slots=True)
class ModeClasses:
    list_modes: str = ""
    always_param: str = ""
    param_on_set: str = ""
    flags: str = ""
    prefixes: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_tokens(
        cls, chanmodes: str = DEFAULT_CHANMODES, prefix: str = DEFAULT_PREFIX
    ) -> ModeClasses:
        groups = (chanmodes.split(",") + ["", "", "", ""])[:4]
        return cls(*groups, prefixes=parse_prefix_token(prefix))

    def update_chanmodes(self, chanmodes: str) -> None:
        groups = (chanmodes.split(",") + ["", "", "", ""])[:4]
        self.list_modes, self.always_param, self.param_on_set, self.flags = groups

    def update_prefix(self, prefix: str) -> None:
        self.prefixes = parse_prefix_token(prefix)

    @property
    def prefix_modes(self) -> str:
        return "".join(mode for mode, _ in self.prefixes)

    @property
    def prefix_symbols(self) -> str:
        return "".join(symbol for _, symbol in self.prefixes)

    def symbol_to_mode(self, symbol: str) -> str | None:
        for mode, sym in self.prefixes:
            if sym == symbol:
                return mode
        return None

    def rank(self, modes: Iterable[str]) -> int:
        """Rank of the highest membership mode; lower is more privileged."""
        best = len(self.prefixes)
        for index, (mode, _) in enumerate(self.prefixes):
            if mode in modes:
                best = min(best, index)
        return best

    def takes_param(self, mode: str, adding: bool) -> bool:
        if mode in self.prefix_modes or mode in self.list_modes:
            return True
        if mode in self.always_param:
            return True
        if mode in self.param_on_set:
            return adding
        return False


def parse_mode_string(
    modes: str, params: Sequence[str], classes: ModeClasses | None = None
) -> list[ModeChange]:
    """Split ``+ov-k alice bob`` style input into individual ``ModeChange``s.

    Parameters are consumed left to right according to the mode classes. A
    mode that needs a parameter but has none left gets ``None``.
    """
    classes = classes or ModeClasses.from_tokens()
    remaining = list(params)
    changes: list[ModeChange] = []
    adding = True
    for ch in modes:
        if ch == "+":
            adding = True
            continue
        if ch == "-":
            adding = False
            continue
        param = None
        if classes.takes_param(ch, adding) and remaining:
            param = remaining.pop(0)
        changes.append(ModeChange(adding, ch, param))
    return changes


def apply_channel_modes(
    channel: Channel,
    changes: Iterable[ModeChange],
    classes: ModeClasses,
    member_lookup,
) -> None:
    """Apply parsed changes to ``channel`` and its members.

    ``member_lookup(nickname)`` returns the member's ``ChannelUser`` or None.
    """
    for change in changes:
        mode = change.mode
        if mode in classes.prefix_modes:
            if change.param is None:
                continue
            member: ChannelUser | None = member_lookup(change.param)
            if member is None:
                continue
            if change.adding:
                member.modes.add(mode)
            else:
                member.modes.discard(mode)
        elif mode in classes.list_modes:
            entries = channel.list_modes.setdefault(mode, [])
            if change.param is None:
                continue
            if change.adding and change.param not in entries:
                entries.append(change.param)
            elif not change.adding and change.param in entries:
                entries.remove(change.param)
        elif mode in classes.always_param or mode in classes.param_on_set:
            if change.adding and change.param is not None:
                channel.mode_params[mode] = change.param
                channel.modes.add(mode)
            elif not change.adding:
                channel.mode_params.pop(mode, None)
                channel.modes.discard(mode)
        elif change.adding:
            channel.modes.add(mode)
        else:
            channel.modes.discard(mode)


def apply_user_modes(modes: set[str], changes: Iterable[ModeChange]) -> None:
    for change in changes:
        if change.adding:
            modes.add(change.mode)
        else:
            modes.discard(change.mode)
