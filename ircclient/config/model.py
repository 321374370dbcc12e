from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import (
    CONNECT_TIMEOUT,
    CTCP_CLIENT_NAME,
    CTCP_CLIENT_VERSION,
    CTCP_PENDING_TTL,
    FLOOD_COUNTER_PERIOD,
    FLOOD_MAX_BURST,
)

_FORBIDDEN_NAME_CHARS = (" ", ",", "\r", "\n", "\0")


def _normalize_channels(channels: Any) -> list[str]:
    """Normalize a list of channel names.

    Strips whitespace, adds a ``#`` to names without a channel prefix and
    drops duplicates while keeping the configured order.
    """
    if not isinstance(channels, list):
        raise ValueError("autojoin must be a list")
    normalized: list[str] = []
    for c in channels:
        if not isinstance(c, str):
            continue
        stripped = c.strip()
        if not stripped:
            continue
        if stripped[0] not in "#&+!":
            stripped = f"#{stripped}"
        normalized.append(stripped)
    return list(dict.fromkeys(normalized))


class RegistrationInfo(BaseModel):
    """Identity sent during connection registration.

    Attributes:
        nickname: Requested nickname (NICK).
        username: User name sent with USER.
        realname: Real name sent with USER.
        password: Optional connection password (PASS).
        user_modes: Initial user modes; only ``w`` and ``i`` affect USER.
    """

    model_config = ConfigDict(frozen=True)

    nickname: str
    username: str
    realname: str
    password: str | None = None
    user_modes: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("nickname", "username")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        if any(ch in v for ch in _FORBIDDEN_NAME_CHARS):
            raise ValueError("must not contain spaces, commas, CR, LF or NUL")
        return v

    @field_validator("realname")
    @classmethod
    def validate_realname(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        if any(ch in v for ch in ("\r", "\n", "\0")):
            raise ValueError("must not contain CR, LF or NUL")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        if v is not None and any(ch in v for ch in _FORBIDDEN_NAME_CHARS):
            raise ValueError("must not contain spaces, commas, CR, LF or NUL")
        return v or None

    @field_validator("user_modes", mode="before")
    @classmethod
    def validate_user_modes(cls, v: Any) -> frozenset[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = v.lstrip("+")
        modes = frozenset(v)
        if any(len(m) != 1 or not m.isalpha() for m in modes):
            raise ValueError("user modes must be single letters")
        return modes

    @property
    def mode_bitmask(self) -> int:
        """USER mode parameter per RFC 2812: bit 2 for ``w``, bit 3 for ``i``."""
        return (4 if "w" in self.user_modes else 0) | (8 if "i" in self.user_modes else 0)


class FloodSettings(BaseModel):
    max_burst: int = Field(default=FLOOD_MAX_BURST, ge=1)
    counter_period: float = Field(default=FLOOD_COUNTER_PERIOD, ge=0)


class CtcpSettings(BaseModel):
    client_name: str = CTCP_CLIENT_NAME
    client_version: str = CTCP_CLIENT_VERSION
    pending_ttl: float = Field(default=CTCP_PENDING_TTL, gt=0)


class ClientConfig(BaseModel):
    """Top-level client configuration file contents."""

    host: str = Field(min_length=1)
    port: int = Field(default=6667, ge=1, le=65535)
    registration: RegistrationInfo
    flood: FloodSettings = Field(default_factory=FloodSettings)
    ctcp: CtcpSettings = Field(default_factory=CtcpSettings)
    autojoin: list[str] = Field(default_factory=list)
    connect_timeout: float = Field(default=CONNECT_TIMEOUT, gt=0)

    @field_validator("autojoin", mode="before")
    @classmethod
    def validate_autojoin(cls, v: Any) -> list[str]:
        return _normalize_channels(v)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClientConfig:
        norm_data = dict(data)
        if isinstance(norm_data.get("host"), str):
            norm_data["host"] = norm_data["host"].strip()
        return cls.model_validate(norm_data)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
