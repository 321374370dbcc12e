"""Client-to-client protocol layer."""

from .client import CtcpClient, CtcpReply, PendingCtcpQuery
from .quoting import (
    ctcp_dequote,
    ctcp_quote,
    decode_ctcp,
    encode_ctcp,
    is_ctcp,
    low_level_dequote,
    low_level_quote,
)

__all__ = [
    "CtcpClient",
    "CtcpReply",
    "PendingCtcpQuery",
    "ctcp_dequote",
    "ctcp_quote",
    "decode_ctcp",
    "encode_ctcp",
    "is_ctcp",
    "low_level_dequote",
    "low_level_quote",
]
