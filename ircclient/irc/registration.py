"""Connection state machine."""

from __future__ import annotations

import logging

from ..errors import InvalidOperationError
from ..logs.logger import logger
from .models import ConnectionState

_S = ConnectionState

ALLOWED_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    _S.DISCONNECTED: frozenset({_S.CONNECTING}),
    _S.CONNECTING: frozenset({_S.CONNECTED, _S.DISCONNECTED, _S.CLOSING}),
    _S.CONNECTED: frozenset({_S.REGISTERING, _S.CLOSING}),
    _S.REGISTERING: frozenset({_S.REGISTERED, _S.CLOSING}),
    _S.REGISTERED: frozenset({_S.CLOSING}),
    _S.CLOSING: frozenset({_S.DISCONNECTED}),
}

LIVE_STATES = frozenset({_S.CONNECTED, _S.REGISTERING, _S.REGISTERED})


class RegistrationStateMachine:
    def __init__(self, label: str | None = None) -> None:
        self.state = ConnectionState.DISCONNECTED
        self.label = label

    @property
    def is_live(self) -> bool:
        return self.state in LIVE_STATES

    @property
    def is_registered(self) -> bool:
        return self.state is ConnectionState.REGISTERED

    def can_transition(self, new_state: ConnectionState) -> bool:
        return new_state in ALLOWED_TRANSITIONS[self.state]

    def transition(self, new_state: ConnectionState) -> None:
        if new_state is self.state:
            return
        if not self.can_transition(new_state):
            raise InvalidOperationError(
                f"Illegal state transition {self.state.name} -> {new_state.name}",
                data={"old_state": self.state.name, "new_state": new_state.name},
            )
        old_state = self.state
        self.state = new_state
        logger.log_event(
            "irc",
            "state_change",
            level=logging.DEBUG,
            connection=self.label,
            old_state=old_state.name,
            new_state=new_state.name,
        )

    def require(self, *states: ConnectionState, action: str = "command") -> None:
        """Raise ``InvalidOperationError`` unless the state is one of ``states``."""
        if self.state not in states:
            raise InvalidOperationError(
                f"Cannot {action} while {self.state.name}",
                data={"state": self.state.name, "action": action},
            )
