"""Connection lifecycle state machine and reconnect delay policy.

States:
    DISCONNECTED -> CONNECTING -> CONNECTED -> RECONNECT_WAIT -> CONNECTING ...
    CONNECTING -> RECONNECT_WAIT (connect attempt failed)
    any state -> STOPPED (terminal)

The policy supports the legacy fixed delay (5s forever) and exponential
backoff with proportional jitter under a ceiling. The attempt counter is
reset whenever a connection is established.
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from cryptodp.config import StreamerSettings
from cryptodp.exceptions import StateTransitionError


class ConnectionState(str, Enum):
    """Lifecycle state of one streaming connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECT_WAIT = "reconnect_wait"
    STOPPED = "stopped"


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.CONNECTED, ConnectionState.RECONNECT_WAIT}
    ),
    ConnectionState.CONNECTED: frozenset({ConnectionState.RECONNECT_WAIT}),
    ConnectionState.RECONNECT_WAIT: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.STOPPED: frozenset(),
}


class ConnectionStateMachine:
    """Tracks and validates connection state transitions."""

    def __init__(self) -> None:
        self._state = ConnectionState.DISCONNECTED
        self._history: list[ConnectionState] = [self._state]

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def history(self) -> list[ConnectionState]:
        return list(self._history)

    @property
    def is_stopped(self) -> bool:
        return self._state is ConnectionState.STOPPED

    def can_transition(self, new_state: ConnectionState) -> bool:
        if new_state is ConnectionState.STOPPED:
            return True
        return new_state in _TRANSITIONS[self._state]

    def transition_to(self, new_state: ConnectionState) -> None:
        """Move to ``new_state``.

        STOPPED is reachable from every state; re-entering STOPPED is a
        no-op. Raises StateTransitionError for anything else not in the
        transition table.
        """
        if new_state is ConnectionState.STOPPED and self.is_stopped:
            return
        if not self.can_transition(new_state):
            raise StateTransitionError(
                f"illegal transition {self._state.value} -> {new_state.value}"
            )
        self._state = new_state
        self._history.append(new_state)


@dataclass
class ReconnectPolicy:
    """Delay before reconnect attempt ``n`` (0-based)."""

    strategy: Literal["fixed", "exponential"] = "exponential"
    base_delay: float = 5.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: float = 0.1
    rng: random.Random = field(default_factory=random.Random, repr=False)

    @classmethod
    def from_settings(
        cls, settings: StreamerSettings, rng: random.Random | None = None
    ) -> "ReconnectPolicy":
        return cls(
            strategy=settings.reconnect_strategy,
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
            multiplier=settings.reconnect_multiplier,
            jitter=settings.reconnect_jitter,
            rng=rng or random.Random(),
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before the given reconnect attempt.

        Fixed: always ``base_delay``. Exponential: ``base_delay *
        multiplier**attempt`` capped at ``max_delay``, then scaled by a
        random factor in ``[1 - jitter, 1 + jitter]`` and capped again.
        """
        if self.strategy == "fixed":
            return self.base_delay

        # Exponent is bounded so huge attempt counts cannot overflow float math
        exponent = min(max(attempt, 0), 64)
        delay = min(self.base_delay * (self.multiplier**exponent), self.max_delay)
        if self.jitter > 0:
            delay *= 1.0 + self.rng.uniform(-self.jitter, self.jitter)
        return max(0.0, min(delay, self.max_delay))
