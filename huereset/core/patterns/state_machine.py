from enum import Enum, auto
from typing import Dict, List

class ClientState(Enum):
    DISCONNECTED  = auto()
    CONNECTING    = auto()
    CONNECTED     = auto()
    RECONNECTING  = auto()
    ERROR         = auto()
    SHUTDOWN      = auto()

class StateMachine:
    """Connection lifecycle of the broker client."""

    def __init__(self, initial: ClientState = ClientState.DISCONNECTED):
        self._state = initial
        self._trans: Dict[ClientState, List[ClientState]] = {
            ClientState.DISCONNECTED: [ClientState.CONNECTING, ClientState.SHUTDOWN],
            ClientState.CONNECTING:   [ClientState.CONNECTED, ClientState.RECONNECTING,
                                       ClientState.ERROR, ClientState.DISCONNECTED,
                                       ClientState.SHUTDOWN],
            ClientState.CONNECTED:    [ClientState.RECONNECTING, ClientState.DISCONNECTED,
                                       ClientState.SHUTDOWN],
            ClientState.RECONNECTING: [ClientState.CONNECTING, ClientState.CONNECTED,
                                       ClientState.ERROR, ClientState.DISCONNECTED,
                                       ClientState.SHUTDOWN],
            ClientState.ERROR:        [ClientState.CONNECTING, ClientState.CONNECTED,
                                       ClientState.DISCONNECTED,
                                       ClientState.SHUTDOWN],
            ClientState.SHUTDOWN:     [],
        }

    @property
    def state(self) -> ClientState: return self._state

    def can(self, nxt: ClientState) -> bool: return nxt in self._trans[self._state]

    def transition(self, nxt: ClientState) -> bool:
        if self.can(nxt):
            self._state = nxt
            return True
        return False
