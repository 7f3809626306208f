"""Session state model for the hole punching client."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

Address = Tuple[str, int]


class SessionState(str, Enum):
    UNREGISTERED = "UNREGISTERED"
    REGISTERING = "REGISTERING"
    REGISTERED = "REGISTERED"
    AWAITING_PEER = "AWAITING_PEER"
    PUNCHING = "PUNCHING"
    CONNECTED = "CONNECTED"


@dataclass(slots=True)
class PeerInfo:
    """Descritor recebido em ``PEER <id> <ip> <port>``."""

    peer_id: str
    ip: str
    base_port: int

    @property
    def address(self) -> Address:
        return (self.ip, self.base_port)


@dataclass(slots=True)
class ClientSession:
    """Estado único da sessão, alterado apenas pelo loop de eventos.

    ``registration_confirmed`` diferencia o modo registrado do modo em que o
    prazo de registro expirou e o cliente segue operando mesmo assim.
    """

    my_id: str
    target_id: Optional[str] = None
    state: SessionState = SessionState.UNREGISTERED
    registration_confirmed: bool = False
    observed_address: Optional[Address] = None
    peer: Optional[PeerInfo] = None
    remote_address: Optional[Address] = None
    punch_round: int = 0
    punch_seq: int = 0
    next_punch_at: float = 0.0
    keepalive_deadline: float = 0.0
    registration_deadline: float = 0.0
    next_register_at: float = 0.0
    request_sent: bool = False

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def registering(self) -> bool:
        return self.state is SessionState.REGISTERING

    @property
    def peer_id(self) -> Optional[str]:
        return self.peer.peer_id if self.peer else None

    def accept_peer(self, peer: PeerInfo, now: float) -> None:
        self.peer = peer
        self.remote_address = None
        self.punch_round = 0
        self.next_punch_at = now
        self.state = SessionState.PUNCHING

    def mark_connected(self, remote: Address) -> None:
        self.remote_address = remote
        self.state = SessionState.CONNECTED
