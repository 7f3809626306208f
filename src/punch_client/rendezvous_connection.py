"""Commands the client sends to the rendezvous server."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from punch_common import wire

from .config import ClientSettings

logger = logging.getLogger(__name__)

Sender = Callable[[bytes, Tuple[str, int]], None]


class RendezvousError(RuntimeError):
    """Erro genérico envolvendo interação com o rendezvous."""


class RendezvousClient:
    """Encapsula REGISTER/REQUEST/KEEPALIVE/UNREGISTER.

    Nenhum desses comandos espera resposta aqui: as respostas chegam pelo
    mesmo socket e são tratadas pelo ``MessageRouter``.
    """

    def __init__(self, settings: ClientSettings, send: Sender) -> None:
        self.settings = settings
        self._send = send

    def _send_request(self, message: wire.WireMessage) -> None:
        try:
            self._send(message.encode(), self.settings.server_address)
        except OSError as exc:
            raise RendezvousError(f"Erro de rede com rendezvous: {exc}") from exc

    def register(self) -> None:
        self._send_request(wire.Register(self.settings.peer_id))
        logger.info(
            "Sent: REGISTER %s to %s:%s",
            self.settings.peer_id,
            self.settings.server_host,
            self.settings.server_port,
        )

    def request(self, target_id: str, requester_id: Optional[str] = None) -> None:
        requester = requester_id if requester_id is not None else self.settings.peer_id
        self._send_request(wire.Request(target_id=target_id, requester_id=requester))
        logger.info("Sent REQUEST for %s", target_id)

    def keepalive(self) -> None:
        self._send_request(wire.Keepalive(self.settings.peer_id))
        logger.debug("KEEPALIVE enviado")

    def unregister(self) -> None:
        self._send_request(wire.Unregister(self.settings.peer_id))
        logger.info("Peer removido do rendezvous")
