"""Keep-alive towards the rendezvous server."""
from __future__ import annotations

import logging

from .config import ClientSettings
from .rendezvous_connection import RendezvousClient, RendezvousError
from .state import ClientSession

logger = logging.getLogger(__name__)


class KeepAliveManager:
    """Envia KEEPALIVE em cadência fixa, independente do estado da conexão.

    O prazo fica em ``ClientSession.keepalive_deadline`` e é comparado com o
    relógio a cada volta do loop.
    """

    def __init__(self, settings: ClientSettings, rendezvous: RendezvousClient) -> None:
        self.settings = settings
        self.rendezvous = rendezvous

    def schedule(self, session: ClientSession, now: float) -> None:
        session.keepalive_deadline = now + self.settings.keepalive_interval

    def poll(self, session: ClientSession, now: float) -> bool:
        if now < session.keepalive_deadline:
            return False
        try:
            self.rendezvous.keepalive()
        except RendezvousError as exc:
            logger.warning("Falha ao enviar KEEPALIVE: %s", exc)
        self.schedule(session, now)
        return True
