"""UDP hole punching with port prediction.

Cada rodada dispara uma rajada de sondas ``PUNCH`` para portas consecutivas
a partir da porta base observada pelo rendezvous. NATs que alocam a porta
externa de um novo fluxo perto (mas não exatamente em cima) da porta
anterior acabam atingidos por alguma das sondas.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Tuple

from punch_common import wire

from .config import ClientSettings
from .state import ClientSession, SessionState

logger = logging.getLogger(__name__)

MAX_UDP_PORT = 65535

Sender = Callable[[bytes, Tuple[str, int]], None]


class HolePunchEngine:
    """Dispara rajadas de sondas enquanto a sessão está em ``PUNCHING``."""

    def __init__(self, settings: ClientSettings, send: Sender,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self.settings = settings
        self._send = send
        self._sleep = sleep

    def poll(self, session: ClientSession, now: float) -> int:
        """Executa uma rodada se estiver na hora. Retorna o número de sondas."""

        if session.state is not SessionState.PUNCHING or session.peer is None:
            return 0
        if now < session.next_punch_at:
            return 0

        if session.punch_round >= self.settings.punch_rounds:
            logger.warning(
                "Punching attempts exhausted (%d rounds). Still not connected.",
                self.settings.punch_rounds,
            )
            session.punch_round = 0
            session.next_punch_at = now + self.settings.punch_exhausted_pause
            return 0

        session.punch_round += 1
        sent = self.burst(session)
        session.next_punch_at = now + self.settings.punch_round_pause
        return sent

    def burst(self, session: ClientSession) -> int:
        """Envia uma rajada para ``base_port .. base_port + burst_size - 1``."""

        peer = session.peer
        size = self.settings.punch_burst_size
        sent = 0
        for offset in range(size):
            port = peer.base_port + offset
            if port > MAX_UDP_PORT:
                break
            probe = wire.Punch(session.my_id, session.punch_seq)
            session.punch_seq += 1
            try:
                self._send(probe.encode(), (peer.ip, port))
            except OSError as exc:
                logger.debug("Send error para %s:%d: %s", peer.ip, port, exc)
            sent += 1
            if self.settings.punch_spacing and offset < size - 1:
                self._sleep(self.settings.punch_spacing)

        logger.debug(
            "Rodada %d: %d sondas para %s:%d+ (seq até %d)",
            session.punch_round,
            sent,
            peer.ip,
            peer.base_port,
            session.punch_seq - 1,
        )
        return sent
