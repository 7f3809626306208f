"""Routing of inbound datagrams and outbound application messages."""
from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from punch_common import wire

from .state import ClientSession, PeerInfo, SessionState

logger = logging.getLogger(__name__)

Address = Tuple[str, int]
Sender = Callable[[bytes, Address], None]


class MessageRouter:
    """Aplica as mensagens recebidas à sessão.

    Responsabilidades:
    - Confirmar o registro (``REGISTERED``) e guardar o endereço observado.
    - Aceitar descritores ``PEER`` a qualquer momento após o registro.
    - Passar para ``CONNECTED`` ao receber uma sonda ``PUNCH`` e responder com ACK.
    - Entregar mensagens de aplicação ao callback da CLI.
    """

    def __init__(self, session: ClientSession, send: Sender) -> None:
        self.session = session
        self._send = send
        self._on_message_received: Optional[Callable[[str, str, Address], None]] = None

    def set_message_callback(self, callback: Callable[[str, str, Address], None]) -> None:
        """Define callback para mensagem recebida: callback(sender_id, text, address)."""
        self._on_message_received = callback

    def handle_datagram(self, data: bytes, addr: Address, now: float) -> None:
        text = data.decode("utf-8", errors="replace").rstrip("\r\n\x00")
        try:
            message = wire.decode(data)
        except wire.UnknownMessageError:
            message = None
        except wire.MalformedMessageError as exc:
            logger.debug("[Router] Datagrama inválido de %s:%d: %s", addr[0], addr[1], exc)
            message = None

        msg_type = message.command if message is not None else None
        probe = wire.find_probe(text)

        if msg_type == "REGISTERED":
            self._handle_registered(message)
        elif self.session.registering:
            logger.info("Server reply: %s", text)
        elif msg_type == "PEER":
            self._handle_peer(message, now)
        elif msg_type == "ERROR":
            logger.warning("Servidor retornou erro: %s %s", message.reason, message.detail)
        elif probe is not None:
            # marcador PUNCH em qualquer posição conta como sonda
            self._handle_punch(probe, addr)
        elif msg_type == "Message":
            self._handle_message(message, addr)
        elif message is None:
            logger.info("[UDP %s:%d] %s", addr[0], addr[1], text)
        else:
            logger.debug("[Router] Mensagem ignorada tipo=%s de %s:%d", msg_type, addr[0], addr[1])

    def _handle_registered(self, message: wire.Registered) -> None:
        session = self.session
        session.observed_address = message.address
        late = not session.registering and not session.registration_confirmed
        session.registration_confirmed = True
        if session.registering:
            session.state = SessionState.REGISTERED
        logger.info(
            "Server observed us as: %s %d%s",
            message.ip,
            message.port,
            " (confirmação tardia)" if late else "",
        )

    def _handle_peer(self, message: wire.Peer, now: float) -> None:
        logger.info("Received PEER info: %s %s:%d", message.peer_id, message.ip, message.port)
        if self.session.connected:
            logger.info("Novo descritor durante conexão ativa; reiniciando punching")
        self.session.accept_peer(PeerInfo(message.peer_id, message.ip, message.port), now)

    def _handle_punch(self, message: wire.Punch, addr: Address) -> None:
        session = self.session
        if not session.connected:
            logger.info(
                "Received PUNCH from %s:%d -> %s seq=%s",
                addr[0],
                addr[1],
                message.sender_id,
                message.seq,
            )
            if session.peer is None and message.sender_id:
                session.peer = PeerInfo(message.sender_id, addr[0], addr[1])
            session.mark_connected(addr)
            logger.info("Conectado a %s via %s:%d", session.peer_id or "?", addr[0], addr[1])
        else:
            logger.debug("PUNCH extra de %s:%d seq=%s", addr[0], addr[1], message.seq)

        ack = wire.Message.ack(session.my_id)
        try:
            self._send(ack.encode(), addr)
        except OSError as exc:
            logger.warning("Falha ao enviar ACK para %s:%d: %s", addr[0], addr[1], exc)

    def _handle_message(self, message: wire.Message, addr: Address) -> None:
        logger.info("[Router] RECV de %s (%s:%d): %s", message.sender_id, addr[0], addr[1], message.text[:40])
        if self._on_message_received:
            self._on_message_received(message.sender_id, message.text, addr)

    def send_text(self, text: str) -> bool:
        """Envia mensagem de aplicação pelo canal estabelecido pela sonda."""

        session = self.session
        if not session.connected or session.remote_address is None:
            return False
        message = wire.Message(session.my_id, text)
        try:
            self._send(message.encode(), session.remote_address)
        except OSError as exc:
            logger.warning("Falha ao enviar mensagem: %s", exc)
            return False
        return True
