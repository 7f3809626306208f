"""Single-threaded event loop of the hole punching client."""
from __future__ import annotations

import logging
import os
import selectors
import socket
import time
from typing import Callable, Optional, TextIO, Tuple

from punch_common.wire import MAX_DATAGRAM

from .cli import CommandLineInterface
from .config import ClientSettings
from .hole_punch import HolePunchEngine
from .keep_alive import KeepAliveManager
from .message_router import MessageRouter
from .rendezvous_connection import RendezvousClient, RendezvousError
from .state import ClientSession, SessionState

logger = logging.getLogger(__name__)

STDIN_CHUNK = 4096

Address = Tuple[str, int]


class P2PClient:
    """Coordena registro, pedido de conexão, punching e keep-alive.

    Todo o estado vive em ``self.session`` e só é alterado dentro de
    ``run_once``/``tick``: o loop espera no seletor (socket + entrada padrão)
    com timeout curto e, em seguida, executa o trabalho baseado em tempo.
    """

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        sock: Optional[socket.socket] = None,
        stdin: Optional[TextIO] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or ClientSettings()
        self.session = ClientSession(my_id=self.settings.peer_id, target_id=self.settings.target_id)
        self.clock = clock
        self._socket = sock
        self._stdin = stdin
        self._stdin_pending = b""
        self._selector: Optional[selectors.BaseSelector] = None
        self._running = False

        self.rendezvous = RendezvousClient(self.settings, self._send)
        self.router = MessageRouter(self.session, self._send)
        self.puncher = HolePunchEngine(self.settings, self._send, sleep)
        self.keep_alive = KeepAliveManager(self.settings, self.rendezvous)
        self.cli = CommandLineInterface(self)
        self.router.set_message_callback(self._on_message_received)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def local_address(self) -> Address:
        if self._socket is None:
            raise RuntimeError("client socket not bound")
        return self._socket.getsockname()

    def bind(self) -> None:
        """Cria o socket UDP local. ``OSError`` aqui é fatal para o processo."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.settings.listen_host, self.settings.listen_port))
        except OSError:
            sock.close()
            raise
        self._socket = sock

    def start(self, now: Optional[float] = None) -> None:
        if self._running:
            logger.debug("Cliente já iniciado; ignorando chamada extra.")
            return
        if self._socket is None:
            self.bind()
        self._socket.setblocking(False)

        self._selector = selectors.DefaultSelector()
        self._selector.register(self._socket, selectors.EVENT_READ, "net")
        if self._stdin is not None:
            try:
                self._selector.register(self._stdin, selectors.EVENT_READ, "stdin")
            except (ValueError, OSError) as exc:
                logger.warning("Entrada padrão não pode ser multiplexada: %s", exc)
                self._stdin = None

        self._running = True
        logger.info("Inicializando cliente %s em %s:%d", self.settings.peer_id, *self.local_address)
        self.begin_registration(now)

    def begin_registration(self, now: Optional[float] = None) -> None:
        """UNREGISTERED -> REGISTERING: envia o primeiro REGISTER."""
        now = self.clock() if now is None else now
        session = self.session
        session.state = SessionState.REGISTERING
        session.registration_deadline = now + self.settings.registration_timeout
        self._send_register(now)
        self.keep_alive.schedule(session, now)

    def stop(self) -> None:
        """Pede o fim do loop; ``shutdown`` roda ao sair de ``serve_forever``."""
        self._running = False

    def shutdown(self) -> None:
        if self._selector is None and self._socket is None:
            return
        self._running = False
        if self.session.registration_confirmed and self._socket is not None:
            try:
                self.rendezvous.unregister()
            except RendezvousError as exc:
                logger.warning("Falha ao realizar UNREGISTER: %s", exc)
            self.session.registration_confirmed = False
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        if self._socket is not None:
            self._socket.close()
            self._socket = None

    def serve_forever(self) -> None:
        try:
            while self._running:
                self.run_once()
        finally:
            self.shutdown()

    def run_once(self, timeout: Optional[float] = None) -> None:
        if timeout is None:
            timeout = self.poll_timeout()
        for key, _ in self._selector.select(timeout):
            if key.data == "net":
                self._read_socket()
            elif key.data == "stdin":
                self._read_stdin()
            if not self._running:
                return
        self.tick()

    def poll_timeout(self, now: Optional[float] = None) -> float:
        now = self.clock() if now is None else now
        session = self.session
        if session.registering:
            wake = min(session.next_register_at, session.registration_deadline)
            return max(0.0, min(wake - now, self.settings.registration_retry))
        timeout = self.settings.poll_interval
        if session.state is SessionState.PUNCHING:
            timeout = min(timeout, max(0.0, session.next_punch_at - now))
        return min(timeout, max(0.0, session.keepalive_deadline - now))

    def tick(self, now: Optional[float] = None) -> None:
        """Trabalho baseado em tempo: registro, pedido, punching e keep-alive."""
        now = self.clock() if now is None else now
        session = self.session

        if session.registering:
            if now >= session.registration_deadline:
                logger.error("Failed to register with server; continuing unregistered")
                session.state = SessionState.REGISTERED
            elif now >= session.next_register_at:
                self._send_register(now)

        if session.state is SessionState.REGISTERED and session.target_id and not session.request_sent:
            self.request_peer(session.target_id)

        self.puncher.poll(session, now)
        self.keep_alive.poll(session, now)

    def request_peer(self, target_id: str) -> bool:
        session = self.session
        session.target_id = target_id
        session.request_sent = True
        try:
            self.rendezvous.request(target_id)
        except RendezvousError as exc:
            logger.warning("Falha ao enviar REQUEST: %s", exc)
            return False
        if session.state is SessionState.REGISTERED:
            session.state = SessionState.AWAITING_PEER
        return True

    def send_text(self, text: str) -> bool:
        return self.router.send_text(text)

    def handle_datagram(self, data: bytes, addr: Address, now: Optional[float] = None) -> None:
        self.router.handle_datagram(data, addr, self.clock() if now is None else now)

    def _send(self, data: bytes, addr: Address) -> None:
        if self._socket is None:
            raise OSError("client socket closed")
        self._socket.sendto(data, addr)

    def _send_register(self, now: float) -> None:
        try:
            self.rendezvous.register()
        except RendezvousError as exc:
            logger.warning("Falha ao enviar REGISTER: %s", exc)
        self.session.next_register_at = now + self.settings.registration_retry

    def _read_socket(self) -> None:
        try:
            data, addr = self._socket.recvfrom(MAX_DATAGRAM)
        except (BlockingIOError, InterruptedError):
            return
        except (ConnectionResetError, ConnectionRefusedError) as exc:
            # ICMP de porta fechada após uma sonda
            logger.debug("Erro de recepção ignorado: %s", exc)
            return
        if not data:
            return
        self.handle_datagram(data, addr)

    def _read_stdin(self) -> None:
        # os.read no descritor: nenhuma linha fica retida no buffer do TextIO
        try:
            chunk = os.read(self._stdin.fileno(), STDIN_CHUNK)
        except (BlockingIOError, InterruptedError):
            return
        if not chunk:
            tail, self._stdin_pending = self._stdin_pending, b""
            logger.info("Entrada padrão encerrada; sessão continua ativa")
            self._selector.unregister(self._stdin)
            self._stdin = None
            if tail:
                self._handle_input_line(tail)
            return

        *lines, self._stdin_pending = (self._stdin_pending + chunk).split(b"\n")
        for raw in lines:
            self._handle_input_line(raw)
            if not self._running:
                return

    def _handle_input_line(self, raw: bytes) -> None:
        self.cli.handle_line(raw.decode("utf-8", errors="replace").rstrip("\r"))

    def _on_message_received(self, sender_id: str, text: str, address: Address) -> None:
        self.cli.show_message(sender_id, text, address)
