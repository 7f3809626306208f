"""Line-based input channel of the hole punching client."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from .config import ConfigValidationError, validate_peer_id

if TYPE_CHECKING:
    from .p2p_client import P2PClient

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class CommandLineInterface:
    """Interpreta as linhas lidas da entrada padrão.

    Linhas começando com ``/`` são comandos; as demais viram mensagens de
    aplicação para o peer conectado.
    """

    def __init__(self, p2p_client: "P2PClient") -> None:
        self.p2p_client = p2p_client
        self._output_callback: Optional[Callable[[str], None]] = None

    def attach_output(self, callback: Callable[[str], None]) -> None:
        """Permite redirecionar mensagens da CLI para testes/UI."""

        self._output_callback = callback

    def handle_line(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        if line.startswith("/"):
            self._handle_command(line)
            return

        if self.p2p_client.send_text(line):
            logger.debug("-> [%s] %s", self.p2p_client.session.peer_id, line)
        else:
            self.emit("Not yet connected to peer. You can still send a REQUEST to server (/request <id>) or wait.")

    def _handle_command(self, raw_command: str) -> None:
        parts = raw_command.split()
        command = parts[0].lower()

        if command == "/status":
            self._cmd_status()
        elif command == "/request":
            self._cmd_request(parts[1:])
        elif command == "/log":
            self._cmd_log(parts[1:])
        elif command == "/quit":
            self._cmd_quit()
        elif command == "/help":
            self._cmd_help()
        else:
            self.emit(f"Comando desconhecido: {command}")

    def _cmd_status(self) -> None:
        session = self.p2p_client.session
        observed = session.observed_address
        remote = session.remote_address
        self.emit(f"Id:          {session.my_id}")
        self.emit(f"Estado:      {session.state.value}")
        self.emit(f"Registrado:  {'sim' if session.registration_confirmed else 'não'}")
        self.emit(f"Observado:   {f'{observed[0]}:{observed[1]}' if observed else '-'}")
        if session.peer:
            self.emit(f"Peer:        {session.peer.peer_id} {session.peer.ip}:{session.peer.base_port}")
        if remote:
            self.emit(f"Canal:       {remote[0]}:{remote[1]}")

    def _cmd_request(self, args: list) -> None:
        if not args:
            self.emit("Uso: /request <target_id>")
            return
        try:
            target_id = validate_peer_id(args[0], "target_id")
        except ConfigValidationError as exc:
            self.emit(f"Erro: {exc}")
            return
        if self.p2p_client.request_peer(target_id):
            self.emit(f"REQUEST enviado para {target_id}")
        else:
            self.emit(f"Erro: falha ao enviar REQUEST para {target_id}")

    def _cmd_log(self, args: list) -> None:
        root = logging.getLogger()
        if not args:
            current = logging.getLevelName(root.getEffectiveLevel())
            self.emit(f"log: {current} (/log <{'|'.join(LOG_LEVELS)}>)")
            return
        level = args[0].upper()
        if level not in LOG_LEVELS:
            self.emit(f"Nível inválido: {level}")
            return
        root.setLevel(level)
        self.emit(f"log -> {level}")

    def _cmd_quit(self) -> None:
        self.emit("Encerrando cliente...")
        self.p2p_client.stop()

    def _cmd_help(self) -> None:
        help_text = """
  <texto>             - Mensagem para o peer conectado
  /request <id>       - Pedir ao servidor conexão com <id>
  /status             - Mostrar estado da sessão
  /log <nível>        - Ajustar nível de log
  /help               - Mostrar esta ajuda
  /quit               - Encerrar aplicação
"""
        self.emit(help_text)

    def show_message(self, sender_id: str, text: str, address) -> None:
        self.emit(f"[Message from {address[0]}:{address[1]}] {sender_id}: {text}")

    def emit(self, message: str) -> None:
        if self._output_callback:
            self._output_callback(message)
        else:
            print(message, flush=True)
