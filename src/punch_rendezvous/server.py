"""UDP receive loop of the rendezvous server."""
from __future__ import annotations

import logging
import socket
import threading
from typing import Optional, Tuple

from punch_common.wire import MAX_DATAGRAM

from .config import ServerSettings
from .peer_db import PeerDirectory
from .request_handler import RequestHandler

log = logging.getLogger("server")


class RendezvousServer:
    """Recebe um datagrama por vez, responde e varre entradas expiradas."""

    def __init__(self, settings: Optional[ServerSettings] = None,
                 directory: Optional[PeerDirectory] = None,
                 sock: Optional[socket.socket] = None) -> None:
        self.settings = settings or ServerSettings()
        if directory is None:
            directory = PeerDirectory(capacity=self.settings.capacity, ttl=self.settings.ttl_seconds)
        self.directory = directory
        self.handler = RequestHandler(self.directory)
        self._socket = sock
        self._stop_event = threading.Event()

    @property
    def address(self) -> Tuple[str, int]:
        if self._socket is None:
            raise RuntimeError("server socket not bound")
        return self._socket.getsockname()

    @property
    def port(self) -> int:
        return self.address[1]

    def bind(self) -> None:
        """Cria e associa o socket UDP. ``OSError`` aqui é fatal."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self.settings.host, self.settings.port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(self.settings.recv_timeout)
        self._socket = sock
        log.info("Registration server listening on %s:%d", *self.address)

    def process_datagram(self, data: bytes, addr: Tuple[str, int]) -> int:
        """Handle one datagram, send its replies and sweep. Returns replies sent."""
        sock = self._socket
        if sock is None:
            raise RuntimeError("server socket not bound")
        sent = 0
        for out in self.handler.handle(data, addr):
            try:
                sock.sendto(out.payload, out.address)
                sent += 1
            except OSError as exc:
                log.warning("Failed to send reply to %s:%d: %s", out.address[0], out.address[1], exc)
        self.directory.sweep()
        return sent

    def handle_once(self, timeout: Optional[float] = None) -> bool:
        """Block for at most one datagram; returns False on timeout."""
        sock = self._socket
        if sock is None:
            raise RuntimeError("server socket not bound")
        if timeout is not None:
            sock.settimeout(timeout)
        try:
            data, addr = sock.recvfrom(MAX_DATAGRAM)
        except socket.timeout:
            return False
        except ConnectionResetError:
            # ICMP port unreachable from a previous reply (Windows)
            return False
        finally:
            if timeout is not None and self._socket is sock:
                sock.settimeout(self.settings.recv_timeout)
        if not data:
            return False
        self.process_datagram(data, addr)
        return True

    def serve_forever(self) -> None:
        if self._socket is None:
            self.bind()
        self._stop_event.clear()
        while not self._stop_event.is_set():
            try:
                self.handle_once()
            except (OSError, RuntimeError):
                # stop() closes the socket under a blocked recvfrom
                if self._stop_event.is_set():
                    break
                raise

    def stop(self) -> None:
        self._stop_event.set()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
