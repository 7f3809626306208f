"""Text wire format shared by the rendezvous server and the peers.

Cada mensagem ocupa um único datagrama UDP e começa com uma palavra-chave
literal seguida de tokens separados por espaço::

    REGISTER <id>
    REGISTERED <id> <ip> <port>
    REQUEST [<requester_id>] <target_id>
    PEER <id> <ip> <port>
    ERROR <reason> <detail>
    KEEPALIVE <id>
    UNREGISTER <id>
    PUNCH <sender_id> seq=<n>
    Message <sender_id>: <text>
"""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Optional, Tuple, Union

# Limites do protocolo de texto
MAX_ID_BYTES = 63
MAX_DATAGRAM = 511
UNKNOWN_REQUESTER = "unknown"
TARGET_NOT_FOUND = "target_not_found"
PROBE_MARKER = "PUNCH"

Address = Tuple[str, int]


class ProtocolError(ValueError):
    """Datagrama que não pode ser interpretado."""


class UnknownMessageError(ProtocolError):
    """Datagrama sem palavra-chave reconhecida."""


class MalformedMessageError(ProtocolError):
    """Palavra-chave reconhecida, mas campos ausentes ou inválidos."""


def clamp_id(peer_id: str) -> str:
    """Trunca o identificador para ``MAX_ID_BYTES`` bytes em UTF-8."""

    raw = peer_id.encode("utf-8")
    if len(raw) <= MAX_ID_BYTES:
        return peer_id
    return raw[:MAX_ID_BYTES].decode("utf-8", errors="ignore")


def parse_port(value: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise MalformedMessageError(f"invalid port: {value!r}") from None
    if not 0 <= port <= 65535:
        raise MalformedMessageError(f"port out of range: {port}")
    return port


def parse_ip(value: str) -> str:
    try:
        return str(ipaddress.IPv4Address(value))
    except ValueError:
        raise MalformedMessageError(f"invalid IPv4 address: {value!r}") from None


@dataclass(frozen=True)
class Register:
    peer_id: str
    command = "REGISTER"

    def encode(self) -> bytes:
        return f"REGISTER {self.peer_id}".encode("utf-8")


@dataclass(frozen=True)
class Registered:
    peer_id: str
    ip: str
    port: int
    command = "REGISTERED"

    @property
    def address(self) -> Address:
        return (self.ip, self.port)

    def encode(self) -> bytes:
        return f"REGISTERED {self.peer_id} {self.ip} {self.port}".encode("utf-8")


@dataclass(frozen=True)
class Request:
    target_id: str
    requester_id: Optional[str] = None
    command = "REQUEST"

    def encode(self) -> bytes:
        if self.requester_id is None:
            return f"REQUEST {self.target_id}".encode("utf-8")
        return f"REQUEST {self.requester_id} {self.target_id}".encode("utf-8")


@dataclass(frozen=True)
class Peer:
    peer_id: str
    ip: str
    port: int
    command = "PEER"

    @property
    def address(self) -> Address:
        return (self.ip, self.port)

    def encode(self) -> bytes:
        return f"PEER {self.peer_id} {self.ip} {self.port}".encode("utf-8")


@dataclass(frozen=True)
class Error:
    reason: str
    detail: str = ""
    command = "ERROR"

    def encode(self) -> bytes:
        return f"ERROR {self.reason} {self.detail}".rstrip().encode("utf-8")


@dataclass(frozen=True)
class Keepalive:
    peer_id: str
    command = "KEEPALIVE"

    def encode(self) -> bytes:
        return f"KEEPALIVE {self.peer_id}".encode("utf-8")


@dataclass(frozen=True)
class Unregister:
    peer_id: str
    command = "UNREGISTER"

    def encode(self) -> bytes:
        return f"UNREGISTER {self.peer_id}".encode("utf-8")


@dataclass(frozen=True)
class Punch:
    sender_id: str = ""
    seq: Optional[int] = None
    command = "PUNCH"

    def encode(self) -> bytes:
        return f"PUNCH {self.sender_id} seq={self.seq}".encode("utf-8")


@dataclass(frozen=True)
class Message:
    sender_id: str
    text: str
    command = "Message"

    @classmethod
    def ack(cls, my_id: str) -> "Message":
        return cls(sender_id=my_id, text=f"ACK from {my_id}")

    @property
    def is_ack(self) -> bool:
        return self.text.startswith("ACK from ")

    def encode(self) -> bytes:
        return f"Message {self.sender_id}: {self.text}".encode("utf-8")


WireMessage = Union[
    Register, Registered, Request, Peer, Error, Keepalive, Unregister, Punch, Message
]


def _single_id(command: str, args: list) -> str:
    if not args:
        raise MalformedMessageError(f"{command} without id")
    return clamp_id(args[0])


def _descriptor(command: str, args: list) -> Tuple[str, str, int]:
    if len(args) < 3:
        raise MalformedMessageError(f"{command} requires <id> <ip> <port>")
    return clamp_id(args[0]), parse_ip(args[1]), parse_port(args[2])


def _decode_punch(args: list) -> Punch:
    sender = clamp_id(args[0]) if args else ""
    seq = None
    for token in args[1:]:
        if token.startswith("seq="):
            try:
                seq = int(token[4:])
            except ValueError:
                seq = None
            break
    return Punch(sender_id=sender, seq=seq)


def _decode_message(text: str) -> Message:
    body = text[len("Message "):]
    # ids não contêm ": "; o texto pode conter qualquer coisa
    sender, sep, payload = body.partition(": ")
    if not sep:
        sender, sep, payload = body.partition(":")
    sender = sender.strip()
    if not sep or not sender or " " in sender:
        raise MalformedMessageError(f"invalid application message: {text!r}")
    return Message(sender_id=clamp_id(sender), text=payload)


def find_probe(text: str) -> Optional[Punch]:
    """Procura o marcador ``PUNCH`` em qualquer posição do datagrama.

    Descritores ``PEER`` nunca são sondas. Os campos após o marcador são
    lidos como em ``PUNCH <id> seq=<n>``; se faltarem, ficam vazios.
    """
    if text.startswith("PEER "):
        return None
    index = text.find(PROBE_MARKER)
    if index < 0:
        return None
    return _decode_punch(text[index + len(PROBE_MARKER):].split())


def decode(data: bytes) -> WireMessage:
    """Converte um datagrama bruto na mensagem correspondente.

    Raises:
        UnknownMessageError: se a primeira palavra não for um comando conhecido.
        MalformedMessageError: se os campos obrigatórios estiverem ausentes.
    """

    text = data.decode("utf-8", errors="replace").rstrip("\r\n\x00")
    if text.startswith("Message "):
        return _decode_message(text)

    tokens = text.split()
    if not tokens:
        raise UnknownMessageError("empty datagram")
    command, args = tokens[0], tokens[1:]

    if command == "REGISTER":
        return Register(_single_id(command, args))
    if command == "REGISTERED":
        return Registered(*_descriptor(command, args))
    if command == "REQUEST":
        if not args:
            raise MalformedMessageError("REQUEST without target")
        if len(args) == 1:
            return Request(target_id=clamp_id(args[0]))
        return Request(target_id=clamp_id(args[1]), requester_id=clamp_id(args[0]))
    if command == "PEER":
        return Peer(*_descriptor(command, args))
    if command == "ERROR":
        if not args:
            raise MalformedMessageError("ERROR without reason")
        return Error(reason=args[0], detail=" ".join(args[1:]))
    if command == "KEEPALIVE":
        return Keepalive(_single_id(command, args))
    if command == "UNREGISTER":
        return Unregister(_single_id(command, args))
    if command == "PUNCH":
        return _decode_punch(args)

    raise UnknownMessageError(f"unknown command: {command[:32]!r}")
