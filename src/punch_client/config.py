"""Configuration helpers for the hole punching client.

Responsabilidades:
- Carregar ``config.json`` opcional e aplicar defaults do protocolo.
- Permitir overrides vindos da linha de comando (servidor, id, alvo).
- Validar limites (tamanho do id, portas, temporizações).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from punch_common.settings import MAX_PORT, MIN_PORT, ConfigValidationError, load_json_settings
from punch_common.wire import MAX_ID_BYTES


def validate_peer_id(peer_id: str, field_name: str = "peer_id") -> str:
    """Valida um identificador (até 63 bytes, sem espaços nem ":")."""
    if not isinstance(peer_id, str):
        raise ConfigValidationError(f"{field_name} deve ser string, recebido: {type(peer_id).__name__}")
    if len(peer_id) == 0:
        raise ConfigValidationError(f"{field_name} não pode ser vazio")
    if any(ch.isspace() for ch in peer_id):
        raise ConfigValidationError(f"{field_name} não pode conter espaços: {peer_id!r}")
    if ":" in peer_id:
        # ":" separa remetente e texto em "Message <id>: <texto>"
        raise ConfigValidationError(f"{field_name} não pode conter ':': {peer_id!r}")
    if len(peer_id.encode("utf-8")) > MAX_ID_BYTES:
        raise ConfigValidationError(f"{field_name} excede {MAX_ID_BYTES} bytes: {peer_id!r}")
    return peer_id


def validate_port(port: int, allow_zero: bool = False) -> int:
    """Valida o campo port (1-65535, ou 0 para porta efêmera)."""
    if not isinstance(port, int) or isinstance(port, bool):
        raise ConfigValidationError(f"port deve ser inteiro, recebido: {type(port).__name__}")
    low = MIN_PORT if allow_zero else 1
    if port < low or port > MAX_PORT:
        raise ConfigValidationError(f"port deve estar entre {low} e {MAX_PORT}, recebido: {port}")
    return port


def validate_interval(name: str, value: float) -> float:
    if not isinstance(value, (int, float)) or value < 0:
        raise ConfigValidationError(f"{name} deve ser número não negativo, recebido: {value!r}")
    return float(value)


@dataclass(slots=True)
class ClientSettings:
    """Conjunto de parâmetros centrais do cliente.

    Os intervalos seguem o protocolo: REGISTER reenviado a cada segundo por
    até 5 s, KEEPALIVE a cada 5 s, rajadas de 16 sondas e pausa após 40
    rodadas sem sucesso.
    """

    peer_id: str = "alice"
    target_id: Optional[str] = None
    server_host: str = "127.0.0.1"
    server_port: int = 5000
    listen_host: str = "0.0.0.0"
    listen_port: int = 0
    registration_retry: float = 1.0
    registration_timeout: float = 5.0
    keepalive_interval: float = 5.0
    poll_interval: float = 0.2
    punch_burst_size: int = 16
    punch_rounds: int = 40
    punch_spacing: float = 0.01
    punch_round_pause: float = 0.2
    punch_exhausted_pause: float = 1.0
    log_level: str = "INFO"
    save_logs_to_file: bool = False
    log_file_path: Optional[Path] = None
    config_file: Optional[Path] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def server_address(self) -> Tuple[str, int]:
        return (self.server_host, self.server_port)

    def validate(self) -> None:
        """Valida todos os campos.

        Raises:
            ConfigValidationError: Se algum campo estiver fora dos limites.
        """
        validate_peer_id(self.peer_id)
        if self.target_id is not None:
            validate_peer_id(self.target_id, "target_id")
        validate_port(self.server_port)
        validate_port(self.listen_port, allow_zero=True)
        for name in (
            "registration_retry",
            "registration_timeout",
            "keepalive_interval",
            "poll_interval",
            "punch_spacing",
            "punch_round_pause",
            "punch_exhausted_pause",
        ):
            validate_interval(name, getattr(self, name))
        if not isinstance(self.punch_burst_size, int) or self.punch_burst_size < 1:
            raise ConfigValidationError(f"punch_burst_size deve ser >= 1, recebido: {self.punch_burst_size}")
        if not isinstance(self.punch_rounds, int) or self.punch_rounds < 1:
            raise ConfigValidationError(f"punch_rounds deve ser >= 1, recebido: {self.punch_rounds}")

    @classmethod
    def from_file(cls, path: Optional[Path]) -> "ClientSettings":
        """Carrega configurações de um arquivo JSON, se existir."""
        return load_json_settings(cls, path)

    def to_dict(self) -> Dict[str, Any]:
        """Exporta a configuração atual (útil para logs e debug)."""

        return {
            "peer_id": self.peer_id,
            "target_id": self.target_id,
            "server_host": self.server_host,
            "server_port": self.server_port,
            "listen_host": self.listen_host,
            "listen_port": self.listen_port,
            "registration_retry": self.registration_retry,
            "registration_timeout": self.registration_timeout,
            "keepalive_interval": self.keepalive_interval,
            "poll_interval": self.poll_interval,
            "punch_burst_size": self.punch_burst_size,
            "punch_rounds": self.punch_rounds,
            "punch_spacing": self.punch_spacing,
            "punch_round_pause": self.punch_round_pause,
            "punch_exhausted_pause": self.punch_exhausted_pause,
            "log_level": self.log_level,
            "save_logs_to_file": self.save_logs_to_file,
            "log_file_path": str(self.log_file_path) if self.log_file_path else None,
            "extra": self.extra,
        }
