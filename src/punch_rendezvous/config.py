"""Configuration helpers for the rendezvous server.

Defaults reproduzem as constantes do protocolo (porta 5000, 128 peers,
TTL de 120 s). Arquivo ``config.json`` opcional e argumentos de linha de
comando sobrescrevem os valores.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from punch_common.settings import MAX_PORT, MIN_PORT, ConfigValidationError, load_json_settings

MAX_CAPACITY = 65536

__all__ = ["ConfigValidationError", "ServerSettings", "validate_capacity", "validate_port", "validate_ttl"]


def validate_port(port: int) -> int:
    """Valida a porta UDP de escuta (0 = efêmera)."""
    if not isinstance(port, int) or isinstance(port, bool):
        raise ConfigValidationError(f"port deve ser inteiro, recebido: {type(port).__name__}")
    if not MIN_PORT <= port <= MAX_PORT:
        raise ConfigValidationError(f"port fora de {MIN_PORT}..{MAX_PORT}: {port}")
    return port


def validate_capacity(capacity: int) -> int:
    if not isinstance(capacity, int) or capacity < 1 or capacity > MAX_CAPACITY:
        raise ConfigValidationError(f"capacity deve estar entre 1 e {MAX_CAPACITY}, recebido: {capacity}")
    return capacity


def validate_ttl(ttl: float) -> float:
    if not isinstance(ttl, (int, float)) or ttl <= 0:
        raise ConfigValidationError(f"ttl_seconds deve ser positivo, recebido: {ttl}")
    return float(ttl)


@dataclass(slots=True)
class ServerSettings:
    """Parâmetros do servidor rendezvous."""

    host: str = "0.0.0.0"
    port: int = 5000
    capacity: int = 128
    ttl_seconds: float = 120.0
    recv_timeout: float = 1.0  # segundos; permite checar o pedido de parada.
    log_level: str = "INFO"
    save_logs_to_file: bool = False
    log_file_path: Optional[Path] = None
    config_file: Optional[Path] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        validate_port(self.port)
        validate_capacity(self.capacity)
        validate_ttl(self.ttl_seconds)

    @classmethod
    def from_file(cls, path: Optional[Path]) -> "ServerSettings":
        return load_json_settings(cls, path)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("config_file")
        data["log_file_path"] = str(self.log_file_path) if self.log_file_path else None
        return data
