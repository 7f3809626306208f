"""Carregamento de configuração comum ao servidor e ao cliente.

As classes de configuração são dataclasses; este módulo só sabe ler o JSON,
separar chaves desconhecidas em ``extra`` e localizar o ``config.json``.
"""
from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

MIN_PORT = 0
MAX_PORT = 65535
CONFIG_NAME = "config.json"

S = TypeVar("S")


class ConfigValidationError(ValueError):
    """Erro de validação de configuração."""


def load_json_settings(cls: Type[S], path: Optional[Path]) -> S:
    """Instancia ``cls`` a partir de ``path``; arquivo ausente = defaults.

    Chaves que não são campos do dataclass vão para ``settings.extra``.
    ``validate()`` é chamado antes de retornar.
    """
    if path is None or not path.exists():
        return cls(config_file=path)

    with path.open("r", encoding="utf-8") as fp:
        raw = json.load(fp)
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"{path}: esperado objeto JSON, recebido {type(raw).__name__}")

    names = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {k: v for k, v in raw.items() if k in names and k != "config_file"}
    if kwargs.get("log_file_path"):
        kwargs["log_file_path"] = Path(kwargs["log_file_path"])

    settings = cls(**kwargs, config_file=path)
    settings.extra.update({k: v for k, v in raw.items() if k not in names})
    settings.validate()
    return settings


def locate_config(module_dir: Path) -> Optional[Path]:
    """Procura config.json ao lado do pacote e depois no diretório atual."""
    for candidate in (module_dir / CONFIG_NAME, Path.cwd() / CONFIG_NAME):
        if candidate.exists():
            return candidate
    return None
