"""Entry-point helper for running the hole punching client."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from punch_common.log import configure_logging
from punch_common.settings import locate_config

from .config import ClientSettings, ConfigValidationError
from .p2p_client import P2PClient

logger = logging.getLogger(__name__)


def find_default_config() -> Optional[Path]:
    return locate_config(Path(__file__).parent)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="UDP hole punching client")
    parser.add_argument("server_ip", help="IP do servidor rendezvous")
    parser.add_argument("server_port", type=int, help="Porta UDP do servidor rendezvous")
    parser.add_argument("my_id", help="Identificador local (até 63 bytes)")
    parser.add_argument("target_id", nargs="?", default=None, help="Peer com quem conectar")
    parser.add_argument("--listen-port", type=int, default=None, help="Porta UDP local (padrão: efêmera)")
    parser.add_argument("--config", type=Path, help="Caminho para arquivo de configuração", default=None)
    parser.add_argument("--log-level", help="Override de nível de log", default=None)
    return parser


def load_settings(args: argparse.Namespace) -> ClientSettings:
    config_path = args.config if args.config else find_default_config()
    settings = ClientSettings.from_file(config_path)
    settings.server_host = args.server_ip
    settings.server_port = args.server_port
    settings.peer_id = args.my_id
    if args.target_id:
        settings.target_id = args.target_id
    if args.listen_port is not None:
        settings.listen_port = args.listen_port
    if args.log_level:
        settings.log_level = args.log_level.upper()
    settings.validate()
    return settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigValidationError as exc:
        parser.error(str(exc))

    log_file = settings.log_file_path if settings.save_logs_to_file else None
    configure_logging(settings.log_level, log_file)

    client = P2PClient(settings, stdin=sys.stdin)
    try:
        client.start()
    except OSError as exc:
        logger.error("Não foi possível criar o socket UDP: %s", exc)
        return 1

    def signal_handler(sig, frame):
        print("\nRecebido sinal de interrupção. Encerrando...")
        client.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    print(f"Cliente iniciado como {settings.peer_id}. Digite /help para ver os comandos.")
    try:
        client.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        client.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
