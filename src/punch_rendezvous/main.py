"""Entry-point helper for running the rendezvous server."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Optional, Sequence

from punch_common.log import configure_logging
from punch_common.settings import locate_config

from .config import ConfigValidationError, ServerSettings
from .server import RendezvousServer

log = logging.getLogger("main")


def find_default_config() -> Optional[Path]:
    return locate_config(Path(__file__).parent)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="UDP hole punching rendezvous server")
    parser.add_argument("port", type=int, nargs="?", default=None, help="Porta UDP de escuta (padrão 5000)")
    parser.add_argument("--host", default=None, help="Endereço de escuta (padrão 0.0.0.0)")
    parser.add_argument("--config", type=Path, help="Caminho para arquivo de configuração", default=None)
    parser.add_argument("--log-level", help="Override de nível de log", default=None)
    return parser


def load_settings(args: argparse.Namespace) -> ServerSettings:
    config_path = args.config if args.config else find_default_config()
    settings = ServerSettings.from_file(config_path)
    if args.port is not None:
        settings.port = args.port
    if args.host:
        settings.host = args.host
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

    server = RendezvousServer(settings)
    try:
        server.bind()
    except OSError as exc:
        log.error("bind %s:%d failed: %s", settings.host, settings.port, exc)
        return 1

    def signal_handler(sig, frame):
        log.info("Signal %s received, shutting down", sig)
        server.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
