"""
Run the cache server: storage + remote source -> coordinator -> HTTP API,
advertised over zeroconf.
Use: barcode-cache serve [--port 0] [--wait 0] [--key ALMA_KEY] [--db-type sqlite] ...

Startup order: storage (fatal on failure), remote source, listening socket
(port 0 = any free port; the real port is what gets advertised), zeroconf,
HTTP server. Shutdown runs in reverse. Stops on Ctrl-C / SIGTERM, or after
--wait seconds when given.
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys
import threading
from typing import Callable, List, Optional

from barcode_cache.cli.main import add_db_arguments, db_overrides, setup_logging

logger = logging.getLogger(__name__)


def _on_shutdown(what: str, cleanup: Callable[[], None]) -> None:
    logger.info("- Shutting down %s ...", what)
    try:
        cleanup()
    except Exception as exc:
        logger.warning("  %s shutdown error: %s", what, exc)
        return
    logger.info("  %s shut down.", what)


def bind_listener(host: str, port: int) -> socket.socket:
    """Bound IPv4 TCP socket; port 0 lets the OS pick a free one."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    return sock


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="barcode-cache serve",
        description="Run the barcode cache server",
    )
    ap.add_argument("--key", default=None, help="Alma API key (no key: random remote source).")
    ap.add_argument("--domain", default=None, help="Set the network domain. Default should be fine.")
    ap.add_argument("--name", default=None, help="The name for the service.")
    ap.add_argument("--type", dest="service_type", default=None, help="Service type advertised over zeroconf.")
    ap.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0).")
    ap.add_argument("--port", type=int, default=None, help="Port to listen on (0 = use any free port).")
    ap.add_argument("--wait", type=int, default=None, help="Seconds after which the server is closed (0 = no timeout).")
    ap.add_argument("--no-discovery", action="store_true", help="Do not advertise over zeroconf.")
    ap.add_argument("--config", default=None, help="Path to a config.yaml.")
    ap.add_argument("--log-level", default=None, help="Logging level (default: INFO).")
    add_db_arguments(ap)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(argv)

    from barcode_cache.config import apply_overrides, get_config, log_level

    cfg = apply_overrides(
        get_config(args.config),
        {
            **db_overrides(args),
            "remote": {"api_key": args.key},
            "server": {"host": args.host, "port": args.port, "wait": args.wait},
            "discovery": {"name": args.name, "type": args.service_type, "domain": args.domain},
        },
    )
    if args.no_discovery:
        cfg["discovery"] = dict(cfg["discovery"], enabled=False)
    setup_logging(args.log_level or log_level(cfg))

    import uvicorn

    from barcode_cache.api import create_app
    from barcode_cache.core.errors import FatalConfigurationError
    from barcode_cache.discovery import ServiceAdvertiser, log_network_interfaces
    from barcode_cache.wiring import create_coordinator, shutdown_coordinator

    log_network_interfaces()

    try:
        coordinator = create_coordinator(cfg)
    except FatalConfigurationError as exc:
        logger.critical("Startup failed: %s", exc)
        return 1

    server_cfg = cfg["server"]
    disc = cfg["discovery"]
    advertiser: Optional[ServiceAdvertiser] = None
    timer: Optional[threading.Timer] = None
    sock: Optional[socket.socket] = None
    try:
        try:
            sock = bind_listener(str(server_cfg.get("host") or "0.0.0.0"), int(server_cfg.get("port") or 0))
        except OSError as exc:
            logger.critical("Unable to listen on %s:%s (%s)", server_cfg.get("host"), server_cfg.get("port"), exc)
            return 1
        port = sock.getsockname()[1]
        logger.info("Listening on %s:%d", sock.getsockname()[0], port)

        if disc.get("enabled"):
            advertiser = ServiceAdvertiser(disc["name"], disc["type"], disc["domain"])
            try:
                advertiser.startup(port)
            except Exception as exc:
                logger.critical("Zeroconf startup failed: %s", exc)
                return 1

        server = uvicorn.Server(
            uvicorn.Config(create_app(coordinator), log_level=str(log_level(cfg)).lower())
        )
        wait = int(server_cfg.get("wait") or 0)
        if wait > 0:
            timer = threading.Timer(wait, lambda: setattr(server, "should_exit", True))
            timer.daemon = True
            timer.start()
        server.run(sockets=[sock])
    finally:
        if timer is not None:
            timer.cancel()
        if advertiser is not None:
            _on_shutdown("ZeroconfServer", advertiser.shutdown)
        if sock is not None:
            _on_shutdown("listener", sock.close)
        shutdown_coordinator(coordinator)

    logger.info("Shutting down.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
