"""CLI interface for graphite_bridge."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time

from . import __version__
from .config import load_config


def _cmd_export(args: argparse.Namespace) -> None:
    """Collect system metrics and report them to Graphite."""
    cfg = load_config(args.config)

    from .bootstrap import with_graphite_from_config
    from .collector.manager import CollectorManager
    from .reports import MetricsReports

    manager = CollectorManager(cfg.collector, prefix=cfg.graphite.prefix)
    reports = MetricsReports()
    binding = with_graphite_from_config(
        reports,
        manager,
        cfg.graphite.as_settings(),
        options=cfg.graphite.sender_options(),
    )
    if binding is None:
        print("Graphite export is not configured; see the log for details.", file=sys.stderr)
        sys.exit(1)

    stop = False

    def _handle_signal(_sig: int, _frame: object) -> None:
        nonlocal stop
        stop = True

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    manager.start()
    print(f"graphite_bridge exporting to {binding.sender} every {int(binding.interval.total_seconds())}s")
    print("Press Ctrl+C to stop.\n")
    try:
        while not stop:
            time.sleep(0.5)
    finally:
        reports.stop(timeout=cfg.shutdown_timeout_seconds)
        manager.stop()
    print("\nExport stopped.")


def _cmd_check_config(args: argparse.Namespace) -> None:
    """Validate the Graphite settings without opening any connection."""
    cfg = load_config(args.config)

    from .bootstrap import validate_settings
    from .errors import GraphiteBridgeError

    try:
        endpoint = validate_settings(cfg.graphite.as_settings())
    except GraphiteBridgeError as exc:
        print(f"Invalid: {exc}")
        sys.exit(1)
    print(f"OK: {endpoint.scheme.value} → {endpoint.host}:{endpoint.port} every {int(endpoint.interval.total_seconds())}s")


def _cmd_version(_args: argparse.Namespace) -> None:
    print(f"graphite_bridge {__version__}")


def main(argv: list[str] | None = None) -> None:
    """Entry point for the graphite-bridge CLI."""
    parser = argparse.ArgumentParser(
        prog="graphite-bridge",
        description="Report system metrics to a Graphite collector over TCP, UDP or pickle",
    )
    parser.add_argument("--config", "-c", default=None, help="Path to graphite_bridge.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    export_p = sub.add_parser("export", help="Collect metrics and report them to Graphite")
    export_p.set_defaults(func=_cmd_export)

    check_p = sub.add_parser("check-config", help="Validate the Graphite endpoint settings")
    check_p.set_defaults(func=_cmd_check_config)

    ver_p = sub.add_parser("version", help="Print version")
    ver_p.set_defaults(func=_cmd_version)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
