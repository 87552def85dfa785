"""CLI entry point for Clubscore discovery."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from .config import load_config
from .discovery import DiscoveryError, ServiceAnnouncer, ZeroconfSession, discover
from .probe import probe_server

EXIT_FOUND = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def cmd_discover(args: argparse.Namespace) -> int:
    """Look for a LAN core once and print where it is."""
    config = load_config(args.config)
    timeout_ms = args.timeout_ms if args.timeout_ms is not None else config.discovery.timeout_ms

    try:
        result = discover(
            timeout_ms,
            service_type=config.discovery.service_type,
            poll_interval_ms=config.discovery.poll_interval_ms,
            session_factory=lambda: ZeroconfSession(config.discovery.resolve_timeout_ms),
        )
    except (DiscoveryError, ValueError) as e:
        if args.json:
            print(json.dumps({"found": False, "error": str(e)}))
        elif isinstance(e, ValueError):
            print(f"Invalid timeout: {e}", file=sys.stderr)
        else:
            print(f"mDNS discovery unavailable: {e}", file=sys.stderr)
        return EXIT_ERROR

    if result is None:
        if args.json:
            print(json.dumps({"found": False}))
        else:
            print(f"No LAN core discovered within {timeout_ms}ms, use a manual URL.")
        return EXIT_NOT_FOUND

    output = {"found": True, **result.to_dict()}

    if args.probe:
        description, error = asyncio.run(
            probe_server(
                result.base_url,
                path=config.probe.path,
                timeout=config.probe.timeout_seconds,
            )
        )
        output["server"] = description.to_dict() if description else None
        if error:
            output["probe_error"] = error

    if args.json:
        print(json.dumps(output, indent=2))
    else:
        print(f"Discovered {result.base_url}")
        if args.probe:
            if output["server"]:
                server = output["server"]
                print(f"  Name: {server['name']}")
                print(f"  WebSocket: {server['wsPath']}")
                print(f"  API base: {server['apiBase']}")
            else:
                print(f"  Probe failed: {output['probe_error']}")

    return EXIT_FOUND


async def cmd_announce(args: argparse.Namespace) -> int:
    """Advertise a LAN core until interrupted."""
    config = load_config(args.config)

    announcer = ServiceAnnouncer(
        name=args.name or config.announce.name,
        port=args.port or config.announce.port,
        service_type=config.discovery.service_type,
        properties=config.announce.properties,
        address=config.announce.address,
    )

    try:
        await announcer.start()
    except (DiscoveryError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(f"Announcing {announcer.service_name} on port {announcer.port} (Ctrl+C to stop)")
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await announcer.stop()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clubscore",
        description="Find or advertise a Clubscore LAN core via mDNS",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Discover command
    discover_parser = subparsers.add_parser("discover", help="Find a LAN core once")
    discover_parser.add_argument(
        "-t", "--timeout-ms",
        type=int,
        default=None,
        help="How long to wait for an answer (default: 2500)",
    )
    discover_parser.add_argument(
        "--json",
        action="store_true",
        help="Output result as JSON",
    )
    discover_parser.add_argument(
        "--probe",
        action="store_true",
        help="Query the discovered server's /api/discovery endpoint",
    )
    discover_parser.set_defaults(func=cmd_discover)

    # Announce command
    announce_parser = subparsers.add_parser("announce", help="Advertise a LAN core")
    announce_parser.add_argument(
        "-n", "--name",
        type=str,
        default=None,
        help="Instance name (default: clubscore-lan)",
    )
    announce_parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Advertised port (default: 7310)",
    )
    announce_parser.set_defaults(func=cmd_announce)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose, args.log_level, args.json_logs)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    func = args.func
    if asyncio.iscoroutinefunction(func):
        try:
            return asyncio.run(func(args))
        except KeyboardInterrupt:
            print("\nShutting down...")
            return 0
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
