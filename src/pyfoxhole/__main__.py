"""Command line entry point.

Commands:
  run     poll the War API forever, re-rendering on change (default)
  once    run a single sync cycle and render, then exit
  status  print the stored territory snapshot as JSON (no network)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any

from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import FoxholeError
from pyfoxhole.service import ConquestService
from pyfoxhole.state.store import TerritoryStore

_LOG = logging.getLogger("pyfoxhole")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pyfoxhole",
        description="Track Foxhole territory control and render it for an e-paper display.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=("run", "once", "status"),
        default="run",
        help="What to do (default: run).",
    )
    parser.add_argument("--db", dest="database_path", help="SQLite file holding territory state.")
    parser.add_argument("--output", dest="output_path", help="PNG written on every render.")
    parser.add_argument("--base-url", dest="base_url", help="War API base URL.")
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between sync cycles.",
    )
    parser.add_argument(
        "--fallback-interval",
        type=float,
        help="Seconds between unconditional re-renders.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> FoxholeConfig:
    overrides: dict[str, Any] = {}
    for name in ("database_path", "output_path", "base_url", "poll_interval", "fallback_interval"):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return FoxholeConfig.from_env(**overrides)


async def _run_forever(config: FoxholeConfig) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    async with ConquestService(config) as service:
        await service.start()
        await stop_event.wait()
        _LOG.info("Shutting down...")


async def _run_once(config: FoxholeConfig) -> int:
    async with ConquestService(config) as service:
        cycle = await service.run_once()
    if cycle is None:
        return 1
    print(
        f"war={cycle.war_number} reconciled={cycle.total_reconciled} "
        f"changed={cycle.changed} failed_regions={len(cycle.failures)}"
    )
    return 0


def _print_status(config: FoxholeConfig) -> None:
    store = TerritoryStore.from_path(config.database_path)
    try:
        status = store.read_snapshot()
    finally:
        store.close()
    payload = {
        "war_number": status.war_number,
        "teams": {team.display_name: count for team, count in status.team_counts().items()},
        "territories": [
            {
                "region": record.region,
                "icon_type": record.key.icon_type,
                "x": record.key.x,
                "y": record.key.y,
                "label": record.label,
                "team": record.team.display_name,
            }
            for record in status.territories
        ],
    }
    print(json.dumps(payload, indent=2))


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _config_from_args(args)
        if args.command == "status":
            _print_status(config)
            return 0
        if args.command == "once":
            return asyncio.run(_run_once(config))
        asyncio.run(_run_forever(config))
    except FoxholeError as exc:
        print(f"pyfoxhole: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
