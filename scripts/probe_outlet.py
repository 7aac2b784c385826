#!/usr/bin/env python3
"""Exercise an outlet described by an accessory JSON config.

Examples::

    python scripts/probe_outlet.py outlet.json read
    python scripts/probe_outlet.py outlet.json on
    python scripts/probe_outlet.py outlet.json watch --duration 60 -v

``watch`` starts the configured pull timer and MQTT subscription and prints
every state change until the duration elapses.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyoutlet import HttpOutlet, OutletConfigError, OutletProperty, OutletRequestError, parse_config  # noqa: E402


def _print_change(prop: OutletProperty, value: bool) -> None:
    print(f"{prop.value}: {value}")


async def _run(args: argparse.Namespace) -> int:
    raw = json.loads(Path(args.config).read_text(encoding="utf-8"))
    try:
        config = parse_config(raw)
    except OutletConfigError as exc:
        for error in exc.errors:
            print(f"config error: {error}", file=sys.stderr)
        return 2

    async with HttpOutlet(config, on_state_change=_print_change) as outlet:
        try:
            if args.action == "read":
                await outlet.read_power()
                if config.outlet_in_use is not None:
                    await outlet.read_outlet_in_use()
            elif args.action in ("on", "off"):
                await outlet.write_power(args.action == "on")
            elif args.action == "watch":
                if outlet.pull_timer is None and config.mqtt is None:
                    print("neither pullInterval nor mqtt configured; nothing to watch", file=sys.stderr)
                    return 1
                await asyncio.sleep(args.duration)
        except OutletRequestError as exc:
            print(f"request failed: {exc}", file=sys.stderr)
            return 1
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Probe an HTTP outlet.")
    parser.add_argument("config", help="Path to the accessory JSON config")
    parser.add_argument("action", choices=("read", "on", "off", "watch"))
    parser.add_argument("--duration", type=float, default=30.0, help="Seconds to watch (default: 30)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
