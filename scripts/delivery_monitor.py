#!/usr/bin/env python3
"""Watch a delivery partner's orders from the terminal.

Logs in (or reuses the persisted session), loads the order panel, then
prints every change pushed over the realtime channel until interrupted.

Usage
-----
Set environment variables and run::

    export FOODIME_BASE_URL="https://shop.example/wp-json/foodime/v1"
    export FOODIME_USERNAME="rider@example.com"
    export FOODIME_PASSWORD="your-password"
    python scripts/delivery_monitor.py

Options::

    --once               Print the order panel and exit
    --advance ID         Move order ID to its next stage, then continue
    --lat/--lon          Report a fixed position every interval
    --duration SECONDS   Stop after SECONDS (default: run until Ctrl+C)
    --json               Print orders as JSON
    --logout             Drop the persisted session on exit
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyfoodime import (  # noqa: E402
    FoodimeClient,
    FoodimeConfig,
    FoodimeError,
    OrderChange,
    StaticPositionProvider,
)
from pyfoodime.state.store import OrderStore  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    bar = "─" * 60
    return f"\n{bar}\n  {title}\n{bar}"


def _render_panel(store: OrderStore, *, json_mode: bool) -> str:
    sections = store.partition()
    if json_mode:
        payload: dict[str, Any] = {
            name: [order.model_dump(mode="json") for order in orders] for name, orders in sections.items()
        }
        return json.dumps(payload, indent=2, ensure_ascii=False)

    out: list[str] = []
    for name, orders in sections.items():
        out.append(_section(f"{name.upper()} ({len(orders)})"))
        if not orders:
            out.append("  (none)")
        for order in orders:
            marker = "*" if order.id == store.selected_order_id else " "
            pending = " [updating]" if store.is_pending(order.id) else ""
            out.append(
                f" {marker}#{order.order_number or order.id:<8} {order.delivery_status.label:<11}"
                f" {order.customer_name}{pending}"
            )
            out.append(f"      pickup : {order.restaurant.name} {order.restaurant.address}".rstrip())
            out.append(f"      dropoff: {order.customer_address.one_line()}")
            link = order.customer_map_url()
            if link:
                out.append(f"      map    : {link}")
    return "\n".join(out)


def _print_change(change: OrderChange) -> None:
    ids = ", ".join(str(order_id) for order_id in change.order_ids) or "-"
    removed = ", ".join(str(order_id) for order_id in change.removed_ids)
    line = f"[{change.observed_at:%H:%M:%S}] {change.source:<10} orders={ids}"
    if removed:
        line += f" removed={removed}"
    print(line)


# ── main ─────────────────────────────────────────────────────


async def run(args: argparse.Namespace) -> int:
    config = FoodimeConfig.from_env(
        realtime_enabled=not args.once,
        location_enabled=args.lat is not None and args.lon is not None,
    )
    provider = StaticPositionProvider(args.lat, args.lon) if config.location_enabled else None
    logged_out = asyncio.Event()

    def on_logout(reason: str) -> None:
        print(f"Session ended: {reason}", file=sys.stderr)
        logged_out.set()

    def on_degraded(degraded: bool) -> None:
        if degraded:
            print("Realtime updates unavailable; polling orders instead.", file=sys.stderr)
        else:
            print("Realtime updates restored.", file=sys.stderr)

    async with FoodimeClient(
        config,
        position_provider=provider,
        on_logout=on_logout,
        on_orders_changed=None if args.once or args.json_mode else _print_change,
        on_connectivity_degraded=on_degraded,
    ) as client:
        if not client.restore_session():
            session = await client.login()
            print(f"Logged in as {session.display_name}", file=sys.stderr)

        await client.start()

        if args.advance is not None:
            order = await client.advance(args.advance)
            print(f"Order {order.id} is now {order.delivery_status.label}", file=sys.stderr)
            client.select_order(order.id)

        print(_render_panel(client.store, json_mode=args.json_mode))
        if args.once:
            return 0

        try:
            await asyncio.wait_for(logged_out.wait(), timeout=args.duration)
        except TimeoutError:
            pass

        if args.json_mode:
            print(_render_panel(client.store, json_mode=True))
        if args.logout:
            client.logout()

    return 1 if logged_out.is_set() and not args.logout else 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Watch delivery orders for a Foodime partner account.")
    parser.add_argument("--once", action="store_true", help="Print the order panel and exit")
    parser.add_argument("--advance", type=int, metavar="ID", help="Move order ID to its next stage")
    parser.add_argument("--lat", type=float, help="Latitude to report (requires --lon)")
    parser.add_argument("--lon", type=float, help="Longitude to report (requires --lat)")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print orders as JSON")
    parser.add_argument("--logout", action="store_true", help="Drop the persisted session on exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be given together")

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)
    except FoodimeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
