"""Entry point for the claudemeter usage monitor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from claudemeter.app import UsageMeter, create_meter
from claudemeter.config import settings
from claudemeter.errors import InvalidSessionKeyError, MeterError, TransportError
from claudemeter.models import UsageStatus

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

_STYLE = {
    UsageStatus.SAFE.value: "green",
    UsageStatus.WARNING.value: "yellow",
    UsageStatus.CRITICAL.value: "bold red",
}


def render_usage(meter: UsageMeter) -> None:
    """Print the meter's current state as a table."""
    state = meter.status()
    if state["error"]:
        console.print(f"[bold red]Error:[/bold red] {state['error']}")

    usage = state["usage"]
    if usage is None:
        console.print("[dim]No usage data yet[/dim]")
        return

    table = Table(title="Claude usage")
    table.add_column("Window")
    table.add_column("Used", justify="right")
    table.add_column("Resets")
    table.add_column("Pace")
    for label, key in (("5-hour session", "session"), ("Weekly", "weekly"), ("Weekly (Sonnet)", "sonnet")):
        view = usage[key]
        if view is None:
            continue
        style = _STYLE[view["status"]]
        pace = "[red]at risk[/red]" if view["is_at_risk"] else "ok"
        table.add_row(label, f"[{style}]{view['utilization']:.0f}%[/{style}]", view["reset_at"], pace)
    console.print(table)

    stale = " [yellow](stale)[/yellow]" if usage["is_stale"] else ""
    console.print(f"[dim]Updated {usage['last_updated']}[/dim]{stale}")


async def _login(key: str) -> int:
    meter = create_meter(settings)
    await meter.load()
    try:
        with console.status("[bold green]Validating session key..."):
            accepted = await meter.save_credential(key)
    except InvalidSessionKeyError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        return 1
    except (MeterError, TransportError) as exc:
        console.print(f"[bold red]Could not validate session key:[/bold red] {exc}")
        return 1
    finally:
        await meter.shutdown()

    if not accepted:
        console.print("[bold red]Session key rejected by claude.ai[/bold red]")
        return 1
    console.print(Panel(f"Logged in (organization {meter.settings.cached_organization_id})", style="bold green"))
    render_usage(meter)
    return 0


async def _logout() -> int:
    meter = create_meter(settings)
    await meter.load()
    await meter.clear_credential()
    await meter.shutdown()
    console.print("Session key removed")
    return 0


async def _fetch(force: bool) -> int:
    meter = create_meter(settings)
    await meter.load()
    if not meter.is_setup_complete:
        console.print("No session key stored, run [bold]claudemeter login KEY[/bold] first")
        return 1
    with console.status("[bold green]Fetching usage..."):
        await meter.refresh(force=force)
    await meter.shutdown()
    render_usage(meter)
    return 0 if meter.error_message is None else 1


async def _status() -> int:
    meter = create_meter(settings)
    await meter.load()
    meter.snapshot = await meter.fetcher.cache.get_last_known()

    console.print(Panel(
        f"Session key: {'stored' if meter.is_setup_complete else 'missing'}\n"
        f"Organization: {meter.settings.cached_organization_id or '-'}\n"
        f"Refresh interval: {meter.settings.refresh_interval}s\n"
        f"Thresholds: warning {meter.settings.notification_thresholds.warning_threshold:.0f}% / "
        f"critical {meter.settings.notification_thresholds.critical_threshold:.0f}%",
        title="claudemeter",
        style="bold blue",
    ))
    render_usage(meter)
    await meter.shutdown()
    return 0


async def _watch() -> int:
    meter = create_meter(settings)
    meter.on_update(render_usage)
    await meter.bootstrap()
    if not meter.is_setup_complete:
        console.print("No session key stored, run [bold]claudemeter login KEY[/bold] first")
        return 1
    console.print(f"[dim]Refreshing every {meter.scheduler.interval}s, Ctrl+C to stop[/dim]")
    try:
        await asyncio.Event().wait()
    finally:
        await meter.shutdown()
    return 0


async def _notify_test() -> int:
    meter = create_meter(settings)
    intent = await meter.send_test_notification()
    console.print(f"Sent: {intent.title}")
    await meter.shutdown()
    return 0


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting claudemeter API server", style="bold green"))
    uvicorn.run(
        "claudemeter.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="claude.ai usage monitor")
    sub = parser.add_subparsers(dest="command")

    login_parser = sub.add_parser("login", help="Store and validate a session key")
    login_parser.add_argument("key", help="sessionKey value or full Cookie header")

    sub.add_parser("logout", help="Forget the stored session key")

    fetch_parser = sub.add_parser("fetch", help="Fetch usage once")
    fetch_parser.add_argument("--force", action="store_true", help="Bypass the in-memory cache")

    sub.add_parser("status", help="Show stored settings and last known usage")
    sub.add_parser("watch", help="Refresh periodically and print each update")
    sub.add_parser("notify-test", help="Send a sample warning notification")
    sub.add_parser("serve", help="Start the local API server")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
        return

    if args.command == "login":
        coro = _login(args.key)
    elif args.command == "logout":
        coro = _logout()
    elif args.command == "fetch":
        coro = _fetch(args.force)
    elif args.command == "status":
        coro = _status()
    elif args.command == "watch":
        coro = _watch()
    elif args.command == "notify-test":
        coro = _notify_test()
    else:
        parser.print_help()
        sys.exit(1)

    try:
        sys.exit(asyncio.run(coro))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


if __name__ == "__main__":
    main()
