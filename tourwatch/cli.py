"""tourwatch CLI -- unattended tour availability monitor.

Provides commands for running the poll loop, checking a single site,
listing the site registry and testing the Telegram notification channel.
"""

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Optional

import typer

if TYPE_CHECKING:
    from tourwatch.config import MonitorConfig
    from tourwatch.models import CycleReport

from tourwatch.errors import ConfigError

# ---------------------------------------------------------------------------
# App and sub-apps
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="tourwatch",
    help="Tour availability monitor -- poll booking calendars, notify on Telegram.",
    no_args_is_help=True,
)

notify_app = typer.Typer(
    name="notify",
    help="Check the Telegram notification channel.",
    no_args_is_help=True,
)

app.add_typer(notify_app, name="notify")


# ---------------------------------------------------------------------------
# Global option types
# ---------------------------------------------------------------------------

JsonFlag = Annotated[bool, typer.Option("--json", help="Output as JSON.")]
PlainFlag = Annotated[bool, typer.Option("--plain", help="Output as plain text (no color).")]
VerboseFlag = Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output.")]
QuietFlag = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress non-essential output.")]
SitesOption = Annotated[
    Optional[Path],
    typer.Option("--sites", help="Site registry YAML (default: bundled registry)."),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_format(json_flag: bool = False, plain_flag: bool = False) -> str:
    """Determine output format: json > plain > TTY auto-detect > rich."""
    if json_flag:
        return "json"
    if plain_flag:
        return "plain"
    if sys.stdout.isatty():
        return "rich"
    return "plain"


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity flags.

    The monitor runs unattended, so the default level is INFO with
    timestamps rather than WARNING.
    """
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


def _error_panel(message: str) -> None:
    """Print an error message, using Rich panel if available."""
    try:
        from rich.console import Console
        from rich.panel import Panel

        console = Console(stderr=True)
        console.print(Panel(message, title="Error", border_style="red"))
    except Exception:
        typer.echo(f"Error: {message}", err=True)


def _load_config(sites: Optional[Path] = None, **overrides) -> "MonitorConfig":
    """Build the config, turning ConfigError into an error panel + exit 2."""
    from tourwatch.config import MonitorConfig

    try:
        return MonitorConfig.from_env(sites_path=sites, **overrides)
    except ConfigError as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


def _banner(config: "MonitorConfig") -> str:
    from tourwatch.config import RunMode

    mode = "single pass" if config.mode == RunMode.SINGLE_PASS else (
        f"every {config.interval_seconds}s"
    )
    lines = [
        "Tour availability monitor started",
        f"  Mode:     {mode}",
        f"  Triggers: {', '.join(config.trigger_dates)}",
        f"  Telegram: {'configured' if config.telegram.configured else 'NOT configured'}",
        "  Sites:",
    ]
    for site in config.sites:
        lines.append(f"    - {site.name}: {', '.join(site.target_dates)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Core commands
# ---------------------------------------------------------------------------


@app.command()
def run(
    once: Annotated[
        Optional[bool],
        typer.Option(
            "--once/--loop",
            help="Exit after one pass, or keep polling (default: from TOURWATCH_ENV).",
        ),
    ] = None,
    sites: SitesOption = None,
    interval: Annotated[
        Optional[int],
        typer.Option("--interval", min=1, help="Seconds between poll cycles."),
    ] = None,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Poll every registered site, then exit or sleep and repeat."""
    _setup_logging(verbose, quiet)
    from tourwatch.config import RunMode

    mode = None
    if once is not None:
        mode = RunMode.SINGLE_PASS if once else RunMode.CONTINUOUS
    config = _load_config(sites, mode=mode, interval_seconds=interval)

    try:
        from tourwatch.monitor import Monitor, install_signal_handlers
        from tourwatch.output import get_formatter

        fmt = get_formatter(_get_format())
        if not quiet:
            typer.echo(_banner(config))

        def _on_cycle(report: "CycleReport") -> None:
            if not quiet:
                typer.echo(fmt.format_cycle(report))

        monitor = Monitor(config)
        install_signal_handlers(monitor)
        monitor.run(on_cycle=_on_cycle)
    except KeyboardInterrupt:
        typer.echo("Aborted.", err=True)
        raise typer.Exit(code=130)
    except typer.Exit:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@app.command()
def check(
    site: str = typer.Argument(help="Site name from the registry"),
    sites: SitesOption = None,
    notify: Annotated[
        bool, typer.Option("--notify", help="Send a Telegram notification if triggered.")
    ] = False,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Poll one site once and print what was found."""
    _setup_logging(verbose, quiet)
    config = _load_config(sites)

    target = config.get_site(site)
    if target is None:
        names = ", ".join(s.name for s in config.sites)
        _error_panel(f"Unknown site: {site!r}\n  Known sites: {names}")
        raise typer.Exit(code=2)

    try:
        from tourwatch.monitor import Monitor
        from tourwatch.output import get_formatter

        monitor = Monitor(config)
        result = monitor.poll_site(target, notify=notify)
        fmt = get_formatter(_get_format(json, plain))
        typer.echo(fmt.format_site_result(result))

        if result.failed:
            raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@app.command(name="sites")
def list_sites(
    sites: SitesOption = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
) -> None:
    """List the monitored sites and their target dates."""
    from tourwatch.config import DEFAULT_SITES_PATH, load_sites
    from tourwatch.output import get_formatter

    try:
        registry = load_sites(sites or DEFAULT_SITES_PATH)
    except ConfigError as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)

    fmt = get_formatter(_get_format(json, plain))
    typer.echo(fmt.format_sites(registry))


# ---------------------------------------------------------------------------
# Notify commands
# ---------------------------------------------------------------------------


@notify_app.command(name="test")
def notify_test(
    message: Annotated[
        str, typer.Option("--message", "-m", help="Text to send.")
    ] = "🧪 tourwatch test notification",
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Send a test message through the configured Telegram bot."""
    _setup_logging(verbose, quiet)
    from tourwatch.config import TelegramSettings
    from tourwatch.errors import DeliveryError
    from tourwatch.notify.telegram import TelegramGateway

    gateway = TelegramGateway(TelegramSettings.from_env())
    if not gateway.configured:
        _error_panel(
            "Telegram is not configured.\n"
            "  Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID and try again."
        )
        raise typer.Exit(code=1)

    try:
        gateway.send(message)
    except DeliveryError as exc:
        _error_panel(f"Failed to send test message: {exc}")
        raise typer.Exit(code=1)
    typer.echo("Test message sent.")


@notify_app.command(name="status")
def notify_status(
    json: JsonFlag = False,
) -> None:
    """Show whether Telegram credentials are configured."""
    import json as json_mod

    from tourwatch.config import TelegramSettings

    settings = TelegramSettings.from_env()

    if json:
        data = {
            "configured": settings.configured,
            "has_token": bool(settings.bot_token),
            "chat_id": settings.chat_id,
        }
        typer.echo(json_mod.dumps(data, indent=2))
        return

    if settings.configured:
        typer.echo(f"Telegram: configured (chat {settings.chat_id})")
    else:
        typer.echo("Telegram: not configured")
        missing = [
            name
            for name, value in (
                ("TELEGRAM_BOT_TOKEN", settings.bot_token),
                ("TELEGRAM_CHAT_ID", settings.chat_id),
            )
            if not value
        ]
        typer.echo(f"Missing: {', '.join(missing)}")


if __name__ == "__main__":
    app()
