"""Typer-based CLI interface for the video device watcher."""

import logging
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from camwatch.config import WatcherConfig
from camwatch.core.monitor import DeviceMonitor, WatchSetupError
from camwatch.devices import list_video_devices
from camwatch.input.processes import ProcessScanner, ScanError

app = typer.Typer(
    name="camwatch",
    help="camwatch - Run hooks when a video device is opened or closed",
    rich_markup_mode="rich",
    add_completion=False,
)
console = Console(stderr=True)
logger = logging.getLogger("camwatch")


def setup_logging(verbose: bool = False):
    """Route log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def load_config(config: Path | None, **overrides) -> WatcherConfig:
    """Build configuration from an optional file plus CLI overrides."""
    base = WatcherConfig.from_toml_file(config) if config else WatcherConfig()
    return base.merged(**overrides)


ConfigOption = Annotated[
    Path | None,
    typer.Option("-c", "--config", help="TOML config file path", exists=True, dir_okay=False),
]
DeviceDirOption = Annotated[
    str | None,
    typer.Option("--device-dir", help="Directory holding device nodes [default: /dev]"),
]
ProcRootOption = Annotated[
    str | None,
    typer.Option("--proc-root", help="Process table mount point [default: /proc]"),
]


@app.command()
def run(
    scripts: Annotated[
        list[str] | None,
        typer.Argument(help="Hook scripts run with ACTION=OPEN or ACTION=CLOSE"),
    ] = None,
    config: ConfigOption = None,
    device_dir: DeviceDirOption = None,
    proc_root: ProcRootOption = None,
    debounce: Annotated[
        float | None,
        typer.Option("--debounce", help="Quiescence window in seconds [default: 0.5]"),
    ] = None,
    retries: Annotated[
        int | None,
        typer.Option("--retries", help="Watch re-arm attempts [default: 5]"),
    ] = None,
    retry_delay: Annotated[
        float | None,
        typer.Option("--retry-delay", help="Seconds between re-arm attempts [default: 1]"),
    ] = None,
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Debug logging")] = False,
):
    """Watch video devices and run hooks on open/close.

    Examples:
        # Log device usage only
        camwatch run

        # Toggle an indicator light
        camwatch run ./on-air-light.sh ./notify.sh
    """
    setup_logging(verbose)
    try:
        app_config = load_config(
            config,
            scripts=scripts or None,
            device_dir=device_dir,
            proc_root=proc_root,
            debounce_seconds=debounce,
            rearm_attempts=retries,
            rearm_delay=retry_delay,
        )
    except ValueError as e:
        console.print(f"[bold red]Invalid configuration:[/bold red] {e}")
        raise typer.Exit(1) from None

    if not app_config.scripts:
        logger.warning("No scripts provided. Video device access will only be logged.")

    monitor = DeviceMonitor(app_config)

    def stop_handler(sig, frame):
        logger.info("Stopping...")
        monitor.stop()

    previous = {sig: signal.signal(sig, stop_handler) for sig in (signal.SIGINT, signal.SIGTERM)}

    try:
        with monitor:
            monitor.run()
    except WatchSetupError as e:
        logger.critical("%s", e)
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from None
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


@app.command()
def scan(
    device_dir: DeviceDirOption = None,
    proc_root: ProcRootOption = None,
    verbose: Annotated[bool, typer.Option("-v", "--verbose", help="Debug logging")] = False,
):
    """Check once whether any process holds a video device open."""
    setup_logging(verbose)
    app_config = load_config(None, device_dir=device_dir, proc_root=proc_root)
    scanner = ProcessScanner(
        proc_root=app_config.proc_root,
        device_dir=app_config.device_dir,
        prefix=app_config.device_prefix,
    )
    try:
        in_use = scanner.scan()
    except ScanError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from None

    if in_use:
        typer.echo("in use")
    else:
        typer.echo("idle")


@app.command()
def list_devices(device_dir: DeviceDirOption = None):
    """List video device nodes."""
    app_config = load_config(None, device_dir=device_dir)
    try:
        devices = list_video_devices(app_config.device_dir, app_config.device_prefix)
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1) from None

    table = Table(title=f"Video devices in {app_config.device_dir}")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Path")
    for device in devices:
        table.add_row(Path(device).name, device)
    Console().print(table)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """camwatch - Run hooks when a video device is opened or closed.

    Run 'camwatch run --help' for usage information.
    """
    if ctx.invoked_subcommand is None:
        console.print("[yellow]No command specified. Use 'camwatch run' to start watching.[/yellow]")
        console.print("\nAvailable commands:")
        console.print("  [cyan]run[/cyan]           - Watch devices and run hooks")
        console.print("  [cyan]scan[/cyan]          - Check device usage once")
        console.print("  [cyan]list-devices[/cyan]  - List video device nodes")
        console.print("\nRun 'camwatch --help' for more information.")


if __name__ == "__main__":
    app()
