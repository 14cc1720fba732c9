"""Plug-N-Dump CLI - blackbox extraction for serial flight controllers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from plugndump.utils.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(ctx: click.Context, debug: bool, json_output: bool) -> None:
    """Plug-N-Dump - flight controller blackbox extraction tool."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_output"] = json_output
    setup_logging(level="DEBUG" if debug else "WARNING", json_output=json_output)


def _make_service(
    output_dir: Path | None = None,
    auto_extract: bool | None = None,
    auto_extract_port: str | None = None,
    embedded: bool = False,
    silent: bool = False,
    assume_yes: bool = False,
):
    """Build a service with a console presenter and loaded settings."""
    from plugndump.cli.console import ConsolePresenter
    from plugndump.config import AppConfig, SettingsStore
    from plugndump.core.presenter import HeadlessPresenter
    from plugndump.core.service import PlugNDumpService

    store = SettingsStore()
    store.load()
    if auto_extract is not None:
        store.override(auto_extract_on_detection=auto_extract)

    app_config = AppConfig(
        embedded=embedded,
        silent=silent,
        auto_extract_port=auto_extract_port,
        output_dir=output_dir,
    )
    presenter = (
        HeadlessPresenter() if silent
        else ConsolePresenter(assume_yes=assume_yes, err=embedded)
    )
    return PlugNDumpService(app_config=app_config, settings_store=store, presenter=presenter)


def _attach_output(ctx: click.Context, service, embedded: bool = False) -> None:
    from plugndump.cli.console import echo_progress, echo_progress_json

    if embedded or ctx.obj.get("json_output"):
        service.reporter.subscribe(echo_progress_json)
    else:
        service.reporter.subscribe(echo_progress)


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="List every serial port, not only FCs")
@click.pass_context
def scan(ctx: click.Context, show_all: bool) -> None:
    """List attached flight controllers."""
    from plugndump.models.device import FC_VENDOR_ID
    from plugndump.transport.serial_port import list_serial_devices

    devices = list_serial_devices()
    if not show_all:
        devices = [d for d in devices if d.matches_vendor(FC_VENDOR_ID)]

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([d.model_dump() for d in devices], indent=2))
        return
    if not devices:
        click.echo("No flight controllers found.")
        return
    click.echo(f"Found {len(devices)} device(s):")
    for dev in devices:
        ids = f"{dev.vendor_id or '----'}:{dev.product_id or '----'}"
        click.echo(f"  {dev.path:<16} {ids}  {dev.friendly_name or ''}")


@cli.command()
@click.argument("port")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Backup root (default: saved setting or ~/Documents/Plug-N-Dump/BBL Logs)")
@click.pass_context
def extract(ctx: click.Context, port: str, output_dir: Path | None) -> None:
    """Dump the configuration and copy blackbox logs from PORT."""
    service = _make_service(output_dir=output_dir)
    _attach_output(ctx, service)

    result = asyncio.run(service.extract_data(port))

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(result.model_dump(), indent=2))
    elif result.succeeded:
        click.echo(f"Backup: {result.backup_path}")
    if not result.succeeded:
        click.echo(f"ERROR: {result.error}", err=True)
        ctx.exit(1)


@cli.command()
@click.argument("port")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def clear(ctx: click.Context, port: str, yes: bool) -> None:
    """Erase the blackbox log store of the FC on PORT."""
    if not yes:
        click.confirm(
            "Are you sure you want to clear all blackbox logs from the flight "
            "controller? This action cannot be undone.",
            abort=True,
        )
    service = _make_service()
    _attach_output(ctx, service)

    result = asyncio.run(service.clear_blackbox_logs(port))
    if not result.succeeded:
        click.echo(f"ERROR: {result.error}", err=True)
        ctx.exit(1)


@cli.command()
@click.option("--auto-extract/--no-auto-extract", default=None,
              help="Extract automatically when a single FC is plugged in (default: saved setting)")
@click.option("--extract-port", help="Extract from this port once at start-up")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--embedded", is_flag=True, help="Emit progress as JSON lines for a parent process")
@click.option("--silent", is_flag=True, help="Never prompt; erase questions are declined")
@click.pass_context
def watch(
    ctx: click.Context,
    auto_extract: bool | None,
    extract_port: str | None,
    output_dir: Path | None,
    embedded: bool,
    silent: bool,
) -> None:
    """Watch for flight controllers and run the extraction workflow."""
    service = _make_service(
        output_dir=output_dir,
        auto_extract=auto_extract,
        auto_extract_port=extract_port,
        embedded=embedded,
        silent=silent,
    )
    _attach_output(ctx, service, embedded=embedded)

    async def _run() -> None:
        await service.start()
        try:
            await asyncio.Event().wait()
        finally:
            await service.stop()

    if not embedded:
        click.echo("Watching for flight controllers (Ctrl+C to quit)...")
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", type=int, default=8000, help="HTTP port")
@click.option("--no-detect", is_flag=True, help="Do not start the detection loop")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path))
def serve(host: str, port: int, no_detect: bool, output_dir: Path | None) -> None:
    """Start the HTTP API."""
    import uvicorn

    from plugndump.api.app import create_app
    from plugndump.config import AppConfig

    app = create_app(app_config=AppConfig(output_dir=output_dir), detect=not no_detect)
    uvicorn.run(app, host=host, port=port)


@cli.command()
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.pass_context
def settings(ctx: click.Context, key: str | None, value: str | None) -> None:
    """Show settings, or set KEY to VALUE."""
    from pydantic import ValidationError

    from plugndump.config import AppSettings, SettingsStore
    from plugndump.exceptions import PersistenceError

    store = SettingsStore()
    current = store.load()

    if key is not None:
        if key not in AppSettings.model_fields:
            raise click.BadParameter(
                f"Unknown setting {key!r}; expected one of {', '.join(AppSettings.model_fields)}",
                param_hint="KEY",
            )
        if value is None:
            click.echo(json.dumps(current.model_dump(mode="json")[key]))
            return
        try:
            current = store.update(**{key: None if value.lower() in ("none", "") else value})
        except (ValidationError, PersistenceError) as exc:
            click.echo(f"ERROR: {exc}")
            ctx.exit(1)
            return

    click.echo(json.dumps(current.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    cli()
