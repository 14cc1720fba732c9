"""Terminal presenter used by the ``extract``, ``clear`` and ``watch`` commands."""

from __future__ import annotations

import asyncio
import json

import click

from plugndump.core.presenter import WorkflowEvent
from plugndump.models.device import DeviceDescriptor
from plugndump.models.dialog import Dialog
from plugndump.models.progress import ProgressEvent, Status

_STATUS_COLORS = {
    Status.ACTIVE: "cyan",
    Status.COMPLETED: "green",
    Status.ERROR: "red",
}


def echo_progress(event: ProgressEvent) -> None:
    """Print one progress event as a single coloured line."""
    label = click.style(f"{event.step.value:>12} {event.status.value:<9}", fg=_STATUS_COLORS[event.status])
    click.echo(f"{label} {event.message or ''}", err=event.status == Status.ERROR)


def echo_progress_json(event: ProgressEvent) -> None:
    """Print one progress event as a JSON line for a parent process."""
    payload = event.model_dump(mode="json", exclude={"seq"})
    click.echo(json.dumps({"type": "plug-n-dump-progress", "data": payload}))


class ConsolePresenter:
    """Presenter that asks questions on the terminal.

    With *err* set, everything goes to stderr so stdout carries only the
    JSON progress lines of an embedded run.
    """

    def __init__(self, assume_yes: bool = False, err: bool = False) -> None:
        self._assume_yes = assume_yes
        self._err = err
        self._devices: list[str] = []

    async def prompt(self, dialog: Dialog) -> int:
        if self._assume_yes:
            return 0
        return await asyncio.to_thread(self._ask, dialog)

    def _ask(self, dialog: Dialog) -> int:
        err = self._err
        click.echo(err=err)
        click.secho(dialog.title, bold=True, err=err)
        click.echo(dialog.message, err=err)
        if dialog.detail:
            click.echo(dialog.detail, err=err)
        if len(dialog.buttons) < 2:
            click.pause(f"[{dialog.buttons[0] if dialog.buttons else 'OK'}] Press any key...", err=err)
            return 0
        for index, text in enumerate(dialog.buttons):
            click.echo(f"  [{index}] {text}", err=err)
        return click.prompt(
            "Choice",
            type=click.IntRange(0, len(dialog.buttons) - 1),
            default=len(dialog.buttons) - 1,
            err=err,
        )

    def reveal(self) -> None:
        pass

    def publish_devices(self, devices: list[DeviceDescriptor]) -> None:
        paths = [d.path for d in devices]
        if paths == self._devices:
            return
        self._devices = paths
        if paths:
            click.echo(f"Flight controllers: {', '.join(paths)}", err=self._err)
        else:
            click.echo("No flight controller connected.", err=self._err)

    def notify(self, event: WorkflowEvent) -> None:
        if event == WorkflowEvent.WAITING_FOR_REPLUG:
            click.secho("Waiting for the flight controller to be replugged...", fg="yellow", err=self._err)
        elif event == WorkflowEvent.AUTO_CLEARING_LOGS:
            click.secho("Flight controller reconnected, clearing logs...", fg="yellow", err=self._err)
