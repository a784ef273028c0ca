"""Thin CLI wrapper over :class:`ecoflow.Client`."""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import json
import logging
import sys
from collections.abc import Coroutine
from datetime import datetime
from typing import Any, TypeVar

import typer

from ecoflow._constants import (
    API_BASE,
    ENV_ACCESS_KEY,
    ENV_API_URL,
    ENV_EMAIL,
    ENV_PASSWORD,
    ENV_SECRET_KEY,
)
from ecoflow.client import Client
from ecoflow.devices import build_command
from ecoflow.errors import EcoflowError, MqttError
from ecoflow.metrics import DEFAULT_INTERVAL, DEFAULT_PREFIX, MetricsExporter
from ecoflow.models import MqttDeviceParams
from ecoflow.mqtt import MqttClient, get_mqtt_credentials

app = typer.Typer(help="Control EcoFlow power stations.", invoke_without_command=True)

_T = TypeVar("_T")

_ACCESS_KEY = typer.Option(None, "--access-key", envvar=ENV_ACCESS_KEY, help="Developer access key")
_SECRET_KEY = typer.Option(None, "--secret-key", envvar=ENV_SECRET_KEY, help="Developer secret key")
_API_URL = typer.Option(None, "--api-url", envvar=ENV_API_URL, help="API host override")
_EMAIL = typer.Option(None, "--email", envvar=ENV_EMAIL, help="EcoFlow app account email")
_PASSWORD = typer.Option(None, "--password", envvar=ENV_PASSWORD, help="EcoFlow app account password")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Control EcoFlow power stations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


def _print_json(obj: object) -> None:
    """Print JSON, syntax-highlighted when stdout is a TTY, compact otherwise."""
    if sys.stdout.isatty():
        try:
            from rich.console import Console
            from rich.syntax import Syntax

            Console().print(Syntax(json.dumps(obj, indent=2), "json"))
        except ImportError:
            typer.echo(json.dumps(obj, indent=2))
    else:
        typer.echo(json.dumps(obj))


def _make_client(access_key: str | None, secret_key: str | None, api_url: str | None) -> Client:
    """Build a REST client or exit with an error when keys are missing."""
    if not access_key or not secret_key:
        typer.echo(
            f"Access and secret keys are required (--access-key/--secret-key or "
            f"{ENV_ACCESS_KEY}/{ENV_SECRET_KEY}).",
            err=True,
        )
        raise typer.Exit(1)
    return Client(access_key, secret_key, base_url=api_url or API_BASE)


def _require_login(email: str | None, password: str | None) -> tuple[str, str]:
    if not email or not password:
        typer.echo(
            f"Email and password are required (--email/--password or {ENV_EMAIL}/{ENV_PASSWORD}).",
            err=True,
        )
        raise typer.Exit(1)
    return email, password


def _run(coro: Coroutine[Any, Any, _T]) -> _T:
    """Run *coro*, turning library errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except (EcoflowError, MqttError) as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None


def _parse_assignment(item: str) -> tuple[str, object]:
    """Parse ``KEY=VALUE``; the value is read as JSON, falling back to a string."""
    key, sep, raw = item.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"Expected KEY=VALUE, got '{item}'")
    try:
        value: object = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return key, value


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def devices(
    access_key: str | None = _ACCESS_KEY,
    secret_key: str | None = _SECRET_KEY,
    api_url: str | None = _API_URL,
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List devices bound to the developer account."""
    client = _make_client(access_key, secret_key, api_url)
    all_devices = _run(client.get_device_list())

    if as_json:
        _print_json([dataclasses.asdict(d) for d in all_devices])
        return
    if not all_devices:
        typer.echo("No devices found.", err=True)
        raise typer.Exit(1)
    for i, dev in enumerate(all_devices):
        status = "online" if dev.online == 1 else "offline"
        typer.echo(f"  [{i}] {dev.sn} ({status})")


@app.command()
def quota(
    sn: str = typer.Argument(..., help="Device serial number"),
    access_key: str | None = _ACCESS_KEY,
    secret_key: str | None = _SECRET_KEY,
    api_url: str | None = _API_URL,
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show every quota value reported by a device."""
    client = _make_client(access_key, secret_key, api_url)
    data = _run(client.get_device_all_parameters(sn))

    if as_json:
        _print_json(data)
        return

    is_tty = sys.stdout.isatty()
    typer.echo(typer.style(sn, bold=True) if is_tty else sn)
    for key in sorted(data):
        label = typer.style(key, fg="cyan") if is_tty else key
        typer.echo(f"  {label}: {data[key]}")


@app.command("get")
def get_parameters(
    sn: str = typer.Argument(..., help="Device serial number"),
    quotas: list[str] = typer.Argument(..., help="Quota names, e.g. pd.soc"),
    access_key: str | None = _ACCESS_KEY,
    secret_key: str | None = _SECRET_KEY,
    api_url: str | None = _API_URL,
) -> None:
    """Query selected quota values by name."""
    client = _make_client(access_key, secret_key, api_url)
    _print_json(_run(client.get_device_parameters(sn, quotas)))


@app.command("set", context_settings={"help_option_names": ["-h", "--help"]})
def set_parameter(
    sn: str = typer.Argument(..., help="Device serial number"),
    assignments: list[str] = typer.Argument(..., help="Parameters as KEY=VALUE"),
    operate_type: str | None = typer.Option(None, "--operate-type", "-o", help="operateType opcode"),
    cmd_code: str | None = typer.Option(None, "--cmd-code", "-c", help="cmdCode opcode"),
    module_type: int | None = typer.Option(None, "--module-type", "-m", help="moduleType"),
    module_sn: str | None = typer.Option(None, "--module-sn", help="Power Kit module serial"),
    access_key: str | None = _ACCESS_KEY,
    secret_key: str | None = _SECRET_KEY,
    api_url: str | None = _API_URL,
) -> None:
    """Send a raw set-parameter command.

    \b
    Values are parsed as JSON, so numbers stay numbers:
      ecoflow set R331... --operate-type dcOutCfg --module-type 1 enabled=1
      ecoflow set HW52... --cmd-code WN511_SOCKET_SET_PLUG_SWITCH_MESSAGE plugSwitch=0
      ecoflow set DCEB... cmdSet=32 id=66 enabled=1 xboost=1
    """
    params = dict(_parse_assignment(a) for a in assignments)
    extra: dict[str, object] = {"moduleSn": module_sn} if module_sn else {}
    try:
        command = build_command(
            sn,
            params,
            operate_type=operate_type,
            cmd_code=cmd_code,
            module_type=module_type,
            **extra,
        )
    except ValueError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None

    client = _make_client(access_key, secret_key, api_url)
    result = _run(client.set_device_parameter(command))
    typer.echo(f"Command accepted by {sn} (code {result.code}).")


@app.command("mqtt-credentials")
def mqtt_credentials(
    email: str | None = _EMAIL,
    password: str | None = _PASSWORD,
) -> None:
    """Fetch MQTT broker credentials for the app account."""
    email, password = _require_login(email, password)
    config = _run(get_mqtt_credentials(email, password))
    _print_json(dataclasses.asdict(config))


@app.command()
def watch(
    sn: list[str] = typer.Argument(..., help="Device serial number(s)"),
    email: str | None = _EMAIL,
    password: str | None = _PASSWORD,
) -> None:
    """Watch real-time property updates via MQTT.

    Press Ctrl+C to stop.
    """
    email, password = _require_login(email, password)
    with contextlib.suppress(KeyboardInterrupt):
        _run(_watch_async(email, password, sn))


async def _watch_async(email: str, password: str, serials: list[str]) -> None:
    """Async implementation of the watch command."""
    is_tty = sys.stdout.isatty()

    async def on_update(topic: str, update: MqttDeviceParams) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        device_sn = topic.rsplit("/", 1)[-1]
        for key, value in update.params.items():
            if is_tty:
                typer.echo(
                    f"[{ts}] {typer.style(device_sn, bold=True)} "
                    f"{typer.style(key, fg='cyan')}: {value}"
                )
            else:
                typer.echo(f"[{ts}] {device_sn} {key}: {value}")

    async def on_connection_lost(error: Exception | None) -> None:
        ts = datetime.now().strftime("%H:%M:%S")
        if is_tty:
            typer.echo(typer.style(f"[{ts}] Disconnected, reconnecting...", fg="yellow"))
        else:
            typer.echo(f"[{ts}] Disconnected, reconnecting...")

    mqtt = await MqttClient.login(email, password, on_connection_lost=on_connection_lost)
    typer.echo("Watching for property updates... (Ctrl+C to stop)")
    subscription = await mqtt.subscribe(serials, on_update)
    try:
        await subscription.wait()
    finally:
        await subscription.stop()


@app.command()
def exporter(
    port: int = typer.Option(2112, "--port", "-p", help="HTTP port for /metrics"),
    interval: float = typer.Option(DEFAULT_INTERVAL, "--interval", "-i", help="Seconds between polls"),
    prefix: str = typer.Option(DEFAULT_PREFIX, "--prefix", help="Metric name prefix"),
    access_key: str | None = _ACCESS_KEY,
    secret_key: str | None = _SECRET_KEY,
    api_url: str | None = _API_URL,
) -> None:
    """Export device quotas as Prometheus metrics."""
    client = _make_client(access_key, secret_key, api_url)
    metrics = MetricsExporter(client, prefix=prefix, interval=interval)
    metrics.serve(port)
    typer.echo(f"Serving metrics on :{port}/metrics (Ctrl+C to stop)")
    with contextlib.suppress(KeyboardInterrupt):
        _run(metrics.run())
