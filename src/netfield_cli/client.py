#!/usr/bin/env python3
"""A CLI for the netfield_ws library (listen to a netFIELD Proxy topic)."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

import click

from netfield_ws import ClientConfig, EventSink, NetFieldProxyClient
from netfield_ws.const import DEFAULT_MAX_RECONNECT_ATTEMPTS, SZ_MAX_RECONNECT_ATTEMPTS
from netfield_ws.exceptions import NetFieldException, TransportSourceInvalid
from netfield_ws.schemas import MAX_RECONNECT_ATTEMPTS
from netfield_ws.transport import validate_endpoint
from netfield_ws.typing import FrameDataT

_LOGGER = logging.getLogger(__name__)

SZ_DEBUG = "debug"

DEFAULT_DURATION = 60.0  # seconds, 0 for until interrupted

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-z", "--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, debug: bool = False) -> None:
    """A CLI for the netFIELD Proxy WebSocket client."""

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {SZ_DEBUG: debug}


@cli.command()
@click.argument("endpoint")
@click.argument("device_id")
@click.argument("topic")
@click.option(
    "-a",
    "--authorization",
    envvar="NETFIELD_AUTHORIZATION",
    required=True,
    help="The access token or API key (or set NETFIELD_AUTHORIZATION).",
)
@click.option(
    "-d",
    "--duration",
    type=click.FloatRange(min=0),
    default=DEFAULT_DURATION,
    show_default=True,
    help="Seconds to listen for (0 to listen until interrupted).",
)
@click.option(
    "-r",
    "--max-retries",
    type=click.IntRange(0, MAX_RECONNECT_ATTEMPTS),
    default=DEFAULT_MAX_RECONNECT_ATTEMPTS,
    show_default=True,
    help="Consecutive failed connections before giving up (0 to not reconnect).",
)
@click.pass_obj
def listen(
    obj: dict[str, Any],
    endpoint: str,
    device_id: str,
    topic: str,
    authorization: str,
    duration: float,
    max_retries: int,
) -> None:
    """Subscribe to TOPIC of DEVICE_ID, and print each message as a JSON line."""

    try:
        validate_endpoint(endpoint)
    except TransportSourceInvalid as err:
        raise click.BadParameter(str(err), param_hint="ENDPOINT") from err

    config = ClientConfig.from_dict({SZ_MAX_RECONNECT_ATTEMPTS: max_retries})

    try:
        asyncio.run(
            _listen(
                endpoint,
                authorization,
                device_id,
                topic,
                config=config,
                duration=duration,
            )
        )
    except KeyboardInterrupt:
        click.echo(" - interrupted", err=True)
    except NetFieldException as err:
        _LOGGER.debug("Client failed", exc_info=obj[SZ_DEBUG])
        raise click.ClickException(str(err)) from err


async def _listen(
    endpoint: str,
    authorization: str,
    device_id: str,
    topic: str,
    *,
    config: ClientConfig,
    duration: float,
) -> None:
    def print_message(message: Any) -> None:
        click.echo(json.dumps(message))

    def print_error(raw: FrameDataT | None, err: Exception) -> None:
        click.secho(f"ERROR: {err}", fg="red", err=True)
        if raw is not None:
            click.echo(raw, err=True)

    def print_close(code: int | None, reason: str) -> None:
        click.echo(f"Connection closed: code={code}, reason={reason!r}", err=True)

    sink = EventSink.from_handlers(
        on_pub_message=print_message, on_error=print_error, on_close=print_close
    )
    client = NetFieldProxyClient(
        endpoint, authorization, device_id, topic, handlers=sink, config=config
    )

    await client.start()
    try:
        if duration:
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(client.wait_closed(), duration)
        else:
            await client.wait_closed()
    finally:
        client.close()
        await client.wait_closed()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
