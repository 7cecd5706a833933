import asyncio

import click
from loguru import logger

from qbridge.server.bg_killer import kill_bridges, list_running_bridges
from qbridge.server.bridge import start_bridge
from qbridge.types import (
    BridgeConfig,
    BridgeError,
    DecodePolicy,
    Endpoint,
    Lifecycle,
    OutboundFraming,
    UnhandledPolicy,
)
from qbridge.util import DEFAULT_LOGLEVEL, QUEUE_LEN


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


class EndpointType(click.ParamType):
    """`host:port` argument -> Endpoint."""

    name = "host:port"

    def convert(self, value, param, ctx):
        if isinstance(value, Endpoint):
            return value
        try:
            return Endpoint.parse(value)
        except ValueError as e:
            self.fail(f"{e}", param, ctx)


ENDPOINT = EndpointType()


def _choice(enum_cls):
    return click.Choice([member.value for member in enum_cls])


@click.group()
@tree_option
def cli():
    """qbridge - quantum gate execution over OSC/UDP.

    Receives gate instructions (X, Y, Z, H, S, Sdg, CX, Mz) as OSC messages,
    runs them on a stabilizer simulator and sends measurement results back.
    """
    pass


@cli.command()
@click.argument("send_addr", type=ENDPOINT)
@click.argument("recv_addr", type=ENDPOINT)
@click.option(
    "--send-bind-addr",
    "-sb",
    type=ENDPOINT,
    default=None,
    help="Local address to send results from (default: OS chooses)",
)
@click.option(
    "--decode-policy",
    "-dp",
    type=_choice(DecodePolicy),
    default=DecodePolicy.LENIENT.value,
    help="lenient: drop malformed datagrams; strict: stop on the first one",
)
@click.option(
    "--outbound-framing",
    "-of",
    type=_choice(OutboundFraming),
    default=OutboundFraming.BARE.value,
    help="Send results as bare messages or single-element bundles (default: bare)",
)
@click.option(
    "--lifecycle",
    "-lc",
    type=_choice(Lifecycle),
    default=Lifecycle.INTERRUPT.value,
    help="interrupt: run until Ctrl-C; run_to_completion: stop on first stage exit",
)
@click.option(
    "--unhandled",
    "-u",
    type=_choice(UnhandledPolicy),
    default=UnhandledPolicy.FATAL.value,
    help="What to do with instructions the runner does not implement (default: fatal)",
)
@click.option(
    "--queue-len",
    "-q",
    default=QUEUE_LEN,
    type=click.IntRange(min=1),
    help=f"Capacity of each inter-stage queue (default: {QUEUE_LEN})",
)
@click.option(
    "--seed",
    "-s",
    default=None,
    type=int,
    help="Simulator seed (default: random)",
)
@click.option(
    "--log-to-file/--no-log-to-file",
    "-ltf/",
    default=True,
    help="Enable/disable logging to file (default: enabled)",
)
@click.option(
    "--log-to-stdout/--no-log-to-stdout",
    "-lts/",
    default=True,
    help="Enable/disable console logging (default: enabled)",
)
@click.option(
    "--log-path",
    "-lp",
    default="",
    help="Custom path for log file (default: ~/.qbridge/bridge.log)",
)
@click.option(
    "--clear-prev-log/--no-clear-prev-log",
    "-c/",
    default=True,
    help="Clear previous log file on startup (default: enabled)",
)
@click.option(
    "--log-level",
    "-ll",
    default=DEFAULT_LOGLEVEL,
    help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
)
def run(send_addr, recv_addr, **kwargs):
    """Start a bridge.

    SEND_ADDR is where measurement results are sent, RECV_ADDR is where
    instructions are received. Both are host:port.
    """
    config = BridgeConfig(
        send_addr=send_addr,
        recv_addr=recv_addr,
        send_bind_addr=kwargs.pop("send_bind_addr"),
        decode_policy=DecodePolicy(kwargs.pop("decode_policy")),
        outbound_framing=OutboundFraming(kwargs.pop("outbound_framing")),
        lifecycle=Lifecycle(kwargs.pop("lifecycle")),
        unhandled_policy=UnhandledPolicy(kwargs.pop("unhandled")),
        **kwargs,
    )
    try:
        asyncio.run(start_bridge(config))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    except BridgeError as e:
        logger.error("Bridge stopped on a fatal error: {}", e)
        raise click.ClickException(str(e))


@cli.command()
def list():
    """List all registered bridges.

    Displays the PID, running status, start time and endpoints of each.
    """
    bridges = list_running_bridges()

    click.echo("\nRunning qbridge bridges:")
    click.echo("------------------------")

    if not bridges:
        click.echo("No bridges found")
        click.echo("")
        return

    for bridge in bridges:
        status = "(RUNNING)" if bridge.get("running", False) else "(NOT RUNNING)"
        click.echo(f"\nPID: {bridge['pid']} {status}")
        click.echo(f"Started: {bridge['timestamp']}")
        click.echo(f"Send: {bridge['send_addr']}, receive: {bridge['recv_addr']}")
    click.echo("")


@cli.command()
def kill():
    """Kill all registered bridges."""
    killed = kill_bridges()
    if killed:
        click.echo(f"Killed {killed} bridge(s)")
    else:
        click.echo("No running bridges found")
    click.echo("")
