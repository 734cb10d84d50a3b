"""
netmeta command line.

The ``serve`` command runs the service and API in this process. The other
commands are clients of a running server, except ``ospf parse`` and
``mpls validate --offline`` which work on local input only.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import click
from rich.console import Console
from rich.table import Table

from netmeta import __version__
from netmeta.client import NetmetaClient
from netmeta.config import NetmetaConfig
from netmeta.errors import ConfigurationError, NetmetaError, ValidationFailure
from netmeta.logging_config import configure_logging
from netmeta.mpls.validator import LabelStackValidator
from netmeta.ospf.capture import OSPFCaptureListener
from netmeta.ospf.topology import TopologyGraph


def _client(ctx: click.Context) -> NetmetaClient:
    config: NetmetaConfig = ctx.obj
    return NetmetaClient(ctx.meta.get("api_url") or config.api.base_url)


def _print_topology(console: Console, topology: dict, title: str) -> None:
    if not topology:
        console.print("[yellow]No OSPF routers observed[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Router", style="cyan")
    table.add_column("Neighbor", style="white")
    table.add_column("Cost", justify="right")
    table.add_column("State")

    for router_id in sorted(topology):
        links = topology[router_id]
        if not links:
            table.add_row(router_id, "-", "-", "-")
            continue
        for i, link in enumerate(links):
            state = link["state"]
            state_style = "green" if state == "Up" else "red"
            table.add_row(
                router_id if i == 0 else "",
                link["remoteRouterID"],
                str(link["cost"]),
                f"[{state_style}]{state}[/{state_style}]",
            )

    console.print(table)


def _print_stack(console: Console, result: dict) -> None:
    table = Table(box=None)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Label", style="cyan", justify="right")
    table.add_column("BoS")
    table.add_column("TTL", justify="right")
    table.add_column("TC", justify="right")

    for i, label in enumerate(result.get("labels", [])):
        table.add_row(
            str(i),
            str(label["value"]),
            "yes" if label["bos"] else "",
            str(label["ttl"]),
            str(label["tc"]),
        )
    console.print(table)

    if result.get("valid"):
        console.print("[green]Label stack is valid[/green]")
    else:
        console.print(f"[red]Invalid:[/red] {result.get('error')}")


@click.group()
@click.version_option(__version__, prog_name="netmeta")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--api-url", default="", help="URL of a running netmeta API")
@click.pass_context
def cli(ctx: click.Context, debug: bool, api_url: str):
    """netmeta - BGP, OSPF and MPLS state monitoring with auto-remediation."""
    try:
        ctx.obj = NetmetaConfig.from_env()
        configure_logging(ctx.obj.log, debug=debug)
    except ConfigurationError as e:
        Console().print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    ctx.meta["api_url"] = api_url


@cli.command()
@click.option("--host", default=None, help="Bind address (default from config)")
@click.option("--port", type=int, default=None, help="Bind port (default from config)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None):
    """Run the monitoring service and its API.

    Examples:
        NETMETA_SESSION_URL=http://127.0.0.1:50052 netmeta serve
        netmeta serve --port 9090
    """
    import uvicorn

    from netmeta.bgp.http_engine import HTTPSessionConfig, HTTPSessionEngine
    from netmeta.service import NetmetaService
    from netmeta.store import KVStore
    from netmeta.ui.server import create_app

    console = Console()
    config: NetmetaConfig = ctx.obj

    if not config.session.url:
        console.print("[red]Error:[/red] NETMETA_SESSION_URL is not set")
        raise SystemExit(1)

    engine = HTTPSessionEngine(HTTPSessionConfig(
        base_url=config.session.url,
        timeout=config.session.timeout,
        max_retries=config.session.max_retries,
        retry_delay=config.session.retry_delay,
    ))
    service = NetmetaService(config, engine, store=KVStore(config.db.path))
    app = create_app(service, manage_lifecycle=True)

    host = host or config.api.host
    port = port or config.api.port
    console.print(f"[cyan]netmeta {__version__}[/cyan] listening on {host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")


@cli.group()
def bgp():
    """BGP peer state."""
    pass


@bgp.command("peers")
@click.pass_context
def bgp_peers(ctx: click.Context):
    """List tracked BGP peers.

    Examples:
        netmeta bgp peers
    """
    console = Console()

    try:
        with _client(ctx) as client:
            peers = client.list_peers()
    except NetmetaError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    if not peers:
        console.print("[yellow]No BGP peers configured[/yellow]")
        return

    table = Table(title="BGP Peers")
    table.add_column("Peer", style="cyan")
    table.add_column("ASN", justify="right")
    table.add_column("State")
    table.add_column("Prefixes", justify="right")
    table.add_column("Flaps", justify="right")
    table.add_column("Last Flap", style="dim")

    for peer in peers:
        state_style = "green" if peer["established"] else "red"
        table.add_row(
            peer["address"],
            f"AS{peer['asn']}",
            f"[{state_style}]{peer['state']}[/{state_style}]",
            str(peer["prefixCount"]),
            str(peer["flapCount"]),
            peer["lastFlapTime"] or "-",
        )

    console.print(table)


@cli.group()
def ospf():
    """OSPF topology."""
    pass


@ospf.command("topology")
@click.pass_context
def ospf_topology(ctx: click.Context):
    """Show the topology learned by the running server.

    Examples:
        netmeta ospf topology
    """
    console = Console()

    try:
        with _client(ctx) as client:
            topology = client.get_topology()
    except NetmetaError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    _print_topology(console, topology, "OSPF Topology")


@ospf.command("parse")
@click.argument("pcap", type=click.Path(exists=True, dir_okay=False))
def ospf_parse(pcap: str):
    """Build a topology from a capture file.

    Examples:
        netmeta ospf parse area0.pcap
    """
    console = Console()
    topology = TopologyGraph()
    listener = OSPFCaptureListener(topology)

    with console.status(f"[cyan]Reading {pcap}...[/cyan]"):
        try:
            count = listener.parse_pcap(pcap)
        except NetmetaError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)

    console.print(f"[dim]{count} OSPF packet(s) processed[/dim]")
    snapshot = {
        router_id: [link.to_dict() for link in links]
        for router_id, links in topology.snapshot().items()
    }
    _print_topology(console, snapshot, f"OSPF Topology ({pcap})")


@cli.group()
def mpls():
    """MPLS label stacks."""
    pass


@mpls.command("validate")
@click.argument("labels", nargs=-1, type=int, required=True)
@click.option("--offline", is_flag=True, help="Validate locally instead of via the server")
@click.pass_context
def mpls_validate(ctx: click.Context, labels: tuple[int, ...], offline: bool):
    """Validate a label stack, top label first.

    Examples:
        netmeta mpls validate 100 200 300
        netmeta mpls validate --offline 16 1048575
    """
    console = Console()

    if offline:
        validator = LabelStackValidator()
        try:
            result = validator.validate_label_stack(labels).to_dict()
        except ValidationFailure as e:
            stack = getattr(e, "stack", None)
            result = stack.to_dict() if stack else {"valid": False, "error": str(e)}
    else:
        try:
            with _client(ctx) as client:
                result = client.validate_labels(list(labels))
        except NetmetaError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(1)

    _print_stack(console, result)
    if not result.get("valid"):
        raise SystemExit(1)


@cli.command()
@click.option("--limit", "-n", type=int, default=20, help="Number of events to show")
@click.pass_context
def events(ctx: click.Context, limit: int):
    """Show recent remediation events, newest last.

    Examples:
        netmeta events
        netmeta events -n 100
    """
    console = Console()

    try:
        with _client(ctx) as client:
            items = client.get_events(limit)
    except NetmetaError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)

    if not items:
        console.print("[yellow]No remediation events[/yellow]")
        return

    table = Table(title="Remediation Events")
    table.add_column("Time", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Target")
    table.add_column("Reason")
    table.add_column("Action")
    table.add_column("Result")

    for item in items:
        result = "[green]ok[/green]" if item["success"] else "[red]failed[/red]"
        table.add_row(
            item["timestamp"],
            item["type"],
            item["target"],
            item["reason"],
            item["action"],
            result,
        )

    console.print(table)


@cli.command()
@click.option("--peer", default="", help="Peer whose prefixes are withdrawn")
@click.option("--prefix", default="", help="Prefix to withdraw")
@click.option("--reason", default="manual", help="Reason recorded with the event")
@click.pass_context
def remediate(ctx: click.Context, peer: str, prefix: str, reason: str):
    """Trigger a manual remediation.

    Examples:
        netmeta remediate --peer 10.0.0.1 --reason "maintenance"
        netmeta remediate --prefix 203.0.113.0/24 --reason rpki
    """
    console = Console()

    if not peer and not prefix:
        console.print("[red]Error:[/red] one of --peer or --prefix is required")
        raise SystemExit(1)

    try:
        with _client(ctx) as client:
            event = client.remediate(peer=peer, prefix=prefix, reason=reason)
    except NetmetaError as e:
        console.print(f"[red]Remediation failed:[/red] {e}")
        raise SystemExit(1)

    console.print(
        f"[green]Remediated[/green] {event['target']} "
        f"([dim]{event['action']}, reason: {event['reason']}[/dim])"
    )


main = cli


if __name__ == "__main__":
    main()
