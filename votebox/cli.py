"""
Votebox CLI
===========

Command-line interface for the proposal registry.

Commands:
    votebox create <key> -d TEXT [--inactive]   - Create (or overwrite) a proposal
    votebox edit <key> -d TEXT [--inactive]     - Edit a proposal you own
    votebox end <key>                           - Close a proposal you own
    votebox vote <key> approve|reject|pass      - Vote once on an active proposal
    votebox show <key>                          - Show one proposal
    votebox count                               - Number of proposals
    votebox list                                - All proposals by key
    votebox history <key>                       - Audit events for a proposal
    votebox recover                             - Verify the store after a crash

Mutating commands act as the identity given by --caller or $VOTEBOX_CALLER.
"""

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import create_event_log, create_registry, create_store, load_config
from .errors import VoteboxError
from .recovery import RecoveryManager
from .state.records import MAX_KEY, Choice, CreateProposal, Proposal


logger = logging.getLogger(__name__)

console = Console()

# Each command opens its own store, so only on-disk backends keep state
DURABLE_BACKENDS = ("file", "sqlite")

KEY = click.IntRange(0, MAX_KEY)

caller_option = click.option(
    "--caller", "-c",
    envvar="VOTEBOX_CALLER",
    required=True,
    help="Identity issuing the call (default: $VOTEBOX_CALLER)",
)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="votebox")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="Path to config.yaml (default: $VOTEBOX_CONFIG or ./config.yaml)")
@click.option("--state-dir", default=None, help="Override paths.state_dir")
@click.option("--backend", type=click.Choice(DURABLE_BACKENDS), default=None,
              help="Override store.backend")
@click.pass_context
def main(ctx: click.Context, config_path: str, state_dir: str, backend: str):
    """Votebox - durable proposal and voting registry"""
    config = load_config(config_path)
    if state_dir:
        config["paths"]["state_dir"] = state_dir
    if backend:
        config["store"]["backend"] = backend
    setup_logging(config["logging"]["level"])
    if config["store"]["backend"] not in DURABLE_BACKENDS:
        logger.warning(
            "Store backend %r does not persist between commands; use one of: %s",
            config["store"]["backend"], ", ".join(DURABLE_BACKENDS),
        )
    ctx.obj = config


def _registry(ctx: click.Context):
    return create_registry(ctx.obj)


def _fail(error: Exception) -> None:
    kind = getattr(error, "kind", type(error).__name__)
    console.print(f"[red]✗ {kind}:[/red] {escape(str(error))}")
    sys.exit(1)


@main.command()
@click.argument("key", type=KEY)
@click.option("--description", "-d", required=True, help="Proposal text")
@click.option("--active/--inactive", default=True, help="Open for voting (default: active)")
@caller_option
@click.pass_context
def create(ctx: click.Context, key: int, description: str, active: bool, caller: str):
    """Create a proposal at KEY owned by the caller."""
    registry = _registry(ctx)
    try:
        previous = registry.create_proposal(caller, key, CreateProposal(description, active))
    except (VoteboxError, ValueError) as e:
        _fail(e)
    finally:
        registry.store.close()

    console.print(f"[green]✓ Proposal {key} created[/green]")
    if previous is not None:
        console.print(
            f"[yellow]Overwrote previous proposal owned by {escape(previous.owner)} "
            f"({previous.total_votes} votes)[/yellow]"
        )


@main.command()
@click.argument("key", type=KEY)
@click.option("--description", "-d", required=True, help="New proposal text")
@click.option("--active/--inactive", default=True, help="Open for voting (default: active)")
@caller_option
@click.pass_context
def edit(ctx: click.Context, key: int, description: str, active: bool, caller: str):
    """Replace the description and active flag of a proposal you own."""
    registry = _registry(ctx)
    try:
        registry.edit_proposal(caller, key, CreateProposal(description, active))
    except (VoteboxError, ValueError) as e:
        _fail(e)
    finally:
        registry.store.close()
    console.print(f"[green]✓ Proposal {key} updated[/green]")


@main.command()
@click.argument("key", type=KEY)
@caller_option
@click.pass_context
def end(ctx: click.Context, key: int, caller: str):
    """Close a proposal you own for voting."""
    registry = _registry(ctx)
    try:
        registry.end_proposal(caller, key)
    except (VoteboxError, ValueError) as e:
        _fail(e)
    finally:
        registry.store.close()
    console.print(f"[green]✓ Proposal {key} closed[/green]")


@main.command("vote")
@click.argument("key", type=KEY)
@click.argument("choice", type=click.Choice([c.value for c in Choice], case_sensitive=False))
@caller_option
@click.pass_context
def vote_cmd(ctx: click.Context, key: int, choice: str, caller: str):
    """Vote approve, reject or pass on proposal KEY."""
    registry = _registry(ctx)
    try:
        registry.vote(caller, key, Choice.parse(choice))
    except (VoteboxError, ValueError) as e:
        _fail(e)
    finally:
        registry.store.close()
    console.print(f"[green]✓ Voted {choice.lower()} on proposal {key}[/green]")


@main.command()
@click.argument("key", type=KEY)
@click.pass_context
def show(ctx: click.Context, key: int):
    """Show a single proposal."""
    with create_store(ctx.obj) as store:
        try:
            proposal = store.get(key)
        except (VoteboxError, ValueError) as e:
            _fail(e)

    if proposal is None:
        console.print(f"[dim]No proposal at key {key}[/dim]")
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Key", str(key))
    table.add_row("Description", escape(proposal.description))
    table.add_row("Owner", escape(proposal.owner))
    table.add_row("Status", _format_active(proposal.is_active))
    table.add_row("Approve", str(proposal.approve))
    table.add_row("Reject", str(proposal.reject))
    table.add_row("Pass", str(proposal.pass_))
    table.add_row("Voters", escape(", ".join(proposal.voted)) or "-")

    console.print(table)


@main.command()
@click.pass_context
def count(ctx: click.Context):
    """Print the number of stored proposals."""
    with create_store(ctx.obj) as store:
        console.print(store.count())


@main.command("list")
@click.pass_context
def list_proposals(ctx: click.Context):
    """List all proposals in key order."""
    with create_store(ctx.obj) as store:
        try:
            proposals = list(store.items())
        except (VoteboxError, ValueError) as e:
            _fail(e)

    if not proposals:
        console.print("[dim]No proposals found[/dim]")
        return

    table = Table(title="Proposals")
    table.add_column("Key", justify="right")
    table.add_column("Description")
    table.add_column("Owner")
    table.add_column("Status", no_wrap=True)
    table.add_column("A/R/P", justify="right", no_wrap=True)

    for key, proposal in proposals:
        table.add_row(
            str(key),
            escape(proposal.description[:40]),
            escape(proposal.owner[:20]),
            _format_active(proposal.is_active),
            _format_tally(proposal),
        )

    console.print(table)


@main.command()
@click.argument("key", type=KEY)
@click.pass_context
def history(ctx: click.Context, key: int):
    """Show the audit events of a proposal."""
    event_log = create_event_log(ctx.obj)
    if event_log is None:
        console.print("[yellow]Event log is disabled in the configuration[/yellow]")
        return

    events = event_log.proposal_history(key)
    if not events:
        console.print(f"[dim]No events for proposal {key}[/dim]")
        return

    table = Table(title=f"Proposal {key}")
    table.add_column("Time", no_wrap=True)
    table.add_column("Event", no_wrap=True)
    table.add_column("Caller")
    table.add_column("Details")

    for event in events:
        details = ", ".join(f"{k}={v}" for k, v in (event.data or {}).items() if k != "previous")
        table.add_row(
            event.timestamp[:19],
            event.event_type,
            escape(event.caller or ""),
            escape(details[:60]),
        )

    console.print(table)


@main.command()
@click.pass_context
def recover(ctx: click.Context):
    """Verify the store and clean up interrupted writes."""
    with create_store(ctx.obj) as store:
        result = RecoveryManager(store, create_event_log(ctx.obj)).recover()

    console.print("[green]Recovery complete![/green]")
    console.print(f"[dim]Records found:[/dim] {result.records_found}")
    console.print(f"[dim]Records valid:[/dim] {result.records_valid}")
    console.print(f"[dim]Partial writes removed:[/dim] {result.partial_writes_removed}")

    if not result.clean:
        keys = ", ".join(str(k) for k in result.corrupt_keys)
        console.print(f"[red]Corrupt records:[/red] {keys}")
        sys.exit(1)


def _format_active(is_active: bool) -> str:
    return "[green]active[/green]" if is_active else "[red]closed[/red]"


def _format_tally(proposal: Proposal) -> str:
    return f"{proposal.approve}/{proposal.reject}/{proposal.pass_}"


if __name__ == "__main__":
    main()
