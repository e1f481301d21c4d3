#!/usr/bin/env python3
"""
oluolavotes CLI

Command-line interface for the oluolavotes governance contract.

Usage:
    oluolavotes proposals
    oluolavotes proposal <id>
    oluolavotes results <id>
    oluolavotes my-vote <id> [--voter ADDRESS]
    oluolavotes contracts
    oluolavotes connect | disconnect | whoami
    oluolavotes create --title TITLE --description TEXT
    oluolavotes vote <id> for|against [--guard]
    oluolavotes end <id> [--guard]
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .. import __version__
from ..clarity import is_valid_address, truncate_address
from ..config import ClientConfig, load_config
from ..exceptions import ConfigError, WalletError
from ..gateway import ContractGateway
from ..governance import (
    ActionSubmitter,
    ProposalReadModel,
    ProposalStatus,
    ProposalSyncError,
    VotingInactiveError,
)
from ..logger import set_log_level
from ..network import CONTRACTS
from ..wallet import (
    AppDetails,
    BridgeAuthenticator,
    FileSessionStore,
    HttpWalletConnector,
    SessionTracker,
    TransactionOutcome,
    TxStatus,
)

console = Console()

_STATUS_STYLES = {
    ProposalStatus.ACTIVE: "green",
    ProposalStatus.PASSED: "cyan",
    ProposalStatus.REJECTED: "red",
    ProposalStatus.UNKNOWN: "yellow",
}


def format_timestamp(ts: int) -> str:
    """Seconds since epoch as a UTC date-time string."""
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    except (OverflowError, OSError, ValueError):
        return str(ts)


def format_share(pct) -> str:
    return f"{pct}%"


def _session_tracker(cfg: ClientConfig, connector: HttpWalletConnector) -> SessionTracker:
    authenticator = BridgeAuthenticator(
        connector,
        FileSessionStore(cfg.wallet.session_path),
        cfg.network.name,
        AppDetails(cfg.wallet.app_name, cfg.wallet.app_icon),
    )
    return SessionTracker(authenticator, cfg.network.name)


def _connector(cfg: ClientConfig) -> HttpWalletConnector:
    return HttpWalletConnector(cfg.wallet.bridge_url, timeout=cfg.network.request_timeout)


def _connected_address(cfg: ClientConfig) -> Optional[str]:
    """Address of the signed-in wallet user on the configured network, if any."""

    async def run() -> Optional[str]:
        async with _connector(cfg) as connector:
            tracker = _session_tracker(cfg, connector)
            tracker.sync()
            return tracker.address

    return asyncio.run(run())


def _print_outcome(outcome: TransactionOutcome) -> None:
    if outcome.status == TxStatus.FINISHED:
        click.echo(click.style("✓ Transaction submitted", fg="green"))
        if outcome.tx_id:
            click.echo(f"Transaction ID: {outcome.tx_id}")
        click.echo("It may take a few blocks before the change shows up.")
    elif outcome.status == TxStatus.CANCELLED:
        click.echo(click.style("Cancelled in wallet.", fg="yellow"))
    else:
        raise click.ClickException(f"Transaction could not be submitted: {outcome.error}")


def _print_proposals(model: ProposalReadModel) -> None:
    proposals = model.proposals
    if not proposals:
        click.echo("No proposals yet.")
        return

    table = Table(title="Proposals")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("For", justify="right")
    table.add_column("Against", justify="right")
    table.add_column("Ends")
    for p in proposals:
        style = _STATUS_STYLES.get(p.status, "white")
        table.add_row(
            str(p.proposal_id),
            p.title,
            f"[{style}]{p.raw_status or p.status.value}[/{style}]",
            f"{p.votes_for} ({format_share(p.for_percentage)})",
            f"{p.votes_against} ({format_share(p.against_percentage)})",
            format_timestamp(p.end_time),
        )
    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="oluolavotes")
@click.option("--config", "config_path", type=click.Path(), default=None,
              help="Path to oluolavotes.toml (default: $OLUOLAVOTES_CONFIG or ./oluolavotes.toml)")
@click.option("--network", default=None, help="Network preset: mainnet, testnet or devnet")
@click.pass_context
def cli(ctx, config_path: Optional[str], network: Optional[str]):
    """Decentralized Voting System

    Browse and vote on proposals of the oluolavotes governance contract.
    """
    try:
        cfg = load_config(config_path)
        if network:
            cfg.network.name = network
        cfg.validate()
    except ConfigError as e:
        raise click.ClickException(str(e))
    set_log_level(cfg.logging.level)
    ctx.obj = cfg


# ----------------------------------------------------------------------
# Read commands
# ----------------------------------------------------------------------

@cli.command("proposals")
@click.pass_obj
def proposals_cmd(cfg: ClientConfig):
    """List all proposals."""

    async def run() -> ProposalReadModel:
        async with ContractGateway.from_config(cfg) as gateway:
            model = ProposalReadModel.from_config(gateway, cfg.sync)
            await model.refresh()
            return model

    try:
        model = asyncio.run(run())
    except ProposalSyncError:
        raise click.ClickException("Failed to load proposals. Please try again.")
    if model.last_error is not None:
        raise click.ClickException("Failed to load proposals. Please try again.")
    _print_proposals(model)


@cli.command("proposal")
@click.argument("proposal_id", type=click.IntRange(min=1))
@click.pass_obj
def proposal_cmd(cfg: ClientConfig, proposal_id: int):
    """Show one proposal in detail."""

    async def run():
        async with ContractGateway.from_config(cfg) as gateway:
            proposal = await gateway.fetch_proposal(proposal_id)
            active = await gateway.is_voting_active(proposal_id) if proposal else False
            return proposal, active

    proposal, active = asyncio.run(run())
    if proposal is None:
        raise click.ClickException(f"Proposal #{proposal_id} could not be loaded")

    click.echo()
    click.echo(click.style(f"#{proposal.proposal_id}  {proposal.title}", fg="cyan", bold=True))
    click.echo(proposal.description)
    click.echo()
    click.echo(f"Proposer:      {proposal.proposer}")
    click.echo(f"Status:        {proposal.raw_status or proposal.status.value}")
    click.echo(f"Votes For:     {proposal.votes_for} ({format_share(proposal.for_percentage)})")
    click.echo(f"Votes Against: {proposal.votes_against} ({format_share(proposal.against_percentage)})")
    click.echo(f"Quorum:        {proposal.total_votes}/{proposal.quorum}")
    click.echo(f"Created:       {format_timestamp(proposal.created_at)}")
    click.echo(f"Ends:          {format_timestamp(proposal.end_time)}")
    click.echo(f"Executed:      {'yes' if proposal.executed else 'no'}")
    if active:
        click.echo(click.style("Voting is open.", fg="green"))
    else:
        click.echo(click.style("Voting is closed.", fg="yellow"))


@cli.command("results")
@click.argument("proposal_id", type=click.IntRange(min=1))
@click.pass_obj
def results_cmd(cfg: ClientConfig, proposal_id: int):
    """Show the contract's tally for a proposal."""

    async def run():
        async with ContractGateway.from_config(cfg) as gateway:
            return await gateway.get_voting_results(proposal_id)

    results = asyncio.run(run())
    if results is None:
        raise click.ClickException(f"No voting results for proposal #{proposal_id}")
    for_pct, against_pct = results.percentages()
    click.echo(f"Proposal #{proposal_id}: {results.raw_status or results.status.value}")
    click.echo(f"  For:     {results.votes_for} ({format_share(for_pct)})")
    click.echo(f"  Against: {results.votes_against} ({format_share(against_pct)})")
    click.echo(f"  Total:   {results.total_votes}")


@cli.command("my-vote")
@click.argument("proposal_id", type=click.IntRange(min=1))
@click.option("--voter", default=None, help="Voter address (default: connected wallet)")
@click.pass_obj
def my_vote_cmd(cfg: ClientConfig, proposal_id: int, voter: Optional[str]):
    """Show how an address voted on a proposal."""

    async def run(address: str):
        async with ContractGateway.from_config(cfg) as gateway:
            return await gateway.get_user_vote(address, proposal_id)

    if voter is None:
        voter = _connected_address(cfg)
        if not voter:
            raise click.ClickException("No wallet connected; pass --voter or run 'oluolavotes connect'")
    elif not is_valid_address(voter):
        raise click.ClickException(f"Invalid Stacks address: {voter}")

    record = asyncio.run(run(voter))
    if record is None:
        click.echo(f"No vote recorded for {truncate_address(voter)} on proposal #{proposal_id}.")
        return
    choice = click.style("FOR", fg="green") if record.vote else click.style("AGAINST", fg="red")
    click.echo(f"{truncate_address(voter)} voted {choice} on #{proposal_id} at {format_timestamp(record.timestamp)}")


@cli.command("contracts")
@click.pass_obj
def contracts_cmd(cfg: ClientConfig):
    """List the deployed governance contracts."""

    async def run():
        async with ContractGateway.from_config(cfg) as gateway:
            return gateway.contract_info()

    info = asyncio.run(run())
    click.echo(f"Network: {info['network']['name']} ({info['network']['apiUrl']})")
    click.echo(f"Target:  {info['contractAddress']}.{info['contractName']}")
    click.echo()
    for key, contract in CONTRACTS.items():
        click.echo(f"  {key:<20} {contract.identifier}")


# ----------------------------------------------------------------------
# Session commands
# ----------------------------------------------------------------------

@cli.command("connect")
@click.pass_obj
def connect_cmd(cfg: ClientConfig):
    """Connect a wallet through the wallet bridge."""

    async def run() -> SessionTracker:
        async with _connector(cfg) as connector:
            tracker = _session_tracker(cfg, connector)
            if not tracker.sync():
                await tracker.sign_in()
            return tracker

    try:
        tracker = asyncio.run(run())
    except WalletError as e:
        raise click.ClickException(f"Wallet connection failed: {e}")
    if tracker.connected:
        click.echo(click.style("✓ Connected Wallet", fg="green"))
        click.echo(f"Address: {tracker.address or '(none on this network)'}")
    else:
        click.echo("Connect your Stacks wallet to interact with proposals.")


@cli.command("disconnect")
@click.pass_obj
def disconnect_cmd(cfg: ClientConfig):
    """Forget the connected wallet."""

    async def run() -> None:
        async with _connector(cfg) as connector:
            tracker = _session_tracker(cfg, connector)
            tracker.on_reload = lambda: click.echo("Session cleared.")
            await tracker.sign_out()

    asyncio.run(run())


@cli.command("whoami")
@click.pass_obj
def whoami_cmd(cfg: ClientConfig):
    """Show the connected wallet address."""
    address = _connected_address(cfg)
    if address:
        click.echo(f"Connected Wallet: {address} ({truncate_address(address)})")
    else:
        click.echo("Not connected.")


# ----------------------------------------------------------------------
# Transaction commands
# ----------------------------------------------------------------------

def _submit(cfg: ClientConfig, guard: bool, action) -> None:
    """
    Run `action(submitter)` with a connected wallet and report the outcome.
    Once the transaction is submitted the refreshed proposal list is shown.
    """

    async def run() -> Tuple[TransactionOutcome, ProposalReadModel]:
        async with _connector(cfg) as connector:
            tracker = _session_tracker(cfg, connector)
            if not tracker.sync():
                raise click.ClickException("Connect a wallet first: oluolavotes connect")
            async with ContractGateway.from_config(cfg, wallet=connector) as gateway:
                model = ProposalReadModel.from_config(gateway, cfg.sync)
                submitter = ActionSubmitter(gateway, on_refresh=model.refresh, guard_inactive=guard)
                return await action(submitter), model

    try:
        outcome, model = asyncio.run(run())
    except VotingInactiveError as e:
        raise click.ClickException(str(e))
    _print_outcome(outcome)
    if outcome.finished:
        click.echo()
        if model.last_error is not None:
            click.echo(click.style("Failed to load proposals. Please try again.", fg="yellow"))
        else:
            _print_proposals(model)


@cli.command("create")
@click.option("--title", prompt=True, help="Proposal title")
@click.option("--description", prompt=True, help="Proposal description")
@click.pass_obj
def create_cmd(cfg: ClientConfig, title: str, description: str):
    """Create a new proposal."""
    if not title.strip() or not description.strip():
        raise click.ClickException("Title and description are required")
    _submit(cfg, False, lambda s: s.create_proposal(title.strip(), description.strip()))


@cli.command("vote")
@click.argument("proposal_id", type=click.IntRange(min=1))
@click.argument("choice", type=click.Choice(["for", "against"], case_sensitive=False))
@click.option("--guard", is_flag=True, help="Refuse to submit when voting is not active")
@click.pass_obj
def vote_cmd(cfg: ClientConfig, proposal_id: int, choice: str, guard: bool):
    """Vote for or against a proposal."""
    in_favor = choice.lower() == "for"
    _submit(cfg, guard, lambda s: s.vote(proposal_id, in_favor))


@cli.command("end")
@click.argument("proposal_id", type=click.IntRange(min=1))
@click.option("--guard", is_flag=True, help="Refuse to submit when voting is not active")
@click.pass_obj
def end_cmd(cfg: ClientConfig, proposal_id: int, guard: bool):
    """End voting on a proposal."""
    _submit(cfg, guard, lambda s: s.end_voting(proposal_id))


def main():
    cli()


if __name__ == "__main__":
    main()
