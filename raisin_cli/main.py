"""
raisin - command-line client for Raisin crowdfunding funds.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

import typer

from raisin_sdk import (
    ContractClient, OperationError, OperationResult, RaisinConfig, RaisinError,
    RaisinOrchestrator, Web3ContractClient, create_keystore, load_keystore
)
from raisin_sdk.signer import Signer

app = typer.Typer(
    help="Manage Raisin crowdfunding funds: create, donate, end, withdraw and refund.",
    no_args_is_help=True
)

logger = logging.getLogger(__name__)


@dataclass
class CliContext:
    keystore: Optional[Path]
    env_file: Optional[Path]


def create_client(config: RaisinConfig, signer: Optional[Signer]) -> ContractClient:
    """Build the chain client for one command invocation."""
    return Web3ContractClient(config, signer=signer)


def _unlock(path: Path) -> Signer:
    password = typer.prompt("Please enter a password to decrypt this key", hide_input=True)
    signer = load_keystore(path, password)
    typer.echo(f"Using account {signer.address}")
    return signer


def _orchestrator(ctx: typer.Context, needs_signer: bool = True) -> RaisinOrchestrator:
    state: CliContext = ctx.obj
    config = RaisinConfig.from_env(str(state.env_file) if state.env_file else None)
    signer = None
    if needs_signer:
        if state.keystore is None:
            typer.echo("This command signs transactions: pass --keystore/-p PATH", err=True)
            raise typer.Exit(code=2)
        signer = _unlock(state.keystore)
    return RaisinOrchestrator(create_client(config, signer), on_status=typer.echo)


def _report_failure(error: RaisinError) -> None:
    typer.echo(f"Error: {error}", err=True)
    if isinstance(error, OperationError) and error.completed_steps:
        typer.echo("These steps were confirmed and were not undone:", err=True)
        for step in error.completed_steps:
            typer.echo(f"  {step.name} on {step.target}: {step.tx_hash}", err=True)


def _run(ctx: typer.Context, action: Callable[[RaisinOrchestrator], object], needs_signer: bool = True):
    try:
        return action(_orchestrator(ctx, needs_signer))
    except RaisinError as e:
        logger.debug("Command failed", exc_info=True)
        _report_failure(e)
        raise typer.Exit(code=1)


def _done(result: OperationResult, message: str) -> None:
    for step in result.steps:
        logger.debug(f"{step.name}: {step.tx_hash} (block {step.receipt.block_number})")
    typer.echo(message)


@app.callback()
def main(
    ctx: typer.Context,
    keystore: Optional[Path] = typer.Option(
        None, "--keystore", "-p",
        help="Keystore file (for new-key: directory to create it in)"
    ),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Load settings from this .env file"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging")
):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    ctx.obj = CliContext(keystore=keystore, env_file=env_file)


@app.command("new-key")
def new_key(ctx: typer.Context, name: str = typer.Argument(..., help="File name of the new keystore")):
    """Generate a new encrypted keystore."""
    state: CliContext = ctx.obj
    if state.keystore is None:
        typer.echo("Pass the keystore directory with --keystore/-p PATH", err=True)
        raise typer.Exit(code=2)
    password = typer.prompt(
        "Please enter a password to encrypt this private key", hide_input=True, confirmation_prompt=True
    )
    try:
        address = create_keystore(state.keystore, name, password)
    except RaisinError as e:
        _report_failure(e)
        raise typer.Exit(code=1)
    typer.echo(f"Your new address is {address}")


@app.command("init-fund")
def init_fund(ctx: typer.Context, amount: str, token: str, recipient: str):
    """Start a fund with a goal of AMOUNT tokens for RECIPIENT."""
    result = _run(ctx, lambda o: o.init_fund(amount, token, recipient))
    _done(result, "Fund successfully initialized!")


@app.command()
def donate(ctx: typer.Context, amount: str, token: str, index: int):
    """Donate AMOUNT of TOKEN to fund INDEX (approves the token first)."""
    result = _run(ctx, lambda o: o.donate(amount, token, index))
    _done(result, "Donation successful!")


@app.command("batch-donation")
def batch_donation(
    ctx: typer.Context,
    amounts: List[str] = typer.Option(..., "--amount", "-a", help="Amount, once per donation"),
    tokens: List[str] = typer.Option(..., "--token", "-t", help="Token address, once per donation"),
    indices: List[int] = typer.Option(..., "--index", "-i", help="Fund index, once per donation")
):
    """Donate to several funds in one transaction."""
    result = _run(ctx, lambda o: o.batch_donate(amounts, tokens, indices))
    _done(result, "Batch of donations sent successfully!")


@app.command("end-fund")
def end_fund(ctx: typer.Context, index: int):
    """End your fund."""
    result = _run(ctx, lambda o: o.end_fund(index))
    _done(result, "Successfully ended fund!")


@app.command()
def withdraw(ctx: typer.Context, index: int):
    """Withdraw from your fund (if successful)."""
    result = _run(ctx, lambda o: o.withdraw(index))
    _done(result, "Successfully withdrew funds!")


@app.command()
def refund(ctx: typer.Context, index: int):
    """Get a refund from a fund that missed its goal."""
    result = _run(ctx, lambda o: o.refund(index))
    _done(result, "Refund successful!")


@app.command("get-raisin")
def get_raisin(ctx: typer.Context, index: int):
    """Show the state of fund INDEX."""
    record = _run(ctx, lambda o: o.get_raisin(index), needs_signer=False)
    typer.echo(f"Fund #{record.index}")
    typer.echo(f"  balance:   {record.balance_formatted}")
    typer.echo(f"  goal:      {record.goal_formatted}")
    typer.echo(f"  token:     {record.token}")
    typer.echo(f"  raiser:    {record.raiser}")
    typer.echo(f"  recipient: {record.recipient}")
    expires_at = record.expires_at
    typer.echo(f"  expiry:    {expires_at.isoformat() if expires_at else record.expiry}")


@app.command("get-balance")
def get_balance(ctx: typer.Context, address: str, token: str):
    """Show the TOKEN balance of ADDRESS."""
    balance = _run(ctx, lambda o: o.get_balance(address, token), needs_signer=False)
    typer.echo(f"Balance of {balance.owner}: {balance.formatted} ({balance.amount} base units of {balance.token})")


@app.command("transfer-tkn")
def transfer_tkn(ctx: typer.Context, amount: str, token: str, recipient: str):
    """Transfer AMOUNT of TOKEN to RECIPIENT."""
    result = _run(ctx, lambda o: o.transfer(amount, token, recipient))
    _done(result, "Token Transfer successful!")


@app.command("transfer-eth")
def transfer_eth(ctx: typer.Context, amount: str, to: str):
    """Transfer AMOUNT ether to TO."""
    result = _run(ctx, lambda o: o.transfer_eth(amount, to))
    _done(result, "Ether transfer successful!")


@app.command()
def test(ctx: typer.Context):
    """Mint testnet tokens."""
    result = _run(ctx, lambda o: o.mint_test_tokens())
    _done(result, "Successfully minted test tokens!")


if __name__ == "__main__":
    app()
