"""CLI for Token Wallet - follow ERC20 tokens and send them from the terminal."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="token-wallet",
    help="Follow ERC20 tokens, check balances, and send transfers.",
    no_args_is_help=True,
)
console = Console()

_base_dir: Path | None = None


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        console.print(f"token-wallet {version('token-wallet')}")
        raise typer.Exit()


@app.callback()
def main(
    base_dir: Path = typer.Option(
        None,
        "--dir",
        "-d",
        help="Directory holding .token-wallet/ (default: current directory)",
        envvar="TOKEN_WALLET_DIR",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """Follow ERC20 tokens, check balances, and send transfers."""
    global _base_dir
    _base_dir = base_dir
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


async def _load(restore_tokens: bool = False):
    from token_wallet.core.wallet_app import WalletApp

    return await WalletApp.load(_base_dir, restore_tokens=restore_tokens)


def _format_units(raw: str | None, decimals: int | None) -> str:
    if raw is None:
        return "[dim]?[/dim]"
    if not decimals:
        return raw
    return f"{Decimal(raw).scaleb(-decimals).normalize():f}"


# ------------------------------------------------------------------
# config
# ------------------------------------------------------------------


@app.command("init")
def init(
    chain: str = typer.Option("sepolia", "--chain", "-c", help="Chain name"),
    rpc_url: str = typer.Option(None, "--rpc-url", help="Override the chain's RPC endpoint"),
):
    """Write a config file for a new wallet directory."""
    from token_wallet.config import AppConfig, NetworkConfig, get_root_dir, save_config
    from token_wallet.wallet.chains import get_chain

    try:
        get_chain(chain)
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)

    config_path = get_root_dir(_base_dir) / "config.yaml"
    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}.[/yellow]")
        raise typer.Exit(1)

    config = AppConfig(network=NetworkConfig(chain=chain, rpc_url=rpc_url))
    save_config(config, config_path)
    console.print(f"[green]Config written to {config_path}[/green]")


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Manage the wallet keystore.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


@wallet_app.command("create")
def wallet_create():
    """Generate a new Ethereum wallet with encrypted keystore."""
    password = console.input("[bold]Set wallet password: [/bold]", password=True)
    confirm = console.input("[bold]Confirm password: [/bold]", password=True)
    if password != confirm:
        console.print("[red]Passwords do not match.[/red]")
        raise typer.Exit(1)

    async def _create():
        wallet = await _load()
        try:
            if wallet.key_service.has_wallet():
                return wallet.key_service.get_address(), False
            return wallet.key_service.create(password), True
        finally:
            await wallet.shutdown()

    addr, created = _run(_create())

    if created:
        console.print(Panel(
            f"[bold green]Wallet created![/bold green]\n\n"
            f"Address: [cyan]{addr}[/cyan]\n\n"
            f"[dim]Your keystore is encrypted with your password.[/dim]",
            title="Token Wallet",
        ))
    else:
        console.print("[yellow]Wallet already exists.[/yellow]")
        console.print(f"Wallet address: [cyan]{addr}[/cyan]")


@wallet_app.command("address")
def wallet_address():
    """Show the wallet address."""

    async def _address():
        wallet = await _load()
        try:
            if not wallet.key_service.has_wallet():
                return None
            return wallet.key_service.get_address()
        finally:
            await wallet.shutdown()

    addr = _run(_address())
    if addr is None:
        console.print("[yellow]No wallet found.[/yellow] Run 'token-wallet wallet create' first.")
        raise typer.Exit(1)

    console.print(Panel(f"[cyan]{addr}[/cyan]", title="Wallet Address"))


# ------------------------------------------------------------------
# tokens sub-commands
# ------------------------------------------------------------------

tokens_app = typer.Typer(
    name="tokens",
    help="Follow ERC20 tokens and move them.",
    no_args_is_help=True,
)
app.add_typer(tokens_app, name="tokens")


@tokens_app.command("add")
def tokens_add(
    address: str = typer.Argument(help="Token contract address (0x...)"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip the ERC20 check"),
):
    """Start following a token."""
    from token_wallet.storage.models import Token

    async def _add():
        wallet = await _load()
        try:
            service = wallet.erc20_service
            await service.load(enrich=False)
            if service.has_token_with_address(address):
                return "duplicate"
            if not force and not await service.is_valid_erc20(address):
                return "invalid"
            await service.add_token(Token(address=address))
            return "added"
        finally:
            await wallet.shutdown()

    result = _run(_add())
    if result == "duplicate":
        console.print(f"[yellow]Already following {address}.[/yellow]")
    elif result == "invalid":
        console.print(
            f"[red]{address} does not look like an ERC20 token.[/red] "
            "Use --force to add it anyway."
        )
        raise typer.Exit(1)
    else:
        console.print(f"[green]Now following {address}.[/green]")


@tokens_app.command("list")
def tokens_list():
    """Show followed tokens with their names and balances."""

    async def _list():
        wallet = await _load(restore_tokens=True)
        try:
            await wallet.erc20_service.wait_idle()
            return list(wallet.erc20_service.get_tokens().get_value())
        finally:
            await wallet.shutdown()

    tokens = _run(_list())
    if not tokens:
        console.print("[dim]No tokens yet. Add one with 'token-wallet tokens add'.[/dim]")
        return

    table = Table(title="Tokens")
    table.add_column("Address", style="cyan")
    table.add_column("Name")
    table.add_column("Balance", justify="right")
    table.add_column("Decimals", justify="right", style="dim")
    for token in tokens:
        table.add_row(
            token.address,
            token.name or "[dim]?[/dim]",
            _format_units(token.balance, token.decimals),
            str(token.decimals) if token.decimals is not None else "[dim]?[/dim]",
        )
    console.print(table)


@tokens_app.command("balance")
def tokens_balance(
    address: str = typer.Argument(help="Token contract address (0x...)"),
    account: str = typer.Option(None, "--account", "-a", help="Account to query (default: wallet address)"),
):
    """Show the raw balance of a token."""

    async def _balance():
        wallet = await _load()
        try:
            return await wallet.erc20_service.get_balance_of(address, account)
        finally:
            await wallet.shutdown()

    try:
        balance = _run(_balance())
    except Exception as e:
        console.print(f"[red]Balance query failed: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]{address}:[/bold] {balance}")


@tokens_app.command("validate")
def tokens_validate(
    address: str = typer.Argument(help="Contract address (0x...)"),
):
    """Check whether an address looks like an ERC20 token."""

    async def _validate():
        wallet = await _load()
        try:
            return await wallet.erc20_service.is_valid_erc20(address)
        finally:
            await wallet.shutdown()

    if _run(_validate()):
        console.print(f"[green]{address} looks like an ERC20 token.[/green]")
    else:
        console.print(f"[red]{address} does not look like an ERC20 token.[/red]")
        raise typer.Exit(1)


@tokens_app.command("transfer")
def tokens_transfer(
    address: str = typer.Argument(help="Token contract address (0x...)"),
    to: str = typer.Option(..., "--to", "-t", help="Recipient address (0x...)"),
    amount: int = typer.Option(..., "--amount", "-n", help="Amount in raw token units"),
):
    """Send tokens. Requires password confirmation."""
    console.print(f"\n[bold]Transfer {amount} of {address}[/bold]")
    console.print(f"  To: {to}\n")

    typer.confirm("Confirm this transaction?", abort=True)
    password = console.input("[bold]Wallet password: [/bold]", password=True)

    async def _send():
        wallet = await _load()
        try:
            key = wallet.key_service.get_private_key(password)
            ok = await wallet.erc20_service.transfer(address, key, to, amount)
            return ok, wallet.network.address_url(to)
        finally:
            await wallet.shutdown()

    try:
        ok, recipient_url = _run(_send())
    except Exception as e:
        console.print(f"[red]Transaction failed: {e}[/red]")
        raise typer.Exit(1)

    if ok:
        body = "[bold green]Transfer confirmed.[/bold green]"
        if recipient_url:
            body += f"\n[dim]Recipient: {recipient_url}[/dim]"
        console.print(Panel(body, title="Transaction Sent"))
    else:
        console.print("[red]Transaction was mined but reverted.[/red]")
        raise typer.Exit(1)


@tokens_app.command("remove")
def tokens_remove(
    address: str = typer.Argument(help="Token contract address (0x...)"),
):
    """Stop following a token."""

    async def _remove():
        wallet = await _load()
        try:
            await wallet.erc20_service.load(enrich=False)
            return await wallet.erc20_service.remove_token(address)
        finally:
            await wallet.shutdown()

    if _run(_remove()):
        console.print(f"[green]Stopped following {address}.[/green]")
    else:
        console.print(f"[yellow]Not following {address}.[/yellow]")


@tokens_app.command("reset")
def tokens_reset():
    """Forget all followed tokens."""
    typer.confirm("Remove every token from the list?", abort=True)

    async def _reset():
        wallet = await _load()
        try:
            await wallet.erc20_service.reset()
        finally:
            await wallet.shutdown()

    _run(_reset())
    console.print("[green]Token list cleared.[/green]")


# ------------------------------------------------------------------
# wizard sub-commands
# ------------------------------------------------------------------

wizard_app = typer.Typer(
    name="wizard",
    help="Step through the wallet setup wizard.",
    no_args_is_help=True,
)
app.add_typer(wizard_app, name="wizard")


@wizard_app.command("status")
def wizard_status():
    """Show which wizard parts are complete."""

    async def _status():
        wallet = await _load()
        try:
            parts = {p: v.part_complete for p, v in wallet.parts.items()}
            unlocked = wallet.part4_validation_service.can_activate(redirect_on_false=False)
            return parts, unlocked
        finally:
            await wallet.shutdown()

    parts, unlocked = _run(_status())
    table = Table(title="Wizard")
    table.add_column("Part", style="cyan")
    table.add_column("Status")
    for part, complete in parts.items():
        table.add_row(str(part), "[green]complete[/green]" if complete else "[dim]open[/dim]")
    table.add_row("4", "[green]unlocked[/green]" if unlocked else "[yellow]locked[/yellow]")
    console.print(table)


@wizard_app.command("complete")
def wizard_complete(
    part: int = typer.Argument(help="Part number (1-3)"),
):
    """Mark a wizard part as complete."""

    async def _complete():
        wallet = await _load()
        try:
            await wallet.complete_part(part)
        finally:
            await wallet.shutdown()

    try:
        _run(_complete())
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Part {part} complete.[/green]")


@wizard_app.command("enter")
def wizard_enter(
    part: int = typer.Argument(help="Part number (1-4)"),
):
    """Navigate to a wizard part, if its prerequisites allow it."""

    async def _enter():
        wallet = await _load()
        try:
            allowed = wallet.enter_part(part)
            return allowed, wallet.route_service.current_route
        finally:
            await wallet.shutdown()

    try:
        allowed, route = _run(_enter())
    except KeyError as e:
        console.print(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)

    if allowed:
        console.print(f"[green]Entered {route}.[/green]")
    else:
        console.print(
            f"[yellow]Part {part} is locked.[/yellow] Finish parts 2 and 3 first; "
            f"redirected to {route}."
        )
        raise typer.Exit(1)


@wizard_app.command("reset")
def wizard_reset():
    """Clear wizard progress."""

    async def _reset():
        wallet = await _load()
        try:
            await wallet.reset_wizard()
        finally:
            await wallet.shutdown()

    _run(_reset())
    console.print("[green]Wizard progress cleared.[/green]")
