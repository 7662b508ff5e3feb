"""Chatbridge CLI entry point."""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from chatbridge.core.domain.errors import ChatbridgeError

app = typer.Typer(
    name="chatbridge",
    help="Chatbridge - chat platform protocol bridge",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: ./chatbridge.yaml)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """Chatbridge CLI."""
    ctx.obj = {"config": config, "debug": debug}


def _load(ctx: typer.Context):
    from chatbridge.api.server import configure_logging
    from chatbridge.infrastructure.config.loader import load_bridge_config

    configure_logging("DEBUG" if ctx.obj["debug"] else None)
    try:
        return load_bridge_config(ctx.obj["config"])
    except ChatbridgeError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e


async def _run_until_cancelled(bridge) -> None:
    await bridge.start()
    try:
        await asyncio.Event().wait()
    finally:
        await bridge.stop()


@app.command()
def run(ctx: typer.Context):
    """Start every configured adapter."""
    from chatbridge.application.bridge import Bridge

    config = _load(ctx)
    if not config.platforms:
        console.print("[yellow]No platform configured; nothing to run.[/yellow]")
        raise typer.Exit(code=1)

    bridge = Bridge(config)
    table = Table(title="Adapters")
    table.add_column("Platform", style="cyan")
    table.add_column("Mode")
    modes = {"discord": "gateway", "telegram": "long polling", "line": "webhook"}
    for platform in config.platforms:
        table.add_row(platform, modes[platform])
    console.print(table)

    if config.line:
        import uvicorn

        from chatbridge.api.server import create_app

        console.print(
            f"[bold blue]Serving webhooks on[/bold blue] "
            f"[cyan]{config.server.host}:{config.server.port}[/cyan]"
        )
        uvicorn.run(create_app(bridge), host=config.server.host, port=config.server.port)
        return

    try:
        asyncio.run(_run_until_cancelled(bridge))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


@app.command()
def send(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="Telegram chat or topic id"),
    content: str = typer.Argument(..., help="Message markup, e.g. 'hi <b>there</b>'"),
    guild_id: Optional[str] = typer.Option(None, "--guild", "-g", help="Group id for topics"),
):
    """Send a message through the configured Telegram bot."""
    from chatbridge.application.bridge import Bridge

    config = _load(ctx)
    if config.telegram is None:
        console.print("[bold red]Telegram is not configured.[/bold red]")
        raise typer.Exit(code=1)

    async def _send():
        bridge = Bridge(config)
        bot = bridge.components.telegram
        try:
            return await bridge.send_telegram(channel_id, content, guild_id)
        finally:
            await bot.api.close()
            await bot.fetcher.close()

    try:
        sessions = asyncio.run(_send())
    except ChatbridgeError as e:
        console.print(f"[bold red]Send failed:[/bold red] {e.message}")
        raise typer.Exit(code=1) from e

    for session in sessions:
        console.print(f"[green]sent[/green] message [cyan]{session.message_id}[/cyan]")


@app.command()
def version():
    """Show Chatbridge version."""
    from chatbridge import __version__

    console.print(f"[bold blue]Version:[/bold blue] [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
