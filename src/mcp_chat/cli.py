"""
Command-line entry point: an interactive chat backed by MCP tool servers.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import anyio
import typer
from rich.console import Console

from mcp_chat.app import ChatApp
from mcp_chat.config import Settings, load_config
from mcp_chat.errors import ChatError, CleanupError, ConfigError, ServerConnectionError, ToolCollisionError
from mcp_chat.utils.logging import configure_logging

cli = typer.Typer(add_completion=False, help="Chat with a model that can call MCP tools.")


def build_app(settings: Settings, console: Console) -> ChatApp:
    def show_tool_call(name: str, arguments: Any) -> None:
        console.print(
            f"[Calling tool {name} with args {json.dumps(arguments)}]",
            style="dim",
            markup=False,
        )

    return ChatApp(settings=settings, on_tool_call=show_tool_call)


async def chat_loop(app: ChatApp, console: Console) -> None:
    """Read queries until the exit command or end of input."""
    settings = app.settings
    prompt = f"{settings.anthropic.model}> "
    console.print(f"Type '{settings.chat.exit_command}' to exit the chat.")

    while True:
        try:
            user_input = await anyio.to_thread.run_sync(console.input, prompt)
        except EOFError:
            break
        if user_input.strip() == settings.chat.exit_command:
            break
        if not user_input.strip():
            continue

        try:
            answer = await app.agent.run(user_input)
        except ChatError as e:
            console.print(f"Error: {e}", style="red", markup=False)
            continue
        console.print(answer.strip() + "\n", markup=False)


async def run_chat(settings: Settings, console: Console) -> int:
    app = build_app(settings, console)
    try:
        async with app.run():
            await chat_loop(app, console)
    except (ConfigError, ServerConnectionError, ToolCollisionError) as e:
        console.print(f"Error: {e}", style="red", markup=False)
        return 1
    except CleanupError as e:
        console.print(f"Error during shutdown: {e}", style="red", markup=False)
        for error in e.errors:
            console.print(f"  {error}", style="red", markup=False)
        return 1
    return 0


@cli.command()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML or JSON config file listing the MCP servers."
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name override."),
    best_effort: bool = typer.Option(
        False, "--best-effort", help="Skip servers that fail to start instead of exiting."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Start an interactive chat session."""
    console = Console()
    if verbose:
        configure_logging("debug")

    try:
        settings = load_config(config)
    except ConfigError as e:
        console.print(f"Failed to load MCP config: {e}", style="red", markup=False)
        raise typer.Exit(code=1)

    if model:
        settings.anthropic.model = model
    if best_effort:
        settings.chat.best_effort_connect = True
    if verbose:
        settings.logging.level = "debug"

    exit_code = asyncio.run(run_chat(settings, console))
    raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    cli()
