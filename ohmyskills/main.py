"""Command-line entry point for OhMySkills."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ohmyskills.agents import AgentId, list_agents, parse_agent
from ohmyskills.config import Config, get_config, set_config
from ohmyskills.exceptions import OhMySkillsError
from ohmyskills.installer import SkillInstaller
from ohmyskills.logging import configure_logging
from ohmyskills.mcp import AddMcpServerRequest, McpConfigManager
from ohmyskills.search import search_skills
from ohmyskills.skills import (
    delete_skill,
    get_skill_content,
    get_skill_metadata,
    list_skill_files,
    list_skills,
    open_skill_folder,
    read_skill_file,
)

T = TypeVar("T")

app = typer.Typer(help="OhMySkills - manage AI assistant skills and MCP servers")
console = Console()
err_console = Console(stderr=True)

AgentOption = typer.Option("claude", "-a", "--agent", help="Agent id, or 'all'")


@app.callback()
def setup(
    config: str = typer.Option("", "-c", "--config", help="Path to config file"),
    home: str = typer.Option("", "--home", help="Override the home directory agents live in"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    cfg = Config.from_yaml(Path(config)) if config else Config.load()
    if home:
        cfg.home_dir = home
    if verbose:
        cfg.logging.level = "DEBUG"
    set_config(cfg)
    configure_logging()


def _run(action: Callable[[], T]) -> T:
    try:
        return action()
    except (OhMySkillsError, ValidationError) as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


def _agent(value: str) -> AgentId:
    return _run(lambda: parse_agent(value))


def _pairs(values: list[str]) -> dict[str, str] | None:
    if not values:
        return None
    pairs: dict[str, str] = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {value!r}")
        pairs[key] = item
    return pairs


async def _with_installer(work: Callable[[SkillInstaller], Awaitable[str]]) -> str:
    async with SkillInstaller(get_config()) as installer:
        return await work(installer)


@app.command("agents")
def agents_command() -> None:
    """List supported agents."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Skills path")
    table.add_column("MCP")
    for info in list_agents(get_config()):
        table.add_row(info.id, info.name, info.skills_path, "yes" if info.has_mcp else "-")
    console.print(table)


@app.command("list")
def list_command(agent: str = AgentOption) -> None:
    """List installed skills."""
    skills = _run(lambda: list_skills(_agent(agent), get_config()))
    if not skills:
        console.print("[yellow]No skills installed.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Tokens", justify="right")
    table.add_column("Path")
    for skill in skills:
        tokens = "-" if skill.token_count is None else str(skill.token_count)
        table.add_row(skill.name, tokens, skill.path)
    console.print(table)


@app.command("show")
def show_command(name: str, agent: str = AgentOption) -> None:
    """Print a skill's SKILL.md."""
    console.print(_run(lambda: get_skill_content(_agent(agent), name, get_config())), markup=False)


@app.command("metadata")
def metadata_command(name: str, agent: str = AgentOption) -> None:
    """Print a skill's install metadata."""
    metadata = _run(lambda: get_skill_metadata(_agent(agent), name, get_config()))
    if metadata is None:
        console.print("[yellow]No metadata recorded.[/yellow]")
        return
    console.print_json(metadata.model_dump_json())


@app.command("files")
def files_command(
    name: str,
    agent: str = AgentOption,
    subpath: str = typer.Option("", "--subpath", help="Folder inside the skill"),
) -> None:
    """List files inside a skill."""
    items = _run(lambda: list_skill_files(_agent(agent), name, get_config(), subpath or None))
    for item in items:
        if item.is_directory:
            console.print(f"[bold]{item.path}/[/bold]")
        else:
            console.print(f"{item.path}  ({item.size} bytes)")


@app.command("cat")
def cat_command(name: str, path: str, agent: str = AgentOption) -> None:
    """Print a file from inside a skill."""
    console.print(_run(lambda: read_skill_file(_agent(agent), name, path, get_config())), markup=False)


@app.command("install-url")
def install_url_command(url: str, agent: str = AgentOption) -> None:
    """Install from a SKILL.md URL or a GitHub /tree/ folder URL."""
    target = _agent(agent)
    message = _run(
        lambda: asyncio.run(_with_installer(lambda installer: installer.install_from_url(target, url)))
    )
    console.print(f"[green]{message}[/green]")


@app.command("install-file")
def install_file_command(path: Path, agent: str = AgentOption) -> None:
    """Install from a local .zip archive or SKILL.md file."""
    target = _agent(agent)
    if not path.is_file():
        err_console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(code=1)
    if path.suffix.lower() == ".zip":
        data = path.read_bytes()

        def work(installer: SkillInstaller):
            return installer.install_from_zip(target, data, path.name)
    else:
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            err_console.print(f"[red]{path} is not valid UTF-8: {exc}[/red]")
            raise typer.Exit(code=1) from exc

        def work(installer: SkillInstaller):
            return installer.install_from_content(target, content, path.name)

    message = _run(lambda: asyncio.run(_with_installer(work)))
    console.print(f"[green]{message}[/green]")


@app.command("delete")
def delete_command(name: str, agent: str = AgentOption) -> None:
    """Delete a skill."""
    removed = _run(lambda: delete_skill(_agent(agent), name, get_config()))
    console.print(f"Removed {name} from {removed} agent(s)")


@app.command("open")
def open_command(name: str, agent: str = AgentOption) -> None:
    """Open a skill folder in the system file manager."""
    _run(lambda: open_skill_folder(_agent(agent), name, get_config()))


@app.command("search")
def search_command(query: str) -> None:
    """Search the public skills directory."""
    results = _run(lambda: asyncio.run(search_skills(query, get_config())))
    if not results:
        console.print("[yellow]No results.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Slug")
    table.add_column("Source")
    table.add_column("Installs", justify="right")
    for item in results:
        table.add_row(item.name, item.slug, item.source, str(item.installs))
    console.print(table)


@app.command("mcp-list")
def mcp_list_command(agent: str = AgentOption) -> None:
    """List MCP servers configured for an agent."""
    servers = _run(lambda: McpConfigManager(get_config()).list_servers(_agent(agent)))
    if not servers:
        console.print("[yellow]No MCP servers configured.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name")
    table.add_column("Transport")
    table.add_column("Target")
    table.add_column("Enabled")
    for server in servers:
        target = server.url if server.transport == "http" else " ".join([server.command or "", *(server.args or [])])
        table.add_row(server.name, server.transport, target or "", "no" if server.disabled else "yes")
    console.print(table)


@app.command("mcp-add")
def mcp_add_command(
    name: str,
    agent: str = AgentOption,
    command: str = typer.Option("", "--command", help="Executable for a stdio server"),
    arg: list[str] = typer.Option([], "--arg", help="Argument for the command (repeatable)"),
    env: list[str] = typer.Option([], "--env", help="KEY=VALUE environment entry (repeatable)"),
    url: str = typer.Option("", "--url", help="Endpoint of an http server"),
    header: list[str] = typer.Option([], "--header", help="KEY=VALUE request header (repeatable)"),
) -> None:
    """Add or replace an MCP server."""
    target = _agent(agent)

    def action() -> None:
        request = AddMcpServerRequest(
            name=name,
            transport="http" if url else "stdio",
            command=command or None,
            args=list(arg) or None,
            env=_pairs(env),
            url=url or None,
            headers=_pairs(header),
        )
        McpConfigManager(get_config()).add_server(target, request)

    _run(action)
    console.print(f"[green]Added MCP server {name}[/green]")


@app.command("mcp-remove")
def mcp_remove_command(name: str, agent: str = AgentOption) -> None:
    """Remove an MCP server."""
    _run(lambda: McpConfigManager(get_config()).remove_server(_agent(agent), name))
    console.print(f"Removed MCP server {name}")


@app.command("mcp-toggle")
def mcp_toggle_command(
    name: str,
    agent: str = AgentOption,
    disable: bool = typer.Option(True, "--disable/--enable", help="Disable or re-enable the server"),
) -> None:
    """Enable or disable an MCP server."""
    _run(lambda: McpConfigManager(get_config()).toggle_server(_agent(agent), name, disable))
    console.print(f"{'Disabled' if disable else 'Enabled'} MCP server {name}")


@app.command("version")
def version_command() -> None:
    """Show version information."""
    from ohmyskills import __version__

    console.print(f"OhMySkills v{__version__}")


if __name__ == "__main__":
    app()
