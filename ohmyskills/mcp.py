"""MCP server entries in agent configuration files.

Most agents keep servers under a top-level ``mcpServers`` object in a JSON
file; Codex keeps them under ``[mcp_servers.<name>]`` tables in TOML. Every
write is a read-modify-write of the whole file that leaves unrelated keys
untouched.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Literal

import tomli_w
from pydantic import BaseModel, model_validator

from ohmyskills.agents import MCP_DIALECT_TOML, AgentId, has_mcp_support, mcp_config_location
from ohmyskills.config import Config
from ohmyskills.exceptions import InvalidInputError, NotFoundError, UnsupportedError
from ohmyskills.logging import get_logger

log = get_logger(__name__)

JSON_SERVERS_KEY = "mcpServers"
TOML_SERVERS_KEY = "mcp_servers"


class McpServerInfo(BaseModel):
    name: str
    transport: Literal["stdio", "http"]
    disabled: bool | None = None
    command: str | None = None
    args: list[str] | None = None
    env: dict[str, str] | None = None
    url: str | None = None
    headers: dict[str, str] | None = None


class AddMcpServerRequest(BaseModel):
    name: str
    transport: Literal["stdio", "http"]
    command: str | None = None
    args: list[str] | None = None
    env: dict[str, str] | None = None
    url: str | None = None
    headers: dict[str, str] | None = None

    @model_validator(mode="after")
    def _check_transport_fields(self) -> "AddMcpServerRequest":
        if not self.name.strip():
            raise ValueError("Server name is required")
        if self.transport == "stdio" and not self.command:
            raise ValueError("stdio servers require a command")
        if self.transport == "http" and not self.url:
            raise ValueError("http servers require a url")
        return self

    def to_entry(self, dialect: str) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        if dialect != MCP_DIALECT_TOML:
            entry["type"] = self.transport
        if self.transport == "stdio":
            entry["command"] = self.command
            if self.args is not None:
                entry["args"] = list(self.args)
            if self.env is not None:
                entry["env"] = dict(self.env)
        else:
            entry["url"] = self.url
            if self.headers is not None:
                entry["headers"] = dict(self.headers)
        return entry


def _string_map(value: Any) -> dict[str, str] | None:
    if not isinstance(value, dict):
        return None
    return {str(key): item for key, item in value.items() if isinstance(item, str)}


def parse_server_entry(name: str, value: Any) -> McpServerInfo:
    entry = value if isinstance(value, dict) else {}
    url = entry.get("url")
    command = entry.get("command")
    args = entry.get("args")
    disabled = entry.get("disabled")
    return McpServerInfo(
        name=name,
        transport="http" if "url" in entry else "stdio",
        disabled=disabled if isinstance(disabled, bool) else None,
        command=command if isinstance(command, str) else None,
        args=[item for item in args if isinstance(item, str)] if isinstance(args, list) else None,
        env=_string_map(entry.get("env")),
        url=url if isinstance(url, str) else None,
        headers=_string_map(entry.get("headers")),
    )


def _servers_key(dialect: str) -> str:
    return TOML_SERVERS_KEY if dialect == MCP_DIALECT_TOML else JSON_SERVERS_KEY


def load_config_document(path: Path, dialect: str) -> dict[str, Any]:
    """Parse a whole config file; a missing file is an empty document."""
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    try:
        document = tomllib.loads(text) if dialect == MCP_DIALECT_TOML else json.loads(text)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise InvalidInputError(f"Invalid {dialect.upper()} in {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise InvalidInputError(f"Invalid config format in {path}")
    return document


def save_config_document(path: Path, dialect: str, document: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if dialect == MCP_DIALECT_TOML:
        path.write_text(tomli_w.dumps(document), encoding="utf-8")
    else:
        path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")


class McpConfigManager:
    """List, add, remove, and enable/disable MCP servers for one agent at a time."""

    def __init__(self, cfg: Config):
        self.config = cfg

    def _location(self, agent: AgentId) -> tuple[Path, str]:
        if agent is AgentId.ALL:
            raise UnsupportedError(agent.value, "MCP operations need a concrete agent")
        return mcp_config_location(agent, self.config)

    def list_servers(self, agent: AgentId) -> list[McpServerInfo]:
        if not has_mcp_support(agent):
            return []
        path, dialect = self._location(agent)
        document = load_config_document(path, dialect)
        servers = document.get(_servers_key(dialect))
        if not isinstance(servers, dict):
            return []
        return [parse_server_entry(name, value) for name, value in servers.items()]

    def add_server(self, agent: AgentId, request: AddMcpServerRequest) -> None:
        """Insert or replace a server entry."""
        path, dialect = self._location(agent)
        document = load_config_document(path, dialect)
        key = _servers_key(dialect)
        servers = document.setdefault(key, {})
        if not isinstance(servers, dict):
            raise InvalidInputError(f"Invalid {key} format in {path}")
        servers[request.name] = request.to_entry(dialect)
        save_config_document(path, dialect, document)
        log.info("Added MCP server", agent=agent.value, server=request.name, transport=request.transport)

    def remove_server(self, agent: AgentId, name: str) -> None:
        path, dialect = self._location(agent)
        if not path.exists():
            return
        document = load_config_document(path, dialect)
        servers = document.get(_servers_key(dialect))
        if isinstance(servers, dict) and servers.pop(name, None) is not None:
            log.info("Removed MCP server", agent=agent.value, server=name)
        save_config_document(path, dialect, document)

    def toggle_server(self, agent: AgentId, name: str, disabled: bool) -> None:
        """Set ``disabled = true`` or drop the key; unknown servers are ignored."""
        path, dialect = self._location(agent)
        if not path.exists():
            raise NotFoundError(f"Config file not found: {path}")
        document = load_config_document(path, dialect)
        servers = document.get(_servers_key(dialect))
        server = servers.get(name) if isinstance(servers, dict) else None
        if isinstance(server, dict):
            if disabled:
                server["disabled"] = True
            else:
                server.pop("disabled", None)
        save_config_document(path, dialect, document)
