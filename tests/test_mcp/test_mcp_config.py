import json
import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from ohmyskills.agents import AgentId
from ohmyskills.config import Config
from ohmyskills.exceptions import InvalidInputError, NotFoundError, UnsupportedError
from ohmyskills.mcp import AddMcpServerRequest, McpConfigManager, parse_server_entry


def _manager(tmp_path: Path) -> McpConfigManager:
    return McpConfigManager(Config(home_dir=str(tmp_path)))


def _stdio(name: str = "files") -> AddMcpServerRequest:
    return AddMcpServerRequest(
        name=name,
        transport="stdio",
        command="npx",
        args=["-y", "@modelcontextprotocol/server-filesystem"],
        env={"ROOT": "/tmp"},
    )


def test_add_server_creates_claude_config(tmp_path: Path):
    manager = _manager(tmp_path)

    manager.add_server(AgentId.CLAUDE, _stdio())

    document = json.loads((tmp_path / ".claude.json").read_text(encoding="utf-8"))
    assert document == {
        "mcpServers": {
            "files": {
                "type": "stdio",
                "command": "npx",
                "args": ["-y", "@modelcontextprotocol/server-filesystem"],
                "env": {"ROOT": "/tmp"},
            }
        }
    }


def test_add_server_preserves_unrelated_keys_and_replaces_entry(tmp_path: Path):
    path = tmp_path / ".gemini" / "settings.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps({"theme": "dark", "mcpServers": {"files": {"command": "old"}}}),
        encoding="utf-8",
    )
    manager = _manager(tmp_path)

    manager.add_server(AgentId.GEMINI, _stdio())
    manager.add_server(
        AgentId.GEMINI,
        AddMcpServerRequest(name="remote", transport="http", url="https://mcp.example/sse", headers={"X-Key": "k"}),
    )

    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["theme"] == "dark"
    assert document["mcpServers"]["files"]["command"] == "npx"
    assert document["mcpServers"]["remote"] == {
        "type": "http",
        "url": "https://mcp.example/sse",
        "headers": {"X-Key": "k"},
    }


def test_list_servers_infers_transport_from_url(tmp_path: Path):
    (tmp_path / ".claude.json").write_text(
        json.dumps(
            {
                "mcpServers": {
                    "local": {"command": "uvx", "args": ["tool"], "disabled": True},
                    "remote": {"url": "https://mcp.example"},
                    "odd": "not-an-object",
                }
            }
        ),
        encoding="utf-8",
    )

    servers = {server.name: server for server in _manager(tmp_path).list_servers(AgentId.CLAUDE)}

    assert servers["local"].transport == "stdio"
    assert servers["local"].disabled is True
    assert servers["local"].args == ["tool"]
    assert servers["remote"].transport == "http"
    assert servers["remote"].disabled is None
    assert servers["odd"].transport == "stdio"
    assert servers["odd"].command is None


def test_list_servers_is_empty_for_missing_file_and_unsupported_agents(tmp_path: Path):
    manager = _manager(tmp_path)

    assert manager.list_servers(AgentId.CLAUDE) == []
    assert manager.list_servers(AgentId.CURSOR) == []
    assert manager.list_servers(AgentId.ALL) == []


def test_mutations_reject_agents_without_mcp(tmp_path: Path):
    manager = _manager(tmp_path)

    with pytest.raises(UnsupportedError):
        manager.add_server(AgentId.QWEN, _stdio())
    with pytest.raises(UnsupportedError):
        manager.remove_server(AgentId.ALL, "files")
    with pytest.raises(UnsupportedError):
        manager.toggle_server(AgentId.ANTIGRAVITY, "files", True)


def test_remove_server_is_idempotent(tmp_path: Path):
    manager = _manager(tmp_path)
    manager.remove_server(AgentId.CLAUDE, "files")
    assert not (tmp_path / ".claude.json").exists()

    manager.add_server(AgentId.CLAUDE, _stdio())
    manager.add_server(AgentId.CLAUDE, _stdio("other"))
    manager.remove_server(AgentId.CLAUDE, "files")
    manager.remove_server(AgentId.CLAUDE, "files")

    assert [server.name for server in manager.list_servers(AgentId.CLAUDE)] == ["other"]


def test_toggle_server_sets_and_clears_disabled(tmp_path: Path):
    manager = _manager(tmp_path)
    manager.add_server(AgentId.KIRO, _stdio())
    path = tmp_path / ".kiro" / "settings.json"

    manager.toggle_server(AgentId.KIRO, "files", True)
    manager.toggle_server(AgentId.KIRO, "files", True)
    assert json.loads(path.read_text(encoding="utf-8"))["mcpServers"]["files"]["disabled"] is True

    manager.toggle_server(AgentId.KIRO, "files", False)
    assert "disabled" not in json.loads(path.read_text(encoding="utf-8"))["mcpServers"]["files"]

    manager.toggle_server(AgentId.KIRO, "unknown", True)
    assert set(json.loads(path.read_text(encoding="utf-8"))["mcpServers"]) == {"files"}


def test_toggle_server_requires_existing_config(tmp_path: Path):
    with pytest.raises(NotFoundError):
        _manager(tmp_path).toggle_server(AgentId.CLAUDE, "files", True)


def test_malformed_json_config_is_invalid_input(tmp_path: Path):
    (tmp_path / ".claude.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(InvalidInputError):
        _manager(tmp_path).list_servers(AgentId.CLAUDE)


def test_codex_servers_live_in_toml(tmp_path: Path):
    path = tmp_path / ".codex" / "config.toml"
    path.parent.mkdir(parents=True)
    path.write_text('model = "o3"\n', encoding="utf-8")
    manager = _manager(tmp_path)

    manager.add_server(AgentId.CODEX, _stdio())
    manager.toggle_server(AgentId.CODEX, "files", True)

    document = tomllib.loads(path.read_text(encoding="utf-8"))
    assert document["model"] == "o3"
    assert document["mcp_servers"]["files"] == {
        "command": "npx",
        "args": ["-y", "@modelcontextprotocol/server-filesystem"],
        "env": {"ROOT": "/tmp"},
        "disabled": True,
    }
    servers = manager.list_servers(AgentId.CODEX)
    assert [(server.name, server.transport, server.disabled) for server in servers] == [("files", "stdio", True)]


def test_add_server_request_requires_transport_fields():
    with pytest.raises(ValidationError):
        AddMcpServerRequest(name="x", transport="stdio")
    with pytest.raises(ValidationError):
        AddMcpServerRequest(name="x", transport="http")
    with pytest.raises(ValidationError):
        AddMcpServerRequest(name="  ", transport="stdio", command="run")


def test_parse_server_entry_drops_non_string_values():
    server = parse_server_entry("s", {"command": "run", "args": ["a", 1], "env": {"A": "1", "B": 2}})

    assert server.args == ["a"]
    assert server.env == {"A": "1"}
