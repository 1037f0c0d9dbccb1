"""Host agent table: where each agent keeps its skills and MCP configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ohmyskills.config import Config
from ohmyskills.exceptions import InvalidInputError, UnsupportedError


class AgentId(str, Enum):
    ALL = "all"
    CLAUDE = "claude"
    GEMINI = "gemini"
    CODEX = "codex"
    OPENCODE = "opencode"
    KIRO = "kiro"
    ANTIGRAVITY = "antigravity"
    CODEBUDDY = "codebuddy"
    CURSOR = "cursor"
    KIMI = "kimi"
    MOLTBOT = "moltbot"
    QODER = "qoder"
    QWEN = "qwen"
    ZENCODER = "zencoder"


MCP_DIALECT_JSON = "json"
MCP_DIALECT_TOML = "toml"


@dataclass(frozen=True)
class McpConfigLocation:
    path: tuple[str, ...]
    dialect: str = MCP_DIALECT_JSON


@dataclass(frozen=True)
class AgentSpec:
    id: AgentId
    name: str
    skills_root: tuple[str, ...]
    mcp: McpConfigLocation | None = None


@dataclass
class AgentInfo:
    id: str
    name: str
    skills_path: str
    has_mcp: bool


# Paths are relative to the configured home directory. Order is the fan-out order.
AGENT_TABLE: dict[AgentId, AgentSpec] = {
    spec.id: spec
    for spec in (
        AgentSpec(
            AgentId.CLAUDE,
            "Claude Code",
            (".claude", "skills"),
            McpConfigLocation((".claude.json",)),
        ),
        AgentSpec(
            AgentId.GEMINI,
            "Gemini CLI",
            (".gemini", "skills"),
            McpConfigLocation((".gemini", "settings.json")),
        ),
        AgentSpec(
            AgentId.CODEX,
            "Codex CLI",
            (".codex", "skills"),
            McpConfigLocation((".codex", "config.toml"), MCP_DIALECT_TOML),
        ),
        AgentSpec(
            AgentId.OPENCODE,
            "OpenCode",
            (".config", "opencode", "skills"),
            McpConfigLocation((".config", "opencode", "config.json")),
        ),
        AgentSpec(
            AgentId.KIRO,
            "Kiro CLI",
            (".kiro", "skills"),
            McpConfigLocation((".kiro", "settings.json")),
        ),
        AgentSpec(AgentId.ANTIGRAVITY, "Antigravity", (".gemini", "antigravity", "global_skills")),
        AgentSpec(AgentId.CODEBUDDY, "CodeBuddy", (".codebuddy", "skills")),
        AgentSpec(AgentId.CURSOR, "Cursor", (".cursor", "skills")),
        AgentSpec(AgentId.KIMI, "Kimi CLI", (".kimi", "skills")),
        AgentSpec(AgentId.MOLTBOT, "Moltbot", (".moltbot", "skills")),
        AgentSpec(AgentId.QODER, "Qoder", (".qoder", "skills")),
        AgentSpec(AgentId.QWEN, "Qwen Code", (".qwen", "skills")),
        AgentSpec(AgentId.ZENCODER, "Zencoder", (".zencoder", "skills")),
    )
}


def parse_agent(value: str | AgentId) -> AgentId:
    """Parse an agent id, case-insensitively."""
    if isinstance(value, AgentId):
        return value
    raw = str(value or "").strip().lower()
    try:
        return AgentId(raw)
    except ValueError as exc:
        known = ", ".join(agent.value for agent in AgentId)
        raise InvalidInputError(f"Unknown agent: {value!r} (expected one of: {known})") from exc


def concrete_agents() -> list[AgentId]:
    """Every agent the wildcard target fans out to."""
    return list(AGENT_TABLE)


def get_agent_spec(agent: AgentId) -> AgentSpec:
    if agent is AgentId.ALL:
        raise UnsupportedError(agent.value, "The wildcard target has no storage location")
    return AGENT_TABLE[agent]


def skills_dir(agent: AgentId, cfg: Config) -> Path:
    """Skills root for a concrete agent."""
    spec = get_agent_spec(agent)
    return cfg.resolved_home().joinpath(*spec.skills_root)


def has_mcp_support(agent: AgentId) -> bool:
    if agent is AgentId.ALL:
        return False
    return AGENT_TABLE[agent].mcp is not None


def mcp_config_location(agent: AgentId, cfg: Config) -> tuple[Path, str]:
    """MCP config file path and dialect, or UnsupportedError."""
    location = get_agent_spec(agent).mcp if agent is not AgentId.ALL else None
    if location is None:
        raise UnsupportedError(agent.value, "MCP is not supported for this agent")
    return cfg.resolved_home().joinpath(*location.path), location.dialect


def list_agents(cfg: Config) -> list[AgentInfo]:
    return [
        AgentInfo(
            id=spec.id.value,
            name=spec.name,
            skills_path=str(skills_dir(spec.id, cfg)),
            has_mcp=spec.mcp is not None,
        )
        for spec in AGENT_TABLE.values()
    ]
