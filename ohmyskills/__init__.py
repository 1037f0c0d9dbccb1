"""OhMySkills - install and manage AI assistant skills and MCP servers across agents."""

__version__ = "0.1.0"

from ohmyskills.agents import AgentId
from ohmyskills.config import Config
from ohmyskills.installer import SkillInstaller
from ohmyskills.mcp import McpConfigManager

__all__ = ["AgentId", "Config", "McpConfigManager", "SkillInstaller", "__version__"]
