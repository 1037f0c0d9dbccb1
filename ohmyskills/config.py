"""Configuration management for OhMySkills."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Paths
DEFAULT_CONFIG_PATH = Path("~/.ohmyskills/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "ohmyskills.yaml"


class HttpConfig(BaseModel):
    """Shared HTTP client configuration."""

    user_agent: str = "OhMySkills/0.1.0"
    timeout: float = 30.0


class GitHubConfig(BaseModel):
    """GitHub contents API configuration."""

    api_base_url: str = "https://api.github.com"
    token: str = ""
    timeout: float = 30.0


class SearchConfig(BaseModel):
    """Remote skill search endpoint configuration."""

    url: str = "https://skills.sh/api/search"
    limit: int = 20
    timeout: float = 20.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for OhMySkills."""

    home_dir: str = "~"
    http: HttpConfig = Field(default_factory=HttpConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="OHMYSKILLS_",
        env_file=".env",
        env_nested_delimiter="__",
    )

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration, preferring env vars over YAML."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def resolved_home(self) -> Path:
        """Root directory that every agent path is anchored to."""
        return Path(self.home_dir).expanduser().resolve()


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
