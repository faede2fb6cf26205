"""
Configuration for graphiti-memory.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_ENTITY_TYPES = [
    "Preference",
    "Requirement",
    "Procedure",
    "Location",
    "Event",
    "Organization",
    "Document",
    "Topic",
    "Object",
    "Error",
    "Lesson",
    "Pattern",
]


# (section, field) -> environment variable
ENV_VARS: dict[tuple[str, str], str] = {
    ("graphiti", "mcp_url"): "GRAPHITI_MCP_URL",
    ("graphiti", "rest_url"): "GRAPHITI_REST_URL",
    ("graphiti", "use_rest_api"): "GRAPHITI_USE_REST_API",
    ("graphiti", "group_id_prefix"): "GRAPHITI_GROUP_ID_PREFIX",
    ("graphiti", "user_group_id"): "GRAPHITI_USER_GROUP_ID",
    ("graphiti", "timeout"): "GRAPHITI_TIMEOUT",
    ("memory", "similarity_threshold"): "GRAPHITI_SIMILARITY_THRESHOLD",
    ("memory", "max_memories"): "GRAPHITI_MAX_MEMORIES",
    ("memory", "max_project_memories"): "GRAPHITI_MAX_PROJECT_MEMORIES",
    ("memory", "max_profile_items"): "GRAPHITI_MAX_PROFILE_ITEMS",
    ("memory", "inject_profile"): "GRAPHITI_INJECT_PROFILE",
    ("memory", "inject_project_memories"): "GRAPHITI_INJECT_PROJECT_MEMORIES",
    ("memory", "inject_relevant_memories"): "GRAPHITI_INJECT_RELEVANT_MEMORIES",
    ("logging", "level"): "GRAPHITI_LOG_LEVEL",
    ("logging", "log_to_file"): "GRAPHITI_LOG_TO_FILE",
    ("logging", "log_dir"): "GRAPHITI_LOG_DIR",
    ("logging", "file_rotation"): "GRAPHITI_LOG_FILE_ROTATION",
    ("logging", "file_retention"): "GRAPHITI_LOG_FILE_RETENTION",
    ("logging", "compression"): "GRAPHITI_LOG_COMPRESSION",
    ("logging", "serialize"): "GRAPHITI_LOG_SERIALIZE",
}


class GraphitiConfig(BaseModel):
    """Backend connection configuration."""

    mcp_url: str = "http://localhost:8000/mcp/"
    rest_url: str = "http://localhost:8000"
    use_rest_api: bool = True
    group_id_prefix: str = "opencode"
    user_group_id: str | None = None
    timeout: float = 30.0

    @property
    def active_url(self) -> str:
        """Base URL of the transport selected by use_rest_api."""
        return self.rest_url if self.use_rest_api else self.mcp_url


class MemoryConfig(BaseModel):
    """Retrieval caps and prompt injection toggles."""

    similarity_threshold: float = 0.6
    max_memories: int = 5
    max_project_memories: int = 10
    max_profile_items: int = 5
    inject_profile: bool = True
    inject_project_memories: bool = True
    inject_relevant_memories: bool = True
    entity_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ENTITY_TYPES))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    graphiti: GraphitiConfig = Field(default_factory=GraphitiConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def is_configured(self) -> bool:
        """True when the active transport has a backend URL."""
        return bool(self.graphiti.active_url)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables over defaults.

        A .env file is read first (env_file, else ./.env when present);
        variables already set in the process environment win over it.

        Args:
            env_file: Optional path to a .env file

        Returns:
            Config instance
        """
        return cls(**_env_overrides(env_file))

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from a YAML file over defaults.

        Raises:
            FileNotFoundError: If the file doesn't exist
            yaml.YAMLError: If the YAML is invalid
        """
        return cls(**_read_yaml(yaml_path))

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Only variables that are actually set override YAML, field by field.

        Args:
            yaml_path: Optional YAML file; ignored when missing
            env_file: Optional .env file
        """
        data = _read_yaml(yaml_path) if yaml_path and Path(yaml_path).exists() else {}

        for section, fields in _env_overrides(env_file).items():
            data[section] = {**(data.get(section) or {}), **fields}

        return cls(**data)


def _env_value(key: str, default: Any) -> Any:
    """Read one variable converted to the type of its default; unset or empty gives None."""
    value = os.getenv(key)
    if value is None or value == "":
        return None
    if isinstance(default, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return value


def _env_overrides(env_file: str | Path | None = None) -> dict[str, dict[str, Any]]:
    """Collect set GRAPHITI_* variables as {section: {field: value}}."""
    if env_file:
        load_dotenv(env_file)
    elif Path(".env").exists():
        load_dotenv()

    defaults = Config()
    overrides: dict[str, dict[str, Any]] = {}
    for (section, field), key in ENV_VARS.items():
        value = _env_value(key, getattr(getattr(defaults, section), field))
        if value is not None:
            overrides.setdefault(section, {})[field] = value
    return overrides


def _read_yaml(yaml_path: str | Path) -> dict[str, Any]:
    yaml_path = Path(yaml_path)
    if not yaml_path.exists():
        raise FileNotFoundError(f"Config file not found: {yaml_path}")

    with open(yaml_path) as f:
        return yaml.safe_load(f) or {}
