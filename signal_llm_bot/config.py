"""Configuration management for the Signal LLM bot."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr


class SignalConfig(BaseModel):
    """Signal REST gateway connection settings."""

    api_url: str = Field(default="http://localhost:8089", description="Base URL of the signal-cli REST API")
    number: str = Field(..., pattern=r"^\+?[\d ]+$", description="Bot's own phone number")
    uuid: str = Field(default="", description="Bot's account UUID, enables uuid mention matching")


class LLMConfig(BaseModel):
    """LLM provider settings."""

    provider: Literal["gemini", "openrouter"] = "gemini"
    api_key: SecretStr = Field(..., description="API key for LLM provider")
    model: str = "gemini-2.0-flash"
    timeout: float = Field(default=120.0, gt=0, description="Seconds before an LLM call is abandoned")
    endpoint: str = Field(
        default="https://openrouter.ai/api/v1",
        description="OpenAI-compatible base URL (openrouter provider only)",
    )
    system_prompt: str = "You are a helpful assistant."


class BotConfig(BaseModel):
    """Bot behavior settings."""

    poll_interval: float = Field(default=5.0, gt=0, description="Seconds between receive calls")
    download_dir: str = Field(default="downloads", description="Where /download stores media")
    ignore_self: bool = Field(default=True, description="Ignore messages sent from the bot's own number")


class Config(BaseModel):
    """Root configuration model."""

    signal: SignalConfig
    llm: LLMConfig
    bot: BotConfig = BotConfig()


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate configuration from YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
        ValueError: If referenced environment variable is not set.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with path.open() as f:
        raw_config = yaml.safe_load(f) or {}

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise ValueError(f"Environment variable '{env_var}' is not set")
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    return Config(**raw_config)
