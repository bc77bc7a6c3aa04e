"""Configuration management for the Sparkle chat backend and widget."""

import os
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_APOLOGY = "Sorry, I encountered an error. Please try again."


class Configuration:
    """Manages configuration and environment variables for Sparkle chat."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for API keys
        self.config_path = config_path or os.path.join(
            os.path.dirname(__file__), "config.yaml"
        )
        self._config = self._load_yaml_config(self.config_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(config_path) as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Configuration":
        """Build a configuration from an in-memory mapping."""
        if not isinstance(config, dict):
            raise ValueError(f"Config must be a dict, got {type(config)}")
        instance = cls.__new__(cls)
        cls.load_env()
        instance.config_path = None
        instance._config = config
        return instance

    @property
    def llm_api_key(self) -> str:
        """Get the API key for the upstream provider.

        The key is read from the environment on every access so a rotated
        secret is picked up without a restart.

        Returns:
            The API key as a string.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        env_key = self._config.get("llm", {}).get("api_key_env", "OPENAI_API_KEY")

        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables"
            )

        return api_key

    def get_llm_config(self) -> dict[str, Any]:
        """Get upstream provider configuration from YAML.

        Returns:
            LLM configuration dictionary.

        Raises:
            ValueError: If required parameters are missing.
        """
        llm_config = self._config.get("llm", {})

        required_keys = ["base_url", "model", "connect_timeout", "read_timeout"]
        for key in required_keys:
            if key not in llm_config:
                raise ValueError(
                    f"llm.{key} must be explicitly configured in config.yaml"
                )

        return llm_config

    def get_server_config(self) -> dict[str, Any]:
        """Get HTTP server configuration from YAML.

        Raises:
            ValueError: If required parameters are missing or invalid.
        """
        server_config = self._config.get("server", {})

        required_keys = ["host", "port", "max_duration"]
        for key in required_keys:
            if key not in server_config:
                raise ValueError(
                    f"server.{key} must be explicitly configured in config.yaml"
                )

        if server_config["max_duration"] <= 0:
            raise ValueError("server.max_duration must be positive")

        return server_config

    def get_widget_config(self) -> dict[str, Any]:
        """Get reply renderer configuration, filling in defaults."""
        widget_config = self._config.get("widget", {})
        return {
            "endpoint": widget_config.get(
                "endpoint", "http://localhost:8000/api/chat"
            ),
            "apology_message": widget_config.get("apology_message", DEFAULT_APOLOGY),
            "timeout": widget_config.get("timeout", 30.0),
        }
