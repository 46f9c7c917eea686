"""
Configuration management for brewpress.
"""
import copy
import os
import json
import logging
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from dotenv import load_dotenv

from brewpress.core.errors import ConfigError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

ENV_PREFIX = "BREWPRESS_"

# Default configuration
DEFAULT_CONFIG = {
    "wordpress": {
        "url": None,
        "auth": None,
        "page_size": 100,
        "timeout_seconds": 30,
    },
    "ai": {
        "api_key": None,
        "model": "gemini-2.0-flash",
        "base_url": "https://generativelanguage.googleapis.com/v1beta/openai/",
        "cooldown_seconds": 30,
        "rate_limit_base_wait": 60,
        "max_retries": 3,
    },
    "images": {
        "download_timeout_seconds": 30,
        "min_interval_seconds": 1,
    },
    "import": {
        "key": None,
        "ids": [1, 2, 3, 4, 6, 7],
        "poll_interval_seconds": 60,
        "max_attempts": 30,
        "request_timeout_seconds": 30,
    },
    "categories": {
        "map": {
            "選ぶ": 2082,
            "体験する": 2083,
            "深掘り": 2084,
            "買う": 2085,
            "コミュニティ": 2086,
        },
        "default": "深掘り",
        "featured_id": 1677,
        "featured_threshold": 4,
    },
}

# Plain environment variables that feed specific config keys
ENV_KEYS = {
    "WP_URL": "wordpress.url",
    "WP_AUTH": "wordpress.auth",
    "GEMINI_API_KEY": "ai.api_key",
    "AI_BASE_URL": "ai.base_url",
    "AI_MODEL": "ai.model",
    "IMPORT_KEY": "import.key",
}

REQUIRED_KEYS = {
    "wordpress.url": "WP_URL",
    "wordpress.auth": "WP_AUTH",
    "ai.api_key": "GEMINI_API_KEY",
}


class Config:
    """
    Configuration for a single brewpress run.

    Built once by the CLI and handed to each component; nothing reads it
    as module-level state.
    """
    def __init__(self, config_path: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        """
        Initialize the Config.

        Args:
            config_path: Path to a YAML or JSON configuration file
            environ: Environment mapping, defaults to os.environ
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file, environment and defaults.

        Returns:
            Configuration dictionary
        """
        config = copy.deepcopy(DEFAULT_CONFIG)

        if self.config_path:
            path = Path(self.config_path)
            if not path.exists():
                raise ConfigError(f"Config file not found: {self.config_path}")
            if path.suffix.lower() in ['.yaml', '.yml']:
                with open(path, 'r', encoding='utf-8') as f:
                    user_config = yaml.safe_load(f) or {}
            elif path.suffix.lower() == '.json':
                with open(path, 'r', encoding='utf-8') as f:
                    user_config = json.load(f)
            else:
                raise ConfigError(f"Unsupported config file format: {path.suffix}")

            if not isinstance(user_config, dict):
                raise ConfigError(f"Config file {self.config_path} must contain a mapping")

            self._update_dict(config, user_config)
            logger.debug(f"Loaded configuration from {self.config_path}")

        # Override with environment variables
        self._override_from_env(config)

        for env_key, config_key in ENV_KEYS.items():
            value = self.environ.get(env_key)
            if value:
                self._set(config, config_key, value)

        return config

    def _update_dict(self, target: Dict, source: Dict) -> None:
        """
        Recursively update a dictionary.

        Args:
            target: Target dictionary to update
            source: Source dictionary with new values
        """
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._update_dict(target[key], value)
            else:
                target[key] = value

    def _override_from_env(self, config: Dict, prefix: str = ENV_PREFIX) -> None:
        """
        Override configuration with prefixed environment variables.

        Nesting levels are separated by a double underscore, so
        BREWPRESS_AI__COOLDOWN_SECONDS sets ai.cooldown_seconds.

        Args:
            config: Configuration dictionary to update
            prefix: Prefix for environment variables
        """
        for key, value in self.environ.items():
            if not key.startswith(prefix) or key == f"{prefix}CONFIG_PATH":
                continue

            parts = key[len(prefix):].lower().split('__')
            try:
                # Try to parse as JSON
                parsed = json.loads(value)
            except json.JSONDecodeError:
                # If not valid JSON, use as string
                parsed = value
            self._set(config, '.'.join(parts), parsed)

    @staticmethod
    def _set(config: Dict, key: str, value: Any) -> None:
        parts = key.split('.')
        current = config
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: Dot-separated key path (e.g., 'ai.cooldown_seconds')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        parts = key.split('.')
        current = self.config

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current

    def missing_credentials(self) -> List[str]:
        """Names of the required environment variables that are not set."""
        return [env for key, env in REQUIRED_KEYS.items() if not self.get(key)]

    def require_credentials(self) -> None:
        """
        Fail fast when a required credential is missing.

        Raises:
            ConfigError: If WP_URL, WP_AUTH or GEMINI_API_KEY is unset
        """
        missing = self.missing_credentials()
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    @property
    def site_url(self) -> str:
        """WordPress site root, i.e. WP_URL without the REST API suffix."""
        url = (self.get('wordpress.url') or '').rstrip('/')
        suffix = '/wp-json/wp/v2'
        if url.endswith(suffix):
            url = url[:-len(suffix)]
        return url


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Build the run configuration.

    Args:
        config_path: Optional config file; falls back to BREWPRESS_CONFIG_PATH

    Returns:
        Config instance
    """
    return Config(config_path or os.getenv(f'{ENV_PREFIX}CONFIG_PATH'))
