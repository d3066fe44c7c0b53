"""
Configuration management with three-tier precedence system:
1. Default values from codebase
2. Environment variables from .env
3. Explicit overrides passed by the caller (e.g. command-line arguments)

Precedence: Overrides > Environment Variables > Defaults
"""

import logging
import os
from typing import Any, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration with three-tier precedence."""

    # Default values (Tier 1 - Codebase defaults)
    DEFAULTS = {
        "API_BASE_URL": "http://localhost:5001",
        "OPENAI_API_KEY": "",
        "LLM_API_BASE_URL": "",
        "LLM_MODEL": "gpt-4",
        "TRANSCRIPTION_BACKEND": "openai",
        "TRANSCRIPTION_MODEL": "whisper-1",
        "TRANSCRIPTION_LANGUAGE": "en",
        "DATA_DIR": "lecture_data",
        "SCAN_INTERVAL": "30",
        "QUEUE_CHECK_INTERVAL": "1.0",
        "SERVER_HOST": "0.0.0.0",
        "SERVER_PORT": "5001",
        "LOG_LEVEL": "INFO",
    }

    @staticmethod
    def get(key: str, override: Optional[Any] = None) -> Any:
        """
        Get configuration value with three-tier precedence.

        Args:
            key: Configuration key
            override: Explicit value (highest priority)

        Returns:
            Configuration value from highest priority source

        Priority:
            1. Override (if provided and not empty)
            2. Environment variable
            3. Default value
        """
        value, _ = ConfigManager.get_display_value(key, override)
        return value

    @staticmethod
    def get_display_value(key: str, override: Optional[Any] = None) -> tuple[Any, str]:
        """
        Get configuration value and its source.

        Returns:
            Tuple of (value, source) where source is 'override', 'env', or 'default'
        """
        # Tier 3: explicit override (highest priority)
        if override is not None and override != "":
            return override, "override"

        # Tier 2: Environment variable
        env_value = os.getenv(key)
        if env_value is not None and env_value != "":
            return env_value, "env"

        # Tier 1: Default value
        return ConfigManager.DEFAULTS.get(key, ""), "default"

    @staticmethod
    def get_int(key: str, override: Optional[Any] = None) -> int:
        """Get an integer value, falling back to the default when unparsable."""
        value = ConfigManager.get(key, override)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid integer for {key}: {value!r}, using default")
            return int(ConfigManager.DEFAULTS[key])

    @staticmethod
    def get_float(key: str, override: Optional[Any] = None) -> float:
        """Get a float value, falling back to the default when unparsable."""
        value = ConfigManager.get(key, override)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid number for {key}: {value!r}, using default")
            return float(ConfigManager.DEFAULTS[key])
