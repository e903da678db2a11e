"""Simple YAML configuration loader for VoiceDraft."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = (
    "en-US",
    "en-GB",
    "en-IN",
    "es-ES",
    "fr-FR",
    "de-DE",
    "it-IT",
    "pt-BR",
    "hi-IN",
    "ja-JP",
)
SUPPORTED_PROVIDERS = ("google", "deepgram")
DEFAULT_CONFIG_FILE = "voicedraft.yaml"


class VoiceDraftConfig:
    """VoiceDraft configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, voicedraft.yaml in
                        the current directory is used.
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_FILE)

        if not self.config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}") from e

        if not config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('google_cloud', 'credentials_path'),
                             ('storage', 'export_directory'),
                             ('logging', 'file_path')):
            value = (config.get(section) or {}).get(key)
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'transcription.language').

        Args:
            key_path: Dot-separated key path (e.g., 'google_cloud.credentials_path')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'transcription.language')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_language(self) -> str:
        language = self.get('transcription.language', 'en-US')
        if language not in SUPPORTED_LANGUAGES:
            raise ConfigurationError(
                f"Unsupported language '{language}', expected one of: {', '.join(SUPPORTED_LANGUAGES)}")
        return language

    def get_provider(self) -> str:
        provider = self.get('transcription.provider', 'deepgram')
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported provider '{provider}', expected one of: {', '.join(SUPPORTED_PROVIDERS)}")
        return provider

    def get_sample_rate(self) -> int:
        return int(self.get('audio.sample_rate', 16000))

    def get_chunk_duration_ms(self) -> int:
        duration = int(self.get('audio.chunk_duration_ms', 100))
        if not 100 <= duration <= 250:
            raise ConfigurationError(f"audio.chunk_duration_ms must be within 100-250, got {duration}")
        return duration

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - fails loudly if not found."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            raise ConfigurationError("Google credentials path not configured in voicedraft.yaml")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise ConfigurationError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())

    def get_deepgram_api_key(self) -> str:
        """Read the Deepgram key from the process environment."""
        env_name = self.get('deepgram.api_key_env', 'DEEPGRAM_API_KEY')
        api_key = os.environ.get(env_name)
        if not api_key:
            raise ConfigurationError(f"Deepgram API key not set; export {env_name}")
        return api_key

    def get_export_directory(self) -> str:
        """Get transcript export directory path."""
        export_dir = self.get('storage.export_directory', 'transcripts')
        return str(Path(export_dir).absolute())

    def is_dark_theme(self) -> bool:
        return bool(self.get('ui.dark_theme', True))
