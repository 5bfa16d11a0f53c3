"""
Configuration management using dataclasses for type safety and validation.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any
import yaml
import json
import os
import jsonschema
import logging

from whatsapp_google_uploader.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class GoogleConfig:
    """Google OAuth configuration."""
    credentials_file: str
    token_file: Optional[str] = None

    def __post_init__(self):
        if not self.credentials_file:
            raise ValueError("credentials_file is required")

        if not Path(self.credentials_file).exists():
            logger.warning(f"Credentials file not found: {self.credentials_file}")


@dataclass
class SheetsConfig:
    """
    Spreadsheets backing the chat table and progress reports.

    Without ``chat_spreadsheet_id`` the spreadsheet ``chat_spreadsheet_name``
    is looked up (or created) inside the Drive folder ``drive_folder_name``.
    """
    chat_spreadsheet_id: Optional[str] = None
    chat_sheet: str = "chats"
    progress_spreadsheet_id: Optional[str] = None
    files_sheet: str = "uploaded_files"
    chat_spreadsheet_name: str = "chats"
    drive_folder_name: str = "WhatsApp Google Uploader"

    def __post_init__(self):
        self.chat_spreadsheet_id = self.chat_spreadsheet_id or None
        if not self.chat_spreadsheet_name:
            raise ValueError("chat_spreadsheet_name must not be empty")
        if not self.drive_folder_name:
            raise ValueError("drive_folder_name must not be empty")
        if not self.chat_sheet:
            raise ValueError("chat_sheet must not be empty")
        # Progress reports share the chat spreadsheet unless told otherwise
        if not self.progress_spreadsheet_id:
            self.progress_spreadsheet_id = self.chat_spreadsheet_id


@dataclass
class UploadConfig:
    """Upload run configuration."""
    batch_size: int = 50
    state_dir: str = ".whatsapp-uploader"
    max_media_age_days: int = 90

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.max_media_age_days < 0:
            raise ValueError("max_media_age_days must not be negative")

    @property
    def state_path(self) -> Path:
        return Path(self.state_dir).expanduser()


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: str = "uploader.log"
    json_format: bool = False

    def __post_init__(self):
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid logging level: {self.level}. Must be one of {valid_levels}")


@dataclass
class UploaderConfig:
    """Main configuration."""
    google: GoogleConfig
    sheets: SheetsConfig
    upload: UploadConfig = field(default_factory=UploadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: str, validate: bool = True) -> 'UploaderConfig':
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file
            validate: Whether to validate against JSON schema

        Returns:
            UploaderConfig instance
        """
        try:
            with open(config_path, 'r') as f:
                config_dict = yaml.safe_load(f)
        except (yaml.YAMLError, IOError, OSError) as e:
            raise ConfigurationError(f"Failed to load configuration file '{config_path}': {e}") from e

        if config_dict is None:
            raise ConfigurationError(f"Configuration file '{config_path}' is empty or invalid")

        if validate:
            cls._validate_schema(config_dict)

        config_dict = cls._apply_env_overrides(config_dict)
        return cls.from_dict(config_dict)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'UploaderConfig':
        """
        Create configuration from dictionary.

        Raises:
            ConfigurationError: If a section is missing or has invalid values
        """
        try:
            return cls(
                google=GoogleConfig(**config_dict.get('google', {})),
                sheets=SheetsConfig(**config_dict.get('sheets', {})),
                upload=UploadConfig(**config_dict.get('upload', {})),
                logging=LoggingConfig(**config_dict.get('logging', {})),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _validate_schema(config_dict: Dict[str, Any]) -> None:
        """Validate configuration against JSON schema."""
        schema_path = Path(__file__).parent / 'config_schema.json'
        try:
            with open(schema_path, 'r') as f:
                schema = json.load(f)
        except (IOError, OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not load configuration schema for validation: {e}")
            return

        try:
            jsonschema.validate(instance=config_dict, schema=schema)
            logger.debug("Configuration validated against schema")
        except jsonschema.ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.message}\n"
                f"Path: {'.'.join(str(p) for p in e.path)}"
            ) from e

    @staticmethod
    def _apply_env_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration dictionary."""
        config = json.loads(json.dumps(config_dict))
        config.setdefault('google', {})
        config.setdefault('sheets', {})

        env_credentials = os.getenv('GOOGLE_CREDENTIALS_FILE')
        if env_credentials:
            config['google']['credentials_file'] = env_credentials

        env_token = os.getenv('GOOGLE_TOKEN_FILE')
        if env_token:
            config['google']['token_file'] = env_token

        env_spreadsheet = os.getenv('WHATSAPP_UPLOADER_SPREADSHEET_ID')
        if env_spreadsheet:
            config['sheets']['chat_spreadsheet_id'] = env_spreadsheet

        return config
