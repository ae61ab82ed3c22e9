"""
Configuration management for Kalender

Defaults, overridden by a YAML file (``~/.kalender/config.yaml`` unless a
path is given), overridden in turn by environment variables.
"""

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_FILE = Path.home() / ".kalender" / "config.yaml"

STORAGE_BACKENDS = ("json", "sqlite", "memory")


@dataclass
class CalendarConfig:
    """Configuration for the calendar service and its schedulers"""

    # Persistence
    storage_backend: str = "json"
    store_path: str = "calendar_events.json"

    # Reminder scan
    notification_interval: float = 30.0
    notification_initial_delay: float = 0.0
    reminder_lead_minutes: float = 5.0

    # Autosave
    autosave_interval: float = 300.0
    autosave_initial_delay: float = 300.0

    # New event defaults
    default_category: str = "Work"
    default_priority: int = 5

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        """Load configuration from environment variables"""

        # Persistence
        self.storage_backend = os.getenv('KALENDER_STORAGE_BACKEND', self.storage_backend)
        self.store_path = os.getenv('KALENDER_STORE_PATH', self.store_path)

        # Schedulers
        self.notification_interval = float(
            os.getenv('KALENDER_NOTIFICATION_INTERVAL', str(self.notification_interval))
        )
        self.reminder_lead_minutes = float(
            os.getenv('KALENDER_REMINDER_LEAD_MINUTES', str(self.reminder_lead_minutes))
        )
        self.autosave_interval = float(os.getenv('KALENDER_AUTOSAVE_INTERVAL', str(self.autosave_interval)))

        # Logging
        self.log_level = os.getenv('KALENDER_LOG_LEVEL', self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalendarConfig':
        """Create configuration from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in (data or {}).items() if key in known})

    @classmethod
    def from_yaml(cls, path: Path) -> 'CalendarConfig':
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        return cls.from_dict(data)

    def validate(self) -> bool:
        """Validate configuration"""
        if self.storage_backend.lower() not in STORAGE_BACKENDS:
            raise ValueError(f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}")

        if not self.store_path and self.storage_backend.lower() != "memory":
            raise ValueError("store_path is required")

        if self.notification_interval <= 0:
            raise ValueError("notification_interval must be positive")

        if self.autosave_interval <= 0:
            raise ValueError("autosave_interval must be positive")

        if self.notification_initial_delay < 0 or self.autosave_initial_delay < 0:
            raise ValueError("initial delays must be non-negative")

        if self.reminder_lead_minutes < 0:
            raise ValueError("reminder_lead_minutes must be non-negative")

        if not 1 <= self.default_priority <= 10:
            raise ValueError("default_priority must be between 1 and 10")

        return True


def load_config(path: Optional[Path] = None) -> CalendarConfig:
    """Load configuration from ``path`` or the default file, if present"""
    config_file = Path(path) if path else DEFAULT_CONFIG_FILE
    if config_file.exists():
        config = CalendarConfig.from_yaml(config_file)
    elif path:
        raise FileNotFoundError(f"Configuration file not found: {config_file}")
    else:
        config = CalendarConfig()
    config.validate()
    return config


def setup_logging(config: CalendarConfig):
    """Setup logging based on configuration"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=config.log_format
    )

    logging.getLogger('aiosqlite').setLevel(logging.WARNING)

    if config.log_level.upper() == 'DEBUG':
        logging.getLogger('kalender').setLevel(logging.DEBUG)
